from __future__ import annotations

from fastapi import APIRouter, Depends

from api.dependencies import get_context_manager, load_sources, require_api_key, require_division
from api.models import StandingsResponse, StrengthResponse, StrengthRow
from api.utils import run_engine, standing_rows
from context import ContextManager
from standings import calc_standings
from strength import calc_remaining_schedule_strength, calc_team_strength

router = APIRouter(prefix="/divisions", tags=["standings"], dependencies=[Depends(require_api_key)])


@router.get("/{division}/standings", response_model=StandingsResponse, summary="Current league table")
async def get_standings(
    division: str,
    manager: ContextManager = Depends(get_context_manager),
) -> StandingsResponse:
    sources = load_sources(manager)
    require_division(sources, division)
    entries = run_engine(calc_standings, division, sources)
    return StandingsResponse(division=division, standings=standing_rows(entries))


@router.get("/{division}/strength", response_model=StrengthResponse, summary="Team strength ratings")
async def get_strength(
    division: str,
    manager: ContextManager = Depends(get_context_manager),
) -> StrengthResponse:
    sources = load_sources(manager)
    require_division(sources, division)
    strengths = run_engine(calc_team_strength, division, sources)
    schedule = run_engine(calc_remaining_schedule_strength, division, sources, strengths)
    rows = [
        StrengthRow(team=team, strength=value, remainingScheduleStrength=schedule[team])
        for team, value in sorted(strengths.items(), key=lambda item: (-item[1], item[0]))
    ]
    return StrengthResponse(division=division, teams=rows)
