"""Shared league data context and reload management utilities."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from threading import RLock
from typing import Any, Dict, Optional

from config import settings
from data import DataSources, load_data_sources

logger = logging.getLogger(__name__)


def _resolve_data_path(name: str) -> Path:
    path = Path(name)
    if not path.is_absolute():
        path = Path(__file__).resolve().parent / name
    return path


DEFAULT_DATA_DIR = _resolve_data_path(os.getenv("LEAGUE_DATA_DIR", "league_data"))


@dataclass(frozen=True)
class LeagueDataContext:
    """Immutable snapshot of the data sources the engine reads."""

    sources: DataSources
    created_at: datetime
    data_dir: Optional[Path]
    settings_snapshot: Dict[str, Any]
    source: str


def build_context(data_dir: Path | str) -> LeagueDataContext:
    """Load every CSV under ``data_dir`` into a fresh :class:`LeagueDataContext`."""

    path = Path(data_dir)
    sources = load_data_sources(path)
    logger.info(
        "Loaded league data from %s: %d division(s), %d result(s), %d fixture(s)",
        path,
        len(sources.divisions),
        len(sources.results),
        len(sources.fixtures),
    )
    return LeagueDataContext(
        sources=sources,
        created_at=datetime.now(timezone.utc),
        data_dir=path,
        settings_snapshot=settings.snapshot(),
        source=str(path),
    )


class ContextManager:
    """Manage the active :class:`LeagueDataContext` with atomic reloads."""

    def __init__(self, *, data_dir: Path | str | None = None) -> None:
        self._lock = RLock()
        self._data_dir = Path(data_dir) if data_dir else DEFAULT_DATA_DIR
        self._context: Optional[LeagueDataContext] = None

    def get(self) -> LeagueDataContext:
        """Return the current context, loading it lazily if needed."""

        with self._lock:
            if self._context is None:
                self._context = build_context(self._data_dir)
            return self._context

    def sources(self) -> DataSources:
        return self.get().sources

    def reload(self, *, data_dir: Path | str | None = None) -> LeagueDataContext:
        """Reload inputs and swap in a brand-new context atomically."""

        new_dir = Path(data_dir) if data_dir else self._data_dir
        fresh = build_context(new_dir)
        with self._lock:
            self._data_dir = new_dir
            self._context = fresh
            return self._context

    def replace_sources(self, sources: DataSources, *, source: str = "upload") -> LeagueDataContext:
        """Swap in data supplied directly (API upload, tests) instead of read from disk."""

        fresh = LeagueDataContext(
            sources=sources,
            created_at=datetime.now(timezone.utc),
            data_dir=None,
            settings_snapshot=settings.snapshot(),
            source=source,
        )
        with self._lock:
            self._context = fresh
            return self._context

    def metadata(self) -> Dict[str, Any]:
        """Return lightweight info about the active context."""

        ctx = self.get()
        sources = ctx.sources
        return {
            "last_reload": ctx.created_at.isoformat(),
            "source": ctx.source,
            "fingerprint": sources.fingerprint,
            "division_count": len(sources.divisions),
            "team_count": sum(len(div.teams) for div in sources.divisions.values()),
            "result_count": len(sources.results),
            "fixture_count": len(sources.fixtures),
            "player_count": len(sources.players),
            "settings": ctx.settings_snapshot,
        }


# Global singleton used by the CLI/API layers.
context_manager = ContextManager()
