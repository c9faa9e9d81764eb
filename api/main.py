from __future__ import annotations

from fastapi import FastAPI

from api.models import MessageResponse
from api.routes import (
    accuracy,
    config,
    health,
    importance,
    jobs,
    league,
    predictions,
    simulations,
    standings,
)

app = FastAPI(title="Pool League Prediction API", version="0.1.0")
app.include_router(health.router)
app.include_router(config.router)
app.include_router(league.router)
app.include_router(standings.router)
app.include_router(predictions.router)
app.include_router(simulations.router)
app.include_router(importance.router)
app.include_router(accuracy.router)
app.include_router(jobs.router)


@app.get("/", response_model=MessageResponse, summary="Root endpoint", tags=["health"])
async def root() -> MessageResponse:
    return MessageResponse(message="Pool League Prediction API")
