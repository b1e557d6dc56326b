"""FastAPI endpoints for matchmaking and turn-based play. Clients poll; every request stands on its own."""

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from matchplay.api.models import (
    AckResponse,
    EndGameRequest,
    ErrorResponse,
    JoinMatchmakingRequest,
    JoinMatchmakingResponse,
    LeaveMatchmakingRequest,
    MoveRequest,
    SessionResponse,
)
from matchplay.core.config import Clock, Settings, configure_logging, load_settings, utc_now
from matchplay.core.exceptions import GameError
from matchplay.core.shared_types import ErrorCode
from matchplay.db.database import create_repository
from matchplay.db.repository import MatchRepository
from matchplay.services.game_service import GameService
from matchplay.services.reaper import schedule_reaper

logger = logging.getLogger(__name__)

STATUS_CODES: dict[ErrorCode, int] = {
    ErrorCode.SESSION_NOT_FOUND: 404,
    ErrorCode.SESSION_NOT_ACTIVE: 409,
    ErrorCode.NOT_YOUR_TURN: 409,
    ErrorCode.CELL_OCCUPIED: 409,
    ErrorCode.INVALID_POSITION: 422,
    ErrorCode.INVALID_REQUEST: 422,
    ErrorCode.NOT_A_PARTICIPANT: 403,
    ErrorCode.STORE_UNAVAILABLE: 503,
}


def create_app(
    repository: Optional[MatchRepository] = None,
    settings: Optional[Settings] = None,
    clock: Clock = utc_now,
    run_reaper: bool = True,
) -> FastAPI:
    settings = settings if settings is not None else load_settings()
    configure_logging(settings.log_level)
    service = GameService(
        repository if repository is not None else create_repository(settings),
        settings,
        clock,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        scheduler = None
        if run_reaper:
            scheduler = schedule_reaper(service.reaper, settings.reaper_interval)
            scheduler.start()
            logger.info("Reaper scheduled every %ss", settings.reaper_interval)
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.shutdown(wait=False)
            logger.info("Stop Server")

    app = FastAPI(title="Matchplay API", lifespan=lifespan)
    app.state.service = service

    def get_service() -> GameService:
        return service

    @app.exception_handler(GameError)
    async def handle_game_error(request: Request, exc: GameError) -> JSONResponse:
        status_code = STATUS_CODES.get(exc.code, 400)
        if status_code >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
        payload = ErrorResponse(error=str(exc.code), message=str(exc))
        return JSONResponse(status_code=status_code, content=payload.model_dump())

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/matchmaking/join", response_model=JoinMatchmakingResponse)
    def join_matchmaking(
        payload: JoinMatchmakingRequest,
        game_service: GameService = Depends(get_service),
    ) -> JoinMatchmakingResponse:
        return game_service.join_matchmaking(payload)

    @app.post("/matchmaking/leave", response_model=AckResponse)
    def leave_matchmaking(
        payload: LeaveMatchmakingRequest,
        game_service: GameService = Depends(get_service),
    ) -> AckResponse:
        return game_service.leave_matchmaking(payload)

    @app.get("/participants/{participant_id}/game", response_model=SessionResponse)
    def get_my_game(
        participant_id: str,
        game_service: GameService = Depends(get_service),
    ) -> SessionResponse:
        return game_service.get_my_game(participant_id)

    @app.get("/sessions/{session_id}", response_model=SessionResponse)
    def get_session(
        session_id: str,
        game_service: GameService = Depends(get_service),
    ) -> SessionResponse:
        return game_service.get_session(session_id)

    @app.post("/sessions/{session_id}/moves", response_model=SessionResponse)
    def make_move(
        session_id: str,
        payload: MoveRequest,
        game_service: GameService = Depends(get_service),
    ) -> SessionResponse:
        return game_service.make_move(session_id, payload)

    @app.post("/sessions/{session_id}/end", response_model=AckResponse)
    def end_game(
        session_id: str,
        payload: EndGameRequest,
        game_service: GameService = Depends(get_service),
    ) -> AckResponse:
        return game_service.end_game(session_id, payload)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "matchplay.api.app:app",
        host=os.getenv("MATCHPLAY_HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8080")),
        reload=False,
    )
