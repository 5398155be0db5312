"""
Matchroom API и WebSocket.
"""
import logging

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from .config import get_config
from .coordinator import MatchCoordinator
from .rules import ChessRules
from .ws_handlers import ws_auth_and_loop
from .ws_manager import WSManager

logger = logging.getLogger(__name__)


def create_app(config=None) -> FastAPI:
    config = config or get_config()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    app = FastAPI(title="Matchroom API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Один координатор на приложение, доступен обработчикам через app.state
    coordinator = MatchCoordinator(ChessRules(), ready_check=config.ready_check)
    app.state.coordinator = coordinator
    app.state.ws_manager = WSManager(coordinator)
    logger.info("Matchroom: ready_check=%s", config.ready_check)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket):
        logger.info("WS: connection attempt from %s", ws.client)
        await ws_auth_and_loop(ws)

    return app


app = create_app()
