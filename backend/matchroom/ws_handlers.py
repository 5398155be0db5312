"""
Обработка сообщений WebSocket: auth, join_queue, leave_queue и действия в партии.
Разбор JSON и валидация здесь; решения принимает координатор.
"""
import json
import logging

from fastapi import WebSocket
from pydantic import ValidationError
from starlette.websockets import WebSocketDisconnect

from .constants import (
    AUTH,
    CLOSE_AUTH_FAILED,
    CLOSE_EXPECTED_AUTH,
    ERROR,
    JOIN_QUEUE,
    LEAVE_QUEUE,
    MAKE_MOVE,
    MATCH_ACTIONS,
)
from .coordinator import MatchCoordinator
from .models import DisplayData, Participant
from .schemas import AuthMessage, JoinQueueMessage, MoveMessage
from .ws_manager import WebSocketChannel, WSManager

logger = logging.getLogger(__name__)


def _default_name(user_id: str) -> str:
    return f"player_{user_id[:8]}"


def _reject(channel: WebSocketChannel, message: str) -> None:
    channel.send(ERROR, {"message": message})


def handle_ws_message(raw: str, channel: WebSocketChannel, coordinator: MatchCoordinator) -> None:
    """Обрабатывает одно сообщение от клиента, уже прошедшего auth."""
    user_id = channel.user_id
    if channel.closed:
        # Канал вытеснен новым подключением или закрыт: сообщение уже некому обслуживать
        logger.info("WS: message from %s on closed channel dropped", user_id)
        return
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("WS: invalid JSON from %s: %s", user_id, e)
        _reject(channel, "invalid JSON")
        return
    if not isinstance(data, dict):
        _reject(channel, "message must be an object")
        return
    t = data.get("type")
    logger.info("WS: msg from %s type=%s", user_id, t)
    if t == JOIN_QUEUE:
        try:
            msg = JoinQueueMessage.model_validate(data)
        except ValidationError as e:
            logger.warning("WS: bad join_queue from %s: %s", user_id, e)
            _reject(channel, "invalid join_queue payload")
            return
        display = DisplayData(name=msg.name.strip() or _default_name(user_id), icon=msg.icon)
        coordinator.admit(Participant(id=user_id, display=display, channel=channel))
        return
    if t == LEAVE_QUEUE:
        coordinator.withdraw(user_id)
        return
    if t == MAKE_MOVE:
        try:
            move = MoveMessage.model_validate(data)
        except ValidationError as e:
            logger.warning("WS: bad make_move from %s: %s", user_id, e)
            _reject(channel, "invalid make_move payload")
            return
        coordinator.dispatch_action(user_id, MAKE_MOVE, move.descriptor())
        return
    if t in MATCH_ACTIONS:
        coordinator.dispatch_action(user_id, t)
        return
    logger.warning("WS: unknown message type %s from %s", t, user_id)
    _reject(channel, f"unknown message type {t!r}")


async def _authenticate(ws: WebSocket) -> str | None:
    """Первое сообщение — auth с player_id. None, если сокет закрыт."""
    raw = await ws.receive_text()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        data = None
    msg_type = data.get("type") if isinstance(data, dict) else None
    logger.info("WS: first message type=%s", msg_type)
    if msg_type != AUTH:
        logger.warning("WS: expected auth, got %s, closing %d", msg_type, CLOSE_EXPECTED_AUTH)
        await ws.close(code=CLOSE_EXPECTED_AUTH)
        return None
    try:
        auth = AuthMessage.model_validate(data)
    except ValidationError:
        logger.warning("WS: auth failed (missing player_id)")
        await ws.close(code=CLOSE_AUTH_FAILED)
        return None
    return auth.player_id


async def ws_auth_and_loop(ws: WebSocket) -> None:
    """
    Первое сообщение — auth. Дальше цикл приёма сообщений до отключения.
    """
    manager: WSManager = ws.app.state.ws_manager
    channel = None
    try:
        await ws.accept()
        logger.info("WS: accepted, waiting for auth")
        user_id = await _authenticate(ws)
        if user_id is None:
            return
        channel = await manager.connect(ws, user_id)
        logger.info("WS: auth ok player_id=%s", user_id)
        while True:
            msg = await ws.receive_text()
            if not manager.is_current(channel):
                logger.info("WS: connection of %s was replaced, stopping", user_id)
                break
            handle_ws_message(msg, channel, manager.coordinator)
    except WebSocketDisconnect as e:
        logger.info(
            "WS: client disconnected code=%s reason=%s player_id=%s",
            e.code, e.reason or "", channel.user_id if channel else None,
        )
    except Exception as e:
        logger.exception("WS: error player_id=%s: %s", channel.user_id if channel else None, e)
    finally:
        if channel:
            await manager.disconnect(channel)
            logger.info("WS: disconnected player_id=%s", channel.user_id)
