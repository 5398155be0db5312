"""
Менеджер WebSocket: подключения по player_id и исходящие каналы.
Каждый канал пишет в сокет из своей задачи, поэтому send не блокирует логику партий.
"""
import asyncio
import logging
from typing import Any

from fastapi import WebSocket

from .constants import CLOSE_BACKLOG, CLOSE_REPLACED
from .coordinator import MatchCoordinator

logger = logging.getLogger(__name__)

OUTBOX_LIMIT = 256


class WebSocketChannel:
    def __init__(self, ws: WebSocket, user_id: str, outbox_limit: int = OUTBOX_LIMIT):
        self.ws = ws
        self.user_id = user_id
        self._outbox: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue(maxsize=outbox_limit)
        self._closed = False
        self._writer: asyncio.Task | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        self._writer = asyncio.create_task(self._drain())

    def send(self, event: str, payload: dict[str, Any] | None = None) -> None:
        if self._closed:
            logger.debug("WS: %s to closed channel %s dropped", event, self.user_id)
            return
        logger.debug("WS: -> %s %s %s", self.user_id, event, payload or {})
        try:
            self._outbox.put_nowait({"type": event, **(payload or {})})
        except asyncio.QueueFull:
            # Клиент не читает: закрываем сокет, дальше сработает обычная обработка отключения
            logger.warning("WS: outbox of %s is full, closing %d", self.user_id, CLOSE_BACKLOG)
            self._abort()
            asyncio.get_running_loop().create_task(self._close_socket(CLOSE_BACKLOG))

    async def _drain(self) -> None:
        while True:
            msg = await self._outbox.get()
            if msg is None:
                return
            try:
                await self.ws.send_json(msg)
            except Exception as e:
                # Повторов нет: потерю соединения обработает цикл приёма
                logger.warning("WS: send to %s failed: %s", self.user_id, e)
                self._closed = True
                return

    def _abort(self) -> None:
        self._closed = True
        if self._writer:
            self._writer.cancel()

    async def _close_socket(self, code: int) -> None:
        try:
            await self.ws.close(code=code)
        except Exception as e:
            logger.debug("WS: close %s: %s", self.user_id, e)

    async def close(self, code: int | None = None) -> None:
        """Дописать очередь и остановить writer; с code — закрыть сокет."""
        if not self._closed:
            self._closed = True
            try:
                self._outbox.put_nowait(None)
            except asyncio.QueueFull:
                self._abort()
        if self._writer:
            await asyncio.wait({self._writer})
        if code is not None:
            await self._close_socket(code)


class WSManager:
    def __init__(self, coordinator: MatchCoordinator):
        self.coordinator = coordinator
        self._by_user: dict[str, WebSocketChannel] = {}

    def get(self, user_id: str) -> WebSocketChannel | None:
        return self._by_user.get(user_id)

    def is_current(self, channel: WebSocketChannel) -> bool:
        return self._by_user.get(channel.user_id) is channel

    async def connect(self, ws: WebSocket, user_id: str) -> WebSocketChannel:
        old = self._by_user.pop(user_id, None)
        if old:
            # Новое подключение с тем же id вытесняет старое
            logger.info("WS: %s reconnected, closing previous connection", user_id)
            self.coordinator.on_participant_lost(user_id)
            await old.close(code=CLOSE_REPLACED)
        channel = WebSocketChannel(ws, user_id)
        channel.start()
        self._by_user[user_id] = channel
        self.coordinator.connect(user_id, channel)
        return channel

    async def disconnect(self, channel: WebSocketChannel) -> None:
        if self.is_current(channel):
            del self._by_user[channel.user_id]
            self.coordinator.on_participant_lost(channel.user_id)
        await channel.close()
