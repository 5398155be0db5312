"""
Очередь ожидания и реестр партий (in-memory).
Пары составляются по порядку прихода: первый в очереди играет белыми.
"""
import logging
import uuid
from collections.abc import Callable
from typing import Any

from .constants import MATCH_ACTIONS, QUEUE_COUNT, QUEUE_JOINED, QUEUE_LEFT
from .models import Channel, Participant
from .rules import RulesEngine
from .session import MatchSession

logger = logging.getLogger(__name__)


def _new_session_id() -> str:
    return str(uuid.uuid4())


class MatchCoordinator:
    def __init__(
        self,
        rules: RulesEngine,
        ready_check: bool = False,
        session_id_factory: Callable[[], str] = _new_session_id,
    ):
        self.rules = rules
        self.ready_check = ready_check
        self._new_session_id = session_id_factory
        self._queue: list[Participant] = []
        self._sessions: dict[str, MatchSession] = {}
        self._session_by_player: dict[str, str] = {}
        self._connected: dict[str, Channel] = {}

    # --- Подключения ---
    def connect(self, participant_id: str, channel: Channel) -> None:
        """Зарегистрировать канал для рассылки размера очереди."""
        self._connected[participant_id] = channel
        channel.send(QUEUE_COUNT, {"count": len(self._queue)})

    def on_participant_lost(self, participant_id: str) -> None:
        """Соединение закрыто: убрать из очереди или засчитать уход из партии."""
        self.withdraw(participant_id)
        session = self.session_for(participant_id)
        if session is not None:
            side = session.side_of(participant_id)
            if side is not None:
                session.abandon(side)
        self._connected.pop(participant_id, None)

    # --- Очередь ---
    @property
    def queue_length(self) -> int:
        return len(self._queue)

    @property
    def queued_ids(self) -> list[str]:
        return [p.id for p in self._queue]

    def is_queued(self, participant_id: str) -> bool:
        return any(p.id == participant_id for p in self._queue)

    def admit(self, participant: Participant) -> bool:
        """
        Поставить в очередь и сразу составить пары.
        Повторный вход (уже в очереди или в партии) ничего не делает.
        """
        if self.is_queued(participant.id) or participant.id in self._session_by_player:
            logger.info("Queue: duplicate join from %s ignored", participant.id)
            return False
        self._connected.setdefault(participant.id, participant.channel)
        self._queue.append(participant)
        logger.info("Queue: %s (%s) joined, size=%d", participant.id, participant.display.name, len(self._queue))
        participant.send(QUEUE_JOINED)
        self._pair()
        self.broadcast_queue_count()
        return True

    def withdraw(self, participant_id: str) -> bool:
        """Убрать из очереди. Возвращает True если был в очереди."""
        for i, p in enumerate(self._queue):
            if p.id == participant_id:
                self._queue.pop(i)
                logger.info("Queue: %s left, size=%d", participant_id, len(self._queue))
                p.send(QUEUE_LEFT)
                self.broadcast_queue_count()
                return True
        return False

    def broadcast_queue_count(self) -> None:
        payload = {"count": len(self._queue)}
        for channel in list(self._connected.values()):
            channel.send(QUEUE_COUNT, payload)

    def _pair(self) -> None:
        while len(self._queue) >= 2:
            white = self._queue.pop(0)
            black = self._queue.pop(0)
            session = MatchSession(
                self._new_session_id(),
                white,
                black,
                self.rules,
                on_complete=self.reclaim,
                ready_check=self.ready_check,
            )
            self._sessions[session.id] = session
            self._session_by_player[white.id] = session.id
            self._session_by_player[black.id] = session.id
            logger.info("Queue: paired %s (white) vs %s (black) in %s", white.id, black.id, session.id)

    # --- Партии ---
    def get_session(self, session_id: str) -> MatchSession | None:
        return self._sessions.get(session_id)

    def session_for(self, participant_id: str) -> MatchSession | None:
        session_id = self._session_by_player.get(participant_id)
        return self._sessions.get(session_id) if session_id else None

    @property
    def live_sessions(self) -> list[MatchSession]:
        return list(self._sessions.values())

    def dispatch_action(self, participant_id: str, action: str, payload: Any = None) -> None:
        """Передать действие в партию игрока. Нет партии — действие отбрасывается."""
        if action not in MATCH_ACTIONS:
            logger.warning("Queue: %s is not a match action (from %s)", action, participant_id)
            return
        session = self.session_for(participant_id)
        if session is None:
            logger.debug("Queue: %s from %s dropped, no live match", action, participant_id)
            return
        side = session.side_of(participant_id)
        if side is None:
            return
        session.handle(side, action, payload)

    def reclaim(self, session_id: str) -> bool:
        """Удалить партию из реестра. Повторный вызов безопасен."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        for pid in session.participant_ids():
            if self._session_by_player.get(pid) == session_id:
                del self._session_by_player[pid]
        logger.info("Queue: match %s reclaimed", session_id)
        return True
