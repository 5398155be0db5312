"""
Одна партия между двумя игроками: передача ходов, сдача, ничья, уход соперника.
Партия завершается ровно один раз, после чего сообщает владельцу через on_complete.
"""
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from .constants import (
    DRAW_ACCEPTED,
    DRAW_DECLINED,
    DRAW_OFFERED,
    MAKE_MOVE,
    MATCH_FOUND,
    MATCH_OVER,
    MOVE_MADE,
    MOVE_REJECTED,
    OFFER_DRAW,
    OPPONENT_TURN,
    READY,
    RESIGN,
    YOUR_TURN,
)
from .models import Outcome, OutcomeReason, Participant, Side
from .rules import Position, RulesEngine

logger = logging.getLogger(__name__)


class MatchState(StrEnum):
    AWAITING_START = "awaiting_start"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


@dataclass
class _Live:
    players: dict[Side, Participant]
    position: Position
    to_move: Side = Side.WHITE
    started: bool = False
    ready: set[Side] = field(default_factory=set)
    draw_offered_by: Side | None = None


@dataclass(frozen=True)
class _Finished:
    outcome: Outcome
    # Только id: участники и каналы после завершения не хранятся
    participant_ids: tuple[str, ...] = ()


class MatchSession:
    def __init__(
        self,
        session_id: str,
        white: Participant,
        black: Participant,
        rules: RulesEngine,
        on_complete: Callable[[str], Any] | None = None,
        ready_check: bool = False,
    ):
        self.id = session_id
        self.rules = rules
        self.ready_check = ready_check
        self._on_complete = on_complete
        self._state: _Live | _Finished = _Live(
            players={Side.WHITE: white, Side.BLACK: black},
            position=rules.initial_position(),
        )
        self._handlers: dict[str, Callable[[_Live, Side, Any], None]] = {
            READY: self._on_ready,
            MAKE_MOVE: self._on_move,
            RESIGN: self._on_resign,
            OFFER_DRAW: self._on_offer_draw,
            DRAW_ACCEPTED: self._on_draw_accepted,
            DRAW_DECLINED: self._on_draw_declined,
        }
        self._announce()
        if not ready_check:
            self._start()

    # --- Состояние ---
    @property
    def state(self) -> MatchState:
        if isinstance(self._state, _Finished):
            return MatchState.COMPLETE
        return MatchState.IN_PROGRESS if self._state.started else MatchState.AWAITING_START

    @property
    def completed(self) -> bool:
        return isinstance(self._state, _Finished)

    @property
    def outcome(self) -> Outcome | None:
        return self._state.outcome if isinstance(self._state, _Finished) else None

    @property
    def position(self) -> Position | None:
        return self._state.position if isinstance(self._state, _Live) else None

    @property
    def to_move(self) -> Side | None:
        return self._state.to_move if isinstance(self._state, _Live) else None

    @property
    def draw_offered_by(self) -> Side | None:
        return self._state.draw_offered_by if isinstance(self._state, _Live) else None

    def side_of(self, participant_id: str) -> Side | None:
        """Сторона игрока в живой партии; None после завершения."""
        if not isinstance(self._state, _Live):
            return None
        for side, p in self._state.players.items():
            if p.id == participant_id:
                return side
        return None

    def participant_ids(self) -> list[str]:
        if isinstance(self._state, _Finished):
            return list(self._state.participant_ids)
        return [p.id for p in self._state.players.values()]

    # --- Входящие действия ---
    def handle(self, side: Side, action: str, payload: Any = None) -> None:
        """Действие игрока. После завершения партии — ничего не делает."""
        live = self._state
        if not isinstance(live, _Live):
            logger.debug("Match %s: %s from %s after completion ignored", self.id, action, side)
            return
        handler = self._handlers.get(action)
        if handler is None:
            logger.warning("Match %s: unknown action %s from %s", self.id, action, side)
            return
        handler(live, side, payload)

    def resign(self, side: Side) -> None:
        self.handle(side, RESIGN)

    def abandon(self, side: Side) -> None:
        """Игрок side отключился — победа оставшейся стороны."""
        if self.completed:
            return
        logger.info("Match %s: %s abandoned", self.id, side)
        self._finish(Outcome(winner=side.opponent, reason=OutcomeReason.ABANDONED))

    def _on_ready(self, live: _Live, side: Side, _payload: Any) -> None:
        if live.started:
            return
        live.ready.add(side)
        logger.info("Match %s: %s ready (%d/2)", self.id, side, len(live.ready))
        if len(live.ready) == 2:
            self._start()

    def _on_move(self, live: _Live, side: Side, move: Any) -> None:
        if not live.started or side != live.to_move:
            logger.debug("Match %s: out-of-turn move from %s discarded", self.id, side)
            return
        actor = live.players[side]
        new_position = self.rules.apply(live.position, move) if isinstance(move, Mapping) else None
        if new_position is None:
            logger.info("Match %s: move %s from %s rejected", self.id, move, side)
            actor.send(MOVE_REJECTED, {"move": move})
            return
        live.position = new_position
        live.to_move = side.opponent
        payload = {"move": dict(move), "position": new_position}
        for p in live.players.values():
            p.send(MOVE_MADE, payload)
        outcome = self.rules.terminal_status(new_position)
        if outcome is not None:
            self._finish(outcome)
            return
        self._notify_turn(live)

    def _on_resign(self, live: _Live, side: Side, _payload: Any) -> None:
        logger.info("Match %s: %s resigned", self.id, side)
        self._finish(Outcome(winner=side.opponent, reason=OutcomeReason.RESIGN))

    def _on_offer_draw(self, live: _Live, side: Side, _payload: Any) -> None:
        if not live.started or live.draw_offered_by is not None:
            return
        live.draw_offered_by = side
        logger.info("Match %s: %s offered a draw", self.id, side)
        live.players[side.opponent].send(DRAW_OFFERED)

    def _on_draw_accepted(self, live: _Live, side: Side, _payload: Any) -> None:
        # Ответить может только тот, кому предложили
        if live.draw_offered_by != side.opponent:
            return
        logger.info("Match %s: draw accepted by %s", self.id, side)
        self._finish(Outcome(winner=None, reason=OutcomeReason.DRAW))

    def _on_draw_declined(self, live: _Live, side: Side, _payload: Any) -> None:
        if live.draw_offered_by != side.opponent:
            return
        live.draw_offered_by = None
        logger.info("Match %s: draw declined by %s", self.id, side)
        live.players[side.opponent].send(DRAW_DECLINED)

    # --- Внутреннее ---
    def _announce(self) -> None:
        live = self._state
        for side, p in live.players.items():
            p.send(MATCH_FOUND, {
                "match_id": self.id,
                "side": side.value,
                "opponent": live.players[side.opponent].display.to_payload(),
                "position": live.position,
            })

    def _start(self) -> None:
        live = self._state
        live.started = True
        logger.info("Match %s: started", self.id)
        self._notify_turn(live)

    def _notify_turn(self, live: _Live) -> None:
        live.players[live.to_move].send(YOUR_TURN)
        live.players[live.to_move.opponent].send(OPPONENT_TURN)

    def _finish(self, outcome: Outcome) -> None:
        live = self._state
        if not isinstance(live, _Live):
            return
        # Сначала фиксируем завершение: повторные вызовы ниже уже ничего не сделают
        self._state = _Finished(outcome, tuple(p.id for p in live.players.values()))
        payload = {"outcome": outcome.to_payload()}
        for p in live.players.values():
            p.send(MATCH_OVER, payload)
        logger.info("Match %s: over, winner=%s reason=%s", self.id, outcome.winner, outcome.reason)
        if self._on_complete:
            self._on_complete(self.id)
