"""
Правила игры как внешняя зависимость партии.
ChessRules — реализация поверх python-chess, позиция хранится как FEN.
"""
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import chess

from .models import Outcome, OutcomeReason, Side

logger = logging.getLogger(__name__)

Position = Any
MoveDescriptor = Mapping[str, Any]


class RulesEngine(Protocol):
    def initial_position(self) -> Position: ...

    def apply(self, position: Position, move: MoveDescriptor) -> Position | None:
        """Новая позиция или None, если ход отклонён."""
        ...

    def terminal_status(self, position: Position) -> Outcome | None:
        """Исход, если позиция завершает партию, иначе None."""
        ...


_DRAW_TERMINATIONS = {
    chess.Termination.STALEMATE,
    chess.Termination.SEVENTYFIVE_MOVES,
}


def _side(color: chess.Color) -> Side:
    return Side.WHITE if color == chess.WHITE else Side.BLACK


class ChessRules:
    def __init__(self, starting_fen: str = chess.STARTING_FEN):
        self.starting_fen = starting_fen

    def initial_position(self) -> str:
        return self.starting_fen

    def apply(self, position: str, move: MoveDescriptor) -> str | None:
        from_sq = move.get("from")
        to_sq = move.get("to")
        if not from_sq or not to_sq:
            return None
        uci = from_sq + to_sq + (move.get("promotion") or "")
        try:
            parsed = chess.Move.from_uci(uci)
        except ValueError:
            logger.info("Rules: malformed move %s", uci)
            return None
        board = chess.Board(position)
        if parsed not in board.legal_moves:
            return None
        board.push(parsed)
        return board.fen()

    def terminal_status(self, position: str) -> Outcome | None:
        board = chess.Board(position)
        outcome = board.outcome()
        if outcome is None:
            # Счётчик полуходов есть в FEN: 50 ходов без взятий и ходов пешкой, это ничья без заявки
            if board.is_fifty_moves():
                return Outcome(winner=None, reason=OutcomeReason.DRAW)
            return None
        if outcome.termination == chess.Termination.CHECKMATE:
            return Outcome(winner=_side(outcome.winner), reason=OutcomeReason.CHECKMATE)
        if outcome.termination == chess.Termination.INSUFFICIENT_MATERIAL:
            return Outcome(winner=None, reason=OutcomeReason.INSUFFICIENT_MATERIAL)
        if outcome.termination in _DRAW_TERMINATIONS:
            return Outcome(winner=None, reason=OutcomeReason.DRAW)
        logger.warning("Rules: unexpected termination %s", outcome.termination)
        return Outcome(winner=None, reason=OutcomeReason.DRAW)
