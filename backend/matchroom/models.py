"""
Общие типы: стороны, исход партии, участник и канал доставки событий.
"""
from dataclasses import asdict, dataclass
from enum import StrEnum
from typing import Any, Protocol


class Side(StrEnum):
    WHITE = "white"  # ходит первым
    BLACK = "black"

    @property
    def opponent(self) -> "Side":
        return Side.BLACK if self is Side.WHITE else Side.WHITE


class OutcomeReason(StrEnum):
    CHECKMATE = "checkmate"
    RESIGN = "resign"
    TIME = "time"
    DRAW = "draw"
    INSUFFICIENT_MATERIAL = "insufficient_material"
    ABANDONED = "abandoned"


@dataclass(frozen=True)
class Outcome:
    winner: Side | None
    reason: OutcomeReason

    def to_payload(self) -> dict[str, str | None]:
        return {
            "winner": self.winner.value if self.winner else None,
            "reason": self.reason.value,
        }


class Channel(Protocol):
    """
    Исходящий канал к одному подключённому игроку.
    send не блокирует: доставка — забота транспорта.
    """

    def send(self, event: str, payload: dict[str, Any] | None = None) -> None: ...


@dataclass(frozen=True)
class DisplayData:
    name: str
    icon: str = ""

    def to_payload(self) -> dict[str, str]:
        return asdict(self)


@dataclass(eq=False)
class Participant:
    id: str
    display: DisplayData
    channel: Channel

    def send(self, event: str, payload: dict[str, Any] | None = None) -> None:
        self.channel.send(event, payload)
