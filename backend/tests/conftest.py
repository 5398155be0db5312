"""
Pytest will auto-discover / import this file called 'conftest.py'.
Fakes standing in for the transport and the rules engine, shared by the unit tests.
"""

from typing import Any

import pytest

from matchroom.coordinator import MatchCoordinator
from matchroom.models import DisplayData, Outcome, Participant
from matchroom.rules import ChessRules


class RecordingChannel:
    """Channel that keeps every outbound event instead of writing it to a socket."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def send(self, event: str, payload: dict[str, Any] | None = None) -> None:
        self.events.append((event, payload or {}))

    def names(self) -> list[str]:
        return [event for event, _ in self.events]

    def payloads(self, event: str) -> list[dict[str, Any]]:
        return [payload for name, payload in self.events if name == event]

    def last(self, event: str) -> dict[str, Any]:
        return self.payloads(event)[-1]

    def clear(self) -> None:
        self.events.clear()


class ScriptedRules:
    """
    Rules engine with integer positions.
    Every move is legal unless it carries "illegal"; positions listed in `terminal` end the match.
    """

    def __init__(self, terminal: dict[int, Outcome] | None = None) -> None:
        self.terminal = terminal or {}
        self.applied: list[Any] = []

    def initial_position(self) -> int:
        return 0

    def apply(self, position: int, move: Any) -> int | None:
        if move.get("illegal"):
            return None
        self.applied.append(move)
        return position + 1

    def terminal_status(self, position: int) -> Outcome | None:
        return self.terminal.get(position)


def make_participant(participant_id: str, name: str | None = None) -> Participant:
    return Participant(
        id=participant_id,
        display=DisplayData(name=name or participant_id.upper(), icon=f"{participant_id}.png"),
        channel=RecordingChannel(),
    )


@pytest.fixture
def white() -> Participant:
    return make_participant("w")


@pytest.fixture
def black() -> Participant:
    return make_participant("b")


@pytest.fixture
def scripted_rules() -> ScriptedRules:
    return ScriptedRules()


@pytest.fixture
def coordinator() -> MatchCoordinator:
    """Coordinator over the real chess rules with predictable session ids."""
    counter = iter(range(1, 1000))
    return MatchCoordinator(ChessRules(), session_id_factory=lambda: f"match-{next(counter)}")
