"""Turn bookkeeping for turn-based games.

A ``TurnComponent`` is attached to each participant and announces the start and
end of its turn and the start of each round to any number of listeners, in the
order they were registered.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List

TurnListener = Callable[[], None]


@dataclass
class TurnComponent:
    """Broadcasts turn lifecycle notifications."""

    owner: str
    turn_start_listeners: List[TurnListener] = field(default_factory=list)
    turn_end_listeners: List[TurnListener] = field(default_factory=list)
    round_start_listeners: List[TurnListener] = field(default_factory=list)
    in_turn: bool = False

    def turn_start(self) -> None:
        self.in_turn = True
        for listener in list(self.turn_start_listeners):
            listener()

    def turn_end(self) -> None:
        self.in_turn = False
        for listener in list(self.turn_end_listeners):
            listener()

    def round_start(self) -> None:
        for listener in list(self.round_start_listeners):
            listener()
