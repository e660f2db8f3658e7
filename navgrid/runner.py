"""
Frame loop for several movement executors.

Fully decoupled from rendering and input; the embedding game decides when a frame
happens and how long it lasted.

Each frame:
1. Tick every executor once, in registration order
2. Invoke frame listeners with (frame, delta_time, moving_agent_ids)
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from .logging_utils import log_info
from .movement.executor import GridMovementExecutor


FrameListener = Callable[[int, float, List[str]], None]


class MovementLoop:
    """Drives executors once per frame."""

    def __init__(
        self,
        executors: Optional[List[GridMovementExecutor]] = None,
        frame_listeners: Optional[List[FrameListener]] = None,
    ):
        """Initialize the loop.

        Args:
            executors: Executors to drive; agent ids must be unique
            frame_listeners: Optional callables invoked after each frame for
                analysis or logging. Each listener receives
                (frame, delta_time, ids of agents still moving).
        """
        self.executors: Dict[str, GridMovementExecutor] = {}
        for executor in executors or []:
            self.add(executor)
        self.frame_listeners = frame_listeners or []
        self.frame = 0

    def add(self, executor: GridMovementExecutor) -> None:
        if executor.agent_id in self.executors:
            raise ValueError(f"Duplicate agent id {executor.agent_id!r}")
        self.executors[executor.agent_id] = executor

    def remove(self, agent_id: str) -> None:
        self.executors.pop(agent_id, None)

    def moving_agents(self) -> List[str]:
        return [agent_id for agent_id, ex in self.executors.items() if ex.is_moving]

    def tick(self, delta_time: float) -> List[str]:
        """Run one frame; returns ids of agents still moving afterwards."""
        self.frame += 1
        for executor in list(self.executors.values()):
            executor.tick(delta_time)
        moving = self.moving_agents()
        for listener in self.frame_listeners:
            listener(self.frame, delta_time, moving)
        return moving

    def run_until_idle(self, delta_time: float, max_frames: int = 10_000) -> int:
        """Tick until nobody is moving or ``max_frames`` ran. Returns frames run."""
        frames = 0
        while frames < max_frames and self.moving_agents():
            self.tick(delta_time)
            frames += 1
        log_info(f"Movement loop ran {frames} frames")
        return frames
