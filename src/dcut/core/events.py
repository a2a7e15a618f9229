"""Progress events for a generation run.

``run_generation`` reports progress through a plain callback; the CLI
turns finished stages into one status line each.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

# In the order a run goes through them
STAGES = ("parse", "resolve", "compose", "audio", "process", "concat", "cleanup")


@dataclass
class PipelineEvent:
    """One progress update.

    Attributes:
        stage: One of ``STAGES``.
        progress: Progress within this stage, 0.0 to 1.0.
        message: Human-readable status message.
        data: Optional payload (segment counts, output path, workspace).
    """

    stage: str
    progress: float
    message: str
    data: dict | None = field(default=None)

    @property
    def step(self) -> int:
        """1-based position of the stage in ``STAGES``; 0 for unknown stages."""
        return STAGES.index(self.stage) + 1 if self.stage in STAGES else 0

    @property
    def finished(self) -> bool:
        return self.progress >= 1.0


EventCallback = Callable[[PipelineEvent], None]
