"""Pipeline status values tracked by the upload orchestrator."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class PipelineStatus(Enum):
    """Phases of a single upload attempt."""

    IDLE = "idle"
    UPLOADING = "uploading"
    RESOLVED = "resolved"
    NOTIFYING = "notifying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (PipelineStatus.SUCCEEDED, PipelineStatus.FAILED)

    @property
    def in_progress(self) -> bool:
        return self in (PipelineStatus.UPLOADING, PipelineStatus.RESOLVED, PipelineStatus.NOTIFYING)


ALLOWED_TRANSITIONS: dict[PipelineStatus, frozenset[PipelineStatus]] = {
    PipelineStatus.IDLE: frozenset({PipelineStatus.UPLOADING, PipelineStatus.FAILED}),
    PipelineStatus.UPLOADING: frozenset({PipelineStatus.RESOLVED, PipelineStatus.FAILED}),
    PipelineStatus.RESOLVED: frozenset({PipelineStatus.NOTIFYING, PipelineStatus.FAILED}),
    PipelineStatus.NOTIFYING: frozenset({PipelineStatus.SUCCEEDED, PipelineStatus.FAILED}),
    PipelineStatus.SUCCEEDED: frozenset({PipelineStatus.IDLE}),
    PipelineStatus.FAILED: frozenset({PipelineStatus.IDLE}),
}


@dataclass(frozen=True)
class PipelineState:
    status: PipelineStatus = PipelineStatus.IDLE
    reason: Optional[str] = None

    def can_transition_to(self, target: PipelineStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self.status]
