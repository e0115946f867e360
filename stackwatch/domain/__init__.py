"""Domain models for the records exchanged with the docker CLI.

Usage:
    from stackwatch.domain import ServiceDescriptor, UpdateStatus, UpdateState

    status = UpdateStatus.model_validate({"State": "completed", "Message": "update completed"})
    status.state.is_terminal  # True
"""

from stackwatch.domain.service import (
    TERMINAL_STATES,
    ServiceDescriptor,
    ServiceMode,
    TrackedService,
    UpdateState,
    UpdateStatus,
)
from stackwatch.domain.verdict import (
    Outcome,
    WatchResult,
)

__all__ = [
    "TERMINAL_STATES",
    "Outcome",
    "ServiceDescriptor",
    "ServiceMode",
    "TrackedService",
    "UpdateState",
    "UpdateStatus",
    "WatchResult",
]
