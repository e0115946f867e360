"""Watch verdict models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from stackwatch.domain.service import TrackedService


class Outcome(str, Enum):
    """Pipeline task result, named after the Azure Pipelines results."""

    SUCCEEDED = "Succeeded"
    SUCCEEDED_WITH_ISSUES = "SucceededWithIssues"
    FAILED = "Failed"

    @property
    def is_success(self) -> bool:
        return self is not Outcome.FAILED


class WatchResult(BaseModel):
    """Final verdict of a watch run."""

    outcome: Outcome
    message: str
    completed: list[TrackedService] = Field(default_factory=list)
    rolled_back: list[TrackedService] = Field(default_factory=list)
    paused: list[TrackedService] = Field(default_factory=list)

    @classmethod
    def failed(cls, message: str) -> "WatchResult":
        return cls(outcome=Outcome.FAILED, message=message)
