"""Swarm service domain models.

Type-safe representations of the records printed by the docker CLI for a
stack's services and their rolling-update status.
"""

from __future__ import annotations

import re
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Docker prints RFC 3339 timestamps with nanosecond precision
_FRACTION = re.compile(r"(\.\d{6})\d+")


class ServiceMode(str, Enum):
    """Scheduling mode of a service."""

    REPLICATED = "replicated"
    GLOBAL = "global"
    # Swarm jobs (engine 20.10+) run to completion instead of being kept up
    REPLICATED_JOB = "replicated job"
    GLOBAL_JOB = "global job"


class UpdateState(str, Enum):
    """Rollout phase reported by the orchestrator for a service update."""

    NEW = "new"
    UPDATING = "updating"
    PAUSED = "paused"
    COMPLETED = "completed"
    ROLLBACK_STARTED = "rollback_started"
    ROLLBACK_PAUSED = "rollback_paused"
    ROLLBACK_COMPLETED = "rollback_completed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES

    @property
    def needs_diagnosis(self) -> bool:
        """States whose message may name the task that stopped the rollout."""
        return self in (
            UpdateState.PAUSED,
            UpdateState.ROLLBACK_PAUSED,
            UpdateState.ROLLBACK_STARTED,
        )


TERMINAL_STATES = frozenset(
    {
        UpdateState.PAUSED,
        UpdateState.COMPLETED,
        UpdateState.ROLLBACK_PAUSED,
        UpdateState.ROLLBACK_COMPLETED,
    }
)


class ServiceDescriptor(BaseModel):
    """One service of a stack, as listed by `docker stack services`."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(..., alias="ID", min_length=1, description="Service identifier")
    name: str = Field(..., alias="Name", description="Service name")
    image: str = Field(default="", alias="Image", description="Image reference")
    mode: ServiceMode = Field(..., alias="Mode", description="Scheduling mode")
    replicas: str = Field(default="", alias="Replicas", description="Running/declared, e.g. 2/3")
    ports: str = Field(default="", alias="Ports", description="Published ports")

    @property
    def declared_replicas(self) -> int | None:
        """Declared replica count, the N in "x/N"."""
        _, sep, declared = self.replicas.partition("/")
        if not sep:
            return None
        # Swarm appends notes like "(max 1 per node)" to the count
        digits = declared.strip().split(" ", 1)[0]
        return int(digits) if digits.isdigit() else None

    @property
    def published_ports(self) -> list[str]:
        return [p.strip() for p in self.ports.split(",") if p.strip()]


class UpdateStatus(BaseModel):
    """The `UpdateStatus` block of `docker service inspect`.

    Replaced wholesale on every poll, never mutated.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    state: UpdateState = Field(..., alias="State")
    started_at: datetime | None = Field(default=None, alias="StartedAt")
    completed_at: datetime | None = Field(default=None, alias="CompletedAt")
    message: str = Field(default="", alias="Message")

    @field_validator("started_at", "completed_at", mode="before")
    @classmethod
    def trim_nanoseconds(cls, v):
        if isinstance(v, str):
            return _FRACTION.sub(r"\1", v)
        return v

    @field_validator("message", mode="before")
    @classmethod
    def null_message(cls, v):
        return "" if v is None else v


class TrackedService(BaseModel):
    """A service under watch: its descriptor and the last status observed."""

    descriptor: ServiceDescriptor
    status: UpdateStatus | None = None

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def is_settled(self) -> bool:
        """True when there is nothing left to wait for on this service.

        A service without any update status has nothing to roll out.
        """
        return self.status is None or self.status.state.is_terminal
