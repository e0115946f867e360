"""Pytest configuration and fixtures."""

from __future__ import annotations

import json
from typing import Any, Sequence

import pytest

from stackwatch.services.reporting import RecordingSink


def service_line(
    service_id: str,
    name: str,
    image: str = "nginx:latest",
    mode: str = "replicated",
    replicas: str = "1/1",
    ports: str = "",
) -> str:
    """One line of `docker stack services --format '{{json .}}'`."""
    return json.dumps(
        {
            "ID": service_id,
            "Image": image,
            "Mode": mode,
            "Name": name,
            "Ports": ports,
            "Replicas": replicas,
        }
    )


def status_line(service_id: str, state: str | None, message: str = "") -> str:
    """One line of the `docker service inspect` status query."""
    if state is None:
        return json.dumps({service_id: None})
    return json.dumps(
        {
            service_id: {
                "State": state,
                "StartedAt": "2024-03-05T10:11:12.123456789Z",
                "CompletedAt": "2024-03-05T10:12:00Z" if state.endswith("completed") else None,
                "Message": message,
            }
        }
    )


def task_error_line(service_id: str, error: str | None) -> str:
    return json.dumps({service_id: error})


class FakeTransport:
    """
    Scripted docker CLI.

    `status_rounds` is consumed one entry per status query; the last entry is
    repeated once exhausted. An entry that is an exception is raised instead.
    """

    def __init__(
        self,
        inventory: list[str] | Exception | None = None,
        status_rounds: list[Any] | None = None,
        task_errors: dict[str, Any] | None = None,
    ):
        self.inventory = inventory if inventory is not None else []
        self.status_rounds = list(status_rounds or [])
        self.task_errors = task_errors or {}
        self.calls: list[list[str]] = []
        self._round = 0

    def calls_for(self, *prefix: str) -> list[list[str]]:
        return [c for c in self.calls if c[: len(prefix)] == list(prefix)]

    async def execute(self, args: Sequence[str]) -> list[str]:
        args = list(args)
        self.calls.append(args)

        if args[:2] == ["stack", "services"]:
            return self._answer(self.inventory)

        if args[:2] == ["service", "inspect"]:
            if not self.status_rounds:
                return []
            index = min(self._round, len(self.status_rounds) - 1)
            self._round += 1
            return self._answer(self.status_rounds[index])

        if args[0] == "inspect":
            lines = []
            for task_id in args[1:-2]:
                lines.extend(self._answer(self.task_errors.get(task_id, [])))
            return lines

        raise AssertionError(f"Unexpected command: {args}")

    @staticmethod
    def _answer(entry: Any) -> list[str]:
        if isinstance(entry, Exception):
            raise entry
        return list(entry)


class SleepRecorder:
    """Stands in for asyncio.sleep without letting time pass."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()
