"""
Result sinks.

The monitor reports diagnostics and its single verdict through a sink rather
than a host API, so it can run inside a pipeline task, a script or a test.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Protocol, TextIO, runtime_checkable

from stackwatch.core.logging import get_logger
from stackwatch.domain.verdict import Outcome, WatchResult

logger = get_logger("reporting")


@runtime_checkable
class ResultSink(Protocol):
    def info(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def complete(self, result: WatchResult) -> None: ...


class LoggingResultSink:
    """Routes diagnostics and the verdict to the stackwatch logger."""

    def __init__(self, name: str = "watch"):
        self._logger = get_logger(name)

    def info(self, message: str) -> None:
        self._logger.info(message)

    def warning(self, message: str) -> None:
        self._logger.warning(message)

    def error(self, message: str) -> None:
        self._logger.error(message)

    def complete(self, result: WatchResult) -> None:
        level = "info" if result.outcome is Outcome.SUCCEEDED else "warning"
        if result.outcome is Outcome.FAILED:
            level = "error"
        getattr(self._logger, level)(f"{result.outcome.value}: {result.message}")


def _escape_property(value: str) -> str:
    return (
        value.replace("%", "%AZP25")
        .replace(";", "%3B")
        .replace("]", "%5D")
        .replace("\r", "%0D")
        .replace("\n", "%0A")
    )


def _escape_message(value: str) -> str:
    return value.replace("%", "%AZP25").replace("\r", "%0D").replace("\n", "%0A")


class AzurePipelinesSink:
    """
    Reports through Azure Pipelines logging commands on stdout.

    Warnings and errors become `task.logissue` commands so they surface on the
    run summary, and the verdict becomes a single `task.complete` command.
    """

    def __init__(self, stream: TextIO | None = None):
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream or sys.stdout

    def _write(self, line: str) -> None:
        self.stream.write(line + "\n")
        self.stream.flush()

    def info(self, message: str) -> None:
        self._write(message)

    def warning(self, message: str) -> None:
        self._write(f"##vso[task.logissue type=warning]{_escape_message(message)}")

    def error(self, message: str) -> None:
        self._write(f"##vso[task.logissue type=error]{_escape_message(message)}")

    def complete(self, result: WatchResult) -> None:
        if result.outcome is Outcome.FAILED:
            self.error(result.message)
        self._write(
            f"##vso[task.complete result={_escape_property(result.outcome.value)};]"
            f"{_escape_message(result.message)}"
        )


@dataclass
class RecordingSink:
    """Keeps every line and the verdict in memory."""

    lines: list[tuple[str, str]] = field(default_factory=list)
    result: WatchResult | None = None
    completions: int = 0

    def info(self, message: str) -> None:
        self.lines.append(("info", message))

    def warning(self, message: str) -> None:
        self.lines.append(("warning", message))

    def error(self, message: str) -> None:
        self.lines.append(("error", message))

    def complete(self, result: WatchResult) -> None:
        self.result = result
        self.completions += 1

    def messages(self, level: str | None = None) -> list[str]:
        return [m for lvl, m in self.lines if level is None or lvl == level]


def build_sink(result_format: str) -> ResultSink:
    if result_format == "azure":
        return AzurePipelinesSink()
    if result_format == "log":
        return LoggingResultSink()
    raise ValueError(f"Unknown result format: {result_format}")
