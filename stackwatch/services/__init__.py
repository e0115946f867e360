"""Stack watching services: transport, readers, monitor and result sinks."""

from stackwatch.services.monitor import ConvergenceMonitor
from stackwatch.services.reporting import (
    AzurePipelinesSink,
    LoggingResultSink,
    RecordingSink,
    ResultSink,
    build_sink,
)
from stackwatch.services.transport import CommandTransport, DockerCLITransport

__all__ = [
    "AzurePipelinesSink",
    "CommandTransport",
    "ConvergenceMonitor",
    "DockerCLITransport",
    "LoggingResultSink",
    "RecordingSink",
    "ResultSink",
    "build_sink",
]
