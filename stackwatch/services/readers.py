"""
Readers for stack inventory, service update status and task errors.

Each reader issues a single docker command through a `CommandTransport` and
decodes one JSON document per output line. A line that does not decode is
fatal: it means the engine speaks a format we do not understand.
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterable, Optional

from pydantic import TypeAdapter, ValidationError

from stackwatch.core.exceptions import DecodeError
from stackwatch.core.logging import get_logger
from stackwatch.domain.service import ServiceDescriptor, UpdateStatus
from stackwatch.services.transport import CommandTransport

logger = get_logger("readers")

# `docker service inspect` echoes identifiers that we compare on this prefix
ID_PREFIX_LENGTH = 12

# e.g. "update paused due to failure or early termination of task 9p8b7x0lq5kz"
TASK_ID_PATTERN = re.compile(r"early termination of task ([0-9A-Za-z]+)", re.IGNORECASE)

_status_line = TypeAdapter(dict[str, Optional[UpdateStatus]])
_task_error_line = TypeAdapter(dict[str, Optional[str]])


def truncate_id(identifier: str) -> str:
    """Key used to match services across commands.

    Two services sharing the same prefix would collide; swarm identifiers are
    random enough that this is not guarded against.
    """
    return identifier[:ID_PREFIX_LENGTH]


def extract_task_id(message: str | None) -> str | None:
    """Task identifier embedded in an update status message, if any."""
    if not message:
        return None
    match = TASK_ID_PATTERN.search(message)
    if match is None:
        return None
    return match.group(1)


def _load_json(line: str) -> Any:
    try:
        return json.loads(line)
    except json.JSONDecodeError as e:
        raise DecodeError(message=f"Invalid JSON in command output: {e}", line=line) from e


def decode_service(line: str) -> ServiceDescriptor:
    try:
        return ServiceDescriptor.model_validate(_load_json(line))
    except ValidationError as e:
        raise DecodeError(
            message=f"Unexpected service record: {e.error_count()} validation error(s)",
            line=line,
            details={"errors": e.errors(include_url=False)},
        ) from e


def decode_status_line(line: str) -> dict[str, UpdateStatus | None]:
    try:
        return _status_line.validate_python(_load_json(line))
    except ValidationError as e:
        raise DecodeError(
            message=f"Unexpected update status record: {e.error_count()} validation error(s)",
            line=line,
            details={"errors": e.errors(include_url=False)},
        ) from e


def decode_task_error_line(line: str) -> dict[str, str | None]:
    try:
        return _task_error_line.validate_python(_load_json(line))
    except ValidationError as e:
        raise DecodeError(
            message=f"Unexpected task error record: {e.error_count()} validation error(s)",
            line=line,
            details={"errors": e.errors(include_url=False)},
        ) from e


async def read_stack_services(
    transport: CommandTransport, stack_name: str
) -> list[ServiceDescriptor]:
    """Services currently belonging to `stack_name`, in CLI order."""
    lines = await transport.execute(
        ["stack", "services", stack_name, "--format", "{{json .}}"]
    )
    services = [decode_service(line) for line in lines]
    logger.debug(f"Inventory of {stack_name}: {len(services)} service(s)")
    return services


async def read_update_statuses(
    transport: CommandTransport, service_ids: Iterable[str]
) -> dict[str, UpdateStatus]:
    """
    Update status of every service in one `docker service inspect` call.

    Services reporting a null status have no update in progress and are left
    out of the result, as are services the engine did not report at all.
    """
    ids = list(service_ids)
    if not ids:
        raise ValueError("service_ids must not be empty")

    lines = await transport.execute(
        ["service", "inspect", *ids, "--format", "{ {{json .ID}}: {{json .UpdateStatus}} }"]
    )
    statuses: dict[str, UpdateStatus] = {}
    for line in lines:
        for service_id, status in decode_status_line(line).items():
            if status is not None:
                statuses[truncate_id(service_id)] = status
    return statuses


async def read_task_errors(
    transport: CommandTransport, task_ids: Iterable[str]
) -> dict[str, str]:
    """Error recorded on each task, keyed by its owning service."""
    ids = list(task_ids)
    if not ids:
        raise ValueError("task_ids must not be empty")

    lines = await transport.execute(
        ["inspect", *ids, "--format", "{ {{json .ServiceID}}: {{json .Status.Err}} }"]
    )
    errors: dict[str, str] = {}
    for line in lines:
        for service_id, error in decode_task_error_line(line).items():
            errors[truncate_id(service_id)] = error or ""
    return errors
