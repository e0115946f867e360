"""
Convergence monitor for a swarm stack rollout.

Polls the update status of every service of a stack until each one has
settled (completed, paused, rolled back, or never had an update), then
renders a single verdict through a `ResultSink`.

Usage:
    monitor = ConvergenceMonitor("web", transport, sink)
    result = await monitor.run()
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from stackwatch.core.exceptions import AppException
from stackwatch.core.logging import get_logger
from stackwatch.domain.service import TrackedService, UpdateState, UpdateStatus
from stackwatch.domain.verdict import Outcome, WatchResult
from stackwatch.services.readers import (
    extract_task_id,
    read_stack_services,
    read_task_errors,
    read_update_statuses,
    truncate_id,
)
from stackwatch.services.reporting import ResultSink
from stackwatch.services.transport import CommandTransport

logger = get_logger("monitor")

DEFAULT_POLL_INTERVAL = 0.1

SleepFunc = Callable[[float], Awaitable[None]]


class ConvergenceMonitor:
    """
    Watches one stack until every tracked service has settled.

    The set of tracked services is fixed by `seed()`. Each `poll_once()`
    fetches all statuses in one command, records transitions, and looks up
    the failing task when a service pauses or starts rolling back.
    """

    def __init__(
        self,
        stack_name: str,
        transport: CommandTransport,
        sink: ResultSink,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        sleep: SleepFunc | None = None,
    ):
        if not stack_name:
            raise ValueError("stack_name must not be empty")
        self.stack_name = stack_name
        self.transport = transport
        self.sink = sink
        self.poll_interval = poll_interval
        self._sleep = sleep or asyncio.sleep
        self.services: dict[str, TrackedService] = {}
        self.cycles = 0
        self._rejected: set[tuple[str, UpdateState]] = set()

    async def seed(self) -> int:
        """Take the inventory of the stack. Returns the number of services."""
        descriptors = await read_stack_services(self.transport, self.stack_name)
        self.services = {
            truncate_id(d.id): TrackedService(descriptor=d) for d in descriptors
        }
        return len(self.services)

    async def poll_once(self) -> list[str]:
        """
        Run one poll cycle. Returns the keys of services that transitioned.

        Transport and decode failures propagate to the caller.
        """
        self.cycles += 1
        statuses = await read_update_statuses(self.transport, list(self.services))
        transitioned: list[str] = []

        for key, status in statuses.items():
            service = self.services.get(key)
            if service is None:
                logger.debug(f"Ignoring status for untracked service {key}")
                continue
            if self._apply(key, service, status):
                transitioned.append(key)
                if status.state.needs_diagnosis:
                    await self._report_task_error(key, service, status)

        logger.debug(
            f"Cycle {self.cycles}: {len(statuses)} status(es), {len(transitioned)} transition(s)"
        )
        return transitioned

    def _apply(self, key: str, service: TrackedService, status: UpdateStatus) -> bool:
        """Record `status` on `service`. Returns True on a state transition."""
        previous = service.status

        if previous is not None and previous.state.is_terminal:
            if not status.state.is_terminal:
                if (key, status.state) not in self._rejected:
                    self._rejected.add((key, status.state))
                    self.sink.warning(
                        f"Service {service.name} reported {status.state.value} after "
                        f"{previous.state.value}; keeping {previous.state.value}."
                    )
                return False
            if status.state != previous.state:
                self.sink.warning(
                    f"Service {service.name} moved from {previous.state.value} "
                    f"to {status.state.value} after settling."
                )

        transitioning = previous is None or previous.state != status.state
        service.status = status
        if transitioning:
            self.sink.info(f"Service {service.name} transitioning to {status.state.value}.")
        return transitioning

    async def _report_task_error(
        self, key: str, service: TrackedService, status: UpdateStatus
    ) -> None:
        task_id = extract_task_id(status.message)
        if task_id is None:
            return
        try:
            errors = await read_task_errors(self.transport, [task_id])
        except AppException as e:
            self.sink.warning(
                f"Could not read error of task {task_id} for service {service.name}: {e.message}"
            )
            return
        error = errors.get(key)
        if error:
            self.sink.error(error)
        else:
            self.sink.warning(
                f"Task {task_id} of service {service.name} has no recorded error."
            )

    def is_converged(self) -> bool:
        return all(service.is_settled for service in self.services.values())

    def _with_state(self, *states: UpdateState) -> list[TrackedService]:
        return [
            s
            for s in self.services.values()
            if s.status is not None and s.status.state in states
        ]

    def summarize(self) -> WatchResult:
        """Verdict over the current snapshot. Only meaningful once converged."""
        completed = self._with_state(UpdateState.COMPLETED)
        rolled_back = self._with_state(UpdateState.ROLLBACK_COMPLETED)
        paused = self._with_state(UpdateState.PAUSED, UpdateState.ROLLBACK_PAUSED)

        if not rolled_back and not paused:
            if not completed:
                self.sink.info("All services are up to date, nothing to do.")
                return WatchResult(outcome=Outcome.SUCCEEDED, message="Nothing to do")
            outcome = Outcome.SUCCEEDED
            message = f"{len(completed)} service(s) updated."
        else:
            outcome = Outcome.FAILED
            message = (
                f"{len(completed)} service(s) updated, "
                f"{len(rolled_back)} service(s) rolled-back, "
                f"{len(paused)} service(s) paused."
            )

        if completed:
            self.sink.info("Updated services : ")
            for s in completed:
                self.sink.info(f"- {s.name} ({s.descriptor.image})")
        if rolled_back:
            self.sink.info("Rolled-back services : ")
            for s in rolled_back:
                self.sink.info(f"- {s.name} {s.status.message}")
        if paused:
            self.sink.info("Paused services : ")
            for s in paused:
                self.sink.info(f"- {s.name} {s.status.message}")

        return WatchResult(
            outcome=outcome,
            message=message,
            completed=completed,
            rolled_back=rolled_back,
            paused=paused,
        )

    async def run(self) -> WatchResult:
        """Watch until convergence and report the verdict exactly once."""
        result = await self._watch()
        self.sink.complete(result)
        return result

    async def _watch(self) -> WatchResult:
        try:
            count = await self.seed()
            if count == 0:
                message = f"No service found in stack {self.stack_name}"
                self.sink.warning(message)
                return WatchResult(outcome=Outcome.SUCCEEDED_WITH_ISSUES, message=message)
            self.sink.info(f"{count} services found in stack {self.stack_name}")

            while True:
                await self.poll_once()
                if self.is_converged():
                    break
                await self._sleep(self.poll_interval)
        except AppException as e:
            logger.error(
                f"Watch of {self.stack_name} aborted: {e.message}",
                extra={"extra_fields": e.to_dict()},
            )
            return WatchResult.failed(e.message)

        logger.info(f"Stack {self.stack_name} converged after {self.cycles} poll(s)")
        return self.summarize()
