from __future__ import annotations

import asyncio
import sys

from stackwatch.core.config import Settings, settings
from stackwatch.core.exceptions import ConfigurationError
from stackwatch.core.logging import get_logger, setup_logging, stack_name_var
from stackwatch.domain.verdict import WatchResult
from stackwatch.services.monitor import ConvergenceMonitor
from stackwatch.services.reporting import ResultSink, build_sink
from stackwatch.services.transport import DockerCLITransport

logger = get_logger("main")


async def watch(config: Settings, sink: ResultSink | None = None) -> WatchResult:
    """Watch the configured stack and report the verdict through `sink`."""
    sink = sink or build_sink(config.result_format)

    if not config.stack_name:
        result = WatchResult.failed("Input required: stack_name")
        sink.complete(result)
        return result

    stack_name_var.set(config.stack_name)
    transport = DockerCLITransport.from_settings(config)
    try:
        transport.open()
    except ConfigurationError as e:
        result = WatchResult.failed(e.message)
        sink.complete(result)
        return result

    try:
        monitor = ConvergenceMonitor(
            config.stack_name,
            transport,
            sink,
            poll_interval=config.poll_interval,
        )
        if config.watch_timeout is None:
            return await monitor.run()
        try:
            return await asyncio.wait_for(monitor.run(), timeout=config.watch_timeout)
        except asyncio.TimeoutError:
            result = WatchResult.failed(
                f"Stack {config.stack_name} did not converge within {config.watch_timeout:g}s"
            )
            sink.complete(result)
            return result
    finally:
        transport.close()


def main() -> int:
    setup_logging()
    result = asyncio.run(watch(settings))
    logger.debug(f"Watch finished: {result.outcome.value}")
    return 0 if result.outcome.is_success else 1


if __name__ == "__main__":
    sys.exit(main())
