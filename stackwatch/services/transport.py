"""
Command transport for the docker CLI.

Runs docker commands against the local engine, or against a remote engine
over mutual TLS, and hands back their stdout as discrete lines.

Usage:
    from stackwatch.services.transport import DockerCLITransport

    async with DockerCLITransport.from_settings(settings) as transport:
        lines = await transport.execute(["stack", "services", "web"])
"""

from __future__ import annotations

import asyncio
import re
import shutil
from pathlib import Path
from typing import Protocol, Sequence, runtime_checkable

from stackwatch.core.config import Settings
from stackwatch.core.exceptions import ConfigurationError, TransportError
from stackwatch.core.logging import get_logger

logger = get_logger("transport")

_LINE_SPLIT = re.compile(r"[\r\n]+")


@runtime_checkable
class CommandTransport(Protocol):
    """Executes one command line and returns its non-empty stdout lines."""

    async def execute(self, args: Sequence[str]) -> list[str]:
        ...


def split_lines(output: str) -> list[str]:
    """Split command output on CR/LF runs and drop blank lines."""
    return [line for line in _LINE_SPLIT.split(output) if line]


class DockerCLITransport:
    """
    Transport backed by the docker CLI.

    When a remote host is configured the TLS material is written to
    `certs_dir` by `open()` and removed again by `close()`.
    """

    def __init__(
        self,
        docker_path: str = "docker",
        host_url: str | None = None,
        ca_cert: str | None = None,
        cert: str | None = None,
        key: str | None = None,
        certs_dir: str | Path = ".dockercerts",
    ):
        self.docker_path = docker_path
        self.host_url = host_url.rstrip("/") if host_url else None
        self._ca_cert = ca_cert
        self._cert = cert
        self._key = key
        self.certs_dir = Path(certs_dir)
        self._executable: str | None = None
        self._created_certs_dir = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "DockerCLITransport":
        return cls(
            docker_path=settings.docker_path,
            host_url=settings.docker_host,
            ca_cert=settings.docker_tls_ca_cert,
            cert=settings.docker_tls_cert,
            key=settings.docker_tls_key,
            certs_dir=settings.docker_certs_dir,
        )

    @property
    def ca_path(self) -> Path:
        return self.certs_dir / "ca.pem"

    @property
    def cert_path(self) -> Path:
        return self.certs_dir / "cert.pem"

    @property
    def key_path(self) -> Path:
        return self.certs_dir / "key.pem"

    def open(self) -> None:
        """Resolve the executable and stage TLS material for a remote host."""
        executable = shutil.which(self.docker_path)
        if executable is None:
            raise ConfigurationError(
                message=f"Unable to locate executable file: '{self.docker_path}'",
                error_code="DOCKER_NOT_FOUND",
            )
        self._executable = executable

        if not self.host_url:
            return

        missing = [
            name
            for name, value in (("ca", self._ca_cert), ("cert", self._cert), ("key", self._key))
            if not value
        ]
        if missing:
            raise ConfigurationError(
                message=f"TLS material missing for remote host {self.host_url}: {', '.join(missing)}",
                error_code="TLS_MATERIAL_MISSING",
            )

        if not self.certs_dir.exists():
            self.certs_dir.mkdir(parents=True)
            self._created_certs_dir = True
        self.ca_path.write_text(self._ca_cert)
        self.cert_path.write_text(self._cert)
        self.key_path.write_text(self._key)
        self.key_path.chmod(0o600)
        logger.debug(f"TLS material staged in {self.certs_dir}")

    def close(self) -> None:
        """Remove staged TLS material."""
        if not self.host_url:
            return
        if self._created_certs_dir and self.certs_dir.exists():
            shutil.rmtree(self.certs_dir, ignore_errors=True)
            self._created_certs_dir = False
            return
        for path in (self.ca_path, self.cert_path, self.key_path):
            path.unlink(missing_ok=True)

    async def __aenter__(self) -> "DockerCLITransport":
        self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    def build_command(self, args: Sequence[str]) -> list[str]:
        """Full argv for a docker invocation, including endpoint flags."""
        command = [self._executable or self.docker_path]
        if self.host_url:
            command += [
                "-H",
                self.host_url,
                "--tls",
                f"--tlscacert={self.ca_path}",
                f"--tlscert={self.cert_path}",
                f"--tlskey={self.key_path}",
            ]
        command += list(args)
        return command

    async def execute(self, args: Sequence[str]) -> list[str]:
        command = self.build_command(args)
        logger.debug(f"Executing: {' '.join(command[1:])}")
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise TransportError(
                message=f"Failed to start {command[0]}: {e}",
                error_code="EXEC_FAILED",
            ) from e

        try:
            stdout, stderr = await proc.communicate()
        except asyncio.CancelledError:
            # Do not leave the child running, e.g. after a watch timeout
            if proc.returncode is None:
                proc.kill()
            await proc.wait()
            raise

        errlines = split_lines(stderr.decode("utf-8", errors="replace"))

        if proc.returncode != 0:
            for line in errlines:
                logger.error(line)
            raise TransportError(
                message=f"{Path(command[0]).name} {' '.join(args[:2])} failed with return code: {proc.returncode}",
                stderr=errlines,
                returncode=proc.returncode,
            )

        return split_lines(stdout.decode("utf-8", errors="replace"))
