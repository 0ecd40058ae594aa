"""Run one shell command with a working directory and a wall-clock timeout."""

from __future__ import annotations

import logging
import os
import signal
import subprocess
from pathlib import Path

from chatops_agent.executor.models import CommandResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 120
SHELL = "sh"
_TERMINATE_GRACE_SECONDS = 2


class CommandRunError(RuntimeError):
    """The command could not produce an exit status."""

    def __init__(self, message: str, *, command: str) -> None:
        super().__init__(message)
        self.command = command


class CommandTimeoutError(CommandRunError):
    """The command exceeded its wall-clock budget and was killed."""

    def __init__(self, *, command: str, timeout_seconds: float) -> None:
        super().__init__(
            f"Command timed out after {timeout_seconds:g} seconds: {command}",
            command=command,
        )
        self.timeout_seconds = timeout_seconds


class CommandSpawnError(CommandRunError):
    """The shell process could not be started."""

    def __init__(self, *, command: str, detail: str) -> None:
        super().__init__(f"Failed to start command: {command}: {detail}", command=command)


class CommandRunner:
    """Execute shell command lines via `sh -c` in a fixed working directory."""

    def __init__(
        self,
        *,
        working_dir: Path | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.working_dir = working_dir
        self.timeout_seconds = timeout_seconds

    def run(self, command: str) -> CommandResult:
        """Run `command` to completion.

        Returns a result for any exit status, zero or not. Raises
        `CommandTimeoutError` or `CommandSpawnError` when no exit status is
        available.
        """

        logger.info("Running command: %s", command)
        try:
            process = subprocess.Popen(  # noqa: S603
                [SHELL, "-c", command],
                cwd=self.working_dir,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as error:
            logger.error("Command failed to start: %s: %s", command, error)
            raise CommandSpawnError(command=command, detail=str(error)) from error

        try:
            stdout_bytes, stderr_bytes = process.communicate(timeout=self.timeout_seconds)
        except subprocess.TimeoutExpired as error:
            _terminate_process(process)
            logger.error(
                "Command timed out after %ss and was terminated: %s",
                self.timeout_seconds,
                command,
            )
            raise CommandTimeoutError(
                command=command,
                timeout_seconds=self.timeout_seconds,
            ) from error

        result = CommandResult.from_exit_code(
            command=command,
            exit_code=_exit_code(process.returncode),
            stdout=_decode(stdout_bytes),
            stderr=_decode(stderr_bytes),
        )
        if result.success:
            logger.info("Command succeeded: %s", command)
        else:
            logger.error(
                "Command failed: %s exit_code=%s stderr=%s",
                command,
                result.exit_code,
                result.stderr,
            )
        return result


def _exit_code(returncode: int) -> int | None:
    # Negative return codes mean the shell was killed by a signal.
    if returncode < 0:
        return None
    return returncode


def _decode(raw: bytes | None) -> str:
    if not raw:
        return ""
    return raw.decode("utf-8", errors="replace")


def _terminate_process(process: subprocess.Popen[bytes]) -> None:
    """Stop the whole process group so shell children are not orphaned."""

    try:
        _signal_group(process, signal.SIGTERM)
        try:
            process.wait(timeout=_TERMINATE_GRACE_SECONDS)
        except subprocess.TimeoutExpired:
            pass
        # The shell may exit on SIGTERM while a child that ignores it lives on.
        _signal_group(process, signal.SIGKILL)
        process.wait()
    finally:
        for stream in (process.stdout, process.stderr):
            if stream is not None:
                stream.close()


def _signal_group(process: subprocess.Popen[bytes], signum: int) -> None:
    try:
        os.killpg(process.pid, signum)
    except ProcessLookupError:
        return
    except PermissionError:
        process.send_signal(signum)
