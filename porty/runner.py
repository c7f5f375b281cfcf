"""Subprocess execution for external inspection tools."""

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass

from porty.config import settings

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Result of an external command."""
    success: bool
    output: str
    error: str | None = None
    returncode: int | None = None

    def lines(self) -> list[str]:
        """Non-empty output lines."""
        return [line for line in self.output.splitlines() if line.strip()]


async def run_command(*args: str, timeout: float | None = None) -> CommandResult:
    """Run a command and capture its output.

    Never raises: a missing binary, a timeout, or a non-zero exit is
    reported through ``success=False`` with the reason in ``error``.
    """
    if timeout is None:
        timeout = settings.command_timeout

    tool = args[0]
    started = time.monotonic()
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError:
        return CommandResult(success=False, output="", error=f"{tool}: command not found")
    except OSError as e:
        return CommandResult(success=False, output="", error=f"{tool}: {e}")

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()
        return CommandResult(
            success=False,
            output="",
            error=f"{tool} timed out after {timeout}s",
        )

    duration_ms = (time.monotonic() - started) * 1000
    logger.debug(
        "Ran %s",
        " ".join(args),
        extra={"tool": tool, "returncode": proc.returncode, "duration_ms": duration_ms},
    )

    output = stdout.decode("utf-8", errors="replace")
    if proc.returncode == 0:
        return CommandResult(success=True, output=output, returncode=0)

    return CommandResult(
        success=False,
        output=output,
        error=stderr.decode("utf-8", errors="replace").strip() or f"exit status {proc.returncode}",
        returncode=proc.returncode,
    )
