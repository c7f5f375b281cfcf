"""Terminating the processes bound to a port."""

import asyncio
import logging
import os
import signal
from dataclasses import dataclass

from porty.config import settings
from porty.exceptions import TerminationError
from porty.models import PortEntry
from porty.procinfo import pid_alive

logger = logging.getLogger(__name__)


@dataclass
class KillTarget:
    """A process selected for termination."""
    pid: int
    process: str


@dataclass
class KillOutcome:
    """Result of terminating one pid."""
    target: KillTarget
    success: bool
    error: str | None = None


def _send(pid: int, sig: signal.Signals, missing_ok: bool = False) -> None:
    try:
        os.kill(pid, sig)
    except ProcessLookupError as e:
        if missing_ok:
            return
        raise TerminationError(pid, "no such process") from e
    except PermissionError as e:
        raise TerminationError(pid, "permission denied") from e
    except OSError as e:
        raise TerminationError(pid, str(e)) from e


async def kill_pid(pid: int, grace: float | None = None) -> None:
    """SIGTERM, wait out the grace period, then SIGKILL if still alive.

    Raises:
        TerminationError: a signal could not be delivered.
    """
    if grace is None:
        grace = settings.kill_grace_seconds

    _send(pid, signal.SIGTERM)
    await asyncio.sleep(grace)

    if pid_alive(pid):
        logger.debug("Process survived SIGTERM, sending SIGKILL", extra={"pid": pid})
        # Exiting after the liveness check still counts as terminated
        _send(pid, signal.SIGKILL, missing_ok=True)


def select_kill_targets(entries: list[PortEntry], port: int) -> list[KillTarget]:
    """Processes on ``port``, one per pid, in discovery order."""
    targets = []
    seen: set[int] = set()
    for entry in entries:
        if entry.port != port or entry.pid is None or entry.process is None:
            continue
        if entry.pid in seen:
            continue
        seen.add(entry.pid)
        targets.append(KillTarget(pid=entry.pid, process=entry.process))
    return targets


async def kill_targets(targets: list[KillTarget]) -> list[KillOutcome]:
    """Terminate each target in turn; a failure doesn't stop the rest."""
    outcomes = []
    for target in targets:
        try:
            await kill_pid(target.pid)
        except TerminationError as e:
            logger.warning(f"Failed to kill {target.process}: {e.reason}", extra={"pid": target.pid})
            outcomes.append(KillOutcome(target=target, success=False, error=str(e)))
        else:
            outcomes.append(KillOutcome(target=target, success=True))
    return outcomes


async def kill_port(entries: list[PortEntry], port: int) -> list[KillOutcome]:
    """Terminate every distinct process listening on ``port``."""
    return await kill_targets(select_kill_targets(entries, port))
