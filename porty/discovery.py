"""Listening-port discovery from lsof field output."""

import logging
import string
from dataclasses import dataclass

from porty.classifier import classify
from porty.config import settings
from porty.containers import enrich_docker_containers
from porty.exceptions import DiscoveryError
from porty.models import PortEntry
from porty.procinfo import get_exec_path, get_process_name
from porty.runner import run_command

logger = logging.getLogger(__name__)


@dataclass
class RawListener:
    """One lsof address record before name resolution."""
    port: int
    pid: int
    command: str | None = None


def extract_port(addr: str) -> int | None:
    """Port number from an lsof address.

    Handles ``*:3000``, ``127.0.0.1:8080``, ``[::1]:5432`` and trailing
    annotations such as ``*:3000 (LISTEN)``.
    """
    _, sep, tail = addr.rpartition(":")
    if not sep:
        return None

    digits = ""
    for ch in tail:
        if ch not in string.digits:
            break
        digits += ch
    if not digits:
        return None

    port = int(digits)
    if not 1 <= port <= 65535:
        return None
    return port


def parse_lsof_listeners(text: str) -> list[RawListener]:
    """Parse ``lsof -F pcn`` output into raw listener records."""
    listeners: list[RawListener] = []
    current_pid: int | None = None
    current_cmd: str | None = None

    for line in text.splitlines():
        if not line:
            continue
        tag, value = line[0], line[1:]

        if tag == "p":
            try:
                current_pid = int(value)
            except ValueError:
                current_pid = None
            current_cmd = None
        elif tag == "c":
            current_cmd = value
        elif tag == "n":
            if current_pid is None:
                continue
            port = extract_port(value)
            if port is not None:
                listeners.append(RawListener(port=port, pid=current_pid, command=current_cmd))

    return listeners


def dedupe_entries(entries: list[PortEntry]) -> list[PortEntry]:
    """Keep the first entry per (port, pid); dual-stack binds collapse."""
    seen: set[tuple[int, int]] = set()
    unique = []
    for entry in entries:
        if entry.pid is not None:
            key = (entry.port, entry.pid)
            if key in seen:
                continue
            seen.add(key)
        unique.append(entry)
    return unique


def build_entries(listeners: list[RawListener]) -> list[PortEntry]:
    """Resolve names and paths for raw listeners and classify them."""
    entries = []
    for raw in listeners:
        process = get_process_name(raw.pid) or raw.command
        entries.append(
            PortEntry(
                port=raw.port,
                pid=raw.pid,
                process=process,
                exec_path=get_exec_path(raw.pid),
                kind=classify(raw.port, process),
            )
        )
    return entries


async def discover_ports() -> list[PortEntry]:
    """All TCP listeners visible to the current user, sorted by port.

    Raises:
        DiscoveryError: lsof is missing or exited with an error.
    """
    result = await run_command(
        settings.lsof_bin, "-nP", "-iTCP", "-sTCP:LISTEN", "-Fpcn"
    )
    if not result.success:
        logger.debug(f"Listener enumeration failed: {result.error}", extra={"tool": settings.lsof_bin})
        raise DiscoveryError(settings.lsof_bin, result.error or "unknown error")

    entries = dedupe_entries(build_entries(parse_lsof_listeners(result.output)))
    await enrich_docker_containers(entries)
    entries.sort(key=lambda e: e.port)

    logger.debug(f"Discovered {len(entries)} listeners")
    return entries
