"""On-demand diagnostics for the process behind one port.

``get_detailed_port_info`` fans out six independent queries (ps, lsof,
parent walk, children, established connections, docker) with
``asyncio.gather`` and joins them field by field. A query that fails or
raises only costs its own fields, which fall back to the defaults on
``DetailedPortInfo``.
"""

import asyncio
import logging
import sys
from dataclasses import dataclass, field
from typing import Any

from porty.config import get_env_allowlist, settings
from porty.containers import get_docker_info
from porty.discovery import extract_port
from porty.models import DetailedPortInfo, Kind, ProcessRef
from porty.procinfo import get_exec_path, get_process_name
from porty.runner import run_command

logger = logging.getLogger(__name__)

# Parent walk stops at the kernel / init
ROOT_PIDS = frozenset({0, 1})


@dataclass
class CombinedPsInfo:
    """Fields gathered from ps for one pid."""
    command: str | None = None
    user_name: str = "unknown"
    uid: int = 0
    uptime: str = "unknown"
    start_time: str = "unknown"
    memory_rss: int = 0
    memory_virtual: int = 0
    cpu_usage: float = 0.0
    thread_count: int = 0
    env_vars: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class CombinedLsofInfo:
    """Fields gathered from lsof for one pid."""
    working_dir: str | None = None
    file_descriptors: int = 0
    listen_addresses: list[str] = field(default_factory=list)
    other_ports: list[int] = field(default_factory=list)


def _to_int(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        return 0


def _to_float(value: str) -> float:
    try:
        return float(value)
    except ValueError:
        return 0.0


def parse_ps_line(text: str, info: CombinedPsInfo) -> None:
    """Parse ``command user uid rss vsz %cpu etime`` from the right.

    The command may contain spaces, so only the last six columns are
    split off.
    """
    parts = text.strip().rsplit(None, 6)
    if len(parts) < 6:
        return
    user, uid, rss, vsz, cpu, etime = parts[-6:]
    info.user_name = user
    info.uid = _to_int(uid)
    info.memory_rss = _to_int(rss)
    info.memory_virtual = _to_int(vsz)
    info.cpu_usage = _to_float(cpu)
    info.uptime = etime
    if len(parts) == 7:
        info.command = parts[0]


def parse_env_vars(text: str, allowlist: list[str]) -> list[tuple[str, str]]:
    """Allow-listed KEY=value pairs from ``ps eww`` output."""
    allowed = set(allowlist)
    env_vars = []
    for line in text.splitlines():
        for token in line.split():
            key, eq, value = token.partition("=")
            if eq and key in allowed:
                env_vars.append((key, value))
    return env_vars


def _thread_listing_args(pid: int) -> list[str]:
    # macOS ps lists threads with -M, procps with -L
    flag = "-M" if sys.platform == "darwin" else "-L"
    return [settings.ps_bin, flag, "-p", str(pid)]


async def get_combined_ps_info(pid: int) -> CombinedPsInfo:
    info = CombinedPsInfo()
    pid_str = str(pid)

    combined, command, lstart, threads, environ = await asyncio.gather(
        run_command(settings.ps_bin, "-p", pid_str, "-o", "command=,user=,uid=,rss=,vsz=,%cpu=,etime="),
        run_command(settings.ps_bin, "-p", pid_str, "-o", "command="),
        run_command(settings.ps_bin, "-p", pid_str, "-o", "lstart="),
        run_command(*_thread_listing_args(pid)),
        run_command(settings.ps_bin, "eww", pid_str),
    )

    if combined.success:
        parse_ps_line(combined.output, info)

    # Exact command string; preferred over the right-split guess
    if command.success and command.output.strip():
        info.command = command.output.strip()

    if lstart.success:
        info.start_time = lstart.output.strip() or info.start_time

    if threads.success:
        info.thread_count = max(len(threads.lines()) - 1, 1)

    if environ.success:
        info.env_vars = parse_env_vars(environ.output, get_env_allowlist())

    return info


def parse_lsof_files(text: str, current_port: int) -> CombinedLsofInfo:
    """Descriptor count and network names from ``lsof -p PID -Fn``.

    Only unconnected names containing ``:`` count as listening endpoints;
    the working directory is looked up separately.
    """
    info = CombinedLsofInfo()
    ports_seen: set[int] = set()

    for line in text.splitlines():
        if not line:
            continue
        tag, value = line[0], line[1:]
        if tag == "f":
            info.file_descriptors += 1
        elif tag == "n" and ":" in value and "->" not in value:
            port = extract_port(value)
            if port is None:
                continue
            if port == current_port:
                info.listen_addresses.append(value)
            else:
                ports_seen.add(port)

    info.other_ports = sorted(ports_seen)
    return info


def parse_cwd(text: str) -> str | None:
    for line in text.splitlines():
        if line.startswith("n"):
            return line[1:]
    return None


async def get_combined_lsof_info(pid: int, current_port: int) -> CombinedLsofInfo:
    files, cwd = await asyncio.gather(
        run_command(settings.lsof_bin, "-nP", "-p", str(pid), "-Fn"),
        run_command(settings.lsof_bin, "-p", str(pid), "-a", "-d", "cwd", "-Fn"),
    )

    info = parse_lsof_files(files.output, current_port) if files.success else CombinedLsofInfo()
    if cwd.success:
        info.working_dir = parse_cwd(cwd.output)
    return info


async def get_parent_pid(pid: int) -> int | None:
    result = await run_command(settings.ps_bin, "-p", str(pid), "-o", "ppid=")
    if not result.success:
        return None
    try:
        return int(result.output.strip())
    except ValueError:
        return None


async def get_parent_chain(pid: int, limit: int | None = None) -> list[ProcessRef]:
    """Ancestors of ``pid``, oldest first, excluding pids 0 and 1."""
    limit = limit or settings.parent_chain_limit
    chain: list[ProcessRef] = []
    seen: set[int] = set()
    current = pid

    for _ in range(limit):
        if current in seen:
            break
        seen.add(current)

        parent = await get_parent_pid(current)
        if parent is None or parent in ROOT_PIDS:
            break
        name = await asyncio.to_thread(get_process_name, parent)
        if name is None:
            break
        chain.insert(0, ProcessRef(pid=parent, name=name))
        current = parent

    return chain


async def get_child_processes(pid: int) -> list[ProcessRef]:
    result = await run_command(settings.pgrep_bin, "-P", str(pid))
    if not result.success:
        return []

    children = []
    for line in result.lines():
        try:
            child_pid = int(line.strip())
        except ValueError:
            continue
        name = await asyncio.to_thread(get_process_name, child_pid)
        if name is not None:
            children.append(ProcessRef(pid=child_pid, name=name))
    return children


async def count_active_connections(port: int) -> int:
    """Number of ESTABLISHED TCP connections involving ``port``."""
    result = await run_command(
        settings.lsof_bin, "-nP", f"-iTCP:{port}", "-sTCP:ESTABLISHED", "-Fn"
    )
    if not result.success:
        return 0
    return sum(1 for line in result.output.splitlines() if line.startswith("n"))


def _settled(value: Any, default: Any, label: str, pid: int) -> Any:
    """Swap a gathered exception for the field's default."""
    if isinstance(value, BaseException):
        logger.debug(f"{label} query failed: {value!r}", extra={"pid": pid})
        return default
    return value


async def get_detailed_port_info(port: int, pid: int, kind: Kind) -> DetailedPortInfo:
    """Assemble the detail record for the process listening on ``port``."""
    process_name = get_process_name(pid) or "unknown"
    exec_path = get_exec_path(pid)

    results = await asyncio.gather(
        get_combined_ps_info(pid),
        get_combined_lsof_info(pid, port),
        get_parent_chain(pid),
        get_child_processes(pid),
        count_active_connections(port),
        get_docker_info(port, process_name),
        return_exceptions=True,
    )

    ps_info = _settled(results[0], CombinedPsInfo(), "ps", pid)
    lsof_info = _settled(results[1], CombinedLsofInfo(), "lsof", pid)
    parent_chain = _settled(results[2], [], "parent chain", pid)
    children = _settled(results[3], [], "children", pid)
    active_connections = _settled(results[4], 0, "connections", pid)
    docker_info = _settled(results[5], None, "docker", pid)

    return DetailedPortInfo(
        port=port,
        pid=pid,
        process_name=process_name,
        command=ps_info.command or "unknown",
        working_dir=lsof_info.working_dir,
        exec_path=exec_path,
        user_name=ps_info.user_name,
        uid=ps_info.uid,
        parent_chain=parent_chain,
        children=children,
        uptime=ps_info.uptime,
        start_time=ps_info.start_time,
        memory_rss=ps_info.memory_rss,
        memory_virtual=ps_info.memory_virtual,
        cpu_usage=ps_info.cpu_usage,
        thread_count=ps_info.thread_count,
        file_descriptors=lsof_info.file_descriptors,
        listen_addresses=lsof_info.listen_addresses,
        active_connections=active_connections,
        other_ports=lsof_info.other_ports,
        env_vars=ps_info.env_vars,
        kind=kind,
        docker_info=docker_info,
    )
