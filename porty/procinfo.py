"""Process-table lookups by pid."""

import psutil


def get_process_name(pid: int) -> str | None:
    """Short process name, or None when the pid cannot be inspected."""
    try:
        name = psutil.Process(pid).name()
    except (psutil.Error, ValueError):
        return None
    return name or None


def get_exec_path(pid: int) -> str | None:
    """Absolute executable path, or None when unavailable."""
    try:
        path = psutil.Process(pid).exe()
    except (psutil.Error, ValueError):
        return None
    return path or None


def pid_alive(pid: int) -> bool:
    """Whether a process with this pid still exists and is not a zombie."""
    try:
        return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return False
    except psutil.Error:
        # Exists but not inspectable (e.g. another user's process)
        return True
