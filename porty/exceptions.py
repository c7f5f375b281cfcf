"""Exceptions raised by the porty core."""


class PortyError(Exception):
    """Base class for porty errors."""


class DiscoveryError(PortyError):
    """Raised when the listener enumeration tool is missing or fails."""

    def __init__(self, tool: str, reason: str):
        self.tool = tool
        self.reason = reason
        super().__init__(f"failed to run {tool}: {reason}")


class TerminationError(PortyError):
    """Raised when a signal cannot be delivered to a process."""

    def __init__(self, pid: int, reason: str):
        self.pid = pid
        self.reason = reason
        super().__init__(f"could not terminate PID {pid}: {reason}")
