"""Pydantic models for porty."""

from enum import Enum

from pydantic import BaseModel, Field


class Kind(str, Enum):
    """Process categories assigned by the classifier."""
    DEV = "dev"
    DATABASE = "database"
    CONTAINER = "container"
    SYSTEM = "system"
    UNKNOWN = "unknown"


class PortEntry(BaseModel):
    """A single TCP listener."""
    port: int = Field(ge=1, le=65535)
    pid: int | None = Field(default=None, ge=0)
    process: str | None = None
    exec_path: str | None = None
    kind: Kind = Kind.UNKNOWN


class ProcessRef(BaseModel):
    """A (pid, name) pair in a process tree."""
    pid: int
    name: str


class DockerInfo(BaseModel):
    """Container publishing a port."""
    container_id: str
    container_name: str
    image: str
    status: str
    volumes: list[str] = Field(default_factory=list)


class DetailedPortInfo(BaseModel):
    """Diagnostic snapshot for one listening process.

    Memory values are kilobytes; conversion to megabytes happens at
    render time.
    """
    # Identity
    port: int
    pid: int
    process_name: str
    command: str = "unknown"
    working_dir: str | None = None
    exec_path: str | None = None

    # Ownership
    user_name: str = "unknown"
    uid: int = 0

    # Lineage: parent_chain runs oldest ancestor -> immediate parent
    parent_chain: list[ProcessRef] = Field(default_factory=list)
    children: list[ProcessRef] = Field(default_factory=list)

    # Timing
    uptime: str = "unknown"
    start_time: str = "unknown"

    # Resources
    memory_rss: int = 0
    memory_virtual: int = 0
    cpu_usage: float = 0.0
    thread_count: int = 0
    file_descriptors: int = 0

    # Network
    listen_addresses: list[str] = Field(default_factory=list)
    active_connections: int = 0
    other_ports: list[int] = Field(default_factory=list)

    env_vars: list[tuple[str, str]] = Field(default_factory=list)
    kind: Kind = Kind.UNKNOWN
    docker_info: DockerInfo | None = None
