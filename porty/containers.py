"""Container runtime lookups and display-name enrichment."""

import logging
import string
from dataclasses import dataclass

from porty.config import settings
from porty.models import DockerInfo, Kind, PortEntry
from porty.runner import run_command

logger = logging.getLogger(__name__)

# Process names containing this are the runtime's port proxy, not the service
RUNTIME_MARKER = "docker"

ENRICH_FORMAT = "{{.ID}}|{{.Names}}|{{.Image}}|{{.Ports}}"
DETAIL_FORMAT = "{{.ID}}|{{.Names}}|{{.Image}}|{{.Status}}|{{.Mounts}}|{{.Ports}}"

_HEX_OR_DASH = set(string.hexdigits) | {"-"}

# Well-known service ports for containers docker does not report
SERVICE_PORTS: dict[int, str] = {
    5432: "postgresql",
    3306: "mysql",
    6379: "redis",
    27017: "mongodb",
    7474: "neo4j-http",
    7473: "neo4j-https",
    7687: "neo4j-bolt",
    9200: "elasticsearch",
    9300: "elasticsearch-cluster",
    5672: "rabbitmq",
    15672: "rabbitmq-mgmt",
    11211: "memcached",
    5984: "couchdb",
    9042: "cassandra",
    8086: "influxdb",
    9092: "kafka",
    9000: "minio",
    9001: "minio-console",
}


@dataclass
class ContainerRef:
    """Name and image of a container publishing a host port."""
    name: str
    image: str


def parse_port_mappings(ports: str) -> list[int]:
    """Host ports from docker's Ports column.

    ``0.0.0.0:8080->80/tcp, :::6379->6379/tcp`` yields ``[8080, 6379]``.
    Unpublished container ports (``5432/tcp``) are ignored.
    """
    host_ports = []
    for mapping in ports.split(","):
        before_arrow, arrow, _ = mapping.strip().partition("->")
        if not arrow:
            continue
        _, colon, port_str = before_arrow.rpartition(":")
        if colon and port_str and all(ch in string.digits for ch in port_str):
            host_ports.append(int(port_str))
    return host_ports


def is_generic_name(name: str) -> bool:
    """Whether a name looks auto-generated (long, or a hash)."""
    return len(name) > 20 or all(ch in _HEX_OR_DASH for ch in name)


def image_base_name(image: str) -> str:
    """``ghcr.io/acme/redis:7-alpine`` -> ``redis``."""
    return image.split(":", 1)[0].rsplit("/", 1)[-1]


def get_friendly_container_name(container_name: str, image: str) -> str:
    """Display name for a container, preferring the image when the name is a hash."""
    image_base = image_base_name(image)
    if is_generic_name(container_name) and not is_generic_name(image_base):
        display_name = image_base
    else:
        display_name = container_name
    return f"{display_name} (container)"


def guess_service_by_port(port: int) -> str | None:
    return SERVICE_PORTS.get(port)


def is_runtime_process(process_name: str | None) -> bool:
    return bool(process_name) and RUNTIME_MARKER in process_name.lower()


def parse_container_ports(output: str) -> dict[int, ContainerRef]:
    """Map host port -> container from ``docker ps`` enrichment output."""
    port_map: dict[int, ContainerRef] = {}
    for line in output.splitlines():
        if not line.strip():
            continue
        parts = line.split("|", 3)
        if len(parts) < 4:
            continue
        _, name, image, ports = parts
        for host_port in parse_port_mappings(ports):
            port_map[host_port] = ContainerRef(name=name, image=image)
    return port_map


async def enrich_docker_containers(entries: list[PortEntry]) -> None:
    """Replace docker proxy process names with container names, in place.

    A missing or stopped docker daemon leaves every entry unchanged.
    """
    targets = [e for e in entries if e.kind == Kind.CONTAINER and is_runtime_process(e.process)]
    if not targets:
        return

    result = await run_command(settings.docker_bin, "ps", "--format", ENRICH_FORMAT)
    if not result.success:
        logger.debug(f"Skipping container enrichment: {result.error}", extra={"tool": settings.docker_bin})
        return

    port_map = parse_container_ports(result.output)
    for entry in targets:
        container = port_map.get(entry.port)
        if container is not None:
            entry.process = get_friendly_container_name(container.name, container.image)
            continue
        service = guess_service_by_port(entry.port)
        if service:
            entry.process = f"{service} (container)"


def parse_docker_info(output: str, port: int) -> DockerInfo | None:
    """First container in detail-format output that publishes ``port``."""
    for line in output.splitlines():
        parts = line.split("|", 5)
        if len(parts) < 6:
            continue
        container_id, name, image, status, mounts, ports = parts
        if port not in parse_port_mappings(ports):
            continue
        volumes = [m.strip() for m in mounts.split(",") if m.strip()]
        return DockerInfo(
            container_id=container_id,
            container_name=name,
            image=image,
            status=status,
            volumes=volumes,
        )
    return None


async def get_docker_info(port: int, process_name: str) -> DockerInfo | None:
    """Container metadata for a port owned by the docker runtime."""
    if not is_runtime_process(process_name):
        return None

    result = await run_command(settings.docker_bin, "ps", "--format", DETAIL_FORMAT)
    if not result.success:
        return None
    return parse_docker_info(result.output, port)
