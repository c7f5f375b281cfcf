"""Heuristic classification of listening processes."""

from types import MappingProxyType

from porty.models import Kind, PortEntry

# Process-name keywords, checked in this order; first match wins.
# System names come first so e.g. "cupsd" never lands in another bucket.
SYSTEM_KEYWORDS = ("launchd", "mdnsresponder", "cups", "controlcenter", "airplay")
DEV_KEYWORDS = (
    "node", "vite", "next", "python", "ruby", "rails", "django", "flask",
    "phoenix", "webpack", "npm", "yarn", "puma", "unicorn",
)
DATABASE_KEYWORDS = ("postgres", "mysql", "redis", "mongod", "mariadb", "couchdb")
CONTAINER_KEYWORDS = ("docker", "containerd", "colima", "podman")

KEYWORD_RULES: tuple[tuple[Kind, tuple[str, ...]], ...] = (
    (Kind.SYSTEM, SYSTEM_KEYWORDS),
    (Kind.DEV, DEV_KEYWORDS),
    (Kind.DATABASE, DATABASE_KEYWORDS),
    (Kind.CONTAINER, CONTAINER_KEYWORDS),
)

# Well-known ports -> Kind, used only when the process name gives no answer
PORT_KINDS: MappingProxyType[int, Kind] = MappingProxyType({
    **{p: Kind.DEV for p in (3000, 5173, 8080, 8000, 4200, 3001, 5000, 9000)},
    **{p: Kind.DATABASE for p in (5432, 3306, 6379, 27017, 1433, 5984)},
    2375: Kind.CONTAINER,
    2376: Kind.CONTAINER,
    631: Kind.SYSTEM,
})


def classify(port: int, process_name: str | None = None) -> Kind:
    """Classify a listener from its process name, then its port."""
    if process_name:
        name = process_name.lower()
        for kind, keywords in KEYWORD_RULES:
            if any(keyword in name for keyword in keywords):
                return kind
    return PORT_KINDS.get(port, Kind.UNKNOWN)


def _filter(entries: list[PortEntry], kinds: set[Kind]) -> list[PortEntry]:
    return [e for e in entries if e.kind in kinds]


def filter_default(entries: list[PortEntry]) -> list[PortEntry]:
    """Dev servers plus anything unclassified."""
    return _filter(entries, {Kind.DEV, Kind.UNKNOWN})


def filter_dev(entries: list[PortEntry]) -> list[PortEntry]:
    return _filter(entries, {Kind.DEV})


def filter_prod(entries: list[PortEntry]) -> list[PortEntry]:
    """Dev servers and containers."""
    return _filter(entries, {Kind.DEV, Kind.CONTAINER})
