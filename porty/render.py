"""Terminal rendering for port tables and detail views."""

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from porty.models import DetailedPortInfo, Kind, PortEntry

BANNER = r"""
  _ __   ___  _ __| |_ _   _
 | '_ \ / _ \| '__| __| | | |
 | |_) | (_) | |  | |_| |_| |
 | .__/ \___/|_|   \__|\__, |
 |_|                   |___/
"""

RAINBOW = ("red", "yellow", "green", "cyan", "blue", "magenta")

KIND_LABELS = {
    Kind.DEV: "Dev Server",
    Kind.DATABASE: "Database",
    Kind.CONTAINER: "Container",
    Kind.SYSTEM: "System",
    Kind.UNKNOWN: "Unknown",
}

KIND_COLORS = {
    Kind.DEV: "green",
    Kind.DATABASE: "cyan",
    Kind.CONTAINER: "blue",
    Kind.SYSTEM: "yellow",
    Kind.UNKNOWN: "red",
}

MAX_ENV_VARS = 10
MAX_PATH_LENGTH = 100


def make_console(colors: bool) -> Console:
    return Console(no_color=not colors, highlight=False)


def format_kind(kind: Kind) -> str:
    return KIND_LABELS[kind]


def format_mb(kb: int) -> str:
    """Kilobytes as megabytes with one decimal."""
    return f"{kb / 1024:.1f}"


def format_float(value: float, decimals: int = 1) -> str:
    return f"{value:.{decimals}f}"


def print_banner(console: Console, colors: bool) -> None:
    for i, line in enumerate(BANNER.strip("\n").splitlines()):
        style = RAINBOW[i % len(RAINBOW)] if colors else ""
        console.print(Text(line, style=style))


def build_table(entries: list[PortEntry], verbose: bool = False, colors: bool = False) -> Table:
    table = Table(box=box.ROUNDED, show_header=True, header_style="bold")
    table.add_column("PORT", justify="right")
    table.add_column("PROCESS")
    table.add_column("CATEGORY")
    table.add_column("PID", justify="right")
    if verbose:
        table.add_column("EXEC PATH")

    for e in entries:
        category = Text(format_kind(e.kind), style=KIND_COLORS[e.kind] if colors else "")
        row = [
            Text(str(e.port)),
            Text(e.process or "-"),
            category,
            Text(str(e.pid) if e.pid is not None else "-"),
        ]
        if verbose:
            row.append(Text(e.exec_path or "-"))
        table.add_row(*row)

    return table


def print_table(console: Console, entries: list[PortEntry], verbose: bool = False, colors: bool = False) -> None:
    if not entries:
        console.print("No ports found.")
        return
    console.print(build_table(entries, verbose, colors))


def format_binding(info: DetailedPortInfo) -> str:
    """Listen addresses, split into IPv4 and IPv6 when both are present."""
    if not info.listen_addresses:
        return f"*:{info.port}"
    ipv4 = [a for a in info.listen_addresses if "[" not in a]
    ipv6 = [a for a in info.listen_addresses if "[" in a]
    if ipv4 and ipv6:
        return f"{', '.join(ipv4)} (IPv4) + {', '.join(ipv6)} (IPv6)"
    return ", ".join(info.listen_addresses)


def _format_refs(refs) -> list[str]:
    return [f"{ref.name} ({ref.pid})" for ref in refs]


def detail_lines(info: DetailedPortInfo) -> list[tuple[str, list[tuple[str, str]]]]:
    """Detail view as (section title, [(label, value)]) pairs."""
    sections = []

    process = [
        ("Name", info.process_name),
        ("PID", str(info.pid)),
        ("Category", format_kind(info.kind)),
        ("Command", info.command),
    ]
    if info.working_dir:
        process.append(("Directory", info.working_dir))
    if info.exec_path:
        process.append(("Exec Path", info.exec_path))
    process.append(("User", f"{info.user_name} ({info.uid})"))
    process.append(("Uptime", f"{info.uptime} (started {info.start_time})"))
    sections.append(("PROCESS INFORMATION", process))

    if info.parent_chain or info.children:
        if info.parent_chain:
            chain = " → ".join(_format_refs(info.parent_chain))
            parents = f"{chain} → {info.process_name} ({info.pid})"
        else:
            parents = "None"
        children = ", ".join(_format_refs(info.children)) or "None"
        sections.append(("PROCESS TREE", [("Parents", parents), ("Children", children)]))

    sections.append((
        "RESOURCES",
        [
            ("Memory", f"{format_mb(info.memory_rss)} MB (RSS), {format_mb(info.memory_virtual)} MB (Virtual)"),
            ("CPU", f"{format_float(info.cpu_usage, 1)}%"),
            ("Threads", str(info.thread_count)),
            ("File Descriptors", f"{info.file_descriptors} open"),
        ],
    ))

    network = [
        ("Binding", format_binding(info)),
        ("Protocol", "TCP (LISTEN)"),
        ("Connections", f"{info.active_connections} active"),
    ]
    if info.other_ports:
        network.append(("Other Ports", "Also listening on " + ", ".join(str(p) for p in info.other_ports)))
    sections.append(("NETWORK", network))

    if info.env_vars:
        env = []
        for key, value in info.env_vars[:MAX_ENV_VARS]:
            if key == "PATH" and len(value) > MAX_PATH_LENGTH:
                value = value[:MAX_PATH_LENGTH - 3] + "..."
            env.append((key, value))
        if len(info.env_vars) > MAX_ENV_VARS:
            env.append(("", f"({len(info.env_vars) - MAX_ENV_VARS} more environment variables)"))
        sections.append(("ENVIRONMENT", env))

    if info.docker_info:
        docker = info.docker_info
        container = [
            ("Container", docker.container_name),
            ("ID", docker.container_id),
            ("Image", docker.image),
            ("Status", docker.status),
        ]
        container.extend(("Volume", vol) for vol in docker.volumes)
        sections.append(("CONTAINER INFORMATION", container))

    return sections


def print_detailed_port_info(console: Console, info: DetailedPortInfo, colors: bool = False) -> None:
    header = "bold cyan" if colors else ""
    section_style = "bold blue" if colors else ""
    label_style = "bold" if colors else ""

    console.print()
    console.print(Text(f"Port {info.port} - Process Details", style=header))
    console.print()

    for title, rows in detail_lines(info):
        console.print(Text(title, style=section_style))
        for label, value in rows:
            if title == "ENVIRONMENT":
                line = Text(f"  {label}={value}" if label else f"  {value}")
            else:
                line = Text("  ")
                line.append(f"{label}:", style=label_style)
                line.append(f" {value}")
                if title == "PROCESS INFORMATION" and label == "Category" and colors:
                    line.stylize(KIND_COLORS[info.kind], len(f"  {label}: "))
            console.print(line)
        console.print()


def print_free(console: Console, entries: list[PortEntry], port: int) -> None:
    found = [e for e in entries if e.port == port]
    if not found:
        console.print(f"No TCP listener found on port {port}")
        return
    console.print(f"Port {port} is in use:")
    for entry in found:
        if entry.pid is not None and entry.process is not None:
            console.print(f"  {escape(entry.process)} (PID {entry.pid})")
            console.print(f"  Hint: kill {entry.pid} or use 'porty kill {port}'")
