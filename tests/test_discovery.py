"""Tests for listener discovery."""

from unittest.mock import AsyncMock, patch

import pytest

from porty.discovery import (
    RawListener,
    dedupe_entries,
    discover_ports,
    extract_port,
    parse_lsof_listeners,
)
from porty.exceptions import DiscoveryError
from porty.models import Kind, PortEntry
from tests.helpers import command_router, failed, ok

LSOF_OUTPUT = """p4242
cnode
n*:3000
n[::]:3000
p900
cpostgres
n127.0.0.1:5432
n[::1]:5432

p77
cdockerd
n*:6379
"""


class TestExtractPort:
    """Tests for extract_port."""

    @pytest.mark.parametrize(
        "addr,expected",
        [
            ("*:3000", 3000),
            ("127.0.0.1:8080", 8080),
            ("[::1]:5432", 5432),
            ("*:3000 (LISTEN)", 3000),
            ("[fe80::1%lo0]:631", 631),
        ],
    )
    def test_valid(self, addr, expected):
        assert extract_port(addr) == expected

    @pytest.mark.parametrize("addr", ["no-colon", ":", "*:", "host:http", "*:0", "*:70000", "*:3²", "*:٣٠٠٠"])
    def test_invalid(self, addr):
        assert extract_port(addr) is None


class TestParseLsofListeners:
    """Tests for lsof field parsing."""

    def test_parses_records(self):
        listeners = parse_lsof_listeners(LSOF_OUTPUT)
        assert [(l.port, l.pid, l.command) for l in listeners] == [
            (3000, 4242, "node"),
            (3000, 4242, "node"),
            (5432, 900, "postgres"),
            (5432, 900, "postgres"),
            (6379, 77, "dockerd"),
        ]

    def test_pid_resets_command(self):
        listeners = parse_lsof_listeners("p1\ncfirst\np2\nn*:80\n")
        assert listeners == [RawListener(port=80, pid=2, command=None)]

    def test_address_without_pid_skipped(self):
        assert parse_lsof_listeners("cnode\nn*:3000\n") == []

    def test_bad_pid_skips_until_next_pid(self):
        listeners = parse_lsof_listeners("pabc\nn*:3000\np5\nn*:4000\n")
        assert [(l.port, l.pid) for l in listeners] == [(4000, 5)]

    def test_unknown_tags_ignored(self):
        listeners = parse_lsof_listeners("p5\nf12\ntIPv4\nn*:4000\n")
        assert [(l.port, l.pid) for l in listeners] == [(4000, 5)]

    def test_unparseable_address_skipped(self):
        assert parse_lsof_listeners("p5\nn/some/file\n") == []

    def test_non_ascii_port_skipped(self):
        listeners = parse_lsof_listeners("p5\ncnode\nn*:3²\nn*:4000\n")
        assert [(l.port, l.pid) for l in listeners] == [(4000, 5)]


class TestDedupe:
    """Tests for (port, pid) deduplication."""

    def test_dual_stack_collapses(self):
        entries = [
            PortEntry(port=8080, pid=42, process="node", kind=Kind.DEV),
            PortEntry(port=8080, pid=42, process="node", kind=Kind.DEV),
        ]
        assert len(dedupe_entries(entries)) == 1

    def test_different_pids_kept(self):
        entries = [
            PortEntry(port=8080, pid=42, kind=Kind.DEV),
            PortEntry(port=8080, pid=43, kind=Kind.DEV),
        ]
        assert len(dedupe_entries(entries)) == 2

    def test_entries_without_pid_kept(self):
        entries = [PortEntry(port=8080), PortEntry(port=8080)]
        assert len(dedupe_entries(entries)) == 2


def _names(pid):
    return {4242: "node", 900: "postgres"}.get(pid)


class TestDiscoverPorts:
    """Tests for the discovery pipeline."""

    @pytest.mark.asyncio
    async def test_pipeline(self):
        fake = command_router({"lsof": ok(LSOF_OUTPUT)})
        with patch("porty.discovery.run_command", fake), \
             patch("porty.discovery.get_process_name", side_effect=_names), \
             patch("porty.discovery.get_exec_path", return_value=None), \
             patch("porty.discovery.enrich_docker_containers", new=AsyncMock()) as enrich:
            entries = await discover_ports()

        assert [(e.port, e.pid, e.process, e.kind) for e in entries] == [
            (3000, 4242, "node", Kind.DEV),
            (5432, 900, "postgres", Kind.DATABASE),
            (6379, 77, "dockerd", Kind.CONTAINER),
        ]
        enrich.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_lsof_flags(self):
        fake = command_router({"lsof": ok("")})
        with patch("porty.discovery.run_command", fake):
            await discover_ports()
        assert fake.calls == [("lsof", "-nP", "-iTCP", "-sTCP:LISTEN", "-Fpcn")]

    @pytest.mark.asyncio
    async def test_sorted_by_port(self):
        output = "p1\ncnode\nn*:9000\np2\ncnode\nn*:3000\np3\ncnode\nn*:5173\n"
        with patch("porty.discovery.run_command", command_router({"lsof": ok(output)})), \
             patch("porty.discovery.get_process_name", return_value=None), \
             patch("porty.discovery.get_exec_path", return_value=None):
            entries = await discover_ports()
        assert [e.port for e in entries] == [3000, 5173, 9000]

    @pytest.mark.asyncio
    async def test_command_fallback_when_lookup_fails(self):
        with patch("porty.discovery.run_command", command_router({"lsof": ok("p7\ncpython3.1\nn*:1234\n")})), \
             patch("porty.discovery.get_process_name", return_value=None), \
             patch("porty.discovery.get_exec_path", return_value="/usr/bin/python3"):
            entries = await discover_ports()
        assert entries[0].process == "python3.1"
        assert entries[0].exec_path == "/usr/bin/python3"
        assert entries[0].kind == Kind.DEV

    @pytest.mark.asyncio
    async def test_missing_lsof_raises(self):
        with patch("porty.discovery.run_command", command_router({})):
            with pytest.raises(DiscoveryError) as exc_info:
                await discover_ports()
        assert exc_info.value.tool == "lsof"

    @pytest.mark.asyncio
    async def test_nonzero_exit_raises(self):
        with patch("porty.discovery.run_command", command_router({"lsof": failed("boom")})):
            with pytest.raises(DiscoveryError, match="boom"):
                await discover_ports()

    @pytest.mark.asyncio
    async def test_idempotent(self):
        with patch("porty.discovery.run_command", command_router({"lsof": ok(LSOF_OUTPUT)})), \
             patch("porty.discovery.get_process_name", side_effect=_names), \
             patch("porty.discovery.get_exec_path", return_value=None), \
             patch("porty.discovery.enrich_docker_containers", new=AsyncMock()):
            first = await discover_ports()
            second = await discover_ports()
        assert first == second
