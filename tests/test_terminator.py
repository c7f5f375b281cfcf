"""Tests for process termination."""

import signal
from unittest.mock import AsyncMock, call, patch

import pytest

from porty.exceptions import TerminationError
from porty.models import Kind, PortEntry
from porty.terminator import KillTarget, kill_pid, kill_port, kill_targets, select_kill_targets


class TestSelectKillTargets:
    """Tests for target selection."""

    def test_dedupes_by_pid(self):
        entries = [
            PortEntry(port=8080, pid=42, process="node", kind=Kind.DEV),
            PortEntry(port=8080, pid=42, process="node", kind=Kind.DEV),
            PortEntry(port=8080, pid=43, process="python", kind=Kind.DEV),
            PortEntry(port=3000, pid=44, process="vite", kind=Kind.DEV),
        ]
        assert select_kill_targets(entries, 8080) == [
            KillTarget(pid=42, process="node"),
            KillTarget(pid=43, process="python"),
        ]

    def test_skips_unattributed(self):
        entries = [PortEntry(port=8080), PortEntry(port=8080, pid=9)]
        assert select_kill_targets(entries, 8080) == []


class TestKillPid:
    """Tests for the terminate-then-kill sequence."""

    @pytest.mark.asyncio
    async def test_graceful_exit(self):
        with patch("porty.terminator.os.kill") as mock_kill, \
             patch("porty.terminator.pid_alive", return_value=False):
            await kill_pid(42, grace=0)
        mock_kill.assert_called_once_with(42, signal.SIGTERM)

    @pytest.mark.asyncio
    async def test_escalates_to_sigkill(self):
        with patch("porty.terminator.os.kill") as mock_kill, \
             patch("porty.terminator.pid_alive", return_value=True):
            await kill_pid(42, grace=0)
        assert mock_kill.call_args_list == [call(42, signal.SIGTERM), call(42, signal.SIGKILL)]

    @pytest.mark.asyncio
    async def test_exit_before_sigkill_is_success(self):
        with patch("porty.terminator.os.kill", side_effect=[None, ProcessLookupError()]) as mock_kill, \
             patch("porty.terminator.pid_alive", return_value=True):
            await kill_pid(42, grace=0)
        assert mock_kill.call_args_list == [call(42, signal.SIGTERM), call(42, signal.SIGKILL)]

    @pytest.mark.asyncio
    async def test_sigkill_permission_denied(self):
        with patch("porty.terminator.os.kill", side_effect=[None, PermissionError()]), \
             patch("porty.terminator.pid_alive", return_value=True):
            with pytest.raises(TerminationError, match="permission denied"):
                await kill_pid(42, grace=0)

    @pytest.mark.asyncio
    async def test_waits_grace_period(self):
        with patch("porty.terminator.os.kill"), \
             patch("porty.terminator.pid_alive", return_value=False), \
             patch("porty.terminator.asyncio.sleep", new=AsyncMock()) as mock_sleep:
            await kill_pid(42)
        mock_sleep.assert_awaited_once_with(0.3)

    @pytest.mark.asyncio
    async def test_permission_denied(self):
        with patch("porty.terminator.os.kill", side_effect=PermissionError()):
            with pytest.raises(TerminationError, match="permission denied"):
                await kill_pid(1, grace=0)

    @pytest.mark.asyncio
    async def test_vanished_pid(self):
        with patch("porty.terminator.os.kill", side_effect=ProcessLookupError()):
            with pytest.raises(TerminationError) as exc_info:
                await kill_pid(99999, grace=0)
        assert exc_info.value.pid == 99999


class TestKillTargets:
    """Tests for sequential termination."""

    @pytest.mark.asyncio
    async def test_failure_does_not_abort(self):
        targets = [KillTarget(pid=1, process="launchd"), KillTarget(pid=42, process="node")]
        mock_kill = AsyncMock(side_effect=[TerminationError(1, "permission denied"), None])
        with patch("porty.terminator.kill_pid", new=mock_kill):
            outcomes = await kill_targets(targets)
        assert [o.success for o in outcomes] == [False, True]
        assert "permission denied" in outcomes[0].error
        assert mock_kill.await_count == 2

    @pytest.mark.asyncio
    async def test_kill_port_signals_each_pid_once(self):
        entries = [
            PortEntry(port=8080, pid=42, process="node", kind=Kind.DEV),
            PortEntry(port=8080, pid=42, process="node", kind=Kind.DEV),
        ]
        mock_kill = AsyncMock(return_value=None)
        with patch("porty.terminator.kill_pid", new=mock_kill):
            outcomes = await kill_port(entries, 8080)
        mock_kill.assert_awaited_once_with(42)
        assert len(outcomes) == 1
