"""Tests for the subprocess-backed shell channel."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from termroute.errors.domain import ShellWriteError
from termroute.services.shell_channel import SubprocessShellChannel, resolve_shell


def _mock_process(returncode=None):
    process = MagicMock()
    process.pid = 4242
    process.returncode = returncode
    process.stdin = MagicMock()
    process.stdin.write = MagicMock()
    process.stdin.drain = AsyncMock()
    process.stdin.is_closing.return_value = False
    process.wait = AsyncMock(return_value=0)
    return process


class TestResolveShell:
    """Tests for shell program resolution."""

    def test_explicit_executable_wins(self, monkeypatch):
        """An explicit program beats $SHELL."""
        monkeypatch.setenv("SHELL", "/bin/zsh")
        assert resolve_shell("/usr/bin/fish") == "/usr/bin/fish"

    def test_falls_back_to_env(self, monkeypatch):
        """$SHELL is used when no program is configured."""
        monkeypatch.setenv("SHELL", "/bin/zsh")
        assert resolve_shell() == "/bin/zsh"

    def test_falls_back_to_sh(self, monkeypatch):
        """/bin/sh is the last resort."""
        monkeypatch.delenv("SHELL", raising=False)
        assert resolve_shell("") == "/bin/sh"

    def test_shell_name(self):
        """shell_name is the program's basename."""
        assert SubprocessShellChannel("/usr/local/bin/bash").shell_name == "bash"


class TestSubprocessShellChannel:
    """Tests for open, write and close."""

    @pytest.mark.asyncio
    async def test_open_starts_process(self):
        """open launches the shell with a stdin pipe in the given directory."""
        channel = SubprocessShellChannel("/bin/bash")
        process = _mock_process()

        with patch(
            "asyncio.create_subprocess_exec",
            new_callable=AsyncMock,
            return_value=process,
        ) as mock_exec:
            handle = await channel.open("tab-1", cwd="/tmp")

        assert handle == "tab-1"
        assert channel.is_running("tab-1")
        args, kwargs = mock_exec.call_args
        assert args == ("/bin/bash",)
        assert kwargs["stdin"] == asyncio.subprocess.PIPE
        assert kwargs["cwd"] == "/tmp"

    @pytest.mark.asyncio
    async def test_open_is_idempotent(self):
        """Opening an existing handle does not start a second shell."""
        channel = SubprocessShellChannel("/bin/bash")
        with patch(
            "asyncio.create_subprocess_exec",
            new_callable=AsyncMock,
            return_value=_mock_process(),
        ) as mock_exec:
            await channel.open("tab-1")
            await channel.open("tab-1")
        assert mock_exec.await_count == 1

    @pytest.mark.asyncio
    async def test_open_missing_program(self):
        """A missing shell program raises ShellWriteError."""
        channel = SubprocessShellChannel("/no/such/shell")
        with patch(
            "asyncio.create_subprocess_exec",
            new_callable=AsyncMock,
            side_effect=FileNotFoundError("not found"),
        ):
            with pytest.raises(ShellWriteError, match="Failed to start shell"):
                await channel.open("tab-1")
        assert not channel.is_running("tab-1")

    @pytest.mark.asyncio
    async def test_write_sends_bytes(self):
        """write forwards the bytes and drains the pipe."""
        channel = SubprocessShellChannel("/bin/bash")
        process = _mock_process()
        with patch("asyncio.create_subprocess_exec", new_callable=AsyncMock, return_value=process):
            await channel.open("tab-1")

        await channel.write("tab-1", b"ls -la\n")

        process.stdin.write.assert_called_once_with(b"ls -la\n")
        process.stdin.drain.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_write_unknown_handle(self):
        """Writing to a handle that was never opened fails."""
        channel = SubprocessShellChannel("/bin/bash")
        with pytest.raises(ShellWriteError, match="No shell process"):
            await channel.write("tab-9", b"ls\n")

    @pytest.mark.asyncio
    async def test_write_after_exit(self):
        """Writing to an exited shell fails with its status."""
        channel = SubprocessShellChannel("/bin/bash")
        process = _mock_process()
        with patch("asyncio.create_subprocess_exec", new_callable=AsyncMock, return_value=process):
            await channel.open("tab-1")
        process.returncode = 1

        with pytest.raises(ShellWriteError, match="status 1"):
            await channel.write("tab-1", b"ls\n")
        assert not channel.is_running("tab-1")

    @pytest.mark.asyncio
    async def test_broken_pipe(self):
        """A broken pipe during drain becomes ShellWriteError."""
        channel = SubprocessShellChannel("/bin/bash")
        process = _mock_process()
        process.stdin.drain.side_effect = BrokenPipeError("pipe")
        with patch("asyncio.create_subprocess_exec", new_callable=AsyncMock, return_value=process):
            await channel.open("tab-1")

        with pytest.raises(ShellWriteError, match="pipe closed"):
            await channel.write("tab-1", b"ls\n")

    @pytest.mark.asyncio
    async def test_close_waits_for_exit(self):
        """close shuts stdin and waits for the shell."""
        channel = SubprocessShellChannel("/bin/bash")
        process = _mock_process()
        with patch("asyncio.create_subprocess_exec", new_callable=AsyncMock, return_value=process):
            await channel.open("tab-1")

        await channel.close("tab-1")

        process.stdin.close.assert_called_once()
        process.wait.assert_awaited()
        process.kill.assert_not_called()
        assert not channel.is_running("tab-1")

    @pytest.mark.asyncio
    async def test_close_kills_hung_shell(self):
        """A shell that ignores EOF is killed."""
        channel = SubprocessShellChannel("/bin/bash")
        process = _mock_process()
        with patch("asyncio.create_subprocess_exec", new_callable=AsyncMock, return_value=process):
            await channel.open("tab-1")

        with patch("asyncio.wait_for", new_callable=AsyncMock, side_effect=asyncio.TimeoutError):
            await channel.close("tab-1")

        process.kill.assert_called_once()

    @pytest.mark.asyncio
    async def test_close_unknown_handle(self):
        """Closing an unknown handle is a no-op."""
        await SubprocessShellChannel("/bin/bash").close("tab-9")


class TestRealShell:
    """Runs commands through an actual /bin/sh."""

    @pytest.mark.asyncio
    async def test_command_runs(self, tmp_path):
        """A written command is executed by the shell."""
        channel = SubprocessShellChannel("/bin/sh")
        await channel.open("tab-1", cwd=str(tmp_path))

        await channel.write("tab-1", b"echo routed > out.txt\n")
        await channel.close("tab-1")

        assert (tmp_path / "out.txt").read_text().strip() == "routed"
