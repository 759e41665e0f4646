"""Tests for command inlines and executable code fences."""

import asyncio
import sys
import tempfile
import time
from pathlib import Path

import pytest

from mdexpand.errors import BinaryCommandOutput
from mdexpand.errors import CodeFenceFailed
from mdexpand.errors import CommandFailed
from mdexpand.errors import CommandTimedOut
from mdexpand.imports import commands
from mdexpand.imports import ImportContext
from mdexpand.imports.commands import is_markdown_file_command
from mdexpand.imports.commands import process_command_inline
from mdexpand.imports.commands import process_executable_code_fence
from mdexpand.imports.commands import strip_ansi
from mdexpand.imports.models import ExecutableCodeFence
from mdexpand.settings import ExpansionSettings
from mdexpand.templating import wrap_literal

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX shell commands")


def make_fence(code, shebang="#!/bin/sh"):
    original = f"```sh\n{shebang}\n{code}\n```"
    return ExecutableCodeFence(shebang=shebang, language="sh", code=code, original=original, index=0)


@pytest.fixture
def tracked_tempfiles(monkeypatch):
    """Record every temp script path the fence runner creates."""
    created = []
    real_mkstemp = tempfile.mkstemp

    def recording_mkstemp(*args, **kwargs):
        fd, name = real_mkstemp(*args, **kwargs)
        created.append(Path(name))
        return fd, name

    monkeypatch.setattr(commands.tempfile, "mkstemp", recording_mkstemp)
    return created


class TestHelpers:
    def test_strip_ansi(self):
        assert strip_ansi("\x1b[31mred\x1b[0m plain") == "red plain"

    def test_markdown_file_command(self):
        assert is_markdown_file_command("./other.md")
        assert is_markdown_file_command("../docs/task.md --flag")
        assert is_markdown_file_command("notes.md")
        assert not is_markdown_file_command("cat notes.md")
        assert not is_markdown_file_command("echo hi")


class TestCommandInline:
    @pytest.mark.asyncio
    async def test_stdout_is_wrapped(self, temp_dir, ctx):
        assert await process_command_inline("echo hello", temp_dir, ctx) == wrap_literal("hello")

    @pytest.mark.asyncio
    async def test_stderr_precedes_stdout(self, temp_dir, ctx):
        result = await process_command_inline("echo out; echo err >&2", temp_dir, ctx)

        assert result == wrap_literal("err\nout")

    @pytest.mark.asyncio
    async def test_nonzero_exit_raises_with_stderr(self, temp_dir, ctx):
        with pytest.raises(CommandFailed) as exc_info:
            await process_command_inline("echo oops >&2; exit 3", temp_dir, ctx)

        assert exc_info.value.exit_code == 3
        assert exc_info.value.stderr == "oops"
        assert "Exit 3" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self, temp_dir):
        ctx = ImportContext(settings=ExpansionSettings(command_timeout=0.5))

        with pytest.raises(CommandTimedOut) as exc_info:
            await process_command_inline("sleep 10", temp_dir, ctx)

        assert exc_info.value.timeout == 0.5
        assert exc_info.value.command == "sleep 10"

    @pytest.mark.asyncio
    async def test_template_vars_substituted_in_command(self, temp_dir, settings):
        ctx = ImportContext(template_vars={"name": "World"}, settings=settings)

        assert await process_command_inline("echo Hello {{ name }}", temp_dir, ctx) == wrap_literal("Hello World")

    @pytest.mark.asyncio
    async def test_template_syntax_in_output_stays_literal(self, temp_dir, settings):
        ctx = ImportContext(template_vars={"name": "World"}, settings=settings)

        result = await process_command_inline("printf '%s' '{{ other }}'", temp_dir, ctx)

        assert result == wrap_literal("{{ other }}")

    @pytest.mark.asyncio
    async def test_ansi_is_stripped(self, temp_dir, ctx):
        result = await process_command_inline("printf '\\033[32mgreen\\033[0m'", temp_dir, ctx)

        assert result == wrap_literal("green")

    @pytest.mark.asyncio
    async def test_output_truncated(self, temp_dir):
        ctx = ImportContext(settings=ExpansionSettings(max_command_output=10))

        result = await process_command_inline("printf 'abcdefghijklmnopqrstuvwxyz'", temp_dir, ctx)

        assert result == wrap_literal("abcdefghij\n... [Output truncated: 16 characters removed]")

    @pytest.mark.asyncio
    async def test_binary_output_rejected(self, temp_dir, ctx):
        with pytest.raises(BinaryCommandOutput):
            await process_command_inline("printf 'a\\000b'", temp_dir, ctx)

    @pytest.mark.asyncio
    async def test_markdown_file_runs_through_self_command(self, temp_dir, settings):
        ctx = ImportContext(dry_run=True, settings=settings)

        result = await process_command_inline("./other.md --flag", temp_dir, ctx)

        assert result == '[Dry Run: Command "mdexpand expand ./other.md --flag" not executed]'

    @pytest.mark.asyncio
    async def test_custom_self_command(self, temp_dir):
        ctx = ImportContext(dry_run=True, settings=ExpansionSettings(self_command="echo"))

        result = await process_command_inline("./task.md", temp_dir, ctx)

        assert result == '[Dry Run: Command "echo ./task.md" not executed]'

    @pytest.mark.asyncio
    async def test_runs_in_given_directory(self, temp_dir, ctx):
        assert await process_command_inline("pwd", temp_dir, ctx) == wrap_literal(str(temp_dir))


class TestExecutableCodeFence:
    @pytest.mark.asyncio
    async def test_runs_script(self, temp_dir, ctx, tracked_tempfiles):
        result = await process_executable_code_fence(make_fence("echo one\necho two"), temp_dir, ctx)

        assert result == wrap_literal("one\ntwo")
        assert len(tracked_tempfiles) == 1
        assert not tracked_tempfiles[0].exists()

    @pytest.mark.asyncio
    async def test_failure_removes_temp_file(self, temp_dir, ctx, tracked_tempfiles):
        with pytest.raises(CodeFenceFailed) as exc_info:
            await process_executable_code_fence(make_fence("echo bad >&2\nexit 2"), temp_dir, ctx)

        assert exc_info.value.exit_code == 2
        assert exc_info.value.stderr == "bad"
        assert not tracked_tempfiles[0].exists()

    @pytest.mark.asyncio
    async def test_timeout_removes_temp_file(self, temp_dir, tracked_tempfiles):
        ctx = ImportContext(settings=ExpansionSettings(command_timeout=0.5))

        with pytest.raises(CommandTimedOut):
            await process_executable_code_fence(make_fence("sleep 10"), temp_dir, ctx)

        assert not tracked_tempfiles[0].exists()

    @pytest.mark.asyncio
    async def test_dry_run(self, temp_dir, settings, tracked_tempfiles):
        ctx = ImportContext(dry_run=True, settings=settings)

        result = await process_executable_code_fence(make_fence("echo hi"), temp_dir, ctx)

        assert result == "[Dry Run: Code fence not executed]"
        assert tracked_tempfiles == []


class TestRunProcess:
    @pytest.mark.asyncio
    async def test_cancel_kills_process_promptly(self, temp_dir):
        task = asyncio.create_task(commands.run_process(["sh", "-c", "sleep 5"], temp_dir, None, 10, "sleep 5"))
        await asyncio.sleep(0.2)
        start = time.monotonic()

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert time.monotonic() - start < 1

    @pytest.mark.asyncio
    async def test_timeout_kills_process_promptly(self, temp_dir):
        start = time.monotonic()

        with pytest.raises(CommandTimedOut):
            await commands.run_process(["sh", "-c", "sleep 5"], temp_dir, None, 0.2, "sleep 5")

        assert time.monotonic() - start < 1
