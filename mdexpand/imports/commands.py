"""Command inlines and executable code fences.

Both run as subprocesses with a timeout, reject binary stdout, strip ANSI
escapes, cap output size, and wrap the result in a raw block so the
template stage leaves program output alone.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import re
import signal
import sys
import tempfile
from pathlib import Path

from ..errors import BinaryCommandOutput
from ..errors import CodeFenceFailed
from ..errors import CommandFailed
from ..errors import CommandTimedOut
from ..templating import substitute_variables
from ..templating import wrap_literal
from .models import ExecutableCodeFence
from .models import ImportContext

logger = logging.getLogger(__name__)

ANSI_ESCAPE_PATTERN = re.compile(
    r"[\u001b\u009b][\[()#;?]*(?:[0-9]{1,4}(?:;[0-9]{0,4})*)?[0-9A-ORZcf-nqry=><]"
)

# A command that is just a markdown file (plus arguments) chains into this tool
MARKDOWN_FILE_COMMAND_PATTERN = re.compile(r"^(~?\.?\.?/)?[^\s]+\.md(\s|$)")

BINARY_OUTPUT_CHECK_SIZE = 1024

FENCE_EXTENSIONS = {"ts": "ts", "js": "js", "py": "py", "python": "py", "sh": "sh", "bash": "sh"}


def strip_ansi(text: str) -> str:
    return ANSI_ESCAPE_PATTERN.sub("", text)


def is_markdown_file_command(command: str) -> bool:
    """Check if a command is a markdown file that should run through this tool."""
    return bool(MARKDOWN_FILE_COMMAND_PATTERN.match(command.strip()))


def shell_argv(command: str) -> list[str]:
    if sys.platform == "win32":
        return ["cmd.exe", "/d", "/s", "/c", command]
    return ["sh", "-c", command]


def _kill(proc: asyncio.subprocess.Process) -> None:
    with contextlib.suppress(ProcessLookupError):
        if sys.platform == "win32":
            proc.kill()
        else:
            os.killpg(proc.pid, signal.SIGKILL)


async def run_process(
    argv: list[str],
    cwd: Path,
    env: dict[str, str] | None,
    timeout: float,
    label: str,
) -> tuple[int, bytes, bytes]:
    """Run ``argv`` and collect its output, killing it on timeout or cancellation.

    Returns:
        (exit code, stdout bytes, stderr bytes)

    Raises:
        CommandTimedOut: If the process outlives ``timeout`` seconds
        OSError: If the process cannot be started
    """
    proc = await asyncio.create_subprocess_exec(
        *argv,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=str(cwd),
        env=env,
        start_new_session=sys.platform != "win32",
    )

    # communicate() runs as its own task so the process group is killed
    # before waiting for the pipes to drain
    communicate = asyncio.create_task(proc.communicate())
    try:
        done, _ = await asyncio.wait({communicate}, timeout=timeout)
    except asyncio.CancelledError:
        _kill(proc)
        await asyncio.gather(communicate, return_exceptions=True)
        raise

    if not done:
        _kill(proc)
        await asyncio.gather(communicate, return_exceptions=True)
        raise CommandTimedOut(label, timeout)

    stdout, stderr = communicate.result()
    return proc.returncode or 0, stdout, stderr


def _decode_output(label: str, stdout: bytes, stderr: bytes) -> tuple[str, str]:
    if b"\0" in stdout[:BINARY_OUTPUT_CHECK_SIZE]:
        raise BinaryCommandOutput(label)
    out = strip_ansi(stdout.decode("utf-8", errors="replace").strip())
    err = strip_ansi(stderr.decode("utf-8", errors="replace").strip())
    return out, err


def _combine_output(stdout: str, stderr: str, limit: int) -> str:
    output = f"{stderr}\n{stdout}" if stderr and stdout else stdout or stderr

    if len(output) > limit:
        removed = len(output) - limit
        output = output[:limit] + f"\n... [Output truncated: {removed:,} characters removed]"

    return wrap_literal(output)


def _env(ctx: ImportContext) -> dict[str, str] | None:
    return dict(ctx.env) if ctx.env is not None else None


async def process_command_inline(command: str, current_dir: Path, ctx: ImportContext) -> str:
    """Run an inline command and return its wrapped output.

    Raises:
        CommandTimedOut: If the command exceeds the configured timeout
        BinaryCommandOutput: If stdout contains binary data
        CommandFailed: If the command exits non-zero or cannot start
    """
    processed = substitute_variables(command, ctx.template_vars)
    if processed != command:
        logger.info(f"Command with vars: {command} -> {processed}")

    actual = processed
    if is_markdown_file_command(processed):
        actual = f"{ctx.settings.self_command} {processed}"
        logger.info(f"Auto-running .md file with {ctx.settings.self_command}: {actual}")
    else:
        logger.info(f"Executing: {processed}")

    if ctx.dry_run:
        logger.info(f"Dry-run: skipping execution of '{actual}'")
        return f'[Dry Run: Command "{actual}" not executed]'

    cwd = ctx.invocation_cwd or current_dir
    try:
        exit_code, raw_out, raw_err = await run_process(
            shell_argv(actual), cwd, _env(ctx), ctx.settings.command_timeout, actual
        )
    except OSError as e:
        raise CommandFailed(actual, None, stderr=str(e)) from e

    stdout, stderr = _decode_output(actual, raw_out, raw_err)

    if exit_code != 0:
        raise CommandFailed(actual, exit_code, stdout=stdout, stderr=stderr)

    return _combine_output(stdout, stderr, ctx.settings.max_command_output)


async def process_executable_code_fence(fence: ExecutableCodeFence, current_dir: Path, ctx: ImportContext) -> str:
    """Write a fenced script to a temp file, run it, and return its wrapped output.

    The temp file is removed on every exit path.

    Raises:
        CommandTimedOut: If the script exceeds the configured timeout
        BinaryCommandOutput: If stdout contains binary data
        CodeFenceFailed: If the script exits non-zero or cannot start
    """
    logger.info(f"Executing code fence ({fence.language}): {fence.shebang}")

    if ctx.dry_run:
        return "[Dry Run: Code fence not executed]"

    ext = FENCE_EXTENSIONS.get(fence.language, fence.language)
    fd, tmp_name = tempfile.mkstemp(prefix="mdexpand-", suffix=f".{ext}")
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(f"{fence.shebang}\n{fence.code}\n")
        tmp_path.chmod(0o755)

        cwd = ctx.invocation_cwd or current_dir
        try:
            exit_code, raw_out, raw_err = await run_process(
                [str(tmp_path)], cwd, _env(ctx), ctx.settings.command_timeout, fence.shebang
            )
        except OSError as e:
            raise CodeFenceFailed(fence.shebang, None, stderr=str(e)) from e

        stdout, stderr = _decode_output(fence.shebang, raw_out, raw_err)

        if exit_code != 0:
            raise CodeFenceFailed(fence.shebang, exit_code, stdout=stdout, stderr=stderr)

        return _combine_output(stdout, stderr, ctx.settings.max_command_output)
    finally:
        tmp_path.unlink(missing_ok=True)
