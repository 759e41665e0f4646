"""Tests for the mdexpand CLI."""

import sys

import pytest
from click.testing import CliRunner

from mdexpand import main
from mdexpand import url_cache
from mdexpand.errors import CircularImport
from mdexpand.imports import ImportContext
from mdexpand.imports import ImportStack
from mdexpand.main import cli
from mdexpand.main import run_pipeline

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX shell commands")


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def isolated_env(monkeypatch, temp_dir):
    """Keep user settings and the URL cache inside the temp dir."""
    monkeypatch.setenv("HOME", str(temp_dir / "home"))
    monkeypatch.chdir(temp_dir)
    for var in ("MDEXPAND_MODEL", "MDEXPAND_CONCURRENCY", "MDEXPAND_COMMAND_TIMEOUT", "MDEXPAND_FORCE_CONTEXT"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(url_cache, "DEFAULT_CACHE_DIR", temp_dir / "cache")
    return temp_dir


def write(directory, name, text):
    path = directory / name
    path.write_text(text, encoding="utf-8")
    return path


class TestExpandCommand:
    def test_expands_file_imports(self, runner, isolated_env):
        write(isolated_env, "b.md", "B")
        doc = write(isolated_env, "doc.md", "A @./b.md\n")

        result = runner.invoke(cli, ["expand", str(doc)])

        assert result.exit_code == 0, result.output
        assert result.output == "A B\n"

    def test_template_variables(self, runner, isolated_env):
        doc = write(isolated_env, "doc.md", "Hello {{ name }}!\n")

        result = runner.invoke(cli, ["expand", str(doc), "--var", "name=World"])

        assert result.exit_code == 0, result.output
        assert result.output == "Hello World!\n"

    def test_reads_stdin(self, runner, isolated_env):
        result = runner.invoke(cli, ["expand", "-"], input="plain text\n")

        assert result.exit_code == 0, result.output
        assert result.output == "plain text\n"

    def test_content_only_leaves_commands(self, runner, isolated_env):
        doc = write(isolated_env, "doc.md", "Run !`echo hi`\n")

        result = runner.invoke(cli, ["expand", str(doc), "--content-only"])

        assert result.exit_code == 0, result.output
        assert result.output == "Run !`echo hi`\n"

    def test_dry_run(self, runner, isolated_env):
        doc = write(isolated_env, "doc.md", "!`echo hi`\n")

        result = runner.invoke(cli, ["expand", str(doc), "--dry-run"])

        assert result.exit_code == 0, result.output
        assert result.output == '[Dry Run: Command "echo hi" not executed]\n'

    @posix_only
    def test_command_output_unwrapped(self, runner, isolated_env):
        doc = write(isolated_env, "doc.md", "Out: !`echo {{ word }}`\n")

        result = runner.invoke(cli, ["expand", str(doc), "--var", "word=yes"])

        assert result.exit_code == 0, result.output
        assert result.output == "Out: yes\n"

    def test_missing_import_exits_nonzero(self, runner, isolated_env):
        doc = write(isolated_env, "doc.md", "@./missing.md\n")

        result = runner.invoke(cli, ["expand", str(doc)])

        assert result.exit_code == 1
        assert "Import not found" in result.output

    def test_bad_var_is_usage_error(self, runner, isolated_env):
        doc = write(isolated_env, "doc.md", "x\n")

        result = runner.invoke(cli, ["expand", str(doc), "--var", "novalue"])

        assert result.exit_code == 2

    def test_list_imports(self, runner, isolated_env):
        write(isolated_env, "b.md", "B")
        doc = write(isolated_env, "doc.md", "@./b.md\n")

        result = runner.invoke(cli, ["expand", str(doc), "--list-imports"])

        assert result.exit_code == 0, result.output
        assert "./b.md" in result.output

    def test_document_is_seeded_on_import_stack(self, runner, isolated_env, monkeypatch):
        doc = write(isolated_env, "doc.md", "Self @./doc.md\n")
        seen = []
        real_run_pipeline = main.run_pipeline

        async def recording(content, base_dir, ctx, variables, content_only=False, stack=None):
            seen.append(stack)
            return await real_run_pipeline(content, base_dir, ctx, variables, content_only, stack)

        monkeypatch.setattr(main, "run_pipeline", recording)

        result = runner.invoke(cli, ["expand", str(doc)])

        assert result.exit_code == 1
        assert "Circular import detected" in result.output
        assert seen[0].paths == (doc,)


class TestRunPipeline:
    @pytest.mark.asyncio
    async def test_self_import_fails_before_expanding(self, temp_dir):
        doc = write(temp_dir, "doc.md", "Self @./doc.md\n")
        ctx = ImportContext(resolved_imports=[])

        with pytest.raises(CircularImport) as exc_info:
            await run_pipeline(doc.read_text(encoding="utf-8"), temp_dir, ctx, {}, stack=ImportStack((doc,)))

        assert exc_info.value.chain == [doc, doc]
        assert ctx.resolved_imports == []


class TestCacheCommands:
    def test_path(self, runner, isolated_env):
        result = runner.invoke(cli, ["cache", "path"])

        assert result.exit_code == 0
        assert "not created yet" in result.output

    def test_clear(self, runner, isolated_env):
        url_cache.UrlCache().store("https://example.com/a.md", "body")

        result = runner.invoke(cli, ["cache", "clear"])

        assert result.exit_code == 0
        assert "Removed 2 cache file(s)" in result.output
        assert list((isolated_env / "cache").iterdir()) == []
