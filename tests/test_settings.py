"""Tests for layered expansion settings."""

import pytest
import yaml
from pydantic import ValidationError

from mdexpand.settings import ExpansionSettings
from mdexpand.settings import deep_merge
from mdexpand.settings import load_settings


def write_settings(directory, data):
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "settings.yaml").write_text(yaml.safe_dump(data), encoding="utf-8")


def test_deep_merge_replaces_regular_values():
    assert deep_merge({"a": 1, "b": 2}, {"b": 3}) == {"a": 1, "b": 3}


def test_deep_merge_merges_dicts_recursively():
    base = {"config": {"a": 1, "b": 2}}
    overlay = {"config": {"b": 3, "c": 4}}
    assert deep_merge(base, overlay) == {"config": {"a": 1, "b": 3, "c": 4}}


class TestLoadSettings:
    def test_defaults(self, temp_dir):
        settings = load_settings(project_dir=temp_dir, user_dir=temp_dir / "user", env={})

        assert settings == ExpansionSettings()
        assert settings.command_timeout == 30.0
        assert settings.concurrency_limit == 10
        assert settings.self_command == "mdexpand expand"

    def test_project_overrides_user(self, temp_dir):
        write_settings(temp_dir / "user", {"expansion": {"command_timeout": 5, "concurrency_limit": 2}})
        write_settings(temp_dir / ".mdexpand", {"expansion": {"command_timeout": 12}})

        settings = load_settings(project_dir=temp_dir, user_dir=temp_dir / "user", env={})

        assert settings.command_timeout == 12
        assert settings.concurrency_limit == 2

    def test_env_overrides_files(self, temp_dir):
        write_settings(temp_dir / ".mdexpand", {"expansion": {"model": "gpt-4"}})
        env = {"MDEXPAND_MODEL": "claude-sonnet-4", "MDEXPAND_CONCURRENCY": "3"}

        settings = load_settings(project_dir=temp_dir, user_dir=temp_dir / "user", env=env)

        assert settings.model == "claude-sonnet-4"
        assert settings.concurrency_limit == 3

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("1", True), ("true", True), ("0", False), ("false", False), ("off", False)],
    )
    def test_force_context_env(self, temp_dir, value, expected):
        settings = load_settings(
            project_dir=temp_dir, user_dir=temp_dir / "user", env={"MDEXPAND_FORCE_CONTEXT": value}
        )

        assert settings.force_context is expected

    def test_other_sections_ignored(self, temp_dir):
        write_settings(temp_dir / ".mdexpand", {"logging": {"level": "DEBUG"}})

        assert load_settings(project_dir=temp_dir, user_dir=temp_dir / "user", env={}) == ExpansionSettings()

    def test_malformed_yaml_ignored(self, temp_dir):
        (temp_dir / ".mdexpand").mkdir()
        (temp_dir / ".mdexpand" / "settings.yaml").write_text("expansion: [unclosed", encoding="utf-8")

        assert load_settings(project_dir=temp_dir, user_dir=temp_dir / "user", env={}) == ExpansionSettings()

    def test_invalid_value_raises(self, temp_dir):
        with pytest.raises(ValidationError):
            load_settings(project_dir=temp_dir, user_dir=temp_dir / "user", env={"MDEXPAND_CONCURRENCY": "0"})
