"""
Tests for the configuration loader and ``check_config``.
"""

import textwrap
from pathlib import Path

import pytest

from devbox.core.config.loader import (
    CONFIG_ENV_VAR,
    ConfigError,
    find_config_file,
    load_config,
    merge_config,
)
from devbox.core.use_cases.config_check import check_config


def _write(path: Path, body: str) -> Path:
    path.write_text(textwrap.dedent(body))
    return path


# ── Merge Tests ──────────────────────────────────────────────────────


class TestMergeConfig:
    def test_mappings_merge(self):
        merged = merge_config({"a": {"x": 1, "y": 2}}, {"a": {"y": 3}})
        assert merged == {"a": {"x": 1, "y": 3}}

    def test_lists_replace(self):
        merged = merge_config({"a": [1, 2, 3]}, {"a": [9]})
        assert merged == {"a": [9]}

    def test_base_untouched(self):
        base = {"a": {"x": 1}}
        merge_config(base, {"a": {"x": 2}})
        assert base == {"a": {"x": 1}}


# ── Loader Tests ─────────────────────────────────────────────────────


class TestLoadConfig:
    def test_defaults(self, default_config):
        assert "neovim" in default_config.catalogs.formulae
        assert "neovim" in default_config.catalogs.apt
        assert default_config.backup.retention_days == 30
        assert ".config/nvim" in default_config.backup.candidates
        assert len(default_config.bundle.plugins) == 4
        assert default_config.remote.group_packages == ["Development Tools"]

    def test_user_file_overrides(self, tmp_path):
        path = _write(tmp_path / "devbox.yml", """\
            catalogs:
              apt: [git, tmux]
            backup:
              retention_days: 7
        """)
        config = load_config(path)
        assert config.catalogs.apt == ["git", "tmux"]
        assert config.backup.retention_days == 7
        # Untouched sections keep their defaults
        assert "neovim" in config.catalogs.formulae
        assert config.backup.candidates

    def test_empty_file_means_defaults(self, tmp_path, default_config):
        path = _write(tmp_path / "devbox.yml", "")
        assert load_config(path) == default_config

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "nope.yml")

    def test_invalid_yaml(self, tmp_path):
        path = _write(tmp_path / "devbox.yml", "catalogs: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_non_mapping(self, tmp_path):
        path = _write(tmp_path / "devbox.yml", "- just\n- a list\n")
        with pytest.raises(ConfigError, match="Expected a YAML mapping"):
            load_config(path)

    def test_schema_violation(self, tmp_path):
        path = _write(tmp_path / "devbox.yml", """\
            backup:
              retention_days: -3
        """)
        with pytest.raises(ConfigError, match="Invalid devbox configuration"):
            load_config(path)

    def test_duplicate_catalog_entry_rejected_at_load(self, tmp_path):
        path = _write(tmp_path / "devbox.yml", """\
            catalogs:
              apt: [git, git]
        """)
        with pytest.raises(ConfigError, match="Duplicate apt entries: git"):
            load_config(path)

    def test_duplicate_remote_package_rejected_at_load(self, tmp_path):
        path = _write(tmp_path / "devbox.yml", """\
            remote:
              packages: [neovim, ctags, neovim]
        """)
        with pytest.raises(ConfigError, match="Duplicate remote.packages entries: neovim"):
            load_config(path)


class TestFindConfigFile:
    def test_walks_up(self, tmp_path, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        _write(tmp_path / "devbox.yml", "version: 1\n")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config_file(nested) == tmp_path / "devbox.yml"

    def test_env_var_wins(self, tmp_path, monkeypatch):
        target = _write(tmp_path / "elsewhere.yml", "version: 1\n")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(target))
        assert find_config_file(tmp_path) == target

    def test_load_follows_env_var(self, tmp_path, monkeypatch):
        target = _write(tmp_path / "elsewhere.yml", """\
            catalogs:
              formulae: [git]
        """)
        monkeypatch.setenv(CONFIG_ENV_VAR, str(target))
        assert load_config().catalogs.formulae == ["git"]


# ── Config Check Tests ───────────────────────────────────────────────


class TestCheckConfig:
    def test_defaults_are_valid(self, tmp_path):
        path = _write(tmp_path / "devbox.yml", "version: 1\n")
        result = check_config(path)
        assert result.valid
        assert result.errors == []
        summary = result.to_dict()
        assert summary["plugins"] == 4
        assert summary["remote_packages"] == 10

    def test_duplicate_catalog_entries(self, tmp_path):
        path = _write(tmp_path / "devbox.yml", """\
            catalogs:
              apt: [git, tmux, git]
        """)
        result = check_config(path)
        assert not result.valid
        assert any("Duplicate apt entries: git" in e for e in result.errors)

    def test_plugin_collision_is_an_error(self, tmp_path):
        path = _write(tmp_path / "devbox.yml", """\
            bundle:
              plugins:
                - https://github.com/a/vim-fugitive.git
                - https://gitlab.com/b/vim-fugitive.git
        """)
        result = check_config(path)
        assert not result.valid
        assert any("vim-fugitive" in e for e in result.errors)

    def test_plugin_collision_allowed(self, tmp_path):
        path = _write(tmp_path / "devbox.yml", """\
            bundle:
              allow_duplicates: true
              plugins:
                - https://github.com/a/vim-fugitive.git
                - https://gitlab.com/b/vim-fugitive.git
        """)
        result = check_config(path)
        assert result.valid
        assert any("later URL wins" in w for w in result.warnings)

    def test_unreadable_config(self, tmp_path):
        result = check_config(tmp_path / "missing.yml")
        assert not result.valid
        assert result.errors

    def test_empty_plugins_warns(self, tmp_path):
        path = _write(tmp_path / "devbox.yml", """\
            bundle:
              plugins: []
        """)
        result = check_config(path)
        assert result.valid
        assert any("bundle.plugins is empty" in w for w in result.warnings)
