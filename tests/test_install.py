"""
Tests for the declarative installer, bootstrap and runtime setup.
"""

import itertools

import pytest
from conftest import make_executable, package_manager, stub_registry

from devbox.adapters.registry import AdapterRegistry
from devbox.core.errors import StageFailed
from devbox.core.models.catalog import Catalog, ToolDeclaration
from devbox.core.models.config import RuntimeSettings
from devbox.core.models.platform import PlatformFacts
from devbox.core.services.bootstrap_ops import bootstrap, brew_bin_dir
from devbox.core.services.install_ops import (
    install_catalog,
    install_tool,
    select_manager,
    select_rpm_manager,
)
from devbox.core.services.profile_ops import shellenv_line
from devbox.core.services.runtime_ops import setup_runtime

TOOLS = ["git", "tmux", "neovim", "fzf"]


# ── Manager Selection Tests ──────────────────────────────────────────


class TestSelectManager:
    def test_macos(self, darwin_facts):
        assert select_manager(darwin_facts) == "brew"

    def test_debian_family(self, linux_facts):
        assert select_manager(linux_facts) == "apt"

    def test_apt_get_on_path(self, fake_home, bin_dir):
        make_executable(bin_dir, "apt-get")
        facts = PlatformFacts(os_family="linux", home=fake_home, path=(str(bin_dir),))
        assert select_manager(facts) == "apt"

    def test_rhel_prefers_dnf(self, fake_home, bin_dir):
        make_executable(bin_dir, "dnf")
        facts = PlatformFacts(
            os_family="linux", home=fake_home, path=(str(bin_dir),), distro_like=("rhel",)
        )
        assert select_manager(facts) == "dnf"

    def test_rhel_falls_back_to_yum(self, rhel_facts):
        assert select_rpm_manager(rhel_facts) == "yum"
        assert select_manager(rhel_facts) == "yum"


# ── Installer Tests ──────────────────────────────────────────────────


class TestInstallTool:
    def test_present_tool_not_installed(self, linux_facts):
        registry = stub_registry(linux_facts, installed=["git"])
        outcome = install_tool(ToolDeclaration(name="git", channel="os"), linux_facts, registry, manager="apt")
        assert outcome.status == "present"
        assert registry.get("apt").calls_for("install") == []

    def test_absent_tool_installed(self, linux_facts):
        registry = stub_registry(linux_facts)
        outcome = install_tool(ToolDeclaration(name="git", channel="os"), linux_facts, registry, manager="apt")
        assert outcome.status == "installed"
        assert registry.get("apt").calls_for("install") == ["git"]

    def test_failed_install(self, linux_facts):
        registry = stub_registry(linux_facts)
        registry.get("apt").set_failure("apt:install:git", "E: Unable to locate package git")
        outcome = install_tool(ToolDeclaration(name="git", channel="os"), linux_facts, registry, manager="apt")
        assert outcome.status == "failed"
        assert "Unable to locate" in outcome.error

    def test_cask_skipped_off_brew(self, linux_facts):
        registry = stub_registry(linux_facts)
        outcome = install_tool(
            ToolDeclaration(name="docker", channel="cask"), linux_facts, registry, manager="apt"
        )
        assert outcome.status == "skipped"
        assert registry.get("apt").call_count == 0

    def test_cask_install_passes_kind(self, darwin_facts):
        registry = stub_registry(darwin_facts)
        install_tool(ToolDeclaration(name="docker", channel="cask"), darwin_facts, registry, manager="brew")
        install = [c for c in registry.get("brew").call_log if c.operation == "install"][0]
        assert install.params["kind"] == "cask"

    def test_dry_run_plans(self, linux_facts):
        registry = stub_registry(linux_facts, dry_run=True)
        outcome = install_tool(ToolDeclaration(name="git", channel="os"), linux_facts, registry, manager="apt")
        assert outcome.status == "planned"
        assert registry.get("apt").calls_for("install") == []


class TestInstallCatalog:
    def test_each_missing_tool_installed_once(self, linux_facts):
        registry = stub_registry(linux_facts, installed=["git"])
        catalog = Catalog.from_names("apt", TOOLS, "os")

        report = install_catalog(catalog, linux_facts, registry, manager="apt")

        assert report.present == ["git"]
        assert report.installed == ["tmux", "neovim", "fzf"]
        assert registry.get("apt").calls_for("install") == ["tmux", "neovim", "fzf"]

    def test_second_pass_installs_nothing(self, linux_facts):
        registry = stub_registry(linux_facts)
        catalog = Catalog.from_names("apt", TOOLS, "os")

        install_catalog(catalog, linux_facts, registry, manager="apt")
        second = install_catalog(catalog, linux_facts, registry, manager="apt")

        assert second.installed == []
        assert second.present == TOOLS
        assert len(registry.get("apt").calls_for("install")) == len(TOOLS)

    def test_fail_fast_stops_at_first_failure(self, linux_facts):
        registry = stub_registry(linux_facts)
        registry.get("apt").set_failure("apt:install:tmux", "broken")
        catalog = Catalog.from_names("apt", TOOLS, "os")

        with pytest.raises(StageFailed, match="tmux") as exc:
            install_catalog(catalog, linux_facts, registry, manager="apt")

        assert exc.value.stage == "tools"
        assert registry.get("apt").calls_for("install") == ["git", "tmux"]

    def test_fail_soft_continues(self, linux_facts):
        registry = stub_registry(linux_facts)
        registry.get("apt").set_failure("apt:install:tmux", "broken")
        catalog = Catalog.from_names("apt", TOOLS, "os")

        report = install_catalog(catalog, linux_facts, registry, manager="apt", fail_fast=False)

        assert report.failed == ["tmux"]
        assert report.installed == ["git", "neovim", "fzf"]
        assert report.to_dict()["errors"] == {"tmux": "broken"}

    @pytest.mark.parametrize("order", list(itertools.permutations(["git", "tmux", "fzf"])))
    def test_order_does_not_change_final_state(self, linux_facts, order):
        registry = stub_registry(linux_facts, installed=["tmux"])
        install_catalog(Catalog.from_names("apt", list(order), "os"), linux_facts, registry, manager="apt")
        assert registry.get("apt").installed == {"git", "tmux", "fzf"}
        assert sorted(registry.get("apt").calls_for("install")) == ["fzf", "git"]


# ── Bootstrap Tests ──────────────────────────────────────────────────


class TestBootstrap:
    def test_installs_homebrew_when_missing(self, darwin_facts):
        registry = stub_registry(darwin_facts)

        result = bootstrap(darwin_facts, registry, login_profile=".bash_profile")

        assert result.installed
        assert registry.get("shell").calls_for("run") == ["homebrew-install"]
        profile = darwin_facts.home / ".bash_profile"
        assert shellenv_line("/opt/homebrew/bin/brew") in profile.read_text().splitlines()
        assert result.facts.path[:2] == ("/opt/homebrew/bin", "/opt/homebrew/sbin")
        assert registry.facts is result.facts

    def test_profile_hook_not_duplicated(self, darwin_facts):
        profile = darwin_facts.home / ".bash_profile"
        profile.write_text(shellenv_line("/opt/homebrew/bin/brew") + "\n")
        result = bootstrap(darwin_facts, stub_registry(darwin_facts))
        assert not result.profile_hooked
        assert profile.read_text().count("shellenv") == 1

    def test_homebrew_present(self, fake_home, bin_dir):
        make_executable(bin_dir, "brew")
        facts = PlatformFacts(os_family="darwin", home=fake_home, path=(str(bin_dir),))
        registry = stub_registry(facts)

        result = bootstrap(facts, registry)

        assert not result.installed
        assert registry.get("shell").call_count == 0
        assert not (fake_home / ".bash_profile").exists()

    def test_installer_failure(self, darwin_facts):
        registry = stub_registry(darwin_facts)
        registry.get("shell").fail_operation("run", "curl: (6) Could not resolve host")
        with pytest.raises(StageFailed, match="Homebrew installer failed"):
            bootstrap(darwin_facts, registry)

    def test_intel_prefix(self, fake_home):
        facts = PlatformFacts(os_family="darwin", arch="x86_64", home=fake_home)
        assert brew_bin_dir(facts) == "/usr/local/bin"

    def test_apt_refresh(self, linux_facts):
        registry = stub_registry(linux_facts)
        result = bootstrap(linux_facts, registry)
        assert result.manager == "apt"
        assert result.refreshed
        assert [c.operation for c in registry.get("apt").call_log] == ["refresh"]

    def test_apt_refresh_failure(self, linux_facts):
        registry = stub_registry(linux_facts)
        registry.get("apt").fail_operation("refresh", "could not lock")
        with pytest.raises(StageFailed, match="refresh failed"):
            bootstrap(linux_facts, registry)

    def test_rpm_hosts_have_nothing_to_bootstrap(self, rhel_facts):
        registry = stub_registry(rhel_facts)
        result = bootstrap(rhel_facts, registry)
        assert result.manager == "yum"
        assert registry.journal == []


# ── Runtime Tests ────────────────────────────────────────────────────


class TestRuntime:
    def test_linux_runtime(self, linux_facts):
        registry = stub_registry(linux_facts, installed=["numpy"])
        settings = RuntimeSettings(libraries=["numpy", "scipy"])

        result = setup_runtime(linux_facts, registry, settings, manager="apt")

        assert result.interpreter == "python3-pip"
        assert result.interpreter_status == "installed"
        assert result.pip_upgraded
        pip = registry.get("pip")
        upgrade = [c for c in pip.call_log if c.unit == "pip"][0]
        assert upgrade.params["upgrade"] is True
        assert result.libraries.present == ["numpy"]
        assert result.libraries.installed == ["scipy"]

    def test_macos_runtime_uses_formula(self, darwin_facts):
        registry = stub_registry(darwin_facts, installed=["python"])
        result = setup_runtime(darwin_facts, registry, RuntimeSettings(), manager="brew")
        assert result.interpreter == "python"
        assert result.interpreter_status == "present"

    def test_no_pip_upgrade(self, linux_facts):
        registry = stub_registry(linux_facts)
        setup_runtime(linux_facts, registry, RuntimeSettings(upgrade_pip=False), manager="apt")
        assert registry.get("pip").calls_for("install") == []

    def test_library_failure_is_fatal(self, linux_facts):
        registry = stub_registry(linux_facts)
        registry.get("pip").set_failure("pip:install:scipy", "no wheel")
        with pytest.raises(StageFailed, match="scipy"):
            setup_runtime(linux_facts, registry, RuntimeSettings(libraries=["scipy"]), manager="apt")

    def test_missing_pip_adapter(self, linux_facts):
        registry = AdapterRegistry(facts=linux_facts)
        registry.register(package_manager("apt"))
        with pytest.raises(StageFailed, match="pip upgrade failed"):
            setup_runtime(linux_facts, registry, RuntimeSettings(), manager="apt")
