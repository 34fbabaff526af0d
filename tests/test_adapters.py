"""
Tests for the adapter layer — registry dispatch, mock adapter and the
command lines each concrete adapter builds.
"""

from pathlib import Path

import pytest
from conftest import make_executable

from devbox.adapters.base import ExecutionContext
from devbox.adapters.factory import build_registry
from devbox.adapters.mock import MockAdapter
from devbox.adapters.packages.homebrew import HomebrewAdapter, brew_prefix
from devbox.adapters.packages.pip import PipAdapter
from devbox.adapters.packages.system import AptAdapter, DnfAdapter
from devbox.adapters.registry import AdapterRegistry
from devbox.adapters.runner import run_command
from devbox.adapters.shell.command import ShellCommandAdapter
from devbox.adapters.system import scheduler, spotlight
from devbox.adapters.system.scheduler import AtSchedulerAdapter
from devbox.adapters.system.spotlight import SpotlightAdapter, bundle_query
from devbox.adapters.transfer import scp
from devbox.adapters.transfer.scp import ScpAdapter, remote_target
from devbox.adapters.vcs import git
from devbox.adapters.vcs.git import GitAdapter
from devbox.core.models.action import Action, Receipt
from devbox.core.models.platform import PlatformFacts


def _ctx(action: Action, facts=None) -> ExecutionContext:
    return ExecutionContext(action=action, facts=facts, params=action.params)


class _Recorder:
    """Stands in for run_command and remembers what it was asked to run."""

    def __init__(self, output: str = "", ok: bool = True):
        self.calls: list[dict] = []
        self.output = output
        self.ok = ok

    def __call__(self, cmd, *, adapter, action_id, **kwargs):
        self.calls.append({"cmd": cmd, **kwargs})
        if self.ok:
            return Receipt.success(adapter=adapter, action_id=action_id, output=self.output)
        return Receipt.failure(adapter=adapter, action_id=action_id, error="exit 1")


# ── MockAdapter Tests ────────────────────────────────────────────────


class TestMockAdapter:
    def test_default_success(self):
        mock = MockAdapter("apt")
        receipt = mock.execute(_ctx(Action.build("apt", "install", "git")))
        assert receipt.ok
        assert mock.call_count == 1
        assert mock.calls_for("install") == ["git"]

    def test_fail_operation(self):
        mock = MockAdapter("apt")
        mock.fail_operation("query", "not installed")
        assert mock.execute(_ctx(Action.build("apt", "query", "git"))).failed
        assert mock.execute(_ctx(Action.build("apt", "install", "git"))).ok

    def test_response_by_id_beats_failing_operation(self):
        mock = MockAdapter("apt")
        mock.fail_operation("query")
        mock.set_response(
            "apt:query:git", Receipt.success(adapter="apt", action_id="apt:query:git")
        )
        assert mock.execute(_ctx(Action.build("apt", "query", "git"))).ok
        assert mock.execute(_ctx(Action.build("apt", "query", "tmux"))).failed

    def test_set_failure(self):
        mock = MockAdapter("git")
        mock.set_failure("git:clone:x", "network down")
        receipt = mock.execute(_ctx(Action.build("git", "clone", "x")))
        assert receipt.error == "network down"

    def test_responder(self):
        def responder(ctx):
            if ctx.unit == "special":
                return Receipt.failure(adapter="m", action_id=ctx.action.id, error="special")
            return None

        mock = MockAdapter("m", responder=responder)
        assert mock.execute(_ctx(Action.build("m", "op", "special"))).failed
        assert mock.execute(_ctx(Action.build("m", "op", "plain"))).ok

    def test_reset(self):
        mock = MockAdapter("m")
        mock.fail_operation("op")
        mock.execute(_ctx(Action.build("m", "op", "x")))
        mock.reset()
        assert mock.call_count == 0
        assert mock.execute(_ctx(Action.build("m", "op", "x"))).ok


# ── Registry Tests ───────────────────────────────────────────────────


class TestRegistry:
    def test_dispatch_and_journal(self):
        registry = AdapterRegistry()
        registry.register(MockAdapter("apt"))
        action = Action.build("apt", "install", "git")
        receipt = registry.execute(action)
        assert receipt.ok
        assert registry.journal == [(action, receipt)]

    def test_missing_adapter(self):
        registry = AdapterRegistry()
        receipt = registry.execute(Action.build("nope", "install", "git"))
        assert receipt.failed
        assert "No adapter registered" in receipt.error

    def test_dry_run_skips_changes_but_runs_queries(self):
        mock = MockAdapter("apt")
        registry = AdapterRegistry(dry_run=True)
        registry.register(mock)

        install = registry.execute(Action.build("apt", "install", "git"))
        query = registry.execute(Action.build("apt", "query", "git", read_only=True))

        assert install.skipped
        assert "[dry-run]" in install.output
        assert query.ok
        assert mock.calls_for("install") == []
        assert mock.calls_for("query") == ["git"]

    def test_mock_mode_default(self):
        registry = AdapterRegistry(mock_mode=True)
        receipt = registry.execute(Action.build("brew", "install", "git"))
        assert receipt.ok
        assert receipt.metadata["mock"] is True

    def test_mock_mode_custom_adapter(self):
        registry = AdapterRegistry()
        registry.register(MockAdapter("apt"))
        shared = MockAdapter("mock")
        shared.fail_operation("query")
        registry.set_mock_mode(True, shared)

        assert registry.execute(Action.build("apt", "query", "git")).failed
        assert registry.execute(Action.build("git", "clone", "x")).ok
        assert shared.call_count == 2
        assert registry.is_available("anything")

    def test_validation_failure(self):
        registry = AdapterRegistry()
        registry.register(GitAdapter())
        receipt = registry.execute(Action.build("git", "clone", "x", dest="/tmp/x"))
        assert receipt.failed
        assert "url" in receipt.error

    def test_unknown_operation(self):
        registry = AdapterRegistry()
        registry.register(GitAdapter())
        receipt = registry.execute(Action.build("git", "push", "x", dest="/tmp/x"))
        assert receipt.failed
        assert "Unknown operation 'push'" in receipt.error

    def test_adapter_exception_becomes_failure(self):
        def explode(ctx):
            raise RuntimeError("kaboom")

        registry = AdapterRegistry()
        registry.register(MockAdapter("bad", responder=explode))
        receipt = registry.execute(Action.build("bad", "op", "x"))
        assert receipt.failed
        assert "kaboom" in receipt.error

    def test_is_available(self):
        registry = AdapterRegistry()
        registry.register(MockAdapter("at", available=False))
        registry.register(MockAdapter("git"))
        assert not registry.is_available("at")
        assert registry.is_available("git")
        assert not registry.is_available("missing")

    def test_default_wiring(self):
        registry = build_registry()
        assert set(registry.list_adapters()) == {
            "shell", "brew", "apt", "dnf", "yum", "pip",
            "spotlight", "at", "git", "scp", "curl", "nvim",
        }
        status = registry.adapter_status()
        assert status["apt"]["type"] == "AptAdapter"


# ── Runner Tests ─────────────────────────────────────────────────────


class TestRunCommand:
    def test_success(self):
        receipt = run_command(["sh", "-c", "echo hello"], adapter="t", action_id="t:1")
        assert receipt.ok
        assert receipt.output == "hello"
        assert receipt.metadata["return_code"] == 0

    def test_non_zero_exit(self):
        receipt = run_command(["sh", "-c", "echo bad >&2; exit 3"], adapter="t", action_id="t:2")
        assert receipt.failed
        assert receipt.error == "bad"
        assert receipt.metadata["return_code"] == 3

    def test_missing_executable(self):
        receipt = run_command(["definitely-not-a-real-tool-xyz"], adapter="t", action_id="t:3")
        assert receipt.failed
        assert receipt.metadata["return_code"] == 127

    def test_stdin(self):
        receipt = run_command(["cat"], adapter="t", action_id="t:4", input_text="piped\n")
        assert receipt.output == "piped"


class TestShellCommandAdapter:
    def test_runs_command(self):
        adapter = ShellCommandAdapter()
        receipt = adapter.execute(_ctx(Action.build("shell", "run", "x", command="echo ok")))
        assert receipt.ok
        assert receipt.output == "ok"

    def test_requires_command(self):
        ok, msg = ShellCommandAdapter().validate(_ctx(Action.build("shell", "run", "x")))
        assert not ok
        assert "command" in msg


# ── Package Manager Adapter Tests ────────────────────────────────────


class TestPackageCommands:
    def test_brew(self):
        brew = HomebrewAdapter()
        assert brew.query_command("brew", "git", {}) == [
            ["brew", "list", "--cask", "git"],
            ["brew", "list", "git"],
        ]
        assert brew.install_command("brew", "docker", {"kind": "cask"}) == [
            "brew", "install", "--cask", "docker",
        ]
        assert brew.install_command("brew", "git", {"kind": "formula"}) == ["brew", "install", "git"]

    def test_brew_prefix(self):
        assert brew_prefix("arm64") == "/opt/homebrew"
        assert brew_prefix("x86_64") == "/usr/local"

    def test_apt(self):
        apt = AptAdapter()
        assert apt.name == "apt"
        assert apt.install_command("apt-get", "git", {}) == ["apt-get", "install", "-y", "git"]
        installed = Receipt.success(adapter="apt", action_id="a", output="install ok installed")
        removed = Receipt.success(adapter="apt", action_id="a", output="deinstall ok config-files")
        assert apt.check_query_output(installed)
        assert not apt.check_query_output(removed)

    def test_dnf_groups(self):
        dnf = DnfAdapter("dnf")
        assert dnf.install_command("dnf", "Development Tools", {"kind": "group"}) == [
            "dnf", "-y", "groupinstall", "Development Tools",
        ]
        assert dnf.install_command("dnf", "git", {"kind": "os"}) == ["dnf", "-y", "install", "git"]
        assert dnf.query_command("dnf", "git", {}) == [["rpm", "-q", "git"]]

    def test_yum_name(self):
        assert DnfAdapter("yum").name == "yum"

    def test_unsupported_rpm_front_end(self):
        with pytest.raises(ValueError):
            DnfAdapter("zypper")

    def test_pip_upgrade(self):
        pip = PipAdapter("pip3")
        assert pip.name == "pip"
        assert pip.install_command("pip3", "pip", {"upgrade": True}) == [
            "pip3", "install", "--upgrade", "pip",
        ]
        assert pip.install_command("pip3", "numpy", {}) == ["pip3", "install", "numpy"]

    def test_query_needs_unit(self):
        ok, msg = AptAdapter().validate(_ctx(Action.build("apt", "query")))
        assert not ok

    def test_resolve_uses_facts(self, fake_home, bin_dir):
        make_executable(bin_dir, "brew")
        facts = PlatformFacts(os_family="darwin", home=fake_home, path=(str(bin_dir),))
        ctx = _ctx(Action.build("brew", "query", "git"), facts)
        assert HomebrewAdapter().resolve(ctx) == str(bin_dir / "brew")

    def test_query_falls_through(self, monkeypatch):
        calls = []

        def fake_run(cmd, *, adapter, action_id, **kwargs):
            calls.append(cmd)
            if "--cask" in cmd:
                return Receipt.failure(adapter=adapter, action_id=action_id, error="no cask")
            return Receipt.success(adapter=adapter, action_id=action_id, output="git")

        monkeypatch.setattr("devbox.adapters.packages.base.run_command", fake_run)
        receipt = HomebrewAdapter().execute(_ctx(Action.build("brew", "query", "git")))
        assert receipt.ok
        assert len(calls) == 2

    def test_exit_zero_without_match_is_absent(self, monkeypatch):
        recorder = _Recorder(output="")
        monkeypatch.setattr("devbox.adapters.packages.base.run_command", recorder)
        action = Action.build("dnf", "query", "Development Tools", kind="group")
        receipt = DnfAdapter("dnf").execute(_ctx(action))
        assert receipt.failed
        assert "not installed" in receipt.error


# ── OS / Transfer Adapter Tests ──────────────────────────────────────


class TestSpotlightAdapter:
    def test_bundle_query(self):
        assert "kMDItemFSName == 'iTerm.app'" in bundle_query("iTerm")

    def test_empty_output_means_absent(self, monkeypatch):
        monkeypatch.setattr(spotlight, "run_command", _Recorder(output=""))
        receipt = SpotlightAdapter().execute(_ctx(Action.build("spotlight", "search", "iTerm")))
        assert receipt.failed
        assert "iTerm.app" in receipt.error

    def test_match(self, monkeypatch):
        recorder = _Recorder(output="/Applications/iTerm.app")
        monkeypatch.setattr(spotlight, "run_command", recorder)
        receipt = SpotlightAdapter().execute(_ctx(Action.build("spotlight", "search", "iTerm")))
        assert receipt.ok
        assert recorder.calls[0]["cmd"][0] == "mdfind"


class TestAtSchedulerAdapter:
    def test_job_on_stdin(self, monkeypatch):
        recorder = _Recorder()
        monkeypatch.setattr(scheduler, "run_command", recorder)
        action = Action.build("at", "schedule", "b", when="now + 30 days", command="rm -rf /x")
        assert AtSchedulerAdapter().execute(_ctx(action)).ok
        call = recorder.calls[0]
        assert call["cmd"] == ["at", "now", "+", "30", "days"]
        assert call["input_text"] == "rm -rf /x\n"

    def test_requires_params(self):
        ok, msg = AtSchedulerAdapter().validate(
            _ctx(Action.build("at", "schedule", "b", when="now + 1 days"))
        )
        assert not ok
        assert "command" in msg


class TestScpAdapter:
    def test_remote_target(self):
        assert remote_target("me", "lab01", "/tmp") == "me@lab01:/tmp"
        assert remote_target("", "lab01", "/tmp") == "lab01:/tmp"

    def test_copy(self, monkeypatch, tmp_path: Path):
        recorder = _Recorder()
        monkeypatch.setattr(scp, "run_command", recorder)
        action = Action.build(
            "scp", "copy", "a.tar.gz",
            source=str(tmp_path / "a.tar.gz"), user="me", host="lab01", path="/tmp",
        )
        receipt = ScpAdapter().execute(_ctx(action))
        assert receipt.metadata["target"] == "me@lab01:/tmp"
        assert recorder.calls[0]["cmd"] == ["scp", "-q", str(tmp_path / "a.tar.gz"), "me@lab01:/tmp"]

    def test_requires_host(self):
        ok, _ = ScpAdapter().validate(_ctx(Action.build("scp", "copy", "a", source="a", path="/")))
        assert not ok


class TestGitAdapter:
    def test_clone_command(self, monkeypatch):
        recorder = _Recorder()
        monkeypatch.setattr(git, "run_command", recorder)
        action = Action.build("git", "clone", "x", url="https://e/x.git", dest="/w/x", depth=1)
        GitAdapter().execute(_ctx(action))
        assert recorder.calls[0]["cmd"] == [
            "git", "clone", "--quiet", "--depth", "1", "https://e/x.git", "/w/x",
        ]
        assert recorder.calls[0]["env_overrides"] == {"GIT_TERMINAL_PROMPT": "0"}

    def test_update_command(self, monkeypatch):
        recorder = _Recorder()
        monkeypatch.setattr(git, "run_command", recorder)
        GitAdapter().execute(_ctx(Action.build("git", "update", "x", dest="/w/x")))
        assert recorder.calls[0]["cmd"] == ["git", "-C", "/w/x", "pull", "--ff-only", "--quiet"]

    def test_origin_command(self, monkeypatch):
        recorder = _Recorder()
        monkeypatch.setattr(git, "run_command", recorder)
        GitAdapter().execute(_ctx(Action.build("git", "origin", "x", read_only=True, dest="/w/x")))
        assert recorder.calls[0]["cmd"] == ["git", "-C", "/w/x", "remote", "get-url", "origin"]
