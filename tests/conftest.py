"""
Shared test fixtures and configuration.

Tests never touch the real home directory or package managers: facts
are built by hand over ``tmp_path`` and every adapter is a MockAdapter.
"""

import os
import stat
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from devbox.adapters.mock import MockAdapter
from devbox.adapters.registry import AdapterRegistry
from devbox.core.config.loader import load_config
from devbox.core.models.action import Receipt
from devbox.core.models.platform import PlatformFacts

ADAPTER_NAMES = (
    "shell", "brew", "apt", "dnf", "yum", "pip",
    "spotlight", "at", "git", "scp", "curl", "nvim",
)

FIXED_NOW = datetime(2026, 10, 16, 12, 0, 0, tzinfo=timezone(timedelta(hours=2)))


def package_manager(name: str, installed: Iterable[str] = ()) -> MockAdapter:
    """A mock manager that remembers what it installed.

    ``query`` succeeds only for installed units; ``install`` adds the
    unit, so a second pass over the same catalog finds everything.
    """
    present = set(installed)

    def responder(ctx):
        if ctx.operation == "query":
            if ctx.unit in present:
                return Receipt.success(adapter=name, action_id=ctx.action.id, output=ctx.unit)
            return Receipt.failure(
                adapter=name, action_id=ctx.action.id, error=f"{ctx.unit} is not installed"
            )
        if ctx.operation == "install":
            present.add(ctx.unit)
        return None

    mock = MockAdapter(name, responder=responder)
    mock.installed = present
    return mock


def stub_registry(
    facts: PlatformFacts | None = None,
    *,
    installed: Iterable[str] = (),
    dry_run: bool = False,
) -> AdapterRegistry:
    """A registry where every known adapter name is a mock."""
    registry = AdapterRegistry(facts=facts, dry_run=dry_run)
    installed = list(installed)
    for name in ADAPTER_NAMES:
        if name in ("brew", "apt", "dnf", "yum", "pip"):
            registry.register(package_manager(name, installed))
        elif name == "spotlight":
            mock = MockAdapter(name)
            mock.fail_operation("search", "No application bundle")
            registry.register(mock)
        else:
            registry.register(MockAdapter(name))
    return registry


def make_executable(directory: Path, name: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text("#!/bin/sh\nexit 0\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def fake_home(tmp_path: Path) -> Path:
    """An empty home directory."""
    home = tmp_path / "home"
    home.mkdir()
    return home


@pytest.fixture
def linux_facts(fake_home: Path) -> PlatformFacts:
    return PlatformFacts(
        os_family="linux",
        arch="x86_64",
        home=fake_home,
        path=(),
        distro_like=("ubuntu", "debian"),
    )


@pytest.fixture
def rhel_facts(fake_home: Path) -> PlatformFacts:
    return PlatformFacts(
        os_family="linux",
        arch="x86_64",
        home=fake_home,
        path=(),
        distro_like=("rhel", "fedora"),
    )


@pytest.fixture
def darwin_facts(fake_home: Path) -> PlatformFacts:
    return PlatformFacts(os_family="darwin", arch="arm64", home=fake_home, path=())


@pytest.fixture
def bin_dir(tmp_path: Path) -> Path:
    """A directory of fake executables, for facts that need a PATH."""
    path = tmp_path / "bin"
    path.mkdir()
    return path


@pytest.fixture
def default_config():
    """Packaged defaults, ignoring any devbox.yml around the test run."""
    return load_config(search=False)


@pytest.fixture
def isolated_env(monkeypatch, fake_home: Path):
    """Point HOME at the fake home and drop DEVBOX_* variables."""
    monkeypatch.setenv("HOME", str(fake_home))
    for key in list(os.environ):
        if key.startswith("DEVBOX_"):
            monkeypatch.delenv(key, raising=False)
    return fake_home
