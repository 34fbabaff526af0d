"""
DevboxConfig — the validated contents of devbox.yml.

Everything the scripts used to hard-code (catalogs, backup candidates,
plugin URLs, library lists) lives here as declaration data. The loader
merges the user's file over the packaged defaults before validation.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator

from devbox.core.models.catalog import Catalog, ToolDeclaration


def _reject_duplicates(label: str, names: list[str]) -> None:
    dupes = sorted({n for n in names if names.count(n) > 1})
    if dupes:
        raise ValueError(f"Duplicate {label} entries: {', '.join(dupes)}")


class BackupSettings(BaseModel):
    candidates: list[str] = Field(default_factory=list)    # relative to home
    retention_days: int = Field(default=30, ge=0)
    schedule_with_at: bool = True
    directory_prefix: str = "backup_configs_"


class CatalogSettings(BaseModel):
    """Tool catalogs keyed by channel."""

    formulae: list[str] = Field(default_factory=list)
    casks: list[ToolDeclaration] = Field(default_factory=list)
    apt: list[str] = Field(default_factory=list)

    @field_validator("casks", mode="before")
    @classmethod
    def _casks_from_names(cls, value: object) -> object:
        # Plain strings are accepted alongside {name, app_name} mappings
        if isinstance(value, list):
            return [
                {"name": v, "channel": "cask"} if isinstance(v, str) else {**v, "channel": "cask"}
                for v in value
            ]
        return value

    @model_validator(mode="after")
    def _unique_entries(self) -> CatalogSettings:
        _reject_duplicates("formulae", self.formulae)
        _reject_duplicates("casks", [c.name for c in self.casks])
        _reject_duplicates("apt", self.apt)
        return self

    def brew_catalog(self) -> Catalog:
        return Catalog.from_names("formulae", self.formulae, "formula")

    def cask_catalog(self) -> Catalog:
        return Catalog(name="casks", tools=list(self.casks))

    def apt_catalog(self) -> Catalog:
        return Catalog.from_names("apt", self.apt, "os")


class RuntimeSettings(BaseModel):
    brew_formula: str = "python"
    apt_package: str = "python3-pip"
    pip_executable: str = "pip3"
    libraries: list[str] = Field(default_factory=list)
    upgrade_pip: bool = True

    @model_validator(mode="after")
    def _unique_libraries(self) -> RuntimeSettings:
        _reject_duplicates("runtime.libraries", self.libraries)
        return self


class EditorSettings(BaseModel):
    config_dir: str = ".config/nvim"
    config_file: str = "init.vim"
    plug_path: str = ".local/share/nvim/site/autoload/plug.vim"
    plug_url: str = "https://raw.githubusercontent.com/junegunn/vim-plug/master/plug.vim"
    plugged_dir: str = "~/.config/nvim/plugged"
    install_plugins: bool = True
    dedupe_path_line: bool = False


class BundleSettings(BaseModel):
    plugins: list[str] = Field(default_factory=list)
    archive_name: str = "nvim-plugins.tar.gz"
    work_dir: str = ".cache/devbox/bundle"      # relative to home
    strip_dirs: list[str] = Field(default_factory=lambda: [".git", ".github", ".gitlab", ".circleci"])
    strip_files: list[str] = Field(
        default_factory=lambda: [".gitmodules", ".travis.yml", ".gitlab-ci.yml"]
    )
    clone_depth: int = Field(default=1, ge=1)
    allow_duplicates: bool = False


class RemoteSettings(BaseModel):
    group_packages: list[str] = Field(default_factory=list)
    packages: list[str] = Field(default_factory=list)
    pack_dir: str = ".local/share/nvim/site/pack/vendor/start"
    manifest_file: str = "bundled-plugins.txt"
    runtime_executable: str = "matlab"
    profile: str = ".bashrc"

    @model_validator(mode="after")
    def _unique_packages(self) -> RemoteSettings:
        _reject_duplicates("remote.group_packages", self.group_packages)
        _reject_duplicates("remote.packages", self.packages)
        return self

    def catalog(self) -> Catalog:
        """Package groups first, then individual packages."""
        tools = [ToolDeclaration(name=g, channel="group") for g in self.group_packages]
        tools += [ToolDeclaration(name=p, channel="os") for p in self.packages]
        return Catalog(name="remote", tools=tools)


class DevboxConfig(BaseModel):
    """Root configuration — loaded from devbox.yml over packaged defaults."""

    version: int = 1

    backup: BackupSettings = Field(default_factory=BackupSettings)
    catalogs: CatalogSettings = Field(default_factory=CatalogSettings)
    runtime: RuntimeSettings = Field(default_factory=RuntimeSettings)
    editor: EditorSettings = Field(default_factory=EditorSettings)
    bundle: BundleSettings = Field(default_factory=BundleSettings)
    remote: RemoteSettings = Field(default_factory=RemoteSettings)

    state_dir: str = ".local/state/devbox"      # relative to home
    login_profile: str = ".bash_profile"
