"""
Catalog models — declarative tool units.

A catalog is an ordered list of independent ToolDeclarations. No unit
depends on another, so the installer may process them in any order and
reach the same final state.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Channel = Literal["formula", "cask", "os", "group", "pip"]


class ToolDeclaration(BaseModel):
    """One installable unit: a name, an install channel and a presence check."""

    model_config = ConfigDict(frozen=True)

    name: str
    channel: Channel = "formula"
    app_name: str | None = None     # .app bundle name for the OS search (casks)

    @field_validator("name")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("tool name must not be empty")
        return value

    @property
    def bundle_name(self) -> str:
        """Application bundle name used by the OS-level search.

        ``iterm2`` → ``iTerm2`` can't be derived, so casks may declare
        ``app_name`` explicitly; otherwise the name is title-cased.
        """
        return self.app_name or self.name.title()

    @property
    def is_cask(self) -> bool:
        return self.channel == "cask"


class Catalog(BaseModel):
    """A named, ordered set of tool declarations processed in one pass."""

    name: str
    tools: list[ToolDeclaration] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_names(self) -> Catalog:
        seen: set[tuple[str, str]] = set()
        for tool in self.tools:
            key = (tool.channel, tool.name)
            if key in seen:
                raise ValueError(f"duplicate tool '{tool.name}' in catalog '{self.name}'")
            seen.add(key)
        return self

    @classmethod
    def from_names(cls, name: str, names: list[str], channel: Channel) -> Catalog:
        return cls(name=name, tools=[ToolDeclaration(name=n, channel=channel) for n in names])

    @property
    def size(self) -> int:
        return len(self.tools)

    def names(self) -> list[str]:
        return [t.name for t in self.tools]
