"""Data models for the cascading selection engine."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


class LevelStatus(StrEnum):
    """Render status of a single level in a cascade."""

    IDLE = "idle"
    LOADING = "loading"
    POPULATED = "populated"
    ERRORED = "errored"
    SKIPPED = "skipped"


class Level(BaseModel):
    """Static descriptor of one position in a cascade."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    label: str
    parent_id: int | None = None
    required: bool = True


class Option(BaseModel):
    """A selectable entry for one level.

    Domain fields beyond ``code``, ``name`` and ``type`` (for example
    ``is_independent`` on PSGC cities) are kept as extra attributes.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    code: str
    name: str
    type: str | None = None

    @property
    def display_label(self) -> str:
        if self.type:
            return f"{self.name} ({self.type})"
        return self.name


class OptionSet(BaseModel):
    """Ordered options for one level, tagged with the parent key they were fetched for."""

    model_config = ConfigDict(frozen=True)

    options: tuple[Option, ...] = ()
    parent_key: str | None = None
    bypass_rule: str | None = None

    @property
    def codes(self) -> list[str]:
        return [option.code for option in self.options]

    def get(self, code: str) -> Option | None:
        """Return the option with ``code``, or None."""
        for option in self.options:
            if option.code == code:
                return option
        return None

    def is_for(self, parent_key: str | None) -> bool:
        """Whether this set was fetched for the given parent selection."""
        return self.parent_key == parent_key

    @classmethod
    def from_result(
        cls,
        result: Any,
        parent_key: str | None,
        bypass_rule: str | None = None,
    ) -> OptionSet:
        """Normalize an OptionSource result into a tagged, deduplicated OptionSet.

        Accepts an ``OptionSet`` or any iterable of ``Option`` models or
        mappings. The returned set is always tagged with ``parent_key``,
        regardless of any tag the source put on it.
        """
        items: Iterable[Any] = result.options if isinstance(result, OptionSet) else (result or ())
        seen: set[str] = set()
        options: list[Option] = []
        for item in items:
            option = item if isinstance(item, Option) else Option.model_validate(item)
            if option.code in seen:
                logger.warning(
                    "Dropping duplicate option code %r for parent %r", option.code, parent_key
                )
                continue
            seen.add(option.code)
            options.append(option)
        return cls(options=tuple(options), parent_key=parent_key, bypass_rule=bypass_rule)


class LevelSnapshot(BaseModel):
    """Render view of one level."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    label: str
    status: LevelStatus
    enabled: bool
    selection: str | None = None
    selected_option: Option | None = None
    options: OptionSet | None = None
    error: str | None = None


class CascadeSnapshot(BaseModel):
    """Immutable copy of the controller's state for rendering.

    The per-level mappings are read-only views.
    """

    model_config = ConfigDict(frozen=True, validate_default=True)

    selections: Mapping[int, str | None] = Field(default_factory=dict)
    options: Mapping[int, OptionSet] = Field(default_factory=dict)
    loading: frozenset[int] = frozenset()
    errors: Mapping[int, str] = Field(default_factory=dict)
    skipped: frozenset[int] = frozenset()
    levels: tuple[LevelSnapshot, ...] = ()

    @field_validator("selections", "options", "errors", mode="after")
    @classmethod
    def freeze_mappings(cls, value: Mapping[int, Any]) -> Mapping[int, Any]:
        return MappingProxyType(dict(value))

    def level(self, name: str) -> LevelSnapshot:
        """Return the render view for the level called ``name``."""
        for level in self.levels:
            if level.name == name:
                return level
        raise ValueError(f"Unknown level: {name!r}")

    def selected_codes(self) -> dict[str, str | None]:
        """Selections keyed by level name."""
        return {level.name: level.selection for level in self.levels}

    def summary(self) -> str:
        """Comma-joined names of the selected options, most specific last."""
        names = [
            level.selected_option.name
            for level in self.levels
            if level.selected_option is not None
        ]
        return ", ".join(names) or "Incomplete address"
