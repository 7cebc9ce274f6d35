"""Option source contract and registry.

An option source is any callable taking the parent level's selected code
(``None`` for the root level) and returning the candidate options for one
level. It may return the options directly or an awaitable that resolves to
them; either form may also raise or reject to signal a fetch failure.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any, Union

from citizenly.cascade.models import Option, OptionSet

OptionResult = Union[OptionSet, Iterable[Option], Iterable[Mapping[str, Any]]]
OptionSource = Callable[[Union[str, None]], Union[OptionResult, Awaitable[OptionResult]]]


class SourceRegistry:
    """Named option sources, referenced by YAML cascade definitions."""

    def __init__(self) -> None:
        self._sources: dict[str, OptionSource] = {}

    def register(self, name: str, source: OptionSource) -> None:
        """Register an option source under ``name``."""
        self._sources[name] = source

    def get(self, name: str) -> OptionSource | None:
        """Get a source by name."""
        return self._sources.get(name)

    def require(self, name: str) -> OptionSource:
        """Get a source by name.

        Raises:
            KeyError: If no source is registered under ``name``.
        """
        source = self._sources.get(name)
        if source is None:
            raise KeyError(f"Option source {name!r} is not registered")
        return source

    def __contains__(self, name: object) -> bool:
        return name in self._sources

    @property
    def source_names(self) -> list[str]:
        return list(self._sources.keys())
