"""Static cascade description: levels, their sources, and bypass rules.

A cascade is a simple chain of levels, each depending on the selection of
the level before it. Bypass rules declare the exceptions: when a selection
at one level satisfies a rule, a deeper target level is loaded straight from
an alternate source and the levels in between are skipped.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

import yaml

from citizenly.cascade.errors import ConfigurationError
from citizenly.cascade.models import Level
from citizenly.cascade.sources import OptionSource, SourceRegistry

logger = logging.getLogger(__name__)


class BypassRule:
    """A declared exception that lets a selection skip intermediate levels.

    Either ``predicate`` or ``codes`` must be given. ``codes`` is the
    declarative form (the rule matches when the selected code is one of
    them) and lets the graph detect overlapping rules.
    """

    def __init__(
        self,
        level: int | str,
        target_level: int | str,
        alternate_source: OptionSource,
        predicate: Callable[[str], bool] | None = None,
        codes: Iterable[str] | None = None,
        name: str | None = None,
    ) -> None:
        if (predicate is None) == (codes is None):
            raise ConfigurationError(
                "A bypass rule needs exactly one of 'predicate' or 'codes'"
            )
        self.level = level
        self.target_level = target_level
        self.alternate_source = alternate_source
        self.codes: frozenset[str] | None = frozenset(codes) if codes is not None else None
        self._predicate = predicate
        self.name = name or f"bypass:{level}->{target_level}"

    def matches(self, code: str) -> bool:
        """Check whether the selected code triggers this rule."""
        if self.codes is not None:
            return code in self.codes
        return bool(self._predicate(code))  # type: ignore[misc]

    def __repr__(self) -> str:
        return f"BypassRule(name={self.name!r}, level={self.level!r}, target_level={self.target_level!r})"


def _coerce_levels(levels: Sequence[Level | str]) -> list[Level]:
    coerced: list[Level] = []
    for index, level in enumerate(levels):
        if isinstance(level, Level):
            coerced.append(level)
        else:
            coerced.append(
                Level(
                    id=index,
                    name=level,
                    label=level.replace("_", " ").title(),
                    parent_id=index - 1 if index > 0 else None,
                )
            )
    return coerced


class CascadeGraph:
    """Ordered levels, one normal source per level, and the bypass rule table.

    All validation happens here, so a malformed definition fails when the
    graph is built rather than on some later selection.

    Args:
        levels: ``Level`` descriptors or plain level names, root first.
        sources: Normal option source per level name.
        rules: Bypass rules, declared in level order.

    Raises:
        ConfigurationError: If the levels do not form a chain, a source is
            missing, or a bypass rule is unknown, cyclic or overlapping.
    """

    def __init__(
        self,
        levels: Sequence[Level | str],
        sources: Mapping[str, OptionSource],
        rules: Sequence[BypassRule] = (),
    ) -> None:
        self._levels = _coerce_levels(levels)
        self._by_name: dict[str, Level] = {}
        self._sources: dict[int, OptionSource] = {}
        self._rules: list[BypassRule] = list(rules)
        self._rule_targets: dict[int, tuple[int, int]] = {}
        self._validate_levels()
        self._bind_sources(sources)
        self._validate_rules()

    # -- validation ----------------------------------------------------------

    def _validate_levels(self) -> None:
        if not self._levels:
            raise ConfigurationError("A cascade needs at least one level")
        for index, level in enumerate(self._levels):
            if level.id != index:
                raise ConfigurationError(
                    f"Level {level.name!r} has id {level.id}, expected {index}"
                )
            if level.name in self._by_name:
                raise ConfigurationError(f"Duplicate level name: {level.name!r}")
            expected_parent = index - 1 if index > 0 else None
            if level.parent_id != expected_parent:
                raise ConfigurationError(
                    f"Level {level.name!r} must have parent {expected_parent}, "
                    f"got {level.parent_id}"
                )
            self._by_name[level.name] = level

    def _bind_sources(self, sources: Mapping[str, OptionSource]) -> None:
        for level in self._levels:
            source = sources.get(level.name)
            if source is None:
                raise ConfigurationError(f"No option source for level {level.name!r}")
            self._sources[level.id] = source

    def _validate_rules(self) -> None:
        by_level: dict[int, list[BypassRule]] = {}
        for rule in self._rules:
            try:
                origin = self.level(rule.level).id
                target = self.level(rule.target_level).id
            except ValueError as exc:
                raise ConfigurationError(f"{rule.name}: {exc}") from exc
            if target <= origin:
                raise ConfigurationError(
                    f"{rule.name}: target level {target} must be below level {origin}"
                )
            for other in by_level.get(origin, []):
                if rule.codes is not None and other.codes is not None:
                    overlap = rule.codes & other.codes
                    if overlap:
                        raise ConfigurationError(
                            f"Bypass rules {other.name!r} and {rule.name!r} overlap "
                            f"on codes {sorted(overlap)}"
                        )
                else:
                    logger.warning(
                        "Bypass rules %r and %r share level %d and cannot be checked "
                        "for overlap; the first match wins",
                        other.name, rule.name, origin,
                    )
            by_level.setdefault(origin, []).append(rule)
            self._rule_targets[id(rule)] = (origin, target)

    # -- lookups -------------------------------------------------------------

    @property
    def levels(self) -> list[Level]:
        return list(self._levels)

    @property
    def rules(self) -> list[BypassRule]:
        return list(self._rules)

    def __len__(self) -> int:
        return len(self._levels)

    def level(self, ref: int | str) -> Level:
        """Look up a level by ordinal id or name.

        Raises:
            ValueError: If the level is unknown.
        """
        if isinstance(ref, int) and not isinstance(ref, bool):
            if 0 <= ref < len(self._levels):
                return self._levels[ref]
        elif isinstance(ref, str) and ref in self._by_name:
            return self._by_name[ref]
        raise ValueError(f"Unknown level: {ref!r}")

    def source_for(self, level: int | str) -> OptionSource:
        """The normal, parent-keyed source for a level."""
        return self._sources[self.level(level).id]

    def target_of(self, rule: BypassRule) -> int:
        """Resolved target level id of a rule registered on this graph."""
        return self._rule_targets[id(rule)][1]

    def resolve(self, level: int | str, code: str) -> BypassRule | None:
        """Return the first bypass rule triggered by selecting ``code`` at ``level``."""
        level_id = self.level(level).id
        for rule in self._rules:
            origin, _ = self._rule_targets[id(rule)]
            if origin == level_id and rule.matches(code):
                return rule
        return None


def load_graph(path: str | Path, registry: SourceRegistry) -> CascadeGraph:
    """Build a CascadeGraph from a YAML definition.

    Level and rule sources are referenced by name and resolved through
    ``registry``.

    Raises:
        ConfigurationError: If the definition is invalid or names an
            unregistered source.
    """
    with open(path) as fh:
        data: dict[str, Any] = yaml.safe_load(fh) or {}

    levels: list[Level] = []
    sources: dict[str, OptionSource] = {}
    for index, level_data in enumerate(data.get("levels", [])):
        name = level_data["name"]
        levels.append(
            Level(
                id=index,
                name=name,
                label=level_data.get("label", name.replace("_", " ").title()),
                parent_id=index - 1 if index > 0 else None,
                required=level_data.get("required", True),
            )
        )
        sources[name] = _lookup_source(registry, level_data.get("source", name))

    rules = [
        BypassRule(
            level=rule_data["level"],
            target_level=rule_data["target_level"],
            alternate_source=_lookup_source(registry, rule_data["source"]),
            codes=[str(code) for code in rule_data.get("codes", [])],
            name=rule_data.get("name"),
        )
        for rule_data in data.get("bypass_rules", [])
    ]
    return CascadeGraph(levels, sources, rules)


def _lookup_source(registry: SourceRegistry, name: str) -> OptionSource:
    try:
        return registry.require(name)
    except KeyError as exc:
        raise ConfigurationError(exc.args[0]) from exc
