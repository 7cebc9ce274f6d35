"""Sectoral classification rules engine for Citizenly.

Loads sectoral flag rules from YAML config and derives a resident's
auto-calculated flags (labor force, out-of-school youth, senior citizen and
so on) from a small set of facts, merged with staff-maintained manual flags.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

# Default path to the sectoral rules config
_DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[3] / "config" / "sectoral_rules.yml"


def age_on(birthdate: date, as_of: date) -> int:
    """Completed years between ``birthdate`` and ``as_of``."""
    age = as_of.year - birthdate.year
    if (as_of.month, as_of.day) < (birthdate.month, birthdate.day):
        age -= 1
    return age


class SectoralFacts(BaseModel):
    """Resident data the auto flags are derived from."""

    age: int | None = None
    birthdate: date | None = None
    employment_status: str | None = None
    education_attainment: str | None = None

    def resolved_age(self, as_of: date | None = None) -> int | None:
        """Explicit age if given, otherwise computed from the birthdate."""
        if self.age is not None:
            return self.age
        if self.birthdate is not None:
            return age_on(self.birthdate, as_of or date.today())
        return None


class SectoralClassification(BaseModel):
    """Result of classifying one resident."""

    flags: dict[str, bool] = Field(default_factory=dict)
    computed: dict[str, bool] = Field(default_factory=dict)
    overridden: list[str] = Field(default_factory=list)


class ClassificationRule:
    """A single auto flag rule loaded from config. All conditions must hold."""

    def __init__(
        self,
        flag: str,
        description: str = "",
        age_min: int | None = None,
        age_max: int | None = None,
        employment_status_in: list[str] | None = None,
        employment_status_not_in: list[str] | None = None,
        education_in: list[str] | None = None,
        education_not_in: list[str] | None = None,
    ) -> None:
        self.flag = flag
        self.description = description
        self.age_min = age_min
        self.age_max = age_max
        self.employment_status_in = employment_status_in
        self.employment_status_not_in = employment_status_not_in
        self.education_in = education_in
        self.education_not_in = education_not_in

    def matches(self, age: int | None, employment_status: str | None, education: str | None) -> bool:
        """Check whether the resident facts satisfy this rule."""
        if self.age_min is not None or self.age_max is not None:
            if age is None:
                return False
            if self.age_min is not None and age < self.age_min:
                return False
            if self.age_max is not None and age > self.age_max:
                return False

        if self.employment_status_in is not None and employment_status not in self.employment_status_in:
            return False
        if self.employment_status_not_in is not None and employment_status in self.employment_status_not_in:
            return False
        if self.education_in is not None and education not in self.education_in:
            return False
        if self.education_not_in is not None and education in self.education_not_in:
            return False
        return True


class SectoralClassifier:
    """Rule-derived sectoral flags with manual-override semantics.

    Auto flags are always recomputed from the facts; a staff override for an
    auto flag replaces the computed value. Manual flags are carried over from
    the current record. A dependent flag is forced off whenever the flag it
    requires is off.
    """

    def __init__(self, config_path: str | Path | None = None) -> None:
        self._config_path = Path(config_path) if config_path else _DEFAULT_CONFIG_PATH
        self._rules: list[ClassificationRule] = []
        self._manual_flags: list[str] = []
        self._dependencies: dict[str, str] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load and parse the YAML configuration file."""
        with open(self._config_path) as fh:
            config = yaml.safe_load(fh) or {}

        for rule_data in config.get("rules", []):
            self._rules.append(
                ClassificationRule(
                    flag=rule_data["flag"],
                    description=rule_data.get("description", ""),
                    age_min=rule_data.get("age_min"),
                    age_max=rule_data.get("age_max"),
                    employment_status_in=rule_data.get("employment_status_in"),
                    employment_status_not_in=rule_data.get("employment_status_not_in"),
                    education_in=rule_data.get("education_in"),
                    education_not_in=rule_data.get("education_not_in"),
                )
            )

        self._manual_flags = list(config.get("manual_flags", []))
        for dep in config.get("dependencies", []):
            self._dependencies[dep["flag"]] = dep["requires"]

    def classify(
        self,
        facts: SectoralFacts | Mapping[str, Any],
        current: Mapping[str, bool] | None = None,
        overrides: Mapping[str, bool] | None = None,
        as_of: date | None = None,
    ) -> SectoralClassification:
        """Derive the full set of sectoral flags for a resident.

        Args:
            facts: Age or birthdate, employment status and education.
            current: The resident's existing flags; only manual flags are kept.
            overrides: Staff decisions that replace computed auto flags.
            as_of: Reference date for birthdate-based ages (default: today).

        Returns:
            The merged flags, the computed auto values, and which auto flags
            were overridden.

        Raises:
            ValueError: If ``current`` or ``overrides`` name an unknown flag,
                or an override targets a manual flag.
        """
        if not isinstance(facts, SectoralFacts):
            facts = SectoralFacts.model_validate(dict(facts))
        current = current or {}
        overrides = overrides or {}

        auto_flags = {rule.flag for rule in self._rules}
        for flag in current:
            if flag not in auto_flags and flag not in self._manual_flags:
                raise ValueError(f"Unknown sectoral flag: {flag!r}")
        for flag in overrides:
            if flag not in auto_flags:
                raise ValueError(f"Only auto-calculated flags can be overridden, got {flag!r}")

        age = facts.resolved_age(as_of)
        computed = {
            rule.flag: rule.matches(age, facts.employment_status, facts.education_attainment)
            for rule in self._rules
        }

        flags: dict[str, bool] = {}
        for flag in self._manual_flags:
            flags[flag] = bool(current.get(flag, False))
        flags.update(computed)
        overridden: list[str] = []
        for flag, value in overrides.items():
            flags[flag] = bool(value)
            if bool(value) != computed[flag]:
                overridden.append(flag)

        for flag, required in self._dependencies.items():
            if not flags.get(required, False):
                flags[flag] = False

        return SectoralClassification(flags=flags, computed=computed, overridden=overridden)

    def get_rule(self, flag: str) -> ClassificationRule | None:
        """Return the rule computing ``flag``, or None."""
        for rule in self._rules:
            if rule.flag == flag:
                return rule
        return None

    @property
    def rules(self) -> list[ClassificationRule]:
        """All loaded auto flag rules."""
        return list(self._rules)

    @property
    def manual_flags(self) -> list[str]:
        """Flags that are only ever set by staff."""
        return list(self._manual_flags)


# Module-level convenience: singleton classifier and classify function
_classifier: SectoralClassifier | None = None


def _get_classifier() -> SectoralClassifier:
    global _classifier
    if _classifier is None:
        _classifier = SectoralClassifier()
    return _classifier


def classify(
    facts: SectoralFacts | Mapping[str, Any],
    current: Mapping[str, bool] | None = None,
    overrides: Mapping[str, bool] | None = None,
    as_of: date | None = None,
) -> SectoralClassification:
    """Convenience function to classify a resident.

    Uses a module-level singleton ``SectoralClassifier`` with the default
    config path. See ``SectoralClassifier.classify`` for the arguments.
    """
    return _get_classifier().classify(facts, current, overrides, as_of)
