"""Errors raised by the cascading selection engine."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """A cascade graph or its bypass rules are malformed.

    Raised at construction time. This is a programming error in the cascade
    definition, not a runtime condition to recover from.
    """
