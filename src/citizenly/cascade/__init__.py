"""Hierarchical cascading selection engine.

Drives dependent dropdown chains (Region -> Province -> City -> Barangay and
the like) as an explicit state machine with per-level request ids and a
declarative bypass rule table.
"""

from citizenly.cascade.controller import CascadeController
from citizenly.cascade.errors import ConfigurationError
from citizenly.cascade.filtering import filter_options
from citizenly.cascade.graph import BypassRule, CascadeGraph, load_graph
from citizenly.cascade.models import (
    CascadeSnapshot,
    Level,
    LevelSnapshot,
    LevelStatus,
    Option,
    OptionSet,
)
from citizenly.cascade.sources import OptionSource, SourceRegistry

__all__ = [
    "BypassRule",
    "CascadeController",
    "CascadeGraph",
    "CascadeSnapshot",
    "ConfigurationError",
    "Level",
    "LevelSnapshot",
    "LevelStatus",
    "Option",
    "OptionSet",
    "OptionSource",
    "SourceRegistry",
    "filter_options",
    "load_graph",
]
