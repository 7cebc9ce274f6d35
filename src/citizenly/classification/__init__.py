"""Sectoral classification module for Citizenly.

Provides rule-derived sectoral group flags with manual overrides.
"""

from citizenly.classification.rules import SectoralClassifier, SectoralFacts, classify

__all__ = ["SectoralClassifier", "SectoralFacts", "classify"]
