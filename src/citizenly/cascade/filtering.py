"""Search filtering for option lists shown in a dropdown."""

from __future__ import annotations

from collections.abc import Iterable

from citizenly.cascade.models import Option, OptionSet

DEFAULT_LIMIT = 10


def filter_options(
    options: OptionSet | Iterable[Option] | None,
    term: str = "",
    limit: int = DEFAULT_LIMIT,
) -> list[Option]:
    """Return at most ``limit`` options matching a search term.

    An option matches when its name contains the term (case-insensitive) or
    its code contains the term verbatim. An empty term matches everything.
    """
    if options is None:
        return []
    items = options.options if isinstance(options, OptionSet) else options
    needle = term.strip().lower()
    matched: list[Option] = []
    for option in items:
        if len(matched) >= limit:
            break
        if not needle or needle in option.name.lower() or term.strip() in option.code:
            matched.append(option)
    return matched
