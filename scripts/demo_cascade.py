#!/usr/bin/env python3
"""CLI script to walk the PSGC address cascade.

The backend is chosen by ``CITIZENLY_PSGC_PROVIDER`` (``mock`` by default).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Ensure the project source is importable when running the script directly.
_project_root = Path(__file__).resolve().parent.parent
_src = _project_root / "src"
if str(_src) not in sys.path:
    sys.path.insert(0, str(_src))

from citizenly.cascade.controller import CascadeController  # noqa: E402
from citizenly.cascade.filtering import filter_options  # noqa: E402
from citizenly.cascade.models import CascadeSnapshot, LevelStatus  # noqa: E402
from citizenly.core.config import Settings  # noqa: E402
from citizenly.psgc.service import PSGCSource  # noqa: E402
from citizenly.psgc.sources import build_address_cascade, create_psgc_source  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Select an address level by level and print each cascade snapshot."
    )
    parser.add_argument("codes", nargs="*", help="Codes to select, root level first.")
    parser.add_argument("--search", default="", help="Only list options matching this term.")
    return parser.parse_args()


def print_snapshot(snapshot: CascadeSnapshot, term: str) -> None:
    for level in snapshot.levels:
        marker = level.selection or "-"
        print(f"  {level.label:<18} [{level.status}] {marker}")
        if level.error:
            print(f"      error: {level.error}")
        if level.status is LevelStatus.POPULATED and level.selection is None:
            for option in filter_options(level.options, term):
                print(f"      {option.code:<10} {option.display_label}")
    print(f"  => {snapshot.summary()}")


async def walk(source: PSGCSource, settings: Settings, args: argparse.Namespace) -> None:
    graph = build_address_cascade(
        source,
        graphs_dir=settings.cascade.graphs_dir,
        graph_name=settings.cascade.address_graph,
    )
    controller = CascadeController(graph, name="demo")

    controller.initialize()
    await controller.wait_idle()
    print("Initial:")
    print_snapshot(controller.get_snapshot(), args.search)

    level = 0
    for code in args.codes:
        while controller.get_snapshot().levels[level].status is LevelStatus.SKIPPED:
            level += 1
        try:
            controller.select_at(level, code)
        except ValueError as exc:
            print(f"Cannot select {code!r}: {exc}")
            sys.exit(1)
        await controller.wait_idle()
        print(f"After selecting {code!r} at {graph.level(level).name}:")
        print_snapshot(controller.get_snapshot(), args.search)
        level += 1
        if level >= len(graph):
            break

    controller.dispose()


async def main() -> None:
    args = parse_args()

    settings = Settings()
    logging.basicConfig(level=settings.log_level)

    source = create_psgc_source(settings.psgc)
    try:
        await walk(source, settings, args)
    finally:
        close = getattr(source, "close", None)
        if close is not None:
            await close()


if __name__ == "__main__":
    asyncio.run(main())
