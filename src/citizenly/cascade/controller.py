"""Cascade controller: the single owner and mutator of cascade state.

Every change goes through ``initialize``, ``select_at`` or a fetch
completion. Commands are synchronous and leave the levels below the changed
one fully reset before they return; the fetch they trigger resolves later on
the event loop and is applied only if no newer fetch for the same level has
started since.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from citizenly.cascade.coordinator import FetchCoordinator
from citizenly.cascade.graph import CascadeGraph
from citizenly.cascade.models import (
    CascadeSnapshot,
    LevelSnapshot,
    LevelStatus,
    OptionSet,
)
from citizenly.cascade.sources import OptionSource

logger = logging.getLogger(__name__)

Listener = Callable[[CascadeSnapshot], None]


class _LevelState:
    """Mutable state of one level: Idle -> Loading -> Populated | Errored."""

    __slots__ = ("selection", "options", "error", "status")

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.selection: str | None = None
        self.options: OptionSet | None = None
        self.error: str | None = None
        self.status = LevelStatus.IDLE


class CascadeController:
    """Orchestrates selections, fetches and resets across a cascade.

    Args:
        graph: The cascade definition.
        name: Label used in log messages.
    """

    def __init__(self, graph: CascadeGraph, name: str = "cascade") -> None:
        self._graph = graph
        self._name = name
        self._states = [_LevelState() for _ in graph.levels]
        self._coordinator = FetchCoordinator()
        self._listeners: list[Listener] = []
        self._disposed = False
        self._version = 0

    @property
    def graph(self) -> CascadeGraph:
        return self._graph

    @property
    def coordinator(self) -> FetchCoordinator:
        return self._coordinator

    @property
    def disposed(self) -> bool:
        return self._disposed

    # -- commands ------------------------------------------------------------

    def initialize(self) -> None:
        """Reset every level and fetch the root level's options."""
        self._ensure_active()
        for level in self._graph.levels:
            self._coordinator.invalidate(level.id)
            self._states[level.id].reset()
        self._start_fetch(0, self._graph.source_for(0), parent_key=None)
        self._notify()

    def select_at(self, level: int | str, code: str | None) -> None:
        """Select ``code`` at ``level``, or clear the level when ``code`` is None.

        Every level below is reset and any fetch in flight for it becomes
        stale. A non-null code then triggers the fetch for the next level,
        or for a bypass rule's target level.

        Raises:
            ValueError: If the level is unknown, currently skipped, or its
                parent level has no selection.
            RuntimeError: If the controller has been disposed, or an
                asynchronous source is called without a running event loop.
        """
        self._ensure_active()
        target = self._graph.level(level)
        state = self._states[target.id]
        if state.status is LevelStatus.SKIPPED:
            raise ValueError(f"Level {target.name!r} is skipped by the current selection")
        if code is not None and target.parent_id is not None:
            anchor = self._anchor_of(target.id)
            if anchor is None or self._states[anchor].selection is None:
                raise ValueError(f"Cannot select {target.name!r} before its parent level")
        # A raising predicate must leave state untouched.
        rule = self._graph.resolve(target.id, code) if code is not None else None

        state.selection = code
        if state.error is not None:
            state.error = None
            state.status = LevelStatus.IDLE

        for descendant in range(target.id + 1, len(self._graph)):
            self._coordinator.invalidate(descendant)
            self._states[descendant].reset()

        if code is None:
            logger.debug("%s: cleared %r", self._name, target.name)
            self._notify()
            return

        source: OptionSource | None = None
        if rule is not None:
            fetch_level = self._graph.target_of(rule)
            for skipped in range(target.id + 1, fetch_level):
                self._states[skipped].status = LevelStatus.SKIPPED
            source = rule.alternate_source
            logger.debug(
                "%s: %r=%r matched %s, loading %r directly",
                self._name, target.name, code, rule.name, self._graph.level(fetch_level).name,
            )
        else:
            fetch_level = target.id + 1
            if fetch_level < len(self._graph):
                source = self._graph.source_for(fetch_level)

        if source is not None:
            self._start_fetch(
                fetch_level,
                source,
                parent_key=code,
                bypass_rule=rule.name if rule is not None else None,
            )
        self._notify()

    def retry(self, level: int | str) -> None:
        """Fetch a level's options again from its current parent selection.

        Raises:
            ValueError: If the level is skipped or has no parent selection
                to fetch from.
        """
        target = self._graph.level(level)
        if target.id == 0:
            self.initialize()
            return
        if self._states[target.id].status is LevelStatus.SKIPPED:
            raise ValueError(f"Level {target.name!r} is skipped by the current selection")
        anchor = self._anchor_of(target.id)
        code = self._states[anchor].selection if anchor is not None else None
        if code is None:
            raise ValueError(f"Level {target.name!r} has no parent selection to retry from")
        self.select_at(anchor, code)  # type: ignore[arg-type]

    async def restore(self, codes: Mapping[int | str, str | None]) -> CascadeSnapshot:
        """Load a previously saved chain of selections, level by level.

        The root is fetched first; each given code is then selected once its
        level's options have loaded, and the dependent fetch awaited. Restoring
        stops at the first level without a code or whose code is not among
        the loaded options. Skipped levels are passed over.
        """
        wanted: dict[int, str] = {
            self._graph.level(ref).id: code for ref, code in codes.items() if code
        }
        self.initialize()
        await self.wait_idle()
        for level in self._graph.levels:
            state = self._states[level.id]
            if state.status is LevelStatus.SKIPPED:
                continue
            code = wanted.get(level.id)
            if code is None:
                break
            if state.options is None or state.options.get(code) is None:
                logger.info(
                    "%s: stopping restore at %r, code %r is not a loaded option",
                    self._name, level.name, code,
                )
                break
            self.select_at(level.id, code)
            await self.wait_idle()
        return self.get_snapshot()

    async def wait_idle(self) -> None:
        """Wait until no fetch is in flight."""
        await self._coordinator.drain()

    def dispose(self) -> None:
        """Tear the controller down; later fetch completions are ignored."""
        self._disposed = True
        self._coordinator.dispose()
        self._listeners.clear()

    # -- observation ---------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with a fresh snapshot after every state change.

        Returns:
            A callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def get_snapshot(self) -> CascadeSnapshot:
        """Return an immutable copy of the current state."""
        selections: dict[int, str | None] = {}
        options: dict[int, OptionSet] = {}
        errors: dict[int, str] = {}
        loading: set[int] = set()
        skipped: set[int] = set()
        views: list[LevelSnapshot] = []

        for level in self._graph.levels:
            state = self._states[level.id]
            selections[level.id] = state.selection
            if state.options is not None:
                options[level.id] = state.options
            if state.error is not None:
                errors[level.id] = state.error
            if state.status is LevelStatus.LOADING:
                loading.add(level.id)
            if state.status is LevelStatus.SKIPPED:
                skipped.add(level.id)

            anchor = self._anchor_of(level.id)
            enabled = state.status is not LevelStatus.SKIPPED and (
                level.parent_id is None
                or (anchor is not None and self._states[anchor].selection is not None)
            )
            selected = None
            if state.options is not None and state.selection is not None:
                selected = state.options.get(state.selection)
            views.append(
                LevelSnapshot(
                    id=level.id,
                    name=level.name,
                    label=level.label,
                    status=state.status,
                    enabled=enabled,
                    selection=state.selection,
                    selected_option=selected,
                    options=state.options,
                    error=state.error,
                )
            )

        return CascadeSnapshot(
            selections=selections,
            options=options,
            loading=frozenset(loading),
            errors=errors,
            skipped=frozenset(skipped),
            levels=tuple(views),
        )

    # -- fetching ------------------------------------------------------------

    def _start_fetch(
        self,
        level: int,
        source: OptionSource,
        parent_key: str | None,
        bypass_rule: str | None = None,
    ) -> None:
        request_id = self._coordinator.begin(level)
        state = self._states[level]
        state.status = LevelStatus.LOADING
        state.options = None
        state.error = None

        try:
            result = source(parent_key)
        except Exception as exc:
            self._record_failure(level, request_id, exc)
            return

        if not inspect.isawaitable(result):
            self._record_result(level, request_id, result, parent_key, bypass_rule)
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(result):
                result.close()
            self._coordinator.invalidate(level)
            state.reset()
            self._notify()
            raise RuntimeError(
                "Asynchronous option sources need a running event loop"
            ) from None
        task = loop.create_task(
            self._await_fetch(level, request_id, result, parent_key, bypass_rule)
        )
        self._coordinator.track(task)

    async def _await_fetch(
        self,
        level: int,
        request_id: int,
        pending: Awaitable[Any],
        parent_key: str | None,
        bypass_rule: str | None,
    ) -> None:
        try:
            result = await pending
        except Exception as exc:
            changed = self._record_failure(level, request_id, exc)
        else:
            changed = self._record_result(level, request_id, result, parent_key, bypass_rule)
        if changed:
            self._notify()

    def _record_result(
        self,
        level: int,
        request_id: int,
        result: Any,
        parent_key: str | None,
        bypass_rule: str | None,
    ) -> bool:
        if not self._coordinator.accept(level, request_id):
            return False
        try:
            option_set = OptionSet.from_result(result, parent_key, bypass_rule)
        except (TypeError, ValueError) as exc:
            return self._record_failure(level, request_id, exc)

        anchor = self._anchor_of(level)
        expected = self._states[anchor].selection if anchor is not None else None
        if not option_set.is_for(expected):
            self._coordinator.stats.stale += 1
            logger.debug(
                "%s: discarding options for %r fetched for %r, parent is now %r",
                self._name, self._graph.level(level).name, parent_key, expected,
            )
            return False

        state = self._states[level]
        state.options = option_set
        state.error = None
        state.status = LevelStatus.POPULATED
        self._coordinator.stats.applied += 1
        return True

    def _record_failure(self, level: int, request_id: int, exc: BaseException) -> bool:
        if not self._coordinator.accept(level, request_id):
            return False
        descriptor = self._graph.level(level)
        logger.warning("%s: failed to load %r: %s", self._name, descriptor.name, exc)
        state = self._states[level]
        state.options = None
        state.error = f"Failed to load {descriptor.label}: {str(exc) or type(exc).__name__}"
        state.status = LevelStatus.ERRORED
        self._coordinator.stats.failed += 1
        return True

    # -- helpers -------------------------------------------------------------

    def _anchor_of(self, level: int) -> int | None:
        """Nearest ancestor that is not skipped: the level whose selection keys this one."""
        for ancestor in range(level - 1, -1, -1):
            if self._states[ancestor].status is not LevelStatus.SKIPPED:
                return ancestor
        return None

    def _ensure_active(self) -> None:
        if self._disposed:
            raise RuntimeError(f"Cascade {self._name!r} has been disposed")

    def _notify(self) -> None:
        self._version += 1
        if not self._listeners:
            return
        version = self._version
        snapshot = self.get_snapshot()
        for listener in list(self._listeners):
            if self._version != version:
                # A listener issued a command; every listener already got the newer snapshot.
                break
            try:
                listener(snapshot)
            except Exception:
                logger.exception("%s: snapshot listener failed", self._name)
