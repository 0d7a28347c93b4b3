"""
Progress reducer and the caller-side aggregator.

``fold`` is a pure function over the progress variants. ``ProgressAggregator``
owns the receiving end of the event channel and is only ever touched by the
foreground caller.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Optional

from ..models import (
    Completed,
    Deleting,
    NotStarted,
    OutcomeKind,
    Phase,
    PhaseStarted,
    ProgressState,
    RunEvent,
    Uploading,
    UploadOutcome,
)
from ..utils.events import EventChannel

logger = logging.getLogger(__name__)

FAILURE_BANNER = "Operation completed with failures. Check details for more information."


def _fold_uploading(state: Uploading, kind: OutcomeKind) -> ProgressState:
    if kind is OutcomeKind.PROCESSING:
        state = replace(state, current=state.current + 1)
    elif kind is OutcomeKind.SUCCESS:
        state = replace(state, ok=state.ok + 1)
    elif kind is OutcomeKind.ERROR:
        state = replace(state, err=state.err + 1)
    elif kind is OutcomeKind.SKIPPED:
        state = replace(state, skipped=state.skipped + 1)
    else:
        raise TypeError(f"unknown outcome kind: {kind!r}")

    if state.ok + state.err + state.skipped >= state.total:
        return Completed(total=state.total, ok=state.ok, err=state.err, skipped=state.skipped)
    return state


def _fold_deleting(state: Deleting, kind: OutcomeKind) -> ProgressState:
    if kind is OutcomeKind.PROCESSING:
        state = replace(state, current=state.current + 1)
    elif kind is OutcomeKind.SUCCESS:
        state = replace(state, ok=state.ok + 1)
    elif kind is OutcomeKind.ERROR:
        state = replace(state, err=state.err + 1)
    elif kind is OutcomeKind.SKIPPED:
        # not a legal delete outcome
        return state
    else:
        raise TypeError(f"unknown outcome kind: {kind!r}")

    # A delete that feeds a re-upload waits for PhaseStarted instead
    if state.ok + state.err >= state.total and not state.then_upload:
        return Completed(total=state.total, ok=state.ok, err=state.err, skipped=0)
    return state


def fold(state: ProgressState, event: RunEvent) -> ProgressState:
    """Return the state after ``event``. Completed only moves via reset."""
    if isinstance(event, PhaseStarted):
        if isinstance(state, Deleting) and event.phase is Phase.UPLOADING:
            return Uploading(total=event.total)
        logger.debug("Ignoring %r while in %r", event, state)
        return state

    if not isinstance(event, UploadOutcome):
        raise TypeError(f"unknown event: {event!r}")

    if isinstance(state, Uploading):
        return _fold_uploading(state, event.kind)
    if isinstance(state, Deleting):
        return _fold_deleting(state, event.kind)
    if isinstance(state, (NotStarted, Completed)):
        return state
    raise TypeError(f"unknown progress state: {state!r}")


def is_complete(state: ProgressState) -> bool:
    return isinstance(state, Completed)


def finish(state: ProgressState) -> ProgressState:
    """Close out a run whose worker ended before the counts reached total."""
    if isinstance(state, Uploading):
        return Completed(total=state.total, ok=state.ok, err=state.err, skipped=state.skipped)
    if isinstance(state, Deleting):
        return Completed(total=state.total, ok=state.ok, err=state.err, skipped=0)
    return state


def percentage(state: ProgressState) -> float:
    if isinstance(state, (Uploading, Deleting)):
        return state.current / state.total if state.total else 0.0
    if isinstance(state, Completed):
        return 1.0 if state.total else 0.0
    return 0.0


def status_text(state: ProgressState) -> str:
    if isinstance(state, Uploading):
        return (
            f"Progress: {state.current}/{state.total} files | ✅ Success: {state.ok} "
            f"| ⏩ Skipped: {state.skipped} | ❌ Failed: {state.err}"
        )
    if isinstance(state, Deleting):
        return (
            f"Deleting: {state.current}/{state.total} files | ✅ Success: {state.ok} "
            f"| ❌ Failed: {state.err}"
        )
    if isinstance(state, Completed):
        return (
            f"Final Status: {state.total}/{state.total} files | ✅ Success: {state.ok} "
            f"| ⏩ Skipped: {state.skipped} | ❌ Failed: {state.err}"
        )
    return ""


class ProgressAggregator:
    """
    Folds the worker's event stream into caller-visible progress.

    Holds the run history (every outcome, in arrival order), the name of the
    file last reported and the error banner.
    """

    def __init__(self, channel: Optional[EventChannel] = None, state: Optional[ProgressState] = None):
        self._channel = channel
        self.state: ProgressState = state or NotStarted()
        self.history: List[UploadOutcome] = []
        self.current_file: Optional[str] = None
        self.error_message: Optional[str] = None

    @property
    def channel(self) -> Optional[EventChannel]:
        return self._channel

    def attach(self, channel: EventChannel, state: ProgressState) -> None:
        """Start following a new run."""
        self._channel = channel
        self.state = state
        self.history = []
        self.current_file = None
        self.error_message = None

    def apply(self, event: RunEvent) -> None:
        was_complete = is_complete(self.state)
        self.state = fold(self.state, event)

        if isinstance(event, UploadOutcome):
            self.current_file = event.name
            self.history.append(event)

        if not was_complete and is_complete(self.state):
            self._on_complete()

    def drain(self) -> int:
        """Fold every pending event without blocking. Returns how many."""
        if self._channel is None:
            return 0
        events = self._channel.drain()
        for event in events:
            self.apply(event)
        return len(events)

    def finish(self) -> None:
        """Force completion once the worker is known to have ended."""
        if is_complete(self.state) or isinstance(self.state, NotStarted):
            return
        self.state = finish(self.state)
        self._on_complete()

    def _on_complete(self) -> None:
        state = self.state
        logger.info(status_text(state))
        if self.has_errors:
            self.error_message = FAILURE_BANNER

    @property
    def has_errors(self) -> bool:
        if isinstance(self.state, Completed) and self.state.has_failures:
            return True
        return any(outcome.kind is OutcomeKind.ERROR for outcome in self.history)

    @property
    def is_complete(self) -> bool:
        return is_complete(self.state)

    @property
    def percentage(self) -> float:
        return percentage(self.state)

    @property
    def status_text(self) -> str:
        return status_text(self.state)

    def reset(self) -> None:
        self._channel = None
        self.state = NotStarted()
        self.history = []
        self.current_file = None
        self.error_message = None
