"""Tracker State Store: shared pointers mutated under a cross-process lock.

The tracker is one small JSON document per vault recording the active
phase, current session, and latest handoff. Independent CLI processes
update it concurrently, so every write is a read-modify-write cycle inside
a lock built from an exclusively-created marker file:

- acquire: ``O_CREAT | O_EXCL`` on ``tracker-state.lock``; "already exists"
  means contended, any other error propagates as :class:`OSError`.
- contention: a marker older than the stale threshold is reclaimed,
  otherwise wait a fixed delay and retry until the budget is spent.
- release: the marker is removed in a ``finally`` block, and only if it
  still carries this holder's token.

Readers never take the lock; the document is replaced atomically so a
reader sees either the old or the new state, never a partial one.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from datetime import timedelta
from pathlib import Path
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, field_validator

from memctl.domain.errors import LockTimeoutError
from memctl.domain.timestamps import format_timestamp, parse_timestamp, utc_now

logger = logging.getLogger(__name__)

STATE_FILENAME = "tracker-state.json"
LOCK_FILENAME = "tracker-state.lock"
STATE_VERSION = 1

DEFAULT_LOCK_RETRIES = 100
DEFAULT_RETRY_DELAY = 0.02
DEFAULT_STALE_AFTER = 30.0

_POINTER_FIELDS = (
    "active_phase_id",
    "current_session_id",
    "latest_handoff_path",
    "latest_handoff_id",
)


class TrackerState(BaseModel):
    """The tracker document. Unknown keys written by other tools are kept."""

    model_config = ConfigDict(extra="allow")

    version: int = STATE_VERSION
    updated_at: str | None = None
    active_phase_id: str | None = None
    current_session_id: str | None = None
    latest_handoff_path: str | None = None
    latest_handoff_id: str | None = None

    @field_validator(*_POINTER_FIELDS, mode="before")
    @classmethod
    def _blank_is_none(cls, value: Any) -> Any:
        if value == "":
            return None
        return value

    def to_json(self) -> str:
        """Serialize with 2-space indent and a trailing newline."""
        return json.dumps(self.model_dump(), indent=2, ensure_ascii=False) + "\n"


class TrackerLock:
    """Exclusive-create lock marker with stale recovery.

    Use as a context manager; the marker is always released on exit.
    """

    def __init__(
        self,
        path: Path,
        *,
        retries: int = DEFAULT_LOCK_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        stale_after: float = DEFAULT_STALE_AFTER,
    ) -> None:
        self.path = path
        self.retries = max(1, retries)
        self.retry_delay = retry_delay
        self.stale_after = stale_after
        self.token = uuid4().hex
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> None:
        """Take the lock or raise :class:`LockTimeoutError` once retries run out."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        for attempt in range(self.retries):
            if self._try_create():
                self._held = True
                logger.debug("tracker lock acquired after %d attempt(s)", attempt + 1)
                return
            if self._reclaim_stale():
                continue
            if attempt < self.retries - 1:
                time.sleep(self.retry_delay)
        logger.warning("tracker lock busy after %d attempts: %s", self.retries, self.path)
        raise LockTimeoutError("tracker state is busy")

    def release(self) -> None:
        if not self._held:
            return
        self._held = False
        try:
            owner = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            logger.warning("tracker lock vanished before release: %s", self.path)
            return
        if owner != self.token:
            # Reclaimed as stale by another process while we held it.
            logger.warning("tracker lock owned by another holder, leaving it: %s", self.path)
            return
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass

    def _try_create(self) -> bool:
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        try:
            os.write(fd, self.token.encode("ascii"))
        finally:
            os.close(fd)
        return True

    def _reclaim_stale(self) -> bool:
        """Remove the marker if it is older than the stale threshold."""
        age = self.marker_age()
        if age is None:
            # Released between our create attempt and now; retry at once.
            return True
        if age <= self.stale_after:
            return False
        # Re-check right before unlinking so a freshly re-created marker survives.
        age = self.marker_age()
        if age is None or age <= self.stale_after:
            return age is None
        try:
            self.path.unlink()
        except FileNotFoundError:
            return True
        logger.warning("removed stale tracker lock (age %.1fs): %s", age, self.path)
        return True

    def marker_age(self) -> float | None:
        """Seconds since the marker was last modified, or None if absent."""
        try:
            mtime = self.path.stat().st_mtime
        except FileNotFoundError:
            return None
        return time.time() - mtime

    def __enter__(self) -> TrackerLock:
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


class TrackerStore:
    """Read and mutate the tracker document for one vault."""

    def __init__(
        self,
        indexes_dir: Path,
        *,
        lock_retries: int = DEFAULT_LOCK_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        stale_after: float = DEFAULT_STALE_AFTER,
    ) -> None:
        self._dir = indexes_dir
        self._lock_retries = lock_retries
        self._retry_delay = retry_delay
        self._stale_after = stale_after

    @property
    def state_path(self) -> Path:
        return self._dir / STATE_FILENAME

    @property
    def lock_path(self) -> Path:
        return self._dir / LOCK_FILENAME

    @property
    def stale_after(self) -> float:
        return self._stale_after

    def lock(self) -> TrackerLock:
        return TrackerLock(
            self.lock_path,
            retries=self._lock_retries,
            retry_delay=self._retry_delay,
            stale_after=self._stale_after,
        )

    # ------------------------------------------------------------------
    # Reads (lock-free)
    # ------------------------------------------------------------------

    def get_state(self) -> TrackerState:
        """Current state; a missing or unreadable document reads as defaults."""
        try:
            raw = self.state_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return TrackerState()
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("tracker state is not a JSON object")
            return TrackerState.model_validate(data)
        except ValueError as exc:
            logger.warning(
                "unreadable tracker state at %s, using defaults: %s", self.state_path, exc
            )
            return TrackerState()

    def resolve_phase_id(self, explicit: str | None = None) -> str | None:
        """Return *explicit* when non-empty, else the recorded active phase."""
        if explicit:
            return explicit
        return self.get_state().active_phase_id

    # ------------------------------------------------------------------
    # Writes (one read-modify-write cycle each)
    # ------------------------------------------------------------------

    def update(self, **changes: Any) -> TrackerState:
        """Merge *changes* into the on-disk state under the lock."""
        with self.lock():
            current = self.get_state()
            merged = current.model_dump()
            merged.update(changes)
            merged["version"] = STATE_VERSION
            merged["updated_at"] = self._next_updated_at(current.updated_at)
            state = TrackerState.model_validate(merged)
            self._write(state)
        logger.debug("tracker state updated: %s", sorted(changes))
        return state

    def set_active_phase(self, phase_id: str | None) -> TrackerState:
        return self.update(active_phase_id=phase_id or None)

    def set_session(self, session_id: str | None) -> TrackerState:
        return self.update(current_session_id=session_id or None)

    def record_handoff(self, path: str | None, handoff_id: str | None) -> TrackerState:
        return self.update(latest_handoff_path=path or None, latest_handoff_id=handoff_id or None)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _next_updated_at(previous: str | None) -> str:
        """A timestamp strictly later than *previous*."""
        now = utc_now()
        prev = parse_timestamp(previous) if previous else None
        if prev is not None and now <= prev:
            now = prev + timedelta(milliseconds=1)
        stamp = format_timestamp(now)
        if previous and stamp <= previous:
            # Sub-millisecond clock steps truncate to the same string.
            stamp = format_timestamp(prev + timedelta(milliseconds=1)) if prev else stamp
        return stamp

    def _write(self, state: TrackerState) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".tracker-state.", suffix=".tmp", dir=self._dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(state.to_json())
            os.replace(tmp_name, self.state_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
