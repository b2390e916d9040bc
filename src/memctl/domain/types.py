"""Note types and phase statuses."""

from __future__ import annotations

from enum import StrEnum


class NoteType(StrEnum):
    """Every kind of note the vault stores."""

    HANDOFF = "handoff"
    SESSION = "session"
    PHASE = "phase"
    RESEARCH = "research"
    GREENFIELD = "greenfield"
    BROWNFIELD = "brownfield"
    INDEX = "index"


class PhaseStatus(StrEnum):
    """Phase lifecycle buckets used by the phase summary."""

    PLANNED = "planned"
    ACTIVE = "active"
    COMPLETED = "completed"


# Fixed bucket order for the phase summary; anything else lands in "other".
PHASE_SUMMARY_BUCKETS: tuple[str, ...] = ("planned", "active", "completed", "other")

# Top-level vault folders created by ``init`` and checked by ``doctor``.
VAULT_FOLDERS: tuple[str, ...] = ("handoffs", "sessions", "phases", "indexes", "templates")

# Subdirectories owned by every phase.
PHASE_SUBDIRS: tuple[str, ...] = ("research", "execution", "handoffs")
