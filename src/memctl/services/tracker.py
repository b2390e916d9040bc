"""TrackerService: inspect and set the shared tracker pointers."""

from __future__ import annotations

from typing import Any

from memctl.domain.errors import ValidationError, VaultError
from memctl.services.base import BaseService, error_result
from memctl.services.result import ServiceResult


class TrackerService(BaseService):
    """Thin service over the vault's :class:`TrackerStore`."""

    def show(self) -> ServiceResult:
        """Current tracker state plus the lock marker's status."""
        store = self._vault.tracker
        state = store.get_state()
        age = store.lock().marker_age()
        return ServiceResult(
            ok=True,
            op="tracker",
            data={
                **state.model_dump(),
                "lock": {
                    "present": age is not None,
                    "age_seconds": round(age, 3) if age is not None else None,
                    "stale": age is not None and age > store.stale_after,
                },
            },
        )

    def update(
        self,
        *,
        phase_id: str | None = None,
        clear_phase: bool = False,
        session_id: str | None = None,
    ) -> ServiceResult:
        """Set the active phase and/or current session in one locked cycle."""
        op = "tracker_update"
        changes: dict[str, Any] = {}
        try:
            if phase_id and clear_phase:
                raise ValidationError("Use either a phase id or clear_phase, not both")
            if phase_id:
                changes["active_phase_id"] = phase_id
            elif clear_phase:
                changes["active_phase_id"] = None
            if session_id:
                changes["current_session_id"] = session_id
            if not changes:
                raise ValidationError("Nothing to update")
            state = self._vault.tracker.update(**changes)
        except (VaultError, OSError) as exc:
            return error_result(op, exc)
        return ServiceResult(
            ok=True,
            op=op,
            data={**state.model_dump(), "changed": sorted(changes)},
        )

    def resolve_phase(self, explicit: str | None = None) -> ServiceResult:
        """Which phase a phase-scoped command would use."""
        return ServiceResult(
            ok=True,
            op="resolve_phase",
            data={"phase_id": self._vault.tracker.resolve_phase_id(explicit)},
        )
