"""DoctorService: vault health checks and repairs.

``diagnose`` reports on four areas (folders, indexes, frontmatter,
tracker) and the vault is healthy only when all four are. ``fix`` repairs
what can be derived again from the notes themselves:

- missing top-level folders are created
- catalog and phase summary are regenerated
- the latest-handoff index is rebuilt from a full scan
- a stale tracker lock marker is removed
"""

from __future__ import annotations

import logging
from typing import Any

from memctl.domain.errors import VaultError
from memctl.domain.frontmatter import check_frontmatter
from memctl.domain.types import VAULT_FOLDERS
from memctl.services.base import BaseService, error_result
from memctl.services.index import (
    CATALOG,
    INDEX_NAMES,
    INDEXES_DIR,
    LATEST_HANDOFF,
    PHASE_SUMMARY,
    IndexService,
)
from memctl.services.result import ServiceResult

logger = logging.getLogger(__name__)

SAMPLED_FOLDERS: tuple[str, ...] = ("handoffs", "sessions", "phases")


class DoctorService(BaseService):
    """Diagnose and repair a vault."""

    def diagnose(self) -> ServiceResult:
        op = "doctor"
        try:
            report = self._report()
        except (VaultError, OSError) as exc:
            return error_result(op, exc)
        return ServiceResult(ok=True, op=op, data=report)

    def fix(self) -> ServiceResult:
        op = "doctor_fix"
        fixed: list[str] = []
        warnings: list[str] = []
        try:
            created = self._vault.ensure_structure()
            if created:
                fixed.append(f"Created missing folders: {', '.join(created)}")

            index = IndexService(self._vault)
            index.write_catalog()
            fixed.append(f"Regenerated {CATALOG}")
            index.write_phase_summary()
            fixed.append(f"Regenerated {PHASE_SUMMARY}")
            rebuilt = index.rebuild_latest_handoff_index()
            if rebuilt is not None:
                fixed.append(f"Rebuilt {LATEST_HANDOFF} -> {rebuilt.frontmatter['handoff_path']}")

            if self._remove_stale_lock():
                fixed.append("Removed stale tracker lock")

            if not self.check_tracker()["healthy"]:
                handoff_path = rebuilt.frontmatter["handoff_path"] if rebuilt else None
                handoff_id = rebuilt.frontmatter["handoff_id"] if rebuilt else None
                self._update_tracker(
                    warnings, latest_handoff_path=handoff_path, latest_handoff_id=handoff_id
                )
                fixed.append("Re-pointed tracker at the latest handoff")

            report = self._report()
        except (VaultError, OSError) as exc:
            return error_result(op, exc)
        return ServiceResult(
            ok=True,
            op=op,
            data={"fixed": fixed, "healthy": report["healthy"], "report": report},
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _report(self) -> dict[str, Any]:
        folders = self.check_folders()
        indexes = self.check_indexes()
        frontmatter = self.check_frontmatter()
        tracker = self.check_tracker()
        return {
            "healthy": all(
                part["healthy"] for part in (folders, indexes, frontmatter, tracker)
            ),
            "folders": folders,
            "indexes": indexes,
            "frontmatter": frontmatter,
            "tracker": tracker,
        }

    def check_folders(self) -> dict[str, Any]:
        missing = [f for f in VAULT_FOLDERS if not self._vault.path(f).is_dir()]
        present = [f for f in VAULT_FOLDERS if f not in missing]
        return {
            "healthy": not missing,
            "missing": missing,
            "present": present,
            "message": (
                "All required folders exist"
                if not missing
                else f"Missing folders: {', '.join(missing)}"
            ),
        }

    def check_indexes(self) -> dict[str, Any]:
        issues: list[dict[str, str]] = []
        index = IndexService(self._vault)
        newest = index.newest_handoff()

        for name in INDEX_NAMES:
            path = self._vault.path(INDEXES_DIR, name)
            if not self._vault.exists(path):
                if name == LATEST_HANDOFF and newest is None:
                    continue
                issues.append(_issue(name, "missing", f"Index {name} does not exist"))
                continue
            try:
                note = self._vault.read_note(path)
            except (VaultError, OSError, UnicodeDecodeError) as exc:
                issues.append(_issue(name, "read_error", str(exc)))
                continue

            check = check_frontmatter(note.frontmatter)
            if not check.valid:
                detail = (
                    f"Missing fields: {', '.join(check.missing)}"
                    if check.missing
                    else "; ".join(check.errors)
                )
                issues.append(_issue(name, "invalid_frontmatter", detail))

            if name == LATEST_HANDOFF:
                issues.extend(self._latest_handoff_issues(note.frontmatter, newest))

        return {"healthy": not issues, "issues": issues}

    def _latest_handoff_issues(self, fm: dict[str, Any], newest: Any) -> list[dict[str, str]]:
        handoff_path = fm.get("handoff_path")
        try:
            broken = not handoff_path or not self._vault.exists(str(handoff_path))
        except VaultError:
            broken = True
        if broken:
            return [_issue(LATEST_HANDOFF, "broken_link", "Handoff path is missing or invalid")]
        if newest is not None and fm.get("handoff_id") != newest.id:
            newest_path = self._vault.relative(newest.path)
            return [
                _issue(
                    LATEST_HANDOFF,
                    "stale",
                    f"Index points at {handoff_path} but the newest handoff is {newest_path}",
                )
            ]
        return []

    def check_frontmatter(self) -> dict[str, Any]:
        """Validate up to ``[doctor] sample_size`` notes per folder."""
        sample_size = self._vault.settings.doctor.sample_size
        invalid: list[dict[str, Any]] = []
        summary: dict[str, dict[str, int]] = {}
        checked = 0
        for folder in SAMPLED_FOLDERS:
            paths = self._vault.list_notes(folder, recursive=True)
            sampled = paths[:sample_size]
            for path in sampled:
                checked += 1
                rel = self._vault.display_path(path)
                try:
                    note = self._vault.read_note(path)
                except (VaultError, OSError, UnicodeDecodeError) as exc:
                    invalid.append({"path": rel, "error": str(exc)})
                    continue
                check = check_frontmatter(note.frontmatter)
                if not check.valid:
                    entry: dict[str, Any] = {"path": rel}
                    if check.missing:
                        entry["missing"] = check.missing
                    if check.errors:
                        entry["errors"] = check.errors
                    invalid.append(entry)
            summary[folder] = {"total": len(paths), "sampled": len(sampled)}
        return {"healthy": not invalid, "checked": checked, "invalid": invalid, "summary": summary}

    def check_tracker(self) -> dict[str, Any]:
        store = self._vault.tracker
        issues: list[dict[str, str]] = []
        age = store.lock().marker_age()
        if age is not None and age > store.stale_after:
            issues.append(
                {"issue": "stale_lock", "message": f"Lock marker is {age:.0f}s old"}
            )
        state = store.get_state()
        if state.latest_handoff_path:
            try:
                present = self._vault.exists(state.latest_handoff_path)
            except VaultError:
                present = False
            if not present:
                issues.append(
                    {
                        "issue": "missing_handoff",
                        "message": f"Tracker points at missing {state.latest_handoff_path}",
                    }
                )
        return {"healthy": not issues, "issues": issues}

    # ------------------------------------------------------------------
    # Repairs
    # ------------------------------------------------------------------

    def _remove_stale_lock(self) -> bool:
        store = self._vault.tracker
        age = store.lock().marker_age()
        if age is None or age <= store.stale_after:
            return False
        store.lock_path.unlink(missing_ok=True)
        logger.warning("Removed stale tracker lock: %s", store.lock_path)
        return True


def _issue(index: str, issue: str, message: str) -> dict[str, str]:
    return {"index": index, "issue": issue, "message": message}
