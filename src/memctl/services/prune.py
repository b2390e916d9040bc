"""PruneService: age-based deletion with dry-run and per-file error capture.

A file is a candidate when its modification time is strictly before
``now - days``. With ``days == 0`` the cutoff moves one second into the
future, so ``--days 0`` takes everything up to and including now.

Each candidate is handled independently: a failed stat or delete, or a
symlink that resolves outside the vault, is recorded under ``errors``
and the run continues.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from memctl.domain.errors import ValidationError, VaultError
from memctl.domain.timestamps import format_timestamp, utc_now
from memctl.services.base import BaseService, error_result
from memctl.services.index import PHASE_FILE_PATTERN
from memctl.services.result import ServiceResult

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


def compute_cutoff(days: int, now: datetime | None = None) -> datetime:
    """``now - days``, nudged one second forward when *days* is 0."""
    if days < 0:
        raise ValidationError(f"days must be >= 0, got {days}")
    cutoff = (now or utc_now()) - timedelta(days=days)
    if days == 0:
        cutoff += timedelta(seconds=1)
    return cutoff


class PruneService(BaseService):
    """Deletes old handoff, session, and research notes."""

    def prune(
        self,
        *,
        days: int | None = None,
        dry_run: bool = False,
        folders: list[str] | None = None,
    ) -> ServiceResult:
        """Prune notes under *folders* (recursively) older than *days*."""
        op = "prune"
        cfg = self._vault.settings.prune
        days = cfg.days if days is None else days
        try:
            cutoff = compute_cutoff(days)
            paths: list[Path] = []
            for folder in folders or cfg.folders:
                paths.extend(self._vault.list_notes(folder, recursive=True))
        except (VaultError, OSError) as exc:
            return error_result(op, exc)
        data = self._sweep(paths, cutoff=cutoff, dry_run=dry_run)
        return self._result(op, data, days=days, cutoff=cutoff, dry_run=dry_run)

    def prune_research(
        self,
        *,
        days: int | None = None,
        dry_run: bool = False,
        phase_id: str | None = None,
    ) -> ServiceResult:
        """Prune research notes of every phase, or of one phase.

        Research directories are listed non-recursively; missing ones are
        skipped.
        """
        op = "prune_research"
        days = self._vault.settings.prune.research_days if days is None else days
        try:
            cutoff = compute_cutoff(days)
            if phase_id:
                research_dirs = [self._vault.path("phases", phase_id, "research")]
            else:
                research_dirs = [
                    phase_file.parent / "research"
                    for phase_file in self._vault.list_notes(
                        "phases", recursive=True, pattern=PHASE_FILE_PATTERN
                    )
                ]
            paths: list[Path] = []
            for directory in research_dirs:
                paths.extend(self._vault.list_notes(directory, recursive=False))
        except (VaultError, OSError) as exc:
            return error_result(op, exc)
        data = self._sweep(paths, cutoff=cutoff, dry_run=dry_run)
        data["phase_id"] = phase_id
        return self._result(op, data, days=days, cutoff=cutoff, dry_run=dry_run)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _sweep(self, paths: list[Path], *, cutoff: datetime, dry_run: bool) -> dict[str, Any]:
        candidates: list[dict[str, Any]] = []
        deleted: list[str] = []
        errors: list[dict[str, str]] = []
        for path in paths:
            rel = self._vault.display_path(path)
            try:
                stat = self._vault.stat(path)
                if stat is None or stat.mtime >= cutoff:
                    continue
                candidates.append(
                    {"path": rel, "mtime": format_timestamp(stat.mtime), "size": stat.size}
                )
                if not dry_run:
                    self._vault.delete_note(path)
                    deleted.append(rel)
            except (VaultError, OSError) as exc:
                logger.warning("Could not prune %s: %s", rel, exc)
                errors.append({"path": rel, "error": str(exc)})
        return {"candidates": candidates, "deleted": deleted, "errors": errors}

    @staticmethod
    def _result(
        op: str,
        data: dict[str, Any],
        *,
        days: int,
        cutoff: datetime,
        dry_run: bool,
    ) -> ServiceResult:
        warnings: list[str] = []
        if data["errors"]:
            warnings.append(f"{len(data['errors'])} file(s) could not be pruned")
        summary = {
            "candidates": len(data["candidates"]),
            "deleted": len(data["deleted"]),
            "errors": len(data["errors"]),
        }
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "dry_run": dry_run,
                "days": days,
                "cutoff": format_timestamp(cutoff),
                **data,
                "summary": summary,
            },
            warnings=warnings,
        )
