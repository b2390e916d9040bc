"""BaseService: shared foundation for memctl services.

Every service receives a :class:`Vault` at construction time and turns
store or tracker exceptions into a failed :class:`ServiceResult` at its
public boundary.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from memctl.domain.errors import LockTimeoutError, ValidationError, VaultError
from memctl.services.result import ServiceError, ServiceResult

if TYPE_CHECKING:
    from memctl.infrastructure.vault import Vault

logger = logging.getLogger(__name__)

IO_ERROR = "IO_ERROR"


def error_result(op: str, exc: VaultError | OSError) -> ServiceResult:
    """Convert a store, tracker, or filesystem exception into a failed result."""
    detail: dict[str, Any] = {}
    if isinstance(exc, VaultError):
        code = exc.code
        if isinstance(exc, ValidationError) and exc.missing:
            detail["missing"] = list(exc.missing)
    else:
        code = IO_ERROR
        if exc.filename is not None:
            detail["path"] = str(exc.filename)
    logger.debug("%s failed with %s: %s", op, code, exc)
    return ServiceResult(
        ok=False,
        op=op,
        error=ServiceError(code=code, message=str(exc), detail=detail),
    )


class BaseService:
    """Base for service-layer classes.

    Usage::

        class PruneService(BaseService):
            def prune(self, ...) -> ServiceResult:
                try:
                    ...
                except (VaultError, OSError) as exc:
                    return error_result("prune", exc)
    """

    def __init__(self, vault: Vault) -> None:
        self._vault = vault

    def _update_tracker(self, warnings: list[str], **changes: Any) -> None:
        """Record pointers in the tracker after a note is already on disk.

        Lock contention here does not undo the note; it becomes a warning
        and the command can be re-issued.
        """
        if not changes:
            return
        try:
            self._vault.tracker.update(**changes)
        except LockTimeoutError as exc:
            logger.warning("tracker update skipped: %s", exc)
            warnings.append(f"Tracker not updated: {exc}")
