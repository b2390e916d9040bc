"""Error taxonomy for vault operations.

Note Store and Tracker State Store raise these synchronously. The service
layer converts them into a failed ServiceResult using :attr:`VaultError.code`.
Filesystem failures other than "not found" are left as :class:`OSError`
(Python's ``IOError``) and mapped to ``IO_ERROR`` by the services.
"""

from __future__ import annotations


class VaultError(Exception):
    """Base class for all memctl domain errors."""

    code = "VAULT_ERROR"


class ValidationError(VaultError):
    """Missing required frontmatter, or an invalid mode/argument."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, *, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing = missing or []


class NoteExistsError(ValidationError):
    """A note already occupies the target path (same second, type, scope, slug)."""

    code = "NOTE_EXISTS"


class NotFoundError(VaultError):
    """A note, phase, or index is absent."""

    code = "NOT_FOUND"


class LockTimeoutError(VaultError):
    """Tracker lock contention outlasted the retry budget."""

    code = "LOCK_TIMEOUT"
