"""SearchService: literal content search over note bodies."""

from __future__ import annotations

from memctl.domain.errors import ValidationError, VaultError
from memctl.services.base import BaseService, error_result
from memctl.services.result import ServiceResult


class SearchService(BaseService):
    """Live linear scan; results come back in directory traversal order."""

    def search(
        self,
        query: str,
        *,
        directory: str | None = None,
        case_sensitive: bool = False,
        recursive: bool = True,
    ) -> ServiceResult:
        op = "search"
        try:
            if not query:
                raise ValidationError("Search query must not be empty")
            target = self._vault.resolve(directory) if directory else self._vault.root
            hits = self._vault.search_notes(
                target, query, case_sensitive=case_sensitive, recursive=recursive
            )
            results = [
                {**hit.to_dict(), "path": self._vault.relative(hit.path)} for hit in hits
            ]
        except (VaultError, OSError) as exc:
            return error_result(op, exc)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "query": query,
                "directory": self._vault.relative(target),
                "results": results,
                "count": len(results),
            },
        )
