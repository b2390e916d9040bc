"""Output mode selection for ServiceResult.

Three modes: Rich rendering for humans (default), the serialized result
for machines (``--json``), and a terse ``--quiet`` form.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from memctl.output.renderers import render_quiet, render_result

if TYPE_CHECKING:
    from memctl.services.result import ServiceResult


@dataclass(frozen=True)
class OutputSettings:
    """Flags that choose how a result is printed."""

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False


def format_result(result: ServiceResult, *, settings: OutputSettings | None = None) -> str:
    """Format *result* according to *settings* (default: human output)."""
    settings = settings or OutputSettings()
    if settings.json_output:
        return result.model_dump_json(indent=2)
    if settings.quiet:
        return render_quiet(result)
    return render_result(result, verbose=settings.verbose)
