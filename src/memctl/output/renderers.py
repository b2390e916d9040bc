"""Operation-specific Rich renderers for ServiceResult.

Renderers write to a StringIO-backed Rich Console and are dispatched by
``result.op`` in :func:`render_result`. Unknown ops fall through to a
generic key-value renderer.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from memctl.output.console import create_console, get_output, style_for_type

if TYPE_CHECKING:
    from collections.abc import Callable

    from rich.console import Console

    from memctl.services.result import ServiceResult

    Renderer = Callable[..., None]


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a string via Rich."""
    console = create_console()
    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)
    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Minimal output for ``--quiet``: paths for listings, else a status word."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"
    rows = result.data.get("items") or result.data.get("results")
    if isinstance(rows, list):
        return "\n".join(
            str(row["path"]) for row in rows if isinstance(row, dict) and "path" in row
        )
    if "path" in result.data:
        return str(result.data["path"])
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="mem.ok"), Text(f"  {result.op}", style="mem.op"))


def _field(console: Console, key: str, value: Any, *, indent: int = 2) -> None:
    """Print a single indented key-value field."""
    k = Text(f"{' ' * indent}{key}: ", style="mem.key")
    if key == "id" or key.endswith("_id") or key == "previous_handoff":
        v = Text(str(value), style="mem.id")
    elif key == "path" or key.endswith("_path"):
        v = Text(str(value), style="mem.path")
    elif key == "title":
        v = Text(str(value), style="mem.title")
    elif key == "type":
        v = Text(str(value), style=style_for_type(str(value)))
    elif isinstance(value, (dict, list)):
        v = Text(json.dumps(value, separators=(",", ":")))
    else:
        v = Text(str(value))
    console.print(k, v, sep="")


def _check_mark(ok: bool) -> Text:
    return Text("ok", style="mem.ok") if ok else Text("FAIL", style="mem.error")


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    code = err.code if err else "ERROR"
    console.print(
        Text("ERROR", style="mem.error"),
        Text(f"  {result.op}", style="mem.op"),
        Text(f" [{code}] {msg}"),
        sep="",
    )
    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(Text(f"    {k}: {v}"))


# ── Note renderers ────────────────────────────────────────────────────

_MUTATION_KEYS = (
    "id",
    "type",
    "title",
    "path",
    "session_id",
    "phase_id",
    "status",
    "previous_handoff",
)


def _render_mutation(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render note-creation results."""
    _status_line(console, result)
    for key in _MUTATION_KEYS:
        if result.data.get(key) is not None:
            _field(console, key, result.data[key])


def _render_resume(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for label in ("handoff", "session"):
        item = result.data.get(label) or {}
        console.print(Text(f"  {label}:", style="mem.key"))
        for key in ("id", "title", "path"):
            if item.get(key) is not None:
                _field(console, key, item[key], indent=4)


def _render_note(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render a single note (show, latest_handoff) as a panel."""
    d = result.data
    fm = d.get("frontmatter") or d
    lines: list[str] = []
    for key in ("type", "status", "session_id", "phase_id", "created_at", "updated_at"):
        if fm.get(key) is not None:
            lines.append(f"{key}: {fm[key]}")
    tags = fm.get("tags") or []
    if tags:
        lines.append(f"tags: {', '.join(str(t) for t in tags)}")
    links = fm.get("links") or []
    if links:
        lines.append(f"links: {', '.join(str(link) for link in links)}")
    lines.append(f"path: {d.get('path', '?')}")

    content = "\n".join(lines)
    body = str(d.get("body") or "").strip()
    if body:
        content += f"\n\n{body}"
    title = str(fm.get("title") or d.get("path") or "Untitled")
    style = style_for_type(str(fm.get("type") or ""))
    console.print(
        Panel(Text(content), title=Text(title), border_style=style or "dim", expand=False)
    )


def _render_list(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Path", style="mem.path")
    table.add_column("Type")
    table.add_column("Created", style="dim")
    for item in items:
        note_type = str(item.get("type") or "")
        table.add_row(
            Text(str(item.get("path", ""))),
            Text(note_type, style=style_for_type(note_type)),
            str(item.get("created") or ""),
        )
    console.print(table)
    console.print(f"\n{result.data.get('count', len(items))} notes")


def _render_search(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    results = result.data.get("results", [])
    if not results:
        console.print(Text(f"No matches for {result.data.get('query', '')!r}"))
        return
    table = Table(show_header=True, show_lines=True, pad_edge=False, expand=False)
    table.add_column("Path", style="mem.path")
    table.add_column("Matches", style="mem.count", justify="right")
    table.add_column("Preview")
    for hit in results:
        table.add_row(
            Text(str(hit["path"])), str(hit["matches"]), Text(str(hit["preview"]).strip())
        )
    console.print(table)
    console.print(f"\n{result.data.get('count', len(results))} matching notes")


# ── Maintenance renderers ─────────────────────────────────────────────


def _render_index(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key in ("catalog", "phase_summary", "latest_handoff"):
        value = result.data.get(key)
        _field(console, key, value if value is not None else "(none)")
    for key, count in (result.data.get("counts") or {}).items():
        _field(console, key, count, indent=4)


def _render_prune(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    _field(console, "mode", "dry run" if d.get("dry_run") else "delete")
    _field(console, "cutoff", d.get("cutoff"))
    summary = d.get("summary", {})
    for key in ("candidates", "deleted", "errors"):
        _field(console, key, summary.get(key, 0))

    candidates = d.get("candidates", [])
    if candidates and (verbose or d.get("dry_run")):
        table = Table(show_header=True, pad_edge=False, expand=False)
        table.add_column("Path", style="mem.path")
        table.add_column("Modified", style="dim")
        table.add_column("Size", justify="right")
        for item in candidates:
            table.add_row(Text(str(item["path"])), str(item["mtime"]), str(item["size"]))
        console.print()
        console.print(table)
    for err in d.get("errors", []):
        _detail(console, f"{err['path']}: {err['error']}", style="mem.error")


def _check_line(console: Console, ok: bool, label: str, text: str) -> None:
    console.print(Text("  "), _check_mark(ok), Text(f" {label}: {text}"), sep="")


def _detail(console: Console, text: str, *, style: str = "") -> None:
    console.print(Text(f"      {text}", style=style))


def _render_doctor(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    healthy = bool(d.get("healthy"))
    console.print(
        Text("HEALTHY", style="mem.ok") if healthy else Text("UNHEALTHY", style="mem.error"),
        Text(f"  {result.op}", style="mem.op"),
        sep="",
    )

    folders = d.get("folders", {})
    _check_line(console, folders.get("healthy", False), "folders", folders.get("message", ""))

    indexes = d.get("indexes", {})
    issues = indexes.get("issues", [])
    _check_line(console, indexes.get("healthy", False), "indexes", f"{len(issues)} issue(s)")
    for issue in issues:
        _detail(console, f"{issue['index']}: {issue['issue']} ({issue['message']})")

    fm = d.get("frontmatter", {})
    invalid = fm.get("invalid", [])
    _check_line(
        console,
        fm.get("healthy", False),
        "frontmatter",
        f"{fm.get('checked', 0)} checked, {len(invalid)} invalid",
    )
    for entry in invalid:
        reason = entry.get("error") or ", ".join(entry.get("missing") or entry.get("errors") or [])
        _detail(console, f"{entry['path']}: {reason}")

    tracker = d.get("tracker", {})
    tracker_issues = tracker.get("issues", [])
    _check_line(
        console, tracker.get("healthy", False), "tracker", f"{len(tracker_issues)} issue(s)"
    )
    for issue in tracker_issues:
        _detail(console, f"{issue['issue']}: {issue['message']}")


def _render_doctor_fix(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    fixed = result.data.get("fixed", [])
    if not fixed:
        console.print("  No auto-fixable issues found")
    for line in fixed:
        console.print(Text(f"  - {line}"))
    console.print(Text("  healthy: "), _check_mark(bool(result.data.get("healthy"))), sep="")
    if verbose and result.data.get("report"):
        _render_doctor(result.model_copy(update={"data": result.data["report"]}), console)


def _render_tracker(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    d = result.data
    for key in (
        "active_phase_id",
        "current_session_id",
        "latest_handoff_path",
        "latest_handoff_id",
        "updated_at",
    ):
        value = d.get(key)
        _field(console, key, value if value is not None else "(none)")
    lock = d.get("lock")
    if lock:
        state = "absent"
        if lock.get("present"):
            state = f"held ({lock.get('age_seconds')}s{', stale' if lock.get('stale') else ''})"
        _field(console, "lock", state)
    if d.get("changed"):
        _field(console, "changed", ", ".join(d["changed"]))


def _render_init(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    d = result.data
    _field(console, "root", d.get("root"))
    created = d.get("created") or []
    _field(console, "created", ", ".join(created) if created else "(already initialized)")
    note = d.get("note")
    if note:
        console.print(Text(f"  {d.get('mode')} note:", style="mem.key"))
        for key in ("id", "title", "path"):
            if note.get(key) is not None:
                _field(console, key, note[key], indent=4)


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line plus all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Renderer] = {
    # Notes
    "create_handoff": _render_mutation,
    "create_phase_handoff": _render_mutation,
    "create_session": _render_mutation,
    "create_phase": _render_mutation,
    "create_research": _render_mutation,
    "greenfield": _render_mutation,
    "brownfield": _render_mutation,
    "resume": _render_resume,
    "latest_handoff": _render_note,
    "show": _render_note,
    "list_notes": _render_list,
    "search": _render_search,
    # Maintenance
    "index": _render_index,
    "prune": _render_prune,
    "prune_research": _render_prune,
    "doctor": _render_doctor,
    "doctor_fix": _render_doctor_fix,
    "tracker": _render_tracker,
    "tracker_update": _render_tracker,
    "init": _render_init,
}
