"""OnboardingService: vault initialization and greenfield/brownfield notes.

Greenfield captures a project idea before any code exists. Brownfield
takes a top-level look at an existing codebase (folders, files, extension
counts, well-known build files) and infers a likely stack from it.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from uuid import uuid4

from memctl.domain.errors import NotFoundError, ValidationError, VaultError
from memctl.domain.filenames import generate_filename
from memctl.domain.frontmatter import create_frontmatter
from memctl.domain.timestamps import format_timestamp, utc_now
from memctl.domain.types import NoteType
from memctl.services._helpers import note_summary
from memctl.services.base import BaseService, error_result
from memctl.services.result import ServiceResult

logger = logging.getLogger(__name__)

INIT_MODES: tuple[str, ...] = ("greenfield", "brownfield")

IGNORED_DIRS = frozenset({"node_modules", "dist", "build", "target", "__pycache__", "vendor"})

KEY_FILES = frozenset(
    {
        "package.json", "package-lock.json", "yarn.lock", "pnpm-lock.yaml",
        "Cargo.toml", "Cargo.lock",
        "go.mod", "go.sum",
        "requirements.txt", "Pipfile", "poetry.lock", "setup.py", "pyproject.toml",
        "pom.xml", "build.gradle", "build.gradle.kts",
        "Gemfile", "Gemfile.lock",
        "composer.json", "composer.lock",
        "Makefile", "CMakeLists.txt",
        "Dockerfile", "docker-compose.yml", "docker-compose.yaml",
        ".gitignore", ".env.example", "README.md",
        "tsconfig.json", "jsconfig.json", "babel.config.js", "webpack.config.js",
        "tailwind.config.js", "next.config.js", "vite.config.js",
    }
)  # fmt: skip

FOLDER_DISPLAY_LIMIT = 20
EXTENSION_DISPLAY_LIMIT = 10
TITLE_IDEA_CHARS = 50


@dataclass
class CodebaseAnalysis:
    """Top-level shape of a codebase."""

    path: str
    folders: list[str] = field(default_factory=list)
    files: list[str] = field(default_factory=list)
    extensions: Counter[str] = field(default_factory=Counter)
    key_files: list[str] = field(default_factory=list)
    stack: list[str] = field(default_factory=list)


def analyze_codebase(target: Path) -> CodebaseAnalysis:
    """Scan the top level of *target*. Hidden entries other than ``.github``
    and common build/dependency folders are ignored."""
    analysis = CodebaseAnalysis(path=str(target))
    for entry in sorted(target.iterdir(), key=lambda p: p.name):
        name = entry.name
        if name.startswith(".") and name != ".github" and name not in KEY_FILES:
            continue
        if name in IGNORED_DIRS:
            continue
        if entry.is_dir():
            analysis.folders.append(name)
            continue
        analysis.files.append(name)
        if entry.suffix:
            analysis.extensions[entry.suffix] += 1
        if name in KEY_FILES:
            analysis.key_files.append(name)
    analysis.stack = infer_stack(analysis.key_files, analysis.extensions)
    return analysis


def infer_stack(key_files: list[str], extensions: Counter[str]) -> list[str]:
    """Guess technologies from well-known files and extension counts."""
    files = set(key_files)
    stack: list[str] = []

    if "package.json" in files:
        stack.append("Node.js")
        if extensions[".ts"] or extensions[".tsx"] or "tsconfig.json" in files:
            stack.append("TypeScript")
        else:
            stack.append("JavaScript")
        if extensions[".jsx"] or extensions[".tsx"]:
            stack.append("React")
        if "next.config.js" in files:
            stack.append("Next.js")
        if "vite.config.js" in files:
            stack.append("Vite")
    if files & {"requirements.txt", "Pipfile", "setup.py", "poetry.lock", "pyproject.toml"}:
        stack.append("Python")
    if "Cargo.toml" in files:
        stack.append("Rust")
    if "go.mod" in files:
        stack.append("Go")
    if files & {"pom.xml", "build.gradle", "build.gradle.kts"}:
        stack.append("Java")
    if "Gemfile" in files:
        stack.append("Ruby")
    if "composer.json" in files:
        stack.append("PHP")
    if any(f.startswith("Dockerfile") or "docker-compose" in f for f in files):
        stack.append("Docker")
    return stack


class OnboardingService(BaseService):
    """Vault setup plus the two planning note flavors."""

    def init_vault(self, *, mode: str | None = None, **options: Any) -> ServiceResult:
        """Create the vault layout, then optionally write an onboarding note."""
        op = "init"
        if mode is not None and mode not in INIT_MODES:
            msg = f"Invalid mode {mode!r}; expected one of {', '.join(INIT_MODES)}"
            return error_result(op, ValidationError(msg))
        try:
            created = self._vault.ensure_structure()
        except OSError as exc:
            return error_result(op, exc)

        data: dict[str, Any] = {"root": str(self._vault.root), "created": created, "mode": mode}
        if mode is None:
            return ServiceResult(ok=True, op=op, data=data)

        result = self.greenfield(**options) if mode == "greenfield" else self.brownfield(**options)
        if not result.ok:
            return result.model_copy(update={"op": op})
        data["note"] = result.data
        return ServiceResult(ok=True, op=op, data=data, warnings=result.warnings)

    def greenfield(
        self,
        *,
        idea: str | None = None,
        stack: list[str] | None = None,
        constraints: str | None = None,
        research: list[str] | None = None,
        session_id: str | None = None,
        tags: list[str] | None = None,
    ) -> ServiceResult:
        op = "greenfield"
        if not idea or not idea.strip():
            return error_result(op, ValidationError("A project idea is required"))
        idea = idea.strip()
        now = utc_now()
        body = self._vault.render(
            "greenfield",
            idea=idea,
            stack=stack or [],
            constraints=constraints,
            research=research or [],
            created_at=format_timestamp(now),
        )
        return self._write(
            op,
            NoteType.GREENFIELD,
            title=f"Greenfield: {idea[:TITLE_IDEA_CHARS]}",
            body=body,
            session_id=session_id,
            tags=["greenfield", "planning", *(tags or [])],
            extra={"stack": list(stack or [])},
        )

    def brownfield(
        self,
        *,
        path: str | Path | None = None,
        session_id: str | None = None,
        tags: list[str] | None = None,
    ) -> ServiceResult:
        op = "brownfield"
        target = Path(path).expanduser().resolve() if path else Path.cwd()
        if not target.is_dir():
            return error_result(op, NotFoundError(f"Directory not found: {target}"))
        try:
            analysis = analyze_codebase(target)
        except OSError as exc:
            return error_result(op, exc)

        extensions = sorted(analysis.extensions.items(), key=lambda kv: (-kv[1], kv[0]))
        body = self._vault.render(
            "brownfield",
            analysis=analysis,
            extensions=extensions[:EXTENSION_DISPLAY_LIMIT],
            folder_limit=FOLDER_DISPLAY_LIMIT,
            created_at=format_timestamp(utc_now()),
        )
        return self._write(
            op,
            NoteType.BROWNFIELD,
            title=f"Brownfield: {target.name or target}",
            body=body,
            session_id=session_id,
            tags=["brownfield", "analysis", *(tags or [])],
            extra={"source_path": str(target), "stack": analysis.stack},
        )

    def _write(
        self,
        op: str,
        note_type: NoteType,
        *,
        title: str,
        body: str,
        session_id: str | None,
        tags: list[str],
        extra: dict[str, Any],
    ) -> ServiceResult:
        now = utc_now()
        frontmatter = create_frontmatter(
            note_type,
            created_at=format_timestamp(now),
            session_id=session_id or str(uuid4()),
            status="active",
            tags=tags,
            title=title,
            **extra,
        )
        try:
            path = self._vault.dated_path("sessions", now) / generate_filename(
                note_type, session_id or "session", title, now
            )
            note = self._vault.create_note(path, frontmatter, body)
        except (VaultError, OSError) as exc:
            return error_result(op, exc)
        logger.debug("Wrote %s note %s", note_type, note.path)
        return ServiceResult(
            ok=True,
            op=op,
            data={**note_summary(self._vault, note), "session_id": frontmatter["session_id"]},
        )
