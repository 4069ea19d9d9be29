"""Read-only inspection of a project directory.

Produces the raw material for the fact and snippet sources: short
statements about the project's manifests and layout, and line windows of
source files that mention query terms. All filesystem work runs in a
worker thread.
"""

import asyncio
import json
import os
import tomllib
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from enrich.config import ContextSettings, settings
from enrich.errors import SourceUnavailableError

logger = structlog.get_logger()

EXTENSION_MAP = {
    ".py": "python",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".vue": "vue",
    ".svelte": "svelte",
    ".go": "go",
    ".rs": "rust",
    ".rb": "ruby",
    ".php": "php",
    ".java": "java",
    ".kt": "kotlin",
    ".swift": "swift",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".cs": "csharp",
    ".css": "css",
    ".scss": "scss",
    ".sql": "sql",
}

DEFAULT_EXCLUDED_DIRS: set[str] = {
    ".venv",
    "venv",
    "env",
    "node_modules",
    ".git",
    ".hg",
    ".svn",
    "__pycache__",
    ".tox",
    ".nox",
    "dist",
    "build",
    "target",
    ".next",
    ".nuxt",
    "coverage",
    ".pytest_cache",
    ".mypy_cache",
    ".ruff_cache",
    "htmlcov",
    ".eggs",
}

LAYOUT_DIRS = ["src", "app", "lib", "packages", "components", "pages", "tests", "test", "docs"]

JS_FRAMEWORKS = {
    "react": "React",
    "next": "Next.js",
    "vue": "Vue",
    "nuxt": "Nuxt",
    "svelte": "Svelte",
    "@angular/core": "Angular",
    "express": "Express",
    "tailwindcss": "Tailwind CSS",
    "prisma": "Prisma",
}

JS_TEST_TOOLS = {"jest": "Jest", "vitest": "Vitest", "mocha": "Mocha", "@playwright/test": "Playwright"}

PY_FRAMEWORKS = {
    "django": "Django",
    "flask": "Flask",
    "fastapi": "FastAPI",
    "sqlalchemy": "SQLAlchemy",
    "pydantic": "Pydantic",
    "pandas": "pandas",
}

LOCKFILES = [
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("bun.lockb", "bun"),
    ("package-lock.json", "npm"),
    ("poetry.lock", "poetry"),
    ("uv.lock", "uv"),
]

MAX_LISTED_DEPENDENCIES = 15
MAX_SNIPPETS_PER_FILE = 2
MAX_SNIPPET_RESULTS = 20


@dataclass(frozen=True)
class ProjectFact:
    """A short statement about the project and the file it came from."""

    text: str
    source_file: str


@dataclass(frozen=True)
class CodeSnippet:
    """A window of lines from a source file."""

    file_path: str
    start_line: int
    end_line: int
    content: str
    language: str
    term_coverage: float


def _requirement_name(spec: str) -> str:
    """Distribution name from a PEP 508 requirement string."""
    name = spec.strip()
    for separator in ("[", ";", "=", "<", ">", "~", "!", " "):
        name = name.split(separator, 1)[0]
    return name.strip().lower()


class ProjectInspector:
    """Scan a project directory for facts and code snippets."""

    def __init__(self, config: ContextSettings | None = None) -> None:
        self._config = config or settings.context
        self._logger = logger.bind(component="project_inspector")

    async def scan_facts(self, root: Path | str) -> list[ProjectFact]:
        return await asyncio.to_thread(self._scan_facts, Path(root).expanduser())

    async def find_snippets(
        self, root: Path | str, terms: list[str]
    ) -> list[CodeSnippet]:
        """Find line windows mentioning any of terms, best coverage first."""
        return await asyncio.to_thread(
            self._find_snippets, Path(root).expanduser(), terms
        )

    # Facts

    def _scan_facts(self, root: Path) -> list[ProjectFact]:
        if not root.is_dir():
            raise SourceUnavailableError("facts", f"{root} is not a directory")

        facts: list[ProjectFact] = []
        facts.extend(self._pyproject_facts(root / "pyproject.toml"))
        facts.extend(self._package_json_facts(root / "package.json"))
        for requirements in sorted(root.glob("requirements*.txt")):
            facts.extend(self._requirements_facts(requirements))

        for lockfile, manager in LOCKFILES:
            if (root / lockfile).is_file():
                facts.append(ProjectFact(f"Package manager: {manager}", lockfile))
                break

        layout = [name + "/" for name in LAYOUT_DIRS if (root / name).is_dir()]
        if layout:
            facts.append(ProjectFact(f"Layout: {', '.join(layout)}", "."))

        languages = self._language_counts(root)
        if languages:
            summary = ", ".join(
                f"{language} ({count} files)"
                for language, count in languages.most_common(3)
            )
            facts.append(ProjectFact(f"Primary languages: {summary}", "."))

        self._logger.debug("facts_scanned", root=str(root), count=len(facts))
        return facts

    def _load(self, path: Path) -> dict[str, Any] | None:
        if not path.is_file():
            return None
        try:
            if path.suffix == ".toml":
                with open(path, "rb") as f:
                    return tomllib.load(f)
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError, json.JSONDecodeError) as e:
            self._logger.warning("manifest_unreadable", path=str(path), error=str(e))
            return None
        return data if isinstance(data, dict) else None

    def _pyproject_facts(self, path: Path) -> list[ProjectFact]:
        data = self._load(path)
        if data is None:
            return []

        source = path.name
        facts = []
        project = data.get("project") or {}
        name = project.get("name")
        if name:
            description = project.get("description")
            text = f"Project: {name}" + (f" - {description}" if description else "")
            facts.append(ProjectFact(text, source))
        if project.get("requires-python"):
            facts.append(ProjectFact(f"Python version: {project['requires-python']}", source))

        dependencies = [_requirement_name(d) for d in project.get("dependencies") or []]
        dependencies = [d for d in dependencies if d]
        if dependencies:
            listed = ", ".join(dependencies[:MAX_LISTED_DEPENDENCIES])
            facts.append(ProjectFact(f"Python dependencies: {listed}", source))

        frameworks = [PY_FRAMEWORKS[d] for d in dependencies if d in PY_FRAMEWORKS]
        if frameworks:
            facts.append(ProjectFact(f"Frameworks: {', '.join(frameworks)}", source))

        optional = project.get("optional-dependencies") or {}
        optional_names = {
            _requirement_name(d) for group in optional.values() for d in group
        }
        if "pytest" in optional_names or "pytest" in (data.get("tool") or {}):
            facts.append(ProjectFact("Test framework: pytest", source))
        return facts

    def _package_json_facts(self, path: Path) -> list[ProjectFact]:
        data = self._load(path)
        if data is None:
            return []

        source = path.name
        facts = []
        if data.get("name"):
            description = data.get("description")
            text = f"Project: {data['name']}" + (f" - {description}" if description else "")
            facts.append(ProjectFact(text, source))

        dependencies = dict(data.get("dependencies") or {})
        dev_dependencies = dict(data.get("devDependencies") or {})
        if dependencies:
            listed = ", ".join(list(dependencies)[:MAX_LISTED_DEPENDENCIES])
            facts.append(ProjectFact(f"Dependencies: {listed}", source))

        everything = {**dependencies, **dev_dependencies}
        frameworks = [
            f"{label} {everything[package]}"
            for package, label in JS_FRAMEWORKS.items()
            if package in everything
        ]
        if frameworks:
            facts.append(ProjectFact(f"Frameworks: {', '.join(frameworks)}", source))
        if "typescript" in everything:
            facts.append(ProjectFact("Language: TypeScript", source))

        test_tools = [label for package, label in JS_TEST_TOOLS.items() if package in everything]
        if test_tools:
            facts.append(ProjectFact(f"Test framework: {', '.join(test_tools)}", source))

        scripts = list((data.get("scripts") or {}).keys())
        if scripts:
            facts.append(ProjectFact(f"Scripts: {', '.join(scripts[:10])}", source))
        return facts

    def _requirements_facts(self, path: Path) -> list[ProjectFact]:
        if not path.is_file():
            return []
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except (OSError, UnicodeDecodeError) as e:
            self._logger.warning("manifest_unreadable", path=str(path), error=str(e))
            return []

        names = [
            _requirement_name(line)
            for line in lines
            if line.strip() and not line.lstrip().startswith(("#", "-"))
        ]
        names = [n for n in names if n]
        if not names:
            return []
        listed = ", ".join(names[:MAX_LISTED_DEPENDENCIES])
        label = "Python requirements"
        if path.name != "requirements.txt":
            label += f" ({path.name})"
        return [ProjectFact(f"{label}: {listed}", path.name)]

    def _language_counts(self, root: Path) -> Counter[str]:
        counts: Counter[str] = Counter()
        for path in self._walk(root):
            counts[EXTENSION_MAP[path.suffix]] += 1
        return counts

    # Snippets

    def _walk(self, root: Path):
        """Yield supported source files under root, up to max_scan_files."""
        seen = 0
        for dirpath, dirnames, filenames in os.walk(str(root), followlinks=False):
            dirnames[:] = sorted(
                d for d in dirnames if d not in DEFAULT_EXCLUDED_DIRS and not d.startswith(".")
            )
            for filename in sorted(filenames):
                path = Path(dirpath) / filename
                if path.suffix not in EXTENSION_MAP:
                    continue
                yield path
                seen += 1
                if seen >= self._config.max_scan_files:
                    return

    def _find_snippets(self, root: Path, terms: list[str]) -> list[CodeSnippet]:
        if not root.is_dir():
            raise SourceUnavailableError("snippets", f"{root} is not a directory")

        needles = sorted({t.lower() for t in terms if t})
        if not needles:
            return []

        snippets: list[CodeSnippet] = []
        for path in self._walk(root):
            try:
                if path.stat().st_size > self._config.max_file_bytes:
                    continue
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                continue
            relative = path.relative_to(root).as_posix()
            snippets.extend(
                self._file_snippets(relative, EXTENSION_MAP[path.suffix], text, needles)
            )

        snippets.sort(key=lambda s: (-s.term_coverage, s.file_path, s.start_line))
        self._logger.debug(
            "snippets_found", root=str(root), terms=needles, count=len(snippets)
        )
        return snippets[:MAX_SNIPPET_RESULTS]

    def _file_snippets(
        self, file_path: str, language: str, text: str, needles: list[str]
    ) -> list[CodeSnippet]:
        lines = text.splitlines()
        lowered = [line.lower() for line in lines]
        hits = [i for i, line in enumerate(lowered) if any(n in line for n in needles)]
        if not hits:
            return []

        context = self._config.snippet_context_lines
        max_lines = self._config.max_snippet_lines

        # Merge overlapping windows around hits, 0-based inclusive bounds.
        windows: list[list[int]] = []
        for hit in hits:
            start = max(0, hit - context)
            end = min(len(lines) - 1, hit + context)
            if windows and start <= windows[-1][1] + 1:
                windows[-1][1] = min(end, windows[-1][0] + max_lines - 1)
            else:
                windows.append([start, min(end, start + max_lines - 1)])

        path_lower = file_path.lower()
        candidates = []
        for start, end in windows:
            window_text = "\n".join(lowered[start : end + 1])
            matched = {n for n in needles if n in window_text or n in path_lower}
            candidates.append(
                CodeSnippet(
                    file_path=file_path,
                    start_line=start + 1,
                    end_line=end + 1,
                    content="\n".join(lines[start : end + 1]),
                    language=language,
                    term_coverage=len(matched) / len(needles),
                )
            )

        candidates.sort(key=lambda s: (-s.term_coverage, s.start_line))
        return candidates[:MAX_SNIPPETS_PER_FILE]
