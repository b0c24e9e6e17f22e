"""Helpers for repository static-analysis tests.

Runtime files are discovered under the top-level layer roots and parsed with
``ast`` so import edges can be checked without importing anything.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]

# Lower index is the lower layer; imports may only point at the same or a lower layer.
LAYER_ROOTS = ("packages", "resources", "services", "actors")


@dataclass(frozen=True)
class ImportRef:
    """One imported module name with its source line."""

    module_name: str
    line: int


@dataclass(frozen=True)
class Violation:
    """One static-analysis violation with stable source context."""

    file_path: Path
    line: int
    message: str

    def format(self) -> str:
        return f"{self.file_path}:{self.line}: {self.message}"


def discover_runtime_python_files(
    *, repo_root: Path = REPO_ROOT, roots: tuple[str, ...] = LAYER_ROOTS
) -> tuple[Path, ...]:
    """Return runtime (non-test) Python files under the layer roots."""
    files: set[Path] = set()
    for root_name in roots:
        root = repo_root / root_name
        if not root.exists():
            continue
        for file_path in root.rglob("*.py"):
            rel = file_path.relative_to(repo_root)
            if "tests" in rel.parts or "__pycache__" in rel.parts:
                continue
            files.add(file_path)
    return tuple(sorted(files))


def module_name_for_file(*, repo_root: Path, file_path: Path) -> str:
    """Convert a repo-relative file path to its dotted module name."""
    rel = file_path.relative_to(repo_root)
    if rel.name == "__init__.py":
        return ".".join(rel.parent.parts)
    return ".".join(rel.with_suffix("").parts)


def layer_of(module_name: str) -> int | None:
    """Return the layer index owning one module, or None for third-party code."""
    top = module_name.split(".", maxsplit=1)[0]
    if top in LAYER_ROOTS:
        return LAYER_ROOTS.index(top)
    return None


def imports_for_source(*, source: str, caller_module: str) -> tuple[ImportRef, ...]:
    """Resolve absolute imported module names from one module's source."""
    imports: list[ImportRef] = []
    for node in ast.walk(ast.parse(source)):
        if isinstance(node, ast.Import):
            imports.extend(
                ImportRef(module_name=alias.name, line=node.lineno) for alias in node.names
            )
        elif isinstance(node, ast.ImportFrom):
            base = resolve_import_from_base(
                caller_module=caller_module, level=node.level, module=node.module
            )
            if base:
                imports.append(ImportRef(module_name=base, line=node.lineno))
    return tuple(imports)


def resolve_import_from_base(
    *, caller_module: str, level: int, module: str | None
) -> str | None:
    """Resolve the absolute base module for one ``from ... import ...``."""
    if level == 0:
        return module

    caller_parts = caller_module.split(".")
    if level > len(caller_parts):
        return None

    prefix = ".".join(caller_parts[: len(caller_parts) - level])
    if module is None:
        return prefix
    if prefix == "":
        return module
    return f"{prefix}.{module}"
