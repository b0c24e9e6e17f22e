"""Static checks banning dynamic import mechanisms in runtime code.

Dynamic imports hide edges from the layer check, so runtime modules may use
neither ``importlib`` nor the builtin ``__import__``.
"""

from __future__ import annotations

import ast
from pathlib import Path

from tests.shared.static_analysis_helpers import (
    REPO_ROOT,
    Violation,
    discover_runtime_python_files,
)


def test_runtime_code_disallows_dynamic_imports() -> None:
    """Reject importlib and ``__import__`` usage under the layer roots."""
    violations: list[Violation] = []
    for file_path in discover_runtime_python_files():
        source = file_path.read_text(encoding="utf-8")
        violations.extend(
            _dynamic_import_violations(
                source=source, file_path=file_path.relative_to(REPO_ROOT)
            )
        )

    assert not violations, "\n".join(v.format() for v in violations)


def test_analyzer_flags_each_dynamic_import_form() -> None:
    """The analyzer should catch module imports, helper imports and builtins."""
    source = "\n".join(
        [
            "import importlib",
            "from importlib import import_module",
            "importlib.import_module('x')",
            "import_module('y')",
            "__import__('z')",
        ]
    )

    violations = _dynamic_import_violations(source=source, file_path=Path("fixture.py"))

    assert [v.line for v in violations] == [1, 2, 3, 4, 5]


def _dynamic_import_violations(*, source: str, file_path: Path) -> list[Violation]:
    """Return dynamic-import violations found in one module's source."""
    importlib_aliases: set[str] = set()
    imported_helpers: set[str] = set()
    violations: list[Violation] = []

    def _flag(line: int, message: str) -> None:
        violations.append(Violation(file_path=file_path, line=line, message=message))

    for node in ast.walk(ast.parse(source, filename=str(file_path))):
        if isinstance(node, ast.Import):
            for alias in node.names:
                if alias.name.split(".", maxsplit=1)[0] == "importlib":
                    importlib_aliases.add(alias.asname or "importlib")
                    _flag(node.lineno, f"import '{alias.name}' is banned")
        elif isinstance(node, ast.ImportFrom):
            if (node.module or "").split(".", maxsplit=1)[0] == "importlib":
                imported_helpers.update(alias.asname or alias.name for alias in node.names)
                _flag(node.lineno, f"from '{node.module}' is banned")
        elif isinstance(node, ast.Call):
            func = node.func
            if isinstance(func, ast.Name):
                if func.id == "__import__":
                    _flag(node.lineno, "builtin '__import__' is banned")
                elif func.id in imported_helpers:
                    _flag(node.lineno, f"call to '{func.id}(...)' is banned")
            elif (
                isinstance(func, ast.Attribute)
                and isinstance(func.value, ast.Name)
                and func.value.id in importlib_aliases
            ):
                _flag(node.lineno, f"call to '{func.value.id}.{func.attr}(...)' is banned")

    return sorted(violations, key=lambda violation: violation.line)
