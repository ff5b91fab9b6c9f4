#!/usr/bin/env python3
"""
Fail if bitbucket_mcp.core depends on the MCP server layer.

The core (client, safety checks, models, tools) must stay importable without
a server framework; only bitbucket_mcp.server wires it to FastMCP.
"""

from __future__ import annotations

import ast
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent
PACKAGE_DIR = REPO_ROOT / "src" / "bitbucket_mcp"
CORE_DIR = PACKAGE_DIR / "core"

FORBIDDEN_PREFIXES = (
    "mcp.server",
    "fastmcp",
    "starlette",
    "uvicorn",
    "bitbucket_mcp.server",
)


def is_forbidden(module: str) -> bool:
    return any(
        module == prefix or module.startswith(prefix + ".")
        for prefix in FORBIDDEN_PREFIXES
    )


def _absolute_name(path: Path, node: ast.ImportFrom) -> str:
    """Resolve `from ..x import y` inside the package to a dotted module name."""
    if node.level == 0:
        return node.module or ""
    parts = list(path.relative_to(PACKAGE_DIR.parent).with_suffix("").parts)
    base = parts[: len(parts) - node.level]
    if node.module:
        base.append(node.module)
    return ".".join(base)


def scan_file(path: Path) -> list[str]:
    errors: list[str] = []
    tree = ast.parse(path.read_text())
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            names = [alias.name for alias in node.names]
        elif isinstance(node, ast.ImportFrom):
            mod = _absolute_name(path, node)
            names = [mod] + [f"{mod}.{alias.name}" for alias in node.names]
        else:
            continue
        for name in names:
            if name and is_forbidden(name):
                errors.append(f"{path}:{node.lineno}: forbidden import '{name}'")
                break
    return errors


def main() -> int:
    violations: list[str] = []
    for py_file in sorted(CORE_DIR.rglob("*.py")):
        violations.extend(scan_file(py_file))

    for v in violations:
        print(v, file=sys.stderr)
    return 1 if violations else 0


if __name__ == "__main__":
    sys.exit(main())
