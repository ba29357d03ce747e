#!/usr/bin/env python3
"""Transport isolation validation script.

Enforces the architectural rule that only ``core/connection.py`` talks to the
network. The coordinator, codecs, assembler, types and utils modules work
against the Connection protocol and must not import socket, select, ssl or
pyOpenSSL directly, so that they stay testable with scripted connections.

Exit codes:
    0: No violations found (clean)
    1: Violations detected (architectural rule broken)
"""

from __future__ import annotations

import ast
import sys
from pathlib import Path
from typing import Final

# ANSI color codes for terminal output
RED: Final[str] = "\033[91m"
GREEN: Final[str] = "\033[92m"
YELLOW: Final[str] = "\033[93m"
RESET: Final[str] = "\033[0m"

# Modules allowed to import transport libraries, relative to src/pushgate
TRANSPORT_MODULES: Final[frozenset[str]] = frozenset({"core/connection.py"})

FORBIDDEN_IMPORTS: Final[frozenset[str]] = frozenset({"socket", "select", "selectors", "ssl", "OpenSSL"})


def check_file(file_path: Path) -> list[tuple[int, str]]:
    """Check a single Python file for transport imports.

    Args:
        file_path: Path to the Python file to check.

    Returns:
        List of (line_number, violation_description) tuples.
    """
    try:
        tree = ast.parse(file_path.read_text(encoding="utf-8"), filename=str(file_path))
    except (OSError, SyntaxError) as e:
        print(f"{YELLOW}Warning: Could not parse {file_path}: {e}{RESET}", file=sys.stderr)
        return []

    violations: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            names = [alias.name for alias in node.names]
        elif isinstance(node, ast.ImportFrom) and node.module is not None and node.level == 0:
            names = [node.module]
        else:
            continue

        for name in names:
            if name.split(".")[0] in FORBIDDEN_IMPORTS:
                violations.append((node.lineno, f"Transport import outside the connection module: {name}"))

    return violations


def main() -> int:
    """Main entry point for the transport isolation check.

    Returns:
        Exit code: 0 if no violations, 1 if violations found.
    """
    project_root = Path(__file__).parent.parent
    src_path = project_root / "src" / "pushgate"

    if not src_path.exists():
        print(f"{RED}Error: Could not find src/pushgate directory{RESET}", file=sys.stderr)
        return 1

    print(f"Checking transport isolation in {src_path}\n")

    all_violations: dict[Path, list[tuple[int, str]]] = {}
    for py_file in sorted(src_path.rglob("*.py")):
        if "__pycache__" in py_file.parts:
            continue
        if py_file.relative_to(src_path).as_posix() in TRANSPORT_MODULES:
            continue
        file_violations = check_file(py_file)
        if file_violations:
            all_violations[py_file] = file_violations

    if not all_violations:
        print(f"{GREEN}✓ No transport isolation violations found!{RESET}")
        return 0

    total_violations = sum(len(v) for v in all_violations.values())
    print(f"{RED}✗ Found {total_violations} transport isolation violations:{RESET}\n")

    for file_path, violations in all_violations.items():
        print(f"{RED}{file_path.relative_to(project_root)}{RESET}")
        for line_num, description in violations:
            print(f"  {line_num}: {description}")
        print()

    print("Route network access through a ConnectionProvider implementation in core/connection.py.")
    return 1


if __name__ == "__main__":
    sys.exit(main())
