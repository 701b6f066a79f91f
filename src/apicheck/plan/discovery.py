"""Discovery of check-definition files by directory convention."""
from __future__ import annotations

from pathlib import Path
from typing import List

CHECKS_DIRNAME = "__apicheck__"


def find_definition_files(base: str | Path = ".") -> List[Path]:
    """Return every ``*.py`` file directly inside a ``__apicheck__`` directory below ``base``."""

    root = Path(base).expanduser().resolve()
    files: List[Path] = []
    for checks_dir in sorted(root.rglob(CHECKS_DIRNAME)):
        if not checks_dir.is_dir():
            continue
        files.extend(
            path for path in sorted(checks_dir.glob("*.py")) if path.is_file() and not path.name.startswith("_")
        )
    return files
