from __future__ import annotations

import subprocess
import sys
from pathlib import Path

from .errors import FormatError

# Import sorting first, then layout; both run over the whole output tree.
_PASSES: tuple[tuple[str, ...], ...] = (
    ("check", "--isolated", "--fix", "--select", "I", "--quiet"),
    ("format", "--isolated", "--quiet"),
)


def _ruff_cmd(*args: str) -> list[str]:
    return [sys.executable, "-m", "ruff", *args]


def format_output(output_dir: Path) -> None:
    for args in _PASSES:
        cmd = _ruff_cmd(*args, str(output_dir))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=False)
        except OSError as exc:
            raise FormatError(str(exc)) from exc
        if result.returncode != 0:
            raise FormatError((result.stdout + result.stderr).strip())
