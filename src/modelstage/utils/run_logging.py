"""
Run logging utilities for build steps.

Provides JSON writing, file hashing, and logged subprocess execution so that
every build leaves a reproducible record of what it ran and produced.
"""

import hashlib
import json
import os
import subprocess
from pathlib import Path
from typing import Any


def write_json(path: Path, obj: Any) -> None:
    """Write a Python object to a JSON file with indent.

    Args:
        path: Output file path.
        obj: Serializable object.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2)


def compute_file_hash(path: Path, algorithm: str = "sha256") -> str:
    """Compute a content hash of a file.

    Args:
        path: Path to the file.
        algorithm: Hash algorithm (default sha256).

    Returns:
        Hex digest of the file contents.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Cannot hash: {path} does not exist")
    h = hashlib.new(algorithm)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()


def describe_file(path: Path) -> dict[str, Any]:
    """Return {"path", "sha256", "size_bytes"} for a file, or {"path", "missing": True}."""
    path = Path(path)
    if not path.is_file():
        return {"path": str(path), "missing": True}
    return {
        "path": str(path),
        "sha256": compute_file_hash(path),
        "size_bytes": path.stat().st_size,
    }


def run_subprocess_logged(
    cmd: list[str],
    log_path: Path,
    env: dict[str, str] | None = None,
    cwd: Path | None = None,
) -> subprocess.CompletedProcess:
    """Run command, writing stdout and stderr to log_path. Return completed process."""
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with open(log_path, "w", encoding="utf-8") as log_file:
        proc = subprocess.run(
            cmd,
            stdout=log_file,
            stderr=subprocess.STDOUT,
            env={**os.environ, **(env or {})},
            cwd=cwd,
            text=True,
        )
    return proc
