"""Atomic output writing: temp file in the target directory, then rename."""

from __future__ import annotations

import os
from pathlib import Path


def write_atomic(path: str | Path, text: str) -> Path:
    """
    Write text to path so readers see either the old file or the new one.

    The temp file name carries the PID, so concurrent runs don't share it, and
    it is fsynced before the rename.

    Raises:
        OSError: if the target directory can't be written or path is a directory.
            The temp file is removed and any existing file is left untouched.
    """
    out_path = Path(path)
    if out_path.is_dir():
        raise IsADirectoryError(f"Output path is a directory: {out_path}")

    out_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = out_path.with_name(f"{out_path.name}.{os.getpid()}.tmp")
    try:
        with open(temp_path, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        temp_path.replace(out_path)
    except OSError:
        temp_path.unlink(missing_ok=True)
        raise
    return out_path
