"""Atomic in-place file replacement.

Responsibilities:
- Stage replacement content in a temporary file next to the destination.
- Rename it over the destination only after the content is fully written.
- Remove the temporary file on every failure path.
"""

from __future__ import annotations

from contextlib import contextmanager
import os
from pathlib import Path
import shutil
import tempfile
from typing import IO, Iterator


class KeepOriginal(Exception):
    """Raised inside `atomic_replace` to drop the staged content silently."""


@contextmanager
def atomic_replace(
    destination: Path,
    *,
    binary: bool = False,
    encoding: str | None = "utf-8",
    newline: str | None = None,
) -> Iterator[IO]:
    """Yield a writable handle whose content replaces `destination` on success.

    The temporary file lives in the destination directory so the final
    `os.replace` stays on one filesystem. If the body raises, the destination
    is left byte-for-byte untouched and the temporary file is deleted. Raising
    `KeepOriginal` does the same without propagating. A symlinked destination
    is followed, so the link keeps pointing at the rewritten file.

    Args:
        destination: File to replace.
        binary: Open the temporary file in binary mode.
        encoding: Text encoding (ignored in binary mode).
        newline: Newline translation passed to `open` (ignored in binary mode).
    """

    destination = Path(destination).resolve()
    fd, temp_name = tempfile.mkstemp(
        prefix=f".{destination.name}.",
        suffix=".tmp",
        dir=destination.parent,
    )
    temp_path = Path(temp_name)
    try:
        if binary:
            handle = os.fdopen(fd, "wb")
        else:
            handle = os.fdopen(fd, "w", encoding=encoding, newline=newline)
    except BaseException:
        os.close(fd)
        temp_path.unlink(missing_ok=True)
        raise

    try:
        with handle:
            yield handle
            handle.flush()
            os.fsync(handle.fileno())
        if destination.exists():
            shutil.copymode(destination, temp_path)
        os.replace(temp_path, destination)
    except KeepOriginal:
        temp_path.unlink(missing_ok=True)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise
