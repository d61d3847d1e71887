from __future__ import annotations

import re

_FILENAME_UNSAFE_RE = re.compile(r'[<>:"/\\|?*]')


def sanitize_filename(filename: str) -> str:
    """
    Replace characters that are invalid in file names on common filesystems with ``_``.

    Length and every other character are preserved, so callers must add their
    own prefix to avoid collisions.
    """
    return _FILENAME_UNSAFE_RE.sub("_", filename)
