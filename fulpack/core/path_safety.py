# Copyright 2026 Cisco Systems, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0


"""
Path safety checks for archive entry names.

Pure functions with no I/O: every check runs on the normalized, OS-neutral
form of a name so that backslash separators, doubled slashes and ``.``
segments cannot hide a traversal.
"""

from __future__ import annotations

import posixpath
import re
from pathlib import Path

from .exceptions import ErrorCode, FulpackError, make_error
from .models import Operation

_DRIVE_RE = re.compile(r"^[A-Za-z]:")


def normalize_entry_path(raw: str) -> str:
    """Normalize an entry name to forward slashes without empty or ``.`` segments.

    ``..`` segments and a leading ``/`` are kept so they can still be
    detected; a trailing separator (ZIP directory convention) is dropped.
    """
    path = raw.replace("\\", "/")
    rooted = path.startswith("/")
    parts = [part for part in path.split("/") if part not in ("", ".")]
    normalized = "/".join(parts)
    return "/" + normalized if rooted else normalized


def is_absolute_path(path: str) -> bool:
    """True for POSIX roots, UNC/backslash roots and Windows drive prefixes."""
    candidate = path.replace("\\", "/")
    return candidate.startswith("/") or bool(_DRIVE_RE.match(candidate))


def has_path_traversal(path: str) -> bool:
    """True when any segment of the normalized path is ``..``."""
    return ".." in normalize_entry_path(path).split("/")


def validate_path(path: str, operation: Operation, allow_absolute: bool = False) -> FulpackError | None:
    """Classify *path* as safe (``None``) or return the reason it is not.

    ``allow_absolute`` is set by inspection operations that list absolute
    names instead of rejecting them; traversal is always reported.
    """
    if not path or "\x00" in path:
        return make_error(ErrorCode.INVALID_PATH, f"Invalid entry path: {path!r}", operation, path=path)

    if not allow_absolute and is_absolute_path(path):
        return make_error(ErrorCode.ABSOLUTE_PATH, f"Absolute path not allowed: {path}", operation, path=path)

    if has_path_traversal(path):
        return make_error(ErrorCode.PATH_TRAVERSAL, f"Path traversal detected: {path}", operation, path=path)

    return None


def is_symlink_target_safe(entry_path: str, target: str, hardlink: bool = False) -> bool:
    """True when *target* stays inside the archive root.

    Symlink targets resolve from the link's own directory; hardlink targets
    name another member and so resolve from the archive root.
    """
    if not target or is_absolute_path(target):
        return False
    base = "" if hardlink else posixpath.dirname(normalize_entry_path(entry_path).lstrip("/"))
    resolved = posixpath.normpath(posixpath.join(base, normalize_entry_path(target)))
    return resolved != ".." and not resolved.startswith("../")


def validate_symlink(
    entry_path: str, target: str | None, operation: Operation, hardlink: bool = False
) -> FulpackError | None:
    """Return a ``SYMLINK_ESCAPE`` error when a link would point outside the archive."""
    if target is not None and is_symlink_target_safe(entry_path, target, hardlink):
        return None
    return make_error(
        ErrorCode.SYMLINK_ESCAPE,
        f"Link target escapes archive root: {entry_path} -> {target}",
        operation,
        path=entry_path,
        target=target,
    )


def resolve_within(destination: Path, entry_path: str) -> Path | None:
    """Join *entry_path* onto *destination*; ``None`` if the result leaves it.

    Resolution follows symlinks already present under *destination*, so a
    pre-existing link cannot redirect a write elsewhere.
    """
    root = destination.resolve()
    candidate = (root / normalize_entry_path(entry_path)).resolve()
    if candidate == root or root in candidate.parents:
        return candidate
    return None
