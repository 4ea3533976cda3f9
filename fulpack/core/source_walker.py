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
Source tree enumeration for archive creation.

Walks the requested sources in a deterministic order (children sorted by
name, each directory ahead of its contents), applies the symlink policy and
include/exclude glob filters, and returns the entries an encoder should write.
"""

from __future__ import annotations

import logging
import os
import stat
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from .models import EntryType
from .options import CreateOptions
from .resource_guard import CancellationToken

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceEntry:
    """A filesystem object selected for archiving."""

    path: Path
    arcname: str
    type: EntryType
    size: int
    mode: int
    mtime: float

    @classmethod
    def from_stat(cls, path: Path, arcname: str, st: os.stat_result) -> SourceEntry:
        is_dir = stat.S_ISDIR(st.st_mode)
        return cls(
            path=path,
            arcname=arcname,
            type=EntryType.DIRECTORY if is_dir else EntryType.FILE,
            size=0 if is_dir else st.st_size,
            mode=stat.S_IMODE(st.st_mode),
            mtime=st.st_mtime,
        )


def matches_any(arcname: str, patterns: Sequence[str] | None) -> bool:
    """True when *arcname* matches one of the right-anchored glob *patterns*."""
    if not patterns:
        return False
    candidate = PurePosixPath(arcname)
    return any(candidate.match(pattern) for pattern in patterns)


class SourceWalker:
    """Enumerates source paths according to a resolved :class:`CreateOptions`."""

    def __init__(self, options: CreateOptions, token: CancellationToken | None = None):
        self.options = options
        self.token = token
        self.skipped_symlinks: list[str] = []

    def walk(self, sources: Sequence[Path]) -> list[SourceEntry]:
        entries: list[SourceEntry] = []
        for source in sources:
            entries.extend(self._walk_source(source))
        logger.debug("Collected %d source entries from %d source(s)", len(entries), len(sources))
        return entries

    def _walk_source(self, source: Path) -> list[SourceEntry]:
        st = self._stat(source, source.name)
        if st is None:
            return []
        if stat.S_ISDIR(st.st_mode):
            return self._walk_dir(source, "", {source.resolve()})
        if stat.S_ISREG(st.st_mode) and self._included(source.name):
            return [SourceEntry.from_stat(source, source.name, st)]
        return []

    def _walk_dir(self, directory: Path, prefix: str, visited: set[Path]) -> list[SourceEntry]:
        out: list[SourceEntry] = []
        for child in sorted(directory.iterdir(), key=lambda p: p.name):
            if self.token is not None:
                self.token.raise_if_cancelled()

            arcname = f"{prefix}/{child.name}" if prefix else child.name
            if matches_any(arcname, self.options.exclude_patterns):
                logger.debug("Excluded by pattern: %s", arcname)
                continue

            st = self._stat(child, arcname)
            if st is None:
                continue

            if stat.S_ISDIR(st.st_mode):
                real = child.resolve()
                if real in visited:
                    logger.warning("Skipping directory cycle at %s", child)
                    continue
                children = self._walk_dir(child, arcname, visited | {real})
                if children or not self.options.include_patterns:
                    out.append(SourceEntry.from_stat(child, arcname, st))
                    out.extend(children)
            elif stat.S_ISREG(st.st_mode):
                if self._included(arcname):
                    out.append(SourceEntry.from_stat(child, arcname, st))
            else:
                logger.debug("Skipping special file %s", child)
        return out

    def _stat(self, path: Path, arcname: str) -> os.stat_result | None:
        """lstat *path*, applying the symlink policy; ``None`` means skip it."""
        st = path.lstat()
        if not stat.S_ISLNK(st.st_mode):
            return st
        if not self.options.follow_symlinks:
            logger.debug("Skipping symlink %s (follow_symlinks disabled)", path)
            self.skipped_symlinks.append(arcname)
            return None
        try:
            return path.stat()
        except OSError:
            logger.warning("Skipping dangling symlink %s", path)
            self.skipped_symlinks.append(arcname)
            return None

    def _included(self, arcname: str) -> bool:
        patterns = self.options.include_patterns
        return not patterns or matches_any(arcname, patterns)
