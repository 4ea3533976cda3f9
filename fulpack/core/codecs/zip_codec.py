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
ZIP codec adapter.

Members are deflated individually. Embedded checksums are stored in each
member's comment field, which lives in the central directory.
"""

from __future__ import annotations

import logging
import stat
import zipfile
from collections.abc import Iterator, Sequence
from datetime import datetime
from typing import BinaryIO

from ...config.constants import FulpackConstants
from ..checksums import format_checksum, hash_file
from ..exceptions import ErrorCode, operation_error
from ..models import ArchiveFormat, ArchiveInfo, EntryType, Operation
from ..options import CreateOptions
from ..source_walker import SourceEntry
from .base import ArchiveCodec, EncodeContext, RawEntry

logger = logging.getLogger(__name__)

# create_system value for archives written on Unix hosts
_UNIX_SYSTEM = 3


def _unix_mode(info: zipfile.ZipInfo) -> int:
    return (info.external_attr >> 16) & 0xFFFF


def _is_zip_symlink(info: zipfile.ZipInfo) -> bool:
    """Check whether a ZIP entry encodes a symbolic link.

    ZIP archives store Unix file-mode bits in the upper 16 bits of
    ``external_attr``.  A symlink is indicated by the ``S_IFLNK`` flag.
    """
    unix_mode = _unix_mode(info)
    return unix_mode != 0 and stat.S_ISLNK(unix_mode)


def _zip_mtime(info: zipfile.ZipInfo) -> float | None:
    try:
        return datetime(*info.date_time).timestamp()
    except (ValueError, OverflowError):
        return None


class ZipCodec(ArchiveCodec):
    """PKZIP archives with DEFLATE members."""

    format = ArchiveFormat.ZIP
    suffixes = (".zip",)

    def create(
        self,
        entries: Sequence[SourceEntry],
        writer: BinaryIO,
        options: CreateOptions,
        ctx: EncodeContext,
    ) -> ArchiveInfo:
        checksum = options.checksum
        level = options.compression_level or FulpackConstants.DEFAULT_COMPRESSION_LEVEL
        start = writer.tell()
        with zipfile.ZipFile(
            writer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=level, strict_timestamps=False
        ) as zf:
            for entry in entries:
                ctx.check()
                digest = None
                if entry.type is EntryType.FILE and checksum is not None:
                    digest = hash_file(entry.path, checksum, ctx.chunk_size)

                try:
                    zf.write(entry.path, entry.arcname)
                except UnicodeEncodeError:
                    # ZIP member names are UTF-8; undecodable file names cannot be stored
                    raise operation_error(
                        ErrorCode.INVALID_PATH,
                        f"File name is not valid UTF-8: {entry.arcname!r}",
                        Operation.CREATE,
                        path=entry.arcname,
                    ) from None
                # Central directory fields can still be changed after the data is written
                info = zf.infolist()[-1]
                if digest is not None:
                    info.comment = format_checksum(checksum, digest).encode("ascii")
                if not options.preserve_permissions:
                    if entry.type is EntryType.DIRECTORY:
                        info.external_attr = ((stat.S_IFDIR | FulpackConstants.DEFAULT_DIR_MODE) << 16) | 0x10
                    else:
                        info.external_attr = (stat.S_IFREG | FulpackConstants.DEFAULT_FILE_MODE) << 16
                logger.debug("Added %s (%d bytes)", entry.arcname, entry.size)
        return self._build_info(entries, writer.tell() - start, checksum)

    def decode_stream(self, reader: BinaryIO, *, name_hint: str = "") -> Iterator[RawEntry]:
        with zipfile.ZipFile(reader, "r") as zf:
            for info in zf.infolist():
                yield self._raw_entry(zf, info)

    @staticmethod
    def _raw_entry(zf: zipfile.ZipFile, info: zipfile.ZipInfo) -> RawEntry:
        unix_mode = _unix_mode(info) if info.create_system == _UNIX_SYSTEM else 0
        mode = stat.S_IMODE(unix_mode) if unix_mode else None
        comment = info.comment.decode("ascii", errors="replace") if info.comment else None

        if _is_zip_symlink(info):
            with zf.open(info) as link:
                target = link.read(FulpackConstants.MAX_SYMLINK_TARGET_BYTES).decode("utf-8", errors="replace")
            return RawEntry(
                name=info.filename,
                type=EntryType.SYMLINK,
                size=0,
                kind="symlink",
                compressed_size=info.compress_size,
                mtime=_zip_mtime(info),
                mode=mode,
                link_target=target,
            )

        if info.is_dir():
            return RawEntry(
                name=info.filename,
                type=EntryType.DIRECTORY,
                size=0,
                kind="directory",
                compressed_size=0,
                mtime=_zip_mtime(info),
                mode=mode,
            )

        return RawEntry(
            name=info.filename,
            type=EntryType.FILE,
            size=info.file_size,
            kind="file",
            compressed_size=info.compress_size,
            mtime=_zip_mtime(info),
            mode=mode,
            checksum=comment,
            _opener=lambda: zf.open(info),
        )
