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
TAR and TAR+GZIP codec adapters.

Archives are written as PAX tar streams in a single pass. Embedded checksums
travel in a per-member PAX header. The gzip variant pipes the same tar stream
through a gzip encoder on the way out and through a single-member gzip
reader on the way in.
"""

from __future__ import annotations

import contextlib
import gzip
import logging
import tarfile
from collections.abc import Iterator, Sequence
from typing import BinaryIO

from ...config.constants import FulpackConstants
from ..checksums import format_checksum, hash_file
from ..models import ArchiveFormat, ArchiveInfo, EntryType
from ..options import CreateOptions
from ..source_walker import SourceEntry
from .base import ArchiveCodec, CancellableReader, EncodeContext, RawEntry
from .gzip_stream import open_gzip_member

logger = logging.getLogger(__name__)


def _member_type(member: tarfile.TarInfo) -> tuple[EntryType | None, str]:
    if member.isreg():
        return EntryType.FILE, "file"
    if member.isdir():
        return EntryType.DIRECTORY, "directory"
    if member.issym():
        return EntryType.SYMLINK, "symlink"
    if member.islnk():
        return EntryType.SYMLINK, "hardlink"
    if member.ischr() or member.isblk():
        return None, "device"
    if member.isfifo():
        return None, "fifo"
    return None, "unknown"


class TarCodec(ArchiveCodec):
    """Uncompressed POSIX tar."""

    format = ArchiveFormat.TAR
    suffixes = (".tar",)

    def create(
        self,
        entries: Sequence[SourceEntry],
        writer: BinaryIO,
        options: CreateOptions,
        ctx: EncodeContext,
    ) -> ArchiveInfo:
        checksum = options.checksum
        start = writer.tell()
        with self._compressor(writer, options) as stream:
            with tarfile.open(fileobj=stream, mode="w|", format=tarfile.PAX_FORMAT) as tf:
                for entry in entries:
                    ctx.check()
                    info = self._tarinfo(entry, options)
                    if entry.type is EntryType.DIRECTORY:
                        tf.addfile(info)
                        continue
                    if checksum is not None:
                        digest = hash_file(entry.path, checksum, ctx.chunk_size)
                        info.pax_headers = {FulpackConstants.TAR_CHECKSUM_PAX_KEY: format_checksum(checksum, digest)}
                    with open(entry.path, "rb") as src:
                        tf.addfile(info, CancellableReader(src, ctx))
                    logger.debug("Added %s (%d bytes)", entry.arcname, entry.size)
        return self._build_info(entries, writer.tell() - start, checksum)

    def decode_stream(self, reader: BinaryIO, *, name_hint: str = "") -> Iterator[RawEntry]:
        with tarfile.open(fileobj=self._decompressor(reader), mode="r|") as tf:
            for member in tf:
                entry_type, kind = _member_type(member)
                opener = None
                if entry_type is EntryType.FILE:
                    opener = self._content_opener(tf, member)
                yield RawEntry(
                    name=member.name,
                    type=entry_type,
                    size=member.size if entry_type is EntryType.FILE else 0,
                    kind=kind,
                    mtime=float(member.mtime) if member.mtime else None,
                    mode=member.mode,
                    checksum=member.pax_headers.get(FulpackConstants.TAR_CHECKSUM_PAX_KEY),
                    link_target=member.linkname if entry_type is EntryType.SYMLINK else None,
                    _opener=opener,
                )

    @staticmethod
    def _content_opener(tf: tarfile.TarFile, member: tarfile.TarInfo):
        def _open() -> BinaryIO:
            stream = tf.extractfile(member)
            if stream is None:
                raise tarfile.ReadError(f"No data for member {member.name!r}")
            return stream

        return _open

    @staticmethod
    def _tarinfo(entry: SourceEntry, options: CreateOptions) -> tarfile.TarInfo:
        info = tarfile.TarInfo(entry.arcname)
        info.mtime = int(entry.mtime)
        info.uid = info.gid = 0
        info.uname = info.gname = ""
        if entry.type is EntryType.DIRECTORY:
            info.type = tarfile.DIRTYPE
            info.mode = entry.mode if options.preserve_permissions else FulpackConstants.DEFAULT_DIR_MODE
        else:
            info.type = tarfile.REGTYPE
            info.size = entry.size
            info.mode = entry.mode if options.preserve_permissions else FulpackConstants.DEFAULT_FILE_MODE
        return info

    @contextlib.contextmanager
    def _compressor(self, writer: BinaryIO, options: CreateOptions) -> Iterator[BinaryIO]:
        yield writer

    def _decompressor(self, reader: BinaryIO) -> BinaryIO:
        return reader


class TarGzCodec(TarCodec):
    """POSIX tar piped through gzip."""

    format = ArchiveFormat.TAR_GZ
    suffixes = (".tar.gz", ".tgz")

    @contextlib.contextmanager
    def _compressor(self, writer: BinaryIO, options: CreateOptions) -> Iterator[BinaryIO]:
        level = options.compression_level or FulpackConstants.DEFAULT_COMPRESSION_LEVEL
        with gzip.GzipFile(filename="", fileobj=writer, mode="wb", compresslevel=level) as gz:
            yield gz

    def _decompressor(self, reader: BinaryIO) -> BinaryIO:
        return open_gzip_member(reader)
