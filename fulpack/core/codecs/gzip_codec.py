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
Single-file GZIP codec adapter.

A gzip stream carries exactly one file. The member name is the FNAME header
field when present, otherwise the archive file name without its ``.gz``
suffix. The header records the source mtime but not the decompressed size,
so consumers count bytes.
"""

from __future__ import annotations

import gzip
import logging
import os
from collections.abc import Iterator, Sequence
from typing import BinaryIO

from ...config.constants import FulpackConstants
from ..exceptions import ErrorCode, operation_error
from ..models import ArchiveFormat, ArchiveInfo, EntryType, Operation
from ..options import CreateOptions
from ..source_walker import SourceEntry
from .base import ArchiveCodec, CancellableReader, EncodeContext, RawEntry
from .gzip_stream import open_gzip_member

logger = logging.getLogger(__name__)


def member_name(archive_name: str) -> str:
    """Name of the single member of a gzip archive called *archive_name*."""
    base = os.path.basename(archive_name)
    if base.lower().endswith(".gz") and len(base) > 3:
        return base[:-3]
    return base or "data"


class GzipCodec(ArchiveCodec):
    """One file compressed with gzip."""

    format = ArchiveFormat.GZIP
    suffixes = (".gz",)

    def create(
        self,
        entries: Sequence[SourceEntry],
        writer: BinaryIO,
        options: CreateOptions,
        ctx: EncodeContext,
    ) -> ArchiveInfo:
        if len(entries) != 1 or entries[0].type is not EntryType.FILE:
            raise operation_error(
                ErrorCode.INVALID_OPTIONS,
                "GZIP format requires exactly one source file",
                Operation.CREATE,
                entry_count=len(entries),
            )
        entry = entries[0]
        level = options.compression_level or FulpackConstants.DEFAULT_COMPRESSION_LEVEL
        start = writer.tell()
        with open(entry.path, "rb") as src:
            with gzip.GzipFile(
                filename=entry.arcname, fileobj=writer, mode="wb", compresslevel=level, mtime=int(entry.mtime)
            ) as gz:
                reader = CancellableReader(src, ctx)
                while True:
                    chunk = reader.read(ctx.chunk_size)
                    if not chunk:
                        break
                    gz.write(chunk)
        logger.debug("Compressed %s (%d bytes)", entry.arcname, entry.size)
        # No member-level slot to carry a checksum
        return self._build_info(entries, writer.tell() - start, None)

    def decode_stream(self, reader: BinaryIO, *, name_hint: str = "") -> Iterator[RawEntry]:
        stream = open_gzip_member(reader)
        header = stream.raw.read_header()
        mtime = header.mtime if header is not None else 0
        name = header.filename if header is not None and header.filename else member_name(name_hint)
        yield RawEntry(
            name=name,
            type=EntryType.FILE,
            size=None,
            kind="file",
            mtime=float(mtime) if mtime else None,
            _opener=lambda: stream,
        )
