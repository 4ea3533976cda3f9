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
Single-member gzip reader.

Decompresses exactly one gzip member and then reports end of stream, so
bytes appended after the first complete member (padding, garbage, a second
member) are ignored instead of failing the decode.
"""

from __future__ import annotations

import io
import logging
import struct
import zlib
from dataclasses import dataclass
from typing import BinaryIO

from ...config.constants import FulpackConstants

logger = logging.getLogger(__name__)

_GZIP_MAGIC = b"\x1f\x8b"
_FTEXT, _FHCRC, _FEXTRA, _FNAME, _FCOMMENT = 1, 2, 4, 8, 16


@dataclass(frozen=True)
class GzipHeader:
    """Metadata fields of a gzip member header (RFC 1952)."""

    mtime: int
    filename: str | None


def parse_gzip_header(data: bytes) -> GzipHeader | None:
    """Parse the fixed header and optional FNAME; ``None`` if *data* is not a full header."""
    if len(data) < 10 or data[:2] != _GZIP_MAGIC:
        return None
    flags = data[3]
    (mtime,) = struct.unpack("<I", data[4:8])
    pos = 10
    if flags & _FEXTRA:
        if len(data) < pos + 2:
            return None
        (xlen,) = struct.unpack("<H", data[pos : pos + 2])
        pos += 2 + xlen
    filename = None
    if flags & _FNAME:
        end = data.find(b"\x00", pos)
        if end < 0:
            return None
        filename = data[pos:end].decode("latin-1")
    return GzipHeader(mtime=mtime, filename=filename)


class GzipMemberReader(io.RawIOBase):
    """Raw stream over the decompressed bytes of the first gzip member in *fileobj*."""

    def __init__(self, fileobj: BinaryIO, chunk_size: int = FulpackConstants.DEFAULT_CHUNK_SIZE):
        self._fp = fileobj
        self._chunk_size = chunk_size
        self._decompressor = zlib.decompressobj(wbits=16 + zlib.MAX_WBITS)
        self._pending = b""
        self._started = False
        self._finished = False
        self.header: GzipHeader | None = None

    def readable(self) -> bool:
        return True

    def read_header(self) -> GzipHeader | None:
        """Load the first input chunk (if not yet read) and return the parsed header."""
        if not self._started:
            self._pending = self._fill()
        return self.header

    def _fill(self) -> bytes:
        chunk = self._fp.read(self._chunk_size)
        if not self._started:
            self._started = True
            if chunk[:2] != _GZIP_MAGIC:
                raise zlib.error("Not a gzipped file (bad magic number)")
            self.header = parse_gzip_header(chunk)
        return chunk

    def readinto(self, buffer) -> int:
        if self._finished or len(buffer) == 0:
            return 0
        view = memoryview(buffer).cast("B")
        while True:
            if not self._pending:
                self._pending = self._fill()
                if not self._pending:
                    raise EOFError("Compressed file ended before the end-of-stream marker was reached")
            data = self._decompressor.decompress(self._pending, len(view))
            self._pending = self._decompressor.unconsumed_tail
            if self._decompressor.eof:
                self._finished = True
                trailing = len(self._decompressor.unused_data)
                if trailing:
                    logger.debug("Ignoring %d byte(s) after the first gzip member", trailing)
            if data:
                view[: len(data)] = data
                return len(data)
            if self._finished:
                return 0


def open_gzip_member(fileobj: BinaryIO, chunk_size: int = FulpackConstants.DEFAULT_CHUNK_SIZE) -> io.BufferedReader:
    """Buffered reader over the first gzip member of *fileobj*."""
    return io.BufferedReader(GzipMemberReader(fileobj, chunk_size), buffer_size=chunk_size)
