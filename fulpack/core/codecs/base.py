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
Base class for format codec adapters.

Each adapter turns a list of :class:`~fulpack.core.source_walker.SourceEntry`
into an archive byte stream, and turns an archive byte stream back into a
sequence of :class:`RawEntry` headers whose content can be streamed without
buffering a whole member in memory.
"""

from __future__ import annotations

import gzip
import tarfile
import zipfile
import zlib
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import BinaryIO

from ...config.constants import FulpackConstants
from ..exceptions import ErrorCode, FulpackOperationError, make_error
from ..models import ArchiveFormat, ArchiveInfo, ChecksumAlgorithm, EntryType, Operation, compression_ratio
from ..options import CreateOptions
from ..resource_guard import CancellationToken
from ..source_walker import SourceEntry

# Library errors that mean the archive bytes themselves are malformed
CORRUPTION_ERRORS: tuple[type[BaseException], ...] = (
    tarfile.TarError,
    zipfile.BadZipFile,
    gzip.BadGzipFile,
    zlib.error,
    EOFError,
)


def corruption_error(exc: BaseException, operation: Operation, archive: str | None = None) -> FulpackOperationError:
    """Wrap a low-level decode failure as ``ARCHIVE_CORRUPT``."""
    return FulpackOperationError(
        make_error(
            ErrorCode.ARCHIVE_CORRUPT,
            f"Archive is corrupt or truncated: {exc}",
            operation,
            archive=archive,
            cause=type(exc).__name__,
        )
    )


@dataclass
class EncodeContext:
    """Per-call state handed to an encoder."""

    token: CancellationToken | None = None
    chunk_size: int = FulpackConstants.DEFAULT_CHUNK_SIZE

    def check(self) -> None:
        if self.token is not None:
            self.token.raise_if_cancelled()


@dataclass
class RawEntry:
    """Header fields of one decoded member plus a way to stream its content.

    ``type`` is ``None`` for members this engine does not model (devices,
    FIFOs); ``size`` is ``None`` when the container does not record it.
    The content stream is only valid until the decoder advances.
    """

    name: str
    type: EntryType | None
    size: int | None
    kind: str
    compressed_size: int | None = None
    mtime: float | None = None
    mode: int | None = None
    checksum: str | None = None
    link_target: str | None = None
    _opener: Callable[[], BinaryIO] | None = field(default=None, repr=False)

    def open(self) -> BinaryIO:
        """Open the member's content for sequential reading."""
        if self._opener is None:
            raise ValueError(f"Entry {self.name!r} has no readable content")
        return self._opener()


class ContentReader:
    """Read-only stream that reports decode failures as ``ARCHIVE_CORRUPT``."""

    def __init__(self, stream: BinaryIO, operation: Operation, archive: str | None = None):
        self._stream = stream
        self._operation = operation
        self._archive = archive

    def read(self, size: int = -1) -> bytes:
        try:
            return self._stream.read(size)
        except CORRUPTION_ERRORS as e:
            raise corruption_error(e, self._operation, self._archive) from e

    def close(self) -> None:
        self._stream.close()

    def __enter__(self) -> ContentReader:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class CancellableReader:
    """Source-file reader that stops between chunks once cancellation is requested."""

    def __init__(self, stream: BinaryIO, ctx: EncodeContext):
        self._stream = stream
        self._ctx = ctx

    def read(self, size: int = -1) -> bytes:
        self._ctx.check()
        return self._stream.read(size)


class ArchiveCodec(ABC):
    """Uniform encode/decode contract over one container format."""

    format: ArchiveFormat
    suffixes: tuple[str, ...] = ()

    @abstractmethod
    def create(
        self,
        entries: Sequence[SourceEntry],
        writer: BinaryIO,
        options: CreateOptions,
        ctx: EncodeContext,
    ) -> ArchiveInfo:
        """Write *entries* to *writer* and describe the result."""

    @abstractmethod
    def decode_stream(self, reader: BinaryIO, *, name_hint: str = "") -> Iterator[RawEntry]:
        """Yield members of the archive read from *reader*, in stored order."""

    def _build_info(
        self,
        entries: Sequence[SourceEntry],
        compressed_size: int,
        checksum: ChecksumAlgorithm | None,
    ) -> ArchiveInfo:
        total = sum(e.size for e in entries if e.type is EntryType.FILE)
        has_files = any(e.type is EntryType.FILE for e in entries)
        return ArchiveInfo(
            format=self.format,
            compression=self.format.compression,
            entry_count=len(entries),
            total_size=total,
            compressed_size=compressed_size,
            compression_ratio=compression_ratio(total, compressed_size),
            has_checksums=checksum is not None and has_files,
            checksum_algorithm=checksum if has_files else None,
        )
