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
Resource guard: decompression-bomb defense for streaming reads.

A :class:`ResourceGuard` is owned by exactly one operation call. It counts
entries and decompressed bytes as they stream past and stops the call the
moment either ceiling is crossed. :class:`GuardedReader` is the transform
stage inserted between a codec's entry stream and its consumer, so bytes are
accounted chunk by chunk instead of after an entry is fully written.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Iterator
from typing import BinaryIO

from ..config.constants import FulpackConstants
from .checksums import Hasher
from .exceptions import ErrorCode, FulpackError, FulpackOperationError, make_error
from .models import Operation, compression_ratio

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation flag shared between a caller and a running operation."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise ``asyncio.CancelledError`` once :meth:`cancel` has been called."""
        if self._event.is_set():
            raise asyncio.CancelledError("archive operation cancelled")


class ResourceGuard:
    """Tracks entry count and cumulative bytes against configured ceilings."""

    def __init__(
        self,
        operation: Operation,
        *,
        max_size: int | None = FulpackConstants.DEFAULT_MAX_SIZE,
        max_entries: int | None = FulpackConstants.DEFAULT_MAX_ENTRIES,
        ratio_warning_threshold: float = FulpackConstants.DEFAULT_RATIO_WARNING_THRESHOLD,
        archive: str | None = None,
    ):
        self.operation = operation
        self.max_size = max_size
        self.max_entries = max_entries
        self.ratio_warning_threshold = ratio_warning_threshold
        self.archive = archive
        self._entry_count = 0
        self._total_bytes = 0

    @property
    def entry_count(self) -> int:
        return self._entry_count

    @property
    def total_bytes(self) -> int:
        return self._total_bytes

    def observe(self, entry_count: int, cumulative_bytes: int) -> FulpackError | None:
        """Check counters against the ceilings without changing state."""
        if self.max_entries is not None and entry_count > self.max_entries:
            return make_error(
                ErrorCode.DECOMPRESSION_BOMB,
                f"Entry count exceeds maximum ({self.max_entries})",
                self.operation,
                archive=self.archive,
                entry_count=entry_count,
                max_entries=self.max_entries,
            )
        if self.max_size is not None and cumulative_bytes > self.max_size:
            return make_error(
                ErrorCode.DECOMPRESSION_BOMB,
                f"Total extracted size exceeds maximum ({self.max_size} bytes)",
                self.operation,
                archive=self.archive,
                actual_size=cumulative_bytes,
                max_size=self.max_size,
            )
        return None

    def begin_entry(self, path: str | None = None, declared_size: int | None = None) -> None:
        """Count one more entry; reject it up front if its declared size cannot fit."""
        self._entry_count += 1
        projected = self._total_bytes + (declared_size or 0)
        error = self.observe(self._entry_count, projected)
        if error is not None:
            self._raise(error, path)
        logger.debug("Entry %d admitted: %s (declared %s bytes)", self._entry_count, path, declared_size)

    def account(self, nbytes: int, path: str | None = None) -> None:
        """Add *nbytes* streamed bytes; raise once the size ceiling is crossed."""
        self._total_bytes += nbytes
        error = self.observe(self._entry_count, self._total_bytes)
        if error is not None:
            self._raise(error, path)

    def ratio_warning(self, total_size: int, compressed_size: int) -> str | None:
        """Return a warning message when the archive-level ratio looks suspicious.

        High ratios are reported, never enforced: sparse or repetitive data
        routinely compresses beyond the threshold.
        """
        ratio = compression_ratio(total_size, compressed_size)
        if ratio > self.ratio_warning_threshold:
            return (
                f"Suspicious compression ratio {ratio:.1f}:1 "
                f"(threshold {self.ratio_warning_threshold:.0f}:1)"
            )
        return None

    def _raise(self, error: FulpackError, path: str | None) -> None:
        if path is not None:
            error = error.with_context(path=path)
        logger.warning("Resource ceiling hit during %s: %s", self.operation.value, error.message)
        raise FulpackOperationError(error)


class GuardedReader:
    """Reads an entry stream in chunks, feeding every chunk through the guard.

    Optionally hashes the bytes as they pass so checksums can be verified
    without a second read.
    """

    def __init__(
        self,
        stream: BinaryIO,
        guard: ResourceGuard,
        *,
        path: str | None = None,
        chunk_size: int = FulpackConstants.DEFAULT_CHUNK_SIZE,
        token: CancellationToken | None = None,
        hasher: Hasher | None = None,
    ):
        self._stream = stream
        self._guard = guard
        self._path = path
        self._chunk_size = chunk_size
        self._token = token
        self._hasher = hasher
        self.bytes_read = 0

    def read(self, size: int = -1) -> bytes:
        if self._token is not None:
            self._token.raise_if_cancelled()
        chunk = self._stream.read(self._chunk_size if size is None or size < 0 else size)
        if chunk:
            self.bytes_read += len(chunk)
            self._guard.account(len(chunk), self._path)
            if self._hasher is not None:
                self._hasher.update(chunk)
        return chunk

    def __iter__(self) -> Iterator[bytes]:
        while True:
            chunk = self.read(self._chunk_size)
            if not chunk:
                return
            yield chunk
