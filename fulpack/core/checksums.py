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
Checksum helpers used to annotate created entries and verify them later.

Embedded checksums are stored as ``"<algorithm>:<hex digest>"``.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

from ..config.constants import FulpackConstants
from .models import ChecksumAlgorithm


def hash_bytes(data: bytes, algorithm: ChecksumAlgorithm | str = ChecksumAlgorithm.SHA256) -> str:
    """Return the hex digest of *data*."""
    return hashlib.new(ChecksumAlgorithm(algorithm).value, data).hexdigest()


class Hasher:
    """Incremental digest over streamed chunks."""

    def __init__(self, algorithm: ChecksumAlgorithm | str = ChecksumAlgorithm.SHA256):
        self.algorithm = ChecksumAlgorithm(algorithm)
        self._digest = hashlib.new(self.algorithm.value)

    def update(self, chunk: bytes) -> None:
        self._digest.update(chunk)

    def hexdigest(self) -> str:
        return self._digest.hexdigest()

    def formatted(self) -> str:
        return format_checksum(self.algorithm, self.hexdigest())


def hash_file(
    path: Path,
    algorithm: ChecksumAlgorithm | str = ChecksumAlgorithm.SHA256,
    chunk_size: int = FulpackConstants.DEFAULT_CHUNK_SIZE,
) -> str:
    """Return the hex digest of the file at *path*, read in chunks."""
    hasher = Hasher(algorithm)
    with open(path, "rb") as fh:
        while chunk := fh.read(chunk_size):
            hasher.update(chunk)
    return hasher.hexdigest()


def format_checksum(algorithm: ChecksumAlgorithm | str, digest: str) -> str:
    return f"{ChecksumAlgorithm(algorithm).value}:{digest}"


def parse_checksum(value: str | bytes | None) -> tuple[ChecksumAlgorithm, str] | None:
    """Parse an embedded ``"<algorithm>:<hex>"`` value; ``None`` if absent or unrecognised."""
    if not value:
        return None
    if isinstance(value, bytes):
        try:
            value = value.decode("ascii")
        except UnicodeDecodeError:
            return None
    algorithm, sep, digest = value.strip().partition(":")
    if not sep or not digest:
        return None
    try:
        algo = ChecksumAlgorithm(algorithm.lower())
    except ValueError:
        return None
    expected_len = hashlib.new(algo.value).digest_size * 2
    digest = digest.lower()
    if len(digest) != expected_len or any(c not in "0123456789abcdef" for c in digest):
        return None
    return algo, digest
