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
Data models for archive entries, archive metadata and operation results.

All result objects are frozen values built fresh for each operation call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .exceptions import ErrorCode, FulpackError


class ArchiveFormat(str, Enum):
    """Archive formats supported by fulpack."""

    TAR = "tar"
    TAR_GZ = "tar.gz"
    ZIP = "zip"
    GZIP = "gzip"

    @property
    def compression(self) -> str:
        """Name of the compression layer applied by this format."""
        return _FORMAT_COMPRESSION[self]


_FORMAT_COMPRESSION = {
    ArchiveFormat.TAR: "none",
    ArchiveFormat.TAR_GZ: "gzip",
    ArchiveFormat.ZIP: "deflate",
    ArchiveFormat.GZIP: "gzip",
}


class EntryType(str, Enum):
    """Archive entry types."""

    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"


class Operation(str, Enum):
    """Archive operations."""

    CREATE = "create"
    EXTRACT = "extract"
    SCAN = "scan"
    VERIFY = "verify"
    INFO = "info"


class ChecksumAlgorithm(str, Enum):
    """Checksum algorithms supported for entry verification."""

    SHA256 = "sha256"
    SHA512 = "sha512"
    SHA1 = "sha1"
    MD5 = "md5"


class OverwriteBehavior(str, Enum):
    """File overwrite behaviour during extraction."""

    ERROR = "error"
    SKIP = "skip"
    OVERWRITE = "overwrite"


class ValidationCheck(str, Enum):
    """Checks that ``verify`` can report in ``checks_performed``."""

    STRUCTURE_VALID = "structure_valid"
    NO_PATH_TRAVERSAL = "no_path_traversal"
    SYMLINKS_SAFE = "symlinks_safe"
    NO_DECOMPRESSION_BOMB = "no_decompression_bomb"
    CHECKSUMS_VERIFIED = "checksums_verified"


def compression_ratio(total_size: int, compressed_size: int) -> float:
    """Return ``total_size / compressed_size``; 1.0 for empty payloads."""
    if total_size == 0 or compressed_size <= 0:
        return 1.0
    return total_size / compressed_size


@dataclass(frozen=True)
class ArchiveEntry:
    """One member of an archive as reported by ``scan``."""

    path: str  # normalized, forward slashes, no trailing separator
    type: EntryType
    size: int = 0
    compressed_size: int | None = None
    modified: str | None = None  # ISO 8601
    checksum: str | None = None  # "<algorithm>:<hex>"
    mode: str | None = None  # octal string, e.g. "0644"
    symlink_target: str | None = None
    hardlink: bool = False  # link entry whose target names another member

    @property
    def safety_issue(self) -> ErrorCode | None:
        """Why ``extract`` would refuse this entry's path (``None`` when safe).

        Informational only: ``scan`` still lists flagged entries, including
        absolute names, which are reported as ``ABSOLUTE_PATH``.
        """
        from .path_safety import validate_path

        error = validate_path(self.path, Operation.SCAN, allow_absolute=False)
        return error.code if error else None

    @property
    def depth(self) -> int:
        return len([part for part in self.path.split("/") if part])

    def to_dict(self) -> dict[str, Any]:
        """Convert entry to dictionary, omitting unset optional fields."""
        data: dict[str, Any] = {"path": self.path, "type": self.type.value, "size": self.size}
        for key in ("compressed_size", "modified", "checksum", "mode", "symlink_target"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        if self.hardlink:
            data["hardlink"] = True
        return data


@dataclass(frozen=True)
class ArchiveInfo:
    """Aggregate archive metadata."""

    format: ArchiveFormat
    compression: str
    entry_count: int
    total_size: int
    compressed_size: int
    compression_ratio: float
    has_checksums: bool = False
    checksum_algorithm: ChecksumAlgorithm | None = None
    created: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "format": self.format.value,
            "compression": self.compression,
            "entry_count": self.entry_count,
            "total_size": self.total_size,
            "compressed_size": self.compressed_size,
            "compression_ratio": self.compression_ratio,
            "has_checksums": self.has_checksums,
            "checksum_algorithm": self.checksum_algorithm.value if self.checksum_algorithm else None,
            "created": self.created,
        }


@dataclass(frozen=True)
class ExtractResult:
    """Outcome of an ``extract`` call.

    Per-entry failures are collected in ``errors``; ``aborted`` is set when a
    resource ceiling, a corrupt stream or cancellation stopped the run early.
    """

    extracted_count: int = 0
    skipped_count: int = 0
    error_count: int = 0
    errors: tuple[FulpackError, ...] = ()
    warnings: tuple[str, ...] = ()
    total_bytes: int = 0
    aborted: bool = False

    @property
    def ok(self) -> bool:
        return self.error_count == 0 and not self.aborted

    def to_dict(self) -> dict[str, Any]:
        return {
            "extracted_count": self.extracted_count,
            "skipped_count": self.skipped_count,
            "error_count": self.error_count,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": list(self.warnings),
            "total_bytes": self.total_bytes,
            "aborted": self.aborted,
        }


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a ``verify`` call."""

    valid: bool
    errors: tuple[FulpackError, ...] = ()
    warnings: tuple[str, ...] = ()
    entry_count: int = 0
    checksums_verified: int = 0
    checks_performed: tuple[ValidationCheck, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": list(self.warnings),
            "entry_count": self.entry_count,
            "checksums_verified": self.checksums_verified,
            "checks_performed": [c.value for c in self.checks_performed],
        }


@dataclass(frozen=True)
class ManifestRecord:
    """One archive tracked by an :class:`ArchiveManifest`."""

    path: str
    format: ArchiveFormat
    checksum: str
    size: int
    created: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "format": self.format.value,
            "checksum": self.checksum,
            "size": self.size,
            "created": self.created,
        }


@dataclass(frozen=True)
class ArchiveManifest:
    """Fingerprints of a set of archives."""

    version: str
    archives: tuple[ManifestRecord, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "archives": [a.to_dict() for a in self.archives],
            "metadata": dict(self.metadata),
        }
