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
Per-call option sets for archive operations.

Options are frozen. Fields left as ``None`` are unset and are filled by
:meth:`resolve` from a fully populated defaults object (normally taken from
the active :class:`~fulpack.core.archive_policy.ArchivePolicy`), so the
precedence is always explicit option first, default second.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, TypeVar

from ..config.constants import FulpackConstants
from .exceptions import ErrorCode, FulpackOperationError, make_error
from .models import ChecksumAlgorithm, EntryType, Operation, OverwriteBehavior

# Sentinel accepted for ``checksum_algorithm`` to turn embedding off
NO_CHECKSUM = "none"

_T = TypeVar("_T", bound="_Options")


def _invalid(operation: Operation, message: str, **details: Any) -> FulpackOperationError:
    return FulpackOperationError(make_error(ErrorCode.INVALID_OPTIONS, message, operation, **details))


def _as_tuple(value: Any) -> tuple | None:
    if value is None:
        return None
    if isinstance(value, str):
        return (value,)
    return tuple(value)


def _check_positive(operation: Operation, name: str, value: int | None) -> None:
    if value is not None and (not isinstance(value, int) or isinstance(value, bool) or value <= 0):
        raise _invalid(operation, f"{name} must be a positive integer, got {value!r}", option=name)


@dataclass(frozen=True)
class _Options:
    """Shared merge behaviour for option sets."""

    def resolve(self: _T, defaults: _T) -> _T:
        """Return *defaults* overridden by every field explicitly set here."""
        explicit = {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}
        return replace(defaults, **explicit)

    @classmethod
    def from_dict(cls: type[_T], data: dict[str, Any] | None) -> _T:
        """Build options from a mapping (e.g. a policy section), ignoring unknown keys."""
        data = data or {}
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, tuple):
                value = [v.value if hasattr(v, "value") else v for v in value]
            elif hasattr(value, "value"):
                value = value.value
            out[f.name] = value
        return out

    def _set(self, name: str, value: Any) -> None:
        object.__setattr__(self, name, value)


@dataclass(frozen=True)
class CreateOptions(_Options):
    """Options for archive creation."""

    compression_level: int | None = None
    checksum_algorithm: ChecksumAlgorithm | str | None = None
    preserve_permissions: bool | None = None
    follow_symlinks: bool | None = None
    include_patterns: tuple[str, ...] | None = None
    exclude_patterns: tuple[str, ...] | None = None

    def __post_init__(self):
        op = Operation.CREATE
        level = self.compression_level
        if level is not None and (
            not isinstance(level, int)
            or isinstance(level, bool)
            or not FulpackConstants.MIN_COMPRESSION_LEVEL <= level <= FulpackConstants.MAX_COMPRESSION_LEVEL
        ):
            raise _invalid(op, f"compression_level must be between 1 and 9, got {level!r}", option="compression_level")
        algo = self.checksum_algorithm
        if algo is not None and algo != NO_CHECKSUM:
            try:
                self._set("checksum_algorithm", ChecksumAlgorithm(algo))
            except ValueError:
                raise _invalid(op, f"Unsupported checksum algorithm: {algo!r}", option="checksum_algorithm") from None
        self._set("include_patterns", _as_tuple(self.include_patterns))
        self._set("exclude_patterns", _as_tuple(self.exclude_patterns))

    @property
    def checksum(self) -> ChecksumAlgorithm | None:
        """Algorithm to embed, or ``None`` when embedding is disabled."""
        if self.checksum_algorithm in (None, NO_CHECKSUM):
            return None
        return ChecksumAlgorithm(self.checksum_algorithm)

    @classmethod
    def defaults(cls) -> CreateOptions:
        return cls(
            compression_level=FulpackConstants.DEFAULT_COMPRESSION_LEVEL,
            checksum_algorithm=FulpackConstants.DEFAULT_CHECKSUM_ALGORITHM,
            preserve_permissions=True,
            follow_symlinks=False,
            include_patterns=(),
            exclude_patterns=(),
        )


@dataclass(frozen=True)
class ExtractOptions(_Options):
    """Options for archive extraction."""

    overwrite: OverwriteBehavior | str | None = None
    verify_checksums: bool | None = None
    preserve_permissions: bool | None = None
    max_size: int | None = None
    max_entries: int | None = None
    include_patterns: tuple[str, ...] | None = None

    def __post_init__(self):
        op = Operation.EXTRACT
        if self.overwrite is not None:
            try:
                self._set("overwrite", OverwriteBehavior(self.overwrite))
            except ValueError:
                raise _invalid(op, f"Unsupported overwrite behavior: {self.overwrite!r}", option="overwrite") from None
        _check_positive(op, "max_size", self.max_size)
        _check_positive(op, "max_entries", self.max_entries)
        self._set("include_patterns", _as_tuple(self.include_patterns))

    @classmethod
    def defaults(cls) -> ExtractOptions:
        return cls(
            overwrite=OverwriteBehavior.ERROR,
            verify_checksums=True,
            preserve_permissions=True,
            max_size=FulpackConstants.DEFAULT_MAX_SIZE,
            max_entries=FulpackConstants.DEFAULT_MAX_ENTRIES,
            include_patterns=(),
        )


@dataclass(frozen=True)
class ScanOptions(_Options):
    """Options for archive scanning."""

    include_metadata: bool | None = None
    entry_types: tuple[EntryType, ...] | None = None
    max_depth: int | None = None
    max_entries: int | None = None

    def __post_init__(self):
        op = Operation.SCAN
        types = _as_tuple(self.entry_types)
        if types is not None:
            try:
                types = tuple(EntryType(t) for t in types)
            except ValueError:
                raise _invalid(op, f"Unsupported entry type in {self.entry_types!r}", option="entry_types") from None
        self._set("entry_types", types)
        _check_positive(op, "max_depth", self.max_depth)
        _check_positive(op, "max_entries", self.max_entries)

    @classmethod
    def defaults(cls) -> ScanOptions:
        return cls(
            include_metadata=True,
            entry_types=(),
            max_depth=None,
            max_entries=FulpackConstants.DEFAULT_MAX_ENTRIES,
        )


@dataclass(frozen=True)
class VerifyOptions(_Options):
    """Options for archive verification."""

    verify_checksums: bool | None = None
    max_size: int | None = None
    max_entries: int | None = None
    ratio_warning_threshold: float | None = None

    def __post_init__(self):
        op = Operation.VERIFY
        _check_positive(op, "max_size", self.max_size)
        _check_positive(op, "max_entries", self.max_entries)
        threshold = self.ratio_warning_threshold
        if threshold is not None and (isinstance(threshold, bool) or not isinstance(threshold, (int, float)) or threshold <= 0):
            raise _invalid(op, f"ratio_warning_threshold must be positive, got {threshold!r}")

    @classmethod
    def defaults(cls) -> VerifyOptions:
        return cls(
            verify_checksums=True,
            max_size=FulpackConstants.DEFAULT_MAX_SIZE,
            max_entries=FulpackConstants.DEFAULT_MAX_ENTRIES,
            ratio_warning_threshold=FulpackConstants.DEFAULT_RATIO_WARNING_THRESHOLD,
        )
