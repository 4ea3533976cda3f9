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


"""fulpack errors.

Every failure in the archive engine is described by a single shape,
:class:`FulpackError`: a stable ``code``, a message, the operation that
produced it and optional entry/archive context. Per-entry failures are
collected as values inside result objects; failures that end a call are
raised as :class:`FulpackOperationError`, which wraps the same value.

Example:
    >>> import asyncio
    >>> from fulpack import extract
    >>> from fulpack.core.exceptions import ErrorCode, FulpackOperationError
    >>>
    >>> try:
    ...     result = asyncio.run(extract("missing.tar.gz", "out/"))
    ... except FulpackOperationError as e:
    ...     assert e.code is ErrorCode.ARCHIVE_NOT_FOUND
"""

from __future__ import annotations

import errno
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .models import Operation


class ErrorCode(str, Enum):
    """Canonical error codes for archive operations."""

    # Validation errors
    INVALID_ARCHIVE_FORMAT = "INVALID_ARCHIVE_FORMAT"
    INVALID_PATH = "INVALID_PATH"
    INVALID_OPTIONS = "INVALID_OPTIONS"

    # Security errors
    PATH_TRAVERSAL = "PATH_TRAVERSAL"
    ABSOLUTE_PATH = "ABSOLUTE_PATH"
    SYMLINK_ESCAPE = "SYMLINK_ESCAPE"
    DECOMPRESSION_BOMB = "DECOMPRESSION_BOMB"
    CHECKSUM_MISMATCH = "CHECKSUM_MISMATCH"

    # Runtime errors
    ARCHIVE_NOT_FOUND = "ARCHIVE_NOT_FOUND"
    ARCHIVE_CORRUPT = "ARCHIVE_CORRUPT"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    DISK_FULL = "DISK_FULL"
    SOURCE_NOT_FOUND = "SOURCE_NOT_FOUND"


@dataclass(frozen=True)
class FulpackError:
    """Canonical error envelope for archive operations."""

    code: ErrorCode
    message: str
    operation: Operation
    path: str | None = None
    archive: str | None = None
    source: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def with_context(self, **changes: Any) -> FulpackError:
        """Return a copy with additional context fields filled in."""
        values = {
            "code": self.code,
            "message": self.message,
            "operation": self.operation,
            "path": self.path,
            "archive": self.archive,
            "source": self.source,
            "details": dict(self.details),
        }
        values.update(changes)
        return FulpackError(**values)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary, omitting unset context."""
        data: dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
            "operation": self.operation.value,
        }
        if self.path:
            data["path"] = self.path
        if self.archive:
            data["archive"] = self.archive
        if self.source:
            data["source"] = self.source
        if self.details:
            data["details"] = {k: _jsonable(v) for k, v in self.details.items()}
        return data

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"


def _jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return str(value)


class FulpackOperationError(Exception):
    """Raised when an archive operation cannot complete.

    This indicates:
    - A failed precondition (missing archive or source, unknown format, bad options)
    - A fatal condition during enumeration (entry ceiling, corrupt archive)
    - An I/O failure while writing a new archive
    """

    def __init__(self, error: FulpackError):
        super().__init__(str(error))
        self.error = error

    @property
    def code(self) -> ErrorCode:
        return self.error.code

    @property
    def operation(self) -> Operation:
        return self.error.operation

    @property
    def path(self) -> str | None:
        return self.error.path

    @property
    def archive(self) -> str | None:
        return self.error.archive

    @property
    def details(self) -> dict[str, Any]:
        return self.error.details

    def to_dict(self) -> dict[str, Any]:
        return self.error.to_dict()


def make_error(
    code: ErrorCode,
    message: str,
    operation: Operation,
    *,
    path: str | None = None,
    archive: str | None = None,
    source: str | None = None,
    **details: Any,
) -> FulpackError:
    """Build a :class:`FulpackError`; keyword extras land in ``details``."""
    return FulpackError(
        code=code,
        message=message,
        operation=operation,
        path=path,
        archive=archive,
        source=source,
        details=details,
    )


def operation_error(code: ErrorCode, message: str, operation: Operation, **context: Any) -> FulpackOperationError:
    """Shorthand for ``FulpackOperationError(make_error(...))``."""
    return FulpackOperationError(make_error(code, message, operation, **context))


_ERRNO_CODES = {
    errno.EACCES: ErrorCode.PERMISSION_DENIED,
    errno.EPERM: ErrorCode.PERMISSION_DENIED,
    errno.EROFS: ErrorCode.PERMISSION_DENIED,
    errno.ENOSPC: ErrorCode.DISK_FULL,
}
if hasattr(errno, "EDQUOT"):
    _ERRNO_CODES[errno.EDQUOT] = ErrorCode.DISK_FULL


def wrap_os_error(
    exc: OSError,
    operation: Operation,
    *,
    default: ErrorCode = ErrorCode.EXTRACTION_FAILED,
    path: str | None = None,
    archive: str | None = None,
    source: str | None = None,
) -> FulpackError:
    """Translate an ``OSError`` into the canonical error shape."""
    code = _ERRNO_CODES.get(exc.errno or -1, default)
    reason = exc.strerror or str(exc)
    return make_error(
        code,
        f"{operation.value} failed: {reason}",
        operation,
        path=path,
        archive=archive,
        source=source,
        errno=exc.errno,
        filename=exc.filename,
    )
