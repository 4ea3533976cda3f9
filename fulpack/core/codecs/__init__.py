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
Format codec adapters.

One adapter per :class:`~fulpack.core.models.ArchiveFormat` variant, selected
once at the facade boundary either from an explicit format or from the
archive file name.
"""

from __future__ import annotations

from pathlib import Path

from ..exceptions import ErrorCode, operation_error
from ..models import ArchiveFormat, Operation
from .base import ArchiveCodec, EncodeContext, RawEntry
from .gzip_codec import GzipCodec
from .tar_codec import TarCodec, TarGzCodec
from .zip_codec import ZipCodec

__all__ = [
    "ArchiveCodec",
    "EncodeContext",
    "GzipCodec",
    "RawEntry",
    "TarCodec",
    "TarGzCodec",
    "ZipCodec",
    "detect_format",
    "get_codec",
]

_CODECS: dict[ArchiveFormat, type[ArchiveCodec]] = {
    ArchiveFormat.TAR: TarCodec,
    ArchiveFormat.TAR_GZ: TarGzCodec,
    ArchiveFormat.ZIP: ZipCodec,
    ArchiveFormat.GZIP: GzipCodec,
}

# Longest suffixes first so ".tar.gz" wins over ".gz"
_SUFFIXES: list[tuple[str, ArchiveFormat]] = sorted(
    ((suffix, fmt) for fmt, codec in _CODECS.items() for suffix in codec.suffixes),
    key=lambda item: len(item[0]),
    reverse=True,
)


def get_codec(fmt: ArchiveFormat | str, operation: Operation = Operation.CREATE) -> ArchiveCodec:
    """Return the adapter for *fmt*; unknown formats raise ``INVALID_ARCHIVE_FORMAT``."""
    try:
        fmt = ArchiveFormat(fmt)
    except ValueError:
        raise operation_error(
            ErrorCode.INVALID_ARCHIVE_FORMAT,
            f"Unsupported archive format: {fmt!r}",
            operation,
            supported=[f.value for f in ArchiveFormat],
        ) from None
    return _CODECS[fmt]()


def detect_format(path: str | Path, operation: Operation = Operation.SCAN) -> ArchiveFormat:
    """Infer the archive format from the file name suffix (case-insensitive)."""
    name = Path(path).name.lower()
    for suffix, fmt in _SUFFIXES:
        if name.endswith(suffix) and len(name) > len(suffix):
            return fmt
    raise operation_error(
        ErrorCode.INVALID_ARCHIVE_FORMAT,
        f"Cannot determine archive format from file name: {Path(path).name}",
        operation,
        archive=str(path),
        supported_suffixes=[suffix for suffix, _ in _SUFFIXES],
    )
