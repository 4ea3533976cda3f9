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
fulpack - Security-hardened archive operations for tar, tar.gz, zip and gzip.
"""

from .config.constants import FulpackConstants

__version__ = FulpackConstants.VERSION
FULPACK_VERSION = FulpackConstants.FULPACK_VERSION


def __getattr__(name: str):
    """Lazy-load public API symbols on first access.

    Importing the package stays cheap (no codec or YAML imports) until an
    operation or model is actually used.
    """
    _lazy_map = {
        "Config": (".config.config", "Config"),
        "ArchivePolicy": (".core.archive_policy", "ArchivePolicy"),
        "ArchiveEngine": (".core.engine", "ArchiveEngine"),
        "create": (".core.engine", "create"),
        "extract": (".core.engine", "extract"),
        "scan": (".core.engine", "scan"),
        "verify": (".core.engine", "verify"),
        "info": (".core.engine", "info"),
        "ArchiveEntry": (".core.models", "ArchiveEntry"),
        "ArchiveFormat": (".core.models", "ArchiveFormat"),
        "ArchiveInfo": (".core.models", "ArchiveInfo"),
        "ArchiveManifest": (".core.models", "ArchiveManifest"),
        "ChecksumAlgorithm": (".core.models", "ChecksumAlgorithm"),
        "EntryType": (".core.models", "EntryType"),
        "ExtractResult": (".core.models", "ExtractResult"),
        "OverwriteBehavior": (".core.models", "OverwriteBehavior"),
        "ValidationCheck": (".core.models", "ValidationCheck"),
        "ValidationResult": (".core.models", "ValidationResult"),
        "CreateOptions": (".core.options", "CreateOptions"),
        "ExtractOptions": (".core.options", "ExtractOptions"),
        "ScanOptions": (".core.options", "ScanOptions"),
        "VerifyOptions": (".core.options", "VerifyOptions"),
        "ErrorCode": (".core.exceptions", "ErrorCode"),
        "FulpackError": (".core.exceptions", "FulpackError"),
        "FulpackOperationError": (".core.exceptions", "FulpackOperationError"),
        "CancellationToken": (".core.resource_guard", "CancellationToken"),
        "hash_bytes": (".core.checksums", "hash_bytes"),
    }
    if name in _lazy_map:
        module_path, attr = _lazy_map[name]
        import importlib

        mod = importlib.import_module(module_path, __package__)
        val = getattr(mod, attr)
        # Cache on the module so __getattr__ is only called once per symbol
        globals()[name] = val
        return val
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "ArchiveEngine",
    "create",
    "extract",
    "scan",
    "verify",
    "info",
    "ArchiveEntry",
    "ArchiveFormat",
    "ArchiveInfo",
    "ArchiveManifest",
    "ChecksumAlgorithm",
    "EntryType",
    "ExtractResult",
    "OverwriteBehavior",
    "ValidationCheck",
    "ValidationResult",
    "CreateOptions",
    "ExtractOptions",
    "ScanOptions",
    "VerifyOptions",
    "ErrorCode",
    "FulpackError",
    "FulpackOperationError",
    "CancellationToken",
    "ArchivePolicy",
    "Config",
    "FulpackConstants",
    "FULPACK_VERSION",
    "hash_bytes",
]
