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
Constants for fulpack.

Built-in ceilings and defaults used when neither the caller, the environment
nor the active archive policy supplies a value.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    PACKAGE_VERSION = version("fulpack")
except PackageNotFoundError:  # pragma: no cover
    PACKAGE_VERSION = "0.0.0-dev"


class FulpackConstants:
    """Constants used throughout the archive engine."""

    # Version derived from the installed distribution metadata.
    VERSION = PACKAGE_VERSION

    # Version of the archive operation contract (entry/info/result shapes)
    FULPACK_VERSION = "1.0.0"

    # Resource ceilings
    DEFAULT_MAX_SIZE = 1024 * 1024 * 1024  # 1 GiB
    DEFAULT_MAX_ENTRIES = 100_000
    DEFAULT_RATIO_WARNING_THRESHOLD = 100.0

    # Creation defaults
    DEFAULT_COMPRESSION_LEVEL = 6
    MIN_COMPRESSION_LEVEL = 1
    MAX_COMPRESSION_LEVEL = 9
    DEFAULT_CHECKSUM_ALGORITHM = "sha256"

    # Streaming
    DEFAULT_CHUNK_SIZE = 64 * 1024
    MAX_SYMLINK_TARGET_BYTES = 4096

    # Permission bits applied when permissions are not preserved
    DEFAULT_FILE_MODE = 0o644
    DEFAULT_DIR_MODE = 0o755

    # Embedded checksum markers
    TAR_CHECKSUM_PAX_KEY = "FULPACK.checksum"
