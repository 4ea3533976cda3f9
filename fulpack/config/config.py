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
Configuration class for fulpack.

Process-level settings resolved from the environment. Per-operation option
defaults live in :class:`fulpack.core.archive_policy.ArchivePolicy`.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import dotenv_values

from .constants import FulpackConstants


def _env_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}") from None


@dataclass
class Config:
    """
    Configuration for the archive engine.

    Fields left at their defaults are filled from ``FULPACK_*`` environment
    variables in ``__post_init__``.
    """

    # Policy preset name (strict, balanced, permissive) or path to a YAML file
    policy: str | None = None

    # Logging
    log_level: str | None = None

    # Streaming
    chunk_size: int = FulpackConstants.DEFAULT_CHUNK_SIZE

    # Ceiling overrides applied on top of the policy (None = use policy)
    max_size: int | None = None
    max_entries: int | None = None

    def __post_init__(self):
        """Load configuration from environment variables if not provided."""

        if self.policy is None:
            self.policy = os.getenv("FULPACK_POLICY", "balanced")

        if self.log_level is None:
            self.log_level = os.getenv("FULPACK_LOG_LEVEL", "WARNING").upper()

        # Chunk size from environment (only if still at default)
        if self.chunk_size == FulpackConstants.DEFAULT_CHUNK_SIZE:
            if env_chunk := _env_int("FULPACK_CHUNK_SIZE"):
                self.chunk_size = env_chunk

        if self.max_size is None:
            self.max_size = _env_int("FULPACK_MAX_SIZE")

        if self.max_entries is None:
            self.max_entries = _env_int("FULPACK_MAX_ENTRIES")

        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")

    @classmethod
    def from_env(cls) -> "Config":
        """
        Create configuration from environment variables.

        Returns:
            Config instance with values from environment
        """
        return cls()

    @classmethod
    def from_file(cls, config_file: Path) -> "Config":
        """
        Load configuration from a .env file.

        Values from the file are exported into ``os.environ`` before the
        environment is read, so the file takes effect exactly like exported
        variables would.

        Args:
            config_file: Path to .env file

        Returns:
            Config instance
        """
        if config_file.exists():
            for key, value in dotenv_values(config_file).items():
                if value is not None:
                    os.environ[key] = value

        return cls.from_env()
