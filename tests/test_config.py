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
Tests for configuration module.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from fulpack.config.config import Config
from fulpack.config.constants import FulpackConstants
from fulpack.data import DATA_DIR, DEFAULT_POLICY_FILE


def _without_fulpack_env() -> dict[str, str]:
    return {k: v for k, v in os.environ.items() if not k.startswith("FULPACK_")}


class TestConfigInitialization:
    """Test Config class initialization."""

    def test_config_with_defaults(self):
        """Test config initialization with default values."""
        with patch.dict("os.environ", _without_fulpack_env(), clear=True):
            config = Config()

            assert config.policy == "balanced"
            assert config.log_level == "WARNING"
            assert config.chunk_size == FulpackConstants.DEFAULT_CHUNK_SIZE
            assert config.max_size is None
            assert config.max_entries is None

    def test_config_with_custom_values(self):
        """Test config with custom values."""
        config = Config(policy="strict", log_level="DEBUG", chunk_size=4096, max_size=1000, max_entries=10)

        assert config.policy == "strict"
        assert config.log_level == "DEBUG"
        assert config.chunk_size == 4096
        assert config.max_size == 1000
        assert config.max_entries == 10

    def test_config_from_env_variables(self):
        """Test config loading from environment variables."""
        with patch.dict(
            "os.environ",
            {
                "FULPACK_POLICY": "permissive",
                "FULPACK_LOG_LEVEL": "info",
                "FULPACK_CHUNK_SIZE": "8192",
                "FULPACK_MAX_SIZE": "2048",
                "FULPACK_MAX_ENTRIES": "7",
            },
        ):
            config = Config.from_env()

            assert config.policy == "permissive"
            assert config.log_level == "INFO"
            assert config.chunk_size == 8192
            assert config.max_size == 2048
            assert config.max_entries == 7

    def test_explicit_values_beat_environment(self):
        """Explicit constructor values are not replaced by the environment."""
        with patch.dict("os.environ", {"FULPACK_POLICY": "permissive", "FULPACK_MAX_SIZE": "2048"}):
            config = Config(policy="strict", max_size=99)

            assert config.policy == "strict"
            assert config.max_size == 99


class TestConfigValidation:
    def test_non_integer_environment_value(self):
        with patch.dict("os.environ", {"FULPACK_MAX_ENTRIES": "lots"}):
            with pytest.raises(ValueError, match="FULPACK_MAX_ENTRIES"):
                Config()

    def test_chunk_size_must_be_positive(self):
        with patch.dict("os.environ", _without_fulpack_env(), clear=True):
            with pytest.raises(ValueError):
                Config(chunk_size=0)


class TestConfigFromFile:
    def test_from_dotenv_file(self, tmp_path: Path):
        env_file = tmp_path / ".env"
        env_file.write_text("FULPACK_POLICY=strict\nFULPACK_MAX_ENTRIES=12\n")

        with patch.dict("os.environ", _without_fulpack_env(), clear=True):
            config = Config.from_file(env_file)

            assert config.policy == "strict"
            assert config.max_entries == 12

    def test_missing_file_falls_back_to_environment(self, tmp_path: Path):
        with patch.dict("os.environ", _without_fulpack_env(), clear=True):
            config = Config.from_file(tmp_path / "missing.env")

            assert config.policy == "balanced"


class TestConstants:
    def test_limits(self):
        assert FulpackConstants.DEFAULT_MAX_SIZE == 1024**3
        assert FulpackConstants.DEFAULT_MAX_ENTRIES == 100_000
        assert FulpackConstants.DEFAULT_RATIO_WARNING_THRESHOLD == 100.0

    def test_data_path(self):
        assert DATA_DIR.is_dir()
        assert DEFAULT_POLICY_FILE.exists()

    def test_contract_version(self):
        assert FulpackConstants.FULPACK_VERSION == "1.0.0"
