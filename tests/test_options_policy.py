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


"""Tests for per-call option sets and the YAML archive policy."""

import pytest
import yaml

from fulpack.config.constants import FulpackConstants
from fulpack.core.archive_policy import ArchivePolicy
from fulpack.core.exceptions import ErrorCode, FulpackOperationError
from fulpack.core.models import ChecksumAlgorithm, EntryType, OverwriteBehavior
from fulpack.core.options import NO_CHECKSUM, CreateOptions, ExtractOptions, ScanOptions, VerifyOptions


class TestOptionResolution:
    """Explicit option > default, via a pure ``resolve``."""

    def test_explicit_wins(self):
        defaults = ExtractOptions.defaults()
        resolved = ExtractOptions(overwrite="skip", max_size=10).resolve(defaults)
        assert resolved.overwrite is OverwriteBehavior.SKIP
        assert resolved.max_size == 10
        assert resolved.max_entries == FulpackConstants.DEFAULT_MAX_ENTRIES
        assert resolved.verify_checksums is True

    def test_resolve_does_not_mutate(self):
        defaults = CreateOptions.defaults()
        explicit = CreateOptions(compression_level=9)
        resolved = explicit.resolve(defaults)
        assert resolved is not defaults
        assert defaults.compression_level == FulpackConstants.DEFAULT_COMPRESSION_LEVEL
        assert explicit.checksum_algorithm is None

    def test_false_is_explicit(self):
        resolved = CreateOptions(preserve_permissions=False).resolve(CreateOptions.defaults())
        assert resolved.preserve_permissions is False

    def test_builtin_defaults(self):
        create = CreateOptions.defaults()
        assert create.checksum is ChecksumAlgorithm.SHA256
        assert create.preserve_permissions is True
        assert create.follow_symlinks is False
        extract = ExtractOptions.defaults()
        assert extract.overwrite is OverwriteBehavior.ERROR
        assert extract.max_size == 1024**3
        assert extract.max_entries == 100_000
        assert ScanOptions.defaults().include_metadata is True


class TestOptionValidation:
    @pytest.mark.parametrize("level", [0, 10, -1, "6", True])
    def test_compression_level_range(self, level):
        with pytest.raises(FulpackOperationError) as exc_info:
            CreateOptions(compression_level=level)
        assert exc_info.value.code is ErrorCode.INVALID_OPTIONS

    def test_unknown_checksum_algorithm(self):
        with pytest.raises(FulpackOperationError) as exc_info:
            CreateOptions(checksum_algorithm="crc32")
        assert exc_info.value.code is ErrorCode.INVALID_OPTIONS

    def test_checksum_can_be_disabled(self):
        assert CreateOptions(checksum_algorithm=NO_CHECKSUM).checksum is None

    def test_unknown_overwrite(self):
        with pytest.raises(FulpackOperationError):
            ExtractOptions(overwrite="merge")

    @pytest.mark.parametrize("value", [0, -5])
    def test_ceilings_must_be_positive(self, value):
        with pytest.raises(FulpackOperationError):
            ExtractOptions(max_size=value)
        with pytest.raises(FulpackOperationError):
            VerifyOptions(max_entries=value)

    def test_entry_types_coerced(self):
        options = ScanOptions(entry_types=["file", "symlink"])
        assert options.entry_types == (EntryType.FILE, EntryType.SYMLINK)

    def test_unknown_entry_type(self):
        with pytest.raises(FulpackOperationError):
            ScanOptions(entry_types=["socket"])

    def test_patterns_coerced_to_tuple(self):
        options = CreateOptions(include_patterns="*.txt", exclude_patterns=["*.log", "tmp"])
        assert options.include_patterns == ("*.txt",)
        assert options.exclude_patterns == ("*.log", "tmp")

    def test_from_dict_ignores_unknown_keys(self):
        options = ExtractOptions.from_dict({"overwrite": "skip", "colour": "blue"})
        assert options.overwrite is OverwriteBehavior.SKIP


class TestPresets:
    def test_preset_names(self):
        assert ArchivePolicy.preset_names() == ["balanced", "permissive", "strict"]

    def test_default_is_balanced(self):
        policy = ArchivePolicy.default()
        assert policy.policy_name == "balanced"
        assert policy.extract.max_size == FulpackConstants.DEFAULT_MAX_SIZE
        assert policy.verify.ratio_warning_threshold == 100.0

    def test_strict_tightens_limits(self):
        policy = ArchivePolicy.from_preset("strict")
        assert policy.extract.max_size == 256 * 1024**2
        assert policy.scan.max_entries == 10_000
        assert policy.create.preserve_permissions is False
        assert policy.verify.ratio_warning_threshold == 50.0

    def test_permissive_overwrites(self):
        policy = ArchivePolicy.from_preset("PERMISSIVE")
        assert policy.extract.overwrite is OverwriteBehavior.OVERWRITE

    def test_unknown_preset(self):
        with pytest.raises(ValueError):
            ArchivePolicy.from_preset("paranoid")


class TestPolicyYaml:
    def test_partial_file_merges_over_defaults(self, tmp_path):
        path = tmp_path / "org.yaml"
        path.write_text(yaml.safe_dump({"policy_name": "org", "extract": {"max_entries": 42}}))

        policy = ArchivePolicy.from_yaml(path)
        assert policy.policy_name == "org"
        assert policy.extract.max_entries == 42
        assert policy.extract.max_size == FulpackConstants.DEFAULT_MAX_SIZE
        assert policy.create.compression_level == 6

    def test_limits_feed_verify_threshold(self, tmp_path):
        path = tmp_path / "org.yaml"
        path.write_text(yaml.safe_dump({"limits": {"ratio_warning_threshold": 20}}))
        assert ArchivePolicy.from_yaml(path).verify.ratio_warning_threshold == 20.0

    def test_invalid_value_in_file(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.safe_dump({"create": {"compression_level": 12}}))
        with pytest.raises(FulpackOperationError):
            ArchivePolicy.from_yaml(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ArchivePolicy.from_yaml(tmp_path / "nope.yaml")

    def test_round_trip(self, tmp_path):
        path = tmp_path / "dump.yaml"
        original = ArchivePolicy.from_preset("strict")
        original.to_yaml(path)
        reloaded = ArchivePolicy.from_yaml(path)
        assert reloaded == original

    def test_load_resolves_presets_and_paths(self, tmp_path):
        assert ArchivePolicy.load(None).policy_name == "balanced"
        assert ArchivePolicy.load("strict").policy_name == "strict"
        path = tmp_path / "p.yaml"
        path.write_text("policy_name: custom\n")
        assert ArchivePolicy.load(path).policy_name == "custom"

    def test_with_ceilings(self):
        policy = ArchivePolicy.default().with_ceilings(max_size=100, max_entries=5)
        assert policy.extract.max_size == 100
        assert policy.verify.max_size == 100
        assert policy.scan.max_entries == 5
        assert ArchivePolicy.default().with_ceilings() == ArchivePolicy.default()
