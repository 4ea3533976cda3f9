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


"""Tests for entry path validation and destination containment."""

import os

import pytest

from fulpack.core.exceptions import ErrorCode
from fulpack.core.models import Operation
from fulpack.core.path_safety import (
    has_path_traversal,
    is_absolute_path,
    is_symlink_target_safe,
    normalize_entry_path,
    resolve_within,
    validate_path,
    validate_symlink,
)


class TestNormalization:
    """Entry names are reduced to one OS-neutral form before any check."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("a\\b\\c.txt", "a/b/c.txt"),
            ("./a//b/", "a/b"),
            ("dir/", "dir"),
            ("/etc/passwd", "/etc/passwd"),
            ("a/../b", "a/../b"),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_entry_path(raw) == expected


class TestTraversalDetection:
    """``..`` segments are found regardless of separator style."""

    @pytest.mark.parametrize("path", ["../../etc/passwd", "a/../../b", "a\\..\\..\\b", "./../x", ".."])
    def test_traversal_detected(self, path):
        assert has_path_traversal(path)

    @pytest.mark.parametrize("path", ["a/b", "a/..b", "..hidden/file", "a/b.."])
    def test_dotted_names_are_not_traversal(self, path):
        assert not has_path_traversal(path)


class TestAbsolutePaths:
    @pytest.mark.parametrize("path", ["/etc/passwd", "C:\\Windows\\system32", "c:/x", "\\\\server\\share"])
    def test_absolute(self, path):
        assert is_absolute_path(path)

    @pytest.mark.parametrize("path", ["a/b", "relative.txt", "dir\\file"])
    def test_relative(self, path):
        assert not is_absolute_path(path)


class TestValidatePath:
    """The validator is pure and returns an error value or ``None``."""

    def test_safe_path(self):
        assert validate_path("docs/readme.md", Operation.EXTRACT) is None

    def test_traversal_rejected(self):
        error = validate_path("../../etc/passwd", Operation.EXTRACT)
        assert error is not None
        assert error.code is ErrorCode.PATH_TRAVERSAL
        assert error.path == "../../etc/passwd"
        assert error.operation is Operation.EXTRACT

    def test_absolute_rejected_when_enforcing(self):
        error = validate_path("/etc/passwd", Operation.EXTRACT)
        assert error.code is ErrorCode.ABSOLUTE_PATH

    def test_absolute_allowed_when_inspecting(self):
        assert validate_path("/etc/passwd", Operation.VERIFY, allow_absolute=True) is None

    def test_traversal_still_reported_when_inspecting(self):
        error = validate_path("/../etc/passwd", Operation.SCAN, allow_absolute=True)
        assert error.code is ErrorCode.PATH_TRAVERSAL

    @pytest.mark.parametrize("path", ["", "a\x00b"])
    def test_invalid_path(self, path):
        assert validate_path(path, Operation.EXTRACT).code is ErrorCode.INVALID_PATH

    def test_deterministic(self):
        first = validate_path("a/../../b", Operation.EXTRACT)
        second = validate_path("a/../../b", Operation.EXTRACT)
        assert first == second


class TestSymlinkTargets:
    @pytest.mark.parametrize(
        "entry,target",
        [("a/link", "b.txt"), ("a/link", "../b.txt"), ("link", "sub/file"), ("a/b/link", "../../c")],
    )
    def test_safe_targets(self, entry, target):
        assert is_symlink_target_safe(entry, target)

    @pytest.mark.parametrize(
        "entry,target",
        [("a/link", "../../b"), ("link", "/etc/passwd"), ("link", ""), ("link", ".."), ("link", "C:\\x")],
    )
    def test_escaping_targets(self, entry, target):
        assert not is_symlink_target_safe(entry, target)

    def test_validate_symlink_reports_escape(self):
        error = validate_symlink("link", "../outside", Operation.VERIFY)
        assert error.code is ErrorCode.SYMLINK_ESCAPE
        assert error.details["target"] == "../outside"

    def test_missing_target_is_escape(self):
        assert validate_symlink("link", None, Operation.VERIFY).code is ErrorCode.SYMLINK_ESCAPE

    def test_hardlink_targets_resolve_from_archive_root(self):
        # "deep/../outside.txt" would stay inside; from the root it escapes
        assert is_symlink_target_safe("deep/h", "../outside.txt")
        assert not is_symlink_target_safe("deep/h", "../outside.txt", hardlink=True)
        assert is_symlink_target_safe("deep/h", "deep/file.txt", hardlink=True)

    def test_validate_hardlink_escape(self):
        error = validate_symlink("deep/h", "../outside.txt", Operation.VERIFY, hardlink=True)
        assert error.code is ErrorCode.SYMLINK_ESCAPE


class TestResolveWithin:
    def test_nested_path(self, tmp_path):
        assert resolve_within(tmp_path, "a/b.txt") == tmp_path.resolve() / "a" / "b.txt"

    def test_escape_returns_none(self, tmp_path):
        assert resolve_within(tmp_path / "dest", "../x") is None

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_existing_symlink_cannot_redirect(self, tmp_path):
        dest = tmp_path / "dest"
        outside = tmp_path / "outside"
        dest.mkdir()
        outside.mkdir()
        (dest / "evil").symlink_to(outside, target_is_directory=True)

        assert resolve_within(dest, "evil/payload.txt") is None
