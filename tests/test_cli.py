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
Tests for the fulpack command-line interface.
"""

import json

import pytest
import yaml

from fulpack.cli.cli import main

pytestmark = pytest.mark.usefixtures("clean_env")


@pytest.fixture
def sample_archive(make_tree, tmp_path, capsys):
    src = make_tree({"a.txt": "hello world", "sub/b.txt": "hello"})
    archive = tmp_path / "sample.tar.gz"
    assert main(["create", str(src), "-o", str(archive)]) == 0
    capsys.readouterr()
    return archive


class TestCreateAndInfo:
    def test_create_summary(self, make_tree, tmp_path, capsys):
        src = make_tree({"a.txt": "abc"})
        archive = tmp_path / "out.zip"

        assert main(["create", str(src), "-o", str(archive)]) == 0

        out = capsys.readouterr().out
        assert "Created:" in out
        assert "Format: zip" in out
        assert archive.is_file()

    def test_create_explicit_format_json(self, make_tree, tmp_path, capsys):
        src = make_tree({"notes.txt": "abc"})
        archive = tmp_path / "notes.bin"

        code = main(["create", str(src / "notes.txt"), "-o", str(archive), "--archive-format", "gzip", "--format", "json"])

        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["format"] == "gzip"
        assert data["entry_count"] == 1

    def test_create_unknown_extension(self, make_tree, tmp_path, capsys):
        assert main(["create", str(make_tree({"a": "a"})), "-o", str(tmp_path / "out.rar")]) == 1
        assert "INVALID_ARCHIVE_FORMAT" in capsys.readouterr().err

    def test_info_json(self, sample_archive, capsys):
        assert main(["info", str(sample_archive), "--format", "json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["format"] == "tar.gz"
        assert data["entry_count"] == 3
        assert data["total_size"] == 16
        assert data["has_checksums"] is True

    def test_info_missing_archive_json(self, tmp_path, capsys):
        assert main(["info", str(tmp_path / "missing.zip"), "--format", "json"]) == 1
        data = json.loads(capsys.readouterr().out)
        assert data["error"]["code"] == "ARCHIVE_NOT_FOUND"


class TestScanVerifyExtract:
    def test_scan_json(self, sample_archive, capsys):
        assert main(["scan", str(sample_archive), "--format", "json", "--type", "file"]) == 0
        entries = json.loads(capsys.readouterr().out)
        assert [e["path"] for e in entries] == ["a.txt", "sub/b.txt"]
        assert all("safety_issue" not in e for e in entries)

    def test_scan_flags_unsafe_entries(self, make_tar, capsys):
        archive = make_tar([("../escape.txt", b"x")])
        assert main(["scan", str(archive), "--format", "json"]) == 0
        entries = json.loads(capsys.readouterr().out)
        assert entries[0]["safety_issue"] == "PATH_TRAVERSAL"

    def test_verify_valid(self, sample_archive, capsys):
        assert main(["verify", str(sample_archive)]) == 0
        out = capsys.readouterr().out
        assert "[OK] VALID" in out
        assert "Checksums Verified: 2" in out

    def test_verify_invalid(self, make_tar, capsys):
        archive = make_tar([("../escape.txt", b"x")])
        assert main(["verify", str(archive), "--format", "json"]) == 1
        data = json.loads(capsys.readouterr().out)
        assert data["valid"] is False
        assert data["errors"][0]["code"] == "PATH_TRAVERSAL"

    def test_extract(self, sample_archive, tmp_path, capsys):
        dest = tmp_path / "dest"
        assert main(["extract", str(sample_archive), str(dest)]) == 0
        assert "[OK] EXTRACTED" in capsys.readouterr().out
        assert (dest / "sub" / "b.txt").read_text() == "hello"

    def test_extract_existing_file_fails(self, sample_archive, tmp_path, capsys):
        dest = tmp_path / "dest"
        dest.mkdir()
        (dest / "a.txt").write_text("old")

        assert main(["extract", str(sample_archive), str(dest)]) == 1
        assert main(["extract", str(sample_archive), str(dest), "--overwrite", "skip"]) == 0
        assert (dest / "a.txt").read_text() == "old"

    def test_extract_size_ceiling(self, sample_archive, tmp_path, capsys):
        code = main(["extract", str(sample_archive), str(tmp_path / "dest"), "--max-size", "5", "--format", "json"])
        assert code == 1
        data = json.loads(capsys.readouterr().out)
        assert data["aborted"] is True
        assert data["errors"][0]["code"] == "DECOMPRESSION_BOMB"

    def test_unknown_policy(self, sample_archive, capsys):
        assert main(["info", str(sample_archive), "--policy", "no-such-policy.yaml"]) == 1
        assert "Policy file not found" in capsys.readouterr().err


class TestGeneratePolicy:
    def test_writes_preset(self, tmp_path, capsys):
        output = tmp_path / "policy.yaml"
        assert main(["generate-policy", "-o", str(output), "--preset", "strict"]) == 0
        data = yaml.safe_load(output.read_text())
        assert data["policy_name"] == "strict"
        assert "Available presets" in capsys.readouterr().out

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()
