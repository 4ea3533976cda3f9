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
Pytest configuration and shared fixtures.

This file is automatically loaded by pytest before running tests.
All fixtures defined here are available to every test module without
explicit imports.
"""

from __future__ import annotations

import io
import tarfile
import zipfile
from collections.abc import Callable
from pathlib import Path

import pytest
from dotenv import load_dotenv

from fulpack.config.config import Config
from fulpack.core.archive_policy import ArchivePolicy
from fulpack.core.engine import ArchiveEngine

# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

project_root = Path(__file__).parent.parent
env_file = project_root / ".env"

if env_file.exists():
    load_dotenv(env_file)

_FULPACK_ENV = ("FULPACK_POLICY", "FULPACK_LOG_LEVEL", "FULPACK_CHUNK_SIZE", "FULPACK_MAX_SIZE", "FULPACK_MAX_ENTRIES")


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove every ``FULPACK_*`` variable so defaults are observable."""
    for name in _FULPACK_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def engine(clean_env) -> ArchiveEngine:
    """Engine on the built-in balanced policy, independent of the caller's environment."""
    return ArchiveEngine(policy=ArchivePolicy.default(), config=Config())


# ---------------------------------------------------------------------------
# Factory fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_tree(tmp_path: Path) -> Callable[..., Path]:
    """Factory: write ``{relative_path: content}`` under a fresh directory.

    A ``None`` value creates an empty directory.
    """
    counter = {"n": 0}

    def _make(files: dict[str, str | bytes | None], name: str | None = None) -> Path:
        counter["n"] += 1
        root = tmp_path / (name or f"tree{counter['n']}")
        root.mkdir(parents=True, exist_ok=True)
        for rel, content in files.items():
            target = root / rel
            if content is None:
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, str):
                content = content.encode("utf-8")
            target.write_bytes(content)
        return root

    return _make


@pytest.fixture
def make_tar(tmp_path: Path) -> Callable[..., Path]:
    """Factory: build a tar archive from raw member specs, bypassing all safety checks.

    Each member is ``(name, data)`` for a regular file, ``(name, None)`` for a
    directory, or ``(name, "symlink" | "hardlink", target)`` for a link.
    """

    def _make(members: list[tuple], name: str = "crafted.tar", mode: str = "w", pax: dict | None = None) -> Path:
        path = tmp_path / name
        with tarfile.open(path, mode, format=tarfile.PAX_FORMAT) as tf:
            for member in members:
                info = tarfile.TarInfo(member[0])
                info.mtime = 1_700_000_000
                if len(member) == 3:
                    info.type = tarfile.SYMTYPE if member[1] == "symlink" else tarfile.LNKTYPE
                    info.linkname = member[2]
                    tf.addfile(info)
                elif member[1] is None:
                    info.type = tarfile.DIRTYPE
                    info.mode = 0o755
                    tf.addfile(info)
                else:
                    data = member[1] if isinstance(member[1], bytes) else member[1].encode("utf-8")
                    info.size = len(data)
                    info.mode = 0o644
                    if pax and member[0] in pax:
                        info.pax_headers = {"FULPACK.checksum": pax[member[0]]}
                    tf.addfile(info, io.BytesIO(data))
        return path

    return _make


@pytest.fixture
def make_zip(tmp_path: Path) -> Callable[..., Path]:
    """Factory: build a zip archive from ``(name, data)`` pairs, bypassing all safety checks."""

    def _make(members: list[tuple[str, str | bytes]], name: str = "crafted.zip") -> Path:
        path = tmp_path / name
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for member_name, data in members:
                zf.writestr(member_name, data)
        return path

    return _make


@pytest.fixture
def read_tree() -> Callable[[Path], dict[str, bytes]]:
    """Map every regular file under a root to its content, keyed by POSIX relative path."""

    def _read(root: Path) -> dict[str, bytes]:
        return {p.relative_to(root).as_posix(): p.read_bytes() for p in sorted(root.rglob("*")) if p.is_file()}

    return _read
