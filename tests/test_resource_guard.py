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


"""Tests for the resource guard, streaming reader and cancellation token."""

import asyncio
import hashlib
import io

import pytest

from fulpack.core.checksums import Hasher
from fulpack.core.exceptions import ErrorCode, FulpackOperationError
from fulpack.core.models import Operation
from fulpack.core.resource_guard import CancellationToken, GuardedReader, ResourceGuard


class TestObserve:
    """``observe`` is a pure check against the configured ceilings."""

    def test_within_limits(self):
        guard = ResourceGuard(Operation.EXTRACT, max_size=100, max_entries=10)
        assert guard.observe(10, 100) is None

    def test_entry_ceiling(self):
        guard = ResourceGuard(Operation.EXTRACT, max_size=100, max_entries=10)
        error = guard.observe(11, 0)
        assert error.code is ErrorCode.DECOMPRESSION_BOMB
        assert error.details["max_entries"] == 10

    def test_size_ceiling(self):
        guard = ResourceGuard(Operation.EXTRACT, max_size=100, max_entries=10, archive="a.tar")
        error = guard.observe(1, 101)
        assert error.code is ErrorCode.DECOMPRESSION_BOMB
        assert error.details["actual_size"] == 101
        assert error.archive == "a.tar"

    def test_unbounded(self):
        guard = ResourceGuard(Operation.SCAN, max_size=None, max_entries=None)
        assert guard.observe(10**9, 10**15) is None


class TestIncrementalAccounting:
    def test_declared_size_rejected_up_front(self):
        guard = ResourceGuard(Operation.EXTRACT, max_size=100)
        with pytest.raises(FulpackOperationError) as exc_info:
            guard.begin_entry("big.bin", declared_size=2 * 1024**3)
        assert exc_info.value.code is ErrorCode.DECOMPRESSION_BOMB
        assert exc_info.value.path == "big.bin"

    def test_entry_count_tracked(self):
        guard = ResourceGuard(Operation.EXTRACT, max_entries=2)
        guard.begin_entry("a")
        guard.begin_entry("b")
        with pytest.raises(FulpackOperationError):
            guard.begin_entry("c")
        assert guard.entry_count == 3

    def test_account_crossing_ceiling(self):
        guard = ResourceGuard(Operation.EXTRACT, max_size=10)
        guard.account(10)
        with pytest.raises(FulpackOperationError):
            guard.account(1, "x")
        assert guard.total_bytes == 11


class TestRatioWarning:
    """High ratios are reported, never enforced."""

    def test_suspicious_ratio(self):
        guard = ResourceGuard(Operation.VERIFY, ratio_warning_threshold=100.0)
        message = guard.ratio_warning(1000, 5)
        assert message is not None
        assert "200.0:1" in message

    def test_ordinary_ratio(self):
        guard = ResourceGuard(Operation.VERIFY)
        assert guard.ratio_warning(300, 100) is None

    def test_empty_payload(self):
        guard = ResourceGuard(Operation.VERIFY)
        assert guard.ratio_warning(0, 0) is None


class TestGuardedReader:
    def test_aborts_mid_stream(self):
        guard = ResourceGuard(Operation.EXTRACT, max_size=4)
        reader = GuardedReader(io.BytesIO(b"x" * 10), guard, path="f", chunk_size=2)
        seen = []
        with pytest.raises(FulpackOperationError) as exc_info:
            for chunk in reader:
                seen.append(chunk)
        assert exc_info.value.code is ErrorCode.DECOMPRESSION_BOMB
        assert seen == [b"xx", b"xx"]
        assert reader.bytes_read == 6

    def test_hashes_while_streaming(self):
        data = b"hello world" * 100
        hasher = Hasher("sha256")
        guard = ResourceGuard(Operation.EXTRACT)
        reader = GuardedReader(io.BytesIO(data), guard, chunk_size=7, hasher=hasher)
        assert b"".join(reader) == data
        assert hasher.hexdigest() == hashlib.sha256(data).hexdigest()
        assert guard.total_bytes == len(data)

    def test_cancelled_token_stops_reading(self):
        token = CancellationToken()
        token.cancel()
        reader = GuardedReader(io.BytesIO(b"data"), ResourceGuard(Operation.EXTRACT), token=token)
        with pytest.raises(asyncio.CancelledError):
            reader.read()


class TestCancellationToken:
    def test_initial_state(self):
        token = CancellationToken()
        assert not token.cancelled
        token.raise_if_cancelled()

    def test_cancel(self):
        token = CancellationToken()
        token.cancel()
        assert token.cancelled
        with pytest.raises(asyncio.CancelledError):
            token.raise_if_cancelled()
