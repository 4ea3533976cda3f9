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
Archive operations facade.

:class:`ArchiveEngine` exposes the five public operations (``create``,
``extract``, ``scan``, ``verify``, ``info``) as coroutines. Each call runs a
blocking streaming pipeline in a worker thread and owns its own
:class:`~fulpack.core.resource_guard.ResourceGuard`; a shared
:class:`~fulpack.core.resource_guard.CancellationToken` lets the caller stop
it between chunks.
"""

from __future__ import annotations

import asyncio
import contextlib
import errno
import logging
import os
import tempfile
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, BinaryIO, TypeVar

from ..config.config import Config
from ..config.constants import FulpackConstants
from .archive_policy import ArchivePolicy
from .checksums import Hasher, format_checksum, hash_file, parse_checksum
from .codecs import ArchiveCodec, EncodeContext, RawEntry, detect_format, get_codec
from .codecs.base import CORRUPTION_ERRORS, ContentReader, corruption_error
from .exceptions import ErrorCode, FulpackError, FulpackOperationError, make_error, operation_error, wrap_os_error
from .models import (
    ArchiveEntry,
    ArchiveFormat,
    ArchiveInfo,
    ArchiveManifest,
    ChecksumAlgorithm,
    EntryType,
    ExtractResult,
    ManifestRecord,
    Operation,
    OverwriteBehavior,
    ValidationCheck,
    ValidationResult,
    compression_ratio,
)
from .options import CreateOptions, ExtractOptions, ScanOptions, VerifyOptions
from .path_safety import normalize_entry_path, resolve_within, validate_path, validate_symlink
from .resource_guard import CancellationToken, GuardedReader, ResourceGuard
from .source_walker import SourceWalker, matches_any

logger = logging.getLogger(__name__)

_R = TypeVar("_R")

PathLike = str | os.PathLike


def _iso(timestamp: float | None) -> str | None:
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


def _octal(mode: int | None) -> str | None:
    return None if mode is None else f"{mode & 0o7777:04o}"


@dataclass
class _ExtractState:
    """Mutable accumulator for one extract call, frozen into an ExtractResult at the end."""

    archive: str
    extracted: int = 0
    skipped: int = 0
    total_bytes: int = 0
    aborted: bool = False
    errors: list[FulpackError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    dir_modes: list[tuple[Path, RawEntry]] = field(default_factory=list)

    def fail(self, error: FulpackError) -> None:
        if error.archive is None:
            error = error.with_context(archive=self.archive)
        logger.debug("Entry error %s: %s", error.code.value, error.message)
        self.errors.append(error)

    def skip(self, warning: str | None = None) -> None:
        self.skipped += 1
        if warning:
            logger.warning(warning)
            self.warnings.append(warning)

    def result(self) -> ExtractResult:
        return ExtractResult(
            extracted_count=self.extracted,
            skipped_count=self.skipped,
            error_count=len(self.errors),
            errors=tuple(self.errors),
            warnings=tuple(self.warnings),
            total_bytes=self.total_bytes,
            aborted=self.aborted,
        )


class ArchiveEngine:
    """Creates, extracts, scans and validates archives with hardened defaults."""

    def __init__(self, policy: ArchivePolicy | None = None, config: Config | None = None):
        """
        Initialize the engine.

        Args:
            policy: Per-operation option defaults. If None, the policy named by
                ``config.policy`` (``balanced`` unless overridden) is loaded.
            config: Environment-derived settings. If None, read from ``FULPACK_*``
                variables.
        """
        self.config = config or Config.from_env()
        base = policy or ArchivePolicy.load(self.config.policy)
        self.policy = base.with_ceilings(self.config.max_size, self.config.max_entries)
        self.chunk_size = self.config.chunk_size

    # -----------------------------------------------------------------------
    # Public coroutines
    # -----------------------------------------------------------------------

    async def create(
        self,
        source: PathLike | Sequence[PathLike],
        output: PathLike,
        format: ArchiveFormat | str,
        options: CreateOptions | None = None,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> ArchiveInfo:
        """Archive *source* (one path or several) into *output*."""
        return await self._run(self._create_sync, source, output, format, options, cancel_token=cancel_token)

    async def extract(
        self,
        archive: PathLike,
        destination: PathLike,
        options: ExtractOptions | None = None,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> ExtractResult:
        """Extract *archive* under *destination*, collecting per-entry failures."""
        return await self._run(self._extract_sync, archive, destination, options, cancel_token=cancel_token)

    async def scan(
        self,
        archive: PathLike,
        options: ScanOptions | None = None,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> list[ArchiveEntry]:
        """List the entries of *archive* without writing anything to disk."""
        return await self._run(self._scan_sync, archive, options, cancel_token=cancel_token)

    async def verify(
        self,
        archive: PathLike,
        options: VerifyOptions | None = None,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> ValidationResult:
        """Run the structural, path, link, size and checksum checks over *archive*."""
        return await self._run(self._verify_sync, archive, options, cancel_token=cancel_token)

    async def info(self, archive: PathLike, *, cancel_token: CancellationToken | None = None) -> ArchiveInfo:
        """Aggregate metadata for *archive*. Performs no security checks."""
        return await self._run(self._info_sync, archive, cancel_token=cancel_token)

    async def build_manifest(
        self,
        archives: Sequence[PathLike],
        *,
        algorithm: ChecksumAlgorithm | str = ChecksumAlgorithm.SHA256,
        metadata: dict[str, Any] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ArchiveManifest:
        """Fingerprint a set of archives (whole-file digest plus ``info``)."""
        return await self._run(self._manifest_sync, archives, algorithm, metadata, cancel_token=cancel_token)

    async def _run(self, func: Callable[..., _R], *args: Any, cancel_token: CancellationToken | None) -> _R:
        token = cancel_token or CancellationToken()
        worker = asyncio.ensure_future(asyncio.to_thread(func, *args, token))
        try:
            return await asyncio.shield(worker)
        except asyncio.CancelledError:
            if not worker.done():
                logger.warning("Cancelling %s", func.__name__.strip("_").replace("_sync", ""))
                token.cancel()
                # Let the worker reach its next checkpoint and release its handles
                with contextlib.suppress(asyncio.CancelledError, FulpackOperationError):
                    await worker
            raise

    # -----------------------------------------------------------------------
    # create
    # -----------------------------------------------------------------------

    def _create_sync(
        self,
        source: PathLike | Sequence[PathLike],
        output: PathLike,
        fmt: ArchiveFormat | str,
        options: CreateOptions | None,
        token: CancellationToken,
    ) -> ArchiveInfo:
        op = Operation.CREATE
        codec = get_codec(fmt, op)
        opts = (options or CreateOptions()).resolve(self.policy.create)
        output = Path(output)

        if isinstance(source, (str, os.PathLike)):
            sources = [Path(source)]
        else:
            sources = [Path(s) for s in source]
        if not sources:
            raise operation_error(ErrorCode.INVALID_OPTIONS, "At least one source path is required", op)
        for src in sources:
            if not os.path.lexists(src):
                raise operation_error(
                    ErrorCode.SOURCE_NOT_FOUND, f"Source not found: {src}", op, source=str(src), archive=str(output)
                )

        logger.info("Creating %s archive %s from %d source(s)", codec.format.value, output, len(sources))

        walker = SourceWalker(opts, token)
        try:
            entries = walker.walk(sources)
        except OSError as e:
            raise FulpackOperationError(self._create_os_error(e, output)) from e
        if walker.skipped_symlinks:
            logger.warning("Skipped %d symlink(s) (follow_symlinks disabled or dangling)", len(walker.skipped_symlinks))

        # An existing output file inside a source tree must not archive itself
        if output.exists():
            own = output.resolve()
            entries = [e for e in entries if e.path.resolve() != own]

        try:
            output.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FulpackOperationError(self._create_os_error(e, output)) from e

        partial = output.with_name(f".{output.name}.{os.getpid()}.part")
        ctx = EncodeContext(token=token, chunk_size=self.chunk_size)
        try:
            with open(partial, "wb") as writer:
                info = codec.create(entries, writer, opts, ctx)
            os.replace(partial, output)
        except OSError as e:
            partial.unlink(missing_ok=True)
            raise FulpackOperationError(self._create_os_error(e, output)) from e
        except BaseException:
            partial.unlink(missing_ok=True)
            raise

        st = output.stat()
        info = replace(
            info,
            compressed_size=st.st_size,
            compression_ratio=compression_ratio(info.total_size, st.st_size),
            created=_iso(st.st_mtime),
        )
        logger.info(
            "Created %s: %d entries, %d bytes -> %d bytes", output, info.entry_count, info.total_size, st.st_size
        )
        return info

    @staticmethod
    def _create_os_error(exc: OSError, output: Path) -> FulpackError:
        default = ErrorCode.SOURCE_NOT_FOUND if exc.errno == errno.ENOENT else ErrorCode.INVALID_PATH
        error = wrap_os_error(exc, Operation.CREATE, default=default, archive=str(output))
        logger.error("Create failed for %s: %s", output, error.message)
        return error

    # -----------------------------------------------------------------------
    # extract
    # -----------------------------------------------------------------------

    def _extract_sync(
        self,
        archive: PathLike,
        destination: PathLike,
        options: ExtractOptions | None,
        token: CancellationToken,
    ) -> ExtractResult:
        op = Operation.EXTRACT
        opts = (options or ExtractOptions()).resolve(self.policy.extract)
        archive = Path(archive)
        destination = Path(destination)
        codec = self._codec_for(archive, op)

        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FulpackOperationError(wrap_os_error(e, op, path=str(destination), archive=str(archive))) from e

        logger.info("Extracting %s into %s", archive, destination)
        state = _ExtractState(archive=str(archive))
        guard = ResourceGuard(op, max_size=opts.max_size, max_entries=opts.max_entries, archive=str(archive))

        try:
            with self._open_archive(archive, op) as fh:
                for raw in self._decode(codec, fh, archive, op):
                    token.raise_if_cancelled()
                    self._extract_entry(raw, destination, opts, guard, state, token)
        except FulpackOperationError as e:
            # Guard violations and corrupt streams stop the whole run
            logger.warning("Extraction of %s aborted: %s", archive, e.error.message)
            state.fail(e.error)
            state.aborted = True
        except CORRUPTION_ERRORS as e:
            error = corruption_error(e, op, str(archive)).error
            logger.warning("Extraction of %s aborted: %s", archive, error.message)
            state.fail(error)
            state.aborted = True
        except asyncio.CancelledError:
            logger.warning("Extraction of %s cancelled after %d entries", archive, state.extracted)
            state.warnings.append("Extraction cancelled; result is partial")
            state.aborted = True

        if opts.preserve_permissions:
            self._restore_directory_modes(state.dir_modes)

        result = state.result()
        logger.info(
            "Extracted %d entries (%d skipped, %d errors, %d bytes) from %s",
            result.extracted_count,
            result.skipped_count,
            result.error_count,
            result.total_bytes,
            archive,
        )
        return result

    def _extract_entry(
        self,
        raw: RawEntry,
        destination: Path,
        opts: ExtractOptions,
        guard: ResourceGuard,
        state: _ExtractState,
        token: CancellationToken,
    ) -> None:
        op = Operation.EXTRACT
        name = normalize_entry_path(raw.name)
        declared = raw.size if raw.type is EntryType.FILE else None
        guard.begin_entry(raw.name, declared)

        if not name and raw.type is EntryType.DIRECTORY:
            return  # the archive root ("./")

        if opts.include_patterns and not matches_any(name, opts.include_patterns):
            state.skip()
            return

        error = validate_path(raw.name, op, allow_absolute=False)
        if error is not None:
            logger.warning("Rejected entry %r: %s", raw.name, error.message)
            state.fail(error)
            return

        target = resolve_within(destination, name)
        if target is None:
            logger.warning("Rejected entry %r: resolves outside %s", raw.name, destination)
            state.fail(
                make_error(
                    ErrorCode.PATH_TRAVERSAL,
                    f"Entry resolves outside the destination: {raw.name}",
                    op,
                    path=raw.name,
                )
            )
            return

        if raw.type is EntryType.SYMLINK:
            state.skip(f"Skipped {raw.kind} entry {name} -> {raw.link_target}")
            return
        if raw.type is None:
            state.skip(f"Skipped unsupported {raw.kind} entry {name}")
            return

        try:
            if raw.type is EntryType.DIRECTORY:
                target.mkdir(parents=True, exist_ok=True)
                state.dir_modes.append((target, raw))
                state.extracted += 1
                return

            if target.is_dir():
                state.fail(make_error(ErrorCode.EXTRACTION_FAILED, f"A directory exists at {name}", op, path=name))
                return
            if target.exists():
                if opts.overwrite is OverwriteBehavior.SKIP:
                    state.skip(f"Skipped existing file {name}")
                    return
                if opts.overwrite is OverwriteBehavior.ERROR:
                    state.fail(
                        make_error(
                            ErrorCode.EXTRACTION_FAILED,
                            f"Output file already exists: {name}",
                            op,
                            path=name,
                            overwrite=opts.overwrite.value,
                        )
                    )
                    return

            target.parent.mkdir(parents=True, exist_ok=True)
            written, mismatch = self._write_file(raw, target, name, opts, guard, token, state.archive)
        except OSError as e:
            error = wrap_os_error(e, op, path=name, archive=state.archive)
            logger.error("Failed to extract %s: %s", name, error.message)
            state.fail(error)
            return
        except (RuntimeError, NotImplementedError) as e:
            # zipfile: encrypted members, unsupported compression methods
            state.fail(make_error(ErrorCode.EXTRACTION_FAILED, f"Cannot extract {name}: {e}", op, path=name))
            return

        if mismatch is not None:
            state.fail(mismatch)
            return
        state.extracted += 1
        state.total_bytes += written

    def _write_file(
        self,
        raw: RawEntry,
        target: Path,
        name: str,
        opts: ExtractOptions,
        guard: ResourceGuard,
        token: CancellationToken,
        archive: str,
    ) -> tuple[int, FulpackError | None]:
        """Stream one member into *target* through the guard; returns (bytes, checksum error)."""
        op = Operation.EXTRACT
        expected = parse_checksum(raw.checksum) if opts.verify_checksums else None
        hasher = Hasher(expected[0]) if expected else None

        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".part")
        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as out, self._open_content(raw, op, archive) as content:
                reader = GuardedReader(
                    content, guard, path=name, chunk_size=self.chunk_size, token=token, hasher=hasher
                )
                for chunk in reader:
                    out.write(chunk)

            if expected is not None and hasher.hexdigest() != expected[1]:
                tmp.unlink()
                logger.warning("Checksum mismatch for %s", name)
                return reader.bytes_read, make_error(
                    ErrorCode.CHECKSUM_MISMATCH,
                    f"Checksum mismatch for {name}",
                    op,
                    path=name,
                    expected=raw.checksum,
                    actual=hasher.formatted(),
                )

            os.replace(tmp, target)
        except BaseException:
            with contextlib.suppress(OSError):
                tmp.unlink(missing_ok=True)
            raise

        mode = raw.mode if opts.preserve_permissions and raw.mode is not None else FulpackConstants.DEFAULT_FILE_MODE
        os.chmod(target, mode & 0o777)
        if opts.preserve_permissions and raw.mtime:
            os.utime(target, (raw.mtime, raw.mtime))
        logger.debug("Extracted %s (%d bytes)", name, reader.bytes_read)
        return reader.bytes_read, None

    @staticmethod
    def _restore_directory_modes(dir_modes: list[tuple[Path, RawEntry]]) -> None:
        # Deepest first, so a read-only parent is applied after its children are written
        for path, raw in reversed(dir_modes):
            try:
                if raw.mode is not None:
                    os.chmod(path, raw.mode & 0o777)
                if raw.mtime:
                    os.utime(path, (raw.mtime, raw.mtime))
            except OSError as e:
                logger.debug("Could not restore metadata on %s: %s", path, e)

    # -----------------------------------------------------------------------
    # scan / info
    # -----------------------------------------------------------------------

    def _scan_sync(self, archive: PathLike, options: ScanOptions | None, token: CancellationToken) -> list[ArchiveEntry]:
        op = Operation.SCAN
        opts = (options or ScanOptions()).resolve(self.policy.scan)
        archive = Path(archive)
        codec = self._codec_for(archive, op)

        entries = self._enumerate(archive, codec, op, opts.max_entries, opts.include_metadata, token)
        if opts.entry_types:
            entries = [e for e in entries if e.type in opts.entry_types]
        if opts.max_depth is not None:
            entries = [e for e in entries if e.depth <= opts.max_depth]

        for entry in entries:
            issue = entry.safety_issue
            if issue is not None:
                logger.warning("Flagged entry %r in %s: %s", entry.path, archive, issue.value)
        logger.info("Scanned %s: %d entries", archive, len(entries))
        return entries

    def _info_sync(self, archive: PathLike, token: CancellationToken) -> ArchiveInfo:
        op = Operation.INFO
        archive = Path(archive)
        codec = self._codec_for(archive, op)
        entries = self._enumerate(archive, codec, op, self.policy.scan.max_entries, True, token)
        return self._aggregate(archive, codec.format, entries)

    @staticmethod
    def _aggregate(archive: Path, fmt: ArchiveFormat, entries: list[ArchiveEntry]) -> ArchiveInfo:
        st = archive.stat()
        total = sum(e.size for e in entries if e.type is EntryType.FILE)
        parsed = next((p for p in (parse_checksum(e.checksum) for e in entries) if p is not None), None)
        return ArchiveInfo(
            format=fmt,
            compression=fmt.compression,
            entry_count=len(entries),
            total_size=total,
            compressed_size=st.st_size,
            compression_ratio=compression_ratio(total, st.st_size),
            has_checksums=parsed is not None,
            checksum_algorithm=parsed[0] if parsed else None,
            created=_iso(st.st_mtime),
        )

    def _enumerate(
        self,
        archive: Path,
        codec: ArchiveCodec,
        op: Operation,
        max_entries: int | None,
        include_metadata: bool,
        token: CancellationToken,
    ) -> list[ArchiveEntry]:
        """Decode every member into an :class:`ArchiveEntry`, enforcing only the entry ceiling."""
        guard = ResourceGuard(op, max_size=None, max_entries=max_entries, archive=str(archive))
        # Formats without per-member timestamps report the archive's own mtime
        fallback_mtime = archive.stat().st_mtime
        entries: list[ArchiveEntry] = []
        with self._open_archive(archive, op) as fh:
            for raw in self._decode(codec, fh, archive, op):
                token.raise_if_cancelled()
                guard.begin_entry(raw.name)
                name = normalize_entry_path(raw.name)
                if raw.type is None:
                    logger.debug("Not listing %s entry %r", raw.kind, raw.name)
                    continue
                if not name and raw.type is EntryType.DIRECTORY:
                    continue

                size = 0
                if raw.type is EntryType.FILE:
                    size = raw.size if raw.size is not None else self._measure(raw, op, str(archive), token)
                if include_metadata:
                    entry = ArchiveEntry(
                        path=name,
                        type=raw.type,
                        size=size,
                        compressed_size=raw.compressed_size,
                        modified=_iso(raw.mtime or fallback_mtime),
                        checksum=raw.checksum,
                        mode=_octal(raw.mode),
                        symlink_target=raw.link_target,
                        hardlink=raw.kind == "hardlink",
                    )
                else:
                    entry = ArchiveEntry(
                        path=name,
                        type=raw.type,
                        size=size,
                        symlink_target=raw.link_target,
                        hardlink=raw.kind == "hardlink",
                    )
                entries.append(entry)
        return entries

    def _measure(self, raw: RawEntry, op: Operation, archive: str, token: CancellationToken) -> int:
        """Count the decompressed bytes of a member whose header carries no size."""
        total = 0
        with self._open_content(raw, op, archive) as content:
            while chunk := content.read(self.chunk_size):
                token.raise_if_cancelled()
                total += len(chunk)
        return total

    # -----------------------------------------------------------------------
    # verify
    # -----------------------------------------------------------------------

    def _verify_sync(self, archive: PathLike, options: VerifyOptions | None, token: CancellationToken) -> ValidationResult:
        op = Operation.VERIFY
        opts = (options or VerifyOptions()).resolve(self.policy.verify)
        archive = Path(archive)
        codec = self._codec_for(archive, op)
        checks = [ValidationCheck.STRUCTURE_VALID]

        try:
            entries = self._enumerate(archive, codec, op, opts.max_entries, True, token)
        except FulpackOperationError as e:
            if e.code is ErrorCode.DECOMPRESSION_BOMB:
                checks.append(ValidationCheck.NO_DECOMPRESSION_BOMB)
            elif e.code is not ErrorCode.ARCHIVE_CORRUPT:
                raise
            logger.warning("Verification of %s failed: %s", archive, e.error.message)
            return ValidationResult(valid=False, errors=(e.error,), checks_performed=tuple(checks))

        errors: list[FulpackError] = []
        warnings: list[str] = []

        checks.append(ValidationCheck.NO_PATH_TRAVERSAL)
        for entry in entries:
            error = validate_path(entry.path, op, allow_absolute=True)
            if error is not None:
                errors.append(error.with_context(archive=str(archive)))

        links = [e for e in entries if e.type is EntryType.SYMLINK]
        if links:
            checks.append(ValidationCheck.SYMLINKS_SAFE)
            for entry in links:
                error = validate_symlink(entry.path, entry.symlink_target, op, hardlink=entry.hardlink)
                if error is not None:
                    errors.append(error.with_context(archive=str(archive)))

        checks.append(ValidationCheck.NO_DECOMPRESSION_BOMB)
        guard = ResourceGuard(
            op,
            max_size=opts.max_size,
            max_entries=opts.max_entries,
            ratio_warning_threshold=opts.ratio_warning_threshold,
            archive=str(archive),
        )
        total = sum(e.size for e in entries if e.type is EntryType.FILE)
        error = guard.observe(len(entries), total)
        if error is not None:
            errors.append(error)
        ratio_warning = guard.ratio_warning(total, archive.stat().st_size)
        if ratio_warning:
            logger.warning("%s: %s", archive, ratio_warning)
            warnings.append(ratio_warning)

        verified = 0
        if any(e.checksum for e in entries):
            if opts.verify_checksums:
                checks.append(ValidationCheck.CHECKSUMS_VERIFIED)
                verified = self._verify_checksums(archive, codec, opts, token, errors, warnings)
        elif any(e.type is EntryType.FILE for e in entries):
            warnings.append("Archive carries no embedded checksums")

        result = ValidationResult(
            valid=not errors,
            errors=tuple(errors),
            warnings=tuple(warnings),
            entry_count=len(entries),
            checksums_verified=verified,
            checks_performed=tuple(checks),
        )
        logger.info("Verified %s: valid=%s (%d errors, %d warnings)", archive, result.valid, len(errors), len(warnings))
        return result

    def _verify_checksums(
        self,
        archive: Path,
        codec: ArchiveCodec,
        opts: VerifyOptions,
        token: CancellationToken,
        errors: list[FulpackError],
        warnings: list[str],
    ) -> int:
        """Re-hash every member carrying an embedded checksum; returns the number that matched."""
        op = Operation.VERIFY
        guard = ResourceGuard(op, max_size=opts.max_size, max_entries=opts.max_entries, archive=str(archive))
        verified = 0
        try:
            with self._open_archive(archive, op) as fh:
                for raw in self._decode(codec, fh, archive, op):
                    token.raise_if_cancelled()
                    guard.begin_entry(raw.name, raw.size if raw.type is EntryType.FILE else None)
                    if raw.type is not EntryType.FILE or not raw.checksum:
                        continue
                    name = normalize_entry_path(raw.name)
                    expected = parse_checksum(raw.checksum)
                    if expected is None:
                        warnings.append(f"Unrecognised checksum on {name}: {raw.checksum}")
                        continue
                    hasher = Hasher(expected[0])
                    with self._open_content(raw, op, str(archive)) as content:
                        for _ in GuardedReader(
                            content, guard, path=name, chunk_size=self.chunk_size, token=token, hasher=hasher
                        ):
                            pass
                    if hasher.hexdigest() == expected[1]:
                        verified += 1
                    else:
                        errors.append(
                            make_error(
                                ErrorCode.CHECKSUM_MISMATCH,
                                f"Checksum mismatch for {name}",
                                op,
                                path=name,
                                archive=str(archive),
                                expected=raw.checksum,
                                actual=hasher.formatted(),
                            )
                        )
        except FulpackOperationError as e:
            errors.append(e.error)
        return verified

    # -----------------------------------------------------------------------
    # manifest
    # -----------------------------------------------------------------------

    def _manifest_sync(
        self,
        archives: Sequence[PathLike],
        algorithm: ChecksumAlgorithm | str,
        metadata: dict[str, Any] | None,
        token: CancellationToken,
    ) -> ArchiveManifest:
        algorithm = ChecksumAlgorithm(algorithm)
        records = []
        for path in archives:
            info = self._info_sync(path, token)
            digest = hash_file(Path(path), algorithm, self.chunk_size)
            records.append(
                ManifestRecord(
                    path=str(path),
                    format=info.format,
                    checksum=format_checksum(algorithm, digest),
                    size=info.compressed_size,
                    created=info.created,
                )
            )
        return ArchiveManifest(
            version=FulpackConstants.FULPACK_VERSION, archives=tuple(records), metadata=dict(metadata or {})
        )

    # -----------------------------------------------------------------------
    # Shared read path
    # -----------------------------------------------------------------------

    @staticmethod
    def _codec_for(archive: Path, op: Operation) -> ArchiveCodec:
        if not archive.is_file():
            raise operation_error(ErrorCode.ARCHIVE_NOT_FOUND, f"Archive not found: {archive}", op, archive=str(archive))
        fmt = detect_format(archive, op)
        logger.debug("Using %s codec for %s", fmt.value, archive)
        return get_codec(fmt, op)

    @staticmethod
    @contextlib.contextmanager
    def _open_archive(archive: Path, op: Operation) -> Iterator[BinaryIO]:
        try:
            fh = open(archive, "rb")
        except OSError as e:
            raise FulpackOperationError(wrap_os_error(e, op, default=ErrorCode.ARCHIVE_NOT_FOUND, archive=str(archive))) from e
        with fh:
            yield fh

    @staticmethod
    def _decode(codec: ArchiveCodec, fh: BinaryIO, archive: Path, op: Operation) -> Iterator[RawEntry]:
        """Iterate decoded members, translating library decode failures to ``ARCHIVE_CORRUPT``."""
        stream = codec.decode_stream(fh, name_hint=archive.name)
        while True:
            try:
                raw = next(stream)
            except StopIteration:
                return
            except CORRUPTION_ERRORS as e:
                raise corruption_error(e, op, str(archive)) from e
            yield raw

    @staticmethod
    def _open_content(raw: RawEntry, op: Operation, archive: str) -> ContentReader:
        try:
            return ContentReader(raw.open(), op, archive)
        except CORRUPTION_ERRORS as e:
            raise corruption_error(e, op, archive) from e


_default_engine: ArchiveEngine | None = None


def get_engine() -> ArchiveEngine:
    """Return the process-wide engine built from the environment, creating it on first use."""
    global _default_engine
    if _default_engine is None:
        _default_engine = ArchiveEngine()
    return _default_engine


async def create(
    source: PathLike | Sequence[PathLike],
    output: PathLike,
    format: ArchiveFormat | str,
    options: CreateOptions | None = None,
    *,
    cancel_token: CancellationToken | None = None,
) -> ArchiveInfo:
    """Convenience wrapper for :meth:`ArchiveEngine.create` on the default engine."""
    return await get_engine().create(source, output, format, options, cancel_token=cancel_token)


async def extract(
    archive: PathLike,
    destination: PathLike,
    options: ExtractOptions | None = None,
    *,
    cancel_token: CancellationToken | None = None,
) -> ExtractResult:
    """Convenience wrapper for :meth:`ArchiveEngine.extract` on the default engine."""
    return await get_engine().extract(archive, destination, options, cancel_token=cancel_token)


async def scan(
    archive: PathLike,
    options: ScanOptions | None = None,
    *,
    cancel_token: CancellationToken | None = None,
) -> list[ArchiveEntry]:
    """Convenience wrapper for :meth:`ArchiveEngine.scan` on the default engine."""
    return await get_engine().scan(archive, options, cancel_token=cancel_token)


async def verify(
    archive: PathLike,
    options: VerifyOptions | None = None,
    *,
    cancel_token: CancellationToken | None = None,
) -> ValidationResult:
    """Convenience wrapper for :meth:`ArchiveEngine.verify` on the default engine."""
    return await get_engine().verify(archive, options, cancel_token=cancel_token)


async def info(archive: PathLike, *, cancel_token: CancellationToken | None = None) -> ArchiveInfo:
    """Convenience wrapper for :meth:`ArchiveEngine.info` on the default engine."""
    return await get_engine().info(archive, cancel_token=cancel_token)
