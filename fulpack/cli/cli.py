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


"""Command-line interface for fulpack."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from ..config.config import Config
from ..core.archive_policy import ArchivePolicy
from ..core.codecs import detect_format
from ..core.engine import ArchiveEngine
from ..core.exceptions import FulpackOperationError
from ..core.models import ArchiveEntry, ArchiveFormat, ArchiveInfo, EntryType, ExtractResult, Operation, ValidationResult
from ..core.options import NO_CHECKSUM, CreateOptions, ExtractOptions, ScanOptions, VerifyOptions

logger = logging.getLogger("fulpack.cli")


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _configure_logging(args: argparse.Namespace, config: Config) -> None:
    level = logging.DEBUG if getattr(args, "verbose", False) else getattr(logging, config.log_level, logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)


def _load_policy(args: argparse.Namespace, config: Config) -> ArchivePolicy | None:
    """Load the archive policy from ``--policy`` (or ``FULPACK_POLICY``); ``None`` on error."""
    policy_value = getattr(args, "policy", None) or config.policy
    try:
        policy = ArchivePolicy.load(policy_value)
    except FileNotFoundError:
        print(f"Error: Policy file not found: {policy_value}", file=sys.stderr)
        return None
    except (ValueError, FulpackOperationError) as e:
        print(f"Error loading policy: {e}", file=sys.stderr)
        return None
    logger.info("Using %s archive policy", policy.policy_name)
    return policy


def _emit(args: argparse.Namespace, payload, summary: str) -> None:
    if getattr(args, "format", "summary") == "json":
        print(json.dumps(payload, indent=2))
    else:
        print(summary)


def _run(args: argparse.Namespace, coro_factory) -> tuple[object, bool]:
    """Build an engine and run one operation; returns ``(result, ok)``."""
    config = Config.from_env()
    policy = _load_policy(args, config)
    if policy is None:
        return None, False
    engine = ArchiveEngine(policy=policy, config=config)
    try:
        result = asyncio.run(coro_factory(engine))
    except FulpackOperationError as e:
        if getattr(args, "format", "summary") == "json":
            print(json.dumps({"error": e.to_dict()}, indent=2))
        else:
            print(f"Error: {e}", file=sys.stderr)
        return None, False
    return result, True


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def create_command(args: argparse.Namespace) -> int:
    """Handle the ``create`` command."""
    output = Path(args.output)
    try:
        fmt = ArchiveFormat(args.archive_format) if args.archive_format else detect_format(output, Operation.CREATE)
        options = CreateOptions(
            compression_level=args.level,
            checksum_algorithm=args.checksum,
            preserve_permissions=False if args.no_preserve_permissions else None,
            follow_symlinks=True if args.follow_symlinks else None,
            include_patterns=args.include,
            exclude_patterns=args.exclude,
        )
    except FulpackOperationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    info, ok = _run(args, lambda engine: engine.create(args.sources, output, fmt, options))
    if not ok:
        return 1
    _emit(args, info.to_dict(), _info_summary(output, info, heading="Created"))
    return 0


def extract_command(args: argparse.Namespace) -> int:
    """Handle the ``extract`` command."""
    try:
        options = ExtractOptions(
            overwrite=args.overwrite,
            verify_checksums=False if args.no_verify_checksums else None,
            preserve_permissions=False if args.no_preserve_permissions else None,
            max_size=args.max_size,
            max_entries=args.max_entries,
            include_patterns=args.include,
        )
    except FulpackOperationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    result, ok = _run(args, lambda engine: engine.extract(args.archive, args.destination, options))
    if not ok:
        return 1
    _emit(args, result.to_dict(), _extract_summary(args.archive, args.destination, result))
    return 0 if result.ok else 1


def scan_command(args: argparse.Namespace) -> int:
    """Handle the ``scan`` command."""
    try:
        options = ScanOptions(
            include_metadata=False if args.no_metadata else None,
            entry_types=args.type,
            max_depth=args.max_depth,
            max_entries=args.max_entries,
        )
    except FulpackOperationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    entries, ok = _run(args, lambda engine: engine.scan(args.archive, options))
    if not ok:
        return 1
    payload = []
    for entry in entries:
        data = entry.to_dict()
        if entry.safety_issue is not None:
            data["safety_issue"] = entry.safety_issue.value
        payload.append(data)
    _emit(args, payload, _scan_summary(args.archive, entries))
    return 0


def verify_command(args: argparse.Namespace) -> int:
    """Handle the ``verify`` command."""
    try:
        options = VerifyOptions(
            verify_checksums=False if args.no_verify_checksums else None,
            max_size=args.max_size,
            max_entries=args.max_entries,
        )
    except FulpackOperationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    result, ok = _run(args, lambda engine: engine.verify(args.archive, options))
    if not ok:
        return 1
    _emit(args, result.to_dict(), _verify_summary(args.archive, result))
    return 0 if result.valid else 1


def info_command(args: argparse.Namespace) -> int:
    """Handle the ``info`` command."""
    info, ok = _run(args, lambda engine: engine.info(args.archive))
    if not ok:
        return 1
    _emit(args, info.to_dict(), _info_summary(Path(args.archive), info, heading="Archive"))
    return 0


def generate_policy_command(args: argparse.Namespace) -> int:
    """Handle the ``generate-policy`` command."""
    output_path = Path(args.output)
    preset = getattr(args, "preset", "balanced")
    try:
        policy = ArchivePolicy.from_preset(preset)
        policy.to_yaml(output_path)
    except (OSError, ValueError) as e:
        print(f"Error generating policy: {e}", file=sys.stderr)
        return 1
    print(f"Generated {preset} archive policy: {output_path}\n")
    print("Edit the file to customise, then use:")
    print(f"  fulpack extract --policy {output_path} archive.tar.gz dest/\n")
    print(f"Available presets: {' | '.join(ArchivePolicy.preset_names())}")
    return 0


# ---------------------------------------------------------------------------
# Summary formatters
# ---------------------------------------------------------------------------


def _info_summary(path: Path, info: ArchiveInfo, heading: str) -> str:
    lines = [
        "=" * 60,
        f"{heading}: {path}",
        "=" * 60,
        f"Format: {info.format.value} (compression: {info.compression})",
        f"Entries: {info.entry_count}",
        f"Total Size: {info.total_size} bytes",
        f"Compressed Size: {info.compressed_size} bytes",
        f"Compression Ratio: {info.compression_ratio:.2f}",
        f"Checksums: {info.checksum_algorithm.value if info.has_checksums and info.checksum_algorithm else 'none'}",
    ]
    if info.created:
        lines.append(f"Created: {info.created}")
    return "\n".join(lines)


def _extract_summary(archive: str, destination: str, result: ExtractResult) -> str:
    status = "[OK] EXTRACTED" if result.ok else ("[FAIL] ABORTED" if result.aborted else "[WARNING] PARTIAL")
    lines = [
        "=" * 60,
        f"Archive: {archive} -> {destination}",
        "=" * 60,
        f"Status: {status}",
        f"Extracted: {result.extracted_count}",
        f"Skipped: {result.skipped_count}",
        f"Errors: {result.error_count}",
        f"Bytes Written: {result.total_bytes}",
    ]
    if result.errors:
        lines.append("")
        lines.append("Errors:")
        lines.extend(f"  - {error}" for error in result.errors)
    if result.warnings:
        lines.append("")
        lines.append("Warnings:")
        lines.extend(f"  - {warning}" for warning in result.warnings)
    return "\n".join(lines)


def _scan_summary(archive: str, entries: list[ArchiveEntry]) -> str:
    lines = ["=" * 60, f"Archive: {archive} ({len(entries)} entries)", "=" * 60]
    for entry in entries:
        marker = {EntryType.FILE: "f", EntryType.DIRECTORY: "d", EntryType.SYMLINK: "l"}[entry.type]
        if entry.hardlink:
            marker = "h"
        line = f"{marker} {entry.size:>12}  {entry.path}"
        if entry.symlink_target is not None:
            line += f" -> {entry.symlink_target}"
        if entry.safety_issue is not None:
            line += f"  [{entry.safety_issue.value}]"
        lines.append(line)
    return "\n".join(lines)


def _verify_summary(archive: str, result: ValidationResult) -> str:
    lines = [
        "=" * 60,
        f"Archive: {archive}",
        "=" * 60,
        f"Status: {'[OK] VALID' if result.valid else '[FAIL] INVALID'}",
        f"Entries: {result.entry_count}",
        f"Checksums Verified: {result.checksums_verified}",
        f"Checks: {', '.join(check.value for check in result.checks_performed)}",
    ]
    if result.errors:
        lines.append("")
        lines.append("Errors:")
        lines.extend(f"  - {error}" for error in result.errors)
    if result.warnings:
        lines.append("")
        lines.append("Warnings:")
        lines.extend(f"  - {warning}" for warning in result.warnings)
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Shared argparse helpers
# ---------------------------------------------------------------------------


def _add_common_flags(parser: argparse.ArgumentParser) -> None:
    """Add flags shared by every archive command."""
    parser.add_argument(
        "--format", choices=["summary", "json"], default="summary", help="Output format (default: summary)"
    )
    parser.add_argument(
        "--policy",
        metavar="PRESET_OR_PATH",
        help="Archive policy: preset name (strict, balanced, permissive) or path to custom YAML",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")


def _add_ceiling_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--max-size", type=int, metavar="BYTES", help="Maximum total decompressed bytes")
    parser.add_argument("--max-entries", type=int, metavar="N", help="Maximum number of entries")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="fulpack - Security-hardened archive operations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  fulpack create ./project -o project.tar.gz
  fulpack create notes.txt -o notes.txt.gz --archive-format gzip
  fulpack extract project.tar.gz ./out --overwrite skip
  fulpack scan project.zip --format json
  fulpack verify project.tar.gz --policy strict
  fulpack info project.tar
  fulpack generate-policy -o archive_policy.yaml
        """,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # -- create ------------------------------------------------------------
    create_p = subparsers.add_parser("create", help="Create an archive")
    create_p.add_argument("sources", nargs="+", help="Files or directories to archive")
    create_p.add_argument("--output", "-o", required=True, help="Archive file to write")
    create_p.add_argument(
        "--archive-format",
        choices=[f.value for f in ArchiveFormat],
        help="Archive format (default: inferred from the output name)",
    )
    create_p.add_argument("--level", type=int, metavar="1-9", help="Compression level")
    create_p.add_argument(
        "--checksum", metavar="ALGORITHM", help=f"Embedded checksum algorithm, or '{NO_CHECKSUM}' to disable"
    )
    create_p.add_argument("--follow-symlinks", action="store_true", help="Archive symlink targets instead of skipping")
    create_p.add_argument("--no-preserve-permissions", action="store_true", help="Store default permission bits")
    create_p.add_argument("--include", action="append", metavar="GLOB", help="Only archive matching paths")
    create_p.add_argument("--exclude", action="append", metavar="GLOB", help="Skip matching paths")
    _add_common_flags(create_p)

    # -- extract -----------------------------------------------------------
    extract_p = subparsers.add_parser("extract", help="Extract an archive")
    extract_p.add_argument("archive", help="Archive to extract")
    extract_p.add_argument("destination", help="Destination directory")
    extract_p.add_argument("--overwrite", choices=["error", "skip", "overwrite"], help="Existing-file policy")
    extract_p.add_argument("--no-verify-checksums", action="store_true", help="Skip embedded checksum verification")
    extract_p.add_argument("--no-preserve-permissions", action="store_true", help="Apply default permission bits")
    extract_p.add_argument("--include", action="append", metavar="GLOB", help="Only extract matching paths")
    _add_ceiling_flags(extract_p)
    _add_common_flags(extract_p)

    # -- scan --------------------------------------------------------------
    scan_p = subparsers.add_parser("scan", help="List archive entries")
    scan_p.add_argument("archive", help="Archive to scan")
    scan_p.add_argument(
        "--type", action="append", choices=[t.value for t in EntryType], help="Only list entries of this type"
    )
    scan_p.add_argument("--max-depth", type=int, metavar="N", help="Only list entries at most N segments deep")
    scan_p.add_argument("--max-entries", type=int, metavar="N", help="Maximum number of entries")
    scan_p.add_argument("--no-metadata", action="store_true", help="Omit timestamps, modes and checksums")
    _add_common_flags(scan_p)

    # -- verify ------------------------------------------------------------
    verify_p = subparsers.add_parser("verify", help="Validate archive structure, paths and checksums")
    verify_p.add_argument("archive", help="Archive to verify")
    verify_p.add_argument("--no-verify-checksums", action="store_true", help="Skip embedded checksum verification")
    _add_ceiling_flags(verify_p)
    _add_common_flags(verify_p)

    # -- info --------------------------------------------------------------
    info_p = subparsers.add_parser("info", help="Show archive metadata")
    info_p.add_argument("archive", help="Archive to inspect")
    _add_common_flags(info_p)

    # -- generate-policy ---------------------------------------------------
    gp_p = subparsers.add_parser("generate-policy", help="Generate an archive policy YAML")
    gp_p.add_argument("--output", "-o", default="archive_policy.yaml", help="Output file path")
    gp_p.add_argument("--preset", choices=["strict", "balanced", "permissive"], default="balanced", help="Base preset")

    # -- dispatch ----------------------------------------------------------
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        config = Config.from_env()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    _configure_logging(args, config)

    dispatch = {
        "create": create_command,
        "extract": extract_command,
        "scan": scan_command,
        "verify": verify_command,
        "info": info_command,
        "generate-policy": generate_policy_command,
    }
    handler = dispatch.get(args.command)
    if handler:
        return handler(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
