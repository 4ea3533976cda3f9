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
Archive policy: org-customisable defaults and ceilings for archive operations.

Every organisation has a different tolerance for what an archive may contain
and how much it may expand. An ``ArchivePolicy`` captures the default options
each operation runs with when the caller does not set them explicitly.

Usage
-----
    from fulpack.core.archive_policy import ArchivePolicy

    # Load built-in defaults
    policy = ArchivePolicy.default()

    # Load an org policy (merges on top of defaults)
    policy = ArchivePolicy.from_yaml("my_policy.yaml")

    # Dump the current (including default) policy for editing
    policy.to_yaml("generated_policy.yaml")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from ..config.constants import FulpackConstants
from ..data import DATA_DIR, DEFAULT_POLICY_FILE
from .options import CreateOptions, ExtractOptions, ScanOptions, VerifyOptions

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Where the built-in default policy lives (ships with the package)
# ---------------------------------------------------------------------------
_DATA_DIR = DATA_DIR
_DEFAULT_POLICY_PATH = DEFAULT_POLICY_FILE

# Named preset policies
_PRESET_POLICIES: dict[str, Path] = {
    "strict": _DATA_DIR / "strict_policy.yaml",
    "balanced": _DEFAULT_POLICY_PATH,
    "permissive": _DATA_DIR / "permissive_policy.yaml",
}


@dataclass(frozen=True)
class LimitsPolicy:
    """Archive-level thresholds that are reported rather than enforced."""

    ratio_warning_threshold: float = FulpackConstants.DEFAULT_RATIO_WARNING_THRESHOLD


@dataclass(frozen=True)
class ArchivePolicy:
    """Default option sets for each archive operation."""

    policy_name: str = "default"
    policy_version: str = "1.0"
    create: CreateOptions = field(default_factory=CreateOptions.defaults)
    extract: ExtractOptions = field(default_factory=ExtractOptions.defaults)
    scan: ScanOptions = field(default_factory=ScanOptions.defaults)
    verify: VerifyOptions = field(default_factory=VerifyOptions.defaults)
    limits: LimitsPolicy = field(default_factory=LimitsPolicy)

    # -----------------------------------------------------------------------
    # Construction helpers
    # -----------------------------------------------------------------------

    @classmethod
    def default(cls) -> ArchivePolicy:
        """Load the built-in default policy that ships with the package."""
        return cls.from_yaml(_DEFAULT_POLICY_PATH)

    @classmethod
    def from_preset(cls, name: str) -> ArchivePolicy:
        """Load a named preset policy: ``strict``, ``balanced``, or ``permissive``."""
        name_lower = name.lower()
        if name_lower not in _PRESET_POLICIES:
            raise ValueError(f"Unknown preset '{name}'. Available: {', '.join(sorted(_PRESET_POLICIES))}")
        return cls.from_yaml(_PRESET_POLICIES[name_lower])

    @classmethod
    def preset_names(cls) -> list[str]:
        """Return available preset policy names."""
        return sorted(_PRESET_POLICIES.keys())

    @classmethod
    def load(cls, preset_or_path: str | Path | None) -> ArchivePolicy:
        """Resolve a preset name or a YAML path; ``None`` means the default policy."""
        if preset_or_path is None:
            return cls.default()
        if isinstance(preset_or_path, str) and preset_or_path.lower() in _PRESET_POLICIES:
            return cls.from_preset(preset_or_path)
        return cls.from_yaml(preset_or_path)

    @classmethod
    def from_yaml(cls, path: str | Path) -> ArchivePolicy:
        """
        Load a policy from a YAML file.

        The YAML is first merged on top of the built-in defaults so that
        users only need to specify the sections they want to override.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Policy file not found: {path}")

        with open(path, encoding="utf-8") as fh:
            raw: dict[str, Any] = yaml.safe_load(fh) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Policy file must contain a mapping: {path}")

        is_default = path.resolve() == _DEFAULT_POLICY_PATH.resolve()
        if is_default:
            policy = cls._from_dict(raw)
        else:
            merged = cls._deep_merge(cls._load_default_raw(), raw)
            policy = cls._from_dict(merged)

        logger.debug("Loaded archive policy %s from %s", policy.policy_name, path)
        return policy

    def to_yaml(self, path: str | Path) -> None:
        """Dump the full policy to a YAML file for editing."""
        data = self._to_dict()
        with open(path, "w", encoding="utf-8") as fh:
            fh.write("# fulpack - Archive Policy\n")
            fh.write("# Customise this file to match your organisation's limits.\n")
            fh.write("# Only include sections you want to override; omitted sections\n")
            fh.write("# will use the built-in defaults.\n\n")
            yaml.dump(data, fh, default_flow_style=False, sort_keys=False, width=120)

    def with_ceilings(self, max_size: int | None = None, max_entries: int | None = None) -> ArchivePolicy:
        """Return a copy whose extract/scan/verify ceilings are overridden where given."""
        if max_size is None and max_entries is None:
            return self
        return replace(
            self,
            extract=ExtractOptions(max_size=max_size, max_entries=max_entries).resolve(self.extract),
            scan=ScanOptions(max_entries=max_entries).resolve(self.scan),
            verify=VerifyOptions(max_size=max_size, max_entries=max_entries).resolve(self.verify),
        )

    # -----------------------------------------------------------------------
    # Internal parsing
    # -----------------------------------------------------------------------

    @classmethod
    def _load_default_raw(cls) -> dict[str, Any]:
        if _DEFAULT_POLICY_PATH.exists():
            with open(_DEFAULT_POLICY_PATH, encoding="utf-8") as fh:
                return yaml.safe_load(fh) or {}
        return {}

    @staticmethod
    def _deep_merge(base: dict, override: dict) -> dict:
        """Recursively merge *override* into *base*.

        Lists in the override **replace** the base list.
        """
        result = dict(base)
        for key, val in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(val, dict):
                result[key] = ArchivePolicy._deep_merge(result[key], val)
            else:
                result[key] = val
        return result

    @classmethod
    def _from_dict(cls, d: dict[str, Any]) -> ArchivePolicy:
        lm = d.get("limits", {}) or {}
        limits = LimitsPolicy(
            ratio_warning_threshold=float(
                lm.get("ratio_warning_threshold", FulpackConstants.DEFAULT_RATIO_WARNING_THRESHOLD)
            ),
        )
        # limits.ratio_warning_threshold is the fallback for verify
        verify_defaults = replace(VerifyOptions.defaults(), ratio_warning_threshold=limits.ratio_warning_threshold)
        return cls(
            policy_name=d.get("policy_name", "default"),
            policy_version=str(d.get("policy_version", "1.0")),
            create=CreateOptions.from_dict(d.get("create")).resolve(CreateOptions.defaults()),
            extract=ExtractOptions.from_dict(d.get("extract")).resolve(ExtractOptions.defaults()),
            scan=ScanOptions.from_dict(d.get("scan")).resolve(ScanOptions.defaults()),
            verify=VerifyOptions.from_dict(d.get("verify")).resolve(verify_defaults),
            limits=limits,
        )

    def _to_dict(self) -> dict[str, Any]:
        return {
            "policy_name": self.policy_name,
            "policy_version": self.policy_version,
            "create": self.create.to_dict(),
            "extract": self.extract.to_dict(),
            "scan": self.scan.to_dict(),
            "verify": self.verify.to_dict(),
            "limits": {"ratio_warning_threshold": self.limits.ratio_warning_threshold},
        }
