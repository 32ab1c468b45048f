"""
Named parameter profiles.

Profiles are *starting points*, not automatic overrides; the CLI still accepts
explicit flags and params files on top of them. Keeping them here makes the
recommended settings machine-readable and testable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from .config import DetectionConfig


@dataclass(frozen=True)
class DetectionProfile:
    name: str
    config: DetectionConfig
    notes: str


UI_DEFAULT = DetectionProfile(
    name="ui_default",
    config=DetectionConfig(),
    notes=(
        "Initial values of the demo parameter panel: 3x3 median, background "
        "correction on, cut at 75% of the peak, 3-15 px blobs, confidence >= 0.8."
    ),
)

PERMISSIVE = DetectionProfile(
    name="permissive",
    config=DetectionConfig(
        threshold=0.3,
        min_size=1,
        max_size=200,
        background_correction=False,
        confidence_threshold=0.0,
        median_filter=False,
    ),
    notes="No smoothing and low cuts; useful to inspect everything above the noise floor.",
)

STRICT = DetectionProfile(
    name="strict",
    config=DetectionConfig(
        threshold=0.8,
        min_size=4,
        max_size=15,
        confidence_threshold=0.9,
        filter_size=5,
    ),
    notes="Heavier smoothing and a higher confidence gate for noisy scans.",
)

PROFILES: Dict[str, DetectionProfile] = {p.name: p for p in (UI_DEFAULT, PERMISSIVE, STRICT)}


def get_profile(name: str) -> DetectionProfile:
    try:
        return PROFILES[name]
    except KeyError:
        known = ", ".join(sorted(PROFILES))
        raise KeyError(f"Unknown profile {name!r} (known: {known})") from None


def as_policy_dict() -> Dict[str, object]:
    """Small policy block that can be embedded in summary outputs."""
    return {
        "detection": {
            "default_profile": UI_DEFAULT.name,
            "profiles": sorted(PROFILES),
            "confidence_is_calibrated": False,
        }
    }
