"""
Lightweight, versioned-ish contracts for detection outputs.

These are *documentation-as-code* constants used to keep report and summary
JSON interpretable. They intentionally avoid heavy dependencies.
"""

from __future__ import annotations

from typing import Dict

NV_CENTERS_PURPOSE = "nv_center_candidates"
NV_CENTERS_SEMANTICS = (
    "Each center is the unweighted centroid of a connected-component blob in a "
    "threshold mask of the preprocessed scan. Confidence is the blob's mean "
    "intensity divided by the scan's peak intensity; it is NOT a calibrated probability."
)

NV_CENTERS_CONTRACT: Dict[str, object] = {
    "schema_version": "1",
    "purpose": NV_CENTERS_PURPOSE,
    "semantic_unit": "candidate",
    "represents": "blob_centroid",
    "coordinates": "pixel (x = column, y = row)",
    "confidence_is_probability": False,
    "notes": NV_CENTERS_SEMANTICS,
}
