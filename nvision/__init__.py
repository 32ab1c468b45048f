"""NV-center candidate detection on FSM intensity scans."""

__version__ = "0.1.0"

from .config import DetectionConfig  # noqa: E402,F401
from .errors import DetectionError, InvalidConfig, InvalidInput, ResourceExhausted  # noqa: E402,F401
from .features import DetectedCenter  # noqa: E402,F401
from .grid import Grid, load_scan  # noqa: E402,F401
from .pipeline import DetectionReport, detect  # noqa: E402,F401

__all__ = [
    "DetectedCenter",
    "DetectionConfig",
    "DetectionError",
    "DetectionReport",
    "Grid",
    "InvalidConfig",
    "InvalidInput",
    "ResourceExhausted",
    "detect",
    "load_scan",
]
