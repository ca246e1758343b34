"""
ByteTrack - Multi-Object Tracking Engine.

Turns per-frame object detections into tracks with stable identities,
using BYTE association, a constant velocity Kalman filter and a
Jonker-Volgenant assignment solver.

Example:
    >>> from bytetracker import BYTETracker, Detection, TrackerConfig
    >>> tracker = BYTETracker(TrackerConfig(track_thresh=0.5))
    >>> tracks = tracker.update([
    ...     Detection.from_xyxy([79, 205, 169, 609], label=0, prob=0.85, external_id=1),
    ... ])

For detection files:
    >>> from bytetracker import run_pipeline
    >>> results = run_pipeline("MOT17/train/", output_dir="output/")
"""

__version__ = "0.1.0"

from .config import (
    PipelineConfig,
    TrackerConfig,
    InputConfig,
    OutputConfig,
    get_default_config,
)
from .geometry import Rect
from .detection import Detection, DetectionFrame
from .tracking import (
    BYTETracker,
    STrack,
    TrackState,
    TrackingResult,
    Trail,
    KalmanUpdateError,
    LAPJVError,
)
from .pipeline import TrackingPipeline, run_pipeline

__all__ = [
    # Version info
    "__version__",
    # Configuration
    "PipelineConfig",
    "TrackerConfig",
    "InputConfig",
    "OutputConfig",
    "get_default_config",
    # Data types
    "Rect",
    "Detection",
    "DetectionFrame",
    # Tracking
    "BYTETracker",
    "STrack",
    "TrackState",
    "TrackingResult",
    "Trail",
    "KalmanUpdateError",
    "LAPJVError",
    # Pipeline
    "TrackingPipeline",
    "run_pipeline",
]
