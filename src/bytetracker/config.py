"""
Centralized configuration management for the ByteTrack engine.

This module provides typed, validated configuration using dataclasses.
Configuration can be loaded from YAML files or constructed programmatically.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple
import yaml


# =============================================================================
# Configuration Dataclasses
# =============================================================================

@dataclass
class TrackerConfig:
    """Configuration for the BYTE tracker."""

    frame_rate: int = 30
    track_buffer: int = 30  # Frames a lost track is kept at 30 fps
    track_thresh: float = 0.5  # Splits high and low confidence detections
    high_thresh: float = 0.6  # Minimum confidence to start a new track
    match_thresh: float = 0.8  # Maximum IoU distance in the first association

    # Kalman filter noise, relative to box height
    std_weight_position: float = 1.0 / 20
    std_weight_velocity: float = 1.0 / 160

    @property
    def max_time_lost(self) -> int:
        """Frames a track may stay lost before it is removed."""
        return int(self.frame_rate / 30.0 * self.track_buffer)


@dataclass
class InputConfig:
    """Configuration for reading detection sequences."""

    default_label: int = 0  # Label given to detections from MOT files
    min_confidence: float = 0.0  # Detections below are dropped on load
    detection_filename: str = "det.txt"
    supported_formats: Tuple[str, ...] = (".txt",)


@dataclass
class OutputConfig:
    """Configuration for output generation."""

    output_dir: Path = field(default_factory=lambda: Path("output"))
    save_mot_txt: bool = True
    save_coco_json: bool = True
    save_trails: bool = False
    trail_size: int = 30  # Center points kept per track


@dataclass
class PipelineConfig:
    """Master configuration combining all sub-configs."""

    tracker: TrackerConfig = field(default_factory=TrackerConfig)
    input: InputConfig = field(default_factory=InputConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    # Logging configuration
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @classmethod
    def from_yaml(cls, path: Path) -> "PipelineConfig":
        """Load configuration from a YAML file."""
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        input_data = dict(data.get('input', {}))
        if 'supported_formats' in input_data:
            input_data['supported_formats'] = tuple(input_data['supported_formats'])

        return cls(
            tracker=TrackerConfig(**data.get('tracker', {})),
            input=InputConfig(**input_data),
            output=OutputConfig(
                output_dir=Path(data.get('output', {}).get(
                    'output_dir', 'output')),
                **{k: v for k, v in data.get('output', {}).items() if k != 'output_dir'}
            ),
            log_level=data.get('log_level', 'INFO'),
            log_file=Path(data['log_file']) if data.get('log_file') else None,
        )

    def to_dict(self) -> dict:
        """Convert to a plain dictionary suitable for YAML."""
        return {
            'tracker': {
                'frame_rate': self.tracker.frame_rate,
                'track_buffer': self.tracker.track_buffer,
                'track_thresh': self.tracker.track_thresh,
                'high_thresh': self.tracker.high_thresh,
                'match_thresh': self.tracker.match_thresh,
                'std_weight_position': self.tracker.std_weight_position,
                'std_weight_velocity': self.tracker.std_weight_velocity,
            },
            'input': {
                'default_label': self.input.default_label,
                'min_confidence': self.input.min_confidence,
                'detection_filename': self.input.detection_filename,
                'supported_formats': list(self.input.supported_formats),
            },
            'output': {
                'output_dir': str(self.output.output_dir),
                'save_mot_txt': self.output.save_mot_txt,
                'save_coco_json': self.output.save_coco_json,
                'save_trails': self.output.save_trails,
                'trail_size': self.output.trail_size,
            },
            'log_level': self.log_level,
            'log_file': str(self.log_file) if self.log_file else None,
        }

    def to_yaml(self, path: Path) -> None:
        """Save configuration to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)


# =============================================================================
# Default Configuration Factory
# =============================================================================

def get_default_config() -> PipelineConfig:
    """Create default configuration suitable for most use cases."""
    return PipelineConfig()
