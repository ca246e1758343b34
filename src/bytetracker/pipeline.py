"""
Main pipeline for tracking detection sequences.

This module runs the tracker over precomputed per-frame detections,
from detection files through tracking to result export.
"""

import dataclasses
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from tqdm import tqdm

from .config import PipelineConfig, get_default_config
from .detection import DetectionFrame
from .tracking import BYTETracker, Trail, TrackingResult
from .io import (
    COCOExporter,
    SequenceInfo,
    find_detection_files,
    read_mot_detections,
    read_seqinfo,
    save_trails,
    sequence_name,
    write_mot_results,
)

logger = logging.getLogger(__name__)


class TrackingPipeline:
    """
    End-to-end pipeline for tracking detection sequences.

    This class orchestrates the complete workflow:
    1. Detection loading (MOTChallenge det.txt)
    2. Multi-object tracking across frames
    3. Result export (MOT text, COCO JSON, trails)

    Args:
        config: Pipeline configuration. Uses defaults if None.

    Example:
        >>> pipeline = TrackingPipeline()
        >>> results = pipeline.process_sequence("MOT17-02/", output_dir="output/")
        >>>
        >>> # Or process a directory of sequences
        >>> pipeline.process_directory("MOT17/train/", output_dir="output/")
    """

    def __init__(self, config: Optional[PipelineConfig] = None):
        """Initialize the pipeline with configuration."""
        self._config = config or get_default_config()
        self._setup_logging()

        # Initialize components (lazy loading)
        self._tracker: Optional[BYTETracker] = None
        self._trail: Optional[Trail] = None

    def _setup_logging(self) -> None:
        """Configure logging based on config."""
        logging.basicConfig(
            level=getattr(logging, self._config.log_level.upper()),
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=[
                logging.StreamHandler(),
                *(
                    [logging.FileHandler(self._config.log_file)]
                    if self._config.log_file else []
                )
            ]
        )

    @property
    def config(self) -> PipelineConfig:
        return self._config

    @property
    def tracker(self) -> BYTETracker:
        """Get or create the tracker (lazy initialization)."""
        if self._tracker is None:
            logger.info("Initializing tracker...")
            self._tracker = BYTETracker(self._config.tracker)
        return self._tracker

    @property
    def trail(self) -> Trail:
        """Get or create the trail history."""
        if self._trail is None:
            self._trail = Trail(self._config.output.trail_size)
        return self._trail

    def _use_frame_rate(self, frame_rate: Optional[float]) -> None:
        """Rebuild the tracker when a sequence has its own frame rate."""
        if frame_rate and frame_rate > 0:
            frame_rate = int(round(frame_rate))
        else:
            frame_rate = self._config.tracker.frame_rate
        if frame_rate == self.tracker.config.frame_rate:
            return
        logger.info(f"Using frame rate {frame_rate}")
        self._tracker = BYTETracker(
            dataclasses.replace(self._config.tracker, frame_rate=frame_rate)
        )

    def track_frames(
        self,
        frames: Sequence[DetectionFrame],
        show_progress: bool = True
    ) -> List[TrackingResult]:
        """
        Run tracking over a sequence of detection frames.

        The tracker and trail are reset first, so every call starts a new
        session with track IDs from 1.
        """
        self.tracker.reset()
        self.trail.reset()

        tracking_results = []
        iterator = tqdm(frames, desc="Tracking") if show_progress else frames

        for frame in iterator:
            stracks = self.tracker.update(frame.detections)
            for track in stracks:
                self.trail.add(track)
            tracking_results.append(
                TrackingResult.from_stracks(frame.frame_id, stracks)
            )

        # Log tracking statistics
        counts = self.tracker.get_track_count()
        logger.info(
            f"Tracking complete: {self.tracker.track_id_count} tracks started, "
            f"{counts['tracked']} tracked, {counts['lost']} lost"
        )

        return tracking_results

    def _save_results(
        self,
        tracking_results: List[TrackingResult],
        output_dir: Path,
        name: str,
        info: Optional[SequenceInfo] = None
    ) -> Path:
        """Save all results to disk."""
        output_dir.mkdir(parents=True, exist_ok=True)

        if self._config.output.save_mot_txt:
            write_mot_results(tracking_results, output_dir / f"{name}.txt")

        if self._config.output.save_coco_json:
            exporter = COCOExporter(include_track_ids=True)
            height = (info.height or 0) if info else 0
            width = (info.width or 0) if info else 0
            for result in tracking_results:
                exporter.add_tracking_result(result, height=height, width=width)
            exporter.save(output_dir / f"{name}_annotations.json")

        if self._config.output.save_trails:
            save_trails(self.trail, output_dir / f"{name}_trails.json")

        logger.info(f"Results saved to {output_dir}")
        return output_dir

    def process_file(
        self,
        det_path: Union[str, Path],
        output_dir: Optional[Union[str, Path]] = None,
        show_progress: bool = True,
        info: Optional[SequenceInfo] = None
    ) -> List[TrackingResult]:
        """
        Track a single detection file.

        Args:
            det_path: Path to a MOTChallenge detection file
            output_dir: Directory for outputs. Uses config default if None.
            show_progress: Whether to show progress bars
            info: Sequence metadata, if known

        Returns:
            List of TrackingResult for each frame
        """
        det_path = Path(det_path)
        output_dir = Path(output_dir or self._config.output.output_dir)

        logger.info(f"Processing detections: {det_path}")
        if info is not None:
            logger.info(f"Sequence info: {info}")
        self._use_frame_rate(info.frame_rate if info else None)

        frames = read_mot_detections(
            det_path,
            self._config.input,
            seq_length=info.seq_length if info else 0
        )

        tracking_results = self.track_frames(frames, show_progress)

        name = info.name if info else sequence_name(det_path)
        self._save_results(tracking_results, output_dir, name, info)

        return tracking_results

    def process_sequence(
        self,
        seq_dir: Union[str, Path],
        output_dir: Optional[Union[str, Path]] = None,
        show_progress: bool = True
    ) -> List[TrackingResult]:
        """
        Track a MOTChallenge sequence directory (<seq>/det/det.txt).

        The frame rate and length from seqinfo.ini are used when present.
        """
        seq_dir = Path(seq_dir)
        det_path = seq_dir / "det" / self._config.input.detection_filename
        if not det_path.exists():
            raise FileNotFoundError(f"Missing detections: {det_path}")

        info = None
        if (seq_dir / "seqinfo.ini").exists():
            info = read_seqinfo(seq_dir)

        return self.process_file(det_path, output_dir, show_progress, info)

    def process_directory(
        self,
        input_dir: Union[str, Path],
        output_dir: Optional[Union[str, Path]] = None,
        exclude_patterns: Optional[List[str]] = None,
        show_progress: bool = True
    ) -> Dict[str, List[TrackingResult]]:
        """
        Process all detection files in a directory.

        Args:
            input_dir: Directory containing sequences or detection files
            output_dir: Directory for outputs
            exclude_patterns: Path patterns to exclude
            show_progress: Whether to show progress bars

        Returns:
            Dictionary mapping sequence names to their TrackingResults
        """
        input_dir = Path(input_dir)
        output_dir = Path(output_dir or self._config.output.output_dir)

        det_files = find_detection_files(
            input_dir,
            self._config.input,
            exclude_patterns=exclude_patterns
        )

        if not det_files:
            logger.warning(f"No detection files found in {input_dir}")
            return {}

        results = {}
        for i, det_path in enumerate(det_files, 1):
            name = sequence_name(det_path)
            logger.info(f"\n{'='*60}")
            logger.info(f"Processing sequence {i}/{len(det_files)}: {name}")
            logger.info(f"{'='*60}")

            try:
                if det_path.parent.name == "det":
                    tracking_results = self.process_sequence(
                        det_path.parent.parent,
                        output_dir=output_dir,
                        show_progress=show_progress
                    )
                else:
                    tracking_results = self.process_file(
                        det_path,
                        output_dir=output_dir,
                        show_progress=show_progress
                    )
                results[name] = tracking_results

            except Exception as e:
                logger.error(f"Failed to process {det_path}: {e}")
                continue

        logger.info(
            f"\nCompleted processing {len(results)}/{len(det_files)} sequences")
        return results


def run_pipeline(
    input_path: Union[str, Path],
    output_dir: Optional[Union[str, Path]] = None,
    config: Optional[PipelineConfig] = None,
    **kwargs
) -> dict:
    """
    Convenience function to run the pipeline.

    Args:
        input_path: Detection file, sequence directory or directory of
                    sequences
        output_dir: Output directory
        config: Pipeline configuration
        **kwargs: Additional arguments passed to process methods

    Returns:
        Dictionary of results
    """
    pipeline = TrackingPipeline(config)
    input_path = Path(input_path)

    if input_path.is_file():
        kwargs.pop("exclude_patterns", None)
        results = pipeline.process_file(input_path, output_dir, **kwargs)
        return {sequence_name(input_path): results}
    if (input_path / "det").is_dir():
        kwargs.pop("exclude_patterns", None)
        results = pipeline.process_sequence(input_path, output_dir, **kwargs)
        return {input_path.name: results}
    return pipeline.process_directory(input_path, output_dir, **kwargs)
