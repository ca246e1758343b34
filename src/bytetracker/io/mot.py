"""
MOTChallenge text format input/output.

Detection files (det/det.txt) hold one detection per line:
    frame, id, bb_left, bb_top, bb_width, bb_height, conf, x, y, z

Tracker results are written in the same layout:
    frame, id, x, y, w, h, score, -1, -1, -1

Frame numbers are 1-based.
"""

import configparser
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np

from ..config import InputConfig
from ..detection import Detection, DetectionFrame
from ..geometry import Rect
from ..tracking import TrackingResult

logger = logging.getLogger(__name__)

MIN_DETECTION_COLUMNS = 7


@dataclass
class SequenceInfo:
    """Metadata from a MOTChallenge seqinfo.ini file."""
    name: str
    frame_rate: float
    seq_length: int
    width: Optional[int] = None
    height: Optional[int] = None

    def __str__(self) -> str:
        size = f"{self.width}x{self.height}, " if self.width and self.height else ""
        return (
            f"Sequence({self.name}: {size}"
            f"{self.frame_rate:.2f}fps, {self.seq_length} frames)"
        )


def read_seqinfo(seq_dir: Union[str, Path]) -> SequenceInfo:
    """
    Read seqinfo.ini from a MOTChallenge sequence directory.

    Raises:
        FileNotFoundError: If seqinfo.ini is missing
        ValueError: If the file has no [Sequence] section
    """
    seq_dir = Path(seq_dir)
    ini = seq_dir / "seqinfo.ini"
    if not ini.exists():
        raise FileNotFoundError(f"Missing seqinfo.ini: {ini}")

    cp = configparser.ConfigParser()
    cp.read(str(ini))
    if "Sequence" not in cp:
        raise ValueError(f"Invalid seqinfo.ini (no [Sequence]): {ini}")

    s = cp["Sequence"]
    width = s.get("imWidth")
    height = s.get("imHeight")

    return SequenceInfo(
        name=s.get("name", seq_dir.name),
        frame_rate=float(s.get("frameRate", 30)),
        seq_length=int(s.get("seqLength", 0)),
        width=int(width) if width else None,
        height=int(height) if height else None,
    )


def read_mot_detections(
    path: Union[str, Path],
    config: Optional[InputConfig] = None,
    seq_length: int = 0
) -> List[DetectionFrame]:
    """
    Load a MOTChallenge detection file as a list of frames.

    Every frame from 1 to the last one is returned, frames without
    detections are empty. The external ID of each detection is its
    1-based line number in the file.

    Args:
        path: Path to the detection file
        config: Input configuration for labels and confidence filtering
        seq_length: Minimum number of frames to return

    Returns:
        List of DetectionFrame, index i holds frame i + 1

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file has fewer than 7 columns
    """
    path = Path(path)
    config = config or InputConfig()
    if not path.exists():
        raise FileNotFoundError(f"Detection file not found: {path}")

    if path.stat().st_size == 0:
        data = np.empty((0, MIN_DETECTION_COLUMNS), dtype=np.float64)
    else:
        data = np.loadtxt(path, delimiter=',', ndmin=2, dtype=np.float64)

    if data.shape[1] < MIN_DETECTION_COLUMNS:
        raise ValueError(
            f"{path}: expected at least {MIN_DETECTION_COLUMNS} columns, "
            f"got {data.shape[1]}"
        )

    n_frames = max(seq_length, int(data[:, 0].max()) if len(data) else 0)
    frames = [DetectionFrame(frame_id=i + 1, detections=[]) for i in range(n_frames)]

    skipped = 0
    for line_no, row in enumerate(data, 1):
        frame_id = int(row[0])
        if frame_id < 1:
            raise ValueError(f"{path}:{line_no}: invalid frame number {frame_id}")

        score = float(row[6])
        if score < config.min_confidence:
            skipped += 1
            continue

        frames[frame_id - 1].detections.append(Detection(
            rect=Rect(row[2], row[3], row[4], row[5]),
            label=config.default_label,
            prob=score,
            external_id=line_no,
        ))

    logger.info(
        f"Loaded {len(data) - skipped} detections over {n_frames} frames "
        f"from {path}"
    )
    if skipped:
        logger.debug(f"Dropped {skipped} detections below {config.min_confidence}")

    return frames


def write_mot_results(
    results: Sequence[TrackingResult],
    path: Union[str, Path]
) -> Path:
    """
    Write tracking results in MOTChallenge format.

    Returns:
        The path written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    n_lines = 0
    with open(path, 'w') as f:
        for result in results:
            for track in result.tracks:
                x, y, w, h = track.tlwh
                f.write(
                    f"{result.frame_id},{track.track_id},"
                    f"{x:.2f},{y:.2f},{w:.2f},{h:.2f},"
                    f"{track.score:.4f},-1,-1,-1\n"
                )
                n_lines += 1

    logger.info(f"Saved MOT results: {path} ({n_lines} boxes)")
    return path


def find_detection_files(
    input_dir: Union[str, Path],
    config: Optional[InputConfig] = None,
    exclude_patterns: Optional[List[str]] = None
) -> List[Path]:
    """
    Find detection files under a directory.

    MOTChallenge sequence layouts (<seq>/det/det.txt) are found by the
    configured detection filename, other files by extension.

    Returns:
        Sorted list of detection file paths
    """
    input_dir = Path(input_dir)
    config = config or InputConfig()
    exclude_patterns = exclude_patterns or []

    files = set(input_dir.rglob(config.detection_filename))
    for ext in config.supported_formats:
        files.update(
            p for p in input_dir.glob(f"*{ext}") if p.is_file()
        )

    result = sorted(
        p for p in files
        if not any(pattern in str(p) for pattern in exclude_patterns)
    )
    logger.info(f"Found {len(result)} detection files in {input_dir}")
    return result


def sequence_name(det_path: Union[str, Path]) -> str:
    """Name of the sequence a detection file belongs to."""
    det_path = Path(det_path)
    if det_path.parent.name == "det":
        return det_path.parent.parent.name
    return det_path.stem
