"""
Export utilities for tracking results.

This module provides COCO JSON export of tracked boxes and JSON export
of track trails.
"""

import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from ..tracking import Trail, TrackingResult, TrackOutput

logger = logging.getLogger(__name__)


@dataclass
class COCOImage:
    """COCO format image entry."""
    id: int
    file_name: str
    height: int
    width: int


@dataclass
class COCOAnnotation:
    """COCO format annotation entry."""
    id: int
    image_id: int
    category_id: int
    bbox: List[float]  # [x, y, width, height]
    area: float
    score: float
    iscrowd: int = 0
    track_id: Optional[int] = None
    detection_id: Optional[int] = None


@dataclass
class COCOCategory:
    """COCO format category entry."""
    id: int
    name: str
    supercategory: str = "object"


class COCOExporter:
    """
    Export tracking results to COCO JSON format.

    Categories are created on first use of a label. Names come from
    label_names when given, otherwise "class_<label>".

    Example:
        >>> exporter = COCOExporter()
        >>> for result in results:
        ...     exporter.add_tracking_result(result, width=1920, height=1080)
        >>> exporter.save("annotations.json")
    """

    def __init__(
        self,
        include_track_ids: bool = True,
        label_names: Optional[Dict[int, str]] = None
    ):
        """
        Initialize the COCO exporter.

        Args:
            include_track_ids: Whether to include track_id in annotations
            label_names: Optional mapping of label to category name
        """
        self._include_track_ids = include_track_ids
        self._label_names = label_names or {}
        self._images: List[COCOImage] = []
        self._annotations: List[COCOAnnotation] = []
        self._categories: Dict[int, COCOCategory] = {}
        self._annotation_id = 1

    def add_image(
        self,
        image_id: int,
        file_name: str,
        height: int,
        width: int
    ) -> None:
        """Add an image entry."""
        self._images.append(COCOImage(
            id=image_id,
            file_name=file_name,
            height=height,
            width=width
        ))

    def add_track(self, image_id: int, track: TrackOutput) -> int:
        """
        Add an annotation for one tracked box.

        Returns:
            The annotation ID used
        """
        if track.label not in self._categories:
            self._categories[track.label] = COCOCategory(
                id=track.label,
                name=self._label_names.get(track.label, f"class_{track.label}")
            )

        annotation_id = self._annotation_id
        self._annotation_id += 1

        x, y, w, h = track.tlwh
        self._annotations.append(COCOAnnotation(
            id=annotation_id,
            image_id=image_id,
            category_id=track.label,
            bbox=[x, y, w, h],
            area=w * h,
            score=track.score,
            track_id=track.track_id if self._include_track_ids else None,
            detection_id=track.detection_id,
        ))
        return annotation_id

    def add_tracking_result(
        self,
        result: TrackingResult,
        height: int = 0,
        width: int = 0,
        file_name: Optional[str] = None
    ) -> None:
        """
        Add an image entry and all tracks from a TrackingResult.

        The frame number is used as image ID.
        """
        self.add_image(
            image_id=result.frame_id,
            file_name=file_name or f"{result.frame_id:06d}.jpg",
            height=height,
            width=width
        )
        for track in result.tracks:
            self.add_track(result.frame_id, track)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to COCO JSON dictionary."""
        result = {
            "images": [asdict(img) for img in self._images],
            "annotations": [],
            "categories": [
                asdict(cat) for _, cat in sorted(self._categories.items())
            ]
        }

        for ann in self._annotations:
            ann_dict = asdict(ann)
            if ann_dict["track_id"] is None:
                del ann_dict["track_id"]
            result["annotations"].append(ann_dict)

        return result

    def save(self, path: Union[str, Path], indent: int = 2) -> None:
        """
        Save to JSON file.

        Args:
            path: Output file path
            indent: JSON indentation level
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=indent)

        logger.info(
            f"Saved COCO JSON: {path} "
            f"({len(self._images)} images, {len(self._annotations)} annotations)"
        )

    def reset(self) -> None:
        """Clear all images, annotations and categories."""
        self._images.clear()
        self._annotations.clear()
        self._categories.clear()
        self._annotation_id = 1


def save_trails(trail: Trail, path: Union[str, Path]) -> Path:
    """
    Save trail history as JSON, mapping track ID to [[x, y], ...].

    Returns:
        The path written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        str(track_id): [list(p) for p in points]
        for track_id, points in trail.to_dict().items()
    }
    with open(path, 'w') as f:
        json.dump(data, f, indent=2)

    logger.info(f"Saved trails for {len(data)} tracks to {path}")
    return path


def load_trails(path: Union[str, Path]) -> Dict[int, List[Sequence[int]]]:
    """Load a trail JSON file written by save_trails."""
    with open(path, 'r') as f:
        data = json.load(f)
    return {int(k): [tuple(p) for p in v] for k, v in data.items()}
