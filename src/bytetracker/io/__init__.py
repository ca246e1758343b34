"""
I/O module for the ByteTrack engine.

This module provides MOTChallenge detection reading, result writing and
JSON export of tracks and trails.

Example:
    >>> from bytetracker.io import read_mot_detections, write_mot_results
    >>> frames = read_mot_detections("MOT17-02/det/det.txt")
"""

from .mot import (
    SequenceInfo,
    read_seqinfo,
    read_mot_detections,
    write_mot_results,
    find_detection_files,
    sequence_name,
)
from .export import (
    COCOExporter,
    COCOImage,
    COCOAnnotation,
    COCOCategory,
    save_trails,
    load_trails,
)

__all__ = [
    # MOTChallenge I/O
    "SequenceInfo",
    "read_seqinfo",
    "read_mot_detections",
    "write_mot_results",
    "find_detection_files",
    "sequence_name",
    # Export
    "COCOExporter",
    "COCOImage",
    "COCOAnnotation",
    "COCOCategory",
    "save_trails",
    "load_trails",
]
