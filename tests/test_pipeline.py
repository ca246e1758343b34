"""
Integration tests for the tracking pipeline and command-line interface.
"""

import json

import pytest

from bytetracker import PipelineConfig, TrackingPipeline, run_pipeline
from bytetracker.cli import main


def write_sequence(seq_dir, frame_rate=None, n_frames=4):
    """Write a small MOTChallenge sequence with two moving objects."""
    lines = []
    for frame in range(1, n_frames + 1):
        lines.append(f"{frame},-1,{10 + frame},20,100,200,0.9,-1,-1,-1")
        lines.append(f"{frame},-1,{400 + frame},50,80,160,0.8,-1,-1,-1")
    (seq_dir / "det").mkdir(parents=True)
    (seq_dir / "det" / "det.txt").write_text("\n".join(lines) + "\n")

    if frame_rate is not None:
        (seq_dir / "seqinfo.ini").write_text(
            "[Sequence]\n"
            f"name={seq_dir.name}\n"
            f"frameRate={frame_rate}\n"
            f"seqLength={n_frames + 1}\n"
            "imWidth=640\n"
            "imHeight=480\n"
        )
    return seq_dir / "det" / "det.txt"


class TestTrackingPipeline:
    """Tests for TrackingPipeline."""

    def test_process_file(self, tmp_path):
        det_path = write_sequence(tmp_path / "seq")
        out = tmp_path / "out"

        results = TrackingPipeline().process_file(det_path, out, show_progress=False)

        assert [r.frame_id for r in results] == [1, 2, 3, 4]
        assert all([t.track_id for t in r.tracks] == [1, 2] for r in results)

        lines = (out / "seq.txt").read_text().splitlines()
        assert len(lines) == 8
        assert lines[0].startswith("1,1,")
        assert (out / "seq_annotations.json").exists()
        assert not (out / "seq_trails.json").exists()

    def test_process_sequence_uses_seqinfo(self, tmp_path):
        seq_dir = tmp_path / "MOT-05"
        write_sequence(seq_dir, frame_rate=15)
        out = tmp_path / "out"

        pipeline = TrackingPipeline()
        results = pipeline.process_sequence(seq_dir, out, show_progress=False)

        assert pipeline.tracker.config.frame_rate == 15
        assert pipeline.tracker.max_time_lost == 15
        # seqLength covers one frame past the last detection
        assert len(results) == 5
        assert len(results[-1]) == 0

        with open(out / "MOT-05_annotations.json") as f:
            data = json.load(f)
        assert data["images"][0]["width"] == 640
        assert len(data["annotations"]) == 8

    def test_frame_rate_restored_between_sequences(self, tmp_path):
        slow = tmp_path / "slow"
        write_sequence(slow, frame_rate=10)
        plain = write_sequence(tmp_path / "plain")

        pipeline = TrackingPipeline()
        pipeline.process_sequence(slow, tmp_path / "out", show_progress=False)
        pipeline.process_file(plain, tmp_path / "out", show_progress=False)

        assert pipeline.tracker.config.frame_rate == 30

    def test_track_ids_restart_per_file(self, tmp_path):
        det_path = write_sequence(tmp_path / "seq")
        pipeline = TrackingPipeline()

        pipeline.process_file(det_path, tmp_path / "out", show_progress=False)
        results = pipeline.process_file(det_path, tmp_path / "out", show_progress=False)

        assert [t.track_id for t in results[0].tracks] == [1, 2]

    def test_trails(self, tmp_path):
        det_path = write_sequence(tmp_path / "seq")
        config = PipelineConfig()
        config.output.save_trails = True
        config.output.trail_size = 2

        TrackingPipeline(config).process_file(det_path, tmp_path / "out", show_progress=False)

        with open(tmp_path / "out" / "seq_trails.json") as f:
            data = json.load(f)
        assert sorted(data) == ["1", "2"]
        assert len(data["1"]) == 2

    def test_process_directory_skips_failures(self, tmp_path):
        data_dir = tmp_path / "data"
        write_sequence(data_dir / "MOT-01", frame_rate=30)
        write_sequence(data_dir / "MOT-02")
        (data_dir / "broken.txt").write_text("1,2,3\n")

        results = TrackingPipeline().process_directory(
            data_dir, tmp_path / "out", show_progress=False
        )

        assert sorted(results) == ["MOT-01", "MOT-02"]

    def test_process_directory_empty(self, tmp_path):
        assert TrackingPipeline().process_directory(tmp_path, show_progress=False) == {}


class TestRunPipeline:
    """Tests for run_pipeline dispatch."""

    def test_file(self, tmp_path):
        det_path = write_sequence(tmp_path / "seq")

        results = run_pipeline(det_path, tmp_path / "out", show_progress=False)

        assert list(results) == ["seq"]

    def test_sequence_dir(self, tmp_path):
        write_sequence(tmp_path / "MOT-03")

        results = run_pipeline(
            tmp_path / "MOT-03", tmp_path / "out",
            exclude_patterns=[], show_progress=False
        )

        assert list(results) == ["MOT-03"]

    def test_missing_sequence_detections(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            TrackingPipeline().process_sequence(tmp_path)


class TestCLI:
    """Tests for the command-line interface."""

    def test_track(self, tmp_path):
        det_path = write_sequence(tmp_path / "seq")
        out = tmp_path / "out"

        code = main(["track", str(det_path), "-o", str(out), "--no-progress", "--trails"])

        assert code == 0
        assert (out / "seq.txt").exists()
        assert (out / "seq_trails.json").exists()

    def test_track_missing_input(self, tmp_path):
        assert main(["track", str(tmp_path / "missing.txt")]) == 1

    def test_track_missing_config(self, tmp_path):
        det_path = write_sequence(tmp_path / "seq")
        code = main(["track", str(det_path), "-c", str(tmp_path / "missing.yaml")])
        assert code == 1

    def test_track_with_config(self, tmp_path):
        det_path = write_sequence(tmp_path / "seq")
        config_path = tmp_path / "config.yaml"
        assert main(["config", "--generate", str(config_path)]) == 0

        code = main([
            "track", str(det_path), "-c", str(config_path),
            "-o", str(tmp_path / "out"), "--no-progress",
            "--track-thresh", "0.95",
        ])

        # No detection reaches the threshold, so no boxes are written
        assert code == 0
        assert (tmp_path / "out" / "seq.txt").read_text() == ""

    def test_config_show(self, capsys):
        assert main(["config", "--show"]) == 0
        assert "track_thresh" in capsys.readouterr().out

    def test_no_command(self, capsys):
        assert main([]) == 0
