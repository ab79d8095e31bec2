"""Tests for the headless simulation CLI."""

import json

import numpy as np
import pytest

from photoburst.cli import build_parser, main


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.duration == 10.0
        assert args.fps == 60
        assert args.seed is None
        assert args.images is None
        assert not args.no_auto_fire

    def test_rejects_bad_log_level(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--log-level", "CHATTY"])


class TestMain:
    def test_writes_outputs(self, tmp_path, capsys):
        npz = tmp_path / "particles.npz"
        summary = tmp_path / "summary.json"
        main([
            "--duration", "1.5",
            "--fps", "30",
            "--seed", "4",
            "-o", str(npz),
            "--summary", str(summary),
            "--log-level", "WARNING",
        ])

        assert npz.exists()
        with np.load(npz) as data:
            assert data["live"].any()
        with open(summary) as f:
            data = json.load(f)
        assert data["metadata"]["time"] == pytest.approx(1.5)
        out = capsys.readouterr().out
        assert "Simulating 45 frames @ 30fps" in out
        # Progress lines report simulated time and live particles
        assert "100%  t=  1.50s  live" in out

    def test_with_images(self, tmp_path, colorful_image):
        images = tmp_path / "photos"
        images.mkdir()
        colorful_image.save(images / "bands.png")
        summary = tmp_path / "summary.json"

        main([
            "--duration", "1.0",
            "--fps", "20",
            "--seed", "2",
            "--images", str(images),
            "--photo-every", "0.5",
            "--summary", str(summary),
            "--log-level", "ERROR",
        ])

        with open(summary) as f:
            photos = json.load(f)["photos"]
        assert len(photos) == 1
        assert photos[0]["source"].endswith("bands.png")

    def test_missing_image_dir(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main(["--images", str(tmp_path / "nope"), "--duration", "0.1"])
        assert exc.value.code == 1

    def test_no_auto_fire(self, tmp_path):
        summary = tmp_path / "summary.json"
        main([
            "--duration", "0.5",
            "--seed", "1",
            "--no-auto-fire",
            "--summary", str(summary),
            "--log-level", "ERROR",
        ])
        with open(summary) as f:
            data = json.load(f)
        # Only the opening salvo is in the air
        assert len(data["shells"]) == 6
