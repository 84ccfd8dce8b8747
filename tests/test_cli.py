"""Tests for the faceguide command-line interface."""

import json

import cv2
import numpy as np
import pytest
from typer.testing import CliRunner

from faceguide import __version__
from faceguide.cli import app
from faceguide.vision.detector import DetectorInitError

from conftest import make_face

runner = CliRunner()


class StubDetector:
    faces = [make_face(0.5, 0.5)]
    fail = False

    @classmethod
    def from_settings(cls, config):
        return cls()

    def __enter__(self):
        if self.fail:
            raise DetectorInitError("model missing")
        return self

    def __exit__(self, *exc):
        return False

    def detect(self, frame, timestamp_ms):
        return [self.faces[0]]


@pytest.fixture
def image_path(tmp_path):
    path = tmp_path / "face.png"
    cv2.imwrite(str(path), np.full((48, 64, 3), 200, dtype=np.uint8))
    return path


@pytest.fixture
def stub_detector(monkeypatch):
    monkeypatch.setattr("faceguide.vision.detector.FaceLandmarkDetector", StubDetector)
    return StubDetector


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout


class TestAnalyze:
    def test_missing_image(self, tmp_path):
        result = runner.invoke(app, ["analyze", str(tmp_path / "nope.png")])
        assert result.exit_code == 1

    def test_undecodable_image(self, tmp_path):
        path = tmp_path / "broken.png"
        path.write_bytes(b"not an image")
        result = runner.invoke(app, ["analyze", str(path)])
        assert result.exit_code == 1

    def test_table(self, image_path, stub_detector):
        result = runner.invoke(app, ["analyze", str(image_path)])
        assert result.exit_code == 0
        assert "Face Detected" in result.stdout
        assert "Yes" in result.stdout

    def test_json(self, image_path, stub_detector):
        result = runner.invoke(app, ["analyze", str(image_path), "--json"])
        assert result.exit_code == 0

        payload = json.loads(result.stdout.strip().splitlines()[-1])
        assert payload["faceFound"] is True
        assert payload["position"] is True
        assert payload["lighting"] is True
        assert payload["image"].startswith("data:image/png;base64,")

    def test_overlay(self, image_path, stub_detector, tmp_path):
        out = tmp_path / "out" / "annotated.png"
        result = runner.invoke(app, ["analyze", str(image_path), "--overlay", str(out)])
        assert result.exit_code == 0
        assert cv2.imread(str(out)).shape == (48, 64, 3)

    def test_detector_init_failure(self, image_path, stub_detector, monkeypatch):
        monkeypatch.setattr(StubDetector, "fail", True)
        result = runner.invoke(app, ["analyze", str(image_path)])
        assert result.exit_code == 1


class TestDownloadModel:
    def test_existing_model_is_kept(self, tmp_path):
        model = tmp_path / "face_landmarker.task"
        model.write_bytes(b"model")

        result = runner.invoke(app, ["download-model", "--output", str(model)])

        assert result.exit_code == 0
        assert model.read_bytes() == b"model"


class TestRun:
    def test_unknown_fit_mode(self):
        result = runner.invoke(app, ["run", "--fit", "stretch"])
        assert result.exit_code == 1

    @pytest.mark.parametrize(
        "args",
        [["--width", "0"], ["--height", "-480"], ["--snapshot-interval", "-1"]],
    )
    def test_invalid_display_options(self, args, monkeypatch):
        def fail_from_settings(*a, **kw):
            raise AssertionError("pipeline must not be built for invalid options")

        monkeypatch.setattr("faceguide.pipeline.FramingPipeline.from_settings", fail_from_settings)

        result = runner.invoke(app, ["run", *args])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Error" in result.output


class TestServe:
    def test_negative_snapshot_interval(self, monkeypatch):
        def fail_run(*a, **kw):
            raise AssertionError("server must not start for invalid options")

        monkeypatch.setattr("uvicorn.run", fail_run)

        result = runner.invoke(app, ["serve", "--snapshot-interval", "-0.5"])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
