"""Tests for the command-line interface."""

import json
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import yaml

from blood_report.cli import extract_single, main
from blood_report.exceptions import OCRError
from blood_report.extraction.rule_extractor import RuleExtractor
from blood_report.pipeline import ExtractionPipeline
from blood_report.storage.report_store import JSONFileSlot, ReportStore

_OCR_TEXT = "Hemoglobin: 13.5 RBC 4.8 WBC: 6000 Platelet Count: 250,000"
_RECOGNIZE = "blood_report.ocr.tesseract_engine.TesseractEngine.recognize"


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Write a config pointing the history at a temporary directory."""
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.dump({"storage": {"history_dir": str(tmp_path / "history")}})
    )
    return path


@pytest.fixture
def image_file(tmp_path: Path, sample_png_bytes: bytes) -> Path:
    """Write a sample report image to disk."""
    path = tmp_path / "cbc.png"
    path.write_bytes(sample_png_bytes)
    return path


@pytest.fixture(autouse=True)
def _quiet_logging() -> Iterator[None]:
    """Keep log output off stdout so command output can be parsed."""
    with patch("blood_report.cli.setup_logging"):
        yield


def _stored(tmp_path: Path) -> list[str]:
    history = ReportStore(JSONFileSlot(tmp_path / "history")).load()
    return [r.file_name for r in history]


class TestExtractSingle:
    """Tests for the extract_single helper."""

    def test_uses_file_name_and_bytes(self, image_file: Path) -> None:
        pipeline = MagicMock(spec=ExtractionPipeline)
        extract_single(image_file, pipeline)

        upload = pipeline.run.call_args.args[0]
        assert upload.filename == "cbc.png"
        assert upload.content == image_file.read_bytes()

    def test_returns_report(self, image_file: Path, memory_store: ReportStore) -> None:
        engine = MagicMock()
        engine.recognize.return_value = _OCR_TEXT
        pipeline = ExtractionPipeline(engine, RuleExtractor(), memory_store)

        report = extract_single(image_file, pipeline)
        assert report.extracted_values["WBC"] == "6000"


class TestExtractCommand:
    """Tests for the extract subcommand."""

    @patch(_RECOGNIZE, return_value=_OCR_TEXT)
    def test_prints_json(
        self,
        mock_recognize: MagicMock,
        config_file: Path,
        image_file: Path,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        main(["-c", str(config_file), "extract", str(image_file)])

        data = json.loads(capsys.readouterr().out)
        assert data["file_name"] == "cbc.png"
        assert data["extracted_values"]["PlateletCount"] == "250,000"
        assert _stored(tmp_path) == ["cbc.png"]

    @patch(_RECOGNIZE, return_value=_OCR_TEXT)
    def test_writes_csv(
        self,
        mock_recognize: MagicMock,
        config_file: Path,
        image_file: Path,
        tmp_path: Path,
    ) -> None:
        output = tmp_path / "out" / "report.csv"
        main(
            [
                "-c",
                str(config_file),
                "extract",
                str(image_file),
                "--format",
                "csv",
                "-o",
                str(output),
            ]
        )
        assert output.read_text().splitlines()[:2] == [
            "Parameter,Value",
            "Hemoglobin,13.5",
        ]

    @patch(_RECOGNIZE, return_value=_OCR_TEXT)
    def test_writes_pdf(
        self,
        mock_recognize: MagicMock,
        config_file: Path,
        image_file: Path,
        tmp_path: Path,
    ) -> None:
        output = tmp_path / "report.pdf"
        main(
            [
                "-c",
                str(config_file),
                "extract",
                str(image_file),
                "-f",
                "pdf",
                "-o",
                str(output),
            ]
        )
        assert output.read_bytes().startswith(b"%PDF")

    @patch(_RECOGNIZE, side_effect=OCRError("unreadable"))
    def test_ocr_failure_exits(
        self,
        mock_recognize: MagicMock,
        config_file: Path,
        image_file: Path,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["-c", str(config_file), "extract", str(image_file)])

        assert exc_info.value.code == 1
        assert "OCR Processing Failed" in capsys.readouterr().err
        assert _stored(tmp_path) == []

    def test_missing_file_exits(self, config_file: Path, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["-c", str(config_file), "extract", str(tmp_path / "nope.png")])
        assert exc_info.value.code == 1

    def test_directory_exits(
        self,
        config_file: Path,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["-c", str(config_file), "extract", str(tmp_path)])

        assert exc_info.value.code == 1
        assert "is not a file" in capsys.readouterr().err
        assert _stored(tmp_path) == []


class TestHistoryCommands:
    """Tests for the history, clear and export subcommands."""

    @patch(_RECOGNIZE, return_value=_OCR_TEXT)
    def test_history_lists_reports(
        self,
        mock_recognize: MagicMock,
        config_file: Path,
        image_file: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        main(["-c", str(config_file), "extract", str(image_file)])
        capsys.readouterr()

        main(["-c", str(config_file), "history"])
        out = capsys.readouterr().out
        assert "[0] cbc.png" in out
        assert "Hemoglobin: 13.5" in out

    def test_history_empty(
        self, config_file: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        main(["-c", str(config_file), "history"])
        assert "No past reports." in capsys.readouterr().out

    @patch(_RECOGNIZE, return_value=_OCR_TEXT)
    def test_clear(
        self,
        mock_recognize: MagicMock,
        config_file: Path,
        image_file: Path,
        tmp_path: Path,
    ) -> None:
        main(["-c", str(config_file), "extract", str(image_file)])
        main(["-c", str(config_file), "clear"])
        assert _stored(tmp_path) == []

    @patch(_RECOGNIZE, return_value=_OCR_TEXT)
    def test_export_stored_report(
        self,
        mock_recognize: MagicMock,
        config_file: Path,
        image_file: Path,
        tmp_path: Path,
    ) -> None:
        main(["-c", str(config_file), "extract", str(image_file)])
        output = tmp_path / "exported.csv"
        main(["-c", str(config_file), "export", "0", "-o", str(output)])
        assert output.read_text().startswith("Parameter,Value")

    def test_export_unknown_index(
        self, config_file: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["-c", str(config_file), "export", "2"])
        assert exc_info.value.code == 1
        assert "No report at index 2" in capsys.readouterr().err


class TestNoCommand:
    """Tests for running without a subcommand."""

    def test_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0
        assert "Blood Report Parser" in capsys.readouterr().out
