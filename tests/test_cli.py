"""
Tests for the command-line interface.
"""

import json
from unittest.mock import AsyncMock, patch

from click.testing import CliRunner
from PIL import Image

from visionforge.cli import cli
from visionforge.providers import TransportError


class FakeAdapter:
    """Answers per filename; "bad*" images fail."""

    async def adapt(self, image, prompt, config, options):
        if image.filename.startswith("bad"):
            raise TransportError(500, "boom")
        return {"caption": f"caption of {image.filename}", "tags": ["cat"], "confidence": 0.9}


def write_images(directory, *names):
    for name in names:
        Image.new("RGB", (4, 4)).save(directory / name, format="PNG")


class TestProvidersCommand:
    """Tests for the providers listing."""

    def test_lists_presets(self):
        result = CliRunner().invoke(cli, ["providers"])

        assert result.exit_code == 0
        assert "google" in result.output
        assert "https://api.deepseek.com" in result.output


class TestRunCommand:
    """Tests for the run command with a faked adapter."""

    def test_run_writes_dataset_and_report(self, tmp_path):
        write_images(tmp_path, "a.png", "bad.png")
        output = tmp_path / "out.jsonl"
        report = tmp_path / "report.txt"

        with patch("visionforge.batch.create_adapter", return_value=FakeAdapter()):
            result = CliRunner().invoke(cli, [
                "run", str(tmp_path),
                "--provider", "openai",
                "--api-key", "sk-test",
                "--confidence",
                "--output", str(output),
                "--report", str(report),
            ])

        assert result.exit_code == 0, result.output
        assert "Completed: 1/2 images" in result.output
        assert "1 images failed" in result.output

        records = [json.loads(line) for line in output.read_text(encoding="utf-8").splitlines()]
        assert len(records) == 1
        assert records[0]["image"] == "a.png"
        assert records[0]["confidence"] == 0.9
        assert records[0]["stats"]["model"] == "gpt-4o"
        assert "Total processed: 1" in report.read_text(encoding="utf-8")

    def test_run_preserves_jsonl_fields(self, tmp_path):
        write_images(tmp_path, "a.png")
        jsonl = tmp_path / "meta.jsonl"
        jsonl.write_text(json.dumps({"file_name": "a.png", "split": "train"}) + "\n", encoding="utf-8")
        output = tmp_path / "out.jsonl"

        with patch("visionforge.batch.create_adapter", return_value=FakeAdapter()):
            result = CliRunner().invoke(cli, [
                "run", str(tmp_path / "a.png"),
                "--provider", "openai",
                "--api-key", "sk-test",
                "--jsonl", str(jsonl),
                "--no-stats",
                "--output", str(output),
            ])

        assert result.exit_code == 0, result.output
        assert "Matched 1/1" in result.output
        record = json.loads(output.read_text(encoding="utf-8"))
        assert record["split"] == "train"
        assert "stats" not in record

    def test_skips_explicit_non_image(self, tmp_path):
        notes = tmp_path / "notes.png"
        notes.write_text("not an image")

        result = CliRunner().invoke(cli, ["run", str(notes), "--api-key", "k"])

        assert result.exit_code == 0
        assert "No images found." in result.output

    def test_missing_api_key_exits(self, tmp_path):
        write_images(tmp_path, "a.png")

        with patch("visionforge.batch.create_adapter") as factory:
            result = CliRunner().invoke(cli, [
                "run", str(tmp_path),
                "--provider", "openai",
                "--api-key", "",
                "--output", str(tmp_path / "out.jsonl"),
            ])

        assert result.exit_code == 1
        factory.assert_not_called()
        assert not (tmp_path / "out.jsonl").exists()


class TestOptimizeCommand:
    """Tests for the optimize command."""

    def test_prints_optimized_prompt(self):
        with patch("visionforge.optimizer.optimize_prompt", new=AsyncMock(return_value="Refined")):
            result = CliRunner().invoke(cli, ["optimize", "cats", "--api-key", "k"])

        assert result.exit_code == 0
        assert result.output.strip() == "Refined"

    def test_missing_key_exits(self):
        result = CliRunner().invoke(cli, ["optimize", "cats", "--provider", "openai", "--api-key", ""])
        assert result.exit_code == 1
