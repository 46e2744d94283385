"""Tests for CLI entry point."""

import json
from pathlib import Path
from unittest.mock import patch

from typer.testing import CliRunner

from ciresults.test_uploader.cli import app
from ciresults.test_uploader.errors import DecodeError, LoadError
from ciresults.test_uploader.pipeline import UploadSummary

runner = CliRunner()

ENVIRON = {
    "BIGQUERY_PROJECT": "my-project",
    "BIGQUERY_DATASET": "ci",
    "BIGQUERY_TABLE": "test_results",
    "TEST_RESULTS_BUCKET": "test-results",
    "CIRCLE_REPOSITORY_URL": "r",
    "CIRCLE_STAGE": "test",
    "CIRCLE_BRANCH": "main",
    "CIRCLE_BUILD_NUM": "42",
    "CIRCLE_SHA1": "abc",
}

SUMMARY = UploadSummary(
    records=3,
    staging_uri="gs://test-results/r/main/42-test-abc",
    table_id="my-project.ci.test_results",
    job_id="job-123",
    output_rows=3,
)


def test_main_success(tmp_path: Path) -> None:
    """Main prints a JSON summary and exits successfully."""
    input_file = tmp_path / "results.json"

    with (
        patch.dict("os.environ", ENVIRON, clear=True),
        patch("ciresults.test_uploader.cli.UploadPipeline") as pipeline_class,
    ):
        pipeline_class.return_value.run.return_value = SUMMARY
        result = runner.invoke(app, [str(input_file)])

    assert result.exit_code == 0
    output = json.loads(result.stdout)
    assert output["records"] == 3
    assert output["job_id"] == "job-123"

    settings = pipeline_class.call_args[0][0]
    assert settings.table_id == "my-project.ci.test_results"
    assert settings.load_timeout is None
    pipeline_class.return_value.run.assert_called_once_with(input_file)


def test_main_load_timeout_option(tmp_path: Path) -> None:
    """--load-timeout bounds the load wait."""
    with (
        patch.dict("os.environ", ENVIRON, clear=True),
        patch("ciresults.test_uploader.cli.UploadPipeline") as pipeline_class,
    ):
        pipeline_class.return_value.run.return_value = SUMMARY
        result = runner.invoke(
            app, [str(tmp_path / "results.json"), "--load-timeout", "12.5"]
        )

    assert result.exit_code == 0
    assert pipeline_class.call_args[0][0].load_timeout == 12.5


def test_main_config_file(tmp_path: Path) -> None:
    """Settings missing from the environment come from --config."""
    config_file = tmp_path / "uploader.yaml"
    config_file.write_text("bucket: other-bucket\n")
    environ = {k: v for k, v in ENVIRON.items() if k != "TEST_RESULTS_BUCKET"}

    with (
        patch.dict("os.environ", environ, clear=True),
        patch("ciresults.test_uploader.cli.UploadPipeline") as pipeline_class,
    ):
        pipeline_class.return_value.run.return_value = SUMMARY
        result = runner.invoke(
            app, [str(tmp_path / "results.json"), "--config", str(config_file)]
        )

    assert result.exit_code == 0
    assert pipeline_class.call_args[0][0].bucket == "other-bucket"


def test_main_missing_configuration(tmp_path: Path) -> None:
    """Missing settings fail before the pipeline runs."""
    with (
        patch.dict("os.environ", {}, clear=True),
        patch("ciresults.test_uploader.cli.UploadPipeline") as pipeline_class,
    ):
        result = runner.invoke(app, [str(tmp_path / "results.json")])

    assert result.exit_code == 1
    assert "Error (configuration)" in result.output
    assert "BIGQUERY_PROJECT" in result.output
    pipeline_class.assert_not_called()


def test_main_decode_failure(tmp_path: Path) -> None:
    """A decode error names the failing stage and line."""
    with (
        patch.dict("os.environ", ENVIRON, clear=True),
        patch("ciresults.test_uploader.cli.UploadPipeline") as pipeline_class,
    ):
        pipeline_class.return_value.run.side_effect = DecodeError(
            "Invalid JSON", line_number=3, raw=b"{"
        )
        result = runner.invoke(app, [str(tmp_path / "results.json")])

    assert result.exit_code == 1
    assert "Error (decode): line 3: Invalid JSON" in result.output


def test_main_load_failure(tmp_path: Path) -> None:
    """A failed load job exits non-zero."""
    with (
        patch.dict("os.environ", ENVIRON, clear=True),
        patch("ciresults.test_uploader.cli.UploadPipeline") as pipeline_class,
    ):
        pipeline_class.return_value.run.side_effect = LoadError(
            "BigQuery upload completed with error: schema mismatch"
        )
        result = runner.invoke(app, [str(tmp_path / "results.json")])

    assert result.exit_code == 1
    assert "Error (load): BigQuery upload completed with error" in result.output


def test_main_missing_input_argument() -> None:
    """The input file argument is required."""
    result = runner.invoke(app, [])
    assert result.exit_code == 2
