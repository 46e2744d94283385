"""CLI entry point for uploading test results to BigQuery."""

import logging
import os
import sys
from pathlib import Path

import typer

from ciresults.test_uploader.config import load_settings
from ciresults.test_uploader.errors import UploadError
from ciresults.test_uploader.pipeline import UploadPipeline

# Configure logging - force reconfiguration
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
    force=True,  # Force reconfiguration even if already set up
)
logger = logging.getLogger(__name__)

app = typer.Typer()


@app.command()
def main(
    input_file: Path = typer.Argument(..., help="go test -json output to upload"),  # noqa: B008
    config: Path | None = typer.Option(  # noqa: B008
        None, "--config", help="YAML file with settings; environment overrides it"
    ),
    load_timeout: float | None = typer.Option(
        None, "--load-timeout", help="Seconds to wait for the BigQuery load job"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    """Stamp CI provenance onto test results and append them to BigQuery."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        settings = load_settings(
            os.environ, config, overrides={"load_timeout": load_timeout}
        )

        logger.info(f"Input file: {input_file}")
        logger.info(f"Destination table: {settings.table_id}")
        summary = UploadPipeline(settings).run(input_file)
    except UploadError as e:
        logger.debug("Upload failed", exc_info=True)
        typer.echo(f"Error ({e.stage}): {e}", err=True)
        raise typer.Exit(code=1)

    logger.info(
        f"Uploaded {summary.records} records to {summary.table_id} "
        f"(job {summary.job_id})"
    )
    typer.echo(summary.model_dump_json())


if __name__ == "__main__":  # pragma: no cover
    app()
