"""Upload pipeline: stage enriched test results, then load them into BigQuery."""

import logging
from pathlib import Path

from google.cloud import bigquery, storage
from pydantic import BaseModel, Field

from ciresults.test_uploader.bulk_loader import BulkLoader, create_bigquery_client
from ciresults.test_uploader.errors import InputError
from ciresults.test_uploader.models.settings import Settings
from ciresults.test_uploader.stage_writer import (
    create_storage_client,
    open_stage_writer,
    staging_location,
)
from ciresults.test_uploader.transcoder import transcode

logger = logging.getLogger(__name__)


class UploadSummary(BaseModel):
    """What a successful run staged and loaded."""

    records: int = Field(..., description="Records written to the staging object")
    staging_uri: str = Field(..., description="gs:// URI of the staging object")
    table_id: str = Field(..., description="Destination table")
    job_id: str = Field(..., description="BigQuery load job ID")
    output_rows: int | None = Field(default=None, description="Rows appended")


class UploadPipeline:
    """Runs one upload from a local test2json file."""

    def __init__(
        self,
        settings: Settings,
        storage_client: storage.Client | None = None,
        bigquery_client: bigquery.Client | None = None,
    ) -> None:
        """Initialize pipeline; clients are created on first use when omitted."""
        self.settings = settings
        self._storage_client = storage_client
        self._bigquery_client = bigquery_client

    @property
    def storage_client(self) -> storage.Client:
        """GCS client, created on first use."""
        if self._storage_client is None:
            self._storage_client = create_storage_client(self.settings.project_id)
        return self._storage_client

    @property
    def bigquery_client(self) -> bigquery.Client:
        """BigQuery client, created on first use."""
        if self._bigquery_client is None:
            self._bigquery_client = create_bigquery_client(self.settings.project_id)
        return self._bigquery_client

    def run(self, input_path: Path) -> UploadSummary:
        """Stage the file's records in GCS and append them to the table.

        The staging object is finalized before the load job is submitted.
        """
        location = staging_location(self.settings.bucket, self.settings.provenance)

        try:
            input_file = input_path.open("rb")
        except OSError as e:
            raise InputError(f"Error opening file {str(input_path)!r}: {e}") from e

        with input_file:
            with open_stage_writer(self.storage_client, location) as sink:
                try:
                    records = transcode(input_file, sink, self.settings.provenance)
                except OSError as e:
                    raise InputError(f"Error reading {input_path}: {e}") from e

        logger.info("Loading data to BigQuery...")
        loader = BulkLoader(self.bigquery_client)
        result = loader.load(
            location.uri, self.settings.table_id, timeout=self.settings.load_timeout
        )

        return UploadSummary(
            records=records,
            staging_uri=location.uri,
            table_id=self.settings.table_id,
            job_id=result.job_id,
            output_rows=result.output_rows,
        )
