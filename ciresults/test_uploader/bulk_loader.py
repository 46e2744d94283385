"""Bulk-load staged test results from GCS into BigQuery."""

import concurrent.futures
import logging
from enum import Enum

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import bigquery
from pydantic import BaseModel, Field

from ciresults.test_uploader.errors import LoadError, SubmissionError

logger = logging.getLogger(__name__)


class LoadJobState(str, Enum):
    """Lifecycle of a load job as seen by the uploader."""

    SUBMITTED = "submitted"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class LoadResult(BaseModel):
    """Outcome of a completed load job."""

    job_id: str = Field(..., description="BigQuery job ID")
    state: LoadJobState = Field(..., description="Terminal job state")
    output_rows: int | None = Field(
        default=None, description="Rows appended to the destination table"
    )


def job_state(job: bigquery.LoadJob) -> LoadJobState:
    """Map a BigQuery job's reported state onto LoadJobState."""
    mapping = {
        "PENDING": LoadJobState.SUBMITTED,
        "RUNNING": LoadJobState.RUNNING,
    }
    if job.state == "DONE":
        return LoadJobState.FAILED if job.error_result else LoadJobState.SUCCEEDED
    return mapping.get(str(job.state), LoadJobState.SUBMITTED)


def create_bigquery_client(project: str) -> bigquery.Client:
    """Create a BigQuery client using application default credentials.

    Raises:
        SubmissionError: If the client cannot be constructed

    """
    try:
        return bigquery.Client(project=project)
    except (GoogleAuthError, GoogleAPIError, OSError) as e:
        raise SubmissionError(f"Error creating BigQuery client: {e}") from e


class BulkLoader:
    """Appends newline-delimited JSON from GCS to a BigQuery table."""

    def __init__(self, client: bigquery.Client) -> None:
        """Initialize loader with a BigQuery client."""
        self.client = client

    def job_config(self) -> bigquery.LoadJobConfig:
        """Append rows, detecting the schema from the staged data."""
        return bigquery.LoadJobConfig(
            source_format=bigquery.SourceFormat.NEWLINE_DELIMITED_JSON,
            autodetect=True,
            write_disposition=bigquery.WriteDisposition.WRITE_APPEND,
        )

    def submit(self, source_uri: str, table_id: str) -> bigquery.LoadJob:
        """Submit a load job from source_uri into table_id.

        Raises:
            SubmissionError: If BigQuery does not accept the job

        """
        logger.info(f"Loading {source_uri} into {table_id}")
        try:
            job = self.client.load_table_from_uri(
                source_uri, table_id, job_config=self.job_config()
            )
        except (GoogleAPIError, ValueError) as e:
            raise SubmissionError(f"BigQuery loader failed: {e}") from e

        logger.info(f"Job: {job.job_id} ({job_state(job).value})")
        return job

    def wait(
        self, job: bigquery.LoadJob, timeout: float | None = None
    ) -> LoadResult:
        """Block until the job reaches a terminal state.

        Args:
            job: Job returned by submit
            timeout: Seconds to wait; None waits as long as the job runs

        Returns:
            Result of the successful job

        Raises:
            LoadError: If the job fails, or the wait itself fails

        """
        try:
            job.result(timeout=timeout)
        except GoogleAPIError as e:
            if job.error_result:
                raise self._job_failed(job) from e
            raise LoadError(
                f"BigQuery watch failed: {e}", job_id=job.job_id
            ) from e
        except concurrent.futures.TimeoutError as e:
            raise LoadError(
                f"Load job {job.job_id} did not complete within {timeout} seconds",
                job_id=job.job_id,
            ) from e

        state = job_state(job)
        if state is LoadJobState.FAILED:
            raise self._job_failed(job)

        logger.info(f"Job {job.job_id} {state.value}: {job.output_rows} rows loaded")
        return LoadResult(
            job_id=job.job_id, state=state, output_rows=job.output_rows
        )

    def load(
        self, source_uri: str, table_id: str, timeout: float | None = None
    ) -> LoadResult:
        """Submit a load job and wait for it to finish."""
        job = self.submit(source_uri, table_id)
        return self.wait(job, timeout=timeout)

    def _job_failed(self, job: bigquery.LoadJob) -> LoadError:
        """Build the error for a job that finished unsuccessfully."""
        error_result = job.error_result or {}
        message = error_result.get("message", "unknown error")
        errors = job.errors or []
        for error in errors:
            logger.error(f"Load job {job.job_id} error: {error}")
        return LoadError(
            f"BigQuery upload completed with error: {message}",
            errors=errors,
            job_id=job.job_id,
        )
