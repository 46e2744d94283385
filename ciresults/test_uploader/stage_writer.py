"""Stage enriched test results as a single object in Google Cloud Storage."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import BinaryIO

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import storage
from google.cloud.storage.exceptions import DataCorruption, InvalidResponse
from pydantic import BaseModel, ConfigDict, Field

from ciresults.test_uploader.errors import StorageError
from ciresults.test_uploader.models.test_record import Provenance

logger = logging.getLogger(__name__)

CONTENT_TYPE = "application/x-ndjson"
WRITE_PERMISSION = "storage.objects.create"

# BlobWriter raises the storage package's own errors for failed upload requests
UPLOAD_ERRORS = (
    GoogleAuthError,
    GoogleAPIError,
    InvalidResponse,
    DataCorruption,
    OSError,
    ValueError,
)


class StagingLocation(BaseModel):
    """Bucket and object name of the staged results."""

    model_config = ConfigDict(frozen=True)

    bucket: str = Field(..., description="GCS bucket name")
    object_name: str = Field(..., description="Object name within the bucket")

    @property
    def uri(self) -> str:
        """``gs://`` URI used as the load job source."""
        return f"gs://{self.bucket}/{self.object_name}"


def staging_location(bucket: str, provenance: Provenance) -> StagingLocation:
    """Derive the staging object for a run.

    The name only depends on the provenance, so rerunning the same build
    stage addresses the same object.
    """
    object_name = (
        f"{provenance.repo}/{provenance.branch}/"
        f"{provenance.run}-{provenance.stage}-{provenance.commit}"
    )
    return StagingLocation(bucket=bucket, object_name=object_name)


def create_storage_client(project: str) -> storage.Client:
    """Create a GCS client using application default credentials.

    Raises:
        StorageError: If the client cannot be constructed

    """
    try:
        return storage.Client(project=project)
    except (GoogleAuthError, GoogleAPIError, OSError) as e:
        raise StorageError(f"Error creating GCS client: {e}") from e


@contextmanager
def open_stage_writer(
    client: storage.Client, location: StagingLocation
) -> Iterator[BinaryIO]:
    """Open the staging object as a write-only binary sink.

    Write access to the bucket is checked up front, so a denied or missing
    bucket fails here rather than when the upload is finalized. The sink is
    closed exactly once when the block exits. Closing finalizes the upload;
    the object is not visible to readers before that.

    Raises:
        StorageError: If the sink cannot be opened, or cannot be finalized
            after the block completed normally

    """
    try:
        bucket = client.bucket(location.bucket)
        granted = bucket.test_iam_permissions([WRITE_PERMISSION])
        if WRITE_PERMISSION not in granted:
            raise StorageError(
                f"Cannot open {location.uri} for writing: "
                f"caller lacks {WRITE_PERMISSION}"
            )
        blob = bucket.blob(location.object_name)
        blob.content_type = CONTENT_TYPE
        writer = blob.open("wb", ignore_flush=True)
    except UPLOAD_ERRORS as e:
        raise StorageError(f"Cannot open {location.uri} for writing: {e}") from e

    logger.info(f"Uploading test data to {location.uri}")
    try:
        yield writer
    except BaseException:
        try:
            writer.close()
        except Exception:
            logger.exception(f"Failed to finalize {location.uri} after error")
        raise

    try:
        writer.close()
    except UPLOAD_ERRORS as e:
        raise StorageError(f"Failed to finalize {location.uri}: {e}") from e
    logger.info(f"Finalized {location.uri}")
