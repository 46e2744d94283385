"""Stamp provenance onto a newline-delimited stream of test2json events."""

import logging
from typing import BinaryIO

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud.storage.exceptions import DataCorruption, InvalidResponse
from pydantic import ValidationError

from ciresults.test_uploader.errors import DecodeError, WriteError
from ciresults.test_uploader.models.test_record import Provenance, TestRecord

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 1000


def transcode(input: BinaryIO, output: BinaryIO, provenance: Provenance) -> int:
    """Copy every record from input to output with provenance overwritten.

    Records are written one at a time in input order. Blank lines are
    skipped. Nothing is rolled back on failure: records written before the
    failing one stay in the output.

    Args:
        input: Binary stream of newline-delimited JSON test events
        output: Binary sink receiving the enriched records
        provenance: Values stamped onto every record

    Returns:
        Number of records written

    Raises:
        DecodeError: If a line is not a valid test record
        WriteError: If the output rejects a record

    """
    count = 0
    for line_number, line in enumerate(input, start=1):
        if not line.strip():
            continue

        try:
            record = TestRecord.from_json_line(line)
        except ValidationError as e:
            raise DecodeError(
                _summarize(e), line_number=line_number, raw=line.rstrip(b"\r\n")
            ) from e

        try:
            output.write(record.with_provenance(provenance).to_json_line())
        except (
            OSError,
            ValueError,
            GoogleAPIError,
            GoogleAuthError,
            InvalidResponse,
            DataCorruption,
        ) as e:
            raise WriteError(f"Failed writing record {count + 1}: {e}") from e

        count += 1
        if count % PROGRESS_EVERY == 0:
            logger.debug(f"Transcoded {count} records")

    logger.info(f"Transcoded {count} records")
    return count


def _summarize(error: ValidationError) -> str:
    """Render the first validation problem on one line."""
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    if location:
        return f"{location}: {first['msg']}"
    return str(first["msg"])
