"""Load collected test attempts from a JSON results file."""

import asyncio
import json
import logging
from collections.abc import Sequence
from pathlib import Path

from e2e_benchmark.attachments import record_from_attempt
from e2e_benchmark.models.observation import TestUnitRecord

log = logging.getLogger(__name__)


async def load_attempts(path: Path) -> Sequence[TestUnitRecord]:
    """Load every reported attempt from a results file.

    The document is either a list of attempt envelopes or an object with an
    ``attempts`` list. Retries are returned as separate records.

    Args:
        path: Path to the JSON file

    Returns:
        One record per attempt, in file order

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the JSON is invalid or an attempt is malformed
        InvalidMetricError: If an attempt carries out-of-range metrics

    """
    if not path.exists():
        raise FileNotFoundError(f"Attempts file not found: {path}")

    content = await asyncio.to_thread(path.read_text)

    try:
        document = json.loads(content)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e}") from e

    if isinstance(document, dict):
        document = document.get("attempts")

    if not isinstance(document, list):
        raise ValueError(
            f"Invalid attempts document in {path}: expected a list of attempts"
        )

    records = [record_from_attempt(raw) for raw in document]
    log.info("Loaded %d attempt(s) from %s", len(records), path)
    return records
