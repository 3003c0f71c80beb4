"""Load run thresholds from a YAML file."""

import asyncio
from pathlib import Path

import yaml
from pydantic import ValidationError

from e2e_benchmark.models.report import Thresholds


async def load_thresholds(path: Path) -> Thresholds:
    """Load and validate a thresholds file.

    Keys may be written in snake_case or camelCase, e.g.::

        avg_duration_target_ms: 1500
        p95DurationTargetMs: 3000

    Args:
        path: Path to the YAML file

    Returns:
        Validated thresholds; unspecified knobs keep their defaults

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the YAML is invalid or does not match the schema

    """
    if not path.exists():
        raise FileNotFoundError(f"Thresholds file not found: {path}")

    content = await asyncio.to_thread(path.read_text)

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        raise ValueError(f"Empty thresholds file: {path}")

    if not isinstance(data, dict):
        raise ValueError(f"Invalid thresholds schema in {path}: expected a mapping")

    try:
        return Thresholds.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid thresholds schema in {path}: {e}") from e
