"""
Recorded metric ingestion from CSV and NDJSON files.

Used to replay captured telemetry through a monitoring session (incident
reviews, threshold tuning). Gracefully handles malformed rows by skipping
them and logging warnings.

Design:
- Format detection from the file suffix, or explicit format specification
- pandas handles the tabular parsing; each row is validated as a MetricSnapshot
- Bad rows are logged but don't stop the replay
- Rows without a tick index are numbered in file order
"""

import logging
import math
import numbers
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

import pandas as pd
from pydantic import ValidationError

from src.core.exceptions import MetricIngestionError

from .schema import MetricSnapshot

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("csv", "json")

# Column spellings accepted from exporters, mapped to snapshot field names
COLUMN_ALIASES: Dict[str, str] = {
    "errorRate": "error_rate",
    "error_rate": "error_rate",
    "tickIndex": "tick_index",
    "tick": "tick_index",
    "tick_index": "tick_index",
    "ts": "timestamp",
    "time": "timestamp",
    "timestamp": "timestamp",
    "rate": "rate",
    "p99": "p99",
    "saturation": "saturation",
}


def detect_format(path: Path) -> str:
    """
    Detect file format from its suffix.

    Returns:
        "csv" or "json" (NDJSON)

    Raises:
        MetricIngestionError: If the suffix is not recognized
    """
    suffix = path.suffix.lower()
    if suffix in {".csv", ".tsv"}:
        return "csv"
    if suffix in {".json", ".jsonl", ".ndjson"}:
        return "json"
    raise MetricIngestionError(f"Cannot detect metric file format for {path}")


def read_frame(path: Union[str, Path], format: str = "auto") -> pd.DataFrame:
    """
    Read a recorded metric file into a DataFrame with normalized column names.

    Raises:
        MetricIngestionError: If the file is missing or unreadable
    """
    path = Path(path)
    if not path.exists():
        raise MetricIngestionError(f"Metric file not found: {path}")

    fmt = detect_format(path) if format == "auto" else format
    if fmt not in SUPPORTED_FORMATS:
        raise MetricIngestionError(f"Unsupported metric file format: {fmt}")

    try:
        if fmt == "csv":
            sep = "\t" if path.suffix.lower() == ".tsv" else ","
            frame = pd.read_csv(path, sep=sep)
        else:
            frame = pd.read_json(path, lines=path.suffix.lower() != ".json")
    except (ValueError, OSError) as e:
        logger.error(f"Error reading metric file {path}: {e}")
        raise MetricIngestionError(f"Failed to read metric file: {e}") from e

    frame = frame.rename(columns={c: COLUMN_ALIASES.get(c, c) for c in frame.columns})
    unknown = [c for c in frame.columns if c not in COLUMN_ALIASES.values()]
    if unknown:
        logger.debug(f"Ignoring unknown columns in {path}: {unknown}")
        frame = frame.drop(columns=unknown)
    return frame


def _to_utc_timestamp(value: Any):
    # Exporters write epoch milliseconds or ISO strings
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        stamp = pd.to_datetime(value, unit="ms", utc=True)
    else:
        stamp = pd.Timestamp(value)
        stamp = stamp.tz_localize("UTC") if stamp.tzinfo is None else stamp.tz_convert("UTC")
    return stamp.to_pydatetime()


def _row_to_payload(row: Dict[str, Any], position: int) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    for key, value in row.items():
        if isinstance(value, float) and math.isnan(value):
            continue
        if key == "timestamp":
            value = _to_utc_timestamp(value)
        payload[key] = value
    if "tick_index" in payload:
        payload["tick_index"] = int(payload["tick_index"])
    else:
        payload["tick_index"] = position
    return payload


def load_snapshots(
    path: Union[str, Path], format: str = "auto"
) -> Tuple[List[MetricSnapshot], List[int]]:
    """
    Load recorded snapshots from a CSV or NDJSON file.

    Args:
        path: File to read
        format: "csv", "json" or "auto" (from suffix)

    Returns:
        Tuple of (snapshots in file order, 1-based row numbers that were skipped)

    Raises:
        MetricIngestionError: If the file cannot be read at all
    """
    frame = read_frame(path, format=format)

    snapshots: List[MetricSnapshot] = []
    skipped: List[int] = []

    for position, row in enumerate(frame.to_dict(orient="records")):
        try:
            payload = _row_to_payload(row, position)
            snapshots.append(MetricSnapshot(**payload))
        except (ValidationError, ValueError, TypeError) as e:
            logger.warning(f"Skipping metric row {position + 1} in {path}: {e}")
            skipped.append(position + 1)

    logger.info(f"Loaded {len(snapshots)} snapshots from {path} ({len(skipped)} skipped)")
    return snapshots, skipped
