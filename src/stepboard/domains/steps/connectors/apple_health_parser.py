"""Apple Health XML export parser for step counts.

Parses the ``export.xml`` file produced by Apple Health (iOS → Share → Export
Health Data). Supports incremental parsing of large files via iterparse.

Only ``HKQuantityTypeIdentifierStepCount`` records are kept. A step record
looks like::

    <Record type="HKQuantityTypeIdentifierStepCount" sourceName="iPhone"
            device="&lt;&lt;HKDevice: 0x2830&gt;, name:iPhone, model:iPhone&gt;"
            unit="count" value="412"
            startDate="2026-02-01 08:00:00 -0500"
            endDate="2026-02-01 08:10:00 -0500">
      <MetadataEntry key="HKWasUserEntered" value="1"/>
    </Record>
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from datetime import datetime
from pathlib import Path
from typing import Any

from stepboard.domains.steps.domain_logic.step_models import (
    WAS_USER_ENTERED_KEY,
    StepSample,
)

logger = logging.getLogger(__name__)

_STEPS = "HKQuantityTypeIdentifierStepCount"

# Metadata keys whose export value is a 0/1 flag
_BOOLEAN_KEYS = {WAS_USER_ENTERED_KEY}

_DEVICE_NAME = re.compile(r"name:([^,>]+)")


class AppleHealthParseError(Exception):
    """Raised when parsing Apple Health export XML fails."""


def _parse_date(date_str: str) -> datetime:
    """Parse Apple Health date format: '2025-12-01 08:30:00 -0500'."""
    try:
        return datetime.strptime(date_str, "%Y-%m-%d %H:%M:%S %z")
    except ValueError:
        # Fallback for ISO format
        return datetime.fromisoformat(date_str)


def _parse_device_name(device: str) -> str | None:
    """Pull the ``name:`` field out of an HKDevice description string."""
    if not device:
        return None
    match = _DEVICE_NAME.search(device)
    if match:
        return match.group(1).strip()
    return device.strip() or None


def _metadata_value(key: str, raw: str) -> Any:
    if key in _BOOLEAN_KEYS:
        if raw.strip().lower() in ("1", "true", "yes"):
            return True
        if raw.strip().lower() in ("0", "false", "no"):
            return False
    return raw


def _parse_metadata(record: ET.Element) -> dict[str, Any]:
    metadata: dict[str, Any] = {}
    for entry in record.iter("MetadataEntry"):
        key = entry.get("key", "")
        if key:
            metadata[key] = _metadata_value(key, entry.get("value", ""))
    return metadata


def _parse_step_record(record: ET.Element) -> StepSample | None:
    """Convert one step ``Record`` element, or None if it is malformed."""
    start_str = record.get("startDate", "")
    value_str = record.get("value", "")
    if not start_str or not value_str:
        return None
    try:
        start = _parse_date(start_str)
        end_str = record.get("endDate", "")
        end = _parse_date(end_str) if end_str else start
        count = int(float(value_str))
    except (ValueError, TypeError):
        return None
    if count < 0:
        return None

    return StepSample.from_metadata(
        start_time=start,
        end_time=end,
        step_count=count,
        source_name=record.get("sourceName", ""),
        device_name=_parse_device_name(record.get("device", "")),
        metadata=_parse_metadata(record),
    )


def parse_step_samples(export_path: str | Path) -> list[StepSample]:
    """Parse an Apple Health export.xml and return every step sample.

    Uses iterparse for memory-efficient processing of large exports.

    Args:
        export_path: Path to the Apple Health export.xml file.

    Returns:
        Step samples in file order. Malformed records are skipped.

    Raises:
        AppleHealthParseError: If the file is missing or is not valid XML.
    """
    path = Path(export_path)
    if not path.exists():
        raise AppleHealthParseError(f"Export file not found: {path}")

    samples: list[StepSample] = []
    skipped = 0

    try:
        for _event, elem in ET.iterparse(str(path), events=("end",)):
            if elem.tag != "Record":
                continue
            if elem.get("type", "") == _STEPS:
                sample = _parse_step_record(elem)
                if sample is None:
                    skipped += 1
                else:
                    samples.append(sample)
            elem.clear()
    except ET.ParseError as exc:
        raise AppleHealthParseError(f"Invalid XML: {exc}") from exc

    logger.info(
        "Parsed Apple Health export: %d step samples (%d malformed skipped)",
        len(samples), skipped,
    )
    return samples
