"""Parsing of the completion service's fill proposals."""

import json
import logging
import re

from autofill.errors import MalformedResponseError
from autofill.models import Confidence, Fill, FillsResponse, normalize_fill_value

logger = logging.getLogger(__name__)

_FENCED = re.compile(r"^```[\w+-]*[ \t]*\n?(.*?)\n?[ \t]*```$", re.DOTALL)
REQUIRED_KEYS = ("fieldId", "value", "confidence", "reasoning")
CONFIDENCE_VALUES = {c.value for c in Confidence}


def strip_code_fence(text: str) -> str:
    """Remove a wrapping triple-backtick fence, with or without language tag."""
    clean = text.strip()
    match = _FENCED.match(clean)
    if match:
        clean = match.group(1).strip()
    return clean


def parse_fills_response(raw_text: str) -> FillsResponse:
    """Parse the service reply into a ``FillsResponse``.

    Structurally broken replies raise; individually malformed entries are
    logged and kept so that the rest of the batch survives.

    Raises:
        MalformedResponseError: If the text is not JSON or has no ``fills`` list
    """
    clean = strip_code_fence(raw_text or "")

    try:
        data = json.loads(clean)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse Claude response as JSON: {e}")
        raise MalformedResponseError() from e

    if not isinstance(data, dict) or not isinstance(data.get("fills"), list):
        logger.error("Claude response has an unexpected format: missing fills array")
        raise MalformedResponseError()

    fills: list[Fill] = []
    for index, entry in enumerate(data["fills"]):
        if not isinstance(entry, dict):
            logger.warning(f"Dropping fill #{index}: expected an object, got {type(entry).__name__}")
            continue

        missing = [key for key in REQUIRED_KEYS if key not in entry]
        if missing:
            logger.warning(f"Fill #{index} is missing {', '.join(missing)}")

        confidence = entry.get("confidence")
        if confidence is not None and confidence not in CONFIDENCE_VALUES:
            logger.warning(f"Fill #{index} has unknown confidence {confidence!r}")

        value = normalize_fill_value(entry.get("value"))
        fills.append(
            Fill(
                field_id=str(entry["fieldId"]) if entry.get("fieldId") is not None else None,
                value=value if isinstance(value, (str, bool)) else None,
                confidence=str(confidence) if confidence is not None else None,
                reasoning=str(entry["reasoning"]) if entry.get("reasoning") is not None else None,
            )
        )

    logger.info(f"Parsed {len(fills)} fill proposals")
    return FillsResponse(fills=fills)
