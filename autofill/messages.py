"""Request/response message handling at the system boundary.

Every handler returns a ``{"success": ...}`` dict. Failures carry a user
friendly ``error`` string and never a raw server body.
"""

import logging
from enum import Enum
from typing import Any

from pydantic import ValidationError

from autofill.dom.document import FormDocument
from autofill.errors import AutofillError
from autofill.models import ExtractedFormData, Fill
from autofill.orchestrator import Orchestrator
from autofill.security import sanitize_field_kind

logger = logging.getLogger(__name__)


class MessageType(str, Enum):
    ANALYZE_FORM = "ANALYZE_FORM"
    FILL_FORM = "FILL_FORM"
    GENERATE_FILLS = "GENERATE_FILLS"
    VALIDATE_API_KEY = "VALIDATE_API_KEY"


UNKNOWN_COMMAND = "Unknown command received."
INVALID_FILL_DATA = "Invalid form fill data provided."
INVALID_FORM_DATA = "Invalid form data provided."
NO_DOCUMENT = "Unable to access page content. Please refresh and try again."
ANALYZE_FAILED = "Failed to analyze form on this page."
FILL_FAILED = "Failed to fill form fields."
GENERATE_FAILED = "Something went wrong. Please try again."


def _failure(error: str) -> dict[str, Any]:
    return {"success": False, "error": error}


def parse_form_data(raw: Any) -> ExtractedFormData:
    """Validate incoming form data, mapping unknown field kinds to text.

    Raises:
        ValueError: If the payload is not a form data object
    """
    if not isinstance(raw, dict) or not isinstance(raw.get("fields"), list):
        raise ValueError("formData must be an object with a fields list")

    fields = []
    for item in raw["fields"]:
        if not isinstance(item, dict):
            raise ValueError("form fields must be objects")
        fields.append({**item, "type": sanitize_field_kind(str(item.get("type", ""))).value})

    return ExtractedFormData.model_validate({**raw, "fields": fields})


class MessageHandler:
    """Dispatches protocol messages to the orchestrator.

    Args:
        orchestrator: Pipeline to run operations on
        document: Page the analyze and fill messages act on
    """

    def __init__(self, orchestrator: Orchestrator, document: FormDocument | None = None) -> None:
        self.orchestrator = orchestrator
        self.document = document

    async def handle(self, message: dict[str, Any]) -> dict[str, Any]:
        """Handle one message and build its response."""
        message_type = message.get("type") if isinstance(message, dict) else None
        logger.debug(f"Received message: {message_type}")

        if message_type == MessageType.ANALYZE_FORM:
            return await self._analyze()
        if message_type == MessageType.FILL_FORM:
            return await self._fill(message.get("fills"))
        if message_type == MessageType.GENERATE_FILLS:
            return await self._generate(message.get("formData"), message.get("profile"))
        if message_type == MessageType.VALIDATE_API_KEY:
            return await self._validate_key(message.get("apiKey"))

        logger.warning(f"Unknown message type: {message_type}")
        return _failure(UNKNOWN_COMMAND)

    async def _analyze(self) -> dict[str, Any]:
        if self.document is None:
            return _failure(NO_DOCUMENT)
        try:
            form_data = await self.orchestrator.analyze(self.document)
        except AutofillError as e:
            logger.info(f"Form analysis failed: {e}")
            return _failure(str(e))
        except Exception as e:
            logger.error(f"Form analysis failed: {e}")
            return _failure(ANALYZE_FAILED)
        return {"success": True, "data": form_data.to_wire()}

    async def _fill(self, fills: Any) -> dict[str, Any]:
        if not isinstance(fills, list):
            return _failure(INVALID_FILL_DATA)
        if self.document is None:
            return _failure(NO_DOCUMENT)

        try:
            proposals = [Fill.model_validate(item) for item in fills]
        except ValidationError as e:
            logger.warning(f"Rejected fill data: {e.error_count()} validation errors")
            return _failure(INVALID_FILL_DATA)

        try:
            result = await self.orchestrator.fill(self.document, proposals)
        except AutofillError as e:
            return _failure(str(e))
        except Exception as e:
            logger.error(f"Form filling failed: {e}")
            return _failure(FILL_FAILED)
        return {"success": True, "data": result.to_wire()}

    async def _generate(self, raw_form_data: Any, raw_profile: Any) -> dict[str, Any]:
        try:
            form_data = parse_form_data(raw_form_data)
        except ValueError as e:
            logger.warning(f"Rejected form data: {e}")
            return _failure(INVALID_FORM_DATA)

        try:
            profile = raw_profile if isinstance(raw_profile, dict) else None
            response = await self.orchestrator.generate_fills(form_data, profile)
        except AutofillError as e:
            logger.info(f"Fill generation failed: {e}")
            return _failure(str(e))
        except Exception as e:
            logger.error(f"Fill generation failed unexpectedly: {e}")
            return _failure(GENERATE_FAILED)
        return {"success": True, "fills": [fill.to_wire() for fill in response.fills]}

    async def _validate_key(self, api_key: Any) -> dict[str, Any]:
        try:
            is_valid = await self.orchestrator.validate_api_key(
                api_key if isinstance(api_key, str) else None
            )
        except AutofillError as e:
            return _failure(str(e))
        return {"success": True, "isValid": is_valid}
