"""Post-write validation probing.

Checks run in order and the first hit wins:

1. ``aria-invalid="true"`` with the ``aria-describedby`` error text
2. native constraint validation, computed from the control's attributes
3. a known error class on the control or its wrapper, with the nearby
   error message element
"""

import logging
import re

from bs4 import Tag

from autofill.dom.document import FormDocument, class_list, input_type, normalize_text
from autofill.dom.values import CANONICAL_DATE, parse_number
from autofill.models import ValidationState

logger = logging.getLogger(__name__)

ERROR_CLASSES = {"error", "invalid", "is-invalid", "has-error", "field-error"}
ERROR_MESSAGE_CLASSES = ("error-message", "invalid-feedback", "field-error-message")

_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+$")
_URL = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:\S+$")


class ValidationProbe:
    """Inspects a just-filled control for a validation error."""

    def __init__(self, document: FormDocument) -> None:
        self.document = document

    def probe(self, control: Tag) -> ValidationState:
        for check in (self._aria_state, self._constraint_state, self._class_state):
            state = check(control)
            if state.has_error:
                return state
        return ValidationState()

    # =========================================================================
    # Checks
    # =========================================================================

    def _aria_state(self, control: Tag) -> ValidationState:
        if control.get("aria-invalid", "").strip().lower() != "true":
            return ValidationState()

        messages = []
        for ref in (control.get("aria-describedby") or "").split():
            described = self.document.get_element_by_id(ref)
            if described is not None:
                text = normalize_text(described.get_text(" "))
                if text:
                    messages.append(text)

        return ValidationState(
            has_error=True,
            message=" ".join(messages) or "The field is marked as invalid",
        )

    def _constraint_state(self, control: Tag) -> ValidationState:
        message = self.constraint_message(control)
        return ValidationState(has_error=message is not None, message=message)

    def _class_state(self, control: Tag) -> ValidationState:
        wrapper = control.parent if isinstance(control.parent, Tag) else None
        flagged = ERROR_CLASSES.intersection(class_list(control))
        if not flagged and wrapper is not None:
            flagged = ERROR_CLASSES.intersection(class_list(wrapper))
        if not flagged:
            return ValidationState()

        return ValidationState(
            has_error=True,
            message=self._error_message_near(control, wrapper) or "The field has a validation error",
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def constraint_message(self, control: Tag) -> str | None:
        """Describe the first failing native constraint, if any."""
        kind = input_type(control) if control.name == "input" else control.name

        if kind == "radio":
            group = self.document.radio_group(control.get("name", ""))
            if any(r.has_attr("required") for r in group) and not any(
                self.document.is_checked(r) for r in group
            ):
                return "Please select one of these options"
            return None

        if kind == "checkbox":
            if control.has_attr("required") and not self.document.is_checked(control):
                return "Please check this box if you want to proceed"
            return None

        value = self.document.get_value(control)
        if control.has_attr("required") and not value.strip():
            return "This field is required"
        if not value:
            return None

        if kind == "number" and parse_number(value) is None:
            return "Please enter a number"
        if kind == "email" and not all(_EMAIL.match(part.strip()) for part in value.split(",")):
            return "Please enter a valid email address"
        if kind == "url" and not _URL.match(value):
            return "Please enter a valid URL"
        if kind == "date" and not CANONICAL_DATE.match(value):
            return "Please enter a valid date"

        pattern = control.get("pattern")
        if pattern and control.name == "input":
            try:
                if not re.fullmatch(pattern, value):
                    return "Please match the requested format"
            except re.error:
                logger.debug(f"Ignoring invalid pattern attribute {pattern!r}")

        max_length = parse_number(control.get("maxlength"))
        if max_length is not None and max_length >= 0 and len(value) > max_length:
            return f"Please use no more than {int(max_length)} characters"
        min_length = parse_number(control.get("minlength"))
        if min_length is not None and len(value) < min_length:
            return f"Please use at least {int(min_length)} characters"

        if kind in ("number", "date"):
            return self._range_message(kind, value, control.get("min"), control.get("max"))

        return None

    def _range_message(
        self, kind: str, value: str, minimum: str | None, maximum: str | None
    ) -> str | None:
        if kind == "number":
            number = parse_number(value)
            low, high = parse_number(minimum), parse_number(maximum)
            if number is None:
                return None
            if low is not None and number < low:
                return f"Value must be greater than or equal to {minimum}"
            if high is not None and number > high:
                return f"Value must be less than or equal to {maximum}"
            return None

        # ISO dates compare correctly as strings
        if minimum and CANONICAL_DATE.match(minimum) and value < minimum:
            return f"Value must be {minimum} or later"
        if maximum and CANONICAL_DATE.match(maximum) and value > maximum:
            return f"Value must be {maximum} or earlier"
        return None

    def _error_message_near(self, control: Tag, wrapper: Tag | None) -> str | None:
        control_id = control.get("id")
        if control_id:
            for element in self.document.soup.find_all(attrs={"data-for": control_id}):
                if set(ERROR_MESSAGE_CLASSES).intersection(class_list(element)):
                    text = normalize_text(element.get_text(" "))
                    if text:
                        return text

        if wrapper is None:
            return None
        for element in wrapper.find_all(True, recursive=False):
            if element is control:
                continue
            if set(ERROR_MESSAGE_CLASSES).intersection(class_list(element)):
                text = normalize_text(element.get_text(" "))
                if text:
                    return text
        return None
