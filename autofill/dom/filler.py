"""Fill engine: applies proposed values onto live form controls."""

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from bs4 import Tag

from autofill.clock import Clock, SystemClock
from autofill.config import settings
from autofill.dom.document import (
    ChangeNotifier,
    DocumentEventNotifier,
    FormDocument,
    option_text,
    option_value,
)
from autofill.dom.extractor import control_kind, get_field_label
from autofill.dom.validation import ValidationProbe
from autofill.dom.values import (
    as_text,
    clamp_number,
    coerce_checkbox,
    coerce_date,
    coerce_url,
    format_number,
    match_option,
    parse_number,
)
from autofill.models import (
    FieldError,
    FieldKind,
    FilledField,
    FillInstruction,
    FillResult,
    SkippedField,
)

logger = logging.getLogger(__name__)

ELEMENT_NOT_FOUND = "element not found"
MISSING_FIELD_ID = "missing field id"

ValidationErrorCallback = Callable[[FieldError], Awaitable[None]]


class SkipField(Exception):
    """Raised by a write strategy when a value cannot be applied."""


@dataclass
class WriteOutcome:
    """What a write strategy did to the page."""

    control: Tag
    value: str | bool
    written: bool = True


class FillEngine:
    """Writes values onto the controls of a ``FormDocument``.

    Fills are processed strictly in input order. A field that cannot be
    located is skipped, a field whose write fails or trips validation is
    recorded as an error, and neither aborts the batch.
    """

    def __init__(
        self,
        document: FormDocument,
        notifier: ChangeNotifier | None = None,
        probe: ValidationProbe | None = None,
        clock: Clock | None = None,
        settle_delay_ms: int | None = None,
        on_validation_error: ValidationErrorCallback | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            document: Document holding the controls
            notifier: Fires the change notifications after a write
            probe: Validation probe run after the settle delay
            clock: Clock used for the settle delay
            settle_delay_ms: Pause after each write before probing
            on_validation_error: Awaited after a field lands in ``errors``
                because of a validation failure; observe only
        """
        self.document = document
        self.notifier = notifier or DocumentEventNotifier(document)
        self.probe = probe or ValidationProbe(document)
        self.clock = clock or SystemClock()
        self.settle_delay_ms = (
            settings.field_fill_delay_ms if settle_delay_ms is None else settle_delay_ms
        )
        self.on_validation_error = on_validation_error

    async def fill_all(self, fills: Sequence[FillInstruction]) -> FillResult:
        """Apply every fill and report where each field ended up."""
        result = FillResult()

        for index, fill in enumerate(fills, start=1):
            logger.debug(f"Filling field {index}/{len(fills)}: {fill.field_id}")
            if not fill.field_id:
                logger.warning(f"Fill proposal {index} has no field id")
                result.skipped.append(SkippedField(field_id="", reason=MISSING_FIELD_ID))
                continue

            control = self.document.find_control(fill.field_id)
            if control is None:
                logger.warning(f"Element not found for field: {fill.field_id}")
                result.skipped.append(SkippedField(field_id=fill.field_id, reason=ELEMENT_NOT_FOUND))
                continue

            if fill.value is None:
                result.skipped.append(SkippedField(field_id=fill.field_id, reason="no value proposed"))
                continue

            try:
                outcome = self._write(control, fill.value)
                validation_error = await self._settle_and_check(fill.field_id, control, outcome)
            except SkipField as e:
                logger.warning(f"Skipping field {fill.field_id}: {e}")
                result.skipped.append(SkippedField(field_id=fill.field_id, reason=str(e)))
                continue
            except Exception as e:
                logger.error(f"Error filling field {fill.field_id}: {e}")
                result.errors.append(FieldError(field_id=fill.field_id, error=str(e)))
                continue

            if validation_error is not None:
                result.errors.append(validation_error)
                await self._report_validation_error(validation_error)
                continue

            result.filled.append(FilledField(field_id=fill.field_id, value=outcome.value))

        logger.info(
            f"Fill complete: {len(result.filled)} filled, {len(result.skipped)} skipped, "
            f"{len(result.errors)} errors"
        )
        return result

    async def _settle_and_check(
        self, field_id: str, control: Tag, outcome: WriteOutcome
    ) -> FieldError | None:
        """Notify the page, wait for it to settle and check for a validation error."""
        if not outcome.written:
            return None

        await self.notifier.notify_field_changed(outcome.control)
        await self.clock.sleep(self.settle_delay_ms / 1000)

        state = self.probe.probe(outcome.control)
        if not state.has_error:
            return None

        logger.info(f"Validation error detected on {field_id}: {state.message}")
        label = get_field_label(self.document, control)
        return FieldError(field_id=field_id, error=f"Validation error on {label}: {state.message}")

    async def _report_validation_error(self, error: FieldError) -> None:
        if self.on_validation_error is None:
            return
        try:
            await self.on_validation_error(error)
        except Exception as e:
            logger.warning(f"Validation error callback failed for {error.field_id}: {e}")

    # =========================================================================
    # Write strategies
    # =========================================================================

    def _write(self, control: Tag, value: str | bool) -> WriteOutcome:
        kind = control_kind(control)
        if kind is None:
            raise ValueError(f"Unsupported control type: {control.get('type') or control.name}")
        if control.has_attr("readonly") and kind not in (FieldKind.SELECT, FieldKind.RADIO, FieldKind.CHECKBOX):
            raise ValueError("Read-only field cannot be filled automatically")
        if self.document.is_disabled(control):
            raise ValueError("Disabled field cannot be filled")

        if kind == FieldKind.NUMBER:
            return self._write_number(control, value)
        if kind == FieldKind.DATE:
            return self._write_text(control, coerce_date(as_text(value)))
        if kind == FieldKind.URL:
            return self._write_text(control, coerce_url(as_text(value)))
        if kind == FieldKind.SELECT:
            return self._write_select(control, value)
        if kind == FieldKind.RADIO:
            return self._write_radio(control, value)
        if kind == FieldKind.CHECKBOX:
            checked = coerce_checkbox(value)
            self.document.set_checked(control, checked)
            return WriteOutcome(control, checked)

        # text, email, tel, textarea
        return self._write_text(control, as_text(value))

    def _write_text(self, control: Tag, text: str) -> WriteOutcome:
        self.document.set_value(control, text)
        return WriteOutcome(control, text)

    def _write_number(self, control: Tag, value: str | bool) -> WriteOutcome:
        number = parse_number(value)
        if number is None:
            raise SkipField(f"invalid number value: {as_text(value)!r}")
        number = clamp_number(number, control.get("min"), control.get("max"))
        return self._write_text(control, format_number(number))

    def _write_select(self, select: Tag, value: str | bool) -> WriteOutcome:
        proposed = as_text(value)
        options = self.document.options(select)
        chosen = match_option(proposed, [(opt, option_text(opt), option_value(opt)) for opt in options])

        if chosen is None:
            # Recorded as filled with the proposal; the control is unchanged
            logger.warning(f"Could not find option {proposed!r} in select {select.get('id') or select.get('name')}")
            return WriteOutcome(select, value, written=False)

        self.document.select_option(select, chosen)
        return WriteOutcome(select, option_value(chosen))

    def _write_radio(self, radio: Tag, value: str | bool) -> WriteOutcome:
        name = radio.get("name")
        if not name:
            raise ValueError("Radio button has no name attribute")

        proposed = as_text(value)
        group = self.document.radio_group(name)
        candidates = [
            (member, get_field_label(self.document, member), member.get("value", "on"))
            for member in group
        ]
        chosen = match_option(proposed, candidates)

        if chosen is None:
            logger.warning(f"Could not find radio button with value {proposed!r} in group {name!r}")
            return WriteOutcome(radio, value, written=False)

        for member in group:
            self.document.set_checked(member, member is chosen)
        return WriteOutcome(chosen, chosen.get("value", "on"))
