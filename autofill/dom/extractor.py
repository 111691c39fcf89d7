"""Form field extraction.

Walks a container in document order and describes every enabled, visible
control of a supported kind as a ``FormField``. Every extracted control is
stamped with the ``data-job-app-field-id`` marker so the fill engine can
find it again, which matters for synthesized ids that exist nowhere else
on the page.
"""

import logging

from bs4 import Tag

from autofill.config import settings
from autofill.dom.document import (
    CONTROL_TAGS,
    FIELD_MARKER_ATTR,
    FormDocument,
    input_type,
    normalize_text,
    option_text,
    option_value,
)
from autofill.errors import NoFormFieldsError, NoFormFoundError
from autofill.models import ExtractedFormData, FieldKind, FormField, JobPosting

logger = logging.getLogger(__name__)

SYNTHETIC_ID_PREFIX = "job-app-field"
UNLABELED_FIELD = "Unlabeled field"

INPUT_KINDS = {
    "text": FieldKind.TEXT,
    "email": FieldKind.EMAIL,
    "tel": FieldKind.TEL,
    "number": FieldKind.NUMBER,
    "date": FieldKind.DATE,
    "url": FieldKind.URL,
    "radio": FieldKind.RADIO,
    "checkbox": FieldKind.CHECKBOX,
}

FORM_LIKE_SELECTORS = (
    '[class*="form"], [id*="form"], [class*="application"], [id*="application"]'
)

JOB_POSTING_SELECTORS = [
    ".job-description",
    ".job-details",
    '[class*="job-posting"]',
    '[class*="description"]',
    "article",
    "main",
]
JOB_POSTING_MIN_TEXT = 200


def control_kind(control: Tag) -> FieldKind | None:
    """Classify a control, or return None when it is not a supported kind."""
    if control.name == "textarea":
        return FieldKind.TEXTAREA
    if control.name == "select":
        return FieldKind.SELECT
    if control.name == "input":
        return INPUT_KINDS.get(input_type(control))
    return None


def get_field_label(document: FormDocument, control: Tag) -> str:
    """Resolve the human-readable label of a control (first match wins)."""
    control_id = control.get("id")
    if control_id:
        label = document.soup.find("label", attrs={"for": control_id})
        if label is not None:
            text = normalize_text(label.get_text(" "))
            if text:
                return text

    parent_label = control.find_parent("label")
    if parent_label is not None:
        text = normalize_text(parent_label.get_text(" "))
        if text:
            return text

    aria_label = normalize_text(control.get("aria-label"))
    if aria_label:
        return aria_label

    placeholder = normalize_text(control.get("placeholder"))
    if placeholder:
        return placeholder

    name = control.get("name")
    if name:
        return name.replace("-", " ").replace("_", " ")

    return UNLABELED_FIELD


def _max_length(control: Tag) -> int | None:
    try:
        value = int(control.get("maxlength", ""))
    except ValueError:
        return None
    return value if value > 0 else None


class FieldExtractor:
    """Produces ``FormField`` descriptors for one extraction pass."""

    def __init__(self, document: FormDocument) -> None:
        self.document = document

    def extract(self, container: Tag | None = None) -> list[FormField]:
        """Extract fillable fields from a container (defaults to the body).

        Never raises for an individual control; unsupported or unreadable
        controls are left out.
        """
        root = container if container is not None else self.document.body
        self.document.clear_field_markers()

        fields: list[FormField] = []
        used_ids: set[str] = set()
        radio_groups: dict[str, FormField] = {}

        for control in root.find_all(CONTROL_TAGS):
            try:
                kind = control_kind(control)
                if kind is None:
                    continue
                if self.document.is_disabled(control) or self.document.is_hidden(control):
                    continue

                if kind == FieldKind.RADIO:
                    self._add_radio(control, fields, used_ids, radio_groups)
                    continue

                field_id = self._assign_id(control, len(fields), used_ids)
                fields.append(self._describe(control, field_id, kind))
            except Exception as e:
                logger.debug(f"Skipping unreadable control <{control.name}>: {e}")

        logger.info(f"Extracted {len(fields)} form fields")
        return fields

    def _assign_id(self, control: Tag, ordinal: int, used_ids: set[str]) -> str:
        field_id = control.get("id") or control.get("name")
        if not field_id or field_id in used_ids:
            field_id = f"{SYNTHETIC_ID_PREFIX}-{ordinal}"
            suffix = 1
            while field_id in used_ids:
                suffix += 1
                field_id = f"{SYNTHETIC_ID_PREFIX}-{ordinal}-{suffix}"
        used_ids.add(field_id)
        control[FIELD_MARKER_ATTR] = field_id
        return field_id

    def _describe(self, control: Tag, field_id: str, kind: FieldKind) -> FormField:
        label = get_field_label(self.document, control)
        required = control.has_attr("required")

        if kind == FieldKind.SELECT:
            return FormField(
                id=field_id,
                kind=kind,
                label=label,
                required=required,
                options=[
                    option_text(opt) or option_value(opt)
                    for opt in self.document.options(control)
                ],
            )

        if kind == FieldKind.CHECKBOX:
            return FormField(id=field_id, kind=kind, label=label, required=required)

        return FormField(
            id=field_id,
            kind=kind,
            label=label,
            required=required,
            placeholder=control.get("placeholder", ""),
            max_length=_max_length(control),
        )

    def _add_radio(
        self,
        radio: Tag,
        fields: list[FormField],
        used_ids: set[str],
        groups: dict[str, FormField],
    ) -> None:
        name = radio.get("name")
        if not name:
            logger.debug("Skipping radio button without a name attribute")
            return

        label = get_field_label(self.document, radio)
        group = groups.get(name)
        if group is None:
            if name in used_ids:
                logger.debug(f"Radio group {name!r} collides with another field id")
                return
            group = FormField(
                id=name,
                kind=FieldKind.RADIO,
                label=label,
                required=radio.has_attr("required"),
                options=[],
            )
            groups[name] = group
            used_ids.add(name)
            fields.append(group)

        radio[FIELD_MARKER_ATTR] = name
        if radio.has_attr("required"):
            group.required = True
        if label and label not in group.options:
            group.options.append(label)


def find_form_container(document: FormDocument) -> Tag:
    """Pick the container to extract from.

    Raises:
        NoFormFoundError: If the page has no form and nothing form-like
    """
    form = document.soup.find("form")
    if form is not None:
        return form

    if not document.soup.select(FORM_LIKE_SELECTORS):
        raise NoFormFoundError(
            "No application forms found on this page. Open a job application "
            "page first, then analyze the form again."
        )

    logger.info("No <form> tags found, analyzing the entire page")
    return document.body


def extract_job_posting(document: FormDocument, max_length: int | None = None) -> JobPosting:
    """Extract the job title and description surrounding the form."""
    limit = max_length or settings.job_description_max

    for selector in JOB_POSTING_SELECTORS:
        element = document.soup.select_one(selector)
        if element is None:
            continue
        text = document.text_content(element)
        if len(text) > JOB_POSTING_MIN_TEXT:
            return JobPosting(title=document.title, description=text[:limit])

    return JobPosting(title=document.title, description=document.text_content()[:limit])


def analyze_form(document: FormDocument) -> ExtractedFormData:
    """Run one extraction pass over the document.

    Raises:
        NoFormFoundError: If there is no form on the page
        NoFormFieldsError: If the form has no fillable fields
    """
    container = find_form_container(document)
    fields = FieldExtractor(document).extract(container)

    if not fields:
        if container.name == "form":
            raise NoFormFieldsError(
                "The form was found but contains no fillable fields. You may need to "
                "scroll down or navigate to the next step of the application."
            )
        raise NoFormFieldsError(
            "No fillable input fields were detected on this page. Make sure you're "
            "on an active job application form."
        )

    return ExtractedFormData(
        fields=fields,
        job_posting=extract_job_posting(document),
        url=document.url,
    )
