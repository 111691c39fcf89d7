"""Pydantic models shared by extraction, generation and filling.

Wire payloads use the camelCase keys the message protocol expects
(``fieldId``, ``maxLength``, ``jobPosting``...). Python code uses the
snake_case attribute names; every model accepts both.
"""

from enum import Enum

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FieldKind(str, Enum):
    """Semantic kind of a form field, which selects its write strategy."""

    TEXT = "text"
    EMAIL = "email"
    TEL = "tel"
    NUMBER = "number"
    DATE = "date"
    URL = "url"
    TEXTAREA = "textarea"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"


class Confidence(str, Enum):
    """Advisory confidence attached to a proposed value."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class WireModel(BaseModel):
    """Base for models exchanged over the message protocol."""

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# ============================================================================
# Extraction
# ============================================================================


class FormField(WireModel):
    """Structural description of one logical form field."""

    id: str
    kind: FieldKind = Field(alias="type")
    label: str
    required: bool = False
    placeholder: str | None = None
    max_length: int | None = Field(default=None, alias="maxLength")
    options: list[str] | None = None


class JobPosting(WireModel):
    """Job context scraped from the page around the form."""

    title: str = ""
    description: str = ""


class ExtractedFormData(WireModel):
    """Result of one extraction pass."""

    fields: list[FormField] = Field(default_factory=list)
    job_posting: JobPosting = Field(default_factory=JobPosting, alias="jobPosting")
    url: str = ""


# ============================================================================
# Profile
# ============================================================================


class UserProfile(WireModel):
    """User attributes available to the completion service.

    All attributes are plain strings. After ``sanitize_profile`` an absent
    attribute is the empty string, never ``None``.
    """

    name: str = ""
    email: str = ""
    phone: str = ""
    resume: str = ""
    work_authorization: str = Field(default="", alias="workAuthorization")
    willing_to_relocate: str = Field(default="", alias="willingToRelocate")
    gender: str = ""
    race: str = ""
    veteran_status: str = Field(default="", alias="veteranStatus")
    disability_status: str = Field(default="", alias="disabilityStatus")


# ============================================================================
# Proposals
# ============================================================================


def normalize_fill_value(value: Any) -> Any:
    """Turn numbers into strings; booleans stay booleans."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class Fill(WireModel):
    """A proposed value for one field, as returned by the completion service.

    Members are optional because the service output is untrusted; entries
    without a ``field_id`` cannot be applied and are reported as skipped
    by the fill pass.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    field_id: str | None = Field(default=None, alias="fieldId")
    value: str | bool | None = None
    confidence: str | None = None
    reasoning: str | None = None

    normalize_value = field_validator("value", mode="before")(normalize_fill_value)

    @property
    def is_usable(self) -> bool:
        return bool(self.field_id)


class FillsResponse(WireModel):
    """Parsed completion service payload."""

    fills: list[Fill] = Field(default_factory=list)


class FillInstruction(WireModel):
    """The ``{fieldId, value}`` pair a fill request carries."""

    field_id: str = Field(alias="fieldId")
    value: str | bool | None = None

    normalize_value = field_validator("value", mode="before")(normalize_fill_value)

    @classmethod
    def from_fill(cls, fill: Fill) -> "FillInstruction":
        return cls(field_id=fill.field_id or "", value=fill.value)


# ============================================================================
# Fill results
# ============================================================================


class FilledField(WireModel):
    field_id: str = Field(alias="fieldId")
    value: str | bool


class SkippedField(WireModel):
    field_id: str = Field(alias="fieldId")
    reason: str


class FieldError(WireModel):
    field_id: str = Field(alias="fieldId")
    error: str


class FillResult(WireModel):
    """Outcome of one fill pass.

    The three lists are disjoint and together hold every field id that
    entered the pass, in input order within each list.
    """

    filled: list[FilledField] = Field(default_factory=list)
    skipped: list[SkippedField] = Field(default_factory=list)
    errors: list[FieldError] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.filled) + len(self.skipped) + len(self.errors)

    def field_ids(self) -> list[str]:
        return (
            [f.field_id for f in self.filled]
            + [s.field_id for s in self.skipped]
            + [e.field_id for e in self.errors]
        )


class ValidationState(BaseModel):
    """Post-write validation state of a single control."""

    has_error: bool = False
    message: str | None = None
