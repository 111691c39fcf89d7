"""Input sanitization and validation for data sent to the completion service."""

import logging
import re
from typing import Any
from urllib.parse import urlparse

from autofill.models import (
    ExtractedFormData,
    FieldKind,
    FormField,
    JobPosting,
    UserProfile,
)

logger = logging.getLogger(__name__)

# Validation limits
USER_INPUT_MAX = 10000
NAME_MAX = 100
EMAIL_MAX = 254
EMAIL_LOCAL_MAX = 64
EMAIL_DOMAIN_MAX = 255
PHONE_MAX = 20
PHONE_MIN_DIGITS = 7
PHONE_MAX_DIGITS = 15
RESUME_MAX = 20000
WORK_AUTH_MAX = 100
RELOCATE_MAX = 100
GENDER_MAX = 100
RACE_MAX = 100
VETERAN_STATUS_MAX = 200
DISABILITY_STATUS_MAX = 200
FIELD_LABEL_MAX = 200
FIELD_PLACEHOLDER_MAX = 200
FIELD_MAX_LENGTH_LIMIT = 10000
FIELD_OPTIONS_MAX = 50
FIELDS_PER_FORM_MAX = 100
JOB_TITLE_MAX = 500
JOB_DESCRIPTION_MAX = 5000

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_WHITESPACE = re.compile(r"\s+")
_ROLE_MARKERS = re.compile(
    r"\b(ignore|forget|override|disregard|system|assistant|user|instruction|prompt"
    r"|role|act as|pretend|you are)\s*[:=]",
    re.IGNORECASE,
)
_OVERRIDE_PHRASES = re.compile(
    r"\b(ignore|forget|override|disregard)\s+(all\s+|any\s+|the\s+)?"
    r"(previous|prior|above|earlier|preceding)\s+"
    r"(instructions?|prompts?|messages?|context|rules)",
    re.IGNORECASE,
)
_FENCES = re.compile(r"```|^---|---$", re.MULTILINE)
_TAGS = re.compile(r"</?[a-z][^>]*>", re.IGNORECASE)
_BRACES = re.compile(r"[{}]")
_EMAIL = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)
_PHONE_DISALLOWED = re.compile(r"[^\d+\-() ]")

ALLOWED_JOB_SITE_PATTERNS = [
    re.compile(r"^https://(www\.)?linkedin\.com/"),
    re.compile(r"^https://(www\.)?indeed\.com/"),
    re.compile(r"^https://(www\.)?glassdoor\.com/"),
    re.compile(r"^https://(www\.)?monster\.com/"),
    re.compile(r"^https://(www\.)?ziprecruiter\.com/"),
    re.compile(r"^https://(www\.)?careerbuilder\.com/"),
    re.compile(r"^https://(boards\.)?greenhouse\.io/"),
    re.compile(r"^https://jobs\.lever\.co/"),
    re.compile(r"^https://.*\.greenhouse\.io/"),
    re.compile(r"^https://.*\.lever\.co/"),
    re.compile(r"^https://.*\.applicantstack\.com/"),
    re.compile(r"^https://.*\.workday\.com/"),
    re.compile(r"^https://.*\.taleo\.net/"),
    re.compile(r"^https://.*\.smartrecruiters\.com/"),
    re.compile(r"^https://.*\.icims\.com/"),
    re.compile(r"^https://.*\.jobvite\.com/"),
    re.compile(r"^https://careers\."),
    re.compile(r"^https://jobs\."),
    re.compile(r"^https?://localhost(:\d+)?/"),
    re.compile(r"^https?://127\.0\.0\.1(:\d+)?/"),
]


def sanitize_user_input(value: Any, max_length: int = USER_INPUT_MAX) -> str:
    """Make a free-text value safe to embed in an instruction prompt.

    Args:
        value: Raw value (non-strings yield an empty string)
        max_length: Maximum length of the result

    Returns:
        Sanitized, single-line text
    """
    if not value or not isinstance(value, str):
        return ""

    text = _CONTROL_CHARS.sub(" ", value)
    text = _WHITESPACE.sub(" ", text)
    text = _OVERRIDE_PHRASES.sub("[removed]", text)
    text = _ROLE_MARKERS.sub("[removed]", text)
    text = _FENCES.sub("", text)
    text = _TAGS.sub("", text)
    text = _BRACES.sub("", text)
    return text.strip()[:max_length]


def sanitize_email(email: Any) -> str:
    """Return the email if it is well formed, else an empty string."""
    sanitized = sanitize_user_input(email)
    if not _EMAIL.match(sanitized):
        return ""

    local_part, domain = sanitized.split("@", 1)
    if len(local_part) > EMAIL_LOCAL_MAX or len(domain) > EMAIL_DOMAIN_MAX:
        return ""
    if "." not in domain:
        return ""

    return sanitized[:EMAIL_MAX]


def sanitize_phone(phone: Any) -> str:
    """Return the phone number with 7-15 digits kept, else an empty string."""
    sanitized = sanitize_user_input(phone)
    cleaned = _PHONE_DISALLOWED.sub("", sanitized)
    digit_count = sum(ch.isdigit() for ch in cleaned)

    if digit_count < PHONE_MIN_DIGITS or digit_count > PHONE_MAX_DIGITS:
        return ""

    return cleaned[:PHONE_MAX]


def sanitize_profile(profile: UserProfile | dict | None) -> UserProfile:
    """Sanitize every profile attribute; absent attributes become ``""``."""
    if profile is None:
        return UserProfile()
    if isinstance(profile, dict):
        data = UserProfile.model_validate(
            {k: v for k, v in profile.items() if isinstance(v, str)}
        )
    else:
        data = profile

    return UserProfile(
        name=sanitize_user_input(data.name, NAME_MAX),
        email=sanitize_email(data.email),
        phone=sanitize_phone(data.phone),
        resume=sanitize_user_input(data.resume, RESUME_MAX),
        work_authorization=sanitize_user_input(data.work_authorization, WORK_AUTH_MAX),
        willing_to_relocate=sanitize_user_input(data.willing_to_relocate, RELOCATE_MAX),
        gender=sanitize_user_input(data.gender, GENDER_MAX),
        race=sanitize_user_input(data.race, RACE_MAX),
        veteran_status=sanitize_user_input(data.veteran_status, VETERAN_STATUS_MAX),
        disability_status=sanitize_user_input(data.disability_status, DISABILITY_STATUS_MAX),
    )


def _validate_max_length(max_length: int | None) -> int | None:
    if isinstance(max_length, int) and 0 < max_length <= FIELD_MAX_LENGTH_LIMIT:
        return max_length
    return None


def sanitize_form_field(field: FormField) -> FormField:
    """Sanitize the free-text parts of a field. The id is kept verbatim."""
    options = None
    if field.options is not None:
        options = [
            sanitize_user_input(str(opt), FIELD_LABEL_MAX)
            for opt in field.options[:FIELD_OPTIONS_MAX]
        ]

    return FormField(
        id=field.id,
        kind=field.kind,
        label=sanitize_user_input(field.label, FIELD_LABEL_MAX),
        required=bool(field.required),
        placeholder=sanitize_user_input(field.placeholder, FIELD_PLACEHOLDER_MAX) or None,
        max_length=_validate_max_length(field.max_length),
        options=options,
    )


def sanitize_form_data(form_data: ExtractedFormData) -> ExtractedFormData:
    """Sanitize an extraction result before it is used to build a prompt."""
    url = ""
    if form_data.url:
        if validate_job_site_url(form_data.url):
            url = form_data.url
        else:
            logger.warning(f"URL not in allowlist: {urlparse(form_data.url).hostname}")

    return ExtractedFormData(
        fields=[sanitize_form_field(f) for f in form_data.fields[:FIELDS_PER_FORM_MAX]],
        job_posting=JobPosting(
            title=sanitize_user_input(form_data.job_posting.title, JOB_TITLE_MAX),
            description=sanitize_user_input(
                form_data.job_posting.description, JOB_DESCRIPTION_MAX
            ),
        ),
        url=url,
    )


def sanitize_field_kind(kind: str) -> FieldKind:
    """Map an arbitrary kind string onto the supported kinds (default text)."""
    try:
        return FieldKind(kind)
    except ValueError:
        return FieldKind.TEXT


def validate_api_key_format(api_key: Any) -> bool:
    """Check that a key looks like an Anthropic API key."""
    if not api_key or not isinstance(api_key, str):
        return False
    return api_key.startswith("sk-ant-") and 20 <= len(api_key) <= 200


def validate_job_site_url(url: str, strict: bool = False) -> bool:
    """Validate a page URL.

    HTTPS is required except for localhost. In permissive mode (default)
    any HTTPS URL passes; in strict mode the URL must match the job-site
    allow-list.
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return False

    hostname = parsed.hostname or ""
    if parsed.scheme != "https":
        if parsed.scheme != "http" or hostname not in ("localhost", "127.0.0.1"):
            return False

    if not strict and parsed.scheme == "https":
        return True

    return any(pattern.match(url) for pattern in ALLOWED_JOB_SITE_PATTERNS)
