"""Instruction prompt for the fill-generation call."""

import json
from collections.abc import Sequence

from autofill.models import FormField, JobPosting, UserProfile
from autofill.security import (
    FIELDS_PER_FORM_MAX,
    JOB_DESCRIPTION_MAX,
    JOB_TITLE_MAX,
    sanitize_form_field,
    sanitize_profile,
    sanitize_user_input,
)

NOT_PROVIDED = "Not provided"
NOT_SPECIFIED = "Not specified"

OUTPUT_FORMAT = """{
  "fills": [
    {
      "fieldId": "exact field id from the list above",
      "value": "your generated response",
      "confidence": "high|medium|low",
      "reasoning": "brief explanation"
    }
  ]
}"""


def _or(value: str, default: str) -> str:
    return value or default


def describe_field(index: int, field: FormField) -> str:
    """One line of the field list. The id is JSON-quoted verbatim."""
    line = f"{index}. id={json.dumps(field.id)} [{field.kind.value}] {field.label}"
    if field.required:
        line += " (required)"
    if field.options:
        line += f" - Options: {', '.join(field.options)}"
    if field.max_length:
        line += f" - Max length: {field.max_length}"
    if field.placeholder:
        line += f" - Placeholder: {field.placeholder}"
    return line


def build_prompt(
    fields: Sequence[FormField],
    profile: UserProfile,
    job_posting: JobPosting | None = None,
) -> str:
    """Build the instruction text asking for one proposal per field.

    Args:
        fields: Fields from one extraction pass
        profile: User profile (sanitized again here)
        job_posting: Job context scraped from the page

    Returns:
        Instruction text for the completion service
    """
    profile = sanitize_profile(profile)
    job = job_posting or JobPosting()
    safe_fields = [sanitize_form_field(f) for f in fields[:FIELDS_PER_FORM_MAX]]

    profile_lines = [
        f"Name: {_or(profile.name, NOT_PROVIDED)}",
        f"Email: {_or(profile.email, NOT_PROVIDED)}",
        f"Phone: {_or(profile.phone, NOT_PROVIDED)}",
        f"Resume: {'Provided (see below)' if profile.resume else NOT_PROVIDED}",
        f"Work Authorization: {_or(profile.work_authorization, NOT_SPECIFIED)}",
        f"Willing to Relocate: {_or(profile.willing_to_relocate, NOT_SPECIFIED)}",
    ]
    eeo_lines = [
        f"{label}: {value}"
        for label, value in (
            ("Gender", profile.gender),
            ("Race/Ethnicity", profile.race),
            ("Veteran Status", profile.veteran_status),
            ("Disability Status", profile.disability_status),
        )
        if value
    ]

    sections = [
        "You are helping a job seeker fill out an application form. Analyze the form "
        "fields and job posting, then generate appropriate responses based on the "
        "user's profile.",
        "USER PROFILE:\n" + "\n".join(profile_lines),
    ]
    if eeo_lines:
        sections.append("VOLUNTARY SELF-IDENTIFICATION:\n" + "\n".join(eeo_lines))
    if profile.resume:
        sections.append(f"RESUME:\n{profile.resume}")

    title = sanitize_user_input(job.title, JOB_TITLE_MAX)
    description = sanitize_user_input(job.description, JOB_DESCRIPTION_MAX)
    sections.append(
        "JOB POSTING:\n"
        f"Title: {_or(title, NOT_PROVIDED)}\n"
        f"Description: {_or(description, NOT_PROVIDED)}"
    )
    sections.append(
        "FORM FIELDS:\n"
        + "\n".join(describe_field(i, f) for i, f in enumerate(safe_fields, start=1))
    )
    sections.append(
        "INSTRUCTIONS:\n"
        "1. Generate an appropriate response for each field\n"
        "2. Use the user's profile data when applicable (name, email, phone)\n"
        "3. For open-ended questions, tailor responses to the specific job and company\n"
        "4. For standard questions (work authorization, relocation, self-identification), "
        "use the provided answers\n"
        "5. Keep responses concise and professional\n"
        "6. Respect character limits if specified\n"
        "7. For dropdowns and radio buttons, answer with one of the provided options\n"
        "8. For checkboxes, answer \"true\" or \"false\"\n"
        "9. For date fields, answer in YYYY-MM-DD format\n"
        "10. Use each field's id exactly as quoted above for fieldId"
    )
    sections.append(
        "Respond with ONLY a valid JSON object in this exact format:\n" + OUTPUT_FORMAT
    )
    sections.append(
        "Important: Return ONLY the JSON object, no additional text, explanation or "
        "markdown formatting."
    )

    return "\n\n".join(sections)
