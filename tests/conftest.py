"""Pytest configuration and fixtures."""

import os
from unittest.mock import AsyncMock, MagicMock

import pytest

# Set test environment
os.environ["APP_ENV"] = "development"
os.environ.pop("ANTHROPIC_API_KEY", None)
os.environ.pop("LANGFUSE_SECRET_KEY", None)
os.environ.pop("LANGFUSE_PUBLIC_KEY", None)

from autofill.dom.document import FormDocument  # noqa: E402


class FakeClock:
    """Clock whose sleeps return immediately and advance virtual time."""

    def __init__(self, start: float = 1000.0):
        self.current = start
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self.current

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.current += seconds

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def fake_clock():
    """Virtual clock for backoff, settle delays and rate limiting."""
    return FakeClock()


@pytest.fixture
def mock_anthropic_response():
    """Create a mock Anthropic API response."""

    def _create_response(
        text: str,
        stop_reason: str = "end_turn",
        input_tokens: int = 100,
        output_tokens: int = 200,
    ):
        mock_response = MagicMock()
        mock_response.content = [MagicMock(type="text", text=text)]
        mock_response.stop_reason = stop_reason
        mock_response.usage = MagicMock(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )
        return mock_response

    return _create_response


@pytest.fixture
def mock_claude_client():
    """Create a mock async Claude client and a factory returning it."""
    mock_client = MagicMock()
    mock_client.messages.create = AsyncMock()
    factory = MagicMock(return_value=mock_client)
    return mock_client, factory


@pytest.fixture
def application_html():
    """Job application page with one control of every supported kind."""
    return """
<html>
<head><title>Senior Python Engineer - Acme Corp</title></head>
<body>
<main>
  <div class="job-description">
    <h1>Senior Python Engineer</h1>
    <p>Acme Corp is hiring a Senior Python Engineer to build data pipelines and
    backend services. You will design APIs, own deployments and mentor other
    engineers. Requirements: 5+ years of Python, experience with asyncio, SQL
    and cloud infrastructure. Remote friendly within Europe and North America.</p>
  </div>
  <form id="application-form">
    <label for="full_name">Full Name</label>
    <input type="text" id="full_name" name="full_name" required>

    <label for="email">Email</label>
    <input type="email" id="email" name="email" required>

    <input type="tel" name="phone" placeholder="Phone number">

    <label for="years">Years of experience</label>
    <input type="number" id="years" min="0" max="50">

    <label for="start_date">Earliest start date</label>
    <input type="date" id="start_date">

    <label for="portfolio">Portfolio</label>
    <input type="url" id="portfolio">

    <label for="cover_letter">Cover letter</label>
    <textarea id="cover_letter" maxlength="2000"></textarea>

    <label for="work_auth">Work authorization</label>
    <select id="work_auth" required>
      <option value="">Select...</option>
      <option value="us-citizen">U.S. Citizen</option>
      <option value="visa">Requires sponsorship</option>
    </select>

    <label for="gender">Gender</label>
    <select id="gender">
      <option value="">Decline to answer</option>
      <option>Male</option>
      <option>Female</option>
    </select>

    <label><input type="radio" name="relocate" value="yes"> Yes</label>
    <label><input type="radio" name="relocate" value="no"> No</label>

    <label><input type="checkbox" id="terms" required> I agree to the terms</label>

    <input type="text" aria-label="LinkedIn profile">

    <input type="hidden" name="csrf" value="token">
    <input type="password" name="password">
    <input type="text" id="disabled_field" disabled>
    <div style="display: none"><input type="text" id="honeypot"></div>
    <input type="submit" value="Apply">
  </form>
</main>
</body>
</html>
"""


@pytest.fixture
def application_document(application_html):
    """Parsed application page."""
    return FormDocument(application_html, url="https://jobs.example.com/acme/apply")


@pytest.fixture
def sample_profile():
    """Profile used to generate fills."""
    return {
        "name": "Jane Doe",
        "email": "jane.doe@example.com",
        "phone": "+1 (555) 123-4567",
        "resume": "Senior engineer with 8 years of Python experience.",
        "workAuthorization": "U.S. Citizen",
        "willingToRelocate": "Yes",
        "gender": "Female",
    }


@pytest.fixture
def fills_json():
    """Completion service payload covering the sample form."""
    return """{
  "fills": [
    {"fieldId": "full_name", "value": "Jane Doe", "confidence": "high", "reasoning": "From profile"},
    {"fieldId": "email", "value": "jane.doe@example.com", "confidence": "high", "reasoning": "From profile"},
    {"fieldId": "phone", "value": "+1 (555) 123-4567", "confidence": "high", "reasoning": "From profile"},
    {"fieldId": "years", "value": 8, "confidence": "medium", "reasoning": "From resume"},
    {"fieldId": "start_date", "value": "01/15/2020", "confidence": "low", "reasoning": "Guess"},
    {"fieldId": "portfolio", "value": "janedoe.dev", "confidence": "medium", "reasoning": "Guess"},
    {"fieldId": "cover_letter", "value": "Dear Acme,\\nI am excited to apply.", "confidence": "medium", "reasoning": "Tailored"},
    {"fieldId": "work_auth", "value": "U.S. Citizen", "confidence": "high", "reasoning": "From profile"},
    {"fieldId": "gender", "value": "female", "confidence": "high", "reasoning": "From profile"},
    {"fieldId": "relocate", "value": "Yes", "confidence": "high", "reasoning": "From profile"},
    {"fieldId": "terms", "value": true, "confidence": "high", "reasoning": "Required"},
    {"fieldId": "job-app-field-11", "value": "linkedin.com/in/janedoe", "confidence": "low", "reasoning": "Guess"}
  ]
}"""
