"""AI-powered autofill for job application forms."""

__version__ = "0.1.0"
