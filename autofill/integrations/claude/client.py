"""Claude client with bounded retries, backoff and error classification."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import anthropic
from anthropic import AsyncAnthropic
from langfuse.decorators import langfuse_context, observe

from autofill.clock import Clock, SystemClock
from autofill.config import Settings, settings
from autofill.errors import (
    ApiError,
    ApiTimeoutError,
    AuthenticationError,
    ConfigurationError,
    MalformedResponseError,
    NetworkError,
    NoFormFieldsError,
    RateLimitedError,
    RequestFailedError,
    RetriesExhaustedError,
    ServerError,
    TruncatedResponseError,
)
from autofill.integrations.claude.parser import parse_fills_response
from autofill.models import ExtractedFormData, FillsResponse, UserProfile
from autofill.progress import ProgressChannel, ProgressEvent, ProgressStage
from autofill.prompts import build_prompt

logger = logging.getLogger(__name__)

TRUNCATED_STOP_REASON = "max_tokens"
INCOMPLETE_RESPONSE = "Received an incomplete response from Claude API. Please try again."

# (api_key, timeout_seconds) -> client
ClientFactory = Callable[[str, float], AsyncAnthropic]


class ApiClient(Protocol):
    """Fill-generation client injected into the orchestrator."""

    async def generate_fills(
        self, form_data: ExtractedFormData, profile: UserProfile, api_key: str | None
    ) -> FillsResponse:
        ...

    async def validate_api_key(self, api_key: str) -> bool:
        ...


@dataclass
class RetryState:
    """Retry bookkeeping for one ``generate_fills`` call."""

    attempt: int = 0
    last_error: ApiError | None = None
    next_delay_ms: int = 0


def classify_status(status_code: int) -> ApiError:
    """Map a non-success HTTP status to an API error."""
    if status_code == 401:
        return AuthenticationError(status_code=status_code)
    if status_code == 429:
        return RateLimitedError(status_code=status_code)
    if status_code >= 500:
        return ServerError(status_code=status_code)
    return RequestFailedError(
        f"The AI service rejected the request (status {status_code}). Please try again.",
        status_code=status_code,
    )


def backoff_delay_ms(error: ApiError, attempt: int, base_ms: int, max_ms: int) -> int:
    """Delay before the next attempt.

    Rate limiting backs off exponentially, everything else linearly; both
    are capped at ``max_ms``.
    """
    if isinstance(error, RateLimitedError):
        delay = base_ms * 2 ** (attempt - 1)
    else:
        delay = base_ms * attempt
    return min(delay, max_ms)


class ResilientApiClient:
    """Generates fill proposals with one completion call per attempt.

    Retryable failures (rate limiting, server faults, timeouts, network
    errors) are retried up to ``api_retry_max`` attempts in total.
    Authentication failures, other rejected requests, malformed and
    truncated replies end the call immediately.
    """

    def __init__(
        self,
        app_settings: Settings | None = None,
        clock: Clock | None = None,
        progress: ProgressChannel | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            app_settings: Settings (defaults to the global settings)
            clock: Clock used for backoff sleeps
            progress: Channel receiving retry progress events
            client_factory: Builds the SDK client for a key and timeout
        """
        self.settings = app_settings or settings
        self.clock = clock or SystemClock()
        self.progress = progress or ProgressChannel()
        self.client_factory = client_factory or self._build_client

    # Arguments include the API key; only the form summary is traced
    @observe(capture_input=False)
    async def generate_fills(
        self,
        form_data: ExtractedFormData,
        profile: UserProfile,
        api_key: str | None,
    ) -> FillsResponse:
        """Ask the completion service for one proposal per field.

        Args:
            form_data: Extraction result (fields and job context)
            profile: Sanitized user profile
            api_key: Anthropic API key

        Returns:
            Parsed fill proposals

        Raises:
            ConfigurationError: If no API key is available
            ApiError: For every fatal condition, or RetriesExhaustedError
        """
        if not api_key:
            raise ConfigurationError()
        if not form_data.fields:
            raise NoFormFieldsError("No form fields found to analyze")

        langfuse_context.update_current_observation(
            input={"url": form_data.url, "field_ids": [f.id for f in form_data.fields]},
        )
        prompt = build_prompt(form_data.fields, profile, form_data.job_posting)
        client = self.client_factory(api_key, self.settings.api_timeout_seconds)
        max_attempts = self.settings.api_retry_max
        state = RetryState()

        while state.attempt < max_attempts:
            state.attempt += 1
            await self._publish(ProgressStage.ATTEMPT, state, max_attempts)

            try:
                text = await self._send(client, prompt, self.settings.api_max_tokens)
                return parse_fills_response(text)
            except ApiError as e:
                state.last_error = e
                if not e.retryable:
                    logger.error(f"Fill generation failed ({e.kind.value}), not retrying: {e}")
                    raise
                if state.attempt >= max_attempts:
                    break

                state.next_delay_ms = backoff_delay_ms(
                    e,
                    state.attempt,
                    self.settings.api_retry_base_delay_ms,
                    self.settings.api_retry_max_delay_ms,
                )
                logger.warning(
                    f"Attempt {state.attempt}/{max_attempts} failed ({e.kind.value}). "
                    f"Retrying in {state.next_delay_ms}ms"
                )
                await self._publish(ProgressStage.WAITING, state, max_attempts)
                await self.clock.sleep(state.next_delay_ms / 1000)

        logger.error(f"Fill generation failed after {state.attempt} attempts")
        raise RetriesExhaustedError(state.attempt, state.last_error)

    async def validate_api_key(self, api_key: str) -> bool:
        """Check a key with a minimal request. A rate-limited key is valid."""
        if not api_key:
            return False

        client = self.client_factory(api_key, self.settings.api_validation_timeout_ms / 1000)
        try:
            await self._send(client, "test", max_tokens=10)
        except RateLimitedError:
            return True
        except ApiError as e:
            logger.info(f"API key validation failed: {e.kind.value}")
            return False
        return True

    def _build_client(self, api_key: str, timeout: float) -> AsyncAnthropic:
        """Build an SDK client whose only retry policy is ours."""
        return AsyncAnthropic(
            api_key=api_key,
            base_url=self.settings.anthropic_base_url,
            timeout=timeout,
            max_retries=0,
            default_headers={"anthropic-version": self.settings.anthropic_version},
        )

    @observe(as_type="generation", capture_input=False)
    async def _send(self, client: AsyncAnthropic, prompt: str, max_tokens: int) -> str:
        """Perform one round trip and return the reply text.

        Raises:
            ApiError: Classified failure of this attempt
        """
        model = self.settings.claude_model
        messages = [{"role": "user", "content": prompt}]
        langfuse_context.update_current_observation(input=messages)
        try:
            response = await client.messages.create(
                model=model,
                max_tokens=max_tokens,
                messages=messages,
            )
        except anthropic.APITimeoutError as e:
            raise ApiTimeoutError() from e
        except anthropic.APIConnectionError as e:
            raise NetworkError() from e
        except anthropic.APIStatusError as e:
            raise classify_status(e.status_code) from e

        if getattr(response, "usage", None):
            langfuse_context.update_current_observation(
                model=model,
                usage={
                    "input": response.usage.input_tokens,
                    "output": response.usage.output_tokens,
                },
                model_parameters={"max_tokens": max_tokens},
            )

        if response.stop_reason == TRUNCATED_STOP_REASON:
            logger.warning("Claude response was truncated at the token limit")
            raise TruncatedResponseError()

        text_content = ""
        for block in response.content or []:
            if block.type == "text":
                text_content += block.text

        if not text_content:
            raise MalformedResponseError(INCOMPLETE_RESPONSE)

        return text_content

    async def _publish(self, stage: ProgressStage, state: RetryState, max_attempts: int) -> None:
        event = ProgressEvent(
            stage=stage,
            attempt=state.attempt,
            max_attempts=max_attempts,
            wait_ms=state.next_delay_ms if stage == ProgressStage.WAITING else 0,
            reason=state.last_error.kind.value if state.last_error else None,
        )
        try:
            await self.progress.publish(event)
        except Exception as e:
            logger.debug(f"Progress notification failed: {e}")

