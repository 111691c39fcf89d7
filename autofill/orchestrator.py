"""Pipeline sequencing: extract, generate, fill."""

import logging
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field

from autofill.clock import Clock, SystemClock
from autofill.config import Settings, settings
from autofill.dom.document import ChangeNotifier, DocumentEventNotifier, FormDocument
from autofill.dom.extractor import analyze_form
from autofill.dom.filler import FillEngine, ValidationErrorCallback
from autofill.errors import (
    ConfigurationError,
    NoFormFieldsError,
    OperationInProgressError,
    RateLimitExceeded,
)
from autofill.integrations.claude.client import ApiClient
from autofill.models import (
    ExtractedFormData,
    Fill,
    FillInstruction,
    FillResult,
    FillsResponse,
    UserProfile,
)
from autofill.rate_limiter import RateLimiter
from autofill.security import sanitize_form_data, sanitize_profile, validate_api_key_format
from autofill.storage import StorageProvider

logger = logging.getLogger(__name__)

GENERATE_FILLS_KEY = "generate_fills"

NotifierFactory = Callable[[FormDocument], ChangeNotifier]


@dataclass
class RunResult:
    """Everything one end-to-end run produced."""

    form_data: ExtractedFormData
    fills: list[Fill] = field(default_factory=list)
    result: FillResult = field(default_factory=FillResult)


class Orchestrator:
    """Sequences extraction, fill generation and the fill pass.

    Collaborators are injected: the completion client, the credential
    store, the clock and the rate limiter. Only one operation runs at a
    time; a second one started while the first is in flight is rejected
    with ``OperationInProgressError``.
    """

    def __init__(
        self,
        api_client: ApiClient,
        storage: StorageProvider,
        clock: Clock | None = None,
        rate_limiter: RateLimiter | None = None,
        notifier_factory: NotifierFactory | None = None,
        app_settings: Settings | None = None,
        on_validation_error: ValidationErrorCallback | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            api_client: Client generating fill proposals
            storage: Credential store
            clock: Clock shared with the rate limiter and fill engine
            rate_limiter: Local limiter for generate requests
            notifier_factory: Builds the change notifier for a document
            app_settings: Settings (defaults to the global settings)
            on_validation_error: Forwarded to every fill engine
        """
        self.api_client = api_client
        self.storage = storage
        self.settings = app_settings or settings
        self.clock = clock or SystemClock()
        self.rate_limiter = rate_limiter or RateLimiter(
            clock=self.clock,
            max_age_ms=self.settings.rate_limit_max_age_ms,
            sweep_interval_ms=self.settings.rate_limit_cleanup_interval_ms,
        )
        self.notifier_factory = notifier_factory or DocumentEventNotifier
        self.on_validation_error = on_validation_error
        self._current_operation: str | None = None

    async def start(self) -> None:
        await self.rate_limiter.start()

    async def stop(self) -> None:
        await self.rate_limiter.stop()

    async def __aenter__(self) -> "Orchestrator":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    @property
    def is_busy(self) -> bool:
        return self._current_operation is not None

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        if self._current_operation is not None:
            logger.warning(f"Rejected {name}: {self._current_operation} is in progress")
            raise OperationInProgressError(self._current_operation)
        self._current_operation = name
        try:
            yield
        finally:
            self._current_operation = None

    # =========================================================================
    # Operations
    # =========================================================================

    async def analyze(self, document: FormDocument) -> ExtractedFormData:
        """Extract the form fields and job context from a document.

        Raises:
            NoFormFoundError: If there is no form on the page
            NoFormFieldsError: If the form has no fillable fields
        """
        with self._operation("analyze"):
            form_data = analyze_form(document)
            logger.info(f"Extracted {len(form_data.fields)} fields from {document.url or 'document'}")
            return form_data

    async def generate_fills(
        self, form_data: ExtractedFormData, profile: UserProfile | dict | None
    ) -> FillsResponse:
        """Ask the completion service for fill proposals.

        Raises:
            ConfigurationError: If no API key is stored
            NoFormFieldsError: If ``form_data`` holds no fields
            RateLimitExceeded: If the local limiter rejects the request
            ApiError: If the completion call fails
        """
        with self._operation("generate"):
            return await self._generate(form_data, profile)

    async def fill(
        self, document: FormDocument, fills: Sequence[Fill | FillInstruction | dict]
    ) -> FillResult:
        """Apply fill proposals to a document.

        Proposals without a field id are reported as skipped.
        """
        with self._operation("fill"):
            return await self._fill(document, fills)

    async def run(self, document: FormDocument, profile: UserProfile | dict | None) -> RunResult:
        """Run extraction, generation and the fill pass end to end."""
        with self._operation("run"):
            form_data = analyze_form(document)
            logger.info(f"Extracted {len(form_data.fields)} fields, requesting fills")
            response = await self._generate(form_data, profile)
            result = await self._fill(document, response.fills)
            return RunResult(form_data=form_data, fills=response.fills, result=result)

    async def validate_api_key(self, api_key: str | None = None) -> bool:
        """Validate the given key, or the stored one."""
        key = api_key or await self.storage.retrieve_api_key()
        if not validate_api_key_format(key):
            logger.info("API key rejected by format check")
            return False
        return await self.api_client.validate_api_key(key)

    # =========================================================================
    # Steps
    # =========================================================================

    async def _generate(
        self, form_data: ExtractedFormData, profile: UserProfile | dict | None
    ) -> FillsResponse:
        api_key = await self.storage.retrieve_api_key()
        if not api_key:
            raise ConfigurationError()

        if not form_data.fields:
            raise NoFormFieldsError("No form fields found to analyze")

        limit = self.settings.rate_limit_max_requests
        window_ms = self.settings.rate_limit_window_ms
        if not self.rate_limiter.check_limit(GENERATE_FILLS_KEY, limit, window_ms):
            wait_seconds = self.rate_limiter.remaining_time(GENERATE_FILLS_KEY, window_ms)
            logger.warning(f"Rate limit reached for {GENERATE_FILLS_KEY}, retry in {wait_seconds:.0f}s")
            raise RateLimitExceeded(GENERATE_FILLS_KEY, limit, wait_seconds)

        response = await self.api_client.generate_fills(
            sanitize_form_data(form_data), sanitize_profile(profile), api_key
        )
        logger.info(f"Received {len(response.fills)} fill proposals")
        return response

    async def _fill(
        self, document: FormDocument, fills: Sequence[Fill | FillInstruction | dict]
    ) -> FillResult:
        instructions: list[FillInstruction] = []
        for item in fills:
            if isinstance(item, dict):
                item = Fill.model_validate(item)
            if isinstance(item, Fill):
                item = FillInstruction.from_fill(item)
            instructions.append(item)

        engine = FillEngine(
            document,
            notifier=self.notifier_factory(document),
            clock=self.clock,
            settle_delay_ms=self.settings.field_fill_delay_ms,
            on_validation_error=self.on_validation_error,
        )
        return await engine.fill_all(instructions)
