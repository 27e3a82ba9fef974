"""Drive the optimize, test and analyze stages of a session."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

import typer
from google.genai import types
from tenacity import AsyncRetrying, RetryError, retry_if_result, stop_after_delay

from .assembler import assemble
from .credentials import CredentialProvider, StaticCredentials
from .errors import (
    GenerationError,
    MissingCredentialError,
    OptimizeError,
    StageBusyError,
    StageRejectedError,
    StaleResultError,
)
from .instructions import select_instructions
from .media import is_image_data_uri, with_query_param
from .models import (
    ActiveTab,
    BuilderGroup,
    GenerationSession,
    PromptMode,
    SessionTicket,
    Stage,
    StageStatus,
)
from .service import GeminiService

log = logging.getLogger(__name__)

ERROR_PREFIX = "Error:"
NO_TEXT_RESULT = "No response generated."
NO_IMAGE_RESULT = "No image generated. The model might have returned text instead."
ANALYSIS_FAILED = "Failed to analyze image."
BILLING_URL = "https://ai.google.dev/gemini-api/docs/billing"


def failure_message(mode: PromptMode) -> str:
    """User-facing text stored as the test result when generation fails."""
    match mode:
        case PromptMode.TEXT:
            return f"{ERROR_PREFIX} Could not run the prompt. Check your API key."
        case PromptMode.IMAGE:
            return (
                f"{ERROR_PREFIX} Could not generate an image. "
                "The model may be unavailable for your API key."
            )
        case PromptMode.VIDEO:
            return (
                f"{ERROR_PREFIX} Could not run the prompt. Video generation "
                f"requires a paid API key with billing enabled ({BILLING_URL})."
            )


def is_error_result(result: str) -> bool:
    return result.startswith(ERROR_PREFIX)


def apply_builder(session: GenerationSession, group: BuilderGroup) -> str:
    """Assemble ``group`` and seed the session's prompt slots with it.

    The assembled prompt counts as already optimized.
    """
    prompt = assemble(session.descriptor, group, session.config)
    session.active_group = group
    session.apply_assembly(prompt)
    return prompt


class Orchestrator:
    """Runs pipeline stages against a session.

    Each stage is a single awaitable. Stages record their status on the
    session and refuse to start while already running. Results are only
    written back if the session still has the mode and epoch it had when
    the stage started.
    """

    def __init__(
        self,
        gateway: GeminiService,
        credentials: CredentialProvider | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.gateway = gateway
        self.credentials = credentials or StaticCredentials(gateway.api_key)
        self._sleep = sleep

    def _begin(self, session: GenerationSession, stage: Stage) -> SessionTicket:
        if session.stages[stage] is StageStatus.RUNNING:
            msg = f"The {stage.value} stage is already running"
            raise StageBusyError(msg)
        session.stages[stage] = StageStatus.RUNNING
        return session.ticket()

    def _release(self, session: GenerationSession, stage: Stage) -> None:
        if session.stages[stage] is StageStatus.RUNNING:
            session.stages[stage] = StageStatus.IDLE

    def _ensure_current(
        self,
        session: GenerationSession,
        ticket: SessionTicket,
        stage: Stage,
    ) -> None:
        if not session.is_current(ticket):
            session.stages[stage] = StageStatus.IDLE
            log.warning(
                "Discarding stale %s result for %s mode",
                stage.value,
                ticket.mode.value,
            )
            msg = f"Session changed while the {stage.value} stage was running"
            raise StaleResultError(msg)

    async def optimize(self, session: GenerationSession) -> str:
        """Rewrite the raw input into an optimized prompt.

        Raises:
            StageRejectedError: If there is no raw input.
            OptimizeError: If the gateway call fails; the session is untouched.
            StaleResultError: If the session changed meanwhile.

        """
        if not session.raw_input.strip():
            msg = "Nothing to optimize: the raw input is empty"
            raise StageRejectedError(msg)
        ticket = self._begin(session, Stage.OPTIMIZE)
        try:
            return await self._run_optimize(session, ticket)
        finally:
            self._release(session, Stage.OPTIMIZE)

    async def _run_optimize(
        self,
        session: GenerationSession,
        ticket: SessionTicket,
    ) -> str:
        try:
            result = await self.gateway.optimize(
                session.raw_input,
                select_instructions(session.config),
            )
        except Exception as e:
            session.stages[Stage.OPTIMIZE] = StageStatus.FAILED
            log.error("Optimization error: %s", e)
            if isinstance(e, OptimizeError):
                raise
            msg = f"Failed to optimize prompt: {e}"
            raise OptimizeError(msg) from e

        self._ensure_current(session, ticket, Stage.OPTIMIZE)
        session.optimized_output = result
        session.active_tab = ActiveTab.EDITOR
        session.clear_results()
        session.stages[Stage.OPTIMIZE] = StageStatus.DONE
        return result

    async def test(self, session: GenerationSession) -> str:
        """Run the optimized prompt against the backend for the current mode.

        Generation failures do not raise; a mode-specific error message is
        stored as the test result instead.

        Raises:
            StageRejectedError: If there is no optimized prompt.
            MissingCredentialError: If video mode has no usable paid key.
            StaleResultError: If the session changed meanwhile.

        """
        if not session.optimized_output.strip():
            msg = "Nothing to test: the optimized prompt is empty"
            raise StageRejectedError(msg)
        ticket = self._begin(session, Stage.TEST)
        try:
            return await self._test_stage(session, ticket)
        finally:
            self._release(session, Stage.TEST)

    async def _test_stage(
        self,
        session: GenerationSession,
        ticket: SessionTicket,
    ) -> str:
        mode = session.config.mode
        session.analysis_result = ""
        session.active_tab = ActiveTab.TEST

        try:
            result = await self._run_test(session, ticket)
        except (StaleResultError, typer.Abort):
            raise
        except MissingCredentialError:
            session.stages[Stage.TEST] = StageStatus.FAILED
            raise
        except Exception as e:
            log.error("Test error: %s", e)
            result = failure_message(mode)
            status = StageStatus.FAILED
        else:
            status = StageStatus.DONE

        self._ensure_current(session, ticket, Stage.TEST)
        session.test_result = result
        session.stages[Stage.TEST] = status
        return result

    async def _run_test(self, session: GenerationSession, ticket: SessionTicket) -> str:
        mode = session.config.mode
        if mode is PromptMode.VIDEO:
            self._ensure_billable_key()
        outcome = await self.gateway.generate(
            session.optimized_output,
            mode,
            session.config.aspect_ratio,
        )
        match mode:
            case PromptMode.TEXT:
                return outcome or NO_TEXT_RESULT
            case PromptMode.IMAGE:
                return outcome or NO_IMAGE_RESULT
            case PromptMode.VIDEO:
                operation = await self._await_operation(session, ticket, outcome)
                return self._video_result(operation)

    def _ensure_billable_key(self) -> None:
        if not self.credentials.has_selected_key():
            log.info("No paid key selected; asking for one")
        key = self.credentials.select_key()
        if not key:
            msg = "Video generation requires a paid API key."
            raise MissingCredentialError(msg)
        if key != self.gateway.api_key:
            self.gateway.use_api_key(key)

    async def _await_operation(
        self,
        session: GenerationSession,
        ticket: SessionTicket,
        operation: types.GenerateVideosOperation,
    ) -> types.GenerateVideosOperation:
        """Poll ``operation`` at a fixed interval until it reports done."""
        if operation.done:
            return operation
        config = self.gateway.config
        current = operation

        async def _tick() -> types.GenerateVideosOperation:
            nonlocal current
            await self._sleep(config.poll_interval)
            self._ensure_current(session, ticket, Stage.TEST)
            current = await self.gateway.poll_operation(current)
            log.debug("Video operation done=%s", current.done)
            return current

        retryer = AsyncRetrying(
            retry=retry_if_result(lambda op: not op.done),
            stop=stop_after_delay(config.poll_timeout),
        )
        try:
            return await retryer(_tick)
        except RetryError as e:
            msg = f"Video generation did not finish within {config.poll_timeout:.0f}s"
            raise GenerationError(msg) from e

    def _video_result(self, operation: types.GenerateVideosOperation) -> str:
        if operation.error:
            msg = f"Video generation failed: {operation.error}"
            raise GenerationError(msg)
        response = operation.response or operation.result
        videos = getattr(response, "generated_videos", None) if response else None
        uri = videos[0].video.uri if videos and videos[0].video else None
        if not uri:
            msg = "No video URI returned."
            raise GenerationError(msg)
        log.info("Video URI: %s", uri)
        return with_query_param(uri, "key", self.gateway.api_key)

    async def analyze(self, session: GenerationSession) -> str:
        """Critique an image test result against the optimized prompt.

        Raises:
            StageRejectedError: If the test result is not an image data URI.
            StaleResultError: If the session changed meanwhile.

        """
        if not is_image_data_uri(session.test_result):
            msg = "Analysis needs an image test result"
            raise StageRejectedError(msg)
        ticket = self._begin(session, Stage.ANALYZE)
        try:
            try:
                result = await self.gateway.analyze(
                    session.test_result,
                    session.optimized_output,
                )
            except Exception as e:
                log.error("Analysis error: %s", e)
                result = ANALYSIS_FAILED
                status = StageStatus.FAILED
            else:
                status = StageStatus.DONE

            self._ensure_current(session, ticket, Stage.ANALYZE)
            session.analysis_result = result
            session.stages[Stage.ANALYZE] = status
            return result
        finally:
            self._release(session, Stage.ANALYZE)
