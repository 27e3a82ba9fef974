"""Gateway to the Google Gemini API."""

import base64
import logging

from google import genai
from google.genai import types

from .errors import (
    AnalysisError,
    GenerationError,
    MissingCredentialError,
    OptimizeError,
)
from .instructions import InstructionPayload
from .media import parse_data_uri, to_data_uri
from .models import AspectRatio, GatewayConfig, PromptMode

log = logging.getLogger(__name__)

ANALYSIS_PROMPT = """\
Act as an Art Historian and QA Specialist.
Analyze the attached image which was generated from the prompt: "{prompt}".

CRITIQUE FOCUS:
1. Historical Accuracy: Check Armor, Architecture, and Objects. Are they from the correct era/region?
2. Ethnicity vs. Setting: Does the character's ethnicity match the request? Is there accidental blending?
3. Visual Anomalies: Are there "leaks" where styles mix inappropriately?

Provide a concise, bulleted analysis. Be critical."""

GenerateOutcome = str | None | types.GenerateVideosOperation


class GeminiService:
    """Service to interact with Google Gemini API."""

    def __init__(self, api_key: str, config: GatewayConfig | None = None) -> None:
        """Initialize the service with an API key."""
        if not api_key:
            msg = (
                "API Key is missing. "
                "Set GEMINI_API_KEY env var or pass it as an argument."
            )
            raise MissingCredentialError(msg)
        self.config = config or GatewayConfig()
        self.use_api_key(api_key)

    @property
    def api_key(self) -> str:
        return self._api_key

    def use_api_key(self, api_key: str) -> None:
        """Rebuild the client so later calls bill against ``api_key``."""
        if not api_key:
            msg = "API Key is missing."
            raise MissingCredentialError(msg)
        self._api_key = api_key
        self.client = genai.Client(api_key=api_key)

    async def optimize(self, text: str, instructions: InstructionPayload) -> str:
        """Rewrite ``text`` following the optimizer directives.

        Raises:
            OptimizeError: If the API call fails.

        """
        try:
            response = await self.client.aio.models.generate_content(
                model=self.config.text_model,
                contents=text,
                config=types.GenerateContentConfig(
                    system_instruction=instructions.render(),
                    temperature=self.config.temperature,
                ),
            )
        except Exception as e:
            msg = f"Failed to optimize prompt: {e}"
            raise OptimizeError(msg) from e
        return response.text or "Failed to generate optimized prompt."

    async def generate(
        self,
        prompt: str,
        mode: PromptMode,
        aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE,
    ) -> GenerateOutcome:
        """Run ``prompt`` against the backend for ``mode``.

        Returns:
            Text mode: the response text, or None.
            Image mode: the first inline image as a data URI, or None.
            Video mode: the submitted long-running operation.

        Raises:
            GenerationError: If the API call fails.

        """
        try:
            match mode:
                case PromptMode.TEXT:
                    return await self._generate_text(prompt)
                case PromptMode.IMAGE:
                    return await self._generate_image(prompt)
                case PromptMode.VIDEO:
                    return await self._submit_video(prompt, aspect_ratio)
        except Exception as e:
            msg = f"{mode.value} generation failed: {e}"
            raise GenerationError(msg) from e

    async def _generate_text(self, prompt: str) -> str | None:
        response = await self.client.aio.models.generate_content(
            model=self.config.text_model,
            contents=prompt,
        )
        return response.text or None

    async def _generate_image(self, prompt: str) -> str | None:
        response = await self.client.aio.models.generate_content(
            model=self.config.image_model,
            contents=[types.Content(parts=[types.Part.from_text(text=prompt)])],
        )
        if not response.candidates or not response.candidates[0].content:
            return None
        for part in response.candidates[0].content.parts or []:
            if part.inline_data and part.inline_data.data:
                return to_data_uri(part.inline_data.data, part.inline_data.mime_type)
        return None

    async def _submit_video(
        self,
        prompt: str,
        aspect_ratio: AspectRatio,
    ) -> types.GenerateVideosOperation:
        log.info("Submitting video job (%s): %s", self.config.video_model, prompt)
        return await self.client.aio.models.generate_videos(
            model=self.config.video_model,
            prompt=prompt,
            config=types.GenerateVideosConfig(
                number_of_videos=1,
                resolution=self.config.video_resolution,
                aspect_ratio=aspect_ratio.value,
            ),
        )

    async def poll_operation(
        self,
        operation: types.GenerateVideosOperation,
    ) -> types.GenerateVideosOperation:
        """Fetch the latest status of a long-running video job."""
        try:
            return await self.client.aio.operations.get(operation)
        except Exception as e:
            msg = f"Failed to fetch video operation status: {e}"
            raise GenerationError(msg) from e

    async def analyze(self, image_data_uri: str, prompt: str) -> str:
        """Critique a generated image against the prompt that produced it.

        Raises:
            AnalysisError: If the image is malformed or the API call fails.

        """
        try:
            mime_type, payload = parse_data_uri(image_data_uri)
            response = await self.client.aio.models.generate_content(
                model=self.config.analysis_model,
                contents=[
                    types.Content(
                        parts=[
                            types.Part.from_bytes(
                                data=base64.b64decode(payload),
                                mime_type=mime_type,
                            ),
                            types.Part.from_text(
                                text=ANALYSIS_PROMPT.format(prompt=prompt),
                            ),
                        ],
                    ),
                ],
            )
        except Exception as e:
            msg = f"Failed to analyze image: {e}"
            raise AnalysisError(msg) from e
        return response.text or "Could not analyze image."
