"""Gemini client for synchronous image and caption generation."""

import base64
from typing import Any, Optional, Sequence

import structlog
from google import genai
from google.genai import errors, types

from colca.models.asset import InlineAsset
from colca.services.exceptions import (
    GenerationError,
    MissingConfigurationError,
    NoImageReturnedError,
    TransportError,
)

logger = structlog.get_logger(__name__)


def _first_candidate_parts(response: Any) -> list[Any]:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    content = getattr(candidates[0], "content", None)
    return list(getattr(content, "parts", None) or [])


def extract_image_src(response: Any) -> str:
    """Return the first inline image of a response as a data URL.

    Raises:
        NoImageReturnedError: If no part carries image data
    """
    for part in _first_candidate_parts(response):
        inline = getattr(part, "inline_data", None)
        data = getattr(inline, "data", None) if inline is not None else None
        if not data:
            continue
        mime_type = getattr(inline, "mime_type", None) or "image/png"
        if isinstance(data, str):
            payload = data
        else:
            payload = base64.b64encode(data).decode("ascii")
        return f"data:{mime_type};base64,{payload}"

    logger.warning("gemini.no_image_in_response", parts=len(_first_candidate_parts(response)))
    raise NoImageReturnedError()


def extract_text(response: Any) -> str:
    """Return the text of the first part of the first candidate ('' when absent)."""
    parts = _first_candidate_parts(response)
    if not parts:
        return ""
    return getattr(parts[0], "text", None) or ""


class GeminiClient:
    """Async wrapper around the google-genai SDK.

    Each method issues one ``generate_content`` call; nothing is retried.
    """

    def __init__(
        self,
        api_key: str,
        image_model: str = "gemini-2.5-flash-image-preview",
        caption_model: str = "gemini-2.5-flash-lite",
        client: Optional[genai.Client] = None,
    ):
        """Initialize Gemini client.

        Args:
            api_key: Gemini API key (from GEMINI_API_KEY env var)
            image_model: Model used for image generation
            caption_model: Lightweight text model used for captions
            client: Pre-built SDK client (tests inject a mock)

        Raises:
            MissingConfigurationError: If api_key is empty
        """
        if not api_key:
            raise MissingConfigurationError("GEMINI_API_KEY not configured")

        self.image_model = image_model
        self.caption_model = caption_model
        self._client = client or genai.Client(api_key=api_key)

    async def _generate(self, model: str, contents: list[types.Content]) -> Any:
        try:
            return await self._client.aio.models.generate_content(model=model, contents=contents)
        except errors.APIError as e:
            raise GenerationError(e.code or 500, e.message or str(e)) from e
        except Exception as e:
            raise TransportError(f"Unexpected error: {e}") from e

    async def generate_image(self, images: Sequence[InlineAsset], prompt: str) -> str:
        """Generate one image from a prompt and reference images.

        Returns:
            Data URL of the generated image

        Raises:
            GenerationError: API rejected the call
            NoImageReturnedError: Response carried no image
            TransportError: Network or SDK failure
        """
        parts = [types.Part.from_text(text=prompt)]
        parts.extend(
            types.Part.from_bytes(data=img.data, mime_type=img.mime_type) for img in images
        )
        contents = [types.Content(role="user", parts=parts)]

        response = await self._generate(self.image_model, contents)
        return extract_image_src(response)

    async def generate_text(self, prompt: str) -> str:
        """Generate raw text for a prompt (no post-processing)."""
        contents = [types.Content(role="user", parts=[types.Part.from_text(text=prompt)])]
        response = await self._generate(self.caption_model, contents)
        return extract_text(response)
