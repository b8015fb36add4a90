"""Direct synchronous generation: four camera angles plus ad headlines.

Workflow for a batch:
1. Derive one prompt variant per angle suffix
2. Generate all images concurrently (all-or-nothing: one failure fails the batch)
3. Generate all captions concurrently (a failed caption becomes "")
4. Pair image i with caption i
"""

from typing import Protocol, Sequence

import structlog
from pydantic import BaseModel

from colca.models.asset import InlineAsset
from colca.services.exceptions import InvalidInputError
from colca.services.generation.captions import (
    DEFAULT_MAX_WORDS,
    build_caption_prompt,
    clean_caption,
)
from colca.services.generation.combinators import gather_all_or_nothing, gather_with_default
from colca.services.generation.variants import ANGLE_SUFFIXES, build_prompt_variants

logger = structlog.get_logger(__name__)

MAX_COMPOSITE_IMAGES = 3


class ImageTextGenerator(Protocol):
    """Subset of GeminiClient used here."""

    async def generate_image(self, images: Sequence[InlineAsset], prompt: str) -> str: ...

    async def generate_text(self, prompt: str) -> str: ...


class GeneratedImage(BaseModel):
    """One generated image (URL or data URL) with its ad headline."""

    image: str
    caption: str = ""


class DirectGenerator:
    """Fan-out generator over a synchronous image API."""

    def __init__(
        self,
        client: ImageTextGenerator,
        suffixes: tuple[str, ...] = ANGLE_SUFFIXES,
        caption_max_words: int = DEFAULT_MAX_WORDS,
    ):
        self.client = client
        self.suffixes = suffixes
        self.caption_max_words = caption_max_words

    async def caption(self, scene_prompt: str) -> str:
        """Generate and clean one headline for a scene prompt."""
        raw = await self.client.generate_text(
            build_caption_prompt(scene_prompt, self.caption_max_words)
        )
        return clean_caption(raw, self.caption_max_words)

    async def generate_batch(self, image: InlineAsset | None, prompt: str) -> list[GeneratedImage]:
        """Generate one image per angle variant from a single car photo.

        Args:
            image: Base car photo shared by every call
            prompt: Base scene description

        Returns:
            One GeneratedImage per variant, in variant order

        Raises:
            InvalidInputError: No image or blank prompt
            ServiceError: First image-call failure (no partial results)
        """
        if image is None:
            raise InvalidInputError("Please select a car image.")
        if not prompt or not prompt.strip():
            raise InvalidInputError("Please enter a prompt.")

        variants = build_prompt_variants(prompt, self.suffixes)
        logger.info("generation.batch.started", variants=len(variants), mime_type=image.mime_type)

        images = await gather_all_or_nothing(
            self.client.generate_image([image], variant) for variant in variants
        )
        captions = await gather_with_default(
            (self.caption(variant) for variant in variants), default="", label="caption"
        )

        logger.info(
            "generation.batch.completed",
            images=len(images),
            captions=sum(1 for c in captions if c),
        )
        return [GeneratedImage(image=src, caption=cap) for src, cap in zip(images, captions)]

    async def generate_composite(
        self, images: Sequence[InlineAsset], prompt: str
    ) -> list[GeneratedImage]:
        """Generate one composite image from up to three reference images.

        In multi-image edits the last image sets the output aspect ratio.

        Raises:
            InvalidInputError: No images, more than three, or blank prompt
            ServiceError: Image call failure
        """
        if not images:
            raise InvalidInputError(f"Please upload 1-{MAX_COMPOSITE_IMAGES} images.")
        if len(images) > MAX_COMPOSITE_IMAGES:
            raise InvalidInputError(f"Maximum {MAX_COMPOSITE_IMAGES} images.")
        if not prompt or not prompt.strip():
            raise InvalidInputError("Please enter a prompt.")

        logger.info("generation.composite.started", images=len(images))
        src = await self.client.generate_image(list(images), prompt)
        (caption,) = await gather_with_default([self.caption(prompt)], default="", label="caption")
        return [GeneratedImage(image=src, caption=caption)]
