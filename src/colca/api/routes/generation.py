"""Direct generation, upload and gallery endpoints.

- POST /api/generate - Four camera-angle shots of one car, captioned, then uploaded
- POST /api/generate/composite - One composite from 1-3 reference images
- POST /api/uploads - Sequentially upload already generated images
- GET /api/gallery - Preset car photos

Generation results are returned even when the follow-up upload fails; the
upload failure is reported in ``upload_error`` next to per-item statuses.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from colca.api.dependencies import get_generator_factory, get_sequencer_factory, get_settings
from colca.api.responses import service_error_response, unexpected_error_response
from colca.core.config import Settings
from colca.models.asset import InlineAsset
from colca.models.upload_item import UploadBatch, UploadItem, UploadLinks, UploadStatus
from colca.services import gallery
from colca.services.exceptions import InvalidInputError, ServiceError
from colca.services.generation.direct_generator import GeneratedImage
from colca.services.generation.variants import DEFAULT_SCENE_PROMPT

logger = structlog.get_logger()
router = APIRouter(prefix="/api", tags=["generation"])


# Request/Response Models


class GenerateRequest(BaseModel):
    """Request model for the four-shot batch."""

    prompt: str = Field(default=DEFAULT_SCENE_PROMPT, description="Scene description")
    image: Optional[str] = Field(
        default=None, description="Car photo as a data URL (takes precedence over car)"
    )
    car: Optional[str] = Field(default=None, description="Preset car name from /api/gallery")
    upload: bool = Field(default=True, description="Upload results to storage when done")


class CompositeRequest(BaseModel):
    """Request model for a composite generation."""

    prompt: str = Field(default="", description="Composite instructions")
    images: list[str] = Field(default_factory=list, description="1-3 images as data URLs")
    upload: bool = Field(default=True)


class UploadItemDTO(BaseModel):
    """Per-item upload progress."""

    status: UploadStatus
    links: Optional[UploadLinks] = None
    error: Optional[str] = None


class GenerateResponse(BaseModel):
    results: list[GeneratedImage]
    uploads: list[UploadItemDTO] = Field(default_factory=list)
    upload_error: Optional[str] = None


class UploadSource(BaseModel):
    image: str = Field(..., description="Image as a base64 data URL")
    caption: str = Field(default="")
    filename: Optional[str] = Field(
        default=None, description="Original filename for single-file uploads"
    )


class UploadRequest(BaseModel):
    prompt: str = Field(default="")
    items: list[UploadSource] = Field(default_factory=list)


class GalleryItemDTO(BaseModel):
    name: str
    thumbnail_url: str
    source_url: str


def _decode_image(data_url: str) -> InlineAsset:
    try:
        return InlineAsset.from_data_url(data_url)
    except ValueError as e:
        raise InvalidInputError("Image must be a base64 data URL.", detail=str(e)) from e


def _progress(batch: UploadBatch) -> list[UploadItemDTO]:
    return [
        UploadItemDTO(status=item.status, links=item.links, error=item.error)
        for item in batch.items
    ]


async def _upload_results(
    results: list[GeneratedImage], prompt: str, sequencer_factory
) -> tuple[list[UploadItemDTO], Optional[str]]:
    batch = UploadBatch(items=[UploadItem(source=r.image, caption=r.caption) for r in results])
    try:
        sequencer = sequencer_factory()
        await sequencer.upload_all(batch, prompt)
        return _progress(batch), None
    except ServiceError as e:
        logger.warning("generation.upload_failed", error=str(e), error_tag=e.error_tag)
        return _progress(batch), str(e)


@router.post("/generate", response_model=GenerateResponse)
async def generate(
    body: GenerateRequest,
    settings: Settings = Depends(get_settings),
    generator_factory=Depends(get_generator_factory),
    sequencer_factory=Depends(get_sequencer_factory),
):
    """Generate four angle shots of one car and upload them in order."""
    try:
        if body.image:
            image = _decode_image(body.image)
        elif body.car:
            image = gallery.load_source(settings.gallery_dir, body.car)
        else:
            image = None

        generator = generator_factory()
        results = await generator.generate_batch(image, body.prompt)

    except ServiceError as e:
        return service_error_response(e, "generation.batch.failed")
    except Exception as e:
        return unexpected_error_response(e, "generation.batch.unexpected")

    uploads, upload_error = [], None
    if body.upload:
        uploads, upload_error = await _upload_results(results, body.prompt, sequencer_factory)

    return GenerateResponse(results=results, uploads=uploads, upload_error=upload_error)


@router.post("/generate/composite", response_model=GenerateResponse)
async def generate_composite(
    body: CompositeRequest,
    generator_factory=Depends(get_generator_factory),
    sequencer_factory=Depends(get_sequencer_factory),
):
    """Generate one composite image from up to three reference images."""
    try:
        images = [_decode_image(src) for src in body.images]
        generator = generator_factory()
        results = await generator.generate_composite(images, body.prompt)

    except ServiceError as e:
        return service_error_response(e, "generation.composite.failed")
    except Exception as e:
        return unexpected_error_response(e, "generation.composite.unexpected")

    uploads, upload_error = [], None
    if body.upload:
        uploads, upload_error = await _upload_results(results, body.prompt, sequencer_factory)

    return GenerateResponse(results=results, uploads=uploads, upload_error=upload_error)


@router.post("/uploads")
async def upload_images(body: UploadRequest, sequencer_factory=Depends(get_sequencer_factory)):
    """Upload images one at a time; stops at the first failure.

    Returns:
        200: {"uploads": [...]} with every item done
        400: {"error": "invalid_input", ...} for an empty batch or a non data URL item
        502: {"error": <tag>, "detail": ..., "uploads": [...]} on the first failed item
    """
    batch = UploadBatch(
        items=[
            UploadItem(source=item.image, caption=item.caption, filename_hint=item.filename)
            for item in body.items
        ]
    )

    try:
        # Only inline images are accepted; the server never fetches caller-supplied URLs
        for index, item in enumerate(body.items):
            if not item.image.startswith("data:"):
                raise InvalidInputError(
                    "Upload items must be base64 data URLs.", detail=f"item {index + 1}"
                )

        sequencer = sequencer_factory()
        await sequencer.upload_all(batch, body.prompt)
        return {"uploads": [dto.model_dump(mode="json") for dto in _progress(batch)]}

    except InvalidInputError as e:
        return service_error_response(e, "uploads.rejected")
    except ServiceError as e:
        logger.warning("uploads.failed", error=str(e), error_tag=e.error_tag)
        payload = e.to_payload()
        payload["uploads"] = [dto.model_dump(mode="json") for dto in _progress(batch)]
        status_code = 500 if e.error_tag == "missing_configuration" else status.HTTP_502_BAD_GATEWAY
        return JSONResponse(status_code=status_code, content=payload)
    except Exception as e:
        return unexpected_error_response(e, "uploads.unexpected")


@router.get("/gallery", response_model=list[GalleryItemDTO])
async def list_gallery():
    """List preset cars with their thumbnail and source URLs."""
    return [
        GalleryItemDTO(
            name=item.name,
            thumbnail_url=f"/car/thumbnail/{item.thumbnail}",
            source_url=f"/car/source/{item.source}",
        )
        for item in gallery.GALLERY
    ]
