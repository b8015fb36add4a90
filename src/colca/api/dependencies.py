"""FastAPI dependencies providing settings and configured service clients.

Settings are built once in ``create_app`` and stored on ``app.state``. Clients
are constructed per request from those settings, so a missing API key surfaces
as ``MissingConfigurationError`` before any network call. Tests replace any of
these through ``app.dependency_overrides``.
"""

from functools import partial

from fastapi import Request

from colca.core.config import Settings
from colca.services.flux.client import FluxClient
from colca.services.flux.poll_relay import ReadyAssetCache
from colca.services.gemini.client import GeminiClient
from colca.services.generation.direct_generator import DirectGenerator
from colca.services.upload.assets import fetch_asset
from colca.services.upload.client import UploadClient
from colca.services.upload.sequencer import UploadSequencer


def get_settings(request: Request) -> Settings:
    """Get application settings from app state."""
    return request.app.state.settings


def get_ready_cache(request: Request) -> ReadyAssetCache | None:
    """Get the ready-asset cache (None when caching is disabled)."""
    return request.app.state.ready_cache


def build_flux_client(settings: Settings) -> FluxClient:
    return FluxClient(
        api_key=settings.bfl_api_key,
        create_url=settings.bfl_create_url,
        timeout=settings.http_timeout_seconds,
    )


def build_direct_generator(settings: Settings) -> DirectGenerator:
    gemini = GeminiClient(
        api_key=settings.gemini_api_key,
        image_model=settings.gemini_image_model,
        caption_model=settings.gemini_caption_model,
    )
    return DirectGenerator(gemini, caption_max_words=settings.caption_max_words)


def build_upload_sequencer(settings: Settings) -> UploadSequencer:
    client = UploadClient(settings.upload_endpoint, timeout=settings.http_timeout_seconds)
    fetcher = partial(fetch_asset, timeout=settings.http_timeout_seconds)
    return UploadSequencer(client, fetcher=fetcher)


def get_flux_client_factory(request: Request):
    """Return a zero-argument factory so routes can map configuration errors themselves."""
    return partial(build_flux_client, get_settings(request))


def get_generator_factory(request: Request):
    return partial(build_direct_generator, get_settings(request))


def get_sequencer_factory(request: Request):
    return partial(build_upload_sequencer, get_settings(request))
