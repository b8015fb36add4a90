"""FLUX proxy endpoints.

- POST /api/flux-start - Submit a generation job, returns ``{id, polling_url}``
- GET /api/flux-status?polling_url=... - One poll step; Ready jobs come back
  as ``{status, width, height, dataUrl}``, anything else as the raw payload

Upstream failures keep the upstream status code and forward its body under
``detail``. Wrong HTTP methods get 405 ``{"error": "method_not_allowed"}``
from the application-level handler.
"""

import structlog
from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from colca.api.dependencies import get_flux_client_factory, get_ready_cache, get_settings
from colca.api.responses import service_error_response, unexpected_error_response
from colca.core.config import Settings
from colca.services.exceptions import ServiceError
from colca.services.flux.poll_relay import ReadyAssetCache, poll_once
from colca.services.flux.submitter import FluxJobRequest, submit_job

logger = structlog.get_logger()
router = APIRouter(prefix="/api", tags=["flux"])


@router.post("/flux-start")
async def flux_start(request: Request, client_factory=Depends(get_flux_client_factory)):
    """Forward a generation request to FLUX.

    The body is forwarded as-is (prompt, aspect_ratio, input_image..input_image_4,
    output_format, seed); FLUX performs all validation.

    Returns:
        200: {"id": ..., "polling_url": ...}
        <upstream status>: {"error": "create_failed", "detail": <upstream body>}
        500: {"error": "missing_configuration" | "unexpected", "detail": ...}
    """
    try:
        try:
            body = await request.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        job_request = FluxJobRequest.model_validate(body)
        client = client_factory()
        job = await submit_job(client, job_request)
        return {"id": job.id, "polling_url": job.polling_url}

    except ServiceError as e:
        return service_error_response(e, "flux.start.failed")
    except Exception as e:
        return unexpected_error_response(e, "flux.start.unexpected")


@router.get("/flux-status")
async def flux_status(
    polling_url: str = Query(default=""),
    output_format: str | None = Query(default=None),
    client_factory=Depends(get_flux_client_factory),
    settings: Settings = Depends(get_settings),
    cache: ReadyAssetCache | None = Depends(get_ready_cache),
):
    """Proxy exactly one status poll.

    Returns:
        200: Ready body with inline dataUrl, or the raw upstream status payload
        400: {"error": "missing_polling_url"}
        <upstream status>: {"error": "poll_failed", "detail": <upstream body>}
        500: {"error": "no_sample_url", "info": <status payload>}
        502: {"error": "fetch_image_failed", "detail": <upstream body>}
    """
    if not polling_url:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST, content={"error": "missing_polling_url"}
        )

    try:
        client = client_factory()
        outcome = await poll_once(
            client,
            polling_url,
            output_format=output_format or settings.bfl_output_format,
            cache=cache,
        )
        return JSONResponse(status_code=status.HTTP_200_OK, content=outcome.to_response())

    except ServiceError as e:
        return service_error_response(e, "flux.status.failed")
    except Exception as e:
        return unexpected_error_response(e, "flux.status.unexpected")
