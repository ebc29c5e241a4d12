"""
FastAPI routes for the Dexcom glucose proxy.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import RedirectResponse

from glucose_proxy.clients.dexcom import (
    DexcomAPIError,
    OAuthTokenExchangeError,
    OAuthTokenNotFoundError,
)
from glucose_proxy.dependencies import (
    get_chart_renderer,
    get_dexcom_client,
    get_dexcom_token_service,
)
from glucose_proxy.schemas import (
    GlucoseTrends,
    OAuthCallbackPayload,
    TokenRefreshResponse,
)
from glucose_proxy.services.trends import summarize_readings

router = APIRouter()
logger = logging.getLogger(__name__)

StartDate = Annotated[
    str, Query(alias="startDate", description="Range start, e.g. 2024-01-01T00:00:00.")
]
EndDate = Annotated[
    str, Query(alias="endDate", description="Range end, e.g. 2024-01-02T00:00:00.")
]


async def _fetch_readings(
    token_service: Any,
    dexcom_client: Any,
    *,
    start_date: str,
    end_date: str,
    failure_message: str,
) -> List[Dict[str, Any]]:
    """Load (and refresh if needed) the token, then read glucose records."""
    try:
        record = await token_service.get_valid_record()
    except OAuthTokenNotFoundError as exc:
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail="Not authorized. Please complete OAuth flow first.",
        ) from exc
    except OAuthTokenExchangeError as exc:
        logger.error("%s: token refresh rejected: %s", failure_message, exc)
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            detail={"error": failure_message, "details": str(exc)},
        ) from exc

    try:
        return await dexcom_client.fetch_egvs(
            access_token=record.access_token,
            start_date=start_date,
            end_date=end_date,
        )
    except DexcomAPIError as exc:
        logger.error("%s: %s", failure_message, exc.details)
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            detail={"error": failure_message, "details": exc.details},
        ) from exc


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/auth/authorize", status_code=HTTPStatus.OK)
async def start_dexcom_oauth_flow(
    request: Request,
    dexcom_client: Annotated[Any, Depends(get_dexcom_client)],
    state: str | None = Query(
        default=None, description="Opaque value echoed back to the redirect URI."
    ),
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the Dexcom login page.",
    ),
) -> dict:
    """Return (or redirect to) the Dexcom consent URL that starts the OAuth flow."""
    authorization_url = dexcom_client.build_authorization_url(state=state)

    wants_html = "text/html" in request.headers.get("accept", "").lower()
    if redirect or wants_html:
        return RedirectResponse(url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)

    return {"authorization_url": authorization_url}


@router.post("/auth/callback", status_code=HTTPStatus.OK)
async def handle_dexcom_oauth_callback(
    payload: OAuthCallbackPayload,
    dexcom_client: Annotated[Any, Depends(get_dexcom_client)],
    token_service: Annotated[Any, Depends(get_dexcom_token_service)],
) -> dict:
    """Exchange the authorization code and store the resulting token pair."""
    try:
        (
            access_token,
            refresh_token,
            expires_in,
        ) = await dexcom_client.exchange_authorization_code(payload.code)
        await token_service.store_grant(access_token, refresh_token, expires_in)
    except Exception as exc:
        logger.exception("Token exchange failed")
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            detail="Token exchange failed",
        ) from exc

    return {"message": "Authorization successful"}


@router.post(
    "/auth/refresh", response_model=TokenRefreshResponse, status_code=HTTPStatus.OK
)
async def force_token_refresh(
    token_service: Annotated[Any, Depends(get_dexcom_token_service)],
) -> TokenRefreshResponse:
    """Refresh the access token regardless of its remaining lifetime."""
    try:
        record = await token_service.refresh()
    except OAuthTokenNotFoundError as exc:
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail="Not authorized. Please complete OAuth flow first.",
        ) from exc
    except Exception as exc:
        logger.exception("Token refresh failed")
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            detail="Token refresh failed",
        ) from exc

    return TokenRefreshResponse(
        access_token=record.access_token,
        refresh_token=record.refresh_token,
        expires_in=record.expires_in(),
    )


@router.get("/glucose", status_code=HTTPStatus.OK)
async def get_glucose_readings(
    start_date: StartDate,
    end_date: EndDate,
    token_service: Annotated[Any, Depends(get_dexcom_token_service)],
    dexcom_client: Annotated[Any, Depends(get_dexcom_client)],
) -> List[Dict[str, Any]]:
    """Raw Dexcom reading records for the date range."""
    return await _fetch_readings(
        token_service,
        dexcom_client,
        start_date=start_date,
        end_date=end_date,
        failure_message="Failed to fetch glucose data",
    )


@router.get("/trends", response_model=GlucoseTrends, status_code=HTTPStatus.OK)
async def get_glucose_trends(
    start_date: StartDate,
    end_date: EndDate,
    token_service: Annotated[Any, Depends(get_dexcom_token_service)],
    dexcom_client: Annotated[Any, Depends(get_dexcom_client)],
) -> GlucoseTrends:
    """Average, highest, lowest and count of readings in the date range."""
    readings = await _fetch_readings(
        token_service,
        dexcom_client,
        start_date=start_date,
        end_date=end_date,
        failure_message="Failed to analyze trends",
    )
    try:
        return summarize_readings(readings)
    except Exception as exc:
        logger.exception("Failed to analyze trends")
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            detail="Failed to analyze trends",
        ) from exc


@router.get(
    "/charts",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
)
async def get_glucose_chart(
    start_date: StartDate,
    end_date: EndDate,
    token_service: Annotated[Any, Depends(get_dexcom_token_service)],
    dexcom_client: Annotated[Any, Depends(get_dexcom_client)],
    renderer: Annotated[Any, Depends(get_chart_renderer)],
) -> Response:
    """PNG line chart of readings over the date range."""
    readings = await _fetch_readings(
        token_service,
        dexcom_client,
        start_date=start_date,
        end_date=end_date,
        failure_message="Failed to generate chart",
    )
    try:
        image = await run_in_threadpool(renderer.render, readings)
    except Exception as exc:
        logger.exception("Failed to generate chart")
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            detail="Failed to generate chart",
        ) from exc

    return Response(content=image, media_type="image/png")
