"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from app.schemas import BucketSummaryOut, ErrorResponse, HealthResponse, ReadingOut
from models.records import Reading
from services.poller import DevicePoller, build_default_poller
from services.query import QueryService, QueryValidationError, build_default_query_service
from storage.reading_store import ReadingStore, build_default_store

logger = logging.getLogger(__name__)

router = APIRouter()


def get_query_service() -> QueryService:
    return build_default_query_service()


def get_store() -> ReadingStore:
    return build_default_store()


def get_poller() -> Optional[DevicePoller]:
    return build_default_poller()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
    )


def _to_payload(rows: List[Any]) -> List[dict]:
    payload = []
    for row in rows:
        if isinstance(row, Reading):
            model: ReadingOut | BucketSummaryOut = ReadingOut.from_reading(row)
        else:
            model = BucketSummaryOut.from_summary(row)
        payload.append(model.model_dump(mode="json", by_alias=True))
    return payload


@router.get(
    "/api/smart-plug",
    summary="Raw or time-bucketed smart plug readings for a date range.",
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
def get_smart_plug_data(
    start_date: Optional[str] = Query(None, alias="startDate", description="YYYY-MM-DD, inclusive."),
    end_date: Optional[str] = Query(None, alias="endDate", description="YYYY-MM-DD, inclusive."),
    data_type: Optional[str] = Query(None, alias="dataType", description="rawData or aggregated."),
    aggregation_type: Optional[str] = Query(
        None,
        alias="aggregationType",
        description="minute, hour, day, month or year. Required for aggregated data.",
    ),
    service: QueryService = Depends(get_query_service),
) -> JSONResponse:
    try:
        rows = service.query(start_date, end_date, data_type, aggregation_type)
        response = JSONResponse(status_code=status.HTTP_200_OK, content=_to_payload(rows))
    except QueryValidationError as exc:
        logger.info(
            "Rejected smart plug query",
            extra={"reason": str(exc), "data_type": data_type},
        )
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))
    except Exception:
        logger.exception(
            "Error fetching or processing smart plug data",
            extra={
                "start_date": start_date,
                "end_date": end_date,
                "data_type": data_type,
                "granularity": aggregation_type,
            },
        )
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error fetching or processing data")
    return response


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
def healthcheck(
    store: ReadingStore = Depends(get_store),
    poller: Optional[DevicePoller] = Depends(get_poller),
) -> HealthResponse:
    return HealthResponse(
        status="ok",
        readings=len(store),
        polling=poller is not None and poller.running,
    )


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
