from __future__ import annotations

from fastapi import FastAPI
from fastapi.responses import JSONResponse, PlainTextResponse

from course_api.bootstrap.contracts import DatastoreHealthCheck
from course_api.schemas import ErrorResponse, HealthResponse, ReadinessCheck, ReadinessResponse


def register_system_routes(api: FastAPI, *, datastore_health_check: DatastoreHealthCheck) -> None:
    @api.get("/", tags=["system"])
    async def hello_world() -> PlainTextResponse:
        return PlainTextResponse("API Server Available")

    @api.get("/health/live", tags=["system"], response_model=HealthResponse, responses={500: {"model": ErrorResponse}})
    async def health_live() -> HealthResponse:
        return HealthResponse(status="ok")

    @api.get(
        "/health/ready",
        tags=["system"],
        response_model=ReadinessResponse,
        responses={500: {"model": ErrorResponse}, 503: {"model": ReadinessResponse}},
    )
    async def health_ready() -> ReadinessResponse | JSONResponse:
        datastore_ok, datastore_detail = datastore_health_check()
        payload = ReadinessResponse(
            status="ok" if datastore_ok else "degraded",
            checks={"datastore": ReadinessCheck(ok=datastore_ok, detail=datastore_detail)},
        )
        if datastore_ok:
            return payload
        return JSONResponse(status_code=503, content=payload.model_dump())
