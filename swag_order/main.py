# main.py

import os, uuid, json
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import parse_qsl

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from swag_order.config import Settings
from swag_order.dispatch import dispatch_order
from swag_order.logger import log_info, log_error, log_warning, set_level
from swag_order.schemas import OrderSubmission, SubmissionResponse
from swag_order.sinks import build_sinks

# Applied to every response, preflight included
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Max-Age": "86400",
}

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class InvalidPayload(ValueError):
    """ The body parsed but is not an order submission. """


def error_response(error: str, status_code: int, details: Optional[dict] = None, headers: Optional[dict] = None) -> JSONResponse:
    body = SubmissionResponse(success=False, error=error, details=details).to_body()
    return JSONResponse(content=body, status_code=status_code, headers=headers)


async def parse_submission(request: Request) -> OrderSubmission:
    """
    Parse the request body into an OrderSubmission.

    JSON is the default; URL-encoded form bodies are accepted as well. Any client-supplied
    submittedAt is discarded before validation.

    Raises ValueError when the body cannot be parsed and InvalidPayload when it parses
    to something that is not an order.
    """
    raw = await request.body()
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPE):
        data = dict(parse_qsl(raw.decode("utf-8"), keep_blank_values=True))
        # an unchecked checkbox may arrive blank
        if data.get("isEmployee") == "":
            data.pop("isEmployee")
    else:
        try:
            data = json.loads(raw)
        except RecursionError as e:
            raise ValueError("request body is nested too deeply") from e

    if not isinstance(data, dict):
        raise InvalidPayload("request body is not an object")
    data.pop("submittedAt", None)
    data.pop("submitted_at", None)
    try:
        return OrderSubmission.model_validate(data)
    except ValidationError as e:
        raise InvalidPayload(str(e)) from e


# API: {SUBMIT_PATH} - POST to submit a swag order, OPTIONS for CORS preflight
async def submit_swag_order(request: Request):
    """
    Accept one order and fan it out to the notification sinks.

    OPTIONS answers the CORS preflight with an empty 200 and never touches a sink.

    Returns 200 when at least one sink accepted the order, 500 when every configured sink
    failed or none is configured, 400 when the body is not a usable order.
    """
    if request.method == "OPTIONS":
        return await preflight(request)

    request_id = request.state.request_id
    settings: Settings = request.app.state.settings
    try:
        try:
            order = await parse_submission(request)
        except InvalidPayload as e:
            log_warning(f"Invalid payload: {e}", request_id=request_id)
            return error_response("Invalid payload", status_code=400)
        except ValueError as e:
            log_error(f"Error parsing request body: {e}", request_id=request_id)
            return error_response("Invalid JSON in request body", status_code=400)

        # server-assigned, overwrites anything the client sent
        order.submitted_at = datetime.now(timezone.utc)
        log_info(f"Order received from {order.email}", request_id=request_id)

        sinks = build_sinks(settings)
        async with httpx.AsyncClient(
            timeout=settings.SINK_TIMEOUT_SECONDS,
            transport=request.app.state.sink_transport,
        ) as client:
            dispatch = await dispatch_order(
                order,
                sinks,
                client,
                parallel=settings.PARALLEL_SINKS,
                request_id=request_id,
            )

        if dispatch.succeeded:
            log_info("Order submitted successfully", request_id=request_id)
            response = SubmissionResponse(success=True, message="Order submitted successfully", details=dispatch.details)
            return JSONResponse(content=response.to_body(), status_code=200)

        log_error("No successful submissions", request_id=request_id)
        return error_response("Failed to submit to any service", status_code=500, details=dispatch.details)

    except Exception as e:
        log_error(f"Unexpected error in swag order handler: {e}", request_id=request_id)
        return error_response(f"Unexpected error: {e}", status_code=500)


async def preflight(request: Request):
    log_info("Handling OPTIONS request", request_id=request.state.request_id)
    return Response(status_code=200)


# API: /healthz - GET for liveness and which sinks are configured
async def healthz(request: Request):
    settings: Settings = request.app.state.settings
    sinks = {sink.name: sink.is_configured() for sink in build_sinks(settings)}
    return JSONResponse(content={"status": "ok", "sinks": sinks}, status_code=200)


def create_app(settings: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    """
    Build the swag order API.

    settings defaults to values read from the environment; transport replaces the
    network for outbound sink calls (tests pass an httpx.MockTransport).
    """
    settings = settings or Settings()
    set_level(settings.LOG_LEVEL)

    # Log the configuration check on startup and shutdown
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log_info("Starting up the Swag Order API...")
        for key, is_set in settings.environment_check().items():
            log_info(f"- {key}: {'SET' if is_set else 'NOT SET'}")
        yield
        log_info("Shutting down the Swag Order API...")

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.state.sink_transport = transport

    # Set up a middleware to generate request_id for each request and log it
    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        """
        Generate a unique request_id for each incoming request and log it for tracing.
        """
        # if request id exists in headers, use it, otherwise generate a new one
        request_id = request.headers.get("Request-ID")
        if not request_id:
            request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        log_info(f"Received request: {request.method} {request.url.path}", request_id=request_id)

        response = await call_next(request)
        # add the request_id to the response headers for tracking
        response.headers["Request-ID"] = request_id
        log_info(f"Completed request: {request.method} {request.url.path} with status {response.status_code}", request_id=request_id)
        return response

    # Open CORS on every response, errors included
    @app.middleware("http")
    async def add_cors_headers(request: Request, call_next):
        response = await call_next(request)
        for key, value in CORS_HEADERS.items():
            response.headers[key] = value
        return response

    # Render routing errors (404, 405) in the same body shape as the handler
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        error = "Method not allowed" if exc.status_code == 405 else str(exc.detail)
        return error_response(error, status_code=exc.status_code, headers=getattr(exc, "headers", None))

    # one route for both methods so a 405 advertises both in its Allow header
    app.add_api_route(settings.SUBMIT_PATH, submit_swag_order, methods=["POST", "OPTIONS"])
    app.add_api_route("/healthz", healthz, methods=["GET"])
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("swag_order.main:app", host=os.environ.get("HOST", "0.0.0.0"), port=int(os.environ.get("PORT", 8000)))
