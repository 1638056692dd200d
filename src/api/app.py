from fastapi import FastAPI, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, HTMLResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
import json
import logging
import time

from src.api.static_map import render_static_map
from src.db.database import make_engine
from src.config.settings import (
    DAILY_USAGE_LIMIT, DATABASE_URL, KAKAO_JS_API_KEY, LOG_LEVEL, TRUST_PROXY_HEADERS
)
from src.geocoding.kakao import KakaoGeocoder, GeocodingError
from src.models.location import AddressResponse, CoordinateRequest, ErrorResponse, UsageResponse
from src.usage.guard import UsageGuard, QuotaExceeded
from src.usage.store import MemoryUsageStore, SqlUsageStore
from src.web.page import render_index_page

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger(__name__)

LOG_LINE_MAX = 80

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def error_response(status_code, message, **extra):
    return JSONResponse(status_code=status_code, content={"message": message, **extra})


def get_client_ip(request: Request, trust_proxy=TRUST_PROXY_HEADERS):
    if trust_proxy:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "127.0.0.1"


def default_store():
    if DATABASE_URL:
        logger.info("Using SQL usage store")
        return SqlUsageStore(make_engine(DATABASE_URL))
    logger.info("Using in-memory usage store (per process, not shared between workers)")
    return MemoryUsageStore()


def get_guard(request: Request) -> UsageGuard:
    return request.app.state.guard


def get_geocoder(request: Request):
    return request.app.state.geocoder


def client_id(request: Request):
    return get_client_ip(request, request.app.state.trust_proxy)


def create_app(store=None, geocoder=None, limit=DAILY_USAGE_LIMIT, today=None,
               trust_proxy=TRUST_PROXY_HEADERS, js_api_key=KAKAO_JS_API_KEY):
    app = FastAPI(
        title="Location Lookup API",
        description="Tap a point on the map, get its street address",
        version="1.0.0"
    )

    guard_kwargs = {"limit": limit}
    if today is not None:
        guard_kwargs["today"] = today
    app.state.guard = UsageGuard(store if store is not None else default_store(), **guard_kwargs)
    app.state.geocoder = geocoder or KakaoGeocoder()
    app.state.trust_proxy = trust_proxy
    app.state.js_api_key = js_api_key

    register_handlers(app)
    register_middleware(app)
    register_routes(app)
    return app


def register_handlers(app):
    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.info(f"Rejected invalid body on {request.url.path}")
        return error_response(400, "Invalid request body", errors=jsonable_encoder(exc.errors()))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.url.path}: {exc}")
        return error_response(500, "Internal Server Error")


def register_middleware(app):
    @app.middleware("http")
    async def log_api_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        path = request.url.path
        if not path.startswith("/api"):
            return response

        duration_ms = int((time.perf_counter() - start) * 1000)
        log_line = f"{request.method} {path} {response.status_code} in {duration_ms}ms"

        if response.headers.get("content-type", "").startswith("application/json"):
            body = b"".join([chunk async for chunk in response.body_iterator])
            try:
                log_line += f" :: {json.dumps(json.loads(body), ensure_ascii=False)}"
            except ValueError:
                pass
            response = Response(
                content=body,
                status_code=response.status_code,
                headers=dict(response.headers),
                media_type=response.media_type,
            )

        if len(log_line) > LOG_LINE_MAX:
            log_line = log_line[:LOG_LINE_MAX - 1] + "…"
        logger.info(log_line)
        return response


def register_routes(app):
    @app.get("/", response_class=HTMLResponse)
    def read_root(request: Request):
        return HTMLResponse(render_index_page(request.app.state.js_api_key))

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/api/usage", response_model=UsageResponse, responses={500: {"model": ErrorResponse}})
    def get_usage(request: Request, guard: UsageGuard = Depends(get_guard)):
        try:
            count, limit, date = guard.usage(client_id(request))
            return UsageResponse(count=count, limit=limit, date=date)
        except Exception as e:
            logger.error(f"Error getting usage: {str(e)}")
            return error_response(500, "Failed to get usage information")

    @app.post("/api/coordinate-to-address", response_model=AddressResponse, responses=ERROR_RESPONSES)
    def coordinate_to_address(
        payload: CoordinateRequest,
        request: Request,
        guard: UsageGuard = Depends(get_guard),
        geocoder=Depends(get_geocoder),
    ):
        ip_address = client_id(request)
        try:
            usage_count, date = guard.acquire(ip_address)
        except QuotaExceeded as e:
            return error_response(e.status_code, e.message)

        try:
            address = geocoder.reverse(payload.lat, payload.lng)
        except GeocodingError as e:
            guard.release(ip_address, date)
            logger.error(f"Error converting coordinates to address: {e.message}")
            return error_response(e.status_code, e.message)
        except Exception as e:
            guard.release(ip_address, date)
            logger.error(f"Error converting coordinates to address: {str(e)}")
            return error_response(500, "Failed to convert coordinates to address")

        return AddressResponse(
            address=address,
            lat=payload.lat,
            lng=payload.lng,
            usageCount=usage_count,
        )

    @app.post(
        "/api/static-map",
        responses={**ERROR_RESPONSES, 200: {"content": {"image/svg+xml": {}}}},
    )
    def static_map(
        payload: CoordinateRequest,
        request: Request,
        guard: UsageGuard = Depends(get_guard),
    ):
        ip_address = client_id(request)
        try:
            _, date = guard.acquire(ip_address)
        except QuotaExceeded as e:
            return error_response(e.status_code, e.message)

        try:
            svg = render_static_map(payload.lat, payload.lng)
        except Exception as e:
            guard.release(ip_address, date)
            logger.error(f"Error creating map image: {str(e)}")
            return error_response(500, "Failed to create map image")

        return Response(
            content=svg.encode("utf-8"),
            media_type="image/svg+xml",
            headers={"Cache-Control": "no-cache"},
        )


app = create_app()
