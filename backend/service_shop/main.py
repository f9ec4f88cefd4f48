"""FastAPI application factory and HTTP controllers.

This module defines the HTTP endpoints of the service shop backend.
Controllers are intentionally thin: they accept requests, delegate to
services, and return JSON responses. Errors raised by services and auth
dependencies are converted to `{"msg": ...}` (or `{"errors": [...]}` for
validation failures) by the handlers registered in `create_app`.

Endpoints implemented:
- POST /api/auth/register
- POST /api/auth/login
- POST /api/vehicles
- GET /api/vehicles
- DELETE /api/vehicles/{vehicle_id}
- POST /api/services
- GET /api/services
- PATCH /api/services/{service_id}/status (admin)
- PUT /api/services/{service_id} (admin)
- DELETE /api/services/{service_id} (admin)

Run with `uvicorn service_shop.main:create_app --factory` or
`scripts/run_api.py`.
"""

from fastapi import APIRouter, FastAPI, Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from sqlmodel import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import List, Optional
import json
import logging
import time
import uuid
from .auth import Identity, TokenService, get_current_identity, get_token_service, require_admin
from .config import Settings
from .database import create_db_and_tables, get_session, make_engine
from .errors import ServiceError, ValidationError
from . import services
from .schemas import (
    LoginIn,
    RegisterIn,
    ServiceBookIn,
    ServiceOut,
    ServiceStatusIn,
    ServiceUpdateIn,
    TokenOut,
    VehicleIn,
    VehicleOut,
)

logger = logging.getLogger("service_shop.api")

auth_router = APIRouter(tags=["auth"])
vehicles_router = APIRouter(tags=["vehicles"])
services_router = APIRouter(tags=["services"])


@auth_router.post('/register', response_model=TokenOut)
def register(payload: RegisterIn, db: Session = Depends(get_session), tokens: TokenService = Depends(get_token_service)):
    """Register a new user and return an identity token."""
    token = services.AuthService(db, tokens).register(payload)
    return {'msg': 'User registered successfully!', 'token': token}


@auth_router.post('/login', response_model=TokenOut)
def login(payload: LoginIn, db: Session = Depends(get_session), tokens: TokenService = Depends(get_token_service)):
    """Authenticate a user and return a short-lived token.

    The token carries the user's id, name and admin flag and must be sent
    back in the `x-auth-token` header.
    """
    token = services.AuthService(db, tokens).authenticate(payload)
    return {'msg': 'Logged in successfully!', 'token': token}


@vehicles_router.post('')
def add_vehicle(payload: VehicleIn, db: Session = Depends(get_session), identity: Identity = Depends(get_current_identity)):
    vehicle = services.VehicleService(db).create(identity, payload)
    return {'msg': 'Vehicle added successfully!', 'vehicle': vehicle}


@vehicles_router.get('', response_model=List[VehicleOut])
def list_vehicles(db: Session = Depends(get_session), identity: Identity = Depends(get_current_identity)):
    """List the caller's vehicles, newest first."""
    return services.VehicleService(db).list(identity)


@vehicles_router.delete('/{vehicle_id}')
def delete_vehicle(vehicle_id: int, db: Session = Depends(get_session), identity: Identity = Depends(get_current_identity)):
    services.VehicleService(db).delete(identity, vehicle_id)
    return {'msg': 'Vehicle removed successfully!'}


@services_router.post('')
def book_service(payload: ServiceBookIn, db: Session = Depends(get_session), identity: Identity = Depends(get_current_identity)):
    """Book a service for one of the caller's vehicles."""
    service = services.ServiceRecordService(db).book(identity, payload)
    return {'msg': 'Service booked successfully!', 'service': service}


@services_router.get('', response_model=List[ServiceOut])
def list_services(
    include_picked_up: Optional[str] = Query(None, alias='includePickedUp'),
    db: Session = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
):
    """List services: all of them for admins, the caller's own otherwise.

    Admin listings skip picked-up records unless `includePickedUp=true`.
    """
    return services.ServiceRecordService(db).list(identity, include_picked_up=include_picked_up == 'true')


@services_router.patch('/{service_id}/status')
def update_service_status(
    service_id: int,
    payload: ServiceStatusIn,
    db: Session = Depends(get_session),
    identity: Identity = Depends(require_admin),
):
    service = services.ServiceRecordService(db).update_status(service_id, payload.status)
    return {'msg': 'Service status updated successfully!', 'service': service}


@services_router.put('/{service_id}')
def update_service_details(
    service_id: int,
    payload: ServiceUpdateIn,
    db: Session = Depends(get_session),
    identity: Identity = Depends(require_admin),
):
    """Edit a service record; only the fields sent are changed."""
    service = services.ServiceRecordService(db).update_details(service_id, payload)
    return {'msg': 'Service details updated successfully!', 'service': service}


@services_router.delete('/{service_id}')
def delete_service(service_id: int, db: Session = Depends(get_session), identity: Identity = Depends(require_admin)):
    services.ServiceRecordService(db).delete(service_id)
    return {'msg': 'Service removed successfully!'}


def home():
    return PlainTextResponse('Service Shop Backend API is Running!')


def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}


async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.error(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    if request.url.path.startswith("/api"):
        logger.info(
            "request_done %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": response.status_code,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
    return response


def _validation_errors(exc: RequestValidationError) -> list:
    """Flatten pydantic errors into `{msg, param, location}` items.

    Custom validator messages (e.g. 'Name is required') are reported as
    written instead of pydantic's 'Value error, ...' wording.
    """
    out = []
    for err in exc.errors():
        loc = err.get('loc') or ()
        ctx = err.get('ctx') or {}
        if err.get('type') == 'value_error' and 'error' in ctx:
            msg = str(ctx['error'])
        else:
            msg = err.get('msg')
        out.append({
            'msg': msg,
            'param': '.'.join(str(p) for p in loc[1:]),
            'location': loc[0] if loc else 'body',
        })
    return out


async def _request_validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={'errors': _validation_errors(exc)})


async def _service_error(request: Request, exc: ServiceError):
    if isinstance(exc, ValidationError):
        return JSONResponse(status_code=exc.status_code, content={'errors': exc.as_errors()})
    return JSONResponse(status_code=exc.status_code, content={'msg': exc.msg})


async def _http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={'msg': exc.detail}, headers=getattr(exc, 'headers', None))


async def _unhandled_error(request: Request, exc: Exception):
    # details stay in the server log; clients get a generic body
    logger.error(
        "unhandled_error request_id=%s %s %s",
        getattr(request.state, 'request_id', '-'),
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={'msg': 'Server Error'})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build a configured application.

    Reads `Settings` from the environment when none is given, which raises
    if `JWT_SECRET` is missing. The database is reached and its tables are
    created before the app is returned, so an unreachable database is a
    startup failure rather than a per-request one.
    """
    settings = settings or Settings()
    if not logging.getLogger().handlers:
        logging.basicConfig(level=settings.LOG_LEVEL)

    engine = make_engine(settings)
    create_db_and_tables(engine)

    app = FastAPI(title="Service Shop API")
    app.state.settings = settings
    app.state.engine = engine
    app.state.tokens = TokenService.from_settings(settings)

    if settings.ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
            allow_headers=["*"],
        )
    app.middleware("http")(request_context_middleware)

    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(ServiceError, _service_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(Exception, _unhandled_error)

    app.add_api_route('/', home, methods=['GET'], response_class=PlainTextResponse)
    app.add_api_route('/health', health, methods=['GET'])
    app.include_router(auth_router, prefix='/api/auth')
    app.include_router(vehicles_router, prefix='/api/vehicles')
    app.include_router(services_router, prefix='/api/services')

    logger.info("service shop api ready (env=%s)", settings.ENV)
    return app
