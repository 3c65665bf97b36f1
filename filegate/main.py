from fastapi import FastAPI, WebSocket, WebSocketDisconnect, Response, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
import logging
import os
import time
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from . import pubsub
from .auth import resolve_token_user
from .database import SessionLocal
from .errors import FileGateError, StorageError, Unauthorized
from .routes import (
    auth,
    files,
    access_requests,
    notifications,
    search,
    settings,
)

logger = logging.getLogger(__name__)

dsn = os.getenv("SENTRY_DSN")
if dsn:
    sentry_sdk.init(dsn=dsn, integrations=[FastApiIntegration()])

REQUEST_COUNT = Counter("request_count", "Total requests", ["method", "endpoint"])
REQUEST_LATENCY = Histogram(
    "request_latency_seconds", "Request latency", ["endpoint"]
)

app = FastAPI(title="filegate API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FileGateError)
async def handle_filegate_error(request: Request, exc: FileGateError):
    if isinstance(exc, StorageError):
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc.message, exc_info=exc)
    elif isinstance(exc, Unauthorized):
        logger.info("Denied %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.public_detail, "kind": exc.public_kind},
    )


@app.exception_handler(SQLAlchemyError)
async def handle_database_error(request: Request, exc: SQLAlchemyError):
    logger.error("Database failure on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": StorageError("database failure").public_detail, "kind": StorageError.kind},
    )


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)
    REQUEST_COUNT.labels(request.method, endpoint).inc()
    REQUEST_LATENCY.labels(endpoint).observe(time.time() - start)
    return response

@app.get("/metrics")
def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

app.include_router(auth.router)
app.include_router(files.router)
app.include_router(access_requests.router)
app.include_router(notifications.router)
app.include_router(search.router)
app.include_router(settings.router)


def audit_routes():
    from fastapi.routing import APIRoute
    from .auth import get_current_user

    public_paths = {
        "/api/auth/login",
        "/api/auth/register",
        "/metrics",
    }
    for route in app.routes:
        if isinstance(route, APIRoute) and route.path.startswith("/api") and route.path not in public_paths:
            calls = [dep.call for dep in route.dependant.dependencies]
            if get_current_user not in calls:
                raise RuntimeError(f"Route {route.path} missing authentication")


audit_routes()


@app.websocket("/ws/notifications")
async def notifications_websocket(websocket: WebSocket, token: str):
    db = SessionLocal()
    try:
        user = resolve_token_user(db, token)
        user_id = user.id if user else None
    finally:
        db.close()
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    subscription = await pubsub.subscribe_user(user_id)
    await websocket.accept()
    try:
        async for message in pubsub.iter_user_events(subscription):
            await websocket.send_text(message)
    except WebSocketDisconnect:
        logger.debug("Notification socket closed for user %s", user_id)
