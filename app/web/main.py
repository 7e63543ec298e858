from __future__ import annotations

import os
import logging

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.middleware.sessions import SessionMiddleware
from starlette.staticfiles import StaticFiles
from starlette.responses import Response
from starlette.status import HTTP_403_FORBIDDEN
from urllib.parse import urlparse
from app.web.core.ratelimit import limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.constants import APP_NAME, APP_VERSION
from app.web.core.deps import (
    SESSION_SECRET,
    IS_PROD,
    STATIC_DIR,
    templates,
    store,
    llm,
)

from app.web.routes.pages import router as pages_router
from app.web.routes.quiz import router as quiz_router
from app.web.routes.api import router as api_router

log = logging.getLogger("LessonForge")


# -----------------------------
# App
# -----------------------------
app = FastAPI(title=f"{APP_NAME} Dashboard", version=APP_VERSION)

# -----------------------------
# Rate limiting
# -----------------------------
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(RateLimitExceeded)
async def ratelimit_handler(request: Request, exc: RateLimitExceeded):
    return PlainTextResponse("Too Many Requests", status_code=429)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if request.url.path.startswith("/api/"):
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code)
    return templates.TemplateResponse(
        request,
        "error.html",
        {"status_code": exc.status_code, "detail": exc.detail},
        status_code=exc.status_code,
    )


# -----------------------------
# Sessions
# -----------------------------
app.add_middleware(
    SessionMiddleware,
    secret_key=SESSION_SECRET,
    same_site="lax",
    https_only=bool(IS_PROD),    # True only in prod (HTTPS), False in local HTTP
    max_age=60 * 60 * 24 * 7,    # 7 days
)

# -----------------------------
# Static
# -----------------------------
os.makedirs(STATIC_DIR, exist_ok=True)
app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

# shared state
app.state.templates = templates
app.state.store = store
app.state.llm = llm

# -----------------------------
# CSRF origin guard (same-origin)
# -----------------------------


@app.middleware("http")
async def csrf_same_host_guard(request: Request, call_next):
    if request.method in ("POST", "PUT", "DELETE", "PATCH"):
        origin = request.headers.get("origin")
        referer = request.headers.get("referer")

        base_host = urlparse(str(request.base_url)).netloc

        # requests without either header (curl, API clients) pass
        ok = True
        if origin:
            ok = urlparse(origin).netloc == base_host
        elif referer:
            ok = urlparse(referer).netloc == base_host

        if not ok:
            log.warning("CSRF blocked: %s %s origin=%s referer=%s", request.method, request.url.path, origin, referer)
            return Response("CSRF blocked", status_code=HTTP_403_FORBIDDEN)

    return await call_next(request)

# -----------------------------
# Security headers
# -----------------------------
@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)

    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Permissions-Policy"] = "camera=(), microphone=(), geolocation=()"

    csp = (
        "default-src 'self'; "
        "base-uri 'self'; "
        "object-src 'none'; "
        "frame-ancestors 'none'; "
        "img-src 'self' data:; "
        "style-src 'self'; "
        "script-src 'self'; "
        "form-action 'self'; "
        "connect-src 'self';"
    )

    response.headers["Content-Security-Policy"] = csp
    return response


@app.get("/healthz")
def healthz():
    return {"ok": True, "version": APP_VERSION}


# -----------------------------
# Routes
# -----------------------------
app.include_router(pages_router)
app.include_router(quiz_router)
app.include_router(api_router)
