# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, Form, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from mfgdash.auth.session import SessionClaims, SessionManager
from mfgdash.auth.users import UserStore
from mfgdash.config import Settings, load_settings
from mfgdash.errors import GENERIC_ERROR_MESSAGE, AuthError, UnexpectedError
from mfgdash.permissions import CurrentUser, require_user, resolve_session
from mfgdash.services.auth_service import login, signup, signup_and_start_session

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

DASHBOARD_PATH = "/dashboard"
_NO_REFRESH_PATHS = {"/logout", "/auth/logout"}


def _safe_next(next_url: str) -> str:
    """Only allow same-site relative redirects."""
    n = str(next_url or "").strip()
    if not n.startswith("/") or n.startswith("//") or "\\" in n:
        return DASHBOARD_PATH
    return n


def _session_json(claims: SessionClaims) -> dict:
    return {
        "id": claims.user_id,
        "name": claims.name,
        "businessName": claims.business_name,
    }


def _error_response(exc: AuthError) -> JSONResponse:
    if isinstance(exc, UnexpectedError):
        logger.error("Unexpected error: %s", exc, exc_info=exc)
    return JSONResponse({"error": exc.public_message}, status_code=exc.status_code)


def create_app(settings: Optional[Settings] = None, *, store: Optional[UserStore] = None) -> FastAPI:
    settings = settings or load_settings()

    app = FastAPI(title="Manufacturing Dashboard")
    app.state.settings = settings
    app.state.sessions = SessionManager.from_settings(settings)
    app.state.store = store or UserStore(settings.users_path)

    def _set_session_cookie(resp, token: str) -> None:
        resp.set_cookie(
            settings.cookie_name,
            token,
            max_age=settings.session_max_age,
            **settings.cookie_settings(),
        )

    def _render(request: Request, template_name: str, ctx: dict, status_code: int = 200):
        base_ctx = {"current_user": getattr(request.state, "user", None)}
        return templates.TemplateResponse(
            request, template_name, {**base_ctx, **(ctx or {})}, status_code=status_code
        )

    @app.middleware("http")
    async def _auth_middleware(request: Request, call_next):
        _, claims = resolve_session(request)
        response = await call_next(request)

        sessions: SessionManager = app.state.sessions
        if (
            claims is not None
            and request.state.session_source == "cookie"
            and request.url.path not in _NO_REFRESH_PATHS
            and sessions.needs_refresh(claims)
            and not any(
                h.startswith(f"{settings.cookie_name}=")
                for h in response.headers.getlist("set-cookie")
            )
        ):
            _set_session_cookie(response, sessions.refresh(claims))
        return response

    @app.exception_handler(Exception)
    async def _unhandled_error_handler(request: Request, exc: Exception):
        if isinstance(exc, AuthError):
            return _error_response(exc)
        logger.exception("Unhandled error on %s", request.url.path, exc_info=exc)
        return JSONResponse({"error": GENERIC_ERROR_MESSAGE}, status_code=500)

    # ------------------ JSON API ------------------

    @app.post("/auth/signup")
    async def api_signup(request: Request):
        try:
            try:
                body = await request.json()
            except ValueError:
                return JSONResponse({"error": "Invalid request body"}, status_code=400)
            user = await run_in_threadpool(signup, body, store=app.state.store)
        except AuthError as e:
            return _error_response(e)
        except Exception:
            logger.exception("Signup failed")
            return JSONResponse({"error": GENERIC_ERROR_MESSAGE}, status_code=500)
        return JSONResponse(
            {"message": "User created successfully", "user": user},
            status_code=201,
        )

    @app.post("/auth/login")
    async def api_login(request: Request):
        try:
            try:
                body = await request.json()
            except ValueError:
                return JSONResponse({"error": "Invalid request body"}, status_code=400)
            result = await run_in_threadpool(
                login, body, store=app.state.store, sessions=app.state.sessions
            )
        except AuthError as e:
            return _error_response(e)
        except Exception:
            logger.exception("Login failed")
            return JSONResponse({"error": GENERIC_ERROR_MESSAGE}, status_code=500)
        resp = JSONResponse({"user": _session_json(result.claims)})
        _set_session_cookie(resp, result.token)
        return resp

    @app.get("/auth/session")
    def api_session(request: Request):
        claims = getattr(request.state, "session_claims", None)
        if claims is None:
            return JSONResponse({})
        return JSONResponse(
            {"user": _session_json(claims), "expires": claims.expires_at.isoformat()}
        )

    # ------------------ Pages ------------------

    @app.get("/")
    def home():
        return RedirectResponse(url=DASHBOARD_PATH, status_code=303)

    @app.get("/login", response_class=HTMLResponse)
    def login_get(request: Request, next: str = DASHBOARD_PATH):
        if getattr(request.state, "user", None):
            return RedirectResponse(url=_safe_next(next), status_code=303)
        return _render(request, "login.html", {"next": _safe_next(next), "error": ""})

    @app.post("/login")
    def login_post(
        request: Request,
        email: str = Form(""),
        password: str = Form(""),
        next: str = Form(DASHBOARD_PATH),
    ):
        try:
            result = login(
                {"email": email, "password": password},
                store=app.state.store,
                sessions=app.state.sessions,
            )
        except AuthError as e:
            if isinstance(e, UnexpectedError):
                logger.error("Login failed: %s", e, exc_info=e)
            ctx = {"next": _safe_next(next), "error": e.public_message, "email": email}
            return _render(request, "login.html", ctx, status_code=e.status_code)
        except Exception:
            logger.exception("Login failed")
            ctx = {"next": _safe_next(next), "error": GENERIC_ERROR_MESSAGE, "email": email}
            return _render(request, "login.html", ctx, status_code=500)
        resp = RedirectResponse(url=_safe_next(next), status_code=303)
        _set_session_cookie(resp, result.token)
        return resp

    @app.get("/signup", response_class=HTMLResponse)
    def signup_get(request: Request):
        if getattr(request.state, "user", None):
            return RedirectResponse(url=DASHBOARD_PATH, status_code=303)
        return _render(request, "signup.html", {"error": "", "form": {}})

    @app.post("/signup")
    def signup_post(
        request: Request,
        full_name: str = Form("", alias="fullName"),
        email: str = Form(""),
        password: str = Form(""),
        business_name: str = Form("", alias="businessName"),
    ):
        form = {"fullName": full_name, "email": email, "businessName": business_name}
        try:
            result = signup_and_start_session(
                {**form, "password": password},
                store=app.state.store,
                sessions=app.state.sessions,
            )
        except AuthError as e:
            if isinstance(e, UnexpectedError):
                logger.error("Signup failed: %s", e, exc_info=e)
            ctx = {"error": e.public_message, "form": form}
            return _render(request, "signup.html", ctx, status_code=e.status_code)
        except Exception:
            logger.exception("Signup failed")
            ctx = {"error": GENERIC_ERROR_MESSAGE, "form": form}
            return _render(request, "signup.html", ctx, status_code=500)
        resp = RedirectResponse(url=DASHBOARD_PATH, status_code=303)
        _set_session_cookie(resp, result.token)
        return resp

    @app.post("/logout")
    @app.post("/auth/logout")
    def logout_post(request: Request):
        resp = RedirectResponse(url="/login", status_code=303)
        resp.delete_cookie(settings.cookie_name)
        return resp

    @app.get(DASHBOARD_PATH, response_class=HTMLResponse)
    def dashboard(request: Request, user: CurrentUser = Depends(require_user)):
        return _render(request, "dashboard.html", {"user": user})

    return app
