"""
Sign-up API.

`POST /api/join` with `{email, password}`. Public route, still subject to the
Origin/Host/CSRF checks of the gatekeeper.
"""
from __future__ import annotations

import logging

import anyio
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from proingup.identity_access.signup import (
    NullUserDirectory,
    SIGNUP_SUCCESS_MESSAGE,
    SignupError,
    UserDirectory,
    register_user,
)


join_router = APIRouter(tags=["Auth"])
logger = logging.getLogger("proingup.web.join")

USER_DIRECTORY: UserDirectory = NullUserDirectory()


def set_user_directory(directory: UserDirectory) -> None:
    global USER_DIRECTORY
    USER_DIRECTORY = directory


def _json(body: dict, *, status_code: int) -> JSONResponse:
    return JSONResponse(body, status_code=status_code, headers={"Cache-Control": "private, no-store"})


@join_router.post("/api/join")
async def join(request: Request):
    """
    Create an account for `email`/`password`.

    Responses:
        200 `{success: true, message}`; 400/403/409 `{success: false, code, message}`;
        500 `SERVER_ERROR` for unexpected failures (logged, never echoed).
    """
    try:
        body = await request.json()
    except ValueError:
        body = {}
    try:
        await anyio.to_thread.run_sync(register_user, USER_DIRECTORY, body)
    except SignupError as exc:
        logger.info("Sign-up rejected: %s", exc.code)
        return _json({"success": False, "code": exc.code, "message": exc.message}, status_code=exc.status)
    except Exception:
        logger.exception("Sign-up failed unexpectedly")
        return _json(
            {"success": False, "code": "SERVER_ERROR", "message": "Something went wrong. Please try again."},
            status_code=500,
        )
    return _json({"success": True, "message": SIGNUP_SUCCESS_MESSAGE}, status_code=200)
