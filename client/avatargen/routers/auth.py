"""Session endpoints wrapping the Supabase auth provider."""
from __future__ import annotations

import asyncio
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from supabase import AuthApiError

from ..errors import SessionRequiredError
from ..models import schemas
from ..services.auth_session import Session, SessionContext

router = APIRouter(prefix="/auth", tags=["auth"])


def _session_context(request: Request) -> SessionContext:
    return request.app.state.session_context


def _to_response(session: Optional[Session]) -> schemas.SessionResponse:
    if session is None:
        return schemas.SessionResponse(authenticated=False)
    return schemas.SessionResponse(authenticated=True, user_id=session.user_id, email=session.email)


@router.get("/session", response_model=schemas.SessionResponse)
async def get_session(request: Request) -> schemas.SessionResponse:
    """Return the currently authenticated identity, if any."""

    session = await asyncio.to_thread(_session_context(request).current)
    return _to_response(session)


@router.post("/sign-in", response_model=schemas.SessionResponse)
async def sign_in(payload: schemas.SignInRequest, request: Request) -> schemas.SessionResponse:
    context = _session_context(request)
    try:
        session = await asyncio.to_thread(context.sign_in, payload.email, payload.password)
    except SessionRequiredError as exc:
        raise HTTPException(status_code=401, detail=exc.message) from exc
    except AuthApiError as exc:
        raise HTTPException(status_code=401, detail=exc.message or "Sign-in failed") from exc
    return _to_response(session)


@router.post("/sign-out", response_model=schemas.SessionResponse)
async def sign_out(request: Request) -> schemas.SessionResponse:
    await asyncio.to_thread(_session_context(request).sign_out)
    return _to_response(None)
