from __future__ import annotations

from fastapi import HTTPException, Request

from .session import StudySession
from .state import AppState


def get_app_state(request: Request) -> AppState:
    """Return the application state container attached in ``create_app``."""
    return request.app.state.flashvocab


def get_session(request: Request) -> StudySession:
    session = get_app_state(request).session
    if session is None:
        raise HTTPException(status_code=404, detail="no study session in progress")
    return session
