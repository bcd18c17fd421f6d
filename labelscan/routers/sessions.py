"""
Live scanning session API.

A UI client opens a session, streams OCR text into it and polls the
session for the current ranked candidates and selection.
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException

from labelscan.dependencies import get_session_manager, get_shopping_parser
from labelscan.models.extraction import (
    ObserveRequest,
    SelectRequest,
    SessionCreate,
    SessionResponse,
)
from labelscan.services.session import (
    ExtractionSession,
    ScanDomain,
    SessionManager,
    SessionNotFoundError,
)
from labelscan.services.shopping import ShoppingListParser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _get_session(manager: SessionManager, session_id: str) -> ExtractionSession:
    try:
        return manager.get(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")


@router.post("", response_model=SessionResponse)
async def open_session(
    request: SessionCreate,
    manager: SessionManager = Depends(get_session_manager),
):
    """Open a scanning session for dates, nutrition labels or shopping lists."""
    session_id = manager.open_session(request.domain)
    return SessionResponse.from_snapshot(manager.get(session_id).snapshot())


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
):
    return SessionResponse.from_snapshot(_get_session(manager, session_id).snapshot())


@router.post("/{session_id}/observe", response_model=SessionResponse)
async def observe(
    session_id: str,
    request: ObserveRequest,
    manager: SessionManager = Depends(get_session_manager),
):
    """
    Feed one OCR observation.

    Debounced observations are processed shortly after the call returns;
    poll GET /sessions/{id} for the result. Set immediate=true to process
    synchronously.
    """
    session = _get_session(manager, session_id)
    try:
        if request.immediate:
            session.observe_now(request.text)
        else:
            session.observe(request.text)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")

    return SessionResponse.from_snapshot(session.snapshot())


@router.post("/{session_id}/select", response_model=SessionResponse)
async def select(
    session_id: str,
    request: SelectRequest,
    manager: SessionManager = Depends(get_session_manager),
    shopping_parser: ShoppingListParser = Depends(get_shopping_parser),
):
    """
    Confirm a candidate by its index in the current list, or enter a value
    by hand (an ISO date for date sessions, an item phrase for shopping).
    """
    session = _get_session(manager, session_id)
    snapshot = session.snapshot()

    try:
        if request.index is not None:
            if request.index >= len(snapshot.candidates):
                raise HTTPException(status_code=422, detail="Candidate index out of range")
            session.select(snapshot.candidates[request.index])

        elif request.manual_value is not None:
            if snapshot.domain == ScanDomain.DATE:
                try:
                    value = date.fromisoformat(request.manual_value.strip())
                except ValueError:
                    raise HTTPException(status_code=422, detail="manual_value must be a YYYY-MM-DD date")
                session.select_manual(value)

            elif snapshot.domain == ScanDomain.SHOPPING:
                item = shopping_parser.parse_item(request.manual_value.strip().lower())
                if item is None:
                    raise HTTPException(status_code=422, detail="manual_value does not name an item")
                session.select_manual(item.value)

            else:
                raise HTTPException(status_code=422, detail="Manual entry is not supported for this domain")

        else:
            raise HTTPException(status_code=422, detail="Provide index or manual_value")

    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")

    return SessionResponse.from_snapshot(session.snapshot())


@router.post("/{session_id}/reset", response_model=SessionResponse)
async def reset(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
):
    """Forget all accumulated confidence and start over."""
    session = _get_session(manager, session_id)
    try:
        session.reset()
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")

    return SessionResponse.from_snapshot(session.snapshot())


@router.delete("/{session_id}")
async def close_session(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
):
    try:
        manager.close(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")

    logger.debug("Session closed via API", extra={"session_id": session_id})
    return {"id": session_id, "status": "closed"}
