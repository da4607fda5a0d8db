"""FastAPI routes for interview session lifecycle."""
from __future__ import annotations

import math
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Query

from api.schemas import (
    CreateSessionReq,
    EndSessionReq,
    HistoryItem,
    HistoryResp,
    IntegritySummary,
    Pagination,
    ReportEntry,
    SessionReport,
    SessionStatusResp,
)
from config.settings import settings
from engine.actor import SessionActor
from engine.errors import InvalidAnswer, RateLimited, SessionAbandoned, SessionError, SessionNotFound
from engine.hub import engine
from engine.state import Session
from storage.flags import list_integrity_flags
from storage.sessions import list_sessions


router = APIRouter(prefix="/api/interviews")


def http_error(exc: SessionError) -> HTTPException:
    """Map the engine's error taxonomy onto HTTP status codes."""

    if isinstance(exc, SessionNotFound):
        return HTTPException(status_code=404, detail=exc.message)
    if isinstance(exc, SessionAbandoned):
        return HTTPException(status_code=410, detail=exc.message)
    if isinstance(exc, RateLimited):
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
        return HTTPException(status_code=429, detail=exc.message, headers=headers)
    if isinstance(exc, InvalidAnswer):
        return HTTPException(status_code=400, detail=exc.message)
    return HTTPException(status_code=409, detail=exc.message)


def _actor(session_id: str, caller_id: str) -> SessionActor:
    try:
        return engine.actor_for(session_id, caller_id)
    except SessionError as exc:
        raise http_error(exc) from exc


def _status_from_session(s: Session) -> SessionStatusResp:
    return SessionStatusResp(
        session_id=s.session_id,
        status=s.status,
        interview_type=s.interview_type,
        difficulty=s.difficulty,
        progress=s.progress,
        questions_answered=s.questions_answered,
        total_questions=s.total_questions,
        completion_percentage=s.completion_percentage,
        current_question=s.current_question,
        overall_scores=s.overall_scores,
        cause=s.end_cause,
        scheduled_at=s.scheduled_at,
        started_at=s.started_at,
        completed_at=s.completed_at,
    )


def _report_from_session(s: Session) -> SessionReport:
    limit = settings.ANSWER_PREVIEW_CHARS
    entries = [
        ReportEntry(
            question_index=r.question_index,
            question=r.question.text,
            question_type=r.question.type,
            difficulty=r.question.difficulty,
            answer=r.answer.text[:limit],
            skipped=r.answer.skipped,
            overall=r.scores.overall,
            scores={
                name: dim.score
                for name, dim in r.scores
                if name != "overall"
            },
            strengths=r.ai_analysis.strengths,
            weaknesses=r.ai_analysis.weaknesses,
            suggestions=r.ai_analysis.suggestions,
            follow_up_question=r.follow_up_question,
        )
        for r in s.responses
    ]
    flags = list_integrity_flags(s.session_id)
    integrity = IntegritySummary(
        tab_switches=max((f.count for f in flags if f.channel == "focus"), default=0),
        misbehavior_events=max((f.count for f in flags if f.channel == "gaze"), default=0),
        terminated=s.end_cause == "integrity",
    )
    return SessionReport(
        session_id=s.session_id,
        status=s.status,
        cause=s.end_cause,
        interview_type=s.interview_type,
        difficulty=s.difficulty,
        progress=s.progress,
        overall_scores=s.overall_scores,
        analytics=s.analytics,
        responses=entries,
        integrity=integrity,
        duration=s.duration,
        started_at=s.started_at,
        completed_at=s.completed_at,
    )


@router.post("", response_model=SessionStatusResp, status_code=201)
async def create_session(req: CreateSessionReq, x_user_id: str = Header(...)) -> SessionStatusResp:
    session = engine.create_session(x_user_id, **req.model_dump())
    return _status_from_session(session)


@router.post("/start", response_model=SessionStatusResp, status_code=201)
async def create_and_start(req: CreateSessionReq, x_user_id: str = Header(...)) -> SessionStatusResp:
    session = engine.create_session(x_user_id, **req.model_dump())
    actor = engine.actor(session.session_id)
    try:
        await actor.start()
    except SessionError as exc:
        raise http_error(exc) from exc
    return _status_from_session(actor.session)


@router.get("", response_model=HistoryResp)
async def history(
    x_user_id: str = Header(...),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    interview_type: Optional[str] = None,
    status: Optional[str] = None,
) -> HistoryResp:
    sessions, total = list_sessions(
        x_user_id, page=page, limit=limit, interview_type=interview_type, status=status
    )
    items = [
        HistoryItem(
            session_id=s.session_id,
            interview_type=s.interview_type,
            status=s.status,
            difficulty=s.difficulty.current,
            overall=s.overall_scores.overall,
            questions_answered=s.questions_answered,
            total_questions=s.total_questions,
            scheduled_at=s.scheduled_at,
            completed_at=s.completed_at,
        )
        for s in sessions
    ]
    return HistoryResp(
        sessions=items,
        pagination=Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
    )


@router.post("/{session_id}/start", response_model=SessionStatusResp)
async def start_session(session_id: str, x_user_id: str = Header(...)) -> SessionStatusResp:
    actor = _actor(session_id, x_user_id)
    try:
        await actor.start()
    except SessionError as exc:
        raise http_error(exc) from exc
    return _status_from_session(actor.session)


@router.post("/{session_id}/end", response_model=SessionStatusResp)
async def end_session(
    session_id: str,
    req: Optional[EndSessionReq] = None,
    x_user_id: str = Header(...),
) -> SessionStatusResp:
    actor = _actor(session_id, x_user_id)
    try:
        await actor.end(req.reason if req else None)
    except SessionError as exc:
        raise http_error(exc) from exc
    return _status_from_session(actor.session)


@router.get("/{session_id}", response_model=SessionStatusResp)
async def get_status(session_id: str, x_user_id: str = Header(...)) -> SessionStatusResp:
    actor = _actor(session_id, x_user_id)
    return _status_from_session(actor.session)


@router.get("/{session_id}/report", response_model=SessionReport)
async def get_report(session_id: str, x_user_id: str = Header(...)) -> SessionReport:
    actor = _actor(session_id, x_user_id)
    if not actor.session.is_terminal:
        raise HTTPException(status_code=409, detail="Interview is still in progress")
    return _report_from_session(actor.session)
