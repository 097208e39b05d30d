"""API routes for building competitions, recording results and browsing history."""
from __future__ import annotations

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

import config
from engine.domain import (
    BRACKET,
    IllegalSelection,
    Participant,
    is_complete,
    participants_from_names,
)
from engine.models import get_async_session
from engine.services import bracket_gen, round_robin
from engine.services.history import (
    CompetitionRecord,
    PersistenceError,
    get_competition_record,
    list_competition_history,
    reset_history,
    save_competition,
)
from web.api.drafts import Draft, DraftNotFound, DraftStore, VersionConflict, get_draft_store
from web.api.utils import matches_payload, participant_data, standings_data, winner_of

logger = logging.getLogger("bracketdesk")

router = APIRouter(prefix="/api", tags=["competitions"])


# --- Pydantic schemas ---


class DraftCreate(BaseModel):
    kind: Literal["bracket", "round_robin"] = BRACKET
    names: list[str]

    @field_validator("names", mode="before")
    @classmethod
    def drop_none(cls, v):
        if isinstance(v, list):
            return [x for x in v if x is not None]
        return v


class WinnerSelect(BaseModel):
    participant_id: str
    expected_version: Optional[int] = None  # reject if the draft moved on since the client loaded it


class ClearWinner(BaseModel):
    expected_version: Optional[int] = None


class SaveDraft(BaseModel):
    expected_version: Optional[int] = None


# --- Helpers ---


def _draft_or_404(store: DraftStore, draft_id: str) -> Draft:
    try:
        return store.get(draft_id)
    except DraftNotFound:
        raise HTTPException(404, "Draft not found")


def _draft_response(draft: Draft) -> dict:
    winner = winner_of(draft.kind, draft.participants, draft.matches)
    return {
        "id": draft.id,
        "kind": draft.kind,
        "version": draft.version,
        "participants": [participant_data(p) for p in draft.participants],
        **matches_payload(draft.kind, draft.matches),
        "standings": standings_data(draft.participants, draft.matches),
        "winner": participant_data(winner),
        "completed": is_complete(draft.kind, draft.matches),
    }


def _participant_or_400(draft: Draft, participant_id: str) -> Participant:
    p = next((p for p in draft.participants if p.id == participant_id), None)
    if not p:
        raise HTTPException(400, "Participant is not part of this competition")
    return p


def _record_summary(record: CompetitionRecord) -> dict:
    c = record.competition
    winner = winner_of(record.kind, record.participants, record.matches)
    return {
        "id": c.id,
        "kind": c.kind,
        "created_at": c.created_at.isoformat() if c.created_at else None,
        "completed_at": c.completed_at.isoformat() if c.completed_at else None,
        "completed": record.is_completed,
        "participant_count": len(record.participants),
        "winner_name": winner.name if winner else None,
    }


# --- Drafts ---


@router.post("/drafts")
async def create_draft(body: DraftCreate, store: DraftStore = Depends(get_draft_store)):
    """Build a bracket or round-robin schedule from the entry list. Blank names are dropped."""
    minimum = config.MIN_BRACKET_PARTICIPANTS if body.kind == BRACKET else config.MIN_ROUND_ROBIN_PARTICIPANTS
    try:
        participants = participants_from_names(body.names, max(minimum, 2))
        if body.kind == BRACKET:
            matches = bracket_gen.build_bracket(participants)
        else:
            matches = round_robin.build_round_robin(participants)
    except ValueError as e:
        raise HTTPException(400, str(e))
    draft = store.create(body.kind, participants, matches)
    logger.info("Draft %s created (%s, %d participants)", draft.id, draft.kind, len(participants))
    return _draft_response(draft)


@router.get("/drafts/{draft_id}")
async def get_draft(draft_id: str, store: DraftStore = Depends(get_draft_store)):
    return _draft_response(_draft_or_404(store, draft_id))


@router.get("/drafts/{draft_id}/standings")
async def get_draft_standings(draft_id: str, store: DraftStore = Depends(get_draft_store)):
    draft = _draft_or_404(store, draft_id)
    winner = winner_of(draft.kind, draft.participants, draft.matches)
    return {
        "standings": standings_data(draft.participants, draft.matches),
        "winner": participant_data(winner),
        "completed": is_complete(draft.kind, draft.matches),
    }


@router.post("/drafts/{draft_id}/matches/{match_id}/winner")
async def select_match_winner(
    draft_id: str, match_id: str, body: WinnerSelect, store: DraftStore = Depends(get_draft_store)
):
    """Select a winner. Selecting the current winner again deselects it."""
    draft = _draft_or_404(store, draft_id)
    chosen = _participant_or_400(draft, body.participant_id)
    try:
        if draft.kind == BRACKET:
            matches = bracket_gen.select_winner(draft.matches, match_id, chosen)
        else:
            matches = round_robin.toggle_winner(draft.matches, match_id, chosen)
        draft = store.replace_matches(draft_id, matches, body.expected_version)
    except IllegalSelection as e:
        raise HTTPException(400, str(e))
    except VersionConflict as e:
        raise HTTPException(409, str(e))
    return _draft_response(draft)


@router.post("/drafts/{draft_id}/matches/{match_id}/clear-winner")
async def clear_match_winner(
    draft_id: str,
    match_id: str,
    body: Optional[ClearWinner] = None,
    store: DraftStore = Depends(get_draft_store),
):
    """Clear the winner of a match and everything it fed into later rounds."""
    draft = _draft_or_404(store, draft_id)
    expected = body.expected_version if body else None
    try:
        if draft.kind == BRACKET:
            matches = bracket_gen.clear_winner(draft.matches, match_id)
        else:
            matches = round_robin.clear_winner(draft.matches, match_id)
        draft = store.replace_matches(draft_id, matches, expected)
    except IllegalSelection as e:
        raise HTTPException(400, str(e))
    except VersionConflict as e:
        raise HTTPException(409, str(e))
    return _draft_response(draft)


@router.post("/drafts/{draft_id}/save")
async def save_draft(
    draft_id: str,
    body: Optional[SaveDraft] = None,
    store: DraftStore = Depends(get_draft_store),
    session: AsyncSession = Depends(get_async_session),
):
    """Persist the draft to history and discard it.

    The draft is locked while the commit runs: edits and a second save get 409.
    On failure the draft is kept so the save can be retried.
    """
    expected = body.expected_version if body else None
    try:
        with store.saving(draft_id, expected) as draft:
            competition = await save_competition(session, draft.kind, draft.participants, draft.matches)
    except DraftNotFound:
        raise HTTPException(404, "Draft not found")
    except VersionConflict as e:
        raise HTTPException(409, str(e))
    except PersistenceError as e:
        raise HTTPException(503, str(e))
    return {"ok": True, "competition_id": competition.id, "completed": competition.completed_at is not None}


@router.delete("/drafts/{draft_id}")
async def discard_draft(draft_id: str, store: DraftStore = Depends(get_draft_store)):
    try:
        store.discard(draft_id)
    except DraftNotFound:
        raise HTTPException(404, "Draft not found")
    except VersionConflict as e:
        raise HTTPException(409, str(e))
    return {"ok": True}


# --- History ---


@router.get("/history")
async def list_history(session: AsyncSession = Depends(get_async_session)):
    """Saved competitions of both kinds, newest first."""
    try:
        records = await list_competition_history(session)
    except PersistenceError as e:
        raise HTTPException(503, str(e))
    return [_record_summary(r) for r in records]


@router.get("/history/{competition_id}")
async def get_history_detail(competition_id: str, session: AsyncSession = Depends(get_async_session)):
    try:
        record = await get_competition_record(session, competition_id)
    except PersistenceError as e:
        raise HTTPException(503, str(e))
    if not record:
        raise HTTPException(404, "Competition not found")
    winner = winner_of(record.kind, record.participants, record.matches)
    return {
        **_record_summary(record),
        "participants": [participant_data(p) for p in record.participants],
        **matches_payload(record.kind, record.matches),
        "standings": standings_data(record.participants, record.matches),
        "winner": participant_data(winner),
    }


@router.delete("/history")
async def delete_history(session: AsyncSession = Depends(get_async_session)):
    """Remove every saved competition. Cannot be undone."""
    try:
        removed = await reset_history(session)
    except PersistenceError as e:
        raise HTTPException(503, str(e))
    return {"ok": True, "deleted": removed}

