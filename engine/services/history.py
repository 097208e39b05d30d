"""Competition history: save finished competitions and read them back."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from engine.domain import (
    BRACKET,
    BYE,
    COMPETITION_KINDS,
    EMPTY,
    AnyMatch,
    BracketMatch,
    ByeSlot,
    InvalidInput,
    Occupied,
    Participant,
    RoundRobinMatch,
    is_complete,
    slot_participant,
)
from engine.models import Competition, CompetitionMatch, CompetitionParticipant
from engine.models.competition import utcnow

logger = logging.getLogger("bracketdesk")


class PersistenceError(RuntimeError):
    """The competition store could not complete a read or write."""


@dataclass(frozen=True)
class CompetitionRecord:
    competition: Competition
    participants: List[Participant]
    matches: List[AnyMatch]

    @property
    def kind(self) -> str:
        return self.competition.kind

    @property
    def is_completed(self) -> bool:
        return self.competition.completed_at is not None


def _match_row(competition_id: str, kind: str, m: AnyMatch, order: int, now: datetime) -> CompetitionMatch:
    row = CompetitionMatch(
        id=m.id,
        competition_id=competition_id,
        winner_id=m.winner.id if m.winner else None,
        sort_order=order,
        created_at=now,
        completed_at=now if m.winner else None,
    )
    if kind == BRACKET:
        if not isinstance(m, BracketMatch):
            raise InvalidInput("Bracket competitions can only store bracket matches")
        p1 = slot_participant(m.player1)
        p2 = slot_participant(m.player2)
        row.round = m.round
        row.position = m.position
        row.player1_id = p1.id if p1 else None
        row.player2_id = p2.id if p2 else None
        row.is_bye = isinstance(m.player2, ByeSlot)
    else:
        if not isinstance(m, RoundRobinMatch):
            raise InvalidInput("Round-robin competitions can only store round-robin matches")
        row.player1_id = m.player1.id
        row.player2_id = m.player2.id
    return row


async def save_competition(
    session: AsyncSession,
    kind: str,
    participants: Sequence[Participant],
    matches: Sequence[AnyMatch],
    created_at: Optional[datetime] = None,
) -> Competition:
    """Persist a competition snapshot. Marks it completed when every reachable match has a winner.

    Raises PersistenceError (after rollback) when the store fails; callers keep
    their in-memory state and may retry.
    """
    if kind not in COMPETITION_KINDS:
        raise InvalidInput(f"Unknown competition kind: {kind}")
    now = created_at or utcnow()
    competition = Competition(
        id=uuid.uuid4().hex,
        kind=kind,
        created_at=now,
        completed_at=now if is_complete(kind, matches) else None,
    )
    rows = [_match_row(competition.id, kind, m, i, now) for i, m in enumerate(matches)]
    session.add(competition)
    for i, p in enumerate(participants):
        session.add(
            CompetitionParticipant(id=p.id, competition_id=competition.id, name=p.name, sort_order=i, created_at=now)
        )
    session.add_all(rows)
    try:
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.exception("Saving %s competition failed", kind)
        raise PersistenceError("Could not save competition") from e
    logger.info(
        "Saved %s competition %s (%d participants, %d matches, completed=%s)",
        kind, competition.id, len(participants), len(rows), competition.completed_at is not None,
    )
    return competition


def _to_record(competition: Competition) -> CompetitionRecord:
    participants = [Participant(id=p.id, name=p.name) for p in competition.participants]
    by_id = {p.id: p for p in participants}
    matches: List[AnyMatch] = []
    for row in competition.matches:
        winner = by_id.get(row.winner_id) if row.winner_id else None
        if competition.kind == BRACKET:
            if row.round is None or row.position is None:
                raise PersistenceError(f"Competition {competition.id}: bracket match {row.id} has no round/position")
            p1 = by_id.get(row.player1_id) if row.player1_id else None
            p2 = by_id.get(row.player2_id) if row.player2_id else None
            matches.append(
                BracketMatch(
                    id=row.id,
                    round=row.round,
                    position=row.position,
                    player1=Occupied(p1) if p1 else EMPTY,
                    player2=BYE if row.is_bye else (Occupied(p2) if p2 else EMPTY),
                    winner=winner,
                )
            )
        else:
            matches.append(
                RoundRobinMatch(id=row.id, player1=by_id[row.player1_id], player2=by_id[row.player2_id], winner=winner)
            )
    return CompetitionRecord(competition=competition, participants=participants, matches=matches)


def _with_children(query):
    return query.options(selectinload(Competition.participants), selectinload(Competition.matches))


async def list_competition_history(session: AsyncSession) -> List[CompetitionRecord]:
    """All saved competitions, both kinds merged, newest first."""
    try:
        result = await session.execute(_with_children(select(Competition)).order_by(Competition.created_at.desc()))
    except SQLAlchemyError as e:
        logger.exception("Loading competition history failed")
        raise PersistenceError("Could not load competition history") from e
    return [_to_record(c) for c in result.scalars().all()]


async def get_competition_record(session: AsyncSession, competition_id: str) -> Optional[CompetitionRecord]:
    try:
        result = await session.execute(_with_children(select(Competition)).where(Competition.id == competition_id))
    except SQLAlchemyError as e:
        logger.exception("Loading competition %s failed", competition_id)
        raise PersistenceError("Could not load competition") from e
    competition = result.scalar_one_or_none()
    return _to_record(competition) if competition else None


async def reset_history(session: AsyncSession) -> int:
    """Delete every saved competition. Returns how many were removed."""
    try:
        count = (await session.execute(select(func.count()).select_from(Competition))).scalar_one()
        await session.execute(delete(CompetitionMatch))
        await session.execute(delete(CompetitionParticipant))
        await session.execute(delete(Competition))
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.exception("Resetting competition history failed")
        raise PersistenceError("Could not reset competition history") from e
    logger.info("Competition history reset: %d competition(s) removed", count)
    return count
