"""Tests for saving competitions and reading history back."""
from datetime import datetime, timedelta

import pytest
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from engine.domain import BRACKET, BYE, ROUND_ROBIN, InvalidInput
from engine.models import CompetitionMatch
from engine.services.bracket_gen import build_bracket, champion, find_match, select_winner
from engine.services.history import (
    PersistenceError,
    get_competition_record,
    list_competition_history,
    reset_history,
    save_competition,
)
from engine.services.round_robin import build_round_robin, toggle_winner


def _finished_bracket(ps):
    matches = build_bracket(ps)
    for m in list(matches):
        current = next(x for x in matches if x.id == m.id)
        if current.winner is None and len(current.players()) == 2:
            matches = select_winner(matches, current.id, current.players()[0])
    return matches


@pytest.mark.asyncio
async def test_save_and_read_bracket(session_factory, players):
    ps = players(3)
    matches = _finished_bracket(ps)
    async with session_factory() as s:
        competition = await save_competition(s, BRACKET, ps, matches)
    assert competition.completed_at is not None

    async with session_factory() as s:
        record = await get_competition_record(s, competition.id)
    assert record.kind == BRACKET
    assert record.is_completed
    assert record.participants == ps
    assert record.matches == matches
    assert champion(record.matches) == ps[0]
    bye = find_match(record.matches, 1, 1)
    assert bye.player2 == BYE
    assert bye.winner == ps[2]


@pytest.mark.asyncio
async def test_unfinished_competition_not_completed(session_factory, players):
    ps = players(4)
    matches = build_bracket(ps)
    matches = select_winner(matches, find_match(matches, 1, 0).id, ps[0])
    async with session_factory() as s:
        competition = await save_competition(s, BRACKET, ps, matches)
    assert competition.completed_at is None
    async with session_factory() as s:
        record = await get_competition_record(s, competition.id)
    assert not record.is_completed
    assert record.matches == matches


@pytest.mark.asyncio
async def test_round_robin_round_trip(session_factory, players):
    ps = players(3)
    matches = build_round_robin(ps)
    for m in matches:
        matches = toggle_winner(matches, m.id, m.player2)
    async with session_factory() as s:
        competition = await save_competition(s, ROUND_ROBIN, ps, matches)
    assert competition.completed_at is not None
    async with session_factory() as s:
        record = await get_competition_record(s, competition.id)
    assert record.kind == ROUND_ROBIN
    assert record.matches == matches


@pytest.mark.asyncio
async def test_history_newest_first_across_kinds(session_factory, players):
    ps = players(3)
    base = datetime(2024, 1, 1, 12, 0, 0)
    async with session_factory() as s:
        old = await save_competition(s, BRACKET, ps, build_bracket(ps), created_at=base)
    async with session_factory() as s:
        new = await save_competition(s, ROUND_ROBIN, ps, build_round_robin(ps), created_at=base + timedelta(hours=1))
    async with session_factory() as s:
        history = await list_competition_history(s)
    assert [r.competition.id for r in history] == [new.id, old.id]
    assert [r.kind for r in history] == [ROUND_ROBIN, BRACKET]


@pytest.mark.asyncio
async def test_unknown_competition(session):
    assert await get_competition_record(session, "missing") is None


@pytest.mark.asyncio
async def test_reset_history(session_factory, players):
    ps = players(2)
    async with session_factory() as s:
        await save_competition(s, BRACKET, ps, build_bracket(ps))
        await save_competition(s, ROUND_ROBIN, ps, build_round_robin(ps))
    async with session_factory() as s:
        assert await reset_history(s) == 2
    async with session_factory() as s:
        assert await list_competition_history(s) == []
        assert await reset_history(s) == 0


@pytest.mark.asyncio
async def test_rejects_unknown_kind(session, players):
    ps = players(2)
    with pytest.raises(InvalidInput):
        await save_competition(session, "swiss", ps, build_bracket(ps))


@pytest.mark.asyncio
async def test_rejects_mismatched_match_type(session, players):
    ps = players(2)
    with pytest.raises(InvalidInput):
        await save_competition(session, ROUND_ROBIN, ps, build_bracket(ps))


@pytest.mark.asyncio
async def test_store_failure_raises_persistence_error(tmp_path, players):
    # No tables created
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    ps = players(2)
    try:
        async with factory() as s:
            with pytest.raises(PersistenceError):
                await save_competition(s, BRACKET, ps, build_bracket(ps))
        async with factory() as s:
            with pytest.raises(PersistenceError):
                await list_competition_history(s)
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_bracket_row_without_round_is_corrupt(session_factory, players):
    ps = players(4)
    async with session_factory() as s:
        competition = await save_competition(s, BRACKET, ps, build_bracket(ps))
    async with session_factory() as s:
        await s.execute(
            update(CompetitionMatch)
            .where(CompetitionMatch.competition_id == competition.id, CompetitionMatch.id == "2")
            .values(round=None)
        )
        await s.commit()
    async with session_factory() as s:
        with pytest.raises(PersistenceError):
            await get_competition_record(s, competition.id)
    async with session_factory() as s:
        with pytest.raises(PersistenceError):
            await list_competition_history(s)
