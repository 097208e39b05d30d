"""Tests for the in-memory draft store: versioning, save claims and idle expiry."""
import pytest

from engine.services.bracket_gen import build_bracket, select_winner
from web.api.drafts import DraftNotFound, DraftStore, VersionConflict


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def draft(store, players):
    ps = players(4)
    return store.create("bracket", ps, build_bracket(ps))


def test_replace_bumps_version(store, draft):
    ps = draft.participants
    matches = select_winner(draft.matches, draft.matches[0].id, ps[0])
    updated = store.replace_matches(draft.id, matches, expected_version=0)
    assert updated.version == 1
    with pytest.raises(VersionConflict):
        store.replace_matches(draft.id, draft.matches, expected_version=0)
    assert store.get(draft.id) == updated


def test_save_removes_draft(store, draft):
    with store.saving(draft.id) as claimed:
        assert claimed == draft
    assert len(store) == 0
    with pytest.raises(DraftNotFound):
        store.get(draft.id)


def test_edits_rejected_while_saving(store, draft):
    ps = draft.participants
    with store.saving(draft.id):
        with pytest.raises(VersionConflict):
            store.replace_matches(draft.id, select_winner(draft.matches, draft.matches[0].id, ps[0]))
        with pytest.raises(VersionConflict):
            store.discard(draft.id)
    assert len(store) == 0


def test_second_save_rejected_while_first_runs(store, draft):
    with store.saving(draft.id):
        with pytest.raises(VersionConflict):
            with store.saving(draft.id):
                pass
    with pytest.raises(DraftNotFound):
        with store.saving(draft.id):
            pass


def test_failed_save_releases_draft(store, draft):
    with pytest.raises(RuntimeError):
        with store.saving(draft.id):
            raise RuntimeError("commit failed")
    assert store.get(draft.id) == draft
    updated = store.replace_matches(draft.id, draft.matches, expected_version=0)
    assert updated.version == 1


def test_save_checks_expected_version(store, draft):
    store.replace_matches(draft.id, draft.matches)
    with pytest.raises(VersionConflict):
        with store.saving(draft.id, expected_version=0):
            pass
    assert len(store) == 1
    with store.saving(draft.id, expected_version=1):
        pass
    assert len(store) == 0


def test_idle_drafts_expire(players):
    clock = FakeClock()
    store = DraftStore(max_idle=60, clock=clock)
    ps = players(2)
    old = store.create("bracket", ps, build_bracket(ps))
    clock.now += 30
    recent = store.create("bracket", ps, build_bracket(ps))
    clock.now += 45
    # old idle for 75s, recent for 45s
    with pytest.raises(DraftNotFound):
        store.get(old.id)
    assert store.get(recent.id) == recent
    assert len(store) == 1


def test_activity_keeps_draft_alive(players):
    clock = FakeClock()
    store = DraftStore(max_idle=60, clock=clock)
    ps = players(2)
    draft = store.create("bracket", ps, build_bracket(ps))
    for _ in range(5):
        clock.now += 50
        store.get(draft.id)
    assert len(store) == 1


def test_draft_being_saved_does_not_expire(players):
    clock = FakeClock()
    store = DraftStore(max_idle=60, clock=clock)
    ps = players(2)
    draft = store.create("bracket", ps, build_bracket(ps))
    with store.saving(draft.id):
        clock.now += 120
        store.create("bracket", ps, build_bracket(ps))
        assert len(store) == 2
    assert len(store) == 1


def test_no_expiry_by_default(store, players):
    ps = players(2)
    store.create("bracket", ps, build_bracket(ps))
    assert len(store) == 1
