"""In-memory drafts: the current match list of each competition still being played."""
from __future__ import annotations

import logging
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterator, Optional, Sequence, Set, Tuple

import config
from engine.domain import AnyMatch, Participant

logger = logging.getLogger("bracketdesk")


class DraftNotFound(KeyError):
    pass


class VersionConflict(Exception):
    """The caller edited an older version of the match list, or the draft is being saved."""


@dataclass(frozen=True)
class Draft:
    id: str
    kind: str
    participants: Tuple[Participant, ...]
    matches: Tuple[AnyMatch, ...]
    version: int = 0


class DraftStore:
    """Holds one match-list value per draft and swaps it whole on every change.

    Drafts untouched for longer than `max_idle` seconds are dropped the next
    time the store is used. A draft claimed by `saving()` cannot be edited,
    discarded or expired until the save finishes.
    """

    def __init__(self, max_idle: Optional[float] = None, clock: Callable[[], float] = time.monotonic) -> None:
        self._drafts: Dict[str, Draft] = {}
        self._touched: Dict[str, float] = {}
        self._saving: Set[str] = set()
        self._max_idle = max_idle
        self._clock = clock

    def _touch(self, draft_id: str) -> None:
        self._touched[draft_id] = self._clock()

    def _expire(self) -> None:
        if not self._max_idle:
            return
        cutoff = self._clock() - self._max_idle
        stale = [d for d, t in self._touched.items() if t < cutoff and d not in self._saving]
        for draft_id in stale:
            del self._drafts[draft_id]
            del self._touched[draft_id]
        if stale:
            logger.info("Expired %d idle draft(s)", len(stale))

    def create(self, kind: str, participants: Sequence[Participant], matches: Sequence[AnyMatch]) -> Draft:
        self._expire()
        draft = Draft(id=uuid.uuid4().hex, kind=kind, participants=tuple(participants), matches=tuple(matches))
        self._drafts[draft.id] = draft
        self._touch(draft.id)
        return draft

    def get(self, draft_id: str) -> Draft:
        self._expire()
        try:
            draft = self._drafts[draft_id]
        except KeyError:
            raise DraftNotFound(draft_id) from None
        self._touch(draft_id)
        return draft

    def _check_editable(self, draft: Draft, expected_version: Optional[int]) -> None:
        if draft.id in self._saving:
            raise VersionConflict(f"Draft {draft.id} is being saved")
        if expected_version is not None and expected_version != draft.version:
            raise VersionConflict(f"Draft {draft.id} is at version {draft.version}, not {expected_version}")

    def replace_matches(
        self, draft_id: str, matches: Sequence[AnyMatch], expected_version: Optional[int] = None
    ) -> Draft:
        """Compare-and-swap: only replace if the caller saw the current version."""
        current = self.get(draft_id)
        self._check_editable(current, expected_version)
        updated = replace(current, matches=tuple(matches), version=current.version + 1)
        self._drafts[draft_id] = updated
        return updated

    def discard(self, draft_id: str) -> Draft:
        draft = self.get(draft_id)
        self._check_editable(draft, None)
        self._remove(draft_id)
        return draft

    def _remove(self, draft_id: str) -> None:
        del self._drafts[draft_id]
        del self._touched[draft_id]

    @contextmanager
    def saving(self, draft_id: str, expected_version: Optional[int] = None) -> Iterator[Draft]:
        """Claim a draft for saving and yield the snapshot to persist.

        While claimed, edits and a second save get VersionConflict. The draft
        is removed when the block exits normally and released untouched when
        it raises, so a failed save can be retried.
        """
        draft = self.get(draft_id)
        self._check_editable(draft, expected_version)
        self._saving.add(draft_id)
        try:
            yield draft
        except BaseException:
            self._saving.discard(draft_id)
            raise
        self._saving.discard(draft_id)
        self._remove(draft_id)

    def __len__(self) -> int:
        return len(self._drafts)


draft_store = DraftStore(max_idle=config.DRAFT_MAX_IDLE_SECONDS)


def get_draft_store() -> DraftStore:
    return draft_store
