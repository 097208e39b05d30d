"""Win/loss/points aggregation and ranking."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from engine.domain import AnyMatch, Participant

POINTS_PER_WIN = 3


@dataclass(frozen=True)
class Standing:
    participant: Participant
    wins: int = 0
    losses: int = 0

    @property
    def points(self) -> int:
        return self.wins * POINTS_PER_WIN


def compute_standings(participants: Sequence[Participant], matches: Sequence[AnyMatch]) -> List[Standing]:
    """Rank by points desc, wins desc, losses asc. Ties keep input order.

    A BYE win counts as a win; nobody is charged a loss for it.
    """
    wins: Dict[str, int] = {p.id: 0 for p in participants}
    losses: Dict[str, int] = {p.id: 0 for p in participants}
    for m in matches:
        if m.winner is None:
            continue
        if m.winner.id in wins:
            wins[m.winner.id] += 1
        for p in m.players():
            if p.id != m.winner.id and p.id in losses:
                losses[p.id] += 1
    standings = [Standing(participant=p, wins=wins[p.id], losses=losses[p.id]) for p in participants]
    # sorted() is stable
    return sorted(standings, key=lambda s: (-s.points, -s.wins, s.losses))


def undefeated_winner(participants: Sequence[Participant], matches: Sequence[AnyMatch]) -> Optional[Participant]:
    """Round-robin participant who won all n-1 of their matches, if any."""
    needed = len(participants) - 1
    for s in compute_standings(participants, matches):
        if needed > 0 and s.wins == needed:
            return s.participant
    return None
