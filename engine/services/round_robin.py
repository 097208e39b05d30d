"""Round-robin schedule: every participant plays every other participant once."""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from engine.domain import IllegalSelection, InvalidInput, Participant, RoundRobinMatch

logger = logging.getLogger("bracketdesk")


def build_round_robin(participants: Sequence[Participant]) -> List[RoundRobinMatch]:
    """One match per pair (i, j), i < j, in lexicographic order."""
    n = len(participants)
    if n < 2:
        raise InvalidInput("At least 2 participants are required for a round robin")
    matches = []
    match_num = 0
    for i in range(n):
        for j in range(i + 1, n):
            matches.append(RoundRobinMatch(id=str(match_num), player1=participants[i], player2=participants[j]))
            match_num += 1
    logger.info("Built round robin: %d participants, %d matches", n, len(matches))
    return matches


def expected_match_count(n: int) -> int:
    return n * (n - 1) // 2


def toggle_winner(matches: Sequence[RoundRobinMatch], match_id: str, chosen: Participant) -> List[RoundRobinMatch]:
    """Set the winner of one match, or clear it if `chosen` already won. No propagation."""
    result = list(matches)
    for i, m in enumerate(result):
        if m.id != match_id:
            continue
        if chosen.id not in (m.player1.id, m.player2.id):
            raise IllegalSelection(f"{chosen.name} is not playing in match {match_id}")
        if m.winner is not None and m.winner.id == chosen.id:
            result[i] = m.with_winner(None)
        else:
            result[i] = m.with_winner(m.player1 if m.player1.id == chosen.id else m.player2)
        return result
    raise IllegalSelection(f"Match {match_id} not found")


def clear_winner(matches: Sequence[RoundRobinMatch], match_id: str) -> List[RoundRobinMatch]:
    result = list(matches)
    for i, m in enumerate(result):
        if m.id == match_id:
            result[i] = m.with_winner(None)
            return result
    raise IllegalSelection(f"Match {match_id} not found")


def head_to_head(matches: Sequence[RoundRobinMatch], a: Participant, b: Participant) -> Optional[RoundRobinMatch]:
    """The match between a and b regardless of which side each was drawn on."""
    pair = {a.id, b.id}
    return next((m for m in matches if {m.player1.id, m.player2.id} == pair), None)

