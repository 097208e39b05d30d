"""Single-elimination bracket generation and winner advancement."""
from __future__ import annotations

import logging
from collections import deque
from typing import Dict, List, Optional, Sequence, Tuple

from engine.domain import (
    BYE,
    EMPTY,
    BracketMatch,
    ByeSlot,
    IllegalSelection,
    InvalidInput,
    Occupied,
    Participant,
    is_playable,
    slot_holds,
    slot_participant,
)

logger = logging.getLogger("bracketdesk")


def next_power_of_2(n: int) -> int:
    """Round up to next power of 2."""
    p = 1
    while p < n:
        p *= 2
    return p


def round_count(n: int) -> int:
    """ceil(log2(n)) for n >= 2."""
    return next_power_of_2(n).bit_length() - 1


def round_label(round_num: int, rounds: int) -> str:
    """Get the name of a round from the bracket size it represents, byes included."""
    players = 2 ** (rounds - round_num + 1)
    if players == 2:
        return "Final"
    elif players == 4:
        return "Semifinal"
    elif players == 8:
        return "Quarterfinal"
    return f"Round of {players}"


def _feed_slot(position: int) -> int:
    """Slot (1 or 2) in the next round fed by the match at `position`."""
    return 1 if position % 2 == 0 else 2


def _index_by_key(matches: Sequence[BracketMatch]) -> Dict[Tuple[int, int], int]:
    return {(m.round, m.position): i for i, m in enumerate(matches)}


def _locate(matches: Sequence[BracketMatch], match_id: str) -> Tuple[int, BracketMatch]:
    for i, m in enumerate(matches):
        if m.id == match_id:
            return i, m
    raise IllegalSelection(f"Match {match_id} not found")


def find_match(matches: Sequence[BracketMatch], round_num: int, position: int) -> Optional[BracketMatch]:
    return next((m for m in matches if m.round == round_num and m.position == position), None)


def find_next_match(matches: Sequence[BracketMatch], match: BracketMatch) -> Optional[BracketMatch]:
    """The match at (round + 1, position // 2), or None for the final."""
    return find_match(matches, match.round + 1, match.position // 2)


def build_bracket(participants: Sequence[Participant]) -> List[BracketMatch]:
    """Create single-elimination matches. Uses compact pairing: 1v2, 3v4, 5vbye, etc.

    Later rounds are pre-allocated with empty slots. A later-round slot that
    no participant can ever reach is marked BYE so its opponent advances on
    arrival; matches with no reachable slot at all stay empty. Bye winners
    are pushed forward immediately.
    """
    n = len(participants)
    if n < 2:
        raise InvalidInput("At least 2 participants are required to build a bracket")

    rounds = round_count(n)
    matches: List[BracketMatch] = []
    match_num = 0

    # Round 1: compact pairing (2i vs 2i+1), bye when odd count
    round_size = (n + 1) // 2
    for i in range(round_size):
        p1 = participants[2 * i]
        if 2 * i + 1 < n:
            m = BracketMatch(
                id=str(match_num), round=1, position=i,
                player1=Occupied(p1), player2=Occupied(participants[2 * i + 1]),
            )
        else:
            m = BracketMatch(id=str(match_num), round=1, position=i, player1=Occupied(p1), player2=BYE, winner=p1)
        matches.append(m)
        match_num += 1

    # Rounds 2+: placeholder matches for bracket structure.
    # live[r] = matches in round r that some participant can still reach; the rest is padding.
    live = [0, round_size]
    for r in range(2, rounds + 1):
        live.append((live[r - 1] + 1) // 2)
        for i in range(2 ** (rounds - r)):
            player2 = BYE if i < live[r] and 2 * i + 1 >= live[r - 1] else EMPTY
            matches.append(BracketMatch(id=str(match_num), round=r, position=i, player2=player2))
            match_num += 1

    by_key = _index_by_key(matches)
    for i in range(round_size):
        if matches[i].winner is not None:
            _advance(matches, by_key, i)

    logger.info("Built bracket: %d participants, %d rounds, %d matches", n, rounds, len(matches))
    return matches


def _advance(matches: List[BracketMatch], by_key: Dict[Tuple[int, int], int], idx: int) -> None:
    """Place matches[idx].winner into the next round. Walks on through structural byes."""
    while True:
        source = matches[idx]
        next_idx = by_key.get((source.round + 1, source.position // 2))
        if next_idx is None or source.winner is None:
            return
        target = matches[next_idx].with_slot(_feed_slot(source.position), Occupied(source.winner))
        if isinstance(target.player2, ByeSlot) and target.winner is None:
            # Opponent slot will never be filled: auto-advance
            target = target.with_winner(slot_participant(target.player1))
            matches[next_idx] = target
            idx = next_idx
            continue
        matches[next_idx] = target
        return


def select_winner(matches: Sequence[BracketMatch], match_id: str, chosen: Participant) -> List[BracketMatch]:
    """Record `chosen` as winner and place them into the next round.

    Selecting the current winner again deselects it (same as clear_winner).
    Switching the winner to the other player first unwinds everything the
    previous winner fed downstream. Returns a new list; `matches` is untouched.
    """
    idx, match = _locate(matches, match_id)
    if not is_playable(match):
        raise IllegalSelection(f"Match {match_id} is not playable")
    player = next((p for p in match.players() if p.id == chosen.id), None)
    if player is None:
        raise IllegalSelection(f"{chosen.name} is not playing in match {match_id}")

    if match.winner is not None and match.winner.id == player.id:
        return clear_winner(matches, match_id)

    result = list(matches)
    if match.winner is not None:
        result = clear_winner(result, match_id)
    result[idx] = result[idx].with_winner(player)
    _advance(result, _index_by_key(result), idx)
    logger.debug("Match %s (round %d): winner %s", match_id, match.round, player.name)
    return result


def clear_winner(matches: Sequence[BracketMatch], match_id: str) -> List[BracketMatch]:
    """Remove the winner of a match and unwind every slot it populated downstream.

    Each removal is an event (source match, participant) processed from a
    queue: the slot that source feeds is emptied and, if the receiving match
    was decided, its winner is removed too and queued in turn.
    Clearing an undecided match is a no-op. BYE results cannot be cleared.
    """
    idx, match = _locate(matches, match_id)
    if match.winner is None:
        return list(matches)
    if isinstance(match.player2, ByeSlot):
        raise IllegalSelection(f"Match {match_id} is a bye and cannot be cleared")

    result = list(matches)
    by_key = _index_by_key(result)
    result[idx] = match.with_winner(None)
    queue = deque([(match, match.winner)])
    cleared = 0
    while queue:
        source, removed = queue.popleft()
        next_idx = by_key.get((source.round + 1, source.position // 2))
        if next_idx is None:
            continue
        downstream = result[next_idx]
        slot_index = _feed_slot(source.position)
        slot = downstream.player1 if slot_index == 1 else downstream.player2
        if not slot_holds(slot, removed):
            continue
        lost_winner = downstream.winner
        downstream = downstream.with_slot(slot_index, EMPTY).with_winner(None)
        result[next_idx] = downstream
        cleared += 1
        if lost_winner is not None:
            queue.append((downstream, lost_winner))
    logger.debug("Cleared match %s; %d downstream slot(s) emptied", match_id, cleared)
    return result


def group_by_round(matches: Sequence[BracketMatch]) -> Dict[int, List[BracketMatch]]:
    rounds: Dict[int, List[BracketMatch]] = {}
    for m in sorted(matches, key=lambda x: (x.round, x.position)):
        rounds.setdefault(m.round, []).append(m)
    return rounds


def final_match(matches: Sequence[BracketMatch]) -> Optional[BracketMatch]:
    """The single match of the last round."""
    if not matches:
        return None
    last = max(m.round for m in matches)
    in_last = [m for m in matches if m.round == last]
    return in_last[0] if len(in_last) == 1 else None


def champion(matches: Sequence[BracketMatch]) -> Optional[Participant]:
    """Winner of the final-round match, if decided."""
    final = final_match(matches)
    return final.winner if final else None
