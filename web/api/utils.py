"""Shared API utilities: JSON shapes for participants, matches and standings."""
from __future__ import annotations

from typing import Optional, Sequence

from engine.domain import (
    BRACKET,
    AnyMatch,
    BracketMatch,
    ByeSlot,
    Participant,
    is_playable,
    match_state,
    slot_participant,
)
from engine.services.bracket_gen import champion, group_by_round, round_label
from engine.services.standings import Standing, compute_standings, undefeated_winner

UNDECIDED_NAME = "TBD"
BYE_NAME = "BYE"


def participant_data(p: Optional[Participant]) -> Optional[dict]:
    if p is None:
        return None
    return {"id": p.id, "name": p.name}


def display_name(p: Optional[Participant]) -> str:
    """Human-readable slot name. Never empty."""
    if not p:
        return UNDECIDED_NAME
    name = (p.name or "").strip()
    return name or UNDECIDED_NAME


def match_data(m: AnyMatch) -> dict:
    data = {
        "id": m.id,
        "winner": participant_data(m.winner),
        "winner_name": m.winner.name if m.winner else None,
        "playable": is_playable(m),
        "state": match_state(m).value,
    }
    if isinstance(m, BracketMatch):
        p1 = slot_participant(m.player1)
        p2 = slot_participant(m.player2)
        is_bye = isinstance(m.player2, ByeSlot)
        data.update({
            "round_num": m.round,
            "position": m.position,
            "player1": participant_data(p1),
            "player2": participant_data(p2),
            "is_bye": is_bye,
            "player1_name": display_name(p1),
            "player2_name": BYE_NAME if is_bye else display_name(p2),
        })
    else:
        data.update({
            "player1": participant_data(m.player1),
            "player2": participant_data(m.player2),
            "player1_name": display_name(m.player1),
            "player2_name": display_name(m.player2),
        })
    return data


def standing_data(rank: int, s: Standing) -> dict:
    return {
        "rank": rank,
        "participant": participant_data(s.participant),
        "name": s.participant.name,
        "wins": s.wins,
        "losses": s.losses,
        "points": s.points,
    }


def standings_data(participants: Sequence[Participant], matches: Sequence[AnyMatch]) -> list[dict]:
    return [standing_data(i, s) for i, s in enumerate(compute_standings(participants, matches), start=1)]


def winner_of(kind: str, participants: Sequence[Participant], matches: Sequence[AnyMatch]) -> Optional[Participant]:
    """Bracket: the champion. Round robin: the participant who won every match, if any."""
    if kind == BRACKET:
        return champion(matches)
    return undefeated_winner(participants, matches)


def matches_payload(kind: str, matches: Sequence[AnyMatch]) -> dict:
    """Bracket matches grouped into rounds (same shape the bracket view expects); round robin as a flat list."""
    if kind != BRACKET:
        return {"matches": [match_data(m) for m in matches]}
    rounds = group_by_round(matches)
    last = max(rounds) if rounds else 0
    return {
        "matches": [match_data(m) for m in matches],
        "rounds": {
            str(r): {"label": round_label(r, last), "matches": [match_data(m) for m in ms]}
            for r, ms in sorted(rounds.items())
        },
    }
