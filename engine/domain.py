"""Participants, slots and match values shared by the bracket and round-robin engines."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Union

BRACKET = "bracket"
ROUND_ROBIN = "round_robin"
COMPETITION_KINDS = (BRACKET, ROUND_ROBIN)


class InvalidInput(ValueError):
    """Participant list cannot produce a match list (too few entries, blank names)."""


class IllegalSelection(ValueError):
    """Winner selection or clear that the current match state does not allow."""


class MatchState(str, Enum):
    EMPTY = "empty"
    PLAYABLE = "playable"
    DECIDED = "decided"


@dataclass(frozen=True)
class Participant:
    id: str
    name: str


def new_participant(name: str) -> Participant:
    """Create a participant with a fresh opaque id. Name must be non-empty after trimming."""
    cleaned = (name or "").strip()
    if not cleaned:
        raise InvalidInput("Participant name cannot be blank")
    return Participant(id=uuid.uuid4().hex, name=cleaned)


def participants_from_names(names: list[str], minimum: int) -> list[Participant]:
    """Trim names, drop blanks, and require at least `minimum` entries."""
    cleaned = [n.strip() for n in names if n and n.strip()]
    if len(cleaned) < minimum:
        raise InvalidInput(f"At least {minimum} participants are required")
    return [new_participant(n) for n in cleaned]


# --- Slots: Occupied(participant) | Bye | Empty ---


@dataclass(frozen=True)
class Occupied:
    participant: Participant


@dataclass(frozen=True)
class ByeSlot:
    pass


@dataclass(frozen=True)
class EmptySlot:
    pass


Slot = Union[Occupied, ByeSlot, EmptySlot]

BYE = ByeSlot()
EMPTY = EmptySlot()


def slot_participant(slot: Slot) -> Optional[Participant]:
    """Participant in the slot, or None for Bye/Empty."""
    if isinstance(slot, Occupied):
        return slot.participant
    return None


def slot_holds(slot: Slot, participant: Participant) -> bool:
    return isinstance(slot, Occupied) and slot.participant.id == participant.id


@dataclass(frozen=True)
class BracketMatch:
    """Single-elimination match. (round, position) is unique within one bracket."""

    id: str
    round: int
    position: int
    player1: Slot = EMPTY
    player2: Slot = EMPTY
    winner: Optional[Participant] = None

    @property
    def is_bye(self) -> bool:
        return isinstance(self.player2, ByeSlot)

    def players(self) -> list[Participant]:
        return [p for p in (slot_participant(self.player1), slot_participant(self.player2)) if p]

    def with_winner(self, winner: Optional[Participant]) -> "BracketMatch":
        return replace(self, winner=winner)

    def with_slot(self, slot_index: int, slot: Slot) -> "BracketMatch":
        if slot_index == 1:
            return replace(self, player1=slot)
        return replace(self, player2=slot)


@dataclass(frozen=True)
class RoundRobinMatch:
    id: str
    player1: Participant
    player2: Participant
    winner: Optional[Participant] = None

    def players(self) -> list[Participant]:
        return [self.player1, self.player2]

    def with_winner(self, winner: Optional[Participant]) -> "RoundRobinMatch":
        return replace(self, winner=winner)


AnyMatch = Union[BracketMatch, RoundRobinMatch]


def is_playable(match: AnyMatch) -> bool:
    """Both players present, neither is a BYE, and both have non-empty names."""
    if isinstance(match, RoundRobinMatch):
        return bool(match.player1.name.strip()) and bool(match.player2.name.strip())
    p1 = slot_participant(match.player1)
    p2 = slot_participant(match.player2)
    if p1 is None or p2 is None:
        return False
    return bool(p1.name.strip()) and bool(p2.name.strip())


def match_state(match: AnyMatch) -> MatchState:
    if match.winner is not None:
        return MatchState.DECIDED
    if is_playable(match):
        return MatchState.PLAYABLE
    return MatchState.EMPTY


def is_complete(kind: str, matches) -> bool:
    """Every reachable match has a winner.

    For a bracket that is exactly when the final is decided; padding matches
    that no participant can reach never get one.
    """
    if not matches:
        return False
    if kind == BRACKET:
        last = max(m.round for m in matches)
        return any(m.round == last and m.winner is not None for m in matches)
    return all(m.winner is not None for m in matches)
