"""Saved competition, its participants and its matches."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from engine.models.base import Base


def utcnow() -> datetime:
    return datetime.utcnow()


class Competition(Base):
    """Finished or abandoned competition snapshot. Immutable once written."""

    __tablename__ = "competitions"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False, index=True)  # bracket, round_robin
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)  # set when every match has a winner

    participants = relationship(
        "CompetitionParticipant",
        back_populates="competition",
        cascade="all, delete-orphan",
        order_by="CompetitionParticipant.sort_order",
    )
    matches = relationship(
        "CompetitionMatch",
        back_populates="competition",
        cascade="all, delete-orphan",
        order_by="CompetitionMatch.sort_order",
    )


class CompetitionParticipant(Base):
    """Participant as entered by the organizer."""

    __tablename__ = "competition_participants"

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(32), nullable=False)
    competition_id: Mapped[str] = mapped_column(ForeignKey("competitions.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    competition: Mapped["Competition"] = relationship("Competition", back_populates="participants")


class CompetitionMatch(Base):
    """Match with its recorded winner. round/position are only set for brackets."""

    __tablename__ = "competition_matches"

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(32), nullable=False)
    competition_id: Mapped[str] = mapped_column(ForeignKey("competitions.id"), nullable=False, index=True)
    round: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    position: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    player1_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)  # empty slot in an unfinished bracket
    player2_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)  # null for BYE
    is_bye: Mapped[bool] = mapped_column(default=False)
    winner_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    competition: Mapped["Competition"] = relationship("Competition", back_populates="matches")
