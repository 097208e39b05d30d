"""Database models."""
from engine.models.base import Base, get_async_session, init_db
from engine.models.competition import Competition, CompetitionMatch, CompetitionParticipant

__all__ = [
    "Base",
    "Competition",
    "CompetitionMatch",
    "CompetitionParticipant",
    "get_async_session",
    "init_db",
]
