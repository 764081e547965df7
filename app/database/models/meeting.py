"""
Meeting and participant models for synced Fathom recordings.

The transcript column stores the payload exactly as Fathom delivered it;
normalization happens when the transcript is read.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    String, Text, Integer, Boolean, DateTime, ForeignKey, Index, UniqueConstraint, func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.models.base import Base


class Meeting(Base):
    """A Fathom meeting with its raw transcript and resolved duration."""

    __tablename__ = "meetings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    fathom_meeting_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        comment="Fathom meeting id (or recording URL when no id is provided)",
    )
    title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Scheduled slot, falling back to recording times when unscheduled
    start_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, index=True)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    recording_start_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    recording_end_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    duration: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Duration in seconds; NULL when unknown",
    )
    duration_source: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        comment="recording, scheduled, transcript, explicit or unknown",
    )

    recording_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    transcript: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    participants: Mapped[List["MeetingParticipant"]] = relationship(
        "MeetingParticipant",
        back_populates="meeting",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="MeetingParticipant.id",
    )

    __table_args__ = (
        Index("ix_meetings_title", "title"),
    )

    def __repr__(self) -> str:
        return f"<Meeting(id={self.id}, fathom_meeting_id={self.fathom_meeting_id}, title={self.title!r})>"

    @property
    def participant_labels(self) -> List[str]:
        """``name (email)`` for each participant."""
        return [f"{p.name or ''} ({p.email or ''})" for p in self.participants]

    @property
    def domains(self) -> List[str]:
        seen = []
        for participant in self.participants:
            if participant.domain and participant.domain not in seen:
                seen.append(participant.domain)
        return seen


class MeetingParticipant(Base):
    """Calendar invitee of a meeting."""

    __tablename__ = "meeting_participants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    meeting_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("meetings.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[Optional[str]] = mapped_column(Text, nullable=True, index=True)
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True, index=True)
    domain: Mapped[Optional[str]] = mapped_column(Text, nullable=True, index=True)
    is_host: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    meeting: Mapped["Meeting"] = relationship("Meeting", back_populates="participants")

    __table_args__ = (
        UniqueConstraint("meeting_id", "email", name="meeting_participants_meeting_id_email_key"),
    )

    def __repr__(self) -> str:
        return f"<MeetingParticipant(meeting_id={self.meeting_id}, email={self.email})>"
