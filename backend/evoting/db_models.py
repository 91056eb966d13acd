from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from evoting.db import Base


class ElectionStateRow(Base):
    __tablename__ = "election_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    admin: Mapped[str] = mapped_column(String(255), nullable=False)
    phase: Mapped[str] = mapped_column(String(64), nullable=False)
    winning_candidate_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    total_votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class VoterRow(Base):
    __tablename__ = "voters"

    address: Mapped[str] = mapped_column(String(255), primary_key=True)
    is_registered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_voted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    voted_proposal_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class CandidateRow(Base):
    __tablename__ = "candidates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    description: Mapped[str] = mapped_column(String, nullable=False)
    vote_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
