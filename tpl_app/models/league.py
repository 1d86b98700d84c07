# tpl_app/models/league.py
"""
League scheduling tables.

These are created during store bootstrap together with the machine catalog
but are populated by league administration, not by the catalog pipeline.
Results reference machines, so machines must be loaded before any result.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import Boolean, Date, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel


class League(BaseModel):
    __tablename__ = "leagues"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<League {self.name}>"


class Season(BaseModel):
    __tablename__ = "seasons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    def __repr__(self):
        return f"<Season {self.name}>"


class User(BaseModel):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    league_id: Mapped[int] = mapped_column(ForeignKey("leagues.id"), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    initials: Mapped[str | None] = mapped_column(String(10), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<User {self.email}>"


class Team(BaseModel):
    __tablename__ = "teams"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    league_id: Mapped[int] = mapped_column(ForeignKey("leagues.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    a_player: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    b_player: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<Team {self.name}>"


class Match(BaseModel):
    __tablename__ = "matches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    league_id: Mapped[int] = mapped_column(ForeignKey("leagues.id"), nullable=False)
    season_id: Mapped[int] = mapped_column(ForeignKey("seasons.id"), nullable=False)
    team_1_id: Mapped[int] = mapped_column(ForeignKey("teams.id"), nullable=False)
    team_2_id: Mapped[int | None] = mapped_column(ForeignKey("teams.id"), nullable=True)


class Result(BaseModel):
    """Scores for one machine played in a match (two players per team)."""

    __tablename__ = "results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    match_id: Mapped[int] = mapped_column(ForeignKey("matches.id"), nullable=False)
    opdb_id: Mapped[str] = mapped_column(ForeignKey("machines.opdb_id"), nullable=False)
    team_1_a_player_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    team_1_a_player_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    team_1_b_player_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    team_1_b_player_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    team_1_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    team_2_a_player_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    team_2_a_player_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    team_2_b_player_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    team_2_b_player_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    team_2_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
