"""Profile reads and creation; balance changes go through ``LedgerRepository``."""

from __future__ import annotations

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from app.models import Profile


class ProfileRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_profile(self, *, username: str, credits: int) -> Profile:
        profile = Profile(
            username=username,
            credits=credits,
            total_votes=0,
            correct_votes=0,
            accuracy_percentage=0.0,
        )
        self._session.add(profile)
        self._session.flush()
        return profile

    def get_profile(self, user_id: str) -> Profile | None:
        return self._session.get(Profile, user_id)

    def get_by_username(self, username: str) -> Profile | None:
        query = select(Profile).where(Profile.username == username)
        return self._session.execute(query).scalar_one_or_none()

    def leaderboard(self, *, limit: int = 100) -> list[Profile]:
        query = (
            select(Profile)
            .order_by(desc(Profile.credits), desc(Profile.accuracy_percentage), Profile.username)
            .limit(limit)
        )
        return list(self._session.execute(query).scalars().all())


__all__ = ["ProfileRepository"]
