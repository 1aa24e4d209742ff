"""
Fixtures compartidas para los tests.

Los stores en memoria implementan los contratos UserStore y MatchStore
y registran las llamadas para poder verificar qué consultó el motor.
"""

import os

# === Entorno antes de importar intercambio ===
os.environ.setdefault("LOG_LEVEL", "WARNING")

import asyncio
from typing import Optional

import pytest

from intercambio.database.interfaces import MatchStore, UserStore
from intercambio.errors import NotFoundError
from intercambio.matching.lifecycle import MatchLifecycleManager
from intercambio.models import LanguageProfile, Match, MatchStatus, User


# ============================================================================
# Stores en memoria
# ============================================================================

class InMemoryUserStore(UserStore):
    """UserStore en memoria; respeta el orden de inserción."""

    def __init__(self, users: Optional[list[User]] = None):
        self.users: dict[str, User] = {u.id: u for u in users or []}
        self.find_by_id_calls: list[str] = []
        self.criteria_calls: list[dict] = []
        self.delay = 0.0
        self.criteria_delay = 0.0
        self.criteria_cancelled = False
        self.error: Optional[Exception] = None

    def add(self, *users: User) -> None:
        for user in users:
            self.users[user.id] = user

    async def find_by_id(self, user_id: str) -> Optional[User]:
        self.find_by_id_calls.append(user_id)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.users.get(user_id)

    async def find_by_criteria(
        self,
        native_languages=None,
        learning_languages=None,
        limit=None,
        offset=None,
    ) -> list[User]:
        self.criteria_calls.append(
            {
                "native_languages": native_languages,
                "learning_languages": learning_languages,
                "limit": limit,
                "offset": offset,
            }
        )
        if self.error is not None:
            raise self.error
        if self.criteria_delay:
            try:
                await asyncio.sleep(self.criteria_delay)
            except asyncio.CancelledError:
                self.criteria_cancelled = True
                raise

        result = []
        for user in self.users.values():
            if native_languages and not any(user.can_teach(c) for c in native_languages):
                continue
            if learning_languages and not any(user.is_learning(c) for c in learning_languages):
                continue
            result.append(user)

        start = offset or 0
        end = start + limit if limit else None
        return result[start:end]


class InMemoryMatchStore(MatchStore):
    """MatchStore en memoria que aplica el ciclo de vida como la persistencia real."""

    def __init__(self, lifecycle: Optional[MatchLifecycleManager] = None):
        self.matches: dict[str, Match] = {}
        self.lifecycle = lifecycle or MatchLifecycleManager()
        self.find_by_user_calls: list[str] = []
        self.error: Optional[Exception] = None

    async def create(self, match: Match) -> Match:
        match = self.lifecycle.initialize(match)
        self.matches[match.id] = match
        return match

    async def find_by_id(self, match_id: str) -> Optional[Match]:
        return self.matches.get(match_id)

    async def find_by_user_id(self, user_id, status=None) -> list[Match]:
        self.find_by_user_calls.append(user_id)
        if self.error is not None:
            raise self.error
        return [
            m
            for m in self.matches.values()
            if m.involves(user_id) and (status is None or m.status == status)
        ]

    async def find_by_users(self, user1_id, user2_id) -> Optional[Match]:
        for match in self.matches.values():
            if match.connects(user1_id, user2_id):
                return match
        return None

    async def update(self, match: Match) -> Match:
        current = self.matches.get(match.id)
        if current is None:
            raise NotFoundError("Match", match.id)
        if match.status != current.status:
            match = self.lifecycle.transition(current, match.status)
        else:
            match = self.lifecycle.touch(match)
        self.matches[match.id] = match
        return match

    async def delete(self, match_id: str) -> bool:
        return self.matches.pop(match_id, None) is not None


# ============================================================================
# Factories
# ============================================================================

@pytest.fixture
def make_user():
    """Factory de usuarios: make_user("u1", teaching=["en"], learning=["es"])."""

    def _make(user_id, teaching=None, learning=None, display_name=None):
        return User(
            id=user_id,
            display_name=display_name or f"User {user_id}",
            profile=LanguageProfile.build(teaching=teaching, learning=learning),
        )

    return _make


@pytest.fixture
def make_match():
    def _make(user1_id, user2_id, status: Optional[MatchStatus] = MatchStatus.PENDING, **kwargs):
        return Match(user1_id=user1_id, user2_id=user2_id, status=status, **kwargs)

    return _make


@pytest.fixture
def user_store() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
def match_store() -> InMemoryMatchStore:
    return InMemoryMatchStore()


# ============================================================================
# Perfiles de ejemplo
# ============================================================================

@pytest.fixture
def requester(make_user) -> User:
    """Enseña inglés (nativo), aprende español (principiante)."""
    return make_user("requester", teaching=["en"], learning=[("es", "beginner")])


@pytest.fixture
def spanish_speaker(make_user) -> User:
    """Enseña español (nativo), aprende inglés (principiante)."""
    return make_user("x", teaching=["es"], learning=[("en", "beginner")])
