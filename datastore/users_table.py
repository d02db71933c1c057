from __future__ import annotations

from functools import lru_cache
from typing import Optional

from sqlalchemy import Engine
from sqlalchemy.orm import sessionmaker

from datastore.db import UserRow, build_default_engine


class UserStore:

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)

    def get_password_hash(self, email: str) -> Optional[str]:
        with self._sessions() as session:
            user = session.get(UserRow, email)
            return user.password_hash if user is not None else None

    def put(self, email: str, password_hash: str) -> None:
        """Create the user or replace its password hash."""
        with self._sessions.begin() as session:
            session.merge(UserRow(email=email, password_hash=password_hash))

    def exists(self, email: str) -> bool:
        return self.get_password_hash(email) is not None


@lru_cache
def build_default_user_store() -> UserStore:
    return UserStore(engine=build_default_engine())
