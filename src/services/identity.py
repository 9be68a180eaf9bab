"""
Identity store: resolves bearer tokens to principals.
Tokens are issued per user and stored only as SHA-256 digests.
"""
import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import aiosqlite

from services.database import Database

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    user_id: int
    email: str


class IdentityStore:
    """Async handler for users and their bearer sessions."""

    def __init__(self, database: Database):
        self.db = database

    @staticmethod
    def hash_token(token: str) -> str:
        return hashlib.sha256(token.encode()).hexdigest()

    @staticmethod
    def generate_session_token() -> str:
        """Generate a secure session token."""
        return secrets.token_urlsafe(32)

    async def create_user(self, email: str) -> int:
        """Create a user, or return the id of the existing one."""
        async with self.db.connect() as conn:
            try:
                cursor = await conn.execute(
                    "INSERT INTO users (email) VALUES (?)", (email.lower(),)
                )
                await conn.commit()
                return cursor.lastrowid
            except aiosqlite.IntegrityError:
                cursor = await conn.execute(
                    "SELECT id FROM users WHERE email = ?", (email.lower(),)
                )
                row = await cursor.fetchone()
                return row["id"]

    async def create_session(self, user_id: int, expires_hours: int = 24 * 30) -> str:
        """Create a new bearer session for a user and return the raw token."""
        token = self.generate_session_token()
        expires_at = datetime.now(timezone.utc) + timedelta(hours=expires_hours)
        await self.db.execute(
            "INSERT INTO sessions (user_id, token_hash, expires_at) VALUES (?, ?, ?)",
            (user_id, self.hash_token(token), expires_at.isoformat()),
        )
        return token

    async def get_principal(self, token: str) -> Optional[Principal]:
        """Resolve a bearer token to an active, unexpired user."""
        if not token:
            return None

        row = await self.db.fetchone(
            """SELECT u.id, u.email FROM sessions s
               JOIN users u ON s.user_id = u.id
               WHERE s.token_hash = ? AND s.expires_at > ? AND u.is_active = 1""",
            (self.hash_token(token), datetime.now(timezone.utc).isoformat()),
        )
        if not row:
            return None
        return Principal(user_id=row["id"], email=row["email"])

    async def cleanup_expired_sessions(self) -> int:
        """Remove expired sessions."""
        async with self.db.connect() as conn:
            cursor = await conn.execute(
                "DELETE FROM sessions WHERE expires_at < ?",
                (datetime.now(timezone.utc).isoformat(),),
            )
            await conn.commit()
            logger.info(f"Removed {cursor.rowcount} expired sessions")
            return cursor.rowcount
