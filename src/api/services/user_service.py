from __future__ import annotations

import asyncpg

from models.user_models import RoleEnum, User, UserPrincipal, UserWithRoles
from utils.db_utils import transaction
from utils.logger import logger

# Serializes first-user detection so only one account is ever bootstrapped as OWNER
USER_BOOTSTRAP_LOCK_ID = 7_214_503_881

FIRST_USER_ROLES = (RoleEnum.OWNER, RoleEnum.ADMIN, RoleEnum.USER)
DEFAULT_USER_ROLES = (RoleEnum.USER,)


class UserService:
    """User lookup, registration and role assignment."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def find_or_create_user(
        self,
        external_id: str,
        email: str,
        display_name: str | None,
        provider: str,
    ) -> UserWithRoles:
        """Return the user for an external identity, registering it on first sight.

        The first user ever registered receives OWNER, ADMIN and USER roles;
        everyone after that receives USER.
        """
        async with transaction(self.pool) as conn:
            row = await self._fetch_user(conn, external_id, provider)
            if row is None:
                await conn.execute("SELECT pg_advisory_xact_lock($1)", USER_BOOTSTRAP_LOCK_ID)
                # Another login for the same identity may have won the lock
                row = await self._fetch_user(conn, external_id, provider)
            if row is None:
                row = await self._create_user(conn, external_id, email, display_name, provider)

            roles = await self._fetch_roles(conn, row["id"])

        return UserWithRoles(user=self._row_to_user(row), roles=roles)

    async def get_user_by_external_id(self, external_id: str, provider: str) -> UserPrincipal | None:
        """Load the principal for an authenticated identity, or None if unknown."""
        async with self.pool.acquire() as conn:
            row = await self._fetch_user(conn, external_id, provider)
            if row is None:
                return None
            roles = await self._fetch_roles(conn, row["id"])
        return self.to_principal(UserWithRoles(user=self._row_to_user(row), roles=roles))

    @staticmethod
    def to_principal(user_with_roles: UserWithRoles) -> UserPrincipal:
        user = user_with_roles.user
        return UserPrincipal(
            external_id=user.external_id,
            email=user.email,
            roles=set(user_with_roles.roles),
            attributes={"name": user.display_name or user.email, "provider": user.provider},
        )

    async def _create_user(
        self,
        conn: asyncpg.Connection,
        external_id: str,
        email: str,
        display_name: str | None,
        provider: str,
    ) -> asyncpg.Record:
        user_count: int = await conn.fetchval("SELECT COUNT(*) FROM users")
        row = await conn.fetchrow(
            """
            INSERT INTO users (external_id, email, display_name, provider, created_at, updated_at)
            VALUES ($1, $2, $3, $4, NOW(), NOW())
            RETURNING *
            """,
            external_id,
            email,
            display_name,
            provider,
        )

        if user_count == 0:
            logger.info(
                f"First user registered! User {email} (ID: {external_id}) has been granted OWNER role"
            )
            roles = FIRST_USER_ROLES
        else:
            roles = DEFAULT_USER_ROLES

        await conn.executemany(
            "INSERT INTO user_roles (user_id, role) VALUES ($1, $2) ON CONFLICT (user_id, role) DO NOTHING",
            [(row["id"], role.value) for role in roles],
        )
        return row

    async def _fetch_user(self, conn: asyncpg.Connection, external_id: str, provider: str) -> asyncpg.Record | None:
        return await conn.fetchrow(
            "SELECT * FROM users WHERE external_id = $1 AND provider = $2",
            external_id,
            provider,
        )

    async def _fetch_roles(self, conn: asyncpg.Connection, user_id: int) -> set[str]:
        rows = await conn.fetch("SELECT role FROM user_roles WHERE user_id = $1", user_id)
        return {r["role"] for r in rows}

    def _row_to_user(self, row: asyncpg.Record) -> User:
        return User(
            id=row["id"],
            external_id=row["external_id"],
            email=row["email"],
            display_name=row["display_name"],
            provider=row["provider"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
