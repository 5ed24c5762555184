from __future__ import annotations

from uuid import UUID

import asyncpg

from api.middleware.exception_handlers import (
    ConversationNotFoundError,
    ConversationStateError,
    UnauthorizedConversationAccessError,
)
from models.chat_models import Conversation, Message, MessageRole
from utils.db_utils import transaction
from utils.logger import logger
from utils.metrics import messages_saved_total


class ConversationService:
    """Conversation and message persistence backed by PostgreSQL."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def create_conversation(self, user_id: str, title: str | None = None) -> Conversation:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO conversations (user_id, title, created_at, updated_at)
                VALUES ($1, $2, NOW(), NOW())
                RETURNING *
                """,
                user_id,
                title,
            )
        return self._row_to_conversation(row)

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        """List a user's conversations, most recently updated first."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT * FROM conversations
                WHERE user_id = $1
                ORDER BY updated_at DESC
                """,
                user_id,
            )
        return [self._row_to_conversation(row) for row in rows]

    async def _find_by_id(self, conversation_id: UUID) -> Conversation | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM conversations WHERE id = $1", conversation_id)
        return self._row_to_conversation(row) if row else None

    async def verify_access(self, conversation_id: UUID, user_id: str) -> Conversation:
        """Return the conversation if ``user_id`` owns it.

        Raises:
            ConversationNotFoundError: The conversation does not exist
            UnauthorizedConversationAccessError: Someone else owns it
        """
        conversation = await self._find_by_id(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(str(conversation_id))
        if conversation.user_id != user_id:
            raise UnauthorizedConversationAccessError(str(conversation_id), user_id)
        return conversation

    async def get_conversation(self, conversation_id: UUID, user_id: str) -> Conversation:
        return await self.verify_access(conversation_id, user_id)

    async def get_messages(self, conversation_id: UUID, user_id: str) -> list[Message]:
        """Messages of an owned conversation in chronological order."""
        await self.verify_access(conversation_id, user_id)
        return await self.find_messages(conversation_id)

    async def find_messages(self, conversation_id: UUID) -> list[Message]:
        """Messages without an ownership check; callers verify access first."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT * FROM messages
                WHERE conversation_id = $1
                ORDER BY created_at ASC, id ASC
                """,
                conversation_id,
            )
        return [self._row_to_message(row) for row in rows]

    async def update_title(self, conversation_id: UUID, user_id: str, title: str) -> Conversation:
        await self.verify_access(conversation_id, user_id)
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                UPDATE conversations
                SET title = $2, updated_at = NOW()
                WHERE id = $1
                RETURNING *
                """,
                conversation_id,
                title,
            )
        if not row:
            # Deleted between the access check and the update
            raise ConversationNotFoundError(str(conversation_id))
        return self._row_to_conversation(row)

    async def delete_conversation(self, conversation_id: UUID, user_id: str) -> None:
        """Delete an owned conversation together with its messages."""
        await self.verify_access(conversation_id, user_id)
        async with transaction(self.pool) as conn:
            await conn.execute("DELETE FROM messages WHERE conversation_id = $1", conversation_id)
            await conn.execute("DELETE FROM conversations WHERE id = $1", conversation_id)
        logger.info(f"Deleted conversation {conversation_id}", user_id=user_id)

    async def find_or_create_conversation(
        self,
        conversation_id: UUID | None,
        user_id: str,
        title: str | None = None,
    ) -> Conversation:
        """Continue an owned conversation, or start a new one.

        A conversation id belonging to another user is never reused; a new
        conversation is created instead.
        """
        if conversation_id is None:
            logger.debug(f"Creating new conversation: user={user_id}")
            return await self.create_conversation(user_id, title)

        conversation = await self._find_by_id(conversation_id)
        if conversation is None:
            logger.debug(f"Conversation not found, creating new: id={conversation_id}")
            return await self.create_conversation(user_id, title)

        if conversation.user_id != user_id:
            logger.warning(
                f"Unauthorized access attempt: conversation={conversation_id}, "
                f"owner={conversation.user_id}, requester={user_id}"
            )
            return await self.create_conversation(user_id, title)

        logger.debug(f"Found conversation: id={conversation_id}, user={user_id}")
        return conversation

    async def add_message(self, conversation_id: UUID, role: MessageRole, content: str) -> Message:
        """Append a message and bump the conversation's ``updated_at``.

        No ownership check is made; callers verify access first.

        Raises:
            ConversationStateError: The conversation was deleted
        """
        async with transaction(self.pool) as conn:
            result: str = await conn.execute(
                "UPDATE conversations SET updated_at = NOW() WHERE id = $1",
                conversation_id,
            )
            if result == "UPDATE 0":
                logger.warning(f"Update attempted on deleted conversation: id={conversation_id}")

            try:
                row = await conn.fetchrow(
                    """
                    INSERT INTO messages (conversation_id, role, content, created_at)
                    VALUES ($1, $2, $3, NOW())
                    RETURNING *
                    """,
                    conversation_id,
                    role.value,
                    content,
                )
            except asyncpg.ForeignKeyViolationError as e:
                logger.warning(f"Foreign key violation: conversation_id={conversation_id}")
                raise ConversationStateError("Conversation not found or was deleted", cause=e) from e

        messages_saved_total.labels(role=role.value).inc()
        return self._row_to_message(row)

    def _row_to_conversation(self, row: asyncpg.Record) -> Conversation:
        return Conversation(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _row_to_message(self, row: asyncpg.Record) -> Message:
        return Message(
            id=row["id"],
            conversation_id=row["conversation_id"],
            role=MessageRole(row["role"]),
            content=row["content"],
            created_at=row["created_at"],
        )
