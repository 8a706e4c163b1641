import logging
from typing import List, Optional, Sequence, TypeVar

from sqlalchemy import delete, or_, update
from sqlalchemy.orm import sessionmaker
from sqlmodel import select

from .clock import Clock
from .database import open_session
from .errors import NotFoundError, UnauthorizedError
from .models import BROADCAST, MESSAGE, Message

logger = logging.getLogger(__name__)

T = TypeVar("T")


def tail(items: Sequence[T], limit: int) -> List[T]:
    """Last ``limit`` items, in their original order."""
    if limit <= 0:
        raise ValueError("limit must be a positive integer")
    return list(items)[-limit:]


class MessageStore:
    def __init__(self, session_factory: sessionmaker, clock: Clock):
        self.session_factory = session_factory
        self.clock = clock

    async def append(self, message: Message) -> int:
        if message.time is None:
            message.time = self.clock.time_of_day()
        async with open_session(self.session_factory) as session:
            session.add(message)
            await session.commit()
        return message.id

    async def get(self, message_id: int) -> Optional[Message]:
        async with open_session(self.session_factory) as session:
            return await session.get(Message, message_id)

    async def visible_to(self, user: Optional[str]) -> List[Message]:
        clauses = [Message.type == MESSAGE, Message.sender == BROADCAST, Message.recipient == BROADCAST]
        if user:
            clauses += [Message.recipient == user, Message.sender == user]
        async with open_session(self.session_factory) as session:
            return list((await session.exec(
                select(Message).where(or_(*clauses)).order_by(Message.id)
            )).all())

    async def update_owned(self, message_id: int, editor: str, to: str, text: str, type: str) -> None:
        async with open_session(self.session_factory) as session:
            await self._check_owner(session, message_id, editor)
            result = await session.exec(
                update(Message)
                .where(Message.id == message_id, Message.sender == editor)
                .values(recipient=to, text=text, type=type)
            )
            await session.commit()
        if result.rowcount == 0:
            # deleted between the ownership check and the write
            raise NotFoundError("Mensagem não encontrada!")

    async def delete_owned(self, message_id: int, requester: str) -> None:
        async with open_session(self.session_factory) as session:
            await self._check_owner(session, message_id, requester)
            result = await session.exec(
                delete(Message).where(Message.id == message_id, Message.sender == requester)
            )
            await session.commit()
        if result.rowcount == 0:
            raise NotFoundError("Mensagem não encontrada!")
        logger.debug("message %s deleted by %r", message_id, requester)

    @staticmethod
    async def _check_owner(session, message_id: int, requester: str) -> Message:
        message = await session.get(Message, message_id)
        if message is None:
            raise NotFoundError("Mensagem não encontrada!")
        if message.sender != requester:
            raise UnauthorizedError("Apenas o autor pode alterar esta mensagem!")
        return message
