import logging
from typing import List, Optional

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker
from sqlmodel import select

from .clock import Clock, to_millis
from .database import open_session
from .errors import ConflictError, NotFoundError
from .models import Participant

logger = logging.getLogger(__name__)


class ParticipantRegistry:
    """Live participants keyed by name, each with a last-heartbeat stamp.

    Every mutation is a single conditional statement so that a heartbeat and
    a concurrent eviction sweep never interleave on stale reads.
    """

    def __init__(self, session_factory: sessionmaker, clock: Clock):
        self.session_factory = session_factory
        self.clock = clock

    async def join(self, name: str) -> Participant:
        participant = Participant(name=name, last_status=to_millis(self.clock.now()))
        async with open_session(self.session_factory) as session:
            session.add(participant)
            try:
                await session.commit()
            except IntegrityError as exc:
                # the unique index on name is the arbiter between racing joins
                raise ConflictError("Já existe um participante com esse nome!") from exc
        logger.info("participant %r joined", name)
        return participant

    async def get(self, name: str) -> Optional[Participant]:
        async with open_session(self.session_factory) as session:
            return (await session.exec(
                select(Participant).where(Participant.name == name)
            )).first()

    async def heartbeat(self, name: str) -> None:
        stmt = (
            update(Participant)
            .where(Participant.name == name)
            .values(last_status=to_millis(self.clock.now()))
        )
        async with open_session(self.session_factory) as session:
            result = await session.exec(stmt)
            await session.commit()
        if result.rowcount == 0:
            raise NotFoundError(f"Participante {name!r} não encontrado!")

    async def list(self) -> List[Participant]:
        async with open_session(self.session_factory) as session:
            return list((await session.exec(
                select(Participant).order_by(Participant.id)
            )).all())

    async def evict_expired(self, now: float, timeout: float) -> List[Participant]:
        """Remove every participant idle for at least ``timeout`` seconds.

        Candidates are read once, then each is deleted only if its
        ``last_status`` still equals the value that made it a candidate. A
        heartbeat landing in between moves the stamp and the delete misses.
        Returns exactly the participants removed by this call.
        """
        cutoff = to_millis(now) - to_millis(timeout)
        evicted = []
        async with open_session(self.session_factory) as session:
            candidates = (await session.exec(
                select(Participant)
                .where(Participant.last_status <= cutoff)
                .order_by(Participant.id)
            )).all()
            for candidate in candidates:
                if await self._delete_if_unchanged(session, candidate):
                    evicted.append(candidate)
        return evicted

    async def _delete_if_unchanged(self, session, candidate: Participant) -> bool:
        result = await session.exec(
            delete(Participant).where(
                Participant.name == candidate.name,
                Participant.last_status == candidate.last_status,
            )
        )
        await session.commit()
        return result.rowcount > 0
