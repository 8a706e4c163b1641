from typing import Optional

from sqlmodel import Field, SQLModel

BROADCAST = "Todos"

MESSAGE = "message"
PRIVATE_MESSAGE = "private_message"
STATUS = "status"


class Participant(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    # epoch milliseconds of the last join or heartbeat
    last_status: int


class Message(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    sender: str = Field(index=True)
    recipient: str = Field(index=True)
    text: str
    type: str
    time: Optional[str] = Field(default=None)


def status_message(name: str, text: str) -> Message:
    return Message(sender=name, recipient=BROADCAST, text=text, type=STATUS)
