import re
from typing import Annotated, Literal

from pydantic import BaseModel, BeforeValidator, Field, field_validator

from .models import BROADCAST, Message, Participant

_TAG = re.compile(r"<[^>]*>")


def strip_markup(value):
    """Drop markup tags and surrounding whitespace from free text."""
    if isinstance(value, str):
        return _TAG.sub("", value).strip()
    return value


CleanText = Annotated[str, BeforeValidator(strip_markup), Field(min_length=1)]


class ParticipantIn(BaseModel):
    name: CleanText

    @field_validator("name")
    @classmethod
    def not_broadcast_target(cls, value: str) -> str:
        if value == BROADCAST:
            raise ValueError(f"{BROADCAST!r} é um nome reservado")
        return value


class MessageIn(BaseModel):
    to: CleanText
    text: CleanText
    type: Literal["message", "private_message"]


class ParticipantOut(BaseModel):
    name: str
    last_status: int = Field(serialization_alias="lastStatus")

    @classmethod
    def from_row(cls, participant: Participant) -> "ParticipantOut":
        return cls(name=participant.name, last_status=participant.last_status)


class MessageOut(BaseModel):
    id: int
    sender: str = Field(serialization_alias="from")
    recipient: str = Field(serialization_alias="to")
    text: str
    type: str
    time: str

    @classmethod
    def from_row(cls, message: Message) -> "MessageOut":
        return cls(
            id=message.id,
            sender=message.sender,
            recipient=message.recipient,
            text=message.text,
            type=message.type,
            time=message.time,
        )
