"""Inbound Messenger events and the outbound actions a turn produces."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

DOCUMENT_ATTACHMENT_TYPES = frozenset({"image", "file"})


class Attachment(BaseModel):
    """A single attachment on an inbound message."""
    type: str
    url: Optional[str] = None


class InboundEvent(BaseModel):
    """Transport-neutral inbound message for one user."""
    user_id: str
    text: Optional[str] = None
    attachments: list[Attachment] = Field(default_factory=list)
    is_restart_command: bool = False

    @property
    def has_documents(self) -> bool:
        return any(a.type in DOCUMENT_ATTACHMENT_TYPES for a in self.attachments)


class ActionKind(str, Enum):
    """Kinds of outbound message the core can ask the sender to deliver."""
    TEXT = "text"
    IMAGE = "image"


class OutboundAction(BaseModel):
    """One message to deliver, in order."""
    kind: ActionKind
    body: str


def say(text: str) -> OutboundAction:
    return OutboundAction(kind=ActionKind.TEXT, body=text)


def show_image(url: str) -> OutboundAction:
    return OutboundAction(kind=ActionKind.IMAGE, body=url)
