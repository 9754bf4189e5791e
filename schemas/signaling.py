from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


# Client -> server

class JoinMessage(BaseModel):
    type: Literal["join"]
    room: str = Field(min_length=1)


class SessionDescriptionMessage(BaseModel):
    sdp: Any
    room: str = Field(min_length=1)

    def forward(self, sender: str) -> "SessionDescriptionEvent":
        return SessionDescriptionEvent(type=self.type, sdp=self.sdp, sender=sender)


class OfferMessage(SessionDescriptionMessage):
    type: Literal["offer"]


class AnswerMessage(SessionDescriptionMessage):
    type: Literal["answer"]


class CandidateMessage(BaseModel):
    type: Literal["candidate"]
    candidate: Any
    room: str = Field(min_length=1)

    def forward(self, sender: str) -> "CandidateEvent":
        return CandidateEvent(candidate=self.candidate, sender=sender)


InboundMessage = Annotated[
    Union[JoinMessage, OfferMessage, AnswerMessage, CandidateMessage],
    Field(discriminator="type"),
]
inbound_message_adapter = TypeAdapter(InboundMessage)


# Server -> client

class SessionDescriptionEvent(BaseModel):
    type: Literal["offer", "answer"]
    sdp: Any
    sender: str


class CandidateEvent(BaseModel):
    type: Literal["candidate"] = "candidate"
    candidate: Any
    sender: str


class WelcomeMessage(BaseModel):
    type: Literal["system"] = "system"
    message: str = "Connected to relay"
    connection_id: str
