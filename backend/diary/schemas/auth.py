from __future__ import annotations

from pydantic import BaseModel, Field, ConfigDict

from diary.models.participant import Participant


class LoginIn(BaseModel):
    """Login with one of the two shared secrets."""
    model_config = ConfigDict(extra='forbid')

    secret: str = Field(default='', max_length=256)


class ParticipantOut(BaseModel):
    id: Participant
    name: str

    @classmethod
    def of(cls, participant: Participant) -> "ParticipantOut":
        return cls(id=participant, name=participant.display_name)


class TokenOut(BaseModel):
    """Auth response; the same token is also set as the auth cookie."""
    model_config = ConfigDict(extra='forbid')

    access_token: str
    token_type: str = 'bearer'
    user: ParticipantOut
