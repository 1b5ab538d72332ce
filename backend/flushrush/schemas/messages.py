from __future__ import annotations

import math

from pydantic import BaseModel, Field, StrictFloat, StrictInt, field_validator, model_validator

from flushrush.runtime_constants import MAX_ROOM_ID_LENGTH
from flushrush.runtime_utils import sanitize_avatar, sanitize_player_name


class JoinRequest(BaseModel):
    roomId: str | None = Field(default=None, max_length=MAX_ROOM_ID_LENGTH)
    name: str = Field(min_length=1, max_length=128)
    avatar: str | None = Field(default=None, max_length=2048)

    @model_validator(mode="after")
    def validate_identity(self) -> "JoinRequest":
        name = sanitize_player_name(self.name)
        if not name:
            raise ValueError("name must not be blank")
        self.name = name
        self.avatar = sanitize_avatar(self.avatar)
        return self


class ScoreReport(BaseModel):
    score: StrictInt | StrictFloat

    @field_validator("score", mode="before")
    @classmethod
    def reject_bool(cls, value: object) -> object:
        if isinstance(value, bool):
            raise ValueError("score must be a number")
        return value

    @field_validator("score")
    @classmethod
    def validate_score(cls, value: int | float) -> int | float:
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError("score must be finite")
        return value


class SabotageRequest(BaseModel):
    targetId: str = Field(min_length=1, max_length=64)
    sabotageType: str = Field(min_length=1, max_length=32)
