from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class PointIn(BaseModel):
    x: float
    y: float


class TargetIn(BaseModel):
    id: str | None = Field(default=None, min_length=1, max_length=64)
    x: float | None = None
    y: float | None = None


class SpriteIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1, max_length=64)
    type: str | None = Field(default=None, max_length=64)
    isUnaware: bool = False
    x: float
    y: float
    momentumX: float = 0.0
    momentumY: float = 0.0
    state: Literal["idle", "moving"] = "idle"
    stateTimer: int = 0
    currentTarget: TargetIn | None = None
    currentMood: str = "neutral"
    relationships: dict[str, str] = Field(default_factory=dict)
    recentTopics: list[str] = Field(default_factory=list)
    lastInteraction: dict[str, int] = Field(default_factory=dict)
    thoughts: list[dict] = Field(default_factory=list)
    conversations: list[dict] = Field(default_factory=list)
    lastPosition: PointIn | None = None
    stuckTimer: int = 0


class CurrentEventIn(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str = "community_vote"
    title: str = ""
    startedAt: int
    endsAt: int


class WorldIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    sprites: list[SpriteIn] = Field(min_length=1)
    time: int = 0
    thoughts: list[dict] = Field(default_factory=list)
    conversations: list[dict] = Field(default_factory=list)
    conversationHistory: list[dict] = Field(default_factory=list)
    currentEvent: CurrentEventIn | None = None
    votes: dict[str, str] = Field(default_factory=dict)
    activeVoting: bool = False
    votingOptions: list[str] = Field(default_factory=list)


class VoteIn(BaseModel):
    voterId: str = Field(min_length=1, max_length=64)
    option: str = Field(min_length=1, max_length=120)
