"""
Request bodies for admin market and match management
"""

from datetime import datetime
from typing import Optional, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from betdesk.utils.format_utils import parse_datetime


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='ignore')


def _naive_utc(value):
    return parse_datetime(value) if value is not None else None


class MarketCreate(_CamelModel):
    name: str = Field(min_length=1, max_length=100)
    type: Literal['dishawar', 'gali', 'mumbai', 'kalyan']
    cover_image: Optional[str] = Field(default=None, alias='coverImage')
    open_time: datetime = Field(alias='openTime')
    close_time: datetime = Field(alias='closeTime')
    result_time: Optional[datetime] = Field(default=None, alias='resultTime')
    status: Literal['waiting', 'open', 'closed'] = 'open'
    is_recurring: bool = Field(default=False, alias='isRecurring')
    recurrence_pattern: Literal['daily'] = Field(default='daily', alias='recurrencePattern')

    @field_validator('open_time', 'close_time', 'result_time')
    @classmethod
    def normalize_times(cls, value):
        return _naive_utc(value)

    @model_validator(mode='after')
    def check_window(self):
        if self.close_time <= self.open_time:
            raise ValueError('closeTime must be after openTime')
        return self


class MarketUpdate(_CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[Literal['dishawar', 'gali', 'mumbai', 'kalyan']] = None
    cover_image: Optional[str] = Field(default=None, alias='coverImage')
    open_time: Optional[datetime] = Field(default=None, alias='openTime')
    close_time: Optional[datetime] = Field(default=None, alias='closeTime')
    result_time: Optional[datetime] = Field(default=None, alias='resultTime')
    is_recurring: Optional[bool] = Field(default=None, alias='isRecurring')

    @field_validator('open_time', 'close_time', 'result_time')
    @classmethod
    def normalize_times(cls, value):
        return _naive_utc(value)


class TeamMatchCreate(_CamelModel):
    team_a: str = Field(alias='teamA', min_length=2, max_length=100)
    team_b: str = Field(alias='teamB', min_length=2, max_length=100)
    category: Literal['cricket', 'football', 'basketball', 'other'] = 'cricket'
    description: Optional[str] = None
    match_time: datetime = Field(alias='matchTime')
    odd_team_a: int = Field(default=200, alias='oddTeamA', gt=100)
    odd_team_b: int = Field(default=200, alias='oddTeamB', gt=100)
    odd_draw: Optional[int] = Field(default=300, alias='oddDraw', gt=100)

    @field_validator('match_time')
    @classmethod
    def normalize_times(cls, value):
        return _naive_utc(value)


class TeamMatchUpdate(_CamelModel):
    team_a: Optional[str] = Field(default=None, alias='teamA', min_length=2, max_length=100)
    team_b: Optional[str] = Field(default=None, alias='teamB', min_length=2, max_length=100)
    category: Optional[Literal['cricket', 'football', 'basketball', 'other']] = None
    description: Optional[str] = None
    match_time: Optional[datetime] = Field(default=None, alias='matchTime')
    odd_team_a: Optional[int] = Field(default=None, alias='oddTeamA', gt=100)
    odd_team_b: Optional[int] = Field(default=None, alias='oddTeamB', gt=100)
    odd_draw: Optional[int] = Field(default=None, alias='oddDraw', gt=100)

    @field_validator('match_time')
    @classmethod
    def normalize_times(cls, value):
        return _naive_utc(value)


class CricketTossCreate(_CamelModel):
    team_a: str = Field(alias='teamA', min_length=2, max_length=100)
    team_b: str = Field(alias='teamB', min_length=2, max_length=100)
    description: Optional[str] = None
    toss_time: datetime = Field(alias='tossTime')
    odd_team_a: int = Field(default=190, alias='oddTeamA', ge=100, le=2000)
    odd_team_b: int = Field(default=190, alias='oddTeamB', ge=100, le=2000)

    @field_validator('toss_time')
    @classmethod
    def normalize_times(cls, value):
        return _naive_utc(value)
