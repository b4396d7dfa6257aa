# models.py
"""
Data shapes shared by the launcher, poller, normalizer and persistence layer.
Attributes are snake_case in Python and camelCase on the wire.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_api(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


# -------------------------------------------------------------------
# Orchestration
# -------------------------------------------------------------------
class ScrapeRequest(ApiModel):
    post_url: str
    project_id: int
    session_credential: str = ""


class Job(ApiModel):
    container_id: str
    launched_at: datetime


class ProfileRecord(ApiModel):
    profile_url: str = Field(min_length=1)
    name: Optional[str] = None
    headline: Optional[str] = None


class LogEntry(ApiModel):
    id: str
    timestamp: datetime
    type: str
    message: str
    data: Any = None


class ScrapeResult(ApiModel):
    profiles: List[ProfileRecord]
    post_id: int
    container_id: str
    logs: List[LogEntry] = []


# -------------------------------------------------------------------
# Poll outcomes (one per attempt)
# -------------------------------------------------------------------
@dataclass(frozen=True)
class Pending:
    pass


@dataclass(frozen=True)
class ProviderFailed:
    message: str


@dataclass(frozen=True)
class Completed:
    raw_output: Any


PollOutcome = Union[Pending, ProviderFailed, Completed]


# -------------------------------------------------------------------
# Persisted records
# -------------------------------------------------------------------
class Project(ApiModel):
    id: int
    name: str
    created_at: Optional[str] = None


class Post(ApiModel):
    id: int
    project_id: int
    post_url: str
    created_at: Optional[str] = None


class StoredProfile(ApiModel):
    id: int
    post_id: int
    profile_url: str
    name: Optional[str] = None
    headline: Optional[str] = None
    created_at: Optional[str] = None


class ProjectWithPosts(Project):
    posts: List[Post] = []
