from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


def format_duration(seconds: int) -> str:
    """Render seconds as ``1h30m0s`` / ``2m5s`` / ``45s``."""
    sign = "-" if seconds < 0 else ""
    seconds = abs(seconds)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{sign}{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{sign}{minutes}m{secs}s"
    return f"{sign}{secs}s"


class Comment(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    body: str
    author_name: str


class IssueFile(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    url: str
    self_url: str


class Project(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = ""
    name: str
    key: str = ""


class TimeLog(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    key: str
    seconds: int

    def __str__(self) -> str:
        return f"{self.key} : {format_duration(self.seconds)}"


class Issue(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    key: str
    summary: str
    issue_type: str
    description: str = ""
    status: str = ""
    assignee: str = ""
    parent_key: str = ""
    parent_suffix: str = ""
    files: List[IssueFile] = Field(default_factory=list)
    comments: List[Comment] = Field(default_factory=list)
    original_estimate: float = 0
    remaining_estimate: float = 0
    time_spent: float = 0
    time_log: Optional[TimeLog] = None


class WorklogEntry(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    author: str
    started: datetime
    seconds: int


class Period(BaseModel):
    """Calendar-day window, both ends inclusive."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    begin: date
    end: date

    def contains(self, day: date) -> bool:
        return self.begin <= day <= self.end


class SearchOptions(BaseModel):
    model_config = ConfigDict(extra="forbid")

    project: str = ""
    current_sprint: bool = False
    open: bool = False
    issue: str = ""
    # Raw JQL, takes precedence over every other option.
    jql: str = ""


class NewTaskOptions(BaseModel):
    model_config = ConfigDict(extra="forbid")

    task_type: str
    summary: str
    original_estimate: str = ""
    parent: Optional[Issue] = None
