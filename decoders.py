"""Best-effort conversion of raw Jira JSON into typed records.

Each field is either required (a failed walk aborts the record) or optional
(a failed walk leaves the field's zero value). Collections are decoded one
element at a time and malformed elements are logged and dropped.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Type, TypeVar

from json_walker import JsonPathError, JsonValue, walk
from schemas import Comment, Issue, IssueFile, Project, TimeLog, WorklogEntry


logger = logging.getLogger(__name__)

WORKLOG_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%f%z"

T = TypeVar("T")


class IssueDecodeError(ValueError):
    """Raised when a required field of a record cannot be decoded."""


class _FieldTypeError(ValueError):
    pass


def _typed(obj: JsonValue, path: str, expected: Type[T]) -> T:
    value = walk(obj, path)
    if expected is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise _FieldTypeError(f"{path} is not a number")
        return float(value)  # type: ignore[return-value]
    if not isinstance(value, expected):
        raise _FieldTypeError(f"{path} is not {expected.__name__}")
    return value


def _optional(obj: JsonValue, path: str, expected: Type[T], default: T) -> T:
    try:
        return _typed(obj, path, expected)
    except (JsonPathError, _FieldTypeError):
        return default


def _required(obj: JsonValue, path: str, expected: Type[T]) -> T:
    try:
        return _typed(obj, path, expected)
    except (JsonPathError, _FieldTypeError) as exc:
        raise IssueDecodeError("Bad Issue") from exc


def friendly_name(name: str) -> str:
    return name.lower().replace(" ", "-")


def decode_issue(obj: JsonValue) -> Issue:
    """Decode one issue document as returned by ``issue/KEY`` or a search hit."""
    key = _required(obj, "key", str)
    summary = _required(obj, "fields/summary", str)
    issue_type = _required(obj, "fields/issuetype/name", str)

    parent_key = _optional(obj, "fields/parent/key", str, "")
    time_spent: Optional[float] = _optional(obj, "fields/timespent", float, None)

    try:
        raw_comments = walk(obj, "fields/comment/comments")
    except JsonPathError as exc:
        logger.debug("Issue has no comments", extra={"issue_key": key, "reason": str(exc)})
        raw_comments = []

    return Issue(
        key=key,
        summary=summary,
        issue_type=issue_type,
        description=_optional(obj, "fields/description", str, ""),
        status=_optional(obj, "fields/status/name", str, ""),
        assignee=_optional(obj, "fields/assignee/name", str, ""),
        parent_key=parent_key,
        parent_suffix=f" of {parent_key}" if parent_key else "",
        files=decode_attachments(_optional(obj, "fields/attachment", list, [])),
        comments=decode_comments(raw_comments),
        original_estimate=_optional(obj, "fields/timeoriginalestimate", float, 0.0),
        remaining_estimate=_optional(obj, "fields/timeremainingestimate", float, 0.0),
        time_spent=time_spent or 0.0,
        time_log=TimeLog(key=key, seconds=int(time_spent)) if time_spent is not None else None,
    )


def _decode_each(raw: Any, decode_one, kind: str) -> List[Any]:
    if not isinstance(raw, list):
        return []

    decoded = []
    for index, entry in enumerate(raw):
        try:
            decoded.append(decode_one(entry))
        except (JsonPathError, _FieldTypeError) as exc:
            logger.debug(
                "Skipping malformed %s", kind, extra={"index": index, "reason": str(exc)}
            )
    return decoded


def _decode_comment(entry: JsonValue) -> Comment:
    return Comment(
        id=_typed(entry, "id", str),
        body=_typed(entry, "body", str),
        author_name=_typed(entry, "author/displayName", str),
    )


def decode_comments(raw: Any) -> List[Comment]:
    return _decode_each(raw, _decode_comment, "comment")


def _decode_attachment(entry: JsonValue) -> IssueFile:
    return IssueFile(
        name=_typed(entry, "filename", str),
        url=_typed(entry, "content", str),
        self_url=_typed(entry, "self", str),
    )


def decode_attachments(raw: Any) -> List[IssueFile]:
    return _decode_each(raw, _decode_attachment, "attachment")


def _createmeta_projects(createmeta: JsonValue) -> List[Any]:
    projects = walk(createmeta, "projects")
    if not isinstance(projects, list):
        return []
    return projects


def decode_task_types(createmeta: JsonValue) -> Dict[str, Dict[str, str]]:
    """Map project name to ``{friendly name: canonical issue type name}``."""
    task_types: Dict[str, Dict[str, str]] = {}
    for project in _createmeta_projects(createmeta):
        name = _optional(project, "name", str, None)
        if name is None:
            continue
        types = task_types.setdefault(name, {})
        for issue_type in _optional(project, "issuetypes", list, []):
            type_name = _optional(issue_type, "name", str, None)
            if type_name is not None:
                types[friendly_name(type_name)] = type_name
    return task_types


def _decode_project(entry: JsonValue) -> Project:
    return Project(
        name=_typed(entry, "name", str),
        key=_optional(entry, "key", str, ""),
        id=_optional(entry, "id", str, ""),
    )


def decode_projects(createmeta: JsonValue) -> Dict[str, Project]:
    projects = _decode_each(_createmeta_projects(createmeta), _decode_project, "project")
    return {project.name: project for project in projects}


def _parse_started(value: str) -> datetime:
    try:
        return datetime.strptime(value, WORKLOG_TIME_FORMAT)
    except ValueError as exc:
        raise _FieldTypeError(f"started {value!r} is not a timestamp") from exc


def _decode_worklog(entry: JsonValue) -> WorklogEntry:
    return WorklogEntry(
        author=_typed(entry, "author/name", str),
        started=_parse_started(_typed(entry, "started", str)),
        seconds=int(_typed(entry, "timeSpentSeconds", float)),
    )


def decode_worklogs(doc: JsonValue) -> List[WorklogEntry]:
    return _decode_each(_optional(doc, "worklogs", list, []), _decode_worklog, "worklog")
