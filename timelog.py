"""Day-bucketed time log reports built from issue worklogs."""

import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Mapping, Optional

from schemas import Period, TimeLog, WorklogEntry


logger = logging.getLogger(__name__)

JQL_DATE_FORMAT = "%Y-%m-%d"


def week_containing(day: date) -> Period:
    """Sunday-to-Saturday week that contains ``day``."""
    sunday = day - timedelta(days=(day.weekday() + 1) % 7)
    return Period(begin=sunday, end=sunday + timedelta(days=6))


def build_time_log_jql(period: Period, project: str, issue_key: Optional[str] = None) -> str:
    jql = (
        f"timespent > 0 AND updated >= '{period.begin.strftime(JQL_DATE_FORMAT)}'"
        f" AND updated < '{(period.end + timedelta(days=1)).strftime(JQL_DATE_FORMAT)}'"
        f" and project = '{project}'"
    )
    if issue_key:
        jql += f" AND key = '{issue_key}'"
    return jql


def bucket_worklogs(
    worklogs_by_issue: Mapping[str, Iterable[WorklogEntry]],
    author: str,
    period: Period,
) -> Dict[date, List[TimeLog]]:
    """Group worklog seconds by calendar day and issue.

    An empty ``author`` keeps every author. The day of an entry is taken in
    the offset it was recorded with.
    """
    seconds_by_day: Dict[date, Dict[str, int]] = defaultdict(lambda: defaultdict(int))

    for issue_key, entries in worklogs_by_issue.items():
        for entry in entries:
            if author and entry.author != author:
                continue
            day = entry.started.date()
            if not period.contains(day):
                continue
            seconds_by_day[day][issue_key] += entry.seconds

    buckets = {
        day: [TimeLog(key=key, seconds=seconds) for key, seconds in sorted(per_issue.items())]
        for day, per_issue in seconds_by_day.items()
    }
    logger.debug(
        "Bucketed worklogs",
        extra={"days": len(buckets), "author": author or "*", "begin": str(period.begin)},
    )
    return buckets


def format_report(buckets: Mapping[date, List[TimeLog]]) -> List[str]:
    lines: List[str] = []
    for day in sorted(buckets):
        lines.append(day.isoformat())
        lines.extend(str(time_log) for time_log in buckets[day])
    return lines
