from datetime import date, datetime, timedelta, timezone

from schemas import Period, TimeLog, WorklogEntry, format_duration
from timelog import build_time_log_jql, bucket_worklogs, format_report, week_containing


EST = timezone(timedelta(hours=-5))


def _entry(author, day, hour, seconds):
    return WorklogEntry(
        author=author,
        started=datetime(2013, 11, day, hour, 0, tzinfo=EST),
        seconds=seconds,
    )


def test_week_containing_starts_on_sunday():
    period = week_containing(date(2013, 11, 13))  # Wednesday

    assert period.begin == date(2013, 11, 10)
    assert period.end == date(2013, 11, 16)


def test_week_containing_sunday_is_its_own_start():
    period = week_containing(date(2013, 11, 10))

    assert period.begin == date(2013, 11, 10)


def test_build_time_log_jql():
    period = Period(begin=date(2013, 11, 10), end=date(2013, 11, 16))

    assert build_time_log_jql(period, "PLAT") == (
        "timespent > 0 AND updated >= '2013-11-10' AND updated < '2013-11-17'"
        " and project = 'PLAT'"
    )
    assert build_time_log_jql(period, "PLAT", "PLAT-7").endswith(" AND key = 'PLAT-7'")


def test_build_time_log_jql_covers_last_day():
    period = Period(begin=date(2013, 11, 10), end=date(2013, 11, 16))

    jql = build_time_log_jql(period, "PLAT")

    assert "updated < '2013-11-17'" in jql
    assert "updated <= '2013-11-16'" not in jql


def test_bucket_worklogs_filters_and_sums():
    period = Period(begin=date(2013, 11, 10), end=date(2013, 11, 16))
    worklogs = {
        "PLAT-1": [
            _entry("jdoe", 11, 9, 1800),
            _entry("jdoe", 11, 14, 1800),
            _entry("other", 11, 10, 600),
            _entry("jdoe", 12, 9, 60),
            _entry("jdoe", 9, 9, 7200),
            _entry("jdoe", 17, 9, 7200),
        ],
        "PLAT-2": [_entry("jdoe", 11, 16, 900)],
    }

    buckets = bucket_worklogs(worklogs, "jdoe", period)

    assert buckets == {
        date(2013, 11, 11): [TimeLog(key="PLAT-1", seconds=3600), TimeLog(key="PLAT-2", seconds=900)],
        date(2013, 11, 12): [TimeLog(key="PLAT-1", seconds=60)],
    }


def test_bucket_worklogs_empty_author_keeps_everyone():
    period = Period(begin=date(2013, 11, 10), end=date(2013, 11, 16))
    worklogs = {"PLAT-1": [_entry("jdoe", 11, 9, 60), _entry("other", 11, 10, 60)]}

    buckets = bucket_worklogs(worklogs, "", period)

    assert buckets == {date(2013, 11, 11): [TimeLog(key="PLAT-1", seconds=120)]}


def test_bucket_worklogs_period_ends_are_inclusive():
    period = Period(begin=date(2013, 11, 10), end=date(2013, 11, 16))
    worklogs = {"PLAT-1": [_entry("jdoe", 10, 0, 60), _entry("jdoe", 16, 23, 60)]}

    assert set(bucket_worklogs(worklogs, "jdoe", period)) == {
        date(2013, 11, 10),
        date(2013, 11, 16),
    }


def test_format_report_orders_days():
    buckets = {
        date(2013, 11, 12): [TimeLog(key="PLAT-1", seconds=60)],
        date(2013, 11, 11): [TimeLog(key="PLAT-2", seconds=5400)],
    }

    assert format_report(buckets) == [
        "2013-11-11",
        "PLAT-2 : 1h30m0s",
        "2013-11-12",
        "PLAT-1 : 1m0s",
    ]


def test_format_duration():
    assert format_duration(0) == "0s"
    assert format_duration(45) == "45s"
    assert format_duration(125) == "2m5s"
    assert format_duration(3600) == "1h0m0s"
