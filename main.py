import json
import logging
import sys
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Iterator, Tuple

import click

from config import Settings, get_settings
from decoders import IssueDecodeError
from jira_client import JiraClient, JiraError
from schemas import Issue, NewTaskOptions, SearchOptions, format_duration
from timelog import format_report, week_containing


CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        standard = {
            "name",
            "msg",
            "args",
            "levelname",
            "levelno",
            "pathname",
            "filename",
            "module",
            "exc_info",
            "exc_text",
            "stack_info",
            "lineno",
            "funcName",
            "created",
            "msecs",
            "relativeCreated",
            "thread",
            "threadName",
            "processName",
            "process",
            "taskName",
        }

        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in standard and not key.startswith("_")
        }
        if extras:
            payload["extra"] = extras

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def configure_logging(settings: Settings) -> logging.Logger:
    root = logging.getLogger()
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    if settings.log_json:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
    root.addHandler(handler)
    level = "DEBUG" if settings.verbose else settings.log_level
    root.setLevel(getattr(logging, level, logging.INFO))
    return logging.getLogger(__name__)


logger = logging.getLogger(__name__)


@contextmanager
def reporting_errors() -> Iterator[None]:
    """Turn client failures into a one-line CLI error."""
    try:
        yield
    except (JiraError, IssueDecodeError, OSError) as exc:
        logger.debug("Command failed", exc_info=True)
        raise click.ClickException(str(exc)) from exc


def _settings(ctx: click.Context) -> Settings:
    """Load settings on first use, applying the group's command-line overrides."""
    settings = ctx.meta.get("settings")
    if settings is None:
        try:
            settings = get_settings()
        except RuntimeError as exc:
            raise click.ClickException(str(exc)) from exc
        settings = settings.model_copy(update=ctx.find_root().obj or {})
        configure_logging(settings)
        ctx.meta["settings"] = settings
    return settings


def _client(ctx: click.Context) -> JiraClient:
    return JiraClient(_settings(ctx))


def _require_project(settings: Settings) -> None:
    if not settings.jira_project:
        raise click.ClickException("-p/--project (or JIRA_PROJECT) is required for this.")


def _issue_line(issue: Issue) -> str:
    return f"{issue.key} [{issue.issue_type}{issue.parent_suffix}] {issue.status}: {issue.summary}"


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option("-p", "--project", default=None, help="Project name or key to work on.")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Show requests and debug output.")
@click.option(
    "-k", "--no-check-ssl", is_flag=True, default=False, help="Skip TLS certificate verification."
)
@click.pass_context
def cli(ctx: click.Context, project: str, verbose: bool, no_check_ssl: bool) -> None:
    """Command-line client for Jira tasks, attachments, comments and time logs."""
    overrides = {}
    if project:
        overrides["jira_project"] = project
    if verbose:
        overrides["verbose"] = True
    if no_check_ssl:
        overrides["no_check_ssl"] = True
    ctx.obj = overrides


@cli.command("create")
@click.argument("task_type")
@click.argument("summary", nargs=-1, required=True)
@click.option("-p", "--parent", default="", help="Parent of the task you're creating.")
@click.option("-e", "--estimate", default="", help="Your original estimate of the story.")
@click.pass_context
def create_cmd(
    ctx: click.Context, task_type: str, summary: Tuple[str, ...], parent: str, estimate: str
) -> None:
    """Create a task or story.

    TASK_TYPE is the friendly name of the issue type, e.g. ``sub-task``.
    """
    _require_project(_settings(ctx))
    client = _client(ctx)
    with reporting_errors():
        options = NewTaskOptions(
            task_type=task_type,
            summary=" ".join(summary),
            original_estimate=estimate,
            parent=client.get_issue(parent) if parent else None,
        )
        key = client.create_task(options)
    click.echo(f"{key} successfully created!")


@cli.command("log")
@click.argument("args", nargs=-1)
@click.option("-m", "--mine", is_flag=True, default=False, help="Show my log for the current week.")
@click.option("-a", "--author", default="", help="Show log for given author.")
@click.pass_context
def log_cmd(ctx: click.Context, args: Tuple[str, ...], mine: bool, author: str) -> None:
    """List or record time spent.

    \b
    log [ISSUE_KEY]               show this week's log, grouped by day
    log ISSUE_KEY TIME_SPENT...   log time on an issue, e.g. "1h 30m"
    """
    settings = _settings(ctx)
    client = _client(ctx)

    if mine or len(args) < 2:
        _require_project(settings)
        if mine:
            author = author or settings.jira_user
        period = week_containing(date.today())
        issue_key = args[0] if args else None
        with reporting_errors():
            buckets = client.get_time_log(author, period, issue_key)
        for line in format_report(buckets):
            click.echo(line)
        return

    with reporting_errors():
        client.add_worklog(args[0], " ".join(args[1:]))
    click.echo("Log successful")


@cli.command("search")
@click.option("--open", "open_only", is_flag=True, default=False, help="Only open issues.")
@click.option("--current-sprint", is_flag=True, default=False, help="Only issues in open sprints.")
@click.option("--issue", default="", help="An issue and its subtasks.")
@click.option("--jql", default="", help="Raw JQL; overrides every other filter.")
@click.pass_context
def search_cmd(
    ctx: click.Context, open_only: bool, current_sprint: bool, issue: str, jql: str
) -> None:
    """Search issues of the project."""
    options = SearchOptions(
        project=_settings(ctx).jira_project,
        open=open_only,
        current_sprint=current_sprint,
        issue=issue,
        jql=jql,
    )
    with reporting_errors():
        issues = _client(ctx).search(options)
    for found in issues:
        click.echo(_issue_line(found))


@cli.command("show")
@click.argument("issue_key")
@click.pass_context
def show_cmd(ctx: click.Context, issue_key: str) -> None:
    """Show an issue with its attachments and comments."""
    with reporting_errors():
        issue = _client(ctx).get_issue(issue_key)

    click.echo(_issue_line(issue))
    if issue.assignee:
        click.echo(f"Assignee: {issue.assignee}")
    click.echo(
        "Estimate: {} / Remaining: {} / Spent: {}".format(
            format_duration(int(issue.original_estimate)),
            format_duration(int(issue.remaining_estimate)),
            format_duration(int(issue.time_spent)),
        )
    )
    if issue.description:
        click.echo("")
        click.echo(issue.description)
    if issue.files:
        click.echo("")
        click.echo("Attachments:")
        for issue_file in issue.files:
            click.echo(f"  {issue_file.name} {issue_file.url}")
    if issue.comments:
        click.echo("")
        click.echo("Comments:")
        for comment in issue.comments:
            click.echo(f"  [{comment.id}] {comment.author_name}: {comment.body}")


@cli.command("attach")
@click.argument("issue_key")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def attach_cmd(ctx: click.Context, issue_key: str, path: str) -> None:
    """Upload a file as an attachment."""
    with reporting_errors():
        _client(ctx).upload(issue_key, path)
    click.echo("File uploaded!")


@cli.command("detach")
@click.argument("issue_key")
@click.argument("filename")
@click.pass_context
def detach_cmd(ctx: click.Context, issue_key: str, filename: str) -> None:
    """Remove an attachment by file name."""
    with reporting_errors():
        _client(ctx).del_attachment(issue_key, filename)
    click.echo("File removed from issue!")


@cli.command("comment")
@click.argument("issue_key")
@click.argument("body", nargs=-1, required=True)
@click.pass_context
def comment_cmd(ctx: click.Context, issue_key: str, body: Tuple[str, ...]) -> None:
    """Comment on an issue."""
    with reporting_errors():
        _client(ctx).add_comment(issue_key, " ".join(body))
    click.echo("Comment added.")


@cli.command("uncomment")
@click.argument("issue_key")
@click.argument("comment_id")
@click.pass_context
def uncomment_cmd(ctx: click.Context, issue_key: str, comment_id: str) -> None:
    """Delete a comment by id."""
    with reporting_errors():
        _client(ctx).del_comment(issue_key, comment_id)
    click.echo("Comment removed.")


@cli.command("types")
@click.pass_context
def types_cmd(ctx: click.Context) -> None:
    """List the task types of the project by friendly name."""
    _require_project(_settings(ctx))
    client = _client(ctx)
    with reporting_errors():
        project = client.get_project(_settings(ctx).jira_project)
        task_types = client.get_task_types()
    for friendly, canonical in sorted(task_types.get(project.name, {}).items()):
        click.echo(f"{friendly}: {canonical}")


if __name__ == "__main__":
    cli()
