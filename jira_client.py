import json
import logging
import os
from datetime import date
from typing import Any, Dict, List, Optional

import requests
from requests.auth import HTTPBasicAuth
from requests.exceptions import RequestException, Timeout

from config import Settings
from decoders import (
    IssueDecodeError,
    decode_issue,
    decode_projects,
    decode_task_types,
    decode_worklogs,
)
from json_walker import JsonPathError, walk
from schemas import (
    Comment,
    Issue,
    NewTaskOptions,
    Period,
    Project,
    SearchOptions,
    TimeLog,
    WorklogEntry,
)
from timelog import build_time_log_jql, bucket_worklogs


logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


class JiraError(Exception):
    """Base Jira client error."""


class JiraNotFoundError(JiraError):
    """Raised when a Jira issue, comment or attachment does not exist."""


class JiraUnauthorizedError(JiraError):
    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class JiraNetworkError(JiraError):
    """Raised when Jira API cannot be reached."""


class JiraTimeoutError(JiraError):
    """Raised when Jira API times out."""


class JiraRequestError(JiraError):
    """Raised when Jira answers with an unexpected status code."""

    def __init__(self, message: str, status_code: int, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def _plus_encode(value: str) -> str:
    return value.replace(" ", "+")


def build_jql(options: SearchOptions) -> str:
    """Build the ``jql`` query parameter for a search.

    Spaces are turned into ``+``; no other URL encoding is applied.
    """
    if options.jql:
        return _plus_encode(options.jql)

    clauses: List[str] = []
    if options.current_sprint:
        clauses.append("sprint+in+openSprints()")
    if options.open:
        clauses.append("status+=+'open'")
    if options.issue:
        issue = _plus_encode(options.issue)
        clauses.append(f"(issue+=+'{issue}'+or+parent+=+'{issue}')")
    if options.project:
        clauses.append(f"project+=+'{_plus_encode(options.project)}'")

    return "+AND+".join(clauses) + "+order+by+rank"


class JiraClient:
    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._auth = HTTPBasicAuth(
            self._settings.jira_user,
            self._settings.jira_password,
        )

    @property
    def issue_url(self) -> str:
        return f"{self._settings.api_url}/issue"

    # Request primitives

    def get(self, url: str) -> requests.Response:
        return self._request("GET", url)

    def post(
        self, url: str, content_type: str = "", data: Any = None, files: Any = None
    ) -> requests.Response:
        return self._request("POST", url, content_type=content_type, data=data, files=files)

    def put(self, url: str, content_type: str = "", data: Any = None) -> requests.Response:
        return self._request("PUT", url, content_type=content_type, data=data)

    def delete(self, url: str, content_type: str = "") -> requests.Response:
        return self._request("DELETE", url, content_type=content_type)

    def _request(
        self,
        method: str,
        url: str,
        content_type: str = "",
        data: Any = None,
        files: Any = None,
    ) -> requests.Response:
        headers: Dict[str, str] = {}
        if content_type:
            headers["Content-Type"] = content_type
        if method == "POST":
            headers["X-Atlassian-Token"] = "nocheck"

        logger.debug("Calling Jira API", extra={"method": method, "url": url})

        try:
            return requests.request(
                method,
                url,
                headers=headers,
                data=data,
                files=files,
                auth=self._auth,
                verify=not self._settings.no_check_ssl,
                timeout=self._settings.request_timeout,
            )
        except Timeout as exc:
            logger.warning("Jira request timed out", extra={"method": method, "url": url})
            raise JiraTimeoutError("Jira request timed out") from exc
        except RequestException as exc:
            logger.error(
                "Network error while calling Jira API",
                extra={"method": method, "url": url, "reason": str(exc)},
            )
            raise JiraNetworkError("Unable to connect to Jira API") from exc

    def _post_json(self, url: str, payload: Dict[str, Any]) -> requests.Response:
        return self.post(url, JSON_CONTENT_TYPE, data=json.dumps(payload))

    def _json(self, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            logger.error(
                "Jira API returned non-JSON response",
                extra={"status_code": response.status_code, "body": response.text[:300]},
            )
            raise JiraError("Jira API returned invalid response") from exc
        finally:
            response.close()

    def _check_status(self, response: requests.Response, what: str) -> None:
        if response.status_code == 404:
            response.close()
            raise JiraNotFoundError(f"{what} not found")
        if response.status_code in (401, 403):
            response.close()
            raise JiraUnauthorizedError(
                f"Unauthorized or permission denied for {what}",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            body = response.text
            logger.error(
                "Unexpected Jira API response",
                extra={"status_code": response.status_code, "body": body[:300]},
            )
            response.close()
            raise JiraRequestError(
                f"{response.status_code}: {body}", status_code=response.status_code, body=body
            )

    # Issues

    def search(self, options: SearchOptions) -> List[Issue]:
        url = f"{self._settings.api_url}/search?jql={build_jql(options)}&fields=*all"
        response = self.get(url)
        self._check_status(response, "search")
        payload = self._json(response)

        try:
            hits = walk(payload, "issues")
        except JsonPathError:
            hits = []
        if not isinstance(hits, list):
            hits = []

        issues: List[Issue] = []
        for hit in hits:
            try:
                issues.append(decode_issue(hit))
            except IssueDecodeError as exc:
                logger.warning("Skipping undecodable search hit", extra={"reason": str(exc)})
        logger.info("Search finished", extra={"hits": len(hits), "issues": len(issues)})
        return issues

    def get_issue(self, issue_key: str) -> Issue:
        response = self.get(f"{self.issue_url}/{issue_key}")
        self._check_status(response, f"issue {issue_key}")
        return decode_issue(self._json(response))

    def get_comments(self, issue_key: str) -> List[Comment]:
        return list(self.get_issue(issue_key).comments)

    def update_issue(self, issue_key: str, update: Dict[str, Any]) -> None:
        response = self.put(
            f"{self._settings.base_url}/rest/api/latest/issue/{issue_key}",
            JSON_CONTENT_TYPE,
            data=json.dumps({"update": update}),
        )
        if response.status_code != 204:
            logger.error("Issue update rejected", extra={"status_code": response.status_code})
            response.close()
            raise JiraRequestError("Bad request", status_code=response.status_code)
        response.close()
        logger.info("Issue %s updated!", issue_key)

    def create_task(self, options: NewTaskOptions) -> str:
        project = self.get_project(self._settings.jira_project)
        task_type = self.get_task_type(options.task_type, project.name)

        fields: Dict[str, Any] = {
            "summary": options.summary,
            "project": {"key": project.key},
            "issuetype": {"name": task_type},
        }
        if options.parent is not None:
            fields["parent"] = {"key": options.parent.key}
        if options.original_estimate:
            fields["timetracking"] = {"originalEstimate": options.original_estimate}

        logger.debug("Creating issue", extra={"fields": fields})
        response = self._post_json(self.issue_url, {"fields": fields})
        if response.status_code != 201:
            body = response.text
            response.close()
            raise JiraRequestError(
                f"{response.status_code}: {body}", status_code=response.status_code, body=body
            )

        try:
            key = walk(self._json(response), "key")
        except JsonPathError:
            key = ""
        key = key if isinstance(key, str) else ""
        logger.info("%s successfully created!", key)
        return key

    # Attachments

    def upload(self, issue_key: str, path: str) -> None:
        with open(path, "rb") as handle:
            response = self.post(
                f"{self.issue_url}/{issue_key}/attachments",
                files={"file": (os.path.basename(path), handle)},
            )
        self._check_status(response, f"issue {issue_key}")
        response.close()
        logger.info("File uploaded!", extra={"issue_key": issue_key, "file": path})

    def del_attachment(self, issue_key: str, filename: str) -> None:
        issue = self.get_issue(issue_key)

        attachment = next((item for item in issue.files if item.name == filename), None)
        if attachment is None:
            raise JiraNotFoundError("File not found")

        response = self.delete(attachment.self_url)
        if response.status_code == 404:
            response.close()
            raise JiraNotFoundError("Not found")
        if response.status_code == 403:
            response.close()
            raise JiraUnauthorizedError("Unauthorized", status_code=403)
        self._check_status(response, f"attachment {filename}")
        response.close()
        logger.info("File removed from issue!", extra={"issue_key": issue_key, "file": filename})

    # Comments

    def add_comment(self, issue_key: str, body: str) -> None:
        response = self._post_json(f"{self.issue_url}/{issue_key}/comment", {"body": body})
        self._check_status(response, f"issue {issue_key}")
        response.close()
        logger.info("Comment added", extra={"issue_key": issue_key})

    def del_comment(self, issue_key: str, comment_id: str) -> None:
        response = self.delete(f"{self.issue_url}/{issue_key}/comment/{comment_id}")
        self._check_status(response, f"comment {comment_id}")
        response.close()
        logger.info("Comment removed", extra={"issue_key": issue_key, "comment_id": comment_id})

    # Creation metadata

    def _createmeta(self) -> Any:
        response = self.get(f"{self.issue_url}/createmeta")
        self._check_status(response, "creation metadata")
        return self._json(response)

    def get_task_types(self) -> Dict[str, Dict[str, str]]:
        try:
            return decode_task_types(self._createmeta())
        except JsonPathError as exc:
            raise JiraError(f"Unexpected creation metadata: {exc}") from exc

    def get_task_type(self, friendly_name: str, project_name: Optional[str] = None) -> str:
        project_name = project_name or self._settings.jira_project
        task_types = self.get_task_types().get(project_name, {})
        if friendly_name not in task_types:
            raise JiraError(f"Task name not found for friendly name {friendly_name}.")
        return task_types[friendly_name]

    def get_projects(self) -> Dict[str, Project]:
        try:
            return decode_projects(self._createmeta())
        except JsonPathError as exc:
            raise JiraError(f"Unexpected creation metadata: {exc}") from exc

    def get_project(self, name_or_key: str) -> Project:
        projects = self.get_projects()
        if name_or_key in projects:
            return projects[name_or_key]
        project = next((item for item in projects.values() if item.key == name_or_key), None)
        if project is None:
            raise JiraError(f"Project not found: {name_or_key}")
        return project

    # Worklogs

    def get_worklogs(self, issue_key: str) -> List[WorklogEntry]:
        response = self.get(f"{self.issue_url}/{issue_key}/worklog")
        self._check_status(response, f"worklog of {issue_key}")
        return decode_worklogs(self._json(response))

    def add_worklog(self, issue_key: str, time_spent: str) -> None:
        response = self._post_json(
            f"{self.issue_url}/{issue_key}/worklog", {"timeSpent": time_spent}
        )
        if response.status_code != 201:
            body = response.text
            response.close()
            raise JiraRequestError("Log Failed!", status_code=response.status_code, body=body)
        response.close()
        logger.info("Log successful", extra={"issue_key": issue_key, "time_spent": time_spent})

    def get_time_log(
        self, author: str, period: Period, issue_key: Optional[str] = None
    ) -> Dict[date, List[TimeLog]]:
        jql = build_time_log_jql(period, self._settings.jira_project, issue_key)
        issues = self.search(SearchOptions(jql=jql))
        worklogs = {issue.key: self.get_worklogs(issue.key) for issue in issues}
        return bucket_worklogs(worklogs, author, period)
