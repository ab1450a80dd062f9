import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError


load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class Settings(BaseModel):
    jira_server: str
    jira_user: str
    jira_password: str
    jira_project: str = ""
    no_check_ssl: bool = False
    verbose: bool = False
    request_connect_timeout_seconds: float = Field(default=5.0, gt=0)
    request_read_timeout_seconds: float = Field(default=20.0, gt=0)
    log_level: str = "INFO"
    log_json: bool = False

    @property
    def request_timeout(self) -> tuple[float, float]:
        return (self.request_connect_timeout_seconds, self.request_read_timeout_seconds)

    @property
    def base_url(self) -> str:
        if "://" in self.jira_server:
            return self.jira_server.rstrip("/")
        return f"https://{self.jira_server.rstrip('/')}"

    @property
    def api_url(self) -> str:
        return f"{self.base_url}/rest/api/2"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load and validate client settings from environment variables."""
    try:
        settings = Settings(
            jira_server=(os.getenv("JIRA_SERVER") or "").strip(),
            jira_user=os.getenv("JIRA_USER") or "",
            jira_password=os.getenv("JIRA_PASSWORD") or "",
            jira_project=os.getenv("JIRA_PROJECT") or "",
            no_check_ssl=_env_flag("JIRA_NO_CHECK_SSL"),
            verbose=_env_flag("JIRA_VERBOSE"),
            request_connect_timeout_seconds=float(
                os.getenv("REQUEST_CONNECT_TIMEOUT_SECONDS") or 5.0
            ),
            request_read_timeout_seconds=float(
                os.getenv("REQUEST_READ_TIMEOUT_SECONDS") or 20.0
            ),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_json=_env_flag("LOG_JSON"),
        )
    except (ValidationError, ValueError) as exc:
        raise RuntimeError(f"Invalid Jira configuration: {exc}") from exc

    missing = [
        key
        for key, value in {
            "JIRA_SERVER": settings.jira_server,
            "JIRA_USER": settings.jira_user,
            "JIRA_PASSWORD": settings.jira_password,
        }.items()
        if not value
    ]

    if missing:
        raise RuntimeError(
            "Missing required environment variables: " + ", ".join(missing)
        )

    return settings
