import pytest

from config import Settings, get_settings


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def _set_required(monkeypatch):
    monkeypatch.setenv("JIRA_SERVER", "jira.example.com")
    monkeypatch.setenv("JIRA_USER", "jdoe")
    monkeypatch.setenv("JIRA_PASSWORD", "secret")


def test_settings_from_environment(monkeypatch):
    _set_required(monkeypatch)
    monkeypatch.setenv("JIRA_PROJECT", "Platform")
    monkeypatch.setenv("JIRA_NO_CHECK_SSL", "true")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = get_settings()

    assert settings.jira_project == "Platform"
    assert settings.no_check_ssl is True
    assert settings.verbose is False
    assert settings.log_level == "DEBUG"
    assert settings.api_url == "https://jira.example.com/rest/api/2"
    assert settings.request_timeout == (5.0, 20.0)


def test_missing_required_variables(monkeypatch):
    monkeypatch.setenv("JIRA_SERVER", "")
    monkeypatch.setenv("JIRA_USER", "")
    monkeypatch.setenv("JIRA_PASSWORD", "secret")

    with pytest.raises(RuntimeError, match="JIRA_SERVER, JIRA_USER"):
        get_settings()


def test_invalid_timeout(monkeypatch):
    _set_required(monkeypatch)
    monkeypatch.setenv("REQUEST_READ_TIMEOUT_SECONDS", "-1")

    with pytest.raises(RuntimeError, match="Invalid Jira configuration"):
        get_settings()


def test_base_url_keeps_explicit_scheme():
    settings = Settings(
        jira_server="http://localhost:8080/",
        jira_user="jdoe",
        jira_password="secret",
    )

    assert settings.base_url == "http://localhost:8080"
