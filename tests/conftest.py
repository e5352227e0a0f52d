import pytest

from sfbulk2.config import ENV_VARS


@pytest.fixture(autouse=True)
def clean_sf_env(monkeypatch):
    """Keep a developer's SF_* variables (or .env) out of every test."""
    for var in ENV_VARS.values():
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def options():
    """A complete set of required client options."""
    return {
        "url": "https://login.salesforce.com",
        "username": "user@example.com",
        "password": "pw",
        "token": "SECTOKEN",
        "api_version": "60.0",
        "consumer_key": "ckey",
        "consumer_secret": "csecret",
    }
