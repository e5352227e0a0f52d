from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional, Union

from .exceptions import MissingOptionError
from .jobs import Operation

DEFAULT_LOGIN_URL = "https://login.salesforce.com"

# Option name -> environment variable it is read from
ENV_VARS = {
    "url": "SF_LOGIN_URL",
    "username": "SF_USERNAME",
    "password": "SF_PASSWORD",
    "token": "SF_SECURITY_TOKEN",
    "api_version": "SF_API_VERSION",
    "consumer_key": "SF_CLIENT_ID",
    "consumer_secret": "SF_CLIENT_SECRET",
    "object": "SF_BULK_OBJECT",
    "operation": "SF_BULK_OPERATION",
    "external_id_field_name": "SF_BULK_EXTERNAL_ID",
    "timeout": "SF_HTTP_TIMEOUT",
}

REQUIRED_OPTIONS = (
    "url",
    "username",
    "password",
    "token",
    "api_version",
    "consumer_key",
    "consumer_secret",
)


@dataclass(frozen=True)
class BulkConfig:
    """Connection credentials and job shape for one Bulk API 2.0 client.

    Secrets are excluded from ``repr()`` so a config can be logged safely.
    """

    url: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    token: Optional[str] = field(default=None, repr=False)
    api_version: Optional[str] = None
    consumer_key: Optional[str] = None
    consumer_secret: Optional[str] = field(default=None, repr=False)

    # Job shape, only needed by create_job()
    object: Optional[str] = None
    operation: Union[Operation, str, None] = None
    # Only meaningful for upsert jobs
    external_id_field_name: Optional[str] = None

    # Seconds; None leaves requests without a timeout
    timeout: Optional[float] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "operation", Operation.parse(self.operation))
        object.__setattr__(self, "object", self.object or None)
        object.__setattr__(self, "external_id_field_name", self.external_id_field_name or None)

    @classmethod
    def from_env(cls, **overrides) -> BulkConfig:
        """Load configuration from SF_* environment variables.

        Keyword overrides win over the environment when they are not None.
        Missing values are tolerated here; ``validate()`` reports them.
        """
        values = {name: os.getenv(var) for name, var in ENV_VARS.items()}
        if not values["url"]:
            values["url"] = DEFAULT_LOGIN_URL
        values.update({k: v for k, v in overrides.items() if v is not None})

        timeout = values.pop("timeout")
        if timeout is not None and timeout != "":
            timeout = float(timeout)
        else:
            timeout = None
        return cls(timeout=timeout, **values)

    def validate(self) -> None:
        """Raise MissingOptionError naming every required option that is empty."""
        missing = [name for name in REQUIRED_OPTIONS if not getattr(self, name)]
        if missing:
            raise MissingOptionError(missing)

    @property
    def version(self) -> str:
        """API version without a leading 'v' (accepts both '60.0' and 'v60.0')."""
        return str(self.api_version or "").lstrip("vV")

    @property
    def login_url(self) -> str:
        return (self.url or "").rstrip("/")

    @property
    def password_with_token(self) -> str:
        # The password grant expects the security token appended to the password
        return f"{self.password}{self.token}"
