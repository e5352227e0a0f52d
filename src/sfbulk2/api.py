from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, Optional, Union

import requests

from .config import BulkConfig
from .exceptions import JobTimeoutError
from .jobs import ResultKind, is_terminal
from .results import write_stream_to_file

__author__ = "sfbulk2 contributors"
__copyright__ = "sfbulk2 contributors"
__license__ = "MIT"

_logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Bulk API 2.0 job client
# ----------------------------------------------------------------------
class BulkAPI:
    """Salesforce Bulk API 2.0 ingest client using the OAuth password grant.

    Each instance tracks a single job. Session state (token, identity URL,
    instance URL) and the job id are established lazily on first use and
    cached for the lifetime of the instance. To work with an unrelated job,
    pass its id explicitly or create another instance.
    """

    def __init__(self, cfg: Optional[BulkConfig] = None, **options: Any) -> None:
        self.cfg = cfg or BulkConfig(**options)
        self.cfg.validate()
        self.session = requests.Session()

        # Set on login() / get_url()
        self.access_token: Optional[str] = None
        self.id_url: Optional[str] = None
        self.instance_url: Optional[str] = None

        # Set on create_job()
        self.job_id: Optional[str] = None

        # Guards lazy initialization so concurrent first calls share one request
        self._init_lock = threading.RLock()

    # --------------------------- Session setup -----------------------

    def login(self) -> None:
        """Exchange username/password+token for a bearer token (once)."""
        if self.access_token:
            return
        with self._init_lock:
            if self.access_token:
                return

            token_url = f"{self.cfg.login_url}/services/oauth2/token"
            data = {
                "grant_type": "password",
                "client_id": self.cfg.consumer_key,
                "client_secret": self.cfg.consumer_secret,
                "username": self.cfg.username,
                "password": self.cfg.password_with_token,
            }
            _logger.info("Logging in to %s as %s", self.cfg.login_url, self.cfg.username)
            payload = self._request("POST", token_url, data=data, auth_required=False).json()

            self.id_url = payload["id"]
            self.access_token = payload["access_token"]

    def get_url(self) -> None:
        """Resolve the org's base service URL from the identity service (once)."""
        if self.instance_url:
            return
        with self._init_lock:
            if self.instance_url:
                return
            self.login()

            identity = self._request("GET", self.id_url).json()
            profile = identity["urls"]["profile"]
            # https://na30.salesforce.com/00536000000IigRAAS -> https://na30.salesforce.com
            self.instance_url = profile[: profile.rfind("/")]
            _logger.info("Resolved instance URL: %s", self.instance_url)

    # --------------------------- Job lifecycle -----------------------

    def create_job(self) -> str:
        """Create a new ingest job and make it this instance's current job.

        Every call creates another remote job.
        """
        self.get_url()
        body: Dict[str, Any] = {
            "object": self.cfg.object,
            "operation": self.cfg.operation.value if self.cfg.operation else None,
        }
        if self.cfg.external_id_field_name:
            body["externalIdFieldName"] = self.cfg.external_id_field_name

        info = self._request("POST", self._jobs_url(), json=body).json()
        self.job_id = info["id"]
        _logger.info(
            "Created %s job %s for %s",
            body["operation"],
            self.job_id,
            self.cfg.object,
        )
        return self.job_id

    def upload_job_data(self, data: Union[bytes, str]) -> None:
        """Upload CSV data to the current job, creating the job if needed."""
        with self._init_lock:
            if not self.job_id:
                self.create_job()
        url = f"{self._jobs_url(self.job_id)}/batches"
        _logger.info("Uploading %d bytes to job %s", len(data), self.job_id)
        self._request("PUT", url, data=data, headers={"Content-Type": "text/csv"})

    def get_job_info(self, job_id: Optional[str] = None) -> Dict[str, Any]:
        """Return the job's status and metadata."""
        job_id = self._resolve_job_id(job_id)
        self.get_url()
        return self._request("GET", self._jobs_url(job_id)).json()

    def abort_job(self, job_id: Optional[str] = None) -> Dict[str, Any]:
        return self._set_job_state(job_id, "Aborted")

    def close_job(self, job_id: Optional[str] = None) -> Dict[str, Any]:
        """Mark the upload complete so the server starts processing."""
        return self._set_job_state(job_id, "UploadComplete")

    def delete_job(self, job_id: Optional[str] = None) -> None:
        job_id = self._resolve_job_id(job_id)
        self.get_url()
        self._request("DELETE", self._jobs_url(job_id))
        _logger.info("Deleted job %s", job_id)

    def wait_for_job(
        self,
        job_id: Optional[str] = None,
        *,
        poll_interval: float = 5.0,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Poll the job until it is JobComplete, Failed or Aborted.

        Returns the last job info. HTTP errors are not retried.
        """
        job_id = self._resolve_job_id(job_id)
        deadline = time.monotonic() + timeout if timeout is not None else None

        while True:
            info = self.get_job_info(job_id)
            state = info.get("state")
            _logger.debug("Job %s state: %s", job_id, state)
            if is_terminal(state):
                _logger.info("Job %s finished with state %s", job_id, state)
                return info
            if deadline is not None and time.monotonic() + poll_interval > deadline:
                raise JobTimeoutError(job_id, state, timeout)
            time.sleep(poll_interval)

    # --------------------------- Results -----------------------------

    def get_successful_results(self, job_id: Optional[str] = None) -> requests.Response:
        return self.get_results(ResultKind.SUCCESSFUL, job_id)

    def get_failed_results(self, job_id: Optional[str] = None) -> requests.Response:
        return self.get_results(ResultKind.FAILED, job_id)

    def get_unprocessed_records(self, job_id: Optional[str] = None) -> requests.Response:
        return self.get_results(ResultKind.UNPROCESSED, job_id)

    def get_results(
        self,
        kind: Union[ResultKind, str],
        job_id: Optional[str] = None,
    ) -> requests.Response:
        """Return the unread, streaming response for one result collection.

        The caller owns the response: iterate ``iter_content()`` / ``iter_lines()``
        and close it when done.
        """
        kind = ResultKind(kind)
        job_id = self._resolve_job_id(job_id)
        self.get_url()
        url = f"{self._jobs_url(job_id)}/{kind.value}/"
        return self._request("GET", url, stream=True)

    def save_results(
        self,
        kind: Union[ResultKind, str],
        path: str,
        job_id: Optional[str] = None,
    ) -> int:
        """Stream one result collection to ``path``; return bytes written."""
        with self.get_results(kind, job_id) as response:
            return write_stream_to_file(response, path)

    # --------------------------- Internal helpers --------------------

    def _set_job_state(self, job_id: Optional[str], state: str) -> Dict[str, Any]:
        """PATCH a client-initiated state transition and return the server's view."""
        job_id = self._resolve_job_id(job_id)
        self.get_url()
        _logger.info("Setting job %s state to %s", job_id, state)
        r = self._request(
            "PATCH",
            self._jobs_url(job_id),
            json={"state": state},
            headers={"Accept": "application/json"},
        )
        return r.json()

    def _resolve_job_id(self, job_id: Optional[str]) -> str:
        job_id = job_id or self.job_id
        if not job_id:
            raise ValueError("No job id given and no job has been created by this client.")
        return job_id

    def _jobs_url(self, job_id: Optional[str] = None) -> str:
        url = f"{self.instance_url}/services/data/v{self.cfg.version}/jobs/ingest"
        return f"{url}/{job_id}" if job_id else url

    # --------------------------- HTTP wrapper ------------------------

    def _request(
        self,
        method: str,
        url: str,
        *,
        data: Any = None,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        auth_required: bool = True,
        stream: bool = False,
    ) -> requests.Response:
        """Send one request; non-2xx responses are logged and raised, never retried."""
        req_headers: Dict[str, str] = dict(headers or {})
        if auth_required:
            req_headers["Authorization"] = f"Bearer {self.access_token}"

        _logger.debug("%s %s", method, url)
        r = self.session.request(
            method,
            url,
            data=data,
            json=json,
            headers=req_headers,
            timeout=self.cfg.timeout,
            stream=stream,
        )
        if r.status_code < 400:
            return r

        try:
            detail = r.json()
        except ValueError:
            detail = r.text
        _logger.error("HTTP %s error for %s %s: %s", r.status_code, method, url, detail)
        r.raise_for_status()
        return r
