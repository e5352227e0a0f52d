from __future__ import annotations

import json
import logging
import sys
from typing import Any, Dict, Optional

import click
import requests

from . import __version__
from .api import BulkAPI
from .config import BulkConfig
from .env_loader import load_env_files
from .exceptions import JobTimeoutError, MissingOptionError
from .jobs import Operation, ResultKind
from .logging_config import configure_logging
from .results import copy_stream

_logger = logging.getLogger(__name__)

# Load .env very early, so BulkConfig.from_env() sees it
load_env_files()

_OPERATIONS = [op.value for op in Operation]
_RESULT_KINDS = [kind.name.lower() for kind in ResultKind]


def _supports_unicode_emoji() -> bool:
    enc = getattr(sys.stdout, "encoding", "") or ""
    return "UTF-8" in enc.upper()


def _make_api(ctx: click.Context, **job: Any) -> BulkAPI:
    """Build a client from the group options, the environment and job options."""
    overrides: Dict[str, Any] = dict(ctx.obj or {})
    overrides.update(job)
    try:
        return BulkAPI(BulkConfig.from_env(**overrides))
    except MissingOptionError as e:
        missing = ", ".join(e.missing)
        msg = (
            f"Missing Salesforce options: {missing}\n\n"
            "Set environment variables or create a .env file with:\n"
            "  SF_LOGIN_URL, SF_USERNAME, SF_PASSWORD, SF_SECURITY_TOKEN,\n"
            "  SF_API_VERSION, SF_CLIENT_ID, SF_CLIENT_SECRET"
        )
        raise click.ClickException(msg) from e
    except ValueError as e:
        raise click.ClickException(str(e)) from e


def _echo_json(payload: Dict[str, Any]) -> None:
    click.echo(json.dumps(payload, indent=2))


def _fail(action: str, err: Exception) -> click.ClickException:
    return click.ClickException(f"{action} failed: {err}")


@click.group(
    context_settings={"help_option_names": ["-h", "--help"]},
    invoke_without_command=True,
)
@click.version_option(__version__, "--version", prog_name="sfbulk2")
@click.option(
    "-v",
    "--verbose",
    "loglevel",
    flag_value=logging.INFO,
    default=None,
    help="Enable INFO logs.",
)
@click.option(
    "-vv",
    "--very-verbose",
    "loglevel",
    flag_value=logging.DEBUG,
    help="Enable DEBUG logs.",
)
@click.option("--login-url", "url", help="Login URL (default: SF_LOGIN_URL).")
@click.option("--username", help="Salesforce username (default: SF_USERNAME).")
@click.option("--api-version", help="API version, e.g. 60.0 (default: SF_API_VERSION).")
@click.option("--timeout", type=float, help="HTTP timeout in seconds (default: none).")
@click.pass_context
def cli(
    ctx: click.Context,
    loglevel: Optional[int],
    url: Optional[str],
    username: Optional[str],
    api_version: Optional[str],
    timeout: Optional[float],
) -> None:
    """Salesforce Bulk API 2.0 ingest jobs from the command line.

    Secrets (SF_PASSWORD, SF_SECURITY_TOKEN, SF_CLIENT_SECRET) are read
    from the environment or a .env file only.
    """
    configure_logging(loglevel)
    _logger.debug("CLI start, version=%s", __version__)
    ctx.obj = {
        k: v
        for k, v in {
            "url": url,
            "username": username,
            "api_version": api_version,
            "timeout": timeout,
        }.items()
        if v is not None
    }
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command("upload")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--object", "object_name", required=True, help="sObject name (e.g. Account).")
@click.option(
    "--operation",
    required=True,
    type=click.Choice(_OPERATIONS),
    help="Job operation.",
)
@click.option("--external-id", help="External ID field (upsert only).")
@click.option("--close/--no-close", default=True, help="Mark the upload complete afterwards.")
@click.option("--wait", is_flag=True, help="Wait for the job to finish (implies --close).")
@click.option("--interval", type=float, default=5.0, show_default=True, help="Poll interval.")
@click.pass_context
def upload_cmd(
    ctx: click.Context,
    csv_file: str,
    object_name: str,
    operation: str,
    external_id: Optional[str],
    close: bool,
    wait: bool,
    interval: float,
) -> None:
    """Create a job and upload CSV_FILE to it."""
    api = _make_api(
        ctx,
        object=object_name,
        operation=operation,
        external_id_field_name=external_id,
    )
    with open(csv_file, "rb") as f:
        data = f.read()

    try:
        api.upload_job_data(data)
        info: Dict[str, Any] = {"id": api.job_id, "state": "Open"}
        if close or wait:
            info = api.close_job()
        if wait:
            info = api.wait_for_job(poll_interval=interval)
    except requests.RequestException as e:
        raise _fail("Upload", e) from e

    tick = "✅" if _supports_unicode_emoji() else "[OK]"
    click.echo(f"{tick} Uploaded {len(data)} bytes to job {api.job_id}", err=True)
    _echo_json(info)


@cli.command("status")
@click.argument("job_id")
@click.pass_context
def status_cmd(ctx: click.Context, job_id: str) -> None:
    """Show a job's state and counters."""
    api = _make_api(ctx)
    try:
        _echo_json(api.get_job_info(job_id))
    except requests.RequestException as e:
        raise _fail("Status", e) from e


@cli.command("close")
@click.argument("job_id")
@click.pass_context
def close_cmd(ctx: click.Context, job_id: str) -> None:
    """Mark a job's upload complete."""
    api = _make_api(ctx)
    try:
        _echo_json(api.close_job(job_id))
    except requests.RequestException as e:
        raise _fail("Close", e) from e


@cli.command("abort")
@click.argument("job_id")
@click.pass_context
def abort_cmd(ctx: click.Context, job_id: str) -> None:
    """Abort a job."""
    api = _make_api(ctx)
    try:
        _echo_json(api.abort_job(job_id))
    except requests.RequestException as e:
        raise _fail("Abort", e) from e


@cli.command("delete")
@click.argument("job_id")
@click.pass_context
def delete_cmd(ctx: click.Context, job_id: str) -> None:
    """Delete a job."""
    api = _make_api(ctx)
    try:
        api.delete_job(job_id)
    except requests.RequestException as e:
        raise _fail("Delete", e) from e
    click.echo(f"Deleted job {job_id}")


@cli.command("wait")
@click.argument("job_id")
@click.option("--interval", type=float, default=5.0, show_default=True, help="Poll interval.")
@click.option("--timeout", "wait_timeout", type=float, help="Give up after this many seconds.")
@click.pass_context
def wait_cmd(
    ctx: click.Context,
    job_id: str,
    interval: float,
    wait_timeout: Optional[float],
) -> None:
    """Poll a job until it completes, fails or is aborted."""
    api = _make_api(ctx)
    try:
        info = api.wait_for_job(job_id, poll_interval=interval, timeout=wait_timeout)
    except JobTimeoutError as e:
        raise click.ClickException(str(e)) from e
    except requests.RequestException as e:
        raise _fail("Wait", e) from e
    _echo_json(info)


@cli.command("results")
@click.argument("job_id")
@click.option(
    "--kind",
    type=click.Choice(_RESULT_KINDS),
    default="successful",
    show_default=True,
    help="Which result collection to fetch.",
)
@click.option(
    "--out",
    "out_path",
    type=click.Path(dir_okay=False),
    help="Write the CSV here instead of stdout.",
)
@click.pass_context
def results_cmd(ctx: click.Context, job_id: str, kind: str, out_path: Optional[str]) -> None:
    """Download a job's successful, failed or unprocessed records as CSV."""
    api = _make_api(ctx)
    result_kind = ResultKind.from_name(kind)
    try:
        if out_path:
            n = api.save_results(result_kind, out_path, job_id)
            click.echo(f"Wrote {n} bytes -> {out_path}", err=True)
        else:
            with api.get_results(result_kind, job_id) as response:
                copy_stream(response, sys.stdout.buffer)
                sys.stdout.buffer.flush()
    except requests.RequestException as e:
        raise _fail("Results", e) from e
