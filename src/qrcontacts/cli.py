"""
qrcontacts CLI

Commands:
- generate: Write one QR vCard image per directory user
- validate: Check directory records for missing name fields and filename clashes
- preview: Print the vCard payload for one record
"""

from __future__ import annotations

import json
import logging
import signal
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import typer

from qrcontacts.directory import (
    DEFAULT_SEARCH_FILTER,
    DirectorySource,
    FileDirectorySource,
    LdapDirectorySource,
    validate_record,
)
from qrcontacts.errors import (
    ConfigurationError,
    DirectorySourceError,
    OutputDirectoryError,
)
from qrcontacts.pipeline.batch import BatchReport, run_batch
from qrcontacts.pipeline.coordinator import prepare_tasks
from qrcontacts.pipeline.output import DEFAULT_OUTPUT_DIR, output_filename
from qrcontacts.render import RenderConfiguration
from qrcontacts.vcard import build_vcard

app = typer.Typer(add_completion=False, help="Generate QR vCard images from directory users")


class JsonFormatter(logging.Formatter):
    """Simple JSON formatter for structured logs."""
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "msg": record.getMessage(),
            "logger": record.name,
        }
        # Include any custom attributes passed via `extra=`.
        reserved = {
            "name","msg","args","levelname","levelno","pathname","filename","module",
            "exc_info","exc_text","stack_info","lineno","funcName","created","msecs",
            "relativeCreated","thread","threadName","processName","process","taskName",
        }
        for k, v in record.__dict__.items():
            if k in reserved or k.startswith("_"):
                continue
            try:
                json.dumps(v)
                payload[k] = v
            except TypeError:
                payload[k] = repr(v)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(level: str) -> logging.Logger:
    logger = logging.getLogger("qrcontacts")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    logger.handlers[:] = [handler]
    logger.propagate = False
    return logger


LOGGER = logging.getLogger("qrcontacts")


SOURCE_OPTION = typer.Option(
    None, "--source", help="Directory export (JSON or CSV) path or URL"
)
LDAP_URL_OPTION = typer.Option(
    None, "--ldap-url", help="LDAP server URL (e.g., ldaps://dc01.example.org)"
)
SEARCH_BASE_OPTION = typer.Option(
    None, "--search-base", help="Base DN to search under (search scope)"
)
SEARCH_FILTER_OPTION = typer.Option(
    DEFAULT_SEARCH_FILTER, "--search-filter", help="LDAP filter selecting user entries"
)
BIND_DN_OPTION = typer.Option(None, "--bind-dn", help="LDAP bind DN (anonymous if omitted)")
PASSWORD_OPTION = typer.Option(
    None, "--password", envvar="QRCONTACTS_LDAP_PASSWORD", help="LDAP bind password"
)
LOG_LEVEL_OPTION = typer.Option(
    "INFO", "--log-level", help="Logging verbosity (DEBUG, INFO, WARNING, ERROR)"
)


def build_source(
    *,
    source: str | None,
    ldap_url: str | None,
    search_base: str | None,
    search_filter: str,
    bind_dn: str | None,
    password: str | None,
) -> DirectorySource:
    """Pick the directory source from CLI options (exactly one of --source / --ldap-url)."""
    if source and ldap_url:
        raise typer.BadParameter("Use either --source or --ldap-url, not both.")
    if source:
        return FileDirectorySource(source)
    if ldap_url:
        if not search_base:
            raise typer.BadParameter("--search-base is required with --ldap-url.")
        return LdapDirectorySource(
            url=ldap_url,
            search_base=search_base,
            search_filter=search_filter,
            bind_dn=bind_dn,
            password=password,
        )
    raise typer.BadParameter("Provide a directory with --source or --ldap-url.")


def fetch_or_exit(directory: DirectorySource):
    try:
        return directory.fetch_records()
    except DirectorySourceError as e:
        typer.echo(f"❌ Directory error: {e.message}", err=True)
        raise typer.Exit(code=1)


def report_as_dict(report: BatchReport, output_dir: Path) -> dict[str, Any]:
    return {
        "output_dir": str(output_dir),
        "total": report.total,
        "processed": report.processed,
        "succeeded": report.succeeded,
        "failed": report.failed,
        "cancelled": report.cancelled,
        "bytes_written": report.bytes_written,
        "record_seconds": round(report.record_seconds, 3),
        "elapsed_seconds": round(report.elapsed_seconds, 3),
        "written": [str(p) for p in report.written],
        "failures": [
            {"identity": f.identity, "reason": f.reason, "error_type": f.error_type}
            for f in report.failures
        ],
    }


def print_summary(report: BatchReport, output_dir: Path, *, dry_run: bool) -> None:
    typer.echo(f"\n{'='*60}")
    typer.echo("📊 Summary:")
    typer.echo(f"  Records found: {report.total}")
    typer.echo(f"  Records processed: {report.processed}")
    typer.echo(f"  Images {'rendered' if dry_run else 'written'}: {report.succeeded}")
    typer.echo(f"  Records failed: {report.failed}")
    if report.cancelled:
        typer.echo(f"  Records cancelled: {report.cancelled}")
    typer.echo(f"  Image bytes: {report.bytes_written}")
    typer.echo(f"  Elapsed: {report.elapsed_seconds:.2f}s (records: {report.record_seconds:.2f}s)")
    typer.echo(f"  Output directory: {output_dir}")

    if report.failures:
        typer.echo(f"\n❌ Failed records ({report.failed}):")
        for failure in report.failures:
            typer.echo(f"  - {failure.identity}: {failure.reason}")


@app.command("generate")
def generate_cmd(
    source: str | None = SOURCE_OPTION,
    ldap_url: str | None = LDAP_URL_OPTION,
    search_base: str | None = SEARCH_BASE_OPTION,
    search_filter: str = SEARCH_FILTER_OPTION,
    bind_dn: str | None = BIND_DN_OPTION,
    password: str | None = PASSWORD_OPTION,
    out_dir: Path = typer.Option(
        Path(DEFAULT_OUTPUT_DIR), "--out-dir", help="Output directory for image files"
    ),
    scale: int = typer.Option(10, "--scale", help="Pixels per QR module (10-2000)"),
    dark_color: str = typer.Option(
        "0,0,0", "--dark-color", help="Dark module color: r,g,b or #rrggbb"
    ),
    light_color: str = typer.Option(
        "255,255,255", "--light-color", help="Light module color: r,g,b or #rrggbb"
    ),
    ecc_level: str = typer.Option(
        "medium", "--ecc-level", help="Error correction: low, medium, quartile, high"
    ),
    image_format: str = typer.Option("png", "--format", help="Image format: png or svg"),
    quiet_zone: int = typer.Option(4, "--quiet-zone", help="Light border width in modules"),
    workers: int = typer.Option(1, "--workers", help="Records processed in parallel"),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Render every record but write no files"
    ),
    report_path: Path | None = typer.Option(
        None, "--report", help="Also write the batch report as JSON to this path"
    ),
    log_level: str = LOG_LEVEL_OPTION,
) -> None:
    """
    Generate one QR vCard image per directory user.

    Per-record problems are listed in the summary and do not change the exit
    code; directory and output-directory errors exit with code 1 and invalid
    options with code 2.

    Example:
        qrcontacts generate --source users.json --scale 12 --ecc-level quartile
    """
    global LOGGER
    LOGGER = setup_logging(log_level)

    out_dir = out_dir.expanduser()

    try:
        config = RenderConfiguration.from_options(
            scale=scale,
            dark_color=dark_color,
            light_color=light_color,
            ecc_level=ecc_level,
            image_format=image_format,
            quiet_zone=quiet_zone,
        )
        if workers < 1:
            raise ConfigurationError(f"--workers must be at least 1, got {workers}")
    except ConfigurationError as e:
        typer.echo(f"❌ {e.message}", err=True)
        raise typer.Exit(code=2)

    directory = build_source(
        source=source,
        ldap_url=ldap_url,
        search_base=search_base,
        search_filter=search_filter,
        bind_dn=bind_dn,
        password=password,
    )

    cancel_event = threading.Event()

    def request_stop(signum, frame) -> None:
        LOGGER.warning("stop_requested", extra={"signal": signum})
        cancel_event.set()

    previous = {
        sig: signal.signal(sig, request_stop) for sig in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        report = run_batch(
            directory,
            config,
            out_dir,
            workers=workers,
            dry_run=dry_run,
            cancel_event=cancel_event,
        )
    except DirectorySourceError as e:
        typer.echo(f"❌ Directory error: {e.message}", err=True)
        raise typer.Exit(code=1)
    except OutputDirectoryError as e:
        typer.echo(f"❌ {e.message}", err=True)
        raise typer.Exit(code=1)
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    print_summary(report, out_dir, dry_run=dry_run)

    if report_path is not None:
        report_path = report_path.expanduser()
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(
            json.dumps(report_as_dict(report, out_dir), indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )
        typer.echo(f"  Report: {report_path}")


@app.command("validate")
def validate_cmd(
    source: str | None = SOURCE_OPTION,
    ldap_url: str | None = LDAP_URL_OPTION,
    search_base: str | None = SEARCH_BASE_OPTION,
    search_filter: str = SEARCH_FILTER_OPTION,
    bind_dn: str | None = BIND_DN_OPTION,
    password: str | None = PASSWORD_OPTION,
    image_format: str = typer.Option("png", "--format", help="Image format: png or svg"),
) -> None:
    """Check directory records for missing name fields and clashing output filenames."""
    try:
        config = RenderConfiguration.from_options(image_format=image_format)
    except ConfigurationError as e:
        typer.echo(f"❌ {e.message}", err=True)
        raise typer.Exit(code=2)

    directory = build_source(
        source=source,
        ldap_url=ldap_url,
        search_base=search_base,
        search_filter=search_filter,
        bind_dn=bind_dn,
        password=password,
    )
    records = fetch_or_exit(directory)

    all_issues = []
    for record in records:
        issues = validate_record(record)
        if issues:
            all_issues.append((record.label, [f"{i.field}: {i.message}" for i in issues]))

    for task in prepare_tasks(records, Path("."), config.image_format):
        if task.duplicate:
            all_issues.append(
                (task.record.label, [f"output: duplicate filename {task.output_path.name}"])
            )

    if all_issues:
        total_issues = sum(len(issues) for _, issues in all_issues)
        typer.echo(
            f"❌ Validation failed: {total_issues} issue(s) across {len(all_issues)} record(s)\n"
        )
        for identity, issues in all_issues:
            typer.echo(f"\nRecord: {identity}")
            for i, issue in enumerate(issues, start=1):
                typer.echo(f"  {i:>3}. {issue}")
        raise typer.Exit(code=2)

    typer.echo(f"✅ Validation passed ({len(records)} record(s)).")


@app.command("preview")
def preview_cmd(
    source: str | None = SOURCE_OPTION,
    ldap_url: str | None = LDAP_URL_OPTION,
    search_base: str | None = SEARCH_BASE_OPTION,
    search_filter: str = SEARCH_FILTER_OPTION,
    bind_dn: str | None = BIND_DN_OPTION,
    password: str | None = PASSWORD_OPTION,
    match: str | None = typer.Option(
        None, "--match", help="Identity or name substring selecting the record"
    ),
) -> None:
    """Print the vCard payload and output filename for one record."""
    directory = build_source(
        source=source,
        ldap_url=ldap_url,
        search_base=search_base,
        search_filter=search_filter,
        bind_dn=bind_dn,
        password=password,
    )
    records = fetch_or_exit(directory)

    needle = match.casefold() if match else None
    for record in records:
        haystack = " ".join(
            [record.identity, record.display_name, record.given_name, record.surname]
        ).casefold()
        if needle is None or needle in haystack:
            typer.echo(output_filename(record))
            typer.echo(build_vcard(record).replace("\r\n", "\n"))
            raise typer.Exit(code=0)

    typer.echo("No matching record found.", err=True)
    raise typer.Exit(code=2)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
