from __future__ import annotations

import logging
import signal
import threading
from dataclasses import dataclass

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from services.auth_server import AuthServer, create_app
from services.auth_service import AuthService
from services.credential_store import CredentialStore
from services.errors import ConfigError
from services.gmail_service import GmailService
from services.reconciliation import CycleReport, ReconciliationLoop, ReplyTemplate
from services.scheduler import Scheduler
from utils.config import AppConfig, load_config
from utils.logger import configure_logging


LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class AppContext:
    config: AppConfig
    store: CredentialStore
    auth: AuthService
    loop: ReconciliationLoop
    scheduler: Scheduler
    console: Console
    stop_event: threading.Event


def build_context(env_file: str) -> AppContext:
    config = load_config(env_file)
    configure_logging(config.log_dir, config.log_level)
    console = Console()
    stop_event = threading.Event()

    store = CredentialStore(config.token_file)
    auth = AuthService(config, store)
    gmail = GmailService(user_id=config.user_id, timeout=config.request_timeout)
    loop = ReconciliationLoop(
        credentials=store,
        directory=gmail,
        template=ReplyTemplate(subject=config.reply_subject, body=config.reply_body),
        label_name=config.label_name,
        stop_event=stop_event,
        reauth_url=config.auth_start_url,
    )
    scheduler = Scheduler(
        loop,
        min_seconds=config.poll_min_seconds,
        max_seconds=config.poll_max_seconds,
        stop_event=stop_event,
    )
    return AppContext(
        config=config,
        store=store,
        auth=auth,
        loop=loop,
        scheduler=scheduler,
        console=console,
        stop_event=stop_event,
    )


@click.command()
@click.option("--env-file", default=".env", show_default=True, help="Path to the .env file")
@click.option("--once", is_flag=True, help="Run a single poll cycle, print a summary and exit")
@click.option("--no-server", is_flag=True, help="Do not start the authorization HTTP server")
def cli(env_file: str, once: bool, no_server: bool) -> None:
    """Auto-reply to unanswered unread Gmail threads."""

    try:
        app = build_context(env_file)
    except ConfigError as exc:
        raise click.UsageError(str(exc)) from exc

    if once:
        report = app.scheduler.run_once()
        if report is None:
            raise click.ClickException("Cycle crashed; see the log for details")
        app.console.print(_build_report_table(report))
        return

    server = None
    if not no_server:
        server = AuthServer(create_app(app.auth, app.store), host=app.config.host, port=app.config.port)
        server.start()
        if not app.store.exists():
            app.console.print(
                f"[yellow]No credentials yet.[/yellow] Visit {app.config.auth_start_url} to authorize Gmail access."
            )

    signal.signal(signal.SIGTERM, lambda *_: app.stop_event.set())
    LOGGER.info("Auto-reply agent started for %s; token file %s", app.config.user_id, app.config.token_file)
    app.console.print(
        f"Polling every {app.config.poll_min_seconds}-{app.config.poll_max_seconds} seconds. Press Ctrl+C to stop."
    )
    try:
        app.scheduler.run_forever()
    except KeyboardInterrupt:
        app.stop_event.set()
        app.console.print("Scheduler stopped.")
    finally:
        if server:
            server.stop()


def _build_report_table(report: CycleReport) -> Table:
    table = Table(title="Poll cycle")
    table.add_column("Metric")
    table.add_column("Value")
    table.add_row("Candidates", str(report.candidates))
    table.add_row("Replied", ", ".join(report.replied) or "-")
    table.add_row("Already answered", ", ".join(report.skipped) or "-")
    table.add_row("Failed", ", ".join(report.failed) or "-")
    table.add_row("Replied but unlabelled", ", ".join(report.unlabeled) or "-")
    if report.error:
        table.add_row("Cycle error", f"[red]{escape(report.error)}[/red]")
    return table


def main() -> None:
    cli(standalone_mode=True)


if __name__ == "__main__":
    main()
