"""Typer CLI entrypoint for adstxt-crawler."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn, Optional, Sequence

import typer
import yaml
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, CrawlerConfig
from .engine import Parser, Record
from .errors import AdsTxtError
from .infra import build_store, clean_domains
from .logging_conf import configure_logging, default_log_dir, tail_log
from .orchestrator import Orchestrator, RunSummary
from .scheduler import APSchedulerAdapter

app = typer.Typer(
    help="Verify which ad-exchange accounts other domains' ads.txt files authorise.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
config_app = typer.Typer(name="config", help="Configuration commands", no_args_is_help=True)
log_app = typer.Typer(name="log", help="Log viewing commands", no_args_is_help=True)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    config: CrawlerConfig
    orchestrator: Orchestrator


def build_state(verbose: bool, config_path: Path | None = None) -> AppState:
    configure_logging(verbose=verbose)
    repository = ConfigRepository(path=config_path)
    config = repository.load_config()
    orchestrator = Orchestrator(config, base_dir=repository.locator.project_root)
    return AppState(repository=repository, config=config, orchestrator=orchestrator)


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _progress_default_enabled() -> bool:
    return bool(getattr(sys.stdout, "isatty", lambda: False)())


def _fail(message: str) -> NoReturn:
    console.print(message, style="red")
    raise typer.Exit(code=1)


def _render_records_table(title: str, records: Sequence[Record]) -> Table:
    table = Table(title=f"{title} · {len(records)} records", box=box.SIMPLE_HEAD)
    table.add_column("Exchange", style="cyan", no_wrap=True)
    table.add_column("Account", style="magenta")
    table.add_column("Type", style="green")
    table.add_column("Authority", style="dim")
    for record in records:
        table.add_row(
            record.exchange_domain,
            record.publisher_account_id,
            record.account_type.value,
            record.authority_id or "-",
        )
    return table


def _render_summary_table(summary: RunSummary) -> Table:
    table = Table(title="Verification results", box=box.SIMPLE_HEAD)
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green", justify="right")
    table.add_row("Domains", str(summary.domains))
    table.add_row("Results", str(summary.results))
    table.add_row("Matched", str(summary.matched))
    table.add_row("Not matched", str(summary.unmatched))
    table.add_row("Fetch failed", str(summary.failed))
    return table


app.add_typer(config_app, name="config")
app.add_typer(log_app, name="log")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="Path to a YAML/JSON configuration file.", dir_okay=False
    ),
) -> None:
    ctx.obj = build_state(verbose, config_path)


@app.command("run", help="Verify every target domain against the reference ads.txt.")
def run(
    ctx: typer.Context,
    quiet: bool = typer.Option(False, "--quiet", help="Only print a one-line summary."),
    batch_size: Optional[int] = typer.Option(None, "--batch-size", min=1, help="Domains per batch."),
    batch_pause: Optional[float] = typer.Option(
        None, "--batch-pause", min=0.0, help="Seconds to pause between batches."
    ),
    output_format: Optional[str] = typer.Option(
        None, "--format", help="Report format: csv, json or sqlite."
    ),
    no_slack: bool = typer.Option(False, "--no-slack", help="Skip Slack delivery."),
) -> None:
    state = _get_state(ctx)
    if output_format is not None and output_format not in ("csv", "json", "sqlite"):
        raise typer.BadParameter("format must be csv, json or sqlite", param_hint="--format")
    try:
        summary = state.orchestrator.run(
            progress_enabled=_progress_default_enabled() and not quiet,
            output_format=output_format,
            deliver=not no_slack,
            batch_size=batch_size,
            batch_pause=batch_pause,
        )
    except AdsTxtError as exc:
        _fail(f"Run failed: {exc}")
    finally:
        state.orchestrator.close()
    if quiet:
        console.print(
            f"Done: {summary.matched} matched, {summary.unmatched} not matched, "
            f"{summary.failed} failed across {summary.domains} domains"
        )
        return
    console.print(_render_summary_table(summary))
    if summary.report_path is not None:
        console.print(f"Report written to {summary.report_path}", style="dim")
    if summary.slack_file_id:
        console.print(f"Report delivered to Slack ({summary.slack_file_id})", style="dim")


@app.command("check", help="Fetch and print one domain's ads.txt records.")
def check(ctx: typer.Context, domain: str = typer.Argument(..., help="Domain to fetch.")) -> None:
    state = _get_state(ctx)
    try:
        response = state.orchestrator.fetcher.fetch(domain)
    except AdsTxtError as exc:
        _fail(str(exc))
    finally:
        state.orchestrator.close()
    console.print(f"{response.url} → HTTP {response.status_code}", style="dim")
    console.print(_render_records_table(response.domain, response.records))


@app.command("parse", help="Parse a local ads.txt file and print its records.")
def parse_file(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="ads.txt file."),
    strict: bool = typer.Option(False, "--strict", help="Reject unknown account types."),
) -> None:
    try:
        with path.open("rb") as stream:
            records = Parser(strict=strict).parse(stream)
    except AdsTxtError as exc:
        _fail(str(exc))
    console.print(_render_records_table(path.name, records))


@app.command("seed", help="Store the reference ads.txt and domain list in the configured store.")
def seed(
    ctx: typer.Context,
    reference: Path = typer.Argument(..., exists=True, dir_okay=False, help="Reference ads.txt."),
    domains: Path = typer.Argument(..., exists=True, dir_okay=False, help="Domain list, one per line."),
) -> None:
    state = _get_state(ctx)
    store = build_store(state.config.store, state.repository.locator.project_root)
    domain_list = clean_domains(domains.read_text(encoding="utf-8").splitlines())
    try:
        store.seed(reference.read_text(encoding="utf-8"), domain_list)
    except AdsTxtError as exc:
        _fail(str(exc))
    finally:
        store.close()
    console.print(f"Seeded {len(domain_list)} domains.", style="green")


@app.command("schedule", help="Run verification on the configured schedule (blocks).")
def schedule(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    adapter = APSchedulerAdapter()
    logger = configure_logging().bind(component="cli")

    def _job() -> None:
        try:
            summary = state.orchestrator.run()
        except AdsTxtError as exc:
            logger.error("scheduled_run_failed", error=str(exc))
            return
        logger.info("scheduled_run_finished", failed=summary.failed, matched=summary.matched)

    adapter.schedule(state.config.schedule, _job)
    console.print(f"Scheduled verification: {state.config.schedule.type.value} {state.config.schedule.value}")
    try:
        adapter.start()
    except (KeyboardInterrupt, SystemExit):
        adapter.shutdown()
    finally:
        state.orchestrator.close()


@config_app.command("show", help="Print the effective configuration.")
def config_show(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    payload = state.config.model_dump(mode="json")
    payload["report"]["slack"]["token"] = "***" if state.config.report.slack.token else ""
    if payload["store"].get("mongo_url"):
        payload["store"]["mongo_url"] = "***"
    console.print(f"# {state.repository.path}", style="dim")
    console.print(yaml.safe_dump(payload, sort_keys=False, allow_unicode=True))


@log_app.command("tail", help="Show the last lines of the crawler log.")
def log_tail(
    lines: int = typer.Option(50, "--lines", "-n", min=1, help="Number of lines."),
    errors: bool = typer.Option(False, "--errors", help="Show the error log instead."),
) -> None:
    path = default_log_dir() / ("error.log" if errors else "crawler.log")
    for line in tail_log(path, lines):
        console.print(line.rstrip("\n"), markup=False, highlight=False)


def cli() -> None:
    """Console script entrypoint."""

    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
