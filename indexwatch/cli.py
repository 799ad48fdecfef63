"""Typer CLI application for IndexWatch.

Provides commands for deindexation detection, diagnostics, recovery
planning and reporting, and for managing JSON-LD schema on WordPress.
"""

import asyncio
import json
import logging
import time
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from indexwatch.app import DEFAULT_CONFIG_PATH, IndexWatch

console = Console()
app = typer.Typer(
    name="indexwatch",
    help="IndexWatch -- indexation drop recovery and WordPress schema management.",
    add_completion=False,
    no_args_is_help=True,
)

_STATUS_STYLE = {
    "ok": "[green]✔ ok[/green]",
    "warning": "[yellow]⚠ warning[/yellow]",
    "error": "[red]✘ error[/red]",
    "critical": "[bold red]✘ critical[/bold red]",
    "checking": "[dim]○ not checked[/dim]",
}

ConfigOption = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to settings.yaml.")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Enable debug logging.")
ContentTypeOption = typer.Option("pages", "--type", "-t", help="Content collection: pages or posts.")


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging level and format."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _run_async(coro):
    """Run an async coroutine from synchronous CLI context."""
    return asyncio.run(coro)


def _get_app(config: str, with_database: bool = True) -> IndexWatch:
    instance = IndexWatch(config_path=config)
    instance.initialize(with_database=with_database)
    return instance


def _print_json(data: Any) -> None:
    console.print_json(json.dumps(data, default=str))


def _check_content_type(content_type: str) -> None:
    from indexwatch.utils.validators import validate_content_type
    ok, err = validate_content_type(content_type)
    if not ok:
        console.print(f"[red]{err}[/red]")
        raise typer.Exit(code=2)


def _check_site(site: str) -> str:
    from indexwatch.utils.helpers import normalise_site_url
    from indexwatch.utils.validators import validate_site_url
    site = normalise_site_url(site)
    ok, err = validate_site_url(site)
    if not ok:
        console.print(f"[red]{err}[/red]")
        raise typer.Exit(code=2)
    return site


def _print_diagnostics(result: dict[str, Any]) -> None:
    table = Table(title=f"Diagnostics: {result['site_url']}", show_header=True, header_style="bold magenta")
    table.add_column("Check", style="cyan", min_width=15)
    table.add_column("Status", min_width=12)
    table.add_column("Issues", max_width=60)
    for name, check in result["diagnostics"].items():
        table.add_row(
            name.replace("_", " ").title(),
            _STATUS_STYLE.get(check["status"], check["status"]),
            "; ".join(check["issues"]),
        )
    console.print(table)
    summary = result["summary"]
    console.print(
        f"Overall health: [bold]{summary['overall_health']}[/bold] "
        f"(critical={summary['critical']}, errors={summary['errors']}, warnings={summary['warnings']})"
    )


def _print_actions(actions: list[dict[str, Any]], title: str = "Recovery Plan") -> None:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Priority", min_width=8)
    table.add_column("Action", style="cyan")
    table.add_column("Title")
    for action in actions:
        table.add_row(action["priority"], action["action"], action["title"])
    console.print(table)


# ------------------------------------------------------------------
# detect
# ------------------------------------------------------------------
@app.command()
def detect(
    current: int = typer.Option(..., "--current", help="Pages indexed now."),
    historical: int = typer.Option(..., "--historical", help="Pages indexed at the reference point."),
    threshold: Optional[float] = typer.Option(None, "--threshold", help="Drop fraction that counts as a drop."),
    site: Optional[str] = typer.Option(None, "--site", help="Diagnose this site and raise an alert on a drop."),
    config: str = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Detect an indexation drop between two coverage counts."""
    _setup_logging(verbose)
    from indexwatch.modules.deindex_recovery.detector import (
        DEFAULT_DROP_THRESHOLD,
        detect_indexation_drop,
    )

    if site is None:
        result = detect_indexation_drop(
            current, historical, threshold if threshold is not None else DEFAULT_DROP_THRESHOLD
        )
        _print_json(result)
        return

    site = _check_site(site)
    instance = _get_app(config, with_database=False)
    monitor = instance.get_recovery_monitor(persist=False, drop_threshold=threshold)
    outcome = _run_async(monitor.check_site(site, current, historical))
    drop = outcome["drop"]
    if outcome["alert"] is None:
        console.print(f"[green]No indexation drop[/green] ({drop['drop_percentage']}%).")
        return
    alert = outcome["alert"]
    console.print(Panel(f"[bold red]{alert['title']}[/bold red]\n{alert['message']}"))
    _print_diagnostics(outcome["diagnostics"])
    _print_actions(outcome["plan"]["actions"])
    console.print(f"Estimated recovery time: {alert['estimated_recovery_time']}")


# ------------------------------------------------------------------
# diagnose
# ------------------------------------------------------------------
@app.command()
def diagnose(
    site: str = typer.Argument(..., help="Site URL (e.g. https://example.com)."),
    save: bool = typer.Option(False, "--save", help="Record the run in the history database."),
    config: str = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Run the deindexation diagnostic checklist against a site."""
    _setup_logging(verbose)
    site = _check_site(site)
    instance = _get_app(config, with_database=save)
    result = _run_async(instance.get_diagnostics().run(site))
    _print_diagnostics(result)
    if save:
        from indexwatch.modules.deindex_recovery.history import record_diagnostics
        record_diagnostics(result)
        console.print("[green]✔[/green] Diagnostic run saved.")


# ------------------------------------------------------------------
# plan
# ------------------------------------------------------------------
@app.command()
def plan(
    site: str = typer.Argument(..., help="Site URL to diagnose."),
    as_json: bool = typer.Option(False, "--json", help="Print the plan as JSON."),
    config: str = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Diagnose a site and print the prioritised recovery plan."""
    _setup_logging(verbose)
    site = _check_site(site)
    from indexwatch.modules.deindex_recovery.recovery import generate_recovery_plan

    instance = _get_app(config, with_database=False)
    diagnostics = _run_async(instance.get_diagnostics().run(site))
    recovery_plan = generate_recovery_plan(diagnostics)
    if as_json:
        _print_json(recovery_plan)
        return
    _print_actions(recovery_plan["actions"])
    console.print(f"Estimated recovery time: {recovery_plan['estimated_recovery_time']}")


# ------------------------------------------------------------------
# execute
# ------------------------------------------------------------------
@app.command()
def execute(
    action: str = typer.Argument(..., help="Action id, e.g. request_reindex."),
    site: str = typer.Argument(..., help="Site URL the action applies to."),
    config: str = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Execute one recovery action."""
    _setup_logging(verbose)
    site = _check_site(site)
    instance = _get_app(config, with_database=False)
    result = _run_async(instance.get_recovery_executor().execute(action, site))
    _print_json(result)
    if result.get("error"):
        raise typer.Exit(code=1)


# ------------------------------------------------------------------
# report
# ------------------------------------------------------------------
@app.command()
def report(
    site: str = typer.Argument(..., help="Site URL to report on."),
    baseline: Optional[int] = typer.Option(None, "--baseline", help="Baseline coverage (defaults to history)."),
    save: bool = typer.Option(True, "--save/--no-save", help="Record coverage and diagnostics."),
    config: str = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Generate the weekly recovery report for a site."""
    _setup_logging(verbose)
    site = _check_site(site)
    instance = _get_app(config)
    if baseline is None:
        from indexwatch.modules.deindex_recovery.history import get_baseline
        baseline = get_baseline(site)
    monitor = instance.get_recovery_monitor(persist=save)
    result = _run_async(monitor.generate_recovery_report(site, {"baseline": baseline}))
    _print_json(result)


# ------------------------------------------------------------------
# progress
# ------------------------------------------------------------------
@app.command()
def progress(
    site: str = typer.Argument(..., help="Site URL being tracked."),
    record: Optional[int] = typer.Option(None, "--record", help="Record this coverage count first."),
    baseline: Optional[int] = typer.Option(None, "--baseline", help="Baseline coverage (defaults to history max)."),
    config: str = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Show recovery progress from recorded coverage checkpoints."""
    _setup_logging(verbose)
    site = _check_site(site)
    from indexwatch.modules.deindex_recovery.history import (
        get_baseline,
        get_checkpoints,
        record_coverage,
    )
    from indexwatch.modules.deindex_recovery.reporting import track_recovery_progress

    _get_app(config)
    if record is not None:
        record_coverage(site, record)
    if baseline is None:
        baseline = get_baseline(site)
    result = track_recovery_progress(site, baseline, get_checkpoints(site))
    _print_json(result)


# ------------------------------------------------------------------
# schema-*
# ------------------------------------------------------------------
async def _with_schema_manager(instance: IndexWatch, operation):
    async with instance.get_wordpress_client() as client:
        manager = instance.get_schema_manager(client)
        return await operation(manager)


def _run_schema_operation(instance: IndexWatch, operation):
    """Run *operation(manager)*; a missing WordPress URL exits with code 2."""
    try:
        return _run_async(_with_schema_manager(instance, operation))
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=2)


@app.command("schema-get")
def schema_get(
    item_id: int = typer.Argument(..., help="WordPress page/post id."),
    content_type: str = ContentTypeOption,
    config: str = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Show the JSON-LD schema stored on a page or post."""
    _setup_logging(verbose)
    _check_content_type(content_type)
    instance = _get_app(config, with_database=False)
    result = _run_schema_operation(
        instance, lambda m: m.fetch_schema(item_id, content_type)
    )
    _print_json(result)
    if result["status"] == "error":
        raise typer.Exit(code=1)


@app.command("schema-add")
def schema_add(
    item_id: int = typer.Argument(..., help="WordPress page/post id."),
    schema_file: Optional[Path] = typer.Option(None, "--file", "-f", exists=True, help="JSON file with the schema."),
    generate: Optional[str] = typer.Option(None, "--generate", "-g", help="Schema type to generate, e.g. FAQ."),
    data: str = typer.Option("{}", "--data", "-d", help="JSON arguments for --generate."),
    method: str = typer.Option("custom_field", "--method", "-m", help="custom_field or content_injection."),
    content_type: str = ContentTypeOption,
    config: str = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Write a JSON-LD schema (from a file or generated) to a page or post."""
    _setup_logging(verbose)
    _check_content_type(content_type)
    if schema_file is not None:
        schema = json.loads(schema_file.read_text(encoding="utf-8"))
    elif generate:
        from indexwatch.modules.schema_manager.schema_generator import SchemaGenerator
        try:
            schema = SchemaGenerator().generate_schema(generate, json.loads(data))
        except (ValueError, TypeError) as exc:
            console.print(f"[red]Cannot generate {generate} schema: {exc}[/red]")
            raise typer.Exit(code=2)
    else:
        console.print("[red]Pass --file or --generate.[/red]")
        raise typer.Exit(code=2)
    instance = _get_app(config, with_database=False)
    result = _run_schema_operation(
        instance, lambda m: m.add_schema_to_page(item_id, schema, method, content_type)
    )
    _print_json(result)
    if not result.get("success"):
        raise typer.Exit(code=1)


@app.command("schema-remove")
def schema_remove(
    item_id: int = typer.Argument(..., help="WordPress page/post id."),
    content_type: str = ContentTypeOption,
    config: str = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Remove the JSON-LD schema from a page or post."""
    _setup_logging(verbose)
    _check_content_type(content_type)
    instance = _get_app(config, with_database=False)
    result = _run_schema_operation(
        instance, lambda m: m.remove_schema_from_page(item_id, content_type)
    )
    _print_json(result)
    if not result.get("success"):
        raise typer.Exit(code=1)


@app.command("schema-audit")
def schema_audit(
    config: str = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Audit every page and post for schema markup."""
    _setup_logging(verbose)
    instance = _get_app(config, with_database=False)
    result = _run_schema_operation(instance, lambda m: m.audit_all_schemas())

    table = Table(title="Schema Audit", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan")
    table.add_column("Type")
    table.add_column("Title", max_width=40)
    table.add_column("Status")
    table.add_column("Schema")
    for page in result["pages"]:
        schema_type = page["schema_type"]
        if isinstance(schema_type, list):
            schema_type = ", ".join(str(t) for t in schema_type)
        table.add_row(
            str(page["id"]), page["type"], page["title"],
            page["status"], str(schema_type or "-"),
        )
    console.print(table)
    console.print(
        f"Total {result['total']}: {result['with_schema']} with schema, "
        f"{result['without_schema']} without, {result['invalid']} invalid"
    )
    if result.get("error"):
        console.print(f"[red]{result['error']}[/red]")
        raise typer.Exit(code=1)


@app.command("schema-recommend")
def schema_recommend(
    item_id: int = typer.Argument(..., help="WordPress page/post id."),
    content_type: str = ContentTypeOption,
    config: str = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Suggest schema types for a page or post."""
    _setup_logging(verbose)
    _check_content_type(content_type)
    instance = _get_app(config, with_database=False)
    result = _run_schema_operation(
        instance, lambda m: m.get_schema_recommendations(item_id, content_type)
    )
    _print_json(result)


# ------------------------------------------------------------------
# schedule
# ------------------------------------------------------------------
@app.command()
def schedule(
    site: str = typer.Argument(..., help="Site URL to report on every week."),
    cron: Optional[str] = typer.Option(None, "--cron", help="5-field cron expression."),
    config: str = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Run the weekly recovery report on a schedule until interrupted."""
    _setup_logging(verbose)
    site = _check_site(site)
    instance = _get_app(config)
    cron = cron or instance.config.get("monitoring", {}).get("report_cron", "0 6 * * 1")
    scheduler = instance.get_scheduler()
    scheduler.schedule_weekly_report(site, cron=cron, config_path=config)
    scheduler.start()
    console.print(f"[bold cyan]Scheduled weekly report for {site} [{cron}]. Ctrl+C to stop.[/bold cyan]")
    try:
        while True:
            time.sleep(60)
    except KeyboardInterrupt:
        scheduler.stop()


# ------------------------------------------------------------------
# status
# ------------------------------------------------------------------
@app.command()
def status(
    config: str = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Show configuration and connectivity status."""
    _setup_logging(verbose)
    console.print(Panel("[bold cyan]System Status[/bold cyan]"))
    instance = _get_app(config)

    table = Table(title="Component Status", show_header=True, header_style="bold magenta")
    table.add_column("Component", style="cyan", min_width=15)
    table.add_column("Status", min_width=10)
    table.add_column("Details", max_width=60)
    for name, info in instance.get_status().items():
        table.add_row(
            name.replace("_", " ").title(),
            _STATUS_STYLE.get(info["status"], info["status"]),
            info["details"],
        )
    console.print(table)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
