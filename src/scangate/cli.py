"""scangate CLI — Typer application with run, init, check-policy, and fingerprint commands."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from scangate import __version__

app = typer.Typer(
    name="scangate",
    help="Gate CI pipelines on new security findings.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console(stderr=True)


def _fail(label: str, exc: Exception) -> None:
    console.print(f"[bold red]{label}:[/bold red] {escape(str(exc))}")
    raise typer.Exit(code=2) from exc


# ── run ───────────────────────────────────────────────────────────────────────


@app.command()
def run(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .scangate.toml"),
    results: Optional[str] = typer.Option(None, "--results", "-r", help="Scanner results JSON document"),
    policy: Optional[str] = typer.Option(None, "--policy", "-p", help="Policy YAML (URL or path)"),
    report: Optional[str] = typer.Option(None, "--report", "-o", help="Where to write the SARIF report"),
    repo_dir: Optional[str] = typer.Option(None, "--repo-dir", help="Checked-out revision used for blame"),
    source_url: Optional[str] = typer.Option(None, "--source-url", help="Repository URL (may carry a token)"),
    job_id: Optional[str] = typer.Option(None, "--job-id", help="Job identifier for the outcome record"),
    store: Optional[str] = typer.Option(None, "--store", help="Ledger backend: mongo | file | memory"),
    sast: Optional[bool] = typer.Option(None, "--sast/--no-sast", help="Gate SAST results"),
    sca: Optional[bool] = typer.Option(None, "--sca/--no-sca", help="Gate dependency results"),
    secret: Optional[bool] = typer.Option(None, "--secret/--no-secret", help="Gate secret results"),
    license: Optional[bool] = typer.Option(None, "--license/--no-license", help="Gate license results"),
    no_tables: bool = typer.Option(False, "--no-tables", help="Only print the summary and verdict"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    debug: bool = typer.Option(False, "--debug", help="Debug output with timing"),
) -> None:
    """Deduplicate scan results, evaluate the policy, and emit the report."""
    from scangate.config.loader import load_config
    from scangate.errors import ConfigError, ScanGateError
    from scangate.log import configure_logging
    from scangate.output import terminal
    from scangate.pipeline.engine import run as run_pipeline

    configure_logging(verbose=verbose, debug=debug)

    # --- Load config ---
    try:
        cfg = load_config(Path.cwd(), config)
    except ConfigError as exc:
        _fail("Config error", exc)

    # --- CLI overrides ---
    if results:
        cfg.workspace.results_path = results
    if policy:
        cfg.policy.source = policy
    if report:
        cfg.workspace.report_path = report
    if repo_dir:
        cfg.workspace.repo_dir = repo_dir
    if source_url:
        cfg.workspace.source_url = source_url
    if job_id:
        cfg.notify.job_id = job_id
    if store:
        if store not in ("mongo", "file", "memory"):
            console.print(f"[bold red]Invalid store:[/bold red] {store}")
            raise typer.Exit(code=2)
        if store == "mongo" and not cfg.store.mongo_uri:
            console.print("[bold red]Config error:[/bold red] --store mongo requires SCANGATE_MONGO_URI")
            raise typer.Exit(code=2)
        cfg.store.backend = store  # type: ignore[assignment]
    for name, flag in (("sast", sast), ("sca", sca), ("secret", secret), ("license", license)):
        if flag is not None:
            setattr(cfg.scans, name, flag)
    if no_tables:
        cfg.output.show_tables = False

    if verbose or debug:
        console.print(f"[dim]Scans enabled: {', '.join(cfg.scans.enabled()) or 'none'}[/dim]")
        console.print(f"[dim]Ledger: {cfg.store.backend}[/dim]")
        console.print(f"[dim]Policy: {cfg.policy.source or '(none)'}[/dim]")

    # --- Run pipeline ---
    try:
        result = run_pipeline(cfg)
    except ScanGateError as exc:
        _fail("Error", exc)

    if not result.results_found:
        console.print("[dim]No scan results found — nothing to gate.[/dim]")
        raise typer.Exit(code=0)

    terminal.render(
        result.outcomes,
        result.gate,
        console=console,
        show_tables=cfg.output.show_tables,
        message_width=cfg.output.message_width,
    )
    if verbose or debug:
        console.print(f"[dim]SARIF report: {result.report_path}[/dim]")
    if debug:
        console.print(f"[dim]Run duration: {result.duration_ms:.0f}ms[/dim]")

    raise typer.Exit(code=result.exit_code)


# ── check-policy ──────────────────────────────────────────────────────────────


@app.command("check-policy")
def check_policy(
    source: str = typer.Argument(..., help="Policy YAML (URL or path)"),
) -> None:
    """Validate a policy document and list its rules."""
    import httpx

    from scangate.errors import PolicySourceError
    from scangate.policy.loader import load_policy

    try:
        with httpx.Client(follow_redirects=True) as client:
            policy = load_policy(source, client)
    except PolicySourceError as exc:
        _fail("Policy error", exc)

    if policy.is_empty:
        console.print("[yellow]⚠[/yellow]  Policy has no rules; the gate can never fail.")
        raise typer.Exit(code=0)

    table = Table(title="Policy Rules", title_style="bold", border_style="dim")
    table.add_column("Scan", style="cyan")
    table.add_column("Rule")
    for section in ("sast", "sca"):
        for rule in getattr(policy, section):
            table.add_row(section, f"{rule.key} {rule.operator.phrase} {rule.value}")
    for section in ("dep", "secret", "license"):
        node = getattr(policy, section)
        if node is not None:
            table.add_row(section, f"contains {', '.join(node.contains) or '(empty)'}")
    if policy.secret_count is not None:
        rule = policy.secret_count
        table.add_row("secret", f"new secrets {rule.operator.phrase} {rule.value}")
    console.print(table)
    console.print("[green]✓[/green] Policy is valid")


# ── fingerprint ───────────────────────────────────────────────────────────────


@app.command()
def fingerprint(
    results: str = typer.Argument(..., help="Scanner results JSON document"),
) -> None:
    """Print the content fingerprint of every finding in a results document."""
    from scangate.errors import MalformedInputError
    from scangate.findings.fingerprint import fingerprint as compute
    from scangate.findings.normalizer import load_results, normalize_section
    from scangate.pipeline.engine import SCAN_ORDER

    try:
        document = load_results(Path(results))
        if document is None:
            console.print(f"[bold red]Error:[/bold red] results file not found: {results}")
            raise typer.Exit(code=2)
        for kind in SCAN_ORDER:
            for finding in normalize_section(kind, document):
                print(f"{compute(finding)}  {kind.tag:<7}  {finding.identifier}  {finding.location.display}")
    except MalformedInputError as exc:
        _fail("Input error", exc)


# ── init ──────────────────────────────────────────────────────────────────────


@app.command()
def init(
    policy: bool = typer.Option(True, "--policy/--no-policy", help="Also write a starter policy.yaml"),
) -> None:
    """Generate a starter .scangate.toml (and policy.yaml) in the current directory."""
    from scangate.config.defaults import DEFAULT_POLICY, DEFAULT_TOML
    from scangate.config.loader import CONFIG_FILENAME

    root = Path.cwd()
    config_path = root / CONFIG_FILENAME

    if config_path.exists():
        console.print(f"[yellow]⚠[/yellow]  {CONFIG_FILENAME} already exists at {config_path}")
        raise typer.Exit(code=1)

    config_path.write_text(DEFAULT_TOML, encoding="utf-8")
    console.print(f"[green]✓[/green] Created {config_path}")

    if policy:
        policy_path = root / "policy.yaml"
        if policy_path.exists():
            console.print(f"[yellow]⚠[/yellow]  {policy_path} already exists, left untouched")
        else:
            policy_path.write_text(DEFAULT_POLICY, encoding="utf-8")
            console.print(f"[green]✓[/green] Created {policy_path}")


# ── version ───────────────────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        print(f"scangate {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback,
        is_eager=True, help="Show version and exit",
    ),
) -> None:
    """scangate — Gate CI pipelines on new security findings."""
