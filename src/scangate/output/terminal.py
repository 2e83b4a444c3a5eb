"""Rich terminal reporter — per-scan tables, severity pills, verdict banner."""

from __future__ import annotations

from typing import Iterable, List

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from scangate.findings.models import ScanKind, ScanOutcome, TriagedFinding
from scangate.findings.redactor import redact
from scangate.policy.models import GateResult

_SEVERITY_STYLE = {
    "critical": "bold white on red",
    "high": "bold white on dark_orange",
    "error": "bold white on dark_orange",
    "medium": "bold black on yellow",
    "warning": "bold black on yellow",
    "low": "bold black on bright_cyan",
    "info": "bold black on bright_cyan",
}


def _severity_pill(severity: str) -> Text:
    return Text(f" {severity.upper()} ", style=_SEVERITY_STYLE.get(severity, "dim"))


def _truncate(text: str, width: int) -> str:
    text = text.replace("\n", " ")
    if len(text) > width:
        text = text[: width - 1] + "…"
    return escape(text)


def _table(kind: ScanKind, new: List[TriagedFinding], width: int) -> Table:
    title = {
        ScanKind.SAST: "SAST Results",
        ScanKind.SCA: "SCA Results",
        ScanKind.SECRET: "Secret Results",
        ScanKind.LICENSE: "License Details",
    }[kind]
    table = Table(title=title, show_lines=True, title_style="bold", border_style="dim")
    table.add_column("#", justify="right", style="dim")

    if kind is ScanKind.SAST:
        for col in ("Path", "Severity", "Message", "Author"):
            table.add_column(col)
        for i, t in enumerate(new, 1):
            f = t.finding
            table.add_row(
                str(i), escape(f.location.display), _severity_pill(f.severity),
                _truncate(f.base_message, width), escape(t.attribution.name or "-"),
            )
    elif kind is ScanKind.SCA:
        for col in ("Package", "Severity", "Summary", "CWE ID", "Aliases"):
            table.add_column(col)
        for i, t in enumerate(new, 1):
            f = t.finding
            meta = f.sca
            table.add_row(
                str(i), escape(meta.package_ref) if meta else "-", _severity_pill(f.severity),
                _truncate(f.base_message, width), escape(meta.cwe_id) if meta else "",
                escape(meta.alias) if meta else "",
            )
    elif kind is ScanKind.SECRET:
        for col in ("File", "Line", "Raw", "Detector", "Commit"):
            table.add_column(col)
        for i, t in enumerate(new, 1):
            f = t.finding
            table.add_row(
                str(i), escape(f.location.path), str(f.location.start_line or "-"),
                escape(redact(f.secret.raw if f.secret else "")), escape(f.identifier),
                (t.attribution.commit_hash or "UNKNOWN")[:12],
            )
    else:
        for col in ("Manifest", "Package", "Licenses"):
            table.add_column(col)
        for i, t in enumerate(new, 1):
            f = t.finding
            table.add_row(
                str(i), escape(f.location.path), escape(f.identifier),
                escape(", ".join(f.license.licenses)) if f.license else "",
            )
    return table


def render(
    outcomes: Iterable[ScanOutcome],
    gate: GateResult,
    *,
    console: Console,
    show_tables: bool = True,
    message_width: int = 50,
) -> None:
    """Print NEW findings and the gate verdict."""
    outcomes = list(outcomes)
    total_new = sum(len(o.new_findings) for o in outcomes)

    if show_tables:
        for outcome in outcomes:
            new = outcome.new_findings
            if new:
                console.print()
                console.print(_table(outcome.kind, new, message_width))

    console.print()
    if total_new == 0:
        console.print("[dim]No new issues found in scan results.[/dim]")
    for outcome in outcomes:
        line = (
            f"[dim]{outcome.kind.tag:<8}[/dim] new: {len(outcome.new_findings):<4} "
            f"already reported: {outcome.known_count}"
        )
        if outcome.skipped_reason:
            line += f"  [yellow](skipped: {escape(outcome.skipped_reason)})[/yellow]"
        console.print(line)

    console.print()
    if gate.failed:
        console.print("[bold red]❌ Pipeline Failed[/bold red]")
        console.print(f"[red]Reason:[/red] {escape(gate.reason)}")
        if len(gate.violations) > 1:
            console.print(f"[dim]({len(gate.violations)} rules violated in total)[/dim]")
        console.print(f"[bold]{gate.exit_class.message}[/bold]")
    else:
        console.print("[bold green]✅ Pipeline Passed[/bold green]")
        if not gate.policy_supplied:
            console.print(f"[dim]{gate.reason}[/dim]")
