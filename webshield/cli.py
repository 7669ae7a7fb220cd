#!/usr/bin/env python3
"""
WebShield CLI
==============

Usage:
    webshield serve                     # Run the API server
    webshield scan example.com          # One-off scan, printed to the terminal
    webshield plans                     # Show the plan catalog
    webshield questions                 # Show the NIS2 question set
    webshield doctor                    # Check configuration
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from webshield import __version__
from webshield.config import settings
from webshield.errors import WebShieldError
from webshield.plans import list_plans
from webshield.services.compliance import ANSWER_OPTIONS, QUESTIONS
from webshield.services.scanner import build_scanner

app = typer.Typer(
    name="webshield",
    help="WebShield - website security scanning and NIS2 compliance",
    add_completion=False,
    rich_markup_mode="rich",
)
console = Console()

SEVERITY_STYLE = {"critical": "bold red", "warning": "yellow", "info": "cyan"}


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Bind address (default from HOST)"),
    port: Optional[int] = typer.Option(None, help="Port (default from PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes"),
):
    """Run the API server with uvicorn."""
    import uvicorn

    uvicorn.run(
        "webshield.api.server:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@app.command()
def scan(
    url: str = typer.Argument(..., help="Website to scan"),
    live: bool = typer.Option(False, "--live", help="Fetch real headers over HTTP"),
):
    """Scan a website without storing the result."""
    probe = "http" if live else settings.scanner_probe
    scanner = build_scanner(probe, settings.scanner_timeout_seconds)

    try:
        results = asyncio.run(scanner.scan(url))
    except WebShieldError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)

    console.print(f"[bold]{results['url']}[/bold]  score [bold]{results['score']}/100[/bold]")

    table = Table(box=box.SIMPLE)
    table.add_column("Severity")
    table.add_column("Finding")
    for issue in results["issues"]:
        style = SEVERITY_STYLE.get(issue["type"], "")
        table.add_row(f"[{style}]{issue['type']}[/{style}]", issue["title"])
    console.print(table)


@app.command()
def plans():
    """Show subscription plans."""
    table = Table(title="WebShield Plans", box=box.ROUNDED)
    table.add_column("Plan", style="bold")
    table.add_column("Price")
    table.add_column("Scans / month")
    table.add_column("AI advisor")
    table.add_column("Comprehensive reports")

    for plan in list_plans():
        quota = plan["scans_per_month"]
        table.add_row(
            plan["name"],
            f"{plan['price']} {plan['currency']}",
            "unlimited" if quota is None else str(quota),
            "yes" if plan["ai_advisor"] else "no",
            "yes" if plan["comprehensive_reports"] else "no",
        )
    console.print(table)


@app.command()
def questions():
    """Show the NIS2 self-assessment questions."""
    console.print("[bold]NIS2 Self-Assessment[/bold]\n")
    for q in QUESTIONS:
        console.print(f"  [cyan]{q['id']}.[/cyan] {q['question']}")
    console.print(f"\n[dim]Answers: {' / '.join(ANSWER_OPTIONS)}[/dim]")


@app.command()
def doctor():
    """Check configuration."""
    console.print("[bold]WebShield Doctor[/bold]\n")

    reports_dir = Path(settings.reports_dir)
    try:
        reports_dir.mkdir(parents=True, exist_ok=True)
        reports_ok = True
    except OSError:
        reports_ok = False

    checks = [
        ("Environment", settings.environment, True),
        ("Storage backend", settings.storage_backend, True),
        ("Scanner probe", settings.scanner_probe, True),
        ("AI advisor", "anthropic" if settings.anthropic_api_key else "template", True),
        ("Reports directory", str(reports_dir), reports_ok),
        ("Rate limiting", "on" if settings.rate_limit_enabled else "off", True),
    ]

    table = Table(box=box.SIMPLE)
    table.add_column("Check")
    table.add_column("Value")
    table.add_column("Status")
    for name, value, ok in checks:
        table.add_row(name, value, "[green]✓[/green]" if ok else "[red]✗[/red]")
    console.print(table)

    if not all(ok for _, _, ok in checks):
        raise typer.Exit(1)


@app.command()
def version():
    """Show version information."""
    console.print(f"[bold]WebShield[/bold] v{__version__}")


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
