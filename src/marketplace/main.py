"""
Marketplace - CLI Entry Point.

Usage:
    marketplace status --user <id>    Show a user's saved onboarding progress
    marketplace tiers --user <id>     Show the user's pricing tiers
    marketplace reset --user <id>     Discard a user's onboarding progress
    marketplace serve                 Start the onboarding API server
    marketplace version               Show version
    marketplace --help                Show help
"""

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from marketplace.config import get_settings
from onboarding.persistence import create_state_store
from onboarding.state import WizardStep
from onboarding.tiers import format_monthly_equivalent
from onboarding.wizard import OnboardingWizard

app = typer.Typer(
    name="marketplace",
    help="Marketplace - analyst onboarding tools.",
    add_completion=False,
)
console = Console()

STEP_LABELS = {
    WizardStep.PROFILE: "Profile",
    WizardStep.PRICING: "Pricing",
    WizardStep.CREDENTIALS: "SEBI Credentials",
    WizardStep.SUBMIT: "Submit",
}


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
) -> None:
    """Configure logging for every command."""
    level = "DEBUG" if verbose else get_settings().log_level
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_wizard(user: str) -> OnboardingWizard:
    return OnboardingWizard(create_state_store(user, get_settings()))


@app.command()
def status(
    user: str = typer.Option("local", "--user", "-u", help="User id whose progress to show"),
) -> None:
    """Show saved onboarding progress for a user."""
    wizard = _load_wizard(user)
    progress = wizard.progress()
    form = wizard.form_data

    lines = []
    for step in WizardStep:
        marker = "✓" if step in progress["completed_steps"] else ("→" if step == wizard.current_step else " ")
        valid = "[green]complete[/green]" if progress["steps_valid"][int(step)] else "[yellow]incomplete[/yellow]"
        lines.append(f"{marker} {int(step)}. {STEP_LABELS[step]}  {valid}")

    console.print(
        Panel.fit(
            f"[bold]Step {progress['step']} of {progress['total']}[/bold] "
            f"({progress['percent']}% complete)\n"
            f"[dim]Last saved: {wizard.state.timestamp}[/dim]\n\n" + "\n".join(lines),
            title=f"Onboarding: {user}",
            border_style="green",
        )
    )

    if form.display_name:
        console.print(f"[bold]Profile:[/bold] {form.display_name} • {form.years_of_experience} years experience")
    if form.sebi_number:
        console.print(f"[bold]SEBI:[/bold] {form.sebi_number}" + (f" • RIA: {form.ria_number}" if form.ria_number else ""))

    errors = wizard.validate_step().errors
    if errors:
        console.print("\n[bold yellow]To finish this step:[/bold yellow]")
        for message in errors.values():
            console.print(f"  • {message}")


@app.command()
def tiers(
    user: str = typer.Option("local", "--user", "-u", help="User id whose tiers to show"),
) -> None:
    """Show a user's pricing tiers."""
    wizard = _load_wizard(user)
    if not wizard.form_data.pricing_tiers:
        console.print("[dim]No pricing tiers configured[/dim]")
        return

    table = Table(title="Pricing Tiers")
    table.add_column("#", justify="right")
    table.add_column("Name")
    table.add_column("Weekly")
    table.add_column("Monthly")
    table.add_column("Yearly")
    table.add_column("Per month")
    table.add_column("Status")

    for i, tier in enumerate(wizard.form_data.pricing_tiers, start=1):
        table.add_row(
            str(i),
            tier.name or "[dim]unnamed[/dim]",
            str(tier.weekly_price or "-"),
            str(tier.monthly_price or "-"),
            str(tier.yearly_price or "-"),
            format_monthly_equivalent(tier),
            "[green]Active[/green]" if tier.is_active else "[dim]Inactive[/dim]",
        )
    console.print(table)


@app.command()
def reset(
    user: str = typer.Option("local", "--user", "-u", help="User id whose progress to discard"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Discard a user's onboarding progress."""
    if not yes and not typer.confirm(f"Discard onboarding progress for {user}?"):
        raise typer.Abort()
    _load_wizard(user).reset_onboarding()
    console.print(f"[green]Onboarding progress cleared for {user}.[/green]")


@app.command()
def version() -> None:
    """Show version information."""
    from marketplace import __version__

    console.print(f"Marketplace version {__version__}")


@app.command()
def serve(
    port: int = typer.Option(8000, "--port", "-p", help="Port to run on"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload for development"),
) -> None:
    """Start the onboarding API server."""
    import os

    import uvicorn

    # Hosting platforms set PORT
    actual_port = int(os.environ.get("PORT", port))

    console.print("\n[bold green]Marketplace API[/bold green]")
    console.print(f"Starting server on http://localhost:{actual_port}")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    uvicorn.run(
        "marketplace.web.app:app",
        host="0.0.0.0",
        port=actual_port,
        reload=reload,
    )


if __name__ == "__main__":
    app()
