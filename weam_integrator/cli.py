"""Typer-based CLI for the Weam app integrator."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from . import __version__, config, config_manager
from .backups import BackupStore
from .config import OUTPUT_DIR_NAME
from .errors import IntegratorError
from .generator import TemplateGenerator
from .llm import CodeOracle
from .models import AppModel, GeneratedFile, MutationReport, Preferences, TestReport
from .mutation_engine import MutationEngine
from .scanner import AppScanner
from .verifier import IntegrationVerifier

console = Console()

app = typer.Typer(
    help="🔌 Weam integrator: scan a JavaScript app and wire it into Weam.ai.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="⚙️  LLM provider configuration", no_args_is_help=True)
app.add_typer(config_app, name="config")


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"Weam Integrator v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Show debug logging."),
):
    """Weam Integrator: generate or apply the changes that make an app run inside Weam."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=verbose, show_path=False)],
        force=True,
    )


def _fail(exc: IntegratorError) -> NoReturn:
    console.print(f"[red]❌ {exc}[/red]")
    raise typer.Exit(code=1)


def _default_output_dir(model: AppModel) -> Path:
    app_root = Path(model.root_path)
    return app_root.parent / f"{app_root.name}-{OUTPUT_DIR_NAME}"


def _preferences(
    model: AppModel,
    name: Optional[str],
    description: Optional[str],
    category: Optional[str],
    no_auth: bool,
    no_database: bool,
    no_branding: bool,
) -> Preferences:
    return Preferences.for_model(
        model,
        app_name=name,
        description=description,
        category=category,
        add_auth=not no_auth,
        add_database=not no_database,
        add_branding=not no_branding,
    )


def _print_model(model: AppModel) -> None:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Name", model.name)
    table.add_row("Framework", model.framework)
    table.add_row("App type", model.app_type)
    table.add_row("API routes", str(len(model.api_routes)))
    table.add_row("Models", str(len(model.models)))
    table.add_row("Components", str(len(model.components)))
    table.add_row("Auth", "✅" if model.has_auth else "no")
    table.add_row("Database", "✅" if model.has_database else "no")
    console.print(Panel(table, title=f"[bold]{model.root_path}[/bold]", border_style="cyan"))

    if model.api_routes:
        routes = Table(title="API routes", show_lines=False)
        routes.add_column("Method", style="bold")
        routes.add_column("Path")
        routes.add_column("File", style="dim")
        for route in model.api_routes:
            routes.add_row(route.method, route.path, route.source_file)
        console.print(routes)

    if model.integration_points:
        console.print("[bold]Integration points[/bold]")
        for point in model.integration_points:
            console.print(f"  [yellow]{point.kind:<9}[/yellow] {point.rationale} [dim]({point.source_file})[/dim]")


def _print_files(files: List[GeneratedFile]) -> None:
    table = Table(title=f"Generated {len(files)} file(s)")
    table.add_column("Type", style="cyan")
    table.add_column("Path")
    table.add_column("Description", style="dim")
    for generated in files:
        table.add_row(generated.type, generated.path, generated.description)
    console.print(table)


def _print_report(report: TestReport) -> None:
    color = "green" if report.failed == 0 else "red"
    console.print(
        f"\n🧪 [{color}]{report.passed}/{report.total} checks passed[/{color}] "
        f"({report.success_rate:.1f}%)"
    )
    for error in report.errors:
        console.print(f"   [red]❌ {error}[/red]")


def _print_mutation(report: MutationReport) -> None:
    for change in report.changes:
        if change.success:
            suffix = f" [dim](backup: {Path(change.backup_path).name})[/dim]" if change.backup_path else ""
            console.print(f"   [green]✅ {change.file}[/green]{suffix}")
        else:
            console.print(f"   [red]❌ {change.file}: {change.error}[/red]")
    summary = report.summary()
    console.print(
        f"\n📝 {summary['successful']} modified, {summary['failed']} failed, {summary['total']} proposed"
    )


@app.command("scan")
def scan(
    app_path: Path = typer.Argument(..., help="Path to the app to analyze."),
    as_json: bool = typer.Option(False, "--json", help="Print the app model as JSON."),
):
    """🔍 Analyze an app and show what Weam integration it needs."""
    try:
        model = AppScanner().scan(app_path)
    except IntegratorError as exc:
        _fail(exc)

    if as_json:
        typer.echo(json.dumps(model.to_dict(), indent=2))
        return
    _print_model(model)


@app.command("generate")
def generate(
    app_path: Path = typer.Argument(..., help="Path to the app to integrate."),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Output directory (default: <app>-weam-integration beside the app)."
    ),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="App name shown in Weam."),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="App description."),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Supersolutions category."),
    no_auth: bool = typer.Option(False, "--no-auth", help="Skip session middleware."),
    no_database: bool = typer.Option(False, "--no-database", help="Skip database integration."),
    no_branding: bool = typer.Option(False, "--no-branding", help="Skip logo, navigation and styles."),
    verify: bool = typer.Option(True, "--verify/--no-verify", help="Check the generated files afterwards."),
):
    """🏗️  Generate Weam integration files from templates."""
    try:
        model = AppScanner().scan(app_path)
        preferences = _preferences(model, name, description, category, no_auth, no_database, no_branding)
        output_dir = output or _default_output_dir(model)
        files = TemplateGenerator(output_dir).generate(model, preferences)
    except IntegratorError as exc:
        _fail(exc)

    _print_files(files)
    console.print(f"\n[green]✅ Integration files written to {output_dir}[/green]")

    if verify:
        report = IntegrationVerifier().verify(model.root_path, files)
        _print_report(report)
        if report.failed:
            raise typer.Exit(code=1)


@app.command("integrate")
def integrate(
    app_path: Path = typer.Argument(..., help="Path to the app to modify in place."),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="App name shown in Weam."),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="App description."),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Supersolutions category."),
    no_auth: bool = typer.Option(False, "--no-auth", help="Don't add authentication."),
    no_database: bool = typer.Option(False, "--no-database", help="Don't touch data models."),
    no_branding: bool = typer.Option(False, "--no-branding", help="Don't add branding."),
    llm_provider: Optional[str] = typer.Option(None, "--llm-provider", help="LLM provider override."),
    llm_model: Optional[str] = typer.Option(None, "--llm-model", help="LLM model override."),
    llm_api_key: Optional[str] = typer.Option(None, "--llm-api-key", help="API key override."),
):
    """🤖 Let the LLM rewrite the app's files for Weam (originals kept as .bak)."""
    try:
        model = AppScanner().scan(app_path)
        preferences = _preferences(model, name, description, category, no_auth, no_database, no_branding)
        oracle = CodeOracle(provider=llm_provider, model=llm_model, api_key=llm_api_key)
        console.print(f"🤖 Asking [cyan]{oracle.provider.name}/{oracle.provider.model}[/cyan] for changes...")
        report = MutationEngine(oracle).mutate(model.root_path, model, preferences)
    except IntegratorError as exc:
        _fail(exc)

    if not report.changes:
        console.print("[yellow]No changes proposed.[/yellow]")
        return
    _print_mutation(report)
    if report.failed:
        raise typer.Exit(code=1)


@app.command("verify")
def verify_output(
    app_path: Path = typer.Argument(..., exists=True, file_okay=False, help="Path to the scanned app."),
    output_dir: Path = typer.Argument(..., exists=True, file_okay=False, help="Generated integration directory."),
    check_startup: bool = typer.Option(False, "--check-startup", help="Also require a start script."),
):
    """🧪 Run the shallow checks against a generated integration directory."""
    output_dir = output_dir.resolve()
    files = [
        GeneratedFile(type=_guess_type(path, output_dir), path=str(path), description="")
        for path in sorted(p for p in output_dir.rglob("*") if p.is_file())
    ]
    report = IntegrationVerifier(check_startup=check_startup).verify(app_path, files)
    _print_report(report)
    if report.failed:
        raise typer.Exit(code=1)


# Output path prefix -> artifact type, for rebuilding a file list from disk
_TYPE_BY_PREFIX = (
    ("middleware/", "middleware"),
    ("lib/", "database"),
    ("models/", "model"),
    ("components/", "component"),
    ("styles/", "styles"),
    ("weam-proxy/", "proxy"),
    ("weam-page/", "page"),
    (".env", "config"),
    ("package.json", "package"),
)


def _guess_type(path: Path, output_dir: Path) -> str:
    rel = path.relative_to(output_dir).as_posix()
    for prefix, file_type in _TYPE_BY_PREFIX:
        if rel.startswith(prefix):
            return file_type
    return "documentation"


@app.command("backups")
def list_backups(app_path: Path = typer.Argument(..., exists=True, file_okay=False, help="App root.")):
    """🗂️  List .bak files left by `integrate`."""
    store = BackupStore()
    backups = store.list_backups(app_path)
    if not backups:
        typer.echo("No backups found.")
        return
    for backup in backups:
        typer.echo(str(backup.relative_to(app_path)))


@app.command("restore")
def restore(
    app_path: Path = typer.Argument(..., exists=True, file_okay=False, help="App root."),
    file: Optional[Path] = typer.Argument(None, help="File to restore, relative to the app root (default: all)."),
    show_diff: bool = typer.Option(False, "--diff", help="Show the diff being undone before restoring."),
):
    """⏪ Restore files from their .bak copies."""
    store = BackupStore()
    targets = [app_path / file] if file else [store.original_path_for(b) for b in store.list_backups(app_path)]
    if not targets:
        typer.echo("No backups found.")
        return

    restored = 0
    for target in targets:
        backup = store.backup_path_for(target)
        if show_diff and backup.is_file() and target.is_file():
            diff = store.create_diff(
                target.read_text(encoding="utf-8"),
                backup.read_text(encoding="utf-8"),
                str(target.relative_to(app_path)),
            )
            if diff:
                console.print(diff, markup=False, highlight=False)
        if store.restore(target):
            restored += 1
            console.print(f"[green]✅ Restored {target.relative_to(app_path)}[/green]")
        else:
            console.print(f"[red]❌ No backup for {target.relative_to(app_path)}[/red]")

    if restored < len(targets):
        raise typer.Exit(code=1)


@config_app.command("set-llm")
def set_llm(
    provider: str = typer.Argument(..., help="LLM provider: openai, anthropic, ollama"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model name (uses provider default if not set)."),
    api_key: Optional[str] = typer.Option(None, "--api-key", "-k", help="API key for cloud providers."),
    endpoint: Optional[str] = typer.Option(None, "--endpoint", "-e", help="Custom endpoint URL."),
):
    """Switch the LLM provider used by `integrate`.

    Examples:
        weamint config set-llm openai -k YOUR_API_KEY
        weamint config set-llm anthropic -k YOUR_API_KEY -m claude-3-5-sonnet-20241022
        weamint config set-llm ollama -m qwen2.5-coder:7b
    """
    provider = provider.lower().strip()
    if provider not in config_manager.ALL_PROVIDERS:
        console.print(
            f"[red]❌ Unknown provider '{provider}'. Choose from: {', '.join(config_manager.ALL_PROVIDERS)}[/red]"
        )
        raise typer.Exit(code=1)

    defaults = config_manager.get_provider_config(provider)
    resolved_model = model or defaults.get("model", "")
    resolved_endpoint = endpoint or defaults.get("endpoint", "")

    if not config_manager.save_config(provider, resolved_model, api_key or "", resolved_endpoint):
        console.print("[red]❌ Failed to save configuration![/red]")
        raise typer.Exit(code=1)

    console.print(f"[green]✅ LLM provider set to: {provider}[/green]")
    console.print(f"  Provider: [cyan]{provider}[/cyan]")
    console.print(f"  Model:    [cyan]{resolved_model}[/cyan]")
    if resolved_endpoint:
        console.print(f"  Endpoint: {resolved_endpoint}")


@config_app.command("show-llm")
def show_llm():
    """Show the current LLM provider configuration."""
    cfg = config_manager.load_config()
    api_key = cfg.get("api_key", "")

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_row("Provider", cfg.get("provider", "openai"))
    table.add_row("Model", cfg.get("model", ""))
    if cfg.get("endpoint"):
        table.add_row("Endpoint", cfg["endpoint"])
    table.add_row("API Key", api_key[:8] + "•" * min(len(api_key) - 8, 16) if api_key else "(not set)")
    table.add_row("Config", str(config.CONFIG_FILE))
    console.print(Panel(table, title="🔍 LLM Configuration", border_style="cyan"))


@config_app.command("unset-llm")
def unset_llm():
    """Reset the LLM configuration to defaults (removes stored API keys)."""
    if not config.CONFIG_FILE.exists():
        console.print("ℹ️  No LLM configuration found. Nothing to unset.")
        return
    if not config_manager.clear_config():
        console.print("[red]❌ Failed to reset configuration![/red]")
        raise typer.Exit(code=1)
    console.print("[green]✅ LLM configuration removed; defaults apply on next run.[/green]")


if __name__ == "__main__":
    app()
