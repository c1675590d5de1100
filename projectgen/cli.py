"""
Command Line Interface for project-gen
"""

import asyncio
import sys

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .core.config import Config
from .core.errors import ProviderError, StageFatalError
from .generation.analyzer import AnalysisReport, ProjectAnalyzer
from .generation.pipeline import PipelineContext, PipelineOrchestrator
from .generation.updater import CHANGE_TYPES, append_change, update_project
from .providers.factory import available_providers, create_provider
from .utils.log_setup import setup_generation_logging

console = Console()

PROVIDER_CHOICE = click.Choice(available_providers(), case_sensitive=False)


def _load_config(config_path, verbose: bool) -> Config:
    try:
        config = Config.from_yaml(config_path)
    except FileNotFoundError as e:
        console.print(f"❌ {e}", style="bold red")
        sys.exit(1)
    setup_generation_logging(verbose=verbose or config.logging.debug, log_dir=config.logging.log_dir)
    return config


def _run(coro):
    """Run a coroutine; fatal pipeline and provider errors end the process with exit code 1"""
    try:
        return asyncio.run(coro)
    except StageFatalError as e:
        console.print(f"❌ {e.stage}: {e.message}", style="bold red")
        sys.exit(1)
    except ProviderError as e:
        console.print(f"❌ {e.provider}: {e.message}", style="bold red")
        if e.is_auth_error:
            console.print("💡 Check the credentials for this provider (see `project-gen status`)", style="yellow")
        sys.exit(1)


async def _generate(provider_name: str, config: Config, requirements: str, output: str,
                    is_update: bool = False) -> PipelineContext:
    provider = create_provider(provider_name, config)
    return await PipelineOrchestrator(provider, config).run(requirements, output, is_update=is_update)


async def _analyze(provider_name: str, config: Config, path: str, suggest_enhancements: bool) -> AnalysisReport:
    provider = create_provider(provider_name, config)
    return await ProjectAnalyzer(provider, config).analyze(path, suggest_enhancements)


async def _update(provider_name: str, config: Config, path: str, change_type: str, changes: str) -> PipelineContext:
    provider = create_provider(provider_name, config)
    return await update_project(provider, config, path, change_type, changes)


def _require_detail(value: str) -> str:
    if len(value.strip()) <= 10:
        raise click.BadParameter("Please provide detailed requirements (at least 10 characters)")
    return value


def _require_text(value: str) -> str:
    if not value.strip():
        raise click.BadParameter("Description cannot be empty")
    return value


def print_pipeline_summary(ctx: PipelineContext):
    verb = "updated" if ctx.is_update else "generated"
    if ctx.plan is not None:
        console.print(f"📋 {ctx.plan.project_name}: {ctx.plan.description}")
    console.print(f"💾 {len(ctx.written_files)} files written, {len(ctx.skipped_files)} unchanged")

    if ctx.changes:
        added = sum(1 for change in ctx.changes if change.type.value == "add")
        console.print(f"📝 {added} added, {len(ctx.changes) - added} modified")

    if not ctx.compiled_cleanly:
        console.print("⚠️ Compilation was not fully clean; check the log for details", style="yellow")
    for warning in ctx.warnings:
        console.print(f"  • {warning}", style="yellow")

    console.print(f"✅ Project {verb} in {ctx.output_dir.resolve()}", style="bold green")
    console.print("To run the project, follow the instructions in the README.md file.")


def print_analysis_report(report: AnalysisReport):
    console.print(Panel.fit("📊 Analysis Results", style="bold blue"))

    console.print("Issues:", style="bold yellow")
    if report.issues:
        for index, issue in enumerate(report.issues, 1):
            console.print(f"{index}. {issue}")
    else:
        console.print("No issues found.")

    console.print("\nSuggestions:", style="bold green")
    if report.suggestions:
        for index, suggestion in enumerate(report.suggestions, 1):
            console.print(f"{index}. {suggestion}")
    else:
        console.print("No suggestions available.")

    console.print()
    if report.outdated_packages:
        table = Table(title="Outdated Packages", style="magenta")
        table.add_column("Package", style="bold")
        table.add_column("Current")
        table.add_column("Wanted")
        table.add_column("Latest")
        for name, versions in report.outdated_packages.items():
            versions = versions if isinstance(versions, dict) else {}
            table.add_row(name, str(versions.get("current", "-")), str(versions.get("wanted", "-")),
                          str(versions.get("latest", "-")))
        console.print(table)
    else:
        console.print("All packages are up to date.")

    if report.installed_packages:
        installed = ", ".join(f"{name}@{version}" for name, version in sorted(report.installed_packages.items()))
        console.print(f"📦 Installed packages: {installed}")

    console.print("\nCompilation Status:", style="bold cyan")
    if report.compiles:
        console.print("Project compiles successfully.", style="green")
    else:
        console.print("Project has compilation errors:", style="red")
        for index, error in enumerate(report.compilation.errors if report.compilation else [], 1):
            console.print(f"{index}. {error[:2000]}")

    if report.enhancements_path:
        console.print(f"\n💡 Enhancement suggestions have been saved to {report.enhancements_path}", style="bold green")


def interactive_followups(config: Config, provider_name: str, requirements: str, output: str):
    """Offer further update rounds after an interactive generation"""
    while click.confirm("Would you like to make additional changes to the project?", default=False):
        action = click.prompt(
            "What would you like to do?",
            type=click.Choice(CHANGE_TYPES + ["analyze"]),
            default="features",
        )
        if action == "analyze":
            print_analysis_report(_run(_analyze(provider_name, config, output, True)))
            continue

        changes = click.prompt(f"Describe the {action} changes you want to make", value_proc=_require_text)
        requirements = append_change(requirements, action, changes)
        print_pipeline_summary(_run(_generate(provider_name, config, requirements, output, is_update=True)))

    console.print("👋 Session completed.")


@click.group()
@click.version_option(version=__version__, prog_name="project-gen")
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def main(ctx, verbose):
    """project-gen: AI-powered project generator"""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose


@main.command()
@click.option('--interactive', '-i', is_flag=True, help='Start in interactive mode')
@click.option('--requirements', '-r', help='Project requirements as text')
@click.option('--output', '-o', default='./generated-project', show_default=True, help='Output directory')
@click.option('--provider', '-m', 'provider_name', type=PROVIDER_CHOICE, default='gemini', show_default=True,
              help='LLM provider to use')
@click.option('--no-enhance', is_flag=True, help='Skip enhancement suggestions')
@click.option('--config-path', '-c', type=click.Path(), help='Path to configuration file')
@click.pass_context
def generate(ctx, interactive, requirements, output, provider_name, no_enhance, config_path):
    """Generate a new project based on requirements"""
    console.print(Panel.fit("🏗️  Project Generation", style="bold green"))
    config = _load_config(config_path, ctx.obj.get('verbose', False))
    if no_enhance:
        config.pipeline.enhance = False

    interactive = interactive or not requirements
    if interactive:
        requirements = click.prompt("Describe your project requirements", value_proc=_require_detail)
        output = click.prompt("Output directory", default=output)
        provider_name = click.prompt("Select LLM provider", type=PROVIDER_CHOICE, default=provider_name)

    pipeline_ctx = _run(_generate(provider_name, config, requirements, output))
    print_pipeline_summary(pipeline_ctx)

    if interactive:
        interactive_followups(config, provider_name, requirements, output)


@main.command()
@click.option('--path', '-p', 'path', type=click.Path(exists=True, file_okay=False), default='.',
              show_default=True, help='Path to the project')
@click.option('--provider', '-m', 'provider_name', type=PROVIDER_CHOICE, default='gemini', show_default=True)
@click.option('--change-type', '-t', type=click.Choice(CHANGE_TYPES), default='features', show_default=True)
@click.option('--changes', help='Description of the changes to make')
@click.option('--config-path', '-c', type=click.Path(), help='Path to configuration file')
@click.pass_context
def update(ctx, path, provider_name, change_type, changes, config_path):
    """Update an existing project"""
    console.print(Panel.fit("🔄 Project Update", style="bold cyan"))
    config = _load_config(config_path, ctx.obj.get('verbose', False))
    if not changes:
        changes = click.prompt(f"Describe the {change_type} changes you want to make", value_proc=_require_text)

    print_pipeline_summary(_run(_update(provider_name, config, path, change_type, changes)))


@main.command()
@click.option('--path', '-p', 'path', type=click.Path(exists=True, file_okay=False), default='.',
              show_default=True, help='Path to the project')
@click.option('--provider', '-m', 'provider_name', type=PROVIDER_CHOICE, default='gemini', show_default=True)
@click.option('--config-path', '-c', type=click.Path(), help='Path to configuration file')
@click.pass_context
def analyze(ctx, path, provider_name, config_path):
    """Analyze an existing project for improvements"""
    console.print(Panel.fit("🔍 Project Analysis", style="bold blue"))
    config = _load_config(config_path, ctx.obj.get('verbose', False))
    print_analysis_report(_run(_analyze(provider_name, config, path, False)))


@main.command()
@click.option('--path', '-p', 'path', type=click.Path(exists=True, file_okay=False), default='.',
              show_default=True, help='Path to the project')
@click.option('--provider', '-m', 'provider_name', type=PROVIDER_CHOICE, default='gemini', show_default=True)
@click.option('--config-path', '-c', type=click.Path(), help='Path to configuration file')
@click.pass_context
def enhance(ctx, path, provider_name, config_path):
    """Suggest enhancements for an existing project"""
    console.print(Panel.fit("💡 Enhancement Suggestions", style="bold magenta"))
    config = _load_config(config_path, ctx.obj.get('verbose', False))
    print_analysis_report(_run(_analyze(provider_name, config, path, True)))


@main.command()
@click.option('--config-path', '-c', type=click.Path(), help='Path to configuration file')
def status(config_path):
    """Show provider and toolchain configuration"""
    try:
        config = Config.from_yaml(config_path)
    except FileNotFoundError as e:
        console.print(f"❌ Status check failed: {e}", style="bold red")
        sys.exit(1)

    table = Table(title="project-gen Status", style="cyan")
    table.add_column("Component", style="bold")
    table.add_column("Status", justify="center")
    table.add_column("Details")

    models = {
        "gemini": config.api.gemini_model,
        "azure": config.api.azure_model or config.api.azure_deployment or "-",
        "groq": config.api.groq_model,
        "ollama": f"{config.api.ollama_model} @ {config.api.ollama_url}",
    }
    for name, ready in config.provider_status().items():
        status_icon = "✅" if ready else "❌"
        details = f"{'Configured' if ready else 'Missing credentials'} ({models[name]})"
        table.add_row(f"{name} provider", status_icon, details)

    summary = config.summary()
    table.add_row("Fix attempts", "🔧", summary['fix_attempts'])
    table.add_row("Toolchain", "📦", summary['toolchain'])
    table.add_row("Rate limits", "🚦", summary['rate_limits'])
    table.add_row("Logs", "📝", summary['logs'])
    console.print(table)

    errors = config.validate()
    if errors:
        console.print("\n⚠️  Configuration Issues:", style="yellow")
        for error in errors:
            console.print(f"  • {error}", style="yellow")
    else:
        console.print("\n✅ All systems ready!", style="bold green")


@main.command()
def version():
    """Show project-gen version information"""
    console.print(f"🔧 project-gen v{__version__}", style="bold blue")
    console.print("AI-powered project generator: plan, scaffold, build, fix and document")


if __name__ == '__main__':
    main()
