"""
Delivery CLI - bootstrap projects onto a Chef Delivery server

Usage:
    delivery init --server delivery.example.com --ent acme --org eng --user jdoe
    delivery init --local
    delivery check
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.align import Align
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.text import Text
from typer.core import TyperGroup

from .config import DEFAULT_PIPELINE, find_config_file, load_config_file, resolve_config
from .errors import DeliveryError, UserError
from .logging_utils import configure_logging
from .tracker import StepTracker
from .utils import check_tool, root_dir
from .workflow import InitWorkflow, WorkflowOutcome

# Exit code for failures of git, the server or the generator
COLLABORATOR_FAILURE = 2

BANNER = """
╔╦╗╔═╗╦  ╦╦  ╦╔═╗╦═╗╦ ╦
 ║║║╣ ║  ║╚╗╔╝║╣ ╠╦╝╚╦╝
═╩╝╚═╝╩═╝╩ ╚╝ ╚═╝╩╚═ ╩
"""

TAGLINE = "Chef Delivery"

console = Console()
logger = logging.getLogger(__name__)


class BannerGroup(TyperGroup):
    """Custom group that shows banner before help."""

    def format_help(self, ctx, formatter):
        show_banner()
        super().format_help(ctx, formatter)


app = typer.Typer(
    name="delivery",
    help="Set up projects on a Chef Delivery server",
    add_completion=False,
    invoke_without_command=True,
    cls=BannerGroup,
)


def show_banner():
    """Display the ASCII art banner."""
    banner_lines = BANNER.strip("\n").split('\n')
    colors = ["bright_green", "green", "cyan"]

    styled_banner = Text()
    for i, line in enumerate(banner_lines):
        styled_banner.append(line + "\n", style=colors[i % len(colors)])

    console.print(Align.center(styled_banner))
    console.print(Align.center(Text(TAGLINE, style="italic bright_yellow")))
    console.print()


@app.callback()
def callback(ctx: typer.Context):
    """Show banner when no subcommand is provided."""
    if ctx.invoked_subcommand is None and "--help" not in sys.argv and "-h" not in sys.argv:
        show_banner()
        console.print(Align.center("[dim]Run 'delivery --help' for usage information[/dim]"))
        console.print()


def _print_outcome(outcome: WorkflowOutcome) -> None:
    if outcome.notes:
        console.print()
        console.print(Panel("\n".join(outcome.notes), title="Next Steps", border_style="cyan", padding=(1, 2)))
    if not outcome.ok:
        console.print()
        console.print(Panel(outcome.reason or "Initialization failed", title="[red]Init Failed[/red]", border_style="red", padding=(1, 2)))


@app.command()
def init(
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Delivery user name"),
    server: Optional[str] = typer.Option(None, "--server", "-s", help="Delivery server hostname"),
    ent: Optional[str] = typer.Option(None, "--ent", "-e", help="Delivery enterprise"),
    org: Optional[str] = typer.Option(None, "--org", "-o", help="Delivery organization"),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project name (defaults to the git root directory name)"),
    pipeline: Optional[str] = typer.Option(None, "--pipeline", "-P", help=f"Pipeline to create (default: {DEFAULT_PIPELINE})"),
    git_port: Optional[str] = typer.Option(None, "--git-port", help="Delivery git SSH port (default: 8989)"),
    github_org: Optional[str] = typer.Option(None, "--github-org", help="Link the project to this GitHub organization"),
    bitbucket_project_key: Optional[str] = typer.Option(None, "--bitbucket-project-key", help="Link the project to this Bitbucket project key"),
    repo_name: Optional[str] = typer.Option(None, "--repo-name", "-r", help="Source code provider repository name (defaults to the project name)"),
    no_verify_ssl: bool = typer.Option(False, "--no-verify-ssl", help="Do not verify the GitHub server's SSL certificate when linking"),
    local: bool = typer.Option(False, "--local", "-l", help="Only set up the local repository, skip all server steps"),
    skip_build_cookbook: bool = typer.Option(False, "--skip-build-cookbook", help="Do not generate a build cookbook"),
    generator: Optional[str] = typer.Option(None, "--generator", "-g", help="Custom build cookbook generator (local path or git URL)"),
    config_json: Optional[str] = typer.Option(None, "--config-json", "-c", help="Custom .delivery/config.json to use"),
    no_open: bool = typer.Option(False, "--no-open", "-n", help="Do not open the review in a browser"),
    token: Optional[str] = typer.Option(None, "--token", envvar="DELIVERY_TOKEN", help="Delivery API token (or set DELIVERY_TOKEN)"),
    debug: bool = typer.Option(False, "--debug", help="Show verbose diagnostic output"),
):
    """
    Initialize a Delivery project from the current git repository.

    This command will:
    1. Create the project on the Delivery server, or link it to GitHub / Bitbucket
    2. Add the `delivery` remote and push local content (Delivery and Bitbucket projects)
    3. Create the pipeline
    4. Generate a build cookbook and .delivery/config.json
    5. Commit custom cookbooks or configs on the `add-delivery-config` branch and submit a review

    Running it again is safe: anything that already exists is left alone.

    Examples:
        delivery init -s delivery.example.com -e acme -o eng -u jdoe
        delivery init --github-org acme-gh --repo-name my-app
        delivery init --bitbucket-project-key ENG
        delivery init --generator https://github.com/acme/pcb.git
        delivery init --config-json ./config.json --no-open
        delivery init --local --skip-build-cookbook
    """
    configure_logging("DEBUG" if debug else "WARNING", console)
    show_banner()

    cwd = Path.cwd()
    try:
        project_root = root_dir(cwd)
        file_values = load_config_file(find_config_file(cwd))
        config = resolve_config(
            {
                "user": user,
                "server": server,
                "enterprise": ent,
                "organization": org,
                "project": project,
                "pipeline": pipeline,
                "git_port": git_port,
                "github_org": github_org,
                "bitbucket_project_key": bitbucket_project_key,
                "repo_name": repo_name,
                "no_verify_ssl": no_verify_ssl,
                "local": local,
                "skip_build_cookbook": skip_build_cookbook,
                "generator": generator,
                "config_json": config_json,
                "no_open": no_open,
                "token": token,
            },
            project_root,
            file_values,
        )
    except UserError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    setup_lines = [
        "[cyan]Delivery Project Setup[/cyan]",
        "",
        f"{'Project':<15} [green]{config.project}[/green]",
        f"{'Project Root':<15} [dim]{config.project_root}[/dim]",
        f"{'Pipeline':<15} [yellow]{config.pipeline}[/yellow]",
    ]
    if config.local:
        setup_lines.append(f"{'Mode':<15} [yellow]local only[/yellow]")
    else:
        setup_lines.append(f"{'Server':<15} [dim]{config.server}[/dim]")
        setup_lines.append(f"{'Organization':<15} [dim]{config.enterprise}/{config.organization}[/dim]")
    console.print(Panel("\n".join(setup_lines), border_style="cyan", padding=(1, 2)))

    tracker = StepTracker("Initialize Delivery Project")
    workflow = InitWorkflow(config, tracker=tracker)

    # Use transient so live tree is replaced by the final static render (avoids duplicate output)
    with Live(tracker.render(), console=console, refresh_per_second=8, transient=True) as live:
        tracker.attach_refresh(lambda: live.update(tracker.render()))
        try:
            outcome = workflow.run()
        except DeliveryError as e:
            live.stop()
            console.print(tracker.render())
            console.print(Panel(str(e), title=f"[red]Initialization failed ({e.kind.value})[/red]", border_style="red"))
            if debug:
                _env_pairs = [
                    ("Python", sys.version.split()[0]),
                    ("Platform", sys.platform),
                    ("CWD", str(Path.cwd())),
                    ("Project root", str(config.project_root)),
                ]
                _label_width = max(len(k) for k, _ in _env_pairs)
                env_lines = [f"{k.ljust(_label_width)} → [bright_black]{v}[/bright_black]" for k, v in _env_pairs]
                console.print(Panel("\n".join(env_lines), title="Debug Environment", border_style="magenta"))
            raise typer.Exit(COLLABORATOR_FAILURE)

    console.print(tracker.render())
    _print_outcome(outcome)
    if not outcome.ok:
        raise typer.Exit(outcome.status)
    console.print("\n[bold green]Project ready.[/bold green]")


@app.command()
def check():
    """Check that all required tools are installed."""
    show_banner()
    console.print("[bold]Checking for installed tools...[/bold]\n")

    tracker = StepTracker("Check Available Tools")
    tracker.add("git", "Git version control")
    tracker.add("chef", "Chef generator (ChefDK / Chef Workstation)")

    results = {}
    for tool in ("git", "chef"):
        results[tool] = check_tool(tool)
        if results[tool]:
            tracker.complete(tool, "available")
        else:
            tracker.error(tool, "not found")

    console.print(tracker.render())

    if not results["git"]:
        console.print("\n[red]git is required.[/red] Install it from https://git-scm.com/downloads")
        raise typer.Exit(1)

    console.print("\n[bold green]Delivery CLI is ready to use![/bold green]")
    if not results["chef"]:
        console.print("[dim]Tip: Install Chef Workstation to generate build cookbooks, or use --skip-build-cookbook[/dim]")


def main():
    app()


if __name__ == "__main__":
    main()
