"""Command-line interface for jumpbridge."""

import logging
import re
import sys
from typing import NoReturn

import click
from rich.markup import escape
from rich.table import Table

from jumpbridge import __version__
from jumpbridge.config.envfile import KNOWN_KEYS, EnvConfig, load_env_config
from jumpbridge.config.loader import (
    config_path,
    load_settings,
    resolve_project_root,
    save_settings,
)
from jumpbridge.config.preflight import run_all_checks
from jumpbridge.config.schema import DEFAULT_SETTINGS, BridgeSettings
from jumpbridge.console import console, err_console
from jumpbridge.errors import BridgeError
from jumpbridge.executors import get_executor
from jumpbridge.network.interfaces import list_candidates
from jumpbridge.network.resolver import IP_MODES
from jumpbridge.network.routes import get_route_probe
from jumpbridge.runner import JumpOptions, run_jump
from jumpbridge.session import PLATFORMS

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Matched against the words of error messages that carry no hint of their
# own. Every word must appear; global compose options may sit in between.
REMEDIATION_HINTS: tuple[tuple[tuple[str, ...], str], ...] = (
    (
        ("compose", "ps"),
        "Docker is unavailable or the bridge service is not running. "
        "Start Docker, then run: docker compose up -d",
    ),
    (
        ("compose", "up"),
        "Docker could not start the services. Check that Docker is running "
        "and inspect: docker compose logs",
    ),
    (
        ("compose", "exec"),
        "The bridge service rejected the command. Check it with: docker compose ps",
    ),
    (
        ("adb",),
        "Check the USB cable and run: adb devices",
    ),
)

_WORD = re.compile(r"[\w.-]+")


def remediation_hint(error: BridgeError) -> str | None:
    """Return the error's own hint or one matched from its message."""
    if error.hint:
        return error.hint
    words = set(_WORD.findall(str(error)))
    for needles, hint in REMEDIATION_HINTS:
        if words.issuperset(needles):
            return hint
    return None


def _fail(error: BridgeError) -> NoReturn:
    logger.debug("Session aborted", exc_info=error)
    err_console.print(f"Error: {error}", style="red", markup=False)
    hint = remediation_hint(error)
    if hint:
        err_console.print(f"Hint: {hint}", style="yellow", markup=False)
    raise SystemExit(1)


def _load_context() -> tuple[BridgeSettings, EnvConfig]:
    settings = load_settings()
    env = load_env_config(resolve_project_root(settings), settings.env_files)
    return settings, env


def _print_env_warnings(env: EnvConfig) -> None:
    for warning in env.warnings():
        logger.warning(warning)
        console.print(f"[WARN] {warning}", style="yellow", markup=False)


def version_callback(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
    """Print version and exit."""
    if not value or ctx.resilient_parsing:
        return
    console.print(f"jumpbridge [bold cyan]{__version__}[/bold cyan]")
    ctx.exit()


@click.group(invoke_without_command=True)
@click.option(
    "--version",
    is_flag=True,
    callback=version_callback,
    expose_value=False,
    is_eager=True,
    help="Show version and exit.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """jumpbridge - connect a phone to a containerised Jump bridge."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if ctx.invoked_subcommand is None:
        console.print("[bold]jumpbridge[/bold] - Jump bridge connectivity resolver")
        console.print("\nRun [cyan]jumpbridge --help[/cyan] for available commands.")


@main.command()
@click.argument("platform", type=click.Choice(PLATFORMS))
@click.option("--ip", help="Host IP the device should use (skips detection).")
@click.option(
    "--ip-mode",
    type=click.Choice(IP_MODES),
    default="auto",
    show_default=True,
    help="Pick the host IP automatically or from a prompt.",
)
@click.option(
    "--http-port",
    type=click.IntRange(1, 65535),
    help="Require this HTTP port instead of scanning for a free one.",
)
@click.option(
    "--usb",
    is_flag=True,
    help="Tunnel over USB with adb reverse (android only).",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Print the commands instead of running them.",
)
def jump(
    platform: str,
    ip: str | None,
    ip_mode: str,
    http_port: int | None,
    usb: bool,
    dry_run: bool,
) -> None:
    """Resolve host IP and ports, prepare the bridge and launch Jump."""
    options = JumpOptions(
        platform=platform,
        ip=ip,
        ip_mode=ip_mode,
        http_port=http_port,
        usb=usb,
        dry_run=dry_run,
    )
    interactive = sys.stdin.isatty() and sys.stdout.isatty()
    try:
        settings, env = _load_context()
        _print_env_warnings(env)
        exit_code = run_jump(
            options,
            settings,
            env,
            get_executor(dry_run=dry_run),
            interactive=interactive,
        )
    except BridgeError as e:
        _fail(e)

    if exit_code != 0:
        raise SystemExit(exit_code)


@main.command()
def doctor() -> None:
    """Validate environment (Docker, adb, host IP, Jump ports)."""
    try:
        settings, env = _load_context()
        ok = run_all_checks(settings, env, get_executor())
    except BridgeError as e:
        _fail(e)

    if not ok:
        raise SystemExit(1)


@main.command()
def interfaces() -> None:
    """Show ranked network interface candidates."""
    probe = get_route_probe()
    default_interface = probe.current_interface_name()
    candidates = list_candidates(route_probe=probe)

    if not candidates:
        console.print("[yellow]No IPv4 interfaces found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("#", style="dim", justify="right")
    table.add_column("Interface", style="cyan")
    table.add_column("Address")
    table.add_column("Private")
    table.add_column("Virtual")
    table.add_column("Score", justify="right")
    for i, candidate in enumerate(candidates, 1):
        table.add_row(
            str(i),
            candidate.interface_name,
            candidate.address,
            "yes" if candidate.is_private else "no",
            "yes" if candidate.is_virtual else "no",
            str(candidate.score),
        )

    console.print(f"[dim]Default route: {default_interface or 'unknown'}[/dim]")
    console.print(table)


@main.command("config")
def show_config() -> None:
    """Show effective settings and env values."""
    try:
        settings, env = _load_context()
    except BridgeError as e:
        _fail(e)

    console.print("\n[bold]Current Effective Settings:[/bold]")
    console.print(f"  [dim]Global: {config_path('home')}[/dim]")
    console.print(f"  [dim]Local: {config_path('local')}[/dim]")
    console.print()
    for key, value in settings.to_dict().items():
        console.print(f"  {key}: {value}", markup=False)

    console.print("\n[bold]Environment:[/bold]")
    for label, snapshot in env.snapshots:
        state = "[green]exists[/green]" if snapshot.exists else "[dim]not found[/dim]"
        console.print(f"  {label}: {state}")
    console.print()
    for key in KNOWN_KEYS:
        value = env.get(key)
        if value is None:
            console.print(f"  {key}: [dim](not set)[/dim]")
        else:
            source = env.source_of(key)
            console.print(f"  {key}={escape(value)} [dim]({source})[/dim]")

    _print_env_warnings(env)


@main.command()
@click.option("--force", is_flag=True, help="Overwrite an existing local config.")
def init(force: bool) -> None:
    """Write ./.jumpbridge/config.yaml with the default settings."""
    path = config_path("local")
    if path.exists() and not force:
        console.print(f"[yellow]Local config already exists at {path}[/yellow]")
        console.print("Use [cyan]--force[/cyan] to overwrite.")
        return

    save_settings(DEFAULT_SETTINGS, path)
    console.print(f"[green]Configuration saved to {path}[/green]")
    home = config_path("home")
    if home.exists():
        console.print(f"[dim]Global overrides still apply: {home}[/dim]")
