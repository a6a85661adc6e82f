"""Command line interface for hypr-panel."""

import contextlib
import shutil
import sys
import threading
import time
from typing import Any, Optional

import orjson
import typer

from .config import Config, get_effective_config
from .version import __version__

app = typer.Typer(
    name="hpanel", help="hypr-panel - status feeds for a Hyprland panel"
)

# Config command group
config_app = typer.Typer(help="Configuration management commands")
app.add_typer(config_app, name="config")

PROBE_FEEDS = ("battery", "wifi", "bluetooth", "workspace")

_output_lock = threading.Lock()


def snapshot_line(feed: str, snapshot: Any, ts: Optional[float] = None) -> str:
    """Serialize one snapshot as a JSON line."""
    envelope = {"feed": feed, "ts": time.time() if ts is None else ts, "data": snapshot}
    return orjson.dumps(envelope).decode("utf-8")


def print_snapshot(feed: str, snapshot: Any) -> None:
    """Dispatch callback for `hpanel run`: one JSON object per line on stdout."""
    line = snapshot_line(feed, snapshot)
    with _output_lock:
        typer.echo(line)
        sys.stdout.flush()


@app.command()
def version() -> None:
    """Show version information."""
    typer.echo(f"hypr-panel {__version__}")


@app.command()
def run(
    duration: float = typer.Option(
        0, "--duration", "-d", help="Stop after this many seconds (0 runs until Ctrl+C)"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log debug output to stderr"
    ),
) -> None:
    """Start all listeners and print every snapshot as a JSON line."""
    try:
        from .ids import generate_session_id
        from .logging_setup import reset_logging, set_session_id, setup_logging
        from .supervisor import create_standard_supervisor

        config = get_effective_config()

        session_id = generate_session_id()
        set_session_id(session_id)

        reset_logging()
        logger = setup_logging(
            console_level="DEBUG" if verbose else config.logging.console_level,
            file_level=config.logging.file_level,
            session_id=session_id,
            log_dir=config.logging.log_dir,
            console=True,
        )
        logger.info(f"Starting hypr-panel {__version__}")

        supervisor = create_standard_supervisor(print_snapshot, config=config, verbose=verbose)
        results = supervisor.start_all()

        with contextlib.suppress(KeyboardInterrupt):
            supervisor.wait_until_shutdown(duration=duration or None)

        supervisor.stop_all()

        failed = [feed for feed, ok in results.items() if not ok]
        if failed:
            logger.warning(f"Some listeners failed to start: {', '.join(failed)}")

    except Exception as e:
        typer.echo(f"[ERROR] Failed to run listeners: {e}", err=True)
        raise typer.Exit(1) from e


@app.command()
def probe(
    feed: str = typer.Argument(..., help="One of: battery, wifi, bluetooth, workspace"),
) -> None:
    """Query one source once and print its snapshot as JSON."""
    from .listeners import BatteryListener, BluetoothListener, WifiListener, WorkspaceListener

    if feed not in PROBE_FEEDS:
        typer.echo(f"Unknown feed '{feed}', expected one of: {', '.join(PROBE_FEEDS)}", err=True)
        raise typer.Exit(2)

    config = get_effective_config()

    if feed == "battery":
        snapshot = BatteryListener(config.battery).read_snapshot()
    elif feed == "wifi":
        snapshot = WifiListener(config.wifi).query()
    elif feed == "bluetooth":
        snapshot = BluetoothListener(config.bluetooth).query()
    else:
        snapshot = WorkspaceListener(config.hyprland).query()

    if snapshot is None:
        typer.echo(f"No data available for {feed}", err=True)
        raise typer.Exit(1)

    typer.echo(orjson.dumps(snapshot, option=orjson.OPT_INDENT_2).decode("utf-8"))


@app.command()
def status(
    json: bool = typer.Option(False, "--json", help="Output in JSON format"),
) -> None:
    """Show which sources are reachable with the current configuration."""
    from .listeners.hyprland import hyprland_socket_path

    try:
        config = get_effective_config()

        socket_path = hyprland_socket_path(config.hyprland)
        battery_path = config.battery.device_path

        sources = {
            "battery": {
                "path": str(battery_path),
                "available": (battery_path / "capacity").exists(),
            },
            "wifi": {
                "command": config.wifi.command,
                "available": shutil.which(config.wifi.command) is not None,
            },
            "bluetooth": {
                "command": config.bluetooth.command,
                "available": shutil.which(config.bluetooth.command) is not None,
            },
            "hyprland": {
                "socket": socket_path,
                "hyprctl": config.hyprland.hyprctl,
                "available": socket_path is not None
                and shutil.which(config.hyprland.hyprctl) is not None,
            },
        }

        if json:
            typer.echo(orjson.dumps({"sources": sources}, option=orjson.OPT_INDENT_2).decode("utf-8"))
            return

        typer.echo("Sources:")
        for name, info in sources.items():
            state = "available" if info["available"] else "UNAVAILABLE"
            detail = info.get("path") or info.get("command") or info.get("socket") or "-"
            typer.echo(f"  {name:<10} {state:<12} {detail}")

    except Exception as e:
        typer.echo(f"[ERROR] Status check failed: {e}", err=True)
        raise typer.Exit(1) from e


@config_app.command("show")
def config_show() -> None:
    """Show the effective configuration."""
    try:
        config = get_effective_config()
        typer.echo(config.to_yaml())
    except Exception as e:
        typer.echo(f"Error loading configuration: {e}", err=True)
        raise typer.Exit(1) from e


@config_app.command("path")
def config_path() -> None:
    """Show the absolute path to the configuration file."""
    typer.echo(str(Config.get_config_path()))


@config_app.command("init")
def config_init(
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
) -> None:
    """Write a configuration file with default values."""
    path = Config.get_config_path()
    if path.exists() and not force:
        typer.echo(f"Config already exists: {path} (use --force to overwrite)", err=True)
        raise typer.Exit(1)

    Config().save_to_yaml_file(path)
    typer.echo(f"Wrote default configuration to {path}")


def main() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    main()
