
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Iterator, Optional
import json
import typer
from pydantic import ValidationError
from .config import AppConfig, SettingsStore, load_config
from .logging import setup_logging
from .devices.amcp import AmcpClient
from .devices.caspar import CasparServer, system_versions
from .devices.errors import AmcpError, StepFailedError
from .reporters.console import ConsoleReporter
from .sequences.channel_test import start_channel_test, stop_all_channel_tests, stop_channel_test

app = typer.Typer(add_completion=False, help="amcpkit - remote control for AMCP playout servers")
pattern_app = typer.Typer(help="Key/fill identifier test pattern")
app.add_typer(pattern_app, name="test-pattern")


@dataclass
class CliContext:
    """Everything a command needs, built once per invocation and carried on ctx.obj."""
    cfg: AppConfig
    store: SettingsStore
    host: str
    port: int

    def client(self) -> AmcpClient:
        return AmcpClient(timeout=self.cfg.server.timeout_s)


@app.callback()
def main(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", "-H", help="AMCP server host (default: last used)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="AMCP TCP port (default: last used)"),
    timeout: Optional[float] = typer.Option(None, "--timeout", "-t", help="Per-command timeout in seconds"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to config YAML"),
    settings: Optional[str] = typer.Option(None, "--settings", help="Settings file (default: per-user app dir)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every command and reply"),
):
    setup_logging("DEBUG" if verbose else "WARNING")
    cfg = load_config(config) if config else AppConfig()
    if timeout is not None:
        try:
            cfg.server.timeout_s = timeout
        except ValidationError:
            raise typer.BadParameter("must be greater than 0", param_hint="--timeout")
    store = SettingsStore(settings) if settings else SettingsStore()
    remembered = store.load()
    # explicit option > config file > last successful connection
    ctx.obj = CliContext(
        cfg=cfg,
        store=store,
        host=host or (cfg.server.host if config else remembered.last_host),
        port=port or (cfg.server.port if config else remembered.last_port),
    )


@contextmanager
def _session(obj: CliContext) -> Iterator[AmcpClient]:
    client = obj.client()
    try:
        client.connect(obj.host, obj.port)
        obj.store.remember_connection(obj.host, obj.port)
        yield client
    except AmcpError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    finally:
        client.disconnect()


@app.command()
def send(
    ctx: typer.Context,
    command: str = typer.Argument(..., help="Raw AMCP command, e.g. 'INFO 1'"),
    json_out: bool = typer.Option(False, "--json", help="Print JSON instead of text"),
):
    """Send one raw command and print the reply."""
    with _session(ctx.obj) as client:
        response = client.send(command)
    if json_out:
        typer.echo(json.dumps(response.to_dict(), indent=2))
    else:
        typer.echo(response.status_line)
        if response.data is not None:
            typer.echo(response.data)
    raise typer.Exit(code=0 if response.is_success else 1)


@app.command()
def version(
    ctx: typer.Context,
    component: Optional[str] = typer.Argument(None, help="SERVER, FLASH, TEMPLATEHOST, ..."),
):
    with _session(ctx.obj) as client:
        typer.echo(CasparServer(client).version(component))


@app.command()
def info(
    ctx: typer.Context,
    what: str = typer.Argument("system", help="system, paths, config or channel"),
    channel: Optional[int] = typer.Argument(None, help="Channel number for 'channel'"),
):
    if what == "channel" and channel is None:
        typer.echo("Channel number required: amcpkit info channel N", err=True)
        raise typer.Exit(code=2)
    if what not in ("system", "paths", "config", "channel"):
        typer.echo(f"Unknown info target: {what}", err=True)
        raise typer.Exit(code=2)
    with _session(ctx.obj) as client:
        server = CasparServer(client)
        if what == "system":
            out = server.info_system()
        elif what == "paths":
            out = server.info_paths()
        elif what == "config":
            out = server.info_config()
        else:
            out = server.info_channel(channel)
    typer.echo(out)


@app.command()
def status(ctx: typer.Context):
    """Connection and version summary. Never fails on an unreachable server."""
    obj: CliContext = ctx.obj
    client = obj.client()
    try:
        client.connect(obj.host, obj.port)
    except AmcpError as e:
        typer.echo(f"Not connected: {e}", err=True)
    try:
        typer.echo(json.dumps(asdict(system_versions(client)), indent=2))
    finally:
        client.disconnect()


@pattern_app.command("start")
def pattern_start(
    ctx: typer.Context,
    channel: int = typer.Argument(..., help="Channel number"),
    url: Optional[str] = typer.Option(None, "--url", help="Test pattern server URL"),
):
    tp = ctx.obj.cfg.test_pattern
    with _session(ctx.obj) as client:
        try:
            result = start_channel_test(client, channel, url or tp.server_url, tp.fill_layer, tp.key_layer)
        except StepFailedError as e:
            if e.result is not None:
                ConsoleReporter().emit(e.result)
            typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)
    ConsoleReporter().emit(result)


@pattern_app.command("stop")
def pattern_stop(ctx: typer.Context, channel: int = typer.Argument(..., help="Channel number")):
    tp = ctx.obj.cfg.test_pattern
    with _session(ctx.obj) as client:
        result = stop_channel_test(client, channel, tp.fill_layer, tp.key_layer)
    ConsoleReporter().emit(result)


@pattern_app.command("stop-all")
def pattern_stop_all(
    ctx: typer.Context,
    channels: Optional[int] = typer.Option(None, "--channels", "-n", help="Channel count"),
):
    tp = ctx.obj.cfg.test_pattern
    with _session(ctx.obj) as client:
        results = stop_all_channel_tests(client, channels or ctx.obj.cfg.channels, tp.fill_layer, tp.key_layer)
    ConsoleReporter().emit_all(results)
