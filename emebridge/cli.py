from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click
import orjson
import rich.traceback
from rich.console import Console
from rich.table import Table

from emebridge.core import build_policy, install
from emebridge.host.platform import default_platform
from emebridge.host.stub import DeviceStub
from emebridge.key.robustness import CandidateGenerator
from emebridge.lib.load_yaml_config import CFG
from emebridge.static.parameter import paramstore
from emebridge.static.version import __version__
from emebridge.unit.handle.handle_log import setup_logging
from emebridge.unit.http.intercept import RequestInterceptor
from emebridge.unit.http.request_model import InterceptedRequest

rich.traceback.install()
logger = setup_logging("cli", "cyan")
console = Console()


def parse_headers(values: tuple[str, ...]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for value in values:
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            raise click.BadParameter(f"expected NAME:VALUE, got {value!r}", param_hint="--header")
        headers[name.strip()] = content.strip()
    return headers


@click.group()
@click.version_option(__version__, prog_name="emebridge")
@click.option("--no-substitute", is_flag=True, help="Keep PlayReady key systems as requested.")
def cli(no_substitute: bool) -> None:
    """DRM negotiation and license-request bridge."""
    paramstore.set("no_substitute", no_substitute)


@cli.command()
@click.option("--config", "config_file", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="JSON list of requested configurations.")
def candidates(config_file: Path | None) -> None:
    """Print the fallback configurations negotiation would try."""
    requested = []
    if config_file is not None:
        try:
            requested = orjson.loads(config_file.read_bytes())
        except orjson.JSONDecodeError as e:
            raise click.ClickException(f"{config_file}: {e}") from e
        if isinstance(requested, dict):
            requested = [requested]
        if not isinstance(requested, list):
            raise click.ClickException(f"{config_file}: expected a JSON list of configurations")
    result = CandidateGenerator.from_config(CFG).generate(requested)
    click.echo(orjson.dumps(result, option=orjson.OPT_INDENT_2).decode())


@cli.command()
@click.argument("url")
def rewrite(url: str) -> None:
    """Show what the interception layer does with URL."""
    interceptor = RequestInterceptor.from_config(CFG, build_policy())
    request = InterceptedRequest(url=url)
    rewritten = interceptor.rewrite(request)
    if rewritten is not None:
        click.echo(rewritten.url)
        return
    policy = interceptor.retry_policy_for(request)
    if policy is not None:
        click.echo(f"{url}\non {policy.trigger_status}: {policy.alternate_url(url)}")
        return
    click.echo(url)


async def _license(url: str, method: str, headers: dict[str, str], body: bytes | None) -> int:
    host = install(default_platform())
    logger.info(f"{method} {url}")
    try:
        response = await host.fetch(url, {"method": method, "headers": headers, "body": body})
    finally:
        await host.fetch.original.close_session()
    table = Table(title=str(response.request.url) if response.request is not None else url)
    table.add_column("status")
    table.add_column("content-type")
    table.add_column("bytes", justify="right")
    table.add_row(str(response.status_code), response.headers.get("content-type", ""), str(len(response.content)))
    console.print(table)
    return 0 if response.is_success else 1


@cli.command("license")
@click.argument("url")
@click.option("-X", "--method", default="POST", show_default=True)
@click.option("-H", "--header", "header_values", multiple=True, help="NAME:VALUE, repeatable.")
@click.option("-d", "--data", "data_file", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="File holding the license challenge.")
def license_cmd(url: str, method: str, header_values: tuple[str, ...], data_file: Path | None) -> None:
    """Send a license request through the shimmed host."""
    headers = parse_headers(header_values)
    body = data_file.read_bytes() if data_file is not None else None
    sys.exit(asyncio.run(_license(url, method.upper(), headers, body)))


@cli.command()
def device() -> None:
    """Print the stub device identity."""
    stub = DeviceStub()
    table = Table(title="device stub")
    table.add_column("key")
    table.add_column("value")
    for key, value in stub.device_info.items():
        table.add_row(key, value)
    table.add_row("country", stub.country)
    table.add_row("locale", stub.locale)
    table.add_row("user-agent", stub.user_agent(CFG["http"]["user_agent"]))
    console.print(table)


def main() -> None:
    cli()
