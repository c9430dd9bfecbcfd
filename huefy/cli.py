"""CLI interface for Huefy."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from huefy.client import HuefyClient
from huefy.config_manager import SETTABLE_KEYS, PersistentConfigManager
from huefy.errors.taxonomy import HuefyError
from huefy.models.config import HuefyConfig, TransportType
from huefy.models.email import EmailProvider
from huefy.version import __version__

console = Console()

DEFAULT_CONFIG_FILE = "huefy.yaml"


def _mask(api_key: Optional[str]) -> str:
    if not api_key:
        return "Not set"
    if len(api_key) <= 8:
        return "****"
    return f"{api_key[:4]}...{api_key[-4:]}"


def load_config(config_path: Optional[str], overrides: dict[str, Any]) -> HuefyConfig:
    """Resolve configuration for a command.

    Sources, lowest precedence first: the YAML file (``--config`` or
    ./huefy.yaml) or else ``HUEFY_*`` environment variables, then
    ~/.huefy/config.json, then command-line options.

    Raises:
        HuefyError: VALIDATION when no usable configuration can be built
    """
    manager = PersistentConfigManager()
    settings = {**(manager.load() or {}), **{k: v for k, v in overrides.items() if v is not None}}

    # Merge raw values first so a key given on one layer completes the others
    try:
        if config_path:
            base = HuefyConfig.yaml_settings(config_path)
        elif Path(DEFAULT_CONFIG_FILE).exists():
            base = HuefyConfig.yaml_settings(DEFAULT_CONFIG_FILE)
        else:
            base = HuefyConfig.env_settings()
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise HuefyError.validation(f"Cannot read configuration: {e}", code="INVALID_CONFIG") from None

    try:
        return manager.apply_to_config(base, settings)
    except ValueError as e:
        if not base.get("api_key") and not settings.get("api_key"):
            raise HuefyError.validation(
                f"No usable configuration (set HUEFY_API_KEY or run 'huefy config set api_key ...'): {e}",
                code="INVALID_CONFIG",
            ) from None
        raise HuefyError.validation(f"Invalid configuration: {e}", code="INVALID_CONFIG") from None


def _print_error(error: HuefyError) -> None:
    console.print(f"[red]✗[/red] [bold]{error.code}[/bold]: {error.message}")
    if error.hint:
        console.print(f"  [dim]{error.hint}[/dim]")


def _run(ctx: click.Context, action: Callable[[HuefyClient], Awaitable[Any]]) -> Any:
    """Build a client, run one async action with it and close it."""

    async def run():
        client = HuefyClient(load_config(ctx.obj["config_path"], ctx.obj["overrides"]))
        try:
            return await action(client)
        finally:
            await client.close()

    try:
        return asyncio.run(run())
    except HuefyError as e:
        _print_error(e)
        sys.exit(1)


def _parse_data(pairs: tuple[str, ...]) -> dict[str, str]:
    data = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got '{pair}'", param_hint="--data")
        data[key] = value
    return data


@click.group()
@click.version_option(__version__, prog_name="huefy")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), help="Path to YAML config file")
@click.option("--api-key", help="Huefy API key")
@click.option("--transport", type=click.Choice([t.value for t in TransportType]), help="Transport to use")
@click.option("--base-url", help="HTTP API base URL")
@click.option("--endpoint", help="gRPC endpoint (host:port)")
@click.option("--timeout", "timeout_ms", type=int, help="Per-attempt timeout in milliseconds")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Optional[str],
    api_key: Optional[str],
    transport: Optional[str],
    base_url: Optional[str],
    endpoint: Optional[str],
    timeout_ms: Optional[int],
    debug: bool,
):
    """Huefy - send templated email from the command line."""
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["overrides"] = {
        "api_key": api_key,
        "transport": transport,
        "base_url": base_url,
        "endpoint": endpoint,
        "timeout_ms": timeout_ms,
    }


@main.command()
@click.argument("template_key")
@click.argument("recipient")
@click.option("-d", "--data", "data_pairs", multiple=True, help="Template variable as key=value (repeatable)")
@click.option("--provider", type=click.Choice([p.value for p in EmailProvider]), help="Email provider")
@click.pass_context
def send(ctx: click.Context, template_key: str, recipient: str, data_pairs: tuple[str, ...], provider: Optional[str]):
    """Send TEMPLATE_KEY to RECIPIENT."""
    data = _parse_data(data_pairs)
    result = _run(ctx, lambda client: client.send_email(template_key, data, recipient, provider=provider))

    table = Table(show_header=False, box=None)
    table.add_row("[cyan]Message ID[/cyan]", result.message_id)
    table.add_row("[cyan]Provider[/cyan]", result.provider)
    table.add_row("[cyan]Message[/cyan]", result.message or "-")
    console.print(f"[green]✓[/green] Email sent to [cyan]{recipient}[/cyan]")
    console.print(table)


@main.command()
@click.pass_context
def health(ctx: click.Context):
    """Check the Huefy service health."""
    result = _run(ctx, lambda client: client.health_check())

    style = "green" if result.status.lower() in ("ok", "healthy", "serving") else "yellow"
    body = f"[{style}]{result.status}[/{style}]"
    if result.version:
        body += f"\nVersion: {result.version}"
    if result.timestamp:
        body += f"\nTimestamp: {result.timestamp}"
    console.print(Panel.fit(body, title="Huefy health", border_style=style))


@main.group()
def config():
    """Show or change saved settings (~/.huefy/config.json)."""


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context):
    """Show the effective configuration."""
    try:
        effective = load_config(ctx.obj["config_path"], ctx.obj["overrides"])
    except HuefyError as e:
        _print_error(e)
        sys.exit(1)

    table = Table(title="Huefy configuration", show_header=False)
    table.add_row("API key", _mask(effective.api_key))
    table.add_row("Transport", effective.transport.value)
    if effective.transport == TransportType.HTTP:
        table.add_row("Base URL", effective.resolved_base_url())
    else:
        table.add_row("Endpoint", effective.resolved_endpoint())
    table.add_row("Timeout", f"{effective.timeout_ms}ms")
    table.add_row("Max attempts", str(effective.retry.max_attempts))
    console.print(table)


@config.command("set")
@click.argument("key", type=click.Choice(SETTABLE_KEYS))
@click.argument("value")
def config_set(key: str, value: str):
    """Save KEY=VALUE to ~/.huefy/config.json."""
    manager = PersistentConfigManager()
    try:
        manager.set_value(key, value)
    except ValueError:
        raise click.BadParameter(f"'{value}' is not an integer", param_hint="VALUE") from None

    shown = _mask(value) if key == "api_key" else value
    console.print(f"[green]✓[/green] {key} set to: [cyan]{shown}[/cyan]")
    console.print(f"  [dim]Saved to {manager.config_file}[/dim]")


if __name__ == "__main__":
    main()
