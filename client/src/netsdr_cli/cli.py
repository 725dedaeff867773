"""NetSDR CLI: click + prompt_toolkit interface for the NetSDR SDK."""

import asyncio
import json as _json
import logging
import shlex
import sys

import click
from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.history import InMemoryHistory

from netsdr_sdk import ClientConfig, NetSdrClient, NetSdrError


class Connection:
    """Manages a lazy, persistent client session with the receiver."""

    def __init__(self, config: ClientConfig):
        self.config = config
        self._client = None
        self._loop = None

    def _get_loop(self):
        if self._loop is None or self._loop.is_closed():
            self._loop = asyncio.new_event_loop()
            asyncio.set_event_loop(self._loop)
        return self._loop

    @property
    def client(self) -> NetSdrClient:
        if self._client is None:
            self._get_loop()
            self._client = NetSdrClient.from_config(self.config)
        return self._client

    @property
    def connected_client(self) -> NetSdrClient:
        """The client, connecting first if necessary."""
        client = self.client
        if not client.connected:
            self.run(client.connect())
        return client

    def run(self, coro):
        """Run an async coroutine synchronously."""
        return self._get_loop().run_until_complete(coro)

    def close(self):
        if self._client:
            self._client.disconnect()
            self._client = None
        if self._loop and not self._loop.is_closed():
            # let the transports finish closing
            self._loop.run_until_complete(asyncio.sleep(0))
            self._loop.close()
            self._loop = None
            asyncio.set_event_loop(None)


def output(data, label=None):
    """Print result in human-readable or JSON format."""
    use_json = click.get_current_context().find_root().params.get("use_json", False)
    if use_json:
        click.echo(_json.dumps(data, indent=2, default=str))
    elif isinstance(data, dict):
        for k, v in data.items():
            click.echo(f"{k}: {v}")
    elif label:
        click.echo(f"{label}: {data}")
    else:
        click.echo(data)


pass_conn = click.make_pass_decorator(Connection)


@click.group(invoke_without_command=True)
@click.option("--host", "-H", envvar="NETSDR_HOST", default="127.0.0.1", help="Receiver address")
@click.option("--port", "-p", envvar="NETSDR_PORT", type=int, default=None, help="TCP control port")
@click.option("--data-port", envvar="NETSDR_DATA_PORT", type=int, default=None, help="Local UDP data port")
@click.option("--json", "use_json", is_flag=True, help="Output as JSON")
@click.option("--debug", is_flag=True, envvar="NETSDR_DEBUG", help="Log protocol traffic")
@click.version_option(package_name="netsdr-client")
@click.pass_context
def cli(ctx, host, port, data_port, use_json, debug):
    """NetSDR receiver control CLI.

    Run with a command for one-shot operation, or without a command to enter
    interactive REPL mode.
    """
    logging.basicConfig(level=logging.WARNING, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if debug:
        logging.getLogger("netsdr_sdk").setLevel(logging.DEBUG)

    config = ClientConfig.from_env(host=host, control_port=port, data_port=data_port)
    ctx.obj = Connection(config)
    ctx.call_on_close(ctx.obj.close)

    if ctx.invoked_subcommand is None:
        click.echo("NetSDR CLI (type 'help' for commands, 'exit' to quit)")
        _repl(ctx)


def _repl(group_ctx):
    """Interactive REPL using prompt_toolkit."""
    group = group_ctx.command
    commands = list(group.commands)
    completer = WordCompleter(commands + ["help", "exit", "quit"])
    session = PromptSession(history=InMemoryHistory(), completer=completer)

    while True:
        try:
            line = session.prompt("> ").strip()
        except (EOFError, KeyboardInterrupt):
            break

        if not line:
            continue
        if line in ("exit", "quit"):
            break
        if line == "help":
            click.echo(group_ctx.get_help())
            continue

        try:
            args = shlex.split(line)
        except ValueError as e:
            click.echo(f"Parse error: {e}")
            continue

        try:
            cmd_name, cmd, args = group.resolve_command(group_ctx, args)
            if cmd is None:
                click.echo(f"Unknown command: {args[0] if args else line}")
                continue
            sub_ctx = cmd.make_context(cmd_name, list(args), parent=group_ctx)
            with sub_ctx:
                cmd.invoke(sub_ctx)
        except click.UsageError as e:
            click.echo(f"Error: {e}")
        except click.ClickException as e:
            e.show()
        except NetSdrError as e:
            click.echo(f"Receiver error: {e}", err=True)
        except (ConnectionError, TimeoutError) as e:
            click.echo(f"Connection error: {e}", err=True)
        except SystemExit:
            pass


def main():
    """Entry point."""
    try:
        cli(standalone_mode=False)
    except click.exceptions.Abort:
        pass
    except NetSdrError as e:
        click.echo(f"Receiver error: {e}", err=True)
        sys.exit(1)
    except (ConnectionError, TimeoutError) as e:
        click.echo(f"Connection error: {e}", err=True)
        sys.exit(1)
    except click.UsageError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(2)


# Import commands to register them on the cli group
from . import commands  # noqa: E402, F401
