"""NetSDR CLI commands."""

import asyncio

import click

from netsdr_sdk import NetSdrError, SampleFileWriter

from .cli import cli, output, pass_conn

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def parse_frequency(value: str) -> int:
    """Parse frequency string to Hz.

    Accepts:
        - Pure numbers: interpreted as Hz (e.g., 14100000)
        - MHz suffix: 14.1MHz, 14.1M (megahertz)
        - kHz suffix: 7100kHz, 7100k, 7100.5kHz (kilohertz)

    Returns:
        Frequency in Hz as integer.
    """
    v = value.strip().upper()
    if v.endswith("MHZ"):
        return int(round(float(v[:-3]) * 1_000_000))
    if v.endswith("M"):
        return int(round(float(v[:-1]) * 1_000_000))
    if v.endswith("KHZ"):
        return int(round(float(v[:-3]) * 1_000))
    if v.endswith("K"):
        return int(round(float(v[:-1]) * 1_000))
    return int(v)


def _session_summary(conn) -> dict:
    client = conn.client
    return {
        "host": conn.config.host,
        "control_port": conn.config.control_port,
        "connected": client.connected,
        "iq_streaming": client.iq_streaming,
        "frequencies": dict(client.session.active_frequencies),
        "datagrams": client.pipeline.received,
        "dropped": client.pipeline.dropped,
    }


def _run(conn, coro):
    try:
        return conn.run(coro)
    except NetSdrError as e:
        raise click.ClickException(str(e))
    except (ConnectionError, TimeoutError) as e:
        raise click.ClickException(str(e))


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


@cli.command()
@pass_conn
def connect(conn):
    """Connect and send the receiver setup sequence."""
    _run(conn, conn.client.connect())
    output(_session_summary(conn))


@cli.command()
@pass_conn
def disconnect(conn):
    """Close the control connection."""
    conn.client.disconnect()
    output(_session_summary(conn))


@cli.command()
@pass_conn
def status(conn):
    """Show connection, streaming and tuning state."""
    output(_session_summary(conn))


# ---------------------------------------------------------------------------
# Tuning
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("value", type=str)
@click.option("--channel", "-c", default=0, type=int, help="Receiver channel")
@pass_conn
def frequency(conn, value, channel):
    """Tune a channel (Hz, or with suffix: 14.1MHz, 7100kHz).

    Examples:
        frequency 14100000     # 14.1 MHz (raw Hz)
        frequency 14.1MHz      # 14.1 MHz
        frequency 7100k -c 1   # 7.1 MHz on channel 1
    """
    try:
        hz = parse_frequency(value)
    except ValueError:
        raise click.BadParameter(f"Invalid frequency: {value}")

    client = conn.connected_client
    try:
        _run(conn, client.change_frequency(hz, channel))
    except ValueError as e:
        raise click.BadParameter(str(e))
    output(hz, f"channel {channel}")


# ---------------------------------------------------------------------------
# IQ streaming
# ---------------------------------------------------------------------------


@cli.command()
@pass_conn
def start(conn):
    """Start IQ streaming."""
    client = conn.connected_client
    _run(conn, client.start_iq())
    output(client.iq_streaming, "iq_streaming")


@cli.command()
@pass_conn
def stop(conn):
    """Stop IQ streaming."""
    client = conn.connected_client
    _run(conn, client.stop_iq())
    output(client.iq_streaming, "iq_streaming")


@cli.command()
@click.argument("seconds", type=float)
@click.option("--output", "-o", "path", default="samples.bin", show_default=True, help="Output file")
@pass_conn
def capture(conn, seconds, path):
    """Stream IQ for SECONDS and append raw samples to a file."""
    client = conn.connected_client
    with SampleFileWriter(path) as writer:
        client.add_sample_consumer(writer)
        try:
            _run(conn, client.start_iq())
            conn.run(asyncio.sleep(seconds))
            _run(conn, client.stop_iq())
        finally:
            client.remove_sample_consumer(writer)

    output(
        {
            "file": path,
            "samples": writer.samples_written,
            "datagrams": client.pipeline.delivered,
            "dropped": client.pipeline.dropped,
        }
    )
