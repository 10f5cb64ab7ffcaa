import asyncio
import sys
from datetime import timedelta

import click

from reftime.debug import debug_info, describe_state, to_human_readable
from reftime.errors import AllServersFailed
from reftime.logging import set_log_level
from reftime.model import Failed
from reftime.ref_time import RefTime
from reftime.settings import PRESETS, RefTimeSettings


@click.group()
@click.option("--server", "-s", "servers", multiple=True, help="NTP server to query (repeatable, tried in order)")
@click.option("--preset", type=click.Choice(sorted(PRESETS)), default="default", help="Base configuration preset")
@click.option("--timeout", type=float, default=None, help="Per-server timeout in seconds")
@click.option("--retries", type=int, default=None, help="Passes over the server list before giving up")
@click.option("--cache-valid", type=float, default=None, help="Seconds a successful sync stays valid")
@click.option("--debug", is_flag=True, default=False, help="Log decoded responses and sync traces")
@click.option("--log-level", default="INFO", help="Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")
@click.pass_context
def cli(ctx, servers, preset, timeout, retries, cache_valid, debug, log_level):
    set_log_level(log_level)
    overrides = {}
    if servers:
        overrides["ntp_hosts"] = list(servers)
    if timeout is not None:
        overrides["connection_timeout"] = timedelta(seconds=timeout)
    if retries is not None:
        overrides["max_retries"] = retries
    if cache_valid is not None:
        overrides["cache_valid_for"] = timedelta(seconds=cache_valid)
    if debug:
        overrides["debug"] = True
    ctx.obj = PRESETS[preset](**overrides)


def _report_failure(outcome: Failed) -> None:
    click.echo(f"Sync failed: {outcome.error}", err=True)
    if isinstance(outcome.error, AllServersFailed):
        for server, error in outcome.error.errors.items():
            click.echo(f"  {server}: {error}", err=True)


@cli.command()
@click.pass_obj
def sync(settings: RefTimeSettings):
    """Synchronize once and print the result."""
    ref_time = RefTime(settings)
    outcome = asyncio.run(ref_time.sync())
    if isinstance(outcome, Failed):
        _report_failure(outcome)
        sys.exit(1)

    result = ref_time.last_result
    click.echo(f"Server:       {result.server}")
    click.echo(f"Network time: {result.network_time.isoformat()}")
    click.echo(f"Clock offset: {to_human_readable(result.clock_offset)}")
    click.echo(f"Round trip:   {to_human_readable(result.round_trip_delay)}")
    click.echo(f"Accuracy:     {to_human_readable(result.accuracy)}")
    if settings.debug:
        click.echo(debug_info(ref_time))


async def _watch(ref_time: RefTime, interval: float, count: int) -> None:
    readings = 0
    while count == 0 or readings < count:
        if not ref_time.has_synced():
            outcome = await ref_time.sync()
            if isinstance(outcome, Failed):
                _report_failure(outcome)

        remaining = ref_time.cache_remaining()
        cache = to_human_readable(remaining) if remaining is not None else "-"
        click.echo(f"{ref_time.now_safe().isoformat()}  {describe_state(ref_time.state)}  cache {cache}")
        readings += 1
        await asyncio.sleep(interval)


@cli.command()
@click.option("--interval", type=float, default=1.0, help="Seconds between readings")
@click.option("--count", type=int, default=0, help="Stop after this many readings (0 = until interrupted)")
@click.pass_obj
def watch(settings: RefTimeSettings, interval: float, count: int):
    """Print the projected network time continuously, re-syncing when the cache expires."""
    ref_time = RefTime(settings)
    try:
        asyncio.run(_watch(ref_time, interval, count))
    except KeyboardInterrupt:
        click.echo("Stopped.")
    finally:
        ref_time.close()


if __name__ == "__main__":
    cli()
