"""
Service container and CLI for the Channel Sync & Reconciliation engine.
"""
import time
from datetime import datetime
from typing import Optional, Dict, Any, Callable

import click
import requests

from .feed_parser.parser import FeedParser
from .transport.proxy import ProxyRotator
from .transport.ical_adapter import ICalAdapter
from .transport.api_adapter import FutureApiAdapter
from .transport.factory import AdapterFactory
from .reconciliation.engine import ReconciliationEngine
from .policy.evaluator import CancellationPolicyEvaluator
from .scheduler.scheduler import SyncScheduler
from .storage.base import SyncStore
from .storage.supabase_store import SupabaseStore
from .export.ical_export import generate_ical_feed
from .utils.models import (
    CancellationPolicy, CancellationOutcome, CanonicalBooking, SyncResult, utc_now
)
from .utils.logger import setup_logger, SyncLogger, ICalDebugLog
from .utils.network import NetworkMonitor
from config.settings import sync_config, proxy_config, app_config, api_config


class ChannelSyncAutomation:
    """Builds every collaborator once and exposes the engine's operations."""

    def __init__(
        self,
        log_level: str = app_config.log_level,
        log_file: Optional[str] = None,
        store: Optional[SyncStore] = None,
        session: Optional[requests.Session] = None,
        network: Optional[NetworkMonitor] = None,
        clock: Callable[[], datetime] = utc_now,
        interval: Optional[str] = None,
    ):
        self.logger = setup_logger("channel_sync", log_level, log_file)
        self.sync_logger = SyncLogger(self.logger)
        self.debug_log = ICalDebugLog(logger=self.logger)
        self.clock = clock

        self.store = store or SupabaseStore()
        self.network = network or NetworkMonitor(probe_url=sync_config.network_probe_url or None)

        pool = proxy_config.get_pool()
        if proxy_config.base_url and pool[0] != proxy_config.base_url:
            self.logger.warning("Ignoring invalid proxy override (must be https://)", proxy=proxy_config.base_url)
        self.rotator = ProxyRotator(pool)

        self.ical_adapter = ICalAdapter(
            session=session,
            rotator=self.rotator,
            network=self.network,
            parser=FeedParser(),
            clock=clock,
            debug_log=self.debug_log,
        )
        self.adapter_factory = AdapterFactory(ical_adapter=self.ical_adapter, api_adapter=FutureApiAdapter())
        self.engine = ReconciliationEngine(
            self.store,
            self.adapter_factory,
            clock=clock,
            debug_log=self.debug_log,
            sync_logger=self.sync_logger,
        )
        self.scheduler = SyncScheduler(
            self.engine,
            self.store,
            self.network,
            interval=interval or sync_config.interval,
            sync_logger=self.sync_logger,
        )
        self.evaluator = CancellationPolicyEvaluator()

    def sync_unit(self, unit_id: str) -> SyncResult:
        """Manual sync of one unit; retries connections awaiting a human."""
        result = self.scheduler.run_exclusive(lambda: self.engine.sync_unit(unit_id, automated=False))
        self.sync_logger.log_unit_synced(unit_id, result)
        return result

    def sync_all(self) -> Dict[str, Any]:
        """Run one manual cycle across every unit."""
        results = self.scheduler.trigger_now()
        return {
            'units': len(results),
            'processed': sum(r.processed for r in results),
            'conflicts': sum(r.conflicts for r in results),
            'errors': [e for r in results for e in r.errors],
            'offline': not self.network.is_online(),
        }

    def delete_connection(self, connection_id: str) -> Optional[SyncResult]:
        return self.scheduler.run_exclusive(lambda: self.engine.delete_connection(connection_id))

    def export_calendar(self, unit_id: str) -> Optional[str]:
        """iCalendar document for a unit, or None when the unit is unknown."""
        unit = self.store.get_unit(unit_id)
        if unit is None:
            return None
        return generate_ical_feed(unit, self.store.get_bookings(unit_id), api_config.base_url, self.clock)

    def evaluate_cancellation(
        self,
        policy: CancellationPolicy,
        booking: CanonicalBooking,
        requested_at: Optional[datetime] = None,
    ) -> CancellationOutcome:
        return self.evaluator.evaluate(policy, booking, requested_at or self.clock())

    def set_interval(self, value: str):
        return self.scheduler.set_interval(value)

    def watch(self, interval: Optional[str] = None):
        """Start the scheduler and block until interrupted."""
        if interval:
            self.scheduler.set_interval(interval)
        else:
            self.scheduler.start()
        if not self.scheduler.is_running:
            raise click.UsageError("Scheduler interval is 'manual'; pass --interval 15, 30 or 60 to watch")

        self.logger.info("Watching feeds", interval=self.scheduler.interval.value)
        try:
            while True:
                time.sleep(60)
                self.network.probe()
        except KeyboardInterrupt:
            self.logger.info("Watch interrupted")
        finally:
            self.shutdown()

    def shutdown(self):
        self.scheduler.close()
        self.logger.info("Channel sync stopped")


@click.command()
@click.option('--unit', 'unit_id', type=str,
              help='Sync a single rental unit by id')
@click.option('--all', 'sync_all', is_flag=True,
              help='Run one sync cycle over every unit')
@click.option('--watch', is_flag=True,
              help='Start the periodic scheduler and keep running')
@click.option('--interval', type=click.Choice(['15', '30', '60', 'manual']),
              help='Scheduler interval in minutes (with --watch)')
@click.option('--delete-connection', 'connection_id', type=str,
              help='Delete a channel connection and re-reconcile its unit')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']),
              default='INFO', help='Logging level')
@click.option('--log-file', type=str,
              help='Log file path (optional)')
@click.option('--debug-report', is_flag=True,
              help='Print the feed diagnostics report after syncing')
def main(unit_id, sync_all, watch, interval, connection_id, log_level, log_file, debug_report):
    """
    Channel Sync & Reconciliation Engine.

    Pulls availability feeds from booking channels and reconciles them into
    one booking ledger per rental unit.
    """
    ctx = click.get_current_context()
    if not any([unit_id, sync_all, watch, connection_id]):
        click.echo(ctx.get_help())
        return

    exit_code = 0
    try:
        automation = ChannelSyncAutomation(log_level, log_file)

        if connection_id:
            result = automation.delete_connection(connection_id)
            if result is None:
                click.echo(f"Connection not found: {connection_id}")
                exit_code = 1
            else:
                click.echo(f"Connection {connection_id} deleted; unit {result.unit_id} reconciled "
                           f"({result.conflicts} conflicts)")

        if unit_id:
            result = automation.sync_unit(unit_id)
            click.echo(f"\nUnit {unit_id} synced:")
            click.echo(f"  Connections processed: {result.processed}")
            click.echo(f"  Conflicts: {result.conflicts}")
            click.echo(f"  Errors: {len(result.errors)}")
            for error in result.errors:
                click.echo(f"    - {error}")

        if sync_all:
            summary = automation.sync_all()
            if summary['offline']:
                click.echo("Offline: sync skipped")
            click.echo(f"\nSync cycle completed:")
            click.echo(f"  Units: {summary['units']}")
            click.echo(f"  Connections processed: {summary['processed']}")
            click.echo(f"  Conflicts: {summary['conflicts']}")
            click.echo(f"  Errors: {len(summary['errors'])}")
            for error in summary['errors']:
                click.echo(f"    - {error}")

        if unit_id or sync_all:
            automation.sync_logger.print_summary()
            if debug_report:
                click.echo(automation.debug_log.get_report())

        if watch:
            automation.watch(interval)

    except click.UsageError:
        raise
    except Exception as e:
        click.echo(f"Fatal error: {str(e)}")
        exit_code = 1

    if exit_code:
        ctx.exit(exit_code)


if __name__ == "__main__":
    main()
