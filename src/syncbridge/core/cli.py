"""Command line interface for SyncBridge."""

import sys
import json
import asyncio
import logging
from typing import Optional

import click

from .config import Settings, setup_logging, load_environment
from ..connectors import ConnectorRegistry, create_default_registry
from ..engine.sync import SyncEngine
from ..exceptions import ConfigurationError, ConnectorError, SyncBridgeException
from ..services.firestore import FirestoreStore
from ..services.scheduler import SchedulerService
from ..services.store import SyncStore


@click.group()
@click.option('--log-level', default='INFO', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']),
              help='Set the logging level')
@click.option('--env-file', type=click.Path(exists=True), help='Path to .env file')
@click.pass_context
def cli(ctx: click.Context, log_level: str, env_file: Optional[str]) -> None:
    """SyncBridge data synchronization tool."""
    setup_logging(log_level)
    load_environment(env_file)
    ctx.ensure_object(dict)
    ctx.obj.setdefault("settings", Settings.from_env())


def _get_store(ctx: click.Context) -> SyncStore:
    if "store" not in ctx.obj:
        ctx.obj["store"] = FirestoreStore(project_id=ctx.obj["settings"].google_cloud_project)
    return ctx.obj["store"]


def _get_registry(ctx: click.Context) -> ConnectorRegistry:
    if "registry" not in ctx.obj:
        ctx.obj["registry"] = create_default_registry(ctx.obj["settings"])
    return ctx.obj["registry"]


def _get_scheduler(ctx: click.Context) -> SchedulerService:
    if "scheduler" not in ctx.obj:
        settings = ctx.obj["settings"]
        ctx.obj["scheduler"] = SchedulerService(
            project_id=settings.google_cloud_project, region=settings.google_cloud_region
        )
    return ctx.obj["scheduler"]


@cli.command()
@click.argument('integration_id')
@click.option('--output', type=click.Choice(['table', 'json']), default='table',
              help='Output format')
@click.pass_context
def sync(ctx: click.Context, integration_id: str, output: str) -> None:
    """Run a sync for an integration and print its statistics."""
    try:
        engine = SyncEngine(_get_store(ctx), _get_registry(ctx), settings=ctx.obj["settings"])
        result = asyncio.run(engine.sync_integration(integration_id, triggered_by="cli"))

        if output == 'json':
            click.echo(result.model_dump_json(indent=2))
            return

        click.echo(f"Sync {result.sync_log_id} completed for integration {integration_id}")
        click.echo(f"{'Mapping':<30} {'Processed':<10} {'Succeeded':<10} {'Failed':<10}")
        click.echo("-" * 62)
        for mapping in result.mapping_results:
            click.echo(f"{mapping.name:<30} {mapping.records_processed:<10} "
                       f"{mapping.records_succeeded:<10} {mapping.records_failed:<10}")
        click.echo(f"\nTotal: {result.records_processed} processed, "
                   f"{result.records_succeeded} succeeded, {result.records_failed} failed")

    except ConfigurationError as e:
        click.echo(f"Configuration Error: {e}", err=True)
        sys.exit(1)
    except ConnectorError as e:
        click.echo(f"Connector Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        logging.exception("Unexpected error occurred")
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.pass_context
def connectors(ctx: click.Context) -> None:
    """List available connectors and their capabilities."""
    registry = _get_registry(ctx)
    for connector_id in registry.get_available_connector_types():
        info = registry.get_connector(connector_id).describe()
        caps = [name[len("can_"):] for name, enabled in info["capabilities"].items() if enabled]
        click.echo(f"{connector_id:<12} {info['name']:<12} {', '.join(caps)}")


@cli.command()
@click.argument('integration_id')
@click.option('--limit', type=int, default=20, help='Number of runs to show')
@click.option('--output', type=click.Choice(['table', 'json']), default='table',
              help='Output format')
@click.pass_context
def logs(ctx: click.Context, integration_id: str, limit: int, output: str) -> None:
    """Show recent sync runs for an integration."""
    try:
        runs = asyncio.run(_get_store(ctx).list_sync_logs(integration_id, limit=limit))
    except SyncBridgeException as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if output == 'json':
        click.echo(json.dumps([run.to_document() for run in runs], indent=2))
        return

    if not runs:
        click.echo(f"No sync runs found for integration: {integration_id}")
        return

    click.echo(f"{'Started':<20} {'Status':<10} {'Processed':<10} {'Succeeded':<10} {'Failed':<8} {'Error'}")
    click.echo("-" * 80)
    for run in runs:
        click.echo(f"{run.start_time.strftime('%Y-%m-%d %H:%M:%S'):<20} {run.status.value:<10} "
                   f"{run.records_processed:<10} {run.records_succeeded:<10} {run.records_failed:<8} "
                   f"{run.error or ''}")


@cli.command()
@click.argument('integration_id', required=False)
@click.option('--all', 'all_active', is_flag=True, help='Apply schedules for every active integration')
@click.option('--action', type=click.Choice(['apply', 'show', 'pause', 'resume', 'delete']), default='apply',
              help='What to do with the integration\'s scheduler job')
@click.pass_context
def schedule(ctx: click.Context, integration_id: Optional[str], all_active: bool, action: str) -> None:
    """Manage the Cloud Scheduler job of an integration, or of all active ones."""
    try:
        if all_active == bool(integration_id):
            raise ConfigurationError("Pass either an integration id or --all")
        if all_active and action != 'apply':
            raise ConfigurationError("--all only supports --action apply")

        scheduler = _get_scheduler(ctx)

        if all_active:
            integrations = asyncio.run(_get_store(ctx).list_integrations(status="active"))
            summary = scheduler.schedule_all(integrations, ctx.obj["settings"].service_url)
            for job in summary["scheduled"]:
                click.echo(f"Scheduled {job['job_name']} ({job['schedule']})")
            for failed_id, error in summary["failed"].items():
                click.echo(f"Failed to schedule {failed_id}: {error}", err=True)
            click.echo(f"Total: {len(summary['scheduled'])} scheduled, "
                       f"{len(summary['unscheduled'])} unscheduled, {len(summary['failed'])} failed")
            if summary["failed"]:
                sys.exit(1)
        elif action == 'apply':
            integration = asyncio.run(_get_store(ctx).get_integration(integration_id))
            if integration is None:
                raise ConfigurationError(f"Integration not found: {integration_id}")
            job = scheduler.schedule_integration(integration, ctx.obj["settings"].service_url)
            if job is None:
                click.echo(f"Integration {integration_id} is {integration.sync_frequency.value}; no job scheduled")
            else:
                click.echo(f"Scheduled {job['job_name']} ({job['schedule']}) -> {job['uri']}")
        elif action == 'show':
            job = scheduler.get_schedule(integration_id)
            if job is None:
                click.echo(f"No scheduler job for integration: {integration_id}")
            else:
                click.echo(json.dumps(job, indent=2))
        else:
            handler = {
                'pause': scheduler.pause_schedule,
                'resume': scheduler.resume_schedule,
                'delete': scheduler.delete_schedule,
            }[action]
            if handler(integration_id):
                click.echo(f"Scheduler job for {integration_id}: {action} done")
            else:
                click.echo(f"No scheduler job for integration: {integration_id}")

    except ConfigurationError as e:
        click.echo(f"Configuration Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        logging.exception("Unexpected error occurred")
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


if __name__ == '__main__':
    cli()
