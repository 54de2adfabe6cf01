"""
Cloud Security Scanner CLI Interface
Command-line interface for running compliance scans
"""

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn

from . import __version__
from .core.engine import ScanEngine
from .core.errors import ScanSetupError
from .core.framework import Severity
from .core.output import OutputEngine
from .core.regions import PROVIDERS
from .core.registry import CheckRegistry
from .core.settings import Settings


console = Console(stderr=True)

SEVERITY_STYLES = {
    "CRITICAL": "bold red",
    "HIGH": "red",
    "MEDIUM": "yellow",
    "LOW": "green",
    "INFO": "dim",
}


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def cli(ctx, verbose):
    """Cloud Security Scanner"""
    ctx.ensure_object(dict)

    # Configure logging
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Reduce noise from boto3
    logging.getLogger('boto3').setLevel(logging.WARNING)
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)


def _build_fetcher(provider, snapshot, profile, access_key_id,
                   secret_access_key, session_token, region):
    if snapshot:
        from .providers.snapshot import SnapshotFetcher
        return SnapshotFetcher.from_file(snapshot, provider=provider)
    if provider == "aws":
        from .providers.aws import AWSFetcher
        return AWSFetcher(
            access_key=access_key_id,
            secret_key=secret_access_key,
            session_token=session_token,
            region=region,
            profile=profile,
        )
    raise click.UsageError(f"--snapshot is required to scan {provider}")


@cli.command()
@click.option('--provider', '-p', type=click.Choice(PROVIDERS), default=None,
              help='Cloud provider to scan (default: aws)')
@click.option('--govcloud/--commercial', default=None, help='Scan government or commercial regions')
@click.option('--snapshot', type=click.Path(exists=True, dir_okay=False),
              help='Replay provider responses from a recorded snapshot')
@click.option('--record', type=click.Path(dir_okay=False),
              help='Write the fetched provider responses to a snapshot file')
@click.option('--profile', help='AWS profile to use')
@click.option('--access-key-id', help='AWS access key ID')
@click.option('--secret-access-key', help='AWS secret access key')
@click.option('--session-token', help='AWS session token')
@click.option('--home-region', default=None,
              help='Region used for global calls (default: us-east-1, us-gov-west-1 with --govcloud)')
@click.option('--regions', '-r', multiple=True, help='Regions to scan (default: all)')
@click.option('--services', '-s', multiple=True, help='Services to scan')
@click.option('--checks', '-c', multiple=True, help='Specific checks to run')
@click.option('--excluded-services', multiple=True, help='Services to exclude')
@click.option('--excluded-checks', multiple=True, help='Checks to exclude')
@click.option('--suppress', multiple=True,
              help='Suppress findings matching check_id:scope:resource')
@click.option('--severity-threshold', type=click.Choice([s.name for s in Severity],
                                                        case_sensitive=False),
              default=None, help='Lowest failed severity that sets exit code 1')
@click.option('--output', '-o', type=click.Path(), help='Output file path')
@click.option('--parallel/--no-parallel', default=None, help='Enable parallel execution')
@click.option('--max-workers', type=int, default=None, help='Maximum parallel workers')
@click.option('--timeout', type=float, default=None, help='Timeout in seconds')
@click.option('--quiet', '-q', is_flag=True, help='Quiet mode - JSON output only')
@click.option('--pretty', is_flag=True, help='Pretty print JSON output')
def scan(
    provider, govcloud, snapshot, record, profile, access_key_id,
    secret_access_key, session_token, home_region, regions, services, checks,
    excluded_services, excluded_checks, suppress, severity_threshold, output,
    parallel, max_workers, timeout, quiet, pretty
):
    """Execute a compliance scan"""

    settings = Settings.load(
        provider=provider,
        govcloud=govcloud,
        regions=list(regions) or None,
        services=list(services) or None,
        checks=list(checks) or None,
        excluded_services=list(excluded_services) or None,
        excluded_checks=list(excluded_checks) or None,
        suppress=list(suppress) or None,
        severity_threshold=severity_threshold,
        parallel=parallel,
        max_workers=max_workers,
        timeout=timeout,
    )

    if not quiet:
        console.print("[bold blue]Cloud Security Scanner[/bold blue]")
        console.print(f"[dim]Provider: {settings.provider}"
                      f"{' (govcloud)' if settings.govcloud else ''}[/dim]")

    try:
        fetcher = _build_fetcher(settings.provider, snapshot, profile, access_key_id,
                                 secret_access_key, session_token,
                                 home_region or _default_home_region(settings))
        engine = ScanEngine(fetcher, CheckRegistry(), settings)
        result = _execute_scan(engine, quiet)
    except ScanSetupError as e:
        error_result = {
            "error": True,
            "message": str(e),
            "metadata": {
                "scanner_version": __version__
            }
        }

        if output:
            Path(output).write_text(json.dumps(error_result), encoding='utf-8')
        else:
            click.echo(json.dumps(error_result))

        if not quiet:
            console.print(f"[red]Scan failed: {e}[/red]")
        sys.exit(2)

    report = OutputEngine.format_json(result, settings, metadata=fetcher.metadata())

    if record:
        Path(record).write_text(
            json.dumps(result.snapshot_dict(), indent=2, default=str), encoding='utf-8'
        )

    if output:
        OutputEngine.save_report(report, output)
        if not quiet:
            console.print(f"[green]Results written to {output}[/green]")
    elif pretty:
        click.echo(json.dumps(report, indent=2, default=str))
    else:
        click.echo(json.dumps(report, default=str))

    if not quiet:
        _display_summary(report)

    sys.exit(OutputEngine.exit_code(result, settings))


def _default_home_region(settings: Settings) -> str:
    return "us-gov-west-1" if settings.govcloud else "us-east-1"


def _execute_scan(engine: ScanEngine, quiet: bool):
    """Run the scan, with a spinner unless quiet"""
    if quiet:
        return engine.run_scan()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Scanning cloud resources...", total=None)
        result = engine.run_scan()
        progress.update(task, description="Scan completed!")
    return result


def _display_summary(report: dict):
    """Display scan summary in rich format"""
    summary = report['summary']
    by_status = summary['by_status']

    table = Table(title="Scan Summary", show_header=True, header_style="bold magenta")
    table.add_column("Metric", style="cyan", width=20)
    table.add_column("Value", style="green", width=15)
    table.add_column("Details", style="dim", width=30)

    table.add_row("Total Findings", str(summary['total_findings']), "All security checks executed")
    table.add_row("Failed", str(by_status['FAIL']), "Compliance violations")
    table.add_row("Warnings", str(by_status['WARN']), "Weak or default configuration")
    table.add_row("Errors", str(by_status['ERROR']), "Checks that could not decide")
    table.add_row("Passed", str(by_status['OK']), "Compliant resources")
    table.add_row("Suppressed", str(summary['suppressed']), "Matched a suppression rule")
    table.add_row("Fetch Errors", str(summary['fetch_errors']), "Failed provider calls")

    console.print(table)

    failed = [f for f in report['findings'] if f['status'] == 'FAIL' and not f['suppressed']]
    if failed:
        issues = Table(title="Failed Checks", show_header=True, header_style="bold red")
        issues.add_column("Severity")
        issues.add_column("Check", style="cyan")
        issues.add_column("Scope", style="magenta")
        issues.add_column("Resource")
        issues.add_column("Message", style="dim")

        for finding in failed:
            style = SEVERITY_STYLES.get(finding['severity'], "")
            issues.add_row(f"[{style}]{finding['severity']}[/{style}]",
                           finding['check_id'], finding['scope'],
                           finding['resource_id'], finding['message'])
        console.print(issues)


@cli.command('list-checks')
@click.option('--provider', '-p', type=click.Choice(PROVIDERS), default=None,
              help='Only list checks for this provider')
def list_checks(provider):
    """List available security checks"""
    registry = CheckRegistry()
    checks = (registry.get_checks_by_provider(provider) if provider
              else registry.get_all_checks())

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Check ID", style="cyan", no_wrap=True,
                     min_width=max((len(c.check_id) for c in checks), default=8))
    table.add_column("Provider")
    table.add_column("Severity")
    table.add_column("Title", style="dim")
    for check in checks:
        table.add_row(check.check_id, check.provider, check.severity.name, check.check_title)

    Console().print(table)


if __name__ == '__main__':
    cli()
