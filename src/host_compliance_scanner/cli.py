"""
HostGuard CLI Interface
Command-line interface for the host compliance scanner
"""

import json
import sys
import logging

import click
from rich.console import Console
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn

from . import __version__
from .config import ScanConfig, create_transport
from .core.engine import RunEngine, select_controls
from .core.errors import ScannerError
from .core.group import resource_refs
from .core.loader import load_controls
from .core.output import OutputEngine
from .core.registry import ResourceRegistry
from .core.results import Report, Status


console = Console(stderr=True)

STATUS_STYLES = {
    "passed": "green",
    "failed": "red",
    "errored": "magenta",
    "skipped": "dim",
}


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def cli(ctx, verbose):
    """HostGuard host compliance scanner"""
    ctx.ensure_object(dict)

    # Configure logging
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Reduce noise from transport libraries
    logging.getLogger('boto3').setLevel(logging.WARNING)
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('paramiko').setLevel(logging.WARNING)


@cli.command()
@click.argument('control_files', nargs=-1, required=True, type=click.Path(exists=True))
@click.option('--target', '-t', default='local://', show_default=True,
              help='Target URI: local://, ssh://[user@]host[:port] or ssm://<instance-id>')
@click.option('--sudo', is_flag=True, help='Run remote commands through sudo -n')
@click.option('--key-file', type=click.Path(), help='SSH private key')
@click.option('--password', help='SSH password')
@click.option('--port', type=int, help='SSH port (overrides the target URI)')
@click.option('--profile', help='AWS profile to use for ssm:// targets')
@click.option('--region', default='us-east-1', show_default=True, help='AWS region for ssm:// targets')
@click.option('--controls', '-c', multiple=True, help='Specific control ids to run')
@click.option('--tags', multiple=True, help='Only run controls carrying one of these tags')
@click.option('--parallel/--no-parallel', default=True, help='Enable parallel execution')
@click.option('--max-workers', type=int, default=10, help='Maximum parallel workers')
@click.option('--timeout', type=int, default=300, help='Run timeout in seconds (0 disables)')
@click.option('--command-timeout', type=int, default=60, help='Per-command timeout in seconds')
@click.option('--output', '-o', type=click.Path(), help='Output file path')
@click.option('--quiet', '-q', is_flag=True, help='Quiet mode - JSON output only')
@click.option('--pretty', is_flag=True, help='Pretty print JSON output')
def scan(
    control_files, target, sudo, key_file, password, port, profile, region,
    controls, tags, parallel, max_workers, timeout, command_timeout,
    output, quiet, pretty
):
    """Evaluate controls from CONTROL_FILES against a target"""

    try:
        config = ScanConfig(
            target=target,
            control_files=list(control_files),
            controls=list(controls) if controls else None,
            tags=list(tags) if tags else None,
            parallel_execution=parallel,
            max_workers=max_workers,
            timeout=timeout,
            command_timeout=command_timeout,
            sudo=sudo,
            key_file=key_file,
            password=password,
            port=port,
            aws_profile=profile,
            region=region,
        )
        selected = []
        for path in config.control_files:
            selected.extend(load_controls(path))
        selected = select_controls(selected, config.controls, config.tags)
        transport = create_transport(config)
    except ScannerError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        sys.exit(2)

    if not quiet:
        console.print("[bold blue]HostGuard Compliance Scanner[/bold blue]")
        console.print(f"[dim]Target: {transport.name} - {len(selected)} controls[/dim]")

    engine = RunEngine(
        parallel=config.parallel_execution,
        max_workers=config.max_workers,
        timeout=config.timeout,
    )

    with transport:
        report = _execute_run(engine, transport, selected, quiet)

    result = OutputEngine.format_json(report)

    # Format JSON output
    if pretty:
        json_output = json.dumps(result, indent=2, default=str)
    else:
        json_output = json.dumps(result, default=str)

    # Write output
    if output:
        try:
            OutputEngine.save_report(result, output)
        except ScannerError as e:
            console.print(f"[red]{e}[/red]")
            sys.exit(2)
        if not quiet:
            console.print(f"[green]Results written to {output}[/green]")
    else:
        click.echo(json_output)

    # Exit with error code if high/critical controls did not pass
    failed_controls = [
        control for control in report.controls
        if control.status in (Status.FAILED, Status.ERRORED)
        and control.severity in ('critical', 'high')
    ]
    if failed_controls:
        sys.exit(1)


def _execute_run(engine: RunEngine, transport, controls, quiet: bool) -> Report:
    """Execute the run and return the report"""
    if not quiet:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Evaluating controls...", total=None)
            report = engine.run(transport, controls)
            progress.update(task, description="Evaluation completed!")
        _display_summary(report)
    else:
        report = engine.run(transport, controls)
    return report


def _display_summary(report: Report):
    """Display run summary in rich format"""
    summary = report.summary()

    table = Table(title="Control Results", show_header=True, header_style="bold magenta")
    table.add_column("Control", style="cyan")
    table.add_column("Status")
    table.add_column("Severity", style="dim")
    table.add_column("Details", style="dim")

    for control in report.controls:
        style = STATUS_STYLES.get(control.status.value, "")
        failing = [r for r in control.results if r.status != Status.PASSED]
        details = control.message or (failing[0].message if failing else "")
        table.add_row(
            control.control_id,
            f"[{style}]{control.status.value.upper()}[/{style}]",
            control.severity,
            details,
        )

    console.print(table)

    counts = summary['by_status']
    console.print(
        f"[green]{counts['passed']} passed[/green], [red]{counts['failed']} failed[/red], "
        f"[magenta]{counts['errored']} errored[/magenta], [dim]{counts['skipped']} skipped[/dim] "
        f"- compliance score {summary['compliance_score']:.1f}%"
    )


@cli.command(name='list-resources')
def list_resources():
    """List available resource kinds and their properties"""
    registry = ResourceRegistry()

    console.print("[bold blue]Available Resources[/bold blue]\n")

    for kind, properties in registry.list_kinds().items():
        console.print(f"[bold green]{kind}[/bold green]: {', '.join(properties)}")


@cli.command(name='validate')
@click.argument('control_files', nargs=-1, required=True, type=click.Path(exists=True))
def validate(control_files):
    """Check that control files parse and reference known resources"""
    registry = ResourceRegistry()
    problems = 0
    for path in control_files:
        try:
            controls = load_controls(path)
        except ScannerError as e:
            console.print(f"[red]{e}[/red]")
            problems += 1
            continue
        for control in controls:
            for kind in _referenced_kinds(control):
                if not registry.has_kind(kind):
                    console.print(f"[red]{path}: control {control.control_id}: "
                                  f"unknown resource kind '{kind}'[/red]")
                    problems += 1
        console.print(f"[dim]{path}: {len(controls)} controls[/dim]")

    if problems:
        sys.exit(1)
    console.print("[green]All control files are valid[/green]")


def _referenced_kinds(control):
    refs = resource_refs(control.root)
    if control.only_if is not None:
        refs.append(control.only_if.resource)
    return sorted({ref.kind for ref in refs})


def main():
    """Main CLI entry point"""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Scan interrupted by user[/yellow]")
        sys.exit(1)


if __name__ == "__main__":
    main()
