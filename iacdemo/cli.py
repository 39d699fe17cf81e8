"""
iacdemo CLI entry point.
"""
import sys
from typing import List, Optional

import click
from rich.console import Console
from rich.table import Table

from iacdemo import __version__
from iacdemo.config import load_config
from iacdemo.errors import ConfigError, SynthesisError
from iacdemo.models.resource import Resource
from iacdemo.reporters import json_reporter, markdown, yaml_reporter
from iacdemo.stack import Stack
from iacdemo.stacks.iac_demo_stack import build_iac_demo_stack


def _build_stack(config_path: Optional[str], stderr: Console) -> Stack:
    try:
        config = load_config(config_path)
        return build_iac_demo_stack(config)
    except ConfigError as exc:
        stderr.print(f"[red]Config error:[/red] {exc}")
        sys.exit(2)
    except SynthesisError as exc:
        stderr.print(f"[red]Synthesis error:[/red] {exc}")
        sys.exit(2)


def _print_order_table(order: List[Resource], no_color: bool) -> None:
    tbl = Table(title="Resolved Resources", show_header=True, header_style="bold")
    tbl.add_column("#", style="dim", width=4)
    tbl.add_column("Logical ID", width=40)
    tbl.add_column("Type", width=30)
    tbl.add_column("Depends On")

    for i, r in enumerate(order, 1):
        deps = ", ".join(sorted(r.references))
        tbl.add_row(str(i), r.name, r.cfn_type, deps or "-")

    Console(stderr=True, no_color=no_color).print(tbl)


_config_option = click.option(
    "--config", "-c", "config_path",
    type=click.Path(),
    default=None,
    help="YAML config file (default: ./iacdemo.yaml if present).",
)


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.version_option(__version__)
@click.pass_context
def cli(ctx):
    """iacdemo — synthesize the IacDemo stack into a CloudFormation template."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit()


@cli.command()
@_config_option
@click.option(
    "--format", "output_format",
    type=click.Choice(["json", "yaml", "markdown"], case_sensitive=False),
    default="json",
    show_default=True,
    help="Output format.",
)
@click.option(
    "--output", "-o",
    type=click.Path(),
    default=None,
    help="Write the template to this file (default: stdout).",
)
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable rich terminal color output.",
)
def synth(
    config_path: Optional[str],
    output_format: str,
    output: Optional[str],
    no_color: bool,
) -> None:
    """Synthesize the stack and emit its template."""
    stderr = Console(stderr=True, no_color=no_color)
    stack = _build_stack(config_path, stderr)

    with stderr.status(f"[bold]Synthesizing {stack.stack_id}…"):
        try:
            order = stack.synthesize()
            template = stack.emit()
        except SynthesisError as exc:
            stderr.print(f"[red]Synthesis error:[/red] {exc}")
            sys.exit(2)

    stderr.print(
        f"Synthesized [bold]{len(order)}[/bold] resources, "
        f"[bold]{len(template['Outputs'])}[/bold] output(s)."
    )

    fmt = output_format.lower()
    if fmt == "yaml":
        content = yaml_reporter.build_report(template)
    elif fmt == "markdown":
        content = markdown.build_report(stack.stack_id, order, template)
    else:
        content = json_reporter.build_report(template)

    if output:
        with open(output, "w", encoding="utf-8", newline="\n") as fh:
            fh.write(content)
            if not content.endswith("\n"):
                fh.write("\n")
        stderr.print(f"Template written to [bold]{output}[/bold]")
    else:
        click.echo(content)


@cli.command(name="list")
@_config_option
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable rich terminal color output.",
)
def list_resources(config_path: Optional[str], no_color: bool) -> None:
    """List the stack's resources in dependency order."""
    stderr = Console(stderr=True, no_color=no_color)
    stack = _build_stack(config_path, stderr)
    try:
        order = stack.synthesize()
    except SynthesisError as exc:
        stderr.print(f"[red]Synthesis error:[/red] {exc}")
        sys.exit(2)

    _print_order_table(order, no_color)
    for r in order:
        click.echo(f"{r.name}\t{r.cfn_type}")


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
