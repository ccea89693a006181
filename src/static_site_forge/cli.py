# Copyright 2025 Snowflake Inc.
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""CLI entry point for Static Site Forge.

Running the bare command asks one question -- update or destroy -- and then
drives the Pulumi stack through its phases with a live progress display.

Commands:
- (default) / deploy: interactive update or destroy run
- doctor: check prerequisites (pulumi CLI, AWS credentials, terminal)
- outputs: print the current stack outputs
"""

import asyncio
import json
import logging
import sys
from pathlib import Path

import click
from pulumi import automation as auto

from static_site_forge import __version__
from static_site_forge.common import (
    Settings,
    check_tool,
    get_config,
    load_settings,
    setup_logging_for_cli,
)
from static_site_forge.display import DisplayController
from static_site_forge.lifecycle import Failure, LifecycleDriver, Outcome, RunMode, StackOpener
from static_site_forge.sessions import preflight_aws_check
from static_site_forge.workspace import PulumiStack

LOG = logging.getLogger(__name__)

PROMPT_MESSAGE = "What kind of update is this?"


class PromptEnvironmentError(click.ClickException):
    """The interactive prompt cannot be shown (stdin is not a terminal)."""

    def __init__(self, message: str = "Prompt couldn't be rendered in the current environment."):
        super().__init__(message)


def is_interactive() -> bool:
    return sys.stdin.isatty()


def prompt_run_mode() -> RunMode:
    """Ask the operator for the run mode; default is update."""
    if not is_interactive():
        raise PromptEnvironmentError()
    choice = click.prompt(
        PROMPT_MESSAGE,
        type=click.Choice([m.value for m in RunMode]),
        default=RunMode.UPDATE.value,
    )
    return RunMode(choice)


def run_lifecycle(mode: RunMode, settings: Settings, display: DisplayController,
                  open_stack: StackOpener) -> Outcome:
    """Drive one run to completion with `display` showing progress."""
    driver = LifecycleDriver(open_stack, display, settings)
    with display:
        return asyncio.run(driver.run(mode))


# =============================================================================
# CLI Entry Point
# =============================================================================

def expand_path_callback(ctx, param, value):
    """Expand ~ and validate path exists."""
    if value is None:
        return None
    expanded = Path(value).expanduser()
    if not expanded.exists():
        raise click.BadParameter(f"Directory '{value}' does not exist.")
    if not expanded.is_dir():
        raise click.BadParameter(f"'{value}' is not a directory.")
    return str(expanded)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, message="%(version)s")
@click.option("--work-dir", "-w", callback=expand_path_callback,
              help="Directory containing .env (defaults to current directory)")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, work_dir: str | None, debug: bool):
    """Static Site Forge - deploy an S3 static website with Pulumi."""
    setup_logging_for_cli(logging.DEBUG if debug else logging.WARNING)
    ctx.ensure_object(dict)
    ctx.obj["WORK_DIR"] = Path(work_dir).resolve() if work_dir else Path.cwd().resolve()
    ctx.obj["CONFIG"] = get_config(ctx.obj["WORK_DIR"])
    ctx.obj["SETTINGS"] = load_settings(ctx.obj["CONFIG"])
    LOG.debug("Settings: %s", ctx.obj["SETTINGS"])

    if ctx.invoked_subcommand is None:
        ctx.invoke(deploy)


# =============================================================================
# Deploy Command
# =============================================================================

@cli.command("deploy")
@click.pass_context
def deploy(ctx):
    """Update or destroy the website stack (asks which)."""
    settings = ctx.obj["SETTINGS"]
    mode = prompt_run_mode()
    outcome = run_lifecycle(mode, settings, DisplayController(), PulumiStack.create_or_select)
    if isinstance(outcome, Failure):
        sys.exit(1)


# =============================================================================
# Doctor Command
# =============================================================================

@cli.command("doctor")
@click.option("--output", "-o", type=click.Choice(["text", "json"]), default="text",
              help="Output format")
@click.pass_context
def doctor(ctx, output: str):
    """Check prerequisites and environment status."""
    settings = ctx.obj["SETTINGS"]
    issues = []
    checks = []

    ok = check_tool("pulumi")
    checks.append({"name": "tool:pulumi", "ok": ok})
    if not ok:
        issues.append("Tool 'pulumi' not found in PATH. Install: https://www.pulumi.com/docs/install/")

    try:
        identity = preflight_aws_check(settings.aws_profile, settings.aws_region)
        checks.append({"name": "aws-credentials", "ok": True, "account": identity["account"]})
    except click.ClickException as e:
        checks.append({"name": "aws-credentials", "ok": False})
        issues.append(e.format_message())

    ok = is_interactive()
    checks.append({"name": "interactive-terminal", "ok": ok})
    if not ok:
        issues.append("stdin is not a terminal; the update/destroy prompt cannot be shown")

    if output == "json":
        result = {"checks": checks, "issues": issues, "ok": len(issues) == 0}
        click.echo(json.dumps(result, indent=2))
        if issues:
            sys.exit(1)
        return

    click.echo("Static Site Forge - Environment Check")
    click.echo("=" * 40)
    click.echo(f"  Stack:  {settings.project_name}/{settings.stack_name}")
    click.echo(f"  Region: {settings.aws_region}")
    click.echo("")
    for check in checks:
        status = "OK" if check["ok"] else "FAIL"
        extra = f" (account {check['account']})" if "account" in check else ""
        click.echo(f"  [{status}] {check['name']}{extra}")

    if issues:
        click.echo("")
        click.echo("Issues:")
        for issue in issues:
            click.echo(f"  - {issue}")
        sys.exit(1)
    click.echo("")
    click.secho("All checks passed!", fg="green")


# =============================================================================
# Outputs Command
# =============================================================================

async def _read_outputs(settings: Settings) -> dict:
    stack = await PulumiStack.create_or_select(settings)
    return await stack.outputs()


@cli.command("outputs")
@click.option("--output", "-o", type=click.Choice(["text", "json"]), default="text",
              help="Output format")
@click.pass_context
def outputs(ctx, output: str):
    """Show the current stack outputs."""
    settings = ctx.obj["SETTINGS"]
    try:
        values = asyncio.run(_read_outputs(settings))
    except auto.CommandError as e:
        raise click.ClickException(f"Could not read outputs of stack '{settings.stack_name}': {e}")

    if output == "json":
        click.echo(json.dumps(values, indent=2, default=str))
        return

    if not values:
        click.echo(f"Stack '{settings.stack_name}' has no outputs. Run 'static-site-forge' to deploy.")
        return
    for name, value in sorted(values.items()):
        click.echo(f"{name}: {value}")


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    cli()
