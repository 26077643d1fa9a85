"""CLI entrypoint for ci-exec."""

import logging
import sys
from pathlib import Path

import rich_click as click

from ci_exec import __version__
from ci_exec.config import Settings
from ci_exec.errors import ExecutionError
from ci_exec.execution.controllers import ExecuteCliController, ExecuteCommand

click.rich_click.USE_MARKDOWN = True
EXECUTE_CONTROLLER = ExecuteCliController()


@click.group()
@click.version_option(version=__version__, prog_name="ci-exec")
@click.option(
    "-t",
    "--target",
    envvar="CI_EXEC_TARGET",
    default=None,
    help="Build server URL or the name of a saved target.",
)
@click.pass_context
def ci_exec(ctx: click.Context, target: str | None) -> None:
    """Run one-off tasks on a remote CI build server."""

    try:
        settings = Settings.from_env()
        settings.validate()
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    logging.basicConfig(
        level=settings.log_level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.obj = {"target": target, "settings": settings}


@ci_exec.command("execute")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    required=True,
    help="Task definition file.",
)
@click.option(
    "-i",
    "--input",
    "inputs",
    multiple=True,
    metavar="NAME=PATH",
    help="Bind a task input to a local directory. Can be repeated.",
)
@click.option(
    "-o",
    "--output",
    "outputs",
    multiple=True,
    metavar="NAME=PATH",
    help="Download a task output into a local directory. Can be repeated.",
)
@click.option(
    "--privileged/--no-privileged",
    default=False,
    show_default=True,
    help="Run the task with elevated privileges.",
)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def execute(  # noqa: PLR0913
    ctx: click.Context,
    config_path: Path,
    inputs: tuple[str, ...],
    outputs: tuple[str, ...],
    privileged: bool,
    args: tuple[str, ...],
) -> None:
    """Execute a task with local inputs; arguments after `--` are appended to `run.args`."""

    obj = ctx.obj or {}
    target = obj.get("target")
    if not target:
        raise click.UsageError("no target specified; pass -t/--target or set CI_EXEC_TARGET")

    try:
        outcome = EXECUTE_CONTROLLER.execute(
            ExecuteCommand(
                target=target,
                config_path=config_path,
                inputs=inputs,
                outputs=outputs,
                privileged=privileged,
                extra_args=args,
                settings=obj.get("settings"),
            ),
        )
    except ExecutionError as error:
        click.echo(f"error: {error}", err=True)
        ctx.exit(error.exit_code)
        return
    ctx.exit(outcome.exit_code)


ci_exec.add_command(execute, name="e")


def run() -> None:
    """Console entry point; usage errors exit 1 like every other local failure."""

    try:
        exit_code = ci_exec.main(standalone_mode=False)
    except click.Abort:
        click.echo("Aborted!", err=True)
        sys.exit(1)
    except click.ClickException as error:
        error.show()
        sys.exit(1)
    sys.exit(exit_code if isinstance(exit_code, int) else 0)


if __name__ == "__main__":  # pragma: no cover
    run()
