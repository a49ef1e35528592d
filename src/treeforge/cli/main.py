"""Primary Typer application wiring the treeforge CLI."""

from __future__ import annotations

from typing import Any, Callable, List, Optional

import click
import typer
from pydantic import ValidationError
from rich.table import Table

from treeforge.forest.errors import ForestValidationError
from treeforge.utils.logging import configure_logging

from . import forest
from .common import CLIError, configure_state, console, parse_override


class TreeforgeTyper(typer.Typer):
    """Typer subclass that supports registering exception handlers."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._exception_handlers: list[tuple[type[BaseException], Callable[[BaseException], Any]]] = []

    def exception_handler(
        self, exception_type: type[BaseException]
    ) -> Callable[[Callable[[BaseException], Any]], Callable[[BaseException], Any]]:
        def decorator(handler: Callable[[BaseException], Any]) -> Callable[[BaseException], Any]:
            self._exception_handlers.append((exception_type, handler))
            return handler

        return decorator

    def _resolve_handler(self, exception: BaseException) -> Callable[[BaseException], Any] | None:
        for registered_type, handler in self._exception_handlers:
            if isinstance(exception, registered_type):
                return handler
        return None

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        try:
            return super().__call__(*args, **kwargs)
        except BaseException as exc:  # pragma: no cover - CLI surface behaviour
            handler = self._resolve_handler(exc)
            if handler is None:
                raise
            result = handler(exc)
            if isinstance(result, BaseException):
                raise result
            return result


app = TreeforgeTyper(
    add_completion=False,
    help="""
    Organise flat parent-referencing records into forests and extract
    root-to-node lineages from the command line.
    """.strip(),
    no_args_is_help=True,
)


@app.exception_handler(CLIError)
def handle_cli_error(exception: CLIError) -> typer.Exit:
    """Render ``CLIError`` messages without stack traces."""

    console.print(f"[bold red]Error:[/bold red] {exception}")
    return typer.Exit(code=2)


@app.exception_handler(ForestValidationError)
def handle_validation_error(exception: ForestValidationError) -> typer.Exit:
    """Report rejected input with its error code."""

    console.print(f"[bold red]Invalid input ({exception.code}):[/bold red] {exception}")
    return typer.Exit(code=2)


@app.exception_handler(ValidationError)
def handle_record_error(exception: ValidationError) -> typer.Exit:
    """Summarise malformed records without the pydantic traceback."""

    first = exception.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or exception.title
    console.print(
        f"[bold red]Invalid record:[/bold red] {exception.error_count()} error(s); {location}: {first['msg']}"
    )
    return typer.Exit(code=2)


# Registered last: the handlers above cover ValueError subclasses.
@app.exception_handler(ValueError)
def handle_value_error(exception: ValueError) -> typer.Exit:
    console.print(f"[bold red]Error:[/bold red] {exception}")
    return typer.Exit(code=2)


@app.callback()
def main(
    ctx: typer.Context,
    environment: Optional[str] = typer.Option(
        None,
        "--environment",
        "-e",
        help="Active configuration environment (development, testing, production).",
        show_default=False,
    ),
    override: List[str] = typer.Option(  # noqa: B008 - Typer callback signature
        [],
        "--override",
        "-o",
        metavar="KEY=VALUE",
        help="Configuration override in dotted.key=value notation (repeatable).",
    ),
    run_id: Optional[str] = typer.Option(
        None,
        "--run-id",
        help="Explicit run identifier; defaults to a generated value.",
        show_default=False,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Emit verbose diagnostic output for CLI operations.",
    ),
) -> None:
    """Configure shared CLI state prior to executing subcommands."""

    overrides = [parse_override(item) for item in override]
    configure_state(
        ctx,
        environment=environment,
        overrides=overrides,
        run_id=run_id,
        verbose=verbose,
    )
    state = ctx.obj
    configure_logging(
        state.settings,
        level="DEBUG" if verbose else None,
        log_to_file=state.settings.create_dirs,
    )

    if verbose:
        table = Table(title="CLI Context", show_header=False, box=None)
        table.add_row("Environment", state.environment)
        table.add_row("Run ID", state.run_id)
        table.add_row("Policy", state.settings.policy_version)
        console.print(table)


app.add_typer(forest.app, name="forest", help="Forest construction commands")


def run() -> None:
    """Console-script entry point."""

    try:
        exit_code = app(prog_name="treeforge", standalone_mode=False) or 0
    except typer.Exit as exc:
        exit_code = exc.exit_code
    except click.ClickException as exc:
        exc.show()
        exit_code = exc.exit_code
    raise SystemExit(exit_code)
