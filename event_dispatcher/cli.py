from __future__ import annotations

import json
from collections.abc import Callable

import typer

from .config import DispatcherSettings
from .dispatcher import Dispatcher
from .logging import configure_logging

app = typer.Typer(help="Event dispatcher utility")


def _settings(prefix: str | None, auto_prefix: bool | None) -> DispatcherSettings:
    overrides: dict[str, object] = {}
    if prefix is not None:
        overrides["name_prefix"] = prefix
    if auto_prefix is not None:
        overrides["auto_prefix"] = auto_prefix
    return DispatcherSettings(**overrides)


def _parse_payload(raw: str | None) -> object:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"payload is not valid JSON: {exc.msg}") from exc


def _printer(label: str) -> Callable[[object], None]:
    def handler(payload: object) -> None:
        typer.echo(f"{label} <- {json.dumps(payload)}")

    return handler


@app.command()
def settings(
    prefix: str | None = typer.Option(None, help="Event name prefix"),
    auto_prefix: bool | None = typer.Option(
        None, "--auto-prefix/--no-auto-prefix", help="Prefix names on registration"
    ),
) -> None:
    """Print the effective dispatcher settings."""
    typer.echo(_settings(prefix, auto_prefix).model_dump_json(indent=2))


@app.command()
def emit(
    name: str = typer.Argument(..., help="Raw event name to emit"),
    payload: str | None = typer.Option(None, help="JSON payload attached to the event"),
    listen: list[str] | None = typer.Option(None, help="Register a printing handler"),
    once: list[str] | None = typer.Option(None, help="Register a single-shot handler"),
    trace: bool = typer.Option(False, help="Print every emission via a universal handler"),
    repeat: int = typer.Option(1, min=1, help="Number of times to emit"),
    prefix: str | None = typer.Option(None, help="Event name prefix"),
    auto_prefix: bool | None = typer.Option(
        None, "--auto-prefix/--no-auto-prefix", help="Prefix names on registration"
    ),
    verbose: bool = typer.Option(False, help="Print dispatch metrics"),
) -> None:
    """Emit an event against ad-hoc printing handlers."""
    data = _parse_payload(payload)
    cfg = _settings(prefix, auto_prefix)
    configure_logging(cfg.log_level, cfg.log_format)

    dispatcher: Dispatcher[object] = Dispatcher.from_settings(cfg)
    for event_name in listen or []:
        resolved = dispatcher.resolve_name(event_name)
        dispatcher.register(event_name, _printer(f"listen[{resolved}]"))
    for event_name in once or []:
        resolved = dispatcher.resolve_name(event_name)
        dispatcher.register_once(event_name, _printer(f"once[{resolved}]"))
    if trace:
        dispatcher.register_universal(
            lambda raw, value: typer.echo(f"trace[{raw}] <- {json.dumps(value)}")
        )

    for _ in range(repeat):
        dispatcher.emit(name, data)

    calls = dispatcher.metrics.handler_calls_total.value
    typer.echo(f"emitted {name} as {dispatcher.resolve_name(name, True)} ({calls} handler calls)")
    if verbose:
        typer.echo(json.dumps(dispatcher.metrics.snapshot(), indent=2))


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
