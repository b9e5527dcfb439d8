"""Command-line interface for calcengine."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from calcengine import __version__
from calcengine.calculator import Calculator
from calcengine.config import load_config
from calcengine.errors import CalculatorError
from calcengine.logging.events import EventType
from calcengine.logging.sink import EventSink
from calcengine.tree import ConstantNode, Node, operands, token_of


@click.group()
@click.version_option(version=__version__, prog_name="calcengine")
def main() -> None:
    """calcengine -- extensible formula parser and calculator."""


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def _make_calculator(config_path: str | None, language: str | None) -> Calculator:
    try:
        config = load_config(Path(config_path) if config_path else None)
    except (OSError, ValueError) as e:
        raise click.ClickException(str(e))
    if language is not None:
        config["language"] = language
    return Calculator.from_config(config)


def _outline(tree: Node, depth: int = 0) -> list[str]:
    """One line per node: kind, then token or formatted value."""
    if isinstance(tree, ConstantNode):
        label = f"{tree.kind} {tree.type.name} {tree.type.format(tree.value)}"
    else:
        label = f"{tree.kind} {token_of(tree)}".rstrip()
    lines = ["  " * depth + label]
    for child in operands(tree):
        lines.extend(_outline(child, depth + 1))
    return lines


def _fail(calc: Calculator, exc: CalculatorError) -> None:
    if exc.formula:
        click.echo(exc.caret(), err=True)
    click.echo(calc.format_error(exc), err=True)
    sys.exit(1)


# ---------------------------------------------------------------------------
# Eval
# ---------------------------------------------------------------------------


@main.command("eval")
@click.argument("formulas", nargs=-1, required=True)
@click.option("--config", "config_path", default=None, type=click.Path(exists=True), help="calcengine.yaml file or directory holding it.")
@click.option("--lang", "language", default=None, help="Token language, e.g. 'fr'.")
@click.option("--tree", "show_tree", is_flag=True, help="Print the parsed tree before the result.")
def eval_cmd(formulas: tuple[str, ...], config_path: str | None, language: str | None, show_tree: bool) -> None:
    """Evaluate FORMULAS in order; variables such as mem persist between them."""
    calc = _make_calculator(config_path, language)
    for formula in formulas:
        try:
            tree = calc.parse(formula)
            if show_tree:
                for line in _outline(tree):
                    click.echo(line)
            result = calc.reduce_sync(tree, formula.strip())
        except CalculatorError as e:
            _fail(calc, e)
            return
        click.echo(calc.format(result))


# ---------------------------------------------------------------------------
# Format
# ---------------------------------------------------------------------------


@main.command("format")
@click.argument("formula")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True), help="calcengine.yaml file or directory holding it.")
@click.option("--lang", "language", default=None, help="Token language, e.g. 'fr'.")
def format_cmd(formula: str, config_path: str | None, language: str | None) -> None:
    """Print FORMULA with normalized spacing."""
    calc = _make_calculator(config_path, language)
    try:
        tree = calc.parse(formula)
    except CalculatorError as e:
        _fail(calc, e)
        return
    click.echo(calc.format(tree))


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


@main.command("tokens")
@click.argument("formula")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True), help="calcengine.yaml file or directory holding it.")
@click.option("--lang", "language", default=None, help="Token language, e.g. 'fr'.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def tokens_cmd(formula: str, config_path: str | None, language: str | None, as_json: bool) -> None:
    """List the tokens of FORMULA."""
    calc = _make_calculator(config_path, language)
    try:
        tokens = calc.tokens(formula)
    except CalculatorError as e:
        _fail(calc, e)
        return
    if as_json:
        click.echo(json.dumps(tokens, ensure_ascii=False))
    else:
        for token in tokens:
            click.echo(token)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@main.command("events")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True), help="calcengine.yaml file or directory holding it.")
@click.option("--log-dir", default=None, type=click.Path(file_okay=False), help="Log directory; defaults to logging.dir of the config.")
@click.option("--level", default=None, type=click.Choice(["info", "warning", "error"]), help="Filter by level.")
@click.option("--type", "event_type", default=None, type=click.Choice([t.value for t in EventType]), help="Filter by event type.")
@click.option("--formula", default=None, help="Only events about this formula.")
@click.option("--limit", default=100, type=int, help="Maximum events to show.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def events_cmd(
    config_path: str | None,
    log_dir: str | None,
    level: str | None,
    event_type: str | None,
    formula: str | None,
    limit: int,
    as_json: bool,
) -> None:
    """Show the parse and reduce events logged by eval, most recent first."""
    if log_dir is None:
        try:
            log_dir = load_config(Path(config_path) if config_path else None).get("log_dir")
        except (OSError, ValueError) as e:
            raise click.ClickException(str(e))
    if not log_dir:
        raise click.ClickException("No log directory: pass --log-dir or set logging.dir in calcengine.yaml")

    events = EventSink(Path(log_dir)).read_events(
        level=level,
        event_type=event_type,
        formula=formula,
        limit=limit,
    )
    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in events], ensure_ascii=False))
        return
    if not events:
        click.echo("No events found.")
        return
    for event in events:
        click.echo(event.summary())
