"""Calculator facade: one grammar plus parse, reduce and format.

Example::

    calc = Calculator()
    tree = calc.parse("mem = 2 ** 10")
    calc.format(calc.reduce_sync(tree))     # "1024"
    calc.format(calc.evaluate("mem + 1"))   # "1025"

Parse and reduce outcomes are reported as structured events (see
:mod:`calcengine.logging`); errors are always re-raised to the caller.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

from calcengine.config import load_config
from calcengine.defaults import default_grammar, grammar_from_config
from calcengine.errors import CalculatorError
from calcengine.formatter import format_tree
from calcengine.grammar import Grammar
from calcengine.lang import Lang, identity, make_lang
from calcengine.logging.events import (
    EventLevel,
    EventType,
    emit_failure,
    emit_info,
    set_log_dir,
)
from calcengine.parser import Parser
from calcengine.reducer import Reducer
from calcengine.tokenizer import tokenize
from calcengine.tree import Node


class Calculator:
    """Parses, reduces and formats formulas with a single grammar.

    Attributes:
        grammar: The grammar in use; register extra entries on it directly.
        lang: Translation function used for error messages.
    """

    def __init__(self, grammar: Grammar | None = None, lang: Lang | None = None) -> None:
        self.lang = lang or identity
        self.grammar = grammar if grammar is not None else default_grammar(self.lang)

    @classmethod
    def from_config(cls, config: dict[str, Any] | None = None) -> Calculator:
        """Build a calculator from a loaded configuration.

        Also configures the event sink when ``log_dir`` is set.
        """
        config = config if config is not None else load_config()
        if config.get("log_dir"):
            set_log_dir(config["log_dir"], fsync=bool(config.get("logging_fsync")))
        lang = make_lang(config.get("language"), config.get("translations"))
        return cls(grammar_from_config(config), lang)

    def copy(self) -> Calculator:
        """Return a calculator whose variables are independent of this one."""
        return Calculator(self.grammar.copy(), self.lang)

    # ------------------------------------------------------------------

    def parse(self, formula: str) -> Node:
        """Parse *formula* into a tree.

        Raises:
            CalculatorParseError: If the formula has invalid syntax.
        """
        try:
            tree = Parser(self.grammar).parse(formula)
        except CalculatorError as exc:
            emit_failure(EventLevel.warning, EventType.parse_failed, exc, exc.format(self.lang), formula)
            raise
        emit_info(EventType.parse_completed, f"Parsed {formula!r}", {"formula": formula})
        return tree

    async def reduce(self, tree: Node, formula: str = "") -> Node:
        """Reduce *tree* as far as possible.

        Raises:
            CalculatorReduceError: If an operator or function fails.
        """
        t0 = time.monotonic()
        try:
            result = await Reducer(self.grammar, formula).reduce(tree)
        except CalculatorError as exc:
            emit_failure(EventLevel.error, EventType.reduce_failed, exc, exc.format(self.lang), formula)
            raise
        emit_info(
            EventType.reduce_completed,
            f"Reduced {formula!r}" if formula else "Reduced tree",
            {
                "formula": formula,
                "result": format_tree(result),
                "duration_ms": round((time.monotonic() - t0) * 1000, 3),
            },
        )
        return result

    def reduce_sync(self, tree: Node, formula: str = "") -> Node:
        """Run :meth:`reduce` to completion outside of an event loop."""
        return asyncio.run(self.reduce(tree, formula))

    async def evaluate_async(self, formula: str) -> Node:
        """Parse then reduce *formula*."""
        tree = self.parse(formula)
        return await self.reduce(tree, formula.strip())

    def evaluate(self, formula: str) -> Node:
        """Parse then reduce *formula* synchronously."""
        return asyncio.run(self.evaluate_async(formula))

    def format(self, tree: Node) -> str:
        return format_tree(tree)

    def format_error(self, exc: CalculatorError) -> str:
        """Translated message of *exc*."""
        return exc.format(self.lang)

    def tokens(self, formula: str) -> list[str]:
        return tokenize(formula, self.grammar.separators())
