"""Tokenizer splitting a formula on the separators of a grammar.

A token is either a separator (bracket, space or operator token), a quoted
string, or the text between the current position and the next separator.
Separators are searched case-insensitively and, at equal positions, the
longest one wins, so ``>>>`` is preferred over ``>>`` over ``>``.
"""

from __future__ import annotations

import re

from calcengine.errors import (
    EndOfFormulaError,
    UnexpectedTokenError,
    UnterminatedStringError,
)


_SPACE = re.compile(r"\s")


def _is_word(text: str) -> bool:
    return all(ch.isalnum() or ch == "_" for ch in text)


class Tokenizer:
    """Cursor over a formula.

    Attributes:
        formula: The text being tokenized.
        index: Current position, from ``0`` to ``len(formula)``.
        separators: Separator tokens, longest first.
    """

    def __init__(self, formula: str, separators: list[str]) -> None:
        self.formula = formula
        self.index = 0
        self.separators = sorted(separators, key=len, reverse=True)
        self._lowered = formula.lower()
        self._skip_space()

    def peek(self) -> str:
        """Return the next token without consuming it.

        Returns ``""`` when the whole formula has been consumed.
        """
        formula = self.formula
        if self.index > len(formula):
            raise EndOfFormulaError(formula, self.index)
        if self.index == len(formula):
            return ""

        if formula[self.index] == '"':
            return self._peek_string()

        start, length = self._next_separator()
        if start == -1:
            return formula[self.index:].rstrip()
        if start == self.index:
            return formula[start:start + length]
        return formula[self.index:start].rstrip()

    def _peek_string(self) -> str:
        formula = self.formula
        i = self.index + 1
        previous = ""
        while i < len(formula) and (formula[i] != '"' or previous == "\\"):
            previous = formula[i]
            i += 1
        if i == len(formula):
            raise UnterminatedStringError(formula, self.index, i - self.index)
        return formula[self.index:i + 1]

    def _next_separator(self) -> tuple[int, int]:
        """Position and length of the earliest separator, or ``(-1, 0)``."""
        best, length = -1, 0
        for separator in self.separators:
            p = self._find(separator, self.index)
            if p >= 0 and (best == -1 or p < best):
                best, length = p, len(separator)
        # any whitespace ends a token, not only the space separator
        space = _SPACE.search(self.formula, self.index)
        if space is not None and (best == -1 or space.start() < best):
            best, length = space.start(), 1
        return best, length

    def _find(self, separator: str, start: int) -> int:
        text = self._lowered
        p = text.find(separator, start)
        if not _is_word(separator):
            return p
        # word operators only split on word boundaries
        while p >= 0:
            end = p + len(separator)
            before = text[p - 1] if p > 0 else " "
            after = text[end] if end < len(text) else " "
            if not _is_word(before) and not _is_word(after):
                return p
            p = text.find(separator, p + 1)
        return -1

    def consume(self, text: str) -> None:
        """Move past *text* and any following whitespace."""
        self.index += len(text)
        self._skip_space()

    def _skip_space(self) -> None:
        formula = self.formula
        while self.index < len(formula) and formula[self.index].isspace():
            self.index += 1

    def expect(self, text: str) -> None:
        """Consume *text*, or raise if the next token is something else."""
        token = self.peek()
        if token != text:
            raise UnexpectedTokenError(self.formula, self.index, token, text)
        self.consume(token)


def tokenize(formula: str, separators: list[str]) -> list[str]:
    """Split a whole formula into its tokens (spaces dropped)."""
    tokenizer = Tokenizer(formula.strip(), separators)
    tokens: list[str] = []
    while True:
        token = tokenizer.peek()
        if token == "":
            return tokens
        tokens.append(token)
        tokenizer.consume(token)
