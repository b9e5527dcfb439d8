"""Error types for formula parsing and reduction.

Every error carries the formula, the offending span and an untranslated
message key so that hosts can localize the text and highlight the span.
"""

from __future__ import annotations

from typing import Any, Callable

# Message keys.  ``%0``, ``%1``... are replaced by ``message_params``.
END_OF_FORMULA = "End of formula has been reached"
UNTERMINATED_STRING = "Un-terminated string started at position %0"
UNEXPECTED_TOKEN = 'Found "%1" but expecting "%2" at position %0'
EXPECTED_VALUE = 'Expecting a value but found "%1" at position %0'
INVALID_NODE_KIND = "Invalid tree node kind %0"
NOT_ASSIGNABLE = '"%0" can not be assigned'
CALCULATION_FAILED = 'Can not calculate "%0": %1'
DIVISION_BY_ZERO = 'Division by zero in "%0"'
WRONG_ARGUMENT_COUNT = 'Wrong number of arguments for "%0": %1'


class CalculatorError(Exception):
    """Base class for all calculator errors.

    Attributes:
        formula: The formula where the error occurred (may be empty when
            reducing a tree built by hand).
        index: Position in the formula where the error occurred.
        length: Length of the offending token (0 when unknown).
        message_key: Untranslated message template.
        message_params: Values substituted for ``%0``, ``%1``...
    """

    def __init__(
        self,
        message_key: str,
        message_params: list[Any] | None = None,
        *,
        formula: str = "",
        index: int = 0,
        length: int = 0,
    ) -> None:
        self.formula = formula
        self.index = index
        self.length = length or 0
        self.message_key = message_key
        self.message_params = list(message_params or [])
        super().__init__(self.format())

    def format(self, lang: Callable[[str], str] | None = None) -> str:
        """Return the message, translated by *lang* then parameterized."""
        text = lang(self.message_key) if lang else self.message_key
        for i, param in enumerate(self.message_params):
            text = text.replace(f"%{i}", str(param))
        return text

    def caret(self) -> str:
        """Return the formula with a ``^`` marker line under the error span."""
        marker = " " * self.index + "^"
        if self.length >= 2:
            marker += "-" * (self.length - 2) + "^"
        return f"{self.formula}\n{marker}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "formula": self.formula,
            "index": self.index,
            "length": self.length,
            "message_key": self.message_key,
            "message_params": self.message_params,
        }


# ---------------------------------------------------------------------------
# Parse errors
# ---------------------------------------------------------------------------


class CalculatorParseError(CalculatorError):
    """Syntax error detected while tokenizing or parsing a formula."""


class EndOfFormulaError(CalculatorParseError):
    """The parser tried to read past the end of the formula."""

    def __init__(self, formula: str, index: int) -> None:
        super().__init__(END_OF_FORMULA, formula=formula, index=index)


class UnterminatedStringError(CalculatorParseError):
    """A string literal was opened but never closed."""

    def __init__(self, formula: str, index: int, length: int) -> None:
        super().__init__(
            UNTERMINATED_STRING, [index], formula=formula, index=index, length=length
        )


class UnexpectedTokenError(CalculatorParseError):
    """The parser expected one token and found another.

    Attributes:
        found: The token actually read.
        expected: The token the parser required.
    """

    def __init__(self, formula: str, index: int, found: str, expected: str) -> None:
        self.found = found
        self.expected = expected
        super().__init__(
            UNEXPECTED_TOKEN,
            [index, found, expected],
            formula=formula,
            index=index,
            length=len(found),
        )


class ExpectedValueError(CalculatorParseError):
    """A value was required but the token is reserved or unknown.

    Attributes:
        token: The token that could not be read as a value.
    """

    def __init__(self, formula: str, index: int, token: str) -> None:
        self.token = token
        super().__init__(
            EXPECTED_VALUE, [index, token], formula=formula, index=index, length=len(token)
        )


# ---------------------------------------------------------------------------
# Reduction errors
# ---------------------------------------------------------------------------


class CalculatorReduceError(CalculatorError):
    """Error raised while reducing a tree."""


class InvalidNodeKindError(CalculatorReduceError):
    """The reducer met a node it does not know (programming error)."""

    def __init__(self, node: Any) -> None:
        self.node = node
        super().__init__(INVALID_NODE_KIND, [type(node).__name__])


class NotAssignableError(CalculatorReduceError):
    """An assignment or increment targeted something that is not a variable."""

    def __init__(self, token: str, *, formula: str = "", index: int = 0) -> None:
        self.token = token
        super().__init__(
            NOT_ASSIGNABLE, [token], formula=formula, index=index, length=len(token)
        )


class CalculationError(CalculatorReduceError):
    """An operator or function failed on the values it was given.

    Attributes:
        token: The operator or function token.
    """

    def __init__(
        self,
        token: str,
        reason: str,
        *,
        message_key: str = CALCULATION_FAILED,
        formula: str = "",
        index: int = 0,
    ) -> None:
        self.token = token
        super().__init__(
            message_key, [token, reason], formula=formula, index=index, length=len(token)
        )


# Errors a host may catch to handle every engine failure.
ENGINE_ERRORS = (CalculatorError,)
