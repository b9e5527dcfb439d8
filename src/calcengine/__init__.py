"""calcengine: an extensible formula parser and calculator."""

__version__ = "0.1.0"

from calcengine.calculator import Calculator
from calcengine.defaults import default_grammar
from calcengine.errors import (
    ENGINE_ERRORS,
    CalculationError,
    CalculatorError,
    CalculatorParseError,
    CalculatorReduceError,
    EndOfFormulaError,
    ExpectedValueError,
    InvalidNodeKindError,
    NotAssignableError,
    UnexpectedTokenError,
    UnterminatedStringError,
)
from calcengine.formatter import format_tree
from calcengine.grammar import Function, Grammar, Literal, Operator
from calcengine.parser import parse_formula
from calcengine.reducer import Reducer, from_calculate, reduce_tree

__all__ = [
    "Calculator",
    "CalculationError",
    "CalculatorError",
    "CalculatorParseError",
    "CalculatorReduceError",
    "ENGINE_ERRORS",
    "EndOfFormulaError",
    "ExpectedValueError",
    "Function",
    "Grammar",
    "InvalidNodeKindError",
    "Literal",
    "NotAssignableError",
    "Operator",
    "Reducer",
    "UnexpectedTokenError",
    "UnterminatedStringError",
    "__version__",
    "default_grammar",
    "format_tree",
    "from_calculate",
    "parse_formula",
    "reduce_tree",
]
