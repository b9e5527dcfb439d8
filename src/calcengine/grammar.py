"""Grammar registry: value types, literals, functions and operators.

A :class:`Grammar` is an explicit object.  Nothing is registered at module
level; embedders build one (usually through
:func:`calcengine.defaults.default_grammar`) and pass it to the parser and
reducer.  Tokens are keyed lower-case and registering a token again
replaces the previous entry, which lets embedders override or translate
the defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from calcengine.errors import CalculationError
from calcengine.tree import ArrayNode, ConstantNode, NODE_TYPES, Node
from calcengine.valuetypes import NO_MATCH, ValueType

if TYPE_CHECKING:
    from calcengine.reducer import Reducer

# reduce(context, node, *operand_trees) -> Node, or an awaitable of Node
ReduceFn = Callable[..., Any]

ASSOCIATIVITIES = ("left", "right", "prefix", "postfix")

# Separators that are always present, whatever operators are registered.
BASE_SEPARATORS = ("(", ")", "[", "]", " ")


# ---------------------------------------------------------------------------
# Literal accessors
# ---------------------------------------------------------------------------


class FixedValue:
    """Accessor for a constant literal such as ``pi``."""

    settable = False

    def __init__(self, value: Any) -> None:
        self.value = value

    def get(self, context: Any = None) -> Any:
        return self.value

    def set(self, context: Any, value: Any) -> None:
        raise AttributeError("constant literal can not be assigned")

    def clone(self) -> FixedValue:
        return self


class Variable:
    """Accessor owning a mutable slot, like the calculator memory ``mem``."""

    settable = True

    def __init__(self, value: Any = None) -> None:
        self.value = value

    def get(self, context: Any = None) -> Any:
        return self.value

    def set(self, context: Any, value: Any) -> None:
        self.value = value

    def clone(self) -> Variable:
        return Variable(self.value)


class CallbackAccessor:
    """Accessor delegating to a getter and an optional setter."""

    def __init__(
        self,
        getter: Callable[[], Any],
        setter: Callable[[Any], None] | None = None,
    ) -> None:
        self.getter = getter
        self.setter = setter

    @property
    def settable(self) -> bool:
        return self.setter is not None

    def get(self, context: Any = None) -> Any:
        return self.getter()

    def set(self, context: Any, value: Any) -> None:
        if self.setter is None:
            raise AttributeError("literal has no setter")
        self.setter(value)

    def clone(self) -> CallbackAccessor:
        return self


# ---------------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class Literal:
    """A token bound to a constant or a variable.

    Attributes:
        token: Spelling in formulas (matched case-insensitively).
        accessor: ``FixedValue``, ``Variable`` or ``CallbackAccessor``.
        type: Value type of the value; inferred at reduction when ``None``.
        resolvable: ``False`` keeps the literal symbolic during reduction.
    """

    token: str
    accessor: Any
    type: ValueType | None = None
    resolvable: bool = True

    @property
    def settable(self) -> bool:
        return bool(self.accessor.settable)

    def get(self, context: Any = None) -> Any:
        return self.accessor.get(context)

    def set(self, context: Any, value: Any) -> None:
        self.accessor.set(context, value)


@dataclass(eq=False)
class Function:
    """A named function called as ``token(arg, ...)``.

    Attributes:
        token: Function name.
        params: Display-only description of the parameters.
        reduce: ``reduce(context, node, *argument_trees)``.
    """

    token: str
    params: str
    reduce: ReduceFn


@dataclass(eq=False)
class Operator:
    """A prefix, postfix or binary operator.

    Attributes:
        token: Operator symbol or word.
        precedence: Higher binds tighter.
        associativity: ``left`` / ``right`` for binary operators,
            ``prefix`` / ``postfix`` for unary ones.
        reduce: ``reduce(context, node, *operand_trees)``.
    """

    token: str
    precedence: int
    associativity: str
    reduce: ReduceFn

    def __post_init__(self) -> None:
        if self.associativity not in ASSOCIATIVITIES:
            raise ValueError(
                f"Unknown associativity {self.associativity!r} for operator "
                f"{self.token!r}; expected one of {ASSOCIATIVITIES}"
            )

    @property
    def is_binary(self) -> bool:
        return self.associativity in ("left", "right")


def _make_literal_accessor(value: Any, setter: Any) -> Any:
    if callable(value):
        return CallbackAccessor(value, setter if callable(setter) else None)
    if setter is True:
        return Variable(value)
    return FixedValue(value)


def _resolve_reduce(
    reduce: ReduceFn | None,
    calculate: Callable[..., Any] | None,
    type_name: str | None,
) -> ReduceFn:
    if reduce is not None and calculate is not None:
        raise ValueError("Pass either reduce or calculate, not both")
    if reduce is not None:
        return reduce
    if calculate is None:
        raise ValueError("A reduce or calculate procedure is required")
    from calcengine.reducer import from_calculate

    return from_calculate(calculate, type_name)


# ---------------------------------------------------------------------------
# Grammar
# ---------------------------------------------------------------------------


@dataclass
class Grammar:
    """Mutable tables describing what a formula may contain."""

    types: list[ValueType] = field(default_factory=list)
    literals: dict[str, Literal] = field(default_factory=dict)
    functions: dict[str, Function] = field(default_factory=dict)
    prefix_operators: dict[str, Operator] = field(default_factory=dict)
    postfix_operators: dict[str, Operator] = field(default_factory=dict)
    binary_operators: dict[str, Operator] = field(default_factory=dict)

    # -- registration ------------------------------------------------------

    def add_type(
        self,
        entry: ValueType | str,
        parse: Callable[[str], Any] | None = None,
        format: Callable[[Any], str] | None = None,
        python_type: type | tuple[type, ...] | None = None,
    ) -> ValueType:
        """Append a value type; types are tried in registration order."""
        if not isinstance(entry, ValueType):
            if parse is None or format is None:
                raise ValueError("add_type needs parse and format functions")
            entry = ValueType(entry, parse, format, python_type)
        self.types.append(entry)
        return entry

    def add_literal(
        self,
        entry: Literal | str,
        value: Any = None,
        setter: Callable[[Any], None] | bool | None = None,
        *,
        type: ValueType | str | None = None,
        resolvable: bool = True,
    ) -> Literal:
        """Register a literal.

        *value* is either the constant value or a getter.  *setter* is a
        setter to pair with a getter, or ``True`` to make a plain value
        assignable (a variable).
        """
        if not isinstance(entry, Literal):
            value_type = self.find_type(type) if isinstance(type, str) else type
            entry = Literal(
                entry, _make_literal_accessor(value, setter), value_type, resolvable
            )
        return self._store(self.literals, entry, "literal")

    def add_function(
        self,
        entry: Function | str,
        params: str = "",
        reduce: ReduceFn | None = None,
        *,
        calculate: Callable[..., Any] | None = None,
        type_name: str | None = None,
    ) -> Function:
        """Register a function from a ``reduce`` or a simple ``calculate``."""
        if not isinstance(entry, Function):
            entry = Function(entry, params, _resolve_reduce(reduce, calculate, type_name))
        return self._store(self.functions, entry, "function")

    def add_operator(
        self,
        entry: Operator | str,
        precedence: int = 0,
        associativity: str = "left",
        reduce: ReduceFn | None = None,
        *,
        calculate: Callable[..., Any] | None = None,
        type_name: str | None = None,
    ) -> Operator:
        """Register an operator in the table matching its associativity."""
        if not isinstance(entry, Operator):
            entry = Operator(
                entry,
                precedence,
                associativity,
                _resolve_reduce(reduce, calculate, type_name),
            )
        return self._store(self.operator_table(entry.associativity), entry, "operator")

    def _store(self, table: dict[str, Any], entry: Any, kind: str) -> Any:
        key = entry.token.lower()
        if key in table:
            from calcengine.logging.events import EventType, emit_info

            emit_info(
                EventType.grammar_entry_overridden,
                f"Replaced {kind} {entry.token!r}",
                {"kind": kind, "token": entry.token},
            )
        table[key] = entry
        return entry

    # -- lookup ------------------------------------------------------------

    def operator_table(self, associativity: str) -> dict[str, Operator]:
        if associativity == "prefix":
            return self.prefix_operators
        if associativity == "postfix":
            return self.postfix_operators
        return self.binary_operators

    def find_type(self, name: str) -> ValueType:
        """Return the first value type registered under *name*."""
        for value_type in self.types:
            if value_type.name == name:
                return value_type
        raise KeyError(f"Unknown value type: {name!r}")

    def try_parse(self, token: str) -> tuple[ValueType, Any] | None:
        """Return ``(type, value)`` for the first type recognizing *token*."""
        for value_type in self.types:
            value = value_type.parse(token)
            if value is not NO_MATCH:
                return value_type, value
        return None

    def infer_type(self, value: Any) -> ValueType | None:
        """Return the first value type claiming a computed *value*."""
        for value_type in self.types:
            if value_type.claims(value):
                return value_type
        return None

    def make_node(self, value: Any, type_name: str | None = None) -> Node:
        """Wrap a computed Python value into a tree node.

        Lists and tuples become arrays; nodes are returned unchanged.
        """
        if isinstance(value, NODE_TYPES):
            return value
        if isinstance(value, (list, tuple)):
            return ArrayNode(tuple(self.make_node(item) for item in value))
        value_type = self.find_type(type_name) if type_name else self.infer_type(value)
        if value_type is None:
            raise CalculationError(repr(value), "no value type matches this value")
        return ConstantNode(value_type, value)

    def separators(self) -> list[str]:
        """Brackets, space and every operator token, longest first."""
        seen: dict[str, None] = dict.fromkeys(BASE_SEPARATORS)
        for table in (self.prefix_operators, self.postfix_operators, self.binary_operators):
            seen.update(dict.fromkeys(table))
        return sorted(seen, key=len, reverse=True)

    # -- isolation ---------------------------------------------------------

    def copy(self) -> Grammar:
        """Return a grammar sharing entries but owning its own variables."""
        literals = {}
        for key, literal in self.literals.items():
            accessor = literal.accessor.clone() if hasattr(literal.accessor, "clone") else literal.accessor
            if accessor is literal.accessor:
                literals[key] = literal
            else:
                literals[key] = Literal(literal.token, accessor, literal.type, literal.resolvable)
        return Grammar(
            types=list(self.types),
            literals=literals,
            functions=dict(self.functions),
            prefix_operators=dict(self.prefix_operators),
            postfix_operators=dict(self.postfix_operators),
            binary_operators=dict(self.binary_operators),
        )

    def reducer(self, formula: str = "") -> Reducer:
        from calcengine.reducer import Reducer

        return Reducer(self, formula)
