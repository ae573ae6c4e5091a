"""Query guard: validate an untrusted structured query before any SQL runs.

Checks run in a fixed order and stop at the first failure:

  1. table name present and listed by the schema inspector
  2. selected columns exist (``*`` is always allowed)
  3. every where item is [column, value] or [column, operator, value]
  4. every where column exists and every operator is whitelisted
  5. every order_by item is well-formed and names an existing column
  6. limit is a positive integer (defaults to 20, clamped to 100)
  7. offset is a non-negative integer

Expected failures come back as a ValidationOutcome carrying a typed
Rejection; nothing here raises for bad input. Metadata queries that fail
(connection lost, permission denied) do raise, since those are
infrastructure faults rather than caller mistakes.

Example:
    >>> guard = QueryGuard()
    >>> outcome = guard.validate(QueryDescription(table="users", limit=500), resolved)
    >>> outcome.ok, outcome.query.limit
    (True, 100)
"""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .config import settings
from .resolver import ResolvedConnection
from .schemas import QueryDescription

ALLOWED_OPERATORS: Tuple[str, ...] = (
    "=", "!=", "<>", ">", "<", ">=", "<=",
    "like", "in", "not in", "is null", "is not null",
)

LIST_OPERATORS = {"in", "not in"}
NULL_OPERATORS = {"is null", "is not null"}

WHERE_FORMAT = "[column, value] or [column, operator, value]"
ORDER_FORMAT = 'column, [column] or [column, "asc"|"desc"]'


class RejectionKind(str, Enum):
    MISSING_PARAMETER = "missing_parameter"
    TABLE_NOT_FOUND = "table_not_found"
    COLUMN_NOT_FOUND = "column_not_found"
    MALFORMED_CONDITION = "malformed_condition"
    INVALID_OPERATOR = "invalid_operator"
    INVALID_LIMIT = "invalid_limit"
    LIMIT_EXCEEDED = "limit_exceeded"
    INVALID_OFFSET = "invalid_offset"


@dataclass(frozen=True)
class Rejection:
    """Why a query was refused, with the context needed to explain it."""
    kind: RejectionKind
    message: str
    context: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Condition:
    column: str
    operator: str  # lower-cased, single-spaced, whitelisted
    value: Any = None


@dataclass(frozen=True)
class OrderClause:
    column: str
    direction: str  # "asc" or "desc"


@dataclass(frozen=True)
class ValidatedQuery:
    """A query that passed the guard. Empty columns means all columns."""
    table: str
    columns: Tuple[str, ...] = ()
    conditions: Tuple[Condition, ...] = ()
    order_by: Tuple[OrderClause, ...] = ()
    limit: int = 20
    offset: int = 0


@dataclass(frozen=True)
class ValidationOutcome:
    query: Optional[ValidatedQuery] = None
    rejection: Optional[Rejection] = None

    @property
    def ok(self) -> bool:
        return self.rejection is None

    @classmethod
    def passed(cls, query: ValidatedQuery) -> "ValidationOutcome":
        return cls(query=query)

    @classmethod
    def rejected(cls, kind: RejectionKind, message: str, **context: Any) -> "ValidationOutcome":
        return cls(rejection=Rejection(kind=kind, message=message, context=context))


def normalize_operator(operator: Any) -> Optional[str]:
    """'NOT  IN' -> 'not in'; None for anything that is not a string."""
    if not isinstance(operator, str):
        return None
    return " ".join(operator.split()).lower()


def _as_int(value: Any) -> Optional[int]:
    """Accept ints and digit strings; reject bools, floats and the rest."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if re.fullmatch(r"-?\d+", stripped, re.ASCII):
            return int(stripped)
    return None


class QueryGuard:
    """Validates QueryDescriptions against live schema metadata."""

    def __init__(
        self,
        max_limit: int = settings.max_limit,
        default_limit: int = settings.default_limit,
        reject_oversized_limit: bool = settings.reject_oversized_limit,
        column_hint_size: int = settings.column_hint_size,
    ) -> None:
        self.max_limit = max_limit
        self.default_limit = default_limit
        self.reject_oversized_limit = reject_oversized_limit
        self.column_hint_size = column_hint_size

    def validate_table(self, table: Optional[str], resolved: ResolvedConnection) -> ValidationOutcome:
        """Only the table-presence check, for calls that take just a table."""
        if not table:
            return self._missing_table()
        with resolved.connect() as conn:
            if not resolved.introspector.has_table(conn, table):
                return self._table_not_found(table)
        return ValidationOutcome.passed(ValidatedQuery(table=table, limit=self.default_limit))

    def validate(self, description: QueryDescription, resolved: ResolvedConnection) -> ValidationOutcome:
        table = description.table
        if not table:
            return self._missing_table()

        introspector = resolved.introspector
        with resolved.connect() as conn:
            if not introspector.has_table(conn, table):
                return self._table_not_found(table)

            columns = [c for c in description.select if c != "*"]
            needs_columns = columns or description.where or description.order_by
            known = introspector.column_names(conn, table) if needs_columns else []

        rejection = self._check_columns(table, columns, known)
        if rejection:
            return rejection

        conditions, rejection = self._check_where(table, description.where, known)
        if rejection:
            return rejection

        order_by, rejection = self._check_order_by(table, description.order_by, known)
        if rejection:
            return rejection

        limit, rejection = self._check_limit(description.limit)
        if rejection:
            return rejection

        offset, rejection = self._check_offset(description.offset)
        if rejection:
            return rejection

        return ValidationOutcome.passed(
            ValidatedQuery(
                table=table,
                columns=() if "*" in description.select else tuple(dict.fromkeys(columns)),
                conditions=conditions,
                order_by=order_by,
                limit=limit,
                offset=offset,
            )
        )

    def safe_limit(self, limit: Optional[int]) -> int:
        """Default for a missing limit, otherwise never above max_limit."""
        if limit is None:
            return self.default_limit
        return min(limit, self.max_limit)

    # -- individual checks -------------------------------------------------

    def _missing_table(self) -> ValidationOutcome:
        return ValidationOutcome.rejected(
            RejectionKind.MISSING_PARAMETER,
            "Table name is required",
            parameter="table",
        )

    def _table_not_found(self, table: str) -> ValidationOutcome:
        return ValidationOutcome.rejected(
            RejectionKind.TABLE_NOT_FOUND,
            f"Table '{table}' does not exist",
            table=table,
        )

    def _column_not_found(self, table: str, column: Any, known: List[str], **context: Any) -> ValidationOutcome:
        return ValidationOutcome.rejected(
            RejectionKind.COLUMN_NOT_FOUND,
            f"Column '{column}' does not exist in table '{table}'",
            column=column,
            table=table,
            available_columns=known[:self.column_hint_size],
            **context,
        )

    def _check_columns(self, table: str, columns: List[str], known: List[str]) -> Optional[ValidationOutcome]:
        for column in columns:
            if column not in known:
                return self._column_not_found(table, column, known)
        return None

    def _check_where(
        self, table: str, where: Sequence[Any], known: List[str]
    ) -> Tuple[Tuple[Condition, ...], Optional[ValidationOutcome]]:
        # Shape first, for every item, before any column or operator lookup
        for idx, item in enumerate(where):
            if not isinstance(item, (list, tuple)) or len(item) not in (2, 3) or not isinstance(item[0], str):
                return (), ValidationOutcome.rejected(
                    RejectionKind.MALFORMED_CONDITION,
                    "Invalid WHERE condition format",
                    parameter="where",
                    condition_index=idx,
                    expected_format=WHERE_FORMAT,
                )

        conditions = []
        for idx, item in enumerate(where):
            if len(item) == 2:
                column, raw_operator, value = item[0], "=", item[1]
            else:
                column, raw_operator, value = item

            if column not in known:
                return (), self._column_not_found(table, column, known, condition_index=idx)

            operator = normalize_operator(raw_operator)
            if operator not in ALLOWED_OPERATORS:
                return (), ValidationOutcome.rejected(
                    RejectionKind.INVALID_OPERATOR,
                    f"Operator '{raw_operator}' is not allowed",
                    operator=raw_operator,
                    condition_index=idx,
                    allowed_operators=list(ALLOWED_OPERATORS),
                )

            if operator in LIST_OPERATORS:
                if not isinstance(value, (list, tuple)) or not value:
                    return (), ValidationOutcome.rejected(
                        RejectionKind.MALFORMED_CONDITION,
                        f"Operator '{operator}' requires a non-empty list value",
                        parameter="where",
                        condition_index=idx,
                        expected_format='[column, "in", [value, ...]]',
                    )
                value = tuple(value)
            elif operator in NULL_OPERATORS:
                value = None
            elif isinstance(value, (list, tuple, dict)):
                return (), ValidationOutcome.rejected(
                    RejectionKind.MALFORMED_CONDITION,
                    f"Operator '{operator}' requires a single value",
                    parameter="where",
                    condition_index=idx,
                    expected_format=WHERE_FORMAT,
                )

            conditions.append(Condition(column=column, operator=operator, value=value))
        return tuple(conditions), None

    def _check_order_by(
        self, table: str, order_by: Sequence[Any], known: List[str]
    ) -> Tuple[Tuple[OrderClause, ...], Optional[ValidationOutcome]]:
        clauses = []
        for idx, item in enumerate(order_by):
            if isinstance(item, str):
                item = [item]
            if (
                not isinstance(item, (list, tuple))
                or len(item) not in (1, 2)
                or not isinstance(item[0], str)
                or (len(item) == 2 and not isinstance(item[1], str))
            ):
                return (), ValidationOutcome.rejected(
                    RejectionKind.MALFORMED_CONDITION,
                    "Invalid ORDER BY format",
                    parameter="order_by",
                    condition_index=idx,
                    expected_format=ORDER_FORMAT,
                )

            column = item[0]
            if column not in known:
                return (), self._column_not_found(table, column, known, parameter="order_by")

            direction = "desc" if len(item) == 2 and item[1].strip().lower() == "desc" else "asc"
            clauses.append(OrderClause(column=column, direction=direction))
        return tuple(clauses), None

    def _check_limit(self, raw: Any) -> Tuple[int, Optional[ValidationOutcome]]:
        if raw is None:
            return self.default_limit, None

        limit = _as_int(raw)
        if limit is None or limit < 1:
            return 0, ValidationOutcome.rejected(
                RejectionKind.INVALID_LIMIT,
                "Limit must be a positive integer",
                parameter="limit",
                provided_value=raw,
            )

        if limit > self.max_limit and self.reject_oversized_limit:
            return 0, ValidationOutcome.rejected(
                RejectionKind.LIMIT_EXCEEDED,
                f"Limit cannot exceed {self.max_limit}",
                parameter="limit",
                provided_limit=limit,
                max_limit=self.max_limit,
            )
        return self.safe_limit(limit), None

    def _check_offset(self, raw: Any) -> Tuple[int, Optional[ValidationOutcome]]:
        if raw is None:
            return 0, None

        offset = _as_int(raw)
        if offset is None or offset < 0:
            return 0, ValidationOutcome.rejected(
                RejectionKind.INVALID_OFFSET,
                "Offset must be a non-negative integer",
                parameter="offset",
                provided_value=raw,
            )
        return offset, None
