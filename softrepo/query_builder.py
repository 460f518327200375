"""
Immutable builder for the SELECT statements issued by repositories.
Every method returns a new builder; nothing is executed here.
"""

import re
from collections.abc import Callable
from typing import Any

_PLACEHOLDER = re.compile(r"\$(\d+)")

type Criterion = str | Callable[["QueryBuilder"], "QueryBuilder | None"]


class QueryBuilder:
    """
    Simple query builder for SELECT statements.

    Usage:
        builder = QueryBuilder("articles")
        query, params = builder.where("category", "news").order_by_desc("title").build()

    Conditions added with ``where``/``or_where`` form the caller's criteria.
    Conditions added with ``restrict`` are ANDed around the whole criteria
    block, so an ``or_where`` can never widen the result past them.
    """

    def __init__(self, table_name: str):
        self.table_name = table_name
        self.select_fields = "*"
        self.where_conditions: list[str] = []
        self.or_where_conditions: list[str] = []
        self.restrictions: list[str] = []
        self.params: list[Any] = []
        self.order_by_parts: list[str] = []
        self.limit_count: int | None = None
        self.offset_count: int | None = None

    def _clone(self) -> "QueryBuilder":
        new_builder = QueryBuilder(self.table_name)
        new_builder.select_fields = self.select_fields
        new_builder.where_conditions = self.where_conditions.copy()
        new_builder.or_where_conditions = self.or_where_conditions.copy()
        new_builder.restrictions = self.restrictions.copy()
        new_builder.params = self.params.copy()
        new_builder.order_by_parts = self.order_by_parts.copy()
        new_builder.limit_count = self.limit_count
        new_builder.offset_count = self.offset_count
        return new_builder

    def _comparison(self, field: Any, operator: str, value: Any) -> str:
        """Render one comparison, appending its parameter when needed"""
        if value is None and operator == "=":
            return f"{field} IS NULL"
        if value is None and operator in ("!=", "<>"):
            return f"{field} IS NOT NULL"
        self.params.append(value)
        return f"{field} {operator} ${len(self.params)}"

    @staticmethod
    def _split_args(method: str, args: tuple[Any, ...]) -> tuple[str, Any]:
        if len(args) == 2:
            return args[0], args[1]
        if len(args) == 1:
            return "=", args[0]
        raise TypeError(f"{method}() expects (field, value) or (field, operator, value)")

    def _add_condition(
        self, field: Any, value: Any, operator: str, is_or: bool = False
    ) -> "QueryBuilder":
        new_builder = self._clone()
        condition = new_builder._comparison(field, operator, value)
        target = new_builder.or_where_conditions if is_or else new_builder.where_conditions
        target.append(condition)
        return new_builder

    def _add_in_condition(
        self, field: Any, values: Any, is_not: bool = False, is_or: bool = False
    ) -> "QueryBuilder":
        new_builder = self._clone()
        if not isinstance(values, list | tuple | set):
            values = [values]
        values = list(values)
        not_keyword = "NOT " if is_not else ""

        if not values:
            # IN () is not valid SQL; an empty IN matches nothing, NOT IN everything
            condition = "TRUE" if is_not else "FALSE"
        else:
            start = len(new_builder.params) + 1
            placeholders = ", ".join(f"${start + i}" for i in range(len(values)))
            condition = f"{field} {not_keyword}IN ({placeholders})"
            new_builder.params.extend(values)

        target = new_builder.or_where_conditions if is_or else new_builder.where_conditions
        target.append(condition)
        return new_builder

    def _add_group_condition(
        self, group_function: Callable[["QueryBuilder"], "QueryBuilder | None"], is_or: bool
    ) -> "QueryBuilder":
        group_builder = QueryBuilder(self.table_name)
        result = group_function(group_builder)
        if result is not None:
            group_builder = result

        group_condition = group_builder._criteria_clause()
        if not group_condition:
            return self

        new_builder = self._clone()
        offset = len(new_builder.params)
        shifted = _PLACEHOLDER.sub(
            lambda match: f"${int(match.group(1)) + offset}", group_condition
        )
        target = new_builder.or_where_conditions if is_or else new_builder.where_conditions
        target.append(f"({shifted})")
        new_builder.params.extend(group_builder.params)
        return new_builder

    def where(self, field_or_function: Criterion, *args: Any) -> "QueryBuilder":
        """Add a WHERE condition.

        Call styles:
        - where(field, value) -> operator defaults to '='
        - where(field, operator, value)
        - where(lambda qb: qb.where(...).or_where(...)) -> grouped condition
        """
        if callable(field_or_function):
            return self._add_group_condition(field_or_function, is_or=False)
        operator, value = self._split_args("where", args)
        return self._add_condition(field_or_function, value, operator)

    def or_where(self, field_or_function: Criterion, *args: Any) -> "QueryBuilder":
        """Add an OR WHERE condition; same call styles as ``where``"""
        if callable(field_or_function):
            return self._add_group_condition(field_or_function, is_or=True)
        operator, value = self._split_args("or_where", args)
        return self._add_condition(field_or_function, value, operator, is_or=True)

    def where_in(self, field: Any, values: Any) -> "QueryBuilder":
        return self._add_in_condition(field, values)

    def where_not_in(self, field: Any, values: Any) -> "QueryBuilder":
        return self._add_in_condition(field, values, is_not=True)

    def or_where_in(self, field: Any, values: Any) -> "QueryBuilder":
        return self._add_in_condition(field, values, is_or=True)

    def restrict(self, field: Any, *args: Any) -> "QueryBuilder":
        """Add a condition that always applies, regardless of OR criteria."""
        operator, value = self._split_args("restrict", args)
        new_builder = self._clone()
        new_builder.restrictions.append(new_builder._comparison(field, operator, value))
        return new_builder

    def select(self, *fields: str) -> "QueryBuilder":
        """Set the SELECT list; defaults to * when no field is given"""
        new_builder = self._clone()
        new_builder.select_fields = ", ".join(str(field) for field in fields) if fields else "*"
        return new_builder

    def order_by(self, field: Any) -> "QueryBuilder":
        """Add ORDER BY ascending for a field. Chain to add multiple fields."""
        return self.order_by_asc(field)

    def order_by_asc(self, field: Any) -> "QueryBuilder":
        new_builder = self._clone()
        new_builder.order_by_parts.append(f"{field}")
        return new_builder

    def order_by_desc(self, field: Any) -> "QueryBuilder":
        new_builder = self._clone()
        new_builder.order_by_parts.append(f"{field} DESC")
        return new_builder

    def limit(self, count: int) -> "QueryBuilder":
        new_builder = self._clone()
        new_builder.limit_count = count
        return new_builder

    def offset(self, count: int) -> "QueryBuilder":
        new_builder = self._clone()
        new_builder.offset_count = count
        return new_builder

    def paginate(self, page: int, per_page: int = 10) -> "QueryBuilder":
        """
        Set LIMIT and OFFSET for a 1-based page number.

        Args:
            page: Page number (1-based)
            per_page: Number of records per page (default: 10)
        """
        if page < 1:
            raise ValueError("Page number must be 1 or greater")
        if per_page < 1:
            raise ValueError("Per page count must be 1 or greater")
        return self.limit(per_page).offset((page - 1) * per_page)

    def for_count(self) -> "QueryBuilder":
        """Return a COUNT(*) projection of this query without ordering or paging"""
        new_builder = self.select("COUNT(*)")
        new_builder.order_by_parts = []
        new_builder.limit_count = None
        new_builder.offset_count = None
        return new_builder

    def has_criteria(self) -> bool:
        return bool(self.where_conditions or self.or_where_conditions)

    def _criteria_clause(self) -> str:
        """AND conditions and OR conditions, combined with OR"""
        parts = []
        if self.where_conditions:
            and_clause = " AND ".join(self.where_conditions)
            if len(self.where_conditions) > 1 and self.or_where_conditions:
                and_clause = f"({and_clause})"
            parts.append(and_clause)
        if self.or_where_conditions:
            or_clause = " OR ".join(self.or_where_conditions)
            if len(self.or_where_conditions) > 1 and self.where_conditions:
                or_clause = f"({or_clause})"
            parts.append(or_clause)
        return " OR ".join(parts)

    def build(self) -> tuple[str, list[Any]]:
        """Build the final SQL query and parameters"""
        query_parts = [f"SELECT {self.select_fields} FROM {self.table_name}"]

        criteria = self._criteria_clause()
        if self.restrictions:
            conditions = [f"({criteria})"] if criteria else []
            conditions.extend(self.restrictions)
            query_parts.append(f"WHERE {' AND '.join(conditions)}")
        elif criteria:
            query_parts.append(f"WHERE {criteria}")

        if self.order_by_parts:
            query_parts.append(f"ORDER BY {', '.join(self.order_by_parts)}")
        if self.limit_count is not None:
            query_parts.append(f"LIMIT {self.limit_count}")
        if self.offset_count is not None:
            query_parts.append(f"OFFSET {self.offset_count}")

        return " ".join(query_parts), self.params

    def to_sql(self) -> str:
        """Return only the SQL query string without parameters"""
        query, _ = self.build()
        return query

    def __str__(self) -> str:
        query, params = self.build()
        return f"Query: {query}\nParams: {params}"
