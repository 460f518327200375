from pydantic import BaseModel

from softrepo.query_builder import QueryBuilder


class ExampleMatcher:
    """Turns example and sort models into query criteria.

    Every field of an example that is not ``None`` becomes an equality
    condition. Sort models map field names to ``SortOrder`` values.
    """

    @staticmethod
    def example_values(example: BaseModel) -> dict:
        return {k: v for k, v in example.model_dump().items() if v is not None}

    @classmethod
    def apply_example(
        cls,
        builder: QueryBuilder,
        example: BaseModel,
        columns: dict[str, str] | None = None,
    ) -> QueryBuilder:
        """Apply an example model to the query builder.

        ``columns`` maps entity field names to column names where they differ.
        """
        columns = columns or {}
        for field, value in cls.example_values(example).items():
            builder = builder.where(columns.get(field, field), value)
        return builder

    @staticmethod
    def apply_sort(
        builder: QueryBuilder,
        sort_model: BaseModel | None,
        columns: dict[str, str] | None = None,
    ) -> QueryBuilder:
        """Apply sorting using order_by (ASC default) and order_by_desc.

        ``columns`` maps entity field names to column names where they differ.
        """
        if not sort_model:
            return builder

        columns = columns or {}
        for field, order in sort_model.model_dump().items():
            if order is None:
                continue
            column = columns.get(field, field)
            if str(getattr(order, "value", order)).upper() == "DESC":
                builder = builder.order_by_desc(column)
            else:
                builder = builder.order_by(column)

        return builder
