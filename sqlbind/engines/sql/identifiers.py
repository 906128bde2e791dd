"""
Identifier quoting per SQL dialect.

Only ever applied to table/column names that passed schema validation;
values are always bound, never quoted into SQL text.
"""

from sqlbind.models import ProductTypeEnum

_BACKTICK_ESCAPE = str.maketrans({"`": "``"})
_DOUBLE_QUOTE_ESCAPE = str.maketrans({'"': '""'})


def quote_identifier(name: str, product_type: ProductTypeEnum) -> str:
    """
    Quote a table or column name. MySQL: `name`; PostgreSQL/SQLite: "name".
    """
    if product_type == ProductTypeEnum.MYSQL:
        return f"`{name.translate(_BACKTICK_ESCAPE)}`"
    return f'"{name.translate(_DOUBLE_QUOTE_ESCAPE)}"'
