"""
Connection parameter models.

DataSource describes one external database; it is a plain SQLModel (no table)
so it validates like any pydantic model and can be built from settings.
"""

from enum import Enum
from typing import Any

from sqlmodel import Field, SQLModel


class ProductTypeEnum(str, Enum):
    """Supported database product types (mysql, postgres, sqlite)."""

    MYSQL = "mysql"
    POSTGRES = "postgres"
    SQLITE = "sqlite"


DEFAULT_PORTS: dict[ProductTypeEnum, int] = {
    ProductTypeEnum.MYSQL: 3306,
    ProductTypeEnum.POSTGRES: 5432,
}


class DataSource(SQLModel):
    name: str = Field(default="default", max_length=255)
    product_type: ProductTypeEnum = Field(default=ProductTypeEnum.MYSQL)
    host: str | None = Field(default="localhost", max_length=255)
    port: int | None = Field(default=None)
    # For SQLite: a file path or ":memory:"
    database: str = Field(max_length=1024)
    username: str | None = Field(default=None, max_length=255)
    password: str = Field(default="", max_length=512)
    description: str | None = Field(default=None, max_length=512)

    @property
    def resolved_port(self) -> int | None:
        return self.port or DEFAULT_PORTS.get(self.product_type)

    @classmethod
    def from_settings(cls, settings: Any = None) -> "DataSource":
        """Build the default DataSource from ``SQLBIND_DB_*`` settings."""
        if settings is None:
            from sqlbind.core.config import settings
        return cls(
            product_type=ProductTypeEnum(settings.DB_PRODUCT_TYPE.strip().lower()),
            host=settings.DB_HOST,
            port=settings.DB_PORT,
            database=settings.DB_NAME,
            username=settings.DB_USER,
            password=settings.DB_PASSWORD,
        )
