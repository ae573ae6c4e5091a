"""Pydantic schemas for normalized schema metadata.

One shape for every engine. No driver objects leak into these models; all
values are plain JSON-serializable types.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional


class TableSummarySchema(BaseModel):
    """A table as listed by list_tables."""
    name: str = Field(..., description="Table name", examples=["users"])
    comment: Optional[str] = Field(
        None,
        description="Table comment, null where the engine has none",
        examples=["Registered customers"]
    )

    model_config = ConfigDict(frozen=True)


class ColumnSchema(BaseModel):
    """One column of a table, in ordinal order."""
    name: str = Field(..., examples=["email"])
    type: str = Field(..., description="Declared type as the engine reports it", examples=["varchar(255)"])
    nullable: bool = Field(..., examples=[False])
    default: Optional[str] = Field(None, description="Default expression, if any")
    key: str = Field(
        "",
        description="Key role: PRI, UNI, MUL or empty",
        examples=["PRI"]
    )
    extra: str = Field("", description="Extra flags such as auto_increment", examples=["auto_increment"])
    comment: Optional[str] = Field(None, description="Column comment")

    model_config = ConfigDict(frozen=True)


class IndexSchema(BaseModel):
    """An index and its member columns, in key order."""
    name: str = Field(..., examples=["users_email_unique"])
    columns: list[str] = Field(..., examples=[["email"]])
    unique: bool = Field(..., examples=[True])
    type: str = Field("BTREE", examples=["BTREE"])

    model_config = ConfigDict(frozen=True)


class ForeignKeySchema(BaseModel):
    """One column of a foreign key constraint."""
    name: str = Field(..., examples=["orders_user_id_foreign"])
    column: str = Field(..., examples=["user_id"])
    referenced_table: str = Field(..., examples=["users"])
    referenced_column: str = Field(..., examples=["id"])

    model_config = ConfigDict(frozen=True)


class SchemaSnapshot(BaseModel):
    """Per-call view of one table's structure. Never cached."""
    table: str
    comment: Optional[str] = None
    columns: list[ColumnSchema] = Field(default_factory=list)
    indexes: list[IndexSchema] = Field(default_factory=list)
    foreign_keys: list[ForeignKeySchema] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.columns]
