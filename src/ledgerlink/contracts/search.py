# src/ledgerlink/contracts/search.py
"""Result envelope of search endpoints.

Searches return a column description, raw result rows and reference data
(e.g. lookup tables for ids that appear in the rows). Rows are kept as
returned; turning them into typed objects is up to the caller.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SearchColumn(BaseModel):
    """One column of a search result."""

    model_config = ConfigDict(frozen=True, extra="allow")

    name: str
    type: str | None = None


class SearchMetadata(BaseModel):
    """Paging and column information for a search result."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    columns: list[SearchColumn] = Field(default_factory=list)
    count: int | None = Field(default=None, ge=0)
    page_number: int | None = Field(default=None, alias="pageNumber")
    page_size: int | None = Field(default=None, alias="pageSize")


class SearchResults(BaseModel):
    """Parsed ``response`` of a search call."""

    model_config = ConfigDict(frozen=True, extra="allow")

    metadata: SearchMetadata = Field(default_factory=SearchMetadata)
    results: list[list[Any]] = Field(default_factory=list)
    reference: dict[str, Any] = Field(default_factory=dict)

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.metadata.columns]

    def rows_as_dicts(self) -> list[dict[str, Any]]:
        """Zip each row with the column names; surplus values are dropped."""
        names = self.column_names
        return [dict(zip(names, row, strict=False)) for row in self.results]
