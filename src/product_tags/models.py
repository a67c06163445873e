from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from product_tags.controller import KeywordSource


class WidgetParameters(BaseModel):
    """Parameter bag supplied by the host; field aliases follow the host's names."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    table_name: str | None = Field(default=None, alias="tableName")
    keywords_field: str | None = Field(default=None, alias="keywordsField")
    tags_field: str | None = Field(default=None, alias="tagsField")

    @field_validator("table_name", "keywords_field", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        if isinstance(value, str):
            return value.strip()
        return value

    @property
    def keyword_source(self) -> KeywordSource:
        return KeywordSource(table=self.table_name, column=self.keywords_field)

    def merged(self, overrides: dict[str, Any]) -> WidgetParameters:
        data = self.model_dump(by_alias=True)
        data.update({key: value for key, value in overrides.items() if value is not None})
        return WidgetParameters.model_validate(data)
