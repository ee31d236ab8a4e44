"""
BEJSON tabular document wire model.

    {
      "Format": "BEJson",
      "Format_Version": "1-0-4",
      "Format_Creator": "...",
      "Parent_Hierarchy": "<session id>",
      "Records_Type": ["Message", "File"],
      "Fields": [{"name": "record_type", "type": "string"}, ...],
      "Values": [{"record_type": "Message", ...}, ...]
    }

Field order and record order are significant and never rearranged.
"""

from __future__ import annotations

from typing import Any

import pydantic

from session_archive.base_model import StrictModel, TolerantModel

BEJSON_FORMAT = 'BEJson'


class BejsonField(StrictModel):
    """One schema column. `type` is descriptive only (string/integer/boolean)."""

    name: str
    type: str = 'string'


class BejsonDocument(TolerantModel):
    """
    Schema metadata plus an ordered list of records keyed by field name.

    Header keys added by other producers are ignored.
    """

    format: str = pydantic.Field(default=BEJSON_FORMAT, alias='Format')
    format_version: str = pydantic.Field(default='', alias='Format_Version')
    format_creator: str = pydantic.Field(default='', alias='Format_Creator')
    parent_hierarchy: str = pydantic.Field(default='', alias='Parent_Hierarchy')
    records_type: list[str] = pydantic.Field(default_factory=list, alias='Records_Type')
    schema_fields: list[BejsonField] = pydantic.Field(alias='Fields')
    records: list[dict[str, Any]] = pydantic.Field(alias='Values')

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.schema_fields]
