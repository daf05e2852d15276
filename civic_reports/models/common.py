from __future__ import annotations

from bson import ObjectId
from pydantic import BaseModel, ConfigDict
from pydantic_core import core_schema


def _to_object_id(value):
    if value is None or isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    raise ValueError("Invalid ObjectId")


class PyObjectId(ObjectId):
    """
    ObjectId field for pydantic v2 models.

    Accepts an ObjectId or its 24-char hex string. Stays an ObjectId in
    python-mode dumps (what goes to Mongo) and becomes a string in JSON
    dumps and in the OpenAPI schema.
    """

    @classmethod
    def __get_pydantic_core_schema__(cls, source, handler):
        return core_schema.no_info_plain_validator_function(
            _to_object_id,
            json_schema_input_schema=core_schema.str_schema(),
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda v: str(v) if v is not None else None,
                when_used="json",
            ),
        )

    @classmethod
    def __get_pydantic_json_schema__(cls, core_schema_, handler):
        return {"type": "string", "examples": ["665f1c2ab7d4e90c3a8b1234"]}


class CivicBaseModel(BaseModel):
    """Shared config: snake_case fields that also accept their camelCase aliases."""

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        use_enum_values=True,
    )
