# chatapp/models/base.py

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WriteSchema(BaseModel):
    """Request body schema: accepts camelCase or snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReadSchema(WriteSchema):
    """Response schema: built from ORM rows, serialized in camelCase."""

    model_config = ConfigDict(from_attributes=True)

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
