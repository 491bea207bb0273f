"""
Shared schema bases. Everything on the wire is camelCase; Python code uses snake_case.
"""
from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def payload(self) -> Dict[str, Any]:
        """Only the fields the client sent, keyed as the client sent them (camelCase).

        Services distinguish "absent" from "null", so unset fields must not appear.
        """
        return self.model_dump(exclude_unset=True, by_alias=True)


class TimestampedSchema(BaseSchema):
    created_at: datetime
    updated_at: datetime
