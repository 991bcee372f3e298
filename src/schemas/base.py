"""Base schema with the camelCase wire format used by every endpoint."""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Base model that reads and writes camelCase JSON keys.

    Python attributes stay snake_case; `populate_by_name` lets services and
    tests construct models with either spelling.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
