"""Base pydantic model for the JSON API (camelCase on the wire)."""

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Accepts both camelCase and snake_case input, serializes as camelCase."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class AnswerPayload(ApiModel):
    key: int
    text: str
