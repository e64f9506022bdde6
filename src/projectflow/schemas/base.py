"""Shared pydantic base for request/response schemas.

Learn: The wire format is camelCase (userId, projectId, progressPercentage)
while Python code stays snake_case. alias_generator maps between the two;
populate_by_name lets clients send either form. FastAPI serializes
response_model output by alias, so responses come out camelCase.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
