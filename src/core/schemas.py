"""Shared pydantic base for API payloads.

Python attributes stay snake_case; JSON on the wire is camelCase, which is
what the dashboard and admin form send and expect.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
