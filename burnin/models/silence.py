"""
Silence Models
Pydantic model for Alertmanager silence matchers.
"""
from pydantic import BaseModel, ConfigDict, Field


class AlertMatcher(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    value: str
    is_regex: bool = Field(default=False, alias="isRegex")
