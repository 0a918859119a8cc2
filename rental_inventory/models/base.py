"""Shared pydantic base for domain models exchanged with the dashboard."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


def to_naive_utc(value: datetime) -> datetime:
    """Normalize an offset-aware instant to naive UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class CamelModel(BaseModel):
    """Model populated by field name, serialized with camelCase aliases.

    Offset-aware datetimes are normalized to naive UTC on the way in.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("*", mode="after")
    @classmethod
    def normalize_datetimes(cls, v: Any) -> Any:
        if isinstance(v, datetime):
            return to_naive_utc(v)
        return v
