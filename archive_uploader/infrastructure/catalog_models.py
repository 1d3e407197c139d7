"""
Pydantic models for validating the catalog section of the configuration.

These models serve as a strict contract for the archive list, ensuring that a
malformed catalog is caught at the infrastructure layer before any download
starts.
"""

from typing import List

from pydantic import BaseModel, HttpUrl, field_validator


class CatalogItem(BaseModel):
    """A single remote archive location."""

    url: HttpUrl


class CatalogConfig(BaseModel):
    """
    Represents the ordered archive list.

    The position of each URL in the list is its ordinal, so the list is kept
    exactly as configured, repeated URLs included.
    """

    urls: List[CatalogItem]

    @field_validator("urls", mode="before")
    @classmethod
    def _wrap_plain_urls(cls, value):
        return [
            {"url": item} if isinstance(item, str) else item
            for item in value or []
        ]

