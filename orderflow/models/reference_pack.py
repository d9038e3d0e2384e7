"""
Reference Pack Models

Versioned reference catalogue used to ground extracted text against canonical
manufacturer, finish and category vocabularies.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Manufacturer(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    abbr: str
    name: str
    aliases: List[str] = Field(default_factory=list)


class Finish(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    us_code: str = Field(description="US finish designation, e.g. US26D")
    bhma_code: Optional[str] = Field(default=None, description="BHMA number, e.g. 626")
    name: str


class Category(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    gordon_symbol: Optional[str] = None
    category: str
    subcategory: Optional[str] = None


class ReferencePack(BaseModel):
    """Reference catalogue snapshot; `version` is a semantic version string."""

    model_config = ConfigDict(from_attributes=True)

    version: str = "1.0.0"
    updated_at: Optional[datetime] = None
    manufacturers: List[Manufacturer] = Field(default_factory=list)
    finishes: List[Finish] = Field(default_factory=list)
    categories: List[Category] = Field(default_factory=list)
    electrified_devices: List[Dict[str, Any]] = Field(default_factory=list)
    wiring_configs: List[Dict[str, Any]] = Field(default_factory=list)
    hardware_sets: List[Dict[str, Any]] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.manufacturers


EMPTY_REFERENCE_PACK = ReferencePack()


__all__ = [
    "Manufacturer",
    "Finish",
    "Category",
    "ReferencePack",
    "EMPTY_REFERENCE_PACK",
]
