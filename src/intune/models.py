from typing import Dict, Iterable, Iterator, List, Optional
import logging

from pydantic import BaseModel, ConfigDict, Field

LOGGER = logging.getLogger(__name__)


class _GraphModel(BaseModel):
    # Graph returns camelCase; accept both the alias and the field name
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")


class Device(_GraphModel):
    id: str
    display_name: Optional[str] = Field(default=None, alias="deviceName")
    operating_system: Optional[str] = Field(default=None, alias="operatingSystem")
    category: Optional[str] = Field(default=None, alias="deviceCategoryDisplayName")


class Category(_GraphModel):
    id: str
    display_name: str = Field(alias="displayName")


class UserProfile(_GraphModel):
    id: str
    display_name: Optional[str] = Field(default=None, alias="displayName")
    department: Optional[str] = None


class CategoryCatalog:
    """Read-only display name -> category id lookup.

    Names are compared verbatim: no case folding, no trimming.
    """

    def __init__(self, categories: Iterable[Category]):
        lookup: Dict[str, str] = {}
        for category in categories:
            if category.display_name in lookup:
                LOGGER.warning(
                    "Duplicate category name '%s' (ids %s, %s); keeping the first",
                    category.display_name, lookup[category.display_name], category.id,
                )
                continue
            lookup[category.display_name] = category.id
        self._lookup = lookup

    def __getitem__(self, name: str) -> str:
        return self._lookup[name]

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self._lookup.get(name, default)

    def __contains__(self, name: object) -> bool:
        return name in self._lookup

    def __iter__(self) -> Iterator[str]:
        return iter(self._lookup)

    def __len__(self) -> int:
        return len(self._lookup)

    def __repr__(self) -> str:
        return f"CategoryCatalog({self._lookup!r})"

    def names(self) -> List[str]:
        return sorted(self._lookup)
