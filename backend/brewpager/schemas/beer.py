from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, TypeAdapter


class Beer(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    tagline: str
    abv: float
    description: str


BeerList = TypeAdapter(list[Beer])


@dataclass(frozen=True)
class Page:
    """One upstream batch. A page with no records marks the end of the collection."""

    index: int
    records: tuple[Beer, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.records

    def __len__(self) -> int:
        return len(self.records)
