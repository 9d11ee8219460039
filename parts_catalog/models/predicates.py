"""
Predicate tree for part queries

Filters are compiled once into these nodes and translated to a concrete
query language by each store.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Tuple, Union

from parts_catalog.models.part_models import format_timestamp


@dataclass(frozen=True)
class Equals:
    field: str
    value: Any

    def to_dict(self) -> Dict[str, Any]:
        return {"equals": {"field": self.field, "value": self.value}}


@dataclass(frozen=True)
class Regex:
    """Case-insensitive regular expression match; on array fields any element may match"""
    field: str
    pattern: str

    def to_dict(self) -> Dict[str, Any]:
        return {"regex": {"field": self.field, "pattern": self.pattern, "options": "i"}}


@dataclass(frozen=True)
class ContainsAll:
    """Array field holds every listed value"""
    field: str
    values: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"containsAll": {"field": self.field, "values": list(self.values)}}


@dataclass(frozen=True)
class ContainsAny:
    """Array field holds at least one listed value"""
    field: str
    values: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"containsAny": {"field": self.field, "values": list(self.values)}}


@dataclass(frozen=True)
class RangeClosed:
    """low <= field <= high"""
    field: str
    low: datetime
    high: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "range": {
                "field": self.field,
                "gte": format_timestamp(self.low),
                "lte": format_timestamp(self.high),
            }
        }


@dataclass(frozen=True)
class And:
    clauses: Tuple["Predicate", ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"and": [c.to_dict() for c in self.clauses]}


@dataclass(frozen=True)
class Or:
    clauses: Tuple["Predicate", ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"or": [c.to_dict() for c in self.clauses]}


Predicate = Union[Equals, Regex, ContainsAll, ContainsAny, RangeClosed, And, Or]
