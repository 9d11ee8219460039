"""
Data models for the parts catalog
Simple dataclasses for clean data handling
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

MAX_FILE_REFERENCES = 5

# Part columns holding lists of strings; matching on them is per element
ARRAY_FIELDS = frozenset({"alternative_part_numbers", "category", "sub_category", "supplier"})


def is_valid_id(value: Any) -> bool:
    """Check that a value is a well-formed record identifier (UUID)"""
    if not isinstance(value, str):
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Accept datetimes or ISO-8601 text; naive values are taken as UTC"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


class DocumentationType(str, Enum):
    CERTIFICATE_OF_CONFORMITY = "Certificate of Conformity"
    MATERIAL_CERTIFICATE = "Material Certificate"
    TEST_REPORT = "Test Report"
    INSPECTION_REPORT = "Inspection Report"
    DATASHEET = "Datasheet"
    USER_MANUAL = "User Manual"
    INSTALLATION_MANUAL = "Installation Manual"
    MAINTENANCE_MANUAL = "Maintenance Manual"
    SAFETY_DATA_SHEET = "Safety Data Sheet"
    ROHS_DECLARATION = "RoHS Declaration"


@dataclass
class DocumentationRecord:
    """Certificate or manual attached to a part"""
    type: DocumentationType
    value: str
    date_added: datetime = field(default_factory=utc_now)
    file_references: List[str] = field(default_factory=list)
    answered_by: Optional[str] = None

    def __post_init__(self):
        self.type = DocumentationType(self.type)
        if len(self.file_references) > MAX_FILE_REFERENCES:
            raise ValueError(
                f"At most {MAX_FILE_REFERENCES} file references allowed, got {len(self.file_references)}"
            )

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "DocumentationRecord":
        return cls(
            type=row["type"],
            value=row.get("value", ""),
            date_added=parse_timestamp(row.get("date_added")) or utc_now(),
            file_references=list(row.get("file_references") or []),
            answered_by=row.get("answered_by"),
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "value": self.value,
            "date_added": format_timestamp(self.date_added),
            "file_references": list(self.file_references),
            "answered_by": self.answered_by,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "value": self.value,
            "dateAdded": format_timestamp(self.date_added),
            "fileReferences": list(self.file_references),
            "answeredBy": self.answered_by,
        }


@dataclass(frozen=True)
class ChildPartRef:
    """
    Child part embedded in a parent's bill of materials.

    Entries are values without an identity of their own; a parent's child
    list is only ever replaced as a whole.
    """
    part_number: str
    part_name: str
    part_description: Optional[str] = None
    supplier: Optional[str] = None
    quantity: int = 1
    main_part_id: Optional[str] = None

    def __post_init__(self):
        if self.quantity < 1:
            raise ValueError(f"Child part quantity must be >= 1, got {self.quantity}")

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ChildPartRef":
        return cls(
            part_number=row["part_number"],
            part_name=row.get("part_name", ""),
            part_description=row.get("part_description"),
            supplier=row.get("supplier"),
            quantity=int(row.get("quantity") or 1),
            main_part_id=row.get("main_part_id"),
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "part_number": self.part_number,
            "part_name": self.part_name,
            "part_description": self.part_description,
            "supplier": self.supplier,
            "quantity": self.quantity,
            "main_part_id": self.main_part_id,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "partNumber": self.part_number,
            "partName": self.part_name,
            "partDescription": self.part_description,
            "supplier": self.supplier,
            "quantity": self.quantity,
            "mainPartId": self.main_part_id,
        }


@dataclass
class Part:
    """Canonical catalog entry"""
    part_number: str
    part_name: str
    part_description: str = ""
    alternative_part_numbers: List[str] = field(default_factory=list)
    category: List[str] = field(default_factory=list)
    sub_category: List[str] = field(default_factory=list)
    supplier: List[str] = field(default_factory=list)
    supplier_contact: Optional[str] = None
    internal_contact: Optional[str] = None
    specifications: Dict[str, Any] = field(default_factory=dict)
    documentation: List[DocumentationRecord] = field(default_factory=list)
    child_parts: List[ChildPartRef] = field(default_factory=list)
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Part":
        """Build a Part from a store row (snake_case, arrays already decoded)"""
        return cls(
            id=str(row["id"]) if row.get("id") is not None else None,
            part_number=row["part_number"],
            part_name=row.get("part_name") or "",
            part_description=row.get("part_description") or "",
            alternative_part_numbers=list(row.get("alternative_part_numbers") or []),
            category=list(row.get("category") or []),
            sub_category=list(row.get("sub_category") or []),
            supplier=list(row.get("supplier") or []),
            supplier_contact=row.get("supplier_contact"),
            internal_contact=row.get("internal_contact"),
            specifications=dict(row.get("specifications") or {}),
            documentation=[DocumentationRecord.from_row(d) for d in row.get("documentation") or []],
            child_parts=[ChildPartRef.from_row(c) for c in row.get("child_parts") or []],
            created_at=parse_timestamp(row.get("created_at")),
            updated_at=parse_timestamp(row.get("updated_at")),
        )

    def to_row(self) -> Dict[str, Any]:
        """Serialize for the store; id and timestamps are left out when unset"""
        row = {
            "part_number": self.part_number,
            "part_name": self.part_name,
            "part_description": self.part_description,
            "alternative_part_numbers": list(self.alternative_part_numbers),
            "category": list(self.category),
            "sub_category": list(self.sub_category),
            "supplier": list(self.supplier),
            "supplier_contact": self.supplier_contact,
            "internal_contact": self.internal_contact,
            "specifications": self.specifications,
            "documentation": [d.to_row() for d in self.documentation],
            "child_parts": [c.to_row() for c in self.child_parts],
        }
        if self.id is not None:
            row["id"] = self.id
        if self.created_at is not None:
            row["created_at"] = format_timestamp(self.created_at)
        if self.updated_at is not None:
            row["updated_at"] = format_timestamp(self.updated_at)
        return row

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "partNumber": self.part_number,
            "partName": self.part_name,
            "partDescription": self.part_description,
            "alternativePartNumbers": list(self.alternative_part_numbers),
            "category": list(self.category),
            "subCategory": list(self.sub_category),
            "supplier": list(self.supplier),
            "supplierContact": self.supplier_contact,
            "internalContact": self.internal_contact,
            "specifications": self.specifications,
            "documentation": [d.to_dict() for d in self.documentation],
            "childParts": [c.to_dict() for c in self.child_parts],
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }


@dataclass(frozen=True)
class CanonicalPart:
    """Identifying data of a persisted part, used as a reconciliation target"""
    part_number: str
    part_name: str
    part_description: Optional[str]
    id: str

    @classmethod
    def from_part(cls, part: Part) -> "CanonicalPart":
        return cls(
            part_number=part.part_number,
            part_name=part.part_name,
            part_description=part.part_description,
            id=part.id,
        )


@dataclass
class ReconcileResult:
    """Result of a child reference reconciliation pass"""
    mode: str
    examined: int = 0
    needs_update: int = 0
    updated: int = 0
    failed: int = 0
    error_messages: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    def to_dict(self):
        return {
            "mode": self.mode,
            "examined": self.examined,
            "needs_update": self.needs_update,
            "updated": self.updated,
            "failed": self.failed,
            "error_messages": self.error_messages,
            "duration_seconds": round(self.duration_seconds, 3),
        }
