from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

BUYER = "buyer"
REALTOR = "realtor"
ATTORNEY = "attorney"
LENDER = "lender"

CATEGORIES: Tuple[str, ...] = (BUYER, REALTOR, ATTORNEY, LENDER)

# Results are scanned by role, so this order outranks match confidence.
CATEGORY_PRIORITY = {
    BUYER: 1,
    REALTOR: 2,
    ATTORNEY: 3,
    LENDER: 4,
}
UNKNOWN_CATEGORY_PRIORITY = 999

UNASSIGNED = "Unassigned"


def category_priority(category: str) -> int:
    return CATEGORY_PRIORITY.get(category, UNKNOWN_CATEGORY_PRIORITY)


def _text(payload: Dict[str, Any], key: str) -> str:
    return str(payload.get(key, "") or "").strip()


@dataclass(frozen=True)
class SearchFilters:
    """One free-text name query per contact category; blank means unconstrained."""

    buyer: str = ""
    realtor: str = ""
    attorney: str = ""
    lender: str = ""

    @staticmethod
    def from_mapping(payload: Dict[str, Any]) -> "SearchFilters":
        return SearchFilters(
            **{category: str(payload.get(category, "") or "") for category in CATEGORIES}
        )

    def active(self) -> Iterator[Tuple[str, str]]:
        for category in CATEGORIES:
            query = getattr(self, category)
            if query.strip():
                yield category, query

    def filled_count(self) -> int:
        return sum(1 for _ in self.active())

    def is_empty(self) -> bool:
        return self.filled_count() == 0

    def to_dict(self) -> Dict[str, str]:
        return {category: getattr(self, category) for category in CATEGORIES}


@dataclass(frozen=True)
class CandidateContact:
    contact_id: str
    name: str
    category: str
    email: str = ""
    phone: str = ""
    company: str = ""
    branch: str = ""
    address: str = ""
    salesperson: str = ""
    salesperson_id: str = ""

    @staticmethod
    def from_mapping(payload: Dict[str, Any]) -> "CandidateContact":
        return CandidateContact(
            contact_id=_text(payload, "contact_id") or _text(payload, "id"),
            name=_text(payload, "name"),
            category=_text(payload, "category").lower() or _text(payload, "type").lower(),
            email=_text(payload, "email"),
            phone=_text(payload, "phone"),
            company=_text(payload, "company"),
            branch=_text(payload, "branch"),
            address=_text(payload, "address"),
            salesperson=_text(payload, "salesperson"),
            salesperson_id=_text(payload, "salesperson_id"),
        )

    @property
    def salesperson_label(self) -> str:
        return self.salesperson or UNASSIGNED

    def to_dict(self) -> Dict[str, str]:
        return {
            "contact_id": self.contact_id,
            "name": self.name,
            "category": self.category,
            "email": self.email,
            "phone": self.phone,
            "company": self.company,
            "branch": self.branch,
            "address": self.address,
            "salesperson": self.salesperson,
            "salesperson_id": self.salesperson_id,
        }


@dataclass(frozen=True)
class MatchResult:
    candidate: CandidateContact
    score: float
    matched_category: str

    @property
    def contact_id(self) -> str:
        return self.candidate.contact_id

    @property
    def salesperson(self) -> str:
        return self.candidate.salesperson_label

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = self.candidate.to_dict()
        payload["salesperson"] = self.salesperson
        payload["score"] = round(self.score, 4)
        payload["matched_category"] = self.matched_category
        return payload


@dataclass(frozen=True)
class NormalizedContactCandidate:
    """A CSV row mapped onto contact fields, kept even when it fails validation."""

    name: str
    category: str
    contact_type: Optional[str]
    row_number: int
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    branch: Optional[str] = None
    address: Optional[str] = None
    salesperson: Optional[str] = None
    drinks: Optional[bool] = None

    def missing_fields(self) -> List[str]:
        missing: List[str] = []
        if not self.name:
            missing.append("name")
        if not self.contact_type:
            missing.append("type (or invalid type value)")
        return missing

    def validation_errors(self) -> List[str]:
        missing = self.missing_fields()
        if not missing:
            return []
        return [f"Row {self.row_number}: Missing {', '.join(missing)}"]

    @property
    def is_valid(self) -> bool:
        return not self.missing_fields()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row_number": self.row_number,
            "name": self.name,
            "category": self.category,
            "type": self.contact_type or "",
            "email": self.email or "",
            "phone": self.phone or "",
            "company": self.company or "",
            "branch": self.branch or "",
            "address": self.address or "",
            "salesperson": self.salesperson or "",
            "drinks": "" if self.drinks is None else self.drinks,
            "valid": self.is_valid,
            "errors": " | ".join(self.validation_errors()),
        }


@dataclass
class ImportResult:
    success: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    def record_success(self) -> None:
        self.success += 1

    def record_failure(self, message: str) -> None:
        self.failed += 1
        self.errors.append(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "failed": self.failed, "errors": list(self.errors)}
