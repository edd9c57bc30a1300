from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from .models import CandidateContact

logger = logging.getLogger(__name__)

CONTACT_FIELDS = ("name", "type", "email", "phone", "company", "branch", "address", "drinks")


class StoreError(RuntimeError):
    """Raised by a store when a read or write cannot be completed."""


@dataclass(frozen=True)
class Salesperson:
    salesperson_id: str
    name: str
    is_active: bool = True


class ContactStore(ABC):
    """The persistence boundary the importer and the search tools talk to."""

    @abstractmethod
    def active_salespeople(self) -> List[Salesperson]:
        ...

    @abstractmethod
    def find_contact_id_by_name(self, name: str) -> Optional[str]:
        """Case-insensitive exact name lookup; None when absent or ambiguous."""

    @abstractmethod
    def insert_contact(self, values: Dict[str, Any], user_id: Optional[str] = None) -> str:
        ...

    @abstractmethod
    def update_contact(
        self, contact_id: str, values: Dict[str, Any], user_id: Optional[str] = None
    ) -> None:
        ...

    @abstractmethod
    def assign(
        self, contact_id: str, salesperson_id: str, user_id: Optional[str] = None
    ) -> None:
        """Create the contact's assignment, or move the existing one."""

    @abstractmethod
    def candidates(self) -> List[CandidateContact]:
        ...


class InMemoryContactStore(ContactStore):
    def __init__(
        self,
        contacts: Optional[Iterable[Dict[str, Any]]] = None,
        salespeople: Optional[Iterable[Salesperson]] = None,
        assignments: Optional[Dict[str, str]] = None,
    ):
        self.contacts: Dict[str, Dict[str, Any]] = {}
        self.salespeople: Dict[str, Salesperson] = {
            person.salesperson_id: person for person in (salespeople or [])
        }
        self.assignments: Dict[str, str] = dict(assignments or {})
        for payload in contacts or []:
            contact_id = str(payload.get("contact_id") or payload.get("id") or uuid.uuid4())
            self.contacts[contact_id] = {key: payload.get(key) for key in CONTACT_FIELDS}

    def active_salespeople(self) -> List[Salesperson]:
        return [person for person in self.salespeople.values() if person.is_active]

    def find_contact_id_by_name(self, name: str) -> Optional[str]:
        wanted = (name or "").casefold()
        matches = [
            contact_id
            for contact_id, values in self.contacts.items()
            if str(values.get("name") or "").casefold() == wanted
        ]
        if len(matches) > 1:
            logger.warning("%d contacts named %r; treating as no match", len(matches), name)
            return None
        return matches[0] if matches else None

    def insert_contact(self, values: Dict[str, Any], user_id: Optional[str] = None) -> str:
        if not values.get("name") or not values.get("type"):
            raise StoreError("name and type are required")
        contact_id = str(uuid.uuid4())
        record = {key: values.get(key) for key in CONTACT_FIELDS}
        record.update(created_by=user_id, updated_by=user_id)
        self.contacts[contact_id] = record
        logger.debug("Inserted contact %s (%s)", contact_id, values.get("name"))
        return contact_id

    def update_contact(
        self, contact_id: str, values: Dict[str, Any], user_id: Optional[str] = None
    ) -> None:
        if contact_id not in self.contacts:
            raise StoreError(f"Unknown contact {contact_id}")
        self.contacts[contact_id].update(values)
        self.contacts[contact_id]["updated_by"] = user_id

    def assign(
        self, contact_id: str, salesperson_id: str, user_id: Optional[str] = None
    ) -> None:
        if salesperson_id not in self.salespeople:
            raise StoreError(f"Unknown salesperson {salesperson_id}")
        self.assignments[contact_id] = salesperson_id

    def candidates(self) -> List[CandidateContact]:
        results: List[CandidateContact] = []
        for contact_id, values in self.contacts.items():
            person = self.salespeople.get(self.assignments.get(contact_id, ""))
            payload = dict(values)
            payload.update(
                contact_id=contact_id,
                category=values.get("type") or "",
                salesperson=person.name if person else "",
                salesperson_id=person.salesperson_id if person else "",
            )
            results.append(CandidateContact.from_mapping(payload))
        return results
