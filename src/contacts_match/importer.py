from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .models import (
    ATTORNEY,
    BUYER,
    LENDER,
    REALTOR,
    ImportResult,
    NormalizedContactCandidate,
)
from .store import ContactStore, StoreError

logger = logging.getLogger(__name__)

FIRST_NAME_HEADERS = ("first name", "firstname", "first", "fname", "given name", "givenname")
LAST_NAME_HEADERS = (
    "last name",
    "lastname",
    "last",
    "lname",
    "surname",
    "family name",
    "familyname",
)
FULL_NAME_HEADERS = (
    "name",
    "full name",
    "fullname",
    "contact name",
    "contactname",
    "client name",
    "clientname",
)
ADDRESS_HEADERS = (
    "address",
    "street",
    "street address",
    "address line 1",
    "address1",
    "addr",
    "city",
    "town",
    "state",
    "province",
    "region",
    "zip",
    "zipcode",
    "zip code",
    "postal",
    "postal code",
    "postalcode",
)
TYPE_HEADERS = ("type", "contact type", "contacttype", "category", "client type")
EMAIL_HEADERS = ("email", "e-mail", "email address", "emailaddress")
PHONE_HEADERS = ("phone", "telephone", "phone number", "phonenumber", "cell", "mobile")
COMPANY_HEADERS = (
    "company",
    "company name",
    "companyname",
    "organization",
    "business",
    "firm",
    "employer",
)
BRANCH_HEADERS = ("branch", "location", "office")
SALESPERSON_HEADERS = (
    "salesperson",
    "sales person",
    "assigned",
    "assigned to",
    "assignedto",
    "rep",
    "agent",
)
DRINKS_HEADERS = ("drinks", "drink", "alcohol", "alcoholic", "beverages")

# checked in order; the first stem contained in the value wins
CATEGORY_STEMS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (BUYER, ("buy",)),
    (REALTOR, ("real",)),
    (ATTORNEY, ("attor", "law")),
    (LENDER, ("lend", "bank")),
)

TRUTHY = {"yes", "true", "1", "y"}
FALSY = {"no", "false", "0", "n"}

# the header occupies line 1 of the file
FIRST_DATA_ROW_NUMBER = 2


class CSVParseError(ValueError):
    """The uploaded file had no header or data rows that could be read."""


@dataclass(frozen=True)
class ParsedCSV:
    headers: List[str] = field(default_factory=list)
    rows: List[Dict[str, str]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.rows


def parse_csv_line(line: str) -> List[str]:
    """Split one line on commas that sit outside double quotes."""
    values: List[str] = []
    current: List[str] = []
    in_quotes = False
    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            values.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    values.append("".join(current).strip())
    return values


def _strip_quotes(value: str) -> str:
    value = value[1:] if value.startswith('"') else value
    value = value[:-1] if value.endswith('"') else value
    return value.strip()


def parse_csv_text(raw: Union[str, bytes]) -> ParsedCSV:
    """
    Parse CSV text into headers and header-keyed rows.

    Blank lines are skipped and quoted fields may not span lines. Undecodable
    bytes or a file with no content produce an empty result.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            logger.warning("CSV input is not valid UTF-8: %s", exc)
            return ParsedCSV()
    text = (raw or "").lstrip("\ufeff")
    lines = [line for line in text.split("\n") if line.strip()]
    if not lines:
        return ParsedCSV()

    headers = [_strip_quotes(header) for header in parse_csv_line(lines[0])]
    rows: List[Dict[str, str]] = []
    for line in lines[1:]:
        values = [_strip_quotes(value) for value in parse_csv_line(line)]
        row: Dict[str, str] = {}
        for index, header in enumerate(headers):
            row[header] = values[index] if index < len(values) else ""
        rows.append(row)
    return ParsedCSV(headers=headers, rows=rows)


def _find_header(headers: Sequence[str], synonyms: Sequence[str]) -> Optional[str]:
    for header in headers:
        if header.lower().strip() in synonyms:
            return header
    return None


@dataclass(frozen=True)
class ColumnMap:
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: Optional[str] = None
    address: Tuple[str, ...] = ()
    category: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    branch: Optional[str] = None
    salesperson: Optional[str] = None
    drinks: Optional[str] = None

    @classmethod
    def detect(cls, headers: Sequence[str]) -> "ColumnMap":
        return cls(
            first_name=_find_header(headers, FIRST_NAME_HEADERS),
            last_name=_find_header(headers, LAST_NAME_HEADERS),
            full_name=_find_header(headers, FULL_NAME_HEADERS),
            address=tuple(
                header for header in headers if header.lower().strip() in ADDRESS_HEADERS
            ),
            category=_find_header(headers, TYPE_HEADERS),
            email=_find_header(headers, EMAIL_HEADERS),
            phone=_find_header(headers, PHONE_HEADERS),
            company=_find_header(headers, COMPANY_HEADERS),
            branch=_find_header(headers, BRANCH_HEADERS),
            salesperson=_find_header(headers, SALESPERSON_HEADERS),
            drinks=_find_header(headers, DRINKS_HEADERS),
        )

    @property
    def has_split_name(self) -> bool:
        return bool(self.first_name or self.last_name)


def _value(row: Dict[str, str], header: Optional[str]) -> str:
    if not header:
        return ""
    return str(row.get(header, "") or "")


def _optional(row: Dict[str, str], header: Optional[str]) -> Optional[str]:
    return _value(row, header) or None


def normalize_category(value: Optional[str]) -> Optional[str]:
    normalized = (value or "").lower().strip()
    if not normalized:
        return None
    for category, stems in CATEGORY_STEMS:
        if any(stem in normalized for stem in stems):
            return category
    return None


def normalize_flag(value: Optional[str]) -> Optional[bool]:
    normalized = (value or "").lower().strip()
    if normalized in TRUTHY:
        return True
    if normalized in FALSY:
        return False
    return None


def assemble_name(row: Dict[str, str], columns: ColumnMap) -> str:
    if columns.has_split_name:
        return f"{_value(row, columns.first_name)} {_value(row, columns.last_name)}".strip()
    if columns.full_name:
        return _value(row, columns.full_name)
    return ""


def assemble_address(row: Dict[str, str], columns: ColumnMap) -> str:
    parts = [_value(row, header) for header in columns.address]
    return ", ".join(part for part in parts if part and part.strip())


def normalize_rows(
    headers: Sequence[str], rows: Sequence[Dict[str, str]]
) -> List[NormalizedContactCandidate]:
    columns = ColumnMap.detect(headers)
    candidates: List[NormalizedContactCandidate] = []
    for index, row in enumerate(rows):
        category = _value(row, columns.category)
        candidates.append(
            NormalizedContactCandidate(
                name=assemble_name(row, columns),
                category=category,
                contact_type=normalize_category(category),
                row_number=index + FIRST_DATA_ROW_NUMBER,
                email=_optional(row, columns.email),
                phone=_optional(row, columns.phone),
                company=_optional(row, columns.company),
                branch=_optional(row, columns.branch),
                address=assemble_address(row, columns) or None,
                salesperson=_optional(row, columns.salesperson),
                drinks=normalize_flag(_value(row, columns.drinks)),
            )
        )
    return candidates


class ContactImporter:
    """Turns CSV text into a reviewable preview, then applies it to a store."""

    def __init__(self, default_drinks: bool = True):
        self.default_drinks = default_drinks

    def preview(self, raw: Union[str, bytes]) -> List[NormalizedContactCandidate]:
        parsed = parse_csv_text(raw)
        if parsed.is_empty:
            raise CSVParseError("CSV file is empty or could not be parsed")
        candidates = normalize_rows(parsed.headers, parsed.rows)
        invalid = sum(1 for candidate in candidates if not candidate.is_valid)
        logger.info("Prepared %d import rows (%d failing validation)", len(candidates), invalid)
        return candidates

    def apply(
        self,
        candidates: Sequence[NormalizedContactCandidate],
        store: ContactStore,
        user_id: Optional[str] = None,
    ) -> ImportResult:
        result = ImportResult()
        try:
            active = store.active_salespeople()
        except StoreError as exc:
            logger.error("Import aborted: %s", exc)
            result.errors.append(str(exc))
            return result
        salespeople = {person.name.lower().strip(): person.salesperson_id for person in active}

        for candidate in candidates:
            errors = candidate.validation_errors()
            if errors:
                result.record_failure(errors[0])
                continue

            salesperson_id: Optional[str] = None
            if candidate.salesperson:
                salesperson_id = salespeople.get(candidate.salesperson.lower().strip())
                if not salesperson_id:
                    result.record_failure(
                        f'Row {candidate.row_number} "{candidate.name}": '
                        f'Salesperson "{candidate.salesperson}" not found'
                    )
                    continue

            try:
                self._write(candidate, salesperson_id, store, user_id)
            except StoreError as exc:
                result.record_failure(f'Row {candidate.row_number} "{candidate.name}": {exc}')
                continue
            result.record_success()

        logger.info("Import finished: %d succeeded, %d failed", result.success, result.failed)
        return result

    def _write(
        self,
        candidate: NormalizedContactCandidate,
        salesperson_id: Optional[str],
        store: ContactStore,
        user_id: Optional[str],
    ) -> None:
        values: Dict[str, Any] = {
            "type": candidate.contact_type,
            "email": candidate.email,
            "phone": candidate.phone,
            "company": candidate.company,
            "branch": candidate.branch,
            "address": candidate.address,
        }
        existing_id = store.find_contact_id_by_name(candidate.name)
        if existing_id:
            if candidate.drinks is not None:
                values["drinks"] = candidate.drinks
            store.update_contact(existing_id, values, user_id=user_id)
            contact_id = existing_id
        else:
            values["name"] = candidate.name
            values["drinks"] = (
                candidate.drinks if candidate.drinks is not None else self.default_drinks
            )
            contact_id = store.insert_contact(values, user_id=user_id)

        if salesperson_id:
            store.assign(contact_id, salesperson_id, user_id=user_id)
