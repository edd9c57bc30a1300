from __future__ import annotations

import logging
import os
import uuid
from dataclasses import replace
from typing import Any, List, Optional

import pandas as pd

from .config_loader import MatchConfig, load_match_config
from .models import CandidateContact
from .nicknames import NicknameExpander, NicknameTable
from .store import InMemoryContactStore, Salesperson

logger = logging.getLogger(__name__)

TRUE_STRINGS = {"true", "1", "yes", "y", "t"}


def load_config(args: Any) -> MatchConfig:
    return load_match_config(args)


def build_expander(config: MatchConfig) -> NicknameExpander:
    return NicknameExpander(NicknameTable(config.nicknames.table_path))


def _coerce_to_string(value: Any) -> str:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value).strip()


def safe_get(row: Any, key: str) -> str:
    try:
        return _coerce_to_string(row.get(key, ""))
    except (AttributeError, KeyError, TypeError):
        return ""


def warn_missing(path: Optional[str], label: str) -> bool:
    if not path or not os.path.exists(path):
        logger.warning("%s path missing: %s", label, path)
        return True
    return False


def read_table(path: Optional[str]) -> pd.DataFrame:
    if not path:
        return pd.DataFrame()
    return pd.read_csv(path, dtype=str, keep_default_na=False)


def ensure_candidate(obj: Any) -> CandidateContact:
    if isinstance(obj, CandidateContact):
        return obj
    if isinstance(obj, dict):
        return CandidateContact.from_mapping(obj)
    if isinstance(obj, pd.Series):
        return CandidateContact.from_mapping({key: safe_get(obj, key) for key in obj.index})
    raise TypeError(f"Unsupported contact payload type: {type(obj)!r}")


def deterministic_uuid(namespace_str: str) -> str:
    namespace = uuid.UUID("12345678-1234-5678-1234-567812345678")
    return str(uuid.uuid5(namespace, namespace_str))


def candidates_from_frame(df: pd.DataFrame) -> List[CandidateContact]:
    """Load candidates, giving rows without an id a stable one from name, type and row index."""
    candidates: List[CandidateContact] = []
    for index, row in df.iterrows():
        candidate = ensure_candidate(row)
        if not candidate.contact_id:
            key = f"{candidate.name}|{candidate.category}|{index}"
            candidate = replace(candidate, contact_id=deterministic_uuid(key))
        candidates.append(candidate)
    return candidates


def salespeople_from_frame(df: pd.DataFrame) -> List[Salesperson]:
    people: List[Salesperson] = []
    for _, row in df.iterrows():
        salesperson_id = safe_get(row, "salesperson_id") or safe_get(row, "id")
        name = safe_get(row, "name")
        if not salesperson_id or not name:
            logger.info("Skipping salesperson row without id or name: %s", dict(row))
            continue
        active_raw = safe_get(row, "is_active")
        people.append(
            Salesperson(
                salesperson_id=salesperson_id,
                name=name,
                is_active=not active_raw or active_raw.lower() in TRUE_STRINGS,
            )
        )
    return people


def load_store(config: MatchConfig) -> InMemoryContactStore:
    """Seed an in-memory store from the contacts and salespeople exports in the config."""
    contacts_csv = config.inputs.get("contacts_csv")
    salespeople_csv = config.inputs.get("salespeople_csv")

    salespeople: List[Salesperson] = []
    if salespeople_csv and not warn_missing(salespeople_csv, "Salespeople"):
        salespeople = salespeople_from_frame(read_table(salespeople_csv))
    by_name = {person.name.lower().strip(): person.salesperson_id for person in salespeople}

    contacts: List[dict] = []
    assignments = {}
    if contacts_csv and not warn_missing(contacts_csv, "Contacts"):
        for candidate in candidates_from_frame(read_table(contacts_csv)):
            payload = candidate.to_dict()
            payload["type"] = candidate.category
            contacts.append(payload)
            salesperson_id = candidate.salesperson_id or by_name.get(
                candidate.salesperson.lower().strip()
            )
            if salesperson_id and candidate.contact_id:
                assignments[candidate.contact_id] = salesperson_id

    return InMemoryContactStore(
        contacts=contacts, salespeople=salespeople, assignments=assignments
    )


__all__ = [
    "build_expander",
    "candidates_from_frame",
    "deterministic_uuid",
    "ensure_candidate",
    "load_config",
    "load_store",
    "read_table",
    "safe_get",
    "salespeople_from_frame",
    "warn_missing",
]
