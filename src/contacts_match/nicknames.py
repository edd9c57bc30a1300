from __future__ import annotations

import logging
import re
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .config_loader import DEFAULT_NICKNAME_TABLE

logger = logging.getLogger(__name__)

NicknameMap = Dict[str, Tuple[str, ...]]

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_phrase(phrase: str) -> str:
    return _WHITESPACE_RE.sub(" ", (phrase or "").strip()).lower()


def parse_nickname_table(lines: Iterable[str]) -> NicknameMap:
    """
    Build the symmetric nickname map from ``formal,nick1|nick2|...`` rows.

    The first line is a header and is ignored. A formal name maps to all of its
    nicknames; each nickname maps back to the formal name followed by its
    sibling nicknames. Rows missing either side are skipped.
    """
    mapping: Dict[str, List[str]] = {}
    iterator = iter(lines)
    next(iterator, None)
    for line_no, raw_line in enumerate(iterator, start=2):
        line = raw_line.strip()
        if not line:
            continue
        parts = line.split(",")
        formal = parts[0].strip().lower()
        nick_field = parts[1] if len(parts) > 1 else ""
        nicknames = [nick.strip().lower() for nick in nick_field.split("|") if nick.strip()]
        nicknames = [nick for nick in nicknames if nick != formal]
        if not formal or not nicknames:
            logger.debug("Skipping malformed nickname row %d: %r", line_no, raw_line)
            continue

        mapping[formal] = nicknames
        for nickname in nicknames:
            if nickname not in mapping:
                mapping[nickname] = [formal] + [other for other in nicknames if other != nickname]

    # shared nicknames ("pat", "chris") and re-listed formal names leave one-way
    # links above; close them so every alternative points back
    for name, alternatives in list(mapping.items()):
        for alternative in alternatives:
            reverse = mapping.setdefault(alternative, [])
            if name not in reverse and name != alternative:
                reverse.append(name)

    return {key: tuple(values) for key, values in mapping.items()}


class NicknameTable:
    """Lazily loaded, process-lifetime cache of the nickname map.

    The table is static, so it is built at most once per instance and never
    invalidated. Concurrent first calls may both parse the file; they produce
    the same map and the lock only guards the assignment.
    """

    def __init__(self, path: Optional[Path] = None, text: Optional[str] = None):
        self.path = Path(path) if path else DEFAULT_NICKNAME_TABLE
        self._text = text
        self._mapping: Optional[NicknameMap] = None
        self._lock = threading.Lock()

    @classmethod
    def from_text(cls, text: str) -> "NicknameTable":
        return cls(text=text)

    @classmethod
    def from_mapping(cls, pairs: Dict[str, Iterable[str]]) -> "NicknameTable":
        lines = ["formal_name,nicknames"]
        lines.extend(f"{formal},{'|'.join(nicknames)}" for formal, nicknames in pairs.items())
        return cls(text="\n".join(lines))

    def _read_lines(self) -> List[str]:
        if self._text is not None:
            return self._text.split("\n")
        with open(self.path, "r", encoding="utf-8") as handle:
            return handle.read().split("\n")

    @property
    def mapping(self) -> NicknameMap:
        if self._mapping is None:
            built = parse_nickname_table(self._read_lines())
            with self._lock:
                if self._mapping is None:
                    self._mapping = built
                    logger.debug("Loaded %d nickname keys", len(built))
        return self._mapping

    def alternatives(self, word: str) -> Tuple[str, ...]:
        return self.mapping.get((word or "").strip().lower(), ())

    def __contains__(self, word: object) -> bool:
        return isinstance(word, str) and word.strip().lower() in self.mapping


class NicknameExpander:
    def __init__(self, table: Optional[NicknameTable] = None):
        self.table = table or NicknameTable()

    def expand_ordered(self, phrase: str) -> List[str]:
        """
        Return every nickname/formal-name variant of ``phrase``, original first.

        Alternatives for position ``i`` are always looked up with the original
        word at that position, and are applied to every variant generated so
        far, so the output is the cross product over substitutable positions.
        There is no cap on the number of variants.
        """
        original = normalize_phrase(phrase)
        words = original.split(" ") if original else []
        variants: List[str] = [original]
        seen: Set[str] = {original}

        for index, word in enumerate(words):
            alternatives = self.table.alternatives(word)
            if not alternatives:
                continue
            for existing in list(variants):
                existing_words = existing.split(" ")
                if index >= len(existing_words):
                    continue
                for alternative in alternatives:
                    new_words = list(existing_words)
                    new_words[index] = alternative
                    candidate = " ".join(new_words)
                    if candidate not in seen:
                        seen.add(candidate)
                        variants.append(candidate)

        return variants

    def expand(self, phrase: str) -> Set[str]:
        return set(self.expand_ordered(phrase))


def expand_search_term(phrase: str, table: Optional[NicknameTable] = None) -> Set[str]:
    return NicknameExpander(table).expand(phrase)
