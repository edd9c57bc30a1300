from __future__ import annotations

import argparse
import csv
import logging
from typing import List, Optional

import pandas as pd

from .common import build_expander, candidates_from_frame, load_config, read_table, warn_missing
from .config_loader import MatchConfig
from .logging_utils import configure_logging
from .matching import ConflictChecker, FuzzyContactMatcher, SearchOutcome
from .models import CATEGORIES, CandidateContact, SearchFilters

logger = logging.getLogger(__name__)

RESULT_COLUMNS = [
    "contact_id",
    "name",
    "category",
    "matched_category",
    "score",
    "salesperson",
    "email",
    "phone",
    "company",
    "branch",
    "address",
]


def _load_candidates(config: MatchConfig) -> List[CandidateContact]:
    path = config.inputs.get("contacts_csv")
    if warn_missing(path, "Contacts"):
        return []
    return candidates_from_frame(read_table(path))


def _filters_from_args(args: argparse.Namespace) -> SearchFilters:
    return SearchFilters.from_mapping(
        {category: getattr(args, category, None) or "" for category in CATEGORIES}
    )


def outcome_frame(outcome: SearchOutcome) -> pd.DataFrame:
    rows = [result.to_dict() for result in outcome.results]
    return pd.DataFrame(rows, columns=RESULT_COLUMNS)


def summarize(outcome: SearchOutcome, filters: SearchFilters) -> List[str]:
    if not outcome.has_conflict:
        return ["No matching contacts found: this looks like a new prospect."]
    lines = [f"Potential conflict: {len(outcome.results)} matching contact(s)."]
    if filters.filled_count() > 1:
        lines.append(f"Primary salesperson (by hierarchy): {outcome.primary_salesperson}")
        if outcome.additional_salespeople:
            lines.append(
                "Additional salespeople (crossovers): "
                + ", ".join(outcome.additional_salespeople)
            )
    if outcome.crossover:
        lines.append(f"Crossover: {outcome.crossover}")
    return lines


def build(args: argparse.Namespace, config: Optional[MatchConfig] = None) -> pd.DataFrame:
    config = config or load_config(args)
    candidates = _load_candidates(config)

    conflict_term = getattr(args, "conflict", None)
    if conflict_term:
        checker = ConflictChecker(build_expander(config))
        hits = checker.check(conflict_term, candidates)
        df = pd.DataFrame([candidate.to_dict() for candidate in hits])
        lines = (
            [f"Potential conflict: {len(hits)} matching contact(s)."]
            if hits
            else ["No matching contacts found: this looks like a new prospect."]
        )
    else:
        filters = _filters_from_args(args)
        if filters.is_empty():
            logger.warning("No search filters given; nothing to do")
        outcome = FuzzyContactMatcher().match(filters, candidates)
        df = outcome_frame(outcome)
        lines = summarize(outcome, filters)

    out_path = config.outputs.dir / "search_results.csv"
    df.to_csv(str(out_path), index=False, encoding="utf-8", quoting=csv.QUOTE_ALL)
    for line in lines:
        print(line)
    logger.info("Saved: %s", out_path)
    return df


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Fuzzy-search contacts by category and flag salesperson crossovers."
    )
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config.")
    parser.add_argument("--contacts-csv", type=str, default=None)
    parser.add_argument("--nickname-table", type=str, default=None)
    parser.add_argument("--out-dir", type=str, default=None)
    for category in CATEGORIES:
        parser.add_argument(f"--{category}", type=str, default=None)
    parser.add_argument(
        "--conflict",
        type=str,
        default=None,
        help="Nickname-aware lookup of a single prospect name instead of the fuzzy search.",
    )
    parser.add_argument("--log-level", type=str, default=None, help="Override logging level")
    args = parser.parse_args()

    config = load_config(args)
    configure_logging(config, level_override=args.log_level)
    build(args, config=config)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
