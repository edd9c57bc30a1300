import pytest

from contacts_match.matching import (
    SIMILARITY_THRESHOLD,
    ConflictChecker,
    FuzzyContactMatcher,
    detect_crossover,
    fuzzy_search,
)
from contacts_match.models import CandidateContact, SearchFilters, category_priority
from contacts_match.nicknames import NicknameExpander, NicknameTable


def _contact(contact_id, name, category, salesperson=""):
    return CandidateContact(
        contact_id=contact_id, name=name, category=category, salesperson=salesperson
    )


def test_threshold_is_fixed():
    assert SIMILARITY_THRESHOLD == 0.6
    assert FuzzyContactMatcher.threshold == 0.6


def test_fuzzy_match_returns_both_and_flags_tied_crossover():
    candidates = [
        _contact("1", "John Doe", "buyer", "Alice"),
        _contact("2", "Jon Doe", "buyer", "Bob"),
    ]
    outcome = fuzzy_search(SearchFilters(buyer="John Doe"), candidates)
    assert [result.contact_id for result in outcome.results] == ["1", "2"]
    assert outcome.results[0].score == 1.0
    assert outcome.results[1].score == pytest.approx(7 / 8)
    assert outcome.crossover == "Alice & Bob"
    assert outcome.has_conflict is True


def test_crossover_reports_the_modal_salesperson():
    candidates = [
        _contact("1", "John Doe", "buyer", "Alice"),
        _contact("2", "Jon Doe", "buyer", "Bob"),
        _contact("3", "Mary Major", "realtor", "Alice"),
    ]
    outcome = fuzzy_search(SearchFilters(buyer="John Doe", realtor="Mary Major"), candidates)
    assert outcome.crossover == "Alice"


def test_single_salesperson_is_not_a_crossover():
    assert detect_crossover(["Alice", "Alice", "Unassigned"]) is None
    assert detect_crossover(["Unassigned", "Unassigned"]) is None
    assert detect_crossover([]) is None


def test_unassigned_is_ignored_for_crossover():
    assert detect_crossover(["Alice", "Unassigned", "Bob", "Unassigned", "Bob"]) == "Bob"


def test_results_ordered_by_category_not_score():
    candidates = [
        _contact("L", "Pat Lender", "lender", "Dana"),
        _contact("A", "Pat Lawyer", "attorney", "Dana"),
        _contact("R", "Pat Realtr", "realtor", "Dana"),
        _contact("B", "Pat Buyer", "buyer", "Dana"),
    ]
    filters = SearchFilters(
        buyer="Pat Buyerr", realtor="Pat Realtor", attorney="Pat Lawyer", lender="Pat Lender"
    )
    outcome = fuzzy_search(filters, candidates)
    assert [result.candidate.category for result in outcome.results] == [
        "buyer",
        "realtor",
        "attorney",
        "lender",
    ]
    assert outcome.primary_salesperson == "Dana"
    assert outcome.additional_salespeople == []
    assert outcome.crossover is None


def test_category_filter_only_scans_matching_category():
    candidates = [
        _contact("1", "John Doe", "realtor", "Alice"),
    ]
    outcome = fuzzy_search(SearchFilters(buyer="John Doe"), candidates)
    assert outcome.results == []
    assert outcome.has_conflict is False


def test_below_threshold_is_dropped():
    candidates = [_contact("1", "Zachary Quinn", "buyer")]
    outcome = fuzzy_search(SearchFilters(buyer="John Doe"), candidates)
    assert outcome.results == []


def test_empty_filters_skip_the_scan():
    class Exploding(list):
        def __iter__(self):
            raise AssertionError("candidates should not be scanned")

        def __len__(self):
            return 0

    outcome = FuzzyContactMatcher().match(SearchFilters(buyer="   "), Exploding())
    assert outcome.results == []
    assert outcome.crossover is None
    assert outcome.primary_salesperson is None


def test_one_result_per_candidate_keeps_highest_score():
    # the same contact id listed under two categories keeps its best association
    candidates = [
        _contact("1", "John Doe", "buyer", "Alice"),
        _contact("1", "John Doe", "realtor", "Alice"),
    ]
    outcome = fuzzy_search(SearchFilters(buyer="Jon Doe", realtor="John Doe"), candidates)
    assert len(outcome.results) == 1
    assert outcome.results[0].matched_category == "realtor"
    assert outcome.results[0].score == 1.0


def test_query_is_trimmed_before_scoring():
    candidates = [_contact("1", "Jane Roe", "lender")]
    outcome = fuzzy_search(SearchFilters(lender="   Jane Roe  "), candidates)
    assert outcome.results[0].score == 1.0


def test_unknown_category_sorts_last():
    priorities = [category_priority(name) for name in ("buyer", "realtor", "attorney", "lender")]
    assert priorities == sorted(priorities)
    assert category_priority("surveyor") > category_priority("lender")


def test_match_result_serializes_score_and_category():
    outcome = fuzzy_search(
        SearchFilters(buyer="Ann Lee"),
        [_contact("1", "Ann Lee", "buyer", "Alice")],
    )
    payload = outcome.results[0].to_dict()
    assert payload["matched_category"] == "buyer"
    assert payload["score"] == 1.0
    assert payload["salesperson"] == "Alice"


def test_primary_and_additional_salespeople():
    candidates = [
        _contact("1", "John Doe", "buyer", "Alice"),
        _contact("2", "Mary Major", "realtor", "Bob"),
        _contact("3", "Carl Counsel", "attorney", ""),
        _contact("4", "Lou Lend", "lender", "Cara"),
    ]
    filters = SearchFilters(
        buyer="John Doe", realtor="Mary Major", attorney="Carl Counsel", lender="Lou Lend"
    )
    outcome = fuzzy_search(filters, candidates)
    assert outcome.primary_salesperson == "Alice"
    assert outcome.additional_salespeople == ["Bob", "Cara"]
    assert outcome.results[2].salesperson == "Unassigned"
    assert outcome.crossover == "Alice & Bob & Cara"


def test_conflict_check_uses_nickname_variants():
    checker = ConflictChecker(
        NicknameExpander(NicknameTable.from_mapping({"Robert": ["Bob", "Rob"]}))
    )
    candidates = [
        _contact("1", "Robert A. Jones", "buyer", "Alice"),
        _contact("2", "Bob Jones", "realtor", "Bob"),
        _contact("3", "Bobby Smith", "buyer"),
        _contact("4", "Jane Jones", "lender"),
    ]
    hits = checker.check("  bob   jones ", candidates)
    assert [hit.contact_id for hit in hits] == ["2", "1"]


def test_conflict_check_blank_term():
    checker = ConflictChecker(NicknameExpander(NicknameTable.from_mapping({"Robert": ["Bob"]})))
    assert checker.check("   ", [_contact("1", "Bob", "buyer")]) == []


def test_conflict_check_escapes_regex_characters():
    checker = ConflictChecker(NicknameExpander(NicknameTable.from_mapping({"Robert": ["Bob"]})))
    candidates = [_contact("1", "J. Doe", "buyer"), _contact("2", "JX Doe", "buyer")]
    assert [hit.contact_id for hit in checker.check("J. Doe", candidates)] == ["1"]
