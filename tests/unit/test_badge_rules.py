"""Badge rule table evaluation."""

from datetime import datetime, timezone

from bookclub.gamification.badge_service import BADGE_RULES, evaluate_rules, joined_before
from bookclub.gamification.seed import BADGE_SEED_DATA


def _counters(**overrides: int) -> dict[str, int]:
    base = {
        "books_started": 0,
        "books_finished": 0,
        "reviews": 0,
        "comments": 0,
        "helpful_received": 0,
        "insightful_received": 0,
        "current_streak": 0,
        "early_adopter": 0,
    }
    base.update(overrides)
    return base


class TestRuleTable:
    """Static table consistency."""

    def test_every_rule_has_a_catalog_entry(self):
        catalog = {b["type"] for b in BADGE_SEED_DATA}
        assert {badge_type for badge_type, _, _ in BADGE_RULES} == catalog

    def test_badge_types_unique(self):
        types = [badge_type for badge_type, _, _ in BADGE_RULES]
        assert len(types) == len(set(types))


class TestEvaluateRules:
    """Which badges a set of counters earns."""

    def test_nothing_for_new_member(self):
        assert evaluate_rules(_counters(), set()) == []

    def test_first_book(self):
        assert evaluate_rules(_counters(books_started=1), set()) == ["FIRST_BOOK"]

    def test_thresholds_are_inclusive(self):
        earned = evaluate_rules(_counters(books_started=5), set())
        assert earned == ["FIRST_BOOK", "FIVE_BOOKS"]

    def test_below_threshold(self):
        assert "TEN_BOOKS" not in evaluate_rules(_counters(books_started=9), set())

    def test_skips_already_awarded(self):
        earned = evaluate_rules(_counters(comments=30), {"DISCUSSION_STARTER"})
        assert earned == ["ACTIVE_PARTICIPANT"]

    def test_streak_badges(self):
        earned = evaluate_rules(_counters(current_streak=12), set())
        assert earned == ["STREAK_STARTER", "DEDICATED_READER"]

    def test_reaction_badges(self):
        earned = evaluate_rules(_counters(helpful_received=10, insightful_received=9), set())
        assert earned == ["HELPFUL_MEMBER"]

    def test_everything(self):
        counters = _counters(
            books_started=50, reviews=10, comments=100, helpful_received=10,
            insightful_received=10, current_streak=52, early_adopter=1,
        )
        assert len(evaluate_rules(counters, set())) == len(BADGE_RULES)


class TestJoinedBefore:
    """EARLY_ADOPTER predicate."""

    CUTOFF = datetime(2025, 2, 1, tzinfo=timezone.utc)

    def test_no_cutoff(self):
        assert not joined_before(datetime(2020, 1, 1, tzinfo=timezone.utc), None)

    def test_before(self):
        assert joined_before(datetime(2025, 1, 15, tzinfo=timezone.utc), self.CUTOFF)

    def test_after(self):
        assert not joined_before(datetime(2025, 3, 1, tzinfo=timezone.utc), self.CUTOFF)

    def test_naive_created_at_treated_as_utc(self):
        assert joined_before(datetime(2025, 1, 31, 23, 0), self.CUTOFF)
