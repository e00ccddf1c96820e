"""Deterministic poll ranking."""

from bookclub.polls.ranking import pick_winner, rank_candidates


class TestRankCandidates:
    """Vote count DESC, then candidate creation order."""

    def test_orders_by_votes(self):
        ranked = rank_candidates([
            {"id": 1, "book_id": 10, "vote_count": 2},
            {"id": 2, "book_id": 20, "vote_count": 7},
            {"id": 3, "book_id": 30, "vote_count": 4},
        ])
        assert [c["book_id"] for c in ranked] == [20, 30, 10]
        assert [c["rank"] for c in ranked] == [1, 2, 3]

    def test_ties_broken_by_creation_order(self):
        ranked = rank_candidates([
            {"id": 9, "book_id": 90, "vote_count": 3},
            {"id": 4, "book_id": 40, "vote_count": 3},
            {"id": 6, "book_id": 60, "vote_count": 3},
        ])
        assert [c["id"] for c in ranked] == [4, 6, 9]

    def test_tie_break_independent_of_input_order(self):
        a = [{"id": 1, "vote_count": 5}, {"id": 2, "vote_count": 5}]
        assert rank_candidates(a) == rank_candidates(list(reversed(a)))

    def test_does_not_mutate_input(self):
        candidates = [{"id": 1, "vote_count": 0}]
        rank_candidates(candidates)
        assert "rank" not in candidates[0]

    def test_empty(self):
        assert rank_candidates([]) == []


class TestPickWinner:
    def test_winner(self):
        winner = pick_winner([{"id": 1, "vote_count": 1}, {"id": 2, "vote_count": 2}])
        assert winner["id"] == 2
        assert winner["rank"] == 1

    def test_no_candidates(self):
        assert pick_winner([]) is None
