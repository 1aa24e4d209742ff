"""Tests del MatchRanker."""

import asyncio

import pytest

from intercambio.errors import NotFoundError, UpstreamUnavailableError
from intercambio.matching import CandidateFinder, MatchRanker


def rank(ranker, *args, **kwargs):
    return asyncio.run(ranker.rank(*args, **kwargs))


@pytest.fixture
def ranker(user_store, match_store):
    return MatchRanker(user_store, match_store)


class TestScenarios:
    def test_single_candidate(self, ranker, user_store, requester, spanish_speaker):
        user_store.add(requester, spanish_speaker)

        result = rank(ranker, "requester")

        assert result.total_found == 1
        [ranked] = result.matches
        assert ranked.user.id == "x"
        assert ranked.score == 60

    def test_proposed_match_fields(self, ranker, user_store, match_store, requester, spanish_speaker):
        user_store.add(requester, spanish_speaker)

        match = rank(ranker, "requester").matches[0].match

        assert match.user1_id == "requester"
        assert match.user2_id == "x"
        assert match.user1_teaches == "en"
        assert match.user2_teaches == "es"
        assert match.status is None
        # El ranker no persiste
        assert match_store.matches == {}

    def test_teaches_first_declared_language(self, ranker, user_store, make_user):
        user_store.add(
            make_user("r", teaching=[("fr", "beginner"), ("en", "native")], learning=["es"]),
            make_user("c", teaching=["es"], learning=["en", "fr"]),
        )

        match = rank(ranker, "r").matches[0].match

        assert match.user1_teaches == "fr"

    def test_unknown_requester(self, ranker, user_store, match_store):
        with pytest.raises(NotFoundError) as exc_info:
            rank(ranker, "ghost", exclude_existing=True)

        assert exc_info.value.entity_id == "ghost"
        assert "ghost" in str(exc_info.value)
        assert user_store.criteria_calls == []
        assert match_store.find_by_user_calls == []

    def test_no_candidates(self, ranker, user_store, requester):
        user_store.add(requester)

        result = rank(ranker, "requester")

        assert result.matches == []
        assert result.total_found == 0


class TestExclusion:
    def test_never_includes_requester(self, ranker, user_store, make_user):
        # Se enseña y aprende a sí mismo: el store lo devuelve, el finder lo descarta
        user_store.add(
            make_user("r", teaching=["en", "es"], learning=["es", "en"]),
            make_user("c", teaching=["es"], learning=["en"]),
        )

        result = rank(ranker, "r")

        assert [m.user.id for m in result.matches] == ["c"]

    @pytest.mark.parametrize("requester_first", [True, False])
    def test_existing_matches_excluded(
        self, ranker, user_store, match_store, make_user, make_match, requester_first
    ):
        user_store.add(
            make_user("r", teaching=["en"], learning=["es"]),
            make_user("old", teaching=["es"], learning=["en"]),
            make_user("new", teaching=["es"], learning=["en"]),
        )
        existing = make_match("r", "old") if requester_first else make_match("old", "r")
        match_store.matches[existing.id] = existing

        result = rank(ranker, "r", exclude_existing=True)

        assert [m.user.id for m in result.matches] == ["new"]
        assert result.total_found == 1
        assert match_store.find_by_user_calls == ["r"]

    def test_existing_matches_kept_without_flag(
        self, ranker, user_store, match_store, make_user, make_match
    ):
        user_store.add(
            make_user("r", teaching=["en"], learning=["es"]),
            make_user("old", teaching=["es"], learning=["en"]),
        )
        existing = make_match("r", "old")
        match_store.matches[existing.id] = existing

        result = rank(ranker, "r")

        assert [m.user.id for m in result.matches] == ["old"]
        assert match_store.find_by_user_calls == []


class TestOrdering:
    def test_sorted_by_score_descending(self, ranker, user_store, make_user):
        user_store.add(
            make_user("r", teaching=["en", "fr"], learning=["es", "it"]),
            make_user("low", teaching=["es"], learning=["en"]),  # 60
            make_user("high", teaching=["es", "it"], learning=["en", "fr"]),  # 100
            make_user("mid", teaching=["es"], learning=["en", "fr"]),  # 100
            make_user("one", teaching=["it"], learning=["de", "en"]),  # 60
        )

        result = rank(ranker, "r")
        scores = [m.score for m in result.matches]

        assert all(scores[i] >= scores[i + 1] for i in range(len(scores) - 1))
        assert scores[0] == 100

    def test_ties_keep_finder_order(self, ranker, user_store, make_user):
        user_store.add(
            make_user("r", teaching=["en"], learning=["es"]),
            make_user("first", teaching=["es"], learning=["en"]),
            make_user("better", teaching=["es"], learning=["en", "fr"]),
            make_user("second", teaching=["es"], learning=["en"]),
        )

        result = rank(ranker, "r")

        assert [m.user.id for m in result.matches] == ["first", "better", "second"]
        assert [m.score for m in result.matches] == [60, 60, 60]

    def test_ties_after_higher_scores(self, ranker, user_store, make_user):
        user_store.add(
            make_user("r", teaching=["en", "fr"], learning=["es"]),
            make_user("tie-a", teaching=["es"], learning=["en"]),
            make_user("top", teaching=["es"], learning=["en", "fr"]),
            make_user("tie-b", teaching=["es"], learning=["fr"]),
        )

        result = rank(ranker, "r")

        assert [m.user.id for m in result.matches] == ["top", "tie-a", "tie-b"]


class TestTruncation:
    @pytest.fixture
    def crowded_store(self, user_store, make_user):
        user_store.add(make_user("r", teaching=["en"], learning=["es"]))
        for i in range(12):
            user_store.add(make_user(f"c{i:02d}", teaching=["es"], learning=["en"]))
        return user_store

    def test_default_limit(self, ranker, crowded_store):
        result = rank(ranker, "r")

        assert len(result.matches) == 10
        assert result.total_found == 12

    def test_explicit_limit(self, ranker, crowded_store):
        result = rank(ranker, "r", limit=3)

        assert [m.user.id for m in result.matches] == ["c00", "c01", "c02"]
        assert result.total_found == 12

    def test_limit_above_total(self, ranker, crowded_store):
        result = rank(ranker, "r", limit=50)

        assert len(result.matches) == 12
        assert result.total_found >= len(result.matches)

    def test_custom_default_limit(self, user_store, match_store, crowded_store):
        ranker = MatchRanker(user_store, match_store, default_limit=4)
        assert len(rank(ranker, "r").matches) == 4

    @pytest.mark.parametrize("limit", [0, -1])
    def test_invalid_limit(self, ranker, crowded_store, limit):
        with pytest.raises(ValueError):
            rank(ranker, "r", limit=limit)


class TestFailures:
    def test_store_errors_pass_through(self, ranker, user_store, requester):
        user_store.add(requester)
        error = UpstreamUnavailableError("find_by_criteria", "users")
        user_store.error = error

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            rank(ranker, "requester")

        assert exc_info.value is error

    def test_match_store_errors_pass_through(self, ranker, user_store, match_store, requester):
        user_store.add(requester)
        error = UpstreamUnavailableError("find_by_user_id", "matches")
        match_store.error = error

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            rank(ranker, "requester", exclude_existing=True)

        assert exc_info.value is error

    def test_timeout_cancels_call(self, ranker, user_store, requester):
        user_store.add(requester)
        user_store.delay = 1.0

        with pytest.raises(asyncio.TimeoutError):
            rank(ranker, "requester", timeout=0.01)

        assert user_store.criteria_calls == []

    def test_invalid_candidate_is_skipped(self, user_store, match_store, make_user):
        class PassThroughFinder(CandidateFinder):
            def filter_pool(self, requester, pool, exclude_ids=()):
                return list(pool)

        requester = make_user("r", teaching=["en", "es"], learning=["es", "en"])
        good = make_user("good", teaching=["es"], learning=["en"])
        user_store.add(requester, good)
        ranker = MatchRanker(user_store, match_store, candidate_finder=PassThroughFinder(user_store))

        # El propio solicitante no puede formar un Match válido y se omite
        result = rank(ranker, "r")

        assert [m.user.id for m in result.matches] == ["good"]
        assert result.total_found == 1

    def test_failed_lookup_cancels_candidate_query(self, ranker, user_store, match_store, requester):
        """Si falla la consulta de matches existentes, la del pool no queda colgada."""
        user_store.add(requester)
        user_store.criteria_delay = 1.0
        match_store.error = UpstreamUnavailableError("find_by_user_id", "matches")

        async def flow():
            with pytest.raises(UpstreamUnavailableError):
                await ranker.rank("requester", exclude_existing=True)
            # Antes de que asyncio.run cancele lo que quede pendiente
            return user_store.criteria_cancelled

        assert asyncio.run(flow()) is True
        assert len(user_store.criteria_calls) == 1


class TestConfiguration:
    @pytest.mark.parametrize("default_limit", [0, -3])
    def test_explicit_default_limit_is_not_replaced(self, user_store, match_store, default_limit):
        with pytest.raises(ValueError):
            MatchRanker(user_store, match_store, default_limit=default_limit)

    def test_default_limit_from_settings(self, user_store, match_store):
        assert MatchRanker(user_store, match_store).default_limit == 10
