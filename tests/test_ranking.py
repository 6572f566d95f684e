"""Tests for the ranking prompt builder and the ranked-ID parser."""
import os
import sys
from types import SimpleNamespace

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from search.ranking import build_ranking_prompt, candidate_line, parse_ranked_ids, select_ranked


def _candidates(n):
    return [SimpleNamespace(id=f"id{i}", description=f"foto {i}", tags=["batizado"]) for i in range(n)]


class TestParseRankedIds:

    def test_trims_and_keeps_order(self):
        assert parse_ranked_ids(" id3, id7 ,id1") == ["id3", "id7", "id1"]

    def test_drops_empty_tokens(self):
        assert parse_ranked_ids("id1,, ,id2,") == ["id1", "id2"]

    def test_empty_response(self):
        assert parse_ranked_ids("") == []
        assert parse_ranked_ids("   ") == []

    def test_keeps_duplicates_for_selection_stage(self):
        assert parse_ranked_ids("a,a") == ["a", "a"]


class TestSelectRanked:

    def test_duplicate_and_unknown_ids_dropped(self):
        """Eight candidates, model answers with a repeat and a hallucinated ID."""
        candidates = _candidates(8)
        ids = parse_ranked_ids("id3,id7,id1,id3,idBOGUS")

        selected = select_ranked(ids, candidates)

        assert [c.id for c in selected] == ["id3", "id7", "id1"]

    def test_capped_at_limit(self):
        candidates = _candidates(10)
        ids = [f"id{i}" for i in (9, 8, 7, 6, 5, 4, 3, 2)]

        selected = select_ranked(ids, candidates, limit=6)

        assert [c.id for c in selected] == ["id9", "id8", "id7", "id6", "id5", "id4"]

    def test_no_known_ids(self):
        assert select_ranked(["x", "y"], _candidates(3)) == []

    def test_preserves_model_order_not_store_order(self):
        candidates = _candidates(3)
        selected = select_ranked(["id2", "id0"], candidates)
        assert [c.id for c in selected] == ["id2", "id0"]


class TestRankingPrompt:

    def test_candidate_line_format(self):
        c = SimpleNamespace(id="abc", description="Padre batizando bebê", tags=["igreja", "bebê"])
        assert candidate_line(0, c) == "0. ID: abc - Padre batizando bebê - Tags: igreja, bebê"

    def test_candidate_line_placeholders(self):
        c = SimpleNamespace(id="abc", description=None, tags=[])
        assert candidate_line(4, c) == "4. ID: abc - Sem descrição - Tags: Sem tags"

    def test_prompt_enumerates_every_candidate(self):
        candidates = _candidates(3)
        prompt = build_ranking_prompt("bebê de branco na pia batismal", candidates)

        assert '"bebê de branco na pia batismal"' in prompt
        assert "6 fotos mais similares" in prompt
        for i, c in enumerate(candidates):
            assert f"{i}. ID: {c.id} - " in prompt
        assert "separados por vírgula" in prompt
