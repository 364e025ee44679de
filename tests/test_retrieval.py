from unittest.mock import MagicMock

import pytest

from karirkit.core.errors import SearchError, ValidationFailed
from karirkit.services.retrieval_service import HybridSearchService, fuse_results


def vector_hit(doc_id, score, **fields):
    return {"_id": doc_id, "score": score, **fields}


def keyword_hit(doc_id, score, **fields):
    return {"_id": doc_id, "keywordScore": score, **fields}


def test_fuse_combines_both_signals():
    vector = [vector_hit("a", 0.9), vector_hit("b", 0.8)]
    keyword = [keyword_hit("b", 4.0), keyword_hit("c", 2.0)]

    results = fuse_results(vector, keyword, k=3, vector_weight=0.7, keyword_weight=0.3)

    assert [r["id"] for r in results] == ["b", "a", "c"]
    by_id = {r["id"]: r for r in results}
    assert by_id["b"]["combined_score"] == pytest.approx(0.8 * 0.7 + 1.0 * 0.3)
    assert by_id["a"]["combined_score"] == pytest.approx(0.9 * 0.7)
    assert by_id["c"]["combined_score"] == pytest.approx(0.5 * 0.3)
    assert by_id["b"]["vector_score"] == 0.8
    assert by_id["b"]["keyword_score"] == 4.0
    assert by_id["c"]["vector_score"] == 0.0


def test_fuse_never_scales_scores_up():
    # Maximum below 1 is normalized against 1, not against itself
    results = fuse_results([vector_hit("a", 0.5)], [keyword_hit("b", 0.4)], 5, 0.7, 0.3)

    by_id = {r["id"]: r for r in results}
    assert by_id["a"]["combined_score"] == pytest.approx(0.35)
    assert by_id["b"]["combined_score"] == pytest.approx(0.12)


def test_fuse_keeps_document_fields_and_vector_score():
    results = fuse_results(
        [vector_hit("a", 0.9, text="Gaji Data Analyst", source="survey.pdf")],
        [keyword_hit("b", 3.0, text="Salary guide")],
        5, 0.7, 0.3
    )

    by_id = {r["id"]: r for r in results}
    assert by_id["a"]["text"] == "Gaji Data Analyst"
    assert by_id["a"]["source"] == "survey.pdf"
    assert by_id["a"]["score"] == 0.9
    assert "score" not in by_id["b"]
    assert "keywordScore" not in by_id["b"]


def test_fuse_ties_keep_retrieval_order():
    vector = [vector_hit("first", 0.7), vector_hit("second", 0.7), vector_hit("third", 0.7)]

    results = fuse_results(vector, [], 3, 0.7, 0.3)

    assert [r["id"] for r in results] == ["first", "second", "third"]


def test_fuse_truncates_to_k():
    vector = [vector_hit(str(i), 1 - i / 10) for i in range(6)]

    results = fuse_results(vector, [], 2, 0.7, 0.3)

    assert [r["id"] for r in results] == ["0", "1"]


def test_fuse_treats_missing_scores_as_zero():
    results = fuse_results([{"_id": "a", "score": None}], [{"_id": "b"}], 5, 0.7, 0.3)

    assert all(r["combined_score"] == 0 for r in results)


def test_fuse_empty_inputs():
    assert fuse_results([], [], 5, 0.7, 0.3) == []


@pytest.fixture
def kb_service():
    service = MagicMock()
    service.knn_search.return_value = [vector_hit("a", 0.9), vector_hit("b", 0.65)]
    service.keyword_search.return_value = [keyword_hit("c", 3.0)]
    return service


def test_hybrid_search_fetches_twice_k_candidates(kb_service):
    search = HybridSearchService(kb_service=kb_service)

    search.hybrid_search([0.1, 0.2], ["analyst", "Jakarta"], k=5, min_score=0.6)

    kb_service.knn_search.assert_called_once_with([0.1, 0.2], 10, min_score=0.6, num_candidates=None)
    kb_service.keyword_search.assert_called_once_with(["analyst", "Jakarta"], 10)


def test_hybrid_search_explicit_zero_weight_is_honored(kb_service):
    search = HybridSearchService(kb_service=kb_service)

    results = search.hybrid_search([0.1], ["analyst"], k=5, vector_weight=1.0, keyword_weight=0.0)

    by_id = {r["id"]: r for r in results}
    assert by_id["c"]["combined_score"] == 0
    assert by_id["a"]["combined_score"] == pytest.approx(0.9)


@pytest.mark.parametrize("weights", [{"vector_weight": 1.5}, {"keyword_weight": -0.1}])
def test_hybrid_search_rejects_weights_outside_unit_range(kb_service, weights):
    search = HybridSearchService(kb_service=kb_service)

    with pytest.raises(ValidationFailed):
        search.hybrid_search([0.1], ["analyst"], k=5, **weights)

    kb_service.knn_search.assert_not_called()


def test_hybrid_search_rejects_non_positive_k(kb_service):
    with pytest.raises(ValidationFailed):
        HybridSearchService(kb_service=kb_service).hybrid_search([0.1], [], k=0)


def test_hybrid_search_falls_back_to_vector_only(kb_service):
    kb_service.keyword_search.side_effect = SearchError("Keyword search failed: no index")
    search = HybridSearchService(kb_service=kb_service)

    results = search.hybrid_search([0.1], ["analyst"], k=5, vector_weight=0.7, keyword_weight=0.3)

    assert [r["id"] for r in results] == ["a", "b"]
    assert results[0]["combined_score"] == pytest.approx(0.63)
    assert all(r["keyword_score"] == 0 for r in results)


def test_hybrid_search_without_keywords_passes_empty_list(kb_service):
    kb_service.keyword_search.return_value = []
    search = HybridSearchService(kb_service=kb_service)

    search.hybrid_search([0.1], None, k=3)

    kb_service.keyword_search.assert_called_once_with([], 6)
