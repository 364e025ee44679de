from datetime import datetime

import pytest
from bson import ObjectId
from pymongo.errors import OperationFailure

from karirkit.core.errors import SearchError, ValidationFailed
from karirkit.services.mongo_service import KBVectorService, SalaryRequestService


# ------------------------------------------------------------
# Salary requests
# ------------------------------------------------------------

def test_create_salary_request(collection):
    oid = ObjectId()
    collection.insert_one.return_value.inserted_id = oid

    doc = SalaryRequestService(collection).create("user-123", {
        "job_title": "  Data Analyst ",
        "location": "Jakarta",
        "experience_year": 3,
        "current_or_offered_salary": 12000000
    })

    assert doc["_id"] == str(oid)
    assert doc["job_title"] == "Data Analyst"
    assert doc["user_id"] == "user-123"
    assert isinstance(doc["created_at"], datetime)


@pytest.mark.parametrize("data", [
    {"job_title": " ", "location": "Jakarta", "experience_year": 3, "current_or_offered_salary": 1},
    {"job_title": "Data Analyst", "location": "Jakarta", "experience_year": -1, "current_or_offered_salary": 1},
    {"job_title": "Data Analyst", "location": "Jakarta", "experience_year": 3, "current_or_offered_salary": -5},
    {"job_title": "Data Analyst", "experience_year": 3, "current_or_offered_salary": 1},
])
def test_create_salary_request_validation(collection, data):
    with pytest.raises(ValidationFailed):
        SalaryRequestService(collection).create("user-123", data)

    collection.insert_one.assert_not_called()


def test_get_by_id_malformed_id(collection):
    assert SalaryRequestService(collection).get_by_id("not-an-object-id") is None
    collection.find_one.assert_not_called()


def test_get_by_id(collection):
    oid = ObjectId()
    collection.find_one.return_value = {"_id": oid, "job_title": "Data Analyst"}

    doc = SalaryRequestService(collection).get_by_id(str(oid))

    assert doc == {"_id": str(oid), "job_title": "Data Analyst"}
    collection.find_one.assert_called_once_with({"_id": oid})


def test_get_by_user_newest_first(collection):
    cursor = collection.find.return_value.sort.return_value.limit
    cursor.return_value = [{"_id": ObjectId(), "user_id": "user-123"}]

    docs = SalaryRequestService(collection).get_by_user("user-123")

    assert len(docs) == 1 and isinstance(docs[0]["_id"], str)
    collection.find.assert_called_once_with({"user_id": "user-123"})
    collection.find.return_value.sort.assert_called_once_with("created_at", -1)
    cursor.assert_called_once_with(10)


# ------------------------------------------------------------
# KB vectors: Atlas backend
# ------------------------------------------------------------

def test_atlas_knn_pipeline(collection):
    collection.aggregate.return_value = [{"_id": "a", "score": 0.9}]

    results = KBVectorService(collection, backend="atlas").knn_search([0.1, 0.2], k=5, min_score=0.6)

    pipeline = collection.aggregate.call_args[0][0]
    stage = pipeline[0]["$vectorSearch"]
    assert stage["path"] == "embedding"
    assert stage["queryVector"] == [0.1, 0.2]
    assert stage["numCandidates"] == 150
    assert stage["limit"] == 5
    assert pipeline[1]["$project"]["score"] == {"$meta": "vectorSearchScore"}
    assert pipeline[-1] == {"$match": {"score": {"$gte": 0.6}}}
    assert results == [{"_id": "a", "score": 0.9}]


def test_atlas_knn_candidates_scale_with_k(collection):
    collection.aggregate.return_value = []

    KBVectorService(collection, backend="atlas").knn_search([0.1], k=20)

    pipeline = collection.aggregate.call_args[0][0]
    assert pipeline[0]["$vectorSearch"]["numCandidates"] == 400
    assert len(pipeline) == 2


def test_atlas_keyword_search(collection):
    collection.aggregate.return_value = [{"_id": "a", "keywordScore": 2.5}]

    results = KBVectorService(collection, backend="atlas").keyword_search(["Data Analyst", "Jakarta"], 20)

    pipeline = collection.aggregate.call_args[0][0]
    assert pipeline[0]["$search"]["text"]["query"] == "Data Analyst Jakarta"
    assert pipeline[1] == {"$limit": 20}
    assert pipeline[2]["$project"]["keywordScore"] == {"$meta": "searchScore"}
    assert results[0]["keywordScore"] == 2.5


def test_keyword_search_failure_raises_search_error(collection):
    collection.aggregate.side_effect = OperationFailure("index not found")

    with pytest.raises(SearchError):
        KBVectorService(collection, backend="atlas").keyword_search(["salary"], 10)


def test_keyword_search_blank_query(collection):
    assert KBVectorService(collection, backend="atlas").keyword_search(["", "  "], 10) == []
    collection.aggregate.assert_not_called()


# ------------------------------------------------------------
# KB vectors: local backend
# ------------------------------------------------------------

def kb_docs():
    return [
        {"_id": "a", "text": "exact", "embedding": [1.0, 0.0]},
        {"_id": "b", "text": "close", "embedding": [0.6, 0.8]},
        {"_id": "c", "text": "other model", "embedding": [1.0, 0.0, 0.0]},
        {"_id": "d", "text": "orthogonal", "embedding": [0.0, 1.0]},
    ]


def test_local_knn_ranks_by_cosine(collection):
    collection.find.return_value = kb_docs()

    results = KBVectorService(collection, backend="local").knn_search([2.0, 0.0], k=2)

    assert [r["_id"] for r in results] == ["a", "b"]
    assert results[0]["score"] == pytest.approx(1.0)
    assert results[1]["score"] == pytest.approx(0.6)
    assert "embedding" not in results[0]


def test_local_knn_min_score(collection):
    collection.find.return_value = kb_docs()

    results = KBVectorService(collection, backend="local").knn_search([1.0, 0.0], k=10, min_score=0.7)

    assert [r["_id"] for r in results] == ["a"]


def test_local_keyword_search_uses_text_index(collection):
    cursor = collection.find.return_value.sort.return_value.limit
    cursor.return_value = [{"_id": "a", "keywordScore": 1.5}]

    results = KBVectorService(collection, backend="local").keyword_search(["gaji", "Jakarta"], 6)

    query, projection = collection.find.call_args[0]
    assert query == {"$text": {"$search": "gaji Jakarta"}}
    assert projection["keywordScore"] == {"$meta": "textScore"}
    cursor.assert_called_once_with(6)
    assert results == [{"_id": "a", "keywordScore": 1.5}]


def test_delete_by_source(collection):
    collection.delete_many.return_value.deleted_count = 7

    assert KBVectorService(collection).delete_by_source("guide.pdf") == 7
    collection.delete_many.assert_called_once_with(
        {"$or": [{"source": "guide.pdf"}, {"sourceFile": "guide.pdf"}]}
    )


def test_insert_many_empty(collection):
    assert KBVectorService(collection).insert_many([]) == []
    collection.insert_many.assert_not_called()


def test_insert_one_and_count(collection):
    oid = ObjectId()
    collection.insert_one.return_value.inserted_id = oid
    collection.count_documents.return_value = 12
    service = KBVectorService(collection)

    doc = service.insert_one({"text": "Gaji Data Analyst", "source": "notes"})

    assert doc == {"text": "Gaji Data Analyst", "source": "notes", "_id": str(oid)}
    assert service.count() == 12
    collection.count_documents.assert_called_once_with({})
