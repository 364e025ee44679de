from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from karirkit.main import app


@pytest.fixture
def client():
    """
    API test client. Index creation at startup is patched out so no
    MongoDB is needed.
    """
    with patch("karirkit.main.init_mongo_indexes"):
        with TestClient(app) as client:
            yield client


@pytest.fixture
def user_header():
    """Identity header normally injected by the gateway."""
    return {"X-User-Id": "user-123"}


@pytest.fixture
def collection():
    """Stand-in for a pymongo Collection."""
    return MagicMock()


# Mock the OpenAI SDK client so tests never hit the AI API
@pytest.fixture
def openai_client():
    return MagicMock()


def chat_response(content):
    """Shape of openai's ChatCompletion, as far as the client reads it."""
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )


def embedding_response(vectors, order=None):
    """Shape of openai's CreateEmbeddingResponse; order permutes the items."""
    items = [SimpleNamespace(index=i, embedding=v) for i, v in enumerate(vectors)]
    if order is not None:
        items = [items[i] for i in order]
    return SimpleNamespace(data=items)


@pytest.fixture
def salary_request():
    return {
        "_id": "6650f0c2a1b2c3d4e5f60718",
        "job_title": "Data Analyst",
        "location": "Jakarta",
        "experience_year": 3,
        "current_or_offered_salary": 12000000,
        "user_id": "user-123"
    }
