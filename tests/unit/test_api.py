"""
Unit tests for the FastAPI application.

The engine dependency is overridden with an in-memory engine; lifespan
(storage start-up) is not run.
"""

import pytest
from fastapi.testclient import TestClient

from bayes_chat.config import EngineSettings
from bayes_chat.engine import ChatEngine
from bayes_chat.main import NO_ANSWER_MESSAGE, NOT_TRAINED_MESSAGE, app, get_engine
from bayes_chat.storage import InMemoryModelStore, StorageUnavailableError


PETS = {
    "documents": [
        {"document_id": "1", "title": "Cats", "content": "Cats are great pets and love to sleep."},
        {"document_id": "2", "title": "Dogs", "content": "Dogs are loyal companions and enjoy walks."},
    ]
}


def _client_for(engine):
    app.dependency_overrides[get_engine] = lambda: engine
    return TestClient(app)


@pytest.fixture
def client(engine):
    yield _client_for(engine)
    app.dependency_overrides.clear()


@pytest.fixture
def trained_client(client):
    response = client.post("/v1/train", json=PETS)
    assert response.status_code == 202
    return client


class TestHealth:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["service"] == "Bayes Chat API"

    def test_health_untrained(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["training_status"] == "pending"
        assert data["total_documents"] == 0

    def test_health_trained(self, trained_client):
        data = trained_client.get("/health").json()
        assert data["training_status"] == "completed"
        assert data["vocabulary_size"] == 10


class TestTrain:
    """Test background training and its status"""

    def test_train_documents(self, client):
        response = client.post("/v1/train", json=PETS)

        assert response.status_code == 202
        assert response.json()["status"] == "scheduled"
        assert response.json()["documents"] == 2

        status = client.get("/v1/training/status").json()
        assert status["status"] == "completed"
        assert status["stored_documents"] == 2
        assert status["trained_documents"] == 2
        assert status["progress"] == 100
        assert status["last_training"] is not None

    def test_train_stored_corpus(self, client):
        """Test retraining documents added through the API"""
        client.put("/v1/documents/cats", json={"title": "Cats", "content": "Cats love to sleep."})

        response = client.post("/v1/train")

        assert response.status_code == 202
        assert response.json()["documents"] is None
        assert client.get("/v1/training/status").json()["trained_documents"] == 1

    def test_train_without_documents(self, client):
        client.post("/v1/train", json={"documents": []})

        status = client.get("/v1/training/status").json()
        assert status["status"] == "no_data"
        assert status["progress"] == 0

    def test_retrain_without_documents_untrains(self, trained_client):
        """Test that an empty retrain leaves no model to answer from"""
        trained_client.post("/v1/train", json={"documents": []})

        response = trained_client.post("/v1/ask", json={"question": "Do cats sleep a lot?"})

        assert response.status_code == 503
        assert response.json()["detail"] == NOT_TRAINED_MESSAGE


class TestAsk:
    """Test question answering over HTTP"""

    def test_answer(self, trained_client):
        response = trained_client.post("/v1/ask", json={"question": "Do cats sleep a lot?"})

        assert response.status_code == 200
        data = response.json()
        assert data["answered"] is True
        assert data["document_id"] == "1"
        assert data["source_title"] == "Cats"
        assert data["answer"] == "Cats are great pets and love to sleep\n\nSource: Cats"
        assert 0.0 < data["confidence"] <= 1.0

    def test_interaction_logged(self, trained_client):
        trained_client.post("/v1/ask", json={"question": "Do cats sleep a lot?"})

        logs = trained_client.get("/v1/logs").json()

        assert logs["total"] == 1
        entry = logs["logs"][0]
        assert entry["question"] == "Do cats sleep a lot?"
        assert entry["matched_document_id"] == "1"
        assert entry["client_host"] == "testclient"
        assert entry["response_text"].startswith("Cats are great pets")

    def test_blank_question(self, trained_client):
        response = trained_client.post("/v1/ask", json={"question": "   "})
        assert response.status_code == 400

    def test_not_trained(self, client):
        response = client.post("/v1/ask", json={"question": "Do cats sleep?"})

        assert response.status_code == 503
        assert response.json()["detail"] == NOT_TRAINED_MESSAGE

    def test_no_relevant_answer(self, trained_client):
        """Test that a question of stop words gets the no-answer reply"""
        data = trained_client.post("/v1/ask", json={"question": "What is it?"}).json()

        assert data["answered"] is False
        assert data["message"] == NO_ANSWER_MESSAGE
        assert trained_client.get("/v1/logs").json()["total"] == 0

    def test_below_confidence_threshold(self):
        """Test that low-confidence answers are withheld but logged"""
        engine = ChatEngine(InMemoryModelStore(), EngineSettings(confidence_threshold=0.99, training_batch_pause=0.0))
        client = _client_for(engine)
        try:
            client.post("/v1/train", json=PETS)
            data = client.post("/v1/ask", json={"question": "Do cats sleep a lot?"}).json()

            assert data["answered"] is False
            assert data["answer"] is None
            assert data["message"] == NO_ANSWER_MESSAGE

            entry = client.get("/v1/logs").json()["logs"][0]
            assert entry["matched_document_id"] == "1"
            assert entry["response_text"] is None
        finally:
            app.dependency_overrides.clear()

    def test_storage_unavailable(self, trained_client, engine, monkeypatch):
        """Test that storage failures turn into the no-answer reply"""
        async def unavailable(query):
            raise StorageUnavailableError("database down")

        monkeypatch.setattr(engine, "predict", unavailable)

        response = trained_client.post("/v1/ask", json={"question": "Do cats sleep?"})

        assert response.status_code == 200
        assert response.json()["answered"] is False
        assert response.json()["message"] == NO_ANSWER_MESSAGE


class TestDocuments:
    """Test document maintenance endpoints"""

    def test_put_document(self, client):
        response = client.put("/v1/documents/42", json={"title": "Cats", "content": "Cats love to sleep."})

        assert response.status_code == 200
        data = response.json()
        assert data["document_id"] == "42"
        assert data["distinct_tokens"] == 3
        assert data["token_count"] == 4

    def test_put_requires_title(self, client):
        response = client.put("/v1/documents/42", json={"title": "", "content": "text"})
        assert response.status_code == 422

    def test_delete_document(self, trained_client):
        assert trained_client.delete("/v1/documents/1").status_code == 200
        assert trained_client.delete("/v1/documents/1").status_code == 404

    def test_similar_documents(self, client):
        client.put("/v1/documents/a", json={"title": "Cats", "content": "Cats are great pets"})
        client.put("/v1/documents/b", json={"title": "Pets", "content": "Cats and dogs are pets"})
        client.put("/v1/documents/c", json={"title": "Walks", "content": "Dogs enjoy walks"})

        data = client.get("/v1/documents/b/similar").json()

        assert data["metric"] == "jaccard"
        assert [item["document_id"] for item in data["results"]] == ["a", "c"]

        cosine = client.get("/v1/documents/b/similar", params={"metric": "cosine", "limit": 1}).json()
        assert [item["document_id"] for item in cosine["results"]] == ["a"]

    def test_similar_unknown_document(self, client):
        assert client.get("/v1/documents/missing/similar").status_code == 404

    def test_similar_invalid_metric(self, trained_client):
        response = trained_client.get("/v1/documents/1/similar", params={"metric": "euclidean"})
        assert response.status_code == 422

    def test_keywords(self, trained_client):
        response = trained_client.get("/v1/documents/1/keywords", params={"limit": 3})

        assert response.status_code == 200
        keywords = response.json()["keywords"]
        assert len(keywords) == 3
        assert {"word", "weight"} <= set(keywords[0])

    def test_keywords_unknown_document(self, client):
        assert client.get("/v1/documents/missing/keywords").status_code == 404


class TestEvaluate:
    def test_evaluate(self, trained_client):
        response = trained_client.post("/v1/evaluate", json={
            "cases": [
                {"query": "Do cats sleep a lot?", "expected_document_id": "1"},
                {"query": "Do dogs enjoy walks?", "expected_document_id": "1"},
            ]
        })

        assert response.status_code == 200
        data = response.json()
        assert data["total_predictions"] == 2
        assert data["correct_predictions"] == 1
        assert data["accuracy"] == pytest.approx(0.5)
        assert data["details"][1]["predicted"] == "2"
