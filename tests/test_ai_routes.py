"""
Tests for the AI Endpoints

- POST /api/v1/ai/recommendations
- POST /api/v1/ai/recommendations/personalized
- GET /api/v1/ai/status
"""

from fastapi import status
from fastapi.testclient import TestClient

from tests.conftest import get_auth_header

API = "/api/v1/ai"


class TestQueryRecommendations:
    """Tests for POST /ai/recommendations."""

    def test_keyword_fallback(self, client: TestClient, make_book):
        make_book(title="Cooking for One", description="Simple recipes")
        whodunit = make_book(title="The Murder Club", description="A cozy murder mystery")

        response = client.post(f"{API}/recommendations", json={"query": "murder mystery", "limit": 1})

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert [item["id"] for item in data["recommendations"]] == [whodunit.id]
        assert data["query"] == "murder mystery"
        assert data["totalFound"] == 1
        assert "murder mystery" in data["explanation"]

    def test_default_limit_is_three(self, client: TestClient, make_book):
        for _ in range(5):
            make_book()

        response = client.post(f"{API}/recommendations", json={"query": "anything good"})

        assert len(response.json()["data"]["recommendations"]) == 3

    def test_ai_picks(self, client: TestClient, fake_gemini, make_book):
        pick = make_book(title="Circe", author="Madeline Miller")
        fake_gemini.respond_with({
            "recommendations": [
                {"title": "Circe", "author": "Madeline Miller", "reason": "Myth retold", "confidence": 0.9},
            ],
        })

        response = client.post(f"{API}/recommendations", json={"query": "greek myths", "limit": 1})

        item = response.json()["data"]["recommendations"][0]
        assert item["id"] == pick.id
        assert item["reason"] == "Myth retold"
        assert item["confidence"] == 0.9

    def test_query_required(self, client: TestClient):
        response = client.post(f"{API}/recommendations", json={"limit": 2})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["success"] is False


class TestPersonalized:
    """Tests for POST /ai/recommendations/personalized."""

    def test_requires_authentication(self, client: TestClient):
        response = client.post(f"{API}/recommendations/personalized", json={})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_preference_fill_and_profile(
        self, client: TestClient, sample_user, make_book, make_review, make_favorite, genres
    ):
        make_review(sample_user, make_book(genres=[genres["mystery"]]), 4)
        make_favorite(sample_user, make_book(genres=[genres["mystery"]]))
        candidate = make_book(title="Gone Girl", genres=[genres["mystery"]])

        response = client.post(
            f"{API}/recommendations/personalized",
            json={},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        ids = [item["id"] for item in data["recommendations"]]
        assert candidate.id in ids
        assert data["userProfile"] == {
            "totalReviews": 1,
            "totalFavorites": 1,
            "averageRatingGiven": 4.0,
            "preferredGenres": ["Mystery"],
            "preferredAuthors": ["Test Author"],
        }
        assert data["query"] == "Personalized recommendations"
        assert "profileInsights" in data


class TestAIStatus:
    def test_unconfigured(self, client: TestClient):
        response = client.get(f"{API}/status")

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["available"] is False
        assert body["success"] is True

    def test_configured(self, client: TestClient, fake_gemini):
        fake_gemini.respond_with()

        assert client.get(f"{API}/status").json()["available"] is True
