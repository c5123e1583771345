"""
Tests for the Recommendation Endpoints

Tests the HTTP surface:
- GET /api/v1/recommendations - Personalized recommendations (auth required)
- GET /api/v1/recommendations/similar/{book_id}
- GET /api/v1/recommendations/trending
- GET /api/v1/recommendations/genre/{genre_id}
- GET /api/v1/recommendations/new-releases
- POST /api/v1/recommendations/analyze-review
- POST /api/v1/recommendations/generate-description

Checks the {success, data, count} envelope, camelCase field names, the
error envelope and the AI fallbacks.
"""

from datetime import UTC, datetime

from fastapi import status
from fastapi.testclient import TestClient

from app.main import app
from tests.conftest import days_ago, get_auth_header

API = "/api/v1/recommendations"


class TestPersonalizedRecommendations:
    """Tests for GET /recommendations."""

    def test_requires_authentication(self, client: TestClient):
        response = client.get(API)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"success": False, "message": "Not authenticated"}

    def test_rejects_invalid_token(self, client: TestClient):
        response = client.get(API, headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["success"] is False

    def test_rejects_inactive_user(self, client: TestClient, make_user):
        user = make_user(is_active=False)

        response = client.get(API, headers=get_auth_header(user))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_falls_back_to_trending_without_ai(
        self, client: TestClient, sample_user, make_user, make_book, make_review
    ):
        hot = make_book(title="Hot Book")
        make_review(make_user(), hot, 5)
        make_review(make_user(), hot, 4)

        response = client.get(API, headers=get_auth_header(sample_user))

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["success"] is True
        assert body["count"] == 1
        item = body["data"][0]
        assert item["id"] == hot.id
        assert item["reason"] == "Trending based on recent reviews"
        assert item["averageRating"] == 4.5
        assert item["totalReviews"] == 2
        assert "trendingScore" in item

    def test_blends_ai_and_collaborative(
        self, client: TestClient, fake_gemini, sample_user, make_user, make_book, make_review
    ):
        similar = make_user()
        shared = make_book()
        make_review(sample_user, shared, 5)
        make_review(similar, shared, 5)
        liked = make_book(title="Liked By Similar")
        make_review(similar, liked, 5)
        ai_book = make_book(title="Model Pick", author="Ann Leckie")
        fake_gemini.respond_with({
            "recommendations": [
                {"title": "Model Pick", "author": "Ann Leckie", "reason": "Matches you", "confidence": 0.9},
            ],
            "explanation": "Picked for you",
        })

        response = client.get(f"{API}?limit=4", headers=get_auth_header(sample_user))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert [item["id"] for item in data] == [ai_book.id, liked.id]
        assert data[0]["reason"] == "Matches you"
        assert data[1]["reason"] == "Recommended by users with similar taste"
        assert shared.id not in [item["id"] for item in data]


class TestSimilarBooks:
    """Tests for GET /recommendations/similar/{book_id}."""

    def test_content_fallback(self, client: TestClient, make_book, genres):
        source = make_book(genres=[genres["scifi"]])
        similar = make_book(
            title="Neuromancer",
            author="William Gibson",
            genres=[genres["scifi"]],
            cover_image_url="https://covers.example.com/neuromancer.jpg",
        )

        response = client.get(f"{API}/similar/{source.id}")

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["count"] == 1
        item = body["data"][0]
        assert item == {
            "id": similar.id,
            "title": "Neuromancer",
            "author": "William Gibson",
            "coverImageUrl": "https://covers.example.com/neuromancer.jpg",
            "averageRating": 0.0,
            "totalReviews": 0,
            "genres": ["Science Fiction"],
            "reason": "Similar genre and themes",
            "confidence": 0.6,
        }

    def test_default_limit_is_five(self, client: TestClient, make_book, genres):
        source = make_book(genres=[genres["mystery"]])
        for _ in range(7):
            make_book(genres=[genres["mystery"]])

        response = client.get(f"{API}/similar/{source.id}")

        assert response.json()["count"] == 5

    def test_unknown_book_is_empty(self, client: TestClient):
        response = client.get(f"{API}/similar/99999")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"success": True, "data": [], "count": 0}

    def test_invalid_book_id(self, client: TestClient):
        response = client.get(f"{API}/similar/abc")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["success"] is False


class TestTrending:
    """Tests for GET /recommendations/trending."""

    def test_platform_trending(self, client: TestClient, make_user, make_book, make_review):
        busy, quiet = make_book(), make_book()
        for _ in range(3):
            make_review(make_user(), busy, 4, created_at=days_ago(60))
        make_review(make_user(), busy, 4, created_at=days_ago(2))
        make_review(make_user(), quiet, 5, created_at=days_ago(1))

        response = client.get(f"{API}/trending")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert [item["id"] for item in data] == [busy.id, quiet.id]
        assert data[0]["reason"] == "Trending recently"
        assert data[0]["confidence"] == 0.8
        assert data[0]["trendingScore"] == (1 * 2 + 4) / 5

    def test_empty_when_no_recent_reviews(self, client: TestClient):
        response = client.get(f"{API}/trending")

        assert response.json() == {"success": True, "data": [], "count": 0}

    def test_limit_validation(self, client: TestClient):
        for bad in ("0", "51", "ten"):
            response = client.get(f"{API}/trending?limit={bad}")

            assert response.status_code == status.HTTP_400_BAD_REQUEST
            body = response.json()
            assert body["success"] is False
            assert "limit" in body["message"]


class TestGenreAndNewReleases:
    """Tests for GET /recommendations/genre/{id} and /new-releases."""

    def test_genre(self, client: TestClient, make_user, make_book, make_review, genres):
        book = make_book(genres=[genres["fantasy"]])
        make_review(make_user(), book, 3)

        response = client.get(f"{API}/genre/{genres['fantasy'].id}")

        data = response.json()["data"]
        assert [item["id"] for item in data] == [book.id]
        assert data[0]["reason"] == "Popular in this genre"
        assert data[0]["confidence"] == 0.7

    def test_unknown_genre_is_empty(self, client: TestClient):
        response = client.get(f"{API}/genre/4040")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["count"] == 0

    def test_new_releases(self, client: TestClient, make_book):
        year = datetime.now(UTC).year
        recent = make_book(published_year=year)
        make_book(published_year=year - 5)

        response = client.get(f"{API}/new-releases")

        data = response.json()["data"]
        assert [item["id"] for item in data] == [recent.id]
        assert data[0]["publishedYear"] == year
        assert data[0]["reason"] == "Recently published"
        assert "coverImageUrl" not in data[0]


class TestAnalyzeReview:
    """Tests for POST /recommendations/analyze-review."""

    def test_requires_authentication(self, client: TestClient):
        response = client.post(f"{API}/analyze-review", json={"reviewText": "Great"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_neutral_without_ai(self, client: TestClient, sample_user):
        response = client.post(
            f"{API}/analyze-review",
            json={"reviewText": "Solid middle-of-the-road thriller."},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {
            "success": True,
            "data": {
                "sentiment": "neutral",
                "themes": [],
                "quality": 0.5,
                "summary": "Analysis unavailable",
            },
        }

    def test_with_ai(self, client: TestClient, fake_gemini, sample_user):
        fake_gemini.respond_with({
            "sentiment": "negative",
            "themes": ["pacing"],
            "quality": 0.6,
            "summary": "Too slow",
        })

        response = client.post(
            f"{API}/analyze-review",
            json={"reviewText": "Dragged on forever."},
            headers=get_auth_header(sample_user),
        )

        assert response.json()["data"]["sentiment"] == "negative"
        assert response.json()["data"]["themes"] == ["pacing"]

    def test_empty_review_rejected(self, client: TestClient, sample_user):
        response = client.post(
            f"{API}/analyze-review",
            json={"reviewText": ""},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestGenerateDescription:
    """Tests for POST /recommendations/generate-description."""

    def test_keeps_existing_description_without_ai(self, client: TestClient, sample_user):
        response = client.post(
            f"{API}/generate-description",
            json={"title": "Dune", "author": "Frank Herbert", "existingDescription": "Spice."},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"success": True, "data": {"description": "Spice."}}

    def test_generated(self, client: TestClient, fake_gemini, sample_user):
        fake_gemini.respond_with("Desert planet, giant worms, politics.")

        response = client.post(
            f"{API}/generate-description",
            json={"title": "Dune", "author": "Frank Herbert"},
            headers=get_auth_header(sample_user),
        )

        assert response.json()["data"]["description"] == "Desert planet, giant worms, politics."


class TestErrorEnvelope:
    """Errors are always {success: false, message}."""

    def test_database_error_is_500(self, client: TestClient, db_session, monkeypatch):
        from sqlalchemy.exc import OperationalError

        def broken(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("server closed the connection"))

        monkeypatch.setattr(db_session, "execute", broken)

        response = client.get(f"{API}/new-releases")

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {
            "success": False,
            "message": "A database error occurred. Please try again later.",
        }

    def test_unknown_route_is_404(self, client: TestClient):
        response = client.get("/api/v1/nope")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"success": False, "message": "Not Found"}


class TestHealth:
    def test_health(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["status"] == "healthy"
        assert body["ai"]["enabled"] is False

    def test_root(self, client: TestClient):
        response = client.get("/")

        assert response.json()["message"] == f"Welcome to {app.title}"
