import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hitstats.core.config import Settings, get_settings
from hitstats.core.privacy import ANONYMOUS_IP
from hitstats.main import app
from hitstats.models.hit import URL_MAX_LENGTH, Hit

BROWSER = {"User-Agent": "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0"}


async def _beacon(client: AsyncClient, url: str, headers: dict | None = None, **payload):
    response = await client.post(
        "/api/v1/hits/", json={"url": url, **payload}, headers={**BROWSER, **(headers or {})}
    )
    assert response.status_code == 200
    return response.json()


class TestBeacon:
    """Tests for the tracking beacon."""

    @pytest.mark.asyncio
    async def test_records_hit_with_headers(self, client: AsyncClient, db_session: AsyncSession):
        data = await _beacon(
            client,
            "https://example.com/items/show/1?page=2",
            headers={
                "Referer": "https://search.example/?q=archive",
                "Accept-Language": "fr-FR,fr;q=0.9",
                "X-Real-IP": "198.51.100.20",
            },
            subject_kind="items",
            subject_id=1,
        )
        assert data["recorded"] is True
        assert data["hit_id"] is not None

        hit = (await db_session.execute(select(Hit))).scalar_one()
        assert hit.url == "/items/show/1"
        assert hit.query == "page=2"
        assert hit.referrer == "https://search.example/?q=archive"
        assert hit.accept_language == "fr-FR,fr;q=0.9"
        assert hit.user_agent == BROWSER["User-Agent"]
        assert (hit.subject_kind, hit.subject_id) == ("items", 1)
        # Default privacy setting
        assert hit.ip == ANONYMOUS_IP

    @pytest.mark.asyncio
    async def test_robot_is_not_recorded(self, client: AsyncClient):
        data = await _beacon(client, "/items", headers={"User-Agent": "Googlebot/2.1"})
        assert data == {"recorded": False, "hit_id": None}

    @pytest.mark.asyncio
    async def test_admin_page_is_not_recorded(self, client: AsyncClient):
        data = await _beacon(client, "/admin/items/edit/3")
        assert data["recorded"] is False

    @pytest.mark.asyncio
    async def test_foreign_url_is_not_recorded(self, client: AsyncClient):
        data = await _beacon(client, "javascript:alert(1)")
        assert data["recorded"] is False

    @pytest.mark.asyncio
    async def test_invalid_payload(self, client: AsyncClient):
        response = await client.post("/api/v1/hits/", json={"url": ""}, headers=BROWSER)
        assert response.status_code == 422

        response = await client.post(
            "/api/v1/hits/", json={"url": "/a", "subject_id": -1}, headers=BROWSER
        )
        assert response.status_code == 422

        response = await client.post(
            "/api/v1/hits/", json={"url": "/" + "x" * URL_MAX_LENGTH}, headers=BROWSER
        )
        assert response.status_code == 422


class TestDownloads:
    """Tests for the download hook."""

    @pytest.mark.asyncio
    async def test_records_download(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/downloads/original/2024/report.pdf",
            params={"media_id": 3, "user_id": 2},
            headers=BROWSER,
        )
        assert response.status_code == 200
        assert response.json()["recorded"] is True

        response = await client.get(
            "/api/v1/stats/total",
            params={"url": "/files/original/2024/report.pdf", "user_status": "identified"},
        )
        assert response.json()["value"] == 1

        response = await client.get(
            "/api/v1/stats/total",
            params={"subject_kind": "media", "subject_id": 3, "user_status": "all"},
        )
        assert response.json()["value"] == 1

    @pytest.mark.asyncio
    async def test_unknown_storage_is_rejected(self, client: AsyncClient):
        response = await client.post("/api/v1/downloads/square_thumbnails/a.jpg", headers=BROWSER)
        assert response.status_code == 422


class TestStats:
    """Tests for the read endpoints."""

    @pytest.mark.asyncio
    async def test_total_defaults_to_public_status(self, client: AsyncClient):
        await _beacon(client, "/about")
        await _beacon(client, "/about", user_id=5)

        response = await client.get("/api/v1/stats/total", params={"url": "/about"})
        assert response.status_code == 200
        assert response.json() == {"value": 1, "user_status": "anonymous"}

        response = await client.get(
            "/api/v1/stats/total", params={"url": "/about", "user_status": "hits"}
        )
        assert response.json() == {"value": 2, "user_status": "all"}

    @pytest.mark.asyncio
    async def test_display_defaults_come_from_settings(self, client: AsyncClient):
        app.dependency_overrides[get_settings] = lambda: Settings(
            PRIVACY="anonymous", INCLUDE_BOTS=False, DEFAULT_USER_STATUS="all", PER_PAGE=1
        )
        await _beacon(client, "/a")
        await _beacon(client, "/a", user_id=5)
        await _beacon(client, "/b")

        response = await client.get("/api/v1/stats/total", params={"url": "/a"})
        assert response.json() == {"value": 2, "user_status": "all"}
        response = await client.get("/api/v1/stats/page/most-viewed")
        assert [row["url"] for row in response.json()["data"]] == ["/a"]

    @pytest.mark.asyncio
    async def test_identity_is_required(self, client: AsyncClient):
        response = await client.get("/api/v1/stats/total")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_rollup(self, client: AsyncClient):
        response = await client.get("/api/v1/stats/rollup", params={"url": "/never"})
        assert response.status_code == 404

        await _beacon(client, "/items/show/9", subject_kind="items", subject_id=9)
        response = await client.get(
            "/api/v1/stats/rollup", params={"subject_kind": "items", "subject_id": 9}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["kind"] == "resource"
        assert data["url"] is None
        assert data["hits"] == 1

    @pytest.mark.asyncio
    async def test_position(self, client: AsyncClient):
        await _beacon(client, "/a")
        await _beacon(client, "/a")
        await _beacon(client, "/b")

        response = await client.get("/api/v1/stats/position", params={"url": "/b"})
        assert response.json()["value"] == 2
        response = await client.get("/api/v1/stats/position", params={"url": "/c"})
        assert response.json()["value"] == 0

    @pytest.mark.asyncio
    async def test_resource_position_within_subject_kind(self, client: AsyncClient):
        for _ in range(3):
            await _beacon(client, "/items/show/1", subject_kind="items", subject_id=1)
        for _ in range(2):
            await _beacon(client, "/collections/show/1", subject_kind="collections", subject_id=1)

        params = {"subject_kind": "collections", "subject_id": 1, "user_status": "all"}
        response = await client.get("/api/v1/stats/position", params=params)
        assert response.json()["value"] == 2
        response = await client.get(
            "/api/v1/stats/position", params={**params, "within_subject_kind": "true"}
        )
        assert response.json()["value"] == 1

    @pytest.mark.asyncio
    async def test_most_viewed(self, client: AsyncClient):
        await _beacon(client, "/items/show/1", subject_kind="items", subject_id=1)
        await _beacon(client, "/items/show/2", subject_kind="items", subject_id=2)
        await _beacon(client, "/items/show/2", subject_kind="items", subject_id=2)
        await _beacon(client, "/collections/show/1", subject_kind="collections", subject_id=1)

        response = await client.get("/api/v1/stats/page/most-viewed", params={"limit": 2})
        assert response.status_code == 200
        data = response.json()
        assert data["user_status"] == "anonymous"
        assert [row["url"] for row in data["data"]] == ["/items/show/2", "/items/show/1"]

        response = await client.get(
            "/api/v1/stats/resource/most-viewed", params={"subject_kind": "items"}
        )
        rows = response.json()["data"]
        assert [(row["subject_kind"], row["subject_id"], row["hits"]) for row in rows] == [
            ("items", 2, 2),
            ("items", 1, 1),
        ]

    @pytest.mark.asyncio
    async def test_last_viewed(self, client: AsyncClient):
        await _beacon(client, "/a")
        await _beacon(client, "/b")

        response = await client.get("/api/v1/stats/page/last-viewed")
        assert [row["url"] for row in response.json()["data"]] == ["/b", "/a"]

    @pytest.mark.asyncio
    async def test_unknown_kind(self, client: AsyncClient):
        response = await client.get("/api/v1/stats/video/most-viewed")
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_field_frequencies(self, client: AsyncClient):
        await _beacon(client, "/a", headers={"Referer": "https://search.example/"})
        await _beacon(client, "/b", headers={"Referer": "https://search.example/"})
        await _beacon(client, "/c", headers={"Referer": "https://blog.example/"})
        await _beacon(client, "/d")

        response = await client.get(
            "/api/v1/stats/fields/referrer", params={"user_status": "all"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["field"] == "referrer"
        assert data["data"] == [
            {"value": "https://search.example/", "hits": 2},
            {"value": "https://blog.example/", "hits": 1},
        ]
        assert data["distinct"] == 2
        assert data["total_hits"] == 4

        response = await client.get("/api/v1/stats/fields/ip")
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_summary(self, client: AsyncClient):
        await _beacon(client, "/items/show/1", subject_kind="items", subject_id=1)
        await _beacon(client, "/items/show/1", subject_kind="items", subject_id=1, user_id=3)
        await client.post("/api/v1/downloads/large/photo.jpg", headers=BROWSER)

        response = await client.get("/api/v1/stats/summary")
        assert response.status_code == 200
        data = response.json()
        assert data["hits"] == {"total": 3, "anonymous": 2, "identified": 1}
        assert data["by_kind"]["page"] == {"total": 2, "anonymous": 1, "identified": 1}
        assert data["by_kind"]["resource"] == {"total": 2, "anonymous": 1, "identified": 1}
        assert data["by_kind"]["download"] == {"total": 1, "anonymous": 1, "identified": 0}
        assert set(data["most_frequent"]) == {"referrer", "query", "user_agent", "accept_language"}
        assert data["periods"]["current"]["today"] == data["hits"]
        assert data["periods"]["rolling"]["last_24_hours"] == data["hits"]
        assert data["periods"]["history"]["last_year"] == {
            "total": 0,
            "anonymous": 0,
            "identified": 0,
        }
        assert set(data["periods"]["history"]) == {
            "last_year",
            "last_month",
            "last_week",
            "yesterday",
        }

    @pytest.mark.asyncio
    async def test_lists_within_period(self, client: AsyncClient):
        await _beacon(client, "/a", headers={"Referer": "https://search.example/"})

        past = {"user_status": "all", "until": "2000-01-01T00:00:00Z"}
        response = await client.get("/api/v1/stats/fields/referrer", params=past)
        data = response.json()
        assert data["data"] == []
        assert data["distinct"] == 0
        assert data["total_hits"] == 0
        response = await client.get("/api/v1/stats/page/most-viewed", params=past)
        assert response.json()["data"] == []

        recent = {"user_status": "all", "since": "2000-01-01T00:00:00Z"}
        response = await client.get("/api/v1/stats/fields/referrer", params=recent)
        assert response.json()["distinct"] == 1
        response = await client.get("/api/v1/stats/page/last-viewed", params=recent)
        assert [row["url"] for row in response.json()["data"]] == ["/a"]
