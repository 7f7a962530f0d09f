"""Integration tests for editor session, dashboard, and published-site routes."""

from __future__ import annotations

from unittest.mock import patch
from uuid import UUID, uuid4

import pytest

from backend.config import settings
from backend.tests.fakes import make_pipeline, make_provider
from engine.kernel.boxes import box_ids
from engine.kernel.types import Document

pytestmark = pytest.mark.asyncio(loop_scope="session")


async def _open(client) -> dict:
    res = await client.post("/api/sessions", json={})
    assert res.status_code == 201
    return res.json()


# ── editor session routes ───────────────────────────────────────────────────


class TestSessionRoutes:
    """Tests for /api/sessions endpoints."""

    async def test_open_unauthenticated(self, async_client):
        """POST /api/sessions without session cookie → 401."""
        res = await async_client.post("/api/sessions", json={})
        assert res.status_code == 401

    async def test_open_new_site(self, async_client, override_app):
        """POST /api/sessions → 201 with the starter page saved as version 1."""
        data = await _open(async_client)

        assert data["site_id"] is not None
        assert data["subdomain"].startswith("site-")
        assert data["title"] == "Untitled Project"
        assert data["save_state"] == "saved"
        assert data["edit_mode"] is False
        assert data["box_count"] == 4
        assert len(data["document_hash"]) == 16
        assert data["messages"][0]["role"] == "assistant"

    async def test_open_rejects_unknown_fields(self, async_client, override_app):
        """POST /api/sessions with extra fields → 422."""
        res = await async_client.post("/api/sessions", json={"site_id": None, "theme": "dark"})
        assert res.status_code == 422

    async def test_open_unknown_site(self, async_client, override_app):
        """POST /api/sessions for a site that does not exist → 404."""
        res = await async_client.post("/api/sessions", json={"site_id": str(uuid4())})
        assert res.status_code == 404

    async def test_open_when_database_down(self, async_client, override_app, site_repo):
        """POST /api/sessions while the database is down → 503."""
        site_repo.fail = True
        res = await async_client.post("/api/sessions", json={"site_id": str(uuid4())})
        assert res.status_code == 503

    async def test_get_session(self, async_client, override_app):
        """GET /api/sessions/{id} → 200; unknown id → 404."""
        data = await _open(async_client)

        res = await async_client.get(f"/api/sessions/{data['id']}")
        assert res.status_code == 200
        assert res.json()["id"] == data["id"]

        res = await async_client.get(f"/api/sessions/{uuid4()}")
        assert res.status_code == 404

    async def test_send_instruction(self, async_client, override_app, site_repo):
        """POST /api/sessions/{id}/messages → 200 with the new page saved."""
        data = await _open(async_client)

        res = await async_client.post(f"/api/sessions/{data['id']}/messages", json={"message": "A bakery site"})

        assert res.status_code == 200
        turn = res.json()
        assert turn["ok"] is True
        assert turn["stage"] == "done"
        assert turn["error"] is None
        assert turn["save_state"] == "saved"
        assert turn["box_count"] == 4
        assert turn["document_hash"] != data["document_hash"]
        assert turn["response_text"].startswith("I've updated the design!")
        site_id = turn["site_id"]
        assert len(site_repo.versions[UUID(site_id)]) == 2

    async def test_send_instruction_failure_is_not_http_error(self, async_client, test_user, override_app, store):
        """A failed generation → 200 with ok=false and the page unchanged."""
        store.pipeline = make_pipeline(make_provider(page=""))
        data = await _open(async_client)

        res = await async_client.post(f"/api/sessions/{data['id']}/messages", json={"message": "A bakery site"})

        assert res.status_code == 200
        turn = res.json()
        assert turn["ok"] is False
        assert turn["stage"] == "error"
        assert turn["error"] == "capability"
        assert turn["document_hash"] == data["document_hash"]
        assert turn["response_text"].startswith("Sorry, I hit a snag")

    async def test_send_instruction_empty(self, async_client, override_app):
        """POST /api/sessions/{id}/messages with an empty message → 422."""
        data = await _open(async_client)
        res = await async_client.post(f"/api/sessions/{data['id']}/messages", json={"message": ""})
        assert res.status_code == 422

    async def test_send_instruction_while_busy(self, async_client, test_user, override_app, store):
        """POST /api/sessions/{id}/messages while a turn runs → 409."""
        data = await _open(async_client)
        store.get(UUID(data["id"]), test_user.id).busy = True

        res = await async_client.post(f"/api/sessions/{data['id']}/messages", json={"message": "Hi"})
        assert res.status_code == 409

    async def test_send_instruction_without_api_key(self, async_client, override_app):
        """POST /api/sessions/{id}/messages without ANTHROPIC_API_KEY → 503."""
        data = await _open(async_client)
        with patch.object(settings, "ANTHROPIC_API_KEY", ""):
            res = await async_client.post(f"/api/sessions/{data['id']}/messages", json={"message": "Hi"})

        assert res.status_code == 503
        assert "ANTHROPIC_API_KEY" in res.json()["detail"]

    async def test_send_instruction_rate_limited(self, async_client, override_app):
        """Too many instructions in a minute → 429."""
        data = await _open(async_client)
        with patch("backend.routes.sessions.turn_rate_limiter.check_rate_limit", return_value=False):
            res = await async_client.post(f"/api/sessions/{data['id']}/messages", json={"message": "Hi"})
        assert res.status_code == 429

    async def test_selection_requires_edit_mode(self, async_client, override_app):
        """POST /api/sessions/{id}/selection → accepted only in edit mode and for known boxes."""
        data = await _open(async_client)
        url = f"/api/sessions/{data['id']}/selection"
        envelope = {"type": "BOX_SELECTED", "id": 2}

        res = await async_client.post(url, json=envelope)
        assert res.json() == {"accepted": False, "selected_box_id": None}

        res = await async_client.put(f"/api/sessions/{data['id']}/edit-mode", json={"enabled": True})
        assert res.json()["edit_mode"] is True

        res = await async_client.post(url, json=envelope)
        assert res.json() == {"accepted": True, "selected_box_id": 2}

        res = await async_client.post(url, json={"type": "BOX_SELECTED", "id": 42})
        assert res.status_code == 200
        assert res.json() == {"accepted": False, "selected_box_id": 2}

        res = await async_client.post(url, json=["not", "an", "envelope"])
        assert res.status_code == 200
        assert res.json()["accepted"] is False

    async def test_commit_title(self, async_client, override_app, site_repo):
        """PATCH /api/sessions/{id}/title → title saved without a new version."""
        data = await _open(async_client)

        res = await async_client.patch(f"/api/sessions/{data['id']}/title", json={"title": "Rosie's Bakery"})

        assert res.status_code == 200
        assert res.json()["title"] == "Rosie's Bakery"
        assert res.json()["save_state"] == "saved"
        assert len(site_repo.versions[UUID(data["site_id"])]) == 1

    @pytest.mark.parametrize("title", ["", "   ", "\t\n"])
    async def test_commit_blank_title_rejected(self, async_client, override_app, title):
        """PATCH /api/sessions/{id}/title with a blank title → 422, title unchanged."""
        data = await _open(async_client)

        res = await async_client.patch(f"/api/sessions/{data['id']}/title", json={"title": title})

        assert res.status_code == 422
        res = await async_client.get(f"/api/sessions/{data['id']}")
        assert res.json()["title"] == data["title"]

    async def test_commit_title_is_trimmed(self, async_client, override_app):
        """PATCH /api/sessions/{id}/title → surrounding whitespace dropped."""
        data = await _open(async_client)

        res = await async_client.patch(f"/api/sessions/{data['id']}/title", json={"title": "  Rosie's Bakery  "})

        assert res.status_code == 200
        assert res.json()["title"] == "Rosie's Bakery"

    async def test_commit_title_failure_shows_error(self, async_client, override_app, site_repo):
        """A failed title save → 200 with save_state="error"."""
        data = await _open(async_client)
        site_repo.fail = True

        res = await async_client.patch(f"/api/sessions/{data['id']}/title", json={"title": "Rosie's Bakery"})

        assert res.status_code == 200
        assert res.json()["save_state"] == "error"

    async def test_preview_host_page(self, async_client, override_app):
        """GET /api/sessions/{id}/preview → host page with a sandboxed frame."""
        data = await _open(async_client)

        res = await async_client.get(f"/api/sessions/{data['id']}/preview")
        assert res.status_code == 200
        assert res.headers["content-type"].startswith("text/html")
        assert 'sandbox="allow-scripts"' in res.text
        assert "PREVIEW MODE" in res.text

        await async_client.put(f"/api/sessions/{data['id']}/edit-mode", json={"enabled": True})
        res = await async_client.get(f"/api/sessions/{data['id']}/preview")
        assert "EDIT MODE" in res.text
        assert f"/api/sessions/{data['id']}/selection" in res.text

    async def test_close_session(self, async_client, override_app):
        """DELETE /api/sessions/{id} → 204, then 404."""
        data = await _open(async_client)

        res = await async_client.delete(f"/api/sessions/{data['id']}")
        assert res.status_code == 204
        res = await async_client.delete(f"/api/sessions/{data['id']}")
        assert res.status_code == 404


# ── dashboard routes ────────────────────────────────────────────────────────


class TestSiteRoutes:
    """Tests for /api/sites endpoints."""

    async def test_list_sites_unauthenticated(self, async_client):
        """GET /api/sites without session → 401."""
        res = await async_client.get("/api/sites")
        assert res.status_code == 401

    async def test_list_get_and_delete(self, async_client, test_user, override_app, site_repo):
        """GET /api/sites lists with markup; DELETE removes the site and its versions."""
        created = await site_repo.create_with_version(test_user.id, "<p>hello</p>", title="Mine")
        await site_repo.create_with_version(uuid4(), "<p>theirs</p>", title="Theirs")

        with patch("backend.routes.sites.site_repo", site_repo):
            res = await async_client.get("/api/sites")
            assert res.status_code == 200
            sites = res.json()
            assert [s["title"] for s in sites] == ["Mine"]
            assert sites[0]["html_content"] == "<p>hello</p>"

            res = await async_client.get(f"/api/sites/{created.site.id}")
            assert res.status_code == 200

            res = await async_client.delete(f"/api/sites/{created.site.id}")
            assert res.status_code == 204
            assert created.site.id not in site_repo.versions

            res = await async_client.delete(f"/api/sites/{created.site.id}")
            assert res.status_code == 404

    async def test_publish_is_idempotent(self, async_client, test_user, override_app, site_repo):
        """PUT /api/sites/{id}/status twice → same result."""
        created = await site_repo.create_with_version(test_user.id, "<p>hello</p>")

        with patch("backend.routes.sites.site_repo", site_repo):
            for _ in range(2):
                res = await async_client.put(f"/api/sites/{created.site.id}/status", json={"is_published": True})
                assert res.status_code == 200
                assert res.json()["is_published"] is True
                assert res.json()["published_url"].endswith(f"/s/{created.site.subdomain}")

            res = await async_client.put(f"/api/sites/{uuid4()}/status", json={"is_published": True})
            assert res.status_code == 404

    async def test_versions(self, async_client, test_user, override_app, site_repo):
        """GET /api/sites/{id}/versions → newest first; a single version includes markup."""
        created = await site_repo.create_with_version(test_user.id, "<p>one</p>")
        await site_repo.append_version(test_user.id, created.site.id, "<p>two</p>")

        with patch("backend.routes.sites.site_repo", site_repo):
            res = await async_client.get(f"/api/sites/{created.site.id}/versions")
            assert [v["version_number"] for v in res.json()] == [2, 1]
            assert "html_content" not in res.json()[0]

            res = await async_client.get(f"/api/sites/{created.site.id}/versions/1")
            assert res.json()["html_content"] == "<p>one</p>"

            res = await async_client.get(f"/api/sites/{created.site.id}/versions/9")
            assert res.status_code == 404

    async def test_connect_domain(self, async_client, test_user, override_app, site_repo):
        """POST /api/domains/connect → pending binding; bad domain → 422."""
        created = await site_repo.create_with_version(test_user.id, "<p>hello</p>")

        with patch("backend.routes.sites.site_repo", site_repo):
            res = await async_client.post(
                "/api/domains/connect",
                json={"site_id": str(created.site.id), "domain": "Rosies-Bakery.com"},
            )
            assert res.status_code == 200
            assert res.json() == {"domain": "rosies-bakery.com", "status": "pending"}

            res = await async_client.post(
                "/api/domains/connect",
                json={"site_id": str(created.site.id), "domain": "not a domain"},
            )
            assert res.status_code == 422


# ── published sites ─────────────────────────────────────────────────────────


class TestPublishedRoutes:
    async def test_serves_only_published(self, async_client, test_user, site_repo):
        """GET /s/{subdomain} → current markup when published, 404 otherwise."""
        html = "<!DOCTYPE html>\n<html><body><h1>Live</h1></body></html>"
        created = await site_repo.create_with_version(test_user.id, html)
        subdomain = created.site.subdomain

        with patch("backend.routes.published.site_repo", site_repo):
            res = await async_client.get(f"/s/{subdomain}")
            assert res.status_code == 404

            await site_repo.set_published(test_user.id, created.site.id, True)
            res = await async_client.get(f"/s/{subdomain}")
            assert res.status_code == 200
            assert "<h1>Live</h1>" in res.text

    async def test_published_page_after_a_turn(self, async_client, test_user, override_app, site_repo):
        """A published site serves the latest saved version."""
        data = await _open(async_client)
        await async_client.post(f"/api/sessions/{data['id']}/messages", json={"message": "A bakery site"})
        await site_repo.set_published(test_user.id, UUID(data["site_id"]), True)

        with patch("backend.routes.published.site_repo", site_repo):
            res = await async_client.get(f"/s/{data['subdomain']}")

        assert res.status_code == 200
        assert "Rosie's Bakery" in res.text
        assert box_ids(Document(html=res.text)) == [1, 2, 3, 4]


# ── health ──────────────────────────────────────────────────────────────────


async def test_health_without_database(async_client):
    """GET /health with no pool → 503."""
    with patch("backend.main.db.ping", return_value=False):
        res = await async_client.get("/health")
    assert res.status_code == 503
