# -*- coding: utf-8 -*-
"""
Tests for the HTTP session endpoints.

Runs the FastAPI app in-process with the oracle dependency replaced by
the scripted oracle.
"""

import pytest
from unittest.mock import AsyncMock
from pathlib import Path
import sys

from fastapi.testclient import TestClient

from seo_content_assistant.adapters import MISSING_KEYWORD_MESSAGE
from seo_content_assistant.models import SuggestionBundle

# Add api directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "api"))

import index
from index import app, get_oracle


@pytest.fixture
def client(oracle):
    """TestClient bound to the scripted oracle, with a clean session registry."""
    index._sessions.clear()
    app.dependency_overrides[get_oracle] = lambda: oracle
    with TestClient(app) as test_client:
        yield test_client
    for controller in index._sessions.values():
        controller.close()
    index._sessions.clear()
    app.dependency_overrides.clear()


class TestHealth:

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestSessionEndpoints:
    """Tests for the editing-session endpoints."""

    def test_new_session_is_idle(self, client):
        response = client.get("/api/sessions/post-1")

        assert response.status_code == 200
        body = response.json()
        assert body["state"] == "idle"
        assert body["content_html"] == "<p></p>"
        assert body["panel"]["status_label"] == "Not benchmarked"

    def test_document_update(self, client):
        response = client.put("/api/sessions/post-1/document", json={
            "primary_keyword": "content marketing",
            "secondary_keywords": ["blog seo", "Blog SEO"],
        })

        body = response.json()
        assert body["primary_keyword"] == "content marketing"
        assert body["secondary_keywords"] == ["blog seo"]
        assert body["content_html"] == "<p></p>"

    def test_analysis_apply_and_undo(self, client, oracle, make_score):
        """Test the full edit, analyze, fix, undo cycle over HTTP."""
        oracle.scores.append(make_score(45, missing_terms=["funnel"]))
        oracle.suggestions.append(SuggestionBundle(headings=("Why it works",)))
        client.put("/api/sessions/post-1/document", json={
            "content_html": "<p>Draft</p>",
            "primary_keyword": "content marketing",
        })

        analysis = client.post("/api/sessions/post-1/analysis", json={"location": "Canada"}).json()
        assert analysis["success"] is True
        assert analysis["session"]["state"] == "scored"
        assert analysis["session"]["total"] == 45
        assert oracle.analysis_calls[0]["location"] == "Canada"
        assert oracle.score_calls[0]["blog_post_id"] == "post-1"

        fixes = client.post("/api/sessions/post-1/fixes").json()
        assert fixes["success"] is True
        assert fixes["message"] == "AI fixes applied"
        assert fixes["session"]["content_html"].startswith("<p>Draft</p>\n")
        assert fixes["session"]["can_undo"] is True
        assert oracle.suggest_calls[0]["missing_terms"] == ["funnel"]

        undo = client.post("/api/sessions/post-1/undo").json()
        assert undo["success"] is True
        assert undo["session"]["content_html"] == "<p>Draft</p>"
        assert undo["session"]["can_undo"] is False

    def test_failed_command_returns_error_message(self, client, oracle):
        response = client.post("/api/sessions/post-1/analysis")

        body = response.json()
        assert response.status_code == 200
        assert body["success"] is False
        assert body["message"] == MISSING_KEYWORD_MESSAGE
        assert body["session"]["last_error"] == MISSING_KEYWORD_MESSAGE
        assert oracle.analysis_calls == []

    def test_sessions_are_scoped_by_site(self, client):
        client.put(
            "/api/sessions/post-1/document",
            json={"meta_title": "Site A"},
            headers={"X-Site-Id": "a"},
        )

        other = client.get("/api/sessions/post-1", headers={"X-Site-Id": "b"}).json()
        same = client.get("/api/sessions/post-1", headers={"X-Site-Id": "a"}).json()

        assert other["meta_title"] == ""
        assert same["meta_title"] == "Site A"

    def test_close_session(self, client):
        client.get("/api/sessions/post-1")

        assert client.delete("/api/sessions/post-1").status_code == 200
        assert client.delete("/api/sessions/post-1").status_code == 404


class TestShutdown:

    def test_shutdown_closes_sessions_and_clients(self, oracle):
        """Test leaving the app closes sessions and every cached oracle client."""
        oracle_client = AsyncMock()
        index._sessions.clear()
        index._oracles.clear()
        app.dependency_overrides[get_oracle] = lambda: oracle
        try:
            with TestClient(app) as client:
                client.get("/api/sessions/post-1")
                index._oracles["site-1"] = oracle_client
                controller = index._sessions[(None, "post-1")]
        finally:
            app.dependency_overrides.clear()

        oracle_client.aclose.assert_awaited_once()
        assert index._sessions == {}
        assert index._oracles == {}
        assert controller.session is None
