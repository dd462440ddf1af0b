"""Unit tests for the /status endpoint."""

import os
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from app.main import app

client = TestClient(app)


class TestStatusEndpoint:
    """Build information reported by /status."""

    def test_status_endpoint_basic(self):
        response = client.get("/status")

        assert response.status_code == 200
        data = response.json()
        assert set(data) == {"status", "build", "sha", "env"}
        assert data["status"] == "ok"

    @pytest.mark.parametrize(
        "env,expected",
        [
            (
                {"BUILD_NUMBER": "123", "GIT_SHA": "abc123def456", "ENVIRONMENT": "production"},
                {"build": "123", "sha": "abc123def456", "env": "production"},
            ),
            (
                {"BUILD_NUMBER": "456", "GITHUB_SHA": "github123sha456", "ENV": "staging"},
                {"build": "456", "sha": "github123sha456", "env": "staging"},
            ),
            (
                {"BUILD_NUMBER": "789", "GIT_SHA": "priority_sha", "GITHUB_SHA": "fallback_sha", "ENVIRONMENT": "test", "ENV": "other"},
                {"build": "789", "sha": "priority_sha", "env": "test"},
            ),
        ],
    )
    def test_ci_environment_variables(self, env, expected):
        """GIT_SHA beats GITHUB_SHA and ENVIRONMENT beats ENV."""
        with patch.dict(os.environ, env, clear=True):
            data = client.get("/status").json()

        assert {k: data[k] for k in expected} == expected

    def test_local_development_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            data = client.get("/status").json()

        assert data["build"] == "local-dev"
        assert data["env"] == "development"
        assert data["sha"] == "local-dev" or len(data["sha"]) >= 8
