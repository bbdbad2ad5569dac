"""Test the /api/ai routes end to end through the TestClient."""

from unittest.mock import MagicMock, patch

import pytest

from app.auth import AUTH_COOKIE_NAME


class TestAuthentication:
    """Every AI route requires a caller."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("get", "/api/ai/models"),
            ("post", "/api/ai/generate"),
            ("post", "/api/ai/refactor"),
            ("post", "/api/ai/architecture"),
            ("post", "/api/ai/auto-fix"),
            ("post", "/api/ai/feedback"),
            ("post", "/api/ai/search"),
            ("get", "/api/ai/learning-stats"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        if method == "get":
            response = client.get(path)
        else:
            response = client.post(path, json={})
        assert response.status_code == 401

    def test_invalid_token(self, client):
        response = client.get(
            "/api/ai/models", headers={"Authorization": "Bearer not-a-real-token"}
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid or expired token"

    def test_cookie_auth(self, client, issue_token):
        token = issue_token("usr_pro")
        client.cookies.set(AUTH_COOKIE_NAME, token)
        response = client.get("/api/ai/models")
        assert response.status_code == 200

    def test_unknown_user(self, client, make_auth_headers):
        response = client.get("/api/ai/models", headers=make_auth_headers("usr_ghost"))
        assert response.status_code == 404


class TestModels:
    def test_lists_whole_catalog_accessible_first(self, client, make_auth_headers):
        response = client.get("/api/ai/models", headers=make_auth_headers("usr_basic"))
        assert response.status_code == 200

        data = response.json()
        assert data["subscriptionLevel"] == 1
        assert len(data["models"]) == 12
        accessible = [m["id"] for m in data["models"] if m["isAccessible"]]
        assert accessible == ["codet5", "codeparrot"]
        assert data["models"][0]["type"] == "code"


class TestGenerate:
    def test_learned_context(self, client, auth_headers, bridge):
        response = client.post(
            "/api/ai/generate",
            json={"prompt": "react state management tips", "language": "javascript"},
            headers=auth_headers,
        )
        assert response.status_code == 200

        data = response.json()
        assert data["success"] is True
        assert data["model"] == "Salesforce CodeGen (16B)"
        assert data["usedLearning"] is True
        assert data["usedInternet"] is True
        assert "Redux Toolkit" in data["explanation"]
        assert bridge.store.find_exact("react") is not None

    def test_prompt_required(self, client, auth_headers):
        response = client.post("/api/ai/generate", json={}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {"detail": "Prompt is required"}

    def test_explicit_model_outside_tier(self, client, auth_headers):
        response = client.post(
            "/api/ai/generate",
            json={"prompt": "sort numbers", "modelId": "codellama"},
            headers=auth_headers,
        )
        assert response.status_code == 403

    def test_unknown_model(self, client, auth_headers):
        response = client.post(
            "/api/ai/generate",
            json={"prompt": "sort numbers", "modelId": "gpt-9000"},
            headers=auth_headers,
        )
        assert response.status_code == 404

    def test_generator_failure_is_500(self, client, auth_headers, bridge):
        with patch.object(
            bridge.router._generator, "generate_code", side_effect=RuntimeError("boom")
        ):
            response = client.post(
                "/api/ai/generate", json={"prompt": "sort numbers"}, headers=auth_headers
            )
        assert response.status_code == 500
        assert response.json() == {"detail": "Failed to generate"}


class TestRefactorAndArchitecture:
    def test_refactor(self, client, auth_headers):
        response = client.post(
            "/api/ai/refactor",
            json={"code": "function add(a, b) {\n  return a + b;\n}\n", "instructions": "naming"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["model"] == "Diff-CodeGen (350M)"
        assert data["refactoredCode"].startswith("// Refactored by")
        assert data["diff"]
        assert data["usedLearning"] is False

    def test_refactor_tier_without_model(self, client, make_auth_headers, bridge):
        before = len(bridge.store)
        response = client.post(
            "/api/ai/refactor",
            json={"code": "def f():\n    pass\n"},
            headers=make_auth_headers("usr_basic"),
        )
        assert response.status_code == 403
        assert response.json()["detail"] == (
            "No suitable AI model available for your subscription level"
        )
        assert len(bridge.store) == before

    def test_architecture(self, client, auth_headers):
        response = client.post(
            "/api/ai/architecture",
            json={"requirements": "a chat app", "stack": "Node.js"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["model"] == "GPT-J-6B"
        assert len(data["components"]) == 8
        assert data["usedInternet"] is True


class TestAutoFix:
    def test_console_and_empty_catch(self, client, auth_headers, bridge):
        code = 'function f() {\n  console.log("x");\n  try { g(); } catch (e) {}\n}\n'
        response = client.post(
            "/api/ai/auto-fix", json={"code": code, "language": "javascript"}, headers=auth_headers
        )
        assert response.status_code == 200

        data = response.json()
        assert data["model"] == "OmniDev AutoFix (32B)"
        assert data["detectedIssues"] == [
            "Debug console statements in production code",
            "Empty catch block",
        ]
        assert data["message"] == "Fixed 2 issues and suggested 0 performance improvements"
        assert "console.log" not in data["fixedCode"]
        for issue in data["detectedIssues"]:
            assert bridge.store.find_exact(issue).source.value == "system"

    def test_requires_debugging_model(self, client, make_auth_headers):
        response = client.post(
            "/api/ai/auto-fix",
            json={"code": "console.log(1);"},
            headers=make_auth_headers("usr_basic"),
        )
        assert response.status_code == 403

    def test_code_required(self, client, auth_headers):
        response = client.post("/api/ai/auto-fix", json={}, headers=auth_headers)
        assert response.status_code == 400


class TestFeedbackAndSearch:
    def test_feedback_creates_entry(self, client, auth_headers, bridge):
        response = client.post(
            "/api/ai/feedback",
            json={"pattern": "graphql caching", "solution": "Persisted queries", "rating": 5},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Feedback processed and knowledge updated",
            "databaseSize": 4,
        }
        entry = bridge.store.find_exact("graphql caching")
        assert entry.votes == 1
        assert entry.source.value == "user"

    def test_feedback_missing_fields(self, client, auth_headers):
        response = client.post(
            "/api/ai/feedback", json={"pattern": "x"}, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Pattern, solution and rating are required"

    def test_feedback_invalid_source(self, client, auth_headers):
        response = client.post(
            "/api/ai/feedback",
            json={"pattern": "x", "solution": "y", "rating": 5, "source": "rumour"},
            headers=auth_headers,
        )
        assert response.status_code == 422

    def test_search(self, client, auth_headers, bridge):
        response = client.post(
            "/api/ai/search", json={"query": "typescript"}, headers=auth_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["results"].startswith("TypeScript 5.4")
        assert bridge.store.find_exact("typescript").source.value == "internet"

    def test_search_query_required(self, client, auth_headers):
        response = client.post("/api/ai/search", json={"query": ""}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {"detail": "Query is required"}


class TestLearningStats:
    def test_requires_admin(self, client, auth_headers):
        response = client.get("/api/ai/learning-stats", headers=auth_headers)
        assert response.status_code == 403
        assert response.json()["detail"] == "Access denied"

    def test_admin_sees_stats(self, client, admin_headers):
        response = client.get("/api/ai/learning-stats", headers=admin_headers)
        assert response.status_code == 200

        data = response.json()
        assert data["totalEntries"] == 3
        assert data["bySource"] == {"user": 0, "system": 1, "community": 2, "internet": 0}
        assert data["highConfidenceEntries"] == 3
        assert data["topPatterns"][0]["pattern"] == "microservices communication"


class TestHealth:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["service"] == "omnidev-backend"

    def test_health_connected(self, client):
        with patch("app.database.get_supabase_client", return_value=MagicMock()):
            response = client.get("/health")
        assert response.json() == {"status": "healthy", "database": "connected"}

    def test_health_degraded(self, client):
        with patch("app.database.get_supabase_client", side_effect=RuntimeError("down")):
            response = client.get("/health")
        data = response.json()
        assert data["status"] == "degraded"
        assert data["database"].startswith("error:")
