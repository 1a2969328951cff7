"""Unit tests for the FastAPI application and its endpoints."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from nook_ordering_service.auth.session_tokens import SessionTokenManager
from nook_ordering_service.models.api_models import SessionClaims
from nook_ordering_service.models.db_models import AppUser
from nook_ordering_service.repositories.database import Database

TEST_PASSWORD = "correct-horse"


def _bearer(token_manager: SessionTokenManager, user_id: int, email: str = "jo@example.com") -> dict:
    claims = SessionClaims(user_id=user_id, email=email, email_verified=True)
    return {"Authorization": f"Bearer {token_manager.issue(claims)}"}


@pytest.mark.unit
class TestSystemEndpoints:
    """Test suite for banner, health and version check endpoints."""

    def test_root_banner(self, client: TestClient) -> None:
        """Test that the root path reports the service as running."""
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "The Nook API Server"
        assert data["status"] == "Running"
        assert data["version"] == "1.0.0"

    def test_health_check(self, client: TestClient) -> None:
        """Test health check endpoint returns 200 when the database answers."""
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "connected"
        assert data["service"] == "nook-api"

    def test_health_check_database_down(self, client: TestClient) -> None:
        """Test health check endpoint returns 500 when the database is unreachable."""
        client.app.state.database = MagicMock(spec=Database)
        client.app.state.database.ping.return_value = False

        response = client.get("/api/health")

        assert response.status_code == 500
        assert response.json()["database"] == "disconnected"

    def test_version_check_up_to_date(self, client: TestClient) -> None:
        """Test that a current app version is accepted."""
        response = client.post("/api/version-check", json={"app_version": "1.2.0"})

        assert response.status_code == 200
        assert response.json()["return_code"] == "SUCCESS"
        assert response.json()["message"] == "App version is up to date"

    def test_version_check_outdated(self, client: TestClient) -> None:
        """Test that an old app version is told to update with a 200."""
        response = client.post("/api/version-check", json={"app_version": "1.1.9"})

        assert response.status_code == 200
        data = response.json()
        assert data["return_code"] == "APP_UPDATE_REQUIRED"
        assert data["required_version"] == "1.2.0"
        assert data["current_version"] == "1.1.9"

    def test_version_check_missing_version(self, client: TestClient) -> None:
        """Test that a missing version is MISSING_APP_VERSION (400)."""
        response = client.post("/api/version-check", json={})

        assert response.status_code == 400
        assert response.json()["return_code"] == "MISSING_APP_VERSION"

    def test_store_info(self, client: TestClient, seeded_catalog: dict[str, int]) -> None:
        """Test that store information is returned as a key/value map."""
        response = client.get("/api/store-info")

        assert response.status_code == 200
        assert response.json()["store_info"]["phone"] == "01938 000000"

    def test_store_info_unknown_key(self, client: TestClient) -> None:
        """Test that an unknown key is INFO_NOT_FOUND (404)."""
        response = client.get("/api/store-info/parking")

        assert response.status_code == 404
        assert response.json() == {
            "return_code": "INFO_NOT_FOUND",
            "message": "Store information not found for key: parking",
        }


@pytest.mark.unit
class TestErrorHandling:
    """Test suite for application-wide error responses."""

    def test_unknown_route(self, client: TestClient) -> None:
        """Test that unknown routes get a JSON 404 naming the path and method."""
        response = client.post("/api/nothing-here")

        assert response.status_code == 404
        assert response.json() == {
            "error": "Route not found",
            "path": "/api/nothing-here",
            "method": "POST",
        }

    def test_wrong_method_uses_return_code_envelope(self, client: TestClient) -> None:
        """Test that a known path called with the wrong method is METHOD_NOT_ALLOWED (405)."""
        response = client.delete("/api/auth/login")

        assert response.status_code == 405
        assert response.json() == {
            "return_code": "METHOD_NOT_ALLOWED",
            "message": "Method Not Allowed",
        }
        assert response.headers["allow"] == "POST"

    def test_malformed_body_is_validation_error(self, client: TestClient) -> None:
        """Test that a body with wrongly typed fields is a 400 VALIDATION_ERROR envelope."""
        response = client.post(
            "/api/cart", json={"action": "add", "session_id": "guest-1", "quantity": "lots"}
        )

        assert response.status_code == 400
        data = response.json()
        assert data["return_code"] == "VALIDATION_ERROR"
        assert data["fields"] == ["quantity"]

    def test_unhandled_error_is_server_error_envelope(self, client: TestClient) -> None:
        """Test that unexpected exceptions become a generic 500 without details."""
        client.app.state.store_info_service.get_all = AsyncMock(
            side_effect=RuntimeError("connection reset")
        )

        response = client.get("/api/store-info")

        assert response.status_code == 500
        assert response.json() == {"return_code": "SERVER_ERROR", "message": "Internal server error"}


@pytest.mark.unit
class TestVersionGate:
    """Test suite for the app-version header requirement."""

    @pytest.fixture
    def gated_client(self, app_factory) -> TestClient:
        return TestClient(app_factory(enforce_app_version=True))

    def test_missing_header_rejected(self, gated_client: TestClient) -> None:
        """Test that API calls without the header are MISSING_APP_VERSION (400)."""
        response = gated_client.post("/api/categories", json={"action": "get_all"})

        assert response.status_code == 400
        assert response.json()["return_code"] == "MISSING_APP_VERSION"

    def test_outdated_version_rejected(self, gated_client: TestClient) -> None:
        """Test that an old app is APP_UPDATE_REQUIRED (426)."""
        response = gated_client.post(
            "/api/categories", json={"action": "get_all"}, headers={"app-version": "1.1.0"}
        )

        assert response.status_code == 426
        data = response.json()
        assert data["return_code"] == "APP_UPDATE_REQUIRED"
        assert data["required_version"] == "1.2.0"
        assert data["current_version"] == "1.1.0"

    def test_current_version_allowed(self, gated_client: TestClient) -> None:
        """Test that a current app passes the gate."""
        response = gated_client.post(
            "/api/categories", json={"action": "get_all"}, headers={"app-version": "1.2.0"}
        )

        assert response.status_code == 200

    @pytest.mark.parametrize(
        ("method", "path"),
        [
            ("GET", "/"),
            ("GET", "/api/health"),
            ("GET", "/api/auth/verify-email?token=verify_x"),
            ("GET", "/api/auth/reset-password?token=reset_x"),
        ],
    )
    def test_exempt_paths(self, gated_client: TestClient, method: str, path: str) -> None:
        """Test that probes and emailed links work without the header."""
        response = gated_client.request(method, path)

        assert response.status_code != 426
        assert "MISSING_APP_VERSION" not in response.text

    def test_password_reset_from_email_link_passes_gate(
        self, gated_client: TestClient, verified_user: AppUser, mock_email_service: MagicMock
    ) -> None:
        """Test that a browser can open the emailed reset form and submit it without the header."""
        gated_client.post(
            "/api/auth/forgot-password",
            json={"email": "jo@example.com"},
            headers={"app-version": "1.2.0"},
        )
        token = mock_email_service.send_password_reset_email.call_args.args[1]

        form = gated_client.get(f"/api/auth/reset-password?token={token}")
        assert form.status_code == 200

        reset = gated_client.post(
            "/api/auth/reset-password",
            json={"token": token, "new_password": "brand-new-pass"},
            headers={"Content-Type": "application/json"},
        )

        assert reset.status_code == 200
        assert reset.json()["return_code"] == "SUCCESS"

    def test_reset_submission_checks_token_without_header(self, gated_client: TestClient) -> None:
        """Test that an ungated reset submission is still refused for an unknown token."""
        response = gated_client.post(
            "/api/auth/reset-password", json={"token": "reset_x", "new_password": "long-enough"}
        )

        assert response.status_code == 400
        assert response.json()["return_code"] == "INVALID_TOKEN"


@pytest.mark.unit
class TestCatalogEndpoints:
    """Test suite for category and buffet item endpoints."""

    def test_get_all_categories(self, client: TestClient, seeded_catalog: dict[str, int]) -> None:
        """Test listing active categories."""
        response = client.post("/api/categories", json={"action": "get_all"})

        assert response.status_code == 200
        data = response.json()
        assert data["return_code"] == "SUCCESS"
        assert len(data["categories"]) == 3

    def test_get_by_id_includes_menu_items(
        self, client: TestClient, seeded_catalog: dict[str, int]
    ) -> None:
        """Test that a category lookup returns its menu items."""
        response = client.post(
            "/api/categories", json={"action": "get_by_id", "category_id": str(seeded_catalog["classic"])}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["category"]["name"] == "Classic Buffet"
        assert [item["id"] for item in data["menu_items"]] == [101, 102, 103]

    def test_get_by_id_invalid(self, client: TestClient) -> None:
        """Test that a non-numeric id is INVALID_CATEGORY_ID (400)."""
        response = client.post("/api/categories", json={"action": "get_by_id", "category_id": "abc"})

        assert response.status_code == 400
        assert response.json()["return_code"] == "INVALID_CATEGORY_ID"

    def test_get_by_id_not_found(self, client: TestClient) -> None:
        """Test that an unknown id is CATEGORY_NOT_FOUND (404)."""
        response = client.post("/api/categories", json={"action": "get_by_id", "category_id": 999})

        assert response.status_code == 404
        assert response.json()["return_code"] == "CATEGORY_NOT_FOUND"

    def test_missing_action(self, client: TestClient) -> None:
        """Test that a body without an action is MISSING_ACTION."""
        response = client.post("/api/categories", json={})

        assert response.status_code == 400
        assert response.json()["return_code"] == "MISSING_ACTION"

    def test_invalid_action(self, client: TestClient) -> None:
        """Test that an unknown action lists the supported ones."""
        response = client.post("/api/categories", json={"action": "delete"})

        assert response.status_code == 400
        assert response.json() == {
            "return_code": "INVALID_ACTION",
            "message": "Invalid action. Supported actions: get_all, get_by_id, get_by_type",
        }

    def test_buffet_items(self, client: TestClient) -> None:
        """Test that buffet items are returned for a tier."""
        response = client.post(
            "/api/buffet-items", json={"action": "get_by_buffet_type", "buffet_type": "Enhanced"}
        )

        assert response.status_code == 200
        assert len(response.json()["items"]) == 13

    def test_buffet_items_invalid_type(self, client: TestClient) -> None:
        """Test that an unknown tier is INVALID_BUFFET_TYPE."""
        response = client.post(
            "/api/buffet-items", json={"action": "get_by_buffet_type", "buffet_type": "Gold"}
        )

        assert response.status_code == 400
        assert response.json()["return_code"] == "INVALID_BUFFET_TYPE"


@pytest.mark.unit
class TestCartAndOrderEndpoints:
    """Test suite for cart and order endpoints."""

    def test_cart_add_and_get(
        self, client: TestClient, seeded_catalog: dict[str, int], classic_line: dict
    ) -> None:
        """Test that a guest can add to and read their cart."""
        add = client.post(
            "/api/cart",
            json={"action": "add", "session_id": "guest-1", "category_id": seeded_catalog["classic"], **classic_line},
        )
        get = client.post("/api/cart", json={"action": "get", "session_id": "guest-1"})

        assert add.status_code == 200
        assert add.json()["message"] == "Item added to cart successfully"
        assert get.json()["total_amount"] == 85.0
        assert get.json()["cart_items"][0]["department_label"] == "Accounts"

    def test_cart_without_owner(self, client: TestClient) -> None:
        """Test that a cart call without an owner is MISSING_USER_SESSION."""
        response = client.post("/api/cart", json={"action": "get"})

        assert response.status_code == 400
        assert response.json()["return_code"] == "MISSING_USER_SESSION"

    def test_cart_for_other_user_is_forbidden(
        self, client: TestClient, token_manager: SessionTokenManager, verified_user: AppUser
    ) -> None:
        """Test that a session token for one user cannot read another user's cart."""
        response = client.post(
            "/api/cart",
            json={"action": "get", "user_id": verified_user.id + 1},
            headers=_bearer(token_manager, verified_user.id),
        )

        assert response.status_code == 403
        assert response.json()["return_code"] == "USER_MISMATCH"

    def test_submit_and_history(
        self,
        client: TestClient,
        token_manager: SessionTokenManager,
        seeded_catalog: dict[str, int],
        verified_user: AppUser,
        classic_line: dict,
        submit_body: dict,
    ) -> None:
        """Test submitting a user's cart and reading it back from history."""
        headers = _bearer(token_manager, verified_user.id)
        client.post(
            "/api/cart",
            json={"action": "add", "user_id": verified_user.id, "category_id": seeded_catalog["classic"], **classic_line},
            headers=headers,
        )

        submit = client.post(
            "/api/orders/submit", json={"user_id": verified_user.id, **submit_body}, headers=headers
        )
        assert submit.status_code == 200
        submitted = submit.json()
        assert submitted["total_amount"] == 85.0
        assert submitted["estimated_time"] == "80 minutes"
        assert submitted["email_sent"] is True
        assert submitted["order_number"] == f"NK{submitted['order_id']:06d}"

        history = client.post("/api/orders/history", json={"user_id": verified_user.id}, headers=headers)
        assert history.status_code == 200
        assert [o["order_number"] for o in history.json()["orders"]] == [submitted["order_number"]]
        assert history.json()["limit"] == 20

        details = client.post(
            "/api/orders/details",
            json={"user_id": verified_user.id, "order_id": submitted["order_id"]},
            headers=headers,
        )
        assert details.status_code == 200
        assert details.json()["order"]["order_status"] == "pending"

    def test_submit_empty_cart(self, client: TestClient, submit_body: dict) -> None:
        """Test that submitting without a cart is CART_EMPTY (404)."""
        response = client.post("/api/orders/submit", json={"session_id": "guest-1", **submit_body})

        assert response.status_code == 404
        assert response.json()["return_code"] == "CART_EMPTY"

    def test_history_limit_out_of_range(self, client: TestClient) -> None:
        """Test that an oversized page is rejected."""
        response = client.post("/api/orders/history", json={"user_id": 1, "limit": 1000})

        assert response.status_code == 400
        assert response.json()["return_code"] == "VALIDATION_ERROR"


@pytest.mark.unit
class TestAuthEndpoints:
    """Test suite for the account endpoints."""

    def test_register_then_verify_then_login(
        self, client: TestClient, mock_email_service: MagicMock
    ) -> None:
        """Test the full account lifecycle through the HTTP interface."""
        register = client.post(
            "/api/auth/register",
            json={"email": "sam@example.com", "password": "long-enough", "display_name": "Sam"},
        )
        assert register.status_code == 201
        assert register.json()["email_sent"] is True
        assert "password_hash" not in register.json()["user"]

        blocked = client.post("/api/auth/login", json={"email": "sam@example.com", "password": "long-enough"})
        assert blocked.status_code == 401
        assert blocked.json()["return_code"] == "EMAIL_NOT_VERIFIED"
        assert blocked.json()["user_id"] == register.json()["user"]["id"]

        token = mock_email_service.send_verification_email.call_args.args[1]
        page = client.get(f"/api/auth/verify-email?token={token}")
        assert page.status_code == 200
        assert page.headers["content-type"].startswith("text/html")
        assert "Email Verified Successfully!" in page.text

        login = client.post("/api/auth/login", json={"email": "sam@example.com", "password": "long-enough"})
        assert login.status_code == 200
        assert login.json()["token"]

    def test_register_duplicate(self, client: TestClient, verified_user: AppUser) -> None:
        """Test that a second registration for an email is USER_EXISTS."""
        response = client.post(
            "/api/auth/register",
            json={"email": "jo@example.com", "password": "long-enough", "display_name": "Jo"},
        )

        assert response.status_code == 400
        assert response.json()["return_code"] == "USER_EXISTS"

    def test_verify_email_invalid_link(self, client: TestClient) -> None:
        """Test that a malformed verification link renders the invalid page."""
        response = client.get("/api/auth/verify-email?token=nonsense")

        assert response.status_code == 400
        assert "Invalid Verification Link" in response.text

    def test_verify_email_used_link(self, client: TestClient) -> None:
        """Test that an unknown verification token renders the expired page."""
        response = client.get("/api/auth/verify-email?token=verify_" + "0" * 64)

        assert response.status_code == 400
        assert "Verification Link Expired" in response.text

    def test_verify_email_failure_renders_error_page(self, client: TestClient) -> None:
        """Test that an unexpected failure still answers with HTML."""
        client.app.state.identity_service.verify_email = AsyncMock(side_effect=RuntimeError("db"))

        response = client.get("/api/auth/verify-email?token=verify_abc")

        assert response.status_code == 500
        assert "Verification Error" in response.text

    def test_password_reset_via_form(
        self, client: TestClient, verified_user: AppUser, mock_email_service: MagicMock
    ) -> None:
        """Test that the reset form is served for a live token and the JSON submit works."""
        forgot = client.post("/api/auth/forgot-password", json={"email": "jo@example.com"})
        unknown = client.post("/api/auth/forgot-password", json={"email": "nobody@example.com"})
        assert forgot.json() == unknown.json()

        token = mock_email_service.send_password_reset_email.call_args.args[1]
        form = client.get(f"/api/auth/reset-password?token={token}")
        assert form.status_code == 200
        assert f'value="{token}"' in form.text

        reset = client.post("/api/auth/reset-password", json={"token": token, "new_password": "brand-new-pass"})
        assert reset.status_code == 200
        assert reset.json()["return_code"] == "SUCCESS"

        login = client.post("/api/auth/login", json={"email": "jo@example.com", "password": "brand-new-pass"})
        assert login.status_code == 200

    def test_reset_form_expired_link(self, client: TestClient) -> None:
        """Test that an unknown reset token renders the expired page."""
        response = client.get("/api/auth/reset-password?token=reset_" + "0" * 64)

        assert response.status_code == 400
        assert "Reset Link Expired" in response.text

    def test_profile_requires_token(self, client: TestClient) -> None:
        """Test that the profile needs a bearer token."""
        response = client.get("/api/auth/profile")

        assert response.status_code == 401
        assert response.json()["return_code"] == "NO_TOKEN"

    def test_profile_rejects_bad_token(self, client: TestClient) -> None:
        """Test that an unverifiable token is INVALID_TOKEN."""
        response = client.get("/api/auth/profile", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401
        assert response.json()["return_code"] == "INVALID_TOKEN"

    def test_profile_read_and_update(
        self, client: TestClient, token_manager: SessionTokenManager, verified_user: AppUser
    ) -> None:
        """Test that a logged-in user can read and rename their profile."""
        headers = _bearer(token_manager, verified_user.id)

        update = client.put("/api/auth/profile", json={"display_name": "Joanna"}, headers=headers)
        profile = client.get("/api/auth/profile", headers=headers)

        assert update.status_code == 200
        assert profile.status_code == 200
        assert profile.json()["user"]["display_name"] == "Joanna"
