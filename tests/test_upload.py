"""
Tests for proxygen.io.upload module.

Tests the Apigee management API client including:
- Organization connect check
- Bundle import (API proxies and shared flows)
- Deployment
- Error mapping (HTTP status, server messages, connection failures)
"""

from __future__ import annotations

import pytest
import requests
import requests_mock

from proxygen.exceptions import (
    RemoteConnectError,
    RemoteDeployError,
    RemoteImportError,
)
from proxygen.io.upload import ApigeeClient, make_session

pytestmark = pytest.mark.unit

BASE = "https://apigee.googleapis.com/v1/organizations/my-org"
BUNDLE = b"PK\x03\x04fake-bundle"


@pytest.fixture
def client() -> ApigeeClient:
    return ApigeeClient("my-org", "tok")


def test_make_session_sets_bearer_token() -> None:
    """Test that the session authenticates with the token."""
    s = make_session("abc")
    assert s.headers["Authorization"] == "Bearer abc"
    assert s.headers["User-Agent"].startswith("proxygen/")


class TestConnect:
    """Tests for ApigeeClient.connect."""

    def test_connect_success(self, client) -> None:
        """Test that the organization is fetched with the token."""
        with requests_mock.Mocker() as m:
            m.get(BASE, json={"name": "my-org"})
            data = client.connect()

        assert data == {"name": "my-org"}
        assert m.last_request.headers["Authorization"] == "Bearer tok"

    def test_connect_unauthorized(self, client) -> None:
        """Test that a 401 raises RemoteConnectError with the server message."""
        with requests_mock.Mocker() as m:
            m.get(
                BASE,
                status_code=401,
                json={"error": {"code": 401, "message": "Invalid credentials"}},
            )
            with pytest.raises(RemoteConnectError, match="Invalid credentials") as excinfo:
                client.connect()

        assert excinfo.value.status_code == 401

    def test_connect_network_failure(self, client) -> None:
        """Test that connection errors are wrapped without a status code."""
        with requests_mock.Mocker() as m:
            m.get(BASE, exc=requests.exceptions.ConnectionError("refused"))
            with pytest.raises(RemoteConnectError, match="refused") as excinfo:
                client.connect()

        assert excinfo.value.status_code is None

    def test_custom_api_url(self) -> None:
        """Test that a trailing slash on the base URL is tolerated."""
        c = ApigeeClient("o", "t", api_url="https://mgmt.example.com/")
        with requests_mock.Mocker() as m:
            m.get("https://mgmt.example.com/v1/organizations/o", json={})
            c.connect()

        assert m.call_count == 1


class TestImportBundle:
    """Tests for ApigeeClient.import_bundle."""

    def test_import_proxy(self, client) -> None:
        """Test importing an API proxy bundle."""
        with requests_mock.Mocker() as m:
            m.post(f"{BASE}/apis", json={"name": "orders", "revision": "3"})
            result = client.import_bundle("orders", BUNDLE)

        assert result.name == "orders"
        assert result.revision == 3
        assert result.asset_type == "apiproxy"
        assert m.last_request.qs == {"action": ["import"], "name": ["orders"]}
        assert BUNDLE in m.last_request.body

    def test_import_shared_flow(self, client) -> None:
        """Test that shared flows use the sharedflows collection."""
        with requests_mock.Mocker() as m:
            m.post(f"{BASE}/sharedflows", json={"name": "common", "revision": "1"})
            result = client.import_bundle("common", BUNDLE, "sharedflowbundle")

        assert result.revision == 1
        assert result.asset_type == "sharedflowbundle"

    def test_import_rejected(self, client) -> None:
        """Test that a 400 raises RemoteImportError."""
        with requests_mock.Mocker() as m:
            m.post(
                f"{BASE}/apis",
                status_code=400,
                json={"error": {"message": "bundle contains errors"}},
            )
            with pytest.raises(RemoteImportError, match="400 bundle contains errors"):
                client.import_bundle("orders", BUNDLE)

    def test_import_without_revision(self, client) -> None:
        """Test that a response without a revision is an import error."""
        with requests_mock.Mocker() as m:
            m.post(f"{BASE}/apis", json={"name": "orders"})
            with pytest.raises(RemoteImportError, match="no revision"):
                client.import_bundle("orders", BUNDLE)

    def test_plain_text_error_body(self, client) -> None:
        """Test that non-JSON error bodies are reported verbatim."""
        with requests_mock.Mocker() as m:
            m.post(f"{BASE}/apis", status_code=502, text="Bad Gateway")
            with pytest.raises(RemoteImportError, match="502 Bad Gateway"):
                client.import_bundle("orders", BUNDLE)


class TestDeploy:
    """Tests for ApigeeClient.deploy."""

    def test_deploy_success(self, client) -> None:
        """Test deploying a revision with a service account."""
        url = f"{BASE}/environments/test/apis/orders/revisions/3/deployments"
        with requests_mock.Mocker() as m:
            m.post(url, json={"environment": "test", "revision": "3"})
            result = client.deploy(
                "orders", 3, "test", service_account="sa@p.iam.gserviceaccount.com"
            )

        assert result.environment == "test"
        assert result.revision == 3
        assert result.status == "success"
        assert "override=true" in m.last_request.url
        assert "serviceAccount=" in m.last_request.url

    def test_deploy_quotes_path_segments(self, client) -> None:
        """Test that environment and proxy names cannot alter the path."""
        with requests_mock.Mocker() as m:
            m.post(requests_mock.ANY, json={})
            client.deploy("my proxy", 3, "../other")

        url = m.last_request.url
        assert "/environments/..%2Fother/apis/my%20proxy/revisions/3/" in url

    def test_deploy_without_service_account(self, client) -> None:
        """Test that serviceAccount is omitted when not given."""
        url = f"{BASE}/environments/test/sharedflows/common/revisions/1/deployments"
        with requests_mock.Mocker() as m:
            m.post(url, json={})
            client.deploy("common", 1, "test", asset_type="sharedflowbundle")

        assert "serviceAccount" not in m.last_request.url

    def test_deploy_failure(self, client) -> None:
        """Test that a 500 raises RemoteDeployError with the status."""
        url = f"{BASE}/environments/prod/apis/orders/revisions/3/deployments"
        with requests_mock.Mocker() as m:
            m.post(url, status_code=500, json={"error": {"message": "internal"}})
            with pytest.raises(RemoteDeployError, match="prod") as excinfo:
                client.deploy("orders", 3, "prod")

        assert excinfo.value.status_code == 500
