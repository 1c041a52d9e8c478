# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Bundle import and deployment through the Apigee management API.

This module wraps the three management calls the pipeline needs:

- connect: verify the organization is reachable with the given token
- import_bundle: upload a zipped bundle as a new proxy/shared flow revision
- deploy: deploy a revision to one environment

Requests are made once. Failures raise immediately with the HTTP status and
the server's error message; nothing is retried.

Example:
    Import and deploy:
        ```python
        from proxygen.io.upload import ApigeeClient

        client = ApigeeClient("my-org", token)
        client.connect()
        imported = client.import_bundle("orders", bundle_zip)
        client.deploy(
            imported.name,
            imported.revision,
            "test",
            service_account="deployer@my-project.iam.gserviceaccount.com",
        )
        ```
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import requests

from proxygen import __version__
from proxygen.exceptions import (
    NetworkError,
    RemoteConnectError,
    RemoteDeployError,
    RemoteImportError,
)
from proxygen.results import DeployResult, ImportResult

DEFAULT_API_URL = "https://apigee.googleapis.com"

# Path segment for each bundle kind.
COLLECTIONS = {
    "apiproxy": "apis",
    "sharedflowbundle": "sharedflows",
}


def make_session(token: str) -> requests.Session:
    """Create a requests.Session that authenticates with a bearer token.

    No retry adapter is mounted: a failed call surfaces to the caller as-is.
    """
    s = requests.Session()
    s.headers.update(
        {
            "User-Agent": f"proxygen/{__version__}",
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }
    )
    return s


def _error_message(response: requests.Response) -> str:
    """Extract the server's error message from a failed response."""
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip() or response.reason or ""
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if payload.get("message"):
            return str(payload["message"])
    return str(payload)


class ApigeeClient:
    """Minimal client for the Apigee management API.

    Args:
        org: Apigee organization name.
        token: OAuth2 access token.
        api_url: Management API base URL.
        session: Session to use. Default is make_session(token).
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        org: str,
        token: str,
        *,
        api_url: str = DEFAULT_API_URL,
        session: requests.Session | None = None,
        timeout: int = 60,
    ) -> None:
        self.org = org
        self._api_url = api_url.rstrip("/")
        self._session = session or make_session(token)
        self._timeout = timeout

    @property
    def org_url(self) -> str:
        return f"{self._api_url}/v1/organizations/{quote(self.org, safe='')}"

    def _request(
        self,
        method: str,
        url: str,
        error_cls: type[NetworkError],
        action: str,
        **kwargs: Any,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            error_cls: On connection failure or any status >= 400.
        """
        from proxygen.logging import get_global_logger

        logger = get_global_logger()
        logger.debug("HTTP", f"{method} {url}")

        try:
            response = self._session.request(
                method, url, timeout=self._timeout, **kwargs
            )
        except requests.exceptions.RequestException as err:
            raise error_cls(f"{action} failed: {err}") from err

        logger.debug("HTTP", f"Status: {response.status_code}")

        if response.status_code >= 400:
            raise error_cls(
                f"{action} failed: {response.status_code} {_error_message(response)}",
                status_code=response.status_code,
            )
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as err:
            raise error_cls(f"{action} returned invalid JSON: {err}") from err

    def connect(self) -> dict[str, Any]:
        """Fetch the organization to verify access.

        Returns:
            The organization resource.

        Raises:
            RemoteConnectError: If the organization cannot be read.
        """
        from proxygen.logging import get_global_logger

        logger = get_global_logger()
        data = self._request(
            "GET", self.org_url, RemoteConnectError, f"Connecting to {self.org}"
        )
        logger.verbose("DEPLOY", f"Connected to organization: {self.org}")
        return data

    def import_bundle(
        self, name: str, bundle_zip: bytes, asset_type: str = "apiproxy"
    ) -> ImportResult:
        """Import a zipped bundle as a new revision.

        Args:
            name: Proxy or shared flow name.
            bundle_zip: Zip file contents (see archive_bytes()).
            asset_type: "apiproxy" or "sharedflowbundle".

        Returns:
            ImportResult with the created revision.

        Raises:
            RemoteImportError: If the import call fails.
        """
        url = f"{self.org_url}/{COLLECTIONS[asset_type]}"
        data = self._request(
            "POST",
            url,
            RemoteImportError,
            f"Importing {name}",
            params={"action": "import", "name": name},
            files={"file": (f"{name}.zip", bundle_zip, "application/zip")},
        )
        try:
            revision = int(data["revision"])
        except (KeyError, TypeError, ValueError) as err:
            raise RemoteImportError(
                f"Importing {name} returned no revision: {data!r}"
            ) from err
        return ImportResult(
            name=str(data.get("name") or name),
            revision=revision,
            asset_type=asset_type,
        )

    def deploy(
        self,
        name: str,
        revision: int,
        environment: str,
        *,
        asset_type: str = "apiproxy",
        service_account: str | None = None,
    ) -> DeployResult:
        """Deploy a revision to one environment, replacing what is deployed.

        Args:
            name: Proxy or shared flow name.
            revision: Revision to deploy.
            environment: Target environment.
            asset_type: "apiproxy" or "sharedflowbundle".
            service_account: Identity the deployed bundle runs as.

        Returns:
            DeployResult with status "success".

        Raises:
            RemoteDeployError: If the deploy call fails.
        """
        url = (
            f"{self.org_url}/environments/{quote(environment, safe='')}/"
            f"{COLLECTIONS[asset_type]}/{quote(name, safe='')}"
            f"/revisions/{revision}/deployments"
        )
        params = {"override": "true"}
        if service_account:
            params["serviceAccount"] = service_account

        self._request(
            "POST",
            url,
            RemoteDeployError,
            f"Deploying {name} r{revision} to {environment}",
            params=params,
        )
        return DeployResult(
            environment=environment,
            name=name,
            revision=revision,
            status="success",
        )
