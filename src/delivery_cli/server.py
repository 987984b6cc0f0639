"""HTTP client for the Delivery server API."""

import logging
import ssl
from typing import Any, Optional

import httpx
import truststore

from .errors import ApiError

logger = logging.getLogger(__name__)

ssl_context = truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)

TIMEOUT = 30


class APIClient:
    """Wraps the enterprise-scoped endpoints used by `delivery init`.

    `base_url` is the enterprise root, e.g. `https://server/api/v0/e/ent`.
    Pass `client` to supply a preconfigured `httpx.Client` (tests use a
    mock transport).
    """

    def __init__(
        self,
        base_url: str,
        *,
        user: Optional[str] = None,
        token: Optional[str] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if user and token:
            headers["chef-delivery-user"] = user
            headers["chef-delivery-token"] = token
        self._client = client or httpx.Client(verify=ssl_context, timeout=TIMEOUT)
        self._headers = headers

    @classmethod
    def from_config(cls, config) -> "APIClient":
        return cls(config.api_base_url(), user=config.user, token=config.token)

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, json: Any = None) -> httpx.Response:
        url = f"{self.base_url}/{path}"
        logger.debug("%s %s", method, url, extra={"event": "api.request"})
        try:
            return self._client.request(method, url, json=json, headers=self._headers)
        except httpx.HTTPError as exc:
            raise ApiError(f"Unable to reach the Delivery server at {url}", detail=str(exc)) from exc

    def _exists(self, path: str) -> bool:
        response = self._request("GET", path)
        if response.status_code == 200:
            return True
        if response.status_code == 404:
            return False
        raise ApiError(
            f"Unexpected response from GET {path}",
            status_code=response.status_code,
            detail=response.text[:500],
        )

    def _create(self, path: str, payload: dict) -> Any:
        response = self._request("POST", path, json=payload)
        if response.status_code not in (200, 201):
            raise ApiError(
                f"Failed to create {path}",
                status_code=response.status_code,
                detail=response.text[:500],
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(f"Malformed response from POST {path}", detail=response.text[:400]) from exc

    def _get_list(self, path: str) -> list:
        response = self._request("GET", path)
        if response.status_code != 200:
            raise ApiError(
                f"Unexpected response from GET {path}",
                status_code=response.status_code,
                detail=response.text[:500],
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise ApiError(f"Malformed response from GET {path}", detail=response.text[:400]) from exc
        if not isinstance(data, list):
            raise ApiError(f"Expected a list from GET {path}", detail=response.text[:400])
        return data

    def project_exists(self, org: str, proj: str) -> bool:
        return self._exists(f"orgs/{org}/projects/{proj}")

    def create_delivery_project(self, org: str, proj: str) -> Any:
        return self._create(f"orgs/{org}/projects", {"name": proj})

    def pipeline_exists(self, org: str, proj: str, pipe: str) -> bool:
        return self._exists(f"orgs/{org}/projects/{proj}/pipelines/{pipe}")

    def create_pipeline(self, org: str, proj: str, pipe: str) -> Any:
        return self._create(f"orgs/{org}/projects/{proj}/pipelines", {"name": pipe, "base": pipe})

    def create_github_project(
        self, org: str, proj: str, repo_name: str, repo_org: str, pipe: str, verify_ssl: bool
    ) -> Any:
        payload = {
            "name": proj,
            "scm": {
                "type": "github",
                "project": repo_name,
                "organization": repo_org,
                "branch": pipe,
                "verify_ssl": verify_ssl,
            },
        }
        return self._create(f"orgs/{org}/github-projects", payload)

    def create_bitbucket_project(self, org: str, proj: str, repo_name: str, project_key: str, pipe: str) -> Any:
        payload = {
            "name": proj,
            "scm": {
                "type": "bitbucket",
                "repo_name": repo_name,
                "project_key": project_key,
                "pipeline_branch": pipe,
            },
        }
        return self._create(f"orgs/{org}/bitbucket-projects", payload)

    def get_github_server_config(self) -> list:
        return self._get_list("scm-providers/github/servers")

    def get_bitbucket_server_config(self) -> list:
        return self._get_list("bitbucket-servers")
