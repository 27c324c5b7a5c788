"""Client for the Common Fate control-plane admin API."""

import os
from typing import Any, Dict, Optional

import requests

from ..config import Config
from .api_client import ApiResponse, JSONClient
from .error_handler import ApiError, CLIError

ACCESS_TOKEN_ENV_VAR = "CF_ACCESS_TOKEN"
LOGIN_HINT = "To log in to Common Fate, export a valid access token in CF_ACCESS_TOKEN"
DEFAULT_RUNTIME = "aws-lambda"


class ControlPlaneClient(JSONClient):
    """Admin API calls used by the installer and the management commands.

    Every method returns an ``ApiResponse`` so callers decide which status
    codes are expected. A 401 is always fatal and carries a login hint.
    """

    def __init__(
        self,
        api_url: str,
        token: str,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
    ):
        super().__init__(api_url, session=session, timeout=timeout)
        self.session.headers["Authorization"] = f"Bearer {token}"

    @classmethod
    def from_config(
        cls, cfg: Config, api_url: Optional[str] = None
    ) -> "ControlPlaneClient":
        """Build a client from the current config context.

        Raises:
            CLIError: if there is no usable context or no access token
        """
        if not api_url:
            api_url = cfg.current().api_url
        if not api_url:
            raise CLIError(
                f"No API URL is configured for context '{cfg.current_context}'",
                ["Set one with: cf config set api_url <url>"],
            )

        token = os.environ.get(ACCESS_TOKEN_ENV_VAR)
        if not token:
            raise CLIError("No Common Fate access token found.", [LOGIN_HINT])

        return cls(api_url, token)

    def request(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> ApiResponse:
        response = super().request(method, path, body=body, params=params)
        if response.status_code == 401:
            error = ApiError(
                f"Common Fate API returned an error (code 401): {response.error_message()}",
                401,
            )
            error.info.append(LOGIN_HINT)
            raise error
        return response

    # Handlers

    def list_handlers(self) -> ApiResponse:
        return self.request("GET", "/api/v1/admin/handlers")

    def get_handler(self, handler_id: str) -> ApiResponse:
        return self.request("GET", f"/api/v1/admin/handlers/{handler_id}")

    def register_handler(
        self,
        handler_id: str,
        aws_account: str,
        aws_region: str,
        runtime: str = DEFAULT_RUNTIME,
    ) -> ApiResponse:
        return self.request(
            "POST",
            "/api/v1/admin/handlers",
            body={
                "id": handler_id,
                "awsAccount": aws_account,
                "awsRegion": aws_region,
                "runtime": runtime,
            },
        )

    def delete_handler(self, handler_id: str) -> ApiResponse:
        return self.request("DELETE", f"/api/v1/admin/handlers/{handler_id}")

    # Target groups

    def list_target_groups(self) -> ApiResponse:
        return self.request("GET", "/api/v1/admin/target-groups")

    def create_target_group(self, target_group_id: str, target_schema: str) -> ApiResponse:
        return self.request(
            "POST",
            "/api/v1/admin/target-groups",
            body={"id": target_group_id, "targetSchema": target_schema},
        )

    def delete_target_group(self, target_group_id: str) -> ApiResponse:
        return self.request("DELETE", f"/api/v1/admin/target-groups/{target_group_id}")

    def create_target_group_link(
        self, target_group_id: str, body: Dict[str, Any]
    ) -> ApiResponse:
        return self.request(
            "POST", f"/api/v1/admin/target-groups/{target_group_id}/link", body=body
        )

    def remove_target_group_link(
        self, target_group_id: str, deployment_id: str
    ) -> ApiResponse:
        return self.request(
            "POST",
            f"/api/v1/admin/target-groups/{target_group_id}/unlink",
            params={"deploymentId": deployment_id},
        )

    def list_target_routes(self, target_group_id: str) -> ApiResponse:
        return self.request("GET", f"/api/v1/admin/target-groups/{target_group_id}/routes")

    # Access rules

    def list_access_rules(self) -> ApiResponse:
        return self.request("GET", "/api/v1/access-rules")
