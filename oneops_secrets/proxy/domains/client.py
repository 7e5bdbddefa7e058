"""Secrets Proxy client.

One method per proxy endpoint. Every call is a single blocking round trip
returning a Result; application failures come back as data, only transport
failures raise (ProxyIOError).
"""
import logging
from collections import namedtuple
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

import httpx

from oneops_secrets import __version__
from .config_loader import SecretsProxyConfig
from .exceptions import ProxyIOError
from .models import (
    AuthUser,
    Client,
    Group,
    Secret,
    SecretContent,
    SecretReq,
    SecretVersion,
    TokenReq,
    TokenRes,
    list_of,
)
from .results import Result, map_response
from .transport import AUTH_HEADER, build_http_client

logger = logging.getLogger(__name__)

Endpoint = namedtuple("Endpoint", ["method", "path"])

ENDPOINTS: Dict[str, Endpoint] = {
    "token": Endpoint("POST", "/token"),
    "auth_user": Endpoint("GET", "/auth/user"),
    "group": Endpoint("GET", "/group/{group}"),
    "clients": Endpoint("GET", "/group/{group}/clients"),
    "client": Endpoint("GET", "/group/{group}/client/{name}"),
    "delete_client": Endpoint("DELETE", "/group/{group}/client/{name}"),
    "secrets": Endpoint("GET", "/group/{group}/secrets"),
    "secrets_expiring": Endpoint("GET", "/group/{group}/secrets/expiring/{time}"),
    "create_secret": Endpoint("POST", "/group/{group}/secret/{name}"),
    "update_secret": Endpoint("PUT", "/group/{group}/secret/{name}"),
    "secret": Endpoint("GET", "/group/{group}/secret/{name}"),
    "delete_secret": Endpoint("DELETE", "/group/{group}/secret/{name}"),
    "delete_all_secrets": Endpoint("DELETE", "/group/{group}/secrets"),
    "secret_versions": Endpoint("GET", "/group/{group}/secret/{name}/versions"),
    "set_secret_version": Endpoint("PUT", "/group/{group}/secret/{name}/version"),
    "secret_content": Endpoint("GET", "/group/{group}/secret/{name}/content"),
}


class SecretsClient:
    """
    Client for the OneOps Secrets Proxy.

    Not safe for concurrent use: the auth token is plain instance state.

    Usage:
        client = SecretsClient(get_proxy_config())
        client.authenticate("alice", "pw", "corp")
        result = client.get_all_clients("org_assembly_env")
    """

    def __init__(self, config: SecretsProxyConfig, transport: Optional[httpx.BaseTransport] = None):
        logger.info(f"Initializing the Secrets client {__version__} for {config.base_url}")
        self.config = config
        self._auth_token: Optional[str] = None
        self._http = build_http_client(config, lambda: self._auth_token, transport=transport)

    @property
    def auth_token(self) -> Optional[str]:
        return self._auth_token

    def set_auth_token(self, token: Optional[str]) -> None:
        """Set the bearer token used for subsequent requests."""
        self._auth_token = token

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "SecretsClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def authenticate(self, username: str, password: str, domain: str) -> Result[TokenRes]:
        """
        Generate an access token for the given domain.

        On success the token becomes the active token for this client.
        """
        res = self._exec("token", TokenRes.from_dict, json=TokenReq(username, password, domain).to_dict())
        if res.success:
            self._auth_token = res.body.access_token
        return res

    def get_auth_user(self, token: Optional[str] = None) -> Result[AuthUser]:
        """Get the user details for the given token (defaults to the active one)."""
        token = token or self._auth_token
        headers = {AUTH_HEADER: f"Bearer {token}"} if token else None
        return self._exec("auth_user", AuthUser.from_dict, headers=headers)

    def get_group_details(self, group: str) -> Result[Group]:
        return self._exec("group", Group.from_dict, group=group)

    def get_all_clients(self, group: str) -> Result[List[Client]]:
        return self._exec("clients", list_of(Client.from_dict), group=group)

    def get_client_details(self, group: str, client_name: str) -> Result[Client]:
        return self._exec("client", Client.from_dict, group=group, name=client_name)

    def delete_client(self, group: str, name: str) -> Result[None]:
        return self._exec("delete_client", None, group=group, name=name)

    def get_all_secrets(self, group: str) -> Result[List[Secret]]:
        return self._exec("secrets", list_of(Secret.from_dict), group=group)

    def get_all_secrets_expiring(self, group: str, time: int) -> Result[List[str]]:
        """Names of the group's secrets expiring before `time` (epoch seconds)."""
        return self._exec("secrets_expiring", list_of(str), group=group, time=time)

    def create_secret(self, group: str, name: str, create_group: bool, secret_req: SecretReq) -> Result[None]:
        return self._exec(
            "create_secret",
            None,
            json=secret_req.to_dict(),
            params={"createGroup": "true" if create_group else "false"},
            group=group,
            name=name,
        )

    def update_secret(self, group: str, name: str, secret_req: SecretReq) -> Result[None]:
        return self._exec("update_secret", None, json=secret_req.to_dict(), group=group, name=name)

    def get_secret(self, group: str, name: str) -> Result[Secret]:
        return self._exec("secret", Secret.from_dict, group=group, name=name)

    def get_secret_versions(self, group: str, name: str) -> Result[List[Secret]]:
        return self._exec("secret_versions", list_of(Secret.from_dict), group=group, name=name)

    def delete_secret(self, group: str, name: str) -> Result[None]:
        return self._exec("delete_secret", None, group=group, name=name)

    def delete_all_secrets(self, group: str) -> Result[List[str]]:
        return self._exec("delete_all_secrets", list_of(str), group=group)

    def set_secret_version(self, group: str, name: str, version: int) -> Result[None]:
        return self._exec(
            "set_secret_version", None, json=SecretVersion(version).to_dict(), group=group, name=name
        )

    def get_secret_content(self, group: str, name: str) -> Result[SecretContent]:
        return self._exec("secret_content", SecretContent.from_dict, group=group, name=name)

    def _exec(
        self,
        endpoint: str,
        parser: Optional[Callable[[Any], Any]],
        json: Any = None,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        **path_params: Any,
    ) -> Result:
        """Run one endpoint call and map the response into a Result."""
        method, template = ENDPOINTS[endpoint]
        path = template.format(**{k: quote(str(v), safe="") for k, v in path_params.items()})
        try:
            response = self._http.request(method, path, json=json, params=params, headers=headers)
        except httpx.TransportError as e:
            raise ProxyIOError(f"{method} {path} failed: {e}") from e
        return map_response(response, parser)
