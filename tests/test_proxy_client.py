"""Tests for the SecretsClient endpoint surface and auth token handling."""
import json

import httpx
import pytest

from oneops_secrets.proxy.domains.exceptions import ProxyIOError
from oneops_secrets.proxy.domains.models import SecretReq


def token_handler(request):
    if request.url.path == "/api/token":
        body = json.loads(request.content)
        if body["password"] == "pw":
            return httpx.Response(200, json={"accessToken": "abc123", "tokenType": "Bearer", "expiresInSec": 3600})
        return httpx.Response(401, json={"status": 401, "message": "Invalid credentials"})
    return httpx.Response(200, json=[])


class TestAuthentication:
    """Test suite for authenticate / set_auth_token."""

    def test_token_request_payload(self, make_client):
        client, requests = make_client(token_handler)
        client.authenticate("alice", "pw", "corp")

        assert requests[0].method == "POST"
        assert json.loads(requests[0].content) == {"username": "alice", "password": "pw", "domain": "corp"}
        assert "X-Authorization" not in requests[0].headers

    def test_authenticated_requests_carry_token(self, make_client):
        client, requests = make_client(token_handler)

        res = client.authenticate("alice", "pw", "corp")
        client.get_all_clients("groupA")

        assert res.success is True
        assert res.body.access_token == "abc123"
        assert client.auth_token == "abc123"
        assert requests[1].url.path == "/api/group/groupA/clients"
        assert requests[1].headers["X-Authorization"] == "Bearer abc123"

    def test_failed_authentication_keeps_token(self, make_client):
        client, requests = make_client(token_handler)
        client.set_auth_token("old-token")

        res = client.authenticate("alice", "bad", "corp")
        client.get_all_clients("groupA")

        assert res.success is False
        assert res.status_code == 401
        assert res.error.message == "Invalid credentials"
        assert client.auth_token == "old-token"
        assert requests[1].headers["X-Authorization"] == "Bearer old-token"

    def test_empty_token_response_keeps_token(self, make_client):
        client, _ = make_client(lambda r: httpx.Response(200))
        client.set_auth_token("old-token")

        with pytest.raises(ProxyIOError):
            client.authenticate("alice", "pw", "corp")
        assert client.auth_token == "old-token"

    def test_set_auth_token_overrides_authenticated_token(self, make_client):
        client, requests = make_client(token_handler)
        client.authenticate("alice", "pw", "corp")
        client.set_auth_token("out-of-band")
        client.get_all_secrets("groupA")

        assert requests[-1].headers["X-Authorization"] == "Bearer out-of-band"

    def test_get_auth_user_with_explicit_token(self, make_client):
        client, requests = make_client(
            lambda r: httpx.Response(200, json={"username": "alice", "cn": "Alice", "domain": "corp"})
        )
        client.set_auth_token("active")
        res = client.get_auth_user("explicit")

        assert res.body.username == "alice"
        assert requests[0].url.path == "/api/auth/user"
        assert requests[0].headers["X-Authorization"] == "Bearer explicit"

    def test_get_auth_user_defaults_to_active_token(self, make_client):
        client, requests = make_client(lambda r: httpx.Response(200, json={"username": "alice"}))
        client.set_auth_token("active")
        client.get_auth_user()

        assert requests[0].headers["X-Authorization"] == "Bearer active"


SECRET = {"name": "db.password", "version": 2}
CLIENT = {"name": "web-1"}
REQ = SecretReq(content="c2VjcmV0", description="db", expiry=0, metadata={})


@pytest.mark.parametrize(
    "call, method, path, payload",
    [
        (lambda c: c.get_group_details("g"), "GET", "/api/group/g", {"name": "g"}),
        (lambda c: c.get_all_clients("g"), "GET", "/api/group/g/clients", [CLIENT]),
        (lambda c: c.get_client_details("g", "web-1"), "GET", "/api/group/g/client/web-1", CLIENT),
        (lambda c: c.delete_client("g", "web-1"), "DELETE", "/api/group/g/client/web-1", None),
        (lambda c: c.get_all_secrets("g"), "GET", "/api/group/g/secrets", [SECRET]),
        (lambda c: c.get_all_secrets_expiring("g", 1700000000), "GET",
         "/api/group/g/secrets/expiring/1700000000", ["db.password"]),
        (lambda c: c.create_secret("g", "s", True, REQ), "POST", "/api/group/g/secret/s", None),
        (lambda c: c.update_secret("g", "s", REQ), "PUT", "/api/group/g/secret/s", None),
        (lambda c: c.get_secret("g", "s"), "GET", "/api/group/g/secret/s", SECRET),
        (lambda c: c.delete_secret("g", "s"), "DELETE", "/api/group/g/secret/s", None),
        (lambda c: c.delete_all_secrets("g"), "DELETE", "/api/group/g/secrets", ["a", "b"]),
        (lambda c: c.get_secret_versions("g", "s"), "GET", "/api/group/g/secret/s/versions", [SECRET]),
        (lambda c: c.set_secret_version("g", "s", 3), "PUT", "/api/group/g/secret/s/version", None),
        (lambda c: c.get_secret_content("g", "s"), "GET", "/api/group/g/secret/s/content",
         {"name": "s", "secret": "c2VjcmV0"}),
    ],
)
def test_endpoint_mapping(make_client, call, method, path, payload):
    """Each operation is one request with the expected verb and path."""
    client, requests = make_client(
        lambda r: httpx.Response(200, json=payload) if payload is not None else httpx.Response(204)
    )
    res = call(client)

    assert len(requests) == 1
    assert requests[0].method == method
    assert requests[0].url.path == path
    assert res.success is True
    if payload is None:
        assert res.body is None
    else:
        assert res.body is not None


class TestRequestPayloads:

    def test_create_secret_sends_create_group_flag(self, make_client):
        client, requests = make_client(lambda r: httpx.Response(201))
        client.create_secret("g", "s", True, REQ)
        client.create_secret("g", "s", False, REQ)

        assert requests[0].url.params["createGroup"] == "true"
        assert requests[1].url.params["createGroup"] == "false"
        assert json.loads(requests[0].content) == {
            "content": "c2VjcmV0",
            "description": "db",
            "expiry": 0,
            "metadata": {},
        }

    def test_update_secret_omits_unset_fields(self, make_client):
        client, requests = make_client(lambda r: httpx.Response(204))
        client.update_secret("g", "s", SecretReq(content="bmV3"))
        assert json.loads(requests[0].content) == {"content": "bmV3"}

    def test_set_secret_version_body(self, make_client):
        client, requests = make_client(lambda r: httpx.Response(204))
        client.set_secret_version("g", "s", 7)
        assert json.loads(requests[0].content) == {"version": 7}

    def test_list_results_keep_server_order(self, make_client):
        client, _ = make_client(lambda r: httpx.Response(200, json=["z", "a", "m"]))
        assert client.delete_all_secrets("g").body == ["z", "a", "m"]

    def test_path_parameters_are_escaped(self, make_client):
        client, requests = make_client(lambda r: httpx.Response(200, json=SECRET))
        client.get_secret("g", "a/b")
        assert requests[0].url.raw_path == b"/api/group/g/secret/a%2Fb"

    def test_no_local_argument_validation(self, make_client):
        """Invalid values are passed through; the proxy reports the error."""
        client, requests = make_client(lambda r: httpx.Response(400, json={"message": "Invalid secret name"}))
        res = client.get_secret("", "bad name!")

        assert len(requests) == 1
        assert res.error.message == "Invalid secret name"


class TestFailures:

    def test_not_found_secret(self, make_client):
        client, _ = make_client(lambda r: httpx.Response(404, json={"message": "not found"}))
        res = client.get_secret("g", "s")

        assert res.success is False
        assert res.status_code == 404
        assert res.error.message == "not found"

    def test_transport_failure_raises_io_error(self, make_client):
        def refuse(request):
            raise httpx.ConnectError("Connection refused", request=request)

        client, _ = make_client(refuse)
        with pytest.raises(ProxyIOError) as exc_info:
            client.get_all_clients("g")

        assert isinstance(exc_info.value, OSError)
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    def test_read_timeout_raises_io_error(self, make_client):
        def slow(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client, _ = make_client(slow)
        with pytest.raises(ProxyIOError):
            client.get_secret_content("g", "s")

    def test_client_is_a_context_manager(self, make_client):
        client, _ = make_client(lambda r: httpx.Response(200, json=[]))
        with client as c:
            assert c is client
        assert client._http.is_closed
