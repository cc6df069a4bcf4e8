"""Tests for the Consul KV backend over httpx.MockTransport."""

from __future__ import annotations

import base64

import httpx
import pytest

from remotefs.backends.consul import ConsulBackend
from remotefs.fs.exceptions import InternalError, PathNotFoundError, PermissionDeniedError
from remotefs.fs.filesystem import RemoteFileSystem


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv("CONSUL_HTTP_ADDR", raising=False)
    monkeypatch.delenv("CONSUL_HTTP_TOKEN", raising=False)


class FakeConsul:
    """Consul KV endpoint backed by a dict; folders are keys ending in ``/``."""

    def __init__(self, data: dict[str, bytes], *, acl_token: str | None = None) -> None:
        self.data = data
        self.acl_token = acl_token
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.acl_token and request.headers.get("X-Consul-Token") != self.acl_token:
            return httpx.Response(403, text="ACL not found")
        key = request.url.path.removeprefix("/v1/kv/")
        if "keys" in request.url.params:
            separator = request.url.params.get("separator", "")
            found: list[str] = []
            for k in sorted(self.data):
                if not k.startswith(key):
                    continue
                rest = k[len(key) :]
                if separator and separator in rest:
                    entry = key + rest.split(separator, 1)[0] + separator
                else:
                    entry = k
                if entry not in found:
                    found.append(entry)
            if not found:
                return httpx.Response(404)
            return httpx.Response(200, json=found)
        if key not in self.data:
            return httpx.Response(404)
        value = self.data[key]
        encoded = base64.b64encode(value).decode() if value else None
        return httpx.Response(200, json=[{"Key": key, "Value": encoded}])


@pytest.fixture
def consul() -> FakeConsul:
    return FakeConsul(
        {
            "config/": b"",
            "config/app/port": b"8080",
            "config/app/host": b"localhost",
            "config/name": b"demo",
            "config/empty": b"",
        }
    )


def _backend(consul: FakeConsul, **kwargs) -> ConsulBackend:
    return ConsulBackend("consul.test:8500", transport=httpx.MockTransport(consul), **kwargs)


class TestConsulBackend:
    def test_scheme_added(self, consul):
        assert _backend(consul).address == "http://consul.test:8500"

    def test_address_from_env(self, monkeypatch):
        monkeypatch.setenv("CONSUL_HTTP_ADDR", "https://consul.example.com")
        assert ConsulBackend().address == "https://consul.example.com"

    async def test_get(self, consul):
        value = await _backend(consul).get("config/app/port")
        assert value.data == b"8080"
        assert consul.requests[0].url.path == "/v1/kv/config/app/port"

    async def test_get_empty_value(self, consul):
        assert (await _backend(consul).get("config/empty")).data == b""

    async def test_get_missing(self, consul):
        with pytest.raises(PathNotFoundError):
            await _backend(consul).get("config/nope")

    async def test_bad_payload(self):
        backend = ConsulBackend(
            "http://c", transport=httpx.MockTransport(lambda r: httpx.Response(200, text="<html>"))
        )
        with pytest.raises(InternalError):
            await backend.get("x")

    async def test_list_includes_folder_marker(self, consul):
        page = await _backend(consul).list("config/")
        assert page.keys == ["config/", "config/app/", "config/empty", "config/name"]
        assert page.next_token is None

    async def test_list_missing_is_empty(self, consul):
        assert (await _backend(consul).list("nope/")).keys == []

    async def test_token_and_datacenter(self):
        consul = FakeConsul({"k": b"v"}, acl_token="acl-1")
        backend = _backend(consul, token="acl-1", datacenter="dc2")
        assert (await backend.get("k")).data == b"v"
        assert consul.requests[0].url.params["dc"] == "dc2"

    async def test_token_from_env(self, monkeypatch):
        monkeypatch.setenv("CONSUL_HTTP_TOKEN", "acl-env")
        consul = FakeConsul({"k": b"v"}, acl_token="acl-env")
        assert (await _backend(consul).get("k")).data == b"v"

    async def test_forbidden(self):
        consul = FakeConsul({"k": b"v"}, acl_token="acl-1")
        with pytest.raises(PermissionDeniedError):
            await _backend(consul).get("k")


class TestConsulFileSystem:
    async def test_read_dir(self, consul):
        async with RemoteFileSystem(_backend(consul), root="config") as fsys:
            infos = await fsys.read_dir(".")
        assert [(i.name, i.is_directory, i.size) for i in infos] == [
            ("app", True, 0),
            ("empty", False, 0),
            ("name", False, 4),
        ]

    async def test_folder_marker_does_not_hide_directory(self, consul):
        # the marker "config/" sorts before its children in the listing
        info = await RemoteFileSystem(_backend(consul)).stat("config")
        assert info.is_directory

    async def test_nested_read(self, consul):
        fsys = RemoteFileSystem(_backend(consul)).sub("config")
        assert await fsys.read_file("app/host") == b"localhost"
        assert [i.name for i in await fsys.read_dir("app")] == ["host", "port"]
