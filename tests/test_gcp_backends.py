"""Tests for the GCE metadata and Secret Manager backends over httpx.MockTransport."""

from __future__ import annotations

import base64
import re
from datetime import UTC, datetime

import httpx
import pytest

from remotefs.backends.gcp_metadata import GCPMetadataBackend
from remotefs.backends.gcp_secrets import GCPSecretManagerBackend, parse_timestamp
from remotefs.fs.exceptions import (
    InternalError,
    PathNotFoundError,
    PermissionDeniedError,
)
from remotefs.fs.filesystem import RemoteFileSystem

META_TOKEN = "ya29.from-metadata"

# trailing-slash requests list a directory; sub-directories end with "/"
DOCUMENTS = {
    "instance/": "attributes/\ndisks/\nhostname\nid\nservice-accounts/\nzone\n",
    "instance/hostname": "vm-1.c.demo.internal",
    "instance/id": "4520031799277581759",
    "instance/zone": "projects/42/zones/us-central1-a",
    "instance/attributes/": "startup-script\n",
    "instance/attributes/startup-script": "#!/bin/sh\necho hi\n",
    "instance/disks/": "0/\n",
    "instance/disks/0/": "device-name\nmode\n",
    "instance/disks/0/device-name": "boot",
    "instance/disks/0/mode": "READ_WRITE",
    "instance/service-accounts/": "default/\nvm@demo.iam.gserviceaccount.com/\n",
    "instance/service-accounts/default/token": (
        f'{{"access_token":"{META_TOKEN}","expires_in":3599,"token_type":"Bearer"}}'
    ),
    "project/": "attributes/\nnumeric-project-id\nproject-id\n",
    "project/numeric-project-id": "42",
    "project/project-id": "demo",
}

GCP_ENV = ("GCE_METADATA_HOST", "GOOGLE_CLOUD_PROJECT", "GOOGLE_OAUTH_ACCESS_TOKEN")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in GCP_ENV:
        monkeypatch.delenv(name, raising=False)


class FakeMetadata:
    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("Metadata-Flavor") != "Google":
            return httpx.Response(403, text="Missing Metadata-Flavor:Google header.")
        path = request.url.path.removeprefix("/computeMetadata/v1/")
        if path in DOCUMENTS:
            return httpx.Response(200, text=DOCUMENTS[path])
        return httpx.Response(404, text="Not Found")


def _gcp_error(code: int, status: str, message: str) -> httpx.Response:
    error = {"code": code, "message": message, "status": status}
    return httpx.Response(code, json={"error": error})


class FakeSecretManager:
    """Secret Manager REST API for project ``demo``: list, get and access versions."""

    VERSION = re.compile(r"/v1/projects/demo/secrets/([^/]+)/versions/latest(:access)?")

    def __init__(self, secrets: dict[str, tuple[bytes, str]], *, token: str = "ya29.test"):
        self.secrets = secrets
        self.token = token
        self.page_size = 2
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("Authorization") != f"Bearer {self.token}":
            return _gcp_error(401, "UNAUTHENTICATED", "Request had invalid credentials.")

        path = request.url.path
        if path == "/v1/projects/demo/secrets":
            names = sorted(self.secrets, reverse=True)
            start = int(request.url.params.get("pageToken", "0"))
            size = int(request.url.params.get("pageSize", self.page_size))
            chunk = names[start : start + size]
            body: dict = {"secrets": [{"name": f"projects/demo/secrets/{n}"} for n in chunk]}
            if start + size < len(names):
                body["nextPageToken"] = str(start + size)
            return httpx.Response(200, json=body)

        match = self.VERSION.fullmatch(path)
        if match is None:
            return _gcp_error(400, "INVALID_ARGUMENT", f"bad resource {path}")
        name, access = match.groups()
        if name not in self.secrets:
            return _gcp_error(404, "NOT_FOUND", f"Secret [{name}] not found or has no versions.")
        data, created = self.secrets[name]
        resource = f"projects/42/secrets/{name}/versions/3"
        if access:
            encoded = base64.b64encode(data).decode()
            return httpx.Response(200, json={"name": resource, "payload": {"data": encoded}})
        return httpx.Response(
            200, json={"name": resource, "createTime": created, "state": "ENABLED"}
        )


@pytest.fixture
def metadata_server() -> FakeMetadata:
    return FakeMetadata()


@pytest.fixture
def metadata(metadata_server: FakeMetadata) -> GCPMetadataBackend:
    transport = httpx.MockTransport(metadata_server)
    return GCPMetadataBackend("http://metadata.test", transport=transport)


@pytest.fixture
def secret_manager() -> FakeSecretManager:
    return FakeSecretManager(
        {
            "db-password": (b"s3cret", "2024-05-01T12:00:00.123456789Z"),
            "api-key": (b"k-123", "2024-04-01T08:30:00Z"),
            "tls-cert": (b"-----BEGIN CERTIFICATE-----", "2024-03-01T00:00:00Z"),
        }
    )


def _secrets_backend(fake: FakeSecretManager, **kwargs) -> GCPSecretManagerBackend:
    kwargs.setdefault("project", "demo")
    return GCPSecretManagerBackend(
        endpoint="https://secretmanager.test", transport=httpx.MockTransport(fake), **kwargs
    )


# ---------------------------------------------------------------------------
# Metadata server
# ---------------------------------------------------------------------------


class TestGCPMetadataBackend:
    def test_host_default(self):
        assert GCPMetadataBackend().address == "http://metadata.google.internal"

    def test_host_from_env(self, monkeypatch):
        monkeypatch.setenv("GCE_METADATA_HOST", "169.254.169.254")
        assert GCPMetadataBackend().address == "http://169.254.169.254"

    async def test_get_sends_flavor_header(self, metadata, metadata_server):
        assert (await metadata.get("project/project-id")).data == b"demo"
        request = metadata_server.requests[0]
        assert request.headers["Metadata-Flavor"] == "Google"
        assert request.url.path == "/computeMetadata/v1/project/project-id"

    async def test_get_outside_tree(self, metadata, metadata_server):
        with pytest.raises(PathNotFoundError):
            await metadata.get("elsewhere/x")
        with pytest.raises(PathNotFoundError):
            await metadata.get("/instance/id")
        assert metadata_server.requests == []

    async def test_get_missing(self, metadata):
        with pytest.raises(PathNotFoundError):
            await metadata.get("instance/nope")

    async def test_root_listing_is_static(self, metadata, metadata_server):
        page = await metadata.list("")
        assert page.keys == ["instance/", "project/"]
        assert metadata_server.requests == []

    async def test_list(self, metadata, metadata_server):
        page = await metadata.list("instance/disks/0/")
        assert page.keys == ["instance/disks/0/device-name", "instance/disks/0/mode"]
        assert metadata_server.requests[0].url.path == "/computeMetadata/v1/instance/disks/0/"

    async def test_list_outside_tree_is_empty(self, metadata, metadata_server):
        assert (await metadata.list("/")).keys == []
        assert (await metadata.list("elsewhere/")).keys == []
        assert metadata_server.requests == []

    async def test_transport_error(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        backend = GCPMetadataBackend("http://metadata.test", transport=httpx.MockTransport(refuse))
        with pytest.raises(InternalError):
            await backend.get("instance/id")

    @pytest.mark.parametrize(
        ("key", "expected"),
        [
            pytest.param("instance", True, id="category"),
            pytest.param("instance/attributes", True, id="documented"),
            pytest.param("instance/disks/0", True, id="disk"),
            pytest.param("instance/network-interfaces/1/access-configs/0", True, id="nic-config"),
            pytest.param("instance/network-interfaces/0/forwarded-ips", True, id="forwarded"),
            pytest.param("instance/service-accounts/default", True, id="service-account"),
            pytest.param("instance/service-accounts/default/email", False, id="sa-email"),
            pytest.param("instance/disks/boot", False, id="disk-name"),
            pytest.param("project/project-id", False, id="document"),
        ],
    )
    def test_known_directories(self, key: str, expected: bool):
        assert GCPMetadataBackend.directory_probe.known_directory(key) is expected


class TestGCPMetadataFileSystem:
    async def test_root(self, metadata):
        async with RemoteFileSystem(metadata) as fsys:
            infos = await fsys.read_dir(".")
        assert [(i.name, i.is_directory) for i in infos] == [
            ("instance", True),
            ("project", True),
        ]

    async def test_instance_listing(self, metadata):
        infos = await RemoteFileSystem(metadata).read_dir("instance")
        assert [(i.name, i.is_directory) for i in infos] == [
            ("attributes", True),
            ("disks", True),
            ("hostname", False),
            ("id", False),
            ("service-accounts", True),
            ("zone", False),
        ]

    async def test_stat_directory_without_remote_call(self, metadata, metadata_server):
        info = await RemoteFileSystem(metadata).stat("instance/disks/0")
        assert info.is_directory
        assert metadata_server.requests == []

    async def test_read_document(self, metadata):
        fsys = RemoteFileSystem(metadata).sub("instance")
        assert await fsys.read_file("attributes/startup-script") == b"#!/bin/sh\necho hi\n"

    async def test_missing_document(self, metadata):
        with pytest.raises(PathNotFoundError):
            await RemoteFileSystem(metadata).stat("project/nope")


# ---------------------------------------------------------------------------
# Secret Manager
# ---------------------------------------------------------------------------


class TestGCPSecretManagerBackend:
    async def test_get(self, secret_manager):
        backend = _secrets_backend(secret_manager)
        value = await backend.get("db-password", credential="ya29.test")
        assert value.data == b"s3cret"
        assert value.modified_at == datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=UTC)
        paths = sorted(r.url.path for r in secret_manager.requests)
        assert paths == [
            "/v1/projects/demo/secrets/db-password/versions/latest",
            "/v1/projects/demo/secrets/db-password/versions/latest:access",
        ]
        await backend.close()

    @pytest.mark.parametrize("key", ["a/b", "/db-password", ""], ids=["nested", "rooted", "empty"])
    async def test_names_with_slash_never_exist(self, secret_manager, key):
        with pytest.raises(PathNotFoundError):
            await _secrets_backend(secret_manager).get(key, credential="ya29.test")
        assert secret_manager.requests == []

    async def test_get_missing(self, secret_manager):
        with pytest.raises(PathNotFoundError) as exc_info:
            await _secrets_backend(secret_manager).get("nope", credential="ya29.test")
        assert "not found" in exc_info.value.detail

    async def test_bad_credentials(self, secret_manager):
        with pytest.raises(PermissionDeniedError):
            await _secrets_backend(secret_manager).get("api-key", credential="ya29.wrong")

    async def test_list_pages(self, secret_manager):
        backend = _secrets_backend(secret_manager)
        first = await backend.list("", credential="ya29.test")
        assert first.keys == ["tls-cert", "db-password"]
        assert first.next_token == "2"
        second = await backend.list("", first.next_token, credential="ya29.test")
        assert second.keys == ["api-key"]
        assert second.next_token is None

    async def test_list_limit(self, secret_manager):
        page = await _secrets_backend(secret_manager).list("", limit=1, credential="ya29.test")
        assert page.keys == ["tls-cert"]
        assert secret_manager.requests[0].url.params["pageSize"] == "1"

    async def test_non_root_listing_is_empty(self, secret_manager):
        page = await _secrets_backend(secret_manager).list("db-password/", credential="ya29.test")
        assert page.keys == []
        assert secret_manager.requests == []

    async def test_project_from_env(self, secret_manager, monkeypatch):
        monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "demo")
        backend = _secrets_backend(secret_manager, project=None)
        assert backend.project == "demo"

    async def test_login_prefers_explicit_token(self, secret_manager, monkeypatch):
        monkeypatch.setenv("GOOGLE_OAUTH_ACCESS_TOKEN", "ya29.env")
        assert await _secrets_backend(secret_manager, access_token="ya29.x").login() == "ya29.x"
        assert await _secrets_backend(secret_manager).login() == "ya29.env"

    async def test_login_and_project_from_metadata(self, metadata, metadata_server):
        fake = FakeSecretManager({"only": (b"1", "2024-01-01T00:00:00Z")}, token=META_TOKEN)
        backend = _secrets_backend(fake, project=None, metadata=metadata)
        token = await backend.login()
        assert token == META_TOKEN
        assert (await backend.get("only", credential=token)).data == b"1"
        assert backend.project == "demo"
        await backend.close()


class TestGCPSecretManagerFileSystem:
    async def test_flat_directory(self, secret_manager):
        backend = _secrets_backend(secret_manager, access_token="ya29.test")
        async with RemoteFileSystem(backend) as fsys:
            infos = await fsys.read_dir(".")
            assert [(i.name, i.is_directory, i.size) for i in infos] == [
                ("api-key", False, 5),
                ("db-password", False, 6),
                ("tls-cert", False, 27),
            ]
            assert infos[1].modified_at == datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=UTC)
            assert await fsys.read_file("db-password") == b"s3cret"

    async def test_nested_path_not_found(self, secret_manager):
        backend = _secrets_backend(secret_manager, access_token="ya29.test")
        with pytest.raises(PathNotFoundError):
            await RemoteFileSystem(backend).stat("db-password/x")


class TestParseTimestamp:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("2024-05-01T12:00:00Z", datetime(2024, 5, 1, 12, 0, tzinfo=UTC)),
            ("2024-05-01T12:00:00.5Z", datetime(2024, 5, 1, 12, 0, 0, 500000, tzinfo=UTC)),
            (
                "2024-05-01T12:00:00.987654321Z",
                datetime(2024, 5, 1, 12, 0, 0, 987654, tzinfo=UTC),
            ),
            ("yesterday", None),
            (None, None),
        ],
        ids=["seconds", "fraction", "nanoseconds", "garbage", "missing"],
    )
    def test_parse(self, value, expected):
        assert parse_timestamp(value) == expected
