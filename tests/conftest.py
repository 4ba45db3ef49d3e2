import json
import re
from typing import Dict, List, Optional

import httpx
import pytest

from intune.credentials import Credentials
from intune.graph import GraphClient
from settings.loader import RateLimit, Settings

GRAPH = "https://graph.microsoft.com"


def device(device_id: str, name: Optional[str], category: Optional[str] = None) -> dict:
    return {
        "id": device_id,
        "deviceName": name,
        "operatingSystem": "Windows",
        "deviceCategoryDisplayName": category,
    }


def category(category_id: str, name: str) -> dict:
    return {"id": category_id, "displayName": name}


def user(user_id: str, name: Optional[str], department: Optional[str]) -> dict:
    return {"id": user_id, "displayName": name, "department": department}


class FakeGraph:
    """In-memory stand-in for the token endpoint and the Graph API."""

    def __init__(
        self,
        categories: List[dict] = (),
        devices: List[dict] = (),
        primary_users: Optional[Dict[str, str]] = None,
        users: Optional[Dict[str, dict]] = None,
        page_size: int = 2,
    ):
        self.categories = list(categories)
        self.devices = list(devices)
        self.primary_users = primary_users or {}
        self.users = users or {}
        self.page_size = page_size

        self.token_status = 200
        self.token_requests = 0
        self.category_status = 200
        self.failing_users = set()
        self.rejected_updates = set()
        self.updates: List[tuple] = []
        self.device_queries: List[dict] = []
        self.requests: List[httpx.Request] = []

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "login.microsoftonline.com":
            return self._token(request)

        assert request.headers["Authorization"] == "Bearer tok-1"
        path = request.url.path

        if path == "/beta/deviceManagement/deviceCategories":
            if self.category_status != 200:
                return httpx.Response(self.category_status, json={"error": {"code": "InternalServerError"}})
            return self._page(request, self.categories)

        if path == "/beta/deviceManagement/managedDevices":
            if "$skiptoken" not in request.url.params:
                self.device_queries.append(dict(request.url.params))
            return self._page(request, self.devices)

        m = re.fullmatch(r"/beta/deviceManagement/managedDevices/([^/]+)/users", path)
        if m:
            user_id = self.primary_users.get(m.group(1))
            value = [{"id": user_id}] if user_id else []
            return httpx.Response(200, json={"value": value})

        m = re.fullmatch(r"/beta/deviceManagement/managedDevices/([^/]+)/deviceCategory/\$ref", path)
        if m and request.method == "PUT":
            device_id = m.group(1)
            if device_id in self.rejected_updates:
                return httpx.Response(400, json={"error": {"code": "BadRequest"}})
            body = json.loads(request.content)
            self.updates.append((device_id, body["@odata.id"].rsplit("/", 1)[-1]))
            return httpx.Response(204)

        m = re.fullmatch(r"/beta/users/([^/]+)", path)
        if m:
            user_id = m.group(1)
            if user_id in self.failing_users:
                return httpx.Response(503, text="Service Unavailable")
            if user_id not in self.users:
                return httpx.Response(404, json={"error": {"code": "Request_ResourceNotFound"}})
            return httpx.Response(200, json=self.users[user_id])

        return httpx.Response(404, json={"error": {"code": "NotFound", "message": path}})

    def _token(self, request: httpx.Request) -> httpx.Response:
        self.token_requests += 1
        if self.token_status != 200:
            return httpx.Response(
                self.token_status,
                json={
                    "error": "invalid_client",
                    "error_description": "AADSTS7000215: Invalid client secret provided.",
                },
            )
        return httpx.Response(200, json={"token_type": "Bearer", "expires_in": 3599, "access_token": "tok-1"})

    def _page(self, request: httpx.Request, items: List[dict]) -> httpx.Response:
        start = int(request.url.params.get("$skiptoken", "0"))
        end = start + self.page_size
        body = {"value": items[start:end]}
        if end < len(items):
            body["@odata.nextLink"] = f"{GRAPH}{request.url.path}?$skiptoken={end}"
        return httpx.Response(200, json=body)


@pytest.fixture
def settings() -> Settings:
    return Settings(rate_limits={"graph": RateLimit(rate_per_sec=10000, burst=10000)})


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(tenant_id="contoso-tenant", client_id="app-id", client_secret="s3cret")


@pytest.fixture
def make_client(settings, credentials):
    clients = []

    def _make(fake: FakeGraph) -> GraphClient:
        client = GraphClient.from_settings(settings, credentials, transport=fake.transport)
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.close()
