# Microsoft Graph client for the device-management calls the sync job needs:
#   list_categories / list_devices          paginated reads (@odata.nextLink)
#   get_primary_user_id / get_user          per-device reads
#   assign_category                         the only write
#
# Auth is app-only (client credentials); the token is cached until shortly
# before it expires.

from __future__ import annotations
from typing import Any, Dict, Iterator, List, Optional
import logging
import time

import httpx

from intune.credentials import Credentials
from intune.errors import AuthenticationError, GraphRequestError
from intune.models import Category, Device, UserProfile
from rate_limit.limiter import TokenBucketLimiter, limiter_for
from settings.loader import Settings

LOGGER = logging.getLogger(__name__)

USER_AGENT = "intune-category-sync/0.1"
DEVICE_FIELDS = "id,deviceName,operatingSystem,deviceCategoryDisplayName"
USER_FIELDS = "id,displayName,department"


class GraphAuth:
    def __init__(
        self,
        credentials: Credentials,
        *,
        authority: str = "https://login.microsoftonline.com",
        scope: str = "https://graph.microsoft.com/.default",
        http: Optional[httpx.Client] = None,
    ) -> None:
        self.credentials = credentials
        self.authority = authority.rstrip("/")
        self.scope = scope
        self._http = http or httpx.Client()
        self._cached: Optional[str] = None
        self._exp: float = 0.0

    def close(self) -> None:
        self._http.close()

    @property
    def token_url(self) -> str:
        return f"{self.authority}/{self.credentials.tenant_id}/oauth2/v2.0/token"

    def access_token(self) -> str:
        now = time.time()
        if self._cached and now < self._exp - 60:  # reuse until ~1 min before expiry
            return self._cached

        try:
            r = self._http.post(
                self.token_url,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.credentials.client_id,
                    "client_secret": self.credentials.client_secret,
                    "scope": self.scope,
                },
            )
        except httpx.HTTPError as exc:
            raise AuthenticationError(f"Token endpoint unreachable: {exc}") from exc

        data = _json_or_empty(r)
        if r.status_code // 100 != 2:
            detail = data.get("error_description") or data.get("error") or r.text[:300]
            raise AuthenticationError(f"Token request rejected (HTTP {r.status_code}): {detail}")
        token = data.get("access_token")
        if not token:
            raise AuthenticationError("Token response did not contain an access_token")

        self._cached = token
        self._exp = now + int(data.get("expires_in", 3600))
        return self._cached


class GraphClient:
    """Thin wrapper over the Graph device-management endpoints."""

    name = "graph"

    def __init__(
        self,
        base_url: str,
        auth: GraphAuth,
        limiter: TokenBucketLimiter,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base = base_url.rstrip("/")
        self.auth = auth
        self.limiter = limiter
        self._http = httpx.Client(transport=transport) if transport else httpx.Client()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        credentials: Credentials,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "GraphClient":
        auth_http = httpx.Client(transport=transport) if transport else None
        auth = GraphAuth(
            credentials,
            authority=settings.authority,
            scope=settings.scope,
            http=auth_http,
        )
        return cls(
            base_url=settings.graph_base_url,
            auth=auth,
            limiter=limiter_for(settings, cls.name),
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()
        self.auth.close()

    # ---------- helpers ----------
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.auth.access_token()}",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }

    def _url(self, path: str) -> str:
        if path.startswith("https://") or path.startswith("http://"):
            return path
        return f"{self.base}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = self._url(path)
        with self.limiter():
            return self._http.request(method, url, headers=self._headers(), **kwargs)

    def _get_json(self, path: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        r = self._request("GET", path, params=params)
        if r.status_code // 100 != 2:
            raise GraphRequestError("GET", str(r.request.url), r.status_code, r.text)
        return r.json()

    def _paged(self, path: str, params: Optional[Dict[str, str]] = None) -> Iterator[Dict[str, Any]]:
        page = self._get_json(path, params)
        while True:
            yield from page.get("value", [])
            next_link = page.get("@odata.nextLink")
            if not next_link:
                return
            # the cursor already carries the original query
            page = self._get_json(next_link)

    # ---------- public API ----------
    def authenticate(self) -> None:
        """Acquire a token now so credential problems surface before any read."""
        self.auth.access_token()

    def list_categories(self) -> List[Category]:
        return [Category.model_validate(c) for c in self._paged("/deviceManagement/deviceCategories")]

    def list_devices(self, operating_system: str = "Windows") -> List[Device]:
        params = {
            "$filter": f"operatingSystem eq '{operating_system}'",
            "$select": DEVICE_FIELDS,
        }
        return [Device.model_validate(d) for d in self._paged("/deviceManagement/managedDevices", params)]

    def get_primary_user_id(self, device_id: str) -> Optional[str]:
        data = self._get_json(f"/deviceManagement/managedDevices/{device_id}/users")
        users = data.get("value") or []
        if not users:
            return None
        return users[0].get("id") or None

    def get_user(self, user_id: str) -> UserProfile:
        data = self._get_json(f"/users/{user_id}", params={"$select": USER_FIELDS})
        return UserProfile.model_validate(data)

    def assign_category(self, device_id: str, category_id: str) -> bool:
        """PUT the device -> category reference. Returns True on 2xx."""
        body = {"@odata.id": f"{self.base}/deviceManagement/deviceCategories/{category_id}"}
        r = self._request(
            "PUT",
            f"/deviceManagement/managedDevices/{device_id}/deviceCategory/$ref",
            json=body,
        )
        if r.status_code // 100 == 2:
            return True
        LOGGER.debug("Category update for %s returned HTTP %s: %s", device_id, r.status_code, r.text[:300])
        return False


def _json_or_empty(r: httpx.Response) -> Dict[str, Any]:
    try:
        data = r.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
