"""Productive API client for productive-pm."""

import asyncio
import json
import logging
import os
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

from . import pm_config

if TYPE_CHECKING:
    from .pm_config import PMContext

logger = logging.getLogger(__name__)

PRODUCTIVE_API_URL = "https://api.productive.io/api/v2"


class AuthenticationError(Exception):
    """Raised when the API token or organization is not configured."""

    def __init__(self, message: str, suggestions: list[str] | None = None):
        super().__init__(message)
        self.suggestions = suggestions or []


class ProductiveApiError(Exception):
    """Raised when the Productive API answers with an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


@dataclass
class ProductiveConfig:
    """Productive API configuration."""
    api_token: str
    organization_id: Optional[str] = None
    base_url: str = PRODUCTIVE_API_URL

    def save(self) -> None:
        """Save config to the user config file."""
        config_file = pm_config.USER_CONFIG_FILE
        config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(config_file, "w") as f:
            json.dump({
                "api_token": self.api_token,
                "organization_id": self.organization_id,
            }, f, indent=2)
        # Secure the file
        os.chmod(config_file, 0o600)

    @classmethod
    def from_context(cls, context: "PMContext") -> Optional["ProductiveConfig"]:
        """Create ProductiveConfig from a PMContext."""
        if not context.api_token:
            return None
        return cls(
            api_token=context.api_token,
            organization_id=context.organization_id,
            base_url=context.base_url or PRODUCTIVE_API_URL,
        )

    @classmethod
    def get_auth_help_message(cls) -> str:
        """Get helpful message about authentication options."""
        return """Productive authentication not configured.

To authenticate, use one of these methods:

1. Environment variables:
   $ export PRODUCTIVE_API_TOKEN=xxxxxxxx
   $ export PRODUCTIVE_ORG_ID=12345

2. Run auth setup:
   $ productive-pm auth setup

3. Create .productive/config.json in your project:
   {"organization_id": "12345"}

   And set PRODUCTIVE_API_TOKEN environment variable.

To get an API token:
   Productive > Settings > API integrations
"""


class ProductiveClient:
    """Client for the Productive JSON:API.

    List methods are coroutines; the blocking HTTP call runs in a worker
    thread so several lookups can be awaited together.
    """

    def __init__(self, config: ProductiveConfig):
        if not config.api_token:
            raise AuthenticationError(
                "Productive API token not configured.",
                suggestions=[
                    "Set: export PRODUCTIVE_API_TOKEN=xxx",
                    "Or run: productive-pm auth setup",
                ],
            )
        if not config.organization_id:
            raise AuthenticationError(
                "Productive organization ID not configured.",
                suggestions=[
                    "Set: export PRODUCTIVE_ORG_ID=12345",
                    "Or add organization_id to .productive/config.json",
                ],
            )
        self.config = config

    @property
    def organization_id(self) -> str:
        return self.config.organization_id

    @classmethod
    def from_context(cls, context: "PMContext") -> "ProductiveClient":
        """Create a client from a resolved PMContext."""
        config = ProductiveConfig.from_context(context)
        if not config:
            raise AuthenticationError(
                "Productive API token not configured.",
                suggestions=[
                    f"Set: export {context.api_token_env}=xxx",
                    "Or run: productive-pm auth setup",
                ],
            )
        return cls(config)

    def _request(self, endpoint: str, query: Optional[dict] = None) -> dict:
        """Make a GET request against the API."""
        url = f"{self.config.base_url.rstrip('/')}{endpoint}"
        if query:
            url = f"{url}?{urllib.parse.urlencode(query)}"

        req = urllib.request.Request(
            url,
            headers={
                "Content-Type": "application/vnd.api+json",
                "X-Auth-Token": self.config.api_token,
                "X-Organization-Id": str(self.config.organization_id),
            },
        )

        logger.debug("GET %s", url)
        try:
            with urllib.request.urlopen(req) as response:
                return json.loads(response.read().decode("utf-8"))
        except urllib.error.HTTPError as e:
            error_body = e.read().decode("utf-8")
            raise ProductiveApiError(_error_message(e.code, error_body), e.code, error_body) from e
        except urllib.error.URLError as e:
            raise ProductiveApiError(f"Productive API unreachable: {e.reason}") from e

    @staticmethod
    def _list_query(
        filter: Optional[dict] = None,
        per_page: Optional[int] = None,
        page: Optional[int] = None,
        sort: Optional[str] = None,
    ) -> dict:
        query: dict[str, str] = {}
        if page:
            query["page[number]"] = str(page)
        if per_page:
            query["page[size]"] = str(per_page)
        if sort:
            query["sort"] = sort
        for key, value in (filter or {}).items():
            query[f"filter[{key}]"] = str(value)
        return query

    async def _list(self, endpoint: str, **params) -> dict:
        return await asyncio.to_thread(self._request, endpoint, self._list_query(**params))

    async def get_people(self, filter: Optional[dict] = None, per_page: Optional[int] = None,
                         page: Optional[int] = None) -> dict:
        """List people, e.g. filter={"email": "jane@acme.test"}."""
        return await self._list("/people", filter=filter, per_page=per_page, page=page)

    async def get_projects(self, filter: Optional[dict] = None, per_page: Optional[int] = None,
                           page: Optional[int] = None) -> dict:
        """List projects, e.g. filter={"project_number": "123"}."""
        return await self._list("/projects", filter=filter, per_page=per_page, page=page)

    async def get_companies(self, filter: Optional[dict] = None, per_page: Optional[int] = None,
                            page: Optional[int] = None) -> dict:
        return await self._list("/companies", filter=filter, per_page=per_page, page=page)

    async def get_deals(self, filter: Optional[dict] = None, per_page: Optional[int] = None,
                        page: Optional[int] = None) -> dict:
        return await self._list("/deals", filter=filter, per_page=per_page, page=page)

    async def get_services(self, filter: Optional[dict] = None, per_page: Optional[int] = None,
                           page: Optional[int] = None) -> dict:
        return await self._list("/services", filter=filter, per_page=per_page, page=page)

    async def get_organization_memberships(self) -> dict:
        """Memberships of the token owner; used to verify credentials."""
        return await self._list("/organization_memberships", per_page=10)


def _error_message(status: int, body: str) -> str:
    """Use the first JSON:API error detail when the body has one."""
    message = f"API request failed: {status}"
    try:
        errors = json.loads(body).get("errors") or []
    except (ValueError, AttributeError):
        return message
    if errors and isinstance(errors[0], dict) and errors[0].get("detail"):
        return errors[0]["detail"]
    return message
