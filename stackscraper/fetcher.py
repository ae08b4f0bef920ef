import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse
import httpx
from .errors import FetchError, InvalidURLError
from .user_agents import UserAgentPool


logger = logging.getLogger(__name__)


def host_header(url: str) -> str:
    """Host header value for ``url``; raises InvalidURLError for URLs without scheme or host."""
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise InvalidURLError(f"Not an absolute URL: {url!r}")
    return parsed.netloc.rsplit("@", 1)[-1]


class PageFetcher:
    """Fetches page markup over HTTP."""

    def __init__(
        self,
        user_agents: Optional[UserAgentPool] = None,
        user_agent: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.user_agents = user_agents or UserAgentPool()
        self.user_agent = user_agent
        self.timeout = timeout
        self.transport = transport

    def build_headers(self, url: str, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "User-Agent": self.user_agent or self.user_agents.get(),
            "Host": host_header(url),
        }
        headers.update(extra or {})
        return headers

    def fetch(self, url: str, request_args: Optional[Dict[str, Any]] = None) -> str:
        """
        Fetch a page and return its body as text.

        Args:
            url: Absolute URL to fetch
            request_args: Optional ``headers`` mapping merged over the defaults;
                every other key is sent as a query parameter

        Returns:
            Response body
        """
        args = dict(request_args or {})
        headers = self.build_headers(url, args.pop("headers", None))

        logger.debug("Fetching %s", url)
        try:
            with httpx.Client(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                response = client.get(url, headers=headers, params=args or None)
                response.raise_for_status()
                return response.text
        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"{url} returned HTTP {e.response.status_code}",
                url,
                status_code=e.response.status_code,
            ) from e
        except httpx.InvalidURL as e:
            raise InvalidURLError(f"Not a valid URL: {url!r}") from e
        except httpx.HTTPError as e:
            raise FetchError(f"Request to {url} failed: {e}", url) from e
