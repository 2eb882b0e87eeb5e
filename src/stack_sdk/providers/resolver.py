"""Refreshes expiring provider URLs before a slide is displayed."""

import logging
from typing import Callable, Optional

from ..errors import ProviderError, StackError
from .photos import PhotosClient
from .urls import display_url, is_provider_hosted, proxy_url

logger = logging.getLogger("StoryStackMCP.providers.resolver")

ClientFactory = Callable[[str], PhotosClient]


class UrlResolver:
    """Turns a stored slide URL into one that will load right now.

    Provider URLs are short-lived signed links. With an item id and a
    credential the resolver fetches a fresh one; otherwise it routes the
    last known URL through the media proxy. It never raises: a failed
    refresh degrades to the proxy instead of blocking the view.
    """

    def __init__(self, proxy_base: str, access_token: Optional[str] = None,
                 share_token: Optional[str] = None,
                 client_factory: Optional[ClientFactory] = None):
        self.proxy_base = proxy_base
        self.access_token = access_token
        self.share_token = share_token
        self._client_factory = client_factory or PhotosClient

    def resolve(self, item_id: Optional[str], known_url: Optional[str]) -> Optional[str]:
        if item_id and self.access_token:
            try:
                return self._refresh(item_id)
            except StackError as e:
                logger.warning(f"Refresh of {item_id} failed, proxying last known URL: {e}")

        if is_provider_hosted(known_url):
            return proxy_url(known_url, self.proxy_base, self.access_token, self.share_token)
        return known_url

    def resolve_slide(self, slide) -> Optional[str]:
        return self.resolve(slide.google_photo_id, slide.url)

    def _refresh(self, item_id: str) -> str:
        client = self._client_factory(self.access_token)
        item = client.get_media_item(item_id)
        if not item.base_url:
            raise ProviderError(f"Item {item_id} has no base URL")
        fresh = display_url(item.base_url, item.is_video)
        return proxy_url(fresh, self.proxy_base, self.access_token, self.share_token)
