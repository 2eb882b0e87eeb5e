"""Cloud photo provider client: picker sessions, item listing, uploads, downloads."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

import requests

from ..config import StackConfig
from ..errors import (
    InsufficientPermissions,
    PendingUserAction,
    ProviderError,
    SessionExpired,
    UploadFailed,
)
from .urls import clean_url, download_url, sized_url

logger = logging.getLogger("StoryStackMCP.providers.photos")

SESSION_TIMEOUT = "600s"  # upstream expiry of a picker session


@dataclass
class MediaItem:
    """An item returned by either the picker or the library API."""
    id: str
    base_url: str
    mime_type: str = ""
    type: str = ""  # "PHOTO" or "VIDEO" (picker API)
    filename: str = ""
    creation_time: str = ""
    width: int = 0
    height: int = 0
    has_video_metadata: bool = False

    @property
    def is_video(self) -> bool:
        return (
            self.type.upper() == "VIDEO"
            or self.mime_type.lower().startswith("video")
            or self.has_video_metadata
        )

    @classmethod
    def from_api(cls, data: dict) -> "MediaItem":
        media_file = data.get("mediaFile") or {}
        metadata = data.get("mediaMetadata") or media_file.get("mediaFileMetadata") or {}
        return cls(
            id=data.get("id", ""),
            base_url=media_file.get("baseUrl") or data.get("baseUrl") or "",
            mime_type=media_file.get("mimeType") or data.get("mimeType") or "",
            type=data.get("type", ""),
            filename=data.get("filename") or media_file.get("filename") or "",
            creation_time=data.get("creationTime") or data.get("createTime") or "",
            width=int(metadata.get("width") or 0),
            height=int(metadata.get("height") or 0),
            has_video_metadata=bool(metadata.get("video") or metadata.get("videoMetadata")),
        )


@dataclass
class PickerSession:
    """A provider-hosted selection session."""
    id: str
    picker_uri: str
    expire_time: str = ""
    media_items_set: bool = False


@dataclass
class MediaPage:
    items: list[MediaItem] = field(default_factory=list)
    next_page_token: Optional[str] = None


class PhotosClient:
    """Blocking HTTP client for the picker and library APIs.

    Failures are raised as ``StackError`` subclasses with a string-coded
    kind; raw transport exceptions never reach callers.
    """

    def __init__(self, access_token: Optional[str], config: Optional[StackConfig] = None):
        self.access_token = access_token
        self.config = config or StackConfig()

    def _base_url(self, api: str) -> str:
        if api == "library":
            return self.config.library_base_url
        return self.config.picker_base_url

    def _headers(self, extra: Optional[dict] = None, with_body: bool = False) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {self.access_token}"}
        if with_body:
            headers["Content-Type"] = "application/json"
        if extra:
            headers.update(extra)
        return headers

    def _request(self, method: str, endpoint: str, api: str = "picker",
                 params: Optional[dict] = None, json: Optional[dict] = None) -> dict:
        if not self.access_token:
            raise SessionExpired("Provider access token is missing. Please sign in.")

        url = endpoint if endpoint.startswith("http") else f"{self._base_url(api)}{endpoint}"
        try:
            resp = requests.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(with_body=method != "GET"),
                timeout=self.config.request_timeout,
            )
        except requests.RequestException as e:
            raise ProviderError(f"Could not reach the {api} API: {e}") from e
        return self._parse(resp, api)

    @staticmethod
    def _parse(resp, api: str) -> dict:
        if resp.status_code == 401:
            raise SessionExpired("Provider session expired. Please sign in again.")

        if not resp.ok:
            try:
                data = resp.json()
            except ValueError:
                data = {}
            error = data.get("error") if isinstance(data, dict) else None
            if not isinstance(error, dict):
                error = {"message": error} if isinstance(error, str) else {}
            message = error.get("message") or resp.reason or ""
            status = error.get("status")

            # Expected while the user is still selecting in the provider UI
            if status == "FAILED_PRECONDITION" or "PENDING_USER_ACTION" in message:
                raise PendingUserAction(message or "PENDING_USER_ACTION")

            if resp.status_code in (400, 403):
                logger.error(f"{api.upper()} API error {resp.status_code}: {data}")
            if resp.status_code == 403:
                raise InsufficientPermissions(message)
            raise ProviderError(message or f"{api} API error: {resp.status_code}")

        try:
            return resp.json()
        except ValueError:
            return {}

    # ── Picker API ──────────────────────────────────────────────────────

    def create_session(self) -> PickerSession:
        data = self._request(
            "POST", "/sessions",
            json={"pollingConfig": {"timeoutIn": SESSION_TIMEOUT}},
        )
        session = PickerSession(
            id=data["id"],
            picker_uri=data["pickerUri"],
            expire_time=data.get("expireTime", ""),
            media_items_set=bool(data.get("mediaItemsSet")),
        )
        logger.info(f"Created picker session {session.id}")
        return session

    def list_media_items(self, session_id: str, page_size: Optional[int] = None,
                         page_token: Optional[str] = None) -> MediaPage:
        params = {
            "sessionId": session_id,
            "pageSize": page_size or self.config.page_size,
        }
        if page_token:
            params["pageToken"] = page_token
        return self._page(self._request("GET", "/mediaItems", params=params))

    def get_media_item(self, item_id: str) -> MediaItem:
        return MediaItem.from_api(self._request("GET", f"/mediaItems/{item_id}"))

    def batch_get_media_items(self, item_ids: list[str]) -> list[MediaItem]:
        data = self._request("GET", "/mediaItems:batchGet", params={"mediaItemIds": item_ids})
        return [
            MediaItem.from_api(r["mediaItem"])
            for r in data.get("mediaItemResults", [])
            if r.get("mediaItem")
        ]

    # ── Library API ─────────────────────────────────────────────────────

    def list_library_media_items(self, page_size: int = 50,
                                 page_token: Optional[str] = None) -> MediaPage:
        params: dict = {"pageSize": page_size}
        if page_token:
            params["pageToken"] = page_token
        return self._page(self._request("GET", "/mediaItems", api="library", params=params))

    def upload_media(self, data: Union[bytes, Path], filename: str,
                     description: Optional[str] = None) -> MediaItem:
        """Two-phase upload: raw bytes for an upload token, then batchCreate."""
        if not self.access_token:
            raise UploadFailed(filename, "Not authenticated with the provider")
        if isinstance(data, Path):
            data = data.read_bytes()

        try:
            resp = requests.request(
                "POST",
                f"{self.config.library_base_url}/uploads",
                data=data,
                headers=self._headers({
                    "Content-Type": "application/octet-stream",
                    "X-Goog-Upload-Protocol": "raw",
                    "X-Goog-Upload-File-Name": filename,
                }),
                timeout=self.config.download_timeout,
            )
        except requests.RequestException as e:
            raise UploadFailed(filename, f"Failed to upload bytes: {e}") from e
        if not resp.ok:
            raise UploadFailed(filename, "Failed to upload bytes to the provider")
        upload_token = resp.text

        try:
            created = self._request(
                "POST", "/mediaItems:batchCreate", api="library",
                json={"newMediaItems": [{
                    "description": description or filename,
                    "simpleMediaItem": {"uploadToken": upload_token},
                }]},
            )
        except ProviderError as e:
            raise UploadFailed(filename, e.message) from e

        results = created.get("newMediaItemResults") or []
        if not results:
            raise UploadFailed(filename, "Provider returned no creation result")
        result = results[0]
        status = result.get("status") or {}
        if status.get("code") not in (0, None):
            raise UploadFailed(filename, status.get("message") or "Failed to create media item")

        item = MediaItem.from_api(result.get("mediaItem") or {})
        logger.info(f"Uploaded {filename} as {item.id}")
        return item

    # ── Downloads ───────────────────────────────────────────────────────

    def download_media_item(self, item_or_url: Union[MediaItem, str]) -> bytes:
        """Fetch item bytes, trying progressively rawer URLs, then with auth."""
        if isinstance(item_or_url, MediaItem):
            base = item_or_url.base_url
            is_video = item_or_url.is_video
        else:
            base = item_or_url
            is_video = "=dv" in base
        clean = clean_url(base)

        attempts = [download_url(clean, is_video), sized_url(clean, 9999, 9999), base]
        for url in attempts:
            content = self._try_download(url)
            if content:
                return content

        if self.access_token:
            for url in attempts[:2]:
                content = self._try_download(url, authenticated=True)
                if content:
                    return content

        raise ProviderError("All download attempts failed to retrieve the media")

    def _try_download(self, url: str, authenticated: bool = False) -> Optional[bytes]:
        headers = {"Authorization": f"Bearer {self.access_token}"} if authenticated else {}
        try:
            resp = requests.get(url, headers=headers, timeout=self.config.download_timeout)
        except requests.RequestException as e:
            logger.debug(f"Download attempt failed for {url}: {e}")
            return None
        if resp.ok and resp.content:
            return resp.content
        logger.debug(f"Download attempt for {url} returned {resp.status_code}")
        return None

    @staticmethod
    def _page(data: dict) -> MediaPage:
        return MediaPage(
            items=[MediaItem.from_api(i) for i in data.get("mediaItems") or []],
            next_page_token=data.get("nextPageToken"),
        )
