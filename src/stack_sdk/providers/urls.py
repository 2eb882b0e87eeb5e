"""Provider URL helpers: size/playback suffixes and proxy wrapping."""

from typing import Optional
from urllib.parse import quote

PROVIDER_HOSTS = ("googleusercontent.com", "photoslibrary.googleapis.com")
PROXY_PATH = "/functions/v1/get-google-media"
DISPLAY_WIDTH = 2048


def is_provider_hosted(url: Optional[str]) -> bool:
    return bool(url) and any(host in url for host in PROVIDER_HOSTS)


def clean_url(url: Optional[str]) -> str:
    """Strip any ``=...`` suffix so a new one can be appended."""
    if not url:
        return ""
    return url.split("=")[0]


def sized_url(base_url: str, width: int, height: Optional[int] = None) -> str:
    base = clean_url(base_url)
    if height is None:
        return f"{base}=w{width}"
    return f"{base}=w{width}-h{height}"


def playable_url(base_url: str) -> str:
    return f"{clean_url(base_url)}=dv"


def download_url(base_url: str, is_video: bool = False) -> str:
    return f"{clean_url(base_url)}={'dv' if is_video else 'd'}"


def display_url(base_url: str, is_video: bool) -> str:
    """The URL stored on a slide: playable video or a display-sized image."""
    return playable_url(base_url) if is_video else sized_url(base_url, DISPLAY_WIDTH)


def proxy_url(url: str, proxy_base: str, token: Optional[str] = None,
              share_token: Optional[str] = None) -> str:
    """Wrap a provider URL for authenticated access through the media proxy.

    The URL is passed through as-is; callers add the suffix they need first.
    """
    if not url:
        return ""
    wrapped = f"{proxy_base.rstrip('/')}{PROXY_PATH}?url={quote(url, safe='')}"
    if token:
        wrapped += f"&token={quote(token, safe='')}"
    if share_token:
        wrapped += f"&share_token={quote(share_token, safe='')}"
    return wrapped
