"""Runtime configuration read from environment variables."""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

DEFAULT_PICKER_BASE_URL = "https://photospicker.googleapis.com/v1"
DEFAULT_LIBRARY_BASE_URL = "https://photoslibrary.googleapis.com/v1"
DEFAULT_POLL_INTERVAL = 3.0  # seconds
DEFAULT_PAGE_SIZE = 48
DEFAULT_REQUEST_TIMEOUT = 15
DEFAULT_DOWNLOAD_TIMEOUT = 30
DEFAULT_STORE_DIR = "./stacks"


class StackConfig(BaseModel):
    """Settings shared by the provider client, picker and store."""
    picker_base_url: str = DEFAULT_PICKER_BASE_URL
    library_base_url: str = DEFAULT_LIBRARY_BASE_URL
    proxy_base_url: str = ""
    poll_interval: float = DEFAULT_POLL_INTERVAL
    page_size: int = DEFAULT_PAGE_SIZE
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    download_timeout: float = DEFAULT_DOWNLOAD_TIMEOUT
    store_dir: Path = Path(DEFAULT_STORE_DIR)
    access_token: Optional[str] = None

    @classmethod
    def from_env(cls) -> "StackConfig":
        return cls(
            picker_base_url=os.getenv("STACK_PICKER_BASE_URL", DEFAULT_PICKER_BASE_URL),
            library_base_url=os.getenv("STACK_LIBRARY_BASE_URL", DEFAULT_LIBRARY_BASE_URL),
            proxy_base_url=os.getenv("STACK_PROXY_BASE_URL", os.getenv("SUPABASE_URL", "")),
            poll_interval=float(os.getenv("STACK_POLL_INTERVAL", DEFAULT_POLL_INTERVAL)),
            page_size=int(os.getenv("STACK_PAGE_SIZE", DEFAULT_PAGE_SIZE)),
            request_timeout=float(os.getenv("STACK_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT)),
            download_timeout=float(os.getenv("STACK_DOWNLOAD_TIMEOUT", DEFAULT_DOWNLOAD_TIMEOUT)),
            store_dir=Path(os.getenv("STACK_STORE_DIR", DEFAULT_STORE_DIR)),
            access_token=os.getenv("GOOGLE_ACCESS_TOKEN") or None,
        )
