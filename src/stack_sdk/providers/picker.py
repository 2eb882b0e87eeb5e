"""Provider picker session: create, wait for the user, poll, page through results.

The user picks items in a provider-hosted UI that this process cannot
observe. After creating a session and opening its entry URL, the controller
polls the session's item list until the provider reports a non-empty
selection or a terminal error::

    IDLE -> SESSION_CREATED -> WAITING_FOR_USER <-> POLLING -> ITEMS_READY
                 \\________________ ERROR ________________/

Blocking client calls run in a worker thread. Every result is checked
against the active flag and the current session id before it is applied,
so a closed or restarted controller ignores late responses.
"""

import asyncio
import logging
import webbrowser
from enum import Enum
from typing import Callable, Optional

from ..config import DEFAULT_PAGE_SIZE, DEFAULT_POLL_INTERVAL
from ..errors import ErrorKind, PendingUserAction, StackError
from .photos import MediaItem, PhotosClient, PickerSession

logger = logging.getLogger("StoryStackMCP.providers.picker")


class PickerState(str, Enum):
    IDLE = "idle"
    SESSION_CREATED = "session_created"
    WAITING_FOR_USER = "waiting_for_user"
    POLLING = "polling"
    ITEMS_READY = "items_ready"
    ERROR = "error"


TRANSITIONS: dict[PickerState, set[PickerState]] = {
    PickerState.IDLE: {PickerState.SESSION_CREATED, PickerState.ERROR},
    PickerState.SESSION_CREATED: {PickerState.WAITING_FOR_USER, PickerState.ERROR},
    PickerState.WAITING_FOR_USER: {PickerState.POLLING, PickerState.ITEMS_READY, PickerState.ERROR},
    PickerState.POLLING: {PickerState.POLLING, PickerState.WAITING_FOR_USER,
                          PickerState.ITEMS_READY, PickerState.ERROR},
    PickerState.ITEMS_READY: set(),
    PickerState.ERROR: set(),
}

AWAITING_STATES = (PickerState.WAITING_FOR_USER, PickerState.POLLING)


class PickerSessionController:
    """Drives one provider picker session at a time."""

    def __init__(self, client: PhotosClient,
                 opener: Optional[Callable[[str], object]] = None,
                 poll_interval: float = DEFAULT_POLL_INTERVAL,
                 page_size: int = DEFAULT_PAGE_SIZE,
                 on_change: Optional[Callable[[PickerState], None]] = None):
        self._client = client
        self._opener = opener or webbrowser.open_new_tab
        self.poll_interval = poll_interval
        self.page_size = page_size
        self._on_change = on_change

        self.state = PickerState.IDLE
        self.session: Optional[PickerSession] = None
        self.error: Optional[StackError] = None
        self.items: list[MediaItem] = []
        self.page_token: Optional[str] = None
        self.next_page_token: Optional[str] = None
        self._page_tokens: list[Optional[str]] = []
        self._selected: set[str] = set()

        self._active = True
        self._generation = 0
        self._poll_task: Optional[asyncio.Task] = None
        self.fetch_count = 0

    # ── Lifecycle ───────────────────────────────────────────────────────

    async def start(self) -> Optional[PickerSession]:
        """Create a session and open its picker UI. Items are not fetched yet."""
        self._stop_polling()
        self._reset()
        self._active = True
        self._generation += 1
        generation = self._generation

        try:
            session = await asyncio.to_thread(self._client.create_session)
        except StackError as e:
            if generation != self._generation:
                return None
            logger.error(f"Failed to start selection session: {e}")
            self._fail(e)
            return None
        # A later start() or close() supersedes this call
        if not self._active or generation != self._generation:
            logger.debug(f"Dropping superseded session {session.id}")
            return None

        self.session = session
        self._transition(PickerState.SESSION_CREATED)
        self._opener(session.picker_uri)
        self._transition(PickerState.WAITING_FOR_USER)
        self._poll_task = asyncio.create_task(self._poll_loop(session.id))
        return session

    def close(self):
        """Abandon the session. Late results are dropped; imported slides are unaffected."""
        self._active = False
        self._generation += 1
        self._stop_polling()
        self._reset()

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    async def wait_for_polling(self):
        """Wait until the polling task has ended."""
        task = self._poll_task
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None

    # ── Fetching ────────────────────────────────────────────────────────

    async def fetch_now(self) -> list[MediaItem]:
        """The user says they are done selecting: fetch immediately."""
        if self.session is None:
            return []
        if self.state is PickerState.ITEMS_READY:
            await self._load_page(self.page_token)
        elif self.state in (PickerState.WAITING_FOR_USER, PickerState.POLLING):
            await self._fetch(self.session.id)
        return self.items

    async def on_visibility_regained(self):
        """Best-effort refresh when the user returns from the provider UI."""
        if (self.session is None or self.items
                or self.state is not PickerState.WAITING_FOR_USER):
            return
        await self._fetch(self.session.id, silent=True)

    async def next_page(self) -> bool:
        if self.state is not PickerState.ITEMS_READY or not self.next_page_token:
            return False
        previous, target = self.page_token, self.next_page_token
        if not await self._load_page(target):
            return False
        self._page_tokens.append(previous)
        self.page_token = target
        return True

    async def prev_page(self) -> bool:
        if self.state is not PickerState.ITEMS_READY or not self._page_tokens:
            return False
        target = self._page_tokens[-1]
        if not await self._load_page(target):
            return False
        self._page_tokens.pop()
        self.page_token = target
        return True

    @property
    def has_prev_page(self) -> bool:
        return bool(self._page_tokens)

    # ── Selection within the results ────────────────────────────────────

    def toggle_select(self, item_id: str) -> bool:
        """Flip an item's selection. Returns whether it is now selected."""
        if item_id in self._selected:
            self._selected.discard(item_id)
            return False
        if not any(i.id == item_id for i in self.items):
            raise KeyError(f"Item {item_id} is not in the current results")
        self._selected.add(item_id)
        return True

    def selected_items(self) -> list[MediaItem]:
        return [i for i in self.items if i.id in self._selected]

    def confirm_selection(self) -> list[MediaItem]:
        chosen = self.selected_items()
        self._selected.clear()
        return chosen

    # ── Internals ───────────────────────────────────────────────────────

    async def _poll_loop(self, session_id: str):
        while self._is_current(session_id) and self.state in AWAITING_STATES:
            await asyncio.sleep(self.poll_interval)
            if not self._is_current(session_id):
                break
            # Skip the tick while a manual fetch is in flight
            if self.state is PickerState.WAITING_FOR_USER:
                await self._fetch(session_id)
        logger.debug(f"Polling for session {session_id} stopped in state {self.state.value}")

    async def _fetch(self, session_id: str, silent: bool = False) -> bool:
        """One list call against the session. Returns True when items arrived."""
        self.fetch_count += 1
        if not silent:
            self._transition(PickerState.POLLING)
        try:
            page = await asyncio.to_thread(
                self._client.list_media_items, session_id, self.page_size, None,
            )
        except PendingUserAction:
            if self._is_current(session_id) and self.state is PickerState.POLLING:
                self._transition(PickerState.WAITING_FOR_USER)
            return False
        except StackError as e:
            if not self._is_current(session_id):
                return False
            if silent:
                logger.debug(f"Silent refresh failed, ignoring: {e}")
                return False
            logger.error(f"Fetching picked items failed: {e}")
            self._fail(e)
            return False

        if not self._is_current(session_id):
            return False
        if page.items:
            self.items = page.items
            self.next_page_token = page.next_page_token
            self.error = None
            if self._transition(PickerState.ITEMS_READY):
                logger.info(f"Session {session_id} returned {len(page.items)} items")
            self._stop_polling()
            return True
        if self.state is PickerState.POLLING:
            self._transition(PickerState.WAITING_FOR_USER)
        return False

    async def _load_page(self, page_token: Optional[str]) -> bool:
        session = self.session
        if session is None:
            return False
        try:
            page = await asyncio.to_thread(
                self._client.list_media_items, session.id, self.page_size, page_token,
            )
        except StackError as e:
            if self._is_current(session.id):
                logger.warning(f"Page load failed: {e}")
                self.error = e
            return False
        if not self._is_current(session.id):
            return False
        self.items = page.items
        self.next_page_token = page.next_page_token
        self.error = None
        return True

    def _transition(self, new_state: PickerState) -> bool:
        if new_state not in TRANSITIONS[self.state]:
            logger.debug(f"Ignoring transition {self.state.value} -> {new_state.value}")
            return False
        self.state = new_state
        if self._on_change:
            self._on_change(new_state)
        return True

    def _fail(self, error: StackError):
        if self._transition(PickerState.ERROR):
            self.error = error
        self._stop_polling()

    def _is_current(self, session_id: str) -> bool:
        return self._active and self.session is not None and self.session.id == session_id

    def _stop_polling(self):
        task = self._poll_task
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is not current:
            task.cancel()

    def _reset(self):
        self.state = PickerState.IDLE
        self.session = None
        self.error = None
        self.items = []
        self.page_token = None
        self.next_page_token = None
        self._page_tokens = []
        self._selected = set()
