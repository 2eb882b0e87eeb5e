"""Story Stack MCP Server - MCP tools for building media stories through Claude Desktop."""

from mcp.server.fastmcp import FastMCP, Context
import json
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Any, Optional
from pathlib import Path

# SDK imports
from stack_sdk.config import StackConfig
from stack_sdk.core.canvas import LayerKind
from stack_sdk.core.layers import render_order
from stack_sdk.core.serializer import deserialize, save_stack as persist_stack, validate
from stack_sdk.core.state import EditorState, FONTS, STICKERS
from stack_sdk.core.store import JsonStackStore
from stack_sdk.errors import StackError
from stack_sdk.intake.importer import MediaImporter, slide_from_provider, slides_from_library
from stack_sdk.providers.auth import ProviderAuth
from stack_sdk.providers.photos import PhotosClient
from stack_sdk.providers.picker import PickerSessionController, PickerState
from stack_sdk.providers.resolver import UrlResolver

# Configure logging
logging.basicConfig(level=logging.INFO,
                    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger("StoryStackMCP")


# ── Global State ────────────────────────────────────────────────────────

_config = StackConfig.from_env()
_auth = ProviderAuth()
_editor = EditorState()
_store = JsonStackStore(_config.store_dir)
_picker: Optional[PickerSessionController] = None


def _get_access_token() -> str:
    return _config.access_token or _auth.ensure_token()


def _get_client() -> PhotosClient:
    return PhotosClient(_get_access_token(), config=_config)


def _error(e: Exception) -> str:
    if isinstance(e, StackError):
        return json.dumps({"status": "error", **e.to_dict()}, indent=2)
    return f"Error: {str(e)}"


def _slide_summary(index: int) -> dict:
    slide = _editor.draft.sequence[index]
    return {
        "index": index,
        "id": slide.id,
        "type": slide.type.value,
        "filename": slide.filename,
        "caption": slide.caption,
        "text_layers": len(slide.text_layers),
        "sticker_layers": len(slide.sticker_layers),
        "trim": [slide.video_start_time, slide.video_end_time] if slide.is_video else None,
        "synced": slide.is_synced_to_google,
    }


# ── Server Setup ────────────────────────────────────────────────────────

@asynccontextmanager
async def server_lifespan(server: FastMCP) -> AsyncIterator[Dict[str, Any]]:
    try:
        logger.info("StoryStackMCP server starting up")
        if not _get_access_token():
            logger.warning("No provider credentials - provider import and upload are disabled")
        yield {}
    finally:
        global _picker
        if _picker:
            _picker.close()
            _picker = None
        logger.info("StoryStackMCP server shut down")


mcp = FastMCP("StoryStackMCP", lifespan=server_lifespan)


# ═══════════════════════════════════════════════════════════════════════
# STACK MANAGEMENT TOOLS
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
def create_stack(ctx: Context, title: str, description: str = "",
                 participants: str = "", hashtags: str = "") -> str:
    """Start a new stack (story).

    Parameters:
    - title: Stack title
    - description: Optional description
    - participants: Comma-separated participant names
    - hashtags: Comma-separated hashtags (leading # optional)
    """
    _editor.reset()
    _editor.draft.title = title
    _editor.draft.description = description
    for name in participants.split(","):
        _editor.add_participant(name)
    for tag in hashtags.split(","):
        _editor.add_hashtag(tag)
    return json.dumps({
        "status": "created",
        "title": title,
        "participants": _editor.draft.participants,
        "hashtags": _editor.draft.hashtags,
    }, indent=2)


@mcp.tool()
def load_stack(ctx: Context, stack_id: str) -> str:
    """Load a saved stack for editing.

    Parameters:
    - stack_id: Id returned by save_stack or list_stacks
    """
    try:
        record = _store.load(stack_id)
    except FileNotFoundError as e:
        return _error(e)
    _editor.reset()
    _editor.draft = deserialize(record)
    _editor.stack_id = stack_id
    _editor.edit_slide(0)
    return json.dumps({
        "status": "loaded",
        "title": _editor.draft.title,
        "slide_count": len(_editor.draft.sequence),
    }, indent=2)


@mcp.tool()
def list_stacks(ctx: Context) -> str:
    """List saved stacks."""
    return json.dumps(_store.list_stacks(), indent=2)


@mcp.tool()
def get_stack_status(ctx: Context) -> str:
    """Show the stack being edited: details, slides, selection and problems."""
    draft = _editor.draft
    return json.dumps({
        "stack_id": _editor.stack_id,
        "title": draft.title,
        "description": draft.description,
        "participants": draft.participants,
        "hashtags": draft.hashtags,
        "music": draft.music.model_dump() if draft.music else None,
        "editing_index": draft.sequence.editing_index,
        "selection": repr(_editor.composer.selection),
        "slides": [_slide_summary(i) for i in range(len(draft.sequence))],
        "problems": validate(draft),
        "undo_depth": len(_editor.undo_stack),
    }, indent=2)


@mcp.tool()
def set_stack_details(ctx: Context, title: str = "", description: str = "",
                      music_url: str = "", music_name: str = "",
                      participant: str = "", hashtag: str = "") -> str:
    """Update stack details. Empty parameters are left unchanged.

    Parameters:
    - title / description: New values
    - music_url / music_name: Background music reference
    - participant: A participant name to add
    - hashtag: A hashtag to add
    """
    _editor.checkpoint("Before editing stack details")
    if title:
        _editor.draft.title = title
    if description:
        _editor.draft.description = description
    if music_url:
        _editor.set_music(music_url, music_name)
    if participant:
        _editor.add_participant(participant)
    if hashtag:
        _editor.add_hashtag(hashtag)
    return get_stack_status(ctx)


@mcp.tool()
def save_stack(ctx: Context) -> str:
    """Validate and save the current stack (creates it, or updates a loaded one)."""
    try:
        stack_id = persist_stack(_editor.draft, _store, _editor.stack_id)
    except StackError as e:
        return _error(e)
    if stack_id is None:
        return "Error: Failed to save stack. See server log for details."
    _editor.stack_id = stack_id
    return json.dumps({"status": "saved", "stack_id": _editor.stack_id}, indent=2)


@mcp.tool()
def undo(ctx: Context) -> str:
    """Undo the last change."""
    description = _editor.undo()
    if description is None:
        return "Nothing to undo."
    return f"Undone: {description}"


# ═══════════════════════════════════════════════════════════════════════
# MEDIA IMPORT TOOLS
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
def add_library_media(ctx: Context, items_json: str) -> str:
    """Append media picked from the internal library.

    Parameters:
    - items_json: JSON list of {"id", "url", "type", "filename"} records
    """
    try:
        items = json.loads(items_json)
    except json.JSONDecodeError as e:
        return f"Error: Invalid JSON: {str(e)}"
    if not isinstance(items, list):
        return "Error: items_json must be a JSON list."
    try:
        slides = slides_from_library(items)
    except (AttributeError, TypeError, ValueError) as e:
        return _error(e)
    _editor.checkpoint("Before adding library media")
    added = _editor.add_slides(slides)
    return json.dumps({"status": "added", "count": len(added),
                       "slide_count": len(_editor.draft.sequence)}, indent=2)


@mcp.tool()
def upload_device_files(ctx: Context, file_paths: str) -> str:
    """Upload local files to the photo provider and append them as slides.

    Parameters:
    - file_paths: Comma-separated list of local file paths
    """
    paths = [Path(p.strip()) for p in file_paths.split(",") if p.strip()]
    if not paths:
        return "Error: No files given."
    if not _get_access_token():
        return "Error: Provider sign-in required for upload."

    importer = MediaImporter(_get_client())
    report = importer.upload_files(paths)
    if report.slides:
        _editor.checkpoint("Before uploading files")
        _editor.add_slides(report.slides)
    return json.dumps({
        "status": "ok" if report.ok else "partial",
        "uploaded": [s.filename for s in report.slides],
        "failed": [f.to_dict() for f in report.failures],
    }, indent=2)


@mcp.tool()
async def start_provider_picking(ctx: Context) -> str:
    """Create a provider picker session and open it in the browser.

    Items are polled automatically every few seconds once the user finishes
    selecting. Use get_picker_status or fetch_provider_items to check.
    """
    global _picker
    if _picker:
        _picker.close()
    _picker = PickerSessionController(
        _get_client(),
        poll_interval=_config.poll_interval,
        page_size=_config.page_size,
        on_change=lambda state: logger.info(f"Picker state: {state.value}"),
    )
    session = await _picker.start()
    if session is None:
        return _error(_picker.error)
    return json.dumps({
        "status": _picker.state.value,
        "session_id": session.id,
        "picker_uri": session.picker_uri,
    }, indent=2)


def _picker_status() -> dict:
    if _picker is None:
        return {"status": PickerState.IDLE.value, "items": []}
    return {
        "status": _picker.state.value,
        "error": _picker.error.to_dict() if _picker.error else None,
        "items": [
            {"id": i.id, "filename": i.filename, "video": i.is_video}
            for i in _picker.items
        ],
        "has_next_page": bool(_picker.next_page_token),
        "has_prev_page": _picker.has_prev_page,
    }


@mcp.tool()
def get_picker_status(ctx: Context) -> str:
    """Report the picker session state and any items ready for import."""
    return json.dumps(_picker_status(), indent=2)


@mcp.tool()
async def fetch_provider_items(ctx: Context, page: str = "") -> str:
    """Fetch picked items now, or move between result pages.

    Parameters:
    - page: "" to fetch now, "next" or "prev" to page through results
    """
    if _picker is None:
        return "Error: No picker session. Use start_provider_picking first."
    if page == "next":
        await _picker.next_page()
    elif page == "prev":
        await _picker.prev_page()
    else:
        await _picker.fetch_now()
    return json.dumps(_picker_status(), indent=2)


@mcp.tool()
def import_provider_items(ctx: Context, item_ids: str = "") -> str:
    """Append picked provider items as slides.

    Parameters:
    - item_ids: Comma-separated ids to import (default: all items on the current page)
    """
    if _picker is None or _picker.state is not PickerState.ITEMS_READY:
        return "Error: No picked items are ready yet."
    wanted = [i.strip() for i in item_ids.split(",") if i.strip()]
    for item_id in wanted:
        try:
            _picker.toggle_select(item_id)
        except KeyError as e:
            return f"Error: {str(e)}"
    chosen = _picker.confirm_selection() if wanted else list(_picker.items)
    _editor.checkpoint("Before importing provider items")
    added = _editor.add_slides([slide_from_provider(i) for i in chosen])
    return json.dumps({"status": "imported", "count": len(added),
                       "slide_count": len(_editor.draft.sequence)}, indent=2)


# ═══════════════════════════════════════════════════════════════════════
# SLIDE SEQUENCE TOOLS
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
def edit_slide(ctx: Context, index: int) -> str:
    """Select the slide to annotate (clears the layer selection).

    Parameters:
    - index: Slide position, 0-based
    """
    if _editor.edit_slide(index) is None:
        return "Error: The stack has no slides."
    return json.dumps(_slide_summary(_editor.draft.sequence.editing_index), indent=2)


@mcp.tool()
def remove_slide(ctx: Context, index: int) -> str:
    """Remove a slide from the stack.

    Parameters:
    - index: Slide position, 0-based
    """
    try:
        with _editor.checkpointed(f"Before removing slide {index}"):
            removed = _editor.remove_slide(index)
    except IndexError as e:
        return _error(e)
    return f"Removed slide '{removed.filename or removed.id}'. {len(_editor.draft.sequence)} slides remain."


@mcp.tool()
def reorder_slide(ctx: Context, from_index: int, to_index: int) -> str:
    """Move one slide to a new position.

    Parameters:
    - from_index: Current position
    - to_index: Target position
    """
    try:
        with _editor.checkpointed("Before reordering slides"):
            _editor.reorder_slides(from_index, to_index)
    except IndexError as e:
        return _error(e)
    return json.dumps([s.id for s in _editor.draft.slides], indent=2)


@mcp.tool()
def set_trim(ctx: Context, start: float, end: float = -1.0, total_duration: float = 0.0) -> str:
    """Trim the current video slide to [start, end] seconds.

    Parameters:
    - start: Start time in seconds
    - end: End time in seconds (-1 for the end of the video)
    - total_duration: Video length, if known
    """
    try:
        trim = _editor.trim()
    except (RuntimeError, ValueError) as e:
        return _error(e)
    _editor.checkpoint("Before trimming video")
    if total_duration > 0:
        trim.on_metadata_loaded(total_duration)
    start, end = trim.set_window(start, None if end < 0 else end)
    return json.dumps({"start": start, "end": end, "total": trim.total}, indent=2)


@mcp.tool()
def resolve_slide_url(ctx: Context, index: int, share_token: str = "") -> str:
    """Return a loadable URL for a slide, refreshing provider links.

    Parameters:
    - index: Slide position, 0-based
    - share_token: Optional share token for viewers without credentials
    """
    try:
        slide = _editor.draft.sequence[index]
    except IndexError as e:
        return _error(e)
    resolver = UrlResolver(
        _config.proxy_base_url,
        access_token=_get_access_token() or None,
        share_token=share_token or None,
        client_factory=lambda token: PhotosClient(token, config=_config),
    )
    return resolver.resolve_slide(slide) or ""


# ═══════════════════════════════════════════════════════════════════════
# LAYER TOOLS
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
def add_text_layer(ctx: Context, text: str = "New text") -> str:
    """Add a text layer at the center of the current slide."""
    try:
        with _editor.checkpointed("Before adding text"):
            layer = _editor.composer.add_text(text)
    except RuntimeError as e:
        return _error(e)
    return layer.model_dump_json(indent=2)


@mcp.tool()
def add_sticker(ctx: Context, glyph: str) -> str:
    """Add a sticker at the center of the current slide.

    Parameters:
    - glyph: An emoji; see list_palettes for suggestions
    """
    try:
        with _editor.checkpointed("Before adding sticker"):
            layer = _editor.composer.add_sticker(glyph)
    except RuntimeError as e:
        return _error(e)
    return layer.model_dump_json(indent=2)


@mcp.tool()
def update_layer(ctx: Context, layer_id: str, patch_json: str) -> str:
    """Change fields of a text or sticker layer.

    Parameters:
    - layer_id: Layer id
    - patch_json: JSON object, e.g. {"text": "Hi", "font_size": 36, "color": "#ff0000"}
    """
    try:
        patch = json.loads(patch_json)
        with _editor.checkpointed("Before updating layer"):
            layer = _editor.composer.update(layer_id, **patch)
    except (json.JSONDecodeError, TypeError, KeyError, ValueError, RuntimeError) as e:
        return _error(e)
    return layer.model_dump_json(indent=2)


@mcp.tool()
def move_layer(ctx: Context, kind: str, x: float, y: float, layer_id: str = "") -> str:
    """Place a layer at (x, y) percent of the canvas. Values are clamped to 2-98.

    Parameters:
    - kind: "text", "sticker" or "caption"
    - x, y: Position in percent
    - layer_id: Layer id (not needed for the caption)
    """
    try:
        with _editor.checkpointed("Before moving layer"):
            _editor.composer.move(LayerKind(kind), layer_id, x, y)
    except (KeyError, ValueError, RuntimeError) as e:
        return _error(e)
    return get_layers(ctx)


@mcp.tool()
def remove_layer(ctx: Context, layer_id: str) -> str:
    """Remove a text or sticker layer from the current slide."""
    try:
        with _editor.checkpointed("Before removing layer"):
            removed = _editor.composer.remove(layer_id)
    except RuntimeError as e:
        return _error(e)
    if not removed:
        _editor.discard_checkpoint()
        return f"Error: Layer {layer_id} not found."
    return "Layer removed."


@mcp.tool()
def set_caption(ctx: Context, text: str, font_size: int = 0, color: str = "",
                rotation: Optional[float] = None) -> str:
    """Set the caption of the current slide.

    Parameters:
    - text: Caption text (empty hides the caption)
    - font_size: Size in px (0 keeps the current one)
    - color: Hex color
    - rotation: Tilt in degrees
    """
    patch: dict = {"text": text}
    if font_size:
        patch["font_size"] = font_size
    if color:
        patch["color"] = color
    if rotation is not None:
        patch["rotation"] = rotation
    try:
        with _editor.checkpointed("Before editing caption"):
            _editor.composer.set_caption(**patch)
        _editor.composer.select_caption()
    except (ValueError, RuntimeError) as e:
        return _error(e)
    return get_layers(ctx)


@mcp.tool()
def get_layers(ctx: Context) -> str:
    """List the current slide's layers bottom-to-top."""
    slide = _editor.current_slide
    if slide is None:
        return "Error: The stack has no slides."
    layers = []
    for kind, layer in render_order(slide):
        if kind is LayerKind.CAPTION:
            layers.append({"kind": kind.value, "text": slide.caption,
                           "x": slide.caption_x, "y": slide.caption_y})
        else:
            layers.append({"kind": kind.value, **layer.model_dump()})
    return json.dumps(layers, indent=2, ensure_ascii=False)


@mcp.tool()
def list_palettes(ctx: Context) -> str:
    """List the built-in stickers and fonts."""
    return json.dumps({"stickers": STICKERS, "fonts": FONTS}, indent=2, ensure_ascii=False)


# ═══════════════════════════════════════════════════════════════════════
# MCP PROMPT
# ═══════════════════════════════════════════════════════════════════════

@mcp.prompt()
def story_stack_workflow() -> str:
    """Recommended workflow for building a story stack"""
    return """You are helping the user build a story stack. Follow this workflow:

1. **Create Stack**: Use create_stack() with a title, participants and hashtags.

2. **Add Media**:
   - add_library_media() for items already in the media library
   - upload_device_files() to upload local photos and videos
   - start_provider_picking() to pick from the cloud photo provider, then
     fetch_provider_items() once the user is done and import_provider_items()

3. **Arrange**: Use reorder_slide() and remove_slide(); edit_slide() picks the
   slide to annotate.

4. **Annotate**: add_text_layer(), add_sticker(), set_caption(), then
   move_layer() / update_layer() to refine. Use set_trim() on videos.

5. **Save**: save_stack(). It reports what is missing if the stack is not
   ready (a title and at least one slide are required).

Tips:
- Positions are percentages of the canvas, clamped to 2-98
- Use undo() if you make a mistake
- Use get_stack_status() to check overall progress
"""


# ── Main ────────────────────────────────────────────────────────────────

def main():
    """Run the MCP server"""
    mcp.run()


if __name__ == "__main__":
    main()
