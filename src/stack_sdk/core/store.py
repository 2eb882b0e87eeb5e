"""File-backed stack store: one JSON document per saved stack."""

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger("StoryStackMCP.core.store")


class JsonStackStore:
    """Stores serialized stacks under ``root/<id>.json``."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def _path(self, stack_id: str) -> Path:
        return self.root / f"{stack_id}.json"

    def create(self, payload: dict) -> str:
        stack_id = uuid.uuid4().hex
        now = datetime.now(timezone.utc).isoformat()
        record = {"id": stack_id, **payload, "created_at": now, "updated_at": now}
        self._write(stack_id, record)
        logger.info(f"Created stack {stack_id} '{payload.get('title', '')}'")
        return stack_id

    def update(self, stack_id: str, payload: dict) -> None:
        existing = self.load(stack_id)
        record = {
            **existing,
            **payload,
            "id": stack_id,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        self._write(stack_id, record)
        logger.info(f"Updated stack {stack_id}")

    def load(self, stack_id: str) -> dict:
        path = self._path(stack_id)
        if not path.exists():
            raise FileNotFoundError(f"No stack {stack_id} in {self.root}")
        return json.loads(path.read_text())

    def list_stacks(self) -> list[dict]:
        if not self.root.exists():
            return []
        stacks = []
        for path in sorted(self.root.glob("*.json")):
            try:
                data = json.loads(path.read_text())
            except json.JSONDecodeError as e:
                logger.warning(f"Skipping corrupt stack file {path.name}: {e}")
                continue
            stacks.append({
                "id": data.get("id", path.stem),
                "title": data.get("title", ""),
                "cover_url": data.get("cover_url"),
                "slide_count": len(data.get("media_items", [])),
                "updated_at": data.get("updated_at"),
            })
        return stacks

    def _write(self, stack_id: str, record: dict):
        self.root.mkdir(parents=True, exist_ok=True)
        self._path(stack_id).write_text(json.dumps(record, indent=2, ensure_ascii=False))
