"""ConversationArchive — JSON file persistence for the conversation mapping."""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from querya.conversations.models import Conversation

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


class ConversationArchive:
    """Loads and saves every conversation as one JSON object keyed by ID.

    All methods are synchronous; the file is small and written once per turn.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, Conversation]:
        """Read the archive. A missing or corrupt file loads as empty.

        Accepts both the ``{id: record}`` mapping written by ``save`` and a
        list of ``[id, record]`` pairs.
        """
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.warning("Could not read %s, starting fresh", self._path, exc_info=True)
            return {}

        entries: list[tuple[str, Any]]
        if isinstance(raw, dict):
            entries = list(raw.items())
        elif isinstance(raw, list):
            entries = [tuple(pair) for pair in raw if isinstance(pair, list | tuple) and len(pair) == 2]
        else:
            logger.warning("Unexpected archive format in %s, starting fresh", self._path)
            return {}

        conversations: dict[str, Conversation] = {}
        for key, record in entries:
            try:
                conversation = Conversation.model_validate(record)
            except ValidationError:
                logger.warning("Skipping unreadable conversation %s", key, exc_info=True)
                continue
            conversations[conversation.id] = conversation

        logger.info("Loaded %d conversation(s) from %s", len(conversations), self._path)
        return conversations

    def save(self, conversations: dict[str, Conversation]) -> None:
        """Write the mapping atomically (temp file, then replace)."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = {cid: conv.model_dump(mode="json") for cid, conv in conversations.items()}

        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=".conversations-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self._path)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise
