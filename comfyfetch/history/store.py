"""
Download History Store

Persists the resources a user committed to an installer action:
- Newest entries first
- Deduplicated by download URL (later duplicates are dropped, not merged)
- Whole history can be cleared
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from pydantic import TypeAdapter, ValidationError

from ..core.models import EnrichedResource, HistoryItem

logger = logging.getLogger(__name__)

_HISTORY_ADAPTER = TypeAdapter(List[HistoryItem])


class HistoryStore:
    """
    JSON-file backed history of committed resources.

    The file holds a JSON array of HistoryItem objects, newest first.
    """

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def list(self) -> List[HistoryItem]:
        """Load all entries, newest first. A corrupt file reads as empty."""
        if not self.path.exists():
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return _HISTORY_ADAPTER.validate_python(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"[history] Failed to load history from {self.path}, ignoring it: {e}")
            return []

    def add(
        self,
        resources: Iterable[EnrichedResource],
        now: Optional[datetime] = None,
    ) -> List[HistoryItem]:
        """
        Record a commit of resources.

        Resources without a URL, or whose URL is already in history or
        appeared earlier in this same commit, are dropped. Survivors are
        prepended in their given order.

        Returns:
            The entries actually added
        """
        timestamp = now or datetime.now()
        existing = self.list()
        seen_urls = {item.download_url.strip() for item in existing}

        added: List[HistoryItem] = []
        for resource in resources:
            url = (resource.download_url or "").strip()
            if not url or url in seen_urls:
                continue
            seen_urls.add(url)
            item = HistoryItem.from_resource(resource, date_added=timestamp)
            item.download_url = url
            added.append(item)

        if added:
            self._write(added + existing)
            logger.info(f"[history] Added {len(added)} entries ({len(added) + len(existing)} total)")
        return added

    def clear(self) -> int:
        """Remove all entries. Returns the number removed."""
        count = len(self.list())
        if self.path.exists():
            self.path.unlink()
        logger.info(f"[history] Cleared {count} entries")
        return count

    def _write(self, items: List[HistoryItem]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "wb") as f:
            f.write(_HISTORY_ADAPTER.dump_json(items, indent=2))
        tmp_path.replace(self.path)
