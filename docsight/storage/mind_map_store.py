# docsight/storage/mind_map_store.py

import json
import logging
import os
import re
from typing import Any, Dict, List, Optional

from docsight.config import MIND_MAPS_DIRNAME, STORAGE_DIR


logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"^[A-Za-z0-9_\-]+$")


class MindMapStore:
    """One JSON file per mind map under ``<storage>/mindmaps``."""

    def __init__(self, storage_dir: str = STORAGE_DIR):

        self.directory = os.path.join(storage_dir, MIND_MAPS_DIRNAME)

        os.makedirs(self.directory, exist_ok=True)

    def _path(self, mind_map_id: str) -> Optional[str]:

        # Ids come from URLs; keep them inside the directory
        if not _SAFE_ID.match(mind_map_id or ""):
            return None

        return os.path.join(self.directory, f"{mind_map_id}.json")

    def save(self, mind_map: Dict[str, Any]) -> str:

        path = self._path(mind_map["id"])

        if path is None:
            raise ValueError(f"Invalid mind map id: {mind_map['id']}")

        with open(path, "w", encoding="utf-8") as f:
            json.dump(mind_map, f, indent=2, default=str)

        logger.info("Mind map saved", extra={"mind_map_id": mind_map["id"]})

        return path

    def get(self, mind_map_id: str) -> Optional[Dict[str, Any]]:

        path = self._path(mind_map_id)

        if path is None or not os.path.exists(path):
            return None

        try:

            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)

        except (OSError, ValueError) as e:

            logger.error(
                "Mind map unreadable",
                extra={"mind_map_id": mind_map_id, "error": str(e)},
            )

            return None

    def list(self) -> List[Dict[str, Any]]:

        summaries = []

        for entry in os.scandir(self.directory):

            if not entry.name.endswith(".json"):
                continue

            data = self.get(entry.name[:-len(".json")])

            if data is None:
                continue

            summaries.append(
                {
                    "id": data.get("id"),
                    "type": data.get("type"),
                    "created_at": data.get("created_at"),
                    "total_documents": len(data.get("document_ids", [])),
                    "categories": data.get("categories", []),
                }
            )

        summaries.sort(key=lambda m: m.get("created_at") or "", reverse=True)

        return summaries
