import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from ..customization import Customization


class CustomizationStore:
    """Audit trail of submitted customizations, kept as one JSON file keyed by record id.

    This is history only; cart state never depends on it.
    """

    COLLECTION = "customizations"

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self.data_dir / f"{self.COLLECTION}.json"

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def _save(self, records: Dict[str, Any]):
        with self.path.open("w", encoding="utf-8") as f:
            json.dump(records, f, indent=2, ensure_ascii=False)

    def record(self, customization: Customization, shop: str, product_id: str | None = None) -> Dict[str, Any]:
        entry = {
            "id": uuid.uuid4().hex,
            "shop": shop,
            "product_id": product_id,
            "variant_id": customization.variant_id,
            "text": customization.text,
            "font_family": customization.font_family,
            "font_size": customization.font_size,
            "text_color": customization.text_color,
            "position": customization.position,
            "uploaded_image_url": customization.uploaded_image_url,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        records = self._load()
        records[entry["id"]] = entry
        self._save(records)
        return entry

    def get(self, record_id: str):
        return self._load().get(record_id)

    def list(self, shop: str | None = None) -> List[Dict[str, Any]]:
        records = list(self._load().values())
        if shop:
            records = [r for r in records if r.get("shop") == shop]
        return sorted(records, key=lambda r: r.get("created_at") or "", reverse=True)
