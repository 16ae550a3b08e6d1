from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

import yaml

UNKNOWN_DOMAIN = "unknown"


def normalize_domain(url: Optional[str]) -> str:
    """Lowercased hostname with a leading ``www.`` removed."""

    try:
        host = urlparse(url or "").hostname
    except ValueError:
        host = None
    if not host:
        return UNKNOWN_DOMAIN
    host = host.lower()
    if host.startswith("www."):
        host = host[len("www.") :]
    return host or UNKNOWN_DOMAIN


def render_yaml(records: dict[str, Any]) -> str:
    return yaml.safe_dump(records, default_flow_style=False, allow_unicode=True, sort_keys=False)


class PatternStore:
    """Per-domain login pattern records backed by a JSON file and its YAML mirror.

    One record per domain; applying a record for a known domain replaces it.
    There is no file locking, so concurrent writers can lose updates.
    """

    def __init__(self, json_path: str | Path, yaml_path: str | Path) -> None:
        self.json_path = Path(json_path)
        self.yaml_path = Path(yaml_path)
        self.records: dict[str, Any] = {}

    @classmethod
    def open(cls, json_path: str | Path, yaml_path: str | Path) -> "PatternStore":
        store = cls(json_path, yaml_path)
        store.records = store.load()
        return store

    def load(self) -> dict[str, Any]:
        if not self.json_path.exists():
            return {}
        try:
            data = json.loads(self.json_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logging.warning("pattern_store_unreadable path=%s reason=%s", self.json_path, exc)
            return {}
        if not isinstance(data, dict):
            logging.warning("pattern_store_not_mapping path=%s", self.json_path)
            return {}
        return data

    def get(self, domain: str) -> Optional[dict[str, Any]]:
        return self.records.get(domain)

    def apply(self, domain: str, record: dict[str, Any]) -> None:
        self.records[domain] = record

    def save(self) -> None:
        self.json_path.write_text(json.dumps(self.records, indent=2), encoding="utf-8")
        self.yaml_path.write_text(render_yaml(self.records), encoding="utf-8")
        logging.debug(
            "pattern_store_saved json=%s yaml=%s domains=%s", self.json_path, self.yaml_path, len(self.records)
        )
