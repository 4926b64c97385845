"""
opja_core.message
-----------------
Inbound label message: the sealed labels one authority attached to a bid
request, as (transaction id, sealed label) pairs. Only the fields label
opening needs are modelled; the surrounding bid-stream schema is not.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple


@dataclass
class LabelMessage:
    authority_name: str
    labels: List[Tuple[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.authority_name,
            "labels": [{"id": txid, "label": sealed} for txid, sealed in self.labels],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LabelMessage":
        """
        Accepts {"name": ..., "labels": [{"id": ..., "label": ...}, ...]}.
        Entries missing either field are skipped.
        """
        labels = []
        for entry in data.get("labels") or []:
            if not isinstance(entry, dict):
                continue
            txid, sealed = entry.get("id"), entry.get("label")
            if isinstance(txid, str) and isinstance(sealed, str):
                labels.append((txid, sealed))
        return cls(authority_name=data.get("name", ""), labels=labels)
