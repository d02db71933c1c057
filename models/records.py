"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict

from models.schema import Visibility


@dataclass(frozen=True, slots=True)
class Reading:
    """A single weather sensor observation parsed from one CSV row."""

    timestamp: int
    temperature: float
    rainfall: float
    humidity: float
    wind_speed: float
    visibility: Visibility

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["visibility"] = self.visibility.value
        return payload
