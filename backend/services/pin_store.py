"""
Pin store: the canonical id -> Pin arena.

Ordering lives in the route sequence. A coordinate change made here is not
mirrored into the route sequence; the caller keeps the two in step.
"""
from typing import Dict, Iterator, List, Optional

from domain.models import Pin


class PinStore:
    def __init__(self) -> None:
        self._pins: Dict[str, Pin] = {}

    def upsert(self, pin: Pin) -> Pin:
        self._pins[pin.id] = pin
        return pin

    def get(self, pin_id: str) -> Optional[Pin]:
        return self._pins.get(pin_id)

    def all(self) -> List[Pin]:
        return list(self._pins.values())

    def remove(self, pin_id: str) -> Optional[Pin]:
        return self._pins.pop(pin_id, None)

    def clear(self) -> None:
        self._pins.clear()

    def to_list(self) -> List[dict]:
        return [p.to_dict() for p in self._pins.values()]

    def load(self, data: List[dict]) -> None:
        """Replace the whole store from to_list() output."""
        self._pins = {}
        for item in data:
            pin = Pin.from_dict(item)
            self._pins[pin.id] = pin

    def __contains__(self, pin_id: object) -> bool:
        return pin_id in self._pins

    def __len__(self) -> int:
        return len(self._pins)

    def __iter__(self) -> Iterator[Pin]:
        return iter(list(self._pins.values()))
