"""
Route sequence: the ordered list of route nodes that defines itinerary order.

Regular nodes and custom-path anchors share one sequence. The k-th anchor in
the sequence owns the k-th stroke of the custom path store.
"""
from typing import Iterator, List, Sequence

from domain.models import Coordinate, RouteNode


def anchor_ordinal(nodes: Sequence[RouteNode], index: int) -> int:
    """Number of custom-path anchors strictly before index."""
    return sum(1 for node in nodes[:index] if node.is_from_custom_path)


class RouteSequence:
    def __init__(self) -> None:
        self._nodes: List[RouteNode] = []

    def append(self, node: RouteNode) -> RouteNode:
        self._nodes.append(node)
        return node

    def index_of(self, pin_id: str) -> int:
        for idx, node in enumerate(self._nodes):
            if node.pin_id == pin_id:
                return idx
        return -1

    def get(self, pin_id: str):
        idx = self.index_of(pin_id)
        return self._nodes[idx] if idx >= 0 else None

    def update_coordinate(self, pin_id: str, coordinate: Coordinate) -> bool:
        idx = self.index_of(pin_id)
        if idx < 0:
            return False
        self._nodes[idx].coordinate = coordinate
        return True

    def remove(self, pin_id: str) -> bool:
        idx = self.index_of(pin_id)
        if idx < 0:
            return False
        del self._nodes[idx]
        return True

    def anchor_ordinal(self, index: int) -> int:
        return anchor_ordinal(self._nodes, index)

    def nodes(self) -> List[RouteNode]:
        return list(self._nodes)

    def pin_ids(self) -> List[str]:
        return [n.pin_id for n in self._nodes]

    def clear(self) -> None:
        self._nodes = []

    def to_list(self) -> List[dict]:
        return [n.to_dict() for n in self._nodes]

    def load(self, data: List[dict]) -> None:
        self._nodes = [RouteNode.from_dict(item) for item in data]

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[RouteNode]:
        return iter(list(self._nodes))

    def __getitem__(self, index: int) -> RouteNode:
        return self._nodes[index]
