"""
Route compositor.

Turns the pin store, the route sequence and the custom path store into one
renderable route. Composition runs in three stages:

1. plan_segments()   pure: decide, per pair of regular nodes, which stretch
                     the routing provider has to fill in.
2. resolve_segments() async: ask the directions gateway for each stretch,
                     one after the other, substituting a straight two-point
                     segment whenever the provider fails.
3. stitch_segments() pure: splice consecutive segments into drawable runs;
                     a segment that starts at a custom path end opens a new run.

Hand-drawn strokes never pass through the gateway. They are returned untouched
in ComposedRoute.custom_paths and drawn as their own layers.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from domain.models import (
    ComposedRoute,
    Coordinate,
    CustomPath,
    RouteNode,
    Segment,
    SegmentKind,
)
from services.directions import DirectionsGateway
from services.pin_store import PinStore
from services.route_sequence import anchor_ordinal

logger = logging.getLogger(__name__)


@dataclass
class SegmentRequest:
    start: Coordinate
    end: Coordinate
    start_index: int
    end_index: int
    from_anchor: bool = False


def _node_coordinate(node: RouteNode, pins: Optional[PinStore]) -> Coordinate:
    """Pins are authoritative; fall back to the node's own copy."""
    if pins is not None:
        pin = pins.get(node.pin_id)
        if pin is not None:
            return pin.coordinate
    return node.coordinate


def anchor_end(
    nodes: Sequence[RouteNode],
    index: int,
    custom_paths: Sequence[CustomPath],
    pins: Optional[PinStore] = None,
) -> Coordinate:
    """
    Where the stroke owned by the anchor at index ends.

    The stroke's last drawn point wins over the anchor's coordinate.
    """
    ordinal = anchor_ordinal(nodes, index)
    if ordinal < len(custom_paths) and custom_paths[ordinal]:
        return custom_paths[ordinal][-1]
    return _node_coordinate(nodes[index], pins)


def regular_indices(nodes: Sequence[RouteNode]) -> List[int]:
    return [i for i, n in enumerate(nodes) if not n.is_from_custom_path]


def plan_segments(
    nodes: Sequence[RouteNode],
    custom_paths: Sequence[CustomPath],
    pins: Optional[PinStore] = None,
) -> List[SegmentRequest]:
    """Requests for every stretch the routing provider must fill in."""
    regular = regular_indices(nodes)
    requests: List[SegmentRequest] = []
    for a, b in zip(regular, regular[1:]):
        end = _node_coordinate(nodes[b], pins)
        if b - a > 1:
            # Only anchors can sit between two consecutive regular nodes.
            # a -> anchor is the hand-drawn stroke; route from the last
            # anchor's stroke end instead.
            k = b - 1
            requests.append(
                SegmentRequest(
                    start=anchor_end(nodes, k, custom_paths, pins),
                    end=end,
                    start_index=k,
                    end_index=b,
                    from_anchor=True,
                )
            )
            continue

        if a > 0 and nodes[a - 1].is_from_custom_path:
            requests.append(
                SegmentRequest(
                    start=anchor_end(nodes, a - 1, custom_paths, pins),
                    end=end,
                    start_index=a - 1,
                    end_index=b,
                    from_anchor=True,
                )
            )
        else:
            requests.append(
                SegmentRequest(
                    start=_node_coordinate(nodes[a], pins),
                    end=end,
                    start_index=a,
                    end_index=b,
                )
            )
    return requests


async def resolve_segments(
    requests: Sequence[SegmentRequest],
    gateway: DirectionsGateway,
) -> List[Segment]:
    """
    Fetch geometry for each request sequentially.

    Provider errors and degenerate answers become straight [start, end]
    segments flagged as fallback; they never abort the pass.
    """
    segments: List[Segment] = []
    for req in requests:
        try:
            points = await gateway.fetch_route(req.start, req.end)
        except Exception as exc:
            logger.warning("Directions gateway error for %s -> %s: %s", req.start, req.end, exc)
            points = None

        fallback = not points or len(points) < 2
        if fallback:
            logger.debug("Falling back to straight segment %s -> %s", req.start, req.end)
            points = [req.start, req.end]

        segments.append(
            Segment(
                kind=SegmentKind.COMPUTED,
                points=list(points),
                start_index=req.start_index,
                end_index=req.end_index,
                from_anchor=req.from_anchor,
                fallback=fallback,
            )
        )
    return segments


def stitch_segments(segments: Sequence[Segment]) -> List[List[Coordinate]]:
    """
    Splice segments into disjoint runs.

    A segment continuing the chain has its first point snapped to the previous
    run's last point. A segment starting at a custom path end starts a new run
    so nothing bridges across a hand-drawn stroke.
    """
    runs: List[List[Coordinate]] = []
    for seg in segments:
        points = list(seg.points)
        if not points:
            continue
        if runs and not seg.from_anchor:
            points[0] = runs[-1][-1]
            runs[-1].extend(points)
        else:
            runs.append(list(points))
        seg.points = points
    return runs


def straight_route(
    nodes: Sequence[RouteNode],
    pins: Optional[PinStore] = None,
) -> ComposedRoute:
    """Directions off: one straight run through all regular nodes."""
    regular = regular_indices(nodes)
    coords = [_node_coordinate(nodes[i], pins) for i in regular]
    segments = [
        Segment(
            kind=SegmentKind.STRAIGHT,
            points=[coords[n], coords[n + 1]],
            start_index=regular[n],
            end_index=regular[n + 1],
        )
        for n in range(len(coords) - 1)
    ]
    runs = [coords] if len(coords) >= 2 else []
    return ComposedRoute(segments=segments, runs=runs, directions_used=False)


async def compose_route(
    nodes: Sequence[RouteNode],
    custom_paths: Sequence[CustomPath],
    gateway: Optional[DirectionsGateway],
    use_directions: bool = True,
    pins: Optional[PinStore] = None,
) -> ComposedRoute:
    """Run one full composition pass."""
    drawn = [list(p) for p in custom_paths if len(p) >= 2]

    if not use_directions or gateway is None or not gateway.available:
        composed = straight_route(nodes, pins)
        composed.custom_paths = drawn
        return composed

    requests = plan_segments(nodes, custom_paths, pins)
    segments = await resolve_segments(requests, gateway)
    runs = stitch_segments(segments)
    logger.debug(
        "Composed %d segments into %d runs (%d fallbacks)",
        len(segments),
        len(runs),
        sum(1 for s in segments if s.fallback),
    )
    return ComposedRoute(
        segments=segments,
        runs=runs,
        custom_paths=drawn,
        directions_used=True,
    )
