"""Directions gateway backed by the Mapbox Directions API.

Given two coordinates the gateway returns the ordered coordinate list of the
road path between them, or None when the provider fails. Falling back to a
straight segment is the caller's job (see services.route_compositor).
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sqlite3
import threading
import time
from typing import List, Optional

import requests

from domain.models import Coordinate, as_coordinate
from settings import settings

logger = logging.getLogger(__name__)
_session = requests.Session()


class DirectionsGateway:
    """Base gateway. Subclasses implement the blocking fetch()."""

    available: bool = True
    profile: str = "driving"

    def fetch(self, start: Coordinate, end: Coordinate) -> Optional[List[Coordinate]]:
        raise NotImplementedError

    async def fetch_route(self, start: Coordinate, end: Coordinate) -> Optional[List[Coordinate]]:
        """Run fetch() off the event loop so the editor stays responsive."""
        return await asyncio.to_thread(self.fetch, start, end)


class StraightLineGateway(DirectionsGateway):
    """Gateway that never leaves the process: every route is start -> end."""

    def fetch(self, start: Coordinate, end: Coordinate) -> Optional[List[Coordinate]]:
        return [start, end]


def _round_coord(value: float, decimals: int = 6) -> float:
    return round(value, decimals)


class DirectionsCache:
    """SQLite cache of resolved segments keyed by (profile, start, end)."""

    def __init__(self, db_path: str, ttl_seconds: int = 7 * 24 * 3600):
        self.db_path = db_path
        self.ttl_seconds = ttl_seconds
        self._lock = threading.Lock()
        parent = os.path.dirname(os.path.abspath(db_path))
        os.makedirs(parent, exist_ok=True)
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS directions (
                profile TEXT NOT NULL,
                start_lon REAL NOT NULL,
                start_lat REAL NOT NULL,
                end_lon REAL NOT NULL,
                end_lat REAL NOT NULL,
                fetched_at INTEGER NOT NULL,
                coordinates_json TEXT NOT NULL,
                PRIMARY KEY (profile, start_lon, start_lat, end_lon, end_lat)
            )
            """
        )
        self._conn.commit()

    @staticmethod
    def _key(profile: str, start: Coordinate, end: Coordinate) -> tuple:
        return (
            profile,
            _round_coord(start[0]),
            _round_coord(start[1]),
            _round_coord(end[0]),
            _round_coord(end[1]),
        )

    def get(self, profile: str, start: Coordinate, end: Coordinate) -> Optional[List[Coordinate]]:
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT fetched_at, coordinates_json FROM directions "
                    "WHERE profile=? AND start_lon=? AND start_lat=? AND end_lon=? AND end_lat=?",
                    self._key(profile, start, end),
                ).fetchone()
        except sqlite3.Error as exc:
            logger.warning("Directions cache read failed: %s", exc)
            return None
        if not row:
            return None
        fetched_at, payload = row
        if self.ttl_seconds > 0 and time.time() - (fetched_at or 0) > self.ttl_seconds:
            logger.debug("Directions cache expired %s -> %s", start, end)
            return None
        try:
            return [as_coordinate(p) for p in json.loads(payload)]
        except (ValueError, TypeError):
            return None

    def put(self, profile: str, start: Coordinate, end: Coordinate, coords: List[Coordinate]) -> None:
        try:
            with self._lock:
                self._conn.execute(
                    "INSERT OR REPLACE INTO directions "
                    "(profile, start_lon, start_lat, end_lon, end_lat, fetched_at, coordinates_json) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (*self._key(profile, start, end), int(time.time()), json.dumps([list(c) for c in coords])),
                )
                self._conn.commit()
        except sqlite3.Error as exc:
            logger.warning("Directions cache write failed: %s", exc)


class MapboxDirectionsGateway(DirectionsGateway):
    """
    Road-network routing through Mapbox Directions v5.

    A gateway built without a token reports itself unavailable; the editor then
    runs in straight-line mode. The missing credential is logged once, here.
    """

    def __init__(
        self,
        token: Optional[str],
        profile: str = "driving",
        base_url: str = "https://api.mapbox.com/directions/v5/mapbox",
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
        cache: Optional[DirectionsCache] = None,
    ):
        self.token = token
        self.profile = profile
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or _session
        self.cache = cache
        self.available = bool(token)
        if not self.available:
            logger.warning(
                "No routing token configured; itineraries will be drawn with straight lines."
            )

    def _url(self, start: Coordinate, end: Coordinate) -> str:
        return (
            f"{self.base_url}/{self.profile}/"
            f"{start[0]},{start[1]};{end[0]},{end[1]}"
        )

    def fetch(self, start: Coordinate, end: Coordinate) -> Optional[List[Coordinate]]:
        if not self.available:
            return None

        if self.cache is not None:
            cached = self.cache.get(self.profile, start, end)
            if cached:
                return cached

        params = {
            "geometries": "geojson",
            "overview": "full",
            "access_token": self.token,
        }
        try:
            resp = self.session.get(self._url(start, end), params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("Directions request failed for %s -> %s: %s", start, end, exc)
            return None

        if not resp.ok:
            logger.warning(
                "Directions request for %s -> %s returned HTTP %s", start, end, resp.status_code
            )
            return None

        try:
            data = resp.json()
        except ValueError as exc:
            logger.warning("Directions JSON error for %s -> %s: %s", start, end, exc)
            return None

        routes = (data or {}).get("routes") or []
        coords = ((routes[0] if routes else {}).get("geometry") or {}).get("coordinates")
        if not isinstance(coords, list) or len(coords) < 2:
            logger.debug("Directions returned degenerate geometry for %s -> %s", start, end)
            return None
        try:
            result = [as_coordinate(c) for c in coords]
        except (TypeError, ValueError):
            logger.warning("Directions geometry malformed for %s -> %s", start, end)
            return None

        if self.cache is not None:
            self.cache.put(self.profile, start, end, result)
        return result


_default_gateway: Optional[DirectionsGateway] = None


def get_default_gateway() -> DirectionsGateway:
    global _default_gateway
    if _default_gateway is None:
        cache = None
        if settings.DIRECTIONS_CACHE_PATH:
            cache = DirectionsCache(
                settings.DIRECTIONS_CACHE_PATH, ttl_seconds=settings.DIRECTIONS_CACHE_TTL_SECONDS
            )
        _default_gateway = MapboxDirectionsGateway(
            token=settings.MAPBOX_TOKEN,
            profile=settings.DIRECTIONS_PROFILE,
            base_url=settings.DIRECTIONS_BASE_URL,
            timeout=settings.DIRECTIONS_TIMEOUT,
            cache=cache,
        )
    return _default_gateway
