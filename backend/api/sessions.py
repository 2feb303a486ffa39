"""
In-memory registry of open editor sessions.

Sessions hold live editing state (stores, history, surface) and are not
persisted across restarts; saved itineraries go through the repository.
"""
import logging
from typing import Dict, Optional

from services.directions import DirectionsGateway, get_default_gateway
from services.editor import EditorSession
from settings import settings

logger = logging.getLogger(__name__)

# In-memory storage
sessions_db: Dict[str, EditorSession] = {}


def create_session(
    use_directions: Optional[bool] = None,
    gateway: Optional[DirectionsGateway] = None,
) -> EditorSession:
    session = EditorSession(
        gateway=gateway or get_default_gateway(),
        use_directions=settings.DIRECTIONS_ENABLED if use_directions is None else use_directions,
        history_limit=settings.HISTORY_LIMIT,
    )
    sessions_db[session.id] = session
    logger.info(
        "Opened editor session %s (directions %s)",
        session.id,
        "on" if session.directions_active else "off",
    )
    return session


def get_session(session_id: str) -> Optional[EditorSession]:
    return sessions_db.get(session_id)


def close_session(session_id: str) -> bool:
    return sessions_db.pop(session_id, None) is not None
