from .itineraries import ItinerariesRepository
from . import models

__all__ = ["ItinerariesRepository", "models"]
