"""Yacho: a graph-driven chat agent that identifies wild birds in Japan."""

from yacho.identifier.agent import BirdIdentificationAgent
from yacho.identifier.schemas import BirdIdentification

__all__ = ["BirdIdentificationAgent", "BirdIdentification"]
