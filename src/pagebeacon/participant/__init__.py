"""
Participant identity, session bootstrap and configuration cache.

This package owns everything tied to who the events belong to:
- identity.py: participant code / session id and logout
- session.py: single-flight session creation
- config.py: participant configuration cache
"""

from pagebeacon.participant.config import ParticipantConfigCache
from pagebeacon.participant.identity import IdentityState
from pagebeacon.participant.models import ParticipantConfig, Session
from pagebeacon.participant.session import SessionCoordinator

__all__ = [
    "IdentityState",
    "ParticipantConfig",
    "ParticipantConfigCache",
    "Session",
    "SessionCoordinator",
]
