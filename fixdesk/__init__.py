"""
FixDesk - maintenance ticket intake and assignment engine.

This package triages resident-reported maintenance issues with an LLM
classifier, detects spam and duplicates, and routes tickets to technicians
with a deterministic scoring algorithm.
"""

# Client interface (main entry point)
from fixdesk.client.ticket_engine import TicketEngine

# Factory for wiring engine services
from fixdesk.factories.engine_factory import EngineSettings, TicketEngineFactory

# Scoring helpers
from fixdesk.services.scoring import calculate_assignment_score, get_assignment_reason

# Package metadata
__all__ = [
    # Main client interface
    "TicketEngine",
    # Factories
    "TicketEngineFactory",
    "EngineSettings",
    # Scoring
    "calculate_assignment_score",
    "get_assignment_reason",
]
