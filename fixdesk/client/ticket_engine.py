"""
Simplified client interface for the FixDesk ticket engine.

This module provides a clean API for the HTTP layer, the CLI and embedding
applications without dealing with internal wiring.
"""

import asyncio
import importlib.util
import json
from typing import Any, Dict, List, Optional

from fixdesk.domains import (
    AssignmentCandidate,
    AssignmentResult,
    CurrentTicketsReport,
    IntakeOutcome,
    Notification,
    SpamReport,
    TechnicianDashboard,
    Ticket,
    TicketDraft,
    TicketStats,
    TicketStatus,
)
from fixdesk.factories.engine_factory import EngineServices, TicketEngineFactory


def load_config(config_path: str) -> Dict[str, Any]:
    """Load a JSON config file or a Python file exporting `config`."""
    with open(config_path, "r") as f:
        if config_path.endswith(".json"):
            return json.load(f)

    # Assume it's a Python file
    spec = importlib.util.spec_from_file_location("config", config_path)
    config_module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(config_module)
    return config_module.config


class TicketEngine:
    """Facade over the ticket engine services."""

    def __init__(
        self,
        config_path: str = None,
        config: Dict[str, Any] = None,
        services: Optional[EngineServices] = None,
    ):
        """Initialize the engine from a config file, a dictionary or wired services.

        Args:
            config_path: Path to configuration file (JSON or Python)
            config: Configuration dictionary
            services: Already wired services
        """
        if services is None:
            if not config and not config_path:
                raise ValueError("Either config or config_path must be provided")
            if config_path:
                config = load_config(config_path)
            services = TicketEngineFactory.create_from_config(config)

        self.services = services

    async def submit_ticket(
        self,
        draft: TicketDraft,
        auto_assign: bool = False,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> IntakeOutcome:
        return await self.services.intake_service.submit(
            draft, auto_assign=auto_assign, cancel_event=cancel_event
        )

    def get_ticket(self, ticket_id: str) -> Ticket:
        return self.services.ticket_service.get_ticket(ticket_id)

    def list_tickets(self, **filters: Any) -> List[Ticket]:
        return self.services.ticket_service.list_tickets(**filters)

    def get_stats(
        self, community_id: Optional[str] = None, assigned_to: Optional[str] = None
    ) -> TicketStats:
        return self.services.ticket_service.get_stats(community_id, assigned_to)

    def update_ticket(self, ticket_id: str, updates: Dict[str, Any], updated_by: str) -> Ticket:
        return self.services.ticket_service.update_ticket(ticket_id, updates, updated_by)

    async def update_status(self, ticket_id: str, status: str, updated_by: str) -> Ticket:
        return await self.services.ticket_service.update_status(ticket_id, status, updated_by)

    async def assign_ticket(self, ticket_id: str, technician_id: str, assigned_by: str) -> Ticket:
        return await self.services.ticket_service.assign(ticket_id, technician_id, assigned_by)

    async def auto_assign(self, ticket_id: str, assigned_by: str = "system") -> AssignmentResult:
        return await self.services.assignment_service.auto_assign(ticket_id, assigned_by)

    def get_available_technicians(self, ticket_id: str) -> List[AssignmentCandidate]:
        return self.services.assignment_service.get_available_technicians(ticket_id)

    async def mark_spam(
        self, ticket_id: str, marked_by: str, reason: str = "", confidence: float = 1.0
    ) -> Ticket:
        return await self.services.ticket_service.flag_as_spam(
            ticket_id, confidence=confidence, reason=reason, marked_by=marked_by
        )

    async def unmark_spam(
        self, ticket_id: str, unmarked_by: str, target_status: str = TicketStatus.OPEN.value
    ) -> Ticket:
        return await self.services.ticket_service.unmark_spam(
            ticket_id, unmarked_by, target_status
        )

    def get_spam_tickets(self, community_id: Optional[str] = None, limit: int = 50) -> SpamReport:
        return self.services.ticket_service.get_spam_tickets(community_id, limit)

    def get_technician_tickets(self, technician_id: str, status: Optional[str] = None) -> List[Ticket]:
        return self.services.workload_service.get_technician_tickets(technician_id, status)

    def get_current_tickets(self, technician_id: str) -> CurrentTicketsReport:
        return self.services.workload_service.get_current_tickets(technician_id)

    def get_dashboard(self, technician_id: str) -> TechnicianDashboard:
        return self.services.workload_service.get_dashboard(technician_id)

    async def list_notifications(
        self, user_id: str, unread_only: bool = False, limit: int = 50
    ) -> List[Notification]:
        return await self.services.notification_provider.list_notifications(
            user_id, unread_only=unread_only, limit=limit
        )

    async def mark_all_notifications_read(self, user_id: str) -> int:
        return await self.services.notification_provider.mark_all_read(user_id)
