"""
Technician workload reports: current tickets and dashboard.
"""
import re
from datetime import datetime, timedelta
from typing import List, Optional

from fixdesk.domains import (
    ACTIVE_STATUSES,
    CurrentTicket,
    CurrentTicketsReport,
    CurrentTicketsSummary,
    RecentPerformance,
    RequiredMaterial,
    RequiredTool,
    TechnicianDashboard,
    Ticket,
    TicketPriority,
    TicketStatus,
    ToolsAndMaterials,
    WorkloadSummary,
    as_utc,
    utcnow,
)
from fixdesk.domains.errors import NotFoundError
from fixdesk.interfaces.repositories import TechnicianDirectory, TicketRepository

# Hours after creation by which a ticket should be done.
DEADLINE_HOURS = {
    TicketPriority.HIGH.value: 4,
    TicketPriority.MEDIUM.value: 24,
    TicketPriority.LOW.value: 72,
}
DEFAULT_DEADLINE_HOURS = 24

BASE_DURATION_HOURS = {
    "plumbing": 2,
    "electrical": 3,
    "hvac": 4,
    "carpentry": 6,
    "painting": 4,
    "appliance": 2,
    "landscaping": 3,
    "maintenance": 2,
    "security": 1,
    "elevator": 4,
    "fire_safety": 1,
    "pest_control": 3,
}

_COST_PATTERN = re.compile(r"(\d+(?:\.\d+)?)-?(\d+(?:\.\d+)?)?")

COMPLETED_STATUSES = [TicketStatus.RESOLVED, TicketStatus.CLOSED]


def get_ticket_deadline(ticket: Ticket) -> datetime:
    hours = DEADLINE_HOURS.get(ticket.priority.value, DEFAULT_DEADLINE_HOURS)
    return as_utc(ticket.created_at) + timedelta(hours=hours)


def is_ticket_overdue(ticket: Ticket, now: Optional[datetime] = None) -> bool:
    return (now or utcnow()) > get_ticket_deadline(ticket)


def get_estimated_duration(category: str, priority: str) -> str:
    """Rough duration from the category, shortened for urgent work."""
    base = BASE_DURATION_HOURS.get(category, 2)
    if priority == TicketPriority.HIGH:
        base *= 0.8
    elif priority == TicketPriority.LOW:
        base *= 1.2
    return f"{round(base)} hours"


def calculate_total_cost(
    tools: List[RequiredTool], materials: List[RequiredMaterial]
) -> str:
    """Sum cost strings like '$15-25' into one '$min-max' range."""
    total_min = 0.0
    total_max = 0.0
    for item in [*tools, *materials]:
        if not item.estimated_cost:
            continue
        match = _COST_PATTERN.search(re.sub(r"[$,]", "", item.estimated_cost))
        if not match:
            continue
        low = float(match.group(1))
        high = float(match.group(2)) if match.group(2) else low
        total_min += low
        total_max += high

    if total_min == 0 and total_max == 0:
        return "N/A"
    if total_min == total_max:
        return f"${total_min:g}"
    return f"${total_min:g}-{total_max:g}"


def calculate_average_completion_time(tickets: List[Ticket]) -> str:
    if not tickets:
        return "N/A"
    total_hours = sum(
        (as_utc(ticket.updated_at) - as_utc(ticket.created_at)).total_seconds() / 3600
        for ticket in tickets
    )
    return f"{round(total_hours / len(tickets))} hours"


def calculate_on_time_rate(tickets: List[Ticket]) -> int:
    """Percentage of tickets completed before their deadline."""
    if not tickets:
        return 0
    on_time = [
        ticket for ticket in tickets
        if as_utc(ticket.updated_at) <= get_ticket_deadline(ticket)
    ]
    return round(len(on_time) / len(tickets) * 100)


class WorkloadService:
    """Read-only views of a technician's workload."""

    def __init__(
        self,
        ticket_repository: TicketRepository,
        technician_directory: TechnicianDirectory,
    ):
        self.ticket_repository = ticket_repository
        self.technician_directory = technician_directory

    def get_technician_tickets(
        self, technician_id: str, status: Optional[str] = None
    ) -> List[Ticket]:
        """All tickets assigned to a technician, newest first."""
        return self.ticket_repository.find_tickets(
            assigned_to=technician_id,
            status_in=[status] if status else None,
        )

    def _current(self, ticket: Ticket, now: datetime) -> CurrentTicket:
        metadata = ticket.assignment_metadata
        return CurrentTicket(
            ticket=ticket,
            time_assigned=metadata.assigned_at if metadata else ticket.updated_at,
            is_overdue=is_ticket_overdue(ticket, now),
            deadline=get_ticket_deadline(ticket),
            estimated_duration=ticket.estimated_duration
            or get_estimated_duration(ticket.category, ticket.priority),
            tools_and_materials=ToolsAndMaterials(
                tools=ticket.required_tools,
                materials=ticket.required_materials,
                total_estimated_cost=calculate_total_cost(
                    ticket.required_tools, ticket.required_materials
                ),
            ),
        )

    def _active_tickets(self, technician_id: str) -> List[CurrentTicket]:
        now = utcnow()
        tickets = self.ticket_repository.find_tickets(
            assigned_to=technician_id, status_in=ACTIVE_STATUSES
        )
        current = [self._current(ticket, now) for ticket in tickets]
        # Most urgent first, oldest first within a priority
        rank = {TicketPriority.HIGH: 0, TicketPriority.MEDIUM: 1, TicketPriority.LOW: 2}
        return sorted(
            current,
            key=lambda c: (rank.get(c.ticket.priority, 3), as_utc(c.ticket.created_at)),
        )

    def get_current_tickets(self, technician_id: str) -> CurrentTicketsReport:
        """Active tickets of a technician with overdue flags and cost totals."""
        current = self._active_tickets(technician_id)

        grouped = {
            priority.value: [c for c in current if c.ticket.priority == priority]
            for priority in (TicketPriority.HIGH, TicketPriority.MEDIUM, TicketPriority.LOW)
        }
        summary = CurrentTicketsSummary(
            total=len(current),
            assigned=sum(1 for c in current if c.ticket.status == TicketStatus.ASSIGNED),
            in_progress=sum(1 for c in current if c.ticket.status == TicketStatus.IN_PROGRESS),
            overdue=sum(1 for c in current if c.is_overdue),
            high_priority=len(grouped[TicketPriority.HIGH.value]),
        )
        return CurrentTicketsReport(
            technician_id=technician_id,
            current_tickets=current,
            grouped_by_priority=grouped,
            summary=summary,
        )

    def get_dashboard(self, technician_id: str) -> TechnicianDashboard:
        """Current workload and the last 30 days of completions."""
        technician = self.technician_directory.get_technician(technician_id)
        if not technician:
            raise NotFoundError(f"Technician {technician_id} not found")

        current = self._active_tickets(technician_id)
        completed = self.ticket_repository.find_tickets(
            assigned_to=technician_id,
            status_in=COMPLETED_STATUSES,
            updated_after=utcnow() - timedelta(days=30),
        )

        return TechnicianDashboard(
            technician=technician,
            current_workload=WorkloadSummary(
                total=len(current),
                assigned=sum(1 for c in current if c.ticket.status == TicketStatus.ASSIGNED),
                in_progress=sum(
                    1 for c in current if c.ticket.status == TicketStatus.IN_PROGRESS
                ),
                overdue=sum(1 for c in current if c.is_overdue),
            ),
            recent_performance=RecentPerformance(
                completed_last_30_days=len(completed),
                average_completion_time=calculate_average_completion_time(completed),
                on_time_completion_rate=calculate_on_time_rate(completed),
            ),
            current_tickets=current[:5],
            upcoming_deadlines=sorted(current, key=lambda c: c.deadline)[:3],
        )
