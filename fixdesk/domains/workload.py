"""
Technician workload views.
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from fixdesk.domains.technicians import Technician
from fixdesk.domains.tickets import RequiredMaterial, RequiredTool, Ticket


class ToolsAndMaterials(BaseModel):
    """Tools and materials of a ticket with the summed cost range."""
    tools: List[RequiredTool] = Field(default_factory=list)
    materials: List[RequiredMaterial] = Field(default_factory=list)
    total_estimated_cost: str = "N/A"


class CurrentTicket(BaseModel):
    """Active ticket as shown to the assigned technician."""
    ticket: Ticket
    time_assigned: datetime
    is_overdue: bool = False
    deadline: Optional[datetime] = None
    estimated_duration: str
    tools_and_materials: ToolsAndMaterials = Field(default_factory=ToolsAndMaterials)


class CurrentTicketsSummary(BaseModel):
    total: int = 0
    assigned: int = 0
    in_progress: int = 0
    overdue: int = 0
    high_priority: int = 0


class CurrentTicketsReport(BaseModel):
    """Active tickets of a technician, grouped by priority."""
    technician_id: str
    current_tickets: List[CurrentTicket] = Field(default_factory=list)
    grouped_by_priority: Dict[str, List[CurrentTicket]] = Field(default_factory=dict)
    summary: CurrentTicketsSummary = Field(default_factory=CurrentTicketsSummary)


class WorkloadSummary(BaseModel):
    total: int = 0
    assigned: int = 0
    in_progress: int = 0
    overdue: int = 0


class RecentPerformance(BaseModel):
    completed_last_30_days: int = 0
    average_completion_time: str = "N/A"
    on_time_completion_rate: int = Field(0, description="Percentage, 0-100")


class TechnicianDashboard(BaseModel):
    """Workload and recent performance of one technician."""
    technician: Technician
    current_workload: WorkloadSummary = Field(default_factory=WorkloadSummary)
    recent_performance: RecentPerformance = Field(default_factory=RecentPerformance)
    current_tickets: List[CurrentTicket] = Field(default_factory=list)
    upcoming_deadlines: List[CurrentTicket] = Field(default_factory=list)
