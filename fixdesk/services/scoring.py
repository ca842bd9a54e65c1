"""
Deterministic technician scoring.

Scores are a pure function of the ticket, the technician and the
technician's current workload; nothing here touches the store.
"""
from typing import Dict, List, Tuple

from fixdesk.domains import AssignmentCandidate, Technician, TicketPriority

PRIMARY_MATCH_WEIGHT = 100
RELATED_MATCH_WEIGHT = 30
WORKLOAD_PENALTY = 5
HIGH_PRIORITY_BONUS = 20

# Technicians at or above this many active tickets are not candidates at all.
MAX_ACTIVE_WORKLOAD = 10

RELATED_SKILLS: Dict[str, List[str]] = {
    "plumbing": ["maintenance", "appliance"],
    "electrical": ["maintenance", "appliance", "fire_safety"],
    "hvac": ["maintenance", "electrical"],
    "carpentry": ["maintenance", "painting"],
    "painting": ["carpentry", "maintenance"],
    "appliance": ["electrical", "plumbing", "maintenance"],
    "landscaping": ["maintenance"],
    "maintenance": ["plumbing", "electrical", "hvac", "carpentry", "painting", "appliance"],
    "security": ["electrical", "maintenance"],
    "elevator": ["electrical", "maintenance"],
    "fire_safety": ["electrical", "maintenance"],
    "pest_control": ["maintenance"],
}


def get_related_skills(category: str) -> List[str]:
    """Categories whose experts can reasonably take a ticket of this category."""
    return RELATED_SKILLS.get(category, [])


def _related_matches(category: str, expertise: List[str]) -> List[str]:
    return [skill for skill in get_related_skills(category) if skill in expertise]


def calculate_assignment_score(
    category: str, priority: str, expertise: List[str], workload: int
) -> float:
    """Score a technician for a ticket. Never negative."""
    score = 0

    if category in expertise:
        score += PRIMARY_MATCH_WEIGHT

    score += len(_related_matches(category, expertise)) * RELATED_MATCH_WEIGHT

    score -= workload * WORKLOAD_PENALTY

    if priority == TicketPriority.HIGH:
        score += HIGH_PRIORITY_BONUS

    return max(0, score)


def get_assignment_reason(category: str, expertise: List[str], workload: int) -> str:
    """Name the factor that decided the score, strongest first."""
    if category in expertise:
        return f"Primary expertise in {category} (workload: {workload})"

    related = _related_matches(category, expertise)
    if related:
        return f"Related expertise: {', '.join(related)} (workload: {workload})"

    if workload == 0:
        return "Available technician with light workload"

    return f"Available technician (workload: {workload})"


def score(
    category: str, priority: str, expertise: List[str], workload: int
) -> Tuple[float, str]:
    """Return the (value, reason) pair for one technician."""
    return (
        calculate_assignment_score(category, priority, expertise, workload),
        get_assignment_reason(category, expertise, workload),
    )


def score_technician(
    category: str,
    priority: str,
    technician: Technician,
    max_active_workload: int = MAX_ACTIVE_WORKLOAD,
) -> AssignmentCandidate:
    """Build the scored candidate for one technician."""
    value, reason = score(
        category, priority, technician.expertise, technician.current_workload
    )
    return AssignmentCandidate(
        id=technician.id,
        name=technician.name,
        expertise=technician.expertise,
        workload=technician.current_workload,
        score=value,
        reason=reason,
        available=technician.current_workload < max_active_workload,
    )


def rank_candidates(candidates: List[AssignmentCandidate]) -> List[AssignmentCandidate]:
    """Order candidates by score, then lower workload, then id."""
    return sorted(candidates, key=lambda c: (-c.score, c.workload, c.id))
