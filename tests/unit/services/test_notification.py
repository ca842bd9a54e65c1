"""
Tests for ticket notification triggers.
"""
from unittest.mock import AsyncMock, Mock

import pytest

from fixdesk.domains import (
    AssignmentMetadata,
    NotificationPriority,
    NotificationType,
    Ticket,
    TicketPriority,
    TicketStatus,
)
from fixdesk.services.notification import NotificationService


@pytest.fixture
def provider():
    provider = Mock()
    provider.send_notification = AsyncMock(return_value="notification-1")
    return provider


@pytest.fixture
def service(provider):
    return NotificationService(provider)


@pytest.fixture
def ticket():
    return Ticket(
        id="ticket-1",
        title="Leaking pipe",
        description="Water under the sink",
        reported_by="resident-1",
        community_id="community-1",
        category="plumbing",
        location="Block A",
        priority=TicketPriority.HIGH,
        status=TicketStatus.ASSIGNED,
        assigned_to="tech-1",
        assignment_metadata=AssignmentMetadata(
            auto_assigned=True,
            assignment_score=120,
            assignment_reason="Primary expertise in plumbing (workload: 0)",
            assignment_method="algorithm_assignment",
        ),
    )


def _sent(provider):
    return [call.args[0] for call in provider.send_notification.call_args_list]


@pytest.mark.asyncio
async def test_assignment_notifies_technician_and_reporter(service, provider, ticket):
    await service.notify_ticket_assigned(ticket, "Asha", "system")

    technician_note, reporter_note = _sent(provider)
    assert technician_note.user_id == "tech-1"
    assert technician_note.type == NotificationType.NEW_ASSIGNMENT
    assert technician_note.priority == NotificationPriority.HIGH
    assert technician_note.data["assignment_score"] == 120
    assert reporter_note.user_id == "resident-1"
    assert reporter_note.type == NotificationType.ASSIGNMENT
    assert reporter_note.data["technician_name"] == "Asha"


@pytest.mark.asyncio
async def test_self_reported_ticket_notifies_once(service, provider, ticket):
    ticket.reported_by = "tech-1"

    await service.notify_ticket_assigned(ticket, "Asha", "admin-1")

    assert [n.user_id for n in _sent(provider)] == ["tech-1"]


@pytest.mark.asyncio
async def test_unassigned_ticket_notifies_nobody(service, provider, ticket):
    ticket.assigned_to = None

    await service.notify_ticket_assigned(ticket)

    provider.send_notification.assert_not_awaited()


@pytest.mark.asyncio
async def test_status_change_skips_the_actor(service, provider, ticket):
    ticket.status = TicketStatus.RESOLVED

    await service.notify_status_changed(ticket, TicketStatus.IN_PROGRESS, "tech-1")

    notes = _sent(provider)
    assert [n.user_id for n in notes] == ["resident-1"]
    assert notes[0].priority == NotificationPriority.HIGH
    assert notes[0].data == {
        "new_status": "resolved",
        "previous_status": "in_progress",
        "updated_by": "tech-1",
    }


@pytest.mark.asyncio
async def test_status_change_by_admin_reaches_technician(service, provider, ticket):
    ticket.status = TicketStatus.CLOSED

    await service.notify_status_changed(ticket, TicketStatus.RESOLVED, "admin-1")

    assert [n.user_id for n in _sent(provider)] == ["resident-1", "tech-1"]


@pytest.mark.asyncio
async def test_sink_failure_is_swallowed(service, provider, ticket):
    provider.send_notification.side_effect = ConnectionError("sink down")

    assert await service.notify("tech-1", NotificationType.ASSIGNMENT, "t", "m") is None
    await service.notify_ticket_assigned(ticket, "Asha", "system")

    assert provider.send_notification.await_count == 3


@pytest.mark.asyncio
async def test_merge_notice(service, provider, ticket):
    await service.notify_merged("resident-2", "ticket-2", ticket)

    note = _sent(provider)[0]
    assert note.user_id == "resident-2"
    assert note.ticket_id == "ticket-1"
    assert note.data["merged_ticket_id"] == "ticket-2"
