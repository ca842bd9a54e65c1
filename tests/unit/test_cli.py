"""
Tests for the command line interface.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from fixdesk.cli import app
from fixdesk.domains import (
    AssignmentCandidate,
    AssignmentResult,
    IntakeOutcome,
    Ticket,
    TicketDraft,
    TicketStats,
    TicketStatus,
)
from fixdesk.domains.errors import NotFoundError

runner = CliRunner()

TRIAGE_ARGS = [
    "triage",
    "--title", "Leaking pipe",
    "--description", "Water under the sink",
    "--category", "plumbing",
    "--location", "Block A",
    "--reported-by", "resident-1",
    "--community-id", "community-1",
]


@pytest.fixture
def mock_engine():
    with patch("fixdesk.cli.TicketEngine") as mock:
        yield mock.return_value


def _outcome(**fields):
    ticket = Ticket(
        id="ticket-1",
        title="Leaking pipe",
        description="Water under the sink",
        reported_by="resident-1",
        community_id="community-1",
        category="plumbing",
        location="Block A",
        status=fields.pop("ticket_status", TicketStatus.OPEN),
        estimated_duration="2 hours",
    )
    return IntakeOutcome(ticket_id="ticket-1", ticket=ticket, **fields)


def test_triage(mock_engine):
    mock_engine.submit_ticket = AsyncMock(return_value=_outcome(status="created"))

    result = runner.invoke(app, TRIAGE_ARGS + ["--image", "a.jpg", "--image", "b.jpg"])

    assert result.exit_code == 0
    assert "Ticket created successfully" in result.output
    draft = mock_engine.submit_ticket.call_args.args[0]
    assert isinstance(draft, TicketDraft)
    assert draft.images == ["a.jpg", "b.jpg"]


def test_triage_with_assignment(mock_engine):
    assignment = AssignmentResult(
        assigned=True,
        technician=AssignmentCandidate(id="tech-1", name="Asha"),
        method="algorithm_assignment",
        reason="Primary expertise in plumbing (workload: 0)",
    )
    mock_engine.submit_ticket = AsyncMock(
        return_value=_outcome(status="created", assignment=assignment, ticket_status=TicketStatus.ASSIGNED)
    )

    result = runner.invoke(app, TRIAGE_ARGS + ["--auto-assign"])

    assert result.exit_code == 0
    assert "Asha" in result.output
    assert mock_engine.submit_ticket.call_args.kwargs["auto_assign"] is True


def test_triage_fallback_is_reported(mock_engine):
    mock_engine.submit_ticket = AsyncMock(
        return_value=_outcome(
            status="created", classification="fallback", fallback_reason="oracle timed out after 30.0s"
        )
    )

    result = runner.invoke(app, TRIAGE_ARGS)

    assert "oracle timed out" in result.output


def test_triage_engine_error(mock_engine):
    mock_engine.submit_ticket = AsyncMock(side_effect=NotFoundError("Community community-1 not found"))

    result = runner.invoke(app, TRIAGE_ARGS)

    assert result.exit_code == 1
    assert "not found" in result.output


def test_missing_config_file():
    with patch("fixdesk.cli.TicketEngine", side_effect=FileNotFoundError()):
        result = runner.invoke(app, ["stats", "--config", "missing.json"])

    assert result.exit_code == 1
    assert "Configuration file not found" in result.output


def test_invalid_config():
    with patch("fixdesk.cli.TicketEngine", side_effect=ValueError("MongoDB configuration is required.")):
        result = runner.invoke(app, ["stats"])

    assert result.exit_code == 1
    assert "MongoDB configuration is required." in result.output


def test_stats(mock_engine):
    mock_engine.get_stats = MagicMock(return_value=TicketStats(open=3, total=3))

    result = runner.invoke(app, ["stats", "--community-id", "community-1"])

    assert result.exit_code == 0
    assert "open" in result.output
    mock_engine.get_stats.assert_called_once_with("community-1")


def test_serve(mock_engine):
    with patch("uvicorn.run") as mock_run:
        result = runner.invoke(app, ["serve", "--port", "9000"])

    assert result.exit_code == 0
    assert mock_run.call_args.kwargs == {"host": "127.0.0.1", "port": 9000}
