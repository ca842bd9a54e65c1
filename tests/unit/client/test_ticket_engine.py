"""
Tests for the TicketEngine client interface.
"""
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from fixdesk.client.ticket_engine import TicketEngine, load_config
from fixdesk.domains import TicketDraft


@pytest.fixture
def config_dict():
    return {
        "mongo": {"connection_string": "mongodb://localhost:27017", "database": "test_db"},
        "openai": {"api_key": "test_key"},
    }


@pytest.fixture
def mock_services():
    services = MagicMock()
    services.intake_service.submit = AsyncMock(return_value="outcome")
    services.ticket_service.update_status = AsyncMock(return_value="ticket")
    services.ticket_service.assign = AsyncMock(return_value="ticket")
    services.ticket_service.flag_as_spam = AsyncMock(return_value="ticket")
    services.ticket_service.unmark_spam = AsyncMock(return_value="ticket")
    services.assignment_service.auto_assign = AsyncMock(return_value="result")
    services.notification_provider.list_notifications = AsyncMock(return_value=[])
    services.notification_provider.mark_all_read = AsyncMock(return_value=3)
    return services


class TestInit:
    @patch("fixdesk.client.ticket_engine.TicketEngineFactory")
    def test_init_with_config(self, mock_factory, config_dict):
        engine = TicketEngine(config=config_dict)

        mock_factory.create_from_config.assert_called_once_with(config_dict)
        assert engine.services is mock_factory.create_from_config.return_value

    @patch("fixdesk.client.ticket_engine.TicketEngineFactory")
    def test_init_with_json_file(self, mock_factory, config_dict, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(config_dict))

        TicketEngine(config_path=str(path))

        mock_factory.create_from_config.assert_called_once_with(config_dict)

    def test_load_python_config(self, tmp_path):
        path = tmp_path / "config.py"
        path.write_text('config = {"openai": {"api_key": "from-python"}}\n')

        assert load_config(str(path)) == {"openai": {"api_key": "from-python"}}

    def test_init_without_config(self):
        with pytest.raises(ValueError):
            TicketEngine()

    def test_missing_config_file(self):
        with pytest.raises(FileNotFoundError):
            TicketEngine(config_path="/nonexistent/fixdesk.json")


class TestDelegation:
    @pytest.mark.asyncio
    async def test_submit(self, mock_services):
        engine = TicketEngine(services=mock_services)
        draft = TicketDraft(title="Leak")

        assert await engine.submit_ticket(draft, auto_assign=True) == "outcome"
        mock_services.intake_service.submit.assert_awaited_once_with(
            draft, auto_assign=True, cancel_event=None
        )

    @pytest.mark.asyncio
    async def test_lifecycle_calls(self, mock_services):
        engine = TicketEngine(services=mock_services)

        await engine.update_status("ticket-1", "resolved", "tech-1")
        await engine.assign_ticket("ticket-1", "tech-1", "admin-1")
        await engine.auto_assign("ticket-1")
        await engine.mark_spam("ticket-1", "admin-1", reason="ad")
        await engine.unmark_spam("ticket-1", "admin-1")

        mock_services.ticket_service.update_status.assert_awaited_once_with(
            "ticket-1", "resolved", "tech-1"
        )
        mock_services.ticket_service.assign.assert_awaited_once_with("ticket-1", "tech-1", "admin-1")
        mock_services.assignment_service.auto_assign.assert_awaited_once_with("ticket-1", "system")
        mock_services.ticket_service.flag_as_spam.assert_awaited_once_with(
            "ticket-1", confidence=1.0, reason="ad", marked_by="admin-1"
        )
        mock_services.ticket_service.unmark_spam.assert_awaited_once_with(
            "ticket-1", "admin-1", "open"
        )

    def test_queries(self, mock_services):
        engine = TicketEngine(services=mock_services)

        engine.list_tickets(community_id="community-1", status="open")
        engine.get_stats(community_id="community-1")
        engine.get_dashboard("tech-1")

        mock_services.ticket_service.list_tickets.assert_called_once_with(
            community_id="community-1", status="open"
        )
        mock_services.ticket_service.get_stats.assert_called_once_with("community-1", None)
        mock_services.workload_service.get_dashboard.assert_called_once_with("tech-1")

    @pytest.mark.asyncio
    async def test_notifications(self, mock_services):
        engine = TicketEngine(services=mock_services)

        assert await engine.list_notifications("tech-1", unread_only=True) == []
        assert await engine.mark_all_notifications_read("tech-1") == 3
        mock_services.notification_provider.list_notifications.assert_awaited_once_with(
            "tech-1", unread_only=True, limit=50
        )
