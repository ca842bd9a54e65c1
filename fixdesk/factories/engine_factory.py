"""
Factory for creating and wiring components of the FixDesk ticket engine.

This module handles the creation and dependency injection for all
services and components used by the engine.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError

# Service imports
from fixdesk.services.assignment import AssignmentService
from fixdesk.services.classification import ClassificationService
from fixdesk.services.dedup import DeduplicationResolver
from fixdesk.services.intake import IntakeService
from fixdesk.services.notification import NotificationService
from fixdesk.services.ticket import TicketService
from fixdesk.services.workload import WorkloadService

# Repository imports
from fixdesk.repositories.technician import MongoTechnicianDirectory
from fixdesk.repositories.ticket import MongoTicketRepository

# Adapter imports
from fixdesk.adapters.mongodb_adapter import MongoDBAdapter
from fixdesk.adapters.notification_adapter import (
    MongoNotificationProvider,
    NullNotificationProvider,
)
from fixdesk.adapters.openai_adapter import OpenAIAdapter
from fixdesk.interfaces.providers.data_storage import DataStorageProvider
from fixdesk.interfaces.providers.llm import LLMProvider
from fixdesk.interfaces.providers.notification import NotificationProvider

# Setup logger for this module
logger = logging.getLogger(__name__)


class EngineSettings(BaseModel):
    """Tunable behaviour of the ticket engine."""
    oracle_timeout: float = Field(30.0, gt=0, description="Seconds before falling back")
    context_ticket_limit: int = Field(20, ge=1, le=20)
    max_active_workload: int = Field(10, ge=1)
    spam_threshold: float = Field(0.8, ge=0.0, le=1.0)
    workload_drift_tolerance: int = Field(2, ge=1)
    max_assignment_retries: int = Field(2, ge=0)
    allow_backward_transitions: bool = True
    assign_on_recommendation: bool = True
    reporter_window_hours: int = Field(24, ge=1)


class EngineServices:
    """Wired services of one engine instance."""

    def __init__(
        self,
        ticket_service: TicketService,
        assignment_service: AssignmentService,
        intake_service: IntakeService,
        workload_service: WorkloadService,
        notification_provider: NotificationProvider,
        settings: EngineSettings,
    ):
        self.ticket_service = ticket_service
        self.assignment_service = assignment_service
        self.intake_service = intake_service
        self.workload_service = workload_service
        self.notification_provider = notification_provider
        self.settings = settings


class TicketEngineFactory:
    """Factory for creating and wiring components of the ticket engine."""

    @staticmethod
    def load_settings(config: Dict[str, Any]) -> EngineSettings:
        try:
            return EngineSettings.model_validate(config.get("engine") or {})
        except ValidationError as e:
            raise ValueError(f"Invalid engine settings: {e}") from e

    @staticmethod
    def create_services(
        db_adapter: DataStorageProvider,
        llm_provider: LLMProvider,
        notification_provider: Optional[NotificationProvider] = None,
        settings: Optional[EngineSettings] = None,
        model: Optional[str] = None,
    ) -> EngineServices:
        """Wire services around already created adapters.

        Args:
            db_adapter: Data storage adapter
            llm_provider: Classification oracle
            notification_provider: Notification sink, stored in the database if omitted
            settings: Engine settings, defaults if omitted
            model: Optional oracle model override

        Returns:
            Wired services
        """
        settings = settings or EngineSettings()
        if notification_provider is None:
            notification_provider = MongoNotificationProvider(db_adapter)

        # Create repositories
        ticket_repository = MongoTicketRepository(db_adapter)
        technician_directory = MongoTechnicianDirectory(db_adapter)

        # Create primary services
        notification_service = NotificationService(notification_provider)
        ticket_service = TicketService(
            ticket_repository=ticket_repository,
            technician_directory=technician_directory,
            notification_service=notification_service,
            allow_backward_transitions=settings.allow_backward_transitions,
        )
        assignment_service = AssignmentService(
            ticket_service=ticket_service,
            technician_directory=technician_directory,
            max_active_workload=settings.max_active_workload,
            workload_drift_tolerance=settings.workload_drift_tolerance,
            max_assignment_retries=settings.max_assignment_retries,
        )
        classification_service = ClassificationService(
            llm_provider=llm_provider,
            timeout=settings.oracle_timeout,
            model=model,
        )
        intake_service = IntakeService(
            ticket_service=ticket_service,
            classification_service=classification_service,
            dedup_resolver=DeduplicationResolver(),
            assignment_service=assignment_service,
            ticket_repository=ticket_repository,
            technician_directory=technician_directory,
            context_ticket_limit=settings.context_ticket_limit,
            spam_threshold=settings.spam_threshold,
            reporter_window_hours=settings.reporter_window_hours,
            assign_on_recommendation=settings.assign_on_recommendation,
        )
        workload_service = WorkloadService(
            ticket_repository=ticket_repository,
            technician_directory=technician_directory,
        )

        return EngineServices(
            ticket_service=ticket_service,
            assignment_service=assignment_service,
            intake_service=intake_service,
            workload_service=workload_service,
            notification_provider=notification_provider,
            settings=settings,
        )

    @staticmethod
    def create_from_config(config: Dict[str, Any]) -> EngineServices:
        """Create the ticket engine from configuration.

        Args:
            config: Configuration dictionary

        Returns:
            Wired services
        """
        settings = TicketEngineFactory.load_settings(config)

        if "mongo" not in config:
            raise ValueError("MongoDB configuration is required.")
        if "connection_string" not in config["mongo"]:
            raise ValueError("MongoDB connection string is required.")
        if "database" not in config["mongo"]:
            raise ValueError("MongoDB database name is required.")
        db_adapter = MongoDBAdapter(
            connection_string=config["mongo"]["connection_string"],
            database_name=config["mongo"]["database"],
        )

        # OpenAI is the only supported oracle provider
        if "openai" not in config or "api_key" not in config["openai"]:
            raise ValueError("OpenAI API key is required in config.")

        llm_model = config["openai"].get("model")  # Optional model override
        if llm_model:
            logger.info(f"Using OpenAI as classification oracle with model: {llm_model}")
        else:
            logger.info("Using OpenAI as classification oracle")

        if "logfire" in config:
            if "api_key" not in config["logfire"]:
                raise ValueError("Pydantic Logfire API key is required.")
            llm_adapter = OpenAIAdapter(
                api_key=config["openai"]["api_key"],
                model=llm_model,
                logfire_api_key=config["logfire"].get("api_key"),
            )
        else:
            llm_adapter = OpenAIAdapter(
                api_key=config["openai"]["api_key"],
                model=llm_model,
            )

        notifications = config.get("notifications", {}).get("provider", "mongo")
        if notifications == "null":
            notification_provider: NotificationProvider = NullNotificationProvider()
        elif notifications == "mongo":
            notification_provider = MongoNotificationProvider(db_adapter)
        else:
            raise ValueError(f"Unknown notification provider: {notifications}")

        return TicketEngineFactory.create_services(
            db_adapter=db_adapter,
            llm_provider=llm_adapter,
            notification_provider=notification_provider,
            settings=settings,
            model=llm_model,
        )
