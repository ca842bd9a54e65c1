"""
Abstract interfaces for the FixDesk ticket engine.

These interfaces define the contracts that concrete implementations
must adhere to, following the Dependency Inversion Principle.

This package contains:
- Repository interfaces for data access
- Provider interfaces for external service adapters
- Service interfaces for business logic components
"""
