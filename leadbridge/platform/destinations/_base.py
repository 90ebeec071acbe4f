"""Base destination classes."""

from abc import ABC, abstractmethod
from typing import Any, Optional

from leadbridge.core.logging import ContextualLogger
from leadbridge.core.logging import logger as default_logger
from leadbridge.schemas.record import RecordPage


class BaseDestination(ABC):
    """Common base destination class: a CRM record API addressed by module name."""

    def __init__(self):
        """Initialize the base destination."""
        self._logger: Optional[ContextualLogger] = None

    @property
    def logger(self):
        """Get the logger for this destination, falling back to default if not set."""
        if self._logger is not None:
            return self._logger
        return default_logger

    def set_logger(self, logger: ContextualLogger) -> None:
        """Set a contextual logger for this destination."""
        self._logger = logger

    @abstractmethod
    async def list_records(self, module: str, *, page: int = 1, per_page: int = 200) -> RecordPage:
        """List one page of records of a module."""
        pass

    @abstractmethod
    async def search_records(
        self, module: str, field: str, value: str, *, operator: str = "equals"
    ) -> list[dict[str, Any]]:
        """Search records by a single field criterion. No match yields an empty list."""
        pass

    @abstractmethod
    async def create_record(self, module: str, record: dict[str, Any]) -> dict[str, Any]:
        """Create a record and return its details (at least `id`)."""
        pass

    @abstractmethod
    async def update_record(
        self, module: str, record_id: str, record: dict[str, Any]
    ) -> dict[str, Any]:
        """Update a record and return its details."""
        pass
