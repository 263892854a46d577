"""
Base service class providing common functionality for all services.
"""

from abc import ABC
from contextlib import contextmanager, nullcontext
from typing import Any, Dict, Optional

from rental_repairs.config.settings import SchedulingSettings, get_settings
from rental_repairs.core.exceptions import BaseAppException
from rental_repairs.core.logging import get_logger
from rental_repairs.repositories.interfaces import UnitOfWork
from rental_repairs.services.base.event_dispatcher import DispatchResult, EventDispatcher
from rental_repairs.services.base.service_result import (
    ErrorCode,
    ErrorSeverity,
    ServiceError,
    ServiceResult,
)


class BaseService(ABC):
    """
    Base service with common behaviors:
    - Shared logger and scheduling settings
    - Consistent error handling via ServiceResult
    - Transaction management through an optional unit of work
    - Event dispatch after commit
    """

    def __init__(
        self,
        unit_of_work: Optional[UnitOfWork] = None,
        dispatcher: Optional[EventDispatcher] = None,
        settings: Optional[SchedulingSettings] = None,
    ):
        self.unit_of_work = unit_of_work
        self.dispatcher = dispatcher
        self.settings = settings or get_settings().scheduling
        self._logger = get_logger(f"rental_repairs.services.{self.__class__.__name__}")

    # -------------------------------------------------------------------------
    # Exception & Error Handling
    # -------------------------------------------------------------------------

    def _handle_exception(
        self,
        exception: Exception,
        operation: str,
        entity_ref: Optional[Any] = None,
        additional_context: Optional[Dict[str, Any]] = None,
    ) -> ServiceResult:
        """
        Convert exception to a ServiceResult failure with logging.

        Domain exceptions keep their own code and are logged as warnings;
        anything else is an internal error.
        """
        context = {
            "operation": operation,
            "entity_ref": str(entity_ref) if entity_ref is not None else None,
            "exception_type": type(exception).__name__,
        }
        if additional_context:
            context.update(additional_context)

        if isinstance(exception, BaseAppException):
            self._logger.warning(f"Rejected {operation}: {exception.message}", extra=context)
            return ServiceResult.from_domain_error(exception)

        self._logger.error(
            f"Error during {operation}: {exception}",
            exc_info=True,
            extra=context,
        )
        return ServiceResult.failure(
            ServiceError(
                code=self._map_exception_to_error_code(exception),
                message=f"Failed to {operation}",
                details={
                    "error": str(exception),
                    "entity_ref": str(entity_ref) if entity_ref is not None else None,
                },
                severity=ErrorSeverity.CRITICAL,
            )
        )

    def _map_exception_to_error_code(self, exception: Exception) -> ErrorCode:
        exception_mapping = {
            ValueError: ErrorCode.VALIDATION_ERROR,
            KeyError: ErrorCode.NOT_FOUND,
            PermissionError: ErrorCode.INSUFFICIENT_PERMISSIONS,
        }

        for exc_type, error_code in exception_mapping.items():
            if isinstance(exception, exc_type):
                return error_code

        return ErrorCode.INTERNAL_ERROR

    # -------------------------------------------------------------------------
    # Transaction Management
    # -------------------------------------------------------------------------

    @contextmanager
    def transaction(self):
        """
        All-or-nothing block over the unit of work.

        Example:
            with self.transaction():
                worker.assign(...)
                request.schedule(...)
                # rolled back together on exception
        """
        scope = self.unit_of_work.transaction() if self.unit_of_work else nullcontext()
        try:
            with scope:
                yield
        except Exception as e:
            self._logger.debug(f"Transaction rolled back: {e}")
            raise

    # -------------------------------------------------------------------------
    # Utility Methods
    # -------------------------------------------------------------------------

    def _dispatch_events(self, *aggregates: Any) -> Optional[DispatchResult]:
        """Drain pending events from aggregates and publish them."""
        events = []
        for aggregate in aggregates:
            events.extend(aggregate.pull_events())
        if not events or self.dispatcher is None:
            return None
        return self.dispatcher.dispatch_many(events)

    def _log_operation(
        self,
        operation: str,
        entity_ref: Optional[Any] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = {"entity_ref": str(entity_ref) if entity_ref else None}
        if extra:
            context.update(extra)
        self._logger.info(f"Service operation: {operation}", extra=context)
