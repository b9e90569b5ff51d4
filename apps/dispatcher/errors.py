"""Exceptions raised by the dispatcher package."""


class DispatcherError(Exception):
    """Base class for dispatcher failures."""


class ServiceError(DispatcherError):
    """A call to one of the backend services failed.

    Covers transport errors, non-2xx answers and bodies that do not match the
    expected contract.  The loop treats all of them as transient.
    """

    def __init__(self, service: str, operation: str, detail: str) -> None:
        super().__init__(f"{service}.{operation}: {detail}")
        self.service = service
        self.operation = operation
        self.detail = detail


class DispatchInProgress(DispatcherError):
    """A dispatch run is active and the requested operation needs it stopped."""


class ReportError(DispatcherError):
    """The statistics report could not be produced."""
