"""
pgfleet Exception Hierarchy

Clean exception hierarchy for consistent error handling across the CLI,
the job runner and the HTTP API.
"""

from typing import Optional, Any


class PgFleetError(Exception):
    """Base exception for all pgfleet errors."""

    def __init__(self, message: str, context: Optional[str] = None):
        self.message = message
        self.context = context
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format error message with optional context."""
        if self.context:
            return f"{self.message}\nContext: {self.context}"
        return self.message


class SchemaError(PgFleetError):
    """Raised when the inventory document has the wrong shape."""

    pass


class ValidationError(PgFleetError):
    """Raised when an instance or cluster definition is semantically invalid."""

    def __init__(
        self, message: str, field: Optional[str] = None, ip: Optional[str] = None
    ):
        self.field = field
        self.ip = ip
        context = None
        if ip or field:
            parts = []
            if ip:
                parts.append(f"ip={ip}")
            if field:
                parts.append(f"field={field}")
            context = " ".join(parts)
        super().__init__(message, context)


class InventoryIOError(PgFleetError, OSError):
    """Raised when reading, writing or stat-ing inventory/job files fails."""

    pass


class ConflictError(PgFleetError):
    """Raised when a job is requested while another one occupies the job slot."""

    def __init__(self, message: str, job: Optional[Any] = None):
        self.job = job
        context = f"running job: {job.id}" if job is not None else None
        super().__init__(message, context)


class ExternalProcessError(PgFleetError):
    """Raised when ansible-playbook cannot be launched or exits non-zero."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        self.returncode = returncode
        context = f"exit code {returncode}" if returncode is not None else None
        super().__init__(message, context)


class CancellationError(PgFleetError):
    """Raised when a running job is cancelled."""

    pass


class ClusterNotFoundError(PgFleetError):
    """Raised when a cluster does not exist in the inventory."""

    def __init__(self, cluster_name: str, available_clusters: list[str]):
        self.cluster_name = cluster_name
        self.available_clusters = available_clusters
        message = f"Cluster '{cluster_name}' not found"
        context = f"Available clusters: {', '.join(available_clusters)}"
        super().__init__(message, context)
