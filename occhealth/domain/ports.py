"""Domain Ports - Abstract Contracts for Clinical Record Storage.

This module defines the Port interfaces (abstract contracts) that storage
Adapters must implement, together with the Result type and the exception
hierarchy shared by the whole project. Following Hexagonal Architecture, the
Domain Core defines what it needs, not how it's provided.

Architecture:
    - Pure abstract interfaces with zero infrastructure dependencies
    - Adapters (DuckDB, PostgreSQL) implement these ports
    - One generic "latest record for patient in domain X" operation replaces
      a per-table query for every clinical domain
    - All operations are read-only; clinical records are mutated elsewhere
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, Union

from occhealth.domain.enums import ClinicalDomain
from occhealth.domain.models import DomainRecord, EmployeeSummary, ReportIdentity, ReportSnapshot

# Type variable for Result generic
T = TypeVar('T')


# ============================================================================
# Result Type for Success/Failure Communication
# ============================================================================

@dataclass(frozen=True)
class Result(Generic[T]):
    """Result type for communicating success or failure without exceptions.

    Dashboard services return Result objects so that routes can map failures
    to HTTP responses without catching broad exceptions themselves.

    Attributes:
        success: True if the operation succeeded, False otherwise
        value: The successful result value (only present if success=True)
        error: Error information (only present if success=False)
        error_type: Type of error (ReportNotFoundError, StorageError, etc.)
        error_details: Additional error context (report_id, domain, etc.)

    Example:
        ```python
        result = service.build("RPT-001")
        if result.is_success():
            render(result.value)
        elif result.error_type == "ReportNotFoundError":
            ...
        ```
    """

    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    error_details: Optional[dict] = None

    @classmethod
    def success_result(cls, value: T) -> 'Result[T]':
        """Create a successful result.

        Parameters:
            value: The successful result value

        Returns:
            Result: Success result with the value
        """
        return cls(
            success=True,
            value=value,
            error=None,
            error_type=None,
            error_details=None
        )

    @classmethod
    def failure_result(
        cls,
        error: Union[str, Exception],
        error_type: Optional[str] = None,
        error_details: Optional[dict] = None
    ) -> 'Result[T]':
        """Create a failure result.

        Parameters:
            error: Error message or exception
            error_type: Type of error (e.g., "ReportNotFoundError")
            error_details: Additional context (report_id, employee_id, etc.)

        Returns:
            Result: Failure result with error information
        """
        error_message = str(error) if isinstance(error, Exception) else error
        error_type_name = error_type or (type(error).__name__ if isinstance(error, Exception) else "UnknownError")

        if error_details is None and isinstance(error, OccHealthError):
            error_details = error.details

        return cls(
            success=False,
            value=None,
            error=error_message,
            error_type=error_type_name,
            error_details=error_details or {}
        )

    def is_success(self) -> bool:
        """Check if result is successful."""
        return self.success

    def is_failure(self) -> bool:
        """Check if result is a failure."""
        return not self.success


# ============================================================================
# Custom Exception Hierarchy
# ============================================================================

class OccHealthError(Exception):
    """Base exception for all occupational-health engine errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.details = details or {}


class ReportNotFoundError(OccHealthError):
    """Raised when the base medical report cannot be resolved.

    This is the one fatal, user-visible condition of the comprehensive
    report: without the base report row there is no patient to report on.

    Attributes:
        report_id: The report identifier that was not found
    """

    def __init__(self, report_id: str):
        super().__init__(f"Report not found: {report_id}", details={"report_id": report_id})
        self.report_id = report_id


class EmployeeNotFoundError(OccHealthError):
    """Raised when a treatment timeline is requested for an unknown employee.

    Attributes:
        employee_id: The employee identifier that was not found
    """

    def __init__(self, employee_id: str):
        super().__init__(f"Employee not found: {employee_id}", details={"employee_id": employee_id})
        self.employee_id = employee_id


class StorageError(OccHealthError):
    """Raised when a storage operation fails.

    Attributes:
        operation: The storage operation that failed (connect, query, etc.)
    """

    def __init__(self, message: str, operation: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, details=details)
        self.operation = operation


class UnknownDomainError(StorageError):
    """Raised when an adapter is asked for a domain it has no table for."""

    def __init__(self, domain: str):
        super().__init__(
            f"No storage table registered for domain: {domain}",
            operation="get_latest_record",
            details={"domain": domain}
        )


# ============================================================================
# Storage Ports
# ============================================================================

class DomainStoragePort(ABC):
    """Abstract contract for reading the current clinical picture of a patient.

    Key Principles:
        - Read-only: the engine never writes clinical records
        - Generic: one operation parameterized by domain name
        - Absence is not an error: a missing record is returned as None

    Example Usage:
        ```python
        identity = storage.get_report_identity("RPT-001")
        vitals = storage.get_latest_record(ClinicalDomain.VITALS, identity.employee_id)
        ```
    """

    @abstractmethod
    def get_report_identity(self, report_id: str) -> Optional[ReportIdentity]:
        """Resolve the base medical report with employee and staff details.

        Parameters:
            report_id: Medical report identifier

        Returns:
            ReportIdentity, or None if no such report exists

        Raises:
            StorageError: If the storage backend cannot be queried
        """
        pass

    @abstractmethod
    def get_latest_record(self, domain: ClinicalDomain, employee_id: str) -> Optional[DomainRecord]:
        """Get the most recent record for a patient in one clinical domain.

        The record with the maximum creation timestamp wins; ties are broken
        by the greatest record id.

        Parameters:
            domain: Clinical domain to read
            employee_id: Patient (employee) identifier

        Returns:
            DomainRecord, or None if the patient has no record in the domain

        Raises:
            UnknownDomainError: If the adapter has no table for the domain
            StorageError: If the storage backend cannot be queried
        """
        pass


class ReportHistoryPort(ABC):
    """Abstract contract for reading a patient's historical reports."""

    @abstractmethod
    def get_employee(self, employee_id: str) -> Optional[EmployeeSummary]:
        """Get the employee's identity (name and gender), or None."""
        pass

    @abstractmethod
    def list_report_snapshots(self, employee_id: str) -> list[ReportSnapshot]:
        """List all historical report snapshots for a patient, ordered by date.

        Each snapshot carries the report's own fields and, for every clinical
        domain with a row linked to the report, that row's raw fields.

        Parameters:
            employee_id: Patient (employee) identifier

        Returns:
            Snapshots in ascending report-date order (ties by report id)
        """
        pass

    @abstractmethod
    def search_employees(self, query: Optional[str] = None) -> list[EmployeeSummary]:
        """List employees that have at least one medical report.

        Parameters:
            query: Case-insensitive text matched against the employee id and
                full name; all such employees when None or blank

        Returns:
            Matching employees ordered by employee id
        """
        pass


class ClinicalStoragePort(DomainStoragePort, ReportHistoryPort):
    """Combined port implemented by the storage adapters.

    Adds the housekeeping operations used by the dashboard and CLI.
    """

    @abstractmethod
    def initialize_schema(self) -> Result[None]:
        """Create the report, employee, staff and domain tables if missing."""
        pass

    @abstractmethod
    def query(self, sql: str, params: Optional[list] = None) -> Result[list[dict]]:
        """Run a read query and return rows as dictionaries."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release connections held by the adapter."""
        pass
