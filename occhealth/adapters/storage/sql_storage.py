"""Port operations shared by the SQL storage adapters.

The DuckDB and PostgreSQL adapters differ only in how they connect, run a
statement and name their parameter placeholder. Everything that reads or
writes the clinical tables is written once here against two primitives:
_fetch_all (run a read, rows as dictionaries) and _execute (run writes in
one transaction).
"""

import logging
from abc import abstractmethod
from typing import Any, Optional

from occhealth.adapters.storage import schema
from occhealth.domain.enums import ClinicalDomain
from occhealth.domain.models import (
    DomainRecord,
    EmployeeSummary,
    ReportIdentity,
    ReportSnapshot,
)
from occhealth.domain.ports import (
    ClinicalStoragePort,
    Result,
    StorageError,
    UnknownDomainError,
)

logger = logging.getLogger(__name__)

JOINED_REPORT_COLUMNS = ("doctor_name", "nurse_name", "employee_name")


class SQLClinicalStorage(ClinicalStoragePort):
    """Clinical storage over an SQL database.

    Subclasses set dialect and placeholder and implement _fetch_all and
    _execute; both raise StorageError on failure.
    """

    dialect: str = ""
    placeholder: str = "?"

    @abstractmethod
    def _fetch_all(self, sql: str, params: Optional[list] = None) -> list[dict[str, Any]]:
        """Run a read statement and return the rows as dictionaries."""
        pass

    @abstractmethod
    def _execute(self, statements: list[tuple[str, Optional[list]]]) -> None:
        """Run write statements in a single transaction."""
        pass

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def initialize_schema(self) -> Result[None]:
        """Create the report, employee, staff and domain tables and indexes.

        Returns:
            Result[None]: Success or failure result
        """
        try:
            self._execute([(statement, None) for statement in schema.schema_statements(self.dialect)])
            logger.info(f"{self.dialect} schema initialized ({len(schema.ALL_TABLES)} tables)")
            return Result.success_result(None)
        except StorageError as e:
            error_msg = f"Failed to initialize schema: {str(e)}"
            logger.error(error_msg)
            return Result.failure_result(
                StorageError(error_msg, operation="initialize_schema"),
                error_type="StorageError",
            )

    def query(self, sql: str, params: Optional[list] = None) -> Result[list[dict]]:
        """Run a read query and return rows as dictionaries."""
        try:
            return Result.success_result(self._fetch_all(sql, params))
        except StorageError as e:
            logger.error(f"Query failed: {str(e)}")
            return Result.failure_result(e, error_type="StorageError")

    def insert_row(self, table: str, row: dict[str, Any]) -> Result[None]:
        """Insert one row into a known table.

        Table and column names are checked against the schema before any
        SQL is built, so they never come from untrusted input.

        Parameters:
            table: Table name (e.g. "lab_tests")
            row: Column -> value mapping

        Returns:
            Result[None]: Success or failure result
        """
        table_def = schema.ALL_TABLES.get(table)
        if table_def is None:
            return Result.failure_result(
                StorageError(f"Unknown table: {table}", operation="insert_row"),
                error_type="StorageError",
            )

        unknown = sorted(set(row) - set(table_def.column_names))
        if unknown:
            return Result.failure_result(
                StorageError(
                    f"Unknown columns for {table}: {', '.join(unknown)}",
                    operation="insert_row",
                    details={"table": table, "columns": unknown},
                ),
                error_type="StorageError",
            )

        columns = [name for name in table_def.column_names if name in row]
        try:
            self._execute([
                (schema.insert_sql(table_def, columns, self.placeholder), [row[name] for name in columns]),
            ])
            return Result.success_result(None)
        except StorageError as e:
            logger.error(f"Failed to insert into {table}: {str(e)}")
            return Result.failure_result(e, error_type="StorageError")

    # ------------------------------------------------------------------
    # DomainStoragePort
    # ------------------------------------------------------------------

    def get_report_identity(self, report_id: str) -> Optional[ReportIdentity]:
        rows = self._fetch_all(schema.report_identity_sql(self.placeholder), [report_id])
        if not rows:
            return None
        return ReportIdentity(**rows[0])

    def get_latest_record(self, domain: ClinicalDomain, employee_id: str) -> Optional[DomainRecord]:
        table = self._table_for(domain)
        rows = self._fetch_all(schema.latest_record_sql(table, self.placeholder), [employee_id])
        if not rows:
            return None
        return schema.row_to_record(domain, rows[0])

    # ------------------------------------------------------------------
    # ReportHistoryPort
    # ------------------------------------------------------------------

    def get_employee(self, employee_id: str) -> Optional[EmployeeSummary]:
        rows = self._fetch_all(schema.employee_sql(self.placeholder), [employee_id])
        if not rows:
            return None
        return EmployeeSummary(**rows[0])

    def search_employees(self, query: Optional[str] = None) -> list[EmployeeSummary]:
        if query is None or not query.strip():
            rows = self._fetch_all(schema.employees_with_reports_sql())
        else:
            pattern = schema.like_pattern(query.strip())
            rows = self._fetch_all(schema.employees_with_reports_sql(self.placeholder), [pattern, pattern])
        return [EmployeeSummary(**row) for row in rows]

    def list_report_snapshots(self, employee_id: str) -> list[ReportSnapshot]:
        reports = self._fetch_all(schema.report_history_sql(self.placeholder), [employee_id])
        if not reports:
            return []

        linked: dict[str, dict[ClinicalDomain, dict[str, Any]]] = {row["id"]: {} for row in reports}
        for domain, table in schema.DOMAIN_TABLES.items():
            for row in self._fetch_all(schema.linked_records_sql(table, self.placeholder), [employee_id]):
                if row["report_id"] in linked:
                    linked[row["report_id"]][domain] = schema.domain_fields(row)

        snapshots = []
        for row in reports:
            snapshots.append(ReportSnapshot(
                report_id=row["id"],
                employee_id=row["employee_id"],
                report_date=row.get("date_created"),
                doctor_name=row.get("doctor_name") or None,
                nurse_name=row.get("nurse_name") or None,
                employee_name=row.get("employee_name") or None,
                report_fields={k: v for k, v in row.items() if k not in JOINED_REPORT_COLUMNS},
                domains=linked[row["id"]],
            ))
        return snapshots

    def _table_for(self, domain: ClinicalDomain) -> schema.TableDef:
        table = schema.DOMAIN_TABLES.get(domain)
        if table is None:
            raise UnknownDomainError(getattr(domain, "value", str(domain)))
        return table
