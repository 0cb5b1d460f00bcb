"""Domain Record Resolver.

Resolves the base medical report of a request and then, concurrently, the
current record of every registered clinical domain for the report's patient.

Concurrency model:
    - Identity lookup completes before any domain fetch starts
    - Domain fetches run in one asyncio.TaskGroup; each runs the blocking
      port call in a worker thread, bounded by a per-fetch timeout
    - A fetch that fails or times out resolves to None for its domain and
      never affects its siblings
    - Cancelling the caller cancels every in-flight fetch; cancellation is
      never absorbed here
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Iterable, Optional, Sequence

from occhealth.domain.enums import ClinicalDomain
from occhealth.domain.models import DomainRecord, PatientRecordSet, ReportIdentity
from occhealth.domain.ports import DomainStoragePort, ReportNotFoundError

logger = logging.getLogger(__name__)

REGISTERED_DOMAINS: tuple[ClinicalDomain, ...] = tuple(ClinicalDomain)


def _record_id_key(record_id: Optional[str]) -> tuple[bool, str]:
    # Ids compare as text, the way the storage adapters order them.
    return (record_id is not None, str(record_id) if record_id is not None else "")


def select_latest(records: Iterable[DomainRecord]) -> Optional[DomainRecord]:
    """Pick the current record of a domain.

    The record with the greatest created_at wins; ties are broken by the
    greatest record id. Records without created_at rank below all others.

    Parameters:
        records: Candidate records of one domain for one patient

    Returns:
        The latest record, or None when there are no candidates
    """
    candidates = list(records)
    if not candidates:
        return None
    return max(
        candidates,
        key=lambda r: (
            r.created_at is not None,
            r.created_at or datetime.min,
            _record_id_key(r.record_id),
        ),
    )


class DomainRecordResolver:
    """Builds the PatientRecordSet for one report.

    Example Usage:
        ```python
        resolver = DomainRecordResolver(storage, timeout=settings.domain_fetch_timeout)
        identity = await resolver.resolve_identity("RPT-001")
        records = await resolver.resolve(identity.employee_id)
        ```
    """

    def __init__(
        self,
        storage: DomainStoragePort,
        timeout: Optional[float] = None,
        domains: Sequence[ClinicalDomain] = REGISTERED_DOMAINS,
    ):
        """Initialize the resolver.

        Parameters:
            storage: Storage port the records are read from
            timeout: Seconds allowed per domain fetch (None for no limit)
            domains: Domains to resolve, in report order
        """
        self.storage = storage
        self.timeout = timeout
        self.domains = tuple(domains)

    async def resolve_identity(self, report_id: str) -> ReportIdentity:
        """Resolve the base medical report.

        Raises:
            ReportNotFoundError: If no report has this id
            StorageError: If the lookup itself fails
        """
        identity = await asyncio.to_thread(self.storage.get_report_identity, report_id)
        if identity is None:
            raise ReportNotFoundError(report_id)
        return identity

    async def resolve(self, employee_id: str) -> PatientRecordSet:
        """Fetch the current record of every domain concurrently.

        Parameters:
            employee_id: Patient (employee) identifier

        Returns:
            PatientRecordSet with one slot per domain; absent, failed and
            timed-out domains hold None
        """
        start = time.perf_counter()
        async with asyncio.TaskGroup() as group:
            tasks = {
                domain: group.create_task(self._fetch(domain, employee_id))
                for domain in self.domains
            }

        records = {domain: task.result() for domain, task in tasks.items()}
        record_set = PatientRecordSet(employee_id=employee_id, records=records)

        logger.debug(
            f"Resolved {len(self.domains) - len(record_set.missing)}/{len(self.domains)} "
            f"domains for employee {employee_id} in {time.perf_counter() - start:.3f}s"
        )
        return record_set

    async def _fetch(self, domain: ClinicalDomain, employee_id: str) -> Optional[DomainRecord]:
        try:
            async with asyncio.timeout(self.timeout):
                record = await asyncio.to_thread(
                    self.storage.get_latest_record, domain, employee_id
                )
        except TimeoutError:
            logger.warning(
                f"Fetch of {domain.value} for employee {employee_id} exceeded "
                f"{self.timeout}s; using defaults"
            )
            return None
        except Exception as e:
            logger.warning(
                f"Fetch of {domain.value} for employee {employee_id} failed; using defaults: {str(e)}"
            )
            return None

        if record is None:
            logger.debug(f"No {domain.value} record for employee {employee_id}")
        return record
