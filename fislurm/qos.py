"""Quality-of-service records from the Slurm accounting database."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any


class QosError(Exception):
    """Raised when QoS information cannot be obtained."""


def _text(record: Mapping[str, Any], key: str) -> str | None:
    value = record.get(key)
    return None if value is None else str(value)


@dataclass
class SlurmQos:
    """A QoS with its priority and its TRES limits.

    A limit of None means the database record has no such limit.
    """

    name: str
    priority: int = 0
    max_jobs_per_user: int = 0
    max_tres_per_user: str | None = None
    max_tres_per_group: str | None = None
    max_tres_per_account: str | None = None
    max_tres_per_job: str | None = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> SlurmQos:
        """Build a QoS from a database record using the accounting field names.

        The fields read are ``name``, ``priority``, ``max_jobs_pu``,
        ``max_tres_pu``, ``grp_tres``, ``max_tres_pa`` and ``max_tres_pj``.
        """
        return cls(
            name=_text(record, "name") or "",
            priority=int(record.get("priority") or 0),
            max_jobs_per_user=int(record.get("max_jobs_pu") or 0),
            max_tres_per_user=_text(record, "max_tres_pu"),
            max_tres_per_group=_text(record, "grp_tres"),
            max_tres_per_account=_text(record, "max_tres_pa"),
            max_tres_per_job=_text(record, "max_tres_pj"),
        )


def process_qos_list(records: Iterable[Mapping[str, Any]] | None) -> list[SlurmQos]:
    """Convert QoS records into :class:`SlurmQos` objects.

    Raises QosError when no list was returned or the list is empty.
    """
    if records is None:
        raise QosError("QoS list is missing")
    results = [SlurmQos.from_record(record) for record in records]
    if not results:
        raise QosError("List of QoS successfully retrieved but empty")
    return results