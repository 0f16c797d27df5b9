"""Per-QoS TRES limits: extraction, rendering and numeric maxima."""

from __future__ import annotations

import re
from dataclasses import dataclass

from fislurm.qos import SlurmQos

_UNSIGNED = re.compile(r"\+?[0-9]+")
_U32_MAX = 2**32 - 1

# Value used when a limit is present but its quantity cannot be read.
UNPARSEABLE_LIMIT = 8675309

_TRES_UNITS = {
    "1": "Cores",
    "2": "Memory(gb)",
    "4": "Nodes",
    "1001": "GPUs",
}


def _parse_u32(text: str) -> int | None:
    if not _UNSIGNED.fullmatch(text):
        return None
    value = int(text)
    return value if value <= _U32_MAX else None


def _pairs(tres: str):
    """Yield (category, quantity) for each ``category=quantity`` entry."""
    for entry in tres.split(","):
        if "=" in entry:
            category, quantity = entry.split("=", 1)
            yield category, quantity


def tres_parser(tres: str) -> str:
    """Describe a TRES string such as ``"1=4,1001=2"`` in readable units.

    Each entry becomes `` <quantity> <unit>``; entries without ``=`` are dropped.
    """
    return "".join(
        f" {quantity} {_TRES_UNITS.get(category, 'Unknown unit')}"
        for category, quantity in _pairs(tres)
    )


@dataclass
class TresInfo:
    """The priority and TRES limits of one QoS; None means no limit."""

    name: str
    priority: int = 0
    max_jobs_per_user: int = 0
    max_tres_per_user: str | None = None
    max_tres_per_group: str | None = None
    max_tres_per_job: str | None = None

    @classmethod
    def from_qos(cls, qos: SlurmQos) -> TresInfo:
        """Take the limits of a QoS record."""
        return cls(
            name=qos.name,
            priority=qos.priority,
            max_jobs_per_user=qos.max_jobs_per_user,
            max_tres_per_user=qos.max_tres_per_user,
            max_tres_per_group=qos.max_tres_per_group,
            max_tres_per_job=qos.max_tres_per_job,
        )

    def format(self) -> str:
        """Render the QoS name, priority and any non-empty limits."""

        def labelled(label: str, text: str) -> str:
            return f"\n {label}: {text}" if text else ""

        jpu = tres_parser(str(self.max_jobs_per_user))
        tpu = tres_parser(self.max_tres_per_user or "")
        tpg = tres_parser(self.max_tres_per_group or "")
        tpj = tres_parser(self.max_tres_per_job or "")
        return (
            f"{self.name} \n {self.priority} "
            f"{labelled('JPU', jpu)} {labelled('TPU', tpu)} "
            f"{labelled('TPG', tpg)} {labelled('TPJ', tpj)} \n"
        )


@dataclass
class TresMax:
    """Numeric TRES maxima; None where the limit is not set."""

    max_nodes: int | None = None
    max_cores: int | None = None
    max_memory: int | None = None
    max_gpus: int | None = None

    @classmethod
    def from_string(cls, tres: str) -> TresMax:
        """Read maxima from a TRES string; later entries override earlier ones."""
        fields = {"1": "max_cores", "2": "max_memory", "4": "max_nodes", "1001": "max_gpus"}
        result = cls()
        for category, quantity in _pairs(tres):
            attr = fields.get(category)
            if attr is None:
                continue
            value = _parse_u32(quantity)
            setattr(result, attr, UNPARSEABLE_LIMIT if value is None else value)
        return result