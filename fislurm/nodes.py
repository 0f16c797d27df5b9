"""Slurm node records, node states and GPU resource parsing."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from fislurm.utils import time_t_to_datetime

_EPOCH = time_t_to_datetime(0)
_BASE_STATE_MASK = 0xF
_U64_MAX = 2**64 - 1


@dataclass
class AcctGatherEnergy:
    """Energy accounting for a node; energies in joules, power in watts."""

    average_watts: int = 0
    base_consumed_energy: int = 0
    consumed_energy: int = 0
    current_watts: int = 0
    last_adjustment: int = 0
    previous_consumed_energy: int = 0
    poll_time: datetime = _EPOCH
    slurmd_start_time: datetime = _EPOCH


class BaseNodeState(Enum):
    """The base state of a node, held in the low four bits of its state code."""

    DOWN = 1
    IDLE = 2
    ALLOCATED = 3
    ERROR = 4
    MIXED = 5
    FUTURE = 6
    END = 7
    UNKNOWN = -1

    @property
    def label(self) -> str:
        return self.name.capitalize()


@dataclass(frozen=True)
class NodeState:
    """A node state: a base state plus any named flags that are set.

    ``detail`` describes an unrecognised base state.
    """

    base: BaseNodeState
    flags: tuple[str, ...] = ()
    detail: str = ""

    @classmethod
    def from_code(
        cls, state_num: int, flag_names: Mapping[int, str] | None = None
    ) -> NodeState:
        """Decode a numeric node state.

        ``flag_names`` maps flag bit values to their names; flags are reported
        in the mapping's order, and a bit already reported under an earlier
        name is not reported again.
        """
        base_num = state_num & _BASE_STATE_MASK
        try:
            base = BaseNodeState(base_num)
            detail = ""
        except ValueError:
            base = BaseNodeState.UNKNOWN
            detail = f"BASE({base_num})"

        flags: list[str] = []
        if flag_names:
            known = 0
            for bit in flag_names:
                known |= bit
            remaining = state_num & known
            for bit, name in flag_names.items():
                if bit and (state_num & bit) == bit and remaining & bit:
                    flags.append(name)
                    remaining &= ~bit
        return cls(base, tuple(flags), detail)

    @property
    def is_compound(self) -> bool:
        return bool(self.flags)

    def _base_text(self) -> str:
        if self.base is BaseNodeState.UNKNOWN:
            return f"UNKNOWN({self.detail})"
        return self.base.label

    def __str__(self) -> str:
        base_text = self._base_text()
        if not self.flags:
            return base_text
        flags_text = "+".join(flag.upper() for flag in self.flags)
        return f"{base_text.upper()}+{flags_text}"


@dataclass
class GpuInfo:
    """The GPUs of a node, assuming it has a single kind of GPU."""

    name: str
    total_gpus: int
    allocated_gpus: int


def _parse_count(text: str) -> int | None:
    if not text.isascii() or not text.lstrip("+").isdigit() or text.count("+") > 1:
        return None
    if text.startswith("+") and len(text) == 1:
        return None
    value = int(text)
    return value if value <= _U64_MAX else None


def parse_gres(gres: str | None) -> dict[str, int]:
    """Parse a GRES string like ``"gpu:a100:4(IDX:0-3)"`` into name -> count.

    Parenthesised metadata is dropped and the count is taken after the last
    colon. Entries without a valid count are skipped.
    """
    if gres is None:
        return {}
    result: dict[str, int] = {}
    for entry in gres.split(","):
        main_part = entry.split("(", 1)[0].strip()
        if ":" not in main_part:
            continue
        key, count_text = main_part.rsplit(":", 1)
        count = _parse_count(count_text)
        if count is not None:
            result[key] = count
    return result


def create_gpu_info(gres: str | None, gres_used: str | None) -> GpuInfo | None:
    """Build GPU information from configured and used GRES strings.

    Returns None when no GRES entry starting with ``gpu`` has a positive count.
    """
    configured = parse_gres(gres)
    allocated = parse_gres(gres_used)
    gpu_key = next((key for key in configured if key.startswith("gpu")), None)
    if gpu_key is None:
        return None
    total = configured.get(gpu_key, 0)
    if total <= 0:
        return None
    return GpuInfo(gpu_key, total, allocated.get(gpu_key, 0))


def _default_state() -> NodeState:
    return NodeState(BaseNodeState.UNKNOWN, detail="N/A")


@dataclass
class Node:
    """A Slurm node with the fields this package uses. Memory is in MB."""

    id: int
    name: str
    state: NodeState = field(default_factory=_default_state)
    next_state: NodeState = field(default_factory=_default_state)
    node_addr: str = ""
    node_hostname: str = ""

    cpus: int = 0
    cores: int = 0
    core_spec_count: int = 0
    cpu_bind: int = 0
    cpu_load: int = 0
    cpus_effective: int = 0

    real_memory: int = 0
    free_memory: int = 0
    mem_spec_limit: int = 0

    energy: AcctGatherEnergy | None = None

    features: list[str] = field(default_factory=list)
    active_features: list[str] = field(default_factory=list)

    gpu_info: GpuInfo | None = None
    gres: str = ""
    gres_drain: str = ""
    gres_used: str = ""
    res_cores_per_gpu: int = 0

    boot_time: datetime = _EPOCH
    last_busy: datetime = _EPOCH
    slurmd_start_time: datetime = _EPOCH
    reason_time: datetime = _EPOCH
    resume_after: datetime = _EPOCH

    architecture: str = ""
    operating_system: str = ""
    reason: str = ""
    broadcast_address: str = ""
    boards: int = 0
    cluster_name: str = ""
    extra: str = ""
    comment: str = ""
    mcs_label: str = ""
    owner: int = 0
    partitions: str = ""
    port: int = 0
    reason_uid: int = 0
    resv_name: str = ""
    sockets: int = 0
    threads: int = 0
    tmp_disk: int = 0
    weight: int = 0
    version: str = ""


@dataclass
class SlurmNodes:
    """A collection of nodes with a lookup from node name to node id."""

    nodes: list[Node] = field(default_factory=list)
    name_to_id: dict[str, int] = field(default_factory=dict)
    last_update: datetime = _EPOCH
    skip_count: int = 0

    @classmethod
    def from_nodes(
        cls, nodes: Iterable[Node], last_update: datetime | None = None
    ) -> SlurmNodes:
        """Collect nodes, skipping (and counting) misconfigured ones with no CPUs."""
        kept: list[Node] = []
        name_to_id: dict[str, int] = {}
        skipped = 0
        for node in nodes:
            if node.cpus == 0:
                skipped += 1
                continue
            name_to_id[node.name] = node.id
            kept.append(node)
        return cls(
            nodes=kept,
            name_to_id=name_to_id,
            last_update=last_update if last_update is not None else _EPOCH,
            skip_count=skipped,
        )