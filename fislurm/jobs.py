"""Slurm job records, filtering and per-account usage reporting."""

from __future__ import annotations

import re
from collections import defaultdict
from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from fislurm.parser import parse_slurm_hostlist
from fislurm.utils import time_t_to_datetime

_UNSIGNED = re.compile(r"\+?[0-9]+")
_U32_MAX = 2**32 - 1
_EPOCH = time_t_to_datetime(0)


class JobState(Enum):
    """The state of a Slurm job."""

    PENDING = 0
    RUNNING = 1
    SUSPENDED = 2
    COMPLETE = 3
    CANCELLED = 4
    FAILED = 5
    TIMEOUT = 6
    NODE_FAIL = 7
    PREEMPTED = 8
    BOOT_FAIL = 9
    DEADLINE = 10
    OUT_OF_MEMORY = 11
    END = 12
    UNKNOWN = -1

    @classmethod
    def from_code(cls, state_num: int) -> JobState:
        """Map a numeric Slurm job state to a member; unrecognised codes give UNKNOWN."""
        if state_num < 0:
            return cls.UNKNOWN
        try:
            return cls(state_num)
        except ValueError:
            return cls.UNKNOWN


@dataclass
class Job:
    """A Slurm job with the fields this package uses."""

    job_id: int
    array_job_id: int = 0
    array_task_id: int = 0
    name: str = ""
    user_id: int = 0
    user_name: str = ""
    group_id: int = 0
    partition: str = ""
    account: str = ""
    job_state: JobState = JobState.PENDING
    state_description: str = ""
    submit_time: datetime = _EPOCH
    start_time: datetime = _EPOCH
    end_time: datetime = _EPOCH
    time_limit_minutes: int = 0
    preemptable_time: datetime = _EPOCH
    num_nodes: int = 0
    num_cpus: int = 0
    num_tasks: int = 0
    raw_hostlist: str = ""
    node_ids: list[int] = field(default_factory=list)
    allocated_gres: dict[str, int] = field(default_factory=dict)
    gres_total: str | None = None
    work_dir: str = ""
    command: str = ""
    exit_code: int = 0


class FilterKind(Enum):
    """The attribute a :class:`JobFilter` selects on."""

    JOB_IDS = "job_ids"
    USER_ID = "user_id"
    USER_NAME = "user_name"
    PARTITION = "partition"
    ACCOUNT = "account"


@dataclass(frozen=True)
class JobFilter:
    """A selection criterion: for JOB_IDS the value is a collection of ids."""

    kind: FilterKind
    value: object


def _matches(job: Job, method: JobFilter) -> bool:
    kind, value = method.kind, method.value
    if kind is FilterKind.JOB_IDS:
        assert isinstance(value, Collection)
        return job.job_id in value
    if kind is FilterKind.USER_ID:
        return job.user_id == value
    if kind is FilterKind.USER_NAME:
        return job.user_name == value
    if kind is FilterKind.PARTITION:
        return job.partition == value
    return job.account == value


def _parse_u32(text: str) -> int | None:
    if not _UNSIGNED.fullmatch(text):
        return None
    value = int(text)
    return value if value <= _U32_MAX else None


@dataclass
class SlurmJobs:
    """A collection of jobs keyed by job id, with controller timestamps."""

    jobs: dict[int, Job] = field(default_factory=dict)
    last_update: datetime = _EPOCH
    last_backfill: datetime = _EPOCH

    def filter_by(self, method: JobFilter) -> SlurmJobs:
        """Return a new collection holding only the jobs that match ``method``."""
        kept = {job_id: job for job_id, job in self.jobs.items() if _matches(job, method)}
        return replace(self, jobs=kept)

    def get_resource_use(self) -> tuple[int, int]:
        """Return the total (nodes, cpus) used by the jobs."""
        nodes = sum(job.num_nodes for job in self.jobs.values())
        cpus = sum(job.num_cpus for job in self.jobs.values())
        return nodes, cpus

    def get_gres_total(self) -> int:
        """Sum every numeric ``:``-separated field of the jobs' GRES totals."""
        total = 0
        for job in self.jobs.values():
            if job.gres_total is None:
                continue
            for piece in job.gres_total.split(":"):
                value = _parse_u32(piece)
                if value is not None:
                    total += value
        return total

    def get_gres_strings(self) -> list[str]:
        """Return each job's GRES total string, empty where a job has none."""
        return [job.gres_total or "" for job in self.jobs.values()]


@dataclass
class AccountJobUsage:
    """Usage and limits of nodes, cores and GPUs for one account."""

    account: str
    nodes: int
    cores: int
    gpus: int
    max_nodes: int
    max_cores: int
    max_gpus: int


def enrich_jobs_with_node_ids(slurm_jobs: SlurmJobs, name_to_id: Mapping[str, int]) -> None:
    """Resolve each job's hostlist into node ids, then clear the raw hostlist."""
    for job in slurm_jobs.jobs.values():
        if not job.raw_hostlist:
            continue
        job.node_ids.extend(
            name_to_id[name]
            for name in parse_slurm_hostlist(job.raw_hostlist)
            if name in name_to_id
        )
        job.raw_hostlist = ""


def _zero_to_dash(value: int) -> str:
    return "-" if value == 0 else str(value)


def _widest(values: Iterable[object]) -> int:
    return max((len(str(v)) for v in values), default=0)


def format_accounts(accounts: Iterable[AccountJobUsage]) -> str:
    """Render accounts as an aligned table of ``used/limit`` columns.

    A limit of zero is shown as ``-``.
    """
    accounts = list(accounts)
    name_w = _widest(a.account for a in accounts)
    core_w = _widest(a.cores for a in accounts)
    max_core_w = _widest(a.max_cores for a in accounts)
    node_w = _widest(a.nodes for a in accounts)
    max_node_w = _widest(a.max_nodes for a in accounts)
    gpu_w = _widest(a.gpus for a in accounts)
    max_gpu_w = _widest(a.max_gpus for a in accounts)

    pad = " " * 4
    cores_w = max(core_w + 1 + max_core_w, len("CORES"))
    nodes_w = max(node_w + 1 + max_node_w, len("NODES"))
    gpus_w = max(gpu_w + 1 + max_gpu_w, len("GPUS"))

    lines = [
        f"{'':<{name_w}}{pad}{'CORES':>{cores_w}}{pad}{'NODES':>{nodes_w}}{pad}{'GPUS':>{gpus_w}}"
    ]
    for acc in accounts:
        cores = f"{acc.cores:>{core_w}}/{_zero_to_dash(acc.max_cores):>{max_core_w}}"
        nodes = f"{acc.nodes:>{node_w}}/{_zero_to_dash(acc.max_nodes):>{max_node_w}}"
        gpus = f"{acc.gpus:>{gpu_w}}/{_zero_to_dash(acc.max_gpus):>{max_gpu_w}}"
        lines.append(
            f"{acc.account:<{name_w}}{pad}{cores:<{cores_w}}{pad}{nodes:<{nodes_w}}{pad}{gpus:<{gpus_w}}"
        )
    return "\n".join(lines)


def print_accounts(accounts: Iterable[AccountJobUsage]) -> None:
    """Print the table produced by :func:`format_accounts`."""
    print(format_accounts(accounts))


def build_node_to_job_map(slurm_jobs: SlurmJobs) -> dict[int, list[int]]:
    """Map each node id to the ids of running jobs placed on it."""
    node_to_jobs: dict[int, list[int]] = defaultdict(list)
    for job in slurm_jobs.jobs.values():
        if job.job_state is not JobState.RUNNING:
            continue
        for node_id in job.node_ids:
            node_to_jobs[node_id].append(job.job_id)
    return dict(node_to_jobs)