"""Comparing Slurm resource usage with QoS limits, and usage leaderboards."""

from __future__ import annotations

import copy
import warnings
from collections.abc import Iterable, Sequence
from typing import NamedTuple

from fislurm.jobs import (
    AccountJobUsage,
    FilterKind,
    JobFilter,
    JobState,
    SlurmJobs,
    build_node_to_job_map,
    enrich_jobs_with_node_ids,
    format_accounts,
)
from fislurm.nodes import SlurmNodes
from fislurm.tres import TresInfo, TresMax

ALWAYS_SHOW = ("preempt", "gpupreempt")

HELP = (
    'Displays current Slurm resource usage compared to limits. '
    'A value of "-" indictes no limit.'
)

MISSING_GEN_INTER_WARNING = (
    "WARNING: Could not find both 'gen' and 'inter' accounts. "
    "No composite account was created."
)


class LeaderboardRow(NamedTuple):
    """One user's total use of nodes and cores by running jobs."""

    user: str
    nodes: int
    cores: int


def _running(jobs: SlurmJobs) -> SlurmJobs:
    kept = {
        job_id: job
        for job_id, job in jobs.jobs.items()
        if job.job_state is JobState.RUNNING
    }
    return SlurmJobs(kept, jobs.last_update, jobs.last_backfill)


def _usage(account: str, jobs: SlurmJobs, limits: TresMax) -> AccountJobUsage:
    nodes, cores = jobs.get_resource_use()
    return AccountJobUsage(
        account=account,
        nodes=nodes,
        cores=cores,
        gpus=jobs.get_gres_total(),
        max_nodes=limits.max_nodes or 0,
        max_cores=limits.max_cores or 0,
        max_gpus=limits.max_gpus or 0,
    )


def _merge_gen_inter(user_usage: list[AccountJobUsage]) -> list[AccountJobUsage]:
    """Combine the ``gen`` usage with the ``inter`` limits into one ``gen`` row.

    The limits of the gen partition are held by the inter QoS.
    """
    gen_row: AccountJobUsage | None = None
    inter_row: AccountJobUsage | None = None
    rest: list[AccountJobUsage] = []
    for row in user_usage:
        if row.account == "gen":
            gen_row = row
        elif row.account == "inter":
            inter_row = row
        else:
            rest.append(row)

    if gen_row is not None and inter_row is not None:
        composite = AccountJobUsage(
            "gen",
            gen_row.nodes,
            gen_row.cores,
            gen_row.gpus,
            inter_row.max_nodes,
            inter_row.max_cores,
            inter_row.max_gpus,
        )
        return [composite, *rest]
    if gen_row is not None:
        return [gen_row, *rest]
    if inter_row is not None:
        return [*rest, inter_row]
    warnings.warn(MISSING_GEN_INTER_WARNING, stacklevel=3)
    return rest


def compute_limits(
    name: str,
    user_acct: str,
    accounts: Iterable[TresInfo],
    jobs: SlurmJobs,
) -> tuple[list[AccountJobUsage], list[AccountJobUsage]]:
    """Compute user and center usage against QoS limits.

    For each QoS, the user's running jobs in the partition of that name and
    the running jobs of ``user_acct`` there are compared with the per-user and
    per-group TRES limits. Returns ``(user_usage, center_usage)``, each sorted
    by account. User rows with nothing used and no limit are dropped unless
    listed in ALWAYS_SHOW; center rows without any limit are dropped.
    """
    running = _running(jobs)
    user_usage: list[AccountJobUsage] = []
    center_usage: list[AccountJobUsage] = []

    for qos in accounts:
        group = qos.name
        in_partition = running.filter_by(JobFilter(FilterKind.PARTITION, group))
        center_jobs = in_partition.filter_by(JobFilter(FilterKind.ACCOUNT, user_acct))
        user_jobs = in_partition.filter_by(JobFilter(FilterKind.USER_NAME, name))

        user_limits = TresMax.from_string(qos.max_tres_per_user or "")
        center_limits = TresMax.from_string(qos.max_tres_per_group or "")

        user_usage.append(_usage(group, user_jobs, user_limits))
        center_usage.append(_usage(group, center_jobs, center_limits))

    user_usage = _merge_gen_inter(user_usage)

    user_usage = [
        row
        for row in user_usage
        if row.account in ALWAYS_SHOW
        or any(
            (row.nodes, row.cores, row.gpus, row.max_nodes, row.max_cores, row.max_gpus)
        )
    ]
    center_usage = [
        row for row in center_usage if any((row.max_nodes, row.max_cores, row.max_gpus))
    ]

    user_usage.sort(key=lambda row: row.account)
    center_usage.sort(key=lambda row: row.account)
    return user_usage, center_usage


def format_limits(
    name: str,
    user_acct: str,
    user_usage: Iterable[AccountJobUsage],
    center_usage: Iterable[AccountJobUsage],
) -> str:
    """Render the user and center limit tables under their headings."""
    return (
        f"\nUser Limits ({name})\n{format_accounts(user_usage)}\n"
        f"\nCenter Limits ({user_acct})\n{format_accounts(center_usage)}"
    )


def _rank(jobs: SlurmJobs, top_n: int) -> list[LeaderboardRow]:
    totals: dict[str, list[int]] = {}
    for job in jobs.jobs.values():
        if job.job_state is not JobState.RUNNING:
            continue
        usage = totals.setdefault(job.user_name, [0, 0])
        usage[0] += job.num_nodes
        usage[1] += job.num_cpus
    rows = [LeaderboardRow(user, nodes, cores) for user, (nodes, cores) in totals.items()]
    rows.sort(key=lambda row: (row.nodes, row.cores), reverse=True)
    return rows[: max(top_n, 0)]


def leaderboard(jobs: SlurmJobs, top_n: int) -> list[LeaderboardRow]:
    """Return the ``top_n`` users with the most nodes, then cores, in running jobs."""
    return _rank(jobs, top_n)


def leaderboard_feature(
    jobs: SlurmJobs,
    nodes: SlurmNodes,
    top_n: int,
    features: Sequence[str],
) -> list[LeaderboardRow]:
    """Like :func:`leaderboard`, counting only jobs on nodes with any of ``features``.

    The given jobs are left unchanged.
    """
    enriched = copy.deepcopy(jobs)
    enrich_jobs_with_node_ids(enriched, nodes.name_to_id)
    node_to_jobs = build_node_to_job_map(enriched)

    wanted = set(features)
    job_ids = {
        job_id
        for node in nodes.nodes
        if wanted.intersection(node.features)
        for job_id in node_to_jobs.get(node.id, ())
    }
    selected = enriched.filter_by(JobFilter(FilterKind.JOB_IDS, job_ids))
    return _rank(selected, top_n)


def format_leaderboard(rows: Iterable[LeaderboardRow]) -> str:
    """Render leaderboard rows as numbered lines."""
    return "\n".join(
        f"{rank:>2}. {user:<12} is using {nodes:>4} nodes and {cores:>5} cores"
        for rank, (user, nodes, cores) in enumerate(rows, start=1)
    )