import warnings

import pytest

from fislurm.jobs import AccountJobUsage, Job, JobState, SlurmJobs, format_accounts
from fislurm.limits import (
    MISSING_GEN_INTER_WARNING,
    compute_limits,
    format_leaderboard,
    format_limits,
    leaderboard,
    leaderboard_feature,
)
from fislurm.nodes import Node, SlurmNodes
from fislurm.tres import TresInfo


def make_jobs(*jobs):
    return SlurmJobs(jobs={job.job_id: job for job in jobs})


def running(job_id, **kwargs):
    return Job(job_id=job_id, job_state=JobState.RUNNING, **kwargs)


@pytest.fixture
def accounts():
    return [
        TresInfo("gen"),
        TresInfo("inter", max_tres_per_user="1=100,4=5"),
        TresInfo("ccb", max_tres_per_group="1=500,4=20,1001=8"),
    ]


@pytest.fixture
def jobs():
    return make_jobs(
        running(1, user_name="alice", partition="gen", account="ccb", num_nodes=2, num_cpus=64),
        Job(job_id=2, user_name="alice", partition="gen", account="ccb",
            num_nodes=9, num_cpus=900, job_state=JobState.PENDING),
        running(3, user_name="bob", partition="ccb", account="ccb",
                num_nodes=1, num_cpus=16, gres_total="gpu:4"),
    )


def test_compute_limits_combines_gen_and_inter(accounts, jobs):
    user_usage, _ = compute_limits("alice", "ccb", accounts, jobs)
    assert user_usage == [AccountJobUsage("gen", 2, 64, 0, 5, 100, 0)]


def test_compute_limits_center_keeps_only_limited(accounts, jobs):
    _, center_usage = compute_limits("alice", "ccb", accounts, jobs)
    assert center_usage == [AccountJobUsage("ccb", 1, 16, 4, 20, 500, 8)]


def test_compute_limits_always_shows_preempt():
    accounts = [TresInfo("gen"), TresInfo("inter"), TresInfo("preempt")]
    user_usage, center_usage = compute_limits("alice", "ccb", accounts, make_jobs())
    assert [row.account for row in user_usage] == ["preempt"]
    assert center_usage == []


def test_compute_limits_warns_without_gen_and_inter():
    accounts = [TresInfo("ccb", max_tres_per_user="1=10")]
    with pytest.warns(UserWarning) as record:
        user_usage, _ = compute_limits("alice", "ccb", accounts, make_jobs())
    assert str(record[0].message) == MISSING_GEN_INTER_WARNING
    assert [row.account for row in user_usage] == ["ccb"]


def test_compute_limits_gen_alone_keeps_own_limits():
    accounts = [TresInfo("gen", max_tres_per_user="1=7")]
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        user_usage, _ = compute_limits("alice", "ccb", accounts, make_jobs())
    assert user_usage == [AccountJobUsage("gen", 0, 0, 0, 0, 7, 0)]


def test_compute_limits_rows_sorted_by_account():
    accounts = [
        TresInfo("zeta", max_tres_per_user="1=1", max_tres_per_group="1=1"),
        TresInfo("inter", max_tres_per_user="1=2"),
        TresInfo("alpha", max_tres_per_user="1=3", max_tres_per_group="1=3"),
        TresInfo("gen"),
    ]
    user_usage, center_usage = compute_limits("alice", "ccb", accounts, make_jobs())
    names = [row.account for row in user_usage]
    assert names == sorted(names)
    assert [row.account for row in center_usage] == ["alpha", "zeta"]


def test_compute_limits_ignores_other_users_jobs(accounts):
    jobs = make_jobs(
        running(5, user_name="carol", partition="gen", account="other", num_nodes=3, num_cpus=30),
    )
    user_usage, _ = compute_limits("alice", "ccb", accounts, jobs)
    assert user_usage[0].nodes == 0
    assert user_usage[0].cores == 0


def test_format_limits_layout(accounts, jobs):
    user_usage, center_usage = compute_limits("alice", "ccb", accounts, jobs)
    text = format_limits("alice", "ccb", user_usage, center_usage)
    assert text.startswith("\nUser Limits (alice)\n" + format_accounts(user_usage))
    assert text.endswith("\nCenter Limits (ccb)\n" + format_accounts(center_usage))


def test_leaderboard_orders_by_nodes():
    jobs = make_jobs(
        running(1, user_name="alice", num_nodes=4, num_cpus=10),
        running(2, user_name="bob", num_nodes=1, num_cpus=50),
        Job(job_id=3, user_name="carol", num_nodes=99, num_cpus=99),
    )
    assert leaderboard(jobs, 10) == [("alice", 4, 10), ("bob", 1, 50)]
    assert leaderboard(jobs, 1) == [("alice", 4, 10)]


def test_leaderboard_sums_per_user():
    first = running(1, user_name="alice", num_nodes=1, num_cpus=8)
    second = running(2, user_name="alice", num_nodes=2, num_cpus=16)
    rows = leaderboard(make_jobs(first, second), 5)
    assert rows == [("alice", first.num_nodes + second.num_nodes,
                     first.num_cpus + second.num_cpus)]


def test_leaderboard_feature_filters_by_node_feature():
    nodes = SlurmNodes.from_nodes([
        Node(id=0, name="n01", cpus=64, features=["icelake"]),
        Node(id=1, name="n02", cpus=64, features=["skylake"]),
    ])
    jobs = make_jobs(
        running(1, user_name="alice", num_nodes=1, num_cpus=32, raw_hostlist="n01"),
        running(2, user_name="bob", num_nodes=1, num_cpus=64, raw_hostlist="n02"),
    )
    assert leaderboard_feature(jobs, nodes, 10, ["icelake"]) == [("alice", 1, 32)]
    assert jobs.jobs[1].raw_hostlist == "n01"
    assert jobs.jobs[1].node_ids == []


def test_leaderboard_feature_no_match_is_empty():
    nodes = SlurmNodes.from_nodes([Node(id=0, name="n01", cpus=8, features=["rome"])])
    jobs = make_jobs(running(1, user_name="alice", num_nodes=1, num_cpus=8, raw_hostlist="n01"))
    assert leaderboard_feature(jobs, nodes, 10, ["genoa"]) == []


def test_format_leaderboard_line():
    text = format_leaderboard([("alice", 4, 10)])
    assert text == " 1. alice        is using    4 nodes and    10 cores"


def test_format_leaderboard_numbers_rows():
    lines = format_leaderboard([("alice", 4, 10), ("bob", 1, 50)]).split("\n")
    assert len(lines) == 2
    assert lines[1].startswith(" 2. bob")
    assert len(lines[0]) == len(lines[1])