import pytest

from fislurm.jobs import (
    AccountJobUsage,
    FilterKind,
    Job,
    JobFilter,
    JobState,
    SlurmJobs,
    build_node_to_job_map,
    enrich_jobs_with_node_ids,
    format_accounts,
    print_accounts,
)


def _collection():
    jobs = [
        Job(job_id=1, user_id=10, user_name="alice", partition="gen", account="cca",
            job_state=JobState.RUNNING, num_nodes=2, num_cpus=64, gres_total="gpu:a100:4"),
        Job(job_id=2, user_id=11, user_name="bob", partition="gpu", account="ccb",
            job_state=JobState.PENDING, num_nodes=1, num_cpus=8),
        Job(job_id=3, user_id=10, user_name="alice", partition="gpu", account="cca",
            job_state=JobState.RUNNING, num_nodes=1, num_cpus=16, gres_total="gpu:2"),
    ]
    return SlurmJobs(jobs={j.job_id: j for j in jobs})


@pytest.mark.parametrize(
    "code,state",
    [(0, JobState.PENDING), (1, JobState.RUNNING), (11, JobState.OUT_OF_MEMORY),
     (12, JobState.END), (13, JobState.UNKNOWN), (-1, JobState.UNKNOWN)],
)
def test_job_state_from_code(code, state):
    assert JobState.from_code(code) is state


@pytest.mark.parametrize(
    "method,expected",
    [
        (JobFilter(FilterKind.JOB_IDS, [1, 3]), {1, 3}),
        (JobFilter(FilterKind.USER_ID, 11), {2}),
        (JobFilter(FilterKind.USER_NAME, "alice"), {1, 3}),
        (JobFilter(FilterKind.PARTITION, "gpu"), {2, 3}),
        (JobFilter(FilterKind.ACCOUNT, "ccb"), {2}),
        (JobFilter(FilterKind.USER_NAME, "nobody"), set()),
    ],
)
def test_filter_by(method, expected):
    jobs = _collection()
    assert set(jobs.filter_by(method).jobs) == expected
    assert set(jobs.jobs) == {1, 2, 3}


def test_filters_chain():
    result = (
        _collection()
        .filter_by(JobFilter(FilterKind.PARTITION, "gpu"))
        .filter_by(JobFilter(FilterKind.ACCOUNT, "cca"))
    )
    assert set(result.jobs) == {3}


def test_resource_use_sums_nodes_and_cpus():
    jobs = _collection()
    nodes, cpus = jobs.get_resource_use()
    assert nodes == sum(j.num_nodes for j in jobs.jobs.values())
    assert cpus == sum(j.num_cpus for j in jobs.jobs.values())
    assert SlurmJobs().get_resource_use() == (0, 0)


def test_gres_total_sums_numeric_fields():
    jobs = _collection()
    assert jobs.get_gres_total() == 4 + 2
    assert jobs.filter_by(JobFilter(FilterKind.USER_NAME, "bob")).get_gres_total() == 0


def test_gres_strings():
    assert sorted(_collection().get_gres_strings()) == ["", "gpu:2", "gpu:a100:4"]


def test_enrich_and_node_map():
    jobs = _collection()
    jobs.jobs[1].raw_hostlist = "n[01-02]"
    jobs.jobs[2].raw_hostlist = "n03"
    jobs.jobs[3].raw_hostlist = "n02,unknown"
    enrich_jobs_with_node_ids(jobs, {"n01": 0, "n02": 1, "n03": 2})
    assert jobs.jobs[1].node_ids == [0, 1]
    assert jobs.jobs[2].node_ids == [2]
    assert jobs.jobs[3].node_ids == [1]
    assert all(j.raw_hostlist == "" for j in jobs.jobs.values())

    mapping = build_node_to_job_map(jobs)
    assert mapping == {0: [1], 1: [1, 3]}


def test_format_accounts_layout():
    accounts = [
        AccountJobUsage("gen", 2, 64, 0, 0, 100, 0),
        AccountJobUsage("preempt", 0, 0, 0, 0, 0, 0),
    ]
    lines = format_accounts(accounts).split("\n")
    assert len(lines) == 3
    header = lines[0]
    assert header.index("CORES") < header.index("NODES") < header.index("GPUS")
    assert header.endswith("GPUS")
    assert lines[1].startswith("gen ")
    assert "64/100" in lines[1]
    assert "2/-" in lines[1]
    assert lines[2].startswith("preempt")
    assert len({len(line) for line in lines}) == 1


def test_format_accounts_empty_is_header_only():
    text = format_accounts([])
    assert "\n" not in text
    assert text.split() == ["CORES", "NODES", "GPUS"]


def test_print_accounts(capsys):
    accounts = [AccountJobUsage("gpu", 1, 2, 3, 4, 5, 6)]
    print_accounts(accounts)
    assert capsys.readouterr().out == format_accounts(accounts) + "\n"