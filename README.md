# fislurm

Pure-Python helpers for working with Slurm cluster data:

- **Hostlists**: expand and compress Slurm hostlist expressions (`fislurm.parser`).
- **TRES strings**: parse allocation strings such as `cpu=4,mem=8G` into counts, with
  memory in bytes (`fislurm.parser`).
- **Jobs and nodes**: data models for jobs and nodes, filtering, resource totals, GPU
  (GRES) parsing and node-state decoding (`fislurm.jobs`, `fislurm.nodes`, `fislurm.filter`).
- **QoS limits**: turn QoS records into TRES limits and compare them with current usage
  as an aligned table (`fislurm.qos`, `fislurm.tres`, `fislurm.limits`).
- **Leaderboards**: rank users by the nodes and cores their running jobs hold, optionally
  only on nodes with given features (`fislurm.limits`).

The package has no runtime dependencies.

## Hostlists

```python
from fislurm.parser import parse_slurm_hostlist, compress_hostlist

parse_slurm_hostlist("n[01-03]")
# ['n01', 'n02', 'n03']

parse_slurm_hostlist("login01,node[01-02],gpu01")
# ['login01', 'node01', 'node02', 'gpu01']

compress_hostlist(["c1", "c3", "c4", "c5", "c10"])
# 'c[1,3-5,10]'
```

A range takes its zero padding from its start value; ranges whose start exceeds their
end are ignored. When compressing, a change of padding starts a new range
(`n1, n2, n03, n04` becomes `n[1-2,03-04]`), a single numbered host stays as it is, and
the parts are sorted.

## TRES strings

```python
from fislurm.parser import parse_tres_str

parse_tres_str("cpu=96,mem=1538000M,node=1")
# {'cpu': 96, 'mem': 1612709888000, 'node': 1}
```

Suffixes `K`, `M`, `G` and `T` (either case) are read as powers of 1024. Entries that
are not `key=number` are skipped.

## Utilities

`fislurm.utils.count_blocks(max_blocks, percentage)` splits a bar of `max_blocks` cells,
each in eighths, into full blocks, empty blocks and an optional partial-block character:

```python
from fislurm.utils import count_blocks

count_blocks(20, 0.92)
# (18, 1, '▍')
```

`fislurm.utils.time_t_to_datetime(timestamp)` gives an aware UTC datetime (the epoch
when out of range). `fislurm.utils.read_site_cluster(directory)` returns the trimmed
contents of `site.conf` in the given directory (by default the running program's
directory), or `None` when it cannot be read.

## Jobs

`fislurm.jobs.SlurmJobs` holds `Job` records keyed by job id.

- `filter_by(JobFilter(FilterKind.PARTITION, "gpu"))` returns a new collection; the
  kinds are `JOB_IDS` (value: a collection of ids), `USER_ID`, `USER_NAME`, `PARTITION`
  and `ACCOUNT`.
- `get_resource_use()` returns `(nodes, cpus)`.
- `get_gres_total()` sums every numeric `:`-separated field of the jobs' `gres_total`.
- `get_gres_strings()` lists the GRES strings.

`JobState.from_code(n)` maps numeric states, giving `UNKNOWN` for unrecognised codes.
`enrich_jobs_with_node_ids` resolves each job's hostlist into node ids,
`build_node_to_job_map` maps node ids to running job ids, and `format_accounts` /
`print_accounts` render `AccountJobUsage` rows as `used/limit` columns, with `-` for a
limit of zero.

## Nodes

`fislurm.nodes.SlurmNodes.from_nodes(nodes, last_update)` builds a collection with a
name-to-id index, skipping and counting nodes with no CPUs. `NodeState.from_code(code,
flag_names)` decodes the base state from the low four bits and reports the flags named in
`flag_names` (a mapping of bit value to name); `str()` gives e.g. `IDLE+DRAIN`.
`parse_gres` and `create_gpu_info` read GRES strings such as `gpu:a100:4(IDX:0-3)`.

`fislurm.filter.filter_nodes_by_feature(nodes, features, exact_match)` selects nodes with
any of the features, exactly or by substring; `gather_all_features` lists every feature.

## QoS and limits

`fislurm.qos.process_qos_list(records)` turns mappings with the accounting field names
(`name`, `priority`, `max_jobs_pu`, `max_tres_pu`, `grp_tres`, `max_tres_pa`,
`max_tres_pj`) into `SlurmQos` objects, raising `QosError` when the list is missing or
empty. `fislurm.tres.TresInfo.from_qos` takes a QoS's limits, `TresInfo.format()` renders
them with `tres_parser`, and `TresMax.from_string("1=4,4=2,1001=8")` reads cores, nodes,
memory and GPU maxima (a quantity that cannot be read becomes `UNPARSEABLE_LIMIT`).

```python
from fislurm.limits import compute_limits, format_limits

user_rows, center_rows = compute_limits("alice", "cca", tres_infos, jobs)
print(format_limits("alice", "cca", user_rows, center_rows))
```

`compute_limits` counts only running jobs. The `gen` usage is combined with the `inter`
limits into one `gen` row; when neither is present a warning is issued through
`warnings`. User rows with nothing used and no limit are dropped except `preempt` and
`gpupreempt`; center rows without a limit are dropped.

`leaderboard(jobs, top_n)` and `leaderboard_feature(jobs, nodes, top_n, features)` return
`LeaderboardRow(user, nodes, cores)` tuples sorted by nodes then cores, and
`format_leaderboard(rows)` renders them as numbered lines.

## What this package does not do

It does not connect to a Slurm controller, the accounting database or any monitoring
server, and it has no command-line program. Jobs, nodes and QoS records must be built by
the caller from data obtained elsewhere.