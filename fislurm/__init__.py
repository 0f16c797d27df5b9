"""Slurm cluster helpers: hostlists, TRES strings, jobs, nodes, QoS limits and leaderboards."""

__version__ = "0.2.1"

__all__ = [
    "filter",
    "jobs",
    "limits",
    "nodes",
    "parser",
    "qos",
    "tres",
    "utils",
]