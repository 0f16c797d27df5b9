"""Selecting nodes by feature."""

from __future__ import annotations

from collections.abc import Sequence

from fislurm.nodes import Node, SlurmNodes


def filter_nodes_by_feature(
    all_nodes: SlurmNodes, feature_filter: Sequence[str], exact_match: bool
) -> list[Node]:
    """Return the nodes having any of the requested features.

    With ``exact_match`` a feature must equal a requested one; otherwise a
    requested feature need only be a substring of a node's feature. An empty
    filter selects every node.
    """
    if not feature_filter:
        return list(all_nodes.nodes)

    def wanted(node: Node) -> bool:
        if exact_match:
            return any(feature in node.features for feature in feature_filter)
        return any(
            required in actual
            for required in feature_filter
            for actual in node.features
        )

    return [node for node in all_nodes.nodes if wanted(node)]


def gather_all_features(all_nodes: SlurmNodes) -> set[str]:
    """Return every distinct feature present on any node."""
    return {feature for node in all_nodes.nodes for feature in node.features}