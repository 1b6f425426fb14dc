"""
Rank assignment using networkx.

Ranks are longest-path layers: a node without predecessors sits at rank 0
and every other node sits one rank after its deepest predecessor. Both the
flowchart and the ER layout engines place nodes along their primary axis by
rank.

Cycles are not rejected. While a node's rank is being computed it is marked
in progress; reaching it again through a cycle contributes rank 0 for that
path instead of recursing forever. Ranks a cycle leaves unused are then
closed up, so ``A -> B -> A`` gives B=0, A=1.
"""

from typing import Dict, Iterable, List, Sequence, Set, Tuple

import networkx as nx


def build_graph(nodes: Sequence[str], edges: Iterable[Tuple[str, str]]) -> nx.DiGraph:
    """
    Build a directed graph for ranking.

    Nodes keep declaration order; self-edges are dropped since they never
    affect a rank.
    """
    graph = nx.DiGraph()
    graph.add_nodes_from(nodes)
    graph.add_edges_from((a, b) for a, b in edges if a != b)
    return graph


def assign_ranks(
    nodes: Sequence[str], edges: Iterable[Tuple[str, str]]
) -> Dict[str, int]:
    """
    Assign a rank to every node.

    Args:
        nodes: Node names in declaration order.
        edges: (source, target) pairs.

    Returns:
        Mapping from node name to a non-negative rank.
    """
    graph = build_graph(nodes, edges)
    ranks: Dict[str, int] = {}
    in_progress: Set[str] = set()

    def rank_of(node: str) -> int:
        if node in ranks:
            return ranks[node]
        if node in in_progress:
            return 0

        predecessors = list(graph.predecessors(node))
        if not predecessors:
            ranks[node] = 0
            return 0

        in_progress.add(node)
        rank = 1 + max(rank_of(p) for p in predecessors)
        in_progress.discard(node)
        ranks[node] = rank
        return rank

    for node in graph.nodes:
        rank_of(node)

    dense = {rank: i for i, rank in enumerate(sorted(set(ranks.values())))}
    return {node: dense[ranks[node]] for node in graph.nodes}


def group_by_rank(nodes: Sequence[str], ranks: Dict[str, int]) -> List[List[str]]:
    """Group node names into per-rank lists, preserving declaration order."""
    if not nodes:
        return []
    layers: List[List[str]] = [[] for _ in range(max(ranks[n] for n in nodes) + 1)]
    for node in nodes:
        layers[ranks[node]].append(node)
    return layers
