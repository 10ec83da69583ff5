"""
Graph Relationship Score
------------------------
Per-claim relationship signal derived from the relationship index.

Default (the only rule enabled out of the box):
    graph_score = clamp(0.6 × scale(bank_reuse_count, 0, 12)
                        + 0.4 × scale(address_degree, 0, 12), 0, 1)

The graph catalog also declares richer rules. They are implemented here on a
claimant projection graph (claimants linked when they share an address, bank
account or device) and can be switched on through the scoring config:

- high_degree_{bank,address,device}_node
- triangle_pattern
- community_detection
- betweenness_centrality
- clustering_coefficient

Each rule returns {claim_id: score in [0, 1]}; enabled rules are combined as
a weight-normalized average.
"""

from abc import ABC, abstractmethod
from collections import defaultdict
from itertools import combinations
from typing import Dict, List, Optional

import networkx as nx

from claim_risk.fraud_engine.ml_inference import clamp, scale
from claim_risk.fraud_engine.relationship_index import RelationshipIndex
from claim_risk.models.catalog import GraphRuleKind, GraphRuleSpec, KeyKind, ScoringConfig
from claim_risk.utils.logger import logger

SHARED_KEYS = (KeyKind.ADDRESS, KeyKind.BANK, KeyKind.DEVICE)

# exact betweenness above this size switches to seeded sampling
_CENTRALITY_MAX_NODES = 3000
_CENTRALITY_SAMPLE = 500
_CENTRALITY_SEED = 42


# =========================================================
# 🕸️ Claimant projection graph
# =========================================================
def build_claimant_graph(index: RelationshipIndex) -> nx.Graph:
    """Undirected graph of claimants with at least one claim; edges = shared address/bank/device."""
    G = nx.Graph()
    for claimant_id in index.keys(KeyKind.CLAIMANT):
        G.add_node(claimant_id)

    for kind in SHARED_KEYS:
        for key in index.keys(kind):
            members = sorted({cl.claimant_id for cl in index.claims_for(kind, key)})
            for a, b in combinations(members, 2):
                if G.has_edge(a, b):
                    G[a][b]["via"].add(kind.value)
                else:
                    G.add_edge(a, b, via={kind.value})

    logger.debug(f"[GRAPH] Claimant graph: {G.number_of_nodes()} nodes, {G.number_of_edges()} edges.")
    return G


def _claims_by_claimant(index: RelationshipIndex, claimant_scores: Dict[str, float]) -> Dict[str, float]:
    """Spread claimant-level scores onto every claim, zero for everything else."""
    scores = {cl.claim_id: 0.0 for cl in index.all_claims()}
    for claimant_id, score in claimant_scores.items():
        for cl in index.claims_for(KeyKind.CLAIMANT, claimant_id):
            scores[cl.claim_id] = score
    return scores


# =========================================================
# 🧩 Rule variants
# =========================================================
class GraphRule(ABC):
    """Base class for graph catalog rules."""

    def __init__(self, spec: GraphRuleSpec):
        self.spec = spec

    @property
    def name(self) -> str:
        return self.spec.name

    @abstractmethod
    def evaluate(self, index: RelationshipIndex, graph: Optional[nx.Graph] = None) -> Dict[str, float]:
        """Return {claim_id: score in [0, 1]} for every claim in the index."""


class SimpleDegreeRule(GraphRule):
    """Two-factor bank/address degree proxy."""

    def score(self, bank_count: int, address_count: int) -> float:
        lo, hi = self.spec.degree_range
        return clamp(
            self.spec.bank_weight * scale(bank_count, lo, hi)
            + self.spec.address_weight * scale(address_count, lo, hi),
            0.0,
            1.0,
        )

    def evaluate(self, index: RelationshipIndex, graph: Optional[nx.Graph] = None) -> Dict[str, float]:
        scores = {}
        for cl in index.all_claims():
            bank = index.count(KeyKind.BANK, index.key_for(KeyKind.BANK, cl))
            address = index.count(KeyKind.ADDRESS, index.key_for(KeyKind.ADDRESS, cl))
            scores[cl.claim_id] = self.score(bank, address)
        return scores


class HighDegreeRule(GraphRule):
    """Flags claims attached to a resource node with too many claims (or claimants)."""

    def degree(self, index: RelationshipIndex, key: str) -> int:
        claims = index.claims_for(self.spec.key, key)
        if self.spec.distinct_claimants:
            return len({cl.claimant_id for cl in claims})
        return len(claims)

    def evaluate(self, index: RelationshipIndex, graph: Optional[nx.Graph] = None) -> Dict[str, float]:
        hot_keys = {key for key in index.keys(self.spec.key) if self.degree(index, key) >= self.spec.threshold}
        return {
            cl.claim_id: 1.0 if index.key_for(self.spec.key, cl) in hot_keys else 0.0
            for cl in index.all_claims()
        }


class TriangleRule(GraphRule):
    def evaluate(self, index: RelationshipIndex, graph: Optional[nx.Graph] = None) -> Dict[str, float]:
        G = graph if graph is not None else build_claimant_graph(index)
        triangles = nx.triangles(G)
        flagged = {node: 1.0 for node, count in triangles.items() if count >= self.spec.threshold}
        return _claims_by_claimant(index, flagged)


class CommunityRule(GraphRule):
    """Connected communities (3+ claimants) whose mean claim amount exceeds threshold × global mean."""

    def evaluate(self, index: RelationshipIndex, graph: Optional[nx.Graph] = None) -> Dict[str, float]:
        G = graph if graph is not None else build_claimant_graph(index)
        linked = G.subgraph([n for n in G.nodes if G.degree(n) > 0])
        all_claims = index.all_claims()
        if not all_claims or linked.number_of_edges() == 0:
            return _claims_by_claimant(index, {})

        global_mean = sum(cl.amount for cl in all_claims) / len(all_claims)
        flagged: Dict[str, float] = {}
        for community in nx.community.greedy_modularity_communities(linked):
            if len(community) < 3:
                continue
            amounts = [cl.amount for cid in community for cl in index.claims_for(KeyKind.CLAIMANT, cid)]
            mean = sum(amounts) / len(amounts)
            if global_mean > 0 and mean >= self.spec.threshold * global_mean:
                flagged.update({cid: 1.0 for cid in community})
        return _claims_by_claimant(index, flagged)


class CentralityRule(GraphRule):
    def evaluate(self, index: RelationshipIndex, graph: Optional[nx.Graph] = None) -> Dict[str, float]:
        G = graph if graph is not None else build_claimant_graph(index)
        if G.number_of_nodes() > _CENTRALITY_MAX_NODES:
            logger.info(f"[GRAPH] {G.number_of_nodes()} nodes: sampling betweenness with k={_CENTRALITY_SAMPLE}.")
            centrality = nx.betweenness_centrality(G, k=_CENTRALITY_SAMPLE, normalized=True, seed=_CENTRALITY_SEED)
        else:
            centrality = nx.betweenness_centrality(G, normalized=True)
        flagged = {node: 1.0 for node, value in centrality.items() if value >= self.spec.threshold}
        return _claims_by_claimant(index, flagged)


class ClusteringRule(GraphRule):
    """Connected claimants (degree ≥ 2) whose neighbours barely know each other."""

    def evaluate(self, index: RelationshipIndex, graph: Optional[nx.Graph] = None) -> Dict[str, float]:
        G = graph if graph is not None else build_claimant_graph(index)
        coefficients = nx.clustering(G)
        flagged = {
            node: 1.0
            for node, value in coefficients.items()
            if G.degree(node) >= 2 and value < self.spec.threshold
        }
        return _claims_by_claimant(index, flagged)


_RULE_TYPES = {
    GraphRuleKind.SIMPLE_DEGREE: SimpleDegreeRule,
    GraphRuleKind.HIGH_DEGREE: HighDegreeRule,
    GraphRuleKind.TRIANGLE: TriangleRule,
    GraphRuleKind.COMMUNITY: CommunityRule,
    GraphRuleKind.CENTRALITY: CentralityRule,
    GraphRuleKind.CLUSTERING: ClusteringRule,
}


def build_graph_rule(spec: GraphRuleSpec) -> GraphRule:
    return _RULE_TYPES[spec.kind](spec)


# =========================================================
# ⚙️ Graph Scorer
# =========================================================
class GraphScorer:
    """Combines the enabled graph rules into one score per claim."""

    def __init__(self, scoring_config: ScoringConfig):
        self.rules: List[GraphRule] = [build_graph_rule(spec) for spec in scoring_config.enabled_graph_rules]

    @property
    def needs_projection(self) -> bool:
        return any(not isinstance(rule, (SimpleDegreeRule, HighDegreeRule)) for rule in self.rules)

    def evaluate(self, index: RelationshipIndex) -> Dict[str, float]:
        graph = build_claimant_graph(index) if self.needs_projection else None
        total_weight = sum(rule.spec.weight for rule in self.rules)
        combined: Dict[str, float] = defaultdict(float)

        for rule in self.rules:
            scores = rule.evaluate(index, graph)
            hits = sum(1 for s in scores.values() if s > 0)
            logger.debug(f"[GRAPH] Rule '{rule.name}': {hits} claims with a non-zero score.")
            for claim_id, score in scores.items():
                combined[claim_id] += rule.spec.weight * score

        return {claim_id: clamp(value / total_weight, 0.0, 1.0) for claim_id, value in combined.items()}
