"""Deterministic concentric layout of a community network.

Exchange metabolites are grouped by their number of visible edges. Metabolites
linked to three or more nodes sit on the innermost ring, metabolites linked to
two organisms sit on a ring between them, organisms sit on the next ring and
metabolites with a single edge fan out around their organism on the outermost
ring. Positions depend only on the current topology and visibility.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import math
from typing import Optional

from scynet.community import (
    CommunityNetwork,
    ExchangeMetaboliteNode,
    OrganismNode,
    require_community,
)
from scynet.errors import ConfigError
from scynet.registry import register

logger = logging.getLogger(__name__)

DEFAULT_MEMBER_SIZE = 150.0
DEFAULT_METABOLITE_SIZE = 32.0

PairKey = tuple[str, str]


@dataclass
class RingRadii:
    multi: float
    double: float
    organism: float
    single: float


@dataclass
class LayoutResult:
    radii: RingRadii
    ordering: list[str] = field(default_factory=list)
    positions: dict[str, tuple[float, float]] = field(default_factory=dict)
    singles: list[str] = field(default_factory=list)
    doubles: list[str] = field(default_factory=list)
    multis: list[str] = field(default_factory=list)
    hidden: list[str] = field(default_factory=list)


def _round_half_up(value: float) -> float:
    return float(math.floor(value + 0.5))


def polar_to_xy(radius: float, radians: float) -> tuple[float, float]:
    """Polar to cartesian coordinates, rounded to whole units."""
    return (
        _round_half_up(radius * math.cos(radians)),
        _round_half_up(radius * math.sin(radians)),
    )


def ring_radii(
    count_multi: int,
    count_double: int,
    count_organism: int,
    count_single: int,
    *,
    member_size: float = DEFAULT_MEMBER_SIZE,
    metabolite_size: float = DEFAULT_METABOLITE_SIZE,
) -> RingRadii:
    """Radii of the four rings, innermost first.

    Each ring is pushed outwards to keep a fixed clearance from the ring
    inside it.
    """
    s_met = metabolite_size
    s_org = member_size
    r_multi = math.ceil(count_multi / math.pi) * s_met + 2 * s_met
    r_double = max(math.ceil(count_double / math.pi) + 4 * s_met, r_multi + 3 * s_met)
    r_org = max(math.ceil(count_organism / math.pi) * s_org + 2 * s_org, r_double + 2 * s_org)
    r_single = max(math.ceil(count_single / math.pi) * s_met + 4 * s_met, r_org + 4 * s_met)
    return RingRadii(
        multi=float(r_multi),
        double=float(r_double),
        organism=float(r_org),
        single=float(r_single),
    )


def _pair_key(first: str, second: str) -> PairKey:
    return (first, second) if first < second else (second, first)


def order_organisms(
    organisms: list[OrganismNode],
    pair_counts: dict[PairKey, int],
) -> list[OrganismNode]:
    """Greedy ring ordering that puts frequently paired organisms side by side.

    Ties between equal pair counts go to the pair seen first.
    """
    if not pair_counts:
        return list(organisms)
    by_name = {node.name: node for node in organisms}
    remaining = dict(pair_counts)
    seed = max(remaining, key=lambda pair: remaining[pair])
    del remaining[seed]
    ordered = [by_name[seed[0]], by_name[seed[1]]]
    placed = {seed[0], seed[1]}
    while len(ordered) < len(organisms):
        last = ordered[-1].name
        best: Optional[str] = None
        best_count = 0
        for (first, second), count in remaining.items():
            if count <= best_count or last not in (first, second):
                continue
            candidate = second if first == last else first
            if candidate in placed:
                continue
            best, best_count = candidate, count
        if best is None:
            best = next(node.name for node in organisms if node.name not in placed)
        ordered.append(by_name[best])
        placed.add(best)
    return ordered


def concentric_layout(
    network: CommunityNetwork,
    *,
    member_size: float = DEFAULT_MEMBER_SIZE,
    metabolite_size: float = DEFAULT_METABOLITE_SIZE,
) -> LayoutResult:
    """Assign x/y coordinates to every visible node of a community network.

    Raises LayoutPreconditionError for networks that were not collapsed.
    """
    require_community(network)
    if member_size <= 0 or metabolite_size <= 0:
        raise ConfigError("Layout node sizes must be positive.")

    organisms = [node for node in network.organisms() if node.visible]
    singles: list[ExchangeMetaboliteNode] = []
    doubles: list[ExchangeMetaboliteNode] = []
    multis: list[ExchangeMetaboliteNode] = []
    hidden: list[str] = []
    for metabolite in network.metabolites():
        if not metabolite.visible:
            continue
        degree = len(network.visible_incident_edges(metabolite.node_id))
        if degree == 0:
            metabolite.visible = False
            hidden.append(metabolite.node_id)
        elif degree == 1:
            singles.append(metabolite)
        elif degree == 2:
            doubles.append(metabolite)
        else:
            multis.append(metabolite)

    def neighbors(node_id: str) -> list[str]:
        return [
            edge.target if edge.source == node_id else edge.source
            for edge in network.visible_incident_edges(node_id)
        ]

    double_pairs: dict[str, Optional[PairKey]] = {}
    pair_counts: dict[PairKey, int] = {}
    for metabolite in doubles:
        ends = [network.node(node_id) for node_id in neighbors(metabolite.node_id)]
        pair: Optional[PairKey] = None
        if all(isinstance(end, OrganismNode) for end in ends) and ends[0].name != ends[1].name:
            pair = _pair_key(ends[0].name, ends[1].name)
            pair_counts[pair] = pair_counts.get(pair, 0) + 1
        double_pairs[metabolite.node_id] = pair

    ordered = order_organisms(organisms, pair_counts)
    radii = ring_radii(
        len(multis),
        len(doubles),
        len(ordered),
        len(singles),
        member_size=member_size,
        metabolite_size=metabolite_size,
    )
    result = LayoutResult(
        radii=radii,
        ordering=[node.node_id for node in ordered],
        singles=[node.node_id for node in singles],
        doubles=[node.node_id for node in doubles],
        multis=[node.node_id for node in multis],
        hidden=hidden,
    )

    def place(node_id: str, radius: float, radians: float) -> None:
        x, y = polar_to_xy(radius, radians)
        node = network.node(node_id)
        node.x, node.y = x, y
        result.positions[node_id] = (x, y)

    for index, metabolite in enumerate(multis):
        place(metabolite.node_id, radii.multi, 2 * math.pi * index / len(multis))

    count_members = len(ordered)
    ring_index = {node.name: index for index, node in enumerate(ordered)}
    for index, organism in enumerate(ordered):
        place(organism.node_id, radii.organism, 2 * math.pi * index / count_members)

    adjacent: list[tuple[ExchangeMetaboliteNode, PairKey, int, int]] = []
    scattered: list[ExchangeMetaboliteNode] = []
    for metabolite in doubles:
        pair = double_pairs[metabolite.node_id]
        if pair is None:
            scattered.append(metabolite)
            continue
        first, second = ring_index[pair[0]], ring_index[pair[1]]
        if abs(first - second) == 1:
            adjacent.append((metabolite, pair, first, second))
        elif {first, second} == {0, count_members - 1}:
            adjacent.append((metabolite, pair, count_members - 1, count_members))
        else:
            scattered.append(metabolite)

    placed_per_pair: dict[PairKey, int] = {}
    for metabolite, pair, first, second in adjacent:
        offset = 4 * metabolite_size + 1.5 * metabolite_size * placed_per_pair.get(pair, 0)
        radians = 2 * math.pi * (first + second) / (2 * count_members)
        place(metabolite.node_id, radii.double + offset, radians)
        placed_per_pair[pair] = placed_per_pair.get(pair, 0) + 1
    for index, metabolite in enumerate(scattered):
        place(metabolite.node_id, radii.double, 2 * math.pi * index / len(scattered))

    min_radians_offset = 2 * metabolite_size / radii.single
    placed_per_neighbor: dict[str, int] = {}
    for metabolite in singles:
        neighbor = neighbors(metabolite.node_id)[0]
        neighbor_node = network.node(neighbor)
        if isinstance(neighbor_node, OrganismNode) and neighbor_node.name in ring_index:
            base = 2 * math.pi * ring_index[neighbor_node.name] / count_members
        elif neighbor in result.positions:
            x, y = result.positions[neighbor]
            base = math.atan2(y, x)
        else:
            base = 0.0
        placed = placed_per_neighbor.get(neighbor, 0)
        steps = math.ceil(placed / 2)
        if placed % 2 == 0:
            steps = -steps
        place(metabolite.node_id, radii.single, base + min_radians_offset * steps)
        placed_per_neighbor[neighbor] = placed + 1

    logger.info(
        "Placed %d organisms, %d multi, %d double and %d single metabolites.",
        len(ordered),
        len(multis),
        len(doubles),
        len(singles),
    )
    return result


register("layout", "concentric", concentric_layout)


__all__ = [
    "DEFAULT_MEMBER_SIZE",
    "DEFAULT_METABOLITE_SIZE",
    "LayoutResult",
    "RingRadii",
    "concentric_layout",
    "order_organisms",
    "polar_to_xy",
    "ring_radii",
]
