"""Collapse a multi-organism metabolic network into a community network."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Optional

from scynet.community import (
    CommunityNetwork,
    ExchangeMetaboliteNode,
    Interaction,
)
from scynet.identifiers import (
    IdentifierResolution,
    IdentifierSettings,
    chemical_identity,
    flux_key,
    resolve_identifiers,
)
from scynet.network import MetabolicNetwork, OriginalNode

logger = logging.getLogger(__name__)


@dataclass
class CollapseResult:
    """Community network plus the bookkeeping of how it was derived."""

    network: CommunityNetwork
    resolution: IdentifierResolution
    node_map: dict[str, str] = field(default_factory=dict)
    exchange_reactions: list[str] = field(default_factory=list)
    flux_keys: dict[str, list[str]] = field(default_factory=dict)


def is_exchange_reaction(
    network: MetabolicNetwork,
    reaction: OriginalNode,
    resolution: IdentifierResolution,
) -> bool:
    """A reaction is an exchange reaction when a neighbor lives in the shared compartment."""
    if not reaction.is_reaction:
        return False
    return any(
        resolution.is_shared(network.node(neighbor))
        for neighbor in network.neighbors(reaction.node_id)
    )


def _pair_stoichiometry(network: MetabolicNetwork, first: str, second: str) -> float:
    total = 0.0
    for edge in network.edges_between(first, second):
        if edge.stoichiometry is not None:
            total += edge.stoichiometry
    return total


def _build_nodes(
    network: MetabolicNetwork,
    resolution: IdentifierResolution,
    community: CommunityNetwork,
) -> dict[str, str]:
    node_map: dict[str, str] = {}
    for key in resolution.organisms:
        community.add_organism(key)
    settings = resolution.settings
    for node in network.species():
        if resolution.is_ignored(node.node_id):
            continue
        if resolution.is_shared(node):
            identity = chemical_identity(node, resolution.shared_compartment, settings)
            if not identity:
                logger.debug("Skipping shared species %s without identity.", node.node_id)
                continue
            metabolite = community.add_metabolite(identity, node.shared_name or identity)
            node_map[node.node_id] = metabolite.node_id
            continue
        organism = resolution.organism_of(node)
        if organism is None or organism == resolution.shared_compartment:
            continue
        node_map[node.node_id] = community.add_organism(organism).node_id
    return node_map


def collapse_network(
    network: MetabolicNetwork,
    settings: Optional[IdentifierSettings] = None,
    *,
    resolution: Optional[IdentifierResolution] = None,
    name: Optional[str] = None,
) -> CollapseResult:
    """Build organism nodes, exchange metabolite nodes and aggregated edges.

    Each exchange reaction connects the simplified identity of every reactant
    to the simplified identity of every product. Sources and targets already
    connected for the reaction are skipped. A repeated (source, target) pair
    reuses the existing edge; the original edges between one reactant and
    product are summed into it only once.
    """
    settings = settings or IdentifierSettings()
    if resolution is None:
        resolution = resolve_identifiers(network, settings)

    community = CommunityNetwork(name=name if name is not None else network.name)
    community.shared_compartment = resolution.shared_compartment
    result = CollapseResult(network=community, resolution=resolution)
    result.node_map = _build_nodes(network, resolution, community)
    # (edge id, reactant, product) triples whose original edges were summed.
    counted_pairs: set[tuple[str, str, str]] = set()

    for reaction in network.reactions():
        if not is_exchange_reaction(network, reaction, resolution):
            continue
        result.exchange_reactions.append(reaction.node_id)
        key = flux_key(reaction, settings)
        reactants, products = network.reaction_participants(reaction.node_id)
        sources_visited: set[str] = set()
        targets_visited: set[str] = set()
        for reactant in reactants:
            if not network.node(reactant).is_species:
                continue
            source = result.node_map.get(reactant)
            if source is None or source in sources_visited:
                continue
            for product in products:
                if not network.node(product).is_species:
                    continue
                target = result.node_map.get(product)
                if target is None or target in targets_visited:
                    continue
                if source == target:
                    logger.debug(
                        "Skipping self loop on %s from reaction %s.", source, reaction.node_id
                    )
                    continue
                source_is_shared = isinstance(community.node(source), ExchangeMetaboliteNode)
                edge, created = community.connect(
                    source,
                    target,
                    interaction=Interaction.EXPORT if source_is_shared else Interaction.IMPORT,
                    flux_key=key,
                    reaction_name=reaction.shared_name,
                )
                pair = (edge.edge_id, reactant, product)
                if pair not in counted_pairs:
                    counted_pairs.add(pair)
                    edge.stoichiometry += _pair_stoichiometry(network, reactant, product)
                if reaction.node_id not in edge.reactions:
                    edge.reactions.append(reaction.node_id)
                if created and key:
                    result.flux_keys.setdefault(key, []).append(edge.edge_id)
                targets_visited.add(target)
            sources_visited.add(source)

    logger.info(
        "Collapsed %d exchange reactions into %d organisms, %d metabolites and %d edges.",
        len(result.exchange_reactions),
        len(community.organisms()),
        len(community.metabolites()),
        community.graph.number_of_edges(),
    )
    return result


__all__ = [
    "CollapseResult",
    "collapse_network",
    "is_exchange_reaction",
]
