"""Visibility passes over an annotated community network."""

from __future__ import annotations

import logging

from scynet.community import CommunityNetwork, SimplifiedEdge, require_community

logger = logging.getLogger(__name__)


def hide_singletons(network: CommunityNetwork) -> list[str]:
    """Hide visible exchange metabolites left without a visible edge."""
    hidden: list[str] = []
    for metabolite in network.metabolites():
        if not metabolite.visible:
            continue
        if not network.visible_incident_edges(metabolite.node_id):
            metabolite.visible = False
            hidden.append(metabolite.node_id)
    if hidden:
        logger.debug("Hid %d metabolites without visible edges.", len(hidden))
    return hidden


def _show_with_endpoints(network: CommunityNetwork, edge: SimplifiedEdge) -> None:
    edge.visible = True
    network.node(edge.source).visible = True
    network.node(edge.target).visible = True


def apply_flux_visibility(network: CommunityNetwork) -> None:
    """Hide zero-flux edges and show flux-carrying edges with their endpoints.

    Edges without flux data keep their current visibility.
    """
    require_community(network)
    for edge in network.edges():
        if edge.flux is None:
            continue
        if edge.is_zero_flux:
            edge.visible = False
        else:
            _show_with_endpoints(network, edge)
    hide_singletons(network)


def toggle_zero_flux_edges(network: CommunityNetwork) -> bool:
    """Hide every zero-flux edge if any is visible, otherwise show them all.

    Returns True when zero-flux edges are hidden after the call.
    """
    require_community(network)
    zero_edges = [edge for edge in network.edges() if edge.flux == 0.0]
    any_visible = any(edge.visible for edge in zero_edges)
    if any_visible:
        logger.info("Hiding all edges with flux 0.")
        for edge in zero_edges:
            edge.visible = False
    else:
        logger.info("Making all edges with flux 0 visible.")
        for edge in zero_edges:
            _show_with_endpoints(network, edge)
    hide_singletons(network)
    return any_visible


def toggle_cross_fed_only(network: CommunityNetwork) -> bool:
    """Hide non-cross-fed metabolites if any is visible, otherwise show them.

    Metabolites without a cross-fed value are left alone. Returns True when
    non-cross-fed metabolites are hidden after the call.
    """
    require_community(network)
    non_cross_fed = [node for node in network.metabolites() if node.cross_fed is False]
    any_visible = any(node.visible for node in non_cross_fed)
    if any_visible:
        logger.info("Hiding all non-cross-feeding nodes.")
    else:
        logger.info("Making all non-cross-feeding nodes visible.")
    for node in non_cross_fed:
        node.visible = not any_visible
    hide_singletons(network)
    return any_visible


__all__ = [
    "apply_flux_visibility",
    "hide_singletons",
    "toggle_cross_fed_only",
    "toggle_zero_flux_edges",
]
