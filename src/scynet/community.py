"""Simplified community network: organism and exchange metabolite nodes.

Nodes and edges are typed records stored on a ``networkx.DiGraph``. The graph
keys a single edge per ordered (source, target) pair, which is what the
collapser relies on to merge repeated requests for the same pair.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
import logging
import math
from typing import Any, Optional, Union

import networkx as nx
import pandas as pd

from scynet.errors import LayoutPreconditionError

logger = logging.getLogger(__name__)

COMMUNITY_MARKER = "community"
ORGANISM_PREFIX = "organism:"
METABOLITE_PREFIX = "metabolite:"


class NodeType(str, Enum):
    COMMUNITY_MEMBER = "community member"
    EXCHANGE_METABOLITE = "exchange metabolite"


class Interaction(str, Enum):
    IMPORT = "IMPORT"
    EXPORT = "EXPORT"


class FluxDirection(str, Enum):
    EFFLUX = "efflux"
    INFLUX = "influx"
    BIDIRECTIONAL = "bidirectional"
    ZERO = "zero"
    NONE = "none"


@dataclass
class OrganismNode:
    node_id: str
    key: str
    name: str
    visible: bool = True
    x: Optional[float] = None
    y: Optional[float] = None

    @property
    def node_type(self) -> NodeType:
        return NodeType.COMMUNITY_MEMBER


@dataclass
class ExchangeMetaboliteNode:
    node_id: str
    identity: str
    name: str
    cross_fed: Optional[bool] = None
    total_flux: Optional[float] = None
    visible: bool = True
    x: Optional[float] = None
    y: Optional[float] = None

    @property
    def node_type(self) -> NodeType:
        return NodeType.EXCHANGE_METABOLITE


SimplifiedNode = Union[OrganismNode, ExchangeMetaboliteNode]


@dataclass
class SimplifiedEdge:
    source: str
    target: str
    interaction: Interaction
    stoichiometry: float = 0.0
    flux_key: str = ""
    reaction_name: str = ""
    reactions: list[str] = field(default_factory=list)
    flux: Optional[float] = None
    min_flux: Optional[float] = None
    max_flux: Optional[float] = None
    direction: FluxDirection = FluxDirection.NONE
    visible: bool = True

    @property
    def edge_id(self) -> str:
        return f"{self.source}-{self.target}"

    @property
    def has_flux(self) -> bool:
        return self.flux is not None

    @property
    def is_zero_flux(self) -> bool:
        """True for an annotated edge that carries no flux in any mode."""
        if self.min_flux is not None or self.max_flux is not None:
            return self.min_flux == 0.0 and self.max_flux == 0.0
        return self.flux == 0.0

    def reset_flux(self) -> None:
        self.flux = None
        self.min_flux = None
        self.max_flux = None
        self.direction = FluxDirection.NONE


def organism_node_id(key: str) -> str:
    return f"{ORGANISM_PREFIX}{key}"


def metabolite_node_id(identity: str) -> str:
    return f"{METABOLITE_PREFIX}{identity}"


class CommunityNetwork:
    """Organisms, exchanged metabolites and the aggregated edges between them."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self.graph = nx.DiGraph(name=name, scynet=COMMUNITY_MARKER)
        self.flux_mode = ""
        self.shared_compartment = ""

    def __len__(self) -> int:
        return self.graph.number_of_nodes()

    @property
    def is_collapsed(self) -> bool:
        return self.graph.graph.get("scynet") == COMMUNITY_MARKER

    def add_organism(self, key: str, name: Optional[str] = None) -> OrganismNode:
        node_id = organism_node_id(key)
        if node_id in self.graph:
            return self.graph.nodes[node_id]["record"]
        node = OrganismNode(node_id=node_id, key=key, name=name or key)
        self.graph.add_node(node_id, record=node)
        return node

    def add_metabolite(self, identity: str, name: Optional[str] = None) -> ExchangeMetaboliteNode:
        node_id = metabolite_node_id(identity)
        if node_id in self.graph:
            return self.graph.nodes[node_id]["record"]
        node = ExchangeMetaboliteNode(node_id=node_id, identity=identity, name=name or identity)
        self.graph.add_node(node_id, record=node)
        return node

    def connect(
        self,
        source: str,
        target: str,
        *,
        interaction: Interaction,
        flux_key: str = "",
        reaction_name: str = "",
    ) -> tuple[SimplifiedEdge, bool]:
        """Return the edge for an ordered pair, creating it on first request."""
        if self.graph.has_edge(source, target):
            return self.graph[source][target]["record"], False
        for endpoint in (source, target):
            if endpoint not in self.graph:
                raise KeyError(f"Unknown community node: {endpoint!r}.")
        edge = SimplifiedEdge(
            source=source,
            target=target,
            interaction=interaction,
            flux_key=flux_key,
            reaction_name=reaction_name,
        )
        self.graph.add_edge(source, target, record=edge)
        return edge, True

    def node(self, node_id: str) -> SimplifiedNode:
        return self.graph.nodes[node_id]["record"]

    def nodes(self) -> Iterator[SimplifiedNode]:
        for _, data in self.graph.nodes(data=True):
            yield data["record"]

    def organisms(self) -> list[OrganismNode]:
        return [node for node in self.nodes() if isinstance(node, OrganismNode)]

    def metabolites(self) -> list[ExchangeMetaboliteNode]:
        return [node for node in self.nodes() if isinstance(node, ExchangeMetaboliteNode)]

    def edge(self, source: str, target: str) -> Optional[SimplifiedEdge]:
        if not self.graph.has_edge(source, target):
            return None
        return self.graph[source][target]["record"]

    def edges(self) -> Iterator[SimplifiedEdge]:
        for _, _, data in self.graph.edges(data=True):
            yield data["record"]

    def incident_edges(self, node_id: str) -> list[SimplifiedEdge]:
        edges = [data["record"] for _, _, data in self.graph.in_edges(node_id, data=True)]
        edges.extend(
            data["record"] for _, _, data in self.graph.out_edges(node_id, data=True)
        )
        return edges

    def is_shown(self, edge: SimplifiedEdge) -> bool:
        """An edge is shown when it and both of its endpoints are visible."""
        return (
            edge.visible
            and self.node(edge.source).visible
            and self.node(edge.target).visible
        )

    def visible_incident_edges(self, node_id: str) -> list[SimplifiedEdge]:
        return [edge for edge in self.incident_edges(node_id) if self.is_shown(edge)]

    def to_node_link(self) -> dict[str, Any]:
        """Node-link payload with the community attribute names."""
        return {
            "directed": True,
            "multigraph": False,
            "graph": {
                "name": self.name,
                "scynet": COMMUNITY_MARKER,
                "flux mode": self.flux_mode,
                "shared compartment": self.shared_compartment,
            },
            "nodes": [_node_row(node) for node in self.nodes()],
            "links": [self._edge_row(edge) for edge in self.edges()],
        }

    def _edge_row(self, edge: SimplifiedEdge) -> dict[str, Any]:
        return {
            "source": edge.source,
            "target": edge.target,
            "edgeID": edge.edge_id,
            "source name": self.node(edge.source).name,
            "target name": self.node(edge.target).name,
            "sbml id": edge.flux_key,
            "name": edge.flux_key,
            "shared name": edge.reaction_name,
            "reactions": list(edge.reactions),
            "flux": edge.flux,
            "min flux": edge.min_flux,
            "max flux": edge.max_flux,
            "flux direction": edge.direction.value,
            "stoichiometry": edge.stoichiometry,
            "shared interaction": edge.interaction.value,
            "visible": edge.visible,
        }

    def node_table(self) -> pd.DataFrame:
        rows = [_node_row(node) for node in self.nodes()]
        columns = [
            "id",
            "name",
            "shared name",
            "type",
            "cross-fed",
            "total flux",
            "visible",
            "x",
            "y",
        ]
        return pd.DataFrame(rows, columns=columns)

    def edge_table(self) -> pd.DataFrame:
        rows = []
        for edge in self.edges():
            row = self._edge_row(edge)
            row["source id"] = row.pop("source")
            row["target id"] = row.pop("target")
            row["source"] = row.pop("source name")
            row["target"] = row.pop("target name")
            row["reactions"] = ",".join(row["reactions"])
            rows.append(row)
        columns = [
            "edgeID",
            "source",
            "target",
            "source id",
            "target id",
            "sbml id",
            "name",
            "shared name",
            "reactions",
            "flux",
            "min flux",
            "max flux",
            "flux direction",
            "stoichiometry",
            "shared interaction",
            "visible",
        ]
        return pd.DataFrame(rows, columns=columns)

    @classmethod
    def from_node_link(cls, payload: Mapping[str, Any]) -> "CommunityNetwork":
        """Rebuild a community network written by :meth:`to_node_link`.

        Raises LayoutPreconditionError when the payload lacks the ``type`` and
        ``cross-fed`` node attributes of a collapsed network.
        """
        nodes_raw = payload.get("nodes") if isinstance(payload, Mapping) else None
        if not isinstance(nodes_raw, list):
            raise LayoutPreconditionError("Community payload has no node list.")
        for entry in nodes_raw:
            if not isinstance(entry, Mapping) or "type" not in entry or "cross-fed" not in entry:
                raise LayoutPreconditionError(
                    "Network is not a collapsed community network.",
                    user_message=(
                        "The selected network has no 'type' and 'cross-fed' node "
                        "attributes; create a community network first."
                    ),
                )
        graph_meta = payload.get("graph") or {}
        network = cls(name=str(graph_meta.get("name") or ""))
        network.flux_mode = str(graph_meta.get("flux mode") or "")
        network.shared_compartment = str(graph_meta.get("shared compartment") or "")
        for entry in nodes_raw:
            node_type = NodeType(entry["type"])
            node_id = str(entry["id"])
            if node_type is NodeType.COMMUNITY_MEMBER:
                node: SimplifiedNode = OrganismNode(
                    node_id=node_id,
                    key=node_id[len(ORGANISM_PREFIX):]
                    if node_id.startswith(ORGANISM_PREFIX)
                    else node_id,
                    name=str(entry.get("name") or node_id),
                )
            else:
                node = ExchangeMetaboliteNode(
                    node_id=node_id,
                    identity=node_id[len(METABOLITE_PREFIX):]
                    if node_id.startswith(METABOLITE_PREFIX)
                    else node_id,
                    name=str(entry.get("name") or node_id),
                    cross_fed=entry.get("cross-fed"),
                    total_flux=_optional_float(entry.get("total flux")),
                )
            node.visible = bool(entry.get("visible", True))
            node.x = _optional_float(entry.get("x"))
            node.y = _optional_float(entry.get("y"))
            network.graph.add_node(node_id, record=node)
        for entry in payload.get("links", payload.get("edges")) or []:
            edge = SimplifiedEdge(
                source=str(entry["source"]),
                target=str(entry["target"]),
                interaction=Interaction(entry.get("shared interaction", "IMPORT")),
                stoichiometry=float(entry.get("stoichiometry") or 0.0),
                flux_key=str(entry.get("name") or ""),
                reaction_name=str(entry.get("shared name") or ""),
                reactions=list(entry.get("reactions") or []),
                flux=_optional_float(entry.get("flux")),
                min_flux=_optional_float(entry.get("min flux")),
                max_flux=_optional_float(entry.get("max flux")),
                direction=FluxDirection(entry.get("flux direction", "none")),
                visible=bool(entry.get("visible", True)),
            )
            network.graph.add_edge(edge.source, edge.target, record=edge)
        return network


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    number = float(value)
    if math.isnan(number):
        return None
    return number


def _node_row(node: SimplifiedNode) -> dict[str, Any]:
    row: dict[str, Any] = {
        "id": node.node_id,
        "name": node.name,
        "shared name": node.name,
        "type": node.node_type.value,
        "cross-fed": None,
        "total flux": None,
        "visible": node.visible,
        "x": node.x,
        "y": node.y,
    }
    if isinstance(node, ExchangeMetaboliteNode):
        row["cross-fed"] = node.cross_fed
        row["total flux"] = node.total_flux
    return row


def require_community(network: Any) -> CommunityNetwork:
    """Check that a network carries the markers of a collapsed network."""
    if not isinstance(network, CommunityNetwork) or not network.is_collapsed:
        raise LayoutPreconditionError(
            "Network is not a collapsed community network.",
            user_message=(
                "The selected network is not a community network; "
                "create one from an SBML-imported network first."
            ),
        )
    return network


__all__ = [
    "COMMUNITY_MARKER",
    "CommunityNetwork",
    "ExchangeMetaboliteNode",
    "FluxDirection",
    "Interaction",
    "NodeType",
    "OrganismNode",
    "SimplifiedEdge",
    "SimplifiedNode",
    "metabolite_node_id",
    "organism_node_id",
    "require_community",
]
