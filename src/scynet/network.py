"""Input metabolic network model.

The original multi-organism network is a bipartite species/reaction graph
exported by an SBML importer. Node and edge attribute tables are converted into
typed records once, at construction, and stored on a ``networkx.MultiDiGraph``
so repeated species-reaction edges are preserved.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
import json
import logging
import math
from pathlib import Path
from typing import Any, Optional, Union

import networkx as nx
import pandas as pd

from scynet.errors import ConfigurationMismatchError
from scynet.io_utils import read_json

logger = logging.getLogger(__name__)

SBML_TYPE = "sbml type"
SBML_COMPARTMENT = "sbml compartment"
SBML_ID = "sbml id"
SHARED_NAME = "shared name"
ROLE_TAG = "cyId"
INTERACTION_TYPE = "interaction type"
STOICHIOMETRY = "stoichiometry"

REQUIRED_NODE_COLUMNS = (SBML_TYPE, SBML_COMPARTMENT)


class NodeKind(str, Enum):
    SPECIES = "species"
    REACTION = "reaction"
    PARAMETER = "parameter"
    COMPARTMENT = "compartment"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> "NodeKind":
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return cls.OTHER


class EdgeRole(str, Enum):
    REACTANT = "reaction-reactant"
    PRODUCT = "reaction-product"
    UNSPECIFIED = "unspecified"

    @classmethod
    def parse(cls, value: Any) -> "EdgeRole":
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ("reaction-reactant", "reactant"):
                return cls.REACTANT
            if lowered in ("reaction-product", "product"):
                return cls.PRODUCT
        return cls.UNSPECIFIED


@dataclass(frozen=True)
class OriginalNode:
    node_id: str
    kind: NodeKind
    sbml_id: str = ""
    compartment: str = ""
    shared_name: str = ""
    role: str = ""

    @property
    def is_species(self) -> bool:
        return self.kind is NodeKind.SPECIES

    @property
    def is_reaction(self) -> bool:
        return self.kind is NodeKind.REACTION


@dataclass(frozen=True)
class OriginalEdge:
    source: str
    target: str
    role: EdgeRole = EdgeRole.UNSPECIFIED
    stoichiometry: Optional[float] = None
    directed: bool = True


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value)


def _as_stoichiometry(value: Any, label: str) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ConfigurationMismatchError(f"{label} must be numeric, got {value!r}.")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationMismatchError(
            f"{label} must be numeric, got {value!r}."
        ) from exc
    if math.isnan(number):
        return None
    return number


def _as_directed(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip().lower() not in ("false", "0", "no", "undirected")
    return bool(value)


class MetabolicNetwork:
    """Original species/reaction network with typed node and edge records."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self.graph = nx.MultiDiGraph(name=name)

    def __len__(self) -> int:
        return self.graph.number_of_nodes()

    def add_node(self, node: OriginalNode) -> None:
        if node.node_id in self.graph:
            raise ConfigurationMismatchError(f"Duplicate node id: {node.node_id!r}.")
        self.graph.add_node(node.node_id, record=node)

    def add_edge(self, edge: OriginalEdge) -> None:
        for endpoint in (edge.source, edge.target):
            if endpoint not in self.graph:
                raise ConfigurationMismatchError(
                    f"Edge references unknown node {endpoint!r}."
                )
        self.graph.add_edge(edge.source, edge.target, record=edge)

    def node(self, node_id: str) -> OriginalNode:
        return self.graph.nodes[node_id]["record"]

    def nodes(self) -> Iterator[OriginalNode]:
        for _, data in self.graph.nodes(data=True):
            yield data["record"]

    def edges(self) -> Iterator[OriginalEdge]:
        for _, _, data in self.graph.edges(data=True):
            yield data["record"]

    def nodes_of_kind(self, kind: NodeKind) -> list[OriginalNode]:
        return [node for node in self.nodes() if node.kind is kind]

    def species(self) -> list[OriginalNode]:
        return self.nodes_of_kind(NodeKind.SPECIES)

    def reactions(self) -> list[OriginalNode]:
        return self.nodes_of_kind(NodeKind.REACTION)

    def incident_edges(self, node_id: str) -> list[OriginalEdge]:
        """Incoming then outgoing edges of a node, in insertion order."""
        edges = [data["record"] for _, _, data in self.graph.in_edges(node_id, data=True)]
        edges.extend(
            data["record"] for _, _, data in self.graph.out_edges(node_id, data=True)
        )
        return edges

    def neighbors(self, node_id: str) -> list[str]:
        seen: dict[str, None] = {}
        for edge in self.incident_edges(node_id):
            other = edge.target if edge.source == node_id else edge.source
            seen.setdefault(other, None)
        return list(seen)

    def edges_between(self, first: str, second: str) -> list[OriginalEdge]:
        """All edges connecting two nodes, regardless of direction."""
        edges: list[OriginalEdge] = []
        if self.graph.has_edge(first, second):
            edges.extend(data["record"] for data in self.graph[first][second].values())
        if first != second and self.graph.has_edge(second, first):
            edges.extend(data["record"] for data in self.graph[second][first].values())
        return edges

    def reaction_participants(self, reaction_id: str) -> tuple[list[str], list[str]]:
        """Split the neighbors of a reaction into reactants and products.

        The role tag is honored the same way on incoming, outgoing and
        undirected edges.
        """
        reactants: list[str] = []
        products: list[str] = []
        for edge in self.incident_edges(reaction_id):
            other = edge.target if edge.source == reaction_id else edge.source
            if edge.role is EdgeRole.REACTANT:
                reactants.append(other)
            elif edge.role is EdgeRole.PRODUCT:
                products.append(other)
        return reactants, products

    @classmethod
    def from_node_link(
        cls,
        payload: Mapping[str, Any],
        *,
        name: str = "",
    ) -> "MetabolicNetwork":
        """Build a network from a node-link payload with SBML attribute columns."""
        if not isinstance(payload, Mapping):
            raise ConfigurationMismatchError("Network payload must be a mapping.")
        nodes_raw = payload.get("nodes")
        links_raw = payload.get("links", payload.get("edges"))
        if not isinstance(nodes_raw, Sequence) or isinstance(nodes_raw, (str, bytes)):
            raise ConfigurationMismatchError("Network payload has no node list.")
        if links_raw is None:
            links_raw = []
        if not isinstance(links_raw, Sequence) or isinstance(links_raw, (str, bytes)):
            raise ConfigurationMismatchError("Network links must be a sequence.")

        columns: set[str] = set()
        for entry in nodes_raw:
            if isinstance(entry, Mapping):
                columns.update(str(key) for key in entry.keys())
        missing = [column for column in REQUIRED_NODE_COLUMNS if column not in columns]
        if missing:
            raise ConfigurationMismatchError(
                f"Network is missing required node attributes: {', '.join(missing)}.",
                user_message=(
                    "The selected network is not in SBML-import format "
                    f"(missing {', '.join(missing)})."
                ),
                context={"missing": missing},
            )

        graph_meta = payload.get("graph")
        if not name and isinstance(graph_meta, Mapping):
            name = _as_text(graph_meta.get("name"))
        network = cls(name=name)
        for entry in nodes_raw:
            if not isinstance(entry, Mapping) or entry.get("id") is None:
                raise ConfigurationMismatchError("Every network node needs an id.")
            network.add_node(
                OriginalNode(
                    node_id=str(entry["id"]),
                    kind=NodeKind.parse(entry.get(SBML_TYPE)),
                    sbml_id=_as_text(entry.get(SBML_ID)),
                    compartment=_as_text(entry.get(SBML_COMPARTMENT)),
                    shared_name=_as_text(entry.get(SHARED_NAME, entry.get("name"))),
                    role=_as_text(entry.get(ROLE_TAG)),
                )
            )
        for index, entry in enumerate(links_raw):
            if not isinstance(entry, Mapping):
                raise ConfigurationMismatchError(f"links[{index}] must be a mapping.")
            source = entry.get("source")
            target = entry.get("target")
            if source is None or target is None:
                raise ConfigurationMismatchError(
                    f"links[{index}] must have a source and a target."
                )
            network.add_edge(
                OriginalEdge(
                    source=str(source),
                    target=str(target),
                    role=EdgeRole.parse(entry.get(INTERACTION_TYPE)),
                    stoichiometry=_as_stoichiometry(
                        entry.get(STOICHIOMETRY), f"links[{index}].stoichiometry"
                    ),
                    directed=_as_directed(entry.get("directed")),
                )
            )
        logger.debug(
            "Loaded network %r with %d nodes and %d edges.",
            network.name,
            network.graph.number_of_nodes(),
            network.graph.number_of_edges(),
        )
        return network

    @classmethod
    def from_tables(
        cls,
        nodes: pd.DataFrame,
        edges: Optional[pd.DataFrame] = None,
        *,
        name: str = "",
    ) -> "MetabolicNetwork":
        """Build a network from node and edge attribute tables.

        The node table is keyed by an ``id`` column (or its index); the edge
        table needs ``source`` and ``target`` columns.
        """
        if "id" not in nodes.columns:
            nodes = nodes.rename_axis("id").reset_index()
        node_records = [
            {key: value for key, value in row.items() if not _is_missing(value)}
            for row in nodes.to_dict(orient="records")
        ]
        # Columns are checked on the table itself, even when every cell is empty.
        for record in node_records[:1]:
            for column in REQUIRED_NODE_COLUMNS:
                if column in nodes.columns:
                    record.setdefault(column, "")
        link_records: list[dict[str, Any]] = []
        if edges is not None:
            link_records = [
                {key: value for key, value in row.items() if not _is_missing(value)}
                for row in edges.to_dict(orient="records")
            ]
        return cls.from_node_link(
            {"nodes": node_records, "links": link_records}, name=name
        )


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def load_network(path: Union[str, Path]) -> MetabolicNetwork:
    """Read a node-link JSON network file."""
    path = Path(path)
    if not path.exists():
        raise ConfigurationMismatchError(f"Network file not found: {path}")
    try:
        payload = read_json(path)
    except json.JSONDecodeError as exc:
        raise ConfigurationMismatchError(
            f"Network file is not valid JSON: {path}: {exc}"
        ) from exc
    return MetabolicNetwork.from_node_link(payload, name=path.stem)


__all__ = [
    "EdgeRole",
    "MetabolicNetwork",
    "NodeKind",
    "OriginalEdge",
    "OriginalNode",
    "load_network",
]
