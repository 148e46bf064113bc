import json

import pandas as pd
import pytest

from scynet.errors import ConfigurationMismatchError
from scynet.network import EdgeRole, MetabolicNetwork, NodeKind, load_network


def test_node_link_payload_builds_typed_records(sbml_payload) -> None:
    network = MetabolicNetwork.from_node_link(sbml_payload)

    assert network.name == "pair"
    assert network.node("m_glc").kind is NodeKind.SPECIES
    assert network.node("m_glc").compartment == "medium"
    assert network.node("gene1").kind is NodeKind.OTHER
    assert network.node("medium").role == "medium"
    assert [node.node_id for node in network.reactions()] == ["r1", "r2", "r3", "r4", "r5"]


def test_reaction_participants_are_direction_agnostic(sbml_payload) -> None:
    sbml_payload["links"].append(
        {"source": "r4", "target": "B_glc", "interaction type": "reaction-reactant", "directed": False}
    )
    network = MetabolicNetwork.from_node_link(sbml_payload)

    reactants, products = network.reaction_participants("r4")

    assert reactants == ["A_glc", "B_glc"]
    assert products == ["A_ac"]


def test_repeated_edges_are_kept(sbml_payload) -> None:
    network = MetabolicNetwork.from_node_link(sbml_payload)

    edges = network.edges_between("m_glc", "A_glc")

    assert sorted(edge.stoichiometry for edge in edges) == [0.5, 1.0]
    assert all(edge.role is EdgeRole.UNSPECIFIED for edge in edges)


def test_missing_required_columns_is_configuration_mismatch() -> None:
    payload = {"nodes": [{"id": "n1", "sbml id": "M_glc"}], "links": []}

    with pytest.raises(ConfigurationMismatchError) as exc:
        MetabolicNetwork.from_node_link(payload)

    assert "sbml type" in str(exc.value)
    assert exc.value.condition == "configuration_mismatch"


def test_unknown_edge_endpoint_is_rejected(sbml_payload) -> None:
    sbml_payload["links"].append({"source": "r1", "target": "missing"})

    with pytest.raises(ConfigurationMismatchError):
        MetabolicNetwork.from_node_link(sbml_payload)


def test_non_numeric_stoichiometry_is_rejected(sbml_payload) -> None:
    sbml_payload["links"][0]["stoichiometry"] = "lots"

    with pytest.raises(ConfigurationMismatchError):
        MetabolicNetwork.from_node_link(sbml_payload)


def test_tables_build_the_same_network(sbml_payload) -> None:
    nodes = pd.DataFrame(sbml_payload["nodes"])
    edges = pd.DataFrame(sbml_payload["links"])

    network = MetabolicNetwork.from_tables(nodes, edges, name="tables")

    assert network.name == "tables"
    assert len(network) == len(sbml_payload["nodes"])
    assert network.graph.number_of_edges() == len(sbml_payload["links"])
    assert network.node("m_glc").shared_name == "glucose"


def test_load_network_reads_json(tmp_path, sbml_payload) -> None:
    path = tmp_path / "model.json"
    path.write_text(json.dumps(sbml_payload), encoding="utf-8")

    network = load_network(path)

    assert len(network.species()) == 6


def test_load_network_missing_file(tmp_path) -> None:
    with pytest.raises(ConfigurationMismatchError) as exc:
        load_network(tmp_path / "missing.json")

    assert "not found" in str(exc.value)
