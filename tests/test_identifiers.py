import logging

import pytest

from scynet.errors import MalformedIdentifierError, UnresolvedSharedCompartmentError
from scynet.identifiers import (
    IdentifierSettings,
    Ignored,
    Organism,
    chemical_identity,
    flux_key,
    parse_organism_key,
    resolve_identifiers,
    resolve_shared_compartment,
)
from scynet.network import MetabolicNetwork, NodeKind, OriginalNode


def _species(node_id: str, sbml_id: str, compartment: str) -> OriginalNode:
    return OriginalNode(
        node_id=node_id,
        kind=NodeKind.SPECIES,
        sbml_id=sbml_id,
        compartment=compartment,
        shared_name=sbml_id,
    )


def _network(*nodes: OriginalNode) -> MetabolicNetwork:
    network = MetabolicNetwork(name="test")
    for node in nodes:
        network.add_node(node)
    return network


def test_organism_key_extends_while_segments_match() -> None:
    node = _species("s1", "M_bsub_168_glc_c0", "bsub_168_c0")

    assert parse_organism_key(node, "medium") == "bsub_168"


def test_organism_key_stops_at_first_mismatch() -> None:
    node = _species("s1", "M_ecoli_glc_c0", "ecoli_c0")

    assert parse_organism_key(node, "medium") == "ecoli"


def test_shared_species_belongs_to_shared_compartment() -> None:
    node = _species("s1", "M_glc_medium", "medium")

    assert parse_organism_key(node, "medium") == "medium"


def test_mismatched_first_segment_is_malformed() -> None:
    node = _species("s1", "M_xyz_c0", "ecoli_c0")

    with pytest.raises(MalformedIdentifierError):
        parse_organism_key(node, "medium")


def test_custom_delimiter() -> None:
    settings = IdentifierSettings(delimiter=".", species_prefix="")
    node = _species("s1", "ecoli.k12.glc", "ecoli.k12")

    assert parse_organism_key(node, "medium", settings) == "ecoli.k12"


def test_parameter_marker_wins_over_medium_compartment() -> None:
    network = _network(
        OriginalNode("c1", NodeKind.COMPARTMENT, sbml_id="medium", role="medium"),
        OriginalNode(
            "p1",
            NodeKind.PARAMETER,
            shared_name="e0",
            role="shared_compartment_id",
        ),
    )

    assert resolve_shared_compartment(network) == "e0"


def test_medium_compartment_marker() -> None:
    network = _network(OriginalNode("c1", NodeKind.COMPARTMENT, role="medium"))

    assert resolve_shared_compartment(network) == "medium"


def test_missing_shared_compartment_raises() -> None:
    network = _network(_species("s1", "M_ecoli_glc_c0", "ecoli_c0"))

    with pytest.raises(UnresolvedSharedCompartmentError) as exc:
        resolve_shared_compartment(network)

    assert exc.value.condition == "unresolved_shared_compartment"


def test_resolution_reports_missing_shared_compartment(caplog) -> None:
    network = _network(
        _species("s1", "M_ecoli_glc_c0", "ecoli_c0"),
        _species("s2", "M_glc_medium", "medium"),
    )

    with caplog.at_level(logging.WARNING, logger="scynet.identifiers"):
        resolution = resolve_identifiers(network)

    assert resolution.shared_compartment == ""
    assert not resolution.resolved
    assert len(resolution.issues) == 1
    assert not resolution.is_shared(network.node("s2"))
    assert any("shared exchange compartment" in r.getMessage() for r in caplog.records)


def test_shorter_organism_key_wins_per_compartment() -> None:
    network = _network(
        OriginalNode("c1", NodeKind.COMPARTMENT, role="medium"),
        _species("s1", "M_ecoli_c0_x", "ecoli_c0"),
        _species("s2", "M_ecoli_glc_c0", "ecoli_c0"),
    )

    resolution = resolve_identifiers(network)

    assert resolution.assignments["s1"] == Organism("ecoli_c0")
    assert resolution.assignments["s2"] == Organism("ecoli")
    assert resolution.compartment_to_organism["ecoli_c0"] == "ecoli"
    assert resolution.organisms == ["ecoli"]


def test_ignored_species_and_compartments() -> None:
    network = _network(
        OriginalNode("c1", NodeKind.COMPARTMENT, role="medium"),
        _species("s1", "M_ecoli_glc_c0", "ecoli_c0"),
        _species("s2", "M_xyz_c0", "ecoli_c0"),
        _species("s3", "M_abc_p0", "other_p0"),
        _species("s4", "M_glc_medium", "medium"),
    )

    resolution = resolve_identifiers(network)

    assert isinstance(resolution.assignments["s2"], Ignored)
    assert resolution.ignored == {"s2", "s3"}
    assert "ecoli_c0" in resolution.compartments
    assert "other_p0" not in resolution.compartments
    assert resolution.organisms == ["ecoli"]
    assert resolution.organism_of(network.node("s2")) is None
    assert resolution.is_shared(network.node("s4"))


def test_chemical_identity_collapses_qualified_names() -> None:
    plain = _species("s1", "M_glc__D_medium", "medium")
    bracketed = OriginalNode(
        "s2",
        NodeKind.SPECIES,
        sbml_id="",
        compartment="medium",
        shared_name="GLC__D [medium]",
    )

    assert chemical_identity(plain, "medium") == "glc__d"
    assert chemical_identity(bracketed, "medium") == "glc__d"


def test_flux_key_strips_reaction_prefix() -> None:
    reaction = OriginalNode("r1", NodeKind.REACTION, sbml_id="R_EX_glc_ecoli")
    unprefixed = OriginalNode("r2", NodeKind.REACTION, sbml_id="EX_ac")
    species = _species("s1", "M_glc_medium", "medium")

    assert flux_key(reaction) == "EX_glc_ecoli"
    assert flux_key(unprefixed) == "EX_ac"
    assert flux_key(species) == ""
