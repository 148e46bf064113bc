from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Optional

import pytest


def pytest_configure() -> None:
    src_root = Path(__file__).resolve().parents[1] / "src"
    src_path = str(src_root)
    if src_path not in sys.path:
        sys.path.insert(0, src_path)


def _species(node_id: str, sbml_id: str, compartment: str, name: Optional[str] = None) -> dict[str, Any]:
    return {
        "id": node_id,
        "sbml type": "species",
        "sbml id": sbml_id,
        "sbml compartment": compartment,
        "shared name": name or sbml_id,
    }


def _reaction(node_id: str, sbml_id: str, name: Optional[str] = None) -> dict[str, Any]:
    return {
        "id": node_id,
        "sbml type": "reaction",
        "sbml id": sbml_id,
        "sbml compartment": "",
        "shared name": name or sbml_id,
    }


def _link(source: str, target: str, role: str = "", stoichiometry: Optional[float] = 1.0) -> dict[str, Any]:
    link: dict[str, Any] = {"source": source, "target": target, "interaction type": role}
    if stoichiometry is not None:
        link["stoichiometry"] = stoichiometry
    return link


@pytest.fixture
def sbml_payload() -> dict[str, Any]:
    """Two organisms exchanging glucose and acetate through a medium."""
    nodes = [
        {
            "id": "medium",
            "sbml type": "compartment",
            "sbml id": "medium",
            "sbml compartment": "",
            "cyId": "medium",
        },
        _species("A_glc", "M_ecoli_glc_c0", "ecoli_c0", "glucose"),
        _species("A_ac", "M_ecoli_ac_c0", "ecoli_c0", "acetate"),
        _species("B_glc", "M_bsub_glc_c0", "bsub_c0", "glucose"),
        _species("m_glc", "M_glc_medium", "medium", "glucose"),
        _species("m_ac", "M_ac_medium", "medium", "acetate"),
        _species("odd", "M_xyz_c0", "ecoli_c0", "odd"),
        {"id": "gene1", "sbml type": "gene", "sbml compartment": ""},
        _reaction("r1", "R_EX_glc_ecoli", "glucose uptake"),
        _reaction("r2", "R_EX_glc_bsub", "glucose secretion"),
        _reaction("r3", "R_EX_ac_ecoli", "acetate secretion"),
        _reaction("r4", "R_GLCtoAC_ecoli", "internal"),
        _reaction("r5", "R_EX_odd", "odd exchange"),
    ]
    links = [
        _link("m_glc", "r1", "reaction-reactant"),
        _link("r1", "A_glc", "reaction-product"),
        _link("gene1", "r1", "reaction-reactant"),
        _link("B_glc", "r2", "reaction-reactant"),
        _link("r2", "m_glc", "reaction-product"),
        _link("A_ac", "r3", "reaction-reactant"),
        _link("r3", "m_ac", "reaction-product"),
        _link("A_glc", "r4", "reaction-reactant"),
        _link("r4", "A_ac", "reaction-product"),
        _link("odd", "r5", "reaction-reactant"),
        _link("r5", "m_ac", "reaction-product"),
        _link("m_glc", "A_glc", stoichiometry=1.0),
        _link("A_glc", "m_glc", stoichiometry=0.5),
    ]
    return {"directed": True, "multigraph": True, "graph": {"name": "pair"}, "nodes": nodes, "links": links}
