"""Structured config schema for Hydra."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging

from hydra.core.config_store import ConfigStore


@dataclass
class InputConfig:
    network: str = ""
    flux: str = ""


@dataclass
class CollapseConfig:
    id_delimiter: str = "_"
    species_prefix: str = "M_"
    reaction_prefixes: list[str] = field(default_factory=lambda: ["R_"])
    shared_compartment_parameter: str = "shared_compartment_id"
    shared_compartment_name: str = "medium"


@dataclass
class FluxConfig:
    classifier: str = "auto"
    hide_zero_flux: bool = True
    cross_fed_only: bool = False


@dataclass
class LayoutConfig:
    algorithm: str = "concentric"
    member_size: float = 150.0
    metabolite_size: float = 32.0


@dataclass
class OutputConfig:
    root: str = "outputs"
    name: str = "community"


@dataclass
class AppConfig:
    input: InputConfig = field(default_factory=InputConfig)
    collapse: CollapseConfig = field(default_factory=CollapseConfig)
    flux: FluxConfig = field(default_factory=FluxConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


def register_configs() -> None:
    cs = ConfigStore.instance()
    try:
        cs.store(group="schema", name="base", node=AppConfig, package="_global_")
    except ValueError as exc:
        logging.getLogger(__name__).warning(
            "Hydra config store registration failed: %s", exc
        )


__all__ = [
    "AppConfig",
    "CollapseConfig",
    "FluxConfig",
    "InputConfig",
    "LayoutConfig",
    "OutputConfig",
    "register_configs",
]
