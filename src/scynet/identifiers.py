"""Identifier parsing: shared compartment, organism keys and chemical identities."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
import logging
import re
from typing import Any, Optional, Union

from scynet.errors import (
    ConfigError,
    MalformedIdentifierError,
    ScynetError,
    UnresolvedSharedCompartmentError,
)
from scynet.network import MetabolicNetwork, NodeKind, OriginalNode

logger = logging.getLogger(__name__)

_BRACKET_QUALIFIER = re.compile(r"\s*[\[(][^\])]*[\])]\s*$")


@dataclass(frozen=True)
class IdentifierSettings:
    delimiter: str = "_"
    species_prefix: str = "M_"
    reaction_prefixes: tuple[str, ...] = ("R_",)
    shared_compartment_parameter: str = "shared_compartment_id"
    shared_compartment_name: str = "medium"

    def __post_init__(self) -> None:
        if not isinstance(self.delimiter, str) or not self.delimiter:
            raise ConfigError("id delimiter must be a non-empty string.")
        object.__setattr__(self, "reaction_prefixes", tuple(self.reaction_prefixes))

    @classmethod
    def from_mapping(cls, cfg: Optional[Mapping[str, Any]]) -> "IdentifierSettings":
        if not cfg:
            return cls()
        if not isinstance(cfg, Mapping):
            raise ConfigError("collapse config must be a mapping.")
        kwargs: dict[str, Any] = {}
        for key in (
            "species_prefix",
            "shared_compartment_parameter",
            "shared_compartment_name",
        ):
            if cfg.get(key) is not None:
                kwargs[key] = str(cfg[key])
        if cfg.get("id_delimiter") is not None:
            kwargs["delimiter"] = str(cfg["id_delimiter"])
        prefixes = cfg.get("reaction_prefixes")
        if prefixes is not None:
            if isinstance(prefixes, str) or not isinstance(prefixes, Sequence):
                raise ConfigError("collapse.reaction_prefixes must be a list of strings.")
            kwargs["reaction_prefixes"] = tuple(str(item) for item in prefixes)
        return cls(**kwargs)


@dataclass(frozen=True)
class Organism:
    key: str


@dataclass(frozen=True)
class Ignored:
    reason: str = ""


OrganismAssignment = Union[Organism, Ignored]


@dataclass
class IdentifierResolution:
    """Shared compartment and per-species organism assignment of a network."""

    shared_compartment: str
    settings: IdentifierSettings = field(default_factory=IdentifierSettings)
    compartments: set[str] = field(default_factory=set)
    compartment_to_organism: dict[str, str] = field(default_factory=dict)
    assignments: dict[str, OrganismAssignment] = field(default_factory=dict)
    issues: list[ScynetError] = field(default_factory=list)

    @property
    def resolved(self) -> bool:
        return bool(self.shared_compartment)

    @property
    def organisms(self) -> list[str]:
        """Distinct organism keys, excluding the shared compartment, sorted."""
        keys = {
            org
            for comp, org in self.compartment_to_organism.items()
            if comp != self.shared_compartment
        }
        return sorted(keys)

    @property
    def ignored(self) -> set[str]:
        return {
            node_id
            for node_id, assignment in self.assignments.items()
            if isinstance(assignment, Ignored)
        }

    def is_ignored(self, node_id: str) -> bool:
        return isinstance(self.assignments.get(node_id), Ignored)

    def is_shared(self, node: OriginalNode) -> bool:
        """True for a recognized species living in the shared compartment."""
        return (
            self.resolved
            and node.is_species
            and not self.is_ignored(node.node_id)
            and node.compartment == self.shared_compartment
            and node.compartment in self.compartments
        )

    def organism_of(self, node: OriginalNode) -> Optional[str]:
        """Organism key of a species' compartment (shortest key wins)."""
        if not node.is_species or self.is_ignored(node.node_id):
            return None
        return self.compartment_to_organism.get(node.compartment)


def resolve_shared_compartment(
    network: MetabolicNetwork,
    settings: Optional[IdentifierSettings] = None,
) -> str:
    """Return the key of the shared exchange compartment.

    A parameter node tagged with the shared compartment role takes precedence
    over a compartment node tagged as the medium.
    """
    settings = settings or IdentifierSettings()
    medium_found = False
    for node in network.nodes():
        if (
            node.kind is NodeKind.PARAMETER
            and node.role == settings.shared_compartment_parameter
        ):
            value = node.shared_name or node.sbml_id
            if value:
                return value
        if (
            node.kind is NodeKind.COMPARTMENT
            and settings.shared_compartment_name in (node.role, node.sbml_id)
        ):
            medium_found = True
    if medium_found:
        return settings.shared_compartment_name
    raise UnresolvedSharedCompartmentError(
        "No shared exchange compartment could be identified in the network.",
        user_message=(
            "No shared exchange compartment could be identified in the network. "
            f"Add a compartment named {settings.shared_compartment_name!r} or a "
            f"parameter {settings.shared_compartment_parameter!r} naming the "
            "shared exchange compartment."
        ),
        context={"network": network.name},
    )


def _strip_prefix(value: str, prefix: str) -> str:
    if prefix and value.startswith(prefix):
        return value[len(prefix):]
    return value


def parse_organism_key(
    node: OriginalNode,
    shared_compartment: str,
    settings: Optional[IdentifierSettings] = None,
) -> str:
    """Derive the organism key of a species from its id and compartment.

    The key starts with the first identifier segment, which must equal the
    first compartment segment, and grows while the following segments of both
    keep matching.
    """
    settings = settings or IdentifierSettings()
    if shared_compartment and node.compartment == shared_compartment:
        return shared_compartment
    delimiter = settings.delimiter
    id_parts = _strip_prefix(node.sbml_id, settings.species_prefix).split(delimiter)
    comp_parts = node.compartment.split(delimiter)
    if not id_parts[0] or id_parts[0] != comp_parts[0]:
        raise MalformedIdentifierError(
            f"Species id {node.sbml_id!r} does not start with its compartment "
            f"{node.compartment!r}.",
            context={"node": node.node_id},
        )
    segments = [id_parts[0]]
    for index in range(1, len(id_parts)):
        if index >= len(comp_parts) or id_parts[index] != comp_parts[index]:
            break
        segments.append(id_parts[index])
    return delimiter.join(segments)


def chemical_identity(
    node: OriginalNode,
    shared_compartment: str,
    settings: Optional[IdentifierSettings] = None,
) -> str:
    """Normalized key shared by compartment-qualified duplicates of a species."""
    settings = settings or IdentifierSettings()
    value = node.sbml_id or node.shared_name
    value = _strip_prefix(value, settings.species_prefix)
    value = _BRACKET_QUALIFIER.sub("", value)
    suffix = f"{settings.delimiter}{shared_compartment}"
    if shared_compartment and value.endswith(suffix) and len(value) > len(suffix):
        value = value[: -len(suffix)]
    return value.strip().lower()


def flux_key(node: OriginalNode, settings: Optional[IdentifierSettings] = None) -> str:
    """Flux table key of a reaction: its sbml id without the reaction prefix."""
    settings = settings or IdentifierSettings()
    if not node.is_reaction or not node.sbml_id:
        return ""
    for prefix in settings.reaction_prefixes:
        if prefix and node.sbml_id.startswith(prefix):
            return node.sbml_id[len(prefix):]
    return node.sbml_id


def resolve_identifiers(
    network: MetabolicNetwork,
    settings: Optional[IdentifierSettings] = None,
) -> IdentifierResolution:
    """Resolve the shared compartment and assign every species an organism.

    A missing shared compartment marker is reported on ``issues`` and leaves
    the resolution unresolved, so no species is recognized as exchanged.
    """
    settings = settings or IdentifierSettings()
    issues: list[ScynetError] = []
    try:
        shared = resolve_shared_compartment(network, settings)
    except UnresolvedSharedCompartmentError as exc:
        logger.warning(exc.user_message)
        issues.append(exc)
        shared = ""

    resolution = IdentifierResolution(
        shared_compartment=shared,
        settings=settings,
        issues=issues,
    )
    used_compartments: set[str] = set()
    ignored_compartments: set[str] = set()
    for node in network.species():
        try:
            organism = parse_organism_key(node, shared, settings)
        except MalformedIdentifierError as exc:
            logger.debug("Ignoring species %s: %s", node.node_id, exc)
            resolution.assignments[node.node_id] = Ignored(reason=str(exc))
            ignored_compartments.add(node.compartment)
            continue
        resolution.assignments[node.node_id] = Organism(organism)
        used_compartments.add(node.compartment)
        current = resolution.compartment_to_organism.get(node.compartment)
        if current is None or len(organism) < len(current):
            resolution.compartment_to_organism[node.compartment] = organism

    resolution.compartments = used_compartments
    dropped = sorted(ignored_compartments - used_compartments)
    if dropped:
        logger.info("Compartments without recognized species: %s", ", ".join(dropped))
    ignored_count = len(resolution.ignored)
    if ignored_count:
        logger.info("Ignored %d species with unrecognized identifiers.", ignored_count)
    logger.info(
        "Resolved shared compartment %r and %d organisms.",
        shared,
        len(resolution.organisms),
    )
    return resolution


__all__ = [
    "IdentifierResolution",
    "IdentifierSettings",
    "Ignored",
    "Organism",
    "OrganismAssignment",
    "chemical_identity",
    "flux_key",
    "parse_organism_key",
    "resolve_identifiers",
    "resolve_shared_compartment",
]
