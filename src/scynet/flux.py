"""Flux tables and flux annotation of community networks.

A flux table maps reaction keys to a single flux value (FBA) or to a
``<key>_min`` / ``<key>_max`` pair (FVA). Annotation writes flux values onto the
aggregated edges and classifies every exchange metabolite as cross-fed or not.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np
import pandas as pd

from scynet.community import (
    CommunityNetwork,
    ExchangeMetaboliteNode,
    FluxDirection,
    OrganismNode,
    SimplifiedEdge,
    require_community,
)
from scynet.errors import ConfigError, MalformedFluxFileError
from scynet.registry import Registry, register, resolve

logger = logging.getLogger(__name__)

HEADER_KEY = "reaction_id"
FBA_COLUMNS = ("flux",)
FVA_COLUMNS = ("min_flux", "max_flux")
MIN_SUFFIX = "_min"
MAX_SUFFIX = "_max"


class FluxMode(str, Enum):
    NONE = "none"
    FBA = "fba"
    FVA = "fva"


@dataclass
class FluxTable:
    """Reaction key to flux mapping; an empty table means no flux data."""

    values: dict[str, float] = field(default_factory=dict)
    mode: FluxMode = FluxMode.NONE
    source: str = ""

    def __len__(self) -> int:
        return len(self.values)

    @property
    def is_empty(self) -> bool:
        return not self.values

    @classmethod
    def from_mapping(
        cls,
        values: Mapping[str, float],
        mode: Optional[Union[FluxMode, str]] = None,
    ) -> "FluxTable":
        data = {str(key): float(value) for key, value in values.items()}
        if mode is None:
            if not data:
                mode = FluxMode.NONE
            elif all(key.endswith((MIN_SUFFIX, MAX_SUFFIX)) for key in data):
                mode = FluxMode.FVA
            else:
                mode = FluxMode.FBA
        return cls(values=data, mode=FluxMode(mode))

    def flux(self, key: str) -> Optional[float]:
        """Single flux value; a key missing from a non-empty table is zero."""
        if self.is_empty or not key:
            return None
        return self.values.get(key, 0.0)

    def flux_range(self, key: str) -> tuple[Optional[float], Optional[float]]:
        if self.is_empty or not key:
            return None, None
        return (
            self.values.get(key + MIN_SUFFIX, 0.0),
            self.values.get(key + MAX_SUFFIX, 0.0),
        )

    def has_key(self, key: str) -> bool:
        if self.mode is FluxMode.FVA:
            return key + MIN_SUFFIX in self.values or key + MAX_SUFFIX in self.values
        return key in self.values


def _malformed(path: Path, label: str, detail: str) -> MalformedFluxFileError:
    return MalformedFluxFileError(
        f"Flux file {path} has a non-numeric {label} value: {detail}",
        user_message=f"Flux file {path.name} contains a non-numeric {label} value.",
        context={"path": str(path), "column": label},
    )


def _parse_numbers(column: pd.Series, path: Path, label: str) -> np.ndarray:
    """Convert a text column to floats; blank, missing or NaN cells fail the load."""
    blank = column.isna() | (column.astype(str).str.strip() == "")
    if blank.any():
        row = int(np.flatnonzero(blank.to_numpy())[0]) + 1
        raise _malformed(path, label, f"empty field in data row {row}")
    try:
        values = pd.to_numeric(column, errors="raise").to_numpy(dtype=float)
    except (TypeError, ValueError) as exc:
        raise _malformed(path, label, str(exc)) from exc
    if np.isnan(values).any():
        row = int(np.flatnonzero(np.isnan(values))[0]) + 1
        raise _malformed(path, label, f"NaN in data row {row}")
    return values


def load_flux_table(path: Union[str, Path]) -> FluxTable:
    """Parse a tab-separated flux file.

    The header's first column is ``reaction_id``; the second is ``flux`` for
    FBA, or ``min_flux`` followed by ``max_flux`` for FVA. Any other header
    yields an empty table with no mode.
    """
    path = Path(path)
    if not path.is_file():
        raise MalformedFluxFileError(
            f"Flux file not found: {path}",
            context={"path": str(path)},
        )
    try:
        frame = pd.read_csv(
            path,
            sep="\t",
            dtype=str,
            keep_default_na=False,
            index_col=False,
        )
    except pd.errors.EmptyDataError:
        logger.warning("Flux file %s is empty.", path)
        return FluxTable(source=str(path))
    except (pd.errors.ParserError, UnicodeDecodeError, OSError) as exc:
        raise MalformedFluxFileError(
            f"Flux file {path} could not be read: {exc}",
            context={"path": str(path)},
        ) from exc

    columns = [str(column).strip() for column in frame.columns]
    if not columns or columns[0] != HEADER_KEY:
        logger.warning("Flux file %s has no %r header; no flux data loaded.", path, HEADER_KEY)
        return FluxTable(source=str(path))
    if tuple(columns[1:3]) == FVA_COLUMNS:
        mode = FluxMode.FVA
    elif tuple(columns[1:2]) == FBA_COLUMNS:
        mode = FluxMode.FBA
    else:
        logger.warning("Flux file %s has an unknown header %s.", path, columns)
        return FluxTable(source=str(path))

    frame.columns = columns
    keys = frame[HEADER_KEY].astype(str)
    frame = frame[keys != HEADER_KEY]
    keys = frame[HEADER_KEY].astype(str).tolist()
    values: dict[str, float] = {}
    if mode is FluxMode.FBA:
        fluxes = _parse_numbers(frame["flux"], path, "flux")
        for key, value in zip(keys, fluxes):
            values[key] = float(value)
    else:
        minima = _parse_numbers(frame["min_flux"], path, "min_flux")
        maxima = _parse_numbers(frame["max_flux"], path, "max_flux")
        for key, low, high in zip(keys, minima, maxima):
            values[key + MIN_SUFFIX] = float(low)
            values[key + MAX_SUFFIX] = float(high)
    logger.info("Loaded %d %s flux entries from %s.", len(keys), mode.value, path)
    return FluxTable(values=values, mode=mode, source=str(path))


def flux_direction(edge: SimplifiedEdge, mode: FluxMode) -> FluxDirection:
    if mode is FluxMode.FVA:
        low, high = edge.min_flux, edge.max_flux
        if low is None or high is None:
            return FluxDirection.NONE
        if low < 0.0 < high:
            return FluxDirection.BIDIRECTIONAL
        if high > 0.0:
            return FluxDirection.EFFLUX
        if low < 0.0:
            return FluxDirection.INFLUX
        return FluxDirection.ZERO
    if edge.flux is None:
        return FluxDirection.NONE
    if edge.flux > 0.0:
        return FluxDirection.EFFLUX
    if edge.flux < 0.0:
        return FluxDirection.INFLUX
    return FluxDirection.ZERO


def classify_fba(network: CommunityNetwork, node: ExchangeMetaboliteNode) -> bool:
    """Cross-fed when adjacent edges carry both a negative and a positive flux."""
    positive = False
    negative = False
    for edge in network.incident_edges(node.node_id):
        if edge.flux is None:
            continue
        if edge.flux < 0.0:
            negative = True
        if edge.flux > 0.0:
            positive = True
    return positive and negative


def classify_fva(network: CommunityNetwork, node: ExchangeMetaboliteNode) -> bool:
    """Cross-fed when an exporting organism meets a different importing organism.

    Organisms whose edge can carry positive flux form the positive set, those
    whose edge can carry negative flux form the negative set. One organism on
    both sides alone is not cross-feeding.
    """
    positive: set[str] = set()
    negative: set[str] = set()
    for edge in network.incident_edges(node.node_id):
        if edge.min_flux is None or edge.max_flux is None:
            continue
        organism = None
        for endpoint in (edge.target, edge.source):
            candidate = network.node(endpoint)
            if isinstance(candidate, OrganismNode):
                organism = candidate.name
                break
        if organism is None:
            continue
        if edge.min_flux < 0.0:
            negative.add(organism)
        if edge.max_flux > 0.0:
            positive.add(organism)
    return any(
        (len(negative) > 1 and organism in negative)
        or (len(negative) > 0 and organism not in negative)
        for organism in positive
    )


Classifier = Callable[[CommunityNetwork, ExchangeMetaboliteNode], bool]


@dataclass
class FluxAnnotationSummary:
    mode: FluxMode
    annotated_edges: int = 0
    missing_keys: list[str] = field(default_factory=list)
    cross_fed: list[str] = field(default_factory=list)


def select_classifier(
    name: str,
    mode: FluxMode,
    *,
    registry: Optional[Registry] = None,
) -> Classifier:
    if name == "auto":
        name = FluxMode.FVA.value if mode is FluxMode.FVA else FluxMode.FBA.value
    classifier = resolve("classifier", name, registry=registry)
    if not callable(classifier):
        raise ConfigError(f"Classifier {name!r} is not callable.")
    return classifier


def annotate_fluxes(
    network: CommunityNetwork,
    table: FluxTable,
    *,
    classifier: str = "auto",
    registry: Optional[Registry] = None,
) -> FluxAnnotationSummary:
    """Write flux values onto edges and recompute the cross-fed status.

    Previous flux, cross-fed and total-flux values are cleared first, so
    annotating twice with different tables never accumulates. An empty table
    leaves every edge and metabolite without flux data.
    """
    require_community(network)
    classify = select_classifier(classifier, table.mode, registry=registry)
    for edge in network.edges():
        edge.reset_flux()
    for metabolite in network.metabolites():
        metabolite.cross_fed = None
        metabolite.total_flux = None
    network.flux_mode = table.mode.value if not table.is_empty else ""

    summary = FluxAnnotationSummary(mode=table.mode)
    if table.is_empty:
        logger.info("No flux data; community network left unannotated.")
        return summary

    missing: set[str] = set()
    for edge in network.edges():
        if edge.flux_key and not table.has_key(edge.flux_key):
            missing.add(edge.flux_key)
        if table.mode is FluxMode.FVA:
            edge.min_flux, edge.max_flux = table.flux_range(edge.flux_key)
            if edge.min_flux is not None and edge.max_flux is not None:
                edge.flux = max(abs(edge.min_flux), abs(edge.max_flux))
        else:
            edge.flux = table.flux(edge.flux_key)
        edge.direction = flux_direction(edge, table.mode)
        if edge.flux is not None:
            summary.annotated_edges += 1

    for metabolite in network.metabolites():
        incident = network.incident_edges(metabolite.node_id)
        fluxes = [abs(edge.flux) for edge in incident if edge.flux is not None]
        metabolite.total_flux = float(np.sum(fluxes)) if fluxes else 0.0
        metabolite.cross_fed = bool(classify(network, metabolite))
        if metabolite.cross_fed:
            summary.cross_fed.append(metabolite.node_id)

    summary.missing_keys = sorted(missing)
    if summary.missing_keys:
        logger.info(
            "%d flux keys absent from the table were set to zero.", len(summary.missing_keys)
        )
    logger.info(
        "Annotated %d edges in %s mode; %d cross-fed metabolites.",
        summary.annotated_edges,
        table.mode.value,
        len(summary.cross_fed),
    )
    return summary


register("classifier", "fba", classify_fba)
register("classifier", "fva", classify_fva)


__all__ = [
    "Classifier",
    "FluxAnnotationSummary",
    "FluxMode",
    "FluxTable",
    "annotate_fluxes",
    "classify_fba",
    "classify_fva",
    "flux_direction",
    "load_flux_table",
    "select_classifier",
]
