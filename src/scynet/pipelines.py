"""Resolve, collapse, annotate, filter and lay out a community network.

The stages run in a fixed order over one in-memory network. Configuration
mismatches of the input abort the run; every other reported condition is
logged, recorded on the result and the run continues in a degraded state.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
import logging
import platform
from pathlib import Path
from typing import Any, Optional

from scynet import __version__
from scynet.collapse import CollapseResult, collapse_network
from scynet.community import CommunityNetwork
from scynet.core import RunManifest, dump_manifest, file_digest, make_run_id
from scynet.errors import (
    ConfigError,
    LayoutPreconditionError,
    MalformedFluxFileError,
    ScynetError,
)
from scynet.flux import FluxAnnotationSummary, FluxTable, annotate_fluxes, load_flux_table
from scynet.identifiers import IdentifierSettings, resolve_identifiers
from scynet.io_utils import write_json_atomic
from scynet.layout import DEFAULT_MEMBER_SIZE, DEFAULT_METABOLITE_SIZE, LayoutResult
from scynet.logging_utils import log_condition
from scynet.network import MetabolicNetwork, load_network
from scynet.registry import Registry, resolve
from scynet.visibility import apply_flux_visibility, hide_singletons, toggle_cross_fed_only

DEFAULT_OUTPUT_ROOT = "outputs"
DEFAULT_OUTPUT_NAME = "community"


def _as_mapping(value: Any, label: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"{label} must be a mapping.")
    return dict(value)


def _as_bool(value: Any, label: str, default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ConfigError(f"{label} must be a boolean, got {value!r}.")
    return value


def _as_size(value: Any, label: str, default: float) -> float:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ConfigError(f"{label} must be a number, got {value!r}.")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{label} must be a number, got {value!r}.") from exc
    if number <= 0:
        raise ConfigError(f"{label} must be positive, got {number}.")
    return number


def _as_text(value: Any, label: str, default: str) -> str:
    if value is None:
        return default
    if not isinstance(value, str):
        raise ConfigError(f"{label} must be a string, got {value!r}.")
    return value


@dataclass(frozen=True)
class PipelineSettings:
    network: str = ""
    flux: str = ""
    identifiers: IdentifierSettings = field(default_factory=IdentifierSettings)
    classifier: str = "auto"
    hide_zero_flux: bool = True
    cross_fed_only: bool = False
    layout: str = "concentric"
    member_size: float = DEFAULT_MEMBER_SIZE
    metabolite_size: float = DEFAULT_METABOLITE_SIZE
    output_root: str = DEFAULT_OUTPUT_ROOT
    output_name: str = DEFAULT_OUTPUT_NAME

    @classmethod
    def from_mapping(cls, cfg: Mapping[str, Any]) -> "PipelineSettings":
        """Validate a resolved config mapping with input/collapse/flux/layout/output sections."""
        cfg = _as_mapping(cfg, "config")
        input_cfg = _as_mapping(cfg.get("input"), "input")
        flux_cfg = _as_mapping(cfg.get("flux"), "flux")
        layout_cfg = _as_mapping(cfg.get("layout"), "layout")
        output_cfg = _as_mapping(cfg.get("output"), "output")
        return cls(
            network=_as_text(input_cfg.get("network"), "input.network", ""),
            flux=_as_text(input_cfg.get("flux"), "input.flux", ""),
            identifiers=IdentifierSettings.from_mapping(
                _as_mapping(cfg.get("collapse"), "collapse")
            ),
            classifier=_as_text(flux_cfg.get("classifier"), "flux.classifier", "auto"),
            hide_zero_flux=_as_bool(flux_cfg.get("hide_zero_flux"), "flux.hide_zero_flux", True),
            cross_fed_only=_as_bool(flux_cfg.get("cross_fed_only"), "flux.cross_fed_only", False),
            layout=_as_text(layout_cfg.get("algorithm"), "layout.algorithm", "concentric"),
            member_size=_as_size(
                layout_cfg.get("member_size"), "layout.member_size", DEFAULT_MEMBER_SIZE
            ),
            metabolite_size=_as_size(
                layout_cfg.get("metabolite_size"),
                "layout.metabolite_size",
                DEFAULT_METABOLITE_SIZE,
            ),
            output_root=_as_text(output_cfg.get("root"), "output.root", DEFAULT_OUTPUT_ROOT),
            output_name=_as_text(output_cfg.get("name"), "output.name", DEFAULT_OUTPUT_NAME),
        )

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["identifiers"]["reaction_prefixes"] = list(self.identifiers.reaction_prefixes)
        return payload


@dataclass(frozen=True)
class ReportedCondition:
    condition: str
    message: str
    stage: str

    def to_dict(self) -> dict[str, str]:
        return {"condition": self.condition, "message": self.message, "stage": self.stage}


@dataclass
class PipelineResult:
    network: CommunityNetwork
    collapse: CollapseResult
    flux: Optional[FluxAnnotationSummary] = None
    layout: Optional[LayoutResult] = None
    conditions: list[ReportedCondition] = field(default_factory=list)
    output_dir: Optional[Path] = None

    def counts(self) -> dict[str, int]:
        return summarize_network(self.network)


def summarize_network(network: CommunityNetwork) -> dict[str, int]:
    metabolites = network.metabolites()
    return {
        "organisms": len(network.organisms()),
        "metabolites": len(metabolites),
        "cross_fed": sum(1 for node in metabolites if node.cross_fed),
        "edges": network.graph.number_of_edges(),
        "visible_nodes": sum(1 for node in network.nodes() if node.visible),
        "visible_edges": sum(1 for edge in network.edges() if network.is_shown(edge)),
    }


class CommunityPipeline:
    """Single pass from an SBML-derived network to a laid out community network."""

    def __init__(
        self,
        settings: Optional[PipelineSettings] = None,
        *,
        registry: Optional[Registry] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.settings = settings or PipelineSettings()
        self.registry = registry
        self.logger = logger or logging.getLogger("scynet.pipeline")
        self.conditions: list[ReportedCondition] = []

    def _report(self, stage: str, exc: ScynetError) -> None:
        log_condition(self.logger, exc, stage=stage)
        self.conditions.append(
            ReportedCondition(condition=exc.condition, message=exc.user_message, stage=stage)
        )

    def load_flux(self) -> FluxTable:
        if not self.settings.flux:
            return FluxTable()
        try:
            return load_flux_table(self.settings.flux)
        except MalformedFluxFileError as exc:
            self._report("flux", exc)
            return FluxTable(source=self.settings.flux)

    def run(
        self,
        network: MetabolicNetwork,
        flux_table: Optional[FluxTable] = None,
    ) -> PipelineResult:
        settings = self.settings
        self.conditions = []

        resolution = resolve_identifiers(network, settings.identifiers)
        for issue in resolution.issues:
            self._report("resolve", issue)
        collapsed = collapse_network(
            network,
            settings.identifiers,
            resolution=resolution,
        )
        community = collapsed.network
        result = PipelineResult(network=community, collapse=collapsed)

        table = flux_table if flux_table is not None else self.load_flux()
        try:
            result.flux = annotate_fluxes(
                community,
                table,
                classifier=settings.classifier,
                registry=self.registry,
            )
            if not table.is_empty:
                if settings.hide_zero_flux:
                    apply_flux_visibility(community)
                if settings.cross_fed_only:
                    toggle_cross_fed_only(community)
            hide_singletons(community)
        except LayoutPreconditionError as exc:
            self._report("annotate", exc)

        layout = resolve("layout", settings.layout, registry=self.registry)
        try:
            result.layout = layout(
                community,
                member_size=settings.member_size,
                metabolite_size=settings.metabolite_size,
            )
        except LayoutPreconditionError as exc:
            self._report("layout", exc)

        result.conditions = list(self.conditions)
        return result


def run_pipeline(
    settings: PipelineSettings,
    *,
    registry: Optional[Registry] = None,
    logger: Optional[logging.Logger] = None,
) -> PipelineResult:
    """Load the configured network and flux file and run every stage."""
    if not settings.network:
        raise ConfigError(
            "input.network is required.",
            user_message="No network given; set input.network=<path to network.json>.",
        )
    network = load_network(settings.network)
    pipeline = CommunityPipeline(settings, registry=registry, logger=logger)
    return pipeline.run(network)


def _utc_now_iso() -> str:
    timestamp = datetime.now(timezone.utc).replace(microsecond=0)
    return timestamp.isoformat().replace("+00:00", "Z")


def _input_metadata(settings: PipelineSettings) -> dict[str, Any]:
    inputs: dict[str, Any] = {}
    for label, value in (("network", settings.network), ("flux", settings.flux)):
        if not value:
            continue
        path = Path(value)
        entry: dict[str, Any] = {"path": path.as_posix()}
        if path.is_file():
            entry["sha256"] = file_digest(path)
        inputs[label] = entry
    return inputs


def build_manifest(
    result: PipelineResult,
    settings: PipelineSettings,
    *,
    config: Optional[Mapping[str, Any]] = None,
) -> RunManifest:
    inputs = _input_metadata(settings)
    config_payload = dict(config) if config is not None else settings.to_dict()
    code = {"version": __version__, "python": platform.python_version()}
    return RunManifest(
        id=make_run_id(inputs=inputs, config=config_payload, code={"version": __version__}),
        created_at=_utc_now_iso(),
        inputs=inputs,
        config=config_payload,
        code=code,
        counts=result.counts(),
        conditions=[condition.to_dict() for condition in result.conditions],
    )


def write_outputs(
    result: PipelineResult,
    settings: PipelineSettings,
    *,
    config: Optional[Mapping[str, Any]] = None,
) -> Path:
    """Write network.json, nodes.tsv, edges.tsv and manifest.yaml."""
    output_dir = Path(settings.output_root) / settings.output_name
    output_dir.mkdir(parents=True, exist_ok=True)
    write_json_atomic(output_dir / "network.json", result.network.to_node_link())
    result.network.node_table().to_csv(output_dir / "nodes.tsv", sep="\t", index=False)
    result.network.edge_table().to_csv(output_dir / "edges.tsv", sep="\t", index=False)
    dump_manifest(output_dir / "manifest.yaml", build_manifest(result, settings, config=config))
    result.output_dir = output_dir
    logging.getLogger("scynet.pipeline").info("Wrote community network to %s", output_dir)
    return output_dir


__all__ = [
    "CommunityPipeline",
    "PipelineResult",
    "PipelineSettings",
    "ReportedCondition",
    "build_manifest",
    "run_pipeline",
    "summarize_network",
    "write_outputs",
]
