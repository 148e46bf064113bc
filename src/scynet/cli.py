"""CLI entry point."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Iterable, Optional, Sequence

from scynet.community import CommunityNetwork
from scynet.errors import ScynetError, ValidationError
from scynet.hydra_utils import (
    DEFAULT_CONFIG_NAME,
    DEFAULT_CONFIG_PATH,
    compose_config,
    format_config,
    resolve_config,
)
from scynet.io_utils import read_json
from scynet.logging_utils import configure_logging, log_exception, run_with_error_handling
from scynet.pipelines import (
    PipelineSettings,
    run_pipeline,
    summarize_network,
    write_outputs,
)

_SUBCOMMANDS: Sequence[str] = (
    "help",
    "cfg",
    "run",
    "summarize",
)


def _add_config_arguments(parser: argparse.ArgumentParser, example: str) -> None:
    parser.add_argument(
        "--config-path",
        default=DEFAULT_CONFIG_PATH,
        help="Path to the Hydra config directory.",
    )
    parser.add_argument(
        "--config-name",
        default=DEFAULT_CONFIG_NAME,
        help="Hydra config name (without extension).",
    )
    parser.add_argument(
        "overrides",
        nargs=argparse.REMAINDER,
        help=f"Hydra overrides (ex: {example}).",
    )


def _cfg_handler(args: argparse.Namespace) -> None:
    cfg = compose_config(
        config_path=args.config_path,
        config_name=args.config_name,
        overrides=args.overrides,
    )
    print(format_config(cfg), end="")


def _run_handler(args: argparse.Namespace) -> None:
    cfg = compose_config(
        config_path=args.config_path,
        config_name=args.config_name,
        overrides=args.overrides,
    )
    resolved = resolve_config(cfg)
    settings = PipelineSettings.from_mapping(resolved)
    result = run_pipeline(settings)
    output_dir = write_outputs(result, settings, config=resolved)
    payload = {
        "output_dir": output_dir.as_posix(),
        "counts": result.counts(),
        "conditions": [condition.to_dict() for condition in result.conditions],
    }
    print(json.dumps(payload, indent=2, sort_keys=True))


def _summarize_handler(args: argparse.Namespace) -> None:
    path = Path(args.network)
    if not path.exists():
        raise ValidationError(f"Network file not found: {path}")
    try:
        payload = read_json(path)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Network file is not valid JSON: {path}: {exc}") from exc
    network = CommunityNetwork.from_node_link(payload)
    print(json.dumps(summarize_network(network), indent=2, sort_keys=True))


def _register_help_subcommand(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
    parser: argparse.ArgumentParser,
) -> None:
    def _handler(_args: argparse.Namespace) -> None:
        parser.print_help()

    help_parser = subparsers.add_parser(
        "help",
        help="Show top-level help.",
        description="Show top-level help.",
    )
    help_parser.set_defaults(handler=_handler)


def _register_cfg_subcommand(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> None:
    cfg_parser = subparsers.add_parser(
        "cfg",
        help="Compose and print Hydra config.",
        description="Compose and print Hydra config.",
    )
    _add_config_arguments(cfg_parser, "layout.member_size=120")
    cfg_parser.set_defaults(handler=_cfg_handler)


def _register_run_subcommand(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> None:
    run_parser = subparsers.add_parser(
        "run",
        help="Build, annotate and lay out a community network.",
        description=(
            "Collapse an SBML-imported network into a community network, "
            "annotate it with a flux table and write the laid out result."
        ),
    )
    _add_config_arguments(
        run_parser, "input.network=model.json input.flux=fluxes.tsv"
    )
    run_parser.set_defaults(handler=_run_handler)


def _register_summarize_subcommand(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> None:
    summarize_parser = subparsers.add_parser(
        "summarize",
        help="Count organisms, metabolites and edges of a community network.",
        description="Count organisms, metabolites and edges of a community network.",
    )
    summarize_parser.add_argument("network", help="Path to a community network.json.")
    summarize_parser.set_defaults(handler=_summarize_handler)


def _build_parser(subcommands: Iterable[str]) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scynet",
        description="scynet command line interface.",
    )
    parser.add_argument(
        "--traceback",
        action="store_true",
        help="Show full traceback on errors.",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    for name in subcommands:
        if name == "help":
            _register_help_subcommand(subparsers, parser)
        elif name == "cfg":
            _register_cfg_subcommand(subparsers)
        elif name == "run":
            _register_run_subcommand(subparsers)
        elif name == "summarize":
            _register_summarize_subcommand(subparsers)
        else:
            raise ValueError(f"Unknown subcommand: {name!r}.")
    return parser


def _cli_main(
    *,
    cli_logger: logging.Logger,
    argv: Optional[Sequence[str]] = None,
) -> None:
    parser = _build_parser(_SUBCOMMANDS)
    args = parser.parse_args(argv)
    if not getattr(args, "command", None):
        parser.print_help()
        raise SystemExit(2)
    try:
        args.handler(args)
    except ScynetError as exc:
        log_exception(cli_logger, exc, show_traceback=args.traceback)
        raise SystemExit(1) from None


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Entry point with standard logging/error handling."""
    logger = configure_logging()
    run_with_error_handling(_cli_main, logger=logger, cli_logger=logger, argv=argv)


if __name__ == "__main__":
    main()
