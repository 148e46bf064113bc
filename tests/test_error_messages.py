import logging

import pytest

from scynet.errors import ConfigError, MalformedFluxFileError, ScynetError
from scynet.logging_utils import (
    condition_of,
    configure_logging,
    get_user_message,
    log_condition,
    log_exception,
    run_with_error_handling,
)
from scynet.network import load_network
from scynet.registry import Registry, resolve


def test_missing_network_raises_configuration_mismatch(tmp_path) -> None:
    missing = tmp_path / "missing.json"

    with pytest.raises(ScynetError) as exc:
        load_network(missing)

    message = str(exc.value)
    assert "not found" in message
    assert str(missing) in message


def test_unknown_layout_raises_config_error() -> None:
    registry = Registry()

    with pytest.raises(ConfigError) as exc:
        resolve("layout", "spiral", registry=registry)

    message = str(exc.value)
    assert "Layout" in message
    assert "spiral" in message
    assert exc.value.context == {"kind": "layout", "name": "spiral"}


def test_user_message_defaults_to_message() -> None:
    error = MalformedFluxFileError("Flux file broken", context={"path": "f.tsv"})

    assert error.user_message == "Flux file broken"
    assert error.log_message() == "Flux file broken: {'path': 'f.tsv'}"
    assert get_user_message(error) == "Flux file broken"
    assert get_user_message(RuntimeError("boom")) == "Unexpected error: boom"


def test_run_with_error_handling_logs_and_reraises(caplog) -> None:
    logger = logging.getLogger("scynet.test")
    logger.setLevel(logging.INFO)
    logger.propagate = True
    logger.handlers.clear()

    def _raise_config_error() -> None:
        raise ConfigError("Config directory not found: configs/missing")

    with caplog.at_level(logging.INFO, logger=logger.name):
        with pytest.raises(ConfigError):
            run_with_error_handling(_raise_config_error, logger=logger)

    assert any(
        "Config directory not found" in record.getMessage() for record in caplog.records
    )


def test_log_exception_emits_traceback_at_debug_level(caplog) -> None:
    logger = logging.getLogger("scynet.test.debug")
    logger.setLevel(logging.DEBUG)
    logger.propagate = True
    logger.handlers.clear()

    with caplog.at_level(logging.DEBUG, logger=logger.name):
        log_exception(logger, ConfigError("Config directory not found: configs"))

    assert any(record.exc_info for record in caplog.records)


def test_log_condition_warns_with_stage(caplog) -> None:
    logger = logging.getLogger("scynet.test.condition")
    logger.setLevel(logging.DEBUG)
    logger.propagate = True
    logger.handlers.clear()
    error = MalformedFluxFileError(
        "Flux file f.tsv has a non-numeric flux value",
        user_message="Flux file f.tsv contains a non-numeric flux value.",
    )

    with caplog.at_level(logging.DEBUG, logger=logger.name):
        message = log_condition(logger, error, stage="flux")

    assert message == "Flux file f.tsv contains a non-numeric flux value."
    warnings = [record for record in caplog.records if record.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "[flux] malformed_flux_file" in warnings[0].getMessage()
    assert (warnings[0].condition, warnings[0].stage) == ("malformed_flux_file", "flux")


def test_log_exception_tags_condition(caplog) -> None:
    logger = logging.getLogger("scynet.test.failure")
    logger.setLevel(logging.DEBUG)
    logger.propagate = True
    logger.handlers.clear()
    error = ConfigError("input.network is required.", context={"key": "input.network"})

    with caplog.at_level(logging.DEBUG, logger=logger.name):
        log_exception(logger, error)

    errors = [record for record in caplog.records if record.levelno == logging.ERROR]
    assert [record.condition for record in errors] == ["config"]
    debug = [record.getMessage() for record in caplog.records if record.levelno == logging.DEBUG]
    assert any("input.network" in message for message in debug)
    assert condition_of(RuntimeError("boom")) == "unexpected"


def test_configure_logging_quiets_hydra() -> None:
    hydra_logger = logging.getLogger("hydra")
    previous = hydra_logger.level
    try:
        logger = configure_logging(logging.INFO)
        assert logger.name == "scynet"
        assert hydra_logger.level == logging.WARNING

        configure_logging(logging.DEBUG)
        assert hydra_logger.level == logging.DEBUG
    finally:
        hydra_logger.setLevel(previous)
        logging.getLogger("scynet").setLevel(logging.NOTSET)
