from pathlib import Path

import pytest

from scynet.errors import ConfigError
from scynet.hydra_utils import compose_config, format_config, resolve_config
from scynet.pipelines import PipelineSettings


def _config_dir() -> Path:
    return Path(__file__).resolve().parents[1] / "configs"


def test_hydra_compose_defaults() -> None:
    cfg = compose_config(config_path=_config_dir(), config_name="default")
    resolved = resolve_config(cfg)
    assert resolved["layout"]["algorithm"] == "concentric"
    assert resolved["layout"]["member_size"] == 150.0
    assert resolved["collapse"]["reaction_prefixes"] == ["R_"]
    assert resolved["flux"]["classifier"] == "auto"
    rendered = format_config(cfg)
    assert "collapse:" in rendered


def test_hydra_overrides_reach_settings() -> None:
    cfg = compose_config(
        config_path=_config_dir(),
        config_name="default.yaml",
        overrides=["layout.metabolite_size=20", "collapse.id_delimiter=.", "--"],
    )
    settings = PipelineSettings.from_mapping(resolve_config(cfg))
    assert settings.metabolite_size == 20.0
    assert settings.identifiers.delimiter == "."
    assert settings.identifiers.reaction_prefixes == ("R_",)
    assert settings.layout == "concentric"


def test_schema_rejects_wrong_types() -> None:
    with pytest.raises(ConfigError):
        compose_config(
            config_path=_config_dir(),
            overrides=["flux.hide_zero_flux=maybe"],
        )


def test_missing_config_dir(tmp_path) -> None:
    with pytest.raises(ConfigError) as exc:
        compose_config(config_path=tmp_path / "missing")

    assert "Config directory not found" in str(exc.value)


@pytest.mark.parametrize(
    "cfg",
    [
        {"layout": {"member_size": 0}},
        {"layout": {"metabolite_size": "big"}},
        {"flux": {"hide_zero_flux": "yes"}},
        {"input": {"network": 3}},
        {"collapse": {"reaction_prefixes": "R_"}},
        {"collapse": {"id_delimiter": ""}},
        {"output": []},
    ],
)
def test_invalid_settings_raise_config_error(cfg) -> None:
    with pytest.raises(ConfigError):
        PipelineSettings.from_mapping(cfg)


def test_settings_defaults_and_dict() -> None:
    settings = PipelineSettings.from_mapping({})
    payload = settings.to_dict()
    assert settings.classifier == "auto"
    assert payload["identifiers"]["reaction_prefixes"] == ["R_"]
    assert payload["member_size"] == 150.0
