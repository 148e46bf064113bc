from pathlib import Path

import pytest

from scynet.core import file_digest, make_run_id, stable_hash
from scynet.pipelines import PipelineSettings


def test_stable_hash_dict_order() -> None:
    assert stable_hash({"b": 2, "a": 1}) == stable_hash({"a": 1, "b": 2})


def test_stable_hash_list_tuple_equivalence() -> None:
    assert stable_hash({"values": [1, 2]}) == stable_hash({"values": (1, 2)})
    assert stable_hash({"value": 1}) != stable_hash({"value": 2})


def test_stable_hash_exclude_keys() -> None:
    base = {"a": 1, "b": 2}
    with_log = {"a": 1, "b": 2, "log": {"level": "INFO"}}
    assert stable_hash(with_log, exclude_keys={"log"}) == stable_hash(base)
    assert stable_hash(with_log) != stable_hash(base)


def test_stable_hash_rejects_non_json_values() -> None:
    with pytest.raises(TypeError):
        stable_hash({"path": Path("configs/default.yaml")})
    with pytest.raises(ValueError):
        stable_hash({"a": 1}, length=0)


def test_settings_payload_hashes() -> None:
    payload = PipelineSettings(network="model.json").to_dict()

    assert stable_hash(payload) == stable_hash(PipelineSettings(network="model.json").to_dict())
    assert stable_hash(payload) != stable_hash(PipelineSettings(network="other.json").to_dict())


def test_run_id_changes_with_content() -> None:
    assert make_run_id(inputs={"x": 1}) != make_run_id(inputs={"x": 2})
    assert make_run_id(config={"a": 1}) == make_run_id(config={"a": 1})


def test_file_digest(tmp_path) -> None:
    path = tmp_path / "fluxes.tsv"
    path.write_text("reaction_id\tflux\n", encoding="utf-8")

    assert len(file_digest(path)) == 16
    assert len(file_digest(path, length=None)) == 64
