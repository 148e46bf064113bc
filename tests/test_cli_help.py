import json
import os
from pathlib import Path
import subprocess
import sys

REPO_ROOT = Path(__file__).resolve().parents[1]


def _run_cli(*args: str) -> subprocess.CompletedProcess[str]:
    env = dict(os.environ)
    src = str(REPO_ROOT / "src")
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [src, env.get("PYTHONPATH")]))
    return subprocess.run(
        [sys.executable, "-m", "scynet.cli", *args],
        capture_output=True,
        text=True,
        cwd=REPO_ROOT,
        env=env,
    )


def test_cli_help_top_level() -> None:
    result = _run_cli("--help")
    assert result.returncode == 0
    assert "usage:" in result.stdout.lower()


def test_cli_help_subcommands() -> None:
    for subcommand in ("help", "cfg", "run", "summarize"):
        result = _run_cli(subcommand, "--help")
        assert result.returncode == 0
        assert "usage:" in result.stdout.lower()


def test_cli_cfg_prints_composed_config() -> None:
    result = _run_cli("cfg", "layout.member_size=120")
    assert result.returncode == 0
    assert "member_size: 120" in result.stdout


def test_cli_run_and_summarize(tmp_path, sbml_payload) -> None:
    network_path = tmp_path / "model.json"
    network_path.write_text(json.dumps(sbml_payload), encoding="utf-8")
    flux_path = tmp_path / "fluxes.tsv"
    flux_path.write_text(
        "reaction_id\tflux\nEX_glc_ecoli\t-2.0\nEX_glc_bsub\t3.0\n", encoding="utf-8"
    )

    result = _run_cli(
        "run",
        f"input.network={network_path}",
        f"input.flux={flux_path}",
        f"output.root={tmp_path / 'outputs'}",
    )

    assert result.returncode == 0, result.stderr
    payload = json.loads(result.stdout)
    assert payload["counts"]["cross_fed"] == 1
    assert payload["conditions"] == []

    summary = _run_cli("summarize", str(Path(payload["output_dir"]) / "network.json"))
    assert summary.returncode == 0, summary.stderr
    assert json.loads(summary.stdout) == payload["counts"]


def test_cli_run_without_network_fails() -> None:
    result = _run_cli("run")
    assert result.returncode == 1
    assert "input.network" in result.stderr


def test_cli_summarize_rejects_uncollapsed_network(tmp_path, sbml_payload) -> None:
    path = tmp_path / "model.json"
    path.write_text(json.dumps(sbml_payload), encoding="utf-8")

    result = _run_cli("summarize", str(path))

    assert result.returncode == 1
    assert "community network" in result.stderr
