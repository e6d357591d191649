from __future__ import annotations

from pathlib import Path

import pytest
from mlpevo import cli
from mlpevo.persistence import EVOLUTION_FILE, GENERATION_FILE


def test_cli_help() -> None:
    parser = cli.build_parser()
    help_text = parser.format_help()
    assert "run" in help_text
    assert "inspect" in help_text


def _write_evolution_config(path: Path, *, max_generations: int) -> None:
    path.write_text(
        "input_names: [a, b]\n"
        "output_names: [xor]\n"
        "population_size: 6\n"
        "seed: 11\n"
        f"max_generations: {max_generations}\n",
        encoding="utf-8",
    )


def _write_run_config(path: Path, *, fitness: str = "mlpevo.tasks:xor_fitness") -> None:
    path.write_text(
        f"""
evolution_config: evolution.yml
fitness: {fitness}
storage_dir: runs/xor
workers: 2
""",
        encoding="utf-8",
    )


def test_cli_run_dry_run(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _write_evolution_config(tmp_path / "evolution.yml", max_generations=2)
    run_yaml = tmp_path / "run.yml"
    _write_run_config(run_yaml)

    code = cli.main(["run", "--config", str(run_yaml), "--dry-run"])
    assert code == 0
    output = capsys.readouterr().out
    assert "configuration validated" in output
    assert "inputs: a, b" in output
    assert not (tmp_path / "runs" / "xor").exists()


def test_cli_run_rejects_unknown_fitness(tmp_path: Path) -> None:
    _write_evolution_config(tmp_path / "evolution.yml", max_generations=1)
    run_yaml = tmp_path / "run.yml"
    _write_run_config(run_yaml, fitness="mlpevo.tasks:missing")

    with pytest.raises(ValueError):
        cli.main(["run", "--config", str(run_yaml), "--dry-run"])


def test_cli_run_executes_and_inspects(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    _write_evolution_config(tmp_path / "evolution.yml", max_generations=2)
    run_yaml = tmp_path / "run.yml"
    _write_run_config(run_yaml)

    code = cli.main(["run", "--config", str(run_yaml)])
    assert code == 0
    storage = tmp_path / "runs" / "xor"
    assert (storage / GENERATION_FILE).exists()
    assert (storage / EVOLUTION_FILE).exists()
    assert (storage / "events.log").exists()
    assert "last saved generation 1" in capsys.readouterr().out

    code = cli.main(["inspect", str(storage), "--genome"])
    assert code == 0
    output = capsys.readouterr().out
    assert "generation: 1" in output
    assert "individuals: 6" in output
    assert "best_topology: 2 ->" in output
    assert "<SIZE:" in output


def test_cli_run_resumes_existing_storage(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    _write_evolution_config(tmp_path / "evolution.yml", max_generations=1)
    run_yaml = tmp_path / "run.yml"
    _write_run_config(run_yaml)
    assert cli.main(["run", "--config", str(run_yaml)]) == 0

    _write_evolution_config(tmp_path / "evolution.yml", max_generations=3)
    capsys.readouterr()
    assert cli.main(["run", "--config", str(run_yaml)]) == 0
    output = capsys.readouterr().out
    assert "resuming from checkpoint" in output
    assert "last saved generation 2" in output


def test_cli_inspect_missing_checkpoint(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code = cli.main(["inspect", str(tmp_path / "nowhere")])
    assert code == 1
    assert "Checkpoint file not found" in capsys.readouterr().err


def test_cli_reports_failed_generation(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    _write_evolution_config(tmp_path / "evolution.yml", max_generations=2)
    run_yaml = tmp_path / "run.yml"
    _write_run_config(run_yaml, fitness="tests_failing_fitness:explode")
    (tmp_path / "tests_failing_fitness.py").write_text(
        "def explode(network):\n    raise RuntimeError('broken task')\n",
        encoding="utf-8",
    )

    with pytest.MonkeyPatch.context() as patch:
        patch.syspath_prepend(str(tmp_path))
        code = cli.main(["run", "--config", str(run_yaml)])

    assert code == 1
    assert "there were 6 errors" in capsys.readouterr().err
    assert not (tmp_path / "runs" / "xor" / GENERATION_FILE).exists()
