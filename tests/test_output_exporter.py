"""
Tests for result export and the command line
============================================
"""

import json

import numpy as np
import pandas as pd
import pytest
from loguru import logger

import main
from lotto_engine.generator import GenerationParams, generate
from lotto_engine.output_exporter import batch_to_dataframe, convert_numpy_types, export_batch


@pytest.fixture
def batch():
    return generate(60, 6, [], 3, GenerationParams(population_size=20, generations=3, seed=1))


@pytest.fixture
def cli_workspace(tmp_path, monkeypatch):
    """Runs the CLI inside tmp_path and detaches its log sinks afterwards."""
    monkeypatch.chdir(tmp_path)
    yield tmp_path
    logger.remove()


class TestExport:
    """Test suite for output_exporter."""

    def test_convert_numpy_types(self):
        converted = convert_numpy_types({"a": np.int64(3), 1: [np.float64(0.5), np.array([1, 2])]})
        assert converted == {"a": 3, "1": [0.5, [1, 2]]}
        assert type(converted["a"]) is int

    def test_batch_to_dataframe(self, batch):
        frame = batch_to_dataframe(batch)

        assert len(frame) == 3
        assert list(frame.columns[:7]) == ["n1", "n2", "n3", "n4", "n5", "n6", "score"]
        assert "bucket_diversity" in frame.columns
        assert frame["score"].tolist() == batch.scores

    def test_export_csv(self, batch, tmp_path):
        path = export_batch(batch, str(tmp_path / "out" / "games.csv"))
        frame = pd.read_csv(path)

        assert len(frame) == 3
        assert frame.loc[0, ["n1", "n2", "n3", "n4", "n5", "n6"]].tolist() == batch.games[0]

    def test_export_json(self, batch, tmp_path):
        path = export_batch(batch, str(tmp_path / "games.json"))
        with open(path, encoding="utf-8") as handle:
            data = json.load(handle)

        assert data["games"] == batch.games
        assert data["seed"] == 1
        assert data["diversity_reduced"] is False

    def test_default_path_is_timestamped(self, batch, tmp_path):
        path = export_batch(batch, output_dir=str(tmp_path))
        assert path.startswith(str(tmp_path))
        assert path.endswith(".csv")


class TestCommandLine:
    """Test suite for main.main."""

    def test_generate_prints_batch(self, cli_workspace, capsys):
        code = main.main([
            "--config", "missing.ini", "generate", "--pool", "30", "--pick", "5",
            "--games", "2", "--population", "12", "--generations", "2", "--seed", "9",
            "--output", "games.json",
        ])
        result = json.loads(capsys.readouterr().out)

        assert code == 0
        assert len(result["games"]) == 2
        assert result["pool_size"] == 30
        assert (cli_workspace / "games.json").exists()
        assert (cli_workspace / "logs" / "lotto_engine.log").exists()

    def test_generate_with_lottery_and_history(self, cli_workspace, capsys):
        rows = ["concurso,n1,n2,n3,n4,n5"]
        for i in range(1, 41):
            numbers = sorted({(i * 3 + j * 17) % 80 + 1 for j in range(5)})
            if len(numbers) == 5:
                rows.append(",".join(str(v) for v in [i] + numbers))
        (cli_workspace / "quina.csv").write_text("\n".join(rows) + "\n")

        code = main.main([
            "--config", "missing.ini", "generate", "--lottery", "quina", "--draws", "quina.csv",
            "--games", "2", "--population", "12", "--generations", "2", "--seed", "4",
        ])
        result = json.loads(capsys.readouterr().out)

        assert code == 0
        assert result["pick"] == 5
        assert all(len(game) == 5 for game in result["games"])

    def test_analyze(self, cli_workspace, capsys):
        (cli_workspace / "draws.csv").write_text(
            "contest,n1,n2,n3\n1,1,2,3\n2,1,2,4\n3,1,5,6\n"
        )
        code = main.main(["--config", "missing.ini", "analyze", "--pool", "10", "--draws", "draws.csv", "--top", "2"])
        result = json.loads(capsys.readouterr().out)

        assert code == 0
        assert result["history_length"] == 3
        assert result["tiers"]["hot"] == [1, 2, 5]

    def test_analyze_with_lottery_id(self, cli_workspace, capsys):
        code = main.main(["--config", "missing.ini", "analyze", "--lottery", "quina"])
        result = json.loads(capsys.readouterr().out)

        assert code == 0
        assert len(result["statistics"]) == 80

    def test_generate_needs_pick_with_pool(self, cli_workspace, capsys):
        code = main.main(["--config", "missing.ini", "generate", "--pool", "30"])
        assert code == 2
        assert capsys.readouterr().out == ""

    def test_invalid_parameters_exit_code(self, cli_workspace, capsys):
        code = main.main(["--config", "missing.ini", "generate", "--pool", "5", "--pick", "6"])
        assert code == 2
        assert capsys.readouterr().out == ""

    def test_missing_history_file_exit_code(self, cli_workspace):
        code = main.main(["--config", "missing.ini", "generate", "--lottery", "megasena", "--draws", "nope.csv"])
        assert code == 1
