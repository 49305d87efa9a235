"""
Tests for the sreach-lag command line interface.
"""

import json

import pytest

from sreach_lag.cli import create_parser, main

PROBLEM_YAML = """
problem:
  method: lag-under
  probability: 0.8
  system:
    state_mat: [[1, 0.25], [0, 1]]
    input_mat: [[0.03125], [0.25]]
    input_space:
      lower: [-0.1]
      upper: [0.1]
  disturbance:
    covariance: [[0.001, 0], [0, 0.001]]
  tube:
    horizon: 2
    safe_set:
      lower: [-1, -1]
      upper: [1, 1]
  options:
    n_directions: 8
"""


@pytest.fixture
def problem_file(tmp_path):
    path = tmp_path / "problem.yaml"
    path.write_text(PROBLEM_YAML)
    return path


class TestParser:
    """Tests for argument parsing."""

    def test_analyze_arguments(self):
        args = create_parser().parse_args(["analyze", "--problem", "p.yaml", "--method", "lag-over", "-v"])

        assert args.command == "analyze"
        assert args.problem == "p.yaml"
        assert args.method == "lag-over"
        assert args.verbose is True

    def test_rejects_unknown_method(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["analyze", "--problem", "p.yaml", "--method", "genzps-open"])

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "analyze" in capsys.readouterr().out


class TestValidateCommand:
    """Tests for `sreach-lag validate`."""

    def test_valid_problem(self, problem_file, capsys):
        assert main(["validate", "--problem", str(problem_file)]) == 0

        out = capsys.readouterr().out
        assert "States: 2" in out
        assert "Horizon: 2" in out
        assert "Validation passed!" in out

    def test_missing_file(self, tmp_path, capsys):
        assert main(["validate", "--problem", str(tmp_path / "nope.yaml")]) == 1
        assert "Error" in capsys.readouterr().err

    def test_invalid_problem(self, tmp_path, capsys):
        path = tmp_path / "bad.yaml"
        path.write_text("problem:\n  tube:\n    horizon: 1\n")

        assert main(["validate", "--problem", str(path)]) == 1
        assert "Errors" in capsys.readouterr().out


class TestAnalyzeCommand:
    """Tests for `sreach-lag analyze`."""

    def test_writes_json_summary(self, problem_file, tmp_path, capsys):
        output = tmp_path / "out" / "result.json"

        assert main(["analyze", "--problem", str(problem_file), "--output", str(output)]) == 0

        summary = json.loads(output.read_text())
        assert summary["method"] == "lag-under"
        assert summary["probability"] == 0.8
        assert summary["approx_set"]["dim"] == 2
        assert summary["approx_set"]["empty"] is False
        assert len(summary["effective_tube"]) == 3
        assert "Lagrangian lag-under complete" in capsys.readouterr().out

    def test_method_override(self, problem_file, tmp_path):
        output = tmp_path / "result.json"

        assert main(["analyze", "--problem", str(problem_file), "--method", "lag-over", "-o", str(output)]) == 0

        assert json.loads(output.read_text())["method"] == "lag-over"

    def test_method_override_replaces_options_method(self, tmp_path):
        path = tmp_path / "problem.yaml"
        path.write_text(PROBLEM_YAML.replace("    n_directions: 8\n", "    n_directions: 8\n    method: lag-under\n"))
        output = tmp_path / "result.json"

        assert main(["analyze", "--problem", str(path), "--method", "lag-over", "-o", str(output)]) == 0

        assert json.loads(output.read_text())["method"] == "lag-over"

    def test_yaml_directions(self, tmp_path):
        path = tmp_path / "problem.yaml"
        path.write_text(
            PROBLEM_YAML.replace(
                "    n_directions: 8\n",
                "    ray_solver: scipy\n    directions: [[1, 0, 0], [0, 1, 0], [0, 0, 1], [-1, 0, 0], [0, -1, 0], [0, 0, -1]]\n",
            )
        )
        output = tmp_path / "result.json"

        assert main(["analyze", "--problem", str(path), "-o", str(output)]) == 0

        assert json.loads(output.read_text())["approx_set"]["empty"] is False

    def test_malformed_directions(self, tmp_path, capsys):
        path = tmp_path / "problem.yaml"
        path.write_text(PROBLEM_YAML.replace("    n_directions: 8\n", "    directions: [[1, 0], [0, 1, 0]]\n"))

        assert main(["analyze", "--problem", str(path)]) == 1
        assert "Invalid directions" in capsys.readouterr().err

    def test_plot(self, problem_file, tmp_path):
        image = tmp_path / "result.png"

        assert main(["analyze", "--problem", str(problem_file), "--plot", str(image)]) == 0

        assert image.exists()
        assert image.stat().st_size > 0

    def test_analysis_error(self, tmp_path, capsys):
        path = tmp_path / "certain.yaml"
        path.write_text(PROBLEM_YAML.replace("probability: 0.8", "probability: 1.0"))

        assert main(["analyze", "--problem", str(path)]) == 1
        assert "Error during analysis" in capsys.readouterr().err
