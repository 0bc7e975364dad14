"""End-to-end run of 00GradientDescent.py."""

import runpy
import sys
from pathlib import Path

import numpy as np
import pytest

SCRIPT = Path(__file__).resolve().parents[1] / "00GradientDescent.py"


def run_script(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", [str(SCRIPT), *argv])
    runpy.run_path(str(SCRIPT), run_name="__main__")


def test_script_end_to_end(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    config = tmp_path / "config.yaml"
    config.write_text(
        "dataset_size: 30\n"
        "learning_rate: 0.1\n"
        "max_steps: 3000\n"
        "eps: 1.0e-9\n"
        "seed: 2024\n"
    )
    run_script(monkeypatch, "--config", str(config), "--plot_path", "fit.png")

    out = capsys.readouterr().out.splitlines()
    assert out[0].startswith("Steps #0 Theta 0: ")
    assert out[-1].startswith("Result: (")
    theta_0, theta_1 = (float(v) for v in out[-1][len("Result: ("):-1].split(", "))
    assert 9.0 <= theta_0 <= 10.0
    assert theta_1 == pytest.approx(2.0, abs=0.3)

    dataset = np.loadtxt(tmp_path / "dataset_gd.dat", delimiter="\t")
    fit = np.loadtxt(tmp_path / "out_gd.dat", delimiter="\t")
    assert dataset.shape == fit.shape == (30, 2)
    np.testing.assert_allclose(fit[:, 0], dataset[:, 0])
    np.testing.assert_allclose(fit[:, 1], theta_0 + theta_1 * fit[:, 0], rtol=1e-5)
    assert (tmp_path / "fit.png").exists()


def test_script_flags_override_config(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    run_script(monkeypatch, "--dataset_size", "5", "--max_steps", "2", "--eps", "0",
               "--seed", "1", "--oracle", "autograd", "--quiet")

    out = capsys.readouterr().out.splitlines()
    assert len(out) == 1
    assert out[0].startswith("Result: (")
    assert len((tmp_path / "dataset_gd.dat").read_text().splitlines()) == 5
