#!/usr/bin/env python3
"""
Tests for the simulation loop, configuration, audio hook and CLI.

Verifies:
1. Fixed-rate accumulator tick counts, pause and manual stepping
2. Perturbation hooks and read-only views
3. Audio beats become energy-scaled paint strokes
4. Background thread publishes snapshots and stops cleanly
5. Config validation and the headless entry point
6. Per-channel custom records and the preset gallery hooks
"""

import json
import tempfile
import time
from pathlib import Path

import numpy as np
import pytest

from lenia_ecosystem.__main__ import main
from lenia_ecosystem.audio import AudioDrive
from lenia_ecosystem.config import EcosystemSettings, SimulationConfig, load_config
from lenia_ecosystem.ecosystem import Ecosystem
from lenia_ecosystem.exceptions import ConfigurationError
from lenia_ecosystem.gallery import PresetGallery
from lenia_ecosystem.simulator import BackgroundSimulation, Simulation


def test_accumulator_ticks():
    sim = Simulation(width=32, height=32, seed=0)
    assert sim.advance(1 / 60) == 1
    assert sim.advance(0.01) == 0, "Less than one tick owed"
    assert sim.advance(0.01) == 1, "Fractions accumulate across calls"
    assert sim.advance(0.5) == 4, "Capped at max_ticks_per_update"
    assert sim.advance(0.0) == 0, "Backlog beyond the cap is dropped"
    assert sim.ticks == 6
    assert sim.engine.generation == 6


def test_pause_and_manual_step():
    sim = Simulation(width=32, height=32, seed=0, tick_rate=30)
    sim.pause()
    assert sim.advance(1.0) == 0, "No ticks while paused"
    sim.step()
    assert sim.ticks == 1, "Manual step works while paused"
    assert sim.toggle_pause() is False
    assert sim.advance(2 / 30) == 2


def test_hooks_and_views():
    sim = Simulation(width=32, height=24, seed=1)
    sim.clear()
    assert np.all(sim.engine.world == 0.0)
    assert sim.get_population_stats() == {"orbium": 0.0}

    sim.paint(0.5, 0.5, radius=5, intensity=0.9)
    assert sim.get_population_stats()["orbium"] > 0

    sim.clear()
    patch = sim.inject_creature("pulsar")
    assert patch.shape == (20, 20), "Default size follows the species radius"
    assert sim.engine.world.max() > 0

    sim.randomize("gaussian")
    sim.run(3)
    snap = sim.snapshot()
    assert snap["data"].shape == (32 * 24,)
    assert snap["species"][0]["name"] == "Orbium"
    assert snap["species"][0]["color"] == (0.2, 0.6, 1.0)
    assert snap["time"] == pytest.approx(3.0)
    assert sim.snapshot(as_uint8=True)["data"].dtype == np.uint8

    stats = sim.stats
    assert stats["ticks"] == 3 and stats["mutation"] is False


def test_set_parameters_and_species():
    sim = Simulation(width=32, height=32, seed=2)
    params = sim.set_parameters({"R": 9, "T": 12, "mu": 0.17, "sigma": 0.018,
                                 "name": "Mine"})
    assert params.name == "Mine"
    assert sim.engine.species_id == "custom"
    assert sim.get_params()["R"] == 9
    with pytest.raises(ConfigurationError):
        sim.set_parameters({"R": 9, "T": 0, "mu": 0.17, "sigma": 0.018})

    sim.select_species("hydrogeminium")
    assert sim.engine.params.R == 15
    sim.set_params(speed=0.5)
    assert sim.engine.dt == 0.5


def test_ecosystem_simulation():
    sim = Simulation(mode="ecosystem", width=64, height=64, seed=3)
    assert isinstance(sim.engine, Ecosystem)
    stats = sim.get_population_stats()
    assert list(stats) == ["prey", "predator", "apex"]
    assert all(v > 0 for v in stats.values()), f"Ecosystem seeding: {stats}"

    sim.set_parameters({"R": 11, "T": 18, "mu": 0.13, "sigma": 0.013}, channel="predator")
    assert sim.engine.species_ids()[1] == "custom_1"
    sim.set_params(predation=0.2)
    assert sim.engine.interaction[0, 1] == pytest.approx(-0.2)

    sim.set_mutation(True)
    sim.run(5)
    sim.set_mutation(False)
    assert sim.engine.species_params()[0] == sim.engine.registry.get("prey")
    world = sim.engine.world
    assert world.min() >= 0.0 and world.max() <= 1.0


def test_custom_records_per_channel():
    sim = Simulation(mode="ecosystem", width=32, height=32, seed=6)
    sim.set_parameters({"R": 9, "T": 12, "mu": 0.12, "sigma": 0.012}, channel=0)
    sim.set_parameters({"R": 11, "T": 14, "mu": 0.1, "sigma": 0.01}, channel=1)
    assert sim.engine.species_ids() == ["custom_0", "custom_1", "apex"]
    assert len(sim.get_population_stats()) == 3, "One stats entry per channel"

    sim.set_mutation(True)
    sim.run(1)
    sim.set_mutation(False)
    params = sim.engine.species_params()
    assert params[0].as_record() == {"R": 9, "T": 12, "mu": 0.12, "sigma": 0.012}, \
        "Channel 0 must revert to its own record"
    assert params[1].R == 11


def test_ecosystem_speed():
    sim = Simulation(mode="ecosystem", width=16, height=16, speed=2.0, seed_world=False)
    assert sim.engine.dt == pytest.approx(1.0), "dt = settings.dt * speed"
    sim.set_params(speed=0.5)
    assert sim.engine.dt == pytest.approx(0.25)
    assert sim.get_params()["speed"] == 0.5
    with pytest.raises(ConfigurationError):
        sim.set_params(speed=0)
    sim.run(2)
    assert sim.engine.time == pytest.approx(0.5)


def test_preset_gallery_hooks():
    gallery = PresetGallery()
    sim = Simulation(width=32, height=32, seed=7)
    params = sim.load_preset(gallery, "glider")
    assert params.R == 12 and sim.engine.species_id == "custom"
    with pytest.raises(ConfigurationError):
        sim.load_preset(gallery, "missing")

    sim.set_params(mu=0.16)
    saved = sim.save_preset(gallery, "tweaked", name="Tweaked glider")
    assert saved["mu"] == 0.16 and saved["name"] == "Tweaked glider"
    assert gallery.to_species("tweaked").R == 12

    eco = Simulation(mode="ecosystem", width=32, height=32, seed=8)
    eco.load_preset(gallery, "pulse", channel="apex")
    assert eco.engine.species_ids()[2] == "custom_2"
    assert eco.save_preset(gallery, "apex_now", channel=2)["R"] == gallery.load("pulse")["R"]


def test_audio_drive():
    drive = AudioDrive(min_radius=10, max_radius=30, base_intensity=0.3, gain=0.5,
                       rng=np.random.default_rng(0))
    radius, intensity = drive.stroke_for(0.5)
    assert radius == pytest.approx(20.0)
    assert intensity == pytest.approx(0.55)
    assert drive.stroke_for(4.0) == pytest.approx((30.0, 0.8)), "Energy is clamped to [0, 1]"
    with pytest.raises(ConfigurationError):
        AudioDrive(min_radius=10, max_radius=5)

    sim = Simulation(width=48, height=48, seed=4, seed_world=False)
    assert sim.feed_audio(0.8, beat=False) is None
    assert np.all(sim.engine.world == 0.0), "No beat, no stroke"
    stroke = sim.feed_audio(0.8, beat=True)
    assert stroke is not None and stroke[4] == 0
    assert sim.engine.world.max() > 0
    assert sim.audio.beats == 1


def test_background_simulation():
    sim = Simulation(width=32, height=32, seed=5)
    worker = BackgroundSimulation(sim, target_fps=100)
    worker.start()
    try:
        deadline = time.monotonic() + 5.0
        while worker.get_latest_snapshot() is None and time.monotonic() < deadline:
            time.sleep(0.01)
        assert worker.get_latest_snapshot() is not None, "No snapshot published"
        sim.paint(0.5, 0.5, radius=4)
    finally:
        worker.stop(timeout=5.0)
    assert not worker.is_alive(), "Thread should stop"


def test_config_validation():
    for bad in ({"width": 0}, {"mode": "swarm"}, {"trail": 0.0}, {"method": "gpu"},
                {"unknown_key": 1}, {"ecosystem": {"crowding_high": 0.1}}):
        with pytest.raises(ConfigurationError):
            SimulationConfig.build(**bad)
    with pytest.raises(ConfigurationError):
        Simulation(species="blobium", width=16, height=16)

    config = SimulationConfig.build(mode="ecosystem", ecosystem={"predation": 0.3})
    assert isinstance(config.ecosystem, EcosystemSettings)
    assert config.ecosystem.predation == 0.3
    assert config.ecosystem.dt == 0.5


def test_load_config():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "run.json"
        path.write_text(json.dumps({"width": 40, "height": 30, "species": "scutium"}),
                        encoding="utf-8")
        config = load_config(path)
        assert (config.width, config.height, config.species) == (40, 30, "scutium")

        path.write_text("{nope", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config(path)
        with pytest.raises(ConfigurationError):
            load_config(Path(tmp) / "missing.json")


def test_cli(capsys):
    assert main(["orbium", "--size", "32", "--steps", "4", "--every", "2", "--seed", "1"]) == 0
    out = capsys.readouterr().out
    assert "step      2" in out and "final" in out

    assert main(["ecosystem", "--size", "48", "--steps", "2", "--mutate"]) == 0
    assert "mutated apex" in capsys.readouterr().out

    with tempfile.TemporaryDirectory() as tmp:
        presets = str(Path(tmp) / "gallery.json")
        assert main(["--size", "32", "--steps", "1", "--preset", "pulse",
                     "--presets", presets]) == 0
        assert "preset pulse" in capsys.readouterr().out
        assert Path(presets).exists(), "Gallery file created with defaults"
        assert main(["--size", "32", "--steps", "1", "--preset", "nope"]) == 1
        capsys.readouterr()

    assert main(["--list"]) == 0
    assert "gliderium" in capsys.readouterr().out
    assert main(["--bogus"]) == 2
    assert main(["--size", "big"]) == 2


if __name__ == "__main__":
    print("\n=== Testing Simulation ===\n")

    test_accumulator_ticks()
    test_pause_and_manual_step()
    test_hooks_and_views()
    test_set_parameters_and_species()
    test_ecosystem_simulation()
    test_custom_records_per_channel()
    test_ecosystem_speed()
    test_preset_gallery_hooks()
    test_audio_drive()
    test_background_simulation()
    test_config_validation()
    test_load_config()

    print("\n✓ All tests passed!\n")
