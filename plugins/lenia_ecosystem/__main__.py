"""
Lenia Ecosystem - Headless Entry Point

Usage:
    python -m lenia_ecosystem [species|ecosystem] [--size N] [--steps N]
                              [--seed N] [--every N] [--mutate]
                              [--config FILE] [--preset ID [--presets FILE]]
                              [--list] [--verbose]

Examples:
    python -m lenia_ecosystem
    python -m lenia_ecosystem geminium --size 128 --steps 500
    python -m lenia_ecosystem ecosystem --steps 1000 --every 100
    python -m lenia_ecosystem orbium --mutate --seed 7
    python -m lenia_ecosystem --config run.json
    python -m lenia_ecosystem --preset glider --presets gallery.json

Runs the simulation without a display and prints population statistics
(mean density per channel) every --every steps.

Use --list to see all available species.
"""

import logging
import sys
import time

from .config import SimulationConfig, load_config
from .exceptions import LeniaError
from .gallery import PresetGallery
from .presets import SPECIES_ORDER, list_species
from .simulator import Simulation


def print_species():
    print("\nAvailable species:")
    for key, name, desc in list_species():
        print(f"    {key:16s} {name:16s} {desc}")
    print("\n  [ecosystem]")
    for key, name, desc in list_species(ecosystem=True):
        print(f"    {key:16s} {name:16s} {desc}")
    print()


def format_stats(stats):
    return "  ".join(f"{sid}={mean:.4f}" for sid, mean in stats.items())


def run(config, steps, every, mutate, preset=None, presets_path=None):
    """Headless run: step, print stats, return the final population stats."""
    sim = Simulation(config)
    if preset:
        params = sim.load_preset(PresetGallery(presets_path), preset)
        print(f"  preset {preset}: {params.name} R={params.R:g} T={params.T:g} "
              f"mu={params.mu:g} sigma={params.sigma:g}")
    if mutate:
        sim.set_mutation(True)

    start = time.perf_counter()
    for i in range(1, steps + 1):
        sim.step()
        if every and i % every == 0:
            print(f"  step {i:6d}  {format_stats(sim.get_population_stats())}")
    elapsed = time.perf_counter() - start

    stats = sim.get_population_stats()
    rate = steps / elapsed if elapsed > 0 else float("inf")
    print(f"Done: {steps} steps in {elapsed:.2f}s ({rate:.1f} steps/s)")
    print(f"  final  {format_stats(stats)}")
    if mutate:
        params = sim.engine.species_params()
        for sid, p in zip(sim.engine.species_ids(), params):
            print(f"  mutated {sid}: R={p.R:.2f} T={p.T:.2f} "
                  f"mu={p.mu:.4f} sigma={p.sigma:.5f}")
    return stats


def main(argv=None):
    overrides = {}
    config_path = None
    preset = None
    presets_path = None
    steps = 200
    every = 50
    mutate = False
    verbose = False

    args = sys.argv[1:] if argv is None else list(argv)
    i = 0
    try:
        while i < len(args):
            arg = args[i]
            if arg == "--size" and i + 1 < len(args):
                overrides["width"] = overrides["height"] = int(args[i + 1])
                i += 2
            elif arg == "--steps" and i + 1 < len(args):
                steps = int(args[i + 1])
                i += 2
            elif arg == "--every" and i + 1 < len(args):
                every = int(args[i + 1])
                i += 2
            elif arg == "--seed" and i + 1 < len(args):
                overrides["seed"] = int(args[i + 1])
                i += 2
            elif arg == "--config" and i + 1 < len(args):
                config_path = args[i + 1]
                i += 2
            elif arg == "--preset" and i + 1 < len(args):
                preset = args[i + 1]
                i += 2
            elif arg == "--presets" and i + 1 < len(args):
                presets_path = args[i + 1]
                i += 2
            elif arg == "--mutate":
                mutate = True
                i += 1
            elif arg == "--verbose":
                verbose = True
                i += 1
            elif arg == "--list":
                print_species()
                return 0
            elif arg in ("--help", "-h"):
                print(__doc__)
                return 0
            elif arg == "ecosystem":
                overrides["mode"] = "ecosystem"
                i += 1
            elif arg in SPECIES_ORDER:
                overrides["mode"] = "lenia"
                overrides["species"] = arg
                i += 1
            else:
                print(f"Unknown argument: {arg}")
                print("Use --list to see available species")
                return 2
    except ValueError:
        print(f"Expected an integer after {args[i]}")
        return 2

    if verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format="%(asctime)s %(name)s %(levelname)s %(message)s")

    try:
        config = load_config(config_path) if config_path else SimulationConfig()
        if overrides:
            config = SimulationConfig.build(**{**config.model_dump(), **overrides})
        label = "ecosystem" if config.mode == "ecosystem" else config.species
        print(f"Lenia headless run: {label} @ {config.width}x{config.height}, "
              f"{steps} steps")
        run(config, steps, every, mutate, preset, presets_path)
    except LeniaError as e:
        print(f"Error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
