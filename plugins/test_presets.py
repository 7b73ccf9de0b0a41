#!/usr/bin/env python3
"""
Tests for species records, the registry and the preset gallery.

Verifies:
1. Species records are validated on creation
2. Registry lookup, upsert, clone and remove
3. Gallery defaults, capacity, ordering and persistence
4. Export/import merge semantics
"""

import itertools
import json
import tempfile
from pathlib import Path

import pytest

from lenia_ecosystem.exceptions import ConfigurationError, PresetLimitError
from lenia_ecosystem.gallery import PresetGallery
from lenia_ecosystem.presets import (
    DEFAULT_GALLERY, ECOSYSTEM_ORDER, SPECIES_ORDER, get_species, list_species,
)
from lenia_ecosystem.species import SpeciesParams, SpeciesRegistry


def _clock():
    counter = itertools.count(1000)
    return lambda: next(counter)


def test_catalogs():
    assert [key for key, _, _ in list_species()] == SPECIES_ORDER
    assert [key for key, _, _ in list_species(ecosystem=True)] == ECOSYSTEM_ORDER
    assert get_species("orbium")["R"] == 13
    assert get_species("apex")["T"] == 25
    assert get_species("blobium") is None


def test_species_validation():
    for bad in ({"R": 0, "T": 10, "mu": 0.1, "sigma": 0.01},
                {"R": 10, "T": -1, "mu": 0.1, "sigma": 0.01},
                {"R": 10, "T": 10, "mu": 0.1, "sigma": 0.0},
                {"R": 10, "T": 10, "mu": 0.1, "sigma": 0.01, "beta": ()},
                {"R": 10, "T": 10, "mu": 0.1, "sigma": 0.01, "beta": (1.0, -0.5)},
                {"R": 10, "T": 10, "mu": 0.1}):
        with pytest.raises(ConfigurationError):
            SpeciesParams.from_record(bad)

    params = SpeciesParams.from_record({"R": 10, "T": 10, "mu": 0.1, "sigma": 0.01,
                                        "created": 123})
    assert params.beta == (1.0,)
    with pytest.raises(ConfigurationError):
        params.replace(R=-2)
    assert params.replace(mu=0.2).mu == 0.2


def test_registry():
    registry = SpeciesRegistry.default()
    assert registry.ids() == SPECIES_ORDER
    assert len(SpeciesRegistry.ecosystem()) == 3
    with pytest.raises(ConfigurationError):
        registry.get("blobium")

    registry.upsert("custom", {"R": 7, "T": 9, "mu": 0.2, "sigma": 0.02})
    assert registry.get("custom").R == 7
    registry.upsert("custom", {"R": 8, "T": 9, "mu": 0.2, "sigma": 0.02})
    assert registry.get("custom").R == 8, "upsert replaces"

    clone = registry.clone("orbium", "wide_orbium", R=18)
    assert clone.R == 18 and clone.mu == 0.15
    assert registry.get("orbium").R == 13

    registry.remove("wide_orbium")
    assert "wide_orbium" not in registry
    with pytest.raises(ConfigurationError):
        registry.remove("wide_orbium")
    with pytest.raises(ConfigurationError):
        registry.upsert("broken", {"R": 0, "T": 1, "mu": 0.1, "sigma": 0.1})
    assert "broken" not in registry


def test_gallery_defaults():
    gallery = PresetGallery()
    assert len(gallery) == len(DEFAULT_GALLERY)
    glider = gallery.load("glider")
    assert glider["R"] == 12 and "created" in glider
    assert gallery.load("missing") is None
    assert gallery.to_species("pulse").sigma == 0.020
    with pytest.raises(ConfigurationError):
        gallery.to_species("missing")


def test_gallery_capacity():
    gallery = PresetGallery(max_presets=5)
    gallery.save("one", {"name": "One", "R": 9, "T": 10, "mu": 0.15, "sigma": 0.015})
    with pytest.raises(PresetLimitError):
        gallery.save("two", {"name": "Two", "R": 9, "T": 10, "mu": 0.15, "sigma": 0.015})
    gallery.save("one", {"name": "One again", "R": 11, "T": 10, "mu": 0.15, "sigma": 0.015})
    assert gallery.load("one")["R"] == 11, "Overwriting is allowed when full"
    with pytest.raises(ConfigurationError):
        gallery.save("glider", {"R": -1, "T": 10, "mu": 0.15, "sigma": 0.015})


def test_gallery_newest_first():
    gallery = PresetGallery(clock=_clock())
    gallery.save("later", {"name": "Later", "R": 9, "T": 10, "mu": 0.15, "sigma": 0.015})
    gallery.save("latest", {"name": "Latest", "R": 9, "T": 10, "mu": 0.15, "sigma": 0.015})
    ids = [p["id"] for p in gallery.all()]
    assert ids[:2] == ["latest", "later"]
    gallery.delete("later")
    assert "later" not in gallery
    gallery.delete("later")


def test_export_import_merge():
    source = PresetGallery(clock=_clock())
    source.save("glider", {"name": "Tuned glider", "R": 13, "T": 18, "mu": 0.14, "sigma": 0.015})
    source.save("novel", {"name": "Novel", "R": 6, "T": 7, "mu": 0.2, "sigma": 0.03})
    exported = source.export()
    assert json.loads(exported)["novel"]["R"] == 6, "Export is the mapping verbatim"

    target = PresetGallery()
    count = target.import_json(exported)
    assert count == len(DEFAULT_GALLERY) + 1
    assert target.load("glider")["name"] == "Tuned glider", "Import overwrites matching ids"
    assert target.load("novel")["mu"] == 0.2

    for bad in ("{not json", "[1, 2]", '{"a": 3}'):
        with pytest.raises(ConfigurationError):
            target.import_json(bad)


def test_gallery_file_persistence():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "presets" / "gallery.json"
        gallery = PresetGallery(path)
        assert path.exists(), "Defaults are written on first use"
        gallery.save("mine", {"name": "Mine", "R": 9, "T": 11, "mu": 0.16, "sigma": 0.017})

        reloaded = PresetGallery(path)
        assert reloaded.load("mine")["T"] == 11
        assert len(reloaded) == len(DEFAULT_GALLERY) + 1

        path.write_text("{broken", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            PresetGallery(path)


if __name__ == "__main__":
    print("\n=== Testing Species, Registry and Gallery ===\n")

    test_catalogs()
    test_species_validation()
    test_registry()
    test_gallery_defaults()
    test_gallery_capacity()
    test_gallery_newest_first()
    test_export_import_merge()
    test_gallery_file_persistence()

    print("\n✓ All tests passed!\n")
