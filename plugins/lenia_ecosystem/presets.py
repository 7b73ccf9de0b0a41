"""
Lenia Parameter Catalogs

Named species known to produce interesting behaviors, the three trophic
levels of the ecosystem, and the starter entries of the preset gallery.
Kernel radius R is in cells, T is the time-scale divisor (dt / T per step),
mu/sigma shape the growth bell.
"""

SPECIES = {
    "orbium": {
        "name": "Orbium",
        "description": "Smooth, spherical glider - the classic Lenia creature",
        "R": 13, "T": 10, "mu": 0.15, "sigma": 0.015,
        "color": (0.2, 0.6, 1.0),
    },
    "geminium": {
        "name": "Geminium",
        "description": "Twins that orbit, split and merge",
        "R": 10, "T": 10, "mu": 0.14, "sigma": 0.014,
        "color": (1.0, 0.4, 0.6),
    },
    "hydrogeminium": {
        "name": "Hydrogeminium",
        "description": "Wide, watery relative of Geminium",
        "R": 15, "T": 10, "mu": 0.12, "sigma": 0.012,
        "color": (0.4, 1.0, 0.6),
    },
    "scutium": {
        "name": "Scutium",
        "description": "Shield that pulses while it moves",
        "R": 12, "T": 8, "mu": 0.16, "sigma": 0.016,
        "color": (1.0, 0.8, 0.2),
    },
    "gliderium": {
        "name": "Gliderium",
        "description": "Fast, narrow glider",
        "R": 14, "T": 12, "mu": 0.135, "sigma": 0.013,
        "color": (0.8, 0.4, 1.0),
    },
}

SPECIES_ORDER = ["orbium", "geminium", "hydrogeminium", "scutium", "gliderium"]


# =====================================================================
# ECOSYSTEM (channel order: prey, predator, apex)
# =====================================================================

ECOSYSTEM_SPECIES = {
    "prey": {
        "name": "Prey",
        "description": "Fast reproduction, wide tolerance - eaten by predators",
        "R": 10, "T": 15, "mu": 0.14, "sigma": 0.015,
        "color": (1.0, 0.3, 0.2),
    },
    "predator": {
        "name": "Predator",
        "description": "Eats prey, eaten by apex",
        "R": 12, "T": 20, "mu": 0.13, "sigma": 0.012,
        "color": (0.2, 1.0, 0.4),
    },
    "apex": {
        "name": "Apex",
        "description": "Slowest reproduction, narrow tolerance - eats predators",
        "R": 14, "T": 25, "mu": 0.12, "sigma": 0.010,
        "color": (0.3, 0.4, 1.0),
    },
}

ECOSYSTEM_ORDER = ["prey", "predator", "apex"]

# Share of consumed density a consumer gains, per trophic link
# (predator from prey, apex from predator)
TROPHIC_EFFICIENCY = (0.5, 0.3)


# =====================================================================
# PRESET GALLERY starter entries
# =====================================================================

DEFAULT_GALLERY = {
    "glider": {
        "name": "Glider",
        "R": 12, "T": 18, "mu": 0.14, "sigma": 0.015,
        "description": "Smooth gliding motion",
    },
    "pulse": {
        "name": "Pulse",
        "R": 8, "T": 12, "mu": 0.18, "sigma": 0.020,
        "description": "Rhythmic pulsing pattern",
    },
    "chaotic": {
        "name": "Chaotic",
        "R": 15, "T": 8, "mu": 0.12, "sigma": 0.008,
        "description": "Unpredictable chaos",
    },
    "stable": {
        "name": "Stable",
        "R": 10, "T": 20, "mu": 0.15, "sigma": 0.012,
        "description": "Slow, stable growth",
    },
}


def get_species(name):
    """Get a catalog species record by id. Returns None if not found."""
    return SPECIES.get(name) or ECOSYSTEM_SPECIES.get(name)


def list_species(ecosystem=False):
    """Return list of (key, name, description) for a catalog."""
    if ecosystem:
        catalog, keys = ECOSYSTEM_SPECIES, ECOSYSTEM_ORDER
    else:
        catalog, keys = SPECIES, SPECIES_ORDER
    return [(k, catalog[k]["name"], catalog[k]["description"])
            for k in keys if k in catalog]
