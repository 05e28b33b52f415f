"""
===============================================================================
ORBITLAB - Orbital Mechanics Engine
===============================================================================
Element conversions, impulsive transfers, launch windows, flybys, trajectory
propagation and satellite pass prediction for a stargazing application.

Subpackages:
    core         -- Vectors, body table, frames, constants, errors, config
    dynamics     -- Element <-> state conversion and propagation
    guidance     -- Hohmann / bi-elliptic transfers, launch windows, flybys
    observation  -- Satellite passes and photometric catalog
    performance  -- Process-pool dispatch of independent requests

Boundary modules:
    api          -- km / degree conversions and pandas tables for a UI
    main         -- ``orbitlab`` command line
===============================================================================
"""

__version__ = '0.1.0'
