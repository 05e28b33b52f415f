"""
===============================================================================
ORBITLAB - Dynamics Module
===============================================================================
Orbit state representations and their evolution in time.

Submodules:
    orbital_elements -- State vector <-> Keplerian elements, Kepler's equation
    propagator       -- Velocity-Verlet and analytic two-body propagation
===============================================================================
"""
