"""
===============================================================================
ORBITLAB - Core Module
===============================================================================
Shared building blocks used by every other subpackage.

Submodules:
    constants   -- Physical constants, tolerances, planetary tables
    exceptions  -- OrbitalMechanicsError hierarchy
    vectors     -- Immutable Vector3 and vector math
    bodies      -- Read-only celestial body table
    frames      -- ECI / ECEF / geodetic / ENU transforms, GMST, Sun position
    config      -- YAML configuration loading
===============================================================================
"""
