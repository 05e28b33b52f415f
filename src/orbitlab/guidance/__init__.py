"""
===============================================================================
ORBITLAB - Guidance Module
===============================================================================
Manoeuvre and mission design.

Submodules:
    transfer_planner -- Hohmann and bi-elliptic transfers, launch windows,
                        gravity assists
===============================================================================
"""
