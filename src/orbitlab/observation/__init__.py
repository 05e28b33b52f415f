"""
===============================================================================
ORBITLAB - Observation Module
===============================================================================
What a ground observer sees.

Submodules:
    pass_predictor -- Rise / culmination / set of satellite passes, visibility
    catalog        -- Photometric reference magnitudes per satellite
===============================================================================
"""
