"""
CivicLens - citizen reporting of civic hazards (waste, stagnant water, road damage).
"""

__version__ = "0.1.0"
