"""
Backburner screener: first-oversold-after-impulse setup detection
"""

__version__ = "0.1.0"
