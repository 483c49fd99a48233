"""
Chaos Engine

A fault-injection HTTP service for exercising client resilience:
- Randomized warm-up before any chaos begins
- Weighted selection of one failure category per cycle
- Failure intensity that ramps up over a buildup window
- Forced connection abort, then an in-process cycle reset
"""

__version__ = "1.0.0"
__author__ = "Chaos Engine Development Team"

from chaos_engine.config import Settings, get_settings

__all__ = ["__version__", "Settings", "get_settings"]
