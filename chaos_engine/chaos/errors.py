"""
Chaos engine exceptions.
"""

from chaos_engine.chaos.models import CrashCategory


class ChaosError(Exception):
    """Base exception for the chaos engine."""


class ForcedCrash(ChaosError):
    """
    Raised by a request handler when the cycle reaches its forced crash.

    The HTTP layer turns this into an aborted connection with no response.
    """

    def __init__(self, category: CrashCategory, trigger_count: int, elapsed_s: float):
        self.category = category
        self.trigger_count = trigger_count
        self.elapsed_s = elapsed_s
        super().__init__(
            f"Server crashed due to sustained {category.value} "
            f"(count={trigger_count}, elapsed={elapsed_s:.1f}s)"
        )
