from .tick import Scheduler, TickEngine

__all__ = ["Scheduler", "TickEngine"]
