from hitstats.models.hit import Hit
from hitstats.models.stat import Stat, StatKind

__all__ = ["Hit", "Stat", "StatKind"]
