from .snapshot_cache import SnapshotCache, SnapshotCacheView

__all__ = ["SnapshotCache", "SnapshotCacheView"]
