"""
Sync: the state merge engine.

Reconciles device-local guest state with a user's durable state on every
identity transition.

    from kixstore import sync as Y

    Y.merge_keyed(remote, local, key=..., combine=...)
    Y.merge_union(remote_ids, local_ids)

    binding = Y.SyncBinding(resource, store, local, queue)
    items = await binding.load(transition)
"""

from kixstore.sync._merge import merge_keyed, merge_union
from kixstore.sync._resource import SyncedResource
from kixstore.sync._binding import SyncBinding

__all__ = (
    "merge_keyed",
    "merge_union",
    "SyncedResource",
    "SyncBinding",
)
