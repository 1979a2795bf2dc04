"""
Sync binding: keeps one resource's active view attached to the right
storage as identity changes.

    ANON → ANON    local only (cold start defaults to empty)
    ANON → USER    first authentication with guest items: merge, save, clear
                   local; otherwise durable state verbatim
    USER → ANON    durable view dropped, local reloaded, durable untouched
    USER → USER    durable state of the current user, verbatim

While a load is in flight no save is issued and the owner is not rebound;
the service replays mutations made meanwhile onto the loaded view.
"""

from __future__ import annotations

from collections.abc import Sequence

from kungfu import Result, Ok, Error

from kixstore._logging import get_logger
from kixstore.identity import Transition, TransitionKind
from kixstore.storage import DocumentStore, LocalStorage, StoreError, WriteQueue
from kixstore.sync._resource import SyncedResource

log = get_logger("sync")


class SyncBinding[T]:
    """
    Reconciler plus persistence for one synced resource.

    Example:
        binding = SyncBinding(CART_RESOURCE, store, local, queue)
        items = await binding.load(transition)
        binding.save(items)       # queued to carts/{uid} or written locally
    """

    def __init__(
        self,
        resource: SyncedResource[T],
        store: DocumentStore,
        local: LocalStorage,
        queue: WriteQueue,
    ) -> None:
        self._resource = resource
        self._store = store
        self._local = local
        self._queue = queue
        self._owner: str | None = None
        self._loading = 0

    @property
    def owner(self) -> str | None:
        """User id the active view belongs to; None for the guest view."""
        return self._owner

    @property
    def loading(self) -> bool:
        return self._loading > 0

    @property
    def resource(self) -> SyncedResource[T]:
        return self._resource

    # ─── reconciliation ──────────────────────────────────────────────────────

    async def load(self, transition: Transition) -> list[T]:
        """Resolve the active view for `transition`, then bind its owner."""
        self._loading += 1
        try:
            # Pending saves land before we read anything back.
            await self._queue.flush()
            owner, items = await self._resolve(transition)
        finally:
            self._loading -= 1
        self._owner = owner
        return items

    async def _resolve(self, transition: Transition) -> tuple[str | None, list[T]]:
        user_id = transition.current.id
        if user_id is None or transition.kind in (
            TransitionKind.STAY_ANONYMOUS,
            TransitionKind.LOGOUT,
        ):
            return None, self.read_local()

        remote = await self._read_remote(user_id)
        if transition.kind is TransitionKind.LOGIN and transition.first_authentication:
            local = self.read_local()
            if local:
                return user_id, await self._merge(user_id, remote, local)
        return user_id, remote

    async def _merge(self, user_id: str, remote: list[T], local: list[T]) -> list[T]:
        merged = self._resource.merge(remote, local)

        match await self.write_remote(user_id, merged):
            case Ok(_):
                self._clear_local()
                log.info(
                    "guest_state_merged",
                    resource=self._resource.name,
                    user_id=user_id,
                    local=len(local),
                    remote=len(remote),
                    merged=len(merged),
                )
            case Error(err):
                # Merged view is still shown; guest blob kept for a later attempt.
                log.error(
                    "merge_save_failed",
                    resource=self._resource.name,
                    user_id=user_id,
                    error=err.message,
                )
        return merged

    async def _read_remote(self, user_id: str) -> list[T]:
        match await self._store.get(self._resource.collection, user_id):
            case Ok(doc):
                try:
                    return self._resource.decode_document(doc)
                except (ValueError, TypeError, KeyError) as exc:
                    log.error(
                        "remote_state_corrupt",
                        resource=self._resource.name,
                        user_id=user_id,
                        error=str(exc),
                    )
                    return []
            case Error(err):
                log.warning(
                    "remote_read_failed",
                    resource=self._resource.name,
                    user_id=user_id,
                    error=err.message,
                )
                return []

    # ─── persistence ─────────────────────────────────────────────────────────

    def read_local(self) -> list[T]:
        try:
            return self._resource.decode_local(self._local.read(self._resource.local_key))
        except OSError as exc:
            log.warning("local_read_failed", resource=self._resource.name, error=str(exc))
        except (ValueError, TypeError, KeyError) as exc:
            log.warning("local_state_corrupt", resource=self._resource.name, error=str(exc))
        return []

    def _clear_local(self) -> None:
        try:
            self._local.remove(self._resource.local_key)
        except OSError as exc:
            log.warning("local_clear_failed", resource=self._resource.name, error=str(exc))

    async def write_remote(self, user_id: str, items: Sequence[T]) -> Result[None, StoreError]:
        return await self._store.set(
            self._resource.collection,
            user_id,
            self._resource.encode_document(items),
        )

    def save(self, items: Sequence[T]) -> None:
        """
        Persist `items` to the owner bound right now.

        Guest state is written synchronously to local storage; durable state
        is queued behind earlier saves of the same document.
        """
        if self._loading:
            log.debug("save_deferred", resource=self._resource.name)
            return

        snapshot = list(items)
        owner = self._owner

        if owner is None:
            try:
                self._local.write(self._resource.local_key, self._resource.encode_local(snapshot))
            except OSError as exc:
                log.warning("local_save_failed", resource=self._resource.name, error=str(exc))
            return

        self._queue.submit(
            f"{self._resource.collection}/{owner}",
            lambda: self.write_remote(owner, snapshot),
        )

    def save_for(self, user_id: str, items: Sequence[T]) -> None:
        """Queue a durable save for a user who may not own the active view."""
        snapshot = list(items)
        self._queue.submit(
            f"{self._resource.collection}/{user_id}",
            lambda: self.write_remote(user_id, snapshot),
        )

    async def flush(self) -> None:
        await self._queue.flush()


__all__ = ("SyncBinding",)
