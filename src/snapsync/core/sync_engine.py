"""Core sync engine reconciling a local entry store with remote listeners."""

import asyncio
import inspect
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from ..codec import decode_entries, encode_entries
from ..exceptions import ListenerFailure, SaveFanoutError, SyncInProgressError
from ..listeners import BaseRemoteListener, ListenerRegistry, LoadListener, SaveListener, listener_name
from ..store import LocalStore, LocalStoreAdapter
from ..utils.logging import get_logger, log_async_execution_time, sync_log_context


ReadinessHook = Callable[[str, Optional[BaseException]], Awaitable[Optional[BaseException]]]
CompletionCallback = Callable[[Optional[BaseException]], Union[None, Awaitable[None]]]


class SyncDirection(str, Enum):
    """Which side of the sync is authoritative."""
    REMOTE_TO_LOCAL = "remote_to_local"
    LOCAL_TO_REMOTE = "local_to_remote"


class SyncState(str, Enum):
    """Lifecycle of one sync call."""
    IDLE = "idle"
    LOAD_PHASE = "load_phase"
    AWAITING_READY = "awaiting_ready"
    SAVE_PHASE = "save_phase"
    DONE = "done"
    ERRORED = "errored"


class ConcurrencyPolicy(str, Enum):
    """What happens when a sync starts while another runs on the same mountpoint."""
    SERIALIZE = "serialize"
    REJECT = "reject"


@dataclass
class SyncResult:
    """Result of a sync operation."""

    mountpoint: str
    direction: SyncDirection
    state: SyncState = SyncState.IDLE
    error: Optional[BaseException] = None
    loaded_from: Optional[int] = None
    entries_loaded: int = 0
    snapshot_size: Optional[int] = None
    listener_failures: List[ListenerFailure] = field(default_factory=list)
    duration: Optional[float] = None

    @property
    def success(self) -> bool:
        """True when the sync reached DONE without a terminal error."""
        return self.state == SyncState.DONE and self.error is None

    def raise_for_failures(self) -> None:
        """Raise ``SaveFanoutError`` if any save listener failed."""
        if self.listener_failures:
            raise SaveFanoutError(self.listener_failures)


class SnapshotProvider:
    """Lazy, memoized accessor for the encoded local snapshot.

    The first call enumerates the store and encodes it; every later call,
    including concurrent ones, returns the same bytes (or re-raises the
    same error).
    """

    def __init__(self, adapter: LocalStoreAdapter, mountpoint: str):
        self.adapter = adapter
        self.mountpoint = mountpoint
        self.computations = 0
        self._data: Optional[bytes] = None
        self._error: Optional[BaseException] = None
        self._lock = asyncio.Lock()

    @property
    def computed(self) -> bool:
        return self._data is not None

    @property
    def size(self) -> Optional[int]:
        return len(self._data) if self._data is not None else None

    async def __call__(self) -> bytes:
        async with self._lock:
            if self._error is not None:
                raise self._error
            if self._data is None:
                self.computations += 1
                try:
                    entries = await self.adapter.collect_entries(self.mountpoint)
                    self._data = encode_entries(entries)
                except Exception as e:
                    self._error = e
                    raise
            return self._data


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


async def _invoke(listener: Callable, *args: Any) -> Any:
    """Call a sync or async listener inside a coroutine so errors stay contained."""
    return await _maybe_await(listener(*args))


class SyncEngine:
    """Drives pull and push syncs for one local store.

    The engine owns its listener registry; independent engines share no
    state.

    A sync runs in two named stages. ``commit_local`` pulls the first
    available remote snapshot into the store (remote-to-local only). The
    readiness hook then runs, the caller's completion callback fires, and
    ``push_remote`` fans the local snapshot out to every save listener
    (local-to-remote only).
    """

    def __init__(
        self,
        store: LocalStore,
        registry: Optional[ListenerRegistry] = None,
        readiness_hook: Optional[ReadinessHook] = None,
        concurrency_policy: ConcurrencyPolicy = ConcurrencyPolicy.SERIALIZE
    ):
        """Initialize sync engine.

        Args:
            store: Local entry store
            registry: Listener registry; a fresh one when omitted
            readiness_hook: Runs after the load stage; defaults to ``store.settle``
            concurrency_policy: Policy for overlapping syncs on one mountpoint
        """
        self.store = store
        self.adapter = LocalStoreAdapter(store)
        self.registry = registry if registry is not None else ListenerRegistry()
        self.readiness_hook = readiness_hook or store.settle
        self.concurrency_policy = ConcurrencyPolicy(concurrency_policy)
        self.logger = get_logger(self.__class__.__name__)

        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

        self.logger.info(
            "Sync engine initialized",
            store=store.__class__.__name__,
            concurrency_policy=self.concurrency_policy.value
        )

    def register_listener(
        self,
        on_load: Optional[LoadListener] = None,
        on_save: Optional[SaveListener] = None
    ) -> None:
        """Append load and/or save callbacks to this engine's registry."""
        self.registry.register(on_load=on_load, on_save=on_save)

    def add_listener(self, listener: BaseRemoteListener) -> None:
        """Register a listener object's ``on_load`` / ``on_save`` methods."""
        self.registry.register_listener(listener)

    def is_syncing(self, mountpoint: str) -> bool:
        lock = self._locks.get(mountpoint)
        return lock is not None and lock.locked()

    @log_async_execution_time
    async def sync(
        self,
        mountpoint: str,
        direction: SyncDirection,
        on_complete: Optional[CompletionCallback] = None
    ) -> SyncResult:
        """Run one sync for a mountpoint.

        ``on_complete`` is called exactly once, with ``None`` or the error,
        after the readiness hook and before any save listener runs. Load
        stage errors are reported there and on the result; they are not
        raised. Save listener failures only appear on the result.

        The readiness hook runs on every accepted sync, including one whose
        load stage failed. It receives that error and decides what
        ``on_complete`` sees, so it can replace or clear it.

        Raises:
            SyncInProgressError: Under ``ConcurrencyPolicy.REJECT`` when the
                mountpoint is already syncing; ``on_complete`` is not called
        """
        direction = SyncDirection(direction)
        lock = self._locks.setdefault(mountpoint, asyncio.Lock())

        if lock.locked():
            if self.concurrency_policy == ConcurrencyPolicy.REJECT:
                self.logger.warning("Rejected concurrent sync", mountpoint=mountpoint, direction=direction.value)
                raise SyncInProgressError(mountpoint)
            self.logger.info("Waiting for running sync to finish", mountpoint=mountpoint)

        self._lock_users[mountpoint] = self._lock_users.get(mountpoint, 0) + 1
        try:
            async with lock:
                with sync_log_context(mountpoint, direction.value):
                    return await self._run(mountpoint, direction, on_complete)
        finally:
            self._release_lock(mountpoint)

    def _release_lock(self, mountpoint: str) -> None:
        # the last holder or waiter drops the lock so idle mountpoints leave no entry
        remaining = self._lock_users[mountpoint] - 1
        if remaining:
            self._lock_users[mountpoint] = remaining
        else:
            del self._lock_users[mountpoint]
            del self._locks[mountpoint]

    async def _run(
        self,
        mountpoint: str,
        direction: SyncDirection,
        on_complete: Optional[CompletionCallback]
    ) -> SyncResult:
        start_time = datetime.now()
        result = SyncResult(mountpoint=mountpoint, direction=direction)

        self.logger.info("Starting sync", mountpoint=mountpoint, direction=direction.value)

        error: Optional[BaseException] = None
        if direction == SyncDirection.REMOTE_TO_LOCAL:
            try:
                await self.commit_local(mountpoint, result)
            except Exception as e:
                error = e

        if error is None:
            result.state = SyncState.AWAITING_READY
        try:
            error = await self.readiness_hook(mountpoint, error)
        except Exception as e:
            self.logger.error("Readiness hook failed", mountpoint=mountpoint, error=str(e))
            error = e

        # the hook decides the outcome, even over a load stage error
        result.error = error
        if error is not None:
            result.state = SyncState.ERRORED
            self.logger.error(
                "Sync failed",
                mountpoint=mountpoint,
                direction=direction.value,
                error_type=type(error).__name__,
                error=str(error)
            )

        if on_complete is not None:
            await _maybe_await(on_complete(error))

        if error is None:
            if direction == SyncDirection.LOCAL_TO_REMOTE:
                await self.push_remote(mountpoint, result)
            result.state = SyncState.DONE

        result.duration = (datetime.now() - start_time).total_seconds()

        self.logger.info(
            "Sync finished",
            mountpoint=mountpoint,
            direction=direction.value,
            state=result.state.value,
            entries_loaded=result.entries_loaded,
            snapshot_size=result.snapshot_size,
            listener_failures=len(result.listener_failures),
            duration=f"{result.duration:.3f}s"
        )

        return result

    async def commit_local(self, mountpoint: str, result: Optional[SyncResult] = None) -> SyncResult:
        """Pull stage: apply the first available remote snapshot to the store.

        Load listeners are consulted one at a time in registration order.
        The first one returning bytes (even empty bytes) wins; later
        listeners are never called. On a win the mountpoint is cleared
        and the snapshot's entries are written in one store transaction,
        so a failed write leaves the previous entries in place.

        Raises:
            ListenerFailure: If a load listener raises
            MalformedBufferError: If the winning snapshot cannot be decoded
            StoreError: If clearing or writing the store fails
        """
        if result is None:
            result = SyncResult(mountpoint=mountpoint, direction=SyncDirection.REMOTE_TO_LOCAL)
        result.state = SyncState.LOAD_PHASE

        try:
            for index, listener in enumerate(self.registry.load_listeners):
                name = listener_name(listener)
                try:
                    data = await _invoke(listener, mountpoint)
                except Exception as e:
                    raise ListenerFailure(name, "load", e) from e

                if data is None:
                    self.logger.debug("Load listener has no data", mountpoint=mountpoint, listener=name)
                    continue

                self.logger.info(
                    "Applying remote snapshot",
                    mountpoint=mountpoint,
                    listener=name,
                    size=len(data)
                )

                # decoded first so a malformed snapshot leaves the store intact
                entries = decode_entries(data) if len(data) > 0 else []
                result.entries_loaded = await self.adapter.replace(mountpoint, entries)

                result.loaded_from = index
                break
            else:
                self.logger.info("No load listener provided data, store left untouched", mountpoint=mountpoint)

        except Exception as e:
            result.state = SyncState.ERRORED
            result.error = e
            self.logger.error(
                "Load stage failed",
                mountpoint=mountpoint,
                error_type=type(e).__name__,
                error=str(e)
            )
            raise

        return result

    async def push_remote(self, mountpoint: str, result: Optional[SyncResult] = None) -> SyncResult:
        """Push stage: hand the local snapshot to every save listener.

        All listeners share one ``SnapshotProvider``, so the store is
        enumerated and encoded at most once, and not at all when no
        listener asks for it. Listeners run concurrently and are all
        awaited; their failures are collected on the result.
        """
        if result is None:
            result = SyncResult(mountpoint=mountpoint, direction=SyncDirection.LOCAL_TO_REMOTE)
        result.state = SyncState.SAVE_PHASE

        provider = SnapshotProvider(self.adapter, mountpoint)
        listeners = self.registry.save_listeners

        outcomes = await asyncio.gather(
            *(_invoke(listener, provider, mountpoint) for listener in listeners),
            return_exceptions=True
        )

        for listener, outcome in zip(listeners, outcomes):
            if isinstance(outcome, BaseException):
                failure = ListenerFailure(listener_name(listener), "save", outcome)
                result.listener_failures.append(failure)
                self.logger.error(
                    "Save listener failed",
                    mountpoint=mountpoint,
                    listener=failure.listener,
                    error_type=type(outcome).__name__,
                    error=str(outcome)
                )

        result.snapshot_size = provider.size
        self.logger.info(
            "Snapshot pushed",
            mountpoint=mountpoint,
            listeners=len(listeners),
            failed=len(result.listener_failures),
            snapshot_size=provider.size
        )

        return result
