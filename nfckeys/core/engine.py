"""Dispatch Engine - Central orchestrator for nfckeys.

This module provides the DispatchEngine class, which turns tag-presence
events from one or more readers into key presses.

Architecture:
    [Readers] -> event queue -> DispatchEngine -> KeyInjector
                                     |
                          MappingStore / AssignmentFlow

    - Readers emit events from their own threads; the engine only queues them
    - One consuming thread processes events one at a time, to completion
    - A tag tapped while the operator is answering a prompt waits in the queue

Per event:
    1. Extract the tag identifier
    2. Look it up in the mapping store
    3. On a miss, ask the operator for an action (AssignmentFlow)
    4. Resolve the action to a key descriptor
    5. Press the key

Every failure is local to the event: it is logged, counted and returned
as a DispatchResult, and the engine keeps listening.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import TYPE_CHECKING, Callable, List, Optional, Sequence

from nfckeys.core.assignment import AssignmentFlow
from nfckeys.core.events import (
    DispatchResult,
    DispatchStatus,
    ReaderEvent,
    TagEvent,
    TagPresentEvent,
    TagRemovedEvent,
    extract_tag_id,
    normalize_action_name,
)
from nfckeys.core.exceptions import (
    ConfigurationError,
    DispatchError,
    IdentityExtractionError,
    InvariantViolation,
    PersistenceError,
    ValidationError,
)
from nfckeys.core.registry import ActionRegistry
from nfckeys.core.store import MappingStore

if TYPE_CHECKING:
    from nfckeys.injectors.base import KeyInjector
    from nfckeys.prompts.base import AssignmentPrompt
    from nfckeys.readers.base import TagReader


logger = logging.getLogger(__name__)


class DispatchEngine:
    """Central orchestrator connecting readers to a key injector.

    The engine manages the lifecycle of all components and ensures
    proper startup/shutdown ordering:
        1. Start: load store -> start injector -> subscribe and connect readers
        2. Stop: close prompt -> disconnect readers -> stop injector

    Example:
        >>> from nfckeys.readers import MockReader
        >>> from nfckeys.injectors import ConsoleKeyInjector
        >>> from nfckeys.prompts import ConsolePrompt
        >>>
        >>> reader = MockReader()
        >>> engine = DispatchEngine(
        ...     store=MappingStore("tag-key-mappings.json"),
        ...     injector=ConsoleKeyInjector(),
        ...     prompt=ConsolePrompt(),
        ...     readers=[reader],
        ... )
        >>> with engine:
        ...     reader.tap("04A224B2")
        ...     engine.process_next(timeout=1.0)

    Thread Safety:
        submit() may be called from any thread. process_next() and run()
        must be called from a single consuming thread.
    """

    def __init__(
        self,
        store: MappingStore,
        injector: KeyInjector,
        prompt: AssignmentPrompt,
        readers: Optional[Sequence[TagReader]] = None,
        registry: Optional[ActionRegistry] = None,
        fixed_action: Optional[str] = None,
    ) -> None:
        """Initialize the dispatch engine.

        Args:
            store: Mapping store holding tag assignments.
            injector: Key-injection backend.
            prompt: Prompt used to assign unmapped tags.
            readers: Readers to subscribe to. Events can also be fed through
                     submit() or on_tag_present() directly.
            registry: Action registry. Built from the injector's key table
                      if not given.
            fixed_action: Press this action for every tag, without consulting
                          the store or prompting. Validated in start().
        """
        self._store = store
        self._injector = injector
        self._registry = registry or injector.create_registry()
        self._prompt = prompt
        self._assignment = AssignmentFlow(store, self._registry, prompt)
        self._readers: List[TagReader] = list(readers) if readers else []
        self._fixed_action = normalize_action_name(fixed_action) or None

        self._queue: queue.Queue[TagEvent] = queue.Queue()

        # Thread-safe state management
        self._lock = threading.RLock()
        # Serializes start/stop without blocking submit() from reader threads
        self._lifecycle_lock = threading.Lock()
        self._running = False

        # Statistics for monitoring
        self._events_received = 0
        self._events_dispatched = 0
        self._events_skipped = 0
        self._events_rejected = 0
        self._events_failed = 0

        logger.debug(
            "DispatchEngine initialized with backend=%s, %d readers",
            self._registry.backend,
            len(self._readers),
        )

    @property
    def is_running(self) -> bool:
        """Whether the engine is currently active."""
        with self._lock:
            return self._running

    @property
    def store(self) -> MappingStore:
        return self._store

    @property
    def registry(self) -> ActionRegistry:
        return self._registry

    @property
    def injector(self) -> KeyInjector:
        return self._injector

    @property
    def prompt(self) -> AssignmentPrompt:
        return self._prompt

    @property
    def fixed_action(self) -> Optional[str]:
        """Action pressed for every tag, or None when mappings are used."""
        return self._fixed_action

    @property
    def readers(self) -> List[TagReader]:
        """Copy of the readers list."""
        with self._lock:
            return list(self._readers)

    @property
    def pending(self) -> int:
        """Approximate number of queued events."""
        return self._queue.qsize()

    @property
    def statistics(self) -> dict:
        """Engine statistics for monitoring.

        Returns:
            Dict with keys: events_received, events_dispatched,
            events_skipped, events_rejected, events_failed
        """
        with self._lock:
            return {
                "events_received": self._events_received,
                "events_dispatched": self._events_dispatched,
                "events_skipped": self._events_skipped,
                "events_rejected": self._events_rejected,
                "events_failed": self._events_failed,
            }

    def start(self) -> None:
        """Load the store, start the injector, then connect the readers.

        The startup sequence ensures dependencies are ready before
        events begin flowing:
            1. Load the mapping store (degrades to empty on PersistenceError)
            2. Start the key injector
            3. Subscribe to and connect each reader

        In fixed-action mode the store is not loaded; the action is
        validated against the registry instead.

        Raises:
            ConfigurationError: If the fixed action is not a known key.
            Exception: If the injector fails to start or a reader fails to
                connect. Components already started are rolled back.
        """
        with self._lifecycle_lock:
            if self.is_running:
                logger.warning("Engine already running, ignoring start() call")
                return

            logger.info("Starting dispatch engine...")

            # Phase 1: Load mappings, or check the fixed action
            if self._fixed_action is not None:
                if not self._registry.is_valid(self._fixed_action):
                    raise ConfigurationError(
                        f"Unknown key: '{self._fixed_action}'. "
                        f"Valid keys: {', '.join(self._registry.primary_action_names())}",
                        parameter="fixed_action",
                    )
                logger.info("Every tag presses '%s'; mappings file not used", self._fixed_action)
            else:
                self._load_store()

            # Phase 2: Start the injector
            logger.debug("Starting key injector: %s", type(self._injector).__name__)
            self._injector.start()

            with self._lock:
                self._events_received = 0
                self._events_dispatched = 0
                self._events_skipped = 0
                self._events_rejected = 0
                self._events_failed = 0
                # Reader attach notices are queued from here on
                self._running = True

            # Phase 3: Subscribe and connect readers
            connected: List[TagReader] = []
            for reader in self._readers:
                reader.subscribe(self.submit)
                try:
                    logger.debug("Connecting reader: %s", reader.reader_id)
                    reader.connect()
                except Exception as e:
                    # Rollback: disconnect readers and stop the injector
                    logger.error("Failed to connect reader %s: %s", reader.reader_id, e)
                    with self._lock:
                        self._running = False
                    reader.unsubscribe(self.submit)
                    for other in connected:
                        try:
                            other.disconnect()
                            other.unsubscribe(self.submit)
                        except Exception as stop_error:
                            logger.warning("Error disconnecting reader during rollback: %s", stop_error)
                    try:
                        self._injector.stop()
                    except Exception as stop_error:
                        logger.warning("Error stopping injector during rollback: %s", stop_error)
                    self._drain_queue()
                    raise
                connected.append(reader)

            logger.info("Dispatch engine started successfully")

    def stop(self) -> None:
        """Stop gracefully: close prompt, disconnect readers, stop injector.

        This method is idempotent - calling it when not running is safe.
        Errors during shutdown are logged but don't prevent other
        components from being stopped.

        The state lock is released before readers are disconnected, so a
        reader thread blocked in submit() can finish and be joined.
        """
        with self._lifecycle_lock:
            with self._lock:
                if not self._running:
                    logger.debug("Engine not running, ignoring stop() call")
                    return
                self._running = False

            logger.info("Stopping dispatch engine...")

            # Phase 1: Close the prompt so a pending assignment is abandoned
            try:
                self._prompt.close()
            except Exception as e:
                logger.warning("Error closing prompt: %s", e)

            # Phase 2: Disconnect readers
            for reader in self._readers:
                try:
                    logger.debug("Disconnecting reader: %s", reader.reader_id)
                    reader.disconnect()
                except Exception as e:
                    logger.warning("Error disconnecting reader %s: %s", reader.reader_id, e)
                try:
                    reader.unsubscribe(self.submit)
                except Exception as e:
                    logger.warning("Error unsubscribing from reader %s: %s", reader.reader_id, e)

            # Phase 3: Stop the injector
            try:
                logger.debug("Stopping key injector: %s", type(self._injector).__name__)
                self._injector.stop()
            except Exception as e:
                logger.warning("Error stopping injector: %s", e)

            dropped = self._drain_queue()
            if dropped:
                logger.info("Discarded %d queued events", dropped)

            stats = self.statistics
            logger.info(
                "Dispatch engine stopped. Stats: received=%d, dispatched=%d, "
                "skipped=%d, rejected=%d, failed=%d",
                stats["events_received"],
                stats["events_dispatched"],
                stats["events_skipped"],
                stats["events_rejected"],
                stats["events_failed"],
            )

    def _load_store(self) -> None:
        try:
            self._store.load()
        except PersistenceError as e:
            logger.warning("Continuing with an empty mapping table: %s", e)

        unknown = self._registry.unknown_actions(action for _, action in self._store.items())
        for action in unknown:
            logger.warning(
                "Stored action '%s' is not a known key for backend %s",
                action,
                self._registry.backend,
            )

    def submit(self, event: TagEvent) -> None:
        """Queue an event for processing. Safe to call from reader threads.

        Args:
            event: Any reader event.
        """
        if not self.is_running:
            logger.debug("Engine not running, dropping %s", type(event).__name__)
            return
        self._queue.put(event)

    def process_next(self, timeout: Optional[float] = None) -> Optional[DispatchResult]:
        """Process the next queued event, waiting up to ``timeout`` seconds.

        Args:
            timeout: Seconds to wait for an event. None waits forever.

        Returns:
            The result for the processed event, or None if none arrived.
        """
        try:
            event = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

        try:
            return self.handle_event(event)
        finally:
            self._queue.task_done()

    def run(
        self,
        should_stop: Optional[Callable[[], bool]] = None,
        poll_interval: float = 0.1,
    ) -> None:
        """Process queued events until ``should_stop`` returns True or stop() is called.

        Args:
            should_stop: Checked between events.
            poll_interval: Seconds to wait for an event before re-checking.
        """
        while self.is_running and not (should_stop and should_stop()):
            self.process_next(timeout=poll_interval)

    def handle_event(self, event: TagEvent) -> DispatchResult:
        """Route a reader event.

        Tag presence is dispatched; removal and reader status events are
        only logged.

        Args:
            event: Any reader event.

        Returns:
            The result of processing the event.
        """
        if isinstance(event, TagPresentEvent):
            return self.on_tag_present(event)

        if isinstance(event, ReaderEvent):
            if event.connected:
                logger.info("%s", event.message or f"{event.reader_id} device attached")
            else:
                logger.warning("%s", event.message or f"{event.reader_id} device removed")
        elif isinstance(event, TagRemovedEvent):
            logger.debug("%s card removed", event.reader_id)
        else:
            logger.debug("Ignoring %s from %s", type(event).__name__, event.reader_id)

        return DispatchResult(status=DispatchStatus.IGNORED, reader_id=event.reader_id)

    def on_tag_present(self, event: TagPresentEvent) -> DispatchResult:
        """Resolve a tag-presence event to an action and press its key.

        Args:
            event: The tag-presence event.

        Returns:
            DISPATCHED on success; SKIPPED if the operator declined an
            assignment; REJECTED for an invalid assignment; FAILED for
            extraction, prompt, registry or injection errors.
        """
        with self._lock:
            self._events_received += 1

        reader_id = event.reader_id

        try:
            tag_id = extract_tag_id(event)
        except IdentityExtractionError as e:
            logger.warning("Skipping tag: %s", e)
            return self._finish(DispatchResult(DispatchStatus.FAILED, error=e, reader_id=reader_id))

        if self._fixed_action is not None:
            action = self._fixed_action
        else:
            action = self._store.get(tag_id)

        if action is None:
            logger.info("Tag %s is not assigned", tag_id)
            try:
                action = self._assignment.request_assignment(tag_id)
            except ValidationError as e:
                logger.warning("%s", e)
                if e.valid_actions:
                    logger.info("Valid keys: %s", ", ".join(e.valid_actions))
                return self._finish(DispatchResult(
                    DispatchStatus.REJECTED,
                    tag_id=tag_id,
                    action=e.action,
                    error=e,
                    reader_id=reader_id,
                ))
            except Exception as e:
                logger.error("Assignment prompt for tag %s failed: %s", tag_id, e, exc_info=True)
                return self._finish(DispatchResult(
                    DispatchStatus.FAILED, tag_id=tag_id, error=e, reader_id=reader_id
                ))

            if action is None:
                return self._finish(DispatchResult(
                    DispatchStatus.SKIPPED, tag_id=tag_id, reader_id=reader_id
                ))
        else:
            logger.debug("Tag %s is assigned to '%s'", tag_id, action)

        descriptor = self._registry.resolve(action)
        if descriptor is None:
            violation = InvariantViolation(action, tag_id=tag_id)
            logger.critical("%s", violation)
            return self._finish(DispatchResult(
                DispatchStatus.FAILED,
                tag_id=tag_id,
                action=action,
                error=violation,
                reader_id=reader_id,
            ))

        try:
            self._injector.press(descriptor)
        except DispatchError as e:
            error = DispatchError(
                e.message, action=descriptor.action, tag_id=tag_id, cause=e.cause, hint=e.hint
            )
        except Exception as e:
            error = DispatchError(
                "Error simulating keyboard input",
                action=descriptor.action,
                tag_id=tag_id,
                cause=e,
                hint=self._injector.PERMISSION_HINT,
            )
            logger.error("Key injector %s raised exception: %s",
                         type(self._injector).__name__, e, exc_info=True)
        else:
            logger.info("Tag %s -> %s key pressed", tag_id, descriptor.action)
            return self._finish(DispatchResult(
                DispatchStatus.DISPATCHED,
                tag_id=tag_id,
                action=descriptor.action,
                reader_id=reader_id,
            ))

        logger.error("%s", error)
        if error.hint:
            logger.error("%s", error.hint)
        return self._finish(DispatchResult(
            DispatchStatus.FAILED,
            tag_id=tag_id,
            action=descriptor.action,
            error=error,
            reader_id=reader_id,
        ))

    def _finish(self, result: DispatchResult) -> DispatchResult:
        with self._lock:
            if result.status is DispatchStatus.DISPATCHED:
                self._events_dispatched += 1
            elif result.status is DispatchStatus.SKIPPED:
                self._events_skipped += 1
            elif result.status is DispatchStatus.REJECTED:
                self._events_rejected += 1
            elif result.status is DispatchStatus.FAILED:
                self._events_failed += 1
        return result

    def _drain_queue(self) -> int:
        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                return dropped
            self._queue.task_done()
            dropped += 1

    def __enter__(self) -> DispatchEngine:
        """Context manager entry - starts the engine."""
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - stops the engine."""
        self.stop()

    def __repr__(self) -> str:
        return (
            f"DispatchEngine("
            f"backend={self._registry.backend!r}, "
            f"readers={len(self._readers)}, "
            f"mappings={len(self._store)}, "
            f"running={self._running})"
        )
