"""Filesystem monitoring of the documents tree.

``PathWatcher`` registers one non-recursive watchdog watch per directory and
extends the registration as directories appear. Raw notifications go onto a
bounded queue drained by a single loop thread, which debounces file events
and posts "file ready" paths onto a queue consumed by ``IngestionWorker``.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
import time
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from docshelf.ingestion.coordinator import DocumentIngestor
from docshelf.models import Ingested

LOGGER = logging.getLogger(__name__)

_STOP = object()


class WatcherError(RuntimeError):
    pass


class WatcherState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"


class _EventForwarder(FileSystemEventHandler):
    """Pushes observer notifications onto the watcher's event queue."""

    def __init__(self, events: queue.Queue) -> None:
        self._events = events

    def on_any_event(self, event: FileSystemEvent) -> None:
        try:
            self._events.put_nowait(event)
        except queue.Full:
            LOGGER.warning(
                "Watch event queue overflow, %s event for %s lost", event.event_type, event.src_path
            )


class PathWatcher:
    def __init__(
        self,
        root: Path,
        ready: queue.Queue,
        *,
        debounce_seconds: float = 0.5,
        max_pending_events: int = 4096,
        observer_factory: Callable[[], object] = Observer,
    ) -> None:
        self.root = Path(root)
        self.ready = ready
        self.debounce_seconds = debounce_seconds
        self._observer_factory = observer_factory
        self._events: queue.Queue = queue.Queue(maxsize=max_pending_events)
        self._handler = _EventForwarder(self._events)
        self._observer = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._registrations: Dict[object, Path] = {}
        self._state = WatcherState.STOPPED

    @property
    def state(self) -> WatcherState:
        return self._state

    @property
    def registrations(self) -> Dict[object, Path]:
        """Snapshot of watch handle -> watched directory."""
        with self._lock:
            return dict(self._registrations)

    def watched_directories(self) -> List[Path]:
        return sorted(self.registrations.values())

    def start(self) -> None:
        if self._state is not WatcherState.STOPPED:
            return
        self._state = WatcherState.STARTING

        if not self.root.is_dir():
            self._state = WatcherState.STOPPED
            LOGGER.error("Documents path %s does not exist. Watcher not started.", self.root)
            raise WatcherError(f"Documents path does not exist: {self.root}")

        try:
            self._observer = self._observer_factory()
            self._register_all(self.root)
            self._observer.start()
        except Exception as exc:
            LOGGER.error("Failed to start watcher on %s: %s", self.root, exc)
            self._teardown()
            raise WatcherError(str(exc)) from exc

        self._thread = threading.Thread(
            target=self._run, name="docshelf-path-watcher", daemon=True
        )
        self._thread.start()
        self._state = WatcherState.RUNNING
        LOGGER.info("Watcher started. Monitoring: %s", self.root)

    def stop(self, timeout: float = 5.0) -> None:
        if self._thread is None and self._observer is None:
            return
        LOGGER.info("Stopping watcher on %s", self.root)
        if self._thread is not None:
            self._events.put(_STOP)
            self._thread.join(timeout)
            self._thread = None
        self._teardown(timeout)

    def _teardown(self, timeout: float = 5.0) -> None:
        observer, self._observer = self._observer, None
        if observer is not None:
            try:
                observer.stop()
                if observer.is_alive():
                    observer.join(timeout)
            except Exception as exc:
                LOGGER.warning("Error closing observer: %s", exc)
        with self._lock:
            self._registrations.clear()
        self._state = WatcherState.STOPPED

    def _register_all(self, start: Path) -> None:
        """Register ``start`` and every directory below it."""
        directories = [Path(start)]
        for current, subdirs, _files in os.walk(start, onerror=self._log_walk_error):
            directories.extend(sorted(Path(current) / name for name in subdirs))
        for directory in directories:
            self._register(directory)

    @staticmethod
    def _log_walk_error(error: OSError) -> None:
        LOGGER.error("Failed to list %s: %s", error.filename, error)

    def _register(self, directory: Path) -> None:
        with self._lock:
            if directory in self._registrations.values():
                return
        try:
            watch = self._observer.schedule(self._handler, str(directory), recursive=False)
        except OSError as exc:
            LOGGER.error("Failed to register directory %s: %s", directory, exc)
            return
        with self._lock:
            self._registrations[watch] = directory
        LOGGER.debug("Watching directory: %s", directory)

    def _unregister_tree(self, directory: Path) -> None:
        with self._lock:
            stale = [
                watch
                for watch, path in self._registrations.items()
                if path == directory or directory in path.parents
            ]
        for watch in stale:
            with self._lock:
                path = self._registrations.pop(watch, None)
            LOGGER.warning("Watch for %s is no longer valid (directory deleted).", path)
            try:
                self._observer.unschedule(watch)
            except (KeyError, OSError) as exc:
                LOGGER.debug("Unscheduling %s failed: %s", path, exc)

    def _run(self) -> None:
        LOGGER.debug("Watch loop running...")
        while True:
            event = self._events.get()
            if event is _STOP:
                break
            batch = [event]
            stop_requested = False
            while True:
                try:
                    extra = self._events.get_nowait()
                except queue.Empty:
                    break
                if extra is _STOP:
                    stop_requested = True
                    break
                batch.append(extra)
            try:
                self.process_batch(batch)
            except Exception:
                LOGGER.exception("Unexpected error while processing watch events")
            if stop_requested:
                break
        LOGGER.debug("Watch loop stopped.")

    def process_batch(self, batch: List[FileSystemEvent]) -> None:
        """Apply directory changes first, then debounce and post file events."""
        ready_files: List[Path] = []
        for event in batch:
            LOGGER.debug("FS event [%s]: %s", event.event_type, event.src_path)
            if event.is_directory:
                self._handle_directory_event(event)
                continue
            path = self._file_target(event)
            if path is not None and path not in ready_files:
                ready_files.append(path)

        for path in ready_files:
            if self.debounce_seconds:
                time.sleep(self.debounce_seconds)
            if path.is_file():
                LOGGER.info("File ready: %s", path)
                self.ready.put(path)

    def _handle_directory_event(self, event: FileSystemEvent) -> None:
        if event.event_type == EVENT_TYPE_CREATED:
            directory = Path(os.fsdecode(event.src_path))
            self._register_all(directory)
            LOGGER.info("Registered new sub-directory for watching: %s", directory)
        elif event.event_type == EVENT_TYPE_DELETED:
            self._unregister_tree(Path(os.fsdecode(event.src_path)))
        elif event.event_type == EVENT_TYPE_MOVED:
            self._unregister_tree(Path(os.fsdecode(event.src_path)))
            self._register_all(Path(os.fsdecode(event.dest_path)))

    @staticmethod
    def _file_target(event: FileSystemEvent) -> Optional[Path]:
        if event.event_type in (EVENT_TYPE_CREATED, EVENT_TYPE_MODIFIED):
            return Path(os.fsdecode(event.src_path))
        if event.event_type == EVENT_TYPE_MOVED:
            return Path(os.fsdecode(event.dest_path))
        return None


class IngestionWorker:
    """Single consumer of the watcher's "file ready" queue."""

    def __init__(self, ingestor: DocumentIngestor, ready: queue.Queue) -> None:
        self.ingestor = ingestor
        self.ready = ready
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._thread = threading.Thread(
            target=self._run, name="docshelf-ingestion-worker", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float = 30.0) -> None:
        if self._thread is None:
            return
        self.ready.put(_STOP)
        self._thread.join(timeout)
        if self._thread.is_alive():
            LOGGER.warning("Ingestion worker still busy after %ss, leaving it to finish", timeout)
            return
        self._thread = None

    def _run(self) -> None:
        while True:
            path = self.ready.get()
            if path is _STOP:
                break
            try:
                result = self.ingestor.ingest(path)
            except Exception:
                LOGGER.exception("Unexpected error ingesting %s", path)
                continue
            if isinstance(result, Ingested):
                LOGGER.info("Auto-ingested new file: %s", result.record.file_name)
            else:
                LOGGER.debug("Watcher ingestion of %s skipped (%s)", path, result.reason.value)
