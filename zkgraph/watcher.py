"""
File system watcher that triggers full rebuilds.

Every rebuild re-reads the whole corpus; nothing is cached between builds.

This module provides:
- Watchdog-based file monitoring
- Filtering to note files and the config file
- Debounced rebuild callbacks
"""

import logging
import threading
import time
from pathlib import Path
from typing import Callable, Sequence

from watchdog.events import FileSystemEvent, FileSystemEventHandler, FileMovedEvent
from watchdog.observers import Observer

from .config import CONFIG_FILENAME, load_config
from .errors import ConfigError
from .vault.formats import FormatRule, glob_match

logger = logging.getLogger(__name__)


class RebuildEventHandler(FileSystemEventHandler):
    """
    Collects file system events and requests a rebuild once they settle.

    Key behaviors:
    - Ignores hidden files and directories
    - Only reacts to files matching a format rule, or the config file
    - Debounces bursts of events (e.g., editor save cycles)
    - Reloads the format rules when the config file changes
    """

    DEBOUNCE_SECONDS = 0.5

    def __init__(self, notes_path: Path, rules: Sequence[FormatRule]):
        super().__init__()
        self.notes_path = notes_path
        self.rules = list(rules)
        self._lock = threading.Lock()
        self._dirty_since: float | None = None
        self._changed: set[str] = set()

    def is_relevant(self, path: str) -> bool:
        try:
            rel = Path(path).resolve().relative_to(self.notes_path.resolve())
        except ValueError:
            return False

        if any(part.startswith(".") for part in rel.parts):
            return False

        rel_posix = rel.as_posix()
        if rel_posix == CONFIG_FILENAME:
            return True
        return any(glob_match(rule.pattern, rel_posix) for rule in self.rules)

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        paths = [event.src_path]
        if isinstance(event, FileMovedEvent):
            paths.append(event.dest_path)

        relevant = [str(p) for p in paths if self.is_relevant(str(p))]
        if not relevant:
            return

        with self._lock:
            self._changed.update(relevant)
            self._dirty_since = time.monotonic()

    def take_pending(self, now: float | None = None) -> list[str]:
        """Return changed paths once the debounce window has passed."""
        now = time.monotonic() if now is None else now
        with self._lock:
            if self._dirty_since is None or now - self._dirty_since < self.DEBOUNCE_SECONDS:
                return []
            changed = sorted(self._changed)
            self._changed.clear()
            self._dirty_since = None

        config_path = str((self.notes_path / CONFIG_FILENAME).resolve())
        if any(str(Path(p).resolve()) == config_path for p in changed):
            self.reload_rules()
        return changed

    def reload_rules(self) -> None:
        """Re-read format rules from the config file; an invalid file keeps the old rules."""
        try:
            config = load_config(self.notes_path)
        except ConfigError as e:
            logger.warning("Keeping previous format rules: %s", e)
            return
        with self._lock:
            self.rules = list(config.formats)
        logger.debug("Watching %d format rules", len(self.rules))


def watch_notes(
    notes_path: Path,
    rules: Sequence[FormatRule],
    recursive: bool = True,
) -> tuple[Observer, RebuildEventHandler]:
    """
    Start watching the notes directory.

    Returns:
        Tuple of (observer, handler) - caller should call observer.stop() to stop watching
    """
    handler = RebuildEventHandler(notes_path, rules)

    observer = Observer()
    observer.schedule(handler, str(notes_path), recursive=recursive)
    observer.start()

    return observer, handler


def run_watch_loop(
    notes_path: Path,
    rules: Sequence[FormatRule],
    on_change: Callable[[list[str]], None],
) -> None:
    """
    Run the watch loop until interrupted.

    Blocks, calling ``on_change`` with the changed paths after each settled
    burst of events.
    """
    observer, handler = watch_notes(notes_path, rules)

    try:
        while True:
            time.sleep(0.2)
            changed = handler.take_pending()
            if changed:
                logger.debug("Changed: %s", ", ".join(changed))
                on_change(changed)
    except KeyboardInterrupt:
        observer.stop()

    observer.join()
