"""File-based task tracking.

The model keeps a markdown checklist in a per-session task file, editing it
only through the shell tool. This module creates that file, describes the
convention in the system prompt, summarizes progress, and watches the file
so observers learn about updates.
"""

import asyncio
import time
from pathlib import Path
from typing import Optional, Tuple

import structlog
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from mash.core.agent.events import EventChannel, TasksUpdatedEvent

logger = structlog.get_logger(__name__)


def project_name() -> str:
    """Name of the current working directory."""
    return Path.cwd().name or "unknown"


def task_file_header() -> str:
    return f"# Tasks - {project_name()}\n\n"


def init_task_file(base_dir: Path) -> Path:
    """Create a fresh task file for this session.

    Only the header is written; the model fills in the checklist.

    Args:
        base_dir: mash home directory; files go under ``<base_dir>/tasks``

    Returns:
        Path of the new file
    """
    tasks_dir = base_dir / "tasks"
    tasks_dir.mkdir(parents=True, exist_ok=True)
    path = tasks_dir / f"{project_name()}_{int(time.time())}.md"
    path.write_text(task_file_header(), encoding="utf-8")
    return path


def read_task_summary(path: Path) -> Optional[Tuple[int, int]]:
    """Count completed and total checklist items.

    Returns:
        ``(done, total)``, or None if the file is unreadable or has no items
    """
    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        return None
    lines = [line.strip() for line in content.splitlines()]
    total = sum(1 for line in lines if line.startswith("- ["))
    if total == 0:
        return None
    done = sum(1 for line in lines if line.startswith("- [x]"))
    return done, total


def format_task_prompt(task_file: Path) -> str:
    """System prompt section describing the task file convention."""
    path_str = str(task_file)
    update_cmd = f"perl -i -pe 's/^- \\[ \\] N\\./- [x] N./' \"{path_str}\""
    return f"""

## Task List Protocol

Task file path (use it in every command below):
`{path_str}`

All task operations go through the **shell** tool. Do not repeat the task list in your replies.

**1. TaskCreate** - create the task list
Call once in your first response for multi-step work. Write numbered checklist lines, one per step:

cat << 'EOF' > "{path_str}"
# Tasks

- [ ] 1. First step description
- [ ] 2. Second step description
EOF

**2. TaskUpdate** - mark step N as done (replace N with the step number)

{update_cmd}

**3. TaskList** - show all tasks

cat "{path_str}"

**4. TaskGet** - read part of the list

grep "^- " "{path_str}"

Use TaskCreate first, TaskUpdate as each step completes, and TaskList/TaskGet whenever you need the current state."""


class TaskFileHandler(FileSystemEventHandler):
    """File system event handler forwarding task file changes."""

    def __init__(self, watcher: "TaskFileWatcher") -> None:
        self.watcher = watcher

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory and Path(event.src_path) == self.watcher.path:
            self.watcher.notify()

    def on_created(self, event: FileSystemEvent) -> None:
        self.on_modified(event)

    def on_moved(self, event: FileSystemEvent) -> None:
        # perl -i and editors replace the file through a rename
        if not event.is_directory and Path(event.dest_path) == self.watcher.path:
            self.watcher.notify()


class TaskFileWatcher:
    """Emits :class:`TasksUpdatedEvent` whenever the task file changes."""

    def __init__(self, path: Path, channel: EventChannel) -> None:
        self.path = path
        self.channel = channel
        self.observer: Optional[Observer] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._last: Optional[Tuple[int, int]] = None

    def start(self) -> None:
        """Start watching. Must be called from the event loop's thread."""
        self._loop = asyncio.get_running_loop()
        self.observer = Observer()
        self.observer.schedule(TaskFileHandler(self), str(self.path.parent), recursive=False)
        self.observer.start()
        logger.debug("Watching task file", path=str(self.path))

    def notify(self) -> None:
        """Called from the watchdog thread when the file changes."""
        summary = read_task_summary(self.path)
        if summary is None or summary == self._last:
            return
        self._last = summary
        done, total = summary
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self.channel.emit, TasksUpdatedEvent(done=done, total=total))

    def stop(self) -> None:
        if self.observer is not None:
            self.observer.stop()
            self.observer.join()
            self.observer = None
