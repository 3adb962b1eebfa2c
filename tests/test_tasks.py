"""Tests for task file tracking."""

import asyncio

import pytest

from mash.core.agent.events import EventChannel, TasksUpdatedEvent
from mash.core.tasks import (
    TaskFileWatcher,
    format_task_prompt,
    init_task_file,
    project_name,
    read_task_summary,
)


def test_init_task_file_writes_header(tmp_path, monkeypatch):
    project = tmp_path / "myproj"
    project.mkdir()
    monkeypatch.chdir(project)

    path = init_task_file(tmp_path / "home")

    assert path.parent == tmp_path / "home" / "tasks"
    assert path.name.startswith("myproj_") and path.suffix == ".md"
    assert path.read_text(encoding="utf-8") == "# Tasks - myproj\n\n"
    assert project_name() == "myproj"


def test_summary_counts_checked_items(tmp_path):
    path = tmp_path / "tasks.md"
    path.write_text(
        "# Tasks\n\n- [x] 1. Read the code\n- [ ] 2. Fix the bug\n  - [x] 3. Add a test\nnotes\n",
        encoding="utf-8",
    )
    assert read_task_summary(path) == (2, 3)


def test_summary_none_without_items(tmp_path):
    path = tmp_path / "tasks.md"
    path.write_text("# Tasks - x\n\n", encoding="utf-8")
    assert read_task_summary(path) is None
    assert read_task_summary(tmp_path / "missing.md") is None


def test_task_prompt_mentions_file_and_operations(tmp_path):
    path = tmp_path / "tasks" / "proj_1.md"
    prompt = format_task_prompt(path)
    assert str(path) in prompt
    for operation in ("TaskCreate", "TaskUpdate", "TaskList", "TaskGet"):
        assert operation in prompt


@pytest.mark.asyncio
async def test_watcher_emits_on_change(tmp_path):
    path = tmp_path / "tasks.md"
    path.write_text("# Tasks\n\n", encoding="utf-8")
    channel = EventChannel()
    watcher = TaskFileWatcher(path, channel)
    watcher.start()
    try:
        path.write_text("# Tasks\n\n- [x] 1. One\n- [ ] 2. Two\n", encoding="utf-8")
        event = await asyncio.wait_for(channel.get(), timeout=10)
    finally:
        watcher.stop()
    assert event == TasksUpdatedEvent(done=1, total=2)


@pytest.mark.asyncio
async def test_notify_skips_unchanged_summary(tmp_path):
    path = tmp_path / "tasks.md"
    path.write_text("- [ ] 1. One\n", encoding="utf-8")
    channel = EventChannel()
    watcher = TaskFileWatcher(path, channel)
    watcher._loop = asyncio.get_running_loop()

    watcher.notify()
    watcher.notify()
    await asyncio.sleep(0)

    assert channel.drain() == [TasksUpdatedEvent(done=0, total=1)]
