"""Post-release task dispatch.

Deferred tasks (remote release creation) run strictly one after another,
in the order they were created, once the final commit is known. The first
failure stops the sequence: later releases are never published against a
run that is already known to be broken.
"""

from __future__ import annotations

from .exceptions import PostReleaseTaskError
from .models import PostReleaseTask
from .shell import step


def task_name(task: PostReleaseTask) -> str:
    return getattr(task, "__qualname__", repr(task))


def run_post_release_tasks(tasks: list[PostReleaseTask], latest_commit: str) -> list[str]:
    """Run tasks in order against latest_commit.

    Returns:
        Names of the completed tasks.

    Raises:
        PostReleaseTaskError: The first task that failed, with the names of
            the tasks completed before it.
    """
    if not tasks:
        return []
    step(f"Running {len(tasks)} post-release task(s)")

    completed: list[str] = []
    for task in tasks:
        name = task_name(task)
        try:
            task(latest_commit)
        except Exception as e:
            raise PostReleaseTaskError(name, completed, e) from e
        completed.append(name)
    return completed
