from __future__ import annotations

import logging
import threading
from typing import Protocol

logger = logging.getLogger(__name__)


class KillableProcess(Protocol):
    def kill(self) -> None:
        """Forcibly terminate the process.

        Example:
            ```python
            process.kill()
            ```
        """
        ...


class ProcessRegistry:
    """Thread-safe ordered collection of live test case processes.

    Usually only one process is registered at a time, but overlapping runs
    each add and remove their own handle.

    Example:
        ```python
        registry = ProcessRegistry()
        ```
    """

    def __init__(self) -> None:
        """Initialize an empty registry.

        Example:
            ```python
            registry = ProcessRegistry()
            ```
        """
        self._lock = threading.Lock()
        self._processes: list[KillableProcess] = []

    def add(self, process: KillableProcess) -> None:
        """Register a freshly launched process.

        Example:
            ```python
            registry.add(process)
            ```
        """
        with self._lock:
            self._processes.append(process)

    def remove(self, process: KillableProcess) -> bool:
        """Unregister a process by identity; returns whether it was present.

        Example:
            ```python
            registry.remove(process)
            ```
        """
        with self._lock:
            for index, entry in enumerate(self._processes):
                if entry is process:
                    del self._processes[index]
                    return True
        return False

    def snapshot(self) -> list[KillableProcess]:
        """Return a copy of the currently registered handles.

        Example:
            ```python
            live = registry.snapshot()
            ```
        """
        with self._lock:
            return list(self._processes)

    def kill_all(self) -> int:
        """Send a kill to every registered process without waiting for exit.

        Handles stay registered until their own exit path removes them.

        Example:
            ```python
            killed = registry.kill_all()
            ```
        """
        targets = self.snapshot()
        logger.info("Killing %d running binaries", len(targets))
        for process in targets:
            try:
                process.kill()
            except ProcessLookupError:
                logger.debug("Process already exited before kill: %r", process)
            except OSError as exc:
                logger.error("Failed to kill process %r: %s", process, exc)
        return len(targets)

    def __len__(self) -> int:
        """Return the number of registered processes.

        Example:
            ```python
            count = len(registry)
            ```
        """
        with self._lock:
            return len(self._processes)
