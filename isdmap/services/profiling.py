"""Scoped cProfile session for the command-line entry point."""

from __future__ import annotations

import cProfile
import logging
import pstats
import sys
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)

# Before 3.12 a cProfile.Profile only sees the thread that enabled it.
_PER_THREAD_PROFILES = sys.version_info < (3, 12)


class ProfilingSession:
    """Collects profile data for explicitly marked sections.

    Acquire it with ``with ProfilingSession(path) as profiler:`` and hand it to
    the code that should be profiled. Worker threads started inside a section
    wrap their loop in ``profiler.profile_thread()`` so their frames land in
    the same stats. Everything is merged and dumped to ``path`` on exit.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path else None
        self.timings: dict[str, float] = {}
        self._profile = cProfile.Profile()
        self._thread_profiles: list[cProfile.Profile] = []
        self._lock = threading.Lock()
        self._open = False

    def __enter__(self) -> "ProfilingSession":
        self._open = True
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._open = False
        if self.path is not None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.stats().dump_stats(str(self.path))
            logger.info("Wrote profile for %s to %s", ", ".join(self.timings) or "nothing", self.path)

    def stats(self) -> pstats.Stats:
        """Merge the session profile with every finished thread profile."""

        with self._lock:
            profiles = [self._profile, *self._thread_profiles]
        merged: pstats.Stats | None = None
        for profile in profiles:
            if not profile.getstats():
                continue
            if merged is None:
                merged = pstats.Stats(profile)
            else:
                merged.add(profile)
        # pstats refuses a profile that recorded nothing.
        return merged if merged is not None else pstats.Stats()

    @contextmanager
    def section(self, name: str) -> Iterator[None]:
        if not self._open:
            raise RuntimeError("profiling session is not active")
        started = time.perf_counter()
        self._profile.enable()
        try:
            yield
        finally:
            self._profile.disable()
            elapsed = time.perf_counter() - started
            self.timings[name] = self.timings.get(name, 0.0) + elapsed
            logger.info("Section %s took %.3fs", name, elapsed)

    @contextmanager
    def profile_thread(self) -> Iterator[None]:
        """Profile the calling thread for the duration of the block."""

        if not self._open or not _PER_THREAD_PROFILES:
            yield
            return
        profile = cProfile.Profile()
        profile.enable()
        try:
            yield
        finally:
            profile.disable()
            with self._lock:
                self._thread_profiles.append(profile)


__all__ = ["ProfilingSession"]
