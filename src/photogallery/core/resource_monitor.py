"""Hash-based staleness detection for derived content.

A *resource monitor* watches some external state (the *resource*: a file's
text, a directory listing, ...) and serves an expensive artifact derived from
it (the *content*: parsed settings, rendered HTML, sitemap XML). Content is
recomputed only when the resource's fingerprint changes.

Every monitor provides the same capability set, described by the
:class:`ResourceMonitor` protocol:

- ``get_resource()`` - snapshot the external state (may raise ``OSError``)
- ``compute_hash(resource)`` - deterministic fingerprint of a snapshot
- ``transform_resource_to_content(resource)`` - the expensive derivation
- ``get_content(check_update=True)`` - the public, cached read

The caching behaviour behind ``get_content`` lives in :class:`ContentCache`,
which each concrete monitor embeds and delegates to, so the check-and-recompute
sequence is implemented exactly once.

Semantics of ``ContentCache.get``
---------------------------------
- The first call always computes, whatever ``check_update`` says.
- With ``check_update=True`` the resource is snapshotted and fingerprinted;
  the transform runs only if the fingerprint differs from the stored one.
- With ``check_update=False`` the cached content is returned without any
  I/O.
- The fingerprint is stored only after the transform succeeds. A transform
  that raises leaves both fields untouched, so the next check retries.
- Errors from ``get_resource`` and the transform propagate unchanged.

Concurrency
-----------
FastAPI runs the monitors from its worker thread pool, so two requests can
reach the same cache at once. The check-and-recompute sequence is guarded by
a per-cache lock: concurrent checks against an unchanged resource run the
transform at most once. Reads with ``check_update=False`` against a
populated cache do not take the lock.
"""

from __future__ import annotations

import logging
import threading
from typing import Generic, Protocol, TypeVar

logger = logging.getLogger(__name__)

R = TypeVar("R")
C = TypeVar("C")


class ResourceMonitor(Protocol[R, C]):
    """Capability set shared by every resource monitor."""

    def get_resource(self) -> R: ...

    def compute_hash(self, resource: R) -> str: ...

    def transform_resource_to_content(self, resource: R) -> C: ...

    def get_content(self, check_update: bool = True) -> C: ...


class ContentCache(Generic[R, C]):
    """Fingerprint and content storage for one monitor.

    Attributes:
        fingerprint: Fingerprint of the resource the cached content was
            derived from, or ``None`` before the first computation.
    """

    def __init__(self) -> None:
        self.fingerprint: str | None = None
        self._content: C | None = None
        self._has_content = False
        self._lock = threading.Lock()

    @property
    def has_content(self) -> bool:
        return self._has_content

    def get(self, monitor: ResourceMonitor[R, C], check_update: bool = True) -> C:
        """Return the content for *monitor*, recomputing it if the resource changed.

        Args:
            monitor: The monitor whose resource, hash and transform to use.
            check_update: Whether to snapshot the resource and compare its
                fingerprint. Forced to ``True`` while nothing is cached.

        Returns:
            The cached (or freshly computed) content.
        """
        if not check_update and self._has_content:
            return self._content  # type: ignore[return-value]

        with self._lock:
            if not self._has_content:
                check_update = True

            if check_update:
                resource = monitor.get_resource()
                new_fingerprint = monitor.compute_hash(resource)
                if new_fingerprint != self.fingerprint:
                    content = monitor.transform_resource_to_content(resource)
                    self._content = content
                    self.fingerprint = new_fingerprint
                    self._has_content = True
                else:
                    logger.debug(f"{type(monitor).__name__}: resource unchanged")

            return self._content  # type: ignore[return-value]
