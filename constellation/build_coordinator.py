"""Run graph builds off the caller's thread, one in flight per artist set."""

import hashlib
import json
import logging
import threading
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor

from constellation.config import GraphConfig
from constellation.graph_builder import SimilarityFn, build_graph
from constellation.models import Artist, Graph

logger = logging.getLogger(__name__)


def artist_fingerprint(artists: Sequence[Artist]) -> str:
    """
    Stable SHA-256 fingerprint of the graph-relevant artist fields.

    Covers id, name, rank and genres; similarity maps look artists up by name.
    """
    payload = json.dumps(
        [
            [artist.id, artist.name, artist.rank, list(artist.genres)]
            for artist in artists
        ],
        separators=(",", ":"),
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class GraphBuildCoordinator:
    """
    Coalesce concurrent rebuild requests for the same artist set.

    A second submit with the same artist fingerprint and the same similarity
    function while a build is running gets the same Future back instead of
    starting another build.
    """

    def __init__(
        self,
        executor: ThreadPoolExecutor | None = None,
        config: GraphConfig | None = None,
    ):
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="graph-build"
        )
        self._owns_executor = executor is None
        self._config = config or GraphConfig()
        self._in_flight: dict[tuple[str, SimilarityFn | None], Future] = {}
        self._lock = threading.Lock()

    def submit(
        self,
        artists: Sequence[Artist],
        similarity_fn: SimilarityFn | None = None,
    ) -> Future:
        """Schedule a build, or join the one already running for these artists."""
        snapshot = tuple(artists)
        fingerprint = artist_fingerprint(snapshot)
        key = (fingerprint, similarity_fn)

        with self._lock:
            existing = self._in_flight.get(key)
            if existing is not None:
                logger.debug("Joining in-flight build %s", fingerprint[:12])
                return existing

            future = self._executor.submit(
                build_graph, snapshot, similarity_fn, self._config
            )
            self._in_flight[key] = future

        future.add_done_callback(lambda _f: self._release(key, future))
        return future

    def _release(self, key: tuple, future: Future) -> None:
        with self._lock:
            if self._in_flight.get(key) is future:
                del self._in_flight[key]

    def in_flight_count(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def build(
        self, artists: Sequence[Artist], similarity_fn: SimilarityFn | None = None
    ) -> Graph:
        """Submit and wait for the result."""
        return self.submit(artists, similarity_fn).result()

    def shutdown(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)
