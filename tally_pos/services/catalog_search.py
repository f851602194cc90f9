# tally_pos/services/catalog_search.py
import threading
from typing import Callable, List

from tally_pos.domain.schemas import Product
from tally_pos.services.product_client import ProductClient
from tally_pos.utils.settings import SEARCH_DEBOUNCE_SECONDS
from tally_pos.utils.logging import get_logger

logger = get_logger(__name__)

ResultsListener = Callable[[str, List[Product]], None]


class CatalogSearch:
    """
    Search-as-you-type over the product catalog.

    Each keystroke restarts a quiet-period timer; only the last term is sent.
    Every submit bumps a generation counter and a response is published only
    if its generation is still current, so a slow stale search can never
    overwrite the results of a newer one.
    """

    def __init__(
        self,
        product_client: ProductClient,
        on_results: ResultsListener | None = None,
        delay: float | None = None,
        timer_factory=threading.Timer,
    ):
        self.product_client = product_client
        self.on_results = on_results
        self.delay = SEARCH_DEBOUNCE_SECONDS if delay is None else delay
        self.timer_factory = timer_factory

        self._lock = threading.Lock()
        self._generation = 0
        self._timer = None
        self._pending = False
        self.latest_term: str | None = None
        self.latest: List[Product] = []

    @property
    def pending(self) -> bool:
        return self._pending

    def submit(self, term: str) -> int:
        with self._lock:
            self._generation += 1
            generation = self._generation
            if self._timer:
                self._timer.cancel()

            self._pending = True
            self._timer = self.timer_factory(self.delay, self._run, args=(generation, term))
            self._timer.daemon = True
            self._timer.start()

        return generation

    def cancel(self) -> None:
        with self._lock:
            self._generation += 1
            self._pending = False
            if self._timer:
                self._timer.cancel()
                self._timer = None

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _run(self, generation: int, term: str) -> None:
        with self._lock:
            if not self._is_current(generation):
                return

        results = self.product_client.search(term)

        with self._lock:
            if not self._is_current(generation):
                logger.debug(f"Discarding stale search results for '{term}'")
                return
            self.latest_term = term
            self.latest = results
            self._pending = False

        logger.info(f"Catalog search '{term}' returned {len(results)} product(s)")
        if self.on_results:
            self.on_results(term, results)
