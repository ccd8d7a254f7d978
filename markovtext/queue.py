from collections import deque
import enum
import logging
import random
from typing import Deque, List, Optional, Set

from .errors import EmptyModelError, MarkovTextError, QueueClosedError
from .generator import DEFAULT_MAX_TOKENS, generate_many
from .model import DEFAULT_ORDER, MarkovModel, build
from .options import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_MIN_LENGTH,
    DEFAULT_SESSION_CAP,
    GenerationOptions,
)
from .sources import TextSource
from .utils import is_usable_line

logger = logging.getLogger("markovtext.queue")


class QueueState(enum.Enum):
    EMPTY = "empty"
    LOADING = "loading"
    READY = "ready"
    CLOSED = "closed"


class GenerationQueue:
    """
    Pull-based queue of generated lines for a typewriter-style consumer.

    Each call to load_text_batch() fetches more corpus lines from the source,
    rebuilds the model from everything fetched so far and queues the new
    generated lines that are long enough, pass the optional min_words and
    reject_artifacts quality check, and have not been seen this session.
    get_next_text() hands them out oldest first, up to session_cap lines.

    Refilling is left to the caller: nothing is fetched in the background.
    """

    def __init__(
        self,
        source: TextSource,
        *,
        order: int = DEFAULT_ORDER,
        min_length: int = DEFAULT_MIN_LENGTH,
        session_cap: int = DEFAULT_SESSION_CAP,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        max_sentences: Optional[int] = None,
        min_words: int = 0,
        reject_artifacts: bool = False,
        rng: Optional[random.Random] = None,
    ):
        self.source = source
        self.order = order
        self.min_length = min_length
        self.session_cap = session_cap
        self.max_tokens = max_tokens
        self.max_sentences = max_sentences
        self.min_words = min_words
        self.reject_artifacts = reject_artifacts
        self.rng = rng or random.Random()
        self.state = QueueState.EMPTY
        self.corpus: List[str] = []
        self.model = MarkovModel(order)
        self.delivered: Set[str] = set()
        self.delivered_count = 0
        self._queue: Deque[str] = deque()
        self._loading = False
        self._exhausted = False
        self._available: Optional[bool] = None

    @classmethod
    def from_options(
        cls,
        source: TextSource,
        options: GenerationOptions,
        rng: Optional[random.Random] = None,
    ) -> "GenerationQueue":
        return cls(
            source,
            order=options.order,
            min_length=options.min_length,
            session_cap=options.session_cap,
            max_tokens=options.max_tokens,
            max_sentences=options.max_sentences,
            min_words=options.min_words,
            reject_artifacts=options.reject_artifacts,
            rng=rng,
        )

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def remaining(self) -> int:
        return max(self.session_cap - self.delivered_count, 0)

    @property
    def is_loading(self) -> bool:
        return self._loading

    async def is_available(self, refresh: bool = False) -> bool:
        """
        True if the text source answers - never raises.

        The answer is remembered for the life of the queue, pass
        ``refresh=True`` to check the source again.
        """
        if self._available is not None and not refresh:
            return self._available
        try:
            self._available = bool(await self.source.check())
        except Exception as ex:
            logger.warning("Text source %s is not available: %s", self.source, ex)
            self._available = False
        return self._available

    async def load_text_batch(self, n: int = DEFAULT_BATCH_SIZE) -> None:
        """
        Fetch ``n`` more corpus lines and queue up to ``n`` new generated lines.

        Returns immediately if another load is already in flight or the
        session cap is reached. Fetch failures are logged and re-raised with
        the queue left untouched.
        """
        if self.state is QueueState.CLOSED:
            raise QueueClosedError("Cannot load texts into a closed queue")
        if self.delivered_count >= self.session_cap:
            logger.debug("Session cap of %s reached, not loading", self.session_cap)
            return
        # Checked and set before the first await, so overlapping calls
        # cannot both get past here
        if self._loading:
            logger.debug("Batch already loading from %s, skipping", self.source)
            return
        self._loading = True
        previous_state = self.state
        self.state = QueueState.LOADING
        try:
            lines = await self.source.fetch_batch(n)
        except MarkovTextError as ex:
            logger.warning("Failed to load text batch from %s: %s", self.source, ex)
            raise
        finally:
            self._loading = False
            if self.state is QueueState.LOADING:
                self.state = previous_state

        if self.state is QueueState.CLOSED:
            # Closed while the fetch was in flight
            return
        self._exhausted = self.source.exhausted
        self.corpus.extend(lines)
        self.model = build(self.corpus, self.order)
        added = self._enqueue(self._generate(n))
        self.state = QueueState.READY
        logger.info(
            "Loaded %s corpus lines (%s total), queued %s of %s generated lines",
            len(lines),
            len(self.corpus),
            added,
            n,
        )

    def _generate(self, count: int) -> List[str]:
        try:
            return generate_many(
                self.model,
                count,
                rng=self.rng,
                max_tokens=self.max_tokens,
                max_sentences=self.max_sentences,
            )
        except EmptyModelError:
            logger.info(
                "Corpus of %s lines has no lines longer than %s words yet",
                len(self.corpus),
                self.order,
            )
            return []

    def _enqueue(self, candidates: List[str]) -> int:
        seen = self.delivered.union(self._queue)
        added = 0
        for candidate in candidates:
            if len(candidate) < self.min_length or candidate in seen:
                continue
            if not is_usable_line(
                candidate,
                min_words=self.min_words,
                reject_artifacts=self.reject_artifacts,
            ):
                continue
            seen.add(candidate)
            self._queue.append(candidate)
            added += 1
        return added

    def get_next_text(self) -> Optional[str]:
        "Oldest queued line, or None if the queue is empty or the cap is reached"
        if self.delivered_count >= self.session_cap or not self._queue:
            return None
        text = self._queue.popleft()
        self.delivered.add(text)
        self.delivered_count += 1
        return text

    def has_more_texts(self) -> bool:
        if self.state is QueueState.CLOSED:
            return False
        if self.delivered_count >= self.session_cap:
            return False
        return bool(self._queue) or not self._exhausted

    async def close(self) -> None:
        self.state = QueueState.CLOSED
        self._queue.clear()
        await self.source.aclose()

    async def __aenter__(self) -> "GenerationQueue":
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        await self.close()

    def __repr__(self):
        return "<GenerationQueue state={} pending={} delivered={}/{}>".format(
            self.state.value, self.pending, self.delivered_count, self.session_cap
        )
