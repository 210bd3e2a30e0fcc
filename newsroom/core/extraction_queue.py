"""Rate-limited two-phase extraction and summarization queue.

Phase 1 (article extraction) runs strictly one item at a time with a fixed
delay between items, because the extraction service enforces a request-rate
ceiling. Phase 2 (summarization) for an item starts as soon as its text is
available and runs in the background, so it overlaps with phase 1 of the
following items.

All state is owned by one drain task running on the event loop. ``enqueue``,
``pause`` and ``resume`` only touch that state from the same loop, so no lock
is needed.
"""

import asyncio
import inspect
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Deque, List, Optional, Set

from newsroom.clients.errors import ExtractionError
from newsroom.core.interfaces import ArticleExtractor, ArticleStore
from newsroom.models.extraction import (
    ExtractedArticle,
    ExtractionItem,
    ExtractionState,
)

logger = logging.getLogger(__name__)

FAILED_EXTRACTION_TEXT = "Failed to extract article text."
DEFAULT_EXTRACTION_DELAY = 2.0

Listener = Callable[[], Any]


@dataclass
class ExtractionCallbacks:
    """Per-item notifications, fired in this order exactly once each.

    Callbacks may be plain functions or coroutine functions. A failed
    extraction delivers ``FAILED_EXTRACTION_TEXT`` to ``on_text_extracted`` and
    an empty summary to ``on_summary_complete``; an empty summary always means
    the article could not be summarized.
    """

    on_extraction_started: Optional[Callable[[], Any]] = None
    on_text_extracted: Optional[Callable[[str], Any]] = None
    on_summary_complete: Optional[Callable[[str, str], Any]] = None


@dataclass(frozen=True)
class QueueSnapshot:
    """Point-in-time view of the queue for status displays."""

    paused: bool
    active_extraction: bool
    in_flight: int
    pending_urls: List[str]
    draining: bool


@dataclass
class _QueueEntry:
    item: ExtractionItem
    callbacks: ExtractionCallbacks = field(default_factory=ExtractionCallbacks)
    done: Optional[asyncio.Future] = None
    restore_pause: bool = False
    resume_generation: int = 0


class ExtractionQueue:
    """Ordered backlog of URLs driven through extraction then summarization.

    One instance belongs to one editing session: create it when the session
    starts and ``close()`` it when the session ends. State is in memory only.
    """

    def __init__(
        self,
        extractor: ArticleExtractor,
        summarize: Callable[[str], Awaitable[str]],
        store: Optional[ArticleStore] = None,
        delay: float = DEFAULT_EXTRACTION_DELAY,
    ):
        """Initialize the queue.

        Args:
            extractor: Phase 1 extraction service
            summarize: Phase 2 coroutine turning article text into a summary
            store: Optional sink receiving each extracted, summarized article
            delay: Seconds to wait between consecutive extractions
        """
        self.extractor = extractor
        self.summarize = summarize
        self.store = store
        self.delay = delay

        self._backlog: Deque[_QueueEntry] = deque()
        self._items: List[ExtractionItem] = []
        self._paused = False
        self._active_extraction = False
        self._in_flight = 0
        self._wakeup = asyncio.Event()
        self._drain_task: Optional[asyncio.Task] = None
        self._summary_tasks: Set[asyncio.Task] = set()
        self._pending: Set[asyncio.Future] = set()
        self._resume_listeners: List[Listener] = []
        self._idle_listeners: List[Listener] = []
        self._closed = False
        self._last_extraction_at: Optional[float] = None
        self._resume_generation = 0

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def active_extraction(self) -> bool:
        """True while an extraction request is in flight."""
        return self._active_extraction

    @property
    def in_flight(self) -> int:
        """Items taken from the backlog whose summary has not completed."""
        return self._in_flight

    @property
    def pending(self) -> int:
        """Items still waiting in the backlog."""
        return len(self._backlog)

    @property
    def is_draining(self) -> bool:
        return self._drain_task is not None and not self._drain_task.done()

    @property
    def items(self) -> List[ExtractionItem]:
        """Every item enqueued during this session, in enqueue order."""
        return list(self._items)

    def snapshot(self) -> QueueSnapshot:
        return QueueSnapshot(
            paused=self._paused,
            active_extraction=self._active_extraction,
            in_flight=self._in_flight,
            pending_urls=[entry.item.source_url for entry in self._backlog],
            draining=self.is_draining,
        )

    def enqueue(
        self, url: str, callbacks: Optional[ExtractionCallbacks] = None
    ) -> ExtractionItem:
        """Append ``url`` to the backlog and start draining if idle.

        The queue does not deduplicate: callers must not enqueue a URL that is
        already queued, in flight or done. Must be called from a running loop.
        """
        return self._add(url, callbacks).item

    def enqueue_immediate(
        self, url: str, callbacks: Optional[ExtractionCallbacks] = None
    ) -> "asyncio.Future[ExtractionItem]":
        """Run ``url`` next, even while the queue is paused.

        The item goes to the head of the backlog and pause is lifted while it
        runs. When it finishes, a queue that was paused is paused again, but
        only if the backlog is empty and nobody called ``resume()`` in the
        meantime; otherwise the queue stays running and drains the backlog.
        The returned future resolves with the item after its
        ``on_summary_complete`` callback has fired.
        """
        done = asyncio.get_running_loop().create_future()
        was_paused = self._paused
        self._paused = False
        entry = self._add(url, callbacks, immediate=True, done=done)
        entry.restore_pause = was_paused
        entry.resume_generation = self._resume_generation
        return done

    def pause(self) -> None:
        """Stop starting new extractions. Work already in flight continues."""
        if not self._paused:
            logger.info("Extraction queue paused")
        self._paused = True

    def resume(self) -> None:
        """Resume extraction and notify the resume listeners."""
        was_paused = self._paused
        self._paused = False
        self._resume_generation += 1
        self._wakeup.set()
        if was_paused:
            logger.info(f"Extraction queue resumed with {len(self._backlog)} pending")
            for listener in list(self._resume_listeners):
                self._call_listener(listener, "resume")

    def add_resume_listener(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for resume events. Returns an unsubscribe."""
        self._resume_listeners.append(listener)
        return lambda: self._remove(self._resume_listeners, listener)

    def add_idle_listener(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for the once-per-drain all-complete event."""
        self._idle_listeners.append(listener)
        return lambda: self._remove(self._idle_listeners, listener)

    async def wait_idle(self) -> None:
        """Wait until the current drain, if any, has fully completed."""
        while self._drain_task is not None and not self._drain_task.done():
            await asyncio.wait({self._drain_task})

    async def close(self) -> None:
        """Cancel outstanding work and refuse further items."""
        self._closed = True
        self._backlog.clear()

        tasks = [
            task
            for task in (self._drain_task, *self._summary_tasks)
            if task is not None and not task.done()
        ]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        for future in list(self._pending):
            future.cancel()
        self._pending.clear()
        logger.debug("Extraction queue closed")

    async def __aenter__(self) -> "ExtractionQueue":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _add(
        self,
        url: str,
        callbacks: Optional[ExtractionCallbacks],
        immediate: bool = False,
        done: Optional[asyncio.Future] = None,
    ) -> _QueueEntry:
        if self._closed:
            raise RuntimeError("Extraction queue is closed")

        item = ExtractionItem(source_url=url, bypass_pause=immediate)
        entry = _QueueEntry(item, callbacks or ExtractionCallbacks(), done)
        if immediate:
            self._backlog.appendleft(entry)
        else:
            self._backlog.append(entry)
        if done is not None:
            self._pending.add(done)
        self._items.append(item)
        self._wakeup.set()

        if not self.is_draining:
            self._drain_task = asyncio.get_running_loop().create_task(self._drain())
        return entry

    async def _drain(self) -> None:
        logger.debug(f"Extraction queue draining {len(self._backlog)} items")
        loop = asyncio.get_running_loop()
        while True:
            while self._backlog:
                if self._last_extraction_at is not None:
                    remaining = self.delay - (loop.time() - self._last_extraction_at)
                    if remaining > 0:
                        await asyncio.sleep(remaining)
                await self._wait_until_runnable()
                entry = self._backlog.popleft()
                await self._extract(entry)
                self._last_extraction_at = loop.time()

            if not self._summary_tasks:
                break
            # Wake on the next finished summary or newly enqueued item.
            self._wakeup.clear()
            waiter = loop.create_task(self._wakeup.wait())
            try:
                await asyncio.wait(
                    {waiter, *self._summary_tasks},
                    return_when=asyncio.FIRST_COMPLETED,
                )
            finally:
                waiter.cancel()

        logger.info("Extraction queue idle")
        for listener in list(self._idle_listeners):
            self._call_listener(listener, "idle")

        # A listener may have enqueued more work while this task was finishing.
        if self._backlog and not self._closed:
            self._drain_task = asyncio.get_running_loop().create_task(self._drain())

    async def _wait_until_runnable(self) -> None:
        while self._paused and not self._backlog[0].item.bypass_pause:
            self._wakeup.clear()
            await self._wakeup.wait()

    async def _extract(self, entry: _QueueEntry) -> None:
        item = entry.item
        self._active_extraction = True
        self._in_flight += 1
        try:
            item.state = ExtractionState.EXTRACTING
            await self._fire(entry.callbacks.on_extraction_started)

            try:
                article = await self.extractor.extract(item.source_url)
                if not article.text.strip():
                    raise ExtractionError("No text was extracted.", url=item.source_url)
            except Exception as e:
                logger.warning(f"Extraction failed for {item.source_url}: {e}")
                item.state = ExtractionState.FAILED
                item.error = str(e)
                item.extracted_text = FAILED_EXTRACTION_TEXT
                item.summary = ""
                await self._fire(entry.callbacks.on_text_extracted, FAILED_EXTRACTION_TEXT)
                await self._fire(
                    entry.callbacks.on_summary_complete, "", FAILED_EXTRACTION_TEXT
                )
                self._finish(entry)
                return

            item.extracted_text = article.text
            item.state = ExtractionState.TEXT_READY
            await self._fire(entry.callbacks.on_text_extracted, article.text)

            item.state = ExtractionState.SUMMARIZING
            task = asyncio.get_running_loop().create_task(
                self._summarize(entry, article)
            )
            self._summary_tasks.add(task)
            task.add_done_callback(self._summary_tasks.discard)
        finally:
            self._active_extraction = False

    async def _summarize(self, entry: _QueueEntry, article: ExtractedArticle) -> None:
        item = entry.item
        try:
            summary = (await self.summarize(article.text) or "").strip()
            item.state = ExtractionState.DONE
        except Exception as e:
            logger.warning(f"Summarization failed for {item.source_url}: {e}")
            summary = ""
            item.error = str(e)
            item.state = ExtractionState.FAILED

        item.summary = summary
        await self._fire(entry.callbacks.on_summary_complete, summary, article.text)

        if self.store is not None:
            await self._store(article.model_copy(update={"summary": summary}))
        self._finish(entry)

    async def _store(self, article: ExtractedArticle) -> None:
        try:
            result = await self.store.store_if_absent(article)
            logger.debug(f"Stored {article.resolved_url}: {result.value}")
        except Exception as e:
            logger.error(f"Failed to store {article.resolved_url}: {e}")

    def _finish(self, entry: _QueueEntry) -> None:
        self._in_flight -= 1
        if (
            entry.restore_pause
            and not self._backlog
            and entry.resume_generation == self._resume_generation
        ):
            logger.debug(f"Restoring pause after immediate item {entry.item.source_url}")
            self._paused = True
        if entry.done is not None:
            self._pending.discard(entry.done)
            if not entry.done.done():
                entry.done.set_result(entry.item)

    @staticmethod
    async def _fire(callback: Optional[Callable[..., Any]], *args: Any) -> None:
        if callback is None:
            return
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Extraction callback {getattr(callback, '__name__', callback)} failed: {e}")

    @staticmethod
    def _call_listener(listener: Listener, event: str) -> None:
        try:
            listener()
        except Exception as e:
            logger.error(f"Extraction queue {event} listener failed: {e}")

    @staticmethod
    def _remove(listeners: List[Listener], listener: Listener) -> None:
        if listener in listeners:
            listeners.remove(listener)
