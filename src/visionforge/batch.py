"""
Batch Orchestrator

Drives the eligible items of a collection through a provider, one request
at a time, with per-item status tracking and failure isolation.
"""

import inspect
import logging
import time
from typing import AsyncIterator, Awaitable, Callable, List, Optional, Union

from .collection import ItemCollection
from .models import ProcessingOptions, ProgressEvent, ProviderConfig
from .normalizer import timed_adapt
from .providers import AdapterError, ProviderAdapter, create_adapter, validate_config

logger = logging.getLogger(__name__)

# Stored on failed items; the underlying error goes to the log and the progress event
ITEM_ERROR_MESSAGE = "API Error"

ProgressCallback = Callable[[ProgressEvent], Union[None, Awaitable[None]]]


class BatchOrchestrator:
    """
    Sequential batch runner.

    A run snapshots the idle/error items, then processes them strictly in
    order with a single request in flight. A failed item never aborts the
    run; it is marked "error" and becomes eligible again on the next run.
    Successful items are never re-queued.

    Usage:
        orchestrator = BatchOrchestrator()
        async for event in orchestrator.iter_run(collection, prompt, config, options):
            print(f"{event.progress:.0%}")
    """

    def __init__(
        self,
        adapter_factory: Optional[Callable[[ProviderConfig], ProviderAdapter]] = None,
    ):
        self.adapter_factory = adapter_factory or create_adapter

    async def iter_run(
        self,
        collection: ItemCollection,
        prompt: str,
        config: ProviderConfig,
        options: ProcessingOptions,
    ) -> AsyncIterator[ProgressEvent]:
        """
        Process eligible items, yielding a ProgressEvent after each one.

        Raises:
            ConfigurationError: Before any item is touched, if config is unusable
        """
        validate_config(config)

        queue = [item.id for item in collection.by_status("idle", "error")]
        if not queue:
            logger.info("No idle or failed items to process")
            return

        adapter = self.adapter_factory(config)
        logger.info(f"Starting run: {len(queue)} items via {config.provider.value} ({config.model_id})")
        start_time = time.perf_counter()
        succeeded = 0

        for completed, item_id in enumerate(queue, 1):
            item = collection.mark_pending(item_id)
            logger.debug(f"[{completed}/{len(queue)}] Processing {item.filename}")

            error = None
            try:
                result = await timed_adapt(adapter, item.image, prompt, config, options)
            except (AdapterError, OSError) as e:
                error = str(e)
                logger.warning(f"Analysis failed for {item.filename}: {e}")
                collection.mark_failed(item_id, ITEM_ERROR_MESSAGE)
            else:
                succeeded += 1
                logger.info(f"Analyzed {item.filename} in {result.inference_time_ms}ms")
                collection.mark_success(item_id, result)

            yield ProgressEvent(
                item_id=item_id,
                status=collection.get(item_id).status,
                completed=completed,
                total=len(queue),
                error=error,
            )

        elapsed = time.perf_counter() - start_time
        logger.info(f"Run finished: {succeeded}/{len(queue)} succeeded in {elapsed:.1f}s")

    async def run(
        self,
        collection: ItemCollection,
        prompt: str,
        config: ProviderConfig,
        options: ProcessingOptions,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[ProgressEvent]:
        """
        Process eligible items to completion.

        Args:
            collection: Working set, updated in place
            prompt: Captioning prompt
            config: Provider configuration
            options: Requested optional outputs
            on_progress: Called with each ProgressEvent; may be sync or async

        Returns:
            All progress events, in processing order
        """
        events = []
        async for event in self.iter_run(collection, prompt, config, options):
            events.append(event)
            if on_progress is not None:
                outcome = on_progress(event)
                if inspect.isawaitable(outcome):
                    await outcome
        return events


async def run_batch(
    collection: ItemCollection,
    prompt: str,
    config: ProviderConfig,
    options: Optional[ProcessingOptions] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> List[ProgressEvent]:
    """Run a batch with the default adapter factory. Convenience wrapper."""
    return await BatchOrchestrator().run(
        collection, prompt, config, options or ProcessingOptions(), on_progress=on_progress
    )
