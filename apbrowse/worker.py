# apbrowse/worker.py
"""
Background fetching.

The event loop must never block on the network, so each FetchCommand runs
on its own daemon thread. The outcome is delivered back as an event; the
thread never touches NavigationState.
"""

import logging
import threading
from typing import Callable

from .errors import NavigationError
from .fetch import FetchPipeline
from .navigation import Event, FetchCommand, FetchCompleted, FetchFailed

logger = logging.getLogger(__name__)


class FetchWorker:
    """
    Runs fetches off the event loop.

    Args:
        pipeline: Pipeline performing the signed request
        deliver: Called from the worker thread with the completion event,
            typically queue.Queue.put
    """

    def __init__(self, pipeline: FetchPipeline, deliver: Callable[[Event], None]):
        self.pipeline = pipeline
        self.deliver = deliver

    def run(self, command: FetchCommand) -> Event:
        """Perform the fetch synchronously and return its completion event."""
        try:
            result = self.pipeline.fetch(command.uri)
        except NavigationError as e:
            return FetchFailed(generation=command.generation, uri=command.uri, error=e)
        except Exception as e:
            logger.exception(f"Unexpected failure fetching {command.uri}")
            return FetchFailed(generation=command.generation, uri=command.uri, error=e)
        return FetchCompleted(generation=command.generation, uri=command.uri, result=result)

    def submit(self, command: FetchCommand) -> threading.Thread:
        """Start the fetch in a background thread."""
        thread = threading.Thread(
            target=lambda: self.deliver(self.run(command)),
            name=f"fetch-{command.generation}",
        )
        thread.daemon = True
        thread.start()
        return thread
