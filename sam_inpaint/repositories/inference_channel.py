# repositories/inference_channel.py
from __future__ import annotations
import queue
from typing import Any, Dict, Optional, Protocol


class InferenceChannel(Protocol):
    """
    Transport to the inference worker. Requests go out through post_message;
    responses come back asynchronously and are fed to
    InferenceService.handle_response by whoever owns the transport.
    """

    def post_message(self, message: Dict[str, Any]) -> None:
        ...


class QueueChannel:
    """
    Thread-friendly channel: requests land on *outbox* for a worker thread,
    the worker puts responses on *inbox*.
    """

    def __init__(self, maxsize: int = 0) -> None:
        self.outbox: "queue.Queue[Dict[str, Any]]" = queue.Queue(maxsize)
        self.inbox: "queue.Queue[Dict[str, Any]]" = queue.Queue(maxsize)

    def post_message(self, message: Dict[str, Any]) -> None:
        self.outbox.put(message)

    def reply(self, message: Dict[str, Any]) -> None:
        self.inbox.put(message)

    def next_response(self, timeout: Optional[float] = None) -> Dict[str, Any]:
        """Block until the worker replies. Raises queue.Empty on timeout."""
        return self.inbox.get(timeout=timeout)
