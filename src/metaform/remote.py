"""
Remote (asynchronous) validation.

A REMOTE validator posts the current answer to a URL and expects a JSON
verdict back:

    POST <url>    {"check": "<answer>"}
    200           {"valid": true}

Anything else (transport error, timeout, non-2xx status, undecodable body,
wrong shape) means "no result": the control keeps whatever validity it had.

Checks run on a small thread pool so the caller never blocks. Each
(control, validator) pair owns a single slot; submitting a new check for a
slot supersedes the previous one. A superseded check is cancelled if it has
not started, and its result is discarded if it has, so at most one of two
rapid checks for the same validator is ever applied.

Different validators on the same control have no ordering between them:
whichever response arrives last decides the final state.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Dict, Hashable, Optional, Set

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
DEFAULT_WORKERS = 4


class RemoteValidationClient:
    """Thin httpx wrapper performing a single validation round trip."""

    def __init__(self, client: Optional[httpx.Client] = None, timeout: float = DEFAULT_TIMEOUT):
        self._owns_client = client is None
        self._client = client or httpx.Client()
        self.timeout = timeout

    def check(self, url: str, value: str) -> Optional[bool]:
        """Return the service's verdict, or None when there is no usable answer."""
        try:
            response = self._client.post(
                url,
                json={"check": value},
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as e:
            logger.warning("Remote validation timed out for %s: %s", url, e)
            return None
        except httpx.HTTPError as e:
            logger.warning("Remote validation failed for %s: %s", url, e)
            return None
        except ValueError as e:
            logger.warning("Remote validation returned invalid JSON from %s: %s", url, e)
            return None

        if not isinstance(payload, dict) or not isinstance(payload.get("valid"), bool):
            logger.warning("Unexpected remote validation response from %s: %r", url, payload)
            return None

        logger.debug("Got %r from %s", payload, url)
        return payload["valid"]

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


@dataclass
class _Slot:
    generation: int
    future: Future


ResultCallback = Callable[[bool], None]


class AsyncValidationRunner:
    """
    Runs remote checks in the background, one live check per slot key.

    on_result callbacks run on a worker thread while the runner's lock is
    held, so a result is either applied completely or not at all.
    """

    def __init__(self, client: Optional[RemoteValidationClient] = None,
                 max_workers: int = DEFAULT_WORKERS):
        self.client = client or RemoteValidationClient()
        self._executor = ThreadPoolExecutor(max_workers=max_workers,
                                            thread_name_prefix="metaform-remote")
        self._lock = threading.RLock()
        self._slots: Dict[Hashable, _Slot] = {}
        self._outstanding: Set[Future] = set()

    def submit(self, key: Hashable, url: str, value: str, on_result: ResultCallback) -> Future:
        with self._lock:
            previous = self._slots.get(key)
            generation = 1
            if previous is not None:
                generation = previous.generation + 1
                if previous.future.cancel():
                    logger.debug("Cancelled queued check for %s", key)

            future = self._executor.submit(self._run, key, generation, url, value, on_result)
            self._slots[key] = _Slot(generation=generation, future=future)
            self._outstanding.add(future)
        future.add_done_callback(self._forget)
        return future

    def _run(self, key: Hashable, generation: int, url: str, value: str,
             on_result: ResultCallback) -> Optional[bool]:
        result = self.client.check(url, value)
        if result is None:
            return None

        with self._lock:
            slot = self._slots.get(key)
            if slot is None or slot.generation != generation:
                logger.debug("Discarding superseded result for %s", key)
                return None
            on_result(result)
        return result

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._outstanding.discard(future)

    def is_current(self, key: Hashable, future: Future) -> bool:
        with self._lock:
            slot = self._slots.get(key)
            return slot is not None and slot.future is future

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until every submitted check has finished. True if none are left running."""
        with self._lock:
            futures = list(self._outstanding)
        _, not_done = wait(futures, timeout=timeout)
        return not not_done

    def close(self) -> None:
        self._executor.shutdown(wait=True)
        self.client.close()
