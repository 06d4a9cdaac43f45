# -*- coding: utf-8 -*-
# Copyright (c) 2015-2016 Mark Spicer
# Made available under the MIT license.

import logging
import queue
import threading

logger = logging.getLogger(__name__)


class roaster_delegate(object):
    """Receives notifications from a roaster. Subclass and override what you
    need; any object with some of these methods works too.

    All methods are called from the roaster's callback thread, never from
    the thread that registered the delegate. Hand work over to your own
    thread if it has to run there.
    """
    def connected(self, state):
        """A connection attempt finished. state is sr700.CS_READY on
        success, sr700.CS_NOT_CONNECTED on failure."""

    def disconnected(self):
        """The serial link was closed, on request or because the device
        stopped answering."""

    def roaster_changed(self, temperature, time_remaining):
        """A valid telemetry packet arrived."""

    def step_completed(self, state):
        """time_remaining ran out while roasting or cooling. state is the
        step that ended; the roaster is idle now."""


class callback_dispatcher(object):
    """Runs callbacks one at a time on a thread of its own.

    The comm loop and the timer hand callbacks over here instead of calling
    them, so a callback can issue roaster commands without deadlocking the
    thread that triggered it, and a slow callback cannot stall the serial
    link.
    """
    def __init__(self, name='sr700_callbacks'):
        self._queue = queue.Queue()
        self._thread = threading.Thread(
            name=name, target=self._run, daemon=True)

    def start(self):
        self._thread.start()

    def post(self, callbacks):
        """Queues an iterable of zero-argument callables."""
        for callback in callbacks:
            self._queue.put(callback)

    def stop(self):
        """Lets the callbacks already queued run, then ends the thread."""
        self._queue.put(None)

    def join(self, timeout=None):
        self._thread.join(timeout)

    def _run(self):
        while True:
            callback = self._queue.get()
            if callback is None:
                return
            try:
                callback()
            except Exception:
                logger.exception('callback %r raised', callback)
