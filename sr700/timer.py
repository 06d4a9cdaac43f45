# -*- coding: utf-8 -*-
# Copyright (c) 2015-2016 Mark Spicer
# Made available under the MIT license.

import logging

logger = logging.getLogger(__name__)


class roast_timer(object):
    """Timer loop used to keep track of the time while roasting or
    cooling. Counts only while the session's timer_enabled event is set,
    that is from the end of the connection handshake until a disconnect.

    Args:
        session (sr700.session.session): shared roaster state.

        dispatch (func): takes the list of callbacks a tick produced.

        interval (float): seconds per tick. Defaults to 1.
    """
    def __init__(self, session, dispatch, interval=1.0):
        self._session = session
        self._dispatch = dispatch
        self._interval = interval

    def run(self):
        while not self._session.teardown_requested:
            if not self._session.timer_enabled.wait(0.25):
                continue
            if self._session.wait_for_teardown(self._interval):
                break
            # disconnected while we waited
            if not self._session.timer_enabled.is_set():
                continue
            self._dispatch(self._session.tick())
        logger.debug('timer - exiting')
