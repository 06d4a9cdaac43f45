# -*- coding: utf-8 -*-
# Copyright (c) 2015-2016 Mark Spicer
# Made available under the MIT license.

import datetime
import logging
import time

from sr700 import exceptions
from sr700 import heater
from sr700 import pid
from sr700 import protocol
from sr700 import utils
from sr700.session import CA_AUTO, CA_NONE

logger = logging.getLogger(__name__)

# the roaster expects a packet every quarter second
LOOP_PERIOD = 0.25
AUTO_CONNECT_RETRY = 0.25
# consecutive failures tolerated before the device is considered gone
MAX_RETRIES = 3


class comm_loop(object):
    """The main communications loop to the roaster.

    run() is meant to be the whole life of a background thread: it waits
    for connect requests, opens the transport, exchanges packets every
    LOOP_PERIOD seconds until a disconnect is requested or the device
    stops answering, closes the transport and goes back to waiting, until
    teardown.

    Args:
        session (sr700.session.session): shared roaster state.

        transport: object with open(), write(data), read(size) and
        close(), see sr700.transport.serial_transport.

        dispatch (func): takes a list of callbacks to run outside of this
        loop's thread.

        kp, ki, kd (float): PID gains for thermostat mode.

        heater_segments (int): the pseudo-control range for the internal
        heat_controller object.  Defaults to 8.
    """
    def __init__(self, session, transport, dispatch,
                 kp=0.06, ki=0.0075, kd=0.01, heater_segments=8,
                 period=LOOP_PERIOD):
        self._session = session
        self._transport = transport
        self._dispatch = dispatch
        self._kp = kp
        self._ki = ki
        self._kd = kd
        self._heater_segments = heater_segments
        self._period = period
        self._decoder = protocol.packet_decoder()
        self._pidc = None
        self._heater = None
        self.write_errors = 0
        self.read_errors = 0

    def run(self):
        logger.info('comm - started')
        while not self._session.teardown_requested:
            connect_type = self._session.take_connect_request(self._period)
            if self._session.teardown_requested:
                break
            if connect_type == CA_NONE:
                continue
            if not self._connect(connect_type):
                continue

            self.start_session()
            while not self._session.disconnect_requested:
                start = datetime.datetime.now()
                self.step()
                # calculate sleep time to stick to the loop period
                comp_time = datetime.datetime.now() - start
                sleep_duration = self._period - comp_time.total_seconds()
                if sleep_duration > 0:
                    time.sleep(sleep_duration)

            self._transport.close()
            self._dispatch(self._session.finish_disconnect())
        logger.info('comm - exiting')

    def _connect(self, connect_type):
        """Opens the transport, once for a single shot attempt, every
        AUTO_CONNECT_RETRY seconds for auto connect until it works or the
        attempt is called off. Returns True once the recipe read handshake
        has begun."""
        self._session.begin_connecting()
        while True:
            try:
                self._transport.open()
                break
            except exceptions.TransportOpenError as e:
                logger.error('comm - %s', e)
                if (connect_type != CA_AUTO or
                        self._session.disconnect_requested or
                        self._session.wait_for_teardown(AUTO_CONNECT_RETRY)):
                    self._dispatch(self._session.connect_failed())
                    return False
        self._session.begin_recipe_read(initial=True)
        return True

    def start_session(self):
        """Resets the per-connection controllers and counters."""
        self._pidc = pid.PID(self._kp, self._ki, self._kd,
                             output_min=0,
                             output_max=self._heater_segments)
        self._heater = heater.heat_controller(
            number_of_segments=self._heater_segments)
        self._decoder.reset()
        self.write_errors = 0
        self.read_errors = 0

    def step(self):
        """One loop iteration, without the pacing: write, read, update the
        heater."""
        if not self._write_to_device():
            self.write_errors += 1
            if self.write_errors > MAX_RETRIES:
                # it's time to consider the device as being "gone"
                logger.error('comm - %d successive write failures, '
                             'disconnecting.', self.write_errors)
                self._session.force_disconnect()
                return
        else:
            self.write_errors = 0

        try:
            self._read_from_device()
        except exceptions.TransportIOError as e:
            logger.error('comm - %s', e)
            self.read_errors += 1
            if self.read_errors > MAX_RETRIES:
                logger.error('comm - %d successive read failures, '
                             'disconnecting.', self.read_errors)
                self._session.force_disconnect()
                return
        else:
            self.read_errors = 0

        self._update_heater()

    def _write_to_device(self):
        packet = protocol.generate_packet(self._session.packet_fields())
        logger.debug('WR: %s', utils.hexlify(packet))
        try:
            self._transport.write(packet)
        except exceptions.TransportIOError as e:
            logger.error('comm - %s', e)
            return False
        return True

    def _read_from_device(self):
        """Reads and decodes bytes until a read times out empty."""
        received = bytearray()
        try:
            while True:
                _byte = self._transport.read(1)
                if not _byte:
                    break
                received += _byte
                # the device is answering
                self.write_errors = 0
                for body in self._decoder.feed(_byte):
                    self._dispatch(self._session.process_body(body))
        finally:
            if received:
                logger.debug('RD: %s', utils.hexlify(received))

    def _update_heater(self):
        ctl = self._session.control_fields()
        if not ctl.ready:
            return
        if not (ctl.thermostat or ctl.ext_sw_heater_drive):
            return
        if not ctl.roasting:
            # for all other states, heat_level = OFF
            self._heater.heat_level = 0
            self._session.heater_off()
            return
        if self._heater.about_to_rollover():
            # time to pick up a new heat level for the next window
            if ctl.ext_sw_heater_drive:
                self._heater.heat_level = ctl.heater_level
            else:
                output = self._pidc.update(
                    ctl.current_temp, ctl.target_temp)
                logger.debug('pid - current %d, target %d, output %.2f',
                             ctl.current_temp, ctl.target_temp, output)
                self._heater.heat_level = output
        level = self._heater.heat_level
        self._session.apply_bangbang(
            level, self._heater.generate_bangbang_output())
