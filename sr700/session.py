# -*- coding: utf-8 -*-
# Copyright (c) 2015-2016 Mark Spicer
# Made available under the MIT license.
"""Roaster state shared by the caller, the comm loop and the timer.

Every field of a session is read and written with ``session.lock`` held,
and no method holds it while running user code. The comm loop takes one
snapshot per phase of an iteration (``packet_fields()`` before writing,
``control_fields()`` before the heater update), so fan speed, heat setting
and state code always go out together.

Methods that have someone to notify return a list of zero-argument
callables instead of calling them. Whoever called the method posts that
list to the callback dispatcher once the lock is released, so a callback
sees every state change that led to it.
"""

import collections
import functools
import logging
import threading

from sr700 import exceptions
from sr700 import protocol

logger = logging.getLogger(__name__)

# connection states
CS_NOT_CONNECTED = -2
CS_ATTEMPTING_CONNECT = -1
CS_CONNECTING = 0
CS_READING_RECIPE = 1
CS_READY = 2

# connection attempt types
CA_NONE = 0
CA_AUTO = 1
CA_SINGLE_SHOT = 2

control_fields = collections.namedtuple(
    'control_fields',
    ['ready', 'roasting', 'thermostat', 'ext_sw_heater_drive',
     'current_temp', 'target_temp', 'heater_level'])


def is_integer(value):
    return isinstance(value, int) and not isinstance(value, bool)


def validate_fan_speed(value):
    if not is_integer(value) or not 0 <= value <= 9:
        raise exceptions.RoasterValueError(
            'fan speed must be 0 to 9, got %r' % (value,))


def validate_heat_setting(value):
    if not is_integer(value) or not 0 <= value <= 3:
        raise exceptions.RoasterValueError(
            'heat setting must be 0 to 3, got %r' % (value,))


def validate_target_temp(value):
    if not is_integer(value) or not (
            protocol.MIN_TEMPERATURE <= value <= protocol.MAX_TEMPERATURE):
        raise exceptions.RoasterValueError(
            'target temperature must be 150 to 550, got %r' % (value,))


def validate_time_remaining(value):
    if not is_integer(value) or value < 0:
        raise exceptions.RoasterValueError(
            'time remaining must be a positive number of seconds, got %r' %
            (value,))


class session(object):
    """The state machine behind sr700.roaster.

    Args:
        delegate: observer notified of connection and telemetry changes,
        see sr700.events.roaster_delegate. Defaults to None.

        thermostat (bool): start in thermostat mode. Defaults to False.

        ext_sw_heater_drive (bool): the caller sets heater_level directly
        and the bang-bang heater follows it. Overrides thermostat.
        Defaults to False.

        heater_segments (int): range of heater_level. Defaults to 8.
    """
    def __init__(self, delegate=None, thermostat=False,
                 ext_sw_heater_drive=False, heater_segments=8):
        self.lock = threading.RLock()
        self.delegate = delegate
        self.heater_segments = heater_segments
        self._ext_sw_heater_drive = ext_sw_heater_drive
        self._thermostat = thermostat and not ext_sw_heater_drive

        self._state = protocol.IDLE
        self._fan_speed = 0
        self._heat_setting = protocol.HEAT_NONE
        self._target_temp = 150
        self._current_temp = 150
        self._time_remaining = 0
        self._total_time = 0
        self._heater_level = 0

        self._connect_state = CS_NOT_CONNECTED
        self._connect_type = CA_NONE
        self._initial_recipe_read = False
        self._disconnect = False

        self._connect_callback = None
        self._roast_callback = None
        self._cool_callback = None

        # wakes the comm loop out of its idle spin
        self._wake = threading.Event()
        self._teardown = threading.Event()
        # set while the roast timer may count down
        self.timer_enabled = threading.Event()

    # setpoints

    @property
    def fan_speed(self):
        with self.lock:
            return self._fan_speed

    @fan_speed.setter
    def fan_speed(self, value):
        validate_fan_speed(value)
        with self.lock:
            self._fan_speed = value

    @property
    def heat_setting(self):
        with self.lock:
            return self._heat_setting

    @heat_setting.setter
    def heat_setting(self, value):
        validate_heat_setting(value)
        with self.lock:
            self._heat_setting = value

    @property
    def target_temp(self):
        with self.lock:
            return self._target_temp

    @target_temp.setter
    def target_temp(self, value):
        validate_target_temp(value)
        with self.lock:
            self._target_temp = value

    @property
    def time_remaining(self):
        with self.lock:
            return self._time_remaining

    @time_remaining.setter
    def time_remaining(self, value):
        validate_time_remaining(value)
        with self.lock:
            self._time_remaining = value

    @property
    def heater_level(self):
        with self.lock:
            return self._heater_level

    @heater_level.setter
    def heater_level(self, value):
        with self.lock:
            if not self._ext_sw_heater_drive:
                raise exceptions.RoasterStateError(
                    'heater_level can only be set with ext_sw_heater_drive')
            if not is_integer(value) or \
                    not 0 <= value <= self.heater_segments:
                raise exceptions.RoasterValueError(
                    'heater level must be 0 to %d, got %r' %
                    (self.heater_segments, value))
            self._heater_level = value

    @property
    def current_temp(self):
        with self.lock:
            return self._current_temp

    @property
    def total_time(self):
        with self.lock:
            return self._total_time

    @property
    def thermostat(self):
        with self.lock:
            return self._thermostat

    @property
    def ext_sw_heater_drive(self):
        return self._ext_sw_heater_drive

    @property
    def state(self):
        with self.lock:
            return self._state

    @property
    def connect_state(self):
        with self.lock:
            return self._connect_state

    @property
    def connected(self):
        with self.lock:
            return self._connect_state == CS_READY

    def get_roaster_state(self):
        """Returns 'idle', 'roasting', 'cooling', 'sleeping', or 'connecting'
        while the roaster replays its stored recipe."""
        with self.lock:
            if self._connect_state == CS_READING_RECIPE:
                return 'connecting'
            return self._state

    # caller commands

    def start_connect(self, connect_type, callback=None):
        """Asks the comm loop to connect. Returns False, and changes nothing,
        unless the session is currently not connected."""
        with self.lock:
            if self._connect_state != CS_NOT_CONNECTED:
                return False
            self._connect_state = CS_ATTEMPTING_CONNECT
            self._connect_type = connect_type
            self._connect_callback = callback
            self._disconnect = False
        self._wake.set()
        return True

    def roast(self, heat_setting=None, fan_speed=None, time_remaining=None,
              target_temp=None, callback=None):
        if heat_setting is not None and target_temp is not None:
            raise exceptions.RoasterValueError(
                'roast takes a heat setting or a target temperature, '
                'not both')
        if heat_setting is not None:
            validate_heat_setting(heat_setting)
        if target_temp is not None:
            validate_target_temp(target_temp)
        self._validate_step(fan_speed, time_remaining)
        with self.lock:
            if heat_setting is not None:
                self._heat_setting = heat_setting
                self._thermostat = False
            if target_temp is not None:
                self._target_temp = target_temp
                self._thermostat = not self._ext_sw_heater_drive
            self._apply_step(protocol.ROASTING, fan_speed, time_remaining)
            self._roast_callback = callback
            self._cool_callback = None

    def cool(self, fan_speed=None, time_remaining=None, callback=None):
        self._validate_step(fan_speed, time_remaining)
        with self.lock:
            self._apply_step(protocol.COOLING, fan_speed, time_remaining)
            self._cool_callback = callback
            self._roast_callback = None

    def idle(self):
        with self.lock:
            self._idle()

    def sleep(self):
        with self.lock:
            self._set_state(protocol.SLEEPING)

    def request_disconnect(self):
        """Stops the timer, puts the roaster to sleep and tells the comm loop
        to close the port."""
        events = []
        with self.lock:
            self.timer_enabled.clear()
            self._set_state(protocol.SLEEPING)
            if self._connect_type != CA_NONE:
                # the comm loop never picked the request up
                self._connect_type = CA_NONE
                self._connect_state = CS_NOT_CONNECTED
                events += self._take_connect_callback(CS_NOT_CONNECTED)
            elif self._connect_state != CS_NOT_CONNECTED:
                self._disconnect = True
        return events

    def request_teardown(self):
        """Makes the comm loop and the timer exit. Disconnect first."""
        self._teardown.set()
        self._wake.set()

    # comm loop side

    @property
    def disconnect_requested(self):
        with self.lock:
            return self._disconnect

    @property
    def teardown_requested(self):
        return self._teardown.is_set()

    def wait_for_teardown(self, timeout):
        """Returns True if teardown was requested within timeout seconds."""
        return self._teardown.wait(timeout)

    def take_connect_request(self, timeout):
        """Waits up to timeout seconds for a connect request and returns its
        type, CA_NONE if there was none."""
        self._wake.wait(timeout)
        with self.lock:
            self._wake.clear()
            connect_type = self._connect_type
            self._connect_type = CA_NONE
            return connect_type

    def force_disconnect(self):
        with self.lock:
            self._disconnect = True

    def begin_connecting(self):
        with self.lock:
            self._connect_state = CS_CONNECTING

    def connect_failed(self):
        with self.lock:
            self._connect_state = CS_NOT_CONNECTED
            self._disconnect = False
            events = self._take_connect_callback(CS_NOT_CONNECTED)
            events += self._notify('connected', CS_NOT_CONNECTED)
        logger.info('connection attempt failed')
        return events

    def begin_recipe_read(self, initial=True):
        """Switches to the recipe read handshake: init header and a zeroed
        state code go out until the roaster finishes replaying its stored
        recipe. A fresh connection also starts from idle."""
        with self.lock:
            self._connect_state = CS_READING_RECIPE
            self._initial_recipe_read = initial
            if initial:
                self._idle()
        logger.info('reading stored recipe')

    def finish_disconnect(self):
        """Called by the comm loop once the port is closed."""
        with self.lock:
            self._connect_state = CS_NOT_CONNECTED
            self._disconnect = False
            self.timer_enabled.clear()
            # still pending if the handshake never completed
            events = self._take_connect_callback(CS_NOT_CONNECTED)
            events += self._notify('disconnected')
        logger.info('disconnected')
        return events

    def packet_fields(self):
        with self.lock:
            if self._connect_state == CS_READING_RECIPE:
                header = protocol.INIT_HEADER
                state_code = protocol.CONNECTING_STATE_CODE
            else:
                header = protocol.HEADER
                state_code = protocol.STATE_CODES[self._state]
            return protocol.packet_fields(
                header=header,
                state_code=state_code,
                fan_speed=self._fan_speed,
                time_remaining=self._time_remaining,
                heat_setting=self._heat_setting)

    def control_fields(self):
        with self.lock:
            return control_fields(
                ready=self._connect_state == CS_READY,
                roasting=self._state == protocol.ROASTING,
                thermostat=self._thermostat,
                ext_sw_heater_drive=self._ext_sw_heater_drive,
                current_temp=self._current_temp,
                target_temp=self._target_temp,
                heater_level=self._heater_level)

    def process_body(self, body):
        """Applies a decoded packet body from the roaster.

        Raises:
            ProtocolFramingError: body is not 10 bytes long.
        """
        fields = protocol.parse_body(body)
        with self.lock:
            if self._connect_state == CS_READING_RECIPE:
                if fields.recipe_marker in protocol.END_OF_RECIPE:
                    return self._handle_init_completion()
                return []
            try:
                temp = protocol.decode_temperature(fields.temperature)
            except exceptions.OutOfRangeTelemetryError as e:
                logger.warning('%s: reinitializing...', e)
                self._connect_state = CS_READING_RECIPE
                self._initial_recipe_read = False
                return []
            self._current_temp = temp
            return self._notify(
                'roaster_changed', temp, self._time_remaining)

    def apply_bangbang(self, level, on):
        """Sets the heat setting from one bang-bang output while roasting
        under software heater control."""
        with self.lock:
            if not self._bangbang_active() or \
                    self._state != protocol.ROASTING:
                return
            self._heat_setting = (
                protocol.HEAT_HIGH if on else protocol.HEAT_NONE)
            if not self._ext_sw_heater_drive:
                self._heater_level = level

    def heater_off(self):
        with self.lock:
            if not self._bangbang_active():
                return
            self._heater_level = 0
            self._heat_setting = protocol.HEAT_NONE

    # timer side

    def tick(self):
        """One second passed. Counts time while roasting or cooling and
        goes idle, firing the step's callback, once time has run out."""
        with self.lock:
            state = self._state
            if state not in (protocol.ROASTING, protocol.COOLING):
                return []
            self._total_time += 1
            if self._time_remaining > 0:
                self._time_remaining -= 1
                return []
            if state == protocol.ROASTING:
                callback = self._roast_callback
            else:
                callback = self._cool_callback
            logger.info('time remaining expired, total time %d',
                        self._total_time)
            self._idle()
            events = [callback] if callback is not None else []
            events += self._notify('step_completed', state)
        return events

    # internals, call with the lock held

    def _set_state(self, state):
        self._state = state
        if state == protocol.IDLE:
            self._heat_setting = protocol.HEAT_NONE
        logger.info('set state to %s', state)

    def _idle(self):
        self._set_state(protocol.IDLE)
        self._fan_speed = 0
        self._roast_callback = None
        self._cool_callback = None

    def _validate_step(self, fan_speed, time_remaining):
        if fan_speed is not None:
            validate_fan_speed(fan_speed)
        if time_remaining is not None:
            validate_time_remaining(time_remaining)

    def _apply_step(self, state, fan_speed, time_remaining):
        if fan_speed is not None:
            self._fan_speed = fan_speed
        if time_remaining is not None:
            self._time_remaining = time_remaining
        self._set_state(state)

    def _bangbang_active(self):
        return self._thermostat or self._ext_sw_heater_drive

    def _handle_init_completion(self):
        self._connect_state = CS_READY
        self.timer_enabled.set()
        if not self._initial_recipe_read:
            logger.info('recipe read again, resuming')
            return []
        logger.info('read end of recipe, we are now fully connected')
        events = self._take_connect_callback(CS_READY)
        events += self._notify('connected', CS_READY)
        return events

    def _take_connect_callback(self, result):
        callback = self._connect_callback
        self._connect_callback = None
        if callback is None:
            return []
        return [functools.partial(callback, result)]

    def _notify(self, name, *args):
        method = getattr(self.delegate, name, None)
        if method is None:
            return []
        return [functools.partial(method, *args)]
