# -*- coding: utf-8 -*-
# Copyright (c) 2015-2016 Mark Spicer
# Made available under the MIT license.

import functools
import logging
import threading

from sr700 import comm
from sr700 import events
from sr700 import session
from sr700 import timer
from sr700.events import roaster_delegate
from sr700.heater import heat_controller
from sr700.protocol import (
    IDLE, ROASTING, COOLING, SLEEPING,
    HEAT_NONE, HEAT_LOW, HEAT_MEDIUM, HEAT_HIGH)
from sr700.session import (
    CS_NOT_CONNECTED, CS_ATTEMPTING_CONNECT, CS_CONNECTING,
    CS_READING_RECIPE, CS_READY)
from sr700.transport import DEFAULT_PORT, serial_transport
from sr700.version import __version__

logger = logging.getLogger(__name__)

__all__ = [
    'roaster', 'roaster_delegate', 'heat_controller', 'serial_transport',
    'IDLE', 'ROASTING', 'COOLING', 'SLEEPING',
    'HEAT_NONE', 'HEAT_LOW', 'HEAT_MEDIUM', 'HEAT_HIGH',
    'CS_NOT_CONNECTED', 'CS_ATTEMPTING_CONNECT', 'CS_CONNECTING',
    'CS_READING_RECIPE', 'CS_READY', '__version__',
]


class roaster(object):
    """A class to interface with a FreshRoast SR700 coffee roaster.

    Creating a roaster starts three daemon threads: the comm loop, which
    talks to the hardware, the timer, which counts time_remaining down
    while roasting or cooling, and the callback thread. Every callback
    given to this class, and every delegate method, runs on the callback
    thread, one at a time. Callbacks may call back into the roaster.

    Args:
        delegate: an object notified of connection changes, new telemetry
        and completed steps. See sr700.roaster_delegate. Defaults to None.

        thermostat (bool): thermostat mode.
        if set to True, turns on thermostat mode.  In thermostat
        mode, the roaster takes control of heat_setting and does
        software PID control to hit the demanded target_temp. roast() with
        a target_temp or a heat_setting switches modes later on. Defaults
        to False.

        ext_sw_heater_drive (bool): enable direct control over the internal
        heat_controller object through heater_level. When True, thermostat
        is ignored. Defaults to False.

        kp (float): Kp value to use for PID control. Defaults to 0.06.

        ki (float): Ki value to use for PID control. Defaults to 0.0075.

        kd (float): Kd value to use for PID control. Defaults to 0.01.

        heater_segments (int): the pseudo-control range for the internal
        heat_controller object.  Defaults to 8.

        port (str): serial device of the roaster. Defaults to /dev/ttyUSB0.

        transport: replaces the serial transport built from port, mostly
        for testing. See sr700.serial_transport for the interface.
    """
    CS_NOT_CONNECTED = CS_NOT_CONNECTED
    CS_ATTEMPTING_CONNECT = CS_ATTEMPTING_CONNECT
    CS_CONNECTING = CS_CONNECTING
    CS_READING_RECIPE = CS_READING_RECIPE
    CS_READY = CS_READY

    def __init__(self,
                 delegate=None,
                 thermostat=False,
                 ext_sw_heater_drive=False,
                 kp=0.06, ki=0.0075, kd=0.01,
                 heater_segments=8,
                 port=DEFAULT_PORT,
                 transport=None):
        self._session = session.session(
            delegate=delegate,
            thermostat=thermostat,
            ext_sw_heater_drive=ext_sw_heater_drive,
            heater_segments=heater_segments)
        if transport is None:
            transport = serial_transport(port=port)
        self._transport = transport

        self._dispatcher = events.callback_dispatcher()
        self._dispatcher.start()
        self._comm = comm.comm_loop(
            self._session, transport, self._dispatcher.post,
            kp=kp, ki=ki, kd=kd, heater_segments=heater_segments)
        self._timer = timer.roast_timer(
            self._session, self._dispatcher.post)

        self.comm_thread = threading.Thread(
            name='sr700_comm', target=self._comm_entry, daemon=True)
        self.comm_thread.start()
        self.timer_thread = threading.Thread(
            name='sr700_timer', target=self._timer.run, daemon=True)
        self.timer_thread.start()

    def _comm_entry(self):
        try:
            self._comm.run()
        finally:
            # lets the callbacks queued so far run, then stops the thread
            self._dispatcher.stop()

    @property
    def delegate(self):
        with self._session.lock:
            return self._session.delegate

    @delegate.setter
    def delegate(self, value):
        with self._session.lock:
            self._session.delegate = value

    @property
    def fan_speed(self):
        """Get/Set fan speed. Can be 0 to 9 inclusive.

        Args:
            Setter: fan_speed (int): fan speed

        Returns:
            Getter: (int): fan speed
        """
        return self._session.fan_speed

    @fan_speed.setter
    def fan_speed(self, value):
        self._session.fan_speed = value

    @property
    def heat_setting(self):
        """Get/Set heat setting, 0 to 3 inclusive. 0=off, 3=high.
        Overwritten by the roaster while roasting in thermostat mode."""
        return self._session.heat_setting

    @heat_setting.setter
    def heat_setting(self, value):
        self._session.heat_setting = value

    @property
    def target_temp(self):
        """Get/Set the target temperature, in degF between 150 and 550, for
        the built-in software PID controller. Only used in thermostat
        mode."""
        return self._session.target_temp

    @target_temp.setter
    def target_temp(self, value):
        self._session.target_temp = value

    @property
    def current_temp(self):
        """Current temperature of the roast chamber as reported by hardware,
        in degrees Fahrenheit."""
        return self._session.current_temp

    @property
    def time_remaining(self):
        """The amount of time, in seconds, remaining in the current roasting
        or cooling step. Can be set at any time; the roaster counts down
        from the new value. Only decremented while roasting or cooling."""
        return self._session.time_remaining

    @time_remaining.setter
    def time_remaining(self, value):
        self._session.time_remaining = value

    @property
    def total_time(self):
        """The total time, in seconds, spent roasting or cooling since this
        object was created."""
        return self._session.total_time

    @property
    def heater_level(self):
        """Get/Set the software heater level, 0 to heater_segments.
        Driven by the PID controller in thermostat mode. Can only be set
        when created with ext_sw_heater_drive=True, and only sticks while
        roasting: in any other state the heater is off and the level reads
        0, so set it after roast()."""
        return self._session.heater_level

    @heater_level.setter
    def heater_level(self, value):
        self._session.heater_level = value

    @property
    def thermostat(self):
        """True while heat is controlled by the software PID."""
        return self._session.thermostat

    @property
    def state(self):
        """One of sr700.IDLE, ROASTING, COOLING or SLEEPING."""
        return self._session.state

    @property
    def connected(self):
        """True once the handshake is done and the roaster accepts
        commands."""
        return self._session.connected

    @property
    def connect_state(self):
        """One of sr700.CS_NOT_CONNECTED, CS_ATTEMPTING_CONNECT,
        CS_CONNECTING, CS_READING_RECIPE or CS_READY."""
        return self._session.connect_state

    def get_roaster_state(self):
        """Returns 'idle', 'roasting', 'cooling', 'sleeping', or 'connecting'
        during the connection handshake."""
        return self._session.get_roaster_state()

    def connect(self, callback=None):
        """Attempt to connect to hardware once. Returns immediately.

        Args:
            callback (func): called with sr700.CS_READY once the roaster is
            ready, or sr700.CS_NOT_CONNECTED if the attempt failed.

        Returns:
            False if already connected or connecting. The callback is then
            called with CS_NOT_CONNECTED.
        """
        if self._session.start_connect(session.CA_SINGLE_SHOT, callback):
            return True
        logger.warning('connect - already connected or connecting')
        if callback is not None:
            self._dispatcher.post(
                [functools.partial(callback, CS_NOT_CONNECTED)])
        return False

    def auto_connect(self):
        """Keeps trying to open the port until the roaster is plugged in.
        Watch connected, connect_state or the delegate for the result.
        Returns False if already connected or connecting."""
        return self._session.start_connect(session.CA_AUTO)

    def roast(self, heat_setting=None, fan_speed=None, time_remaining=None,
              target_temp=None, callback=None):
        """Starts roasting. Arguments left as None keep their current value.

        Args:
            heat_setting (int): roast at this heat setting, 0 to 3. Turns
            thermostat mode off.

            fan_speed (int): 0 to 9.

            time_remaining (int): length of the roast in seconds.

            target_temp (int): roast at this temperature, 150 to 550 degF.
            Turns thermostat mode on.

            callback (func): called with no arguments when time_remaining
            runs out. Replaces any pending roast or cool callback.

        Raises:
            RoasterValueError: a value is out of range, or both heat_setting
            and target_temp were given.
        """
        self._session.roast(
            heat_setting=heat_setting, fan_speed=fan_speed,
            time_remaining=time_remaining, target_temp=target_temp,
            callback=callback)

    def cool(self, fan_speed=None, time_remaining=None, callback=None):
        """Sets the current state of the roaster to cool. The roaster expects
        that cool will be run after roast, and will not work as expected if
        ran before. callback replaces any pending roast or cool callback."""
        self._session.cool(
            fan_speed=fan_speed, time_remaining=time_remaining,
            callback=callback)

    def idle(self):
        """Sets the current state of the roaster to idle, heat and fan off.
        Pending roast and cool callbacks are dropped."""
        self._session.idle()

    def sleep(self):
        """Sets the current state of the roaster to sleep. Different than idle
        in that this will set double dashes on the roaster display rather than
        digits."""
        self._session.sleep()

    def disconnect(self):
        """Puts the roaster to sleep and closes the serial port. The comm
        loop keeps running, so connect() works again afterwards."""
        self._dispatcher.post(self._session.request_disconnect())

    def terminate(self):
        """Disconnects and stops all threads of this object. You will need
        to create a new roaster to talk to the hardware again."""
        self.disconnect()
        self._session.request_teardown()

    def join(self, timeout=None):
        """Waits for the threads to finish after terminate()."""
        self.comm_thread.join(timeout)
        self.timer_thread.join(timeout)
        self._dispatcher.join(timeout)
