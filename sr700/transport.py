# -*- coding: utf-8 -*-
# Copyright (c) 2015-2016 Mark Spicer
# Made available under the MIT license.

import logging

import serial

from sr700 import exceptions

logger = logging.getLogger(__name__)

DEFAULT_PORT = '/dev/ttyUSB0'


class serial_transport(object):
    """The serial link to the roaster.

    Args:
        port (str): device path. Defaults to /dev/ttyUSB0.

        baudrate (int): Defaults to 9600, the only rate the SR700 speaks.

        timeout (float): read timeout in seconds. Reads return what arrived
        within this time, possibly nothing. Defaults to 0.2.
    """
    def __init__(self, port=DEFAULT_PORT, baudrate=9600, timeout=0.2):
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self._ser = None

    @property
    def is_open(self):
        return self._ser is not None

    def open(self):
        """Opens the port.

        Raises:
            TransportOpenError: the device is missing or cannot be opened,
            often a permissions problem.
        """
        try:
            self._ser = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                bytesize=8,
                parity='N',
                stopbits=1.5,
                timeout=self.timeout,
                xonxoff=False,
                rtscts=False,
                dsrdtr=False)
        except (serial.SerialException, OSError) as e:
            raise exceptions.TransportOpenError(
                'could not open %s: %s' % (self.port, e))
        logger.info('opened %s', self.port)

    def write(self, data):
        """Writes data, returns the number of bytes written."""
        if self._ser is None:
            raise exceptions.TransportIOError('port is not open')
        try:
            return self._ser.write(data)
        except (serial.SerialException, OSError) as e:
            raise exceptions.TransportIOError('write failed: %s' % e)

    def read(self, size=1):
        """Reads up to size bytes. Returns b'' if nothing arrived before the
        timeout."""
        if self._ser is None:
            raise exceptions.TransportIOError('port is not open')
        try:
            return self._ser.read(size)
        except (serial.SerialException, OSError) as e:
            # typically happens when device is suddenly unplugged
            raise exceptions.TransportIOError('read failed: %s' % e)

    def close(self):
        if self._ser is None:
            return
        try:
            self._ser.close()
        except (serial.SerialException, OSError) as e:
            logger.warning('error closing %s: %s', self.port, e)
        self._ser = None
        logger.info('closed %s', self.port)
