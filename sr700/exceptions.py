# -*- coding: utf-8 -*-
# Copyright (c) 2015-2016 Mark Spicer
# Made available under the MIT license.


class RoasterError(Exception):
    """A base error for sr700 errors."""


class RoasterValueError(RoasterError):
    """Raised when a class variable assigned is out of the range of acceptable
    values."""


class RoasterStateError(RoasterError):
    """Raised when an operation is not allowed in the current state of the
    roaster."""


class TransportError(RoasterError):
    """A base error for serial link failures."""


class TransportOpenError(TransportError):
    """Raised when the serial port cannot be opened, usually because the
    device is missing or permissions are insufficient."""


class TransportIOError(TransportError):
    """Raised when a read from or a write to an open serial port fails."""


class ProtocolError(RoasterError):
    """A base error for data received from the roaster that cannot be
    used."""


class ProtocolFramingError(ProtocolError):
    """Raised when a framed packet body is not exactly 10 bytes long."""


class OutOfRangeTelemetryError(ProtocolError):
    """Raised when the roaster reports a temperature outside of the range it
    can physically produce."""
    def __init__(self, temperature):
        super(OutOfRangeTelemetryError, self).__init__(
            'temperature out of range: %d' % temperature)
        self.temperature = temperature
