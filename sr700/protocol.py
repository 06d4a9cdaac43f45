# -*- coding: utf-8 -*-
# Copyright (c) 2015-2016 Mark Spicer
# Made available under the MIT license.
"""Encoding and decoding of SR700 packets.

Every packet, in either direction, is 14 bytes long::

    header(2) temp_unit(2) flags(1) state(2) fan(1) time(1) heat(1)
    temp_hi(1) temp_lo(1) footer(2)

The ten bytes between the header and the footer are the packet body.
"""

import collections
import logging
import struct

from sr700 import exceptions
from sr700 import utils

logger = logging.getLogger(__name__)

HEADER = b'\xAA\xAA'
# sent while the roaster replays the recipe it has stored
INIT_HEADER = b'\xAA\x55'
TEMP_UNIT = b'\x61\x74'
FLAGS = b'\x63'
FOOTER = b'\xAA\xFA'

BODY_LENGTH = 10
PACKET_LENGTH = len(HEADER) + BODY_LENGTH + len(FOOTER)

# roaster states
IDLE = 'idle'
ROASTING = 'roasting'
COOLING = 'cooling'
SLEEPING = 'sleeping'

STATE_CODES = {
    IDLE: b'\x02\x01',
    ROASTING: b'\x04\x02',
    COOLING: b'\x04\x04',
    SLEEPING: b'\x08\x01',
}
CONNECTING_STATE_CODE = b'\x00\x00'

# heat settings
HEAT_NONE = 0
HEAT_LOW = 1
HEAT_MEDIUM = 2
HEAT_HIGH = 3

# flags byte values that mark the last packet of the stored recipe
END_OF_RECIPE = (0xAF, 0x00)

# reported while the roaster has no reading yet
NO_TEMPERATURE = 0xFF00
MIN_TEMPERATURE = 150
MAX_TEMPERATURE = 550

packet_fields = collections.namedtuple(
    'packet_fields',
    ['header', 'state_code', 'fan_speed', 'time_remaining', 'heat_setting'])

response = collections.namedtuple(
    'response',
    ['temp_unit', 'recipe_marker', 'state_code', 'fan_speed', 'time_code',
     'heat_setting', 'temperature'])


def generate_packet(fields):
    """Generates a packet from a packet_fields snapshot. The current
    temperature bytes are always sent as zeros."""
    return (
        fields.header +
        TEMP_UNIT +
        FLAGS +
        fields.state_code +
        struct.pack(">B", fields.fan_speed) +
        struct.pack(">B", utils.seconds_to_minutes_code(
            fields.time_remaining)) +
        struct.pack(">B", fields.heat_setting) +
        b'\x00\x00' +
        FOOTER)


def parse_body(body):
    """Splits a 10 byte packet body into its fields.

    Raises:
        ProtocolFramingError: the body is not 10 bytes long.
    """
    body = bytes(body)
    if len(body) != BODY_LENGTH:
        raise exceptions.ProtocolFramingError(
            'read packet data len not 10, got: %d' % len(body))
    return response(
        temp_unit=body[0:2],
        recipe_marker=body[2],
        state_code=body[3:5],
        fan_speed=body[5],
        time_code=body[6],
        heat_setting=body[7],
        temperature=struct.unpack(">H", body[8:10])[0])


def decode_temperature(raw):
    """Converts the raw temperature field to degrees Fahrenheit.

    Raises:
        OutOfRangeTelemetryError: the value is neither the 'no reading'
        marker nor between 150 and 550 inclusive.
    """
    if raw == NO_TEMPERATURE:
        return MIN_TEMPERATURE
    if raw > MAX_TEMPERATURE or raw < MIN_TEMPERATURE:
        raise exceptions.OutOfRangeTelemetryError(raw)
    return raw


class packet_decoder(object):
    """Reassembles packet bodies from the byte stream sent by the roaster.

    Bytes are pushed in one at a time. A 0xAA inside the body is held back
    as a possible footer start until the next byte shows whether it was.
    """
    LOOKING_FOR_HEADER_1 = 0
    LOOKING_FOR_HEADER_2 = 1
    PACKET_DATA = 2
    LOOKING_FOR_FOOTER_2 = 3

    def __init__(self):
        self.reset()

    def reset(self):
        self.read_state = self.LOOKING_FOR_HEADER_1
        self._body = bytearray()

    def feed(self, data):
        """Decodes a chunk of bytes and returns the list of complete bodies
        found in it. Bodies of the wrong length are logged and dropped."""
        bodies = []
        for _byte in bytearray(data):
            try:
                body = self.process_byte(_byte)
            except exceptions.ProtocolFramingError as e:
                logger.warning(str(e))
                continue
            if body is not None:
                bodies.append(body)
        return bodies

    def process_byte(self, _byte):
        """Advances the framer by one byte (an int). Returns a complete
        10 byte body when this byte finished one, None otherwise.

        Raises:
            ProtocolFramingError: a footer closed a body that is not 10 bytes
            long, or 10 data bytes were not followed by a footer. The
            decoder is already looking for the next header.
        """
        if self.LOOKING_FOR_HEADER_1 == self.read_state:
            if 0xAA == _byte:
                self.read_state = self.LOOKING_FOR_HEADER_2
        elif self.LOOKING_FOR_HEADER_2 == self.read_state:
            if 0xAA == _byte:
                self.read_state = self.PACKET_DATA
                self._body = bytearray()
            else:
                self.read_state = self.LOOKING_FOR_HEADER_1
        elif self.PACKET_DATA == self.read_state:
            if 0xAA == _byte:
                # this could be the start of an end of packet marker
                self.read_state = self.LOOKING_FOR_FOOTER_2
            else:
                if len(self._body) == BODY_LENGTH:
                    self.reset()
                    raise exceptions.ProtocolFramingError(
                        'no footer after 10 data bytes')
                self._body.append(_byte)
                # SR700 FW bug - if current temp is 250 degF (0xFA),
                # the FW does not transmit the footer at all.
                # fake the footer here.
                if len(self._body) == BODY_LENGTH and 0xFA == _byte:
                    logger.debug('temp is 250F, faking missing footer')
                    self.process_byte(0xAA)
                    return self.process_byte(0xFA)
        elif self.LOOKING_FOR_FOOTER_2 == self.read_state:
            if 0xFA == _byte:
                return self._complete()
            if len(self._body) == BODY_LENGTH:
                # the 0xAA after a full body starts the next header
                self.reset()
                self.read_state = self.LOOKING_FOR_HEADER_2
                self.process_byte(_byte)
                raise exceptions.ProtocolFramingError(
                    'no footer after 10 data bytes')
            # the last byte was not the beginning of the footer
            self._body.append(0xAA)
            self.read_state = self.PACKET_DATA
            return self.process_byte(_byte)
        else:
            logger.error('invalid read_state %d', self.read_state)
            self.reset()
        return None

    def _complete(self):
        body = bytes(self._body)
        self.reset()
        if len(body) != BODY_LENGTH:
            logger.warning('RD: %s', utils.hexlify(body))
            raise exceptions.ProtocolFramingError(
                'read packet data len not 10, got: %d' % len(body))
        return body
