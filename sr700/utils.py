# -*- coding: utf-8 -*-
# Copyright (c) 2015-2016 Mark Spicer
# Made available under the MIT license.

import binascii


def seconds_to_float(time_in_seconds):
    """Converts seconds to float rounded to one digit. Will cap the float at
    9.9 or 594 seconds."""
    if(time_in_seconds <= 594):
        return round((float(time_in_seconds) / 60.0), 1)

    return 9.9


def seconds_to_minutes_code(time_in_seconds):
    """Converts seconds to the single time byte the roaster displays, in
    tenths of a minute. 60 seconds is 10, anything from 594 seconds up
    is 99."""
    return int(round(seconds_to_float(max(time_in_seconds, 0)) * 10.0))


def hexlify(data):
    """Returns bytes as a printable hex string for the logs."""
    return binascii.hexlify(bytes(data)).decode('ascii')
