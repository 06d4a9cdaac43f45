# -*- coding: utf-8 -*-
# Copyright (c) 2015-2016 Mark Spicer
# Made available under the MIT license.

# Hand-tuned on/off patterns, one row per heat level. Ones and zeroes are
# spread as far apart as possible: for 4 segments, [1, 0, 1, 0] heats
# as much as [1, 1, 0, 0] but less lumpily.
_T = True
_F = False
BANGBANG_TABLES = {
    4: (
        (_F, _F, _F, _F),
        (_T, _F, _F, _F),
        (_T, _F, _T, _F),
        (_T, _T, _T, _F),
        (_T, _T, _T, _T),
    ),
    8: (
        (_F, _F, _F, _F, _F, _F, _F, _F),
        (_T, _F, _F, _F, _F, _F, _F, _F),
        (_T, _F, _F, _F, _T, _F, _F, _F),
        (_T, _F, _F, _T, _F, _F, _T, _F),
        (_T, _F, _T, _F, _T, _F, _T, _F),
        (_T, _T, _F, _T, _T, _F, _T, _F),
        (_T, _T, _T, _F, _T, _T, _T, _F),
        (_T, _T, _T, _T, _T, _T, _T, _F),
        (_T, _T, _T, _T, _T, _T, _T, _T),
    ),
}


def generate_output_array(number_of_segments):
    """Returns the on/off table for number_of_segments, as
    number_of_segments + 1 rows of number_of_segments booleans."""
    if number_of_segments in BANGBANG_TABLES:
        return [list(row) for row in BANGBANG_TABLES[number_of_segments]]
    # no tuned table: level i is on for the first i slots, which is
    # lumpier but fine when the output rate beats the load's time constant
    return [[j < i for j in range(number_of_segments)]
            for i in range(number_of_segments + 1)]


class heat_controller(object):
    """A class to do gross-level pulse modulation on a bang-bang interface.

    Args:
        number_of_segments (int): the resolution of the heat_controller.
        Defaults to 8.  for number_of_segments=N, creates a heat_controller
        that varies the heat between 0..N inclusive, in integer increments,
        where 0 is no heat, and N is full heat.  The bigger the number, the
        less often the heat value can be changed, because this object is
        designed to be called at a regular time interval to output N binary
        values before rolling over or picking up the latest commanded heat
        value.
    """
    def __init__(self, number_of_segments=8):
        self._num_segments = number_of_segments
        self.output_array = generate_output_array(number_of_segments)
        self._heat_level = 0
        self._heat_level_now = 0
        # start on the rollover boundary so the first output picks up
        # whatever heat_level was set before it
        self._current_index = number_of_segments

    @property
    def number_of_segments(self):
        return self._num_segments

    @property
    def heat_level(self):
        """Set/Get the current desired output level. Values outside of
        0..number_of_segments are clamped, fractions are rounded.

        Args:
            Setter: value (int): heat_level value

        Returns:
            Getter (int): heat level"""
        return self._heat_level

    @heat_level.setter
    def heat_level(self, value):
        if value < 0:
            self._heat_level = 0
        elif round(value) > self._num_segments:
            self._heat_level = self._num_segments
        else:
            self._heat_level = int(round(value))

    def generate_bangbang_output(self):
        """Generates the latest on or off pulse in
           the string of on (True) or off (False) pulses
           according to the desired heat_level setting.  Successive calls
           to this function will return the next value in the
           on/off array series.  Call this at control loop rate to
           obtain the necessary on/off pulse train.
           Only the value set at every number_of_segments iterations
           will be picked up for output! Call about_to_rollover to determine
           if it's time to set a new heat_level, if a new level is desired."""
        if self._current_index >= self._num_segments:
            self._heat_level_now = self._heat_level
            self._current_index = 0
        out = self.output_array[self._heat_level_now][self._current_index]
        self._current_index += 1
        return out

    def about_to_rollover(self):
        """This method indicates that the next call to generate_bangbang_output
           is a wraparound read.  Use this to determine if it's time to
           pick up the latest commanded heat_level value and run a PID
           controller iteration."""
        return self._current_index >= self._num_segments
