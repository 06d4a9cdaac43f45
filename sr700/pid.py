# -*- coding: utf-8 -*-
# Author: cnr437@gmail.com
# Code URL: http://code.activestate.com/recipes/577231-discrete-pid-controller/
# License: MIT
# Modified by Openroast.


class PID(object):
    """Discrete PID control with a bounded output.

    Args:
        kp, ki, kd (float): controller gains. ki includes the dt multiplier
        and kd the dt divisor of the control period.

        output_min, output_max (float): the output is clamped to this range.
        The integrator is clamped to the same range divided by ki, so it
        stops winding up once its own contribution saturates.
    """
    def __init__(self, kp, ki, kd, output_min=0, output_max=8):
        self.kp = kp
        self.ki = ki
        self.kd = kd
        self.output_min = output_min
        self.output_max = output_max
        if ki > 0.0:
            self.integrator_max = output_max / ki
            self.integrator_min = output_min / ki
        else:
            self.integrator_max = 0.0
            self.integrator_min = 0.0
        self.integrator = 0.0
        # previous measurement
        self.derivator = 0.0
        self.error = 0.0

    def update(self, current_temp, target_temp):
        """Calculate PID output value for given reference input and
        feedback."""
        self.error = target_temp - current_temp

        p_value = self.kp * self.error
        # derivative on the measurement, not on the error: de/dt spikes
        # whenever the set point changes. 'previous' - 'current' is intended.
        d_value = self.kd * (self.derivator - current_temp)
        self.derivator = current_temp

        self.integrator = min(
            max(self.integrator + self.error, self.integrator_min),
            self.integrator_max)
        i_value = self.integrator * self.ki

        output = p_value + i_value + d_value
        return min(max(output, self.output_min), self.output_max)
