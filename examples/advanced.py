# -*- coding: utf-8 -*-
# Roastero, released under GPLv3

import threading
import time
import sr700


class Roaster(sr700.roaster_delegate):
    def __init__(self):
        """Creates a roaster object with this class as its delegate."""
        self.done = threading.Event()
        self.roaster = sr700.roaster(delegate=self, thermostat=True)

    def connected(self, state):
        """Called when a connection attempt finishes."""
        if state == sr700.CS_READY:
            # Roast at 320 degF for 40 seconds.
            self.roaster.roast(target_temp=320, fan_speed=9,
                               time_remaining=40)

    def roaster_changed(self, temperature, time_remaining):
        """This is a method that will be called every time a packet is
        read from the roaster."""
        print("Current Temperature:", temperature,
              "Time Remaining:", time_remaining)

    def step_completed(self, state):
        """This is a method that will be called when the time remaining
        ends. state is the step that just finished."""
        if state == sr700.ROASTING:
            self.roaster.cool(fan_speed=9, time_remaining=20)
        elif state == sr700.COOLING:
            self.done.set()

    def disconnected(self):
        print("Roaster disconnected.")


# Create a roaster object.
r = Roaster()

# Connect to the roaster, retrying until it is plugged in.
r.roaster.auto_connect()

# Wait for the roaster to be connected.
while not r.roaster.connected:
    print("Please connect your roaster...")
    time.sleep(1)

# This ensures the example script does not end before the roast.
r.done.wait(120)

# Disconnect from the roaster.
r.roaster.terminate()
r.roaster.join()
