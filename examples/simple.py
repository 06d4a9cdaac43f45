# -*- coding: utf-8 -*-
# Copyright (c) 2015-2016 Mark Spicer
# Made available under the MIT license.

import logging
import time
import sr700


logging.basicConfig(level=logging.INFO)

# Create a roaster object.
roaster = sr700.roaster()


def connected(state):
    if state != sr700.CS_READY:
        print("Could not connect to the roaster.")
        return
    # Roast at full heat for 20 seconds, then go idle.
    roaster.roast(heat_setting=3, fan_speed=9, time_remaining=20,
                  callback=roaster.idle)


# Connect to the roaster.
roaster.connect(connected)

# This ensures the example script does not end before the roast.
time.sleep(30)

# Disconnect from the roaster and stop its threads.
roaster.terminate()
roaster.join()
