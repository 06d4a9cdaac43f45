# -*- coding: utf-8 -*-
# Copyright (c) 2015-2016 Mark Spicer
# Made available under the MIT license.

import unittest
from unittest import mock

from sr700 import exceptions
from sr700 import protocol
from sr700 import session

from fakes import make_body


def run_all(events):
    for event in events:
        event()


def connect(sess, callback=None):
    """Walks a session through the handshake the way the comm loop does."""
    sess.start_connect(session.CA_SINGLE_SHOT, callback)
    sess.take_connect_request(0)
    sess.begin_connecting()
    sess.begin_recipe_read()
    return sess.process_body(make_body(marker=0x00))


class TestSessionCommands(unittest.TestCase):
    def setUp(self):
        self.sess = session.session()

    def test_initial_packet(self):
        self.assertEqual(
            protocol.generate_packet(self.sess.packet_fields()),
            b'\xaa\xaaatc\x02\x01\x00\x00\x00\x00\x00\xaa\xfa')

    def test_initial_values(self):
        self.assertEqual(self.sess.state, protocol.IDLE)
        self.assertEqual(self.sess.fan_speed, 0)
        self.assertEqual(self.sess.heat_setting, 0)
        self.assertEqual(self.sess.time_remaining, 0)
        self.assertEqual(self.sess.current_temp, 150)
        self.assertEqual(self.sess.connect_state, session.CS_NOT_CONNECTED)
        self.assertFalse(self.sess.connected)

    def test_roast_heat_setting(self):
        self.sess.roast(heat_setting=2, fan_speed=5, time_remaining=30)
        fields = self.sess.packet_fields()
        self.assertEqual(fields.state_code, b'\x04\x02')
        self.assertEqual(fields.heat_setting, 2)
        self.assertEqual(fields.fan_speed, 5)
        self.assertEqual(fields.time_remaining, 30)
        self.assertFalse(self.sess.thermostat)

    def test_roast_target_temp(self):
        self.sess.roast(target_temp=400, fan_speed=9, time_remaining=300)
        self.assertTrue(self.sess.thermostat)
        self.assertEqual(self.sess.target_temp, 400)
        self.assertEqual(self.sess.state, protocol.ROASTING)

    def test_roast_heat_setting_leaves_thermostat(self):
        sess = session.session(thermostat=True)
        sess.roast(heat_setting=1)
        self.assertFalse(sess.thermostat)

    def test_roast_without_arguments(self):
        self.sess.fan_speed = 4
        self.sess.roast()
        self.assertEqual(self.sess.state, protocol.ROASTING)
        self.assertEqual(self.sess.fan_speed, 4)

    def test_roast_both_modes(self):
        with self.assertRaises(exceptions.RoasterValueError):
            self.sess.roast(heat_setting=2, target_temp=400)
        self.assertEqual(self.sess.state, protocol.IDLE)

    def test_roast_bad_fan_speed_changes_nothing(self):
        with self.assertRaises(exceptions.RoasterValueError):
            self.sess.roast(heat_setting=3, fan_speed=10)
        self.assertEqual(self.sess.state, protocol.IDLE)
        self.assertEqual(self.sess.heat_setting, 0)

    def test_cool(self):
        self.sess.cool(fan_speed=9, time_remaining=60)
        self.assertEqual(self.sess.packet_fields().state_code, b'\x04\x04')

    def test_idle(self):
        self.sess.roast(heat_setting=3, fan_speed=9)
        self.sess.idle()
        self.assertEqual(self.sess.packet_fields().state_code, b'\x02\x01')
        self.assertEqual(self.sess.heat_setting, protocol.HEAT_NONE)
        self.assertEqual(self.sess.fan_speed, 0)

    def test_sleep(self):
        self.sess.sleep()
        self.assertEqual(self.sess.packet_fields().state_code, b'\x08\x01')
        self.assertEqual(self.sess.get_roaster_state(), 'sleeping')


class TestSessionSetters(unittest.TestCase):
    def setUp(self):
        self.sess = session.session()

    def test_fan_speed(self):
        self.sess.fan_speed = 6
        self.assertEqual(self.sess.fan_speed, 6)

    def test_fan_speed_invalid(self):
        for value in (10, -1, 'w', 5.0, True):
            with self.assertRaises(exceptions.RoasterValueError):
                self.sess.fan_speed = value

    def test_heat_setting_invalid(self):
        for value in (4, -1, 'w', 2.0):
            with self.assertRaises(exceptions.RoasterValueError):
                self.sess.heat_setting = value

    def test_target_temp_invalid(self):
        for value in (149, 551, 400.0):
            with self.assertRaises(exceptions.RoasterValueError):
                self.sess.target_temp = value

    def test_time_remaining_invalid(self):
        with self.assertRaises(exceptions.RoasterValueError):
            self.sess.time_remaining = -1

    def test_time_remaining_float(self):
        with self.assertRaises(exceptions.RoasterValueError):
            self.sess.time_remaining = 30.0

    def test_roast_float_setpoints(self):
        with self.assertRaises(exceptions.RoasterValueError):
            self.sess.roast(heat_setting=2.0)
        with self.assertRaises(exceptions.RoasterValueError):
            self.sess.roast(fan_speed=5.0)
        with self.assertRaises(exceptions.RoasterValueError):
            self.sess.cool(fan_speed=9.0)
        self.assertEqual(self.sess.state, protocol.IDLE)
        self.assertEqual(self.sess.heat_setting, protocol.HEAT_NONE)
        self.assertEqual(self.sess.fan_speed, 0)

    def test_heater_level_needs_external_drive(self):
        with self.assertRaises(exceptions.RoasterStateError):
            self.sess.heater_level = 3

    def test_heater_level_external_drive(self):
        sess = session.session(ext_sw_heater_drive=True, heater_segments=4)
        sess.heater_level = 3
        self.assertEqual(sess.heater_level, 3)
        with self.assertRaises(exceptions.RoasterValueError):
            sess.heater_level = 5
        with self.assertRaises(exceptions.RoasterValueError):
            sess.heater_level = 2.0
        self.assertEqual(sess.heater_level, 3)

    def test_external_drive_wins(self):
        sess = session.session(thermostat=True, ext_sw_heater_drive=True)
        self.assertFalse(sess.thermostat)
        sess.roast(target_temp=300)
        self.assertFalse(sess.thermostat)


class TestSessionConnection(unittest.TestCase):
    def setUp(self):
        self.delegate = mock.Mock()
        self.sess = session.session(delegate=self.delegate)

    def test_start_connect_once(self):
        self.assertTrue(self.sess.start_connect(session.CA_AUTO))
        self.assertEqual(self.sess.connect_state,
                         session.CS_ATTEMPTING_CONNECT)
        self.assertFalse(self.sess.start_connect(session.CA_SINGLE_SHOT))

    def test_take_connect_request(self):
        self.assertEqual(self.sess.take_connect_request(0), session.CA_NONE)
        self.sess.start_connect(session.CA_AUTO)
        self.assertEqual(self.sess.take_connect_request(0), session.CA_AUTO)
        self.assertEqual(self.sess.take_connect_request(0), session.CA_NONE)

    def test_recipe_read(self):
        self.sess.start_connect(session.CA_SINGLE_SHOT)
        self.sess.begin_connecting()
        self.assertEqual(self.sess.connect_state, session.CS_CONNECTING)
        self.sess.begin_recipe_read()
        fields = self.sess.packet_fields()
        self.assertEqual(fields.header, b'\xAA\x55')
        self.assertEqual(fields.state_code, b'\x00\x00')
        self.assertEqual(self.sess.get_roaster_state(), 'connecting')
        # recipe packets are not telemetry
        self.assertEqual(self.sess.process_body(make_body(temp=500)), [])
        self.assertEqual(self.sess.connect_state, session.CS_READING_RECIPE)
        self.assertEqual(self.sess.current_temp, 150)

    def test_end_of_recipe(self):
        callback = mock.Mock()
        run_all(connect(self.sess, callback))
        self.assertEqual(self.sess.connect_state, session.CS_READY)
        self.assertTrue(self.sess.connected)
        self.assertTrue(self.sess.timer_enabled.is_set())
        callback.assert_called_once_with(session.CS_READY)
        self.delegate.connected.assert_called_once_with(session.CS_READY)
        fields = self.sess.packet_fields()
        self.assertEqual(fields.header, b'\xAA\xAA')
        self.assertEqual(fields.state_code, b'\x02\x01')

    def test_end_of_recipe_af_marker(self):
        self.sess.start_connect(session.CA_SINGLE_SHOT)
        self.sess.begin_recipe_read()
        self.sess.process_body(make_body(marker=0xAF))
        self.assertEqual(self.sess.connect_state, session.CS_READY)

    def test_connect_failed(self):
        callback = mock.Mock()
        self.sess.start_connect(session.CA_SINGLE_SHOT, callback)
        self.sess.take_connect_request(0)
        self.sess.begin_connecting()
        run_all(self.sess.connect_failed())
        self.assertEqual(self.sess.connect_state, session.CS_NOT_CONNECTED)
        callback.assert_called_once_with(session.CS_NOT_CONNECTED)
        # and a new attempt is possible
        self.assertTrue(self.sess.start_connect(session.CA_SINGLE_SHOT))

    def test_telemetry(self):
        connect(self.sess)
        run_all(self.sess.process_body(make_body(temp=300)))
        self.assertEqual(self.sess.current_temp, 300)
        self.delegate.roaster_changed.assert_called_once_with(300, 0)

    def test_telemetry_no_reading(self):
        connect(self.sess)
        self.sess.process_body(make_body(temp=300))
        self.sess.process_body(make_body(temp=0xFF00))
        self.assertEqual(self.sess.current_temp, 150)

    def test_telemetry_out_of_range(self):
        callback = mock.Mock()
        run_all(connect(self.sess, callback))
        self.sess.process_body(make_body(temp=300))
        self.assertEqual(self.sess.process_body(make_body(temp=600)), [])
        self.assertEqual(self.sess.current_temp, 300)
        self.assertEqual(self.sess.connect_state, session.CS_READING_RECIPE)
        self.assertEqual(self.sess.packet_fields().header, b'\xAA\x55')
        # reading the recipe again does not report a new connection
        self.assertEqual(self.sess.process_body(make_body(marker=0x00)), [])
        self.assertEqual(self.sess.connect_state, session.CS_READY)
        callback.assert_called_once_with(session.CS_READY)

    def test_out_of_range_keeps_roasting(self):
        connect(self.sess)
        self.sess.roast(heat_setting=2)
        self.sess.process_body(make_body(temp=100))
        self.sess.process_body(make_body(marker=0x00))
        self.assertEqual(self.sess.packet_fields().state_code, b'\x04\x02')

    def test_disconnect_before_request_taken(self):
        callback = mock.Mock()
        self.sess.start_connect(session.CA_SINGLE_SHOT, callback)
        run_all(self.sess.request_disconnect())
        callback.assert_called_once_with(session.CS_NOT_CONNECTED)
        self.assertEqual(self.sess.connect_state, session.CS_NOT_CONNECTED)
        self.assertEqual(self.sess.take_connect_request(0), session.CA_NONE)
        self.assertFalse(self.sess.disconnect_requested)

    def test_disconnect_when_connected(self):
        connect(self.sess)
        self.sess.roast(heat_setting=3)
        self.assertEqual(self.sess.request_disconnect(), [])
        self.assertTrue(self.sess.disconnect_requested)
        self.assertFalse(self.sess.timer_enabled.is_set())
        self.assertEqual(self.sess.state, protocol.SLEEPING)
        run_all(self.sess.finish_disconnect())
        self.assertEqual(self.sess.connect_state, session.CS_NOT_CONNECTED)
        self.assertFalse(self.sess.disconnect_requested)
        self.delegate.disconnected.assert_called_once_with()

    def test_disconnect_when_not_connected(self):
        self.sess.request_disconnect()
        self.assertFalse(self.sess.disconnect_requested)
        self.assertEqual(self.sess.state, protocol.SLEEPING)

    def test_forced_disconnect_during_handshake(self):
        callback = mock.Mock()
        self.sess.start_connect(session.CA_SINGLE_SHOT, callback)
        self.sess.take_connect_request(0)
        self.sess.begin_connecting()
        self.sess.begin_recipe_read()
        self.sess.force_disconnect()
        run_all(self.sess.finish_disconnect())
        callback.assert_called_once_with(session.CS_NOT_CONNECTED)
        self.assertEqual(self.sess.connect_state, session.CS_NOT_CONNECTED)

    def test_teardown(self):
        self.assertFalse(self.sess.teardown_requested)
        self.sess.request_teardown()
        self.assertTrue(self.sess.teardown_requested)
        self.assertTrue(self.sess.wait_for_teardown(0))


class TestSessionTick(unittest.TestCase):
    def setUp(self):
        self.delegate = mock.Mock()
        self.sess = session.session(delegate=self.delegate)

    def test_tick_idle(self):
        self.assertEqual(self.sess.tick(), [])
        self.assertEqual(self.sess.total_time, 0)

    def test_tick_counts_down(self):
        callback = mock.Mock()
        self.sess.roast(heat_setting=3, time_remaining=2, callback=callback)
        self.assertEqual(self.sess.tick(), [])
        self.assertEqual(self.sess.time_remaining, 1)
        self.assertEqual(self.sess.tick(), [])
        self.assertEqual(self.sess.time_remaining, 0)
        run_all(self.sess.tick())
        callback.assert_called_once_with()
        self.delegate.step_completed.assert_called_once_with(
            protocol.ROASTING)
        self.assertEqual(self.sess.state, protocol.IDLE)
        self.assertEqual(self.sess.heat_setting, protocol.HEAT_NONE)
        self.assertEqual(self.sess.total_time, 3)

    def test_cool_replaces_roast_callback(self):
        roast_done = mock.Mock()
        cool_done = mock.Mock()
        self.sess.roast(heat_setting=3, time_remaining=0, callback=roast_done)
        self.sess.cool(time_remaining=0, callback=cool_done)
        run_all(self.sess.tick())
        roast_done.assert_not_called()
        cool_done.assert_called_once_with()
        self.delegate.step_completed.assert_called_once_with(
            protocol.COOLING)

    def test_roast_replaces_cool_callback(self):
        cool_done = mock.Mock()
        self.sess.cool(time_remaining=0, callback=cool_done)
        self.sess.roast(time_remaining=0)
        run_all(self.sess.tick())
        cool_done.assert_not_called()

    def test_callback_fires_once(self):
        callback = mock.Mock()
        self.sess.cool(time_remaining=0, callback=callback)
        run_all(self.sess.tick())
        run_all(self.sess.tick())
        callback.assert_called_once_with()


class TestSessionHeater(unittest.TestCase):
    def test_bangbang_ignored_without_software_heater(self):
        sess = session.session()
        sess.roast(heat_setting=1)
        sess.apply_bangbang(8, True)
        sess.heater_off()
        self.assertEqual(sess.heat_setting, 1)

    def test_bangbang_thermostat(self):
        sess = session.session(thermostat=True)
        sess.roast()
        sess.apply_bangbang(5, True)
        self.assertEqual(sess.heat_setting, protocol.HEAT_HIGH)
        self.assertEqual(sess.heater_level, 5)
        sess.apply_bangbang(5, False)
        self.assertEqual(sess.heat_setting, protocol.HEAT_NONE)

    def test_bangbang_ignored_when_not_roasting(self):
        sess = session.session(thermostat=True)
        sess.cool()
        sess.apply_bangbang(5, True)
        self.assertEqual(sess.heat_setting, protocol.HEAT_NONE)

    def test_bangbang_keeps_external_level(self):
        sess = session.session(ext_sw_heater_drive=True)
        sess.heater_level = 2
        sess.roast()
        sess.apply_bangbang(7, True)
        self.assertEqual(sess.heater_level, 2)
        self.assertEqual(sess.heat_setting, protocol.HEAT_HIGH)
        sess.heater_off()
        self.assertEqual(sess.heater_level, 0)
