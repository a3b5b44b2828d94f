"""Tests for remark group decoding."""

import pytest

from metar_remarks import RemarkItem, decode_remarks, sea_level_pressure


class TestDecodeRemarks:

    def test_known_groups_in_order(self):
        items = decode_remarks("AO2 SLP132 P0005 T02440183 RAB15E30 $ QFE765")

        assert [item.code for item in items] == ['AO2', 'SLP132', 'P0005', 'T02440183', 'RAB15E30', '$']

    def test_station_type(self):
        assert decode_remarks("AO1") == [
            RemarkItem('AO1', 'Automated station without precipitation discriminator')]
        assert decode_remarks("AO2")[0].description == 'Automated station with precipitation discriminator'

    def test_sea_level_pressure(self):
        assert decode_remarks("SLP132")[0].description == 'Sea level pressure 1013.2 hPa'

    @pytest.mark.parametrize("value,expected", [("132", 1013.2), ("982", 998.2), ("500", 950.0), ("499", 1049.9)])
    def test_sea_level_pressure_base(self, value, expected):
        assert sea_level_pressure(value) == pytest.approx(expected)

    def test_hourly_precipitation(self):
        assert decode_remarks("P0005")[0].description == 'Precipitation in the past hour: 0.05 in'
        assert decode_remarks("P0000")[0].description == 'Trace or no precipitation in the past hour'

    def test_precise_temperature(self):
        assert decode_remarks("T02440183")[0].description == 'Precise temperature 24.4°C, dewpoint 18.3°C'
        assert decode_remarks("T10221033")[0].description == 'Precise temperature -2.2°C, dewpoint -3.3°C'
        assert decode_remarks("T0150")[0].description == 'Precise temperature 15.0°C'

    def test_weather_begin_end(self):
        assert decode_remarks("RAB15E30")[0].description == (
            'Rain began at 15 minutes past the hour, ended at 30 minutes past the hour')
        assert decode_remarks("TSE1856")[0].description == 'Thunderstorm ended at 18:56Z'

    def test_maintenance_indicator(self):
        assert decode_remarks("$")[0].description == 'Automated station needs maintenance'

    def test_unknown_groups_are_skipped(self):
        assert decode_remarks("QFE765 XXB12 PK WND 28045/15") == []

    @pytest.mark.parametrize("remarks", [None, "", "   "])
    def test_no_remarks(self, remarks):
        assert decode_remarks(remarks) == []
