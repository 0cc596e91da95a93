from unittest import mock

from livecast.av import (
    TAG_AUDIO,
    TAG_SCRIPTDATAAMF0,
    TAG_VIDEO,
    Info,
    Packet,
    RWBase,
)


def test_info_str_format():
    info = Info(key="live/room", url="rtmp://localhost/live/room", uid="abc", inter=True)
    assert str(info) == "<key: live/room, URL: rtmp://localhost/live/room, UID: abc, Inter: true>"


def test_info_str_false_inter():
    info = Info(key="k", url="u", uid="i")
    assert str(info).endswith("Inter: false>")


def test_info_is_interval():
    assert Info(inter=True).is_interval() is True
    assert Info().is_interval() is False


def test_packet_defaults():
    packet = Packet()
    assert packet.data == b""
    assert packet.timestamp == 0
    assert packet.header is None


def test_rec_timestamp_by_type():
    rw = RWBase(10)
    rw.rec_timestamp(100, TAG_VIDEO)
    rw.rec_timestamp(200, TAG_AUDIO)
    rw.rec_timestamp(999, TAG_SCRIPTDATAAMF0)
    assert rw.last_video_timestamp == 100
    assert rw.last_audio_timestamp == 200


def test_calc_base_timestamp_takes_max():
    rw = RWBase(10)
    rw.rec_timestamp(300, TAG_VIDEO)
    rw.rec_timestamp(200, TAG_AUDIO)
    rw.calc_base_timestamp()
    assert rw.base_timestamp == 300
    rw.rec_timestamp(500, TAG_AUDIO)
    rw.calc_base_timestamp()
    assert rw.base_timestamp == 500


def test_alive_with_zero_timeout_is_false():
    assert RWBase(0).alive() is False


def test_alive_and_refresh():
    with mock.patch("time.monotonic", return_value=100.0):
        rw = RWBase(10)
    with mock.patch("time.monotonic", return_value=105.0):
        assert rw.alive() is True
    with mock.patch("time.monotonic", return_value=111.0):
        assert rw.alive() is False
        rw.set_pre_time()
    with mock.patch("time.monotonic", return_value=115.0):
        assert rw.alive() is True