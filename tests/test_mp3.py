import pytest

from livecast.mp3 import Mp3Error, Mp3Parser


def test_default_sample_rate():
    assert Mp3Parser().sample_rate() == 44100


@pytest.mark.parametrize(
    "third_byte, rate",
    [(0x00, 44100), (0x04, 48000), (0x08, 32000)],
)
def test_rate_from_header(third_byte, rate):
    parser = Mp3Parser()
    parser.parse(bytes([0xFF, 0xFB, third_byte]))
    assert parser.sample_rate() == rate


def test_reserved_index_rejected():
    with pytest.raises(Mp3Error, match="invalid rate index"):
        Mp3Parser().parse(bytes([0xFF, 0xFB, 0x0C]))


def test_short_data_rejected():
    with pytest.raises(Mp3Error, match="mp3data"):
        Mp3Parser().parse(b"\xff\xfb")


def test_failed_parse_keeps_previous_rate():
    parser = Mp3Parser()
    parser.parse(bytes([0xFF, 0xFB, 0x04]))
    with pytest.raises(Mp3Error):
        parser.parse(bytes([0xFF, 0xFB, 0x0C]))
    assert parser.sample_rate() == 48000