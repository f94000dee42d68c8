import pytest

from livemux.codec.mp3 import Mp3Parser


def header(index):
    return bytes([0xFF, 0xFB, 0x90 | (index << 2)])


def test_default_sample_rate():
    assert Mp3Parser().sample_rate() == 44100


@pytest.mark.parametrize("index, rate", [(0, 44100), (1, 48000), (2, 32000)])
def test_sample_rate_from_header(index, rate):
    parser = Mp3Parser()
    parser.parse(header(index))
    assert parser.sample_rate() == rate


def test_reserved_index_rejected_and_rate_kept():
    parser = Mp3Parser()
    parser.parse(header(2))
    with pytest.raises(ValueError, match="invalid rate index"):
        parser.parse(header(3))
    assert parser.sample_rate() == 32000


def test_short_data_rejected():
    with pytest.raises(ValueError, match="mp3data  invalid"):
        Mp3Parser().parse(b"\xff\xfb")