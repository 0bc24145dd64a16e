import pytest

from safename.scsu import SCSUError, compress, decompress


@pytest.mark.parametrize(
    "data, text",
    [
        (b"", ""),
        (b"hello.txt", "hello.txt"),
        (b"caf\xe9", "café"),
        # Examples from Unicode Technical Standard #6.
        (b"\xd6\x6c\x20\x66\x6c\x69\xdf\x74", "Öl fließt"),
        (b"\x12\x9c\xbe\xc1\xba\xb2\xb0", "Москва"),
        (b"\x0e\x4e\x2d", "中"),
        (b"\x0f\x4e\x2d\x65\x87", "中文"),
        (b"\x0f\x4e\x2d\xe0a", "中a"),
        (b"\x0f\xf0\xe0\x00", "\ue000"),
        (b"\x0b\x01\xec\x80", "😀"),
        (b"\x0f\xd8\x3d\xde\x00", "😀"),
        (b"\x01\x01", "\x01"),
        (b"\x1d\x05\x80", "ʀ"),
        (b"\x0f\xed\x05\x80", "ʀ"),
    ],
)
def test_decompress(data, text):
    assert decompress(data) == text


@pytest.mark.parametrize(
    "data",
    [
        b"\x0c",  # reserved tag
        b"\x0f\xf2",  # reserved tag in Unicode mode
        b"\x01",  # truncated quote
        b"\x0e\x4e",  # truncated SQU
        b"\x0b\x01",  # truncated SDX
        b"\x18\x00",  # reserved window offset
        b"\x18\xa8",
        b"\x0f\xd8\x3d",  # unpaired high surrogate
        b"\x0f\xd8\x3d\x00\x41",
        b"\x0f\xdc\x00",  # unpaired low surrogate
        b"\x0f\x4e",
    ],
)
def test_decompress_malformed(data):
    with pytest.raises(SCSUError):
        decompress(data)


def test_decompress_max_chars():
    assert decompress(b"abc", max_chars=3) == "abc"
    with pytest.raises(SCSUError):
        decompress(b"abcd", max_chars=3)


@pytest.mark.parametrize(
    "text",
    [
        "",
        "plain ascii",
        "\x00\x07\x1f",
        "Ærøskøbing",
        "Łódź.png",
        "Ελληνικά",
        "Русский текст",
        "日本語のファイル.txt",
        "한국어",
        "￯",
        "emoji 😀🎉 mix",
        "ᐊᓄᑎ",
    ],
)
def test_compress_round_trip(text):
    assert decompress(compress(text)) == text


def test_compress_ascii_is_verbatim():
    assert compress("hello.txt") == b"hello.txt"


def test_compress_uses_windows():
    # Cyrillic costs one byte per letter after the window switch.
    assert len(compress("Документы")) == len("Документы") + 1


def test_compress_rejects_lone_surrogate():
    with pytest.raises(SCSUError):
        compress("bad\udcff")
