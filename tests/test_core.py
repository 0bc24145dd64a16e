import base64
from concurrent.futures import ThreadPoolExecutor

import pytest

from safename import (
    MAX_LENGTH,
    CorruptedError,
    Decoder,
    Strategy,
    Table,
    UnsupportedError,
    decode,
    decode_bytes,
    encode,
    encode_bytes,
    resolve_strategy,
)
from safename.tables import static_encoder

# Custom table with directly stored weights: 'a' and 'b', one bit each.
AB_TABLE = bytes([0xE1]) + bytes(48) + b"\x01"
# Custom table with FSE-compressed weights: symbols 0-3, two bits each.
FSE_TABLE = b"\x04\x10\x3f\x46\x0c"


def b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def test_decode_uncompressed_example():
    assert decode("A" + b64(b"hello.txt")) == "hello.txt"
    assert decode("AaGVsbG8udHh0") == "hello.txt"


def test_decode_empty_is_corrupted():
    with pytest.raises(CorruptedError):
        decode("")


@pytest.mark.parametrize("selector", ["!", "=", "+", "/", " ", ".", "é", "日", "\x00"])
def test_decode_unknown_selector_is_corrupted(selector):
    with pytest.raises(CorruptedError):
        decode(selector + "aGVsbG8")


@pytest.mark.parametrize(
    "encoded",
    [
        "Aa",  # one character left over
        "AaGVsbG8+dHh0",
        "AaGVsbG8/dHh0",
        "AaGVs bG8",
        "AaGVsbG8udHh0=",  # padding on a complete group
        "Aa=Gk",
    ],
)
def test_decode_bad_base64_is_corrupted(encoded):
    with pytest.raises(CorruptedError):
        decode(encoded)


def test_decode_accepts_padding_that_completes_a_group():
    assert decode("AaGk=") == "hi"
    assert decode("AaGk") == "hi"


def test_reserved_is_unsupported():
    with pytest.raises(UnsupportedError):
        decode("_" + b64(b"anything"))
    with pytest.raises(UnsupportedError):
        decode_bytes(Table.RESERVED, b"")


@pytest.mark.parametrize("table_id", [8, 9, 30, 61, 64, 100, 255, 4096])
def test_unassigned_tables_are_unsupported(table_id):
    with pytest.raises(UnsupportedError) as info:
        decode_bytes(table_id, b"\x01\x02\x03")
    assert info.value.table_id == table_id


def test_negative_table_is_corrupted():
    with pytest.raises(CorruptedError):
        decode_bytes(-1, b"abc")


def test_resolve_strategy():
    assert resolve_strategy(Table.UNCOMPRESSED) is Strategy.UNCOMPRESSED
    assert resolve_strategy(Table.RLE) is Strategy.RLE
    assert resolve_strategy(Table.CUSTOM) is Strategy.CUSTOM
    assert resolve_strategy(Table.RESERVED) is Strategy.RESERVED
    assert resolve_strategy(Table.SCSU) is Strategy.STATIC
    assert resolve_strategy(Table.HEX) is Strategy.STATIC
    assert resolve_strategy(20) is Strategy.UNKNOWN
    assert resolve_strategy(64) is Strategy.UNKNOWN


@pytest.mark.parametrize("payload", [b"", b"hello.txt", b"\xff\xfe\x00/", bytes(range(256))])
def test_uncompressed_returns_payload(payload):
    name = decode_bytes(Table.UNCOMPRESSED, payload)
    assert name.encode("utf-8", "surrogateescape") == payload


def test_decode_bytes_rejects_non_bytes():
    with pytest.raises(TypeError):
        decode_bytes(Table.UNCOMPRESSED, "text")


# ---- run-length ----
def test_rle_example():
    assert decode_bytes(Table.RLE, b"\x05\x41") == "AAAAA"
    assert decode("D" + b64(b"\x05\x41")) == "AAAAA"


@pytest.mark.parametrize("count", [0, 1, 2, 127, 128, MAX_LENGTH])
def test_rle_counts(count):
    payload = encode_bytes(Table.RLE, b"z" * count)
    assert decode_bytes(Table.RLE, payload) == "z" * count


def test_rle_count_too_large():
    with pytest.raises(CorruptedError):
        decode_bytes(Table.RLE, b"\x81\x02A")  # 257
    with pytest.raises(CorruptedError):
        decode_bytes(Table.RLE, b"\xff\xff\xff\xff\x0fA")


@pytest.mark.parametrize("payload", [b"", b"\x05", b"\x85A", b"\xff" * 10 + b"A"])
def test_rle_malformed(payload):
    with pytest.raises(CorruptedError):
        decode_bytes(Table.RLE, payload)


def test_rle_binary_symbol():
    name = decode_bytes(Table.RLE, b"\x03\xff")
    assert name.encode("utf-8", "surrogateescape") == b"\xff\xff\xff"


# ---- SCSU ----
def test_scsu_plain():
    assert decode_bytes(Table.SCSU_PLAIN, b"") == ""
    assert decode_bytes(Table.SCSU_PLAIN, b"\x12\x9c\xbe\xc1\xba\xb2\xb0") == "Москва"
    assert decode("C" + b64(b"caf\xe9")) == "café"


@pytest.mark.parametrize("payload", [b"\x0c", b"\x0e\x4e", b"\x0f\xd8\x3d", b"\x18\x00"])
def test_scsu_plain_malformed(payload):
    with pytest.raises(CorruptedError):
        decode_bytes(Table.SCSU_PLAIN, payload)


def test_scsu_static_table_layers_scsu():
    payload = encode_bytes(Table.SCSU, "日本語のファイル.txt")
    assert decode_bytes(Table.SCSU, payload) == "日本語のファイル.txt"


def test_scsu_static_table_with_bad_scsu_is_corrupted():
    payload = static_encoder(Table.SCSU).compress_1x(b"\x0c")
    with pytest.raises(CorruptedError):
        decode_bytes(Table.SCSU, payload)


# ---- custom tables ----
def test_custom_direct_weights():
    assert decode_bytes(Table.CUSTOM, AB_TABLE + b"\x05") == "ab"
    assert decode_bytes(Table.CUSTOM, AB_TABLE + b"\x01") == ""


def test_custom_fse_weights():
    assert decode_bytes(Table.CUSTOM, FSE_TABLE + b"\x6c\x01") == "\x01\x02\x03\x00"


def test_custom_max_length():
    exact = (1 << MAX_LENGTH).to_bytes(MAX_LENGTH // 8 + 1, "little")
    assert decode_bytes(Table.CUSTOM, AB_TABLE + exact) == "a" * MAX_LENGTH
    over = (1 << (MAX_LENGTH + 1)).to_bytes(MAX_LENGTH // 8 + 1, "little")
    with pytest.raises(CorruptedError):
        decode_bytes(Table.CUSTOM, AB_TABLE + over)


@pytest.mark.parametrize(
    "payload",
    [
        b"",
        b"\x80",
        b"\x81\xc0\x01",  # weight above the limit
        b"\x82\x12\x20\x01",  # incomplete code
        b"\x01\x0f\x01",  # FSE accuracy log too large
        AB_TABLE,  # no stream
        AB_TABLE + b"\x00",  # no end marker
    ],
)
def test_custom_malformed(payload):
    with pytest.raises(CorruptedError):
        decode_bytes(Table.CUSTOM, payload)


def test_custom_table_does_not_leak_between_calls():
    decoder = Decoder()
    assert decoder.decode_bytes(Table.CUSTOM, AB_TABLE + b"\x05") == "ab"
    with pytest.raises(CorruptedError):
        decoder.decode_bytes(Table.CUSTOM, b"\x82\x12\x20" + b"\x05")
    assert decoder.decode_bytes(Table.CUSTOM, FSE_TABLE + b"\x6c\x01") == "\x01\x02\x03\x00"


def test_concurrent_custom_decodes():
    names = [f"{chr(97 + i % 26) * (i % 7 + 2)}-{i}.txt" for i in range(200)]
    encoded = [encode(Table.CUSTOM, name) for name in names]
    decoder = Decoder()

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(decoder.decode, encoded))

    assert results == names


# ---- static tables ----
@pytest.mark.parametrize("table_id", [Table.LOWER, Table.MIXED, Table.HEX, Table.UTF8])
@pytest.mark.parametrize("payload", [b"", b"\x00", b"\xff" * 400])
def test_static_malformed(table_id, payload):
    with pytest.raises(CorruptedError):
        decode_bytes(table_id, payload)


def test_static_tables_are_independent():
    payload = encode_bytes(Table.LOWER, "readme.txt")
    assert decode_bytes(Table.LOWER, payload) == "readme.txt"
    assert decode_bytes(Table.HEX, encode_bytes(Table.HEX, "readme.txt")) == "readme.txt"


def test_static_output_limit():
    # Short codes keep this stream under the bit-count bound, so the limit
    # is enforced while decoding.
    encoder = static_encoder(Table.LOWER)
    exact = encoder.compress_1x(b"e" * MAX_LENGTH)
    assert decode_bytes(Table.LOWER, exact) == "e" * MAX_LENGTH
    over = encoder.compress_1x(b"e" * (MAX_LENGTH + 1))
    with pytest.raises(CorruptedError):
        decode_bytes(Table.LOWER, over)
