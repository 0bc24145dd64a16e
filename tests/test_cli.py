from safename import Table, decode, encode
from safename.cli import main


def test_decode(capsys):
    assert main(["decode", "AaGVsbG8udHh0", "DBUE"]) == 0
    out = capsys.readouterr().out
    assert out.splitlines() == ["hello.txt", "AAAAA"]


def test_decode_reports_error_kinds(capsys):
    assert main(["decode", "!bad", "_AAAA", "AaGVsbG8udHh0"]) == 1
    captured = capsys.readouterr()
    assert captured.out.splitlines() == ["hello.txt"]
    errors = captured.err.splitlines()
    assert errors[0].startswith("!bad: corrupted:")
    assert errors[1].startswith("_AAAA: unsupported:")


def test_encode(capsys):
    assert main(["encode", "--table", str(int(Table.LOWER)), "report final.txt"]) == 0
    encoded = capsys.readouterr().out.strip()
    assert encoded.startswith("E")
    assert decode(encoded) == "report final.txt"


def test_encode_unsupported_table(capsys):
    assert main(["-v", "encode", "-t", "63", "name"]) == 1
    assert "unsupported" in capsys.readouterr().err


def test_decode_non_utf8_name(capsysbinary):
    encoded = encode(Table.UNCOMPRESSED, b"bad\xffname")
    assert main(["decode", encoded, "AaGVsbG8udHh0"]) == 0
    assert capsysbinary.readouterr().out == b"bad\xffname\nhello.txt\n"
