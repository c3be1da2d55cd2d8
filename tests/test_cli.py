import io
import sys
from types import SimpleNamespace

import pytest

from stlog.__main__ import EXIT_BAD_ARTIFACT, EXIT_DECODE_FAULT, EXIT_OK, main
from stlog.cli import parse_args
from stlog.elf_writer import write_elf
from stlog.encoder import BufferSink, Logger
from stlog.levels import Level
from stlog.settings import get_settings

from conftest import Firmware


def record_stream(path, *calls):
    sink = BufferSink()
    logger = Logger(sink)
    for site, *values in calls:
        logger.log(site, *values)
    path.write_bytes(sink.getvalue())
    return path


@pytest.fixture
def stream(firmware, tmp_path):
    return record_stream(
        tmp_path / "uart.bin",
        (firmware.boot_failed,),
        (firmware.low_battery,),
        (firmware.temperature, 42),
        (firmware.offset, -3, 1.25),
    )


def test_decodes_a_file(elf_path, stream, capsys):
    assert main([str(elf_path), str(stream)]) == EXIT_OK
    assert capsys.readouterr().out.splitlines() == [
        "ERROR boot failed",
        "WARN low battery",
        "INFO temperature: 42 C",
        "DEBUG offset -3 scale 1.25",
    ]


def test_level_threshold(elf_path, stream, capsys):
    assert main([str(elf_path), str(stream), "-l", "warn"]) == EXIT_OK
    assert capsys.readouterr().out.splitlines() == ["ERROR boot failed", "WARN low battery"]


def test_reads_stdin(elf_path, stream, capsys, monkeypatch):
    monkeypatch.setattr(sys, "stdin", SimpleNamespace(buffer=io.BytesIO(stream.read_bytes())))
    assert main([str(elf_path)]) == EXIT_OK
    assert len(capsys.readouterr().out.splitlines()) == 4


def test_location(tmp_path, capsys):
    firmware = Firmware(spanned=True)
    elf_path = tmp_path / "spanned.elf"
    write_elf(firmware.layout.regions(), elf_path)
    stream = record_stream(tmp_path / "uart.bin", (firmware.temperature, 7))

    assert main([str(elf_path), str(stream), "--location"]) == EXIT_OK
    assert capsys.readouterr().out.strip() == f"INFO temperature: 7 C (conftest.py:{firmware.temperature.line})"


def test_truncated_stream(elf_path, stream, capsys):
    stream.write_bytes(stream.read_bytes()[:-1])
    assert main([str(elf_path), str(stream)]) == EXIT_DECODE_FAULT
    captured = capsys.readouterr()
    assert len(captured.out.splitlines()) == 3
    assert "offset 8" in captured.err


def test_unknown_reference(elf_path, tmp_path, capsys):
    stream = tmp_path / "uart.bin"
    stream.write_bytes(bytes([Level.ERROR, 0, Level.WARN, 9]))
    assert main([str(elf_path), str(stream)]) == EXIT_DECODE_FAULT
    captured = capsys.readouterr()
    assert captured.out.splitlines() == ["ERROR boot failed"]
    assert "reference 9" in captured.err


def test_missing_elf(tmp_path, stream, capsys):
    assert main([str(tmp_path / "nope.elf"), str(stream)]) == EXIT_BAD_ARTIFACT
    assert "failed to read" in capsys.readouterr().err


def test_not_an_elf(tmp_path, stream, capsys):
    assert main([str(stream), str(stream)]) == EXIT_BAD_ARTIFACT


def test_unusable_elf(tmp_path, stream, capsys):
    elf_path = tmp_path / "big.elf"
    write_elf({level: [f"{level.name} {i}" for i in range(60)] for level in Level}, elf_path, check=False)
    assert main([str(elf_path), str(stream)]) == EXIT_BAD_ARTIFACT
    assert "unusable" in capsys.readouterr().err


def test_malformed_strings(tmp_path, capsys):
    elf_path = tmp_path / "bad.elf"
    write_elf({Level.ERROR: ["boot failed", "bad {u3}"]}, elf_path)
    stream = tmp_path / "uart.bin"
    stream.write_bytes(bytes([Level.ERROR, 0]))

    assert main([str(elf_path), str(stream)]) == EXIT_BAD_ARTIFACT
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "bad {u3}" in captured.err

    assert main([str(elf_path), str(stream), "--skip-malformed"]) == EXIT_OK
    assert capsys.readouterr().out.splitlines() == ["ERROR boot failed"]


def test_remembers_the_elf(elf_path, stream):
    main([str(elf_path), str(stream)])
    assert get_settings().get_recent_files() == [str(elf_path.resolve())]


def test_serial_port_required(elf_path, capsys):
    assert main([str(elf_path), "-C"]) == EXIT_DECODE_FAULT
    assert "No serial port" in capsys.readouterr().err


def test_input_and_port_are_exclusive():
    with pytest.raises(SystemExit):
        parse_args(["fw.elf", "uart.bin", "-C", "/dev/ttyUSB0"])


def test_parse_args_defaults():
    assert parse_args([]).elf is None
    args = parse_args(["fw.elf"])
    assert args.input is None
    assert args.comm is None
    assert args.level is Level.TRACE
    assert parse_args(["fw.elf", "-C"]).comm == ""
    assert parse_args(["fw.elf", "-l", "Warning"]).level is Level.WARN


def test_bad_level_option():
    with pytest.raises(SystemExit):
        parse_args(["fw.elf", "-l", "loud"])


def test_char_spec_out_of_range_is_a_malformed_string(tmp_path, capsys):
    elf_path = tmp_path / "char.elf"
    write_elf({Level.INFO: ["char {u32:c}"]}, elf_path)
    stream = tmp_path / "uart.bin"
    stream.write_bytes(bytes([Level.INFO, 0]) + (0x200000).to_bytes(4, "little"))

    assert main([str(elf_path), str(stream)]) == EXIT_BAD_ARTIFACT
    assert "char {u32:c}" in capsys.readouterr().err

    assert main([str(elf_path), str(stream), "--skip-malformed"]) == EXIT_DECODE_FAULT
    assert "reference 0" in capsys.readouterr().err


def test_defaults_to_the_last_elf(elf_path, stream, capsys, monkeypatch):
    main([str(elf_path), str(stream)])
    capsys.readouterr()

    monkeypatch.setattr(sys, "stdin", SimpleNamespace(buffer=io.BytesIO(bytes([Level.WARN, 1]))))
    assert main([]) == EXIT_OK
    assert capsys.readouterr().out.splitlines() == ["WARN low battery"]


def test_no_elf_and_none_used_before(capsys):
    assert main([]) == EXIT_BAD_ARTIFACT
    assert "no ELF file given" in capsys.readouterr().err


def test_decodes_without_a_writable_settings_dir(elf_path, stream, isolated_settings, capsys):
    isolated_settings.parent.mkdir(parents=True, exist_ok=True)
    isolated_settings.write_bytes(b"")  # a file where the directory should be

    assert main([str(elf_path), str(stream)]) == EXIT_OK
    assert len(capsys.readouterr().out.splitlines()) == 4
