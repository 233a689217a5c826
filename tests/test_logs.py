import re
import time

import pytest

from infsense import logs
from infsense.logs import (
    FatalLogError,
    LogFileSink,
    LogSink,
    Severity,
    add_log_sink,
    check,
    format_record,
    log_message,
    log_sinks,
    remove_log_sink,
    set_log_destination,
    strip_basename,
)


class RecordingSink(LogSink):
    def __init__(self):
        self.records = []
        self.waits = 0

    def send(self, severity, full_filename, base_filename, line, tm_time, message):
        self.records.append((severity, full_filename, base_filename, line, message))

    def wait_till_sent(self):
        self.waits += 1


@pytest.fixture
def sink():
    s = RecordingSink()
    add_log_sink(s)
    yield s
    remove_log_sink(s)


@pytest.fixture
def clean_destinations():
    yield
    for sev in Severity:
        set_log_destination(sev, "")


TM = time.struct_time((2024, 3, 5, 7, 8, 9, 0, 65, -1))


@pytest.mark.parametrize(
    "value, severity, letter",
    [
        (-3, Severity.FATAL, "I"),
        (-2, Severity.ERROR, "W"),
        (-1, Severity.WARNING, "E"),
        (0, Severity.INFO, "F"),
    ],
)
def test_severity_values_and_record_letters(value, severity, letter):
    assert Severity(value) is severity
    out = format_record(Severity(value), "a.cpp", 1, TM, "m", tid=0)
    assert out[0] == letter


def test_strip_basename():
    assert strip_basename("dir/sub/file.cpp") == "file.cpp"
    assert strip_basename("file.cpp") == "file.cpp"
    assert strip_basename("dir/") == ""


def test_format_record_worked_example():
    out = format_record(Severity.INFO, "a.cpp", 12, TM, "hi", tid=42)
    assert out == "F0305 07:08:09.000000    42 a.cpp:12] hi"


def test_format_record_structure():
    out = format_record(Severity.WARNING, "b.cpp", 7, TM, "msg\n", tid=1)
    assert out.endswith("b.cpp:7] msg\n")
    assert re.match(r"^[A-Z]\d{4} \d\d:\d\d:\d\d\.000000 +\d+ ", out)


def test_format_record_rejects_unknown_severity():
    with pytest.raises(ValueError):
        format_record(5, "a", 1, TM, "x", tid=0)


def test_sink_registration():
    s = RecordingSink()
    add_log_sink(s)
    assert s in log_sinks()
    remove_log_sink(s)
    assert s not in log_sinks()


def test_log_message_reaches_stderr_and_sinks(sink, capsys):
    log_message(Severity.INFO, "hello", "x/y/src.cpp", 33)
    assert capsys.readouterr().err == "src.cpp:33 hello\n"
    assert sink.records == [(Severity.INFO, "x/y/src.cpp", "src.cpp", 33, "hello\n")]
    assert sink.waits == 1


def test_log_message_uses_caller_location(sink):
    log_message(Severity.WARNING, "where")
    assert sink.records[0][2] == "test_logs.py"
    assert sink.records[0][3] > 0


def test_fatal_raises(sink):
    with pytest.raises(FatalLogError):
        log_message(Severity.FATAL, "boom", "f.cpp", 1)
    assert sink.records[0][4] == "boom\n"


def test_check_passes_silently(sink):
    check(True, "ok")
    assert sink.records == []


def test_check_failure(sink):
    with pytest.raises(FatalLogError):
        check(1 == 2, "1 == 2")
    assert sink.records[0][4].startswith("Check failed: 1 == 2")


def test_file_sink_name_and_threshold(tmp_path):
    base = str(tmp_path / "run_")
    fs = LogFileSink(Severity.WARNING, base)
    try:
        assert re.fullmatch(re.escape(base) + r"\d{8}-\d\d-\d\d-\d\d\.log",
                            fs.log_file_name)
        fs.send(Severity.INFO, "a/b.cpp", "b.cpp", 3, TM, "ignored\n")
        fs.send(Severity.WARNING, "a/b.cpp", "b.cpp", 4, TM, "kept\n")
        fs.wait_till_sent()
        with open(fs.log_file_name, encoding="utf-8") as fh:
            content = fh.read()
    finally:
        fs.close()
    assert "ignored" not in content
    assert content.endswith("b.cpp:4] kept\n")


def test_set_log_destination_writes_file(tmp_path, clean_destinations):
    base = str(tmp_path / "log_")
    set_log_destination(Severity.FATAL, base)
    registered = [s for s in log_sinks() if isinstance(s, LogFileSink)]
    assert len(registered) == 1
    log_message(Severity.ERROR, "to file", "m.cpp", 9)
    with open(registered[0].log_file_name, encoding="utf-8") as fh:
        assert fh.read().endswith("m.cpp:9] to file\n")
    set_log_destination(Severity.FATAL, "")
    assert registered[0] not in log_sinks()


def test_set_log_destination_empty_without_existing(clean_destinations):
    before = log_sinks()
    set_log_destination(Severity.INFO, "")
    assert log_sinks() == before


def test_set_log_destination_replaces(tmp_path, clean_destinations):
    set_log_destination(Severity.ERROR, str(tmp_path / "a_"))
    first = [s for s in log_sinks() if isinstance(s, LogFileSink)]
    set_log_destination(Severity.ERROR, str(tmp_path / "b_"))
    second = [s for s in log_sinks() if isinstance(s, LogFileSink)]
    assert len(first) == 1 and len(second) == 1
    assert first[0] is not second[0]
    assert second[0].base_filename.endswith("b_")
    assert logs._file_sinks[int(Severity.ERROR)] is second[0]