"""Tests for the text and JSON reporters."""

import io
import json
import os

from subdo.outcome import ErrorKind, InvocationResult, ProcessError
from subdo.report import JsonReporter, OutputMode, Report, TextReporter, make_reporter


def _ok(key, stdout=b"", stderr=b""):
    return InvocationResult(process="cmd", entry=key, key=key, stdout=stdout, stderr=stderr, exit_code=0)


def _timeout(key):
    return InvocationResult(
        process="sleep", entry=key, key=key,
        error=ProcessError(ErrorKind.TIMEOUT, process="sleep", entry=key, duration="1s"),
    )


def _modified():
    return InvocationResult(error=ProcessError.modified_entry())


class FlushCounter(io.BytesIO):
    def __init__(self):
        super().__init__()
        self.flushes = 0

    def flush(self):
        self.flushes += 1
        super().flush()


class TestTextReporter:
    def test_successes_separated_by_blank_line(self):
        out, err = io.BytesIO(), io.BytesIO()
        reporter = TextReporter(out, err)
        reporter.add(_ok("/a", b"one\n"))
        reporter.add(_ok("/b", b"two\n"))
        reporter.finish()
        assert out.getvalue() == b"one\n\ntwo\n"
        assert err.getvalue() == b""

    def test_stderr_written_as_warning(self):
        out, err = io.BytesIO(), io.BytesIO()
        reporter = TextReporter(out, err)
        reporter.add(_ok("/a", b"", b"careful"))
        text = err.getvalue().decode()
        assert text.startswith("warning: process cmd for /a wrote to stderr:\n")
        assert text.endswith("careful\n")

    def test_blank_line_after_unterminated_output(self):
        out, err = io.BytesIO(), io.BytesIO()
        reporter = TextReporter(out, err)
        reporter.add(_ok("/a", b"one"))
        reporter.add(_ok("/b", b"two"))
        reporter.add(_ok("/c", b"three\n"))
        reporter.add(_ok("/d", b"four"))
        assert out.getvalue() == b"one\n\ntwo\n\nthree\n\nfour"

    def test_empty_output_after_unterminated_output(self):
        out, err = io.BytesIO(), io.BytesIO()
        reporter = TextReporter(out, err)
        reporter.add(_ok("/a", b"one"))
        reporter.add(_ok("/b", b""))
        reporter.add(_ok("/c", b"two\n"))
        assert out.getvalue() == b"one\n\n\ntwo\n"

    def test_undecodable_entry_name_written_as_raw_bytes(self):
        out, err = io.BytesIO(), io.BytesIO()
        reporter = TextReporter(out, err)
        entry = os.fsdecode(b"/p/bad\xff")
        reporter.add(_ok(entry, b"hi\n", b"w\n"))
        reporter.add(_timeout(entry))
        text = err.getvalue()
        assert b"warning: process cmd for /p/bad\xff wrote to stderr:\nw\n" in text
        assert b"error: process sleep for /p/bad\xff could not complete in 1s\n" in text

    def test_errors_go_to_error_channel(self):
        out, err = io.BytesIO(), io.BytesIO()
        reporter = TextReporter(out, err)
        reporter.add(_timeout("/slow"))
        reporter.add(_modified())
        assert out.getvalue() == b""
        lines = err.getvalue().decode().splitlines()
        assert lines == [
            "error: process sleep for /slow could not complete in 1s",
            "error: invalid directory entry from likely modification",
        ]

    def test_errors_do_not_count_as_successes(self):
        out, err = io.BytesIO(), io.BytesIO()
        reporter = TextReporter(out, err)
        reporter.add(_timeout("/slow"))
        reporter.add(_ok("/a", b"one\n"))
        assert out.getvalue() == b"one\n"

    def test_flushes_once_at_finish(self):
        out, err = FlushCounter(), FlushCounter()
        reporter = TextReporter(out, err)
        for key in ("/a", "/b", "/c"):
            reporter.add(_ok(key, b"x\n", b"w"))
        assert out.flushes == 0 and err.flushes == 0
        reporter.finish()
        assert out.flushes == 1 and err.flushes == 1


class TestReport:
    def test_counts_modified_entries(self):
        report = Report()
        report.insert(_modified())
        report.insert(_modified())
        report.insert(_ok("/a"))
        assert report.unknown == 2
        assert list(report.processed) == ["/a"]

    def test_last_write_wins(self):
        report = Report()
        report.insert(_ok("/a", b"first"))
        report.insert(_ok("/a", b"second"))
        assert report.to_dict()["processed"]["/a"]["stdout"] == "second"

    def test_to_dict_shape(self):
        report = Report()
        report.insert(_ok("/a", b"hi\n", b""))
        report.insert(_timeout("/slow"))
        assert report.to_dict() == {
            "unknown": 0,
            "processed": {
                "/a": {"status": "Ok", "stdout": "hi\n", "stderr": ""},
                "/slow": {"status": "Error", "type": "Timeout", "process": "sleep", "duration": "1s"},
            },
        }

    def test_dumps_compact_and_pretty(self):
        report = Report()
        report.insert(_ok("/a", b"hi"))
        compact = report.dumps()
        pretty = report.dumps(pretty=True)
        assert "\n" not in compact
        assert ": " not in compact
        assert "\n  " in pretty
        assert json.loads(compact) == json.loads(pretty) == report.to_dict()


class TestJsonReporter:
    def test_undecodable_key_rendered_lossily(self):
        out = io.BytesIO()
        reporter = JsonReporter(out)
        reporter.add(_ok(os.fsdecode(b"/p/bad\xff"), b"x"))
        reporter.finish()
        data = json.loads(out.getvalue())
        assert list(data["processed"]) == ["/p/bad\ufffd"]

    def test_writes_once_on_finish(self):
        out = FlushCounter()
        reporter = JsonReporter(out)
        reporter.add(_ok("/a", b"x"))
        reporter.add(_modified())
        assert out.getvalue() == b""
        reporter.finish()
        data = json.loads(out.getvalue())
        assert data["unknown"] == 1
        assert data["processed"]["/a"]["status"] == "Ok"
        assert out.flushes == 1


class TestMakeReporter:
    def test_modes(self):
        out, err = io.BytesIO(), io.BytesIO()
        assert isinstance(make_reporter(OutputMode.STANDARD, out, err), TextReporter)
        compact = make_reporter(OutputMode.JSON, out, err)
        pretty = make_reporter(OutputMode.JSON_PRETTY, out, err)
        assert isinstance(compact, JsonReporter) and not compact.pretty
        assert isinstance(pretty, JsonReporter) and pretty.pretty
