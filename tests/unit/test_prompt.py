import io

import pytest

from mcs.prompt import confirm_word


class TtyInput(io.StringIO):
    def isatty(self):
        return True


@pytest.mark.unit
def test_reads_answer_from_interactive_stdin():
    out = io.StringIO()
    assert confirm_word("Type 'destroy': ", "destroy", stdin=TtyInput("destroy\n"), out=out)
    assert out.getvalue() == "Type 'destroy': "


@pytest.mark.unit
def test_wrong_answer_or_eof_declines():
    assert not confirm_word("? ", "destroy", stdin=TtyInput("yes\n"), out=io.StringIO())
    assert not confirm_word("? ", "destroy", stdin=TtyInput(""), out=io.StringIO())


@pytest.mark.unit
def test_piped_stdin_falls_back_to_terminal(tmp_path):
    tty = tmp_path / "tty"
    tty.write_text("destroy\n")
    piped = io.StringIO("not read\n")

    assert confirm_word("? ", "destroy", stdin=piped, out=io.StringIO(), tty_path=str(tty))
    assert piped.read() == "not read\n"


@pytest.mark.unit
def test_no_terminal_fails_closed(tmp_path):
    out = io.StringIO()
    ok = confirm_word("? ", "destroy", stdin=io.StringIO("destroy\n"), out=out, tty_path=str(tmp_path / "missing"))
    assert ok is False
    assert "No interactive terminal" in out.getvalue()
