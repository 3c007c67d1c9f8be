# Purpose: Tests for core/approval_gate.py.
# Covers: non-TTY auto-decline, interactive approve/decline, EOF handling,
#         prompt framing, hidden-value masking, long-value truncation.
#
# [SAFETY-CRITICAL] These tests guard the human-in-the-loop gate.

from unittest.mock import patch

from toolgate.core.approval_gate import (
    HIDDEN_VALUE,
    build_confirmation_prompt,
    render_invocation,
    request_approval,
)


# ---------------------------------------------------------------------------
# request_approval
# ---------------------------------------------------------------------------

def test_non_tty_auto_declines(caplog):
    with patch("toolgate.core.approval_gate.sys.stdin") as stdin, \
            patch("builtins.input") as mock_input:
        stdin.isatty.return_value = False
        assert request_approval("prompt") is False
        mock_input.assert_not_called()
    assert "auto-declining" in caplog.text


def test_tty_yes_approves(capsys):
    with patch("toolgate.core.approval_gate.sys.stdin") as stdin, \
            patch("builtins.input", return_value=" Yes "):
        stdin.isatty.return_value = True
        assert request_approval("Run it?") is True
    assert "Run it?" in capsys.readouterr().out


def test_tty_anything_else_declines():
    with patch("toolgate.core.approval_gate.sys.stdin") as stdin, \
            patch("builtins.input", return_value="sure"):
        stdin.isatty.return_value = True
        assert request_approval("Run it?") is False


def test_tty_eof_declines():
    with patch("toolgate.core.approval_gate.sys.stdin") as stdin, \
            patch("builtins.input", side_effect=EOFError):
        stdin.isatty.return_value = True
        assert request_approval("Run it?") is False


# ---------------------------------------------------------------------------
# Prompt rendering
# ---------------------------------------------------------------------------

def test_prompt_is_framed():
    prompt = build_confirmation_prompt("Remove-Item", {"Path": "/tmp/x"})
    lines = prompt.strip().splitlines()
    assert lines[0] == "=" * 60
    assert lines[-1] == "=" * 60
    assert "[CONFIRMATION REQUIRED]" in lines
    assert "Tool: Remove-Item" in lines
    assert 'Invocation: Remove-Item(Path="/tmp/x")' in lines


def test_render_invocation_compacts_values():
    text = render_invocation("Set-Tags", {"tags": ["a", "b"], "opts": {"force": True}, "n": 3})
    assert text == 'Set-Tags(tags=["a","b"], opts={"force":true}, n=3)'


def test_render_invocation_without_arguments():
    assert render_invocation("Get-Time", {}) == "Get-Time()"


def test_hidden_values_are_masked_case_insensitively():
    text = render_invocation("Login", {"User": "ada", "ApiToken": "abc"}, ["*token"])
    assert text == f'Login(User="ada", ApiToken={HIDDEN_VALUE})'


def test_long_values_are_truncated():
    text = render_invocation("Write-File", {"content": "x" * 500})
    value = text[len("Write-File(content="):-1]
    assert len(value) == 201
    assert value.endswith("…")
