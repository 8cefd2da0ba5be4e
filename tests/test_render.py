import io
import json
import re

import pytest
from hypothesis import given, settings, strategies as st
from requests.structures import CaseInsensitiveDict

from pcurl.models import DecodedBody, RawBody, ResponseView
from pcurl.render import format_body, format_head, highlight_json, render_response

ANSI = re.compile(r"\x1b\[[0-9;]*m")

json_values = st.recursive(
    st.none() | st.booleans() | st.integers() | st.text()
    | st.floats(allow_nan=False, allow_infinity=False),
    lambda children: st.lists(children) | st.dictionaries(st.text(), children),
    max_leaves=20,
)


def view(body, content_type=None, status=200, reason="OK"):
    headers = CaseInsensitiveDict()
    if content_type:
        headers["Content-Type"] = content_type
    return ResponseView(
        status_code=status,
        status_text=reason,
        http_version="1.1",
        headers=headers,
        body=body,
    )


class TtyStringIO(io.StringIO):
    def isatty(self):
        return True


@settings(max_examples=100)
@given(value=json_values.filter(lambda v: v is not None))
def test_json_text_round_trips_through_pretty_printing(value):
    text = json.dumps(value)
    out = format_body(view(RawBody(text), "application/json; charset=utf-8"))
    assert json.loads(out) == value
    assert out == json.dumps(value, indent=2, ensure_ascii=False)


@settings(max_examples=100)
@given(value=st.one_of(st.lists(json_values), st.dictionaries(st.text(), json_values)))
def test_decoded_body_is_pretty_printed(value):
    out = format_body(view(DecodedBody(value), "text/plain"))
    assert json.loads(out) == value


@settings(max_examples=100)
@given(text=st.text(), content_type=st.sampled_from([None, "text/plain", "text/html"]))
def test_non_json_body_is_unchanged(text, content_type):
    assert format_body(view(RawBody(text), content_type)) == text


def test_two_space_indent():
    assert format_body(view(DecodedBody({"a": 1}))) == '{\n  "a": 1\n}'


@pytest.mark.parametrize("text", ["{broken", "<html>oops</html>", ""])
def test_unparsable_json_falls_back_to_raw(text):
    assert format_body(view(RawBody(text), "application/json")) == text


def test_content_type_match_ignores_case():
    assert format_body(view(RawBody('[1,2]'), "Application/JSON")) == "[\n  1,\n  2\n]"


def strip_ansi(text):
    return ANSI.sub("", text)


def test_highlighting_only_adds_escape_codes():
    out = highlight_json('{\n  "a": 1\n}')
    assert "\x1b[" in out
    assert strip_ansi(out) == '{\n  "a": 1\n}'


def test_highlighting_tolerates_illegal_tokens():
    assert strip_ansi(highlight_json('{"a": @@}')) == '{"a": @@}'


def test_format_head():
    response = view(RawBody(""), "text/plain", status=201, reason="Created")
    response.headers["X-Id"] = "7"
    assert format_head(response) == "HTTP/1.1 201 Created\nContent-Type: text/plain\nX-Id: 7\n"


def test_render_include_prints_head_then_blank_line_then_body():
    out = io.StringIO()
    code = render_response(view(RawBody("hi"), "text/plain"), include=True, out=out)
    assert code == 0
    assert out.getvalue() == "HTTP/1.1 200 OK\nContent-Type: text/plain\n\nhi\n"


def test_render_colors_json_on_a_terminal():
    out = TtyStringIO()
    render_response(view(DecodedBody({"a": 1})), out=out)
    assert "\x1b[" in out.getvalue()


def test_render_plain_json_when_piped():
    out = io.StringIO()
    render_response(view(DecodedBody({"a": 1})), out=out)
    assert out.getvalue() == '{\n  "a": 1\n}\n'


def test_error_status_warns_on_stderr(capsys):
    out = io.StringIO()
    code = render_response(view(RawBody("gone"), status=410, reason="Gone"), out=out)
    assert code == 0
    assert out.getvalue() == "gone\n"
    assert "Warning: Request failed with status 410 Gone" in capsys.readouterr().err


def test_silent_suppresses_warning(capsys):
    render_response(view(RawBody("gone"), status=500, reason="Oops"), silent=True, out=io.StringIO())
    assert capsys.readouterr().err == ""


def test_too_deeply_nested_json_falls_back_to_raw():
    text = "[" * 100000 + "]" * 100000
    assert format_body(view(RawBody(text), "application/json")) == text
