import pytest

from protocols.HTTP import HTTPRequest
from protocols.exceptions import HTTPClientError, MalformedPathError


def _request(**overrides):
    options = dict(hostname="example.com", method="GET", path="/")
    options.update(overrides)
    return HTTPRequest(**options)


def test_get_request_exact_bytes():
    req = HTTPRequest(hostname="example.com", port=80, path="/foo?x=1", method="GET",
                      headers={"Accept": "*/*"})
    assert req.build_request() == b"GET /foo?x=1 HTTP/1.1\r\nHost: example.com\r\nAccept: */*\r\n\r\n"


def test_post_body_appended_after_content_length():
    req = _request(method="POST", body="a=1")
    wire = req.build_request()
    assert wire == b"POST / HTTP/1.1\r\nHost: example.com\r\nContent-Length: 3\r\n\r\na=1"
    assert wire.endswith(b"Content-Length: 3\r\n\r\na=1")


def test_encoding_is_deterministic():
    req = _request(method="PUT", path="/items/1?force=true",
                   headers={"X-One": "1", "X-Two": "2"}, body="payload")
    assert req.build_request() == req.build_request()


def test_headers_keep_insertion_order():
    req = _request(headers={"C-Header": "c", "A-Header": "a", "B-Header": "b"})
    wire = req.build_request().decode()
    assert wire.index("C-Header: c") < wire.index("A-Header: a") < wire.index("B-Header: b")


def test_duplicate_header_last_write_wins():
    headers = {}
    headers["X-Token"] = "first"
    headers["X-Token"] = "second"
    wire = _request(headers=headers).build_request().decode()
    assert wire.count("X-Token") == 1
    assert "X-Token: second\r\n" in wire


def test_no_body_means_no_content_length():
    wire = _request().build_request()
    assert b"Content-Length" not in wire
    assert wire.endswith(b"\r\n\r\n")


def test_empty_body_still_sends_content_length():
    wire = _request(method="POST", body="").build_request()
    assert wire.endswith(b"Content-Length: 0\r\n\r\n")


def test_content_length_counts_utf8_bytes():
    wire = _request(method="POST", body="é").build_request()
    assert b"Content-Length: 2\r\n" in wire
    assert wire.endswith("\r\n\r\né".encode("utf-8"))


@pytest.mark.parametrize("body", [None, "", "x=1", "line1\nline2"])
def test_single_terminator_right_before_body(body):
    wire = _request(method="POST", headers={"Accept": "*/*"}, body=body).build_request()
    assert wire.count(b"\r\n\r\n") == 1

    head, _, rest = wire.partition(b"\r\n\r\n")
    expected_body = b"" if body is None else body.encode("utf-8")
    assert rest == expected_body


def test_host_header_omits_port():
    wire = _request(port=8080).build_request()
    assert b"Host: example.com\r\n" in wire
    assert b"8080" not in wire


def test_default_port():
    assert _request().port == 80
    assert _request(port=None).port == 80
    assert _request(port=0).port == 80
    assert _request(port=None).build_request() == _request(port=80).build_request()


@pytest.mark.parametrize("port", [-1, 65536])
def test_invalid_port_rejected(port):
    with pytest.raises(ValueError):
        _request(port=port)


@pytest.mark.parametrize("field", ["hostname", "method"])
def test_required_fields(field):
    with pytest.raises(ValueError):
        _request(**{field: ""})


def test_method_case_preserved():
    wire = _request(method="purge").build_request()
    assert wire.startswith(b"purge / HTTP/1.1\r\n")


@pytest.mark.parametrize("path, target", [
    ("", "/"),
    ("/", "/"),
    ("foo", "/foo"),
    ("foo/bar?x=1", "/foo/bar?x=1"),
    ("?x=1", "/?x=1"),
    ("/foo?", "/foo"),
    ("/foo#section", "/foo"),
    ("/a/b/../c", "/a/c"),
    ("/a b", "/a%20b"),
    ("/search?q=a b", "/search?q=a%20b"),
    ("/café", "/caf%C3%A9"),
    ("/already%20encoded", "/already%20encoded"),
    ("http://other.host/x?y=2", "/x?y=2"),
    ("\\foo", "/foo"),
    ("\\a\\b?x=\\y", "/a/b?x=\\y"),
])
def test_path_resolved_against_host(path, target):
    assert _request(path=path).target == target


def test_resolve_target_splits_search():
    assert _request(path="/foo?x=1&y=2").resolve_target() == ("/foo", "?x=1&y=2")
    assert _request(path="/foo").resolve_target() == ("/foo", "")


@pytest.mark.parametrize("path", ["http://[::1/x", "http://example.com:port/x", "http://", "//", "http://?x=1"])
def test_malformed_path(path):
    req = _request(path=path)
    with pytest.raises(MalformedPathError) as excinfo:
        req.build_request()

    assert isinstance(excinfo.value, HTTPClientError)
    assert isinstance(excinfo.value, ValueError)
    assert excinfo.value.cause is not None


def test_headers_copied_on_construction():
    headers = {"Accept": "*/*"}
    req = _request(headers=headers)
    headers["X-Later"] = "1"
    req.headers["X-Other"] = "2"
    assert req.headers == {"Accept": "*/*"}


def test_from_options_accepts_data_alias():
    req = HTTPRequest.from_options({"hostname": "example.com", "path": "/submit",
                                    "method": "POST", "data": "a=1"})
    assert req.body == "a=1"
    assert req.port == 80
    assert req.build_request().endswith(b"\r\n\r\na=1")
