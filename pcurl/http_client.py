import logging
import sys

import requests
from requests.structures import CaseInsensitiveDict

from .exceptions import NoResponseError, RequestSetupError, ResponseError
from .models import DecodedBody, RawBody, RequestSpec, ResponseView, parse_json

PCURL_VERSION = "0.1.0"
DEFAULT_USER_AGENT = f"pcurl/{PCURL_VERSION}"
DEFAULT_CHARSET = "utf-8"

# urllib3 reports the protocol version as an integer
HTTP_VERSIONS = {9: "0.9", 10: "1.0", 11: "1.1", 20: "2", 30: "3"}

_log = logging.getLogger(__name__)


def _prepare_request(
        session: requests.Session,
        spec: RequestSpec
    ) -> requests.PreparedRequest:

    body = spec.body.encode('utf-8') if spec.body is not None else None
    request = requests.Request(
        method=spec.method,
        url=spec.url,
        headers=dict(spec.headers),
        data=body,
        auth=spec.basic_auth.as_tuple() if spec.basic_auth else None,
    )
    return session.prepare_request(request)


def _trace_request(
        prepared: requests.PreparedRequest
    ) -> None:

    print(f"> {prepared.method} {prepared.path_url} HTTP/1.1", file=sys.stderr)
    for key, value in prepared.headers.items():
        print(f"> {key}: {value}", file=sys.stderr)
    print(">", file=sys.stderr)
    if prepared.body:
        try:
            print(f"> {prepared.body.decode('utf-8')}", file=sys.stderr)
        except UnicodeDecodeError:
            print(f"> [Binary data ({len(prepared.body)} bytes)]", file=sys.stderr)


def _trace_response(
        view: ResponseView
    ) -> None:

    print(f"< HTTP/{view.http_version} {view.status_code} {view.status_text}", file=sys.stderr)
    for key, value in view.headers.items():
        print(f"< {key}: {value}", file=sys.stderr)
    print("<", file=sys.stderr)


def _decode_body(
        headers: CaseInsensitiveDict,
        content: bytes
    ) -> str:

    """Decodes with the Content-Type charset, or UTF-8 when none is named."""
    content_type = headers.get('content-type', '').lower()
    charset = DEFAULT_CHARSET
    if 'charset=' in content_type:
        charset = content_type.split('charset=')[-1].split(';')[0].strip().strip('"') or DEFAULT_CHARSET
    try:
        return content.decode(charset, errors='replace')
    except LookupError:
        _log.info("Unknown encoding '%s', decoding as %s", charset, DEFAULT_CHARSET)
        return content.decode(DEFAULT_CHARSET, errors='replace')


def _classify_body(
        text: str
    ) -> RawBody | DecodedBody:

    """Decode JSON objects and arrays up front; everything else stays raw."""
    value = parse_json(text)
    if isinstance(value, (dict, list)):
        return DecodedBody(value)
    return RawBody(text)


def build_response_view(
        response: requests.Response
    ) -> ResponseView:

    version = getattr(response.raw, 'version', 11)
    headers = CaseInsensitiveDict(response.headers)
    return ResponseView(
        status_code=response.status_code,
        status_text=response.reason or '',
        http_version=HTTP_VERSIONS.get(version, "1.1"),
        headers=headers,
        body=_classify_body(_decode_body(headers, response.content or b'')),
    )


def _send(
        session: requests.Session,
        prepared: requests.PreparedRequest,
        spec: RequestSpec
    ) -> requests.Response:

    settings = session.merge_environment_settings(
        prepared.url, {}, None, spec.verify_tls, None
    )
    return session.send(prepared, allow_redirects=True, **settings)


def make_request(
        spec: RequestSpec,
        verbose: bool = False
    ) -> ResponseView:

    """Issues the request described by ``spec`` and returns what came back.

    Every status code counts as a response. Failures are raised as
    ``NoResponseError`` (nothing came back), ``ResponseError`` (the library
    failed with a response in hand) or ``RequestSetupError`` (the request
    never left).
    """

    with requests.Session() as session:
        session.headers['User-Agent'] = DEFAULT_USER_AGENT

        try:
            # 1. Build Request
            prepared = _prepare_request(session, spec)
            _log.info("%s %s", prepared.method, prepared.url)
            if verbose:
                _trace_request(prepared)

            # 2. Send Request & Receive Response
            response = _send(session, prepared, spec)

        except (requests.ConnectionError, requests.Timeout) as e:
            _log.info("No response: %s", e)
            raise NoResponseError(str(e)) from e
        except requests.RequestException as e:
            if e.response is not None:
                raise ResponseError(e.response.status_code, e.response.reason or '') from e
            raise RequestSetupError(str(e)) from e
        except ValueError as e:
            raise RequestSetupError(str(e)) from e

        # 3. Parse Response
        for hop in response.history:
            _log.info("Redirected by %s (%d %s)", hop.url, hop.status_code, hop.reason)
        view = build_response_view(response)
        _log.info("Received %d %s", view.status_code, view.status_text)

        if verbose:
            _trace_response(view)

        return view
