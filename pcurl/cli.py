import re
import sys
import argparse
import logging
from typing import Optional

from .exceptions import PcurlError, UsageError
from .http_client import PCURL_VERSION, make_request
from .models import BasicAuth, RequestSpec
from .render import error, render_response

DEFAULT_METHOD = "GET"

# curl options that take a value but have no effect here. Registering them
# keeps their values from being read as the URL.
IGNORED_VALUE_OPTIONS = [
    ("-o", "--output"),
    ("-A", "--user-agent"),
    ("-e", "--referer"),
    ("-b", "--cookie"),
    ("-c", "--cookie-jar"),
    ("-m", "--max-time"),
    ("-w", "--write-out"),
    ("-x", "--proxy"),
    ("-T", "--upload-file"),
    ("-F", "--form"),
    ("-r", "--range"),
    ("--connect-timeout",),
    ("--retry",),
    ("--max-redirs",),
    ("--cacert",),
    ("--cert",),
    ("--key",),
    ("--resolve",),
]

SHORT_SILENT = re.compile(r"^-[A-Za-z]*s[A-Za-z]*$")

_log = logging.getLogger(__name__)


class FirstValueAction(argparse.Action):
    """Stores the first non-empty value given for ``dest`` and ignores later ones."""

    def __call__(self, parser, namespace, values, option_string=None):
        if values and getattr(namespace, self.dest, None) is None:
            setattr(namespace, self.dest, values)


class ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        raise UsageError(message)


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="pcurl",
        allow_abbrev=False,
        description="A curl-like tool that pretty prints JSON responses.")
    parser.add_argument("url", help="The URL to request.")
    parser.add_argument("-X", "--request", default=DEFAULT_METHOD, metavar="METHOD",
                        help="HTTP method to use (GET, POST, PUT, ...). Default is GET.")
    parser.add_argument("-H", "--header", action="append", default=[],
                        help="Pass custom header(s) to the server (e.g., 'Header: Value'). Can be specified multiple times.")
    parser.add_argument("-d", "--data", action=FirstValueAction, dest="data",
                        help="HTTP request body. Content-Type defaults to application/json.")
    parser.add_argument("--data-raw", action=FirstValueAction, dest="data",
                        help="Same as --data.")
    parser.add_argument("--data-binary", action=FirstValueAction, dest="data",
                        help="Same as --data.")
    parser.add_argument("-u", "--user", metavar="USER:PASSWORD",
                        help="Server user and password for HTTP Basic authentication.")
    parser.add_argument("-k", "--insecure", action="store_true",
                        help="Skip TLS certificate verification.")
    parser.add_argument("-i", "--include", action="store_true",
                        help="Include the response status line and headers in the output.")
    parser.add_argument("-s", "--silent", action="store_true",
                        help="Don't print warnings or errors. The exit code still reports failure.")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Make the operation more talkative, showing request/response headers.")
    parser.add_argument("-V", "--version", action="version",
                        version=f"pcurl {PCURL_VERSION}")

    # Redirects are always followed and compressed responses always decoded.
    parser.add_argument("-L", "--location", action="store_true", help=argparse.SUPPRESS)
    parser.add_argument("--compressed", action="store_true", help=argparse.SUPPRESS)
    parser.add_argument("-S", "--show-error", action="store_true", help=argparse.SUPPRESS)
    for flags in IGNORED_VALUE_OPTIONS:
        parser.add_argument(*flags, dest=f"ignored_{flags[-1].lstrip('-').replace('-', '_')}",
                            help=argparse.SUPPRESS)
    return parser


def parse_header(raw: str) -> Optional[tuple[str, str]]:
    """Splits ``'Name: value'`` on the first colon. Returns None if malformed."""
    name, sep, value = raw.partition(':')
    name = name.strip()
    if not sep or not name:
        return None
    return name, value.strip()


def parse_headers(raw_headers: list[str]) -> dict[str, str]:
    headers = {}
    for raw in raw_headers:
        parsed = parse_header(raw)
        if parsed is None:
            _log.info("Skipping malformed header: %r", raw)
            continue
        name, value = parsed
        headers[name] = value
    return headers


def parse_user(user: str) -> BasicAuth:
    username, _, password = user.partition(':')
    return BasicAuth(username, password)


def has_header(headers: dict[str, str], name: str) -> bool:
    """True if ``name`` is set, in any case, to a non-empty value."""
    return any(key.lower() == name.lower() and value for key, value in headers.items())


def drop_header(headers: dict[str, str], name: str) -> None:
    for key in [key for key in headers if key.lower() == name.lower()]:
        del headers[key]


def build_request_spec(args: argparse.Namespace) -> RequestSpec:
    headers = parse_headers(args.header)
    if args.data is not None and not has_header(headers, "Content-Type"):
        drop_header(headers, "Content-Type")
        headers["Content-Type"] = "application/json"

    return RequestSpec(
        method=args.request.upper(),
        url=args.url,
        headers=headers,
        body=args.data,
        basic_auth=parse_user(args.user) if args.user is not None else None,
        verify_tls=not args.insecure,
    )


def parse_args(argv: list[str]) -> tuple[argparse.Namespace, list[str]]:
    """Returns the parsed options and whatever arguments were not recognized."""
    return build_parser().parse_known_args(argv)


def _wants_silence(argv: list[str]) -> bool:
    # Only consulted when parsing itself failed, so look for -s by hand
    # (alone or in a cluster such as -sSL).
    return any(arg == "--silent" or SHORT_SILENT.match(arg) for arg in argv)


def run(argv: list[str]) -> int:
    try:
        args, extras = parse_args(argv)
    except UsageError as e:
        if not _wants_silence(argv):
            error(e.error_line())
        return 1

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="* %(message)s", stream=sys.stderr)
    for extra in extras:
        _log.info("Ignoring unsupported argument: %s", extra)

    try:
        spec = build_request_spec(args)
        view = make_request(spec, verbose=args.verbose)
    except PcurlError as e:
        if not args.silent:
            error(e.error_line())
        return 1

    try:
        return render_response(view, include=args.include, silent=args.silent)
    except BrokenPipeError:
        return 0


def main():
    sys.exit(run(sys.argv[1:]))
