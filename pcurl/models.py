import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from requests.structures import CaseInsensitiveDict


@dataclass(frozen=True)
class BasicAuth:
    username: str
    password: str = ""

    def as_tuple(self) -> tuple[str, str]:
        return self.username, self.password


@dataclass(frozen=True)
class RequestSpec:
    """Everything needed to issue one request, built once from the CLI."""
    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Optional[str] = None
    basic_auth: Optional[BasicAuth] = None
    verify_tls: bool = True


@dataclass(frozen=True)
class RawBody:
    text: str


@dataclass(frozen=True)
class DecodedBody:
    """A body the client already decoded into a JSON object or array."""
    value: Union[dict, list]


Body = Union[RawBody, DecodedBody]


@dataclass
class ResponseView:
    status_code: int
    status_text: str
    http_version: str
    headers: CaseInsensitiveDict
    body: Body

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")

    def is_error(self) -> bool:
        return self.status_code >= 400


def parse_json(text: str) -> Optional[Any]:
    """Parse ``text`` as JSON, returning None when it isn't JSON.

    A literal ``null`` body also comes back as None; callers print the raw
    text in that case, which reads the same. Nesting too deep for the
    decoder counts as not JSON.
    """
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        return None
