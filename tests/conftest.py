from unittest.mock import Mock, patch

import pytest
import requests
from requests.structures import CaseInsensitiveDict


def make_response(status=200, reason="OK", body=b"", headers=None,
                  request=None, version=11, url="https://example.com/"):
    response = requests.Response()
    response.status_code = status
    response.reason = reason
    response._content = body
    response.headers = CaseInsensitiveDict(headers or {})
    response.encoding = requests.utils.get_encoding_from_headers(response.headers)
    response.raw = Mock(version=version)
    response.url = url
    response.request = request
    return response


@pytest.fixture
def serve():
    """Patches ``requests.Session.send`` to answer with a canned response.

    Call the fixture with the ``make_response`` arguments; the returned mock
    records the prepared request that would have gone out.
    """
    patcher = None

    def _serve(**kwargs):
        nonlocal patcher

        def send(prepared, **send_kwargs):
            return make_response(request=prepared, url=prepared.url, **kwargs)

        patcher = patch.object(requests.Session, "send", side_effect=send)
        return patcher.start()

    yield _serve
    if patcher is not None:
        patcher.stop()
