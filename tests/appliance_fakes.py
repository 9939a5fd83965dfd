"""
In-memory HQPlayer web interface for the test suite.

Served through httpx.MockTransport: answers unauthenticated requests with a
Digest challenge, verifies the Authorization header it receives, renders a
profile form and records every load submission.
"""

import re
from typing import Optional
from urllib.parse import parse_qsl

import httpx

from hqp_profile_switcher.digest_session import compute_digest_response

PROFILE_PATH = "/config/profile/load"

DEFAULT_PROFILES = (
    ("", "Default"),
    ("classical", "Classical"),
    ("sda", "SDA"),
    ("zen", "Zen Mode"),
)

_AUTH_PARAM = re.compile(r'([A-Za-z][\w-]*)=(?:"([^"]*)"|([^\s,]*))')


def parse_authorization(header: str) -> dict[str, str]:
    """Split a Digest Authorization header into its parameters."""
    params = {}
    for key, quoted, bare in _AUTH_PARAM.findall(header.split(" ", 1)[-1]):
        params[key.lower()] = quoted if quoted else bare
    return params


def render_profile_page(profiles, token: str = "tok-1") -> str:
    options = "\n".join(
        f'<option value="{value}">{title}</option>' for value, title in profiles
    )
    return (
        "<html><head><title>HQPlayer</title></head><body>\n"
        '<form method="post" action="/config/profile/load">\n'
        f'<input type="hidden" name="_xsrf" value="{token}">\n'
        f'<select name="profile" id="profile">\n{options}\n</select>\n'
        '<input type="submit" value="Load">\n'
        "</form></body></html>"
    )


class FakeAppliance:
    """Digest-protected profile form backed by plain attributes."""

    def __init__(
        self,
        profiles=DEFAULT_PROFILES,
        username: str = "admin",
        password: str = "secret",
        realm: str = "HQPlayer",
        nonce: str = "5f2c1b",
        qop: Optional[str] = "auth",
        algorithm: str = "MD5",
        token: str = "tok-1",
    ) -> None:
        self.profiles = list(profiles)
        self.username = username
        self.password = password
        self.realm = realm
        self.nonce = nonce
        self.qop = qop
        self.algorithm = algorithm
        self.token = token

        self.active: Optional[str] = None
        self.requests: list[httpx.Request] = []
        self.loads: list[dict[str, str]] = []
        self.seen_nc: list[str] = []
        self.challenges_sent = 0

        self.reject_all = False
        self.transport_error: Optional[Exception] = None
        self.form_status: Optional[int] = None
        self.load_status: Optional[int] = None

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def challenge_header(self) -> str:
        parts = [f'Digest realm="{self.realm}"', f'nonce="{self.nonce}"', 'opaque="op4que"']
        if self.qop:
            parts.append(f'qop="{self.qop}"')
        parts.append(f"algorithm={self.algorithm}")
        return ", ".join(parts)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.transport_error is not None:
            raise self.transport_error

        if self.reject_all or not self._authorized(request):
            self.challenges_sent += 1
            return httpx.Response(
                401,
                headers=[
                    ("WWW-Authenticate", self.challenge_header()),
                    ("Set-Cookie", f"hqp_session=s{self.challenges_sent}; Path=/"),
                ],
                text="Unauthorized",
            )

        if request.url.path != PROFILE_PATH:
            return httpx.Response(404, text="Not found")

        if request.method == "GET":
            if self.form_status is not None:
                return httpx.Response(self.form_status, text="error")
            return httpx.Response(200, text=render_profile_page(self.profiles, self.token))

        form = dict(parse_qsl(request.content.decode("utf-8"), keep_blank_values=True))
        if self.load_status is not None:
            return httpx.Response(self.load_status, text="error")
        if form.get("_xsrf") != self.token:
            return httpx.Response(403, text="Forbidden")
        self.loads.append(form)
        self.active = form.get("profile")
        return httpx.Response(200, text="OK")

    def _authorized(self, request: httpx.Request) -> bool:
        header = request.headers.get("authorization")
        if not header or not header.startswith("Digest "):
            return False
        params = parse_authorization(header)
        if params.get("username") != self.username or params.get("nonce") != self.nonce:
            return False

        qop = params.get("qop", "")
        expected = compute_digest_response(
            username=self.username,
            realm=self.realm,
            password=self.password,
            nonce=self.nonce,
            nc=params.get("nc", ""),
            cnonce=params.get("cnonce", ""),
            qop=qop,
            method=request.method,
            uri=params.get("uri", ""),
            algorithm=self.algorithm,
            body=request.content.decode("utf-8"),
        )
        if params.get("response") != expected:
            return False
        if qop:
            self.seen_nc.append(params["nc"])
        return True


class SteppingClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
