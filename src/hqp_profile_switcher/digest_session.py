"""
Digest-authenticated HTTP session for the appliance's web interface.

This module provides an async session that keeps cookie and digest challenge
state per appliance, answers a 401 Digest challenge with exactly one retry and
classifies transport failures separately from HTTP-level failures.
"""

import asyncio
import hashlib
import re
import secrets
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from . import __version__
from .audit_logger import AuditLogger
from .enums import ConnectivityErrorCode, DigestAlgorithm, LogLevel, ValidationErrorCode
from .exceptions import AuthenticationError, ConnectivityError, ValidationError
from .models import HTTPResult

# key=value or key="quoted, value" pairs inside a WWW-Authenticate header
_CHALLENGE_PARAM = re.compile(
    r'([A-Za-z][\w-]*)\s*=\s*(?:"((?:[^"\\]|\\.)*)"|([^\s,]*))'
)

_HOST_UNRESOLVED_HINTS = (
    "name or service not known",
    "nodename nor servname",
    "no address associated",
    "getaddrinfo failed",
    "name does not resolve",
)
_DNS_FAILURE_HINTS = (
    "temporary failure in name resolution",
    "try again",
    "eai_again",
)


@dataclass
class DigestChallenge:
    """A server-issued Digest challenge plus the client's request counter."""

    realm: str
    nonce: str
    opaque: str = ""
    qop: str = ""
    algorithm: str = DigestAlgorithm.MD5.value
    nc: int = 0

    def next_nc(self) -> str:
        """Increment the request counter and return it as 8 hex digits."""
        self.nc += 1
        return f"{self.nc:08x}"


def parse_challenge(header: str) -> Optional[DigestChallenge]:
    """
    Parse a ``WWW-Authenticate: Digest ...`` header.

    Quoted-string values are unquoted and unknown parameters are ignored.
    Returns None when the header does not carry a Digest challenge.
    """
    if not header:
        return None
    match = re.search(r"\bdigest\s+", header, re.IGNORECASE)
    if match is None:
        return None

    params: dict[str, str] = {}
    for key, quoted, bare in _CHALLENGE_PARAM.findall(header[match.end():]):
        if quoted:
            params[key.lower()] = re.sub(r"\\(.)", r"\1", quoted)
        else:
            params[key.lower()] = bare

    return DigestChallenge(
        realm=params.get("realm", ""),
        nonce=params.get("nonce", ""),
        opaque=params.get("opaque", ""),
        qop=params.get("qop", ""),
        algorithm=(params.get("algorithm") or DigestAlgorithm.MD5.value).upper(),
    )


def select_qop(offered: str) -> str:
    """Pick the qop token to answer with: 'auth' when offered, else the first token."""
    tokens = [token.strip().lower() for token in offered.split(",") if token.strip()]
    if not tokens:
        return ""
    if "auth" in tokens:
        return "auth"
    return tokens[0]


def _hash_function(algorithm: str) -> Callable[[str], str]:
    base = algorithm.upper().replace("-SESS", "")
    if base == DigestAlgorithm.SHA256.value:
        return lambda value: hashlib.sha256(value.encode("utf-8")).hexdigest()
    return lambda value: hashlib.md5(value.encode("utf-8")).hexdigest()


def compute_digest_response(
    username: str,
    realm: str,
    password: str,
    nonce: str,
    nc: str,
    cnonce: str,
    qop: str,
    method: str,
    uri: str,
    algorithm: str = DigestAlgorithm.MD5.value,
    body: str = "",
) -> str:
    """
    Compute the RFC 2617 / RFC 7616 request digest.

    The result depends only on its arguments, so fixed inputs (including a
    fixed client nonce) always reproduce the same hash.
    """
    h = _hash_function(algorithm)

    ha1 = h(f"{username}:{realm}:{password}")
    if algorithm.upper().endswith("-SESS"):
        ha1 = h(f"{ha1}:{nonce}:{cnonce}")

    if qop == "auth-int":
        ha2 = h(f"{method}:{uri}:{h(body)}")
    else:
        ha2 = h(f"{method}:{uri}")

    if qop:
        return h(f"{ha1}:{nonce}:{nc}:{cnonce}:{qop}:{ha2}")
    return h(f"{ha1}:{nonce}:{ha2}")


def classify_transport_error(error: Exception) -> ConnectivityErrorCode:
    """Map an httpx transport exception onto a connectivity error code."""
    if isinstance(error, httpx.TimeoutException):
        return ConnectivityErrorCode.TIMEOUT

    text = str(error).lower()
    cause = error.__cause__ or error.__context__
    if cause is not None:
        text = f"{text} {cause}".lower()

    if "refused" in text:
        return ConnectivityErrorCode.CONNECTION_REFUSED
    if any(hint in text for hint in _DNS_FAILURE_HINTS):
        return ConnectivityErrorCode.DNS_FAILURE
    if any(hint in text for hint in _HOST_UNRESOLVED_HINTS):
        return ConnectivityErrorCode.HOST_UNRESOLVED
    return ConnectivityErrorCode.NETWORK_ERROR


class DigestSession:
    """
    Async HTTP session with Digest authentication and a private cookie jar.

    One session exists per configured connection. Requests on a session are
    serialized so the digest request counter is never interleaved.
    """

    USER_AGENT = f"hqp-profile-switcher/{__version__} (Python httpx)"

    def __init__(
        self,
        host: str,
        port: int = 8088,
        username: str = "",
        password: str = "",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        cnonce_factory: Optional[Callable[[], str]] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the session.

        Args:
            host: Appliance host name or address
            port: Appliance web interface port
            username: Digest user name
            password: Digest password
            timeout: Transport timeout in seconds
            transport: Optional httpx transport (tests pass httpx.MockTransport)
            cnonce_factory: Optional client nonce generator (tests pass a fixed one)
            logger: Optional audit logger
        """
        missing = [
            name for name, value in
            (("host", host), ("username", username), ("password", password))
            if not value
        ]
        if missing:
            raise ValidationError(
                code=ValidationErrorCode.MISSING_CREDENTIALS.value,
                message=f"Missing connection parameters: {', '.join(missing)}",
                details={"missing": missing},
            )

        self.host = host
        self.port = int(port)
        self.username = username
        self.password = password
        self._timeout = timeout
        self._transport = transport
        self._cnonce_factory = cnonce_factory or (lambda: secrets.token_hex(8))
        self._logger = logger

        self.cookies: dict[str, str] = {}
        self.challenge: Optional[DigestChallenge] = None
        self._lock = asyncio.Lock()
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "DigestSession":
        """Async context manager entry."""
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    @property
    def origin(self) -> str:
        """Scheme, host and port of the appliance, as used in Origin headers."""
        return f"http://{self.host}:{self.port}"

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.origin,
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
                follow_redirects=False,
            )
        return self._client

    def base_headers(self) -> dict[str, str]:
        return {
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Connection": "keep-alive",
            "User-Agent": self.USER_AGENT,
        }

    def serialize_cookies(self) -> str:
        """Render the cookie jar as a Cookie header value."""
        return "; ".join(f"{name}={value}" for name, value in self.cookies.items())

    def collect_cookies(self, set_cookie_headers: list[str]) -> None:
        """Merge Set-Cookie header values into the jar, last write wins."""
        for raw in set_cookie_headers:
            pair = raw.split(";", 1)[0]
            if "=" not in pair:
                continue
            name, value = pair.split("=", 1)
            name = name.strip()
            if name:
                self.cookies[name] = value.strip()

    def build_authorization(self, method: str, uri: str, body: str = "") -> Optional[str]:
        """
        Build the Authorization header for the cached challenge.

        Increments the challenge's request counter. Returns None when no
        challenge has been received yet.
        """
        challenge = self.challenge
        if challenge is None or not challenge.nonce:
            return None

        nc = challenge.next_nc()
        cnonce = self._cnonce_factory()
        qop = select_qop(challenge.qop)
        response = compute_digest_response(
            username=self.username,
            realm=challenge.realm,
            password=self.password,
            nonce=challenge.nonce,
            nc=nc,
            cnonce=cnonce,
            qop=qop,
            method=method,
            uri=uri,
            algorithm=challenge.algorithm,
            body=body,
        )

        parts = [
            f'Digest username="{self.username}"',
            f'realm="{challenge.realm}"',
            f'nonce="{challenge.nonce}"',
            f'uri="{uri}"',
            f"algorithm={challenge.algorithm}",
            f'response="{response}"',
        ]
        if qop:
            parts.extend([f"qop={qop}", f"nc={nc}", f'cnonce="{cnonce}"'])
        if challenge.opaque:
            parts.append(f'opaque="{challenge.opaque}"')
        return ", ".join(parts)

    async def _exchange(
        self,
        method: str,
        path: str,
        headers: dict[str, str],
        body: Optional[str],
    ) -> httpx.Response:
        client = self._ensure_client()

        merged = {**self.base_headers(), **headers}
        cookie_header = self.serialize_cookies()
        if cookie_header:
            merged["Cookie"] = cookie_header
        authorization = self.build_authorization(method, path, body or "")
        if authorization:
            merged["Authorization"] = authorization

        try:
            response = await client.request(
                method,
                path,
                headers=merged,
                content=body.encode("utf-8") if body else None,
            )
        except httpx.TransportError as e:
            code = classify_transport_error(e)
            self._log_error(
                f"Transport failure on {method} {path}: {code.value}",
                e,
                path,
            )
            raise ConnectivityError(
                code=code.value,
                message=f"Unable to reach {self.host}:{self.port} ({code.value}): {e}",
                details={"host": self.host, "port": self.port, "path": path},
            ) from e

        # Cookies live only in self.cookies.
        client.cookies.clear()
        self.collect_cookies(response.headers.get_list("set-cookie"))

        self._log(
            LogLevel.DEBUG,
            f"{method} {path} -> {response.status_code}",
            {"status_code": response.status_code, "nc": self.challenge.nc if self.challenge else 0},
        )
        return response

    async def request(
        self,
        method: str,
        path: str,
        body: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> HTTPResult:
        """
        Perform an authenticated request.

        A 401 carrying a Digest challenge is answered with exactly one retry;
        a second 401 raises AuthenticationError.

        Raises:
            AuthenticationError: If the appliance rejects the credentials
            ConnectivityError: On refused connections, unresolved hosts or timeouts
        """
        method = method.upper()
        headers = headers or {}

        async with self._lock:
            response = await self._exchange(method, path, headers, body)

            if response.status_code == 401:
                challenge = parse_challenge(response.headers.get("www-authenticate", ""))
                if challenge is None:
                    raise AuthenticationError(
                        code="unsupported_challenge",
                        message="Appliance did not offer Digest authentication",
                        details={"path": path},
                    )
                self.challenge = challenge
                self._log(
                    LogLevel.DEBUG,
                    "Received digest challenge",
                    {"realm": challenge.realm, "qop": challenge.qop, "algorithm": challenge.algorithm},
                )
                response = await self._exchange(method, path, headers, body)

                if response.status_code == 401:
                    self._log_error("Digest authentication rejected", None, path, 401)
                    raise AuthenticationError(
                        code="authentication_failed",
                        message="Authentication failed: check username and password",
                        details={"path": path, "realm": challenge.realm},
                    )

        return HTTPResult(
            status_code=response.status_code,
            headers=dict(response.headers),
            body=response.text,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, "DigestSession", message, data)

    def _log_error(
        self,
        message: str,
        error: Optional[Exception],
        path: str,
        status_code: Optional[int] = None,
    ) -> None:
        if self._logger:
            self._logger.log_error(
                "DigestSession",
                message,
                error=error,
                request_path=path,
                response_status_code=status_code,
            )
