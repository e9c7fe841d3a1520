"""
Developer Portal Session and Run Context

Resolves account credentials from the environment, performs the explicit
authentication step and holds the per-run state (session, host transports,
catalog) that is handed to selection and transfer.
"""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from http.cookiejar import CookieJar
from typing import Any, Dict, List, Mapping, Optional, Union

import requests

from xcodecache.constants import (
    CATALOG_LIST_URL,
    CATALOG_REQUEST_TIMEOUT,
    MSG_INVALID_CREDENTIALS,
    MSG_MISSING_CREDENTIALS,
    PASSWORD_ENV_VAR,
    PRERELEASE_PAGE_URL,
    SIGN_IN_URL,
    TEAM_ID_ENV_VAR,
    USER_ENV_VAR,
)
from xcodecache.download.catalog import (
    merge_prereleases,
    parse_catalog,
    parse_prerelease_page,
)
from xcodecache.download.interfaces import Release
from xcodecache.download.transfer import HostTransports
from xcodecache.download.version import Version
from xcodecache.exceptions import (
    APIError,
    ConfigurationError,
    InvalidCredentialsError,
    MissingCredentialsError,
)
from xcodecache.log_utils import logger
from xcodecache.utils import build_http_session


def format_cookie_jar(jar: CookieJar) -> str:
    """Serialize cookies in the Netscape cookie-file format read by curl."""
    lines = ["# Netscape HTTP Cookie File"]
    for cookie in jar:
        domain = cookie.domain or ""
        lines.append(
            "\t".join(
                [
                    domain,
                    "TRUE" if domain.startswith(".") else "FALSE",
                    cookie.path or "/",
                    "TRUE" if cookie.secure else "FALSE",
                    str(cookie.expires or 0),
                    cookie.name,
                    cookie.value or "",
                ]
            )
        )
    return "\n".join(lines) + "\n"


class AccountClient(ABC):
    """
    Capability that logs in to the developer portal and reads its catalog.

    Implementations own the HTTP session; callers only see the cookie data
    and the raw catalog responses.
    """

    @abstractmethod
    def login(self, user: str, password: str) -> None:
        """
        Authenticate with the portal.

        Raises:
            InvalidCredentialsError: If the portal rejects the credentials.
            APIError: If the portal cannot be reached.
        """

    @abstractmethod
    def select_team(self, team_id: str) -> None:
        """Scope subsequent catalog requests to a team."""

    @property
    @abstractmethod
    def cookie(self) -> str:
        """Session cookies in a form the cookie-capable transport can read."""

    @abstractmethod
    def list_downloads(self) -> Dict[str, Any]:
        """Return the decoded catalog response."""

    @abstractmethod
    def download_page(self) -> str:
        """Return the markup of the pre-release download page."""


class PortalClient(AccountClient):
    """`requests`-based account client for the developer portal."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: int = CATALOG_REQUEST_TIMEOUT,
    ):
        self.session = session or build_http_session()
        self.timeout = timeout
        self.team_id: Optional[str] = None

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            raise APIError(
                "Developer portal request failed",
                endpoint=url,
                status_code=status,
                details=str(exc),
            ) from exc
        except requests.RequestException as exc:
            raise APIError(
                "Could not reach the developer portal", endpoint=url, details=str(exc)
            ) from exc
        return response

    def login(self, user: str, password: str) -> None:
        try:
            self._request(
                "POST",
                SIGN_IN_URL,
                json={"accountName": user, "password": password, "rememberMe": False},
            )
        except APIError as exc:
            if exc.status_code in (401, 403):
                raise InvalidCredentialsError(MSG_INVALID_CREDENTIALS) from exc
            raise
        logger.debug("Signed in to the developer portal as %s", user)

    def select_team(self, team_id: str) -> None:
        self.team_id = team_id

    @property
    def cookie(self) -> str:
        return format_cookie_jar(self.session.cookies)

    def list_downloads(self) -> Dict[str, Any]:
        data = {"teamId": self.team_id} if self.team_id else None
        response = self._request("POST", CATALOG_LIST_URL, data=data)
        try:
            return response.json()
        except ValueError as exc:
            raise APIError(
                "Catalog response was not valid JSON",
                endpoint=CATALOG_LIST_URL,
                status_code=response.status_code,
            ) from exc

    def download_page(self) -> str:
        return self._request("GET", PRERELEASE_PAGE_URL).text


@dataclass(frozen=True)
class Credentials:
    """Account credentials read from the environment."""

    user: str
    password: str = field(repr=False)
    team_id: Optional[str] = None


def read_credentials(
    environ: Mapping[str, str],
) -> Union[Credentials, MissingCredentialsError]:
    """Read credentials from ``environ``; blank values count as missing."""
    user = (environ.get(USER_ENV_VAR) or "").strip()
    password = environ.get(PASSWORD_ENV_VAR) or ""
    if not user or not password:
        return MissingCredentialsError(MSG_MISSING_CREDENTIALS)
    team_id = (environ.get(TEAM_ID_ENV_VAR) or "").strip() or None
    return Credentials(user=user, password=password, team_id=team_id)


@dataclass
class Session:
    """An authenticated portal session."""

    client: AccountClient
    team_id: Optional[str] = None

    @property
    def cookie(self) -> str:
        return self.client.cookie


def authenticate(
    client: AccountClient, environ: Optional[Mapping[str, str]] = None
) -> Union[Session, ConfigurationError]:
    """
    Log in with credentials from the environment.

    The outcome is returned rather than raised: a ``Session`` on success,
    ``MissingCredentialsError`` or ``InvalidCredentialsError`` otherwise.
    Deciding whether to exit is left to the caller.
    """
    credentials = read_credentials(os.environ if environ is None else environ)
    if isinstance(credentials, ConfigurationError):
        return credentials

    try:
        client.login(credentials.user, credentials.password)
    except InvalidCredentialsError as exc:
        return exc

    if credentials.team_id:
        client.select_team(credentials.team_id)
        logger.debug("Using team %s", credentials.team_id)

    return Session(client=client, team_id=credentials.team_id)


@dataclass
class RunContext:
    """
    State for one run, built once at startup and passed down explicitly.

    ``releases`` is populated by ``load_catalog``; reading it before the
    catalog was loaded is a programming error.
    """

    session: Session
    transports: HostTransports
    config: Dict[str, Any] = field(default_factory=dict)
    _releases: Optional[List[Release]] = field(default=None, repr=False)

    def load_catalog(self, floor: Version) -> List[Release]:
        """
        Fetch the catalog and the pre-release page and merge them.

        Raises:
            CatalogError: If the catalog reports a failure result code.
            APIError: If the catalog cannot be fetched.
        """
        releases = parse_catalog(self.session.client.list_downloads(), floor)

        try:
            prereleases = parse_prerelease_page(self.session.client.download_page())
        except APIError as exc:
            logger.warning(f"Could not read the pre-release page: {exc}")
            prereleases = []

        self._releases = merge_prereleases(releases, prereleases)
        logger.info(
            f"Catalog lists {len(releases)} releases and {len(prereleases)} pre-releases"
        )
        return self._releases

    @property
    def releases(self) -> List[Release]:
        if self._releases is None:
            raise RuntimeError("load_catalog() must be called before reading releases")
        return self._releases
