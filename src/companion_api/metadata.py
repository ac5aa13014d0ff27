"""
Audio-feature lookup against the Spotify Web API.

The gateway authenticates as the application (client-credentials grant) and
keeps the app token in a ProviderTokenCache owned by the gateway instance.
"""

from __future__ import annotations

import base64
import enum
import logging
import os
import threading
import time
from typing import Any, Callable, Dict, Optional

import requests

from companion_api.errors import ProviderError, ProviderTokenRefreshedError
from companion_api.models import AUDIO_FEATURE_FIELDS

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNTS_URL = "https://accounts.spotify.com/api/token"
DEFAULT_API_URL = "https://api.spotify.com/v1"

FEATURE_PROJECTION = ("uri",) + AUDIO_FEATURE_FIELDS

_LOOKUP_FAILED = "Error searching for song or getting audio features"


class TokenState(str, enum.Enum):
    NO_TOKEN = "no_token"
    VALID = "valid"
    EXPIRED = "expired"


class ProviderTokenCache:
    """
    Holds one app access token and its expiry.

    All writes go through a single lock, so concurrent callers that find the
    token missing or expired wait for one refresh instead of each running their own.
    """

    def __init__(self, leeway_seconds: int = 60, clock: Callable[[], float] = time.time):
        self._lock = threading.Lock()
        self._token: Optional[str] = None
        self._expires_at = 0.0
        self._leeway = leeway_seconds
        self._clock = clock

    @property
    def state(self) -> TokenState:
        if self._token is None:
            return TokenState.NO_TOKEN
        if self._clock() >= self._expires_at - self._leeway:
            return TokenState.EXPIRED
        return TokenState.VALID

    def store(self, token: str, expires_in: int) -> None:
        with self._lock:
            self._set(token, expires_in)

    def invalidate(self) -> None:
        with self._lock:
            self._token = None
            self._expires_at = 0.0

    def get_or_fetch(self, fetch: Callable[[], Dict[str, Any]]) -> str:
        """Return the cached token, calling fetch() under the lock when it is missing or expired."""
        with self._lock:
            if self.state is TokenState.VALID:
                assert self._token is not None
                return self._token
            data = fetch()
            self._set(data["access_token"], int(data.get("expires_in", 3600)))
            return data["access_token"]

    def _set(self, token: str, expires_in: int) -> None:
        self._token = token
        self._expires_at = self._clock() + expires_in


class MetadataGateway:
    """Client for the provider's search and audio-features endpoints."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_cache: Optional[ProviderTokenCache] = None,
        session: Optional[requests.Session] = None,
        accounts_url: str = DEFAULT_ACCOUNTS_URL,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 15,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_cache = token_cache or ProviderTokenCache()
        self.session = session or requests.Session()
        self.accounts_url = accounts_url
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    def _basic_auth_header(self) -> str:
        b = f"{self.client_id}:{self.client_secret}".encode()
        return "Basic " + base64.b64encode(b).decode()

    def _request_token(self) -> Dict[str, Any]:
        resp = self.session.post(
            self.accounts_url,
            headers={"Authorization": self._basic_auth_header()},
            data={"grant_type": "client_credentials"},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def _refresh_token(self) -> None:
        """Drop the cached token and fetch a fresh one."""
        self.token_cache.invalidate()
        data = self._request_token()
        self.token_cache.store(data["access_token"], int(data.get("expires_in", 3600)))
        logger.info("provider_token_refreshed: expires_in=%s", data.get("expires_in"))

    def _api_get(self, token: str, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        resp = self.session.get(
            f"{self.api_url}{endpoint}",
            headers={"Authorization": f"Bearer {token}"},
            params=params or {},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    # PUBLIC_INTERFACE
    def audio_features(self, song_name: str) -> Dict[str, Any]:
        """
        Return the audio features of the first catalog match for song_name.

        When obtaining the app token fails, one refresh is attempted and the
        lookup itself is abandoned: the caller receives ProviderTokenRefreshedError
        (or ProviderError if the refresh fails as well) and has to ask again.
        """
        try:
            token = self.token_cache.get_or_fetch(self._request_token)
        except (requests.RequestException, KeyError, ValueError) as exc:
            logger.warning("provider_token_failed: exc=%s", exc.__class__.__name__)
            try:
                self._refresh_token()
            except (requests.RequestException, KeyError, ValueError) as refresh_exc:
                logger.error("provider_token_refresh_failed: exc=%s", refresh_exc.__class__.__name__)
                raise ProviderError("Error obtaining provider access token")
            raise ProviderTokenRefreshedError("Provider access token was refreshed; retry the request.")

        try:
            found = self._api_get(token, "/search", {"q": f"track:{song_name}", "type": "track", "limit": 1})
            tracks = found.get("tracks") if isinstance(found, dict) else None
            items = (tracks.get("items") if isinstance(tracks, dict) else None) or []
            if not items:
                raise LookupError(f"no track matches {song_name!r}")
            features = self._api_get(token, f"/audio-features/{items[0]['id']}")
            if not isinstance(features, dict):
                raise ValueError("audio features body is not an object")
        except requests.HTTPError as exc:
            if exc.response is not None and exc.response.status_code == 401:
                # Rejected by the provider; fetch a new token on the next request.
                self.token_cache.invalidate()
            logger.warning("audio_features_failed: song_name=%r exc=%s", song_name, exc)
            raise ProviderError(_LOOKUP_FAILED)
        except (requests.RequestException, LookupError, TypeError, ValueError) as exc:
            logger.warning("audio_features_failed: song_name=%r exc=%s", song_name, exc)
            raise ProviderError(_LOOKUP_FAILED)

        return {field: features.get(field) for field in FEATURE_PROJECTION}


def gateway_from_env() -> MetadataGateway:
    """Build a gateway from SPOTIFY_* environment variables."""
    try:
        timeout = float(os.getenv("SPOTIFY_TIMEOUT_SECONDS", "15"))
    except ValueError:
        timeout = 15.0
    return MetadataGateway(
        client_id=os.getenv("SPOTIFY_CLIENT_ID", ""),
        client_secret=os.getenv("SPOTIFY_CLIENT_SECRET", ""),
        accounts_url=os.getenv("SPOTIFY_ACCOUNTS_URL", DEFAULT_ACCOUNTS_URL),
        api_url=os.getenv("SPOTIFY_API_URL", DEFAULT_API_URL),
        timeout=timeout,
    )
