"""
REST client for Communication Identity routes on an Azure Communication
Services endpoint.

Every call is a single signed POST; see :mod:`communication_identity.signer`
for the signing scheme.
"""

import base64
import binascii
import concurrent.futures
import json
import logging
import threading
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import requests

from .constants import (
    API_VERSION,
    API_VERSION_PARAM,
    CREATE_IDENTITY_PATH,
    DEFAULT_CONFIG,
    TOKEN_FOR_TEAMS_USER_PATH,
)
from .exceptions import (
    ConfigurationError,
    IdentityClientError,
    OpaqueRemoteError,
    RemoteServiceError,
    RequestCancelledError,
    ResponseDecodeError,
    SigningError,
    TransportError,
)
from .models import AccessToken, IdentityTokenResult, parse_error_envelope
from .signer import Clock, RequestSigner

logger = logging.getLogger(__name__)

# How often an in-flight request checks its cancel event, in seconds
CANCEL_POLL_INTERVAL = 0.05


def _decode_access_key(access_key: str) -> bytes:
    try:
        secret = base64.b64decode(access_key, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise ConfigurationError(f"access key is not valid base64: {e}") from e
    if not secret:
        raise ConfigurationError("access key cannot be empty")
    return secret


class IdentityClient:
    """
    Client for the Communication Identity service.

    Holds the endpoint, decoded access key and application id; none of
    them change after construction.
    """

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        app_id: str,
        session: Optional[requests.Session] = None,
        clock: Optional[Clock] = None,
        **config,
    ):
        """
        Initialize the client.

        Args:
            endpoint: Communication Services endpoint, e.g.
                ``https://<resource>.communication.azure.com``
            access_key: Base64 encoded access key of the resource
            app_id: Id of the app registration with Teams permissions
            session: Transport used to send requests (defaults to a new
                ``requests.Session``)
            clock: Time source for request dates (for tests)
            **config: Configuration options (timeout)

        Raises:
            ConfigurationError: If the access key is not valid base64 or
                the endpoint or configuration is unusable
        """
        self.endpoint = endpoint.rstrip('/') if isinstance(endpoint, str) else endpoint
        self.app_id = app_id

        # Merge default config with user overrides
        self.config = {**DEFAULT_CONFIG, **config}
        self._validate_config()

        self._signer = RequestSigner(_decode_access_key(access_key), clock=clock)

        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()

    @classmethod
    def from_connection_string(cls, connection_string: str, app_id: str, **kwargs) -> 'IdentityClient':
        """Build a client from ``endpoint=...;accesskey=...``."""
        values = {}
        for part in (connection_string or '').split(';'):
            if not part.strip():
                continue
            key, sep, value = part.partition('=')
            if not sep:
                raise ConfigurationError(f"malformed connection string segment: {key!r}")
            values[key.strip().lower()] = value.strip()

        try:
            endpoint, access_key = values['endpoint'], values['accesskey']
        except KeyError as e:
            raise ConfigurationError(f"connection string is missing {e.args[0]!r}") from e
        return cls(endpoint, access_key, app_id, **kwargs)

    def _validate_config(self):
        """Validate client configuration."""
        if not isinstance(self.endpoint, str):
            raise ConfigurationError("endpoint must be a string")
        try:
            self.endpoint.encode('utf-8')
        except UnicodeEncodeError as e:
            raise ConfigurationError("endpoint is not valid utf-8") from e
        parts = urlsplit(self.endpoint)
        if not parts.scheme or not parts.netloc:
            raise ConfigurationError(f"endpoint is not an absolute URL: {self.endpoint!r}")

        timeout = self.config['timeout']
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ConfigurationError("timeout must be a positive number")

    def build_endpoint_url(self, sub_path: str, api_version: str = API_VERSION) -> str:
        """
        Join the endpoint with ``sub_path`` and set the api-version parameter.

        Existing query parameters are kept, repeated keys included; api-version
        is overwritten. Keys are sorted, values keep their order.
        """
        parts = urlsplit(self.endpoint)
        path = parts.path.rstrip('/') + '/' + sub_path.lstrip('/')

        query = [
            (key, value)
            for key, value in parse_qsl(parts.query, keep_blank_values=True)
            if key != API_VERSION_PARAM
        ]
        query.append((API_VERSION_PARAM, api_version))
        try:
            encoded = urlencode(sorted(query, key=lambda pair: pair[0]))
        except UnicodeEncodeError as e:
            raise ConfigurationError(f"endpoint query is not valid utf-8: {e}") from e

        return urlunsplit((parts.scheme, parts.netloc, path, encoded, ''))

    def _prepare_request_body(self, payload: Dict[str, Any]) -> bytes:
        """Serialize a request payload."""
        try:
            return json.dumps(payload, separators=(',', ':')).encode('utf-8')
        except (TypeError, ValueError) as e:
            raise IdentityClientError(f"failed to build request body: {e}") from e

    @staticmethod
    def _check_cancelled(cancel: Optional[threading.Event]):
        if cancel is not None and cancel.is_set():
            raise RequestCancelledError("request cancelled by caller")

    @staticmethod
    def _release(response):
        try:
            response.close()
        except Exception as e:
            logger.warning("failed to close response body: %s", e)

    def _post(
        self,
        sub_path: str,
        payload: Dict[str, Any],
        success_status: int,
        decode: Callable[[Any], Any],
        timeout: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
    ):
        """
        Sign and send a POST, then map the response.

        Raises:
            IdentityClientError: Subclass naming the step that failed
        """
        url = self.build_endpoint_url(sub_path)
        body = self._prepare_request_body(payload)

        try:
            signed = self._signer.sign(url, body)
        except SigningError as e:
            raise SigningError(f"failed to create signed request: {e}") from e

        self._check_cancelled(cancel)

        logger.debug("POST %s (%d bytes)", sub_path, len(body))
        request_kwargs = dict(
            headers=signed.as_headers(),
            data=body,
            timeout=timeout if timeout is not None else self.config['timeout'],
            stream=True,
        )
        try:
            response = self._dispatch(url, request_kwargs, cancel)
        except requests.Timeout as e:
            raise RequestCancelledError(f"request to {sub_path} timed out: {e}") from e
        except requests.RequestException as e:
            raise TransportError(f"failed to send request: {e}") from e

        try:
            self._check_cancelled(cancel)
            return self._handle_response(response, success_status, decode)
        finally:
            self._release(response)

    def _release_late(self, future: concurrent.futures.Future):
        if not future.cancelled() and future.exception() is None:
            self._release(future.result())

    def _dispatch(self, url: str, request_kwargs: Dict[str, Any], cancel: Optional[threading.Event]):
        """
        Send the request, returning early if ``cancel`` is set while it is in flight.

        With a cancel event the transport call runs in a worker thread; a
        response that arrives after cancellation is closed when it lands.
        """
        if cancel is None:
            return self.session.request('POST', url, **request_kwargs)

        executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
        try:
            future = executor.submit(self.session.request, 'POST', url, **request_kwargs)
        finally:
            executor.shutdown(wait=False)

        while True:
            done, _ = concurrent.futures.wait([future], timeout=CANCEL_POLL_INTERVAL)
            if done:
                return future.result()
            if cancel.is_set():
                future.add_done_callback(self._release_late)
                raise RequestCancelledError("request cancelled by caller")

    def _handle_response(self, response, success_status: int, decode: Callable[[Any], Any]):
        status = response.status_code
        logger.debug("response status %s", status)

        if status == success_status:
            # requests.JSONDecodeError is both a ValueError and a RequestException
            try:
                return decode(response.json())
            except (ValueError, KeyError, TypeError, RecursionError) as e:
                raise ResponseDecodeError(
                    f"failed to parse response body for status {status}: {e}"
                ) from e
            except requests.RequestException as e:
                raise TransportError(f"failed to read response body: {e}") from e

        try:
            error = parse_error_envelope(response.json())
        except (ValueError, KeyError, TypeError, RecursionError):
            raise OpaqueRemoteError(status, response.reason or '') from None
        except requests.RequestException as e:
            raise TransportError(f"failed to read response body: {e}") from e

        raise RemoteServiceError(status, error)

    def token_for_teams_user(
        self,
        user_oid: str,
        teams_token: str,
        timeout: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
    ) -> AccessToken:
        """
        Exchange an Entra ID token with Teams scope for a Communication
        Identity access token.

        Args:
            user_oid: Object id of the Teams user
            teams_token: Entra ID access token of that user
            timeout: Per-call timeout in seconds (overrides config)
            cancel: Event that aborts the call when set

        Returns:
            AccessToken on HTTP 200
        """
        payload = {
            'appId': self.app_id,
            'token': teams_token,
            'userId': user_oid,
        }
        return self._post(
            TOKEN_FOR_TEAMS_USER_PATH, payload, 200, AccessToken.from_dict,
            timeout=timeout, cancel=cancel,
        )

    def create_identity(
        self,
        scopes: List[str],
        expires_in_minutes: Optional[int] = None,
        timeout: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
    ) -> IdentityTokenResult:
        """
        Create a new identity, issuing a token for ``scopes`` in the same call.

        ``expires_in_minutes`` is left out of the request when None, letting
        the service apply its default lifetime.

        Returns:
            IdentityTokenResult on HTTP 201
        """
        payload: Dict[str, Any] = {'createTokenWithScopes': list(scopes)}
        if expires_in_minutes is not None:
            payload['expiresInMinutes'] = expires_in_minutes
        return self._post(
            CREATE_IDENTITY_PATH, payload, 201, IdentityTokenResult.from_dict,
            timeout=timeout, cancel=cancel,
        )

    def close(self):
        """Close the HTTP session if this client created it."""
        if self._owns_session and self.session:
            self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
