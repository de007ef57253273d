"""Thin HTTP client for the counseling API.

Calls carry the stored bearer token. Requests are not retried; a failed call
raises and the caller decides what to show.
"""
import json
import logging
from pathlib import Path

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = 'http://localhost:3000/api'
DEFAULT_TIMEOUT_SECONDS = 15.0


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(message)


class AuthenticationExpired(ApiError):
    """The stored token was rejected; it has been cleared."""


class TokenStore:
    """Persist the API token in a small JSON file. Last write wins."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            return json.loads(self.path.read_text(encoding='utf-8'))
        except json.JSONDecodeError:
            logger.warning('Ignoring unreadable token store at %s', self.path)
            return {}

    def get(self) -> str | None:
        return self._read().get('token')

    def set(self, token: str) -> None:
        data = self._read()
        data['token'] = token
        self.path.write_text(json.dumps(data), encoding='utf-8')

    def clear(self) -> None:
        data = self._read()
        if data.pop('token', None) is not None:
            self.path.write_text(json.dumps(data), encoding='utf-8')


class ApiClient:
    def __init__(
        self,
        token_store: TokenStore,
        base_url: str = DEFAULT_BASE_URL,
        transport: httpx.BaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.token_store = token_store
        self._http = httpx.Client(base_url=base_url, transport=transport, timeout=timeout)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> 'ApiClient':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def auth_headers(self) -> dict[str, str]:
        token = self.token_store.get()
        return {'Authorization': f'Bearer {token}'} if token else {}

    def _request(self, method: str, path: str, failure: str, **kwargs):
        response = self._http.request(method, path, headers=self.auth_headers(), **kwargs)
        if response.is_error:
            logger.warning('%s %s failed with status %s', method, path, response.status_code)
            raise ApiError(response.status_code, failure)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def get_user_profile(self) -> dict:
        try:
            return self._request('GET', '/users/me', 'Failed to fetch profile')
        except ApiError as exc:
            if exc.status_code == 401:
                self.token_store.clear()
                raise AuthenticationExpired(exc.status_code, 'Session expired') from exc
            raise

    def get_admin_stats(self) -> dict:
        return self._request('GET', '/admin/stats', 'Failed to fetch admin stats')

    def list_appointments(self, status: str | None = None) -> list[dict]:
        params = {'status': status} if status else None
        return self._request('GET', '/appointments', 'Failed to fetch appointments', params=params)

    def book(self, slot_id: int, client_id: str, phone: str, description: str, **extra) -> dict:
        payload = {
            'slot_id': slot_id,
            'client_id': client_id,
            'phone': phone,
            'description': description,
            **extra,
        }
        return self._request('POST', '/appointments/book', 'Failed to book appointment', json=payload)

    def verify_code(self, code: str) -> dict:
        return self._request('POST', '/cases/verify-code', 'Failed to verify code', json={'code': code})
