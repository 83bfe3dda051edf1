"""
Meta Graph API client.
Shared by the Instagram inbox and the Meta ads partnership tooling.
"""
import httpx
from typing import Optional, Dict, Any, Iterator, List

from ..utils.exceptions import ExternalServiceError

GRAPH_BASE_URL = 'https://graph.facebook.com'


class GraphApiError(ExternalServiceError):
    """Graph API error body, keeping Meta's numeric code and subcode."""

    def __init__(self, message: str, graph_code: Optional[int] = None, graph_subcode: Optional[int] = None):
        self.graph_code = graph_code
        self.graph_subcode = graph_subcode
        super().__init__('Meta', message)


class MetaGraphClient:
    """
    Thin client for the Graph API.

    Supports:
    - GET with cursor pagination
    - POST of form or JSON payloads
    """

    def __init__(self, access_token: str, api_version: str = 'v21.0', transport: httpx.BaseTransport = None):
        if not access_token:
            raise ExternalServiceError('Meta', 'access token not configured')
        self.access_token = access_token
        self.api_version = api_version
        self.base_url = f'{GRAPH_BASE_URL}/{api_version}'
        self.transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(base_url=self.base_url, timeout=30.0, transport=self.transport)

    def _handle(self, response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.status_code >= 400 or 'error' in body:
            error = body.get('error') or {}
            message = error.get('message') or f'HTTP {response.status_code}'
            raise GraphApiError(message, error.get('code'), error.get('error_subcode'))
        return body

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        query = dict(params or {})
        query['access_token'] = self.access_token
        try:
            with self._client() as client:
                response = client.get(f'/{path.lstrip("/")}', params=query)
        except httpx.HTTPError as e:
            raise ExternalServiceError('Meta', 'request failed', e)
        return self._handle(response)

    def post(self, path: str, data: Optional[Dict[str, Any]] = None, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            with self._client() as client:
                response = client.post(
                    f'/{path.lstrip("/")}',
                    params={'access_token': self.access_token},
                    data=data,
                    json=json,
                )
        except httpx.HTTPError as e:
            raise ExternalServiceError('Meta', 'request failed', e)
        return self._handle(response)

    def paginate(self, path: str, params: Optional[Dict[str, Any]] = None, max_pages: int = 20) -> Iterator[List[Dict[str, Any]]]:
        """Yield one page of `data` items at a time, following `paging.cursors.after`."""
        query = dict(params or {})
        for _ in range(max_pages):
            body = self.get(path, query)
            yield body.get('data') or []
            after = ((body.get('paging') or {}).get('cursors') or {}).get('after')
            if not after or not (body.get('paging') or {}).get('next'):
                return
            query['after'] = after
