"""HTTP client for the Modula backend."""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from . import __version__

logger = logging.getLogger(__name__)


class ModulaAPIClient:
    """An API client for the Modula module registry."""
    def __init__(self, base_url: str, token: Optional[str] = None, timeout: int = 30):
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.session = requests.Session()
        self.session.headers.update({
            'User-Agent': f'ModulaCLI/{__version__}',
            'Accept': 'application/json'
        })
        self.timeout = timeout


    def _make_request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        """Centralized method for making HTTP requests.

        Never raises for HTTP or network problems; the returned dict has
        ``success`` plus either ``data`` or ``error`` (and ``status``).
        """
        url = f"{self.base_url}{endpoint}"
        if self.token:
            headers = kwargs.get('headers', {})
            headers['Authorization'] = f'Bearer {self.token}'
            kwargs['headers'] = headers
        logger.debug("%s %s", method, url)
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            if response.headers.get('Content-Type', '').startswith('application/json'):
                try:
                    return {'success': True, 'data': response.json()}
                except ValueError:
                    logger.debug("%s %s -> invalid JSON body", method, url)
                    return {'success': True, 'data': {'message': response.text}}
            return {'success': True, 'data': {'message': response.text or "Success"}}
        except requests.exceptions.HTTPError as e:
            logger.debug("%s %s -> HTTP %s", method, url, e.response.status_code)
            return {'success': False, 'status': e.response.status_code, 'error': _error_payload(e.response)}
        except requests.exceptions.RequestException as e:
            logger.debug("%s %s -> %s", method, url, e)
            return {'success': False, 'status': None, 'error': f'Connection failed: {e}'}


    def register(self, name: str, nickname: str, email: str, password: str) -> Dict[str, Any]:
        """Creates a new user account."""
        return self._make_request('POST', '/auth/register', json={
            'name': name,
            'nickname': nickname,
            'email': email,
            'password': password,
        })


    def login(self, email: str, password: str) -> Dict[str, Any]:
        """Exchanges credentials for a bearer token, returned under ``token``."""
        result = self._make_request('POST', '/auth/login', json={'email': email, 'password': password})
        if result['success']:
            data = result['data'] if isinstance(result['data'], dict) else {}
            token = data.get('access_token') or data.get('token')
            if not token:
                return {'success': False, 'status': None, 'error': 'Login response did not include a token.'}
            result['token'] = token
        return result


    def list_modules(self) -> Dict[str, Any]:
        return self._make_request('GET', '/module')


    def view_module(self, module_id: str) -> Dict[str, Any]:
        return self._make_request('GET', f'/module/{_quote(module_id)}')


    def download_module(self, module_id: str) -> Dict[str, Any]:
        """Fetches a module's tree as ``{name, content: [nodes]}``."""
        return self._make_request('GET', f'/module/{_quote(module_id)}/content')


    def upload_module(self, name: str, description: str, path: str, tool: str,
                      nodes: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Creates a module from a serialized directory tree."""
        return self._make_request('POST', '/module', json={
            'name': name,
            'description': description,
            'path': path,
            'tool': tool,
            'nodes': nodes,
        })


    def delete_module(self, module_id: str) -> Dict[str, Any]:
        return self._make_request('DELETE', f'/module/{_quote(module_id)}')


def _quote(module_id: str) -> str:
    return quote(str(module_id), safe='')


def _error_payload(response: requests.Response) -> Any:
    """The backend's error body if it sent JSON, otherwise its text or reason."""
    if 'application/json' in response.headers.get('Content-Type', ''):
        try:
            return response.json()
        except ValueError:
            pass
    return response.text or f"HTTP Error {response.status_code}: {response.reason}"
