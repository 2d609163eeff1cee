"""API service for HTTP client abstraction."""
import os
import requests
import logging


class APIError(Exception):
    """Transport failure or non-2xx response from the backend."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class APIService:
    """HTTP client for backend API calls with error handling.

    Requests are made exactly once; callers decide whether to try again.
    """

    def __init__(self, base_url='http://localhost:3000/api', timeout=30, auth_service=None, access_token=None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.logger = logging.getLogger(self.__class__.__name__)
        self.auth_service = auth_service
        self.access_token = access_token

    def _get_auth_headers(self):
        """Get authorization headers for API requests.

        Supports both auth_service and access_token approaches.
        auth_service takes precedence if both are provided.
        """
        headers = {}
        if self.auth_service:
            headers.update(self.auth_service.get_headers())
        elif self.access_token:
            headers['Authorization'] = f"Bearer {self.access_token}"
        return headers

    def _merge_headers(self, kwargs):
        """Merge auth headers with any provided headers in kwargs."""
        auth_headers = self._get_auth_headers()
        if not auth_headers:
            return kwargs

        existing_headers = kwargs.get('headers', {})
        if not isinstance(existing_headers, dict):
            existing_headers = {}

        # Auth headers take precedence
        kwargs['headers'] = {**existing_headers, **auth_headers}
        return kwargs

    @staticmethod
    def _error_message(response):
        """Best human-readable message a failed response offers."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            for key in ('error', 'message'):
                if body.get(key):
                    return str(body[key])
        return f"{response.status_code} {response.reason}"

    def _make_request(self, method, url, **kwargs):
        """Make one HTTP request, raising APIError on failure."""
        kwargs = self._merge_headers(kwargs)
        kwargs.setdefault('timeout', self.timeout)

        try:
            response = requests.request(method, url, **kwargs)
        except requests.exceptions.RequestException as e:
            self.logger.error(f"{method} {url} failed: {e}")
            raise APIError(f"Network error: {e}") from e

        if response.status_code >= 400:
            message = self._error_message(response)
            self.logger.warning(f"{method} {url} returned {response.status_code}: {message}")
            raise APIError(message, status_code=response.status_code)
        return response

    def get(self, endpoint, **kwargs):
        """GET request with error handling."""
        url = f"{self.base_url}{endpoint}"
        return self._make_request('GET', url, **kwargs)

    def post(self, endpoint, **kwargs):
        """POST request with error handling."""
        url = f"{self.base_url}{endpoint}"
        return self._make_request('POST', url, **kwargs)

    def put(self, endpoint, **kwargs):
        """PUT request with error handling."""
        url = f"{self.base_url}{endpoint}"
        return self._make_request('PUT', url, **kwargs)

    def delete(self, endpoint, **kwargs):
        """DELETE request with error handling."""
        url = f"{self.base_url}{endpoint}"
        return self._make_request('DELETE', url, **kwargs)

    def upload_photo(self, endpoint, photo_path, data=None, timeout=60, field_name='photo'):
        """Upload a photo file with multipart/form-data.

        The internal job endpoint reads the file from 'photo', the TradieConnect
        endpoints from 'file'.
        """
        url = f"{self.base_url}{endpoint}"

        try:
            with open(photo_path, 'rb') as f:
                files = {field_name: (os.path.basename(photo_path), f, 'image/jpeg')}
                return self._make_request('POST', url, files=files, data=data, timeout=timeout)
        except IOError as e:
            self.logger.error(f"Failed to read photo file {photo_path}: {e}")
            raise
