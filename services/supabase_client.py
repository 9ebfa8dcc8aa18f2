import os
import requests

DEFAULT_TABLE = 'valentine_profiles'
DEFAULT_TIMEOUT = 10

class SupabaseError(Exception):
    """Any failure of a call against the hosted database"""

    def __init__(self, message, status_code=None, details=None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details

class SupabaseClient:
    """Minimal PostgREST client for the hosted Supabase project.

    Only row inserts are needed. A client built without a URL or key is
    still constructed; every call on it fails with SupabaseError.
    """

    def __init__(self, url, anon_key, logger, timeout=DEFAULT_TIMEOUT, session=None):
        self.url = (url or '').rstrip('/')
        self.anon_key = anon_key or ''
        self.logger = logger
        self.timeout = timeout
        self.session = session or requests.Session()

        if not self.is_configured:
            self.logger.warning("Supabase URL or anon key not set - submissions will fail")

    @classmethod
    def from_env(cls, logger, **kwargs):
        return cls(
            os.environ.get('SUPABASE_URL', ''),
            os.environ.get('SUPABASE_ANON_KEY', ''),
            logger,
            timeout=float(os.environ.get('SUPABASE_TIMEOUT', DEFAULT_TIMEOUT)),
            **kwargs
        )

    @property
    def is_configured(self):
        return bool(self.url and self.anon_key)

    def table_url(self, table):
        return f"{self.url}/rest/v1/{table}"

    def headers(self):
        return {
            'apikey': self.anon_key,
            'Authorization': f"Bearer {self.anon_key}",
            'Content-Type': 'application/json',
            'Prefer': 'return=minimal'
        }

    def insert(self, table, rows):
        """Insert rows into a table; raises SupabaseError on any failure"""
        if not self.is_configured:
            raise SupabaseError("Supabase client is not configured")

        try:
            response = self.session.post(
                self.table_url(table),
                headers=self.headers(),
                json=rows,
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise SupabaseError(f"Request to {table} failed: {e}") from e

        if response.status_code >= 400:
            details = self._error_details(response)
            raise SupabaseError(
                f"Insert into {table} rejected with status {response.status_code}",
                status_code=response.status_code,
                details=details
            )

        self.logger.debug(f"Inserted {len(rows)} row(s) into {table}")

    @staticmethod
    def _error_details(response):
        try:
            return response.json()
        except ValueError:
            return response.text
