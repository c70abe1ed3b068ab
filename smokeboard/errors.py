"""
Exceptions raised by the data service and identity provider layers.

Route handlers translate these into HTTP responses; see main.py for the
JSON envelope applied to every /api error.
"""
from typing import Optional


class DataServiceError(Exception):
    """The spreadsheet data service returned an error or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DataServiceNotConfigured(DataServiceError):
    """API key or base id missing from the environment."""


class RecordNotFound(DataServiceError):
    def __init__(self, table: str, record_id: str):
        super().__init__(f"{table} record {record_id} not found", status_code=404)
        self.table = table
        self.record_id = record_id


class IdentityProviderError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
