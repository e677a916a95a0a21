"""
Custom Exceptions for the KTTM IP Registry
==========================================

Raise these instead of generic Exception so the API layer can map each
failure class to its own status code and error code.

Usage:
    from ipregistry.core.exceptions import RecordNotFoundError

    if row is None:
        raise RecordNotFoundError(record_id)
"""

from typing import Optional, Any, Dict, Iterable


class RegistryError(Exception):
    """Base exception for all registry errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Configuration Errors (fatal at boot)
# ============================================

class ConfigurationError(RegistryError):
    """Deployment is misconfigured; the process must not serve traffic"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFIGURATION_ERROR", details=details)


class SchemaMismatchError(ConfigurationError):
    """A domain table is missing or lacks required columns"""

    def __init__(self, table: str, missing: Iterable[str], found: Iterable[str]):
        missing = list(missing)
        found = sorted(found)
        if found:
            message = f"Table '{table}' is missing columns: {', '.join(missing)}"
        else:
            message = f"Table '{table}' not found"
        super().__init__(message, details={"table": table, "missing": missing, "found": found})
        self.code = "SCHEMA_MISMATCH"


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(RegistryError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class NoFieldsToUpdateError(ValidationError):
    """An update request carried no applicable fields"""

    def __init__(self):
        super().__init__("No fields to update")
        self.code = "NO_FIELDS_TO_UPDATE"


class ContributorsUnavailableError(RegistryError):
    """The contributor table does not exist in this deployment"""

    status_code = 400

    def __init__(self, table: str = "ip_contributors"):
        super().__init__(
            f"{table} table not found",
            code="CONTRIBUTORS_UNAVAILABLE",
            details={"table": table}
        )


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(RegistryError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with ID '{resource_id}' not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class RecordNotFoundError(ResourceNotFoundError):
    """IP record not found"""

    def __init__(self, record_id: str):
        super().__init__("Record", record_id)


# ============================================
# Identifier Allocation Errors
# ============================================

class IdAllocationExhaustedError(RegistryError):
    """Every allocation attempt collided with an existing record id"""

    status_code = 500

    def __init__(self, attempts: int, last_candidate: Optional[str] = None):
        super().__init__(
            f"Failed to allocate a unique record_id after {attempts} attempts",
            code="ID_ALLOCATION_EXHAUSTED",
            details={"attempts": attempts, "last_candidate": last_candidate}
        )


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: RegistryError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "ok": False,
        "error": error.to_dict()
    }
