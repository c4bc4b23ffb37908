"""
Exception hierarchy for pydevblas.

All exceptions inherit from PyDevBlasError to allow catching any
library-specific error. Errors fall into three families:

    - ValidationError: bad user input or geometry, raised before any
      device call is issued
    - UsageError: the operation is not allowed on this kind of object
    - BackendError: a device call returned a negative status code

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Never catch and re-raise with less information
"""

from __future__ import annotations

from typing import Any


class PyDevBlasError(Exception):
    """Base exception for all pydevblas errors."""
    pass


class ValidationError(PyDevBlasError):
    """
    Input validation failed.
    
    Raised when user-provided inputs fail validation checks.
    """
    pass


class DimensionError(ValidationError):
    """
    Dimensions are incorrect or inconsistent.
    
    Raised when operand dimensions don't match, or when a requested
    vector/matrix does not fit in its backing buffer.
    """
    pass


class UsageError(PyDevBlasError):
    """
    Operation is not allowed on this object.
    
    Raised before any device call, so the device state is untouched.
    """
    pass


class InvalidStrideError(UsageError):
    """
    In-place set attempted on a strided or offset view.
    
    A whole-object fill is only issued when the object covers its
    buffer contiguously from element zero.
    """
    pass


class InefficientOperationError(UsageError):
    """
    Single element access on a device-resident object.
    
    Each such access would need its own device round trip. Use
    transfer() or map_memory() instead.
    """
    pass


class UnsupportedOperationError(UsageError):
    """
    The backend has no primitive for the requested operation.
    
    Examples: in-place matrix-vector product, element access outside
    the declared triangle of a triangular view.
    """
    pass


class NotImplementedOperationError(UnsupportedOperationError, NotImplementedError):
    """
    The operation exists in the BLAS vocabulary but the backend does not
    provide it yet (rotation family).
    """
    pass


class BackendError(PyDevBlasError):
    """
    A device call returned an error status.
    
    Attributes:
        code: Integer status code returned by the call
        name: Decoded condition name (e.g. 'kInvalidLeadDimA')
        kind: 'blast-error' or 'platform-error'
        details: Context of the failing call (routine, geometry)
    """
    
    kind: str = 'backend-error'
    
    def __init__(
        self,
        message: str,
        code: int,
        name: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.name = name
        self.details = details if details is not None else {}


class BlastError(BackendError):
    """
    BLAS backend reported an error in its reserved status range.
    
    Raised for invalid dimensions, leading dimensions, increments,
    insufficient operand memory, kernel launch failures and unsupported
    precision.
    """
    
    kind = 'blast-error'


class PlatformError(BackendError):
    """
    Underlying device platform reported an error.
    
    Raised for status codes outside the BLAS backend's reserved range:
    allocation failures, invalid or released memory objects, bad
    kernel names.
    """
    
    kind = 'platform-error'
