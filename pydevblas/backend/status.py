"""
Status codes returned by backend calls.

Two disjoint negative ranges are in use. Codes from -1024 down to -2048
belong to the BLAS backend and describe operand problems; everything else
below zero is a platform error (allocation, memory object, kernel and
queue problems), numbered after the OpenCL error table.
"""

from pydevblas.core.exceptions import BackendError, BlastError, PlatformError

SUCCESS = 0

# =====================================================================
# Platform errors
# =====================================================================

CL_DEVICE_NOT_FOUND = -1
CL_DEVICE_NOT_AVAILABLE = -2
CL_MEM_OBJECT_ALLOCATION_FAILURE = -4
CL_OUT_OF_RESOURCES = -5
CL_OUT_OF_HOST_MEMORY = -6
CL_MAP_FAILURE = -12
CL_INVALID_VALUE = -30
CL_INVALID_DEVICE = -33
CL_INVALID_CONTEXT = -34
CL_INVALID_COMMAND_QUEUE = -36
CL_INVALID_MEM_OBJECT = -38
CL_INVALID_BUILD_OPTIONS = -43
CL_INVALID_PROGRAM = -44
CL_INVALID_PROGRAM_EXECUTABLE = -45
CL_INVALID_KERNEL_NAME = -46
CL_INVALID_KERNEL_ARGS = -52
CL_INVALID_WORK_DIMENSION = -53
CL_INVALID_WORK_GROUP_SIZE = -54
CL_INVALID_OPERATION = -59
CL_INVALID_BUFFER_SIZE = -61

PLATFORM_ERRORS: dict[int, str] = {
    CL_DEVICE_NOT_FOUND: "CL_DEVICE_NOT_FOUND",
    CL_DEVICE_NOT_AVAILABLE: "CL_DEVICE_NOT_AVAILABLE",
    -3: "CL_COMPILER_NOT_AVAILABLE",
    CL_MEM_OBJECT_ALLOCATION_FAILURE: "CL_MEM_OBJECT_ALLOCATION_FAILURE",
    CL_OUT_OF_RESOURCES: "CL_OUT_OF_RESOURCES",
    CL_OUT_OF_HOST_MEMORY: "CL_OUT_OF_HOST_MEMORY",
    -7: "CL_PROFILING_INFO_NOT_AVAILABLE",
    -8: "CL_MEM_COPY_OVERLAP",
    -9: "CL_IMAGE_FORMAT_MISMATCH",
    -10: "CL_IMAGE_FORMAT_NOT_SUPPORTED",
    -11: "CL_BUILD_PROGRAM_FAILURE",
    CL_MAP_FAILURE: "CL_MAP_FAILURE",
    -13: "CL_MISALIGNED_SUB_BUFFER_OFFSET",
    -14: "CL_EXEC_STATUS_ERROR_FOR_EVENTS_IN_WAIT_LIST",
    -15: "CL_COMPILE_PROGRAM_FAILURE",
    -16: "CL_LINKER_NOT_AVAILABLE",
    -17: "CL_LINK_PROGRAM_FAILURE",
    -18: "CL_DEVICE_PARTITION_FAILED",
    -19: "CL_KERNEL_ARG_INFO_NOT_AVAILABLE",
    CL_INVALID_VALUE: "CL_INVALID_VALUE",
    -31: "CL_INVALID_DEVICE_TYPE",
    -32: "CL_INVALID_PLATFORM",
    CL_INVALID_DEVICE: "CL_INVALID_DEVICE",
    CL_INVALID_CONTEXT: "CL_INVALID_CONTEXT",
    -35: "CL_INVALID_QUEUE_PROPERTIES",
    CL_INVALID_COMMAND_QUEUE: "CL_INVALID_COMMAND_QUEUE",
    -37: "CL_INVALID_HOST_PTR",
    CL_INVALID_MEM_OBJECT: "CL_INVALID_MEM_OBJECT",
    -39: "CL_INVALID_IMAGE_FORMAT_DESCRIPTOR",
    -40: "CL_INVALID_IMAGE_SIZE",
    -41: "CL_INVALID_SAMPLER",
    -42: "CL_INVALID_BINARY",
    CL_INVALID_BUILD_OPTIONS: "CL_INVALID_BUILD_OPTIONS",
    CL_INVALID_PROGRAM: "CL_INVALID_PROGRAM",
    CL_INVALID_PROGRAM_EXECUTABLE: "CL_INVALID_PROGRAM_EXECUTABLE",
    CL_INVALID_KERNEL_NAME: "CL_INVALID_KERNEL_NAME",
    -47: "CL_INVALID_KERNEL_DEFINITION",
    -48: "CL_INVALID_KERNEL",
    -49: "CL_INVALID_ARG_INDEX",
    -50: "CL_INVALID_ARG_VALUE",
    -51: "CL_INVALID_ARG_SIZE",
    CL_INVALID_KERNEL_ARGS: "CL_INVALID_KERNEL_ARGS",
    CL_INVALID_WORK_DIMENSION: "CL_INVALID_WORK_DIMENSION",
    CL_INVALID_WORK_GROUP_SIZE: "CL_INVALID_WORK_GROUP_SIZE",
    -55: "CL_INVALID_WORK_ITEM_SIZE",
    -56: "CL_INVALID_GLOBAL_OFFSET",
    -57: "CL_INVALID_EVENT_WAIT_LIST",
    -58: "CL_INVALID_EVENT",
    CL_INVALID_OPERATION: "CL_INVALID_OPERATION",
    -60: "CL_INVALID_GL_OBJECT",
    CL_INVALID_BUFFER_SIZE: "CL_INVALID_BUFFER_SIZE",
    -62: "CL_INVALID_MIP_LEVEL",
    -63: "CL_INVALID_GLOBAL_WORK_SIZE",
    -64: "CL_INVALID_PROPERTY",
    -65: "CL_INVALID_IMAGE_DESCRIPTOR",
    -66: "CL_INVALID_COMPILER_OPTIONS",
    -67: "CL_INVALID_LINKER_OPTIONS",
    -68: "CL_INVALID_DEVICE_PARTITION_COUNT",
    -69: "CL_INVALID_PIPE_SIZE",
    -70: "CL_INVALID_DEVICE_QUEUE",
}

# =====================================================================
# BLAS backend errors
# =====================================================================

K_NOT_IMPLEMENTED = -1024
K_INVALID_MATRIX_A = -1022
K_INVALID_MATRIX_B = -1021
K_INVALID_MATRIX_C = -1020
K_INVALID_VECTOR_X = -1019
K_INVALID_VECTOR_Y = -1018
K_INVALID_DIMENSION = -1017
K_INVALID_LEAD_DIM_A = -1016
K_INVALID_LEAD_DIM_B = -1015
K_INVALID_LEAD_DIM_C = -1014
K_INVALID_INCREMENT_X = -1013
K_INVALID_INCREMENT_Y = -1012
K_INSUFFICIENT_MEMORY_A = -1011
K_INSUFFICIENT_MEMORY_B = -1010
K_INSUFFICIENT_MEMORY_C = -1009
K_INSUFFICIENT_MEMORY_X = -1008
K_INSUFFICIENT_MEMORY_Y = -1007
K_KERNEL_LAUNCH_ERROR = -2048
K_KERNEL_RUN_ERROR = -2047
K_INVALID_LOCAL_MEM_USAGE = -2046
K_NO_HALF_PRECISION = -2045
K_NO_DOUBLE_PRECISION = -2044
K_INVALID_VECTOR_DOT = -2043
K_INSUFFICIENT_MEMORY_DOT = -2042

BLAST_ERRORS: dict[int, str] = {
    K_NOT_IMPLEMENTED: "kNotImplemented",
    K_INVALID_MATRIX_A: "kInvalidMatrixA",
    K_INVALID_MATRIX_B: "kInvalidMatrixB",
    K_INVALID_MATRIX_C: "kInvalidMatrixC",
    K_INVALID_VECTOR_X: "kInvalidVectorX",
    K_INVALID_VECTOR_Y: "kInvalidVectorY",
    K_INVALID_DIMENSION: "kInvalidDimension",
    K_INVALID_LEAD_DIM_A: "kInvalidLeadDimA",
    K_INVALID_LEAD_DIM_B: "kInvalidLeadDimB",
    K_INVALID_LEAD_DIM_C: "kInvalidLeadDimC",
    K_INVALID_INCREMENT_X: "kInvalidIncrementX",
    K_INVALID_INCREMENT_Y: "kInvalidIncrementY",
    K_INSUFFICIENT_MEMORY_A: "kInsufficientMemoryA",
    K_INSUFFICIENT_MEMORY_B: "kInsufficientMemoryB",
    K_INSUFFICIENT_MEMORY_C: "kInsufficientMemoryC",
    K_INSUFFICIENT_MEMORY_X: "kInsufficientMemoryX",
    K_INSUFFICIENT_MEMORY_Y: "kInsufficientMemoryY",
    K_KERNEL_LAUNCH_ERROR: "kKernelLaunchError",
    K_KERNEL_RUN_ERROR: "kKernelRunError",
    K_INVALID_LOCAL_MEM_USAGE: "kInvalidLocalMemUsage",
    K_NO_HALF_PRECISION: "kNoHalfPrecision",
    K_NO_DOUBLE_PRECISION: "kNoDoublePrecision",
    K_INVALID_VECTOR_DOT: "kInvalidVectorDot",
    K_INSUFFICIENT_MEMORY_DOT: "kInsufficientMemoryDot",
}


def decode_blast_error(code: int) -> str | None:
    """
    Decode a BLAS backend status code to its condition name.
    
    Returns None if the code is not in the backend's reserved table.
    """
    return BLAST_ERRORS.get(code)


def decode_platform_error(code: int) -> str:
    """Decode a platform status code, falling back to a generic name."""
    return PLATFORM_ERRORS.get(code, f"UNKNOWN_ERROR_CODE_{code}")


def error(code: int, details: dict | None = None) -> BackendError:
    """
    Build the exception describing a failed backend call.
    
    Args:
        code: Negative status code
        details: Context of the failing call (routine name, geometry)
        
    Returns:
        BlastError if the code is in the BLAS backend table, else
        PlatformError
    """
    name = decode_blast_error(code)
    if name is not None:
        return BlastError(f"BLAS backend error: {name}.", code, name, details)
    name = decode_platform_error(code)
    return PlatformError(f"Platform error: {name}.", code, name, details)


def raise_for_status(code: int, details: dict | None = None) -> None:
    """
    Raise if a backend call did not return SUCCESS.
    
    Raises:
        BlastError: For codes in the BLAS backend range
        PlatformError: For any other non-zero code
    """
    if code != SUCCESS:
        raise error(code, details)
