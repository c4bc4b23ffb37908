"""
Shared device infrastructure for pydevblas.

Submodules:
    device: Hardware detection and device selection
"""

from pydevblas.core.backends.device import (
    DeviceInfo,
    detect_gpu,
    get_cpu_info,
    select_device,
)

__all__ = [
    "DeviceInfo",
    "detect_gpu",
    "get_cpu_info",
    "select_device",
]
