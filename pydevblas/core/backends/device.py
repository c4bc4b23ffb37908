"""
Hardware detection and device selection.

Decides which torch device backs a pydevblas context. Detection imports
torch lazily so that importing pydevblas.core stays cheap.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal
import platform


@dataclass(frozen=True)
class DeviceInfo:
    """
    Information about a compute device.
    
    Attributes:
        device_type: Type of device ('cpu', 'cuda', 'mps')
        device_index: Device index (None for CPU)
        name: Human-readable device name
        memory_bytes: Total device memory in bytes (None if unknown)
    """
    device_type: Literal['cpu', 'cuda', 'mps']
    device_index: int | None
    name: str
    memory_bytes: int | None
    
    def __str__(self) -> str:
        if self.device_type == 'cpu':
            return f"CPU ({self.name})"
        mem_str = ""
        if self.memory_bytes is not None:
            mem_gb = self.memory_bytes / (1024**3)
            mem_str = f", {mem_gb:.1f}GB"
        return f"{self.device_type.upper()}:{self.device_index} ({self.name}{mem_str})"
    
    @property
    def is_gpu(self) -> bool:
        """True if this is a GPU device."""
        return self.device_type in ('cuda', 'mps')
    
    @property
    def supports_double(self) -> bool:
        """MPS has no float64 arithmetic."""
        return self.device_type != 'mps'
    
    def torch_device(self) -> Any:
        """The torch.device this info describes."""
        import torch
        if self.device_type == 'cuda':
            return torch.device('cuda', self.device_index or 0)
        return torch.device(self.device_type)


def detect_gpu() -> DeviceInfo | None:
    """
    Detect available GPU, if any.
    
    Returns:
        DeviceInfo for the best available GPU, or None if no GPU available.
        
    Priority: CUDA > MPS (Apple Silicon)
    """
    try:
        import torch
    except ImportError:
        return None
    
    if torch.cuda.is_available():
        idx = torch.cuda.current_device()
        props = torch.cuda.get_device_properties(idx)
        return DeviceInfo(
            device_type='cuda',
            device_index=idx,
            name=props.name,
            memory_bytes=props.total_memory,
        )
    
    if hasattr(torch.backends, 'mps') and torch.backends.mps.is_available():
        return DeviceInfo(
            device_type='mps',
            device_index=0,
            name='Apple Silicon GPU',
            memory_bytes=None,  # MPS doesn't expose memory info easily
        )
    
    return None


def get_cpu_info() -> DeviceInfo:
    """
    Get CPU device info.
    
    The CPU is a valid pydevblas device: buffers live in host memory and
    the same BLAS entry points run through torch's CPU kernels.
    """
    processor = platform.processor()
    if not processor:
        processor = platform.machine() or "Unknown CPU"
    
    return DeviceInfo(
        device_type='cpu',
        device_index=None,
        name=processor,
        memory_bytes=None,
    )


def select_device(prefer: Literal['cpu', 'gpu', 'auto'] = 'auto') -> DeviceInfo:
    """
    Select compute device based on preference and availability.
    
    Args:
        prefer: Device preference
            - 'cpu': Always use CPU
            - 'gpu': Require GPU (raises if unavailable)
            - 'auto': Use GPU if available, else CPU
            
    Returns:
        DeviceInfo for selected device
        
    Raises:
        ValueError: If prefer is not one of the accepted values
        RuntimeError: If 'gpu' requested but no GPU available
    """
    if prefer not in ('cpu', 'gpu', 'auto'):
        raise ValueError(f"Unknown device preference: {prefer!r}")
    
    if prefer == 'cpu':
        return get_cpu_info()
    
    gpu = detect_gpu()
    
    if prefer == 'gpu':
        if gpu is None:
            raise RuntimeError(
                "GPU requested but no GPU available. "
                "Ensure PyTorch is installed with CUDA/MPS support."
            )
        return gpu
    
    return gpu if gpu is not None else get_cpu_info()
