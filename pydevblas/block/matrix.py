"""
Device matrices: general dense (GEMatrix) and triangular views (TRMatrix).

A GEMatrix is (handle, m, n, offset, ld, layout). Its navigator fixes
which dimension is contiguous: sd entries per line, fd lines, ld
elements between the starts of consecutive lines, with ld >= sd.
Rows, columns, submatrices, transposes and triangles are views over the
same buffer; none of them own it.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

import numpy as np

from pydevblas.core.exceptions import (
    DimensionError,
    InefficientOperationError,
    InvalidStrideError,
    UnsupportedOperationError,
)
from pydevblas.core.types import Layout, Triangle, Diagonal, DEFAULT_LAYOUT
from pydevblas.core.validation import check_index, check_non_negative, check_range
from pydevblas.backend.runtime import (
    MAP_READ,
    MAP_WRITE,
    MAP_WRITE_INVALIDATE_REGION,
    MappedRegion,
    enqueue_map_buffer,
    enqueue_unmap,
)
from pydevblas.block.navigator import navigator_for
from pydevblas.block.ownership import OwnedBuffer, BorrowedBuffer
from pydevblas.block.vector import Vector

_ENTRY_MESSAGE = (
    "Accessing single entries of a device matrix needs one device round trip "
    "per entry. Transfer the matrix to the host or use mapped() instead."
)


# =====================================================================
# Shared strided-region helpers
# =====================================================================

def _region_span(sd: int, fd: int, ld: int) -> int:
    """Elements from the first entry to one past the last."""
    if sd == 0 or fd == 0:
        return 0
    return (fd - 1) * ld + sd


def _lines_view(
    data: np.ndarray,
    dtype: np.dtype,
    m: int,
    n: int,
    ld: int,
    layout: Layout,
) -> np.ndarray:
    """m x n numpy view of mapped bytes laid out with leading dimension ld."""
    flat = data.view(dtype)
    w = dtype.itemsize
    if layout is Layout.COLUMN_MAJOR:
        strides = (w, ld * w)
    else:
        strides = (ld * w, w)
    return np.lib.stride_tricks.as_strided(flat, shape=(m, n), strides=strides)


class _MatrixBase:
    """Geometry, lifecycle and host bridge shared by GE and TR matrices."""
    
    _handle: OwnedBuffer | BorrowedBuffer
    _factory: Any
    _accessor: Any
    
    @property
    def factory(self) -> Any:
        return self._factory
    
    @property
    def accessor(self) -> Any:
        return self._accessor
    
    @property
    def kind(self):
        return self._accessor.kind
    
    @property
    def handle(self) -> OwnedBuffer | BorrowedBuffer:
        return self._handle
    
    @property
    def buffer(self):
        return self._handle.buffer
    
    @property
    def master(self) -> bool:
        return self._handle.master
    
    @property
    def engine(self) -> Any:
        return self._engine
    
    def release(self) -> bool:
        """Free the buffer if this matrix owns it. Idempotent."""
        return self._handle.release()
    
    def __enter__(self):
        return self
    
    def __exit__(self, *exc: Any) -> None:
        self.release()
    
    def entry(self, i: int, j: int) -> float:
        raise InefficientOperationError(_ENTRY_MESSAGE)
    
    def set_entry(self, i: int, j: int, value: float) -> Any:
        raise InefficientOperationError(_ENTRY_MESSAGE)
    
    def alter(self, i: int, j: int, fn: Any) -> Any:
        raise InefficientOperationError(_ENTRY_MESSAGE)
    
    def __getitem__(self, ij: Any) -> float:
        raise InefficientOperationError(_ENTRY_MESSAGE)
    
    def __setitem__(self, ij: Any, value: Any) -> None:
        raise InefficientOperationError(_ENTRY_MESSAGE)
    
    def _map(self, sd: int, fd: int, flags: str) -> MappedRegion:
        width = self._accessor.entry_width
        return enqueue_map_buffer(
            self._accessor.queue,
            self.buffer,
            self._offset * width,
            _region_span(sd, fd, self._ld) * width,
            flags,
        )
    
    def unmap(self, mapped: MappedRegion) -> None:
        enqueue_unmap(self._accessor.queue, self.buffer, mapped)


# =====================================================================
# General dense matrix
# =====================================================================

class GEMatrix(_MatrixBase):
    """
    General dense device matrix.
    
    Args:
        factory: Factory whose accessor and engines the matrix uses
        handle: OwnedBuffer or BorrowedBuffer
        m: Number of rows
        n: Number of columns
        offset: Element offset of entry (0, 0)
        ld: Leading dimension; raised to sd when smaller
        layout: Physical layout
        
    Raises:
        DimensionError: If the matrix does not fit in the buffer
    """
    
    def __init__(
        self,
        factory: Any,
        handle: OwnedBuffer | BorrowedBuffer,
        m: int,
        n: int,
        offset: int = 0,
        ld: int = 0,
        layout: Layout = DEFAULT_LAYOUT,
    ):
        check_non_negative(m, "m")
        check_non_negative(n, "n")
        check_non_negative(offset, "offset")
        navigator = navigator_for(layout)
        sd = navigator.sd(m, n)
        fd = navigator.fd(m, n)
        ld = max(ld, sd)
        accessor = factory.data_accessor
        capacity = accessor.count(handle.buffer)
        if m * n > 0 and offset + (fd - 1) * ld + sd > capacity:
            raise DimensionError(
                f"{m}x{n} {layout.value} matrix with offset {offset} and ld {ld} "
                f"does not fit in a buffer of {capacity} entries"
            )
        self._factory = factory
        self._accessor = accessor
        self._engine = factory.ge_engine
        self._handle = handle
        self._navigator = navigator
        self._m = m
        self._n = n
        self._offset = offset
        self._ld = ld
        self._sd = sd
        self._fd = fd
        self._layout = layout
    
    # =====================================================================
    # Geometry
    # =====================================================================
    
    @property
    def navigator(self):
        return self._navigator
    
    @property
    def mrows(self) -> int:
        return self._m
    
    @property
    def ncols(self) -> int:
        return self._n
    
    @property
    def shape(self) -> tuple[int, int]:
        return (self._m, self._n)
    
    @property
    def count(self) -> int:
        return self._m * self._n
    
    @property
    def offset(self) -> int:
        return self._offset
    
    @property
    def ld(self) -> int:
        return self._ld
    
    @property
    def stride(self) -> int:
        return self._ld
    
    @property
    def sd(self) -> int:
        return self._sd
    
    @property
    def fd(self) -> int:
        return self._fd
    
    @property
    def layout(self) -> Layout:
        return self._layout
    
    @property
    def packed(self) -> bool:
        """True when lines follow each other without padding."""
        return self._ld == self._sd
    
    def row(self, i: int) -> Vector:
        check_index(i, self._m, "row")
        stride = 1 if self._layout is Layout.ROW_MAJOR else self._ld
        return Vector(
            self._factory,
            self._handle.borrow(),
            self._n,
            self._navigator.index(self._offset, self._ld, i, 0),
            stride,
        )
    
    def col(self, j: int) -> Vector:
        check_index(j, self._n, "col")
        stride = 1 if self._layout is Layout.COLUMN_MAJOR else self._ld
        return Vector(
            self._factory,
            self._handle.borrow(),
            self._m,
            self._navigator.index(self._offset, self._ld, 0, j),
            stride,
        )
    
    def stripe(self, j: int) -> Vector:
        """Contiguous line j (column j if column-major, else row j)."""
        return self._navigator.stripe(self, j)
    
    def submatrix(self, i: int, j: int, k: int, l: int) -> GEMatrix:
        """View of the k x l block whose top-left entry is (i, j)."""
        check_range(i, k, self._m, "submatrix rows")
        check_range(j, l, self._n, "submatrix cols")
        return GEMatrix(
            self._factory,
            self._handle.borrow(),
            k,
            l,
            self._navigator.index(self._offset, self._ld, i, j),
            self._ld,
            self._layout,
        )
    
    def transpose(self) -> GEMatrix:
        """n x m view with the other layout, same buffer and ld."""
        return GEMatrix(
            self._factory,
            self._handle.borrow(),
            self._n,
            self._m,
            self._offset,
            self._ld,
            self._layout.flipped,
        )
    
    @property
    def T(self) -> GEMatrix:
        return self.transpose()
    
    def subtriangle(
        self,
        uplo: Triangle = Triangle.LOWER,
        diag: Diagonal = Diagonal.NON_UNIT,
    ) -> TRMatrix:
        """Triangular view of the leading min(m, n) square."""
        return TRMatrix(
            self._factory,
            self._handle.borrow(),
            min(self._m, self._n),
            self._offset,
            self._ld,
            self._layout,
            uplo,
            diag,
        )
    
    # =====================================================================
    # Lifecycle
    # =====================================================================
    
    def raw(self, factory: Any = None) -> GEMatrix:
        """New uninitialised matrix of the same shape and layout."""
        return (factory or self._factory).create_ge(self._m, self._n, self._layout, init=False)
    
    def zero(self, factory: Any = None) -> GEMatrix:
        """New zero matrix of the same shape and layout."""
        return (factory or self._factory).create_ge(self._m, self._n, self._layout, init=True)
    
    # =====================================================================
    # Equality
    # =====================================================================
    
    def __eq__(self, other: Any) -> bool:
        if other is None:
            return False
        if self is other:
            return True
        if (
            isinstance(other, GEMatrix)
            and self._accessor.compatible(other._accessor)
            and self.shape == other.shape
        ):
            return self.engine.equals_block(self, other)
        return False
    
    def __ne__(self, other: Any) -> bool:
        return not self.__eq__(other)
    
    def __hash__(self) -> int:
        return hash((GEMatrix, self._m, self._n))
    
    def set(self, value: float) -> GEMatrix:
        """
        Fill every entry with value.
        
        Raises:
            InvalidStrideError: Unless the matrix is packed and covers its
                whole buffer from element zero
        """
        if self.count == 0:
            return self
        if (
            self._offset == 0
            and self.packed
            and self.count == self._accessor.count(self.buffer)
        ):
            self._accessor.initialize(self.buffer, value)
            return self
        raise InvalidStrideError(
            f"In-place set needs a packed matrix over the whole buffer, got "
            f"offset {self._offset}, ld {self._ld} and sd {self._sd}. "
            f"Use scal or transfer instead."
        )
    
    # =====================================================================
    # Host bridge
    # =====================================================================
    
    def map_memory(self, flags: str = MAP_READ) -> MappedRegion:
        """Map the span of buffer bytes this matrix touches."""
        return self._map(self._sd, self._fd, flags)
    
    @contextmanager
    def mapped(self, flags: str = MAP_READ) -> Iterator[np.ndarray]:
        """
        Map the matrix and yield an m x n numpy view of its entries.
        
        The mapping is released on every exit path; for writable flags
        changes made to the view are written back first.
        """
        region = self.map_memory(flags)
        try:
            yield _lines_view(
                region.data, self._accessor.entry_type,
                self._m, self._n, self._ld, self._layout,
            )
        finally:
            self.unmap(region)
    
    def read_into(self, host: np.ndarray) -> np.ndarray:
        """Copy the entries into a host matrix of the same shape."""
        if host.shape != self.shape:
            raise DimensionError(f"host: expected shape {self.shape}, got {host.shape}")
        if self.count > 0:
            with self.mapped(MAP_READ) as entries:
                host[:, :] = entries
        return host
    
    def write_from(self, host: np.ndarray) -> GEMatrix:
        """Copy a host matrix of the same shape into the entries."""
        if np.shape(host) != self.shape:
            raise DimensionError(f"host: expected shape {self.shape}, got {np.shape(host)}")
        if self.count > 0:
            flags = MAP_WRITE_INVALIDATE_REGION if self.packed else MAP_WRITE
            with self.mapped(flags) as entries:
                entries[:, :] = host
        return self
    
    def host(self) -> np.ndarray:
        """Host copy of the entries, in this matrix's memory order."""
        out = self._accessor.host_factory.create_ge(
            self._m, self._n, self._layout, init=False,
        )
        return self.read_into(out)
    
    native = host
    
    def __repr__(self) -> str:
        return (
            f"<GEMatrix {self.kind.c_name} {self._m}x{self._n} {self._layout.value} "
            f"offset={self._offset} ld={self._ld} master={self.master}>"
        )


# =====================================================================
# Triangular view
# =====================================================================

class TRMatrix(_MatrixBase):
    """
    n x n triangular matrix stored in a general dense buffer.
    
    Only entries inside the declared triangle are part of the matrix. A
    unit diagonal is implicit: its entries are never read or written.
    
    Args:
        factory: Factory whose accessor and engines the matrix uses
        handle: OwnedBuffer or BorrowedBuffer
        n: Order of the matrix
        offset: Element offset of entry (0, 0)
        ld: Leading dimension; raised to n when smaller
        layout: Physical layout
        uplo: Triangle holding the entries
        diag: Whether the diagonal is implicitly one
        
    Raises:
        DimensionError: If the square does not fit in the buffer
    """
    
    def __init__(
        self,
        factory: Any,
        handle: OwnedBuffer | BorrowedBuffer,
        n: int,
        offset: int = 0,
        ld: int = 0,
        layout: Layout = DEFAULT_LAYOUT,
        uplo: Triangle = Triangle.LOWER,
        diag: Diagonal = Diagonal.NON_UNIT,
    ):
        check_non_negative(n, "n")
        check_non_negative(offset, "offset")
        ld = max(ld, n)
        accessor = factory.data_accessor
        capacity = accessor.count(handle.buffer)
        if n > 0 and offset + (n - 1) * ld + n > capacity:
            raise DimensionError(
                f"{n}x{n} triangular matrix with offset {offset} and ld {ld} "
                f"does not fit in a buffer of {capacity} entries"
            )
        self._factory = factory
        self._accessor = accessor
        self._engine = factory.ge_engine
        self._handle = handle
        self._navigator = navigator_for(layout)
        self._n = n
        self._offset = offset
        self._ld = ld
        self._layout = layout
        self._uplo = uplo
        self._diag = diag
    
    @property
    def navigator(self):
        return self._navigator
    
    @property
    def n(self) -> int:
        return self._n
    
    @property
    def mrows(self) -> int:
        return self._n
    
    @property
    def ncols(self) -> int:
        return self._n
    
    @property
    def shape(self) -> tuple[int, int]:
        return (self._n, self._n)
    
    @property
    def offset(self) -> int:
        return self._offset
    
    @property
    def ld(self) -> int:
        return self._ld
    
    @property
    def stride(self) -> int:
        return self._ld
    
    @property
    def layout(self) -> Layout:
        return self._layout
    
    @property
    def uplo(self) -> Triangle:
        return self._uplo
    
    @property
    def diag(self) -> Diagonal:
        return self._diag
    
    @property
    def count(self) -> int:
        """Number of stored entries."""
        n = self._n
        if self._diag is Diagonal.UNIT:
            return n * (n - 1) // 2
        return n * (n + 1) // 2
    
    def is_allowed(self, i: int, j: int) -> bool:
        """True if (i, j) is a stored entry of the triangle."""
        if not (0 <= i < self._n and 0 <= j < self._n):
            return False
        if self._diag is Diagonal.UNIT and i == j:
            return False
        if self._uplo is Triangle.UPPER:
            return i <= j
        return i >= j
    
    def segment(self, line: int, along_rows: bool) -> tuple[int, int]:
        """(start, length) of the stored part of row or column `line`."""
        skip = 1 if self._diag is Diagonal.UNIT else 0
        upper = self._uplo is Triangle.UPPER
        # Row i of an upper triangle and column j of a lower one run from
        # the diagonal to the end; the other two run from 0 to the diagonal.
        if upper == along_rows:
            start = line + skip
            return start, self._n - start
        return 0, line + 1 - skip
    
    def row(self, i: int) -> Vector:
        """
        Stored segment of row i.
        
        Raises:
            UnsupportedOperationError: If row i has no stored entries
        """
        check_index(i, self._n, "row")
        start, length = self.segment(i, along_rows=True)
        if length <= 0:
            raise UnsupportedOperationError(
                f"Row {i} of a {self._n}x{self._n} {self._uplo.value} "
                f"{self._diag.value} triangular matrix has no entries"
            )
        stride = 1 if self._layout is Layout.ROW_MAJOR else self._ld
        return Vector(
            self._factory,
            self._handle.borrow(),
            length,
            self._navigator.index(self._offset, self._ld, i, start),
            stride,
        )
    
    def col(self, j: int) -> Vector:
        """
        Stored segment of column j.
        
        Raises:
            UnsupportedOperationError: If column j has no stored entries
        """
        check_index(j, self._n, "col")
        start, length = self.segment(j, along_rows=False)
        if length <= 0:
            raise UnsupportedOperationError(
                f"Column {j} of a {self._n}x{self._n} {self._uplo.value} "
                f"{self._diag.value} triangular matrix has no entries"
            )
        stride = 1 if self._layout is Layout.COLUMN_MAJOR else self._ld
        return Vector(
            self._factory,
            self._handle.borrow(),
            length,
            self._navigator.index(self._offset, self._ld, start, j),
            stride,
        )
    
    def entry(self, i: int, j: int) -> float:
        if not self.is_allowed(i, j):
            raise UnsupportedOperationError(
                f"Entry ({i}, {j}) is outside the {self._uplo.value} "
                f"{self._diag.value} triangle"
            )
        raise InefficientOperationError(_ENTRY_MESSAGE)
    
    def transpose(self) -> TRMatrix:
        """Same buffer read with the other layout and the other triangle."""
        return TRMatrix(
            self._factory,
            self._handle.borrow(),
            self._n,
            self._offset,
            self._ld,
            self._layout.flipped,
            self._uplo.flipped,
            self._diag,
        )
    
    @property
    def T(self) -> TRMatrix:
        return self.transpose()
    
    def raw(self, factory: Any = None) -> TRMatrix:
        return (factory or self._factory).create_tr(
            self._n, self._layout, self._uplo, self._diag, init=False,
        )
    
    def zero(self, factory: Any = None) -> TRMatrix:
        return (factory or self._factory).create_tr(
            self._n, self._layout, self._uplo, self._diag, init=True,
        )
    
    def set(self, value: float) -> TRMatrix:
        raise UnsupportedOperationError(
            "In-place set is not supported on triangular views; "
            "fill the underlying general matrix instead."
        )
    
    def __eq__(self, other: Any) -> bool:
        if other is None:
            return False
        if self is other:
            return True
        if (
            isinstance(other, TRMatrix)
            and self._accessor.compatible(other._accessor)
            and self._n == other._n
            and self._uplo is other._uplo
            and self._diag is other._diag
        ):
            return self.engine.equals_triangle(self, other)
        return False
    
    def __ne__(self, other: Any) -> bool:
        return not self.__eq__(other)
    
    def __hash__(self) -> int:
        return hash((TRMatrix, self._n, self._uplo, self._diag))
    
    def map_memory(self, flags: str = MAP_READ) -> MappedRegion:
        """Map the span of the underlying square."""
        return self._map(self._n, self._n, flags)
    
    def host(self) -> np.ndarray:
        """
        Dense host copy: zeros outside the triangle, ones on a unit diagonal.
        """
        out = self._accessor.host_factory.create_ge(
            self._n, self._n, self._layout, init=True,
        )
        if self._n == 0:
            return out
        k = 1 if self._diag is Diagonal.UNIT else 0
        region = self.map_memory(MAP_READ)
        try:
            square = _lines_view(
                region.data, self._accessor.entry_type,
                self._n, self._n, self._ld, self._layout,
            )
            if self._uplo is Triangle.UPPER:
                out[:, :] = np.triu(square, k)
            else:
                out[:, :] = np.tril(square, -k)
        finally:
            self.unmap(region)
        if k:
            np.fill_diagonal(out, 1)
        return out
    
    native = host
    
    def __repr__(self) -> str:
        return (
            f"<TRMatrix {self.kind.c_name} {self._n}x{self._n} {self._layout.value} "
            f"{self._uplo.value} {self._diag.value} offset={self._offset} "
            f"ld={self._ld} master={self.master}>"
        )
