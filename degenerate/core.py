# degenerate/core.py
"""
Core functionality for the degenerate image pipeline.

This module provides the foundational components shared by the command interpreter
and the composition API. It includes:
- The exception hierarchy used throughout the package
- Color matrix allocation and the textual bitmap used by `print`
- The mapping between pixel indices and the aspect-normalized coordinate space
- Similarity transforms (rotation, uniform scale, translation) as 3x3 matrices
- The render step: one full-grid resampling pass through a filter and an operation
- Image load/export utilities
- CSV batch processing

A color matrix is a float array of shape (rows, cols, 3) with channel values in [0, 1].
Filters and operations are duck-typed here: a filter provides `mask(sample)` and an
operation provides `apply(rng, colors)` (see `languages/base.py`).
"""
import enum
import logging
import math
import os
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import imageio.v2 as imageio
import numpy as np
import pandas as pd
from PIL import Image, UnidentifiedImageError
from tqdm import tqdm

logger = logging.getLogger(__name__)


## --- Core Constants ---
DEFAULT_WIDTH = 80  # Initial matrix columns
DEFAULT_HEIGHT = 20  # Initial matrix rows
DEFAULT_PATH = "output.png"  # Default target of `load` and `save`
TAU = 2.0 * math.pi
CHANNELS = 3

Dimensions = Tuple[int, int]  # (cols, rows)


## --- Errors ---
class DegenerateError(Exception):
    """Base class for all errors raised by the degenerate package."""


class ParseError(DegenerateError, ValueError):
    """Raised for malformed command text, bad arguments, or malformed programs."""


class CodecError(DegenerateError, OSError):
    """Raised when an image cannot be decoded or encoded."""


class ConfigError(DegenerateError, ValueError):
    """Raised for invalid configuration values."""


class Boundary(enum.Enum):
    """
    Policy for source coordinates that fall outside the grid.

    BACKGROUND samples the zero color, WRAP addresses the grid toroidally.
    """
    BACKGROUND = "background"
    WRAP = "wrap"


## --- Color Matrix ---
def new_matrix(cols: int, rows: int) -> np.ndarray:
    """
    Allocates an all-zero (black) color matrix.

    Args:
        cols: Number of columns (image width), must be positive
        rows: Number of rows (image height), must be positive

    Returns:
        numpy array of shape (rows, cols, 3) filled with zeros

    Raises:
        ValueError: If either dimension is not positive

    Examples:
        >>> new_matrix(2, 1).shape
        (1, 2, 3)
    """
    if cols <= 0 or rows <= 0:
        raise ValueError(f"Matrix dimensions must be positive, got {cols}x{rows}")
    return np.zeros((rows, cols, CHANNELS), dtype=np.float64)


def dimensions_of(matrix: np.ndarray) -> Dimensions:
    """Returns the (cols, rows) dimensions of a color matrix."""
    return matrix.shape[1], matrix.shape[0]


def bitmap(matrix: np.ndarray) -> str:
    """
    Renders a color matrix as a textual bitmap.

    Each pixel becomes one digit: '1' if any channel is non-zero, '0' otherwise.
    Rows are separated by newlines, with no trailing newline.

    Examples:
        >>> bitmap(new_matrix(2, 1))
        '00'
    """
    lit = np.any(matrix != 0.0, axis=-1)
    return "\n".join("".join("1" if v else "0" for v in row) for row in lit)


def quantize(matrix: np.ndarray) -> np.ndarray:
    """Returns the matrix as it survives an 8-bit image round trip."""
    return np.round(np.clip(matrix, 0.0, 1.0) * 255.0) / 255.0


## --- Geometric Transformation Functions ---
def similarity(s: float = 1.0, turns: float = 0.0, x: float = 0.0, y: float = 0.0,
               order: str = 'trs') -> np.ndarray:
    """
    Creates a 3x3 similarity transformation matrix.

    Combines uniform scale, rotation, and translation in the specified order.
    The default order 'trs' applies scaling first, then rotation, then translation
    to a point (the matrices are multiplied left to right).

    Args:
        s: Uniform scale factor (default 1.0)
        turns: Rotation as a fraction of a full turn (default 0.0)
        x: Translation in x direction (default 0.0)
        y: Translation in y direction (default 0.0)
        order: Order of operations as string, e.g. 'trs', 'rst' (default 'trs')

    Returns:
        3x3 numpy array representing the combined transformation

    Examples:
        >>> similarity(s=2.0, turns=0.125, x=1.0, y=0.5)
        # Matrix for scale=2, rotate=45 degrees, translate=(1, 0.5)
    """
    op_map = {'t': translation(x, y), 'r': rotation(turns), 's': scaling(s)}
    return op_map[order[0]] @ op_map[order[1]] @ op_map[order[2]]


def rotation(turns: float) -> np.ndarray:
    """Rotation about the origin by `turns` full turns."""
    theta = turns * TAU
    return np.array([[math.cos(theta), -math.sin(theta), 0.0],
                     [math.sin(theta), math.cos(theta), 0.0],
                     [0.0, 0.0, 1.0]])


def scaling(sx: float, sy: Optional[float] = None) -> np.ndarray:
    """Scale about the origin; uniform unless `sy` is given."""
    sy = sx if sy is None else sy
    return np.array([[sx, 0.0, 0.0], [0.0, sy, 0.0], [0.0, 0.0, 1.0]])


def translation(x: float, y: float) -> np.ndarray:
    return np.array([[1.0, 0.0, x], [0.0, 1.0, y], [0.0, 0.0, 1.0]])


def apply_transform(matrix: np.ndarray, x, y):
    """
    Applies a 3x3 transformation matrix to coordinates.

    Uses homogeneous coordinates. Works on scalars or arrays of any (matching) shape.

    Args:
        matrix: 3x3 transformation matrix
        x: x coordinate(s)
        y: y coordinate(s)

    Returns:
        Tuple (x, y) of transformed coordinates with the input shape

    Examples:
        >>> apply_transform(rotation(0.25), 1.0, 0.0)
        # Approximately (0.0, 1.0)
    """
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    points_h = np.stack([x.ravel(), y.ravel(), np.ones(x.size)])
    transformed = matrix @ points_h
    return transformed[0].reshape(x.shape), transformed[1].reshape(y.shape)


def to_coordinates(cols, rows, dimensions: Dimensions):
    """
    Maps pixel indices to the aspect-normalized coordinate space.

    Pixel centres are used. The shorter grid dimension spans [-1, 1] and the longer
    one is scaled by the same factor, so the aspect ratio is preserved. The y axis
    grows downward, matching row order.

    Args:
        cols: Column index (or array of indices)
        rows: Row index (or array of indices)
        dimensions: Grid dimensions as (cols, rows)

    Returns:
        Tuple (x, y) of float coordinates

    Examples:
        >>> to_coordinates(0, 0, (2, 2))
        (-0.5, -0.5)
    """
    ncols, nrows = dimensions
    s = min(ncols, nrows)
    x = (2.0 * (np.asarray(cols, dtype=np.float64) + 0.5) - ncols) / s
    y = (2.0 * (np.asarray(rows, dtype=np.float64) + 0.5) - nrows) / s
    return x, y


def to_pixels(x, y, dimensions: Dimensions):
    """
    Maps coordinates back to (possibly out of range) pixel indices.

    Inverse of `to_coordinates`: for the identity transform every pixel maps back
    to itself.

    Returns:
        Tuple (cols, rows) of integer indices
    """
    ncols, nrows = dimensions
    s = min(ncols, nrows)
    cols = np.floor((np.asarray(x, dtype=np.float64) * s + ncols) / 2.0).astype(np.intp)
    rows = np.floor((np.asarray(y, dtype=np.float64) * s + nrows) / 2.0).astype(np.intp)
    return cols, rows


def pixel_grid(dimensions: Dimensions):
    """Returns (cols, rows) index arrays of shape (rows, cols) covering the grid."""
    ncols, nrows = dimensions
    rows, cols = np.meshgrid(np.arange(nrows), np.arange(ncols), indexing='ij')
    return cols, rows


@dataclass(frozen=True)
class Sample:
    """
    Everything a filter may inspect for one render step.

    Attributes:
        cols, rows: destination pixel indices, arrays of shape (rows, cols)
        x, y: transformed (source) coordinates of each destination pixel
        dimensions: grid dimensions as (cols, rows)
    """
    cols: np.ndarray
    rows: np.ndarray
    x: np.ndarray
    y: np.ndarray
    dimensions: Dimensions

    @property
    def shape(self):
        return self.cols.shape

    @property
    def step(self) -> float:
        """Width of one pixel in coordinate space."""
        return 2.0 / min(self.dimensions)


def sample_matrix(matrix: np.ndarray, cols, rows, boundary: Boundary) -> np.ndarray:
    """
    Looks up source colors for (possibly out of range) pixel indices.

    Args:
        matrix: Color matrix of shape (rows, cols, 3)
        cols: Column indices, any shape
        rows: Row indices, same shape as `cols`
        boundary: How out of range indices are resolved

    Returns:
        Array of colors with shape cols.shape + (3,)
    """
    ncols, nrows = dimensions_of(matrix)
    if boundary is Boundary.WRAP:
        return matrix[np.mod(rows, nrows), np.mod(cols, ncols)]
    colors = np.zeros(np.shape(cols) + (CHANNELS,), dtype=matrix.dtype)
    inside = (cols >= 0) & (cols < ncols) & (rows >= 0) & (rows < nrows)
    colors[inside] = matrix[rows[inside], cols[inside]]
    return colors


## --- Render Step ---
def render_step(matrix: np.ndarray, filter_, operation, transform: np.ndarray,
                rng: np.random.Generator, boundary: Boundary = Boundary.BACKGROUND,
                alpha: float = 1.0) -> np.ndarray:
    """
    Runs one full-grid resampling pass.

    For every destination pixel: its coordinate is transformed to a source coordinate,
    the source pixel is looked up (resolving out of range indices with `boundary`),
    and if the filter matches the destination pixel, the operation is applied to the
    sampled color. Unmatched pixels keep their prior value.

    The input matrix is never modified; a fresh matrix is returned, so no lookup in
    this step can observe a partially updated grid. Operations are applied to matched
    pixels in column-major order, which fixes the order in which `Random` consumes
    entropy.

    Args:
        matrix: Color matrix of shape (rows, cols, 3)
        filter_: Object with `mask(sample) -> bool array`
        operation: Object with `apply(rng, colors) -> colors`
        transform: 3x3 matrix mapping destination to source coordinates
        rng: numpy random Generator handed to the operation
        boundary: Out of range policy (default BACKGROUND)
        alpha: Blend factor between the operation result and the prior pixel

    Returns:
        New color matrix of the same shape

    Examples:
        >>> matrix = render_step(new_matrix(1, 1), All(), Invert(), np.eye(3), rng)
        >>> bitmap(matrix)
        '1'
    """
    dimensions = dimensions_of(matrix)
    cols, rows = pixel_grid(dimensions)
    x, y = to_coordinates(cols, rows, dimensions)
    x, y = apply_transform(transform, x, y)
    source_cols, source_rows = to_pixels(x, y, dimensions)
    source = sample_matrix(matrix, source_cols, source_rows, boundary)
    mask = np.asarray(filter_.mask(Sample(cols, rows, x, y, dimensions)), dtype=bool)

    output = matrix.copy()
    # Transposed views give column-major order; writes go through to `output`.
    output_t = output.transpose(1, 0, 2)
    mask_t = mask.T
    colors = operation.apply(rng, source.transpose(1, 0, 2)[mask_t])
    if alpha != 1.0:
        colors = alpha * colors + (1.0 - alpha) * output_t[mask_t]
    output_t[mask_t] = colors
    return output


## --- Image I/O ---
def load_image(path: str) -> np.ndarray:
    """
    Decodes an image file into a color matrix.

    Any format Pillow can read is accepted; the image is converted to RGB and scaled
    to [0, 1].

    Raises:
        FileNotFoundError: If the file does not exist
        CodecError: If the file cannot be decoded
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Image not found: {path}")
    try:
        with Image.open(path) as img:
            pixels = np.asarray(img.convert('RGB'), dtype=np.float64)
    except UnidentifiedImageError as e:
        raise CodecError(f"Could not decode image {path}: {e}") from e
    logger.info("Loaded %dx%d image from %s", pixels.shape[1], pixels.shape[0], path)
    return pixels / 255.0


def export_image(matrix: np.ndarray, export_path: str):
    """
    Exports a color matrix to an image file.

    Takes a color matrix and saves it in the format implied by the file extension,
    automatically creating the output directory if it doesn't exist. Values are
    clipped to [0, 1] and quantized to 8 bits (see `quantize`).

    Args:
        matrix: RGB color matrix with values in [0, 1]
        export_path: File path where the image should be saved

    Raises:
        OSError: If the output directory cannot be created or written
        CodecError: If no encoder handles the file extension

    Examples:
        >>> export_image(np.random.random((20, 80, 3)), "output/test.png")
    """
    output_dir = os.path.dirname(export_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    pixels = (quantize(matrix) * 255.0).round().astype(np.uint8)
    try:
        imageio.imwrite(export_path, pixels)
    except ValueError as e:
        raise CodecError(f"Could not encode image {export_path}: {e}") from e
    logger.info("Saved %dx%d image to %s", pixels.shape[1], pixels.shape[0], export_path)


## --- CSV Processing Utility ---
def render_from_csv(runner: Callable[[str], np.ndarray], name: str,
                    program_col: str = "program_string", output_dir: str = "output"):
    """
    Batch processes command scripts from a CSV file and renders them to images.

    Reads a CSV file containing scripts, runs each one with the provided runner,
    saves the resulting images, and creates an updated CSV with image file paths.
    Rows whose script fails to parse or whose I/O fails are logged and recorded with
    an empty path; processing continues with the next row.

    Args:
        runner: Callable mapping a script string to a finished color matrix
        name: Base name for input CSV file and output directory
        program_col: Column name containing the scripts
        output_dir: Directory holding `{name}.csv` and receiving the outputs

    Input:
        - Reads from: {output_dir}/{name}.csv

    Output:
        - Images saved to: {output_dir}/{name}/images/{row_index}.png
        - Updated CSV saved to: {output_dir}/{name}/rendered.csv

    Returns:
        The updated DataFrame

    Raises:
        FileNotFoundError: If the input CSV file doesn't exist
        KeyError: If the specified program column isn't found in the CSV
    """
    input_csv_path = os.path.join(output_dir, f"{name}.csv")
    if not os.path.exists(input_csv_path):
        raise FileNotFoundError(f"Input CSV not found: {input_csv_path}")

    df = pd.read_csv(input_csv_path)
    if program_col not in df.columns:
        raise KeyError(f"Column '{program_col}' not found in {input_csv_path}")

    image_output_dir = os.path.join(output_dir, name, "images")
    os.makedirs(image_output_dir, exist_ok=True)

    render_filepaths = []
    for i, row in tqdm(df.iterrows(), desc="Rendering scripts", unit="script", total=len(df), leave=False):
        program_string = str(row[program_col])
        output_path = os.path.join(image_output_dir, f"{i}.png")
        try:
            export_image(runner(program_string), output_path)
            render_filepaths.append(output_path)
        except (DegenerateError, OSError) as e:
            logger.error("Error processing row %s ('%s...'): %s", i, program_string[:50], e)
            render_filepaths.append("")

    df["render_filepath"] = render_filepaths
    rendered_csv_path = os.path.join(output_dir, name, "rendered.csv")
    df.to_csv(rendered_csv_path, index=False)
    print(f"✅ Wrote updated CSV with filepaths to: {rendered_csv_path}")
    return df
