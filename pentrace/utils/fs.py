"""Atomic filesystem operations, YAML handling and image I/O.

Provides:
    - Atomic writes: tmp file → fsync → rename (no partially written artifacts)
    - YAML load/save (PyYAML safe_load / safe_dump)
    - Image loading into RGB(A) numpy arrays and atomic PNG export
    - Directory creation with exist_ok semantics

All paths use pathlib.Path for cross-platform compatibility.

Usage:
    from pentrace.utils import fs
    img = fs.load_image("cat.png")
    fs.atomic_save_image(skeleton, out_dir / "skeleton.png")
    fs.atomic_yaml_dump(job_dict, out_dir / "toolpath.yaml")
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np
import yaml
from PIL import Image


def ensure_dir(p: Union[str, Path]) -> Path:
    """Create directory (and parents) if missing, return Path object."""
    p = Path(p)
    p.mkdir(parents=True, exist_ok=True)
    return p


def atomic_write_bytes(
    path: Union[str, Path],
    data: bytes,
    tmp_suffix: str = ".tmp"
) -> None:
    """Write bytes to file atomically (tmp → fsync → rename).

    Parameters
    ----------
    path : Union[str, Path]
        Target file path
    data : bytes
        Data to write
    tmp_suffix : str
        Temporary file suffix, default ".tmp"

    Raises
    ------
    RuntimeError
        If the write or the rename fails (tmp file is cleaned up)
    """
    path = Path(path)
    tmp_path = path.with_name(path.name + tmp_suffix)
    try:
        with open(tmp_path, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        tmp_path.replace(path)
    except Exception as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise RuntimeError(f"Failed to write {path} atomically: {e}") from e


def atomic_write_text(path: Union[str, Path], text: str, encoding: str = "utf-8") -> None:
    """Write text to file atomically."""
    atomic_write_bytes(path, text.encode(encoding))


def atomic_save_image(
    img: np.ndarray,
    path: Union[str, Path],
    pil_kwargs: Optional[Dict[str, Any]] = None
) -> None:
    """Save image atomically.

    Parameters
    ----------
    img : np.ndarray
        (H, W) grayscale/mask or (H, W, 3) RGB; non-uint8 data is clipped
        to [0, 255]; boolean masks are written as 0/255
    path : Union[str, Path]
        Target file path (extension determines format)
    pil_kwargs : Optional[Dict[str, Any]]
        Additional kwargs for PIL.Image.save

    Raises
    ------
    RuntimeError
        If saving fails
    """
    path = Path(path)
    pil_kwargs = pil_kwargs or {}

    img = np.asarray(img)
    if img.dtype == bool:
        img = img.astype(np.uint8) * 255
    elif img.dtype != np.uint8:
        img = np.clip(img, 0, 255).astype(np.uint8)

    if img.ndim == 3 and img.shape[2] == 1:
        img = img.squeeze(2)

    # Keep the real extension on the tmp file so PIL picks the format
    tmp_path = path.with_name(path.stem + ".tmp" + path.suffix)
    try:
        Image.fromarray(img).save(tmp_path, **pil_kwargs)
        tmp_path.replace(path)
    except Exception as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise RuntimeError(f"Failed to save image {path} atomically: {e}") from e


# 16-bit and 32-bit integer grayscale modes; reduced to 8 bits with >> 8
_WIDE_GRAY_MODES = ("I", "I;16", "I;16L", "I;16B", "I;16N")


def pil_to_array(pil_img: Image.Image) -> np.ndarray:
    """Convert a PIL image into an (H, W, 3) or (H, W, 4) uint8 array.

    Images with transparency (alpha bands or a palette transparency
    entry) keep an alpha channel (RGBA). Wide grayscale modes are shifted
    down to 8 bits instead of being clamped by PIL's convert("RGB").
    Everything else (palette, grayscale, CMYK) is converted to RGB.
    """
    if pil_img.mode in _WIDE_GRAY_MODES:
        wide = np.array(pil_img).astype(np.int64)
        gray = np.clip(wide >> 8, 0, 255).astype(np.uint8)
        return np.repeat(gray[..., None], 3, axis=2)

    has_alpha = pil_img.mode in ("RGBA", "LA", "PA") or (
        pil_img.mode == "P" and "transparency" in pil_img.info
    )
    return np.array(pil_img.convert("RGBA" if has_alpha else "RGB"), dtype=np.uint8)


def load_image(path: Union[str, Path]) -> np.ndarray:
    """Decode an image file into an (H, W, 3) or (H, W, 4) uint8 array.

    See pil_to_array() for the mode handling; 16-bit grayscale keeps its
    tones (32768 decodes to 128).

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If the file cannot be decoded as an image
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image file not found: {path}")

    try:
        with Image.open(path) as pil_img:
            return pil_to_array(pil_img)
    except OSError as e:
        raise ValueError(f"Could not decode image {path}: {e}") from e


def atomic_yaml_dump(obj: Any, path: Union[str, Path]) -> None:
    """Save object as YAML atomically (safe_dump, insertion order kept)."""
    yaml_str = yaml.safe_dump(
        obj,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True
    )
    atomic_write_text(path, yaml_str)


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Load YAML file safely.

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    yaml.YAMLError
        If YAML parsing fails
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Failed to parse YAML file {path}: {e}") from e
