import errno
import os
import tempfile
import uuid
from pathlib import Path
from typing import Optional, Union


def silent_remove(file_path: Union[str, Path]) -> None:
    """
    Remove file which may not exist.

    :param file_path: File path.
    :type file_path: str
    :returns: None
    :rtype: :class:`NoneType`
    :Usage example:

     .. code-block:: python

        from imgship.io.fs import silent_remove
        silent_remove('/tmp/imgship/upload_1a2b.jpg')
    """
    try:
        os.remove(file_path)
    except OSError as e:
        if e.errno != errno.ENOENT:  # errno.ENOENT = no such file or directory
            raise


def ensure_parent_dir(path: Union[str, Path]) -> None:
    """Create the parent directory of ``path`` if it does not exist."""
    parent = os.path.dirname(os.fspath(path))
    if parent:
        os.makedirs(parent, exist_ok=True)


def unique_temp_path(
    suffix: str = "", prefix: str = "imgship_", dir: Optional[Union[str, Path]] = None
) -> str:
    """
    Build a unique file path inside ``dir`` (system temp dir by default).

    The file itself is not created.
    """
    base = os.fspath(dir) if dir is not None else tempfile.gettempdir()
    os.makedirs(base, exist_ok=True)
    return os.path.join(base, f"{prefix}{uuid.uuid4().hex}{suffix}")
