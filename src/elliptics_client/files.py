"""
Local file resolution for uploads.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from elliptics_client.exceptions import InvalidFileError

PathLike = Union[str, Path]


@dataclass(frozen=True)
class UploadTarget:
    """
    One local file to be stored.

    :param path: Path to the local file
    :param storage_file_id: Identifier to store the file under; basename of path when None
    """
    path: str
    storage_file_id: Optional[str] = None

    @classmethod
    def coerce(cls, file: Union['UploadTarget', PathLike]) -> 'UploadTarget':
        """Accept either an UploadTarget or a bare path."""
        if isinstance(file, UploadTarget):
            return file
        if isinstance(file, (str, Path)):
            return cls(path=str(file))
        raise InvalidFileError(repr(file), 'is not a path or UploadTarget')

    def resolve_storage_file_id(self) -> str:
        """
        Determine the storage identifier of the file.

        :return: Explicit storage_file_id, or the file's basename
        :raises InvalidFileError: If the path does not exist
        """
        if not self.path:
            raise InvalidFileError(self.path, 'has no path')
        if not os.path.exists(self.path):
            raise InvalidFileError(self.path)
        if self.storage_file_id:
            return self.storage_file_id
        basename = os.path.basename(self.path)
        if not basename:
            raise InvalidFileError(self.path, 'has no file name')
        return basename

    def read_contents(self) -> bytes:
        """
        Read the whole file into memory.

        :raises InvalidFileError: If the file cannot be read
        """
        try:
            with open(self.path, 'rb') as f:
                return f.read()
        except OSError as e:
            raise InvalidFileError(self.path, f'cannot be read: {e.strerror or e}') from e
