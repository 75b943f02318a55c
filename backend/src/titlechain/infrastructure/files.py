"""
File I/O collaborator.

The ledger never touches the filesystem. Callers read files here and hand
the bytes to create_document / verify_document. I/O errors surface to the
caller unchanged.
"""

from pathlib import Path

CHUNK_SIZE = 65536  # 64KB chunks


def read_all(path: Path | str) -> bytes:
    """
    Read a whole file into memory.

    Raises:
        FileNotFoundError: If file does not exist
        IsADirectoryError: If path is a directory
        PermissionError: If file cannot be read
    """
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    chunks: list[bytes] = []
    with open(file_path, "rb") as f:
        while chunk := f.read(CHUNK_SIZE):
            chunks.append(chunk)
    return b"".join(chunks)
