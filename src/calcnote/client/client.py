"""TCP client."""
from pathlib import Path
import socket
import tarfile
from typing import Callable, Dict, Iterable
import zipfile

import py7zr
from pydantic import BaseModel, ConfigDict, Field, IPvAnyAddress

from calcnote.common.logger import logger


def _first_txt(names: Iterable[str], archive_type: str) -> str:
    """Pick the first .txt member name of an archive."""
    for name in names:
        if name.endswith(".txt"):
            return name
    raise ValueError(f"📄❌ No .txt file found in {archive_type} archive")


def _read_zip(path: Path) -> bytes:
    with zipfile.ZipFile(path, "r") as zf:
        return zf.read(_first_txt(zf.namelist(), "zip"))


def _read_tar_xz(path: Path) -> bytes:
    with tarfile.open(path, "r:xz") as tf:
        # Directories and links cannot be read as text
        members = {m.name: m for m in tf.getmembers() if m.isfile()}
        member = members[_first_txt(members, "tar.xz")]
        return tf.extractfile(member).read()


def _read_7z(path: Path) -> bytes:
    with py7zr.SevenZipFile(path, mode="r") as archive:
        name = _first_txt(archive.getnames(), "7z")
        return archive.read(targets=[name])[name].read()


# Archive suffix -> reader returning the raw bytes of its first .txt member
ARCHIVE_READERS: Dict[str, Callable[[Path], bytes]] = {
    ".zip": _read_zip,
    ".tar.xz": _read_tar_xz,
    ".7z": _read_7z,
}


def archive_suffix(path: Path) -> str:
    """Suffix used to pick an archive reader, ``.tar.xz`` counts as one suffix."""
    if path.suffixes[-2:] == [".tar", ".xz"]:
        return ".tar.xz"
    return path.suffix


def read_archive(path: Path) -> str:
    """
    Read the first .txt file of a supported archive in memory.

    :param Path path: Path to a .zip, .tar.xz or .7z archive

    :return: Content of the first .txt member
    :rtype: str
    :raises ValueError: If no .txt file is found or format is unsupported
    """
    reader = ARCHIVE_READERS.get(archive_suffix(path))
    if reader is None:
        raise ValueError(f"📄❌ Unsupported archive format: {''.join(path.suffixes)}")
    return reader(path).decode("utf-8")


class ExpressionClient(BaseModel):
    """
    TCP client responsible for sending arithmetic expressions to the server and receiving computed results.

    The TCP client:
    - reads arithmetic expressions from a plain text file or an archive
    - sends raw expressions to the server over a TCP socket
    - receives computed results from the server
    - writes results into an output file
    """

    # Network configuration must not change during execution
    model_config = ConfigDict(frozen=True)

    host: IPvAnyAddress = Field(default="127.0.0.1", validate_default=True, description="Server host address")
    port: int = Field(default=9000, ge=1, le=65535, description="Server TCP port")

    def load_expressions(self, input_file: Path) -> str:
        """
        Read expressions from a text file or from the first text file of an archive.

        :param Path input_file: Path to the input file or archive

        :return: Raw file content, one expression per line
        :rtype: str
        :raises ValueError: If the archive format is unsupported or contains no .txt file
        """
        if input_file.suffix == ".txt":
            return input_file.read_text(encoding="utf-8")
        return read_archive(input_file)

    def send_file(self, input_file: Path, output_file: Path) -> None:
        """
        Send an input file containing arithmetic expressions to the server and write the computed results to an output file.

        :param Path input_file: Path to the input file or archive
        :param Path output_file: Path where results will be written

        :return: None
        :raises ValueError: If the archive format is unsupported or contains no .txt file
        """
        content = self.load_expressions(input_file)

        family = socket.AF_INET6 if self.host.version == 6 else socket.AF_INET
        with socket.socket(family, socket.SOCK_STREAM) as s:
            s.connect((str(self.host), self.port))
            logger.info(f"🔌 Connected to {self.host}:{self.port}")
            s.sendall(content.encode())
            # Signal that no more data will be sent
            s.shutdown(socket.SHUT_WR)

            with output_file.open("w", encoding="utf-8") as f_out:
                while True:
                    # An empty chunk means the server closed the connection
                    chunk = s.recv(4096)
                    if not chunk:
                        break
                    # Flush so progress survives an interruption
                    f_out.write(chunk.decode())
                    f_out.flush()
        logger.info(f"📄 Results written to {output_file}")
