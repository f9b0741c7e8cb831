"""SHA-256 digests for whole files and for individual chunks."""

import hashlib
from typing import Iterable, Tuple

DIGEST_NAME = "sha256"


def compute_checksum(data: bytes) -> str:
    """
    Hex digest of data.

    Whole-file checksums and chunk checksums use the same digest, so a
    single-chunk file has a chunk checksum equal to its file checksum.
    """
    return hashlib.new(DIGEST_NAME, data).hexdigest()


def verify_checksum(data: bytes, expected: str) -> bool:
    return compute_checksum(data) == expected


class IncrementalChecksumCalculator:
    """
    Running digest over content that arrives in pieces.

    bytes_seen counts everything passed to update(). After finalize() the
    calculator refuses more input.
    """

    def __init__(self):
        self._digest = hashlib.new(DIGEST_NAME)
        self._closed = False
        self.bytes_seen = 0

    def update(self, piece: bytes) -> None:
        if self._closed:
            raise ValueError("Checksum already finalized, no more input accepted")
        self._digest.update(piece)
        self.bytes_seen += len(piece)

    def finalize(self) -> str:
        self._closed = True
        return self._digest.hexdigest()


def checksum_of_pieces(pieces: Iterable[bytes]) -> Tuple[str, int]:
    """
    Digest and total length of content supplied as consecutive pieces.

    Returns:
        (checksum, size_in_bytes)
    """
    calculator = IncrementalChecksumCalculator()
    for piece in pieces:
        calculator.update(piece)
    return calculator.finalize(), calculator.bytes_seen
