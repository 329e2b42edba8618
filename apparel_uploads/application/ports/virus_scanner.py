from typing import Protocol


class VirusScanner(Protocol):
    def scan(self, data: bytes, filename: str) -> str:
        """Returns "clean" or "infected"."""
        ...
