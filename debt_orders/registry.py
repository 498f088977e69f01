"""
registry.py - In-memory token registry

Provides a TokenIndexResolver backed by a plain mapping, for composition
roots that already know the registry contents and for tests.

Classes:
- StaticTokenRegistry: index -> (symbol, address), fixed until updated

Network-backed registries implement the same TokenIndexResolver protocol
(see core.py) and are supplied by the caller.
"""

from __future__ import annotations
import logging
from typing import Dict, Iterator, Optional, Tuple

from .core import ResolutionError


logger = logging.getLogger(__name__)

TokenEntry = Tuple[str, str]  # (symbol, address)


class StaticTokenRegistry:
    """
    Token registry with a fixed set of entries.

    Lookups for unregistered indices raise ResolutionError, which is how a
    real registry's "unknown index" answer reaches the assembler.
    """

    def __init__(self, tokens: Optional[Dict[int, TokenEntry]] = None):
        """
        Initialize with a token map.

        Args:
            tokens: Dictionary mapping token index to (symbol, address)
        """
        self._tokens: Dict[int, TokenEntry] = {}
        for index, (symbol, address) in (tokens or {}).items():
            self.register(index, symbol, address)

    def register(self, index: int, symbol: str, address: str) -> None:
        """Add or replace the token at index."""
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise ValueError(f"Token index must be a non-negative int, got {index!r}")
        if not symbol:
            raise ValueError("Token symbol cannot be empty")
        if not address:
            raise ValueError("Token address cannot be empty")
        self._tokens[index] = (symbol, address)

    def _entry(self, index: int) -> TokenEntry:
        try:
            return self._tokens[index]
        except KeyError:
            logger.debug("token index %s not registered", index)
            raise ResolutionError(index, f"Token index {index} is not registered") from None

    async def get_symbol(self, index: int) -> str:
        return self._entry(index)[0]

    async def get_address(self, index: int) -> str:
        return self._entry(index)[1]

    def index_of(self, symbol: str) -> Optional[int]:
        """Return the index registered for symbol, or None."""
        for index, (sym, _) in self._tokens.items():
            if sym == symbol:
                return index
        return None

    def __contains__(self, index: object) -> bool:
        return index in self._tokens

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._tokens))

    def __len__(self) -> int:
        return len(self._tokens)

    def __repr__(self):
        return f"StaticTokenRegistry({len(self._tokens)} tokens)"
