"""
Regression Baselines

Signatures keyed by file hash. Backed by a plain dict supplied by the
caller, who owns persistence (load it before, dump it after).
"""

from typing import Dict, List, Optional

from orderflow.models.signature import ParseSignature


class RegressionBaselines:

    def __init__(self, store: Optional[Dict[str, ParseSignature]] = None):
        self.store = store if store is not None else {}

    def save(self, signature: ParseSignature) -> None:
        self.store[signature.file_hash] = signature

    def get(self, file_hash: str) -> Optional[ParseSignature]:
        return self.store.get(file_hash)

    def list(self) -> List[ParseSignature]:
        """Newest first."""
        return sorted(self.store.values(), key=lambda s: s.created_at, reverse=True)

    def delete(self, file_hash: str) -> None:
        self.store.pop(file_hash, None)

    def __len__(self) -> int:
        return len(self.store)
