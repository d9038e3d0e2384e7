"""
Reference Catalogue Services
Grounding queries and catalogue versioning
"""

from orderflow.services.reference.grounding import ReferenceService
from orderflow.services.reference.versioning import (
    ReferencePackError,
    load_reference_pack,
    bump_version,
    finalize_reference_pack,
)

__all__ = [
    "ReferenceService",
    "ReferencePackError",
    "load_reference_pack",
    "bump_version",
    "finalize_reference_pack",
]
