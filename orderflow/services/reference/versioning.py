"""
Reference Pack Versioning

Validation of catalogue payloads and semantic version bumps on finalize.
Storage of the pack is the caller's concern.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional

from pydantic import ValidationError
import structlog

from orderflow.models.reference_pack import ReferencePack

logger = structlog.get_logger(__name__)

BumpKind = Literal["major", "minor", "patch"]


class ReferencePackError(ValueError):
    """Raised for invalid catalogue payloads or version strings."""


def load_reference_pack(payload: Dict[str, Any]) -> ReferencePack:
    """
    Validate a catalogue payload (e.g. parsed JSON).

    Raises:
        ReferencePackError: If the payload does not validate
    """
    try:
        pack = ReferencePack.model_validate(payload)
    except ValidationError as e:
        raise ReferencePackError(f"Invalid reference pack: {e.error_count()} validation errors") from e

    logger.info(
        "reference_pack_loaded",
        version=pack.version,
        manufacturers=len(pack.manufacturers),
        finishes=len(pack.finishes),
        categories=len(pack.categories),
    )
    return pack


def bump_version(version: str, kind: BumpKind = "patch") -> str:
    """
    Bump a MAJOR.MINOR.PATCH version string.

    Example:
        >>> bump_version("1.2.3", "minor")
        '1.3.0'
    """
    parts = version.strip().split(".")
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        raise ReferencePackError(f"Not a semantic version: {version!r}")

    major, minor, patch = (int(p) for p in parts)
    if kind == "major":
        return f"{major + 1}.0.0"
    if kind == "minor":
        return f"{major}.{minor + 1}.0"
    if kind == "patch":
        return f"{major}.{minor}.{patch + 1}"
    raise ReferencePackError(f"Unknown bump kind: {kind!r}")


def finalize_reference_pack(
    pack: ReferencePack,
    kind: BumpKind = "patch",
    now: Optional[datetime] = None,
) -> ReferencePack:
    """Return a copy with the version bumped and updated_at stamped."""
    new_version = bump_version(pack.version, kind)
    finalized = pack.model_copy(update={
        "version": new_version,
        "updated_at": now or datetime.now(timezone.utc),
    })
    logger.info("reference_pack_finalized", previous=pack.version, version=new_version, kind=kind)
    return finalized
