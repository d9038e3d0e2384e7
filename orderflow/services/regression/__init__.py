"""
Regression harness: parse signatures, diffs and baselines.
"""

from orderflow.services.regression.baselines import RegressionBaselines
from orderflow.services.regression.signature import (
    build_signature,
    describe_doc,
    diff_signatures,
    doc_signature,
    sha256_hex,
)

__all__ = [
    "RegressionBaselines",
    "build_signature",
    "describe_doc",
    "diff_signatures",
    "doc_signature",
    "sha256_hex",
]
