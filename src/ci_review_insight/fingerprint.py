"""Stable identity of a commit's failure state, used to skip duplicate reviews."""

import hashlib
import json
from collections.abc import Iterable

from ci_review_insight.models import ExternalFailure, FailedJob

FINGERPRINT_LENGTH = 16


def failure_identity(failure: FailedJob | ExternalFailure) -> tuple[str, ...]:
    """Return the fields that identify a failure across re-fetches.

    Log text and URLs are left out: they change between runs of the same
    underlying failure.
    """
    match failure:
        case FailedJob():
            return (failure.source, str(failure.id), failure.conclusion)
        case ExternalFailure():
            return (failure.source, failure.name, failure.description)
    raise TypeError(f"Unsupported failure type: {type(failure).__name__}")


def compute_fingerprint(
    head_sha: str,
    failed_jobs: Iterable[FailedJob],
    external_failures: Iterable[ExternalFailure],
) -> str:
    """Compute a short deterministic fingerprint of a commit and its failures.

    Per-failure identities are serialized and sorted before hashing, so the
    order in which failures were fetched does not matter.

    Args:
        head_sha: Commit under review.
        failed_jobs: Failed workflow jobs.
        external_failures: Failed check runs and commit statuses.

    Returns:
        The first 16 hex characters of a SHA-256 digest.
    """
    identities = sorted(
        json.dumps(failure_identity(failure), separators=(",", ":"))
        for failure in [*failed_jobs, *external_failures]
    )
    canonical = json.dumps(
        {"commit": head_sha, "failures": identities},
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(canonical.encode()).hexdigest()[:FINGERPRINT_LENGTH]
