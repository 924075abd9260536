"""Unit tests for the record filter."""

from __future__ import annotations

import typing as typ

import pytest

from cairn.ingestion.filters import RecordFilter, RejectionReason
from cairn.ingestion.models import ContributionCandidate
from tests.unit.ingestion_test_helpers import ALLOWED_LICENSES, make_node

if typ.TYPE_CHECKING:
    from cairn.github.models import SearchNode


@pytest.fixture
def record_filter() -> RecordFilter:
    """Return a filter accepting the shared test license set."""
    return RecordFilter(ALLOWED_LICENSES)


def test_admits_public_licensed_node(record_filter: RecordFilter) -> None:
    """A public repository with an allowed license and author is admitted."""
    result = record_filter.classify(make_node("octocat", "civicactions/reef"))

    assert result == ContributionCandidate(
        author="octocat", repository="civicactions/reef", license="MIT"
    )


@pytest.mark.parametrize(
    ("node", "reason"),
    [
        (make_node(repository=None), RejectionReason.MISSING_REPOSITORY),
        (make_node(is_private=True), RejectionReason.PRIVATE_REPOSITORY),
        (make_node(has_license=False), RejectionReason.MISSING_LICENSE),
        (make_node(author=None), RejectionReason.MISSING_AUTHOR),
        (make_node(author="  "), RejectionReason.MISSING_AUTHOR),
        (make_node(spdx_id="NOASSERTION"), RejectionReason.DISALLOWED_LICENSE),
        (make_node(spdx_id=None), RejectionReason.DISALLOWED_LICENSE),
    ],
)
def test_rejection_reasons(
    record_filter: RecordFilter, node: SearchNode, reason: RejectionReason
) -> None:
    """Each rule maps to its own rejection reason."""
    assert record_filter.classify(node) is reason


def test_missing_repository_takes_precedence(record_filter: RecordFilter) -> None:
    """A node missing both repository and author reports the repository."""
    node = make_node(author=None, repository=None)

    assert record_filter.classify(node) is RejectionReason.MISSING_REPOSITORY


def test_private_beats_missing_license_and_author(record_filter: RecordFilter) -> None:
    """Privacy is checked before license and author."""
    node = make_node(author=None, is_private=True, has_license=False)

    assert record_filter.classify(node) is RejectionReason.PRIVATE_REPOSITORY


def test_missing_license_beats_missing_author(record_filter: RecordFilter) -> None:
    """License presence is checked before the author."""
    node = make_node(author=None, has_license=False)

    assert record_filter.classify(node) is RejectionReason.MISSING_LICENSE


def test_apply_tallies_admitted_and_rejected(record_filter: RecordFilter) -> None:
    """The tally counts each outcome once."""
    tally = record_filter.apply(
        [
            make_node("ada"),
            make_node("grace", spdx_id="Proprietary"),
            make_node("linus"),
            make_node(repository=None),
        ]
    )

    assert [candidate.author for candidate in tally.admitted] == ["ada", "linus"]
    assert tally.rejections[RejectionReason.DISALLOWED_LICENSE] == 1
    assert tally.rejections[RejectionReason.MISSING_REPOSITORY] == 1
    assert tally.rejected == 2
    assert tally.total == 4
