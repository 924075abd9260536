"""Admission rules for search results.

A node is admitted only when it belongs to a public repository carrying a
recognised open-source license and has an identifiable author. Rules are
checked in a fixed order and the first failing rule names the rejection.
"""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

from .models import ContributionCandidate

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from cairn.github.models import SearchNode


class RejectionReason(enum.StrEnum):
    """Why a node was not admitted, in rule precedence order."""

    MISSING_REPOSITORY = "missing_repository"
    PRIVATE_REPOSITORY = "private_repository"
    MISSING_LICENSE = "missing_license"
    MISSING_AUTHOR = "missing_author"
    DISALLOWED_LICENSE = "disallowed_license"


def _empty_rejections() -> dict[RejectionReason, int]:
    return dict.fromkeys(RejectionReason, 0)


@dataclasses.dataclass(slots=True)
class FilterTally:
    """Admitted candidates and per-reason rejection counts for one query."""

    admitted: list[ContributionCandidate] = dataclasses.field(default_factory=list)
    rejections: dict[RejectionReason, int] = dataclasses.field(
        default_factory=_empty_rejections
    )

    @property
    def rejected(self) -> int:
        """Total number of rejected nodes."""
        return sum(self.rejections.values())

    @property
    def total(self) -> int:
        """Number of nodes inspected."""
        return len(self.admitted) + self.rejected

    def record(self, outcome: ContributionCandidate | RejectionReason) -> None:
        """Count one classification result."""
        if isinstance(outcome, RejectionReason):
            self.rejections[outcome] += 1
        else:
            self.admitted.append(outcome)


@dataclasses.dataclass(frozen=True, slots=True)
class RecordFilter:
    """Classify search nodes against the license allowlist."""

    allowed_licenses: frozenset[str]

    def classify(self, node: SearchNode) -> ContributionCandidate | RejectionReason:
        """Return the admitted candidate or the first rule the node breaks."""
        repository = node.repository
        if repository is None:
            return RejectionReason.MISSING_REPOSITORY
        if repository.is_private:
            return RejectionReason.PRIVATE_REPOSITORY
        if repository.license is None:
            return RejectionReason.MISSING_LICENSE

        author = node.author_login
        if author is None or not author.strip():
            return RejectionReason.MISSING_AUTHOR

        spdx_id = repository.license.spdx_id
        if spdx_id is None or spdx_id not in self.allowed_licenses:
            return RejectionReason.DISALLOWED_LICENSE

        return ContributionCandidate(
            author=author,
            repository=repository.name_with_owner,
            license=spdx_id,
        )

    def apply(self, nodes: cabc.Iterable[SearchNode]) -> FilterTally:
        """Classify every node and tally the results."""
        tally = FilterTally()
        for node in nodes:
            tally.record(self.classify(node))
        return tally
