"""Core classification and aggregation pipeline."""

from .branch_aggregator import AggregationResult, BranchAggregator
from .classifier import ActivityClassifier, ClassificationResult, ReviewSelection
from .models import (
    AssociatedPullRequest,
    BranchGroup,
    CommitRecord,
    IdentityKey,
    IdentityKind,
    PullRequestRecord,
    SeenSet,
    UnattributedCommit,
)

__all__ = [
    "ActivityClassifier",
    "AggregationResult",
    "AssociatedPullRequest",
    "BranchAggregator",
    "BranchGroup",
    "ClassificationResult",
    "CommitRecord",
    "IdentityKey",
    "IdentityKind",
    "PullRequestRecord",
    "ReviewSelection",
    "SeenSet",
    "UnattributedCommit",
]
