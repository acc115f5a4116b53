"""Run the classification pipeline for one day's candidates.

Stages, each handing an explicit SeenSet to the next:

1. ActivityClassifier: authored -> reviewed/commented -> commit filtering
2. BranchAggregator: commit groups with cascading exclusion
3. build_report_entries: structured entries for the renderer
"""

import logging
from typing import Callable, Optional

from .core.branch_aggregator import AggregationResult, BranchAggregator
from .core.classifier import ActivityClassifier, ClassificationResult
from .extractors.tickets import TicketExtractor
from .pipeline_types import ActivityCandidates, DailyReport, TicketReference
from .reports.daily_report_writer import build_report_entries
from .utils.date_utils import day_name

logger = logging.getLogger(__name__)


def classify_day(
    candidates: ActivityCandidates,
    ticket_extractor: Optional[TicketExtractor] = None,
) -> tuple[ClassificationResult, AggregationResult]:
    """Partition the candidates into authored, reviewed/commented and commit sections.

    Args:
        candidates: Output of the fetch stage
        ticket_extractor: Extractor for the configured ticket prefix

    Returns:
        Tuple of (classification, aggregation); ``aggregation.seen`` is the
        final SeenSet of the run
    """
    classifier = ActivityClassifier(
        current_user=candidates.current_user,
        review_confirmed=candidates.review_confirmed,
        comment_confirmed=candidates.comment_confirmed,
    )
    classification = classifier.classify(
        authored=candidates.authored,
        reviewed_candidates=candidates.reviewed,
        commented_candidates=candidates.commented,
        commits=candidates.commits,
    )
    aggregation = BranchAggregator(ticket_extractor).group(
        classification.commits, classification.seen
    )
    return classification, aggregation


def build_daily_report(
    candidates: ActivityCandidates,
    ticket_extractor: Optional[TicketExtractor] = None,
    ticket_resolver: Optional[Callable[[str], TicketReference]] = None,
) -> DailyReport:
    """Classify the candidates and turn the partition into a DailyReport.

    Args:
        candidates: Output of the fetch stage
        ticket_extractor: Extractor for the configured ticket prefix
        ticket_resolver: Optional lookup adding tracker links and titles

    Returns:
        DailyReport ready for rendering
    """
    ticket_extractor = ticket_extractor or TicketExtractor()
    classification, aggregation = classify_day(candidates, ticket_extractor)

    authored, reviewed, commits = build_report_entries(
        classification, aggregation, ticket_extractor, ticket_resolver
    )

    report = DailyReport(
        date=candidates.target_date,
        day_name=day_name(candidates.target_date),
        authored=authored,
        reviewed=reviewed,
        commits=commits,
        formal_review_count=classification.reviews.formal_review_count,
        comment_only_count=classification.reviews.comment_only_count,
        commit_count=aggregation.commit_count,
        failed_categories=list(candidates.failed_categories),
    )

    if report.is_empty():
        logger.info(f"No activity found for {report.date}")
    return report
