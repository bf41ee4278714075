"""Code Analytics — GitHub Pull Requests → Normalized Aggregate.

Computes PR volume, merge counts, cycle time and review-comment
attribution per author and per creation day.
"""

from typing import Any, Dict, Iterable, List, Optional

from code_analytics.core.accessors import UNKNOWN, date_key, first_present, parse_timestamp
from code_analytics.core.aggregate import AggregateBuilder
from code_analytics.core.logging import get_logger
from code_analytics.core.metric_registry import GITHUB_DERIVED
from code_analytics.models.normalized_models import NormalizedAggregate
from code_analytics.models.raw_models import CommentRecord, PullRequestRecord

logger = get_logger("github.transformer")

PR_FIELDS = (
    "pr_count",
    "merged_count",
    "total_cycle_time_hours",
    "lines_added",
    "lines_removed",
)
COMMENT_FIELDS = ("comments_made", "comments_received")
TOTAL_FIELDS = PR_FIELDS + ("total_comments",) + COMMENT_FIELDS
USER_FIELDS = PR_FIELDS + COMMENT_FIELDS

SECONDS_PER_HOUR = 3600


def calculate_cycle_time(pr: Any) -> Optional[float]:
    """Hours from creation to merge, or None for unmerged PRs."""
    record = pr if isinstance(pr, PullRequestRecord) else PullRequestRecord.model_validate(pr or {})
    if not record.merged_at:
        return None
    created = parse_timestamp(record.created_at)
    merged = parse_timestamp(record.merged_at)
    if created is None or merged is None:
        return None
    return (merged - created).total_seconds() / SECONDS_PER_HOUR


def _records(items: Optional[Iterable[Any]], model) -> list:
    return [model.model_validate(item) for item in items or [] if isinstance(item, dict)]


def parse_pull_requests(
    prs: Optional[Iterable[Dict[str, Any]]],
    comments: Optional[Iterable[Dict[str, Any]]] = None,
) -> NormalizedAggregate:
    """Fold PR records (and optional review/issue comments) into an aggregate.

    Unmerged PRs count towards ``pr_count`` only; they never enter the
    cycle-time average. A comment always counts as "made" for its author,
    and as "received" for the PR author unless both are the same person.
    """
    builder = AggregateBuilder(TOTAL_FIELDS, user_fields=USER_FIELDS, date_fields=PR_FIELDS)
    pull_requests: List[PullRequestRecord] = _records(prs, PullRequestRecord)
    authors_by_number: Dict[int, str] = {}

    for pr in pull_requests:
        author = first_present(pr.author)
        if pr.number:
            authors_by_number[int(pr.number)] = author

        values = {"pr_count": 1, "total_comments": pr.comments}
        cycle_time = calculate_cycle_time(pr)
        if cycle_time is not None:
            values.update(
                merged_count=1,
                total_cycle_time_hours=cycle_time,
                lines_added=pr.additions,
                lines_removed=pr.deletions,
            )
        builder.add(author, date_key(pr.created_at), values)

    for comment in _records(comments, CommentRecord):
        commenter = first_present(comment.author)
        builder.add(commenter, None, {"comments_made": 1})

        pr_author = authors_by_number.get(comment.pr_number or 0)
        if pr_author is not None and pr_author != commenter:
            builder.add(pr_author, None, {"comments_received": 1})

    aggregate = builder.finish(GITHUB_DERIVED)
    if UNKNOWN in aggregate.by_user:
        logger.warning("PRs or comments without an author recorded under 'unknown'")
    logger.info(
        f"Parsed {len(pull_requests)} PRs ({aggregate.totals['merged_count']} merged) "
        f"across {len(aggregate.by_user)} users"
    )
    return aggregate
