"""Code Analytics — Raw Provider Input Models.

Typed views over provider-native JSON. Every field is optional: nulls are
dropped before validation so the declared default applies, numbers pass
through ``safe_number`` (garbage becomes 0), text of the wrong type becomes
None and nested objects default to empty. Unknown fields are ignored.
"""

from typing import Annotated, Any, List, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from code_analytics.core.accessors import safe_number

Count = Annotated[Union[int, float], BeforeValidator(safe_number)]


def _as_text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _as_timestamp(value: Any) -> Optional[Union[str, int, float]]:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return None
    return value


def _as_flag(value: Any) -> bool:
    """JSON booleans, "true"/"false" strings and 0/1; anything else is False."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    if isinstance(value, (int, float)):
        return value != 0
    return False


Text = Annotated[Optional[str], BeforeValidator(_as_text)]
Timestamp = Annotated[Optional[Union[str, int, float]], BeforeValidator(_as_timestamp)]
Flag = Annotated[bool, BeforeValidator(_as_flag)]


def _as_list(value: Any) -> list:
    """Collections that are absent or not lists become empty; non-objects are dropped."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _as_object(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


Records = Annotated[List[Any], BeforeValidator(_as_list)]


class RawRecord(BaseModel):
    """Base for all provider records."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, BaseModel):
            return data
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if v is not None}


def _nested(model):
    return Annotated[model, BeforeValidator(_as_object)]


# ─────────────────────────────────────────────
# GITHUB: pull requests and comments
# ─────────────────────────────────────────────


class GitHubUser(RawRecord):
    login: Text = None


class PullRequestRecord(RawRecord):
    number: Count = 0
    user: _nested(GitHubUser) = Field(default_factory=GitHubUser)
    created_at: Timestamp = None
    merged_at: Timestamp = None
    comments: Count = 0
    review_comments: Count = 0
    additions: Count = 0
    deletions: Count = 0

    @property
    def author(self) -> Optional[str]:
        return self.user.login


class CommentRecord(RawRecord):
    user: _nested(GitHubUser) = Field(default_factory=GitHubUser)
    pull_request_url: Text = None
    issue_url: Text = None
    created_at: Timestamp = None

    @property
    def author(self) -> Optional[str]:
        return self.user.login

    @property
    def pr_number(self) -> Optional[int]:
        """PR number from the trailing path segment of the linked URL."""
        url = self.pull_request_url or self.issue_url
        if not url:
            return None
        tail = url.rstrip("/").rsplit("/", 1)[-1]
        return int(tail) if tail.isdigit() else None


# ─────────────────────────────────────────────
# CURSOR: Admin API (camelCase payloads)
# ─────────────────────────────────────────────


class CursorRecord(RawRecord):
    model_config = ConfigDict(
        extra="ignore", populate_by_name=True, alias_generator=to_camel
    )


class DailyUsageRecord(CursorRecord):
    email: Text = None
    date: Timestamp = None
    is_active: Flag = False
    total_lines_added: Count = 0
    total_lines_deleted: Count = 0
    accepted_lines_added: Count = 0
    total_tabs_shown: Count = 0
    total_tabs_accepted: Count = 0
    composer_requests: Count = 0
    chat_requests: Count = 0
    agent_requests: Count = 0


class DailyUsageResponse(CursorRecord):
    data: Records = Field(default_factory=list)


class MemberSpendRecord(CursorRecord):
    email: Text = None
    name: Text = None
    spend_cents: Count = 0
    included_spend_cents: Count = 0
    fast_premium_requests: Count = 0


class SpendResponse(CursorRecord):
    team_member_spend: Records = Field(default_factory=list)


class AiCommitRecord(CursorRecord):
    """Legacy enterprise AI-code attribution, one row per commit."""

    user_email: Text = None
    total_lines_added: Count = 0
    tab_lines_added: Count = 0
    composer_lines_added: Count = 0
    non_ai_lines_added: Count = 0


class DauRecord(CursorRecord):
    date: Timestamp = None
    dau: Count = 0


# ─────────────────────────────────────────────
# CLAUDE CODE: usage report
# ─────────────────────────────────────────────


class ClaudeActor(RawRecord):
    type: Text = None
    email_address: Text = None
    api_key_name: Text = None


class LinesOfCode(RawRecord):
    added: Count = 0
    removed: Count = 0


class CoreMetrics(RawRecord):
    num_sessions: Count = 0
    lines_of_code: _nested(LinesOfCode) = Field(default_factory=LinesOfCode)
    commits_by_claude_code: Count = 0
    pull_requests_by_claude_code: Count = 0


class ToolCounter(RawRecord):
    accepted: Count = 0
    rejected: Count = 0


class ToolActions(RawRecord):
    edit_tool: _nested(ToolCounter) = Field(default_factory=ToolCounter)
    write_tool: _nested(ToolCounter) = Field(default_factory=ToolCounter)
    notebook_edit_tool: _nested(ToolCounter) = Field(default_factory=ToolCounter)


class TokenCounts(RawRecord):
    input: Count = 0
    output: Count = 0
    cache_read: Count = 0
    cache_creation: Count = 0


class EstimatedCost(RawRecord):
    amount: Count = 0
    currency: Text = None


class ModelUsage(RawRecord):
    model: Text = None
    tokens: _nested(TokenCounts) = Field(default_factory=TokenCounts)
    estimated_cost: _nested(EstimatedCost) = Field(default_factory=EstimatedCost)


class ClaudeUsageRecord(RawRecord):
    date: Timestamp = None
    actor: _nested(ClaudeActor) = Field(default_factory=ClaudeActor)
    terminal_type: Text = None
    core_metrics: _nested(CoreMetrics) = Field(default_factory=CoreMetrics)
    tool_actions: _nested(ToolActions) = Field(default_factory=ToolActions)
    model_breakdown: Records = Field(default_factory=list)

    @property
    def models(self) -> List[ModelUsage]:
        return [ModelUsage.model_validate(m) for m in self.model_breakdown]


class ClaudeUsageResponse(RawRecord):
    data: Records = Field(default_factory=list)
    has_more: Flag = False
    next_page: Text = None
