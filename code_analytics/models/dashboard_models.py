"""Code Analytics — Dashboard View Models."""

from typing import Dict, List, Optional

from pydantic import BaseModel


# ─────────────────────────────────────────────
# SUMMARY: organization totals over a range
# ─────────────────────────────────────────────


class GitHubSummary(BaseModel):
    pr_count: int = 0
    merged_count: int = 0
    avg_cycle_time_hours: float = 0.0
    total_comments: int = 0
    lines_added: int = 0
    lines_removed: int = 0


class CursorSummary(BaseModel):
    active_users: int = 0
    total_lines_added: int = 0
    accepted_lines_added: int = 0
    total_requests: int = 0
    ai_code_percent: float = 0.0
    tab_accept_rate: float = 0.0
    total_spend_dollars: float = 0.0
    total_included_spend_dollars: float = 0.0
    total_usage_dollars: float = 0.0


class ClaudeSummary(BaseModel):
    sessions: int = 0
    lines_added: int = 0
    lines_removed: int = 0
    commits: int = 0
    pull_requests: int = 0
    tokens_input: int = 0
    tokens_output: int = 0
    cost_dollars: float = 0.0
    tool_acceptance_rate: float = 0.0


class DashboardSummary(BaseModel):
    """Organization-wide numbers for the summary cards."""

    start_date: str = ""
    end_date: str = ""
    github: GitHubSummary = GitHubSummary()
    cursor: CursorSummary = CursorSummary()
    claude: ClaudeSummary = ClaudeSummary()


# ─────────────────────────────────────────────
# TEAM: one row per reconciled member
# ─────────────────────────────────────────────


class TeamMemberRow(BaseModel):
    identifier: str
    is_unmapped: bool = False
    github_username: Optional[str] = None

    github_pr_count: int = 0
    github_merged_count: int = 0
    github_avg_cycle_time_hours: float = 0.0
    github_comments_made: int = 0
    github_comments_received: int = 0
    github_lines_added: int = 0
    github_lines_removed: int = 0

    cursor_lines_added: int = 0
    cursor_accepted_lines: int = 0
    cursor_ai_code_percent: float = 0.0
    cursor_tab_accept_rate: float = 0.0
    cursor_requests: int = 0
    cursor_active_days: int = 0
    cursor_total_usage_dollars: float = 0.0

    claude_sessions: int = 0
    claude_lines_added: int = 0
    claude_commits: int = 0
    claude_pull_requests: int = 0
    claude_cost_dollars: float = 0.0
    claude_tool_acceptance_rate: float = 0.0

    total_lines_added: int = 0  # Cursor + Claude Code
    total_cost_dollars: float = 0.0


class TeamView(BaseModel):
    start_date: str = ""
    end_date: str = ""
    members: List[TeamMemberRow] = []
    unmapped_count: int = 0


# ─────────────────────────────────────────────
# ADOPTION: AI share of shipped code
# ─────────────────────────────────────────────


class AdoptionSummary(BaseModel):
    pr_lines_added: int = 0
    pr_lines_removed: int = 0
    merged_count: int = 0
    avg_cycle_time_hours: float = 0.0
    ai_lines_added: int = 0
    ai_shipped_percent: float = 0.0  # capped at 100
    ai_attributed_pr_percent: float = 0.0  # capped at 100
    cost_dollars: float = 0.0


class ClaudeBreakdown(BaseModel):
    sessions: int = 0
    lines_added: int = 0
    pull_requests: int = 0
    acceptance_rate: float = 0.0
    cost_dollars: float = 0.0


class CursorBreakdown(BaseModel):
    total_lines_added: int = 0
    accepted_lines_added: int = 0
    ai_percent: float = 0.0
    acceptance_rate: float = 0.0
    cost_dollars: float = 0.0


class ToolBreakdown(BaseModel):
    claude: ClaudeBreakdown = ClaudeBreakdown()
    cursor: CursorBreakdown = CursorBreakdown()


class AdoptionMemberRow(BaseModel):
    identifier: str
    is_unmapped: bool = False
    pr_lines_added: int = 0
    merged_count: int = 0
    avg_cycle_time_hours: float = 0.0
    ai_lines_added: int = 0
    ai_shipped_percent: float = 0.0
    cost_dollars: float = 0.0
    claude: ClaudeBreakdown = ClaudeBreakdown()
    cursor: CursorBreakdown = CursorBreakdown()


class AdoptionView(BaseModel):
    """How much of the code that shipped came from AI tools."""

    start_date: str = ""
    end_date: str = ""
    summary: AdoptionSummary = AdoptionSummary()
    tool_breakdown: ToolBreakdown = ToolBreakdown()
    by_user: List[AdoptionMemberRow] = []


# ─────────────────────────────────────────────
# DAILY SERIES: aligned chart data
# ─────────────────────────────────────────────


class DailySeries(BaseModel):
    """Parallel arrays over one shared date axis; missing days are 0."""

    start_date: str = ""
    end_date: str = ""
    user: Optional[str] = None
    dates: List[str] = []
    series: Dict[str, List[float]] = {}
    users: List[str] = []


class BackfillResult(BaseModel):
    source: str
    start_date: str
    end_date: str
    saved: int = 0
    failed: List[str] = []  # dates (or repos) that could not be fetched
    message: str = ""
