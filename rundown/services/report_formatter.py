"""
Slack report rendering.

Produces plain text with Slack link markup (`<url|label>`). Lists longer than
AGGREGATION_THRESHOLD, and the "Other Open Issues" section always, are
collapsed into a per-priority summary with Linear search links.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, List, Dict, Union
from urllib.parse import quote

from ..models.report import CategorizedWorkItems, CooldownStatus
from ..models.source_control import GitHubActivity, PullRequest
from ..models.tracker import WorkItem
from ..utils.datetime_utils import format_date

AGGREGATION_THRESHOLD = 10

NO_PROJECT = "No Project"

BANNER_RULE = "🏖️ ════════════════════════════════════════ 🏖️"

PRIORITY_EMOJI = {1: "🔴", 2: "🟠", 3: "🟡", 4: "🟢"}

# Summary order: urgent first, "no priority" last
PRIORITY_GROUPS = (
    (1, "Urgent", "🔴"),
    (2, "High", "🟠"),
    (3, "Medium", "🟡"),
    (4, "Low", "🟢"),
    (0, "None", "⚪"),
)

EMPTY_REPORT = "No issues to report this week. Great job staying on top of things! 🎉"

# Characters encodeURIComponent leaves as-is
URI_COMPONENT_SAFE = "!~*'()"


@dataclass
class ReportContent:
    """Everything the formatter needs for one user's report."""
    user_name: str
    period_start: Union[date, datetime]
    period_end: Union[date, datetime]
    work_items: CategorizedWorkItems
    linear_org_key: Optional[str] = None
    linear_user_id: Optional[str] = None
    github: Optional[GitHubActivity] = None
    cooldown: CooldownStatus = field(default_factory=lambda: CooldownStatus(is_in_cooldown=False))


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def build_issue_url(org_key: str, identifier: str) -> str:
    return f"https://linear.app/{org_key}/issue/{identifier}"


def build_search_url(org_key: str, linear_user_id: str, priority: Optional[int] = None) -> str:
    filters = [f"assignee:{linear_user_id}"]
    if priority is not None:
        filters.append(f"priority:{priority}")
    return f"https://linear.app/{org_key}/issues?filter={quote('+'.join(filters), safe=URI_COMPONENT_SAFE)}"


def format_priority(priority: Optional[int]) -> str:
    emoji = PRIORITY_EMOJI.get(priority)
    return f" {emoji}" if emoji else ""


def format_estimate(estimate: Optional[float]) -> str:
    if not estimate:
        return ""
    points = int(estimate) if float(estimate).is_integer() else estimate
    return f" [{points}pts]"


def format_cooldown_banner(status: CooldownStatus) -> str:
    end = format_date(status.end_date) if status.end_date else ""
    return "\n".join([
        BANNER_RULE,
        "                COOLDOWN MODE ACTIVE",
        f"            Week {status.week_number or 1} of {status.total_weeks or 1}",
        f"        Ends: {end}",
        "",
        "  Focus: Maintenance work, tech debt & misc items",
        "  (Project board issues are filtered out)",
        BANNER_RULE,
    ])


def group_by_project(items: List[WorkItem]) -> Dict[Optional[str], List[WorkItem]]:
    """Group items by project name; projects alphabetical, no-project last."""
    grouped: Dict[Optional[str], List[WorkItem]] = {}
    for item in items:
        grouped.setdefault(item.project_name or None, []).append(item)

    named = sorted((name for name in grouped if name is not None), key=str.lower)
    ordered = {name: grouped[name] for name in named}
    if None in grouped:
        ordered[None] = grouped[None]
    return ordered


def format_full_list(items: List[WorkItem], org_key: Optional[str] = None) -> str:
    lines: List[str] = []
    for project, project_items in group_by_project(items).items():
        lines.append(f"  {project or NO_PROJECT}:")
        for item in project_items:
            label = item.identifier
            if org_key:
                label = f"<{build_issue_url(org_key, item.identifier)}|{item.identifier}>"
            lines.append(
                f"    • {label} - {item.title}{format_priority(item.priority)}{format_estimate(item.estimate)}"
            )
        lines.append("")

    if lines and lines[-1] == "":
        lines.pop()
    return "\n".join(lines)


def count_by_priority(items: List[WorkItem]) -> Dict[int, int]:
    counts = {priority: 0 for priority, _, _ in PRIORITY_GROUPS}
    for item in items:
        priority = item.priority if item.priority in counts else 0
        counts[priority] += 1
    return counts


def format_aggregated(
    items: List[WorkItem],
    org_key: Optional[str] = None,
    linear_user_id: Optional[str] = None,
) -> str:
    counts = count_by_priority(items)
    lines = [f"  📊 Priority Summary ({len(items)} total):"]

    for priority, label, emoji in PRIORITY_GROUPS:
        count = counts[priority]
        if count == 0:
            continue
        line = f"    {emoji} {label}: {_plural(count, 'issue')}"
        if org_key and linear_user_id:
            line += f" → <{build_search_url(org_key, linear_user_id, priority)}|View in Linear>"
        lines.append(line)

    return "\n".join(lines)


def format_issue_list(
    items: List[WorkItem],
    org_key: Optional[str] = None,
    linear_user_id: Optional[str] = None,
    force_aggregate: bool = False,
) -> str:
    if force_aggregate or len(items) > AGGREGATION_THRESHOLD:
        return format_aggregated(items, org_key, linear_user_id)
    return format_full_list(items, org_key)


def format_pull_request(pr: PullRequest) -> str:
    repo = pr.repository.full_name if pr.repository else ""
    label = f"{repo}#{pr.number}" if repo else f"#{pr.number}"
    if pr.html_url:
        label = f"<{pr.html_url}|{label}>"
    stats = f" (+{pr.additions}/-{pr.deletions})" if (pr.additions or pr.deletions) else ""
    return f"    • {label} - {pr.title}{stats}"


def format_pull_request_list(prs: List[PullRequest]) -> str:
    shown = prs[:AGGREGATION_THRESHOLD]
    lines = [format_pull_request(pr) for pr in shown]
    if len(prs) > len(shown):
        lines.append(f"    …and {len(prs) - len(shown)} more")
    return "\n".join(lines)


def format_summary(completed: int, started: int, other_open: int, merged_prs: Optional[int] = None) -> str:
    lines = [
        "📊 Summary:",
        f"  • {_plural(completed, 'issue')} completed",
        f"  • {_plural(started, 'issue')} started",
        f"  • {other_open} other open issue{'' if other_open == 1 else 's'}",
    ]
    if merged_prs:
        lines.append(f"  • {_plural(merged_prs, 'pull request')} merged")
    return "\n".join(lines)


def format_weekly_report(content: ReportContent) -> str:
    """Render a user's weekly report."""
    items = content.work_items
    org_key = content.linear_org_key
    parts: List[str] = []

    if content.cooldown.is_in_cooldown:
        parts.append(format_cooldown_banner(content.cooldown))
        parts.append("")

    parts.append(f"Hi {content.user_name}! Here's your weekly Linear update.")
    parts.append("")
    parts.append(f"📅 Report Period: {format_date(content.period_start)} - {format_date(content.period_end)}")
    parts.append("")

    for header, bucket in (
        ("✅ Completed This Week", items.completed),
        ("🔄 Started This Week", items.started),
        ("📝 Updated This Week", items.updated),
    ):
        if bucket:
            parts.append(header)
            parts.append(format_issue_list(bucket, org_key, content.linear_user_id))
            parts.append("")

    if items.other_open:
        parts.append("📋 Other Open Issues")
        parts.append(format_issue_list(items.other_open, org_key, content.linear_user_id, force_aggregate=True))
        parts.append("")

    github = content.github
    if github and github.merged_prs:
        parts.append("🚀 Pull Requests Merged")
        parts.append(format_pull_request_list(github.merged_prs))
        parts.append("")
    if github and github.active_prs:
        parts.append("👀 Open Pull Requests")
        parts.append(format_pull_request_list(github.active_prs))
        parts.append("")

    if items.total == 0:
        parts.append(EMPTY_REPORT)
    else:
        parts.append(format_summary(
            len(items.completed),
            len(items.started),
            len(items.other_open),
            len(github.merged_prs) if github else None,
        ))

    return "\n".join(parts)
