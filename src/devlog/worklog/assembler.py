"""
Worklog assembly.

Builds a markdown worklog from stored commits. In date mode the document has
one cached section per day and branch, a weekly rollup generated from the
rendered day sections and a monthly rollup generated from the rendered
weekly rollups. In branch mode each branch gets its per-day sections and a
cached summary of the branch's month.

Rollups always describe their whole calendar week or month, whatever part
of it the requested window shows, so overlapping windows share entries.

Every section goes through ``WorklogCache`` so unchanged sections are served
from the store instead of being regenerated.
"""

import logging
from collections import OrderedDict
from datetime import date, datetime
from typing import Callable, Optional, Sequence

from devlog.config import Settings
from devlog.config import settings as default_settings
from devlog.exceptions import LLMError
from devlog.llm.base import LanguageModelClient
from devlog.models.db import EntryType, GroupBy
from devlog.prompts import (
    build_branch_summary_prompt,
    build_day_updates_prompt,
    build_month_summary_prompt,
    build_week_summary_prompt,
)
from devlog.worklog.cache import WorklogCache
from devlog.worklog.grouping import (
    BranchGroup,
    CommitGroup,
    DayGroup,
    WorklogCommit,
    count_label,
    format_long_date,
    format_short_date,
    format_stats_line,
    group_by_branch,
    group_by_date,
    month_start,
    render_commit_list,
    resolve_timezone,
    rollup_span,
    split_by_branch,
    week_start,
)

logger = logging.getLogger(__name__)

# Determinant used for content generated without a language model
PLAIN_DETERMINANT = "plain"
NO_BRANCH_LABEL = "(no branch)"
MAX_PROMPT_FILES = 10


def week_label(day: date) -> str:
    return f"Week of {format_short_date(week_start(day))}, {week_start(day).year}"


def month_label(day: date) -> str:
    return f"{day:%B} {day.year}"


class WorklogAssembler:
    """Renders worklogs through the worklog cache."""

    def __init__(
        self,
        cache: WorklogCache,
        llm_client: Optional[LanguageModelClient] = None,
        settings: Optional[Settings] = None,
        user_label: str = "",
        project_context: str = "",
        now: Optional[Callable[[], datetime]] = None,
    ):
        settings = settings or default_settings
        self.cache = cache
        self.llm_client = llm_client
        self.user_label = user_label or "Developer"
        self.project_context = project_context
        self.tz = resolve_timezone(settings.timezone)
        self.section_timeout = settings.day_summary_timeout_seconds
        self.summary_timeout = settings.llm_timeout_seconds
        self._now = now or (lambda: datetime.now(self.tz))
        self.generation_failures = 0

    @property
    def determinants(self) -> tuple[str, ...]:
        if self.llm_client is None:
            return (PLAIN_DETERMINANT,)
        return (f"{self.llm_client.provider_name}:{self.llm_client.model_name}",)

    def build(
        self,
        commits: Sequence[WorklogCommit],
        start: date,
        end: date,
        group_by: GroupBy = GroupBy.DATE,
        scope_branch_id: str = "",
    ) -> str:
        """
        Render the worklog for local days ``start`` through ``end``.

        Day sections cover the window only. Week, month and branch rollups
        always summarize their whole calendar period, so ``commits`` should
        span ``rollup_span(start, end)``; anything outside that is ignored.

        Args:
            commits: Stored commits covering the rollup span
            start: First local day shown
            end: Last local day shown
            group_by: Date or branch layout
            scope_branch_id: Branch the commits were restricted to, if any;
                keeps filtered rollups apart from unfiltered ones

        Returns:
            Markdown document
        """
        span_start, span_end = rollup_span(start, end)
        loaded = [
            c for c in commits if span_start <= c.local_date(self.tz) <= span_end
        ]
        in_window = [c for c in loaded if start <= c.local_date(self.tz) <= end]
        lines = self._header(start, end)

        if not in_window:
            lines.append("_No commits in this period._")
        elif GroupBy(group_by) == GroupBy.BRANCH:
            lines.extend(self._build_by_branch(in_window, loaded))
        else:
            lines.extend(self._build_by_date(in_window, loaded, scope_branch_id))

        lines.extend(["", "---", "*Generated by devlog*", ""])
        return "\n".join(lines)

    def _header(self, start: date, end: date) -> list[str]:
        return [
            f"# Work Log - {self.user_label}",
            "",
            f"*Generated on {format_long_date(self._now().date())}*",
            "",
            f"**Period:** {format_long_date(start)} - {format_long_date(end)}",
            "",
        ]

    # Date mode

    def _build_by_date(
        self,
        window: Sequence[WorklogCommit],
        loaded: Sequence[WorklogCommit],
        scope_branch_id: str,
    ) -> list[str]:
        rollups = _DateRollups(self, loaded, scope_branch_id)
        days = group_by_date(window, self.tz)

        day_sections = [(day, rollups.day(day.day)) for day in days]
        week_sections = [
            (start, rollups.week(start))
            for start in OrderedDict.fromkeys(week_start(d.day) for d in days)
        ]
        month_sections = [
            (month, rollups.month(month))
            for month in OrderedDict.fromkeys(month_start(d.day) for d in days)
        ]

        lines = ["## Monthly Summary", ""]
        for month, content in month_sections:
            lines.extend([f"### {month_label(month)}", "", content, ""])

        lines.extend(["## Weekly Summaries", ""])
        for start, content in week_sections:
            lines.extend([f"### {week_label(start)}", "", content, ""])

        lines.extend(["## Daily Activity", ""])
        for day, sections in day_sections:
            lines.extend(
                [f"### {format_long_date(day.day)}", format_stats_line(day), ""]
            )
            for branch, content in sections:
                name = branch.branch_name or NO_BRANCH_LABEL
                lines.extend([f"#### {name}", "", content, ""])
        return lines

    def _week_summary(
        self,
        start: date,
        week_days: Sequence[DayGroup],
        day_sections: Callable[[date], list[tuple[BranchGroup, str]]],
        scope_branch_id: str,
    ) -> str:
        commits = [c for day in week_days for c in day.commits]

        def generate() -> str:
            blocks = []
            for day in sorted(week_days, key=lambda d: d.day):
                blocks.append(f"### {format_long_date(day.day)}")
                for branch, content in day_sections(day.day):
                    blocks.append(f"#### {branch.branch_name or NO_BRANCH_LABEL}")
                    blocks.append(content)
            prompt = build_week_summary_prompt(week_label(start), "\n\n".join(blocks))
            return self._complete(prompt, self.summary_timeout)

        def fallback() -> str:
            lines = [format_stats_line(CommitGroup(commits=commits)), ""]
            for day in sorted(week_days, key=lambda d: d.day):
                branches = ", ".join(
                    g.branch_name or NO_BRANCH_LABEL
                    for g in split_by_branch(day.commits)
                )
                lines.append(
                    f"- **{day.day:%A}, {format_short_date(day.day)}**: "
                    f"{count_label(len(day.commits))} on {branches}"
                )
            return "\n".join(lines)

        return self._section(
            start,
            scope_branch_id,
            "",
            EntryType.WEEK_SUMMARY,
            GroupBy.DATE,
            commits,
            generate,
            fallback,
        )

    def _month_summary(
        self,
        month: date,
        weeks: dict[date, list[DayGroup]],
        week_sections: Callable[[date], str],
        scope_branch_id: str,
    ) -> str:
        # Covers every week it summarizes, including days of a straddling
        # week that fall in the neighbouring month.
        commits = [
            c for days in weeks.values() for day in days for c in day.commits
        ]

        def generate() -> str:
            blocks = []
            for start in sorted(weeks):
                blocks.append(f"### {week_label(start)}")
                blocks.append(week_sections(start))
            prompt = build_month_summary_prompt(month_label(month), "\n\n".join(blocks))
            return self._complete(prompt, self.summary_timeout)

        def fallback() -> str:
            lines = [format_stats_line(CommitGroup(commits=commits)), ""]
            for start in sorted(weeks):
                count = sum(len(day.commits) for day in weeks[start])
                lines.append(f"- **{week_label(start)}**: {count_label(count)}")
            return "\n".join(lines)

        return self._section(
            month,
            scope_branch_id,
            "",
            EntryType.MONTH_SUMMARY,
            GroupBy.DATE,
            commits,
            generate,
            fallback,
        )

    # Branch mode

    def _build_by_branch(
        self, window: Sequence[WorklogCommit], loaded: Sequence[WorklogCommit]
    ) -> list[str]:
        loaded_by_branch = {g.branch_id: g for g in group_by_branch(loaded)}
        lines = ["## Work by Branch", ""]
        for branch in group_by_branch(window):
            month = month_start(branch.commits[0].local_date(self.tz))
            month_commits = [
                c
                for c in loaded_by_branch[branch.branch_id].commits
                if month_start(c.local_date(self.tz)) == month
            ]
            month_group = BranchGroup(
                commits=month_commits,
                branch_id=branch.branch_id,
                branch_name=branch.branch_name,
            )
            lines.extend(
                [
                    f"### {branch.branch_name or NO_BRANCH_LABEL}",
                    format_stats_line(branch),
                    "",
                    f"_{month_label(month)}_",
                    "",
                    self._branch_summary(month, month_group),
                    "",
                ]
            )
            for day in group_by_date(branch.commits, self.tz):
                day_branch = BranchGroup(
                    commits=day.commits,
                    branch_id=branch.branch_id,
                    branch_name=branch.branch_name,
                )
                lines.extend(
                    [
                        f"#### {format_long_date(day.day)}",
                        "",
                        self._day_updates(day.day, day_branch, GroupBy.BRANCH),
                        "",
                    ]
                )
        return lines

    def _branch_summary(self, month: date, branch: BranchGroup) -> str:
        """Summary of one branch's commits over a calendar month."""
        newest = branch.commits[0].local_date(self.tz)
        oldest = branch.commits[-1].local_date(self.tz)
        name = branch.branch_name or NO_BRANCH_LABEL

        def generate() -> str:
            stats = (
                f"{len(branch.commits)} commits, "
                f"+{branch.additions}/-{branch.deletions} lines"
            )
            prompt = build_branch_summary_prompt(
                name,
                self._prompt_commits(branch.commits),
                stats,
                project_context=self.project_context,
            )
            return self._complete(prompt, self.summary_timeout)

        def fallback() -> str:
            return (
                f"{count_label(len(branch.commits))} between "
                f"{format_short_date(oldest)} and {format_short_date(newest)}."
            )

        return self._section(
            month,
            branch.branch_id,
            branch.branch_name,
            EntryType.BRANCH_SUMMARY,
            GroupBy.BRANCH,
            branch.commits,
            generate,
            fallback,
        )

    # Shared

    def _day_updates(self, day: date, branch: BranchGroup, group_by: GroupBy) -> str:
        commit_list = render_commit_list(branch.commits, self.tz)

        def generate() -> str:
            prompt = build_day_updates_prompt(
                branch.branch_name or NO_BRANCH_LABEL,
                format_long_date(day),
                self._prompt_commits(branch.commits),
                project_context=self.project_context,
            )
            updates = self._complete(prompt, self.section_timeout)
            return f"{updates}\n\n{commit_list}" if updates else commit_list

        return self._section(
            day,
            branch.branch_id,
            branch.branch_name,
            EntryType.DAY_UPDATES,
            group_by,
            branch.commits,
            generate,
            lambda: commit_list,
        )

    def _section(
        self,
        entry_date: date,
        branch_id: str,
        branch_name: str,
        entry_type: EntryType,
        group_by: GroupBy,
        commits: Sequence[WorklogCommit],
        generate: Callable[[], str],
        fallback: Callable[[], str],
    ) -> str:
        """
        Cached content for one section.

        A failed model call renders the fallback for this run only; nothing
        is stored, so the section is retried next time.
        """
        generator = generate if self.llm_client is not None else fallback
        try:
            result = self.cache.get_cached_or_generate(
                entry_date,
                branch_id,
                branch_name,
                entry_type,
                group_by,
                commits,
                generator,
                determinants=self.determinants,
            )
        except LLMError as e:
            self.generation_failures += 1
            logger.warning(
                f"Failed to generate {entry_type.value} for {entry_date}, "
                f"using plain output: {e}"
            )
            return fallback()
        return result.content

    def _complete(self, prompt: str, timeout: float) -> str:
        response = self.llm_client.complete(prompt, timeout=timeout)
        return response.content.strip()

    def _prompt_commits(self, commits: Sequence[WorklogCommit]) -> str:
        parts = []
        for commit in sorted(commits, key=lambda c: c.committed_at):
            parts.append(
                f"- {commit.local_time(self.tz):%Y-%m-%d %H:%M} {commit.subject} "
                f"(+{commit.additions}/-{commit.deletions})"
            )
            if commit.summary:
                parts.append(f"  Summary: {commit.summary.strip()}")
            if commit.file_paths:
                files = ", ".join(commit.file_paths[:MAX_PROMPT_FILES])
                if len(commit.file_paths) > MAX_PROMPT_FILES:
                    files += f" and {len(commit.file_paths) - MAX_PROMPT_FILES} more"
                parts.append(f"  Files: {files}")
        return "\n".join(parts)


class _DateRollups:
    """
    Day, week and month sections of one date-mode build.

    Sections are computed on first use and kept for the rest of the build,
    so a day that feeds both a week shown in the window and the rollup of
    its month is only looked up once.
    """

    def __init__(
        self,
        assembler: WorklogAssembler,
        loaded: Sequence[WorklogCommit],
        scope_branch_id: str,
    ):
        self.assembler = assembler
        self.scope_branch_id = scope_branch_id
        self.days = {d.day: d for d in group_by_date(loaded, assembler.tz)}
        self.weeks: dict[date, list[DayGroup]] = {}
        for day in self.days.values():
            self.weeks.setdefault(week_start(day.day), []).append(day)
        self._day_sections: dict[date, list[tuple[BranchGroup, str]]] = {}
        self._week_sections: dict[date, str] = {}

    def day(self, day: date) -> list[tuple[BranchGroup, str]]:
        if day not in self._day_sections:
            self._day_sections[day] = [
                (branch, self.assembler._day_updates(day, branch, GroupBy.DATE))
                for branch in split_by_branch(self.days[day].commits)
            ]
        return self._day_sections[day]

    def week(self, start: date) -> str:
        if start not in self._week_sections:
            self._week_sections[start] = self.assembler._week_summary(
                start, self.weeks[start], self.day, self.scope_branch_id
            )
        return self._week_sections[start]

    def month(self, month: date) -> str:
        weeks = {
            start: days
            for start, days in self.weeks.items()
            if any(month_start(d.day) == month for d in days)
        }
        return self.assembler._month_summary(
            month, weeks, self.week, self.scope_branch_id
        )
