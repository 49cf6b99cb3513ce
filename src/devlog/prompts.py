"""Prompt templates for commit and worklog summaries."""

STYLE_RULES = """IMPORTANT STYLE RULES:
- Do NOT start with "This commit" or "The commit" - start directly with the action (e.g., "Added...", "Improved...", "Fixed...")
- Do NOT include any preamble like "Here is a summary"
- Write in active voice, past tense (e.g., "Added error handling" not "This commit adds error handling")
- Be concise and direct"""

COMMIT_SUMMARY_TEMPLATE = """Analyze this git commit and write a clear, technical summary of what was accomplished.
Focus on the WHAT and WHY, not just listing files. Be specific about functionality added/changed.
Keep it to 1-2 sentences, max 100 words. Be professional and technical.

{style_rules}
{project_context}
{commit_content}"""

DAY_UPDATES_TEMPLATE = """You are writing one section of a developer's work log.
Summarize the work done on branch "{branch_name}" on {day}.
Write 2-5 markdown bullet points ("- ...") describing what changed and why.
Group related commits into a single bullet. Do not list commit hashes.

{style_rules}
{project_context}
Commits:
{commits}"""

BRANCH_SUMMARY_TEMPLATE = """Summarize the overall work on the git branch "{branch_name}" in 2-4 sentences.
Describe the goal of the branch and the main changes made so far.

{style_rules}
{project_context}
Stats: {stats}

Commits:
{commits}"""

WEEK_SUMMARY_TEMPLATE = """Below are the daily work log sections for the week of {week_label}.
Write a weekly summary of 3-5 markdown bullet points covering the main themes and accomplishments.
Do not repeat every detail; combine related work.

{style_rules}

Daily sections:
{sections}"""

MONTH_SUMMARY_TEMPLATE = """Below are the weekly work log summaries for {month_label}.
Write a monthly summary in one short paragraph followed by up to 5 markdown bullet points for the key accomplishments.

{style_rules}

Weekly summaries:
{sections}"""


def _context_block(project_context: str) -> str:
    if not project_context:
        return ""
    return f"\nProject context:\n{project_context}\n"


def build_commit_summary_prompt(commit_content: str, project_context: str = "") -> str:
    return COMMIT_SUMMARY_TEMPLATE.format(
        style_rules=STYLE_RULES,
        project_context=_context_block(project_context),
        commit_content=commit_content,
    )


def build_day_updates_prompt(
    branch_name: str, day: str, commits: str, project_context: str = ""
) -> str:
    return DAY_UPDATES_TEMPLATE.format(
        branch_name=branch_name,
        day=day,
        commits=commits,
        style_rules=STYLE_RULES,
        project_context=_context_block(project_context),
    )


def build_branch_summary_prompt(
    branch_name: str, commits: str, stats: str, project_context: str = ""
) -> str:
    return BRANCH_SUMMARY_TEMPLATE.format(
        branch_name=branch_name,
        commits=commits,
        stats=stats,
        style_rules=STYLE_RULES,
        project_context=_context_block(project_context),
    )


def build_week_summary_prompt(week_label: str, sections: str) -> str:
    return WEEK_SUMMARY_TEMPLATE.format(
        week_label=week_label, sections=sections, style_rules=STYLE_RULES
    )


def build_month_summary_prompt(month_label: str, sections: str) -> str:
    return MONTH_SUMMARY_TEMPLATE.format(
        month_label=month_label, sections=sections, style_rules=STYLE_RULES
    )
