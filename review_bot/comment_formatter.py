"""
Comment Formatter
──────────────────
Formats findings into GitHub-flavoured markdown: inline comment bodies
and the review summary.
"""

from typing import Optional

from . import __version__

# Severity badge mapping
SEVERITY_BADGES = {
    "critical": "🔴 **CRITICAL**",
    "error": "🟠 **ERROR**",
    "warning": "🟡 **WARNING**",
    "info": "🔵 **INFO**",
}

SEVERITY_ORDER = {"critical": 0, "error": 1, "warning": 2, "info": 3}


def format_inline_comment(
    severity: str,
    description: str,
    suggestion: str = "",
    rule_id: str = "",
) -> str:
    """Format a single inline review comment as GitHub markdown."""
    badge = SEVERITY_BADGES.get(severity, f"**{severity.upper()}**")
    parts = [f"{badge}: {description}"]

    if suggestion:
        parts.append(f"\n💡 **What to do:** {suggestion}")

    if rule_id:
        parts.append(f"\n`Rule: {rule_id}`")

    return "\n".join(parts)


def format_summary_comment(
    pr_metadata: dict,
    findings: list[dict],
    files_reviewed: int,
    listed_findings: Optional[list[dict]] = None,
) -> str:
    """
    Build the review body.

    ``findings`` drives the counts; ``listed_findings`` are spelled out in
    the body because they have no inline comment of their own.
    """
    severity_counts = {sev: 0 for sev in SEVERITY_ORDER}
    for item in findings:
        sev = item.get("severity", "info")
        severity_counts[sev] = severity_counts.get(sev, 0) + 1

    lines = [
        "## 🤖 Automated Code Review Summary\n",
        f"**PR:** #{pr_metadata.get('number', '?')} — {pr_metadata.get('title') or 'Untitled'}\n",
        f"**Author:** @{pr_metadata.get('author') or 'unknown'}\n",
        f"**Files reviewed:** {files_reviewed} | "
        f"**Total issues:** {len(findings)}\n",
        "---\n",
        "### 📊 Issue Breakdown\n",
        "| Severity | Count |",
        "|----------|-------|",
    ]

    for sev in SEVERITY_ORDER:
        lines.append(f"| {SEVERITY_BADGES[sev]} | {severity_counts.get(sev, 0)} |")
    lines.append("")

    if listed_findings:
        lines.append("### 📌 Findings\n")
        for item in sorted(
            listed_findings,
            key=lambda f: (SEVERITY_ORDER.get(f["severity"], 99), f["path"], f["line"]),
        ):
            lines.append(
                f"- {SEVERITY_BADGES.get(item['severity'], item['severity'])} "
                f"**{item['path']}** (line {item['line']}): {item['description']}"
            )
        lines.append("")

    if severity_counts.get("critical", 0) > 0:
        lines.append("> ⚠️ **Critical issues found — changes requested.**")
    elif severity_counts.get("error", 0) > 0:
        lines.append("> 🔍 **Errors found — please review before merging.**")
    elif findings:
        lines.append("> 💡 **Minor suggestions — overall looking good!**")
    else:
        lines.append("> ✅ **No issues found — LGTM!**")

    lines.append("\n---")
    lines.append(f"*Generated by Pull Request Review Bot v{__version__}*")

    return "\n".join(lines)
