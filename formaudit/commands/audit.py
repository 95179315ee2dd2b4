"""Audit command implementation."""

import json
import logging
from collections import defaultdict
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..config import AuditConfig
from ..formula.loader import load_formula
from ..formula.rules import RULE_EXPLANATIONS, FormulaAuditor, get_rule_ids
from ..models import AuditResult
from ..vcs import CachedRevisionSource, GitRevisionSource, RevisionSource, StaticRevisionSource

logger = logging.getLogger(__name__)


def collect_formula_paths(paths: list[Path], config: AuditConfig) -> list[Path]:
    """Expand directories into the formula files they hold.

    A directory containing `config.formula_dir` is treated as a tap root.
    """
    found: list[Path] = []
    for path in paths:
        if path.is_dir():
            root = path / config.formula_dir if (path / config.formula_dir).is_dir() else path
            found.extend(sorted(p for p in root.rglob("*.rb") if p.is_file()))
        else:
            found.append(path)

    # Deduplicate while preserving order
    seen = set()
    result = []
    for p in found:
        key = p.resolve()
        if key not in seen:
            seen.add(key)
            result.append(p)
    return result


def build_revision_source(config: AuditConfig) -> RevisionSource:
    if not config.history:
        return StaticRevisionSource()
    return CachedRevisionSource(
        GitRevisionSource(config.repository, ref=config.git_ref, timeout=config.git_timeout)
    )


def audit_paths(paths: list[Path], config: AuditConfig) -> dict[Path, list[AuditResult]]:
    """Audit each formula independently; one file's failure never stops the run."""
    source = build_revision_source(config)
    report: dict[Path, list[AuditResult]] = {}

    for path in collect_formula_paths(paths, config):
        try:
            formula = load_formula(path)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Cannot read %s: %s", path, exc)
            report[path] = [
                AuditResult(level="error", rule="unreadable", file=path, message=f"Cannot read formula: {exc}")
            ]
            continue

        auditor = FormulaAuditor(formula, strict=config.strict, revision_source=source)
        report[path] = auditor.run_all()
        logger.debug("%s: %d problem(s)", path, len(report[path]))

    return report


def run_audit(
    paths: list[Path],
    config: AuditConfig,
    fail_on: str = "error",
    output_json: bool = False,
) -> int:
    """Run audits on formula files.

    Args:
        paths: Formula files or directories to audit
        config: Effective audit configuration
        fail_on: Exit with error if this level or higher found ("error" or "warning")
        output_json: Output results as JSON instead of human-readable

    Returns:
        Exit code (0 = success, 1 = failures found)
    """
    console = Console(stderr=True)

    report = audit_paths(paths, config)
    if not report:
        console.print("No formula files found.", style="yellow")
        return 0

    counts = {"error": 0, "warning": 0, "info": 0}
    for results in report.values():
        for r in results:
            counts[r.level] = counts.get(r.level, 0) + 1

    if output_json:
        _output_json(report, counts, config)
    else:
        _print_human_output(console, report, counts, config)

    if fail_on == "warning":
        if counts["error"] > 0 or counts["warning"] > 0:
            return 1
    else:  # fail_on == "error"
        if counts["error"] > 0:
            return 1

    return 0


def _result_to_dict(result: AuditResult) -> dict:
    return {
        "level": result.level,
        "rule": result.rule,
        "message": result.message,
        "line": result.line,
    }


def _output_json(report: dict[Path, list[AuditResult]], counts: dict[str, int], config: AuditConfig) -> None:
    by_rule = defaultdict(int)
    for results in report.values():
        for r in results:
            by_rule[r.rule] += 1

    output = {
        "strict": config.strict,
        "files": {str(path): [_result_to_dict(r) for r in results] for path, results in report.items()},
        "summary": {
            "formulae": len(report),
            "errors": counts["error"],
            "warnings": counts["warning"],
            "info": counts["info"],
            "by_rule": dict(by_rule),
        },
    }

    print(json.dumps(output, indent=2))


def _print_human_output(
    console: Console,
    report: dict[Path, list[AuditResult]],
    counts: dict[str, int],
    config: AuditConfig,
) -> None:
    """Print problems grouped by formula file."""
    for path, results in report.items():
        if not results:
            continue

        console.print(f"\n{path.name}:", style="bold")
        for r in results:
            if r.level == "error":
                style = "bold red"
                prefix = "ERROR"
            elif r.level == "warning":
                style = "yellow"
                prefix = "WARN"
            else:
                style = "dim"
                prefix = "INFO"

            line_ref = f" (line {r.line})" if r.line else ""
            # Messages contain backticks and brackets; print them literally
            console.print(f"  {prefix}: [{r.rule}]{line_ref} {r.message}", style=style, markup=False)

    console.print()

    table = Table(title="Audit Summary", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right")

    table.add_row("Formulae", str(len(report)))
    table.add_row("With problems", str(sum(1 for results in report.values() if results)))
    table.add_row("Mode", "strict" if config.strict else "default")

    console.print(table)

    console.print()
    if counts["error"] > 0:
        console.print(f"❌ {counts['error']} error(s)", style="bold red")
    if counts["warning"] > 0:
        console.print(f"⚠️  {counts['warning']} warning(s)", style="yellow")
    if counts["info"] > 0:
        console.print(f"ℹ️  {counts['info']} info(s)", style="dim")

    if counts["error"] == 0 and counts["warning"] == 0:
        console.print("✅ No errors or warnings", style="bold green")


def run_explain(rule_id: str) -> int:
    """Explain a specific audit rule.

    Returns:
        Exit code (0 = success, 1 = rule not found)
    """
    console = Console()

    rule_id = rule_id.lower().strip()

    if rule_id not in RULE_EXPLANATIONS:
        console.print(f"Unknown rule: {rule_id}", style="bold red")
        console.print()
        console.print("Known rules:", style="bold")
        for rid in sorted(get_rule_ids()):
            console.print(f"  - {rid}")
        return 1

    from rich.markdown import Markdown

    explanation = RULE_EXPLANATIONS[rule_id]
    mode = "strict mode only" if explanation["strict"] else "always active"
    console.print(Markdown(f"# {explanation['name']} (`{rule_id}`)\n\n{explanation['summary']}\n\n*{mode}*"))
    return 0
