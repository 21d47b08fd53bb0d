"""CLI entry point for the resume ATS scoring engine."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from src.core.config import Settings
from src.core.errors import FallbackExhaustedError, QuotaExceededError
from src.core.schemas import AnalysisRequest, ScoreModel
from src.llm.catalog import ModelCatalog
from src.pipeline.orchestrator import ResumeAnalysisService


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Resume ATS scoring engine - rule-based and AI-augmented analysis",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- analyze ---
    analyze_parser = subparsers.add_parser("analyze", help="Score a plain-text resume")
    analyze_parser.add_argument("--resume", required=True, help="Path to a plain-text resume")
    analyze_parser.add_argument("--industry", help="Target industry (e.g. technology, finance)")
    analyze_parser.add_argument("--session", default="anonymous", help="Session id for quota tracking")
    analyze_parser.add_argument("--model", help="Model id to use for the AI pass")
    analyze_parser.add_argument("--no-ai", action="store_true", help="Rule-based analysis only")
    analyze_parser.add_argument("--json", action="store_true", help="Print the full report as JSON")
    _add_common(analyze_parser)

    # --- generate ---
    generate_parser = subparsers.add_parser("generate", help="Generate a resume section with AI")
    generate_parser.add_argument(
        "--section", required=True, choices=["summary", "experience", "skills"],
        help="Section to generate",
    )
    generate_parser.add_argument("--input", required=True, help="Background text, or @path to read a file")
    generate_parser.add_argument("--role", required=True, help="Target role")
    generate_parser.add_argument("--session", default="anonymous", help="Session id for quota tracking")
    generate_parser.add_argument("--model", help="Model id to use")
    generate_parser.add_argument(
        "--complexity", default="medium", choices=["low", "medium", "high"],
        help="Task complexity used for model selection (default: medium)",
    )
    _add_common(generate_parser)

    # --- quota ---
    quota_parser = subparsers.add_parser("quota", help="Show quota state for a session")
    quota_parser.add_argument("--session", default="anonymous", help="Session id")
    _add_common(quota_parser)

    # --- report ---
    report_parser = subparsers.add_parser("report", help="Show this month's cost report")
    report_parser.add_argument("--session", help="Limit the report to one session")
    _add_common(report_parser)

    # --- models ---
    models_parser = subparsers.add_parser("models", help="List catalog models or get a recommendation")
    models_parser.add_argument("--task", choices=["analysis", "generation", "optimization"])
    models_parser.add_argument("--complexity", default="medium", choices=["low", "medium", "high"])
    models_parser.add_argument("--sensitivity", default="medium", choices=["low", "medium", "high"])
    _add_common(models_parser)

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _print_report(report: ScoreModel) -> None:
    tag = f"AI-enhanced, {report.model_used}" if report.ai_enhanced else "rule-based"
    print(f"\nOverall ATS score: {report.overall_score}/100 ({tag})")
    for name in ("formatting", "content", "keywords", "structure"):
        section = getattr(report.sections, name)
        print(f"\n  {name.capitalize()}: {section.score}/100")
        for issue in section.issues:
            print(f"    - {issue}")
        for improvement in section.improvements:
            print(f"    + {improvement}")
    if report.suggested_keywords:
        print(f"\nSuggested keywords: {', '.join(report.suggested_keywords)}")
    for label, items in (
        ("Strengths", report.summary.strengths),
        ("Critical issues", report.summary.critical_issues),
        ("Quick wins", report.summary.quick_wins),
    ):
        if items:
            print(f"\n{label}:")
            for item in items:
                print(f"  * {item}")


async def cmd_analyze(args: argparse.Namespace, service: ResumeAnalysisService) -> None:
    """Handle analyze subcommand."""
    text = Path(args.resume).read_text(encoding="utf-8")
    request = AnalysisRequest(
        resume_text=text,
        target_industry=args.industry,
        session_id=args.session,
        model=args.model,
        use_ai=not args.no_ai,
    )
    response = await service.analyze(request)
    if args.json:
        print(response.model_dump_json(indent=2))
        return
    _print_report(response.analysis)
    if response.quota is not None:
        q = response.quota
        print(f"\nQuota: {q.remaining_tokens} tokens left today, ${q.remaining_budget:.4f} left this month")


async def cmd_generate(args: argparse.Namespace, service: ResumeAnalysisService) -> None:
    """Handle generate subcommand."""
    user_input = args.input
    if user_input.startswith("@"):
        user_input = Path(user_input[1:]).read_text(encoding="utf-8")
    result = await service.generate_section(
        args.section, user_input, args.role, args.session,
        model=args.model, complexity=args.complexity,
    )
    source = "degraded fallback" if result.degraded else result.model_used
    print(f"[{args.section} - {source}]\n")
    print(result.content)
    if not result.degraded:
        print(f"\n({result.tokens_used} tokens, ${result.estimated_cost:.6f})")


def cmd_quota(args: argparse.Namespace, service: ResumeAnalysisService) -> None:
    """Handle quota subcommand."""
    state = service.quota.check_usage_quota(args.session)
    print(f"Session '{state.session_id}' ({state.day}):")
    print(f"  Tokens today: {state.daily_tokens_used}/{state.daily_token_limit}")
    print(f"  Spend this month: ${state.monthly_spent:.4f}/${state.monthly_budget:.2f}")
    print(f"  AI available: {'yes' if state.can_proceed else 'no'}")
    if state.recommended_model is not None:
        print(f"  Recommended model: {state.recommended_model.id}")
    downgrade, target = service.quota.should_downgrade_model(args.session)
    if downgrade and target is not None:
        print(f"  Budget low - consider downgrading to {target.id}")


def cmd_report(args: argparse.Namespace, service: ResumeAnalysisService) -> None:
    """Handle report subcommand."""
    report = service.quota.generate_cost_report(args.session)
    scope = f"session '{args.session}'" if args.session else "all sessions"
    print(f"Cost report for {scope}:")
    print(f"  Tokens today: {report.daily_tokens}")
    print(f"  Spent this month: ${report.monthly_spent:.4f}")
    print(f"  Budget utilization: {report.budget_utilization:.1f}%")
    print(f"  Projected monthly spend: ${report.projected_monthly_spend:.4f}")
    for usage in report.model_breakdown:
        print(f"  {usage.model}: {usage.calls} calls, {usage.tokens} tokens, ${usage.cost:.6f}")


def cmd_models(args: argparse.Namespace, settings: Settings) -> None:
    """Handle models subcommand."""
    catalog = ModelCatalog(
        settings.models or None,
        default_model_id=settings.llm.default_model,
        enabled_providers=settings.llm.enabled_providers,
    )
    if args.task:
        model = catalog.recommend_model_for_task(args.task, args.complexity, args.sensitivity)
        print(f"Recommended for {args.task} ({args.complexity} complexity, "
              f"{args.sensitivity} cost sensitivity): {model.id} [{model.tier}]")
        return
    for model in catalog.get_available_models():
        print(f"  {model.id:<36} {model.provider:<11} {model.tier:<9} "
              f"${model.input_cost_per_mtok:.3f}/${model.output_cost_per_mtok:.3f} per 1M tokens")


async def run(args: argparse.Namespace, settings: Settings) -> None:
    service = ResumeAnalysisService(settings)
    try:
        if args.command == "analyze":
            await cmd_analyze(args, service)
        elif args.command == "generate":
            await cmd_generate(args, service)
        elif args.command == "quota":
            cmd_quota(args, service)
        elif args.command == "report":
            cmd_report(args, service)
    finally:
        service.close()


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = Settings.from_yaml(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        if args.command == "models":
            cmd_models(args, settings)
        else:
            asyncio.run(run(args, settings))
    except QuotaExceededError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except (FileNotFoundError, FallbackExhaustedError, LookupError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
