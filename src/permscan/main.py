import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from permscan.agent_review import ClaudeDecisionProvider
from permscan.claude_client import ClaudeClient
from permscan.config import REVIEW_MODES, AppConfig, load_config, write_config
from permscan.constants_writer import write_constants
from permscan.conventions import ConventionRules
from permscan.core import apply_reconciliation, scan_projects
from permscan.errors import PermscanError
from permscan.models import ProjectEndpoint
from permscan.progress import LoggingProgress
from permscan.prompts import TerminalDecisionProvider, confirm, print_mismatches
from permscan.reconcile import DecisionProvider, ReconcilePolicy
from permscan.report import format_summary, result_to_dict, write_report

log = logging.getLogger(__name__)


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="permscan",
        description="Discover endpoint permissions in .NET projects and check them against the naming convention.",
    )
    parser.add_argument("directory", nargs="?", help="Directory to scan for projects.")
    parser.add_argument("-o", "--out", type=str, help="Write the JSON report to this file.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging.")
    parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="Automatically accept all suggested permissions.",
    )
    parser.add_argument(
        "--review",
        choices=REVIEW_MODES,
        help="How to resolve mismatched permissions (default: from config, else interactive).",
    )
    parser.add_argument("--model", help="Claude model name used by --review ai.")
    parser.add_argument("--config", type=str, help="Path to permscan.yaml.")
    parser.add_argument("--max-workers", type=int, help="Parallel file scanners per project.")
    parser.add_argument("--constants-file", type=str, help="Also write a C# permission constants file.")
    parser.add_argument("--namespace", type=str, help="Namespace for the constants file.")
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Write a default configuration file and exit.",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    config_path = Path(args.config).expanduser() if args.config else None

    if args.init_config:
        path = write_config(AppConfig(), config_path)
        print(f"Configuration written to {path}")
        return 0

    try:
        config = load_config(config_path)
    except PermscanError as e:
        log.error("%s", e)
        return 1

    verbose = args.verbose or config.scan.verbose
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    directory = args.directory or config.scan.default_scan_path
    if not directory:
        parser.error("a directory is required (or set scan.default_scan_path in the config)")

    project_root = str(Path(directory).expanduser().resolve())
    review = "skip" if args.yes else (args.review or config.scan.review)
    accept_all = args.yes or config.scan.accept_all

    ai_provider: Optional[DecisionProvider] = None
    try:
        if review == "ai" and not accept_all:
            ai_provider = ClaudeDecisionProvider(ClaudeClient(model=args.model or config.scan.model))

        log.info("Scanning projects under %s", project_root)
        result, mismatched = scan_projects(
            project_root,
            conventions=ConventionRules.from_mapping(config.conventions.http_method_actions),
            max_workers=args.max_workers or config.scan.max_workers,
            progress=LoggingProgress(),
        )
    except PermscanError as e:
        log.error("Scan failed: %s", e)
        return 1

    print(format_summary(result, verbose=verbose))

    if mismatched:
        if accept_all:
            policy, provider = ReconcilePolicy.AUTO_ACCEPT_ALL, None
        elif ai_provider is not None:
            policy, provider = ReconcilePolicy.INTERACTIVE, ai_provider
        else:
            policy, provider = _terminal_policy(review, mismatched)

        outcome = apply_reconciliation(result, mismatched, policy, provider=provider, notifier=print)
        if outcome.updated:
            print(f"Review completed: {outcome.updated} permission(s) to update, {outcome.kept} kept as custom.")
            print("Note: these changes need to be applied manually in your code.")
        elif policy != ReconcilePolicy.SKIP_ALL:
            print("All mismatched permissions were kept as custom permissions.")

    out = args.out or config.scan.default_output_path
    if out:
        write_report(Path(out).expanduser().resolve(), result)
        print(f"Results written to: {out}")
    else:
        print(json.dumps(result_to_dict(result), indent=2))

    constants_file = args.constants_file or (config.constants.file_name if config.constants.generate else None)
    if constants_file:
        path = write_constants(Path(constants_file).expanduser().resolve(), result, args.namespace or config.constants.namespace)
        print(f"Permission constants written to: {path}")

    return 0


def _terminal_policy(
    review: str, mismatched: list[ProjectEndpoint]
) -> tuple[ReconcilePolicy, Optional[DecisionProvider]]:
    print_mismatches(mismatched)
    if review == "skip":
        print("Skipped permission review. Warnings remain in the report.")
        return ReconcilePolicy.SKIP_ALL, None

    if not sys.stdin.isatty():
        log.info("stdin is not a terminal, skipping interactive review")
        return ReconcilePolicy.SKIP_ALL, None

    if confirm("Review these mismatched permissions interactively?", default=True):
        return ReconcilePolicy.INTERACTIVE, TerminalDecisionProvider()

    print("Skipped interactive permission review. Warnings remain in the report.")
    return ReconcilePolicy.SKIP_ALL, None


if __name__ == "__main__":
    sys.exit(main())
