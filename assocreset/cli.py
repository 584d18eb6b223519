# path: assocreset/cli.py
"""
Command line front end.

    assocreset ~/Documents -e pdf -e docx --dry-run
    python -m assocreset --path ~/Downloads --no-confirm --report run.json

Exit codes: 0 ok (or nothing to do, or declined), 1 some files failed,
2 configuration error, 130 cancelled.
"""

from __future__ import annotations

import argparse
import signal
import sys
import threading
import uuid
from typing import Any, Callable, Dict, List, Optional, Sequence

from assocreset import __version__
from assocreset.config import ResetConfig, load_config
from assocreset.core.attributes import AttributePort
from assocreset.core.cancel import CancelToken
from assocreset.core.decision import DecisionGate, DecisionGateConfig, Verdict
from assocreset.core.errors import ConfigurationError
from assocreset.core.models import OutcomeAction, OutcomeRecord
from assocreset.core.pipeline import ResetPipeline
from assocreset.core.reporting import format_report, format_sample, write_json_report
from assocreset.services.logger import configure, flush_all_handlers, get_logger, run_context
from assocreset.workers.pool import resolve_worker_count

EXIT_OK = 0
EXIT_ERRORS = 1
EXIT_CONFIG = 2
EXIT_CANCELLED = 130

ConfirmFn = Callable[[str], bool]

_log = get_logger("cli")


def prompt_yes_no(question: str) -> bool:
    try:
        answer = input(f"{question} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="assocreset",
        description="Reset per-file 'Open With' overrides so files follow the system default application",
    )
    parser.add_argument(
        'directory',
        nargs='?',
        help='Directory to scan (default: current directory)'
    )
    parser.add_argument(
        '--path',
        dest='path',
        help='Directory to scan (same as the positional argument)'
    )
    parser.add_argument(
        '-e', '--ext',
        action='append',
        dest='ext',
        metavar='EXT',
        help='File extension to process; repeat for several (default: common document/media types)'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        default=None,
        help='Report what would be cleared without changing anything'
    )
    parser.add_argument(
        '--max-files',
        type=int,
        help='Ask for confirmation when the estimated number of affected files exceeds this'
    )
    parser.add_argument(
        '--category-limit',
        type=int,
        help='Leave an extension untouched when it has more files than this (default: --max-files, 0 = no limit)'
    )
    parser.add_argument(
        '--workers',
        type=int,
        help='Number of worker threads (default: 75%% of CPUs, or ASSOCRESET_WORKERS)'
    )
    parser.add_argument(
        '--no-parallel',
        action='store_false',
        dest='parallel',
        default=None,
        help='Process files one at a time'
    )
    parser.add_argument(
        '--sample-size',
        type=int,
        help='Number of files to check before the full pass'
    )
    parser.add_argument(
        '--min-sample',
        type=int,
        help='Skip the full pass only if at least this many files were sampled with no hits'
    )
    parser.add_argument(
        '--skip-sampling',
        action='store_true',
        default=None,
        help='Go straight to the full pass'
    )
    parser.add_argument(
        '--no-confirm',
        action='store_true',
        default=None,
        help='Never prompt for confirmation'
    )
    parser.add_argument(
        '--halt-on-error',
        action='store_true',
        default=None,
        help='Stop dispatching after the first failed file'
    )
    parser.add_argument(
        '--config',
        help='YAML configuration file'
    )
    parser.add_argument(
        '--log-level',
        help='DEBUG, INFO, WARNING or ERROR'
    )
    parser.add_argument(
        '--log-dir',
        help='Write a rotating log file into this directory'
    )
    parser.add_argument(
        '--report',
        dest='report_path',
        help='Write a JSON audit report to this file'
    )
    parser.add_argument(
        '--seed',
        type=int,
        help='Random seed for sampling (reproducible estimates)'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        default=None,
        help='Print every file that was (or would be) cleared'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f"%(prog)s {__version__}"
    )
    return parser


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "target_dir": args.path or args.directory,
        "categories": args.ext,
        "dry_run": args.dry_run,
        "max_files": args.max_files,
        "category_limit": args.category_limit,
        "workers": args.workers,
        "parallel": args.parallel,
        "sample_size": args.sample_size,
        "min_sample": args.min_sample,
        "skip_sampling": args.skip_sampling,
        "no_confirm": args.no_confirm,
        "halt_on_error": args.halt_on_error,
        "log_level": args.log_level.upper() if args.log_level else None,
        "log_dir": args.log_dir,
        "report_path": args.report_path,
        "seed": args.seed,
        "verbose": args.verbose,
    }


class _SigintToCancel:
    """Route Ctrl-C to the cancel token while a run is active."""

    def __init__(self, token: CancelToken):
        self.token = token
        self._previous: Any = None
        self._installed = False

    def _handle(self, signum, frame) -> None:
        if self.token.is_cancelled():
            # Second Ctrl-C: give up waiting for in-flight files.
            raise KeyboardInterrupt
        print("\nInterrupted; finishing in-flight files...", file=sys.stderr)
        self.token.cancel("interrupted")

    def __enter__(self) -> "_SigintToCancel":
        if threading.current_thread() is threading.main_thread():
            self._previous = signal.signal(signal.SIGINT, self._handle)
            self._installed = True
        return self

    def __exit__(self, *exc) -> None:
        if self._installed:
            signal.signal(signal.SIGINT, self._previous)
            self._installed = False


def execute(
    config: ResetConfig,
    *,
    store: Optional[AttributePort] = None,
    confirm: Optional[ConfirmFn] = None,
    cancel: Optional[CancelToken] = None,
    run_id: str = "",
) -> int:
    """Sample, gate, run and report. Returns the process exit code."""
    confirm = confirm or prompt_yes_no
    cancel = cancel or CancelToken()
    pipeline = ResetPipeline.from_config(config, store)
    root = config.target_dir
    categories = config.categories

    print(f"assocreset {__version__}" + (" (dry run)" if config.dry_run else ""))
    print(f"Target: {root}")
    print(f"Categories: {', '.join('.' + c for c in categories)}")

    if not config.no_confirm and not confirm("Proceed with file processing?"):
        print("Operation cancelled by user.")
        return EXIT_OK

    sample = None
    if not config.skip_sampling:
        with _SigintToCancel(cancel):
            sample = pipeline.sample(root, categories, config.sample_size, cancel=cancel)
        if cancel.is_cancelled():
            print("Cancelled during sampling.", file=sys.stderr)
            return EXIT_CANCELLED
        print(format_sample(sample))
        decision = DecisionGate(DecisionGateConfig(config.min_sample, config.max_files)).evaluate(sample)
        _log.info("Decision: %s (%s)", decision.verdict.value, decision.reason)
        if decision.verdict is Verdict.SKIP:
            print(f"Nothing to do: {decision.reason}.")
            if config.report_path:
                write_json_report(
                    config.report_path, run_id=run_id, config=config, sample=sample, dry_run=config.dry_run
                )
            return EXIT_OK
        if decision.verdict is Verdict.CONFIRM and not (config.no_confirm or config.dry_run):
            question = (
                f"About {sample.estimated_population_hits} files may be affected "
                f"(limit {config.max_files}). Continue?"
            )
            if not confirm(question):
                print("Aborted.")
                return EXIT_OK

    limit = config.effective_category_limit()
    workers = resolve_worker_count(config.workers)
    _log.info("Starting full pass with %d worker(s)", workers)

    errors: List[OutcomeRecord] = []
    with _SigintToCancel(cancel):
        for record in pipeline.run(
            root, categories, workers, config.dry_run, cancel, category_limit=limit
        ):
            if record.action is OutcomeAction.ERROR:
                errors.append(record)
                _log.warning("%s: %s", record.path, record.error_detail)
            elif config.verbose and record.action.counts_as_cleared:
                verb = "would clear" if record.action is OutcomeAction.WOULD_CLEAR else "cleared"
                print(f"  {verb}: {record.path}")

    report = pipeline.report()
    print()
    print(format_report(report, dry_run=config.dry_run))
    print(report.summary())

    if config.report_path:
        path = write_json_report(
            config.report_path,
            run_id=run_id,
            config=config,
            sample=sample,
            report=report,
            errors=errors,
            dry_run=config.dry_run,
        )
        print(f"Report written to {path}")

    if report.cancelled:
        return EXIT_CANCELLED
    if errors:
        print(f"{len(errors)} file(s) could not be processed.", file=sys.stderr)
        return EXIT_ERRORS
    return EXIT_OK


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    store: Optional[AttributePort] = None,
    confirm: Optional[ConfirmFn] = None,
) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config, overrides=_overrides(args))
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    configure(
        config.log_level,
        log_to_file=bool(config.log_dir),
        log_dir=config.log_dir or None,
    )

    run_id = uuid.uuid4().hex[:8]
    with run_context(run_id):
        try:
            return execute(config, store=store, confirm=confirm, run_id=run_id)
        except ConfigurationError as e:
            print(f"Configuration error: {e}", file=sys.stderr)
            return EXIT_CONFIG
        except KeyboardInterrupt:
            print("\nCancelled.", file=sys.stderr)
            return EXIT_CANCELLED
        finally:
            flush_all_handlers()


if __name__ == "__main__":
    sys.exit(main())
