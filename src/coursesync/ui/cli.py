from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from coursesync.app import (
    load_course_plans,
    reconcile_course,
    register_course,
    repair_course_plan,
    resolve_course,
)
from coursesync.config import configure_logging, parse_log_level
from coursesync.domain.model import Course, PricingContext, PricingType, SellingOption

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Keep course pricing plans in sync")
    parser.add_argument(
        "--log-level",
        type=str,
        default="info",
        help="Logging level name (debug, info, warning, ...)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    reconcile = subparsers.add_parser("reconcile", help="Reconcile the plans of one course")
    reconcile.add_argument("course_id", type=int, help="Course to reconcile")
    _add_pricing_arguments(reconcile)

    resolve = subparsers.add_parser("resolve", help="Resolve and cache the verified plan set")
    resolve.add_argument("course_id", type=int, help="Course to resolve")

    repair = subparsers.add_parser("repair", help="Detach a plan that no longer exists")
    repair.add_argument("course_id", type=int, help="Course holding the stale link")
    repair.add_argument("plan_id", type=int, help="Plan id that failed to load")

    plans = subparsers.add_parser("plans", help="List the plans shown for a course")
    plans.add_argument("course_id", type=int, help="Course to list plans for")

    course = subparsers.add_parser("course", help="Course management commands")
    course_sub = course.add_subparsers(dest="course_command", required=True)
    course_add = course_sub.add_parser("add", help="Create or update a course")
    course_add.add_argument("--id", type=int, required=True, help="Course id")
    course_add.add_argument("--title", type=str, default="", help="Course title")
    _add_pricing_arguments(course_add)

    return parser.parse_args(list(argv))


def _add_pricing_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--pricing-type",
        choices=[option.value for option in PricingType],
        help="Desired pricing type",
    )
    parser.add_argument(
        "--selling-option",
        choices=[option.value for option in SellingOption],
        help="How a paid course is sold (defaults to one_time)",
    )
    parser.add_argument("--price", type=float, help="One-time price")


def _pricing_from_args(args: argparse.Namespace) -> PricingContext | None:
    if args.pricing_type is None:
        if args.selling_option is not None or args.price is not None:
            raise ValueError("--selling-option and --price require --pricing-type")
        return None
    if args.price is not None and args.price < 0:
        raise ValueError("Price must be non-negative")
    return PricingContext(
        pricing_type=PricingType(args.pricing_type),
        selling_option=SellingOption(args.selling_option or SellingOption.ONE_TIME),
        price=args.price,
    )


def _course_from_args(args: argparse.Namespace) -> Course:
    pricing = _pricing_from_args(args)
    if pricing is None:
        return Course(id=args.id, title=args.title)
    return Course(
        id=args.id,
        title=args.title,
        pricing_type=pricing.pricing_type,
        selling_option=pricing.selling_option,
        price=pricing.price,
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        configure_logging(level=parse_log_level(parsed_args.log_level))
        pricing = _pricing_from_args(parsed_args) if parsed_args.command == "reconcile" else None
        course = _course_from_args(parsed_args) if parsed_args.command == "course" else None
    except ValueError:
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "reconcile":
            outcome = reconcile_course(parsed_args.course_id, pricing)
            if outcome.failures:
                log.warning(
                    "Reconcile for course %s finished with %d failed step(s)",
                    outcome.course_id,
                    len(outcome.failures),
                )
        elif parsed_args.command == "resolve":
            resolution = resolve_course(parsed_args.course_id)
            log.info(
                "Course %s: valid=%s one_time=%s recurring=%s pruned=%s",
                resolution.course_id,
                list(resolution.valid_ids),
                list(resolution.one_time_ids),
                list(resolution.recurring_ids),
                list(resolution.pruned_ids),
            )
        elif parsed_args.command == "repair":
            remaining = repair_course_plan(parsed_args.course_id, parsed_args.plan_id)
            log.info("Course %s now caches %s", parsed_args.course_id, remaining)
        elif parsed_args.command == "plans":
            for plan in load_course_plans(parsed_args.course_id):
                log.info(
                    "Plan %s: %s (%s, %.2f)",
                    plan.id,
                    plan.terms.name,
                    plan.billing_kind,
                    plan.terms.amount,
                )
        elif parsed_args.command == "course" and course is not None:
            register_course(course)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
