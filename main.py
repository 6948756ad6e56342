"""
Command-line entry point for the FocusFlow tracker.
    
    focusflow run --minutes 25 [--no-camera] [--user ID] [--goal TEXT] [--report]
    focusflow stats [--user ID] [--period week|month|year|all]
    focusflow report --weekly [--user ID]
    focusflow report --session SESSION_ID
"""

import argparse
import logging
import sys
import threading
import time
from datetime import date
from typing import List, Optional

import config
from storage import JsonSessionStore
from tracking.analytics import (
    compute_statistics,
    generate_insights,
    generate_summary_text,
    get_date_range,
    today_focus,
)
from tracking.focus import STATE_FOCUSED
from tracking.settings import load_settings
from tracking.state_machine import SessionStateMachine, STATE_PAUSED
from tracking.streaks import streaks_for_user

logger = logging.getLogger(__name__)


def _print_status(status: dict) -> None:
    remaining = int(status["remaining_seconds"])
    focus = status["focus_percentage"]
    focus_str = f"{focus:5.1f}%" if focus is not None else "  -  "
    print(
        f"\r[{status['state']:>7}] {remaining // 60:02d}:{remaining % 60:02d} left | "
        f"focus {focus_str} | distractions {status['distraction_count']}",
        end="",
        flush=True
    )


def _write_session_report(store, session, user_id: str) -> None:
    """Generate an insight and a PDF report for a finished session."""
    from ai.summariser import SessionInsightGenerator
    from reporting.pdf_report import generate_session_report
    
    insight = SessionInsightGenerator().generate_insight(session, store.list_sessions(user_id))
    print(f"\nInsight ({insight['source']}): {insight['insight']}")
    
    path = generate_session_report(session, insight)
    print(f"Report saved to {path}")


def run_session(args: argparse.Namespace) -> int:
    """Run one focus session with the webcam until it completes or Ctrl+C."""
    settings = load_settings()
    store = JsonSessionStore()
    machine = SessionStateMachine(store, user_id=args.user, settings=settings)
    
    done = threading.Event()
    machine.on_session_ended = lambda session, reason: done.set()
    
    camera_enabled = not args.no_camera
    engine = None
    cap = None
    
    if camera_enabled:
        import cv2
        from camera import create_face_focus_engine
        
        cap = cv2.VideoCapture(config.CAMERA_INDEX)
        if not cap.isOpened():
            logger.error(f"Could not open camera {config.CAMERA_INDEX}, continuing without camera")
            cap = None
            camera_enabled = False
        else:
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, config.FRAME_WIDTH)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, config.FRAME_HEIGHT)
            engine = create_face_focus_engine(mirrored=settings.mirror_video)
            engine.subscribe(machine.on_presence)
            engine.start()
    
    minutes = args.minutes or settings.focus_duration
    result = machine.start(minutes * 60, camera_enabled=camera_enabled, goal=args.goal, tags=args.tags)
    if not result["success"]:
        print(f"Could not start session: {result['error']}")
        if engine:
            engine.close()
        if cap is not None:
            cap.release()
        return 1
    
    print(f"Session started: {minutes} minutes. Press Ctrl+C to stop.")
    last_print = 0.0
    
    try:
        while not done.is_set():
            if cap is not None:
                ret, frame = cap.read()
                if ret:
                    engine.submit_frame(frame)
                else:
                    time.sleep(0.05)
            else:
                done.wait(0.1)
            
            status = machine.get_status()
            
            # Auto-paused sessions resume once the user is focused again
            if status["state"] == STATE_PAUSED and engine and engine.latest_snapshot:
                if machine.integrator.classify(engine.latest_snapshot) == STATE_FOCUSED:
                    machine.resume()
            
            now = time.monotonic()
            if now - last_print >= 1.0:
                _print_status(status)
                last_print = now
    except KeyboardInterrupt:
        print("\nStopping session...")
    finally:
        machine.shutdown()
        if engine:
            engine.close()
        if cap is not None:
            cap.release()
    
    session = machine.last_session
    if session is None:
        return 1
    
    print("\n")
    print(generate_summary_text(session))
    
    if session.needs_reconciliation:
        print("\nWarning: the session could not be saved completely.")
        if machine.reconcile():
            print("Saved on retry.")
    
    streak = streaks_for_user(store, args.user, date.today())
    print(f"\nStreak: {streak.current} day(s) (best {streak.best})")
    
    if args.report:
        _write_session_report(store, session, args.user)
    
    return 0


def show_stats(args: argparse.Namespace) -> int:
    """Print streaks and period analytics."""
    store = JsonSessionStore()
    sessions = store.list_sessions(args.user)
    
    start, end = get_date_range(args.period)
    analytics = compute_statistics(sessions, start, end, args.period)
    streak = streaks_for_user(store, args.user, date.today())
    analytics["streak"] = streak.current
    analytics["today_focus"] = today_focus(sessions)
    
    print(f"Period: {args.period} ({start.date()} to {end.date()})")
    print(f"Sessions: {analytics['total_sessions']} ({analytics['completed_sessions']} completed, "
          f"{analytics['completion_rate']}%)")
    print(f"Focus time: {analytics['total_minutes']} minutes ({analytics['total_hours']} h)")
    print(f"Average focus: {analytics['average_focus']}% | Today: {analytics['today_focus']}%")
    print(f"Distractions: {analytics['total_distractions']} "
          f"({analytics['avg_distraction_per_session']} per session)")
    print(f"Streak: {streak.current} day(s), best {streak.best}")
    
    if analytics["top_tags"]:
        tags = ", ".join(f"{t['tag']} ({t['count']})" for t in analytics["top_tags"])
        print(f"Top tags: {tags}")
    
    print()
    for insight in generate_insights(analytics):
        print(f"- {insight}")
    
    return 0


def write_report(args: argparse.Namespace) -> int:
    """Write a weekly or single-session PDF report."""
    store = JsonSessionStore()
    
    if args.session:
        session = store.get_session(args.session)
        if session is None:
            print(f"Session {args.session} not found")
            return 1
        _write_session_report(store, session, session.user_id)
        return 0
    
    from reporting.pdf_report import generate_weekly_report_pdf
    from reporting.weekly_report import build_weekly_report
    
    report = build_weekly_report(store.list_sessions(args.user))
    path = generate_weekly_report_pdf(report, args.user)
    print(f"Weekly report saved to {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="focusflow", description="Camera-based focus session tracker")
    subparsers = parser.add_subparsers(dest="command", required=True)
    
    run_parser = subparsers.add_parser("run", help="Run a focus session")
    run_parser.add_argument("--minutes", type=int, default=None, help="Session length (defaults to settings)")
    run_parser.add_argument("--no-camera", action="store_true", help="Run as a plain timer")
    run_parser.add_argument("--user", default="local", help="User id for stored sessions")
    run_parser.add_argument("--goal", default=None, help="What you want to get done")
    run_parser.add_argument("--tags", nargs="*", default=None, help="Session tags")
    run_parser.add_argument("--report", action="store_true", help="Write a PDF report when done")
    run_parser.set_defaults(func=run_session)
    
    stats_parser = subparsers.add_parser("stats", help="Show streaks and analytics")
    stats_parser.add_argument("--user", default="local")
    stats_parser.add_argument("--period", choices=["week", "month", "year", "all"], default="week")
    stats_parser.set_defaults(func=show_stats)
    
    report_parser = subparsers.add_parser("report", help="Write a PDF report")
    group = report_parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--weekly", action="store_true", help="Report on the last 7 days")
    group.add_argument("--session", default=None, help="Report on one session")
    report_parser.add_argument("--user", default="local")
    report_parser.set_defaults(func=write_report)
    
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the command-line tool."""
    # Configure logging
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format=config.LOG_FORMAT
    )
    
    # Suppress noisy third-party logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
