#!/usr/bin/env python3
"""Seed a demo user with game sessions and print their metrics.

Usage:
    python scripts/seed_demo.py [DB_PATH]

This script:
1. Initializes the demo database (default: demo.db at the project root)
2. Records a deterministic series of memory and digit-span sessions
3. Prints the resulting summary, trend and coach messages
"""

from __future__ import annotations

import random
import sys
from datetime import datetime, timedelta
from pathlib import Path

# Add src to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from cognimirror.aggregation.summary import summarize_sessions  # noqa: E402
from cognimirror.coach.rules import get_coach_messages  # noqa: E402
from cognimirror.db import repo  # noqa: E402
from cognimirror.db.session import get_db_session, init_db  # noqa: E402
from cognimirror.ingest.sessions import SessionInput, record_session  # noqa: E402
from cognimirror.models.domain import TapEvent  # noqa: E402

# Constants
DEMO_DB_PATH = PROJECT_ROOT / "demo.db"
DEMO_USER_ID = "demo_user"
DEMO_USER_NAME = "Demo"
DEMO_GAMES = ["memory_mirror_v1", "digit_span_v1"]
DEMO_SESSIONS_PER_GAME = 5
DEMO_START = datetime(2025, 3, 1, 10, 0, 0)
DEMO_SEED = 42


def build_demo_sessions() -> list[SessionInput]:
    """Build deterministic demo sessions, one per day, alternating games."""
    rng = random.Random(DEMO_SEED)
    sessions = []

    for day in range(DEMO_SESSIONS_PER_GAME * len(DEMO_GAMES)):
        game_id = DEMO_GAMES[day % len(DEMO_GAMES)]
        start_time = DEMO_START + timedelta(days=day)

        # Slowly improving player: fewer errors, faster taps
        error_chance = max(0.05, 0.35 - day * 0.03)
        taps = []
        t = 0.0
        for _ in range(20):
            t += rng.uniform(500, 1400) - day * 30
            taps.append(TapEvent(timestamp=round(t), is_correct=rng.random() > error_chance))

        correct = sum(1 for tap in taps if tap.is_correct)
        metrics = {
            "maxSpan": 3 + day // 2,
            "errorRate": round(100 * (len(taps) - correct) / len(taps), 1),
            "persistence": rng.randint(0, 3),
        }
        if game_id == "digit_span_v1":
            metrics["score"] = correct * 10

        sessions.append(
            SessionInput(
                user_id=DEMO_USER_ID,
                user_name=DEMO_USER_NAME,
                game_id=game_id,
                start_time=start_time,
                end_time=start_time + timedelta(seconds=t / 1000 + 30),
                metrics=metrics,
                all_taps=taps,
            )
        )

    return sessions


def seed_database(db_path: Path) -> None:
    """Record the demo sessions unless the demo user already has some."""
    init_db(db_path)

    with get_db_session(db_path) as session:
        existing = repo.get_sessions_for_user(session, DEMO_USER_ID)
        if existing:
            print(f"Demo user already has {len(existing)} sessions")
            return

        for session_input in build_demo_sessions():
            record = record_session(session, session_input)
            print(f"  Recorded: {record.game_id} {record.start_time.date()}")

    print("Database seeded successfully!")


def print_report(db_path: Path) -> None:
    """Print the demo user's summary, trend and coach messages."""
    with get_db_session(db_path) as session:
        report = summarize_sessions(session, DEMO_USER_ID)

    summary = report.summary
    print(f"Sessions: {report.filtered_sessions_count} {report.per_game_counts}")
    print(f"Accuracy: {summary.accuracy:.1f}%  Avg RT: {summary.avg_rt:.0f} ms")
    print(f"Fatigue slope: {summary.fatigue:+.2f}  Retries: {summary.retry_count}")
    print("Trend:")
    for point in report.trend:
        print(f"  {point.date}: {point.accuracy}% / {point.avg_rt}s")
    print("Coach:")
    for message in get_coach_messages(summary):
        print(f"  - {message}")


def main() -> int:
    """Main entry point."""
    db_path = Path(sys.argv[1]) if len(sys.argv) > 1 else DEMO_DB_PATH

    print("=" * 60)
    print("CogniMirror Demo Seeding Script")
    print("=" * 60)

    print("\n[1/2] Seeding database...")
    seed_database(db_path)

    print("\n[2/2] Computing metrics...")
    print_report(db_path)

    print("\n" + "=" * 60)
    print(f"Database: {db_path}")
    print("=" * 60)

    return 0


if __name__ == "__main__":
    sys.exit(main())
