#!/usr/bin/env python3
# =============================================================================
# scripts/start_worker.py - Celery Worker Entry Point
# =============================================================================
# Runs one worker for local development. Production deployments run the
# email queue, the default queue and beat as separate processes.
#
# Usage:
#   python scripts/start_worker.py                 # both queues + beat
#   python scripts/start_worker.py --queues email  # mail only
#   python scripts/start_worker.py --no-beat
#
# Prerequisites:
#   - Redis must be running
#   - Environment variables must be set (.env file)
# =============================================================================

import argparse
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from workers.celery_app import celery_app


def main():
    parser = argparse.ArgumentParser(description="Start an Agora Celery worker")
    parser.add_argument("--queues", default="default,email", help="Comma separated queue names")
    parser.add_argument("--concurrency", type=int, default=2)
    parser.add_argument("--no-beat", action="store_true", help="Don't embed the beat scheduler")
    parser.add_argument("--loglevel", default="info")
    args = parser.parse_args()

    argv = [
        "worker",
        f"--loglevel={args.loglevel}",
        f"--concurrency={args.concurrency}",
        f"--queues={args.queues}",
    ]
    if not args.no_beat:
        argv.append("--beat")

    print(f"Agora worker: queues={args.queues} beat={'off' if args.no_beat else 'on'}")
    celery_app.worker_main(argv)


if __name__ == "__main__":
    main()
