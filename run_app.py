#!/usr/bin/env python3
"""
Notifications Service Runner
============================

Run the notification API, the Celery worker or the Celery beat scheduler.

Usage:
    python run_app.py                    # API with auto-reload (default)
    python run_app.py --mode prod        # API without reload, settings.WORKERS processes
    python run_app.py --mode worker      # Celery worker for the push and sweeps queues
    python run_app.py --mode beat        # Celery beat for the periodic sweeps
    python run_app.py --port 8001        # Custom port
"""

import argparse
import os
import sys

WORKER_QUEUES = "default,push,sweeps"

def print_banner():
    """Print application banner"""
    banner = """
╔═══════════════════════════════════════════════════════╗
║              🔔 Marketplace Notifications             ║
║                    Service Runner                     ║
╚═══════════════════════════════════════════════════════╝
    """
    print(banner)

def check_environment():
    """Report which configuration sources are present"""
    print("\n🔍 Checking environment...")

    if os.path.exists(".env"):
        print("✅ .env file found")
    else:
        print("⚠️  .env file not found, using defaults")

    from app.core.config import settings

    if settings.push_configured:
        print("✅ VAPID keys configured, web push enabled")
    else:
        print("⚠️  VAPID keys missing, push delivery will report failures")

    return True

def run_api(host, port, reload=True, workers=1):
    """Run the FastAPI application"""
    print(f"\n🚀 Starting Notifications API on {host}:{port}")
    print(f"📖 API Docs: http://localhost:{port}/api/docs")
    print("\n" + "=" * 50)

    try:
        import uvicorn
        uvicorn.run(
            "app.main:app",
            host=host,
            port=port,
            reload=reload,
            workers=1 if reload else workers,
            log_level="info"
        )
    except KeyboardInterrupt:
        print("\n👋 Server stopped by user")

def run_worker(loglevel="info"):
    """Run a Celery worker consuming every notification queue"""
    print(f"\n⚙️  Starting Celery worker on queues: {WORKER_QUEUES}")
    print("\n" + "=" * 50)

    from app.core.celery_app import celery_app

    celery_app.worker_main(["worker", f"--loglevel={loglevel}", "-Q", WORKER_QUEUES])

def run_beat(loglevel="info"):
    """Run the Celery beat scheduler"""
    print("\n⏰ Starting Celery beat")
    print("\n" + "=" * 50)

    from app.core.celery_app import celery_app

    celery_app.start(["beat", f"--loglevel={loglevel}"])

def main():
    parser = argparse.ArgumentParser(
        description="Marketplace Notifications Runner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_app.py                      # API on port 8000 with reload
  python run_app.py --mode prod          # API for production
  python run_app.py --mode worker        # Background deliveries and sweeps
  python run_app.py --mode beat          # Periodic sweep scheduler
        """
    )

    parser.add_argument(
        "--mode",
        choices=["dev", "prod", "worker", "beat"],
        default="dev",
        help="What to run (default: dev)"
    )
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host to bind to (default: 0.0.0.0)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to (default: 8000)"
    )
    parser.add_argument(
        "--loglevel",
        default="info",
        help="Celery log level (default: info)"
    )

    args = parser.parse_args()

    print_banner()

    if not check_environment():
        return 1

    if args.mode == "worker":
        run_worker(args.loglevel)
    elif args.mode == "beat":
        run_beat(args.loglevel)
    else:
        from app.core.config import settings
        run_api(args.host, args.port, reload=args.mode == "dev", workers=settings.WORKERS)

    return 0

if __name__ == "__main__":
    sys.exit(main())
