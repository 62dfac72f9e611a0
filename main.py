#!/usr/bin/env python3
"""
Authgate -- email-OTP user authentication backend.

Usage:
  python main.py
  python main.py --port 8080
  python main.py --host 0.0.0.0 --reload

Environment variables (see core/config.py for the full list):
  SECRET_KEY    JWT signing secret, at least 32 characters. Required unless DEBUG=true.
  DEBUG         true = dev mode: random SECRET_KEY, mail written to the log.
  ENVIRONMENT   "production" makes the session cookie Secure + SameSite=None.
  SMTP_HOST     Mail relay for OTP and welcome mails. Required unless DEBUG=true.
  SENDER_EMAIL  From address for outgoing mail.
  HOST / PORT   Bind address. Defaults to 127.0.0.1:6000.
"""

import argparse

import uvicorn

from core.config import get_settings


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="authgate",
        description="Run the Authgate API server.",
    )
    parser.add_argument("--host", default=settings.host, help=f"Bind address (default: {settings.host})")
    parser.add_argument("--port", type=int, default=settings.port, help=f"Bind port (default: {settings.port})")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    args = parser.parse_args()

    print(f"  Running on http://{args.host}:{args.port}")
    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
