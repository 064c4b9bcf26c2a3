#!/usr/bin/env python3
"""
CountyFix - Expired Message Sweep
Deletes user messages whose expiry has passed. Schedule it hourly.
"""
import os
import sys

# Add src to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()

from src.alerts.messages import MessageService
from src.core.logging import setup_logging
from src.database.connection import get_db


def main() -> int:
    logger = setup_logging()

    db = get_db()
    with db.get_session() as session:
        deleted = MessageService(session).sweep_expired()

    logger.info(f"Message sweep finished: {deleted} expired messages deleted")
    return deleted


if __name__ == "__main__":
    main()
