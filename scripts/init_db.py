#!/usr/bin/env python3
"""
Initialize the database tables for the node monitor
"""

import sys
import os

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from node_monitor.core.config import settings
from node_monitor.core.logging import configure_logging
from node_monitor.database.connection import init_database

if __name__ == "__main__":
    configure_logging(settings.log_level)
    init_database()
    print("✅ Database initialized")
