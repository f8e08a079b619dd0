#!/usr/bin/env python3
"""
Database initialization script for Quiz Engine
Run this to create all tables in the database named by DATABASE_URL
"""

import sys
import os

# Add the project directory to the Python path
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from sqlalchemy import inspect
from quiz_engine.database import engine, init_db

def init_tables():
    """Create tables and report what exists"""
    try:
        print("🔄 Creating tables...")
        init_db()

        tables = inspect(engine).get_table_names()
        print("✅ Database ready!")
        print("\n📋 Tables:")
        for table in sorted(tables):
            print(f"  - {table}")

        print("\n🔒 Constraints included:")
        print("  - One active session per participant per quiz (partial unique index)")
        print("  - Unique session tokens")
        print("  - Unique scoring policy names per quiz")
        return True

    except Exception as e:
        print(f"❌ Error creating tables: {e}")
        print("\n💡 Troubleshooting:")
        print("1. Check DATABASE_URL in your .env file")
        print("2. Make sure the database server is reachable")
        return False

if __name__ == "__main__":
    success = init_tables()
    sys.exit(0 if success else 1)
