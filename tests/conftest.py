"""
Pytest configuration and shared fixtures.
This file ensures the project root is in sys.path for imports and points the
application settings at test values before anything imports them.
"""

import os
import sys
from pathlib import Path

# Add project root to sys.path so we can import domain, services, etc.
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

os.environ["ENVIRONMENT"] = "testing"
os.environ["API_KEY"] = "test-api-key"
os.environ["BASE_URL"] = "https://meals.example.com"
os.environ["FITBIT_CLIENT_ID"] = "23ABCD"
os.environ["FITBIT_CLIENT_SECRET"] = "fitbit-secret"
os.environ["STORAGE_BACKEND"] = "sql"
os.environ["DATABASE_URL"] = "sqlite://"
