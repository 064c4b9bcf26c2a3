"""
CountyFix - Serverless Entry Point
Exposes the FastAPI app for platforms that import a module-level handler.
"""

import os
import sys

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.api.main import app

handler = app
