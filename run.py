#!/usr/bin/env python3
"""
Omsin Financial Ledger Entry Point

Starts the FastAPI server (port 8090 unless OMSIN_API_PORT says otherwise).
"""

import sys

from omsin_bank.api import run_server
from omsin_bank.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("🏦 Starting Omsin Financial Ledger...")
    print(f"💾 Storage backend: {config.storage_backend} ({config.database_path})")
    print(f"💸 Transfer limit: {config.currency} {config.transfer_limit}")
    print("💰 All financial calculations use Decimal precision")
    print(f"🌐 API available at: http://localhost:{config.api_port}")
    print(f"📚 Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server(debug="--reload" in sys.argv)
    except KeyboardInterrupt:
        print("\n👋 Shutting down Omsin Financial Ledger...")
    except Exception as e:
        print(f"❌ Error starting server: {e}")
        sys.exit(1)
