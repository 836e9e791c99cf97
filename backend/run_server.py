#!/usr/bin/env python3
"""
Launch script for Fieldlog Import Backend.

Usage:
    python run_server.py [data_folder] [--port PORT] [--host HOST]

Examples:
    python run_server.py                    # Use default ./data/imports folder
    python run_server.py /path/to/storage   # Use custom folder
    python run_server.py --port 5000        # Run on port 5000
"""

import argparse
import os
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))


def main():
    parser = argparse.ArgumentParser(description="Fieldlog Import Backend Server")
    parser.add_argument(
        "data_folder",
        nargs="?",
        default="./data/imports",
        help="Folder for imported recordings and breadcrumbs (default: ./data/imports)"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=8000,
        help="Port to run server on (default: 8000)"
    )
    parser.add_argument(
        "--host", "-H",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1, use 0.0.0.0 for all interfaces)"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Run in debug mode"
    )

    args = parser.parse_args()

    data_folder = Path(args.data_folder)

    print("Fieldlog Import Backend")
    print("=" * 40)
    print(f"Data folder: {data_folder.absolute()}")
    print(f"Server: http://{args.host}:{args.port}")
    print("=" * 40)

    if not data_folder.exists():
        print(f"\nData folder will be created: {data_folder}")

    # Configure data folder for FastAPI lifespan
    os.environ["FIELDLOG_DATA_FOLDER"] = str(data_folder)

    print("\nAPI Endpoints:")
    print("  GET  /                          - Health check")
    print("  GET  /health                    - Detailed health")
    print("  POST /imports/validate          - Check a tracklog file")
    print("  POST /imports                   - Import a tracklog file")
    print("  GET  /breadcrumbs               - List imported breadcrumbs")
    print("  GET  /breadcrumbs/sessions      - List import sessions")
    print("  GET  /breadcrumbs/export.csv    - Export breadcrumbs as CSV")
    print("  GET  /recordings                - List imported recordings")
    print("  GET  /recordings/{id}/audio     - Download a recording")
    print("\nStarting server...")

    import uvicorn

    uvicorn.run(
        "fieldlog.main:app",
        host=args.host,
        port=args.port,
        reload=args.debug,
        log_level="info",
    )


if __name__ == "__main__":
    main()
