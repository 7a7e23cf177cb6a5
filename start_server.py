#!/usr/bin/env python3
"""
Start the Elden Ring Damage Calculator Web Server

Usage:
    python start_server.py [--port PORT] [--host HOST] [--data BUNDLE]

Example:
    python start_server.py --port 8080 --data exports/regulation.json
"""

import argparse
import os
import sys

# Add paths
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))


def main():
    parser = argparse.ArgumentParser(description='Elden Ring Damage Calculator Web Server')
    parser.add_argument('--port', type=int, default=8000, help='Port to run the server on')
    parser.add_argument('--host', type=str, default='127.0.0.1', help='Host to bind to')
    parser.add_argument('--reload', action='store_true', help='Enable auto-reload for development')
    parser.add_argument('--data', type=str, default=None, help='Path to a JSON game data bundle')
    args = parser.parse_args()

    # api reads the bundle path from the environment on import
    if args.data:
        os.environ['ER_CALC_DATA'] = os.path.abspath(args.data)

    print("=" * 60)
    print("Elden Ring Damage Calculator")
    print("=" * 60)
    print()
    if args.data:
        print(f"Data bundle: {os.environ['ER_CALC_DATA']}")
    print(f"Starting server at http://{args.host}:{args.port}")
    print(f"API Documentation at http://{args.host}:{args.port}/docs")
    print()
    print("Press Ctrl+C to stop the server.")
    print("=" * 60)

    import uvicorn
    uvicorn.run(
        "api:app",
        host=args.host,
        port=args.port,
        reload=args.reload
    )


if __name__ == "__main__":
    main()
