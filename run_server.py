#!/usr/bin/env python3
"""
Forum Server
Runs the FastAPI forum application under uvicorn
"""
import logging
import os
import sys
import uvicorn
from config import DEFAULT_HOST, DEFAULT_PORT, DB_PATH, LOG_LEVEL, LOG_FORMAT


def main():
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)

    # Change to the directory containing this script
    script_dir = os.path.dirname(os.path.abspath(__file__))
    os.chdir(script_dir)

    print("Starting forum server...")
    print(f"Working directory: {os.getcwd()}")
    print(f"Database: {DB_PATH}")
    print("Available at:")
    print(f"  - http://localhost:{DEFAULT_PORT} (or your configured host)")
    print()
    print("Press Ctrl+C to stop the server")

    try:
        # Import here to ensure we're in the right directory
        from app import app

        uvicorn.run(
            app,
            host=DEFAULT_HOST,
            port=DEFAULT_PORT,
            reload=False,
            access_log=True,
            log_config=None  # keep the logging configured above
        )
    except KeyboardInterrupt:
        print("\nServer stopped by user")
    except Exception as e:
        logging.getLogger(__name__).exception("Error starting server")
        print(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
