#!/usr/bin/env python3
"""
Startup script for the DirectOrder cart service
"""
import sys
import uvicorn
from pathlib import Path

# Add src to Python path
current_dir = Path(__file__).parent
src_dir = current_dir / "src"
sys.path.insert(0, str(src_dir))

from config.settings import HOST, PORT, MENU_API_URL, MENU_DATA_PATH


def main():
    """Start the FastAPI application"""
    print("Starting DirectOrder cart service...")
    print("=" * 50)

    # Check if .env file exists
    env_file = current_dir / ".env"
    if not env_file.exists():
        print("Warning: .env file not found. Using default configuration.")
        print()

    if not MENU_API_URL and not Path(MENU_DATA_PATH).exists():
        print(f"Warning: no MENU_API_URL and no menu file at {MENU_DATA_PATH}; every restaurant will 404.")
        print()

    # Start the server
    try:
        uvicorn.run(
            "fastapi_order_app:app",
            host=HOST,
            port=PORT,
            reload=True,
            log_level="info",
            access_log=True
        )
    except KeyboardInterrupt:
        print("\nServer stopped by user")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
