#!/usr/bin/env python3
"""
HireSignal - Entry Point
Run the Flask application
"""

import os

from hiresignal.main import create_app

if __name__ == "__main__":
    app = create_app()

    # Get host and port from environment or use defaults
    host = os.environ.get("HIRESIGNAL_HOST", "127.0.0.1")
    port = int(os.environ.get("HIRESIGNAL_PORT", "5000"))
    debug = os.environ.get("HIRESIGNAL_DEBUG", "false").lower() == "true"

    print(f"\n{'='*50}")
    print("  HireSignal - Candidate Signal Assessment")
    print(f"{'='*50}")
    print(f"  Server: http://{host}:{port}")
    print(f"  Debug Mode: {debug}")
    print(f"{'='*50}\n")

    app.run(host=host, port=port, debug=debug, threaded=True)
