#!/usr/bin/env python3
"""Runner script to start the backend server."""
import os
import sys

# Set working directory
script_dir = os.path.dirname(os.path.abspath(__file__))
backend_dir = os.path.join(script_dir, "backend")
os.chdir(backend_dir)

# Add backend to path
sys.path.insert(0, backend_dir)

if __name__ == "__main__":
    from streamcast.main import serve

    serve()
