#!/usr/bin/env python3
"""
Recent Tweets Scraper - Auto-Start Server
Starts the API backend and keeps it running until Ctrl+C.
"""

import os
import socket
import subprocess
import sys
import threading
import time
from pathlib import Path

# Global reference to backend process for shutdown
backend_process = None
backend_lock = threading.Lock()

BACKEND_DIR = Path(__file__).parent / 'backend'
PORT = int(os.environ.get('API_PORT', '3000'))


def check_backend_running():
    """Check if backend is already running"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    result = sock.connect_ex(('localhost', PORT))
    sock.close()
    return result == 0


def start_backend():
    """Start the FastAPI backend"""
    global backend_process

    print("Starting backend server...")
    print(f"Starting backend with: {sys.executable}")
    with backend_lock:
        backend_process = subprocess.Popen(
            [sys.executable, '-m', 'uvicorn', 'api.main:app', '--host', '0.0.0.0', '--port', str(PORT)],
            cwd=str(BACKEND_DIR),
        )

    # Browser launch happens lazily, so the port opens quickly
    print("Waiting for backend to start...")
    for _ in range(30):
        if backend_process.poll() is not None:
            break
        if check_backend_running():
            print("✅ Backend started successfully!")
            return backend_process
        time.sleep(0.5)

    print("❌ Backend failed to start")
    return None


def stop_backend():
    """Stop the backend process"""
    global backend_process

    with backend_lock:
        if backend_process:
            print("🔄 Stopping backend...")
            backend_process.terminate()
            try:
                # Lifespan shutdown closes the browser within a few seconds
                backend_process.wait(timeout=10)
            except subprocess.TimeoutExpired:
                backend_process.kill()
            backend_process = None


def main():
    print("=" * 50)
    print("  Recent Tweets Scraper - Auto-Start Server")
    print("=" * 50)
    print()

    if check_backend_running():
        print(f"✅ Backend already running on http://localhost:{PORT}")
        return

    if not start_backend():
        print("\nFailed to start backend. Please check logs/scraper.log.")
        stop_backend()
        return

    print()
    print("=" * 50)
    print("  Application Ready!")
    print("=" * 50)
    print()
    print(f"  Backend API: http://localhost:{PORT}")
    print(f"  API Docs:    http://localhost:{PORT}/docs")
    print(f"  Example:     curl -X POST http://localhost:{PORT}/recent-tweets \\")
    print("                 -H 'Content-Type: application/json' -d '{\"username\": \"nasa\"}'")
    print()
    print("  Press Ctrl+C to stop")
    print("=" * 50)

    try:
        while backend_process and backend_process.poll() is None:
            time.sleep(1)
        print("\n❌ Backend exited unexpectedly. Please check logs/scraper.log.")
    except KeyboardInterrupt:
        print("\n\nShutting down server...")
    finally:
        stop_backend()
        print("✅ Server stopped")


if __name__ == '__main__':
    main()
