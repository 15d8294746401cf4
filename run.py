#!/usr/bin/env python3
"""Agent activity tracker - Run the application.

Usage:
    python run.py
    # Or: python -m agent_dashboard.app

Hooks are accepted at http://localhost:5050/hook/* and realtime events
are streamed from http://localhost:5050/api/events
"""

from agent_dashboard.app import main

if __name__ == "__main__":
    main()
