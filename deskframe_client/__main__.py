"""Entry point for running deskframe_client as a module.

Usage:
    python -m deskframe_client
"""

from deskframe_client.main import run

if __name__ == "__main__":
    run()
