"""
AIWallet - Account Sync Layer

Accounts, subscriptions and financial plans for the AIWallet web app,
stored on a small JSON API server with a client-side local mirror that
takes over whenever the server cannot be reached.

DESIGN PRINCIPLES:
1. One set of account rules, run against either store
2. The server is the source of truth whenever it answers
3. An unreachable server is never an error the user sees
4. A local storage failure always is, since nothing is left to fall back on
5. Every routing decision is logged
"""

__version__ = "1.0.0"
__author__ = "AIWallet Team"
