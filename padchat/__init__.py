# padchat/__init__.py
"""
padchat: one-time-pad encryption for multi-party conversations.
A shared pad of random chunks is consumed chunk by chunk; every chunk encrypts at most
one message chop, ever, across all parties sharing the pad.
"""

__version__ = "0.1.0-dev"
