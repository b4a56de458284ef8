"""whatsgate -- HTTP control surface over a single WhatsApp session.

This package keeps one long-lived session with the messaging network
alive, reconnecting on its own after disconnects, and answers inbound
messages through a fuzzy command resolver. A small FastAPI app lets a
separate application pair the session, read its status, send messages
and log out.
"""

__version__ = "0.1.0"
